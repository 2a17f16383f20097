"""Argument parsing functionality for vgo2nix."""

import argparse

from constants import Constants


def parse_args(argv=None):
    """Parses the arguments passed to the program.

    Options that may also come from a config file default to None so the
    configuration layer can tell "not given" apart from an explicit value.
    """
    parser = argparse.ArgumentParser(
        prog="vgo2nix",
        description=(
            "vgo2nix - Convert go.mod dependencies into a pinned deps.nix manifest"
        ),
        add_help=True,
    )

    parser.add_argument("-d", "--dir",
                        dest="DIR",
                        help="Go project directory (default: ./)",
                        action="store", type=str,
                        default=Constants.DEFAULT_DIR)
    parser.add_argument("-o", "--outfile",
                        dest="OUTFILE",
                        help="deps.nix output file, relative to the project directory (default: deps.nix)",
                        action="store", type=str)
    parser.add_argument("-i", "--infile",
                        dest="INFILE",
                        help="Previous deps.nix to reuse hashes from (default: the output file)",
                        action="store", type=str)
    parser.add_argument("-j", "--jobs",
                        dest="JOBS",
                        help=f"Number of parallel fetch jobs (default: {Constants.DEFAULT_JOBS})",
                        action="store", type=int)
    parser.add_argument("-k", "--keep-going",
                        dest="KEEP_GOING",
                        help="Skip modules whose revision cannot be fetched instead of aborting",
                        action="store_true", default=None)
    parser.add_argument("--skip-unresolvable",
                        dest="SKIP_UNRESOLVABLE",
                        help="Skip modules whose repository cannot be determined instead of aborting",
                        action="store_true", default=None)
    parser.add_argument("--fetch-submodules",
                        dest="FETCH_SUBMODULES",
                        help="Include git submodules when computing hashes",
                        action="store_true", default=None)
    parser.add_argument("--deep-clone",
                        dest="DEEP_CLONE",
                        help="Use full clones when computing hashes",
                        action="store_true", default=None)
    parser.add_argument("--rewrite",
                        dest="REWRITES",
                        help="Rewrite an import-path prefix for fetching (PREFIX=TARGET, repeatable); "
                             "TARGET is another import path or a repository URL",
                        action="append", type=str,
                        default=[])
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, YML, or JSON)",
                        action="store",
                        type=str)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'])
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-q", "--quiet",
                        dest="QUIET",
                        help="Only print errors to the console.",
                        action="store_true")
    parser.add_argument("--error-on-warnings",
                        dest="ERROR_ON_WARNINGS",
                        help="Exit with a non-zero status code if modules were skipped.",
                        action="store_true")

    return parser.parse_args(argv)
