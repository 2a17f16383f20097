"""vgo2nix - Convert a Go module's dependencies into a pinned deps.nix

    Returns:
        int: Exit code
"""
import logging
import sys
from typing import Callable, List, Optional

from args import parse_args
from cli_config import RunSettings, build_settings
from constants import ExitCodes
from errors import ConfigError, ManifestError, ModuleListError, Vgo2NixError
from common.logging_utils import add_file_handler, configure_logging, extra_context, is_debug_enabled
from manifest.depsnix import read_manifest, write_manifest
from modules.lister import ModuleListEnv, list_modules
from prefetch import ContentHashFetcher, NixPrefetchGit
from repository.resolver import RepositoryLookup
from repository.vcs_lookup import VcsLookup
from versioning.models import (
    FetchOptions,
    ModuleDeclaration,
    ProgressEvent,
    ProgressKind,
    ResolveOptions,
)
from versioning.service import ResolutionService

logger = logging.getLogger(__name__)

ModuleLister = Callable[[str, ModuleListEnv], List[ModuleDeclaration]]

_PROGRESS_MESSAGES = {
    ProgressKind.PROCESSING: (logging.INFO, "Processing goPackagePath: %s"),
    ProgressKind.CACHE_HIT: (logging.DEBUG, "Reusing cached hash for %s"),
    ProgressKind.FETCH_STARTED: (logging.INFO, "Fetching %s"),
    ProgressKind.FETCH_FINISHED: (logging.INFO, "Finished fetching %s"),
    ProgressKind.FETCH_FAILED: (logging.INFO, "Failed fetching %s"),
}


def log_progress(event: ProgressEvent) -> None:
    """Log a pipeline progress event."""
    level, message = _PROGRESS_MESSAGES[event.kind]
    logger.log(level, message, event.import_path)
    if is_debug_enabled(logger) and event.detail:
        logger.debug(
            "Progress detail",
            extra=extra_context(
                event=event.kind.value,
                component="cli",
                import_path=event.import_path,
                context=event.detail,
            ),
        )


def build_resolve_options(settings: RunSettings) -> ResolveOptions:
    """Translate run settings into resolution options."""
    return ResolveOptions(
        jobs=settings.jobs,
        keep_going=settings.keep_going,
        rewrites=dict(settings.rewrites),
        fetch_options=FetchOptions(
            fetch_submodules=settings.fetch_submodules,
            deep_clone=settings.deep_clone,
        ),
        skip_unresolvable=settings.skip_unresolvable,
    )


def run(
    settings: RunSettings,
    *,
    lister: ModuleLister = list_modules,
    lookup: Optional[RepositoryLookup] = None,
    fetcher: Optional[ContentHashFetcher] = None,
    error_on_warnings: bool = False,
) -> int:
    """Resolve the project's modules and write the manifest.

    The manifest is only written after a successful resolution, so a fatal
    error leaves any previous manifest untouched.

    Returns:
        int: Exit code value.
    """
    try:
        declarations = lister(settings.project_dir, ModuleListEnv(goflags=settings.goflags))
    except ModuleListError as e:
        logger.error("%s", e)
        return ExitCodes.RESOLUTION_ERROR.value

    # Load previous deps so we can reuse hashes for known revs
    try:
        cached = read_manifest(settings.infile_path)
    except ManifestError as e:
        logger.warning("Ignoring previous manifest: %s", e)
        cached = []
    logger.debug("Loaded %d cached packages from %s", len(cached), settings.infile_path)

    service = ResolutionService(
        lookup if lookup is not None else VcsLookup(),
        fetcher if fetcher is not None else NixPrefetchGit(),
        on_event=log_progress,
    )
    try:
        report = service.resolve(declarations, cached, build_resolve_options(settings))
    except Vgo2NixError as e:
        logger.error("%s", e)
        logger.error("Resolution failed; %s was not written", settings.outfile_path)
        return ExitCodes.RESOLUTION_ERROR.value

    try:
        write_manifest(settings.outfile_path, report.packages)
    except ManifestError as e:
        logger.error("%s", e)
        return ExitCodes.FILE_ERROR.value

    logger.info(
        "Resolved %d packages (%d cached, %d fetched)",
        len(report.packages), report.cache_hits, report.fetched,
    )
    if report.failures:
        logger.warning("%d modules were skipped:", len(report.failures))
        for import_path, error in report.failures:
            logger.warning("  %s: %s", import_path, error)
        if error_on_warnings:
            logger.error("Warnings present, exiting with non-zero status code.")
            return ExitCodes.EXIT_WARNINGS.value
    return ExitCodes.SUCCESS.value


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    configure_logging(args.LOG_LEVEL, quiet=args.QUIET)
    if args.LOG_FILE:
        add_file_handler(args.LOG_FILE)

    try:
        settings = build_settings(args)
    except ConfigError as e:
        logger.error("%s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)

    sys.exit(run(settings, error_on_warnings=args.ERROR_ON_WARNINGS))


if __name__ == "__main__":
    main()
