"""Run configuration assembled from CLI flags, a config file and defaults.

Precedence, highest first: CLI flags, the YAML/JSON config file (``--config``
or ``vgo2nix.yml`` in the project directory), built-in Constants.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import yaml

from constants import Constants
from errors import ConfigError

logger = logging.getLogger(__name__)

_BOOL_KEYS = ("keep_going", "fetch_submodules", "deep_clone", "skip_unresolvable")
_STR_KEYS = ("outfile", "infile", "goflags")
_KNOWN_KEYS = set(_BOOL_KEYS) | set(_STR_KEYS) | {"jobs", "rewrites"}


@dataclass
class RunSettings:
    """Effective settings for one vgo2nix run."""

    project_dir: str = Constants.DEFAULT_DIR
    outfile: str = Constants.DEFAULT_OUTFILE
    infile: Optional[str] = None
    jobs: int = Constants.DEFAULT_JOBS
    keep_going: bool = False
    skip_unresolvable: bool = False
    fetch_submodules: bool = False
    deep_clone: bool = False
    goflags: Optional[str] = None
    rewrites: Dict[str, str] = field(default_factory=dict)

    @property
    def outfile_path(self) -> str:
        return os.path.join(self.project_dir, self.outfile)

    @property
    def infile_path(self) -> str:
        return os.path.join(self.project_dir, self.infile or self.outfile)


def find_config_file(project_dir: str) -> Optional[str]:
    """Return the first default config file present in project_dir."""
    for name in Constants.CONFIG_FILES:
        candidate = os.path.join(project_dir, name)
        if os.path.isfile(candidate):
            return candidate
    return None


def load_config_file(path: str) -> Dict[str, Any]:
    """Load a YAML or JSON config file into a dict.

    Raises:
        ConfigError: if the file is missing, unparsable or not a mapping.
    """
    try:
        with open(path, "r", encoding="utf-8") as fh:
            if path.lower().endswith(".json"):
                data = json.load(fh)
            else:
                data = yaml.safe_load(fh)
    except FileNotFoundError as e:
        raise ConfigError(f"config file not found: {path}") from e
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"failed to load config {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"config {path} must be a mapping")
    return data


def parse_rewrite(spec: str) -> tuple:
    """Split a ``PREFIX=TARGET`` rewrite argument."""
    prefix, sep, target = spec.partition("=")
    if not sep or not prefix.strip() or not target.strip():
        raise ConfigError(f"invalid rewrite {spec!r}, expected PREFIX=TARGET")
    return prefix.strip(), target.strip()


def _validate(config: Dict[str, Any], source: str) -> Dict[str, Any]:
    unknown = sorted(set(config) - _KNOWN_KEYS)
    if unknown:
        logger.warning("Ignoring unknown config keys in %s: %s", source, ", ".join(unknown))
    out: Dict[str, Any] = {}
    for key in _BOOL_KEYS:
        if key in config:
            if not isinstance(config[key], bool):
                raise ConfigError(f"{source}: {key} must be a boolean")
            out[key] = config[key]
    for key in _STR_KEYS:
        if key in config:
            if not isinstance(config[key], str):
                raise ConfigError(f"{source}: {key} must be a string")
            out[key] = config[key]
    if "jobs" in config:
        jobs = config["jobs"]
        if isinstance(jobs, bool) or not isinstance(jobs, int):
            raise ConfigError(f"{source}: jobs must be an integer")
        out["jobs"] = jobs
    if "rewrites" in config:
        rewrites = config["rewrites"] or {}
        if not isinstance(rewrites, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in rewrites.items()
        ):
            raise ConfigError(f"{source}: rewrites must map strings to strings")
        out["rewrites"] = dict(rewrites)
    return out


def build_settings(args) -> RunSettings:
    """Merge CLI arguments over config file values over defaults.

    Raises:
        ConfigError: on invalid config files, rewrite flags or job counts.
    """
    project_dir = getattr(args, "DIR", None) or Constants.DEFAULT_DIR
    settings = RunSettings(project_dir=project_dir)

    config_path = getattr(args, "CONFIG", None) or find_config_file(project_dir)
    file_values: Dict[str, Any] = {}
    if config_path:
        logger.debug("Loading config from %s", config_path)
        file_values = _validate(load_config_file(config_path), config_path)
    for key, value in file_values.items():
        setattr(settings, key, value)

    cli_overrides = {
        "outfile": getattr(args, "OUTFILE", None),
        "infile": getattr(args, "INFILE", None),
        "jobs": getattr(args, "JOBS", None),
        "keep_going": getattr(args, "KEEP_GOING", None),
        "skip_unresolvable": getattr(args, "SKIP_UNRESOLVABLE", None),
        "fetch_submodules": getattr(args, "FETCH_SUBMODULES", None),
        "deep_clone": getattr(args, "DEEP_CLONE", None),
    }
    for key, value in cli_overrides.items():
        if value is not None:
            setattr(settings, key, value)

    cli_rewrites: List[tuple] = [parse_rewrite(s) for s in getattr(args, "REWRITES", None) or []]
    if cli_rewrites:
        # CLI rules are tried first; a CLI prefix replaces the file's rule for it
        merged = dict(cli_rewrites)
        for prefix, target in settings.rewrites.items():
            merged.setdefault(prefix, target)
        settings.rewrites = merged

    if settings.jobs < 1:
        raise ConfigError(f"jobs must be at least 1, got {settings.jobs}")
    return settings
