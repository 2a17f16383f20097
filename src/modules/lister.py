"""Module list collection via ``go list -m all``.

The go command runs with an explicitly built environment (module mode on,
GOPATH removed) rather than by mutating this process's environment.
"""
from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

from constants import Constants
from errors import ModuleListError
from versioning.models import ModuleDeclaration, ReplaceTarget

logger = logging.getLogger(__name__)

REPLACE_ARROW = "=>"


@dataclass(frozen=True)
class ModuleListEnv:
    """Environment settings for the go command."""

    goflags: Optional[str] = None
    extra: Dict[str, str] = field(default_factory=dict)

    def build(self, base: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        """Return a fresh environment mapping derived from base (default: os.environ)."""
        env = dict(os.environ if base is None else base)
        env["GO111MODULE"] = "on"
        # Go modules are not relying on GOPATH
        env.pop("GOPATH", None)
        if self.goflags is not None:
            env["GOFLAGS"] = self.goflags
        env.update(self.extra)
        return env


def parse_module_line(line: str, main: bool = False) -> ModuleDeclaration:
    """Parse one line of ``go list -m all`` output.

    Accepted shapes::

        path
        path version
        path version => replacement_path replacement_version
        path version => ./local/dir
        path => replacement_path replacement_version
        path => ./local/dir
    """
    tokens = line.split()
    if not tokens:
        raise ModuleListError(f"empty module line: {line!r}")

    if main:
        return ModuleDeclaration(path=tokens[0], version="", main=True)

    if REPLACE_ARROW in tokens:
        idx = tokens.index(REPLACE_ARROW)
        left, right = tokens[:idx], tokens[idx + 1:]
        if len(left) not in (1, 2) or len(right) not in (1, 2):
            raise ModuleListError(f"unexpected replace directive in module line: {line!r}")
        version = left[1] if len(left) == 2 else ""
        replace = ReplaceTarget(path=right[0], version=right[1] if len(right) == 2 else "")
        return ModuleDeclaration(path=left[0], version=version, replace=replace)

    if len(tokens) != 2:
        raise ModuleListError(f"unexpected module line: {line!r}")
    return ModuleDeclaration(path=tokens[0], version=tokens[1])


def parse_module_list(text: str) -> List[ModuleDeclaration]:
    """Parse full ``go list -m all`` output; the first line is the main module."""
    declarations: List[ModuleDeclaration] = []
    for line in text.splitlines():
        if not line.strip():
            continue
        declarations.append(parse_module_line(line, main=not declarations))
    return declarations


def list_modules(
    project_dir: str,
    env: Optional[ModuleListEnv] = None,
    command: str = Constants.GO_COMMAND,
) -> List[ModuleDeclaration]:
    """Run ``go list -m all`` in project_dir and parse its output.

    Raises:
        ModuleListError: if the command cannot run, exits non-zero or prints
            output that cannot be parsed.
    """
    args = [command, "list", "-m", "all"]
    env = env or ModuleListEnv()
    logger.debug("Running %s in %s", " ".join(args), project_dir)
    try:
        result = subprocess.run(
            args,
            cwd=project_dir,
            env=env.build(),
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as exc:
        raise ModuleListError(f"could not run '{' '.join(args)}': {exc}") from exc

    if result.returncode != 0:
        raise ModuleListError(
            f"'{' '.join(args)}' failed with exit status {result.returncode}",
            stderr=result.stderr.strip(),
        )
    return parse_module_list(result.stdout)
