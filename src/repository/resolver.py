"""Map module import paths to repository URLs and in-repository subdirectories."""
from __future__ import annotations

import logging
import re
from typing import Callable, Dict, Mapping, Optional, Tuple

from errors import RepositoryNotFoundError
from versioning.models import RepoLocation
from versioning.normalizer import strip_major_version_suffix

logger = logging.getLogger(__name__)

# (import_path) -> (repo_url, repo_root_import_path)
RepositoryLookup = Callable[[str], Tuple[str, str]]

_SCHEME_RE = re.compile(r'^[a-zA-Z][a-zA-Z0-9+.-]*://')


def _has_scheme(target: str) -> bool:
    return bool(_SCHEME_RE.match(target))


def _under(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix + "/")


class RepositoryResolver:
    """Resolve import paths with optional user-supplied rewrite rules.

    Rewrites are an ordered mapping of literal import-path prefixes to either
    another import-path prefix (looked up in its place) or a repository URL
    (used verbatim). The first matching prefix wins. Rewrites only change the
    address used for fetching; callers keep the declared import path.
    """

    def __init__(self, lookup: RepositoryLookup, rewrites: Optional[Mapping[str, str]] = None):
        self._lookup = lookup
        self._rewrites: Dict[str, str] = {}
        for prefix, target in (rewrites or {}).items():
            self._rewrites[prefix.rstrip("/")] = target

    def _match_rewrite(self, import_path: str) -> Optional[Tuple[str, str]]:
        for prefix, target in self._rewrites.items():
            if _under(import_path, prefix):
                return prefix, target
        return None

    def resolve(self, import_path: str) -> RepoLocation:
        """Return the repository location for import_path.

        Raises:
            RepositoryNotFoundError: if the lookup cannot map the path.
        """
        lookup_path = import_path
        rule = self._match_rewrite(import_path)
        if rule is not None:
            prefix, target = rule
            remainder = import_path[len(prefix):].strip("/")
            logger.debug("Rewriting %s via %s -> %s", import_path, prefix, target)
            if _has_scheme(target):
                return RepoLocation(
                    url=target,
                    root=prefix,
                    subdir=strip_major_version_suffix(remainder),
                )
            lookup_path = target.rstrip("/")
            if remainder:
                lookup_path = f"{lookup_path}/{remainder}"

        url, root = self._lookup(lookup_path)
        root = root.rstrip("/")
        if not _under(lookup_path, root):
            raise RepositoryNotFoundError(
                import_path, f"repository root {root} does not contain {lookup_path}"
            )
        subdir = strip_major_version_suffix(lookup_path[len(root):].strip("/"))
        return RepoLocation(url=url, root=root, subdir=subdir)
