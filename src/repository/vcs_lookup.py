"""Repository metadata lookup for Go import paths.

Resolves an import path to its Git repository URL and repository root the
way the go command does: well-known hosting sites are mapped from the path
shape, gopkg.in paths follow that service's naming rules, and everything
else is discovered through the ``<meta name="go-import">`` tag served at
``https://<path>?go-get=1``.
"""
from __future__ import annotations

import html.parser
import logging
import re
import threading
from typing import Callable, Dict, List, Optional, Tuple

from constants import Constants
from errors import RepositoryNotFoundError
from common.http_client import robust_get
from common.logging_utils import extra_context, is_debug_enabled

logger = logging.getLogger(__name__)

_GOPKG_RE = re.compile(
    r'^gopkg\.in/(?:(?P<user>[a-zA-Z0-9][-a-zA-Z0-9]*)/)?'
    r'(?P<name>[a-zA-Z][-.a-zA-Z0-9]*)\.(?P<major>v\d+)(?:-unstable)?(?=/|$)'
)


class GoImportParser(html.parser.HTMLParser):
    """Collect ``go-import`` meta tags as (prefix, vcs, repo_url) tuples."""

    def __init__(self):
        super().__init__()
        self.imports: List[Tuple[str, str, str]] = []

    def handle_starttag(self, tag, attrs):
        if tag != "meta":
            return
        attrs_dict = dict(attrs)
        if attrs_dict.get("name") != "go-import":
            return
        parts = (attrs_dict.get("content") or "").split()
        if len(parts) == 3:
            self.imports.append((parts[0], parts[1], parts[2]))


def parse_go_import(import_path: str, body: str) -> Optional[Tuple[str, str, str]]:
    """Return the best matching (prefix, vcs, url) for import_path, if any.

    The longest prefix wins; ``mod`` entries (module proxies) are ignored.
    """
    parser = GoImportParser()
    parser.feed(body)
    best = None
    for prefix, vcs, url in parser.imports:
        if vcs == "mod":
            continue
        if import_path == prefix or import_path.startswith(prefix + "/"):
            if best is None or len(prefix) > len(best[0]):
                best = (prefix, vcs, url)
    return best


class VcsLookup:
    """Callable lookup ``(import_path) -> (repo_url, repo_root)``.

    Results are memoized per import path for the lifetime of the instance.
    """

    def __init__(self, http_get: Callable[..., Tuple[int, Dict[str, str], str]] = robust_get):
        self._http_get = http_get
        self._memo: Dict[str, Tuple[str, str]] = {}
        self._lock = threading.Lock()

    def __call__(self, import_path: str) -> Tuple[str, str]:
        with self._lock:
            hit = self._memo.get(import_path)
        if hit is not None:
            return hit
        result = self._lookup(import_path)
        with self._lock:
            self._memo[import_path] = result
        return result

    def _lookup(self, import_path: str) -> Tuple[str, str]:
        path = import_path.strip("/")
        parts = path.split("/")
        if not parts or "." not in parts[0]:
            raise RepositoryNotFoundError(import_path, "import path does not begin with a hostname")

        if parts[0] in Constants.KNOWN_HOSTS:
            if len(parts) < 3:
                raise RepositoryNotFoundError(import_path, f"invalid {parts[0]} import path")
            root = "/".join(parts[:3])
            return f"https://{root}", root

        if parts[0] == "gopkg.in":
            return self._lookup_gopkg(import_path, path)

        return self._lookup_go_get(import_path, path)

    @staticmethod
    def _lookup_gopkg(import_path: str, path: str) -> Tuple[str, str]:
        match = _GOPKG_RE.match(path)
        if not match:
            raise RepositoryNotFoundError(import_path, "invalid gopkg.in import path")
        name = match.group("name")
        user = match.group("user") or f"go-{name}"
        return f"https://github.com/{user}/{name}", match.group(0)

    def _lookup_go_get(self, import_path: str, path: str) -> Tuple[str, str]:
        url = f"https://{path}{Constants.GO_GET_QUERY}"
        status, _, body = self._http_get(url)
        if is_debug_enabled(logger):
            logger.debug(
                "go-get metadata fetched",
                extra=extra_context(
                    event="repo_lookup",
                    component="vcs_lookup",
                    action="go_get",
                    status_code=status,
                    import_path=import_path,
                ),
            )
        if status == 0:
            raise RepositoryNotFoundError(import_path, body)

        found = parse_go_import(path, body or "")
        if found is None:
            raise RepositoryNotFoundError(
                import_path, f"no go-import meta tag at {url} (HTTP {status})"
            )
        prefix, vcs, repo_url = found
        if vcs != "git":
            raise RepositoryNotFoundError(import_path, f"unsupported VCS {vcs!r} for {repo_url}")
        return repo_url, prefix
