"""Read-only hash cache built from a previously written manifest."""

from __future__ import annotations

from typing import Dict, Iterable, Optional

from versioning.models import CachedPackage


class FetchCache:
    """Hash lookups against the prior manifest.

    Entries are indexed by import path; a later entry for the same path
    replaces an earlier one. A hit requires the revision and repository URL
    to match exactly, so a moved pin or rewritten repository forces a fetch.
    """

    def __init__(self, packages: Iterable[CachedPackage] = ()):
        """Initialize the cache.

        Args:
            packages: Entries read from the previous manifest.
        """
        self._entries: Dict[str, CachedPackage] = {}
        for pkg in packages:
            self._entries[pkg.import_path] = pkg

    def lookup(self, import_path: str, revision: str, url: str) -> Optional[str]:
        """Return the cached sha256, or None on a miss.

        Args:
            import_path: Module import path.
            revision: Normalized revision.
            url: Repository URL used for fetching.
        """
        entry = self._entries.get(import_path)
        if entry is None:
            return None
        if entry.revision != revision or entry.url != url:
            return None
        return entry.sha256

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, import_path: object) -> bool:
        return import_path in self._entries
