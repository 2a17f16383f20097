"""Resolution pipeline from module declarations to hashed, ordered packages."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Tuple, Union

from errors import RepositoryNotFoundError
from prefetch import ContentHashFetcher, FetchCache, PrefetchWorkerPool
from repository.resolver import RepositoryLookup, RepositoryResolver
from versioning.models import (
    CachedPackage,
    ModuleDeclaration,
    ProgressCallback,
    ProgressEvent,
    ProgressKind,
    ResolutionReport,
    ResolvedEntry,
    ResolvedPackage,
    ResolveOptions,
)
from versioning.normalizer import normalize_version

logger = logging.getLogger(__name__)


class ResolutionService:
    """Resolve declared modules into a pinned package list.

    Each ``resolve`` call is a single pass: normalize and locate every module
    on the calling thread, reuse hashes from the prior manifest where the
    (import path, revision, url) triple is unchanged, fetch the rest
    concurrently, then order the result by import path.
    """

    def __init__(
        self,
        lookup: RepositoryLookup,
        fetcher: ContentHashFetcher,
        on_event: Optional[ProgressCallback] = None,
    ):
        self._lookup = lookup
        self._fetcher = fetcher
        self._on_event = on_event

    def _emit(self, kind: ProgressKind, import_path: str, detail: Optional[str] = None) -> None:
        if self._on_event is not None:
            self._on_event(ProgressEvent(kind, import_path, detail))

    def build_entries(
        self,
        declarations: Iterable[ModuleDeclaration],
        options: ResolveOptions,
    ) -> Tuple[List[ResolvedEntry], List[Tuple[str, Exception]]]:
        """Normalize and locate every non-main declaration.

        Returns:
            (entries, failures): failures only holds unresolvable repositories
            when ``skip_unresolvable`` is set.

        Raises:
            MalformedVersionError: always fatal.
            RepositoryNotFoundError: unless ``skip_unresolvable`` is set.
        """
        resolver = RepositoryResolver(self._lookup, options.rewrites)
        entries: Dict[str, ResolvedEntry] = {}
        failures: List[Tuple[str, Exception]] = []

        for decl in declarations:
            if decl.main:
                continue
            self._emit(ProgressKind.PROCESSING, decl.path)
            logger.debug("Processing goPackagePath: %s", decl.path)

            fetch_path, version = decl.path, decl.version
            if decl.replace is not None:
                if decl.replace.is_local:
                    logger.warning(
                        "Skipping %s: replaced by local path %s", decl.path, decl.replace.path
                    )
                    entries.pop(decl.path, None)
                    continue
                fetch_path, version = decl.replace.path, decl.replace.version

            # Reject malformed versions before any lookup can mask them
            normalize_version(version)
            try:
                location = resolver.resolve(fetch_path)
            except RepositoryNotFoundError as exc:
                if not options.skip_unresolvable:
                    raise
                logger.warning("Skipping %s: %s", decl.path, exc)
                failures.append((decl.path, exc))
                entries.pop(decl.path, None)
                continue

            revision = normalize_version(version, location.subdir)
            logger.debug("goPackagePath %s has rev %s", decl.path, revision)
            entries[decl.path] = ResolvedEntry(
                import_path=decl.path,
                revision=revision,
                url=location.url,
                subdir=location.subdir,
            )

        return list(entries.values()), failures

    def resolve(
        self,
        declarations: Iterable[ModuleDeclaration],
        cached_packages: Union[FetchCache, Iterable[CachedPackage]] = (),
        options: Optional[ResolveOptions] = None,
    ) -> ResolutionReport:
        """Resolve declarations into an ordered ResolutionReport.

        Raises:
            MalformedVersionError, RepositoryNotFoundError: from entry building.
            PrefetchError: the first fetch failure, when keep_going is False.
        """
        options = options or ResolveOptions()
        cache = cached_packages if isinstance(cached_packages, FetchCache) else FetchCache(cached_packages)

        entries, failures = self.build_entries(declarations, options)

        packages: List[ResolvedPackage] = []
        misses: List[ResolvedEntry] = []
        for entry in entries:
            sha256 = cache.lookup(entry.import_path, entry.revision, entry.url)
            if sha256 is not None:
                self._emit(ProgressKind.CACHE_HIT, entry.import_path, entry.revision)
                packages.append(ResolvedPackage.from_entry(entry, sha256, from_cache=True))
            else:
                misses.append(entry)
        cache_hits = len(packages)
        logger.info("%d cached, %d to fetch", cache_hits, len(misses))

        pool = PrefetchWorkerPool(
            self._fetcher,
            jobs=options.jobs,
            options=options.fetch_options,
            on_event=self._on_event,
        )
        outcomes = pool.run(misses)

        first_error: Optional[Exception] = None
        fetched = 0
        for outcome in outcomes:
            if outcome.ok:
                fetched += 1
                packages.append(ResolvedPackage.from_entry(outcome.entry, outcome.sha256))
                continue
            if not options.keep_going:
                if first_error is None:
                    first_error = outcome.error
                continue
            logger.warning("Skipping %s: %s", outcome.entry.import_path, outcome.error)
            failures.append((outcome.entry.import_path, outcome.error))

        if first_error is not None:
            raise first_error

        packages.sort(key=lambda pkg: pkg.import_path)
        failures.sort(key=lambda failure: failure[0])
        return ResolutionReport(
            packages=tuple(packages),
            failures=tuple(failures),
            cache_hits=cache_hits,
            fetched=fetched,
        )
