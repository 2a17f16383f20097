"""Tests for the resolution pipeline."""

import random
import threading
import time

import pytest

from constants import Constants
from errors import BadHashError, FetchError, MalformedVersionError, RepositoryNotFoundError
from versioning.models import (
    CachedPackage,
    FetchOptions,
    ModuleDeclaration,
    ProgressKind,
    ReplaceTarget,
    ResolveOptions,
)
from versioning.service import ResolutionService


def lookup(import_path):
    """Three-segment repository roots on a fake host."""
    parts = import_path.split("/")
    if parts[0] != "example.com" or len(parts) < 3:
        raise RepositoryNotFoundError(import_path)
    root = "/".join(parts[:3])
    return f"https://{root}", root


class FakeFetcher:
    """Deterministic hashes with optional random latency and failures."""

    def __init__(self, jitter=False, bad=(), broken=()):
        self.jitter = jitter
        self.bad = set(bad)
        self.broken = set(broken)
        self.calls = []
        self._lock = threading.Lock()

    def __call__(self, url, revision, options):
        with self._lock:
            self.calls.append((url, revision))
        if self.jitter:
            time.sleep(random.uniform(0, 0.01))
        if url in self.bad:
            return Constants.EMPTY_SHA256
        if url in self.broken:
            raise FetchError("fetch failed", url=url, revision=revision)
        return f"sha-{url.rsplit('/', 1)[-1]}-{revision}"


DECLS = [
    ModuleDeclaration("example.com/me/app", "", main=True),
    ModuleDeclaration("example.com/zed/zz", "v1.0.0"),
    ModuleDeclaration("example.com/alpha/aa", "v0.0.0-20210101000000-abcdef123456"),
    ModuleDeclaration("example.com/mid/mm", "v2.3.4+incompatible"),
    ModuleDeclaration("example.com/mid/nested/sub", "v1.2.3"),
]


class TestResolve:
    """End-to-end resolution with fakes."""

    def test_main_module_skipped_and_sorted(self):
        report = ResolutionService(lookup, FakeFetcher()).resolve(DECLS)
        paths = [p.import_path for p in report.packages]
        assert paths == sorted(paths)
        assert "example.com/me/app" not in paths
        assert len(paths) == 4

    def test_revisions_normalized(self):
        report = ResolutionService(lookup, FakeFetcher()).resolve(DECLS)
        by_path = {p.import_path: p for p in report.packages}
        assert by_path["example.com/alpha/aa"].revision == "abcdef123456"
        assert by_path["example.com/mid/mm"].revision == "v2.3.4"
        nested = by_path["example.com/mid/nested/sub"]
        assert nested.revision == "sub/v1.2.3"
        assert nested.subdir == "sub"
        assert nested.url == "https://example.com/mid/nested"

    def test_order_independent_of_completion(self):
        results = set()
        for _ in range(5):
            report = ResolutionService(lookup, FakeFetcher(jitter=True)).resolve(
                DECLS, options=ResolveOptions(jobs=4)
            )
            results.add(tuple(p.import_path for p in report.packages))
        assert len(results) == 1

    def test_jobs_one_matches_jobs_twenty(self):
        one = ResolutionService(lookup, FakeFetcher(jitter=True)).resolve(DECLS, options=ResolveOptions(jobs=1))
        twenty = ResolutionService(lookup, FakeFetcher(jitter=True)).resolve(DECLS, options=ResolveOptions(jobs=20))
        assert one.packages == twenty.packages

    def test_duplicate_path_last_wins(self):
        decls = [
            ModuleDeclaration("example.com/a/b", "v1.0.0"),
            ModuleDeclaration("example.com/a/b", "v1.1.0"),
        ]
        report = ResolutionService(lookup, FakeFetcher()).resolve(decls)
        assert [p.revision for p in report.packages] == ["v1.1.0"]

    def test_fetch_options_fixed_per_run(self):
        seen = []

        def fetcher(url, revision, options):
            seen.append(options)
            return "h"

        options = ResolveOptions(fetch_options=FetchOptions(fetch_submodules=True))
        ResolutionService(lookup, fetcher).resolve(DECLS, options=options)
        assert seen and all(o.fetch_submodules for o in seen)

    def test_progress_events(self):
        events = []
        lock = threading.Lock()

        def on_event(event):
            with lock:
                events.append(event)

        ResolutionService(lookup, FakeFetcher(), on_event=on_event).resolve(DECLS)
        processing = [e.import_path for e in events if e.kind is ProgressKind.PROCESSING]
        assert processing == [d.path for d in DECLS if not d.main]
        assert sum(1 for e in events if e.kind is ProgressKind.FETCH_FINISHED) == 4


class TestCache:
    """Memoization against the prior manifest."""

    def _cached(self, revision="v1.0.0", url="https://example.com/zed/zz"):
        return [CachedPackage("example.com/zed/zz", url, revision, "cached-hash")]

    def test_cache_hit_skips_fetch(self):
        fetcher = FakeFetcher()
        report = ResolutionService(lookup, fetcher).resolve(
            [ModuleDeclaration("example.com/zed/zz", "v1.0.0")], self._cached()
        )
        assert fetcher.calls == []
        assert report.packages[0].sha256 == "cached-hash"
        assert report.packages[0].from_cache
        assert report.cache_hits == 1 and report.fetched == 0

    def test_changed_revision_forces_fetch(self):
        fetcher = FakeFetcher()
        report = ResolutionService(lookup, fetcher).resolve(
            [ModuleDeclaration("example.com/zed/zz", "v1.0.1")], self._cached()
        )
        assert fetcher.calls == [("https://example.com/zed/zz", "v1.0.1")]
        assert report.packages[0].sha256 != "cached-hash"

    def test_changed_url_forces_fetch(self):
        fetcher = FakeFetcher()
        ResolutionService(lookup, fetcher).resolve(
            [ModuleDeclaration("example.com/zed/zz", "v1.0.0")],
            self._cached(url="https://old.example.com/zz"),
        )
        assert len(fetcher.calls) == 1

    def test_second_run_is_idempotent(self):
        first = ResolutionService(lookup, FakeFetcher()).resolve(DECLS)
        cached = [
            CachedPackage(p.import_path, p.url, p.revision, p.sha256, p.subdir)
            for p in first.packages
        ]
        fetcher = FakeFetcher()
        second = ResolutionService(lookup, fetcher).resolve(DECLS, cached)
        assert fetcher.calls == []
        assert [(p.import_path, p.sha256) for p in second.packages] == [
            (p.import_path, p.sha256) for p in first.packages
        ]


class TestErrorPolicy:
    """Fail-fast versus keep-going."""

    def test_bad_hash_fails_fast(self):
        fetcher = FakeFetcher(bad={"https://example.com/zed/zz"})
        with pytest.raises(BadHashError):
            ResolutionService(lookup, fetcher).resolve(DECLS)
        # every submitted fetch still ran to completion
        assert len(fetcher.calls) == 4

    def test_bad_hash_keep_going(self):
        fetcher = FakeFetcher(bad={"https://example.com/zed/zz"})
        report = ResolutionService(lookup, fetcher).resolve(DECLS, options=ResolveOptions(keep_going=True))
        paths = [p.import_path for p in report.packages]
        assert "example.com/zed/zz" not in paths
        assert len(paths) == 3
        assert [f[0] for f in report.failures] == ["example.com/zed/zz"]
        assert isinstance(report.failures[0][1], BadHashError)

    def test_fetch_error_fails_fast(self):
        fetcher = FakeFetcher(broken={"https://example.com/alpha/aa"})
        with pytest.raises(FetchError):
            ResolutionService(lookup, fetcher).resolve(DECLS)

    def test_fetch_error_keep_going(self):
        fetcher = FakeFetcher(broken={"https://example.com/alpha/aa", "https://example.com/mid/mm"})
        report = ResolutionService(lookup, fetcher).resolve(DECLS, options=ResolveOptions(keep_going=True))
        assert [f[0] for f in report.failures] == ["example.com/alpha/aa", "example.com/mid/mm"]
        assert len(report.packages) == 2

    def test_malformed_version_always_fatal(self):
        decls = [ModuleDeclaration("example.com/a/b", "v1.2.3-20210101000000-abcdef123456")]
        fetcher = FakeFetcher()
        with pytest.raises(MalformedVersionError):
            ResolutionService(lookup, fetcher).resolve(decls, options=ResolveOptions(keep_going=True))
        assert fetcher.calls == []

    def test_malformed_version_fatal_even_if_unresolvable(self):
        decls = [ModuleDeclaration("nowhere.org/x", "v0.0.0-20210101000000-zz_")]
        with pytest.raises(MalformedVersionError):
            ResolutionService(lookup, FakeFetcher()).resolve(
                decls, options=ResolveOptions(skip_unresolvable=True)
            )

    def test_unresolvable_repository_fatal(self):
        decls = [ModuleDeclaration("nowhere.org/x", "v1.0.0")]
        with pytest.raises(RepositoryNotFoundError):
            ResolutionService(lookup, FakeFetcher()).resolve(decls, options=ResolveOptions(keep_going=True))

    def test_unresolvable_repository_skipped_when_allowed(self):
        decls = [
            ModuleDeclaration("nowhere.org/x", "v1.0.0"),
            ModuleDeclaration("example.com/a/b", "v1.0.0"),
        ]
        report = ResolutionService(lookup, FakeFetcher()).resolve(
            decls, options=ResolveOptions(skip_unresolvable=True)
        )
        assert [p.import_path for p in report.packages] == ["example.com/a/b"]
        assert report.failures[0][0] == "nowhere.org/x"


class TestReplacements:
    """Replace directives change what is fetched, not the displayed path."""

    def test_replaced_module_fetches_target(self):
        decls = [ModuleDeclaration(
            "example.com/orig/lib", "v1.0.0",
            replace=ReplaceTarget("example.com/fork/lib", "v1.0.1-0.20200101000000-0123456789ab"),
        )]
        fetcher = FakeFetcher()
        report = ResolutionService(lookup, fetcher).resolve(decls)
        pkg = report.packages[0]
        assert pkg.import_path == "example.com/orig/lib"
        assert pkg.url == "https://example.com/fork/lib"
        assert pkg.revision == "0123456789ab"

    def test_local_replacement_skipped(self):
        decls = [ModuleDeclaration("example.com/orig/lib", "v1.0.0", replace=ReplaceTarget("../lib"))]
        fetcher = FakeFetcher()
        report = ResolutionService(lookup, fetcher).resolve(decls)
        assert report.packages == ()
        assert fetcher.calls == []

    def test_rewrite_keeps_import_path(self):
        decls = [ModuleDeclaration("corp.internal/team/svc", "v1.0.0")]
        options = ResolveOptions(rewrites={"corp.internal": "example.com"})
        report = ResolutionService(lookup, FakeFetcher()).resolve(decls, options=options)
        pkg = report.packages[0]
        assert pkg.import_path == "corp.internal/team/svc"
        assert pkg.url == "https://example.com/team/svc"
