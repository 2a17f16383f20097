"""Bounded worker pool computing content hashes for cache misses.

Workers pull entries from a shared job queue and push one FetchOutcome per
entry onto a shared result queue. The caller-facing ``run`` drains exactly
as many outcomes as it submitted, so every worker finishes and no result is
lost regardless of completion order.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import List, Optional, Sequence

from constants import Constants
from errors import BadHashError, FetchError, PrefetchError
from versioning.models import (
    FetchOptions,
    FetchOutcome,
    ProgressCallback,
    ProgressEvent,
    ProgressKind,
    ResolvedEntry,
)

from .fetcher import ContentHashFetcher

logger = logging.getLogger(__name__)

_STOP = object()


class PrefetchWorkerPool:
    """Fan out fetches to at most ``jobs`` threads and fan the outcomes back in."""

    def __init__(
        self,
        fetcher: ContentHashFetcher,
        jobs: int = Constants.DEFAULT_JOBS,
        options: Optional[FetchOptions] = None,
        on_event: Optional[ProgressCallback] = None,
        empty_sha256: str = Constants.EMPTY_SHA256,
    ):
        if jobs < 1:
            raise ValueError(f"jobs must be at least 1, got {jobs}")
        self._fetcher = fetcher
        self._jobs = jobs
        self._options = options or FetchOptions()
        self._on_event = on_event
        self._empty_sha256 = empty_sha256

    def _emit(self, kind: ProgressKind, entry: ResolvedEntry, detail: Optional[str] = None) -> None:
        if self._on_event is not None:
            self._on_event(ProgressEvent(kind, entry.import_path, detail))

    def fetch_one(self, entry: ResolvedEntry) -> FetchOutcome:
        """Fetch a single entry, converting every failure into an outcome."""
        self._emit(ProgressKind.FETCH_STARTED, entry, entry.url)
        try:
            sha256 = self._fetcher(entry.url, entry.revision, self._options)
            if sha256 == self._empty_sha256:
                raise BadHashError(entry.url, entry.revision, sha256)
        except PrefetchError as exc:
            self._emit(ProgressKind.FETCH_FAILED, entry, str(exc))
            return FetchOutcome(entry=entry, error=exc)
        self._emit(ProgressKind.FETCH_FINISHED, entry, sha256)
        return FetchOutcome(entry=entry, sha256=sha256)

    def _worker(self, jobs: "queue.Queue", results: "queue.Queue") -> None:
        while True:
            entry = jobs.get()
            if entry is _STOP:
                return
            try:
                outcome = self.fetch_one(entry)
            except Exception as exc:  # pylint: disable=broad-exception-caught
                err = FetchError(
                    f"unexpected error fetching {entry.url} at {entry.revision}: {exc}",
                    url=entry.url,
                    revision=entry.revision,
                )
                err.__cause__ = exc
                outcome = FetchOutcome(entry=entry, error=err)
            results.put(outcome)

    def run(self, entries: Sequence[ResolvedEntry]) -> List[FetchOutcome]:
        """Fetch every entry and return the outcomes in completion order."""
        if not entries:
            return []

        jobs: "queue.Queue" = queue.Queue()
        results: "queue.Queue" = queue.Queue()
        worker_count = min(self._jobs, len(entries))
        logger.debug("Starting %d prefetch workers for %d entries", worker_count, len(entries))

        for entry in entries:
            jobs.put(entry)
        for _ in range(worker_count):
            jobs.put(_STOP)

        workers = [
            threading.Thread(
                target=self._worker,
                args=(jobs, results),
                name=f"prefetch-{i}",
                daemon=True,
            )
            for i in range(worker_count)
        ]
        for worker in workers:
            worker.start()

        outcomes = [results.get() for _ in range(len(entries))]
        for worker in workers:
            worker.join()
        return outcomes
