"""Content-hash prefetching.

This package memoizes hashes against the previous manifest and computes the
missing ones concurrently with nix-prefetch-git.
"""

from .cache import FetchCache
from .fetcher import ContentHashFetcher, NixPrefetchGit
from .pool import PrefetchWorkerPool

__all__ = [
    "FetchCache",
    "ContentHashFetcher",
    "NixPrefetchGit",
    "PrefetchWorkerPool",
]
