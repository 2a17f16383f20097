"""Data models for module declarations, resolution and prefetch results."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Optional, Tuple


@dataclass(frozen=True)
class ReplaceTarget:
    """Right-hand side of a replace directive."""
    path: str
    version: str = ""

    @property
    def is_local(self) -> bool:
        """Local filesystem replacements carry no version."""
        return not self.version


@dataclass(frozen=True)
class ModuleDeclaration:
    """One module as reported by the module lister."""
    path: str
    version: str
    replace: Optional[ReplaceTarget] = None
    main: bool = False


@dataclass(frozen=True)
class RepoLocation:
    """Where a module's source lives."""
    url: str
    root: str
    subdir: str = ""


@dataclass(frozen=True)
class ResolvedEntry:
    """A declaration after version normalization and repository resolution."""
    import_path: str
    revision: str
    url: str
    subdir: str = ""


@dataclass(frozen=True)
class CachedPackage:
    """A package entry loaded from the previous manifest."""
    import_path: str
    url: str
    revision: str
    sha256: str
    subdir: str = ""


@dataclass(frozen=True)
class ResolvedPackage:
    """Output-ready package with its content hash."""
    import_path: str
    url: str
    revision: str
    sha256: str
    subdir: str = ""
    from_cache: bool = False

    @classmethod
    def from_entry(cls, entry: ResolvedEntry, sha256: str, from_cache: bool = False) -> "ResolvedPackage":
        return cls(
            import_path=entry.import_path,
            url=entry.url,
            revision=entry.revision,
            sha256=sha256,
            subdir=entry.subdir,
            from_cache=from_cache,
        )


@dataclass(frozen=True)
class FetchOptions:
    """Fetch flags fixed for a whole run."""
    fetch_submodules: bool = False
    deep_clone: bool = False


@dataclass(frozen=True)
class FetchOutcome:
    """Result of a single prefetch: either sha256 or error is set."""
    entry: ResolvedEntry
    sha256: Optional[str] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ProgressKind(Enum):
    """Kinds of progress events emitted during resolution."""
    PROCESSING = "processing"
    CACHE_HIT = "cache_hit"
    FETCH_STARTED = "fetch_started"
    FETCH_FINISHED = "fetch_finished"
    FETCH_FAILED = "fetch_failed"


@dataclass(frozen=True)
class ProgressEvent:
    """Structured progress notification a caller may log."""
    kind: ProgressKind
    import_path: str
    detail: Optional[str] = None


ProgressCallback = Callable[[ProgressEvent], None]


@dataclass(frozen=True)
class ResolveOptions:
    """Caller-controlled knobs for a resolution run."""
    jobs: int = 20
    keep_going: bool = False
    rewrites: Dict[str, str] = field(default_factory=dict)
    fetch_options: FetchOptions = field(default_factory=FetchOptions)
    skip_unresolvable: bool = False


@dataclass(frozen=True)
class ResolutionReport:
    """Resolution outcome: ordered packages plus entries dropped under keep-going."""
    packages: Tuple[ResolvedPackage, ...]
    failures: Tuple[Tuple[str, Exception], ...] = ()
    cache_hits: int = 0
    fetched: int = 0
