"""Exception types raised by the vgo2nix resolution pipeline."""

from __future__ import annotations

from typing import Optional


class Vgo2NixError(Exception):
    """Base class for all vgo2nix errors."""


class MalformedVersionError(Vgo2NixError, ValueError):
    """Raised when a version claims pseudo-version structure but is invalid."""

    def __init__(self, version: str, reason: Optional[str] = None):
        self.version = version
        self.reason = reason
        msg = f"malformed version specifier: {version!r}"
        if reason:
            msg = f"{msg} ({reason})"
        super().__init__(msg)


class RepositoryNotFoundError(Vgo2NixError):
    """Raised when no VCS repository can be determined for an import path."""

    def __init__(self, import_path: str, reason: Optional[str] = None):
        self.import_path = import_path
        self.reason = reason
        msg = f"no repository found for {import_path}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)


class PrefetchError(Vgo2NixError):
    """Base class for failures while computing a content hash."""

    def __init__(self, message: str, *, url: str = "", revision: str = ""):
        self.url = url
        self.revision = revision
        super().__init__(message)


class FetchError(PrefetchError):
    """Raised when the fetch process or its output fails."""


class BadHashError(PrefetchError):
    """Raised when the fetcher reports the sentinel empty-content hash."""

    def __init__(self, url: str, revision: str, sha256: str):
        self.sha256 = sha256
        super().__init__(
            f"bad sha256 {sha256} for {url} at {revision} (revision could not be resolved)",
            url=url,
            revision=revision,
        )


class ModuleListError(Vgo2NixError):
    """Raised when the module list cannot be obtained or parsed."""

    def __init__(self, message: str, stderr: str = ""):
        self.stderr = stderr
        if stderr:
            message = f"{message}:\n{stderr}"
        super().__init__(message)


class ManifestError(Vgo2NixError):
    """Raised when a manifest file cannot be read or written."""


class ConfigError(Vgo2NixError, ValueError):
    """Raised when configuration values are invalid."""
