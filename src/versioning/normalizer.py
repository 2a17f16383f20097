"""Version string normalization into VCS revisions.

Go reports module versions as semantic version tags, pseudo-versions
(``v0.0.0-20210101000000-abcdef123456``) or tags marked ``+incompatible``.
A Git fetch needs a concrete revision instead: the commit fragment of a
pseudo-version, the bare tag of an incompatible version, or the
subdirectory-prefixed tag used by nested modules (``sub/v1.2.3``).
"""

import re

from errors import MalformedVersionError

# Go's pseudo-version shapes:
#   vX.0.0-yyyymmddhhmmss-abcdefabcdef
#   vX.Y.Z-pre.0.yyyymmddhhmmss-abcdefabcdef
#   vX.Y.(Z+1)-0.yyyymmddhhmmss-abcdefabcdef
_BUILD_SUFFIX = r'(?:\+[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?'
PSEUDO_VERSION_RE = re.compile(
    r'^v\d+\.(?:0\.0-|\d+\.\d+-(?:[^+]*\.)?0\.)\d{14}-([A-Za-z0-9]+)' + _BUILD_SUFFIX + r'$'
)
# Anything carrying a timestamp segment followed by an identifier claims to be one.
PSEUDO_CLAIM_RE = re.compile(r'[-.]\d{14}-[^-/+]*(?:\+\S*)?$')
INCOMPATIBLE_RE = re.compile(r'^(v\d+\.\d+\.\d+(?:-[0-9A-Za-z.-]+)?)\+incompatible$')
SEMVER_TAG_RE = re.compile(r'^v\d+\.\d+\.\d+(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?$')
MAJOR_VERSION_RE = re.compile(r'^v\d+$')


def is_pseudo_version(version: str) -> bool:
    """Return True if version is a structurally valid pseudo-version."""
    return bool(PSEUDO_VERSION_RE.match(version or ""))


def strip_major_version_suffix(subdir: str) -> str:
    """Drop a trailing ``v<N>`` segment from a slash-separated subdirectory."""
    parts = [p for p in (subdir or "").split("/") if p]
    if parts and MAJOR_VERSION_RE.match(parts[-1]):
        parts = parts[:-1]
    return "/".join(parts)


def normalize_version(version: str, subdir: str = "") -> str:
    """Turn a module version specifier into a revision suitable for checkout.

    Args:
        version: Raw version as reported by the module lister.
        subdir: Module path relative to its repository root, if any.

    Returns:
        str: The revision (commit fragment or tag).

    Raises:
        MalformedVersionError: empty input, or a pseudo-version that fails
            structural validation.
    """
    if not version or not version.strip():
        raise MalformedVersionError(version or "", "empty version")
    version = version.strip()

    match = PSEUDO_VERSION_RE.match(version)
    if match:
        return match.group(1)
    if PSEUDO_CLAIM_RE.search(version):
        raise MalformedVersionError(version, "invalid pseudo-version")

    match = INCOMPATIBLE_RE.match(version)
    if match:
        return match.group(1)

    prefix = strip_major_version_suffix(subdir)
    if prefix and SEMVER_TAG_RE.match(version):
        return f"{prefix}/{version}"

    return version
