"""Reading and writing the ``deps.nix`` manifest.

The manifest is a Nix list of attribute sets::

    [
      {
        goPackagePath = "github.com/pkg/errors";
        fetch = {
          type = "git";
          url = "https://github.com/pkg/errors";
          rev = "v0.9.1";
          sha256 = "1761pybhc2kqr6v5fm8faj08x9bql8427yqg6vnfv6nhrasx1mwq";
        };
      }
    ]

``moduleDir`` is added at the package level for nested modules. The reader
understands exactly what the writer produces (plus comments and arbitrary
whitespace) and feeds the next run's hash cache.
"""
from __future__ import annotations

import logging
import os
import re
import tempfile
from typing import Dict, Iterable, List

from constants import Constants
from errors import ManifestError
from versioning.models import CachedPackage, ResolvedPackage

logger = logging.getLogger(__name__)

_ASSIGN_RE = re.compile(r'([A-Za-z_][A-Za-z0-9_]*)\s*=\s*"((?:[^"\\]|\\.)*)"\s*;')
_COMMENT_RE = re.compile(r'^\s*#[^\n]*', re.MULTILINE)
_UNESCAPE_RE = re.compile(r'\\(.)', re.DOTALL)
_REQUIRED = ("url", "rev", "sha256")

_PACKAGE_TEMPLATE = """  {{
    goPackagePath = "{path}";
    fetch = {{
      type = "git";
      url = "{url}";
      rev = "{rev}";
      sha256 = "{sha256}";
    }};{module_dir}
  }}"""


def nix_escape(value: str) -> str:
    """Escape a value for use inside a double-quoted Nix string."""
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("${", "\\${")


def nix_unescape(value: str) -> str:
    """Reverse nix_escape (and Nix's \\n, \\t, \\r escapes)."""
    specials = {"n": "\n", "t": "\t", "r": "\r"}
    return _UNESCAPE_RE.sub(lambda m: specials.get(m.group(1), m.group(1)), value)


def parse_manifest(text: str) -> List[CachedPackage]:
    """Parse manifest text into CachedPackage entries.

    Raises:
        ManifestError: if the text is not a list of package attribute sets.
    """
    body = _COMMENT_RE.sub("", text).strip()
    if not body:
        return []
    if not (body.startswith("[") and body.endswith("]")):
        raise ManifestError("manifest is not a Nix list")

    records: List[Dict[str, str]] = []
    for match in _ASSIGN_RE.finditer(body):
        key, value = match.group(1), nix_unescape(match.group(2))
        if key == "goPackagePath":
            records.append({"goPackagePath": value})
            continue
        if not records:
            raise ManifestError(f"attribute {key} appears before any goPackagePath")
        records[-1][key] = value

    if not records and _ASSIGN_RE.sub("", body[1:-1]).strip():
        raise ManifestError("manifest list contains no package entries")

    packages = []
    for record in records:
        missing = [k for k in _REQUIRED if not record.get(k)]
        if missing:
            raise ManifestError(
                f"entry {record['goPackagePath']} is missing {', '.join(missing)}"
            )
        packages.append(CachedPackage(
            import_path=record["goPackagePath"],
            url=record["url"],
            revision=record["rev"],
            sha256=record["sha256"],
            subdir=record.get("moduleDir", ""),
        ))
    return packages


def read_manifest(path: str) -> List[CachedPackage]:
    """Read a manifest file; a missing or empty file yields an empty list.

    Raises:
        ManifestError: if the file exists but cannot be read or parsed.
    """
    try:
        with open(path, encoding="utf-8") as fh:
            text = fh.read()
    except FileNotFoundError:
        logger.debug("No previous manifest at %s", path)
        return []
    except OSError as e:
        raise ManifestError(f"could not read {path}: {e}") from e
    try:
        return parse_manifest(text)
    except ManifestError as e:
        raise ManifestError(f"{path}: {e}") from e


def render_manifest(packages: Iterable[ResolvedPackage]) -> str:
    """Render packages in the given order as manifest text."""
    lines = [Constants.MANIFEST_HEADER, "["]
    for pkg in packages:
        module_dir = ""
        if pkg.subdir:
            module_dir = f'\n    moduleDir = "{nix_escape(pkg.subdir)}";'
        lines.append(_PACKAGE_TEMPLATE.format(
            path=nix_escape(pkg.import_path),
            url=nix_escape(pkg.url),
            rev=nix_escape(pkg.revision),
            sha256=nix_escape(pkg.sha256),
            module_dir=module_dir,
        ))
    lines.append("]")
    return "\n".join(lines) + "\n"


def write_manifest(path: str, packages: Iterable[ResolvedPackage]) -> None:
    """Atomically write packages to path.

    The text is written to a temporary file in the target directory and moved
    into place, so the previous manifest survives any failure.

    Raises:
        ManifestError: on any filesystem error.
    """
    text = render_manifest(packages)
    directory = os.path.dirname(os.path.abspath(path))
    tmp_path = None
    try:
        with tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", dir=directory, prefix=".deps-", suffix=".nix.tmp", delete=False
        ) as tmp:
            tmp_path = tmp.name
            tmp.write(text)
        os.chmod(tmp_path, 0o644)
        os.replace(tmp_path, path)
    except OSError as e:
        if tmp_path and os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise ManifestError(f"could not write {path}: {e}") from e
    logger.info("Wrote %s", path)
