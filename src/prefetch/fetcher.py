"""Content-hash fetcher backed by nix-prefetch-git."""

from __future__ import annotations

import json
import logging
import subprocess
from typing import Callable, List

from constants import Constants
from errors import FetchError
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer
from versioning.models import FetchOptions

logger = logging.getLogger(__name__)

# (repo_url, revision, options) -> sha256
ContentHashFetcher = Callable[[str, str, FetchOptions], str]


class NixPrefetchGit:
    """Compute a repository's Nix sha256 at a revision by shelling out."""

    def __init__(self, command: str = Constants.PREFETCH_COMMAND):
        self.command = command

    def build_args(self, url: str, revision: str, options: FetchOptions) -> List[str]:
        args = [self.command, "--quiet", "--url", url, "--rev", revision]
        if options.fetch_submodules:
            args.append("--fetch-submodules")
        if options.deep_clone:
            args.append("--deepClone")
        return args

    def __call__(self, url: str, revision: str, options: FetchOptions) -> str:
        args = self.build_args(url, revision, options)
        with Timer() as t:
            try:
                result = subprocess.run(
                    args,
                    capture_output=True,
                    text=True,
                    check=False,
                )
            except OSError as exc:
                raise FetchError(
                    f"could not run {self.command}: {exc}", url=url, revision=revision
                ) from exc

        if is_debug_enabled(logger):
            logger.debug(
                "Prefetch finished",
                extra=extra_context(
                    event="prefetch",
                    component="fetcher",
                    action="nix_prefetch_git",
                    outcome="success" if result.returncode == 0 else "failure",
                    duration_ms=t.duration_ms(),
                    target=safe_url(url),
                    revision=revision,
                ),
            )

        if result.returncode != 0:
            raise FetchError(
                f"{self.command} failed for {url} at {revision} "
                f"(exit {result.returncode}): {result.stderr.strip()}",
                url=url,
                revision=revision,
            )
        try:
            payload = json.loads(result.stdout)
        except json.JSONDecodeError as exc:
            raise FetchError(
                f"{self.command} returned invalid JSON for {url}: {exc}",
                url=url,
                revision=revision,
            ) from exc
        sha256 = payload.get("sha256") if isinstance(payload, dict) else None
        if not isinstance(sha256, str) or not sha256:
            raise FetchError(
                f"{self.command} output for {url} has no sha256", url=url, revision=revision
            )
        return sha256
