"""Site builder protocol and the default Hugo + Pagefind implementation."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from site_publisher.deploy.base import DeployOutcome
from site_publisher.deploy.process import CommandRunner, bound_text
from site_publisher.deploy.runtime import CancelToken, Timeouts
from site_publisher.logging_utils import get_logger

LOGGER = get_logger()

DEFAULT_BUILD_COMMAND = ("hugo", "--minify")


class SiteBuilder(Protocol):
    """Turns site sources into the artifact directory."""

    def build(
        self,
        source_root: Path,
        *,
        base_url: str | None = None,
        cancel: CancelToken | None = None,
    ) -> DeployOutcome:
        """Generate the site; success data carries ``public_dir`` and ``output``."""

    def build_search_index(
        self,
        source_root: Path,
        public_dir: Path,
        *,
        cancel: CancelToken | None = None,
    ) -> DeployOutcome:
        """Index the generated site for client-side search."""


class HugoSiteBuilder:
    """Runs ``hugo`` for the site and ``pagefind`` for the search index."""

    def __init__(
        self,
        *,
        runner: CommandRunner | None = None,
        timeouts: Timeouts | None = None,
        command: Sequence[str] = DEFAULT_BUILD_COMMAND,
        public_dir_name: str = "public",
    ) -> None:
        if not command:
            raise ValueError("Build command must not be empty.")
        self.runner = runner or CommandRunner()
        self.timeouts = timeouts or Timeouts()
        self.command = tuple(command)
        self.public_dir_name = public_dir_name

    def build(
        self,
        source_root: Path,
        *,
        base_url: str | None = None,
        cancel: CancelToken | None = None,
    ) -> DeployOutcome:
        args = list(self.command)
        if base_url is not None:
            args.extend(["--baseURL", base_url])
        if self.runner.which(args[0]) is None:
            return DeployOutcome.failure(f"{args[0]} is not installed")
        LOGGER.info("Site build started", extra={"command": " ".join(args)})
        result = self.runner.run(
            args, cwd=source_root, timeout=self.timeouts.command, cancel=cancel
        )
        output = bound_text(result.output)
        if result.cancelled:
            return DeployOutcome.failure("Site build cancelled", output)
        if not result.ok:
            return DeployOutcome.failure("Hugo build failed", output, data={"output": output})
        return DeployOutcome.success(
            "Site built successfully",
            {"public_dir": str(source_root / self.public_dir_name), "output": output},
        )

    def build_search_index(
        self,
        source_root: Path,
        public_dir: Path,
        *,
        cancel: CancelToken | None = None,
    ) -> DeployOutcome:
        if self.runner.which("pagefind") is None:
            return DeployOutcome.failure("pagefind is not installed")
        result = self.runner.run(
            ["pagefind", "--site", str(public_dir)],
            cwd=source_root,
            timeout=self.timeouts.command,
            cancel=cancel,
        )
        output = bound_text(result.output)
        if not result.ok:
            return DeployOutcome.failure(
                "Search index build failed", output, data={"output": output}
            )
        return DeployOutcome.success("Search index built", {"output": output})
