"""Test doubles for the command runner and the site builder."""

from __future__ import annotations

import threading
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from site_publisher.deploy.base import DeployOptions, DeployOutcome, DeploymentTarget
from site_publisher.deploy.process import CANCELLED_EXIT_CODE, CommandResult, CommandRunner
from site_publisher.deploy.runtime import CancelToken

DEFAULT_TOOLS = ("git", "rsync", "ssh", "aws", "hugo", "pagefind")


@dataclass(frozen=True)
class RecordedCall:
    args: tuple[str, ...]
    cwd: Path | None
    env: Mapping[str, str] | None
    timeout: float
    cancel: CancelToken | None = None


class FakeRunner(CommandRunner):
    """Records commands and answers them from canned results keyed by argv prefix."""

    def __init__(self, available: Iterable[str] = DEFAULT_TOOLS) -> None:
        self.available = set(available)
        self.calls: list[RecordedCall] = []
        self._responses: list[tuple[tuple[str, ...], CommandResult]] = []

    def respond(
        self,
        prefix: Sequence[str],
        *,
        exit_code: int = 0,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        args = tuple(prefix)
        self._responses.append(
            (args, CommandResult(args=args, exit_code=exit_code, stdout=stdout, stderr=stderr))
        )

    def which(self, executable: str) -> str | None:
        return f"/usr/bin/{executable}" if executable in self.available else None

    def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float,
        cancel: CancelToken | None = None,
    ) -> CommandResult:
        command = tuple(str(part) for part in args)
        self.calls.append(RecordedCall(command, cwd, env, timeout, cancel))
        if cancel is not None and cancel.cancelled:
            return CommandResult(command, CANCELLED_EXIT_CODE, "", "cancelled", cancelled=True)
        matches = [
            result for prefix, result in self._responses if command[: len(prefix)] == prefix
        ]
        if matches:
            best = max(matches, key=lambda result: len(result.args))
            return CommandResult(command, best.exit_code, best.stdout, best.stderr)
        return CommandResult(command, 0, "", "")

    def commands(self, executable: str | None = None) -> list[tuple[str, ...]]:
        return [
            call.args for call in self.calls if executable is None or call.args[0] == executable
        ]


class FakeBuilder:
    """Site builder that writes a fixed page and records its calls."""

    def __init__(
        self,
        *,
        build_outcome: DeployOutcome | None = None,
        index_outcome: DeployOutcome | None = None,
        output_dir: str = "public",
    ) -> None:
        self.build_outcome = build_outcome
        self.output_dir = output_dir
        self.index_outcome = index_outcome
        self.build_calls: list[dict[str, object]] = []
        self.index_calls: list[Path] = []

    def build(
        self,
        source_root: Path,
        *,
        base_url: str | None = None,
        cancel: CancelToken | None = None,
    ) -> DeployOutcome:
        self.build_calls.append({"source_root": source_root, "base_url": base_url})
        if self.build_outcome is not None:
            return self.build_outcome
        public = source_root / self.output_dir
        public.mkdir(parents=True, exist_ok=True)
        (public / "index.html").write_text("<h1>home</h1>", encoding="utf-8")
        return DeployOutcome.success(
            "Site built successfully", {"public_dir": self.output_dir, "output": "Total 1 pages"}
        )

    def build_search_index(
        self,
        source_root: Path,
        public_dir: Path,
        *,
        cancel: CancelToken | None = None,
    ) -> DeployOutcome:
        self.index_calls.append(public_dir)
        if self.index_outcome is not None:
            return self.index_outcome
        return DeployOutcome.success("Search index built", {"output": "Indexed 1 page"})


class StubSettings(BaseModel):
    enabled: bool = False
    retries: int = 0


class StubTarget(DeploymentTarget):
    """Target returning a canned outcome; ``gate`` makes deploys block until set."""

    target_id = "stub"
    name = "Stub"
    settings_model = StubSettings

    def __init__(
        self,
        target_id: str = "stub",
        *,
        outcome: DeployOutcome | None = None,
        gate: threading.Event | None = None,
    ) -> None:
        super().__init__()
        self.target_id = target_id
        self.name = target_id.title()
        self.outcome = outcome or DeployOutcome.success(f"Deployed to {target_id}")
        self.gate = gate
        self.started = threading.Event()
        self.deployed: list[Path] = []

    @property
    def description(self) -> str:
        return "Test target"

    def _required_problems(self, settings: Any) -> list[str]:
        return [] if settings.enabled else ["Enabled is required"]

    def _deploy(self, source_dir: Path, options: DeployOptions) -> DeployOutcome:
        self.started.set()
        if self.gate is not None:
            while not self.gate.wait(0.01):
                options.raise_if_cancelled()
        self.deployed.append(source_dir)
        return self.outcome

    def _status(self) -> dict[str, Any]:
        return {"target": self.target_id, "configured": True, "state": "ready"}

    def _test_connection(self) -> DeployOutcome:
        return DeployOutcome.success(f"Connected to {self.target_id}")
