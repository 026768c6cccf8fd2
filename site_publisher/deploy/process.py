"""Subprocess execution with deadlines and cancellation."""

from __future__ import annotations

import os
import shutil
import subprocess  # nosec B404
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from site_publisher.deploy.runtime import CancelToken

TIMEOUT_EXIT_CODE = 124
NOT_FOUND_EXIT_CODE = 127
CANCELLED_EXIT_CODE = 130

_POLL_SECONDS = 0.2
MAX_CAPTURED_CHARS = 64_000


@dataclass(frozen=True)
class CommandResult:
    """Captured outcome of one external command."""

    args: tuple[str, ...]
    exit_code: int
    stdout: str
    stderr: str
    duration_seconds: float = 0.0
    timed_out: bool = False
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        """Return whether the command exited cleanly."""
        return self.exit_code == 0 and not self.timed_out and not self.cancelled

    @property
    def output(self) -> str:
        """Return stdout and stderr joined, stripped."""
        parts = [part.strip() for part in (self.stdout, self.stderr) if part and part.strip()]
        return "\n".join(parts)

    def lines(self) -> list[str]:
        """Return combined output split into lines."""
        return self.output.splitlines()


class CommandRunner:
    """Runs external tools without a shell, bounded by a timeout and a cancel token."""

    def which(self, executable: str) -> str | None:
        """Return the resolved executable path, or None when not on PATH."""
        return shutil.which(executable)

    def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float,
        cancel: CancelToken | None = None,
    ) -> CommandResult:
        """Execute ``args`` and capture output.

        Missing executables, timeouts and cancellation are reported through the
        result (exit codes 127, 124 and 130) rather than raised.
        """
        command = tuple(str(part) for part in args)
        start = time.monotonic()
        executable = self.which(command[0])
        if executable is None:
            return CommandResult(
                args=command,
                exit_code=NOT_FOUND_EXIT_CODE,
                stdout="",
                stderr=f"{command[0]}: command not found",
            )
        child_env = None
        if env:
            child_env = {**os.environ, **env}
        try:
            process = subprocess.Popen(  # noqa: S603  # nosec B603
                [executable, *command[1:]],
                cwd=str(cwd) if cwd is not None else None,
                env=child_env,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                stdin=subprocess.DEVNULL,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as exc:
            return CommandResult(
                args=command,
                exit_code=NOT_FOUND_EXIT_CODE,
                stdout="",
                stderr=str(exc),
            )

        deadline = start + timeout
        while True:
            try:
                stdout, stderr = process.communicate(timeout=_POLL_SECONDS)
                break
            except subprocess.TimeoutExpired:
                cancelled = cancel is not None and cancel.cancelled
                if not cancelled and time.monotonic() < deadline:
                    continue
                process.kill()
                stdout, stderr = process.communicate()
                return CommandResult(
                    args=command,
                    exit_code=CANCELLED_EXIT_CODE if cancelled else TIMEOUT_EXIT_CODE,
                    stdout=stdout or "",
                    stderr=(stderr or "")
                    + ("\ncancelled" if cancelled else f"\ntimed out after {timeout:g}s"),
                    duration_seconds=time.monotonic() - start,
                    timed_out=not cancelled,
                    cancelled=cancelled,
                )
        return CommandResult(
            args=command,
            exit_code=process.returncode,
            stdout=stdout or "",
            stderr=stderr or "",
            duration_seconds=time.monotonic() - start,
        )


def tail_lines(text: str, limit: int = 20) -> str:
    """Return the last ``limit`` lines of ``text``."""
    lines = text.splitlines()
    return "\n".join(lines[-limit:])


def bound_text(text: str, limit: int = MAX_CAPTURED_CHARS) -> str:
    """Keep the tail of ``text`` when it exceeds ``limit`` characters."""
    if len(text) <= limit:
        return text
    return "...(truncated)\n" + text[-limit:]
