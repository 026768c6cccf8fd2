"""Mirror the build output to a server with rsync over SSH."""

from __future__ import annotations

import shlex
from pathlib import Path
from typing import Any

from site_publisher.config_validation import is_blank
from site_publisher.deploy.base import DeployOptions, DeployOutcome, DeploymentTarget
from site_publisher.deploy.process import tail_lines
from site_publisher.deploy.settings import RsyncSettings

SSH_CONNECTION_FAILED = 255
OUTPUT_TAIL_LINES = 20


class RsyncTarget(DeploymentTarget):
    """Copies the artifact directory to ``user@host:path`` with ``rsync -az``."""

    target_id = "rsync"
    name = "Rsync/SSH"
    icon = "server"
    settings_model = RsyncSettings

    @property
    def description(self) -> str:
        text = "Deploy via rsync over SSH to any server"
        if self.settings.delete_extraneous:
            text += " (deletes remote files that are not in the build)"
        return text

    @property
    def settings(self) -> RsyncSettings:
        return self._settings  # type: ignore[return-value]

    def _required_problems(self, settings: RsyncSettings) -> list[str]:
        labels = {"host": "Host", "user": "Username", "path": "Remote path"}
        return [
            f"{label} is required"
            for key, label in labels.items()
            if is_blank(getattr(settings, key))
        ]

    def _extra_problems(self, settings: RsyncSettings) -> list[str]:
        if settings.key_path and not Path(settings.key_path).expanduser().is_file():
            return [f"SSH key not found: {settings.key_path}"]
        return []

    def _deploy(self, source_dir: Path, options: DeployOptions) -> DeployOutcome:
        if self.runner.which("rsync") is None or self.runner.which("ssh") is None:
            return DeployOutcome.failure("rsync is not installed")
        settings = self.settings
        remote_path = settings.path.rstrip("/") + "/"
        args = ["rsync", "-az"]
        if settings.delete_extraneous:
            args.append("--delete")
        args.extend(["-e", shlex.join(["ssh", *self._ssh_options(), "-o", "BatchMode=yes"])])
        args.extend(f"--exclude={pattern}" for pattern in settings.exclude)
        args.append(str(source_dir).rstrip("/") + "/")
        args.append(f"{settings.user}@{settings.host}:{remote_path}")

        result = self.runner.run(args, timeout=self.timeouts.command, cancel=options.cancel)
        output = tail_lines(result.output, OUTPUT_TAIL_LINES)
        if result.cancelled:
            return DeployOutcome.failure("Rsync deploy cancelled", output)
        if not result.ok:
            return DeployOutcome.failure("Rsync failed", output)
        return DeployOutcome.success(
            "Deployed via rsync",
            {
                "host": settings.host,
                "path": remote_path,
                "delete_extraneous": settings.delete_extraneous,
                "output": output,
            },
        )

    def _status(self) -> dict[str, Any]:
        settings = self.settings
        return {
            "target": self.target_id,
            "configured": True,
            "host": settings.host,
            "path": settings.path,
            "delete_extraneous": settings.delete_extraneous,
        }

    def _test_connection(self) -> DeployOutcome:
        if not self.is_configured():
            return DeployOutcome.failure("Not configured", self._required_problems(self.settings))
        if self.runner.which("ssh") is None:
            return DeployOutcome.failure("ssh is not installed")
        settings = self.settings
        args = [
            "ssh",
            "-o",
            "ConnectTimeout=5",
            "-o",
            "BatchMode=yes",
            *self._ssh_options(),
            f"{settings.user}@{settings.host}",
            "echo",
            "OK",
        ]
        result = self.runner.run(args, timeout=self.timeouts.connect_test)
        output = tail_lines(result.output, OUTPUT_TAIL_LINES)
        if result.ok and "OK" in result.stdout:
            return DeployOutcome.success(f"Connected to {settings.host}")
        if result.exit_code == SSH_CONNECTION_FAILED or result.timed_out:
            return DeployOutcome.failure(
                "SSH connection failed (authentication or network)", output
            )
        return DeployOutcome.failure("Host reachable but remote command failed", output)

    def _ssh_options(self) -> list[str]:
        settings = self.settings
        options = ["-p", str(settings.port)]
        if settings.key_path:
            options.extend(["-i", str(Path(settings.key_path).expanduser())])
        return options
