"""Deploy by committing the working copy and pushing it to trigger CI/CD."""

from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path
from typing import Any

from site_publisher.deploy.base import (
    DeployOptions,
    DeployOutcome,
    DeploymentTarget,
    SubOperationResult,
)
from site_publisher.deploy.errors import TransportError
from site_publisher.deploy.process import CommandResult, CommandRunner, bound_text
from site_publisher.deploy.runtime import CancelToken, Timeouts
from site_publisher.deploy.settings import GitSettings
from site_publisher.deploy.transport import HttpTransport, bearer
from site_publisher.logging_utils import get_logger

LOGGER = get_logger()

FALLBACK_USER_NAME = "Site Publisher"
FALLBACK_USER_EMAIL = "publisher@localhost"
GITHUB_API = "https://api.github.com"

_PORCELAIN_LINE = re.compile(r"^(.{2})\s+(.+)$")


class GitTarget(DeploymentTarget):
    """Pushes the site's working copy; CI on the remote builds and publishes."""

    target_id = "git"
    name = "Git CI/CD"
    icon = "git-branch"
    settings_model = GitSettings

    def __init__(
        self,
        repo_root: Path,
        *,
        runner: CommandRunner | None = None,
        transport: HttpTransport | None = None,
        timeouts: Timeouts | None = None,
    ) -> None:
        super().__init__(runner=runner, transport=transport, timeouts=timeouts)
        self.repo_root = Path(repo_root)

    @property
    def description(self) -> str:
        return "Deploy via Git push to trigger CI/CD pipeline (GitLab, GitHub, etc.)"

    @property
    def requires_artifact(self) -> bool:
        return False

    @property
    def settings(self) -> GitSettings:
        return self._settings  # type: ignore[return-value]

    def _required_problems(self, settings: GitSettings) -> list[str]:
        problems: list[str] = []
        if not (self.repo_root / ".git").exists():
            problems.append(f"{self.repo_root} is not a git working copy")
        if not settings.branch:
            problems.append("Branch is required")
        return problems

    def _extra_problems(self, settings: GitSettings) -> list[str]:
        problems: list[str] = []
        if settings.trigger_pipeline:
            if settings.platform == "gitlab" and not settings.gitlab.is_complete():
                problems.append("GitLab pipeline trigger needs url, project_id and trigger_token")
            elif settings.platform == "github" and not settings.github.is_complete():
                problems.append("GitHub workflow dispatch needs repo, token and workflow")
            elif settings.platform not in {"gitlab", "github"}:
                problems.append(f"Pipeline triggers are not supported for {settings.platform}")
        return problems

    def _deploy(self, source_dir: Path, options: DeployOptions) -> DeployOutcome:
        del source_dir
        settings = self.settings
        branch = options.branch or settings.branch
        remote = settings.remote
        message = options.message or self._commit_message(settings.commit_template)
        cancel = options.cancel

        self._ensure_local_identity(cancel)
        output: list[str] = []

        added = self._git(["add", "-A"], cancel=cancel)
        output.extend(added.lines())
        if not added.ok:
            return DeployOutcome.failure("Git add failed", bound_text("\n".join(output)))

        status = self._git(["status", "--porcelain"], cancel=cancel)
        if status.ok and not status.stdout.strip():
            return DeployOutcome.success("No changes to deploy", {"output": "Working tree clean"})

        committed = self._git(["commit", "-m", message], cancel=cancel)
        output.extend(committed.lines())
        if not committed.ok and "nothing to commit" not in committed.output:
            return DeployOutcome.failure("Git commit failed", bound_text("\n".join(output)))

        pushed = self._git(["push", remote, branch], cancel=cancel)
        output.extend(pushed.lines())
        if not pushed.ok:
            return DeployOutcome.failure("Git push failed", bound_text("\n".join(output)))

        data: dict[str, Any] = {
            "output": bound_text("\n".join(output)),
            "branch": branch,
            "remote": remote,
            "commit": self._last_commit(),
        }
        if settings.trigger_pipeline:
            pipeline = self._trigger_pipeline(branch)
            if pipeline is not None:
                data["pipeline"] = pipeline
        return DeployOutcome.success(f"Pushed to {branch}", data)

    def _status(self) -> dict[str, Any]:
        remote = self.settings.remote
        branch = self._git(["branch", "--show-current"], timeout=self.timeouts.probe)
        url = self._git(["remote", "get-url", remote], timeout=self.timeouts.probe)
        changes = self._git(["status", "--porcelain"], timeout=self.timeouts.probe)
        pending: list[dict[str, str]] = []
        for line in changes.stdout.splitlines():
            match = _PORCELAIN_LINE.match(line)
            if match:
                pending.append({"status": match.group(1).strip(), "file": match.group(2)})
        return {
            "target": self.target_id,
            "configured": True,
            "branch": branch.stdout.strip() or None,
            "remote_url": url.stdout.strip() if url.ok else None,
            "last_commit": self._last_commit(),
            "pending_changes": pending,
        }

    def _test_connection(self) -> DeployOutcome:
        if not self.is_configured():
            return DeployOutcome.failure(
                "Git is not configured", self._required_problems(self.settings)
            )
        result = self._git(
            ["ls-remote", self.settings.remote, "HEAD"], timeout=self.timeouts.connect_test
        )
        if result.ok:
            return DeployOutcome.success("Git remote connection successful")
        return DeployOutcome.failure("Cannot connect to Git remote", bound_text(result.output))

    def _git(
        self,
        args: list[str],
        *,
        timeout: float | None = None,
        cancel: CancelToken | None = None,
    ) -> CommandResult:
        return self.runner.run(
            ["git", *args],
            cwd=self.repo_root,
            timeout=timeout or self.timeouts.command,
            cancel=cancel,
        )

    def _ensure_local_identity(self, cancel: CancelToken | None) -> None:
        """Set a fallback commit identity when the repository has none."""
        name = self._git(["config", "user.name"], timeout=self.timeouts.probe, cancel=cancel)
        if name.stdout.strip():
            return
        self._git(["config", "user.name", FALLBACK_USER_NAME], timeout=self.timeouts.probe)
        self._git(["config", "user.email", FALLBACK_USER_EMAIL], timeout=self.timeouts.probe)

    def _commit_message(self, template: str) -> str:
        now = datetime.now()
        return (
            template.replace("{date}", now.strftime("%Y-%m-%d"))
            .replace("{time}", now.strftime("%H:%M"))
            .replace("{action}", "update")
        )

    def _last_commit(self) -> dict[str, str] | None:
        result = self._git(
            ["log", "-1", "--format=%H%x1f%s%x1f%ai%x1f%an"], timeout=self.timeouts.probe
        )
        line = result.stdout.strip()
        if not result.ok or not line:
            return None
        parts = line.split("\x1f")
        parts += [""] * (4 - len(parts))
        return dict(zip(("hash", "message", "date", "author"), parts[:4], strict=True))

    def _trigger_pipeline(self, branch: str) -> SubOperationResult | None:
        settings = self.settings
        if settings.platform == "gitlab" and settings.gitlab.is_complete():
            return self._trigger_gitlab(branch)
        if settings.platform == "github" and settings.github.is_complete():
            return self._trigger_github(branch)
        LOGGER.warning(
            "Pipeline trigger enabled but not fully configured",
            extra={"platform": settings.platform},
        )
        return None

    def _trigger_gitlab(self, branch: str) -> SubOperationResult:
        gitlab = self.settings.gitlab
        ref = gitlab.ref or branch
        url = f"{gitlab.url.rstrip('/')}/api/v4/projects/{gitlab.project_id}/trigger/pipeline"
        try:
            response = self.transport.post(
                url,
                data={"token": gitlab.trigger_token, "ref": ref},
                timeout=self.timeouts.http,
            )
        except TransportError as exc:
            return SubOperationResult(
                "gitlab_pipeline", False, "Failed to trigger pipeline", error=str(exc)
            )
        if not response.ok:
            return SubOperationResult(
                "gitlab_pipeline",
                False,
                f"Failed to trigger pipeline (HTTP {response.status_code})",
                error=bound_text(response.text),
            )
        body = response.json_object()
        return SubOperationResult(
            "gitlab_pipeline",
            True,
            "Pipeline triggered",
            {
                "id": body.get("id"),
                "status": body.get("status", "triggered"),
                "web_url": body.get("web_url"),
            },
        )

    def _trigger_github(self, branch: str) -> SubOperationResult:
        github = self.settings.github
        url = f"{GITHUB_API}/repos/{github.repo}/actions/workflows/{github.workflow}/dispatches"
        headers = {**bearer(github.token), "Accept": "application/vnd.github.v3+json"}
        try:
            response = self.transport.post(
                url, headers=headers, json={"ref": branch}, timeout=self.timeouts.http
            )
        except TransportError as exc:
            return SubOperationResult(
                "github_workflow", False, "Failed to trigger workflow", error=str(exc)
            )
        if response.status_code != 204:
            return SubOperationResult(
                "github_workflow",
                False,
                f"Failed to trigger workflow (HTTP {response.status_code})",
                error=bound_text(response.text),
            )
        return SubOperationResult(
            "github_workflow",
            True,
            "Workflow triggered",
            {"status": "triggered", "workflow": github.workflow},
        )
