"""Deploy to Vercel by posting an inline file manifest."""

from __future__ import annotations

import base64
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from site_publisher.deploy.artifacts import iter_artifact_files
from site_publisher.deploy.base import DeployOptions, DeployOutcome, DeploymentTarget
from site_publisher.deploy.process import bound_text
from site_publisher.deploy.settings import VercelSettings
from site_publisher.deploy.transport import bearer, first_object

VERCEL_API = "https://api.vercel.com"


def _error_message(body: Any) -> str:
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return str(body["error"].get("message") or "Unknown error")
    return "Unknown error"


def _epoch_ms_to_iso(value: Any) -> str | None:
    if not isinstance(value, (int, float)):
        return None
    return datetime.fromtimestamp(value / 1000, tz=UTC).isoformat()


class VercelTarget(DeploymentTarget):
    """Sends every artifact file base64-encoded in one deployment request."""

    target_id = "vercel"
    name = "Vercel"
    icon = "triangle"
    settings_model = VercelSettings

    @property
    def description(self) -> str:
        return "Deploy to Vercel for instant previews and edge deployment"

    @property
    def settings(self) -> VercelSettings:
        return self._settings  # type: ignore[return-value]

    def _required_problems(self, settings: VercelSettings) -> list[str]:
        problems: list[str] = []
        if not settings.token:
            problems.append("Token is required")
        if not settings.project_id:
            problems.append("Project ID is required")
        return problems

    def _deploy(self, source_dir: Path, options: DeployOptions) -> DeployOutcome:
        settings = self.settings
        files = [
            {
                "file": relative,
                "data": base64.b64encode(path.read_bytes()).decode("ascii"),
                "encoding": "base64",
            }
            for relative, path in iter_artifact_files(source_dir)
        ]
        if not files:
            return DeployOutcome.failure("No files to deploy")
        options.raise_if_cancelled()
        production = settings.production if options.production is None else options.production
        response = self.transport.post(
            f"{VERCEL_API}/v13/deployments",
            headers=bearer(settings.token),
            params=self._team_params(),
            json={
                "name": settings.project_name,
                "files": files,
                "project": settings.project_id,
                "target": "production" if production else None,
            },
            timeout=self.timeouts.upload,
            cancel=options.cancel,
        )
        body = response.json_object()
        if not response.ok:
            return DeployOutcome.failure(
                f"Vercel deploy failed: {_error_message(body)}", bound_text(response.text)
            )
        return DeployOutcome.success(
            "Deployed to Vercel",
            {
                "id": body.get("id"),
                "url": body.get("url"),
                "ready_state": body.get("readyState"),
                "files": len(files),
            },
        )

    def _status(self) -> dict[str, Any] | None:
        settings = self.settings
        response = self.transport.get(
            f"{VERCEL_API}/v6/deployments",
            headers=bearer(settings.token),
            params={"projectId": settings.project_id, "limit": 1, **self._team_params()},
            timeout=self.timeouts.http,
        )
        if response.status_code != 200:
            return None
        latest = first_object(response.json_object().get("deployments"))
        if latest is None:
            return {"status": "no_deployments"}
        url = latest.get("url")
        return {
            "id": latest.get("uid"),
            "url": f"https://{url}" if url else None,
            "state": latest.get("readyState") or latest.get("state"),
            "created_at": _epoch_ms_to_iso(latest.get("createdAt")),
            "target": latest.get("target") or "preview",
        }

    def _test_connection(self) -> DeployOutcome:
        settings = self.settings
        if not settings.token:
            return DeployOutcome.failure("Token not configured")
        response = self.transport.get(
            f"{VERCEL_API}/v2/user",
            headers=bearer(settings.token),
            timeout=self.timeouts.connect_test,
        )
        if response.status_code == 200:
            user = response.json_object().get("user")
            if not isinstance(user, dict):
                user = {}
            return DeployOutcome.success(f"Connected as {user.get('username', 'unknown')}")
        return DeployOutcome.failure("Invalid Vercel token", bound_text(response.text))

    def _team_params(self) -> dict[str, str]:
        team_id = self.settings.team_id
        return {"teamId": team_id} if team_id else {}
