"""Deploy to Netlify through a build hook or a zip upload."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Any

from site_publisher.deploy.artifacts import zip_directory
from site_publisher.deploy.base import DeployOptions, DeployOutcome, DeploymentTarget
from site_publisher.deploy.process import bound_text
from site_publisher.deploy.settings import NetlifySettings
from site_publisher.deploy.transport import bearer, first_object

NETLIFY_API = "https://api.netlify.com/api/v1"


class NetlifyTarget(DeploymentTarget):
    """Triggers a remote build via hook, or uploads the artifact as a zip."""

    target_id = "netlify"
    name = "Netlify"
    icon = "cloud"
    settings_model = NetlifySettings

    @property
    def description(self) -> str:
        return "Deploy directly to Netlify via API or deploy hook"

    @property
    def settings(self) -> NetlifySettings:
        return self._settings  # type: ignore[return-value]

    @property
    def requires_artifact(self) -> bool:
        return not self.settings.deploy_hook

    def _required_problems(self, settings: NetlifySettings) -> list[str]:
        if settings.deploy_hook:
            return []
        problems: list[str] = []
        if not settings.site_id:
            problems.append("Site ID is required (or set a deploy hook)")
        if not settings.auth_token:
            problems.append("Auth token is required (or set a deploy hook)")
        return problems

    def _extra_problems(self, settings: NetlifySettings) -> list[str]:
        if settings.deploy_hook and not settings.deploy_hook.startswith("https://"):
            return ["Deploy hook URL must start with https://"]
        return []

    def _deploy(self, source_dir: Path, options: DeployOptions) -> DeployOutcome:
        if self.settings.deploy_hook:
            return self._trigger_hook(options)
        return self._upload_zip(source_dir, options)

    def _trigger_hook(self, options: DeployOptions) -> DeployOutcome:
        response = self.transport.post(
            self.settings.deploy_hook,
            content=b"",
            timeout=self.timeouts.http,
            cancel=options.cancel,
        )
        if response.status_code in (200, 201):
            return DeployOutcome.pending("Build triggered on Netlify", {"response": response.text})
        return DeployOutcome.failure(
            f"Failed to trigger Netlify build (HTTP {response.status_code})",
            bound_text(response.text),
        )

    def _upload_zip(self, source_dir: Path, options: DeployOptions) -> DeployOutcome:
        settings = self.settings
        with tempfile.TemporaryDirectory(prefix="site-publisher-") as scratch:
            archive = Path(scratch) / "site.zip"
            file_count = zip_directory(source_dir, archive)
            options.raise_if_cancelled()
            response = self.transport.post(
                f"{NETLIFY_API}/sites/{settings.site_id}/deploys",
                headers={**bearer(settings.auth_token), "Content-Type": "application/zip"},
                content=archive.read_bytes(),
                timeout=self.timeouts.upload,
                cancel=options.cancel,
            )
        if not response.ok:
            return DeployOutcome.failure(
                f"Netlify deploy failed (HTTP {response.status_code})",
                bound_text(response.text),
            )
        body = response.json_object()
        return DeployOutcome.success(
            "Deployed to Netlify",
            {
                "deploy_id": body.get("id"),
                "url": body.get("deploy_ssl_url") or body.get("deploy_url"),
                "state": body.get("state", "processing"),
                "files": file_count,
            },
        )

    def _status(self) -> dict[str, Any] | None:
        settings = self.settings
        if not (settings.site_id and settings.auth_token):
            return {"target": self.target_id, "configured": True, "mode": "deploy_hook"}
        response = self.transport.get(
            f"{NETLIFY_API}/sites/{settings.site_id}/deploys",
            headers=bearer(settings.auth_token),
            params={"per_page": 1},
            timeout=self.timeouts.http,
        )
        if response.status_code != 200:
            return None
        latest = first_object(response.json())
        if latest is None:
            return {"status": "no_deploys"}
        return {
            "deploy_id": latest.get("id"),
            "state": latest.get("state"),
            "url": latest.get("deploy_ssl_url") or latest.get("deploy_url"),
            "created_at": latest.get("created_at"),
            "published_at": latest.get("published_at"),
            "branch": latest.get("branch"),
        }

    def _test_connection(self) -> DeployOutcome:
        settings = self.settings
        if settings.deploy_hook:
            return DeployOutcome.success("Deploy hook configured")
        if not settings.auth_token:
            return DeployOutcome.failure("Auth token not configured")
        response = self.transport.get(
            f"{NETLIFY_API}/user",
            headers=bearer(settings.auth_token),
            timeout=self.timeouts.connect_test,
        )
        if response.status_code == 200:
            user = response.json_object()
            return DeployOutcome.success(f"Connected as {user.get('email', 'unknown')}")
        return DeployOutcome.failure("Invalid Netlify token", bound_text(response.text))
