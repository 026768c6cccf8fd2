"""Deploy to Cloudflare Pages with a direct upload in fixed-size batches."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from site_publisher.deploy.artifacts import iter_artifact_files
from site_publisher.deploy.base import DeployOptions, DeployOutcome, DeploymentTarget
from site_publisher.deploy.errors import DeployCancelled, TransportError
from site_publisher.deploy.process import bound_text
from site_publisher.deploy.settings import CloudflareSettings
from site_publisher.deploy.transport import bearer, first_object
from site_publisher.logging_utils import get_logger

LOGGER = get_logger()

CLOUDFLARE_API = "https://api.cloudflare.com/client/v4"
UPLOAD_BATCH_SIZE = 50


@dataclass
class UploadReport:
    """Counts and error lines collected while uploading batches."""

    files_total: int = 0
    files_uploaded: int = 0
    failed_batches: int = 0
    errors: list[str] = field(default_factory=list)
    cancelled: bool = False

    def counts(self) -> dict[str, int]:
        return {
            "files_total": self.files_total,
            "files_uploaded": self.files_uploaded,
            "failed_batches": self.failed_batches,
        }


def _first_error(body: Any) -> str:
    if isinstance(body, dict):
        errors = body.get("errors") or []
        if errors and isinstance(errors[0], dict) and errors[0].get("message"):
            return str(errors[0]["message"])
    return "Unknown error"


class CloudflareTarget(DeploymentTarget):
    """Creates a Pages deployment and uploads the artifact to it.

    A deploy only succeeds when every batch was accepted; the upload counts
    (``files_total``, ``files_uploaded``, ``failed_batches``) are reported
    either way.
    """

    target_id = "cloudflare"
    name = "Cloudflare Pages"
    icon = "cloud"
    settings_model = CloudflareSettings

    @property
    def description(self) -> str:
        return "Deploy to Cloudflare Pages with global edge network"

    @property
    def settings(self) -> CloudflareSettings:
        return self._settings  # type: ignore[return-value]

    def _required_problems(self, settings: CloudflareSettings) -> list[str]:
        labels = {
            "account_id": "Account ID",
            "project_name": "Project name",
            "api_token": "API token",
        }
        return [
            f"{label} is required" for key, label in labels.items() if not getattr(settings, key)
        ]

    def _deploy(self, source_dir: Path, options: DeployOptions) -> DeployOutcome:
        settings = self.settings
        branch = options.branch or settings.production_branch
        response = self.transport.post(
            self._deployments_url(),
            headers=bearer(settings.api_token),
            json={"branch": branch},
            timeout=self.timeouts.http,
            cancel=options.cancel,
        )
        body = response.json_object()
        if not response.ok:
            return DeployOutcome.failure(
                f"Failed to create Cloudflare deployment: {_first_error(body)}",
                bound_text(response.text),
            )
        result = body.get("result")
        if not isinstance(result, dict):
            result = {}
        deployment_id = result.get("id")
        if not deployment_id:
            return DeployOutcome.failure("No deployment ID received", bound_text(response.text))

        upload = self._upload_files(source_dir, deployment_id, options)
        data = {
            "deployment_id": deployment_id,
            "url": result.get("url"),
            "branch": branch,
            **upload.counts(),
        }
        if upload.cancelled:
            return DeployOutcome.failure("Cloudflare upload cancelled", upload.errors, data)
        if upload.failed_batches:
            return DeployOutcome.failure(
                f"Failed to upload {upload.failed_batches} file batch(es)", upload.errors, data
            )
        return DeployOutcome.success("Deployed to Cloudflare Pages", data)

    def _upload_files(
        self, source_dir: Path, deployment_id: str, options: DeployOptions
    ) -> UploadReport:
        files = list(iter_artifact_files(source_dir))
        url = f"{self._deployments_url()}/{deployment_id}/files"
        report = UploadReport(files_total=len(files))
        for start in range(0, len(files), UPLOAD_BATCH_SIZE):
            batch = files[start : start + UPLOAD_BATCH_SIZE]
            number = start // UPLOAD_BATCH_SIZE + 1
            try:
                options.raise_if_cancelled()
                response = self.transport.post(
                    url,
                    headers=bearer(self.settings.api_token),
                    files=[
                        (f"/{relative}", (path.name, path.read_bytes()))
                        for relative, path in batch
                    ],
                    timeout=self.timeouts.upload,
                    cancel=options.cancel,
                )
            except DeployCancelled:
                report.cancelled = True
                break
            except TransportError as exc:
                report.failed_batches += 1
                report.errors.append(f"batch {number}: {exc}")
                continue
            if response.ok:
                report.files_uploaded += len(batch)
            else:
                report.failed_batches += 1
                report.errors.append(
                    f"batch {number}: HTTP {response.status_code} {response.text[:500]}"
                )
        if report.failed_batches:
            LOGGER.warning("Cloudflare upload incomplete", extra=report.counts())
        return report

    def _status(self) -> dict[str, Any] | None:
        response = self.transport.get(
            self._deployments_url(),
            headers=bearer(self.settings.api_token),
            params={"per_page": 1},
            timeout=self.timeouts.http,
        )
        if response.status_code != 200:
            return None
        latest = first_object(response.json_object().get("result"))
        if latest is None:
            return {"status": "no_deployments"}
        return {
            "id": latest.get("id"),
            "url": latest.get("url"),
            "environment": latest.get("environment"),
            "created_on": latest.get("created_on"),
        }

    def _test_connection(self) -> DeployOutcome:
        if not self.is_configured():
            return DeployOutcome.failure("Not configured", self._required_problems(self.settings))
        settings = self.settings
        response = self.transport.get(
            f"{CLOUDFLARE_API}/accounts/{settings.account_id}"
            f"/pages/projects/{settings.project_name}",
            headers=bearer(settings.api_token),
            timeout=self.timeouts.connect_test,
        )
        if response.status_code == 200:
            return DeployOutcome.success(f"Connected to project: {settings.project_name}")
        return DeployOutcome.failure(
            f"Cannot access Cloudflare project: {_first_error(response.json())}",
            bound_text(response.text),
        )

    def _deployments_url(self) -> str:
        settings = self.settings
        return (
            f"{CLOUDFLARE_API}/accounts/{settings.account_id}"
            f"/pages/projects/{settings.project_name}/deployments"
        )
