"""Sync the build output to S3 and optionally invalidate CloudFront."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from site_publisher.config_validation import is_blank
from site_publisher.deploy.base import (
    DeployOptions,
    DeployOutcome,
    DeploymentTarget,
    SubOperationResult,
)
from site_publisher.deploy.process import CommandResult, bound_text
from site_publisher.deploy.runtime import CancelToken
from site_publisher.deploy.settings import S3Settings
from site_publisher.logging_utils import get_logger

LOGGER = get_logger()


class S3Target(DeploymentTarget):
    """Runs ``aws s3 sync``; credentials travel in the child environment only."""

    target_id = "s3"
    name = "AWS S3"
    icon = "cloud"
    settings_model = S3Settings

    @property
    def description(self) -> str:
        text = "Deploy to AWS S3 bucket (optionally with CloudFront invalidation)"
        if self.settings.delete_removed:
            text += "; deletes objects that are not in the build"
        return text

    @property
    def settings(self) -> S3Settings:
        return self._settings  # type: ignore[return-value]

    def _required_problems(self, settings: S3Settings) -> list[str]:
        problems: list[str] = []
        if is_blank(settings.bucket):
            problems.append("Bucket is required")
        if is_blank(settings.region):
            problems.append("Region is required")
        if is_blank(settings.access_key) and self.runner.which("aws") is None:
            problems.append("Access key is required when the AWS CLI is not installed")
        return problems

    def _extra_problems(self, settings: S3Settings) -> list[str]:
        if settings.access_key and not settings.secret_key:
            return ["Secret key is required when an access key is set"]
        return []

    def _deploy(self, source_dir: Path, options: DeployOptions) -> DeployOutcome:
        if self.runner.which("aws") is None:
            return DeployOutcome.failure("AWS CLI not installed")
        settings = self.settings
        args = [
            "aws",
            "s3",
            "sync",
            str(source_dir),
            f"s3://{settings.bucket}",
            "--region",
            settings.region,
        ]
        if settings.delete_removed:
            args.append("--delete")
        if settings.cache_control:
            args.extend(["--cache-control", settings.cache_control])

        result = self._aws(args, timeout=self.timeouts.command, cancel=options.cancel)
        output = bound_text(result.output)
        if result.cancelled:
            return DeployOutcome.failure("S3 sync cancelled", output)
        if not result.ok:
            return DeployOutcome.failure("S3 sync failed", output)

        data: dict[str, Any] = {
            "bucket": settings.bucket,
            "region": settings.region,
            "delete_removed": settings.delete_removed,
            "output": output,
        }
        if settings.cloudfront_id:
            data["cloudfront_invalidation"] = self._invalidate_cloudfront(options.cancel)
        return DeployOutcome.success("Deployed to S3", data)

    def _status(self) -> dict[str, Any]:
        settings = self.settings
        return {
            "target": self.target_id,
            "configured": True,
            "bucket": settings.bucket,
            "region": settings.region,
            "cloudfront": bool(settings.cloudfront_id),
            "delete_removed": settings.delete_removed,
        }

    def _test_connection(self) -> DeployOutcome:
        if self.runner.which("aws") is None:
            return DeployOutcome.failure("AWS CLI not installed")
        if not self.is_configured():
            return DeployOutcome.failure("Not configured", self._required_problems(self.settings))
        settings = self.settings
        result = self._aws(
            ["aws", "s3", "ls", f"s3://{settings.bucket}", "--region", settings.region],
            timeout=self.timeouts.connect_test,
        )
        if result.ok:
            return DeployOutcome.success(f"Connected to bucket: {settings.bucket}")
        return DeployOutcome.failure("Cannot access S3 bucket", bound_text(result.output))

    def _invalidate_cloudfront(self, cancel: CancelToken | None) -> SubOperationResult:
        settings = self.settings
        result = self._aws(
            [
                "aws",
                "cloudfront",
                "create-invalidation",
                "--distribution-id",
                settings.cloudfront_id,
                "--paths",
                "/*",
                "--region",
                settings.region,
            ],
            timeout=self.timeouts.command,
            cancel=cancel,
        )
        if result.ok:
            return SubOperationResult(
                "cloudfront_invalidation",
                True,
                "Invalidation created",
                {"status": "created", "distribution": settings.cloudfront_id},
            )
        if result.cancelled:
            return SubOperationResult(
                "cloudfront_invalidation",
                False,
                "Invalidation cancelled",
                {"status": "cancelled", "distribution": settings.cloudfront_id},
                error=bound_text(result.output),
            )
        LOGGER.warning(
            "CloudFront invalidation failed", extra={"distribution": settings.cloudfront_id}
        )
        return SubOperationResult(
            "cloudfront_invalidation",
            False,
            "Invalidation failed",
            {"status": "failed", "distribution": settings.cloudfront_id},
            error=bound_text(result.output),
        )

    def _aws(
        self,
        args: list[str],
        *,
        timeout: float,
        cancel: CancelToken | None = None,
    ) -> CommandResult:
        return self.runner.run(args, env=self._credentials_env(), timeout=timeout, cancel=cancel)

    def _credentials_env(self) -> dict[str, str] | None:
        settings = self.settings
        if not settings.access_key:
            return None
        return {
            "AWS_ACCESS_KEY_ID": settings.access_key,
            "AWS_SECRET_ACCESS_KEY": settings.secret_key,
        }
