"""Coordinates building the site and handing the artifact to deployment targets."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

from site_publisher.config import DEFAULT_DEPLOYMENT_METHOD, ConfigurationSource
from site_publisher.deploy.artifacts import clean_directory
from site_publisher.deploy.base import (
    BuildOptions,
    DeployOptions,
    DeployOutcome,
    DeploymentTarget,
    DeployStatus,
)
from site_publisher.deploy.builder import DEFAULT_BUILD_COMMAND, HugoSiteBuilder, SiteBuilder
from site_publisher.deploy.errors import TargetConfigError
from site_publisher.deploy.locks import ArtifactBusy, ArtifactLock
from site_publisher.deploy.process import CommandRunner
from site_publisher.deploy.runtime import CancelToken, Timeouts
from site_publisher.deploy.targets import default_deployment_targets
from site_publisher.deploy.transport import HttpTransport
from site_publisher.logging_utils import get_logger

LOGGER = get_logger("orchestrator")

SEARCH_INDEX_SEPARATOR = "--- Search index ---"
SEARCH_INDEX_WARNING = "(Search index had problems but the site build succeeded)"
ARTIFACT_BUSY_MESSAGE = "Build output directory is busy; try again later"


class DeploymentOrchestrator:
    """Owns the target registry, the build step and active-target resolution.

    Every public method returns a ``DeployOutcome`` (or plain data for status
    queries) and never raises for deployment problems. Outcomes coming back
    from the builder or a target are passed through unchanged.
    """

    def __init__(
        self,
        *,
        config: ConfigurationSource,
        site_root: Path,
        builder: SiteBuilder | None = None,
        targets: Mapping[str, DeploymentTarget] | None = None,
        public_dir: Path | None = None,
        timeouts: Timeouts | None = None,
        runner: CommandRunner | None = None,
        transport: HttpTransport | None = None,
    ) -> None:
        self.config = config
        self.site_root = Path(site_root)
        self.timeouts = timeouts or Timeouts()
        public_name = str(config.get("build.public_dir", "public") or "public")
        self.public_dir = (
            Path(public_dir) if public_dir is not None else self.site_root / public_name
        )
        if builder is None:
            command = config.get("build.command", list(DEFAULT_BUILD_COMMAND))
            builder = HugoSiteBuilder(
                runner=runner,
                timeouts=self.timeouts,
                command=command,
                public_dir_name=public_name,
            )
        self.builder = builder
        self._lock = ArtifactLock()
        self._targets: dict[str, DeploymentTarget] = {}
        self._config_errors: dict[str, list[str]] = {}
        if targets is None:
            targets = default_deployment_targets(
                self.site_root, runner=runner, transport=transport, timeouts=self.timeouts
            )
        for target in targets.values():
            self.register(target)

    def register(self, target: DeploymentTarget) -> None:
        """Add ``target`` to the registry and apply its ``deployment.<id>`` settings."""
        target_id = target.target_id
        self._targets[target_id] = target
        self._config_errors.pop(target_id, None)
        settings = self.config.get(f"deployment.{target_id}")
        if not settings:
            return
        if not isinstance(settings, Mapping):
            self._config_errors[target_id] = [f"deployment.{target_id} must be a mapping"]
            LOGGER.warning("Ignoring malformed target settings", extra={"target": target_id})
            return
        try:
            target.configure(settings)
        except TargetConfigError as exc:
            self._config_errors[target_id] = exc.problems
            LOGGER.warning(
                "Invalid target settings",
                extra={"target": target_id, "problems": exc.problems},
            )

    def targets(self) -> dict[str, DeploymentTarget]:
        """Return a copy of the registry."""
        return dict(self._targets)

    def get_target(self, target_id: str) -> DeploymentTarget | None:
        return self._targets.get(target_id)

    def configured_targets(self) -> dict[str, DeploymentTarget]:
        """Return registered targets that are configured and have valid settings."""
        return {
            target_id: target
            for target_id, target in self._targets.items()
            if target_id not in self._config_errors and target.is_configured()
        }

    def config_errors(self, target_id: str) -> list[str]:
        """Return problems recorded when the target's settings were applied."""
        return list(self._config_errors.get(target_id, []))

    def active_target_id(self) -> str:
        method = self.config.get("deployment.method", DEFAULT_DEPLOYMENT_METHOD)
        return str(method or DEFAULT_DEPLOYMENT_METHOD)

    def resolve_active_target(self) -> DeploymentTarget | None:
        """Return the target named by ``deployment.method``, if registered."""
        return self._targets.get(self.active_target_id())

    def build(
        self, options: BuildOptions | None = None, *, cancel: CancelToken | None = None
    ) -> DeployOutcome:
        """Build the site into the artifact directory while holding it exclusively."""
        opts = options or BuildOptions()
        try:
            with self._lock.exclusive(self.timeouts.lock_wait):
                return self._build_locked(opts, cancel)
        except ArtifactBusy:
            return DeployOutcome.failure(ARTIFACT_BUSY_MESSAGE)

    def deploy(self, options: DeployOptions | None = None) -> DeployOutcome:
        """Deploy to the active target."""
        return self.deploy_to(self.active_target_id(), options)

    def deploy_to(self, target_id: str, options: DeployOptions | None = None) -> DeployOutcome:
        """Deploy to a specific target, building first when requested."""
        opts = options or DeployOptions()
        LOGGER.info("Deploy requested", extra={"target": target_id, "build": opts.build})
        target = self._targets.get(target_id)
        if target is None:
            return DeployOutcome.failure(f"Unknown deployment target: {target_id}")
        if target_id in self._config_errors:
            return DeployOutcome.failure(
                f"Invalid configuration for {target.name}", self._config_errors[target_id]
            )
        if not target.is_configured():
            return DeployOutcome.failure(
                f"{target.name} is not configured",
                target.validate_config(self.config.get(f"deployment.{target_id}") or {}),
            )
        source_dir = self.public_dir
        if opts.build:
            built = self.build(opts.build_options, cancel=opts.cancel)
            if built.is_failure():
                return built
            source_dir = Path(built.data["public_dir"])
        outcome = self._deploy_shared(target, source_dir, opts)
        log = LOGGER.warning if outcome.is_failure() else LOGGER.info
        log("Deploy finished", extra={"target": target_id, "status": outcome.status.value})
        return outcome

    def deploy_all(self, options: DeployOptions | None = None) -> DeployOutcome:
        """Deploy to every configured target and aggregate the results."""
        opts = options or DeployOptions()
        targets = self.configured_targets()
        if not targets:
            return DeployOutcome.failure("No deployment targets are configured")
        source_dir = self.public_dir
        if opts.build:
            built = self.build(opts.build_options, cancel=opts.cancel)
            if built.is_failure():
                return built
            source_dir = Path(built.data["public_dir"])
        per_target: dict[str, DeployOutcome] = {}
        for target_id, target in targets.items():
            per_target[target_id] = self._deploy_shared(target, source_dir, opts)

        statuses = {outcome.status for outcome in per_target.values()}
        data: dict[str, Any] = {"targets": per_target}
        failed = sorted(tid for tid, outcome in per_target.items() if outcome.is_failure())
        if DeployStatus.failure in statuses:
            return DeployOutcome.failure(
                f"Deploy failed for: {', '.join(failed)}",
                [f"{tid}: {per_target[tid].message}" for tid in failed],
                data,
            )
        if DeployStatus.pending in statuses:
            return DeployOutcome.pending(
                f"Deployed to {len(per_target)} target(s); some pending", data
            )
        return DeployOutcome.success(f"Deployed to {len(per_target)} target(s)", data)

    def status(self) -> dict[str, Any] | None:
        """Return the active target's status, or None when it is not registered."""
        target = self.resolve_active_target()
        if target is None:
            return None
        return target.status()

    def test_connection(self, target_id: str) -> DeployOutcome:
        target = self._targets.get(target_id)
        if target is None:
            return DeployOutcome.failure(f"Unknown deployment target: {target_id}")
        return target.test_connection()

    def _deploy_shared(
        self, target: DeploymentTarget, source_dir: Path, options: DeployOptions
    ) -> DeployOutcome:
        try:
            with self._lock.shared(self.timeouts.lock_wait):
                return target.deploy(source_dir, options)
        except ArtifactBusy:
            return DeployOutcome.failure(ARTIFACT_BUSY_MESSAGE)

    def _build_locked(self, options: BuildOptions, cancel: CancelToken | None) -> DeployOutcome:
        LOGGER.info("Build requested", extra={"clean": options.clean})
        if options.clean:
            try:
                removed = clean_directory(self.public_dir)
            except OSError as exc:
                return DeployOutcome.failure("Failed to clean build output directory", str(exc))
            LOGGER.debug("Cleaned build output", extra={"removed": removed})

        built = self.builder.build(self.site_root, base_url=options.base_url, cancel=cancel)
        if built.is_failure():
            LOGGER.warning("Site build failed")
            return built
        output_dir = self._reported_output_dir(built)

        lines = [str(built.data.get("output", ""))]
        index_status: str | None = None
        if options.search_index and self.config.get("build.search_index", True):
            indexed = self.builder.build_search_index(self.site_root, output_dir, cancel=cancel)
            index_status = indexed.status.value
            lines.extend(["", SEARCH_INDEX_SEPARATOR])
            index_output = indexed.data.get("output") or indexed.error or indexed.message
            lines.append(str(index_output))
            if indexed.is_failure():
                lines.append(SEARCH_INDEX_WARNING)
                LOGGER.warning("Search index step failed", extra={"message": indexed.message})

        return DeployOutcome.success(
            built.message,
            {
                "public_dir": str(output_dir),
                "output": "\n".join(lines),
                "search_index": index_status,
            },
        )

    def _reported_output_dir(self, built: DeployOutcome) -> Path:
        """Return where the builder says it wrote the site, relative to the site root."""
        reported = built.data.get("public_dir")
        if not reported:
            return self.public_dir
        path = Path(str(reported))
        return path if path.is_absolute() else self.site_root / path
