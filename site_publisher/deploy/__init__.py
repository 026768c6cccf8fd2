"""Deployment orchestration for static site builds."""

from site_publisher.deploy.base import (
    BuildOptions,
    DeployOptions,
    DeployOutcome,
    DeploymentTarget,
    DeployStatus,
    SettingsField,
    SubOperationResult,
)
from site_publisher.deploy.builder import HugoSiteBuilder, SiteBuilder
from site_publisher.deploy.errors import DeployCancelled, TargetConfigError, TransportError
from site_publisher.deploy.orchestrator import DeploymentOrchestrator
from site_publisher.deploy.runtime import CancelToken, Timeouts
from site_publisher.deploy.targets import default_deployment_targets
from site_publisher.deploy.worker import DeployJob, DeployWorker, JobState

__all__ = [
    "BuildOptions",
    "CancelToken",
    "DeployCancelled",
    "DeployJob",
    "DeployOptions",
    "DeployOutcome",
    "DeployStatus",
    "DeployWorker",
    "DeploymentOrchestrator",
    "DeploymentTarget",
    "HugoSiteBuilder",
    "JobState",
    "SettingsField",
    "SiteBuilder",
    "SubOperationResult",
    "TargetConfigError",
    "Timeouts",
    "TransportError",
    "default_deployment_targets",
]
