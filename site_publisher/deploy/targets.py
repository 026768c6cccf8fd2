"""Default set of deployment targets."""

from __future__ import annotations

from pathlib import Path

from site_publisher.deploy.base import DeploymentTarget
from site_publisher.deploy.cloudflare import CloudflareTarget
from site_publisher.deploy.git import GitTarget
from site_publisher.deploy.netlify import NetlifyTarget
from site_publisher.deploy.process import CommandRunner
from site_publisher.deploy.rsync import RsyncTarget
from site_publisher.deploy.runtime import Timeouts
from site_publisher.deploy.s3 import S3Target
from site_publisher.deploy.transport import HttpTransport
from site_publisher.deploy.vercel import VercelTarget


def default_deployment_targets(
    site_root: Path,
    *,
    runner: CommandRunner | None = None,
    transport: HttpTransport | None = None,
    timeouts: Timeouts | None = None,
) -> dict[str, DeploymentTarget]:
    """Build the built-in targets sharing one runner, transport and timeout set."""
    shared_runner = runner or CommandRunner()
    shared_transport = transport or HttpTransport()
    shared_timeouts = timeouts or Timeouts()
    common = {"runner": shared_runner, "transport": shared_transport, "timeouts": shared_timeouts}
    targets: list[DeploymentTarget] = [
        GitTarget(site_root, **common),
        RsyncTarget(**common),
        S3Target(**common),
        NetlifyTarget(**common),
        VercelTarget(**common),
        CloudflareTarget(**common),
    ]
    return {target.target_id: target for target in targets}
