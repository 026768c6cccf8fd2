"""Command-line interface for building and deploying a static site."""

from __future__ import annotations

# ruff: noqa: F401
from site_publisher.commands import build_deploy, targets_config
from site_publisher.commands.common import app

__all__ = ["app"]
