"""Shared CLI objects and helpers for site-publisher commands."""

from __future__ import annotations

# ruff: noqa: F401
import json
from pathlib import Path
from typing import Annotated, Any

import typer
import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from site_publisher import __version__
from site_publisher.config import (
    DEFAULT_CONFIG_FILENAME,
    MappingConfigSource,
    load_site_config,
    save_site_config,
)
from site_publisher.config_validation import validate_target_id
from site_publisher.deploy import (
    BuildOptions,
    DeploymentOrchestrator,
    DeployOptions,
    DeployOutcome,
)
from site_publisher.logging_utils import configure_logging

app = typer.Typer(add_completion=False, no_args_is_help=True)
config_app = typer.Typer(no_args_is_help=True)
console = Console()

app.add_typer(config_app, name="config")


def _version_callback(value: bool) -> None:
    """Print package version and exit when requested."""
    if value:
        console.print(__version__)
        raise typer.Exit()


def _state(ctx: typer.Context) -> dict[str, Any]:
    """Return the per-invocation state dictionary set up by the root callback."""
    root = ctx.find_root()
    root.ensure_object(dict)
    return root.obj


def _config_path(ctx: typer.Context) -> Path:
    state = _state(ctx)
    site_root = Path(state.get("site_root", Path.cwd()))
    return Path(state.get("config_path") or site_root / DEFAULT_CONFIG_FILENAME)


def _load_config(ctx: typer.Context, *, with_defaults: bool = True) -> MappingConfigSource:
    """Load the site configuration, turning malformed files into CLI errors."""
    path = _config_path(ctx)
    try:
        return load_site_config(path, with_defaults=with_defaults)
    except (OSError, ValueError) as exc:
        raise typer.BadParameter(f"Cannot load configuration {path}: {exc}") from exc


def _create_orchestrator(ctx: typer.Context) -> DeploymentOrchestrator:
    """Return the orchestrator for this invocation, building it on first use."""
    state = _state(ctx)
    orchestrator = state.get("orchestrator")
    if orchestrator is None:
        site_root = Path(state.get("site_root", Path.cwd())).expanduser().resolve()
        orchestrator = DeploymentOrchestrator(config=_load_config(ctx), site_root=site_root)
        state["orchestrator"] = orchestrator
    return orchestrator


def _print_outcome(outcome: DeployOutcome) -> None:
    """Print an outcome; failures exit with code 1 and no traceback."""
    if outcome.is_failure():
        console.print(f"[red]✗[/red] {escape(outcome.message)}")
        if outcome.error:
            console.print(outcome.error, markup=False, highlight=False)
        raise typer.Exit(code=1)
    marker = "[yellow]…[/yellow]" if outcome.is_pending() else "[green]✓[/green]"
    console.print(f"{marker} {escape(outcome.message)}")
    output = outcome.data.get("output")
    if output:
        console.print(str(output), markup=False, highlight=False)
    url = outcome.data.get("url")
    if url:
        console.print(f"URL: {url}", markup=False)


def _print_json(payload: Any) -> None:
    console.print_json(json.dumps(payload, default=str))
