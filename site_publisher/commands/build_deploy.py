"""CLI command registrations for building and deploying."""

from __future__ import annotations

# mypy: ignore-errors
# ruff: noqa: B008,F403,F405,I001
from site_publisher.commands.common import *
from site_publisher.commands.common import _create_orchestrator, _print_outcome, _state, _version_callback


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show site-publisher version and exit.",
            is_eager=True,
            callback=_version_callback,
        ),
    ] = False,
    site_root: Annotated[
        Path,
        typer.Option("--site-root", help="Site source directory (default: current directory)."),
    ] = Path("."),
    config: Annotated[
        Path | None,
        typer.Option("--config", help="Configuration file (default: <site-root>/site.yaml)."),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose debug logging."),
    ] = False,
    log_file: Annotated[
        Path,
        typer.Option("--log-file", help="Write logs to this file."),
    ] = Path("site-publisher.log"),
) -> None:
    """Build a static site and publish it to a configured hosting target."""
    configure_logging(log_file=log_file, verbose=verbose)
    state = _state(ctx)
    state.setdefault("site_root", site_root)
    state.setdefault("config_path", config)


@app.command("build")
def build_site(
    ctx: typer.Context,
    clean: Annotated[
        bool,
        typer.Option("--clean", help="Empty the build output directory first."),
    ] = False,
    no_pagefind: Annotated[
        bool,
        typer.Option("--no-pagefind", help="Skip building the search index."),
    ] = False,
    base_url: Annotated[
        str | None,
        typer.Option("--base-url", help="Override the site's base URL for this build."),
    ] = None,
) -> None:
    """Build the site into the artifact directory."""
    orchestrator = _create_orchestrator(ctx)
    outcome = orchestrator.build(
        BuildOptions(clean=clean, search_index=not no_pagefind, base_url=base_url)
    )
    _print_outcome(outcome)


@app.command("deploy")
def deploy_site(
    ctx: typer.Context,
    to: Annotated[
        str | None,
        typer.Option("--to", help="Target id (default: deployment.method from config)."),
    ] = None,
    message: Annotated[
        str | None,
        typer.Option("--message", "-m", help="Commit message for git deploys."),
    ] = None,
    build: Annotated[
        bool,
        typer.Option("--build", help="Build the site before deploying."),
    ] = False,
    production: Annotated[
        bool | None,
        typer.Option("--production/--preview", help="Override the production flag."),
    ] = None,
) -> None:
    """Deploy the built site to one target.

    Examples:
        site-publisher deploy
        site-publisher deploy --to netlify --build
    """
    orchestrator = _create_orchestrator(ctx)
    options = DeployOptions(message=message, build=build, production=production)
    if to is None:
        outcome = orchestrator.deploy(options)
    else:
        outcome = orchestrator.deploy_to(to, options)
    _print_outcome(outcome)


@app.command("deploy-all")
def deploy_all(
    ctx: typer.Context,
    message: Annotated[
        str | None,
        typer.Option("--message", "-m", help="Commit message for git deploys."),
    ] = None,
    build: Annotated[
        bool,
        typer.Option("--build", help="Build the site once before deploying."),
    ] = False,
) -> None:
    """Deploy to every configured target."""
    orchestrator = _create_orchestrator(ctx)
    outcome = orchestrator.deploy_all(DeployOptions(message=message, build=build))
    results = outcome.data.get("targets", {})
    if results:
        table = Table(title="Deploy Results")
        table.add_column("Target")
        table.add_column("Status")
        table.add_column("Message")
        for target_id, result in results.items():
            table.add_row(target_id, result.status.value, result.message)
        console.print(table)
    _print_outcome(outcome)
