"""CLI command registrations for inspecting targets and editing configuration."""

from __future__ import annotations

# mypy: ignore-errors
# ruff: noqa: B008,F403,F405,I001
from site_publisher.commands.common import *
from site_publisher.commands.common import _config_path, _create_orchestrator, _load_config, _print_json, _print_outcome


@app.command("targets")
def list_targets(ctx: typer.Context) -> None:
    """List deployment targets and whether each is configured."""
    orchestrator = _create_orchestrator(ctx)
    active = orchestrator.active_target_id()
    table = Table(title="Deployment Targets")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Configured")
    table.add_column("Active")
    table.add_column("Description")
    for target_id, target in orchestrator.targets().items():
        problems = orchestrator.config_errors(target_id)
        configured = "invalid" if problems else ("yes" if target.is_configured() else "no")
        table.add_row(
            target_id,
            target.name,
            configured,
            "*" if target_id == active else "",
            target.description,
        )
    console.print(table)


@app.command("status")
def show_status(
    ctx: typer.Context,
    as_json: Annotated[bool, typer.Option("--json", help="Print raw JSON.")] = False,
) -> None:
    """Show remote state of the active deployment target."""
    orchestrator = _create_orchestrator(ctx)
    status = orchestrator.status()
    if status is None:
        console.print(f"No status available for '{orchestrator.active_target_id()}'.")
        return
    if as_json:
        _print_json(status)
        return
    table = Table(title=f"Status: {orchestrator.active_target_id()}")
    table.add_column("Key")
    table.add_column("Value")
    for key, value in status.items():
        rendered = json.dumps(value, default=str) if isinstance(value, (dict, list)) else str(value)
        table.add_row(key, rendered)
    console.print(table)


@app.command("test-connection")
def test_connection(
    ctx: typer.Context,
    target_id: Annotated[str, typer.Argument(help="Target id to check.")],
) -> None:
    """Check credentials and reachability for one target without deploying."""
    orchestrator = _create_orchestrator(ctx)
    _print_outcome(orchestrator.test_connection(target_id))


@config_app.command("get")
def config_get(
    ctx: typer.Context,
    path: Annotated[str, typer.Argument(help="Dot path, e.g. deployment.method.")],
) -> None:
    """Print a configuration value."""
    value = _load_config(ctx).get(path)
    if value is None:
        console.print(f"{path} is not set.")
        raise typer.Exit(code=1)
    if isinstance(value, (dict, list)):
        _print_json(value)
    else:
        console.print(str(value), markup=False)


@config_app.command("set")
def config_set(
    ctx: typer.Context,
    path: Annotated[str, typer.Argument(help="Dot path, e.g. deployment.method.")],
    value: Annotated[str, typer.Argument(help="Value; parsed as YAML (true, 22, [a, b]).")],
) -> None:
    """Set a configuration value and save the file."""
    if path == "deployment.method":
        try:
            validate_target_id(value)
        except ValueError as exc:
            raise typer.BadParameter(str(exc)) from exc
    source = _load_config(ctx, with_defaults=False)
    source.set(path, _parse_value(value))
    config_path = _config_path(ctx)
    save_site_config(source, config_path)
    console.print(f"Saved {path} to {config_path}.")


def _parse_value(raw: str) -> Any:
    """Parse a CLI value the way it would read in the YAML file."""
    try:
        return yaml.safe_load(raw)
    except yaml.YAMLError:
        return raw
