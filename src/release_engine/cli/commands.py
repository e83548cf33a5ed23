"""CLI command implementations."""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer

from release_engine.cli import app
from release_engine.cli.errors import handle_error

if TYPE_CHECKING:
    from release_engine.config.schema import Config

ConfigPath = Annotated[
    Path,
    typer.Option("--config", "-c", help="Path to the workspace file."),
]

NoColor = Annotated[
    bool,
    typer.Option("--no-color", help="Disable colored output."),
]

ResourceId = Annotated[
    str,
    typer.Option("--resource", "-r", help="Resource id to resolve for."),
]

EnvironmentId = Annotated[
    str,
    typer.Option("--environment", "-e", help="Environment id to resolve for."),
]

DeploymentId = Annotated[
    str | None,
    typer.Option("--deployment", "-d", help="Deployment id (optional)."),
]

_DEFAULT_CONFIG = Path("release-engine.yaml")


def _use_color(no_color: bool) -> bool:
    """Determine whether to use color output."""
    return not (no_color or os.environ.get("NO_COLOR"))


def _context(resource: str, environment: str, deployment: str | None) -> dict[str, str | None]:
    return {"resource_id": resource, "environment_id": environment, "deployment_id": deployment}


def _sensitive_names(cfg: Config) -> set[str]:
    return {v.name for v in cfg.variables if v.sensitive}


@app.command()
def resolve(
    name: Annotated[str, typer.Argument(help="Variable name.")],
    resource: ResourceId,
    environment: EnvironmentId,
    deployment: DeploymentId = None,
    config: ConfigPath = _DEFAULT_CONFIG,
    no_color: NoColor = False,
) -> None:
    """Show the variable that wins for a resource and environment."""
    from release_engine.cli.formatting import format_variable
    from release_engine.config import load
    from release_engine.config import resolve as resolve_fn

    color = _use_color(no_color)
    try:
        cfg = load(config)
        variable = resolve_fn(cfg, name, _context(resource, environment, deployment))
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc

    if variable is None:
        typer.echo(f"No variable {name} for {resource}/{environment}.", err=True)
        raise typer.Exit(1)

    typer.echo(format_variable(variable, color=color))


@app.command()
def variables(
    resource: ResourceId,
    environment: EnvironmentId,
    deployment: DeploymentId = None,
    config: ConfigPath = _DEFAULT_CONFIG,
    no_color: NoColor = False,
) -> None:
    """List every variable visible to a resource and environment."""
    from release_engine.cli.formatting import format_variables
    from release_engine.config import load
    from release_engine.config import resolve_all as resolve_all_fn

    color = _use_color(no_color)
    try:
        cfg = load(config)
        resolved = resolve_all_fn(cfg, _context(resource, environment, deployment))
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc

    typer.echo(format_variables(resolved, color=color))


@app.command(name="release")
def release_cmd(
    resource: ResourceId,
    environment: EnvironmentId,
    names: Annotated[
        list[str] | None,
        typer.Argument(help="Variable names to release (default: all visible)."),
    ] = None,
    deployment: DeploymentId = None,
    config: ConfigPath = _DEFAULT_CONFIG,
    no_color: NoColor = False,
) -> None:
    """Record releases for changed variables and run the configured rules."""
    from release_engine.cli.formatting import format_run, format_run_summary
    from release_engine.config import load
    from release_engine.config import release as release_fn

    color = _use_color(no_color)
    try:
        cfg = load(config)
        run = release_fn(cfg, _context(resource, environment, deployment), names or None)
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc

    typer.echo(format_run(run, color=color, sensitive=_sensitive_names(cfg)))
    typer.echo()
    typer.echo(format_run_summary(run, color=color))

    if any(not result.ok for result in run.rule_results.values()):
        raise typer.Exit(1)


@app.command()
def history(
    resource: ResourceId,
    environment: EnvironmentId,
    config: ConfigPath = _DEFAULT_CONFIG,
    no_color: NoColor = False,
) -> None:
    """Show recorded releases for a resource and environment, newest first."""
    from release_engine.cli.formatting import format_history
    from release_engine.config import history as history_fn
    from release_engine.config import load

    color = _use_color(no_color)
    try:
        cfg = load(config)
        releases = history_fn(cfg, _context(resource, environment, None))
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc

    typer.echo(format_history(releases, color=color, sensitive=_sensitive_names(cfg)))


@app.command()
def validate(
    config: ConfigPath = _DEFAULT_CONFIG,
    no_color: NoColor = False,
) -> None:
    """Validate the workspace file and its rules."""
    from release_engine.cli.formatting import styler
    from release_engine.config import build_rule_engine, load

    color = _use_color(no_color)
    try:
        cfg = load(config)
        build_rule_engine(cfg)
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc

    typer.echo(styler(color)("Workspace is valid.", fg="green"))
