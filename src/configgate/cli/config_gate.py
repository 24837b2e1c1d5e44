"""CLI for checking a configuration against the change registry.

Examples:
  # Fail with migration instructions if the config needs migrating
  config-gate check --config /etc/configgate/configgate.yaml

  # Show which registered changes apply to the config
  config-gate list-changes --since 0.0.41

  # Record the version after migrating
  config-gate set-version 0.0.85
"""

import sys
from pathlib import Path
from typing import NoReturn

import click

from configgate.changes.registry import ChangeRegistry
from configgate.config import ConfigManager, ConfigState
from configgate.errors import (
    ConfigLoadError,
    EmptyRegistryError,
    IncompatibleConfigError,
    MalformedVersionError,
    UnsortedRegistryError,
)
from configgate.evaluator import ConfigEvaluator
from configgate.system.structlog_configurator import configure_structlog
from configgate.versions import version_newer

EXIT_INCOMPATIBLE = 1
EXIT_CONFIG_ERROR = 2
EXIT_REGISTRY_DEFECT = 3

_REGISTRY_DEFECTS = (EmptyRegistryError, UnsortedRegistryError, MalformedVersionError)


def _fail(message: str, exit_code: int) -> NoReturn:
    click.echo(click.style(f"Error: {message}", fg="red"), err=True)
    sys.exit(exit_code)


def _build_evaluator() -> ConfigEvaluator:
    """Create the evaluator, exiting if the shipped registry is broken."""
    try:
        return ConfigEvaluator()
    except _REGISTRY_DEFECTS as e:
        _fail(f"Change registry is broken: {e}", EXIT_REGISTRY_DEFECT)


def _load_config(ctx: click.Context) -> ConfigState:
    manager: ConfigManager = ctx.obj["config_manager"]
    try:
        state = manager.load()
    except ConfigLoadError as e:
        _fail(str(e), EXIT_CONFIG_ERROR)
    configure_structlog(state.logging)
    return state


def _summary(text: str) -> str:
    """Get the first non-empty line of a migration notice."""
    return next((line.strip() for line in text.splitlines() if line.strip()), "")


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Configuration file (default: $CONFIGGATE_CONFIG or the data dir config)",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None) -> None:
    """Configuration version compatibility gate.

    Checks the config_version declared in a configuration against the
    registered backwards-incompatible changes.
    """
    ctx.ensure_object(dict)
    ctx.obj["config_manager"] = ConfigManager(config_path=config_path)


@cli.command()
@click.option("--verbose", "-v", is_flag=True, help="Print a confirmation when the check passes")
@click.pass_context
def check(ctx: click.Context, verbose: bool) -> None:
    """Fail with migration instructions if the config is incompatible."""
    state = _load_config(ctx)
    evaluator = _build_evaluator()

    try:
        evaluator.evaluate(state)
    except IncompatibleConfigError as e:
        click.echo(str(e), err=True)
        sys.exit(EXIT_INCOMPATIBLE)
    except MalformedVersionError as e:
        _fail(str(e), EXIT_REGISTRY_DEFECT)

    if verbose:
        declared = state.config_version or "unset"
        click.echo(
            click.style(
                f"Configuration is compatible (declared version: {declared}, "
                f"latest: {evaluator.latest_version})",
                fg="green",
            )
        )


@cli.command("list-changes")
@click.option("--since", default=None, help="Only list changes newer than this version")
@click.pass_context
def list_changes(ctx: click.Context, since: str | None) -> None:
    """List registered changes and whether they apply to the config."""
    state = _load_config(ctx)
    registry: ChangeRegistry = _build_evaluator().registry

    try:
        changes = [
            change
            for change in registry.all_changes()
            if since is None or version_newer(change.version, since)
        ]
    except MalformedVersionError as e:
        raise click.BadParameter(str(e), param_hint="--since") from e

    if not changes:
        click.echo("No registered changes.")
        return

    for change in changes:
        applies = change.applies(state)
        status_icon = "✓" if applies else "-"
        color = "yellow" if applies else None
        click.echo(
            click.style(
                f"  {status_icon} {change.version}  {_summary(change.render(state))}", fg=color
            )
        )


@cli.command("latest-version")
def latest_version() -> None:
    """Print the latest version known to the change registry."""
    click.echo(_build_evaluator().latest_version)


@cli.command("set-version")
@click.argument("version")
@click.pass_context
def set_version(ctx: click.Context, version: str) -> None:
    """Record VERSION as the config version after migrating."""
    manager: ConfigManager = ctx.obj["config_manager"]
    try:
        manager.set_config_version(version)
    except MalformedVersionError as e:
        raise click.BadParameter(str(e), param_hint="VERSION") from e
    except ConfigLoadError as e:
        _fail(str(e), EXIT_CONFIG_ERROR)

    click.echo(click.style(f"config_version set to {version}", fg="green"))


def main() -> None:
    """Entry point for the config gate CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
