"""Grove config and init commands."""

import click
import yaml  # type: ignore[import-untyped]

from grove.commands._utils import console
from grove.config import GitProviderConfig, GroveConfig
from grove.exceptions import ConfigurationError
from grove.secrets import get_token


@click.group("config")
def config_group() -> None:
    """Show or change configuration."""


@config_group.command("show")
def config_show() -> None:
    click.echo(yaml.dump(GroveConfig.load().to_dict(), default_flow_style=False, sort_keys=False))


@config_group.command("get")
@click.argument("key")
def config_get(key: str) -> None:
    """Print a dotted key, e.g. notifications.ci_failed."""
    value = GroveConfig.load().get_value(key)
    if value is None:
        raise ConfigurationError(f"Unknown config key: {key}")
    click.echo(value)


@config_group.command("set")
@click.argument("key")
@click.argument("value")
def config_set(key: str, value: str) -> None:
    config = GroveConfig.load().set_value(key, value)
    config.save()
    console.print(f"[green]✓[/green] {key} = {config.get_value(key)}")


@click.command()
@click.option("--workspace-dir", default=None, help="Where task workspaces are created")
@click.option("--github/--no-github", default=True, help="Enable GitHub PR tracking")
@click.option("--org", default="", help="Default GitHub organization")
def init(workspace_dir: str | None, github: bool, org: str) -> None:
    """Write ~/.grove/config.yaml."""
    config = GroveConfig.load()
    if workspace_dir:
        config.workspace_dir = workspace_dir
    config.git = GitProviderConfig(org=org) if github else None
    config.save()
    console.print(f"[green]✓[/green] Wrote {GroveConfig.default_path()}")

    if config.git is not None and not get_token(config.git.token_env, config.git.token_key):
        console.print(f"[yellow]No token found.[/yellow] Set {config.git.token_env} to enable PR tracking.")
