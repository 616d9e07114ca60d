"""Configuration command."""

from __future__ import annotations

import asyncio

import click
from rich.console import Console
from rich.syntax import Syntax

from shopboard.cli.commands.board import STATUS_CHOICES, CliOptions, pass_options
from shopboard.core.models.enums import WorkOrderStatus
from shopboard.paths import get_config_path, get_data_dir


@click.command(name="config")
@click.option("--paths", "show_paths", is_flag=True, help="Also print data and config locations")
@click.option(
    "--set-wip",
    "set_wip",
    type=(click.Choice(STATUS_CHOICES, case_sensitive=False), int),
    default=None,
    help="Set a column's WIP limit in the config file (negative disables it)",
)
@pass_options
def config_cmd(
    options: CliOptions, show_paths: bool, set_wip: tuple[str, int] | None
) -> None:
    """Print the resolved configuration as TOML."""
    console = Console()
    config = options.load_config()
    config_path = options.config_path or get_config_path()

    if set_wip is not None:
        status, limit = WorkOrderStatus(set_wip[0].lower()), set_wip[1]
        asyncio.run(config.update_wip_limit(config_path, status, limit if limit >= 0 else None))
        click.secho(f"Updated {status.value} WIP limit in {config_path}", fg="green")

    console.print(Syntax(config.to_toml(), "toml", theme="ansi_dark", background_color="default"))

    if show_paths:
        click.echo(f"config file: {config_path}")
        click.echo(f"data dir:    {get_data_dir()}")
        click.echo(f"database:    {config.backend.resolved_db_path()}")
