"""Root CLI command registration."""

from __future__ import annotations

from pathlib import Path

import click

from shopboard import __version__
from shopboard.cli.commands.board import CliOptions, assign, move, show, watch
from shopboard.cli.commands.settings import config_cmd
from shopboard.core.models.enums import BackendKind


@click.group(invoke_without_command=True)
@click.option("--version", is_flag=True, help="Show version and exit")
@click.option(
    "--backend",
    type=click.Choice([kind.value for kind in BackendKind], case_sensitive=False),
    default=None,
    help="Backend serving the board (default: from config)",
)
@click.option(
    "--db",
    "db_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to SQLite database (implies --backend sqlite)",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    envvar="SHOPBOARD_CONFIG",
    help="Path to config.toml",
)
@click.option("--debug", is_flag=True, help="Capture debug logs and export them on exit")
@click.pass_context
def cli(
    ctx: click.Context,
    version: bool,
    backend: str | None,
    db_path: Path | None,
    config_path: Path | None,
    debug: bool,
) -> None:
    """Work-order Kanban board for repair shops."""
    if version:
        click.echo(f"shopboard {__version__}")
        ctx.exit(0)

    ctx.obj = CliOptions(
        config_path=config_path,
        backend=BackendKind(backend.lower()) if backend else None,
        db_path=db_path,
        debug=debug,
    )

    if ctx.invoked_subcommand is None:
        ctx.invoke(show)


cli.add_command(show)
cli.add_command(move)
cli.add_command(assign)
cli.add_command(watch)
cli.add_command(config_cmd)
