"""Board commands: show, move, assign, watch."""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import click
from rich.console import Console

from shopboard.cli.render import render_board
from shopboard.core.events import BoardChanged, CardMoved, ConnectivityChanged, MutationFailed
from shopboard.core.models.entities import FilterSpec
from shopboard.core.models.enums import BackendKind, Priority, WorkOrderStatus

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from shopboard.bootstrap import BoardContext
    from shopboard.config import BoardConfig
    from shopboard.core.models.entities import MutationResult, WorkOrderCard

STATUS_CHOICES = tuple(status.value for status in WorkOrderStatus)
PRIORITY_CHOICES = tuple(priority.value for priority in Priority)


@dataclass
class CliOptions:
    """Options shared by every board command (set on the root group)."""

    config_path: Path | None = None
    backend: BackendKind | None = None
    db_path: Path | None = None
    debug: bool = False

    def load_config(self) -> BoardConfig:
        from shopboard.config import BoardConfig

        config = BoardConfig.load(self.config_path)
        if self.db_path is not None:
            # A database path implies the SQLite backend unless one was named.
            config.backend.kind = BackendKind.SQLITE
            config.backend.db_path = str(self.db_path)
        if self.backend is not None:
            config.backend.kind = self.backend
        return config


pass_options = click.make_pass_decorator(CliOptions, ensure=True)


def _filter_options[F](func: F) -> F:
    options = [
        click.option("--mechanic", "mechanic_id", default=None, help="Only this mechanic's work"),
        click.option(
            "--priority",
            "priorities",
            multiple=True,
            type=click.Choice(PRIORITY_CHOICES, case_sensitive=False),
            help="Priority to include (repeatable)",
        ),
        click.option("--make", "vehicle_make", default=None, help="Vehicle make"),
        click.option("--search", default=None, help="Free-text search"),
        click.option("--from", "date_from", default=None, help="Created on or after (ISO date)"),
        click.option("--to", "date_to", default=None, help="Created on or before (ISO date)"),
    ]
    for option in reversed(options):
        func = option(func)  # type: ignore[operator]
    return func


def _build_filter(
    mechanic_id: str | None,
    priorities: tuple[str, ...],
    vehicle_make: str | None,
    search: str | None,
    date_from: str | None,
    date_to: str | None,
) -> FilterSpec:
    return FilterSpec(
        mechanic_id=mechanic_id,
        priority=tuple(Priority(value.lower()) for value in priorities) or None,
        vehicle_make=vehicle_make,
        search=search,
        date_from=date_from,
        date_to=date_to,
    )


def _find_card(ctx: BoardContext, reference: str) -> WorkOrderCard | None:
    """Look a card up by id, external reference or short id."""
    card = ctx.engine.get_card(reference)
    if card is not None:
        return card
    needle = reference.casefold()
    for view in ctx.engine.snapshot().columns:
        for candidate in view.cards:
            if needle in (candidate.external_ref.casefold(), candidate.short_id.casefold()):
                return candidate
    return None


def _report(console: Console, result: MutationResult, success: str) -> None:
    if result.ok:
        console.print(f"[green]{success}[/]", highlight=False)
        return
    message = str(result.error) if result.error else f"Request ended as {result.outcome.value}"
    raise click.ClickException(message)


type BoardAction = Callable[[BoardContext], Awaitable[None]]


async def _with_board(
    options: CliOptions, filter_spec: FilterSpec | None, body: BoardAction
) -> None:
    from shopboard.bootstrap import bootstrap_board

    config = options.load_config()
    async with bootstrap_board(config=config, filter_spec=filter_spec) as ctx:
        await body(ctx)


def _run(options: CliOptions, filter_spec: FilterSpec | None, body: BoardAction) -> None:
    from shopboard.debug_log import export_logs_to_file, setup_debug_logging
    from shopboard.paths import get_debug_log_path

    if options.debug:
        setup_debug_logging()
    try:
        asyncio.run(_with_board(options, filter_spec, body))
    finally:
        if options.debug:
            log_path = get_debug_log_path()
            written = export_logs_to_file(log_path)
            click.secho(f"Wrote {written} log entries to {log_path}", fg="cyan", err=True)


@click.command()
@_filter_options
@pass_options
def show(
    options: CliOptions,
    mechanic_id: str | None,
    priorities: tuple[str, ...],
    vehicle_make: str | None,
    search: str | None,
    date_from: str | None,
    date_to: str | None,
) -> None:
    """Print the board columns with counts and WIP flags."""
    console = Console()
    spec = _build_filter(mechanic_id, priorities, vehicle_make, search, date_from, date_to)

    async def _show(ctx: BoardContext) -> None:
        console.print(render_board(ctx.engine.snapshot()))

    _run(options, spec, _show)


@click.command()
@click.argument("work_order")
@click.argument("status", type=click.Choice(STATUS_CHOICES, case_sensitive=False))
@pass_options
def move(options: CliOptions, work_order: str, status: str) -> None:
    """Move WORK_ORDER (id or WO number) to STATUS."""
    console = Console()
    target = WorkOrderStatus(status.lower())

    async def _move(ctx: BoardContext) -> None:
        card = _find_card(ctx, work_order)
        if card is None:
            raise click.ClickException(f"Work order {work_order} not found")
        result = await ctx.engine.move(card.id, target)
        title = ctx.engine.registry.label(target)
        _report(console, result, f"Moved {card.external_ref} to {title}")

    _run(options, None, _move)


@click.command()
@click.argument("work_order")
@click.argument("mechanic_id")
@pass_options
def assign(options: CliOptions, work_order: str, mechanic_id: str) -> None:
    """Assign WORK_ORDER to MECHANIC_ID ("none" clears the assignment)."""
    console = Console()
    mechanic = None if mechanic_id.lower() == "none" else mechanic_id

    async def _assign(ctx: BoardContext) -> None:
        card = _find_card(ctx, work_order)
        if card is None:
            raise click.ClickException(f"Work order {work_order} not found")
        result = await ctx.engine.patch(card.id, {"assigned_mechanic_id": mechanic})
        who = result.card.assigned_mechanic_name if result.card else None
        _report(console, result, f"Assigned {card.external_ref} to {who or mechanic or 'nobody'}")

    _run(options, None, _assign)


@click.command()
@click.option(
    "--duration",
    type=float,
    default=None,
    help="Stop after this many seconds (default: until interrupted)",
)
@_filter_options
@pass_options
def watch(
    options: CliOptions,
    duration: float | None,
    mechanic_id: str | None,
    priorities: tuple[str, ...],
    vehicle_make: str | None,
    search: str | None,
    date_from: str | None,
    date_to: str | None,
) -> None:
    """Stream board changes until interrupted."""
    console = Console()
    spec = _build_filter(mechanic_id, priorities, vehicle_make, search, date_from, date_to)

    async def _stream(ctx: BoardContext) -> None:
        console.print(render_board(ctx.engine.snapshot()))
        async for event in ctx.event_bus.subscribe():
            match event:
                case CardMoved(work_order_id=work_order_id, from_status=src, to_status=dst):
                    console.print(f"[cyan]{work_order_id}[/] {src.value} -> {dst.value}")
                case MutationFailed(work_order_id=work_order_id, message=message):
                    console.print(f"[red]{work_order_id}: {message}[/]", highlight=False)
                case ConnectivityChanged(state=state):
                    label = "live" if state.is_connected else "polling"
                    console.print(f"[yellow]Change feed {label}[/]")
                case BoardChanged(snapshot=snapshot):
                    console.print(f"[dim]Board v{snapshot.version}: {snapshot.total} cards[/]")

    async def _watch(ctx: BoardContext) -> None:
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(_stream(ctx), timeout=duration)

    with contextlib.suppress(KeyboardInterrupt):
        _run(options, spec, _watch)
