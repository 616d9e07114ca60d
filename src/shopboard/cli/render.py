"""Rich rendering of board snapshots."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.table import Table
from rich.text import Text

from shopboard.core.models.enums import Priority

if TYPE_CHECKING:
    from shopboard.core.models.entities import BoardSnapshot, ColumnView, WorkOrderCard

# Registry color names -> rich styles.
COLOR_STYLES: dict[str, str] = {
    "slate": "grey70",
    "blue": "blue",
    "red": "red",
    "purple": "magenta",
    "amber": "yellow",
    "green": "green",
    "gray": "grey50",
}

PRIORITY_STYLES: dict[Priority, str] = {
    Priority.LOW: "dim",
    Priority.NORMAL: "",
    Priority.HIGH: "yellow",
    Priority.URGENT: "bold red",
}


def format_duration(seconds: int | None) -> str:
    if seconds is None:
        return ""
    minutes, _ = divmod(max(seconds, 0), 60)
    hours, minutes = divmod(minutes, 60)
    days, hours = divmod(hours, 24)
    if days:
        return f"{days}d {hours}h"
    if hours:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def column_header(view: ColumnView) -> Text:
    style = COLOR_STYLES.get(view.color, "")
    header = Text(view.title, style=f"bold {style}".strip())
    if view.wip_limit is None:
        header.append(f" ({view.count})")
    else:
        header.append(
            f" ({view.count}/{view.wip_limit})",
            style="bold red" if view.over_limit else "",
        )
    if view.over_limit:
        header.append(" WIP", style="bold red")
    return header


def card_text(card: WorkOrderCard, *, pending: bool = False) -> Text:
    text = Text(card.external_ref, style="bold")
    if card.priority is not None:
        text.append(f" {card.priority.label}", style=PRIORITY_STYLES[card.priority])
    if pending:
        text.append(" ...", style="italic dim")
    vehicle = " ".join(
        part for part in (card.vehicle_make, card.vehicle_model) if part
    )
    if vehicle:
        text.append(f"\n{vehicle}")
    if card.vehicle_plate:
        text.append(f" [{card.vehicle_plate}]", style="dim")
    if card.assigned_mechanic_name or card.assigned_mechanic_id:
        text.append(f"\n{card.assigned_mechanic_name or card.assigned_mechanic_id}", style="cyan")
    age = format_duration(card.time_in_status_seconds)
    if age:
        text.append(f"\n{age} in status", style="dim")
    return text


def render_board(snapshot: BoardSnapshot) -> Table:
    """Build a table with one column per status, in board order."""
    state = "live" if snapshot.connectivity.is_connected else "polling"
    table = Table(
        title=f"Work orders ({snapshot.total}) - {state}",
        show_lines=False,
        expand=True,
    )
    for view in snapshot.columns:
        table.add_column(column_header(view), overflow="fold")

    depth = max((view.count for view in snapshot.columns), default=0)
    for row in range(depth):
        cells: list[Text | str] = []
        for view in snapshot.columns:
            if row < view.count:
                card = view.cards[row]
                cells.append(card_text(card, pending=card.id in snapshot.pending_ids))
            else:
                cells.append("")
        table.add_row(*cells)
    return table
