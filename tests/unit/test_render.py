"""Tests for rich board rendering."""

from __future__ import annotations

import pytest
from rich.console import Console

from shopboard.cli.render import card_text, column_header, format_duration, render_board
from shopboard.core.models.entities import BoardSnapshot, ColumnView, ConnectivityState
from shopboard.core.models.enums import Priority, WorkOrderStatus
from shopboard.core.time import utc_now
from tests.helpers.fakes import make_card

pytestmark = pytest.mark.unit


def _render(renderable) -> str:
    console = Console(width=200, record=True, color_system=None)
    console.print(renderable)
    return console.export_text()


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [
        (None, ""),
        (59, "0m"),
        (125, "2m"),
        (3 * 3600 + 300, "3h 5m"),
        (2 * 86400 + 7200, "2d 2h"),
    ],
)
def test_format_duration(seconds: int | None, expected: str) -> None:
    assert format_duration(seconds) == expected


def test_column_header_flags_wip_overflow() -> None:
    cards = tuple(make_card(f"wo-{i}", status=WorkOrderStatus.IN_PROGRESS) for i in range(3))
    view = ColumnView(
        status=WorkOrderStatus.IN_PROGRESS,
        title="In Progress",
        color="amber",
        cards=cards,
        wip_limit=2,
    )
    assert column_header(view).plain == "In Progress (3/2) WIP"


def test_column_header_without_limit() -> None:
    view = ColumnView(status=WorkOrderStatus.PENDING, title="Pending", color="slate")
    assert column_header(view).plain == "Pending (0)"


def test_card_text_shows_vehicle_mechanic_and_pending_marker() -> None:
    card = make_card(
        "wo-1",
        external_ref="WO-001",
        priority=Priority.URGENT,
        vehicle_make="Toyota",
        vehicle_model="Camry",
        vehicle_plate="ABC-1234",
        assigned_mechanic_name="Alex Rodriguez",
        time_in_status_seconds=120,
    )
    text = card_text(card, pending=True).plain
    assert text.splitlines() == [
        "WO-001 URG ...",
        "Toyota Camry [ABC-1234]",
        "Alex Rodriguez",
        "2m in status",
    ]


def test_render_board_lists_columns_in_order() -> None:
    card = make_card("wo-1", external_ref="WO-001")
    snapshot = BoardSnapshot(
        version=1,
        columns=(
            ColumnView(
                status=WorkOrderStatus.PENDING, title="Pending", color="slate", cards=(card,)
            ),
            ColumnView(status=WorkOrderStatus.APPROVED, title="Approved", color="blue"),
        ),
        connectivity=ConnectivityState(is_connected=False, last_update=utc_now()),
    )
    output = _render(render_board(snapshot))
    assert "Work orders (1) - polling" in output
    assert output.index("Pending") < output.index("Approved")
    assert "WO-001" in output
