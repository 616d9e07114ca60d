"""Tests for pointer and keyboard drag gestures."""

from __future__ import annotations

import pytest

from shopboard.core.models.enums import DragPhase, DragSource, WorkOrderStatus
from shopboard.services.drag import DragController, column_drop_id, resolve_drop_target

pytestmark = pytest.mark.unit


@pytest.fixture
def requests() -> list[tuple[str, WorkOrderStatus]]:
    return []


@pytest.fixture
def announcements() -> list[str]:
    return []


@pytest.fixture
def drag(requests, announcements) -> DragController:
    return DragController(
        on_move_requested=lambda card_id, status: requests.append((card_id, status)),
        announce=announcements.append,
    )


class TestDropTargets:
    @pytest.mark.parametrize(
        ("target", "expected"),
        [
            ("column-in_progress", WorkOrderStatus.IN_PROGRESS),
            ("approved", WorkOrderStatus.APPROVED),
            (WorkOrderStatus.DECLINED, WorkOrderStatus.DECLINED),
            ("card-tkt-123", None),
            ("column-archived", None),
            (None, None),
            (42, None),
        ],
    )
    def test_resolve_drop_target(self, target: object, expected) -> None:
        assert resolve_drop_target(target) == expected

    @pytest.mark.parametrize("status", list(WorkOrderStatus))
    def test_column_ids_resolve_back(self, status: WorkOrderStatus) -> None:
        assert resolve_drop_target(column_drop_id(status)) == status


class TestPointerDrag:
    def test_short_press_is_a_click(self, drag, requests, announcements) -> None:
        drag.pointer_down("wo-1", WorkOrderStatus.PENDING, 0, 0, label="WO-001")
        assert drag.phase == DragPhase.ARMED
        assert drag.pointer_move(3, 4) is False
        assert drag.pointer_up("column-approved") is None
        assert drag.phase == DragPhase.IDLE
        assert requests == []
        assert announcements == []

    def test_drag_activates_at_eight_pixels(self, drag, announcements) -> None:
        drag.pointer_down("wo-1", WorkOrderStatus.PENDING, 10, 10, label="WO-001")
        assert drag.pointer_move(10, 17.9) is False
        assert drag.pointer_move(10, 18) is True
        assert drag.source == DragSource.POINTER
        assert announcements == ["Picked up WO-001 in Pending."]

    def test_drop_on_column_emits_one_move(self, drag, requests, announcements) -> None:
        drag.pointer_down("wo-1", WorkOrderStatus.PENDING, 0, 0, label="WO-001")
        drag.pointer_move(20, 0)
        assert drag.drag_over("column-approved") == WorkOrderStatus.APPROVED
        assert drag.pointer_up("column-approved") == WorkOrderStatus.APPROVED

        assert requests == [("wo-1", WorkOrderStatus.APPROVED)]
        assert announcements[-1] == "Moved WO-001 to Approved."
        assert drag.phase == DragPhase.IDLE

    def test_drop_on_a_card_cancels(self, drag, requests, announcements) -> None:
        drag.drag_start("wo-1", WorkOrderStatus.PENDING, label="WO-001")
        assert drag.drag_over("card-wo-2") is None
        assert drag.drag_end("card-wo-2") is None
        assert requests == []
        assert announcements == ["Cancelled moving WO-001."]

    def test_drop_outside_any_column_cancels(self, drag, requests) -> None:
        drag.drag_start("wo-1", WorkOrderStatus.PENDING)
        assert drag.drag_end(None) is None
        assert requests == []
        assert not drag.active

    def test_drop_on_own_column_is_forwarded(self, drag, requests, announcements) -> None:
        drag.drag_start("wo-1", WorkOrderStatus.PENDING, label="WO-001")
        drag.drag_end("column-pending")
        # The engine turns this into a no-op; the controller still reports it.
        assert requests == [("wo-1", WorkOrderStatus.PENDING)]
        assert announcements == ["WO-001 returned to Pending."]

    def test_drag_end_without_drag_is_ignored(self, drag, requests) -> None:
        assert drag.drag_end("column-approved") is None
        assert requests == []

    def test_label_defaults_to_card_id(self, drag, announcements) -> None:
        drag.drag_start("wo-1", WorkOrderStatus.ASSIGNED)
        drag.cancel()
        assert announcements == ["Cancelled moving wo-1."]


class TestKeyboardDrag:
    def test_pick_up_announces_instructions(self, drag, announcements) -> None:
        drag.pick_up("wo-1", WorkOrderStatus.APPROVED, label="WO-004")
        assert drag.source == DragSource.KEYBOARD
        assert announcements == [
            "Picked up WO-004 in Approved. Use arrow keys to move between columns, "
            "space or enter to drop."
        ]

    def test_arrows_walk_columns_and_drop_moves(self, drag, requests, announcements) -> None:
        drag.pick_up("wo-1", WorkOrderStatus.APPROVED, label="WO-004")
        assert drag.move_right() == WorkOrderStatus.ASSIGNED
        assert drag.move_right() == WorkOrderStatus.IN_PROGRESS
        assert drag.move_left() == WorkOrderStatus.ASSIGNED
        assert drag.drop() == WorkOrderStatus.ASSIGNED

        assert requests == [("wo-1", WorkOrderStatus.ASSIGNED)]
        assert announcements[1:] == [
            "WO-004 is over Assigned.",
            "WO-004 is over In Progress.",
            "WO-004 is over Assigned.",
            "Moved WO-004 to Assigned.",
        ]

    def test_arrows_stop_at_board_edges(self, drag) -> None:
        drag.pick_up("wo-1", WorkOrderStatus.PENDING)
        assert drag.move_left() == WorkOrderStatus.PENDING
        drag.cancel()
        drag.pick_up("wo-1", WorkOrderStatus.DECLINED)
        assert drag.move_right() == WorkOrderStatus.DECLINED

    def test_escape_cancels(self, drag, requests, announcements) -> None:
        drag.pick_up("wo-1", WorkOrderStatus.PENDING, label="WO-003")
        drag.move_right()
        drag.cancel()
        assert requests == []
        assert announcements[-1] == "Cancelled moving WO-003."
        assert drag.drop() is None

    def test_arrows_without_pick_up_do_nothing(self, drag, announcements) -> None:
        assert drag.move_left() is None
        assert drag.move_right() is None
        assert announcements == []
