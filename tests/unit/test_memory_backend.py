"""Tests for the in-process backend and shared backend rules."""

from __future__ import annotations

import pytest

from shopboard.adapters.backend.memory import MemoryBackend
from shopboard.adapters.backend.protocol import TICKETS, ChangeEvent, FilterClause
from shopboard.adapters.backend.rules import allowed_targets, validate_ticket_update
from shopboard.core.errors import NetworkError, WorkOrderNotFoundError, WorkOrderValidationError
from shopboard.core.models.enums import ChangeKind, WorkOrderStatus
from tests.helpers.fakes import WO_003, ticket_row

pytestmark = pytest.mark.unit


class TestRules:
    def test_completed_only_reopens_for_pickup(self) -> None:
        assert allowed_targets(WorkOrderStatus.COMPLETED) == {WorkOrderStatus.READY_FOR_PICKUP}

    @pytest.mark.parametrize(
        "status", [s for s in WorkOrderStatus if s != WorkOrderStatus.COMPLETED]
    )
    def test_other_statuses_move_anywhere(self, status: WorkOrderStatus) -> None:
        assert allowed_targets(status) == set(WorkOrderStatus) - {status}

    def test_unknown_field_is_rejected(self) -> None:
        with pytest.raises(WorkOrderValidationError) as exc_info:
            validate_ticket_update("wo-1", {"status": "pending"}, {"ticket_number": "WO-9"})
        assert exc_info.value.field_name == "ticket_number"

    def test_same_status_write_is_allowed(self) -> None:
        validate_ticket_update("wo-1", {"status": "completed"}, {"status": "completed"})


class TestMemoryBackend:
    async def test_fail_next_raises_once(self) -> None:
        backend = MemoryBackend()
        backend.fail_next("list_records")
        with pytest.raises(NetworkError):
            await backend.list_records(TICKETS)
        assert len(await backend.list_records(TICKETS)) == 6
        assert backend.calls["list_records"] == 2

    async def test_update_returns_copy(self) -> None:
        backend = MemoryBackend()
        updated = await backend.update_record(TICKETS, WO_003, {"priority": "high"})
        updated["priority"] = "low"
        stored = backend.get_record(TICKETS, WO_003)
        assert stored is not None
        assert stored["priority"] == "high"

    async def test_update_missing_record(self) -> None:
        with pytest.raises(WorkOrderNotFoundError):
            await MemoryBackend().update_record(TICKETS, "tkt-missing", {"priority": "high"})

    async def test_filters_and_empty_store(self) -> None:
        backend = MemoryBackend(seed=False)
        assert await backend.list_records(TICKETS) == []
        backend.insert_record(TICKETS, ticket_row("tkt-1", primary_mechanic_id="mech-tom"))
        backend.insert_record(TICKETS, ticket_row("tkt-2"))
        rows = await backend.list_records(
            TICKETS, [FilterClause("primary_mechanic_id", "eq", "mech-tom")]
        )
        assert [row["id"] for row in rows] == ["tkt-1"]

    async def test_feed_predicate_limits_delivery(self) -> None:
        backend = MemoryBackend()
        events: list[ChangeEvent] = []
        feed = await backend.open_change_feed(
            TICKETS, lambda record: record.get("priority") == "urgent"
        )
        feed.on_change(events.append)

        await backend.update_record(TICKETS, WO_003, {"priority": "urgent"})
        await backend.update_record(TICKETS, WO_003, {"priority": "low"})
        backend.delete_record(TICKETS, WO_003)

        assert [event.kind for event in events] == [ChangeKind.UPDATE]
        assert events[0].record["priority"] == "urgent"
        feed.close()
        assert backend.open_feeds == 0
