"""Tests for the event bus and board wiring."""

from __future__ import annotations

import asyncio
import logging

import pytest

from shopboard.adapters.backend.memory import MemoryBackend
from shopboard.bootstrap import InMemoryEventBus, bootstrap_board, create_backend
from shopboard.config import BackendConfig, BoardConfig
from shopboard.core.errors import NetworkError
from shopboard.core.events import CardEvicted, CardMoved, MoveRequested
from shopboard.core.models.enums import WorkOrderStatus
from tests.helpers.fakes import WO_003, EventRecorder
from tests.helpers.wait import settle, wait_until

pytestmark = pytest.mark.unit


class TestEventBus:
    def test_handlers_filter_by_type(self) -> None:
        bus = InMemoryEventBus()
        moved: list[object] = []
        everything: list[object] = []
        bus.add_handler(moved.append, CardMoved)
        bus.add_handler(everything.append)

        bus.publish_nowait(CardEvicted(work_order_id="wo-1", reason="deleted"))
        bus.publish_nowait(
            CardMoved(
                work_order_id="wo-1",
                from_status=WorkOrderStatus.PENDING,
                to_status=WorkOrderStatus.APPROVED,
            )
        )

        assert [type(event) for event in moved] == [CardMoved]
        assert len(everything) == 2

    def test_failing_handler_does_not_stop_delivery(self, caplog) -> None:
        bus = InMemoryEventBus()
        received: list[object] = []

        def _boom(_event: object) -> None:
            raise RuntimeError("handler failure")

        bus.add_handler(_boom)
        bus.add_handler(received.append)
        with caplog.at_level(logging.ERROR):
            bus.publish_nowait(CardEvicted(work_order_id="wo-1", reason="deleted"))

        assert len(received) == 1
        assert any("Event handler failed" in message for message in caplog.messages)

    def test_removed_handler_stops_receiving(self) -> None:
        bus = InMemoryEventBus()
        received: list[object] = []
        handler = received.append
        bus.add_handler(handler)
        bus.remove_handler(handler)
        bus.publish_nowait(CardEvicted(work_order_id="wo-1", reason="deleted"))
        assert received == []

    async def test_subscribers_receive_future_events(self) -> None:
        bus = InMemoryEventBus()
        received: list[object] = []

        async def _consume() -> None:
            async for event in bus.subscribe(CardEvicted):
                received.append(event)
                return

        task = asyncio.create_task(_consume())
        await settle()
        await bus.publish(CardEvicted(work_order_id="wo-1", reason="absent"))
        await asyncio.wait_for(task, timeout=1)

        assert [event.reason for event in received] == ["absent"]

    async def test_slow_subscriber_misses_events_past_its_queue(self) -> None:
        bus = InMemoryEventBus(queue_size=2)
        stream = bus.subscribe()
        first = asyncio.create_task(anext(stream))
        await settle()

        for index in range(4):
            bus.publish_nowait(CardEvicted(work_order_id=f"wo-{index}", reason="deleted"))

        assert (await asyncio.wait_for(first, timeout=1)).work_order_id == "wo-0"
        assert (await anext(stream)).work_order_id == "wo-1"
        await stream.aclose()


class TestCreateBackend:
    async def test_memory_backend_uses_configured_latency(self) -> None:
        backend = await create_backend(BackendConfig(latency_ms=5, seed=False))
        assert isinstance(backend, MemoryBackend)
        assert backend.latency == 0.005
        assert await backend.list_records("tickets") == []


class TestBootstrap:
    async def test_keyboard_drop_moves_the_card(self) -> None:
        announcements: list[str] = []
        async with bootstrap_board(
            config=BoardConfig(), backend=MemoryBackend(), announce=announcements.append
        ) as ctx:
            recorder = EventRecorder.attach(ctx.event_bus)
            ctx.drag.pick_up(WO_003, WorkOrderStatus.PENDING, label="WO-003")
            ctx.drag.move_right()
            ctx.drag.drop()
            await ctx.engine.tasks.drain()

            assert ctx.engine.get_card(WO_003).status == WorkOrderStatus.APPROVED
            requested = recorder.of_type(MoveRequested)
            assert [(e.work_order_id, e.to_status) for e in requested] == [
                (WO_003, WorkOrderStatus.APPROVED)
            ]
            assert len(recorder.of_type(CardMoved)) == 1
            assert announcements[-1] == "Moved WO-003 to Approved."

    async def test_configured_wip_limit_reaches_the_engine(self) -> None:
        config = BoardConfig.model_validate({"columns": {"in_progress": {"wip_limit": 0}}})
        async with bootstrap_board(config=config, backend=MemoryBackend()) as ctx:
            column = ctx.engine.snapshot().column(WorkOrderStatus.IN_PROGRESS)
            assert column.wip_limit == 0
            assert column.over_limit

    async def test_exit_closes_backend_and_feed(self) -> None:
        backend = MemoryBackend()
        async with bootstrap_board(config=BoardConfig(), backend=backend) as ctx:
            await wait_until(lambda: backend.open_feeds == 1)
            assert ctx.engine.monitor.running

        assert backend.open_feeds == 0
        with pytest.raises(NetworkError):
            await backend.list_records("tickets")
