"""Application bootstrap and dependency injection.

This module provides the BoardContext which wires the backend, remote
adapter, board engine, drag controller and event bus together.

Usage:
    async with bootstrap_board(config_path) as ctx:
        # ctx.engine is started and loaded
        await ctx.engine.move(work_order_id, WorkOrderStatus.APPROVED)
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, assert_never

from shopboard.adapters.backend.memory import MemoryBackend
from shopboard.adapters.backend.sample_data import sample_tables
from shopboard.config import BoardConfig
from shopboard.core.events import DomainEvent, EventBus, EventHandler, MoveRequested
from shopboard.core.models.enums import BackendKind
from shopboard.limits import EVENT_QUEUE_SIZE
from shopboard.services.board import BoardEngine
from shopboard.services.drag import DragController
from shopboard.services.remote import RemoteAdapter

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path

    from shopboard.adapters.backend.protocol import BackendClient
    from shopboard.config import BackendConfig
    from shopboard.core.models.entities import FilterSpec
    from shopboard.core.models.enums import WorkOrderStatus
    from shopboard.services.types import AnnounceCallback

log = logging.getLogger(__name__)


class InMemoryEventBus:
    """Fans board events out to synchronous handlers and async subscribers.

    The engine publishes from synchronous cache code through
    :meth:`publish_nowait`; handlers run inline (event recorders, the drag
    wiring) and subscribers such as the ``watch`` command read from their own
    bounded queue. A subscriber that falls ``EVENT_QUEUE_SIZE`` events behind
    misses the newer ones; ``BoardChanged`` carries a full snapshot, so the
    next delivered event brings it back in step.
    """

    def __init__(self, queue_size: int = EVENT_QUEUE_SIZE) -> None:
        self._handlers: list[tuple[type[DomainEvent] | None, EventHandler]] = []
        self._queues: list[tuple[type[DomainEvent] | None, asyncio.Queue[DomainEvent]]] = []
        self._queue_size = queue_size
        self._lock = asyncio.Lock()

    def publish_nowait(self, event: DomainEvent) -> None:
        """Deliver ``event`` to matching handlers, then to subscriber queues."""
        for filter_type, handler in list(self._handlers):
            if filter_type is None or isinstance(event, filter_type):
                try:
                    handler(event)
                except Exception:
                    log.exception("Event handler failed", extra={"event": type(event).__name__})

        for filter_type, queue in list(self._queues):
            if filter_type is None or isinstance(event, filter_type):
                try:
                    queue.put_nowait(event)
                except asyncio.QueueFull:
                    log.debug("Subscriber queue full", extra={"event": type(event).__name__})

    async def publish(self, event: DomainEvent) -> None:
        async with self._lock:
            self.publish_nowait(event)

    def add_handler(
        self,
        handler: EventHandler,
        event_type: type[DomainEvent] | None = None,
    ) -> None:
        self._handlers.append((event_type, handler))

    def remove_handler(self, handler: EventHandler) -> None:
        self._handlers = [(t, h) for t, h in self._handlers if h is not handler]

    async def subscribe(
        self, event_type: type[DomainEvent] | None = None
    ) -> AsyncIterator[DomainEvent]:
        """Yield board events published after the call, until the caller stops iterating."""
        queue: asyncio.Queue[DomainEvent] = asyncio.Queue(maxsize=self._queue_size)
        async with self._lock:
            self._queues.append((event_type, queue))
        try:
            while True:
                yield await queue.get()
        finally:
            async with self._lock:
                self._queues = [(t, q) for t, q in self._queues if q is not queue]


@dataclass
class BoardContext:
    """Central container for board dependencies.

    Attributes:
        config: Board configuration.
        backend: Backend client serving work order records.
        event_bus: Domain event bus for pub/sub.
        remote: Remote adapter over the backend.
        engine: Board cache and mutation engine.
        drag: Drag controller wired to ``engine.move``.
    """

    config: BoardConfig
    backend: BackendClient
    event_bus: EventBus = field(default_factory=InMemoryEventBus)

    remote: RemoteAdapter = field(init=False)
    engine: BoardEngine = field(init=False)
    drag: DragController = field(init=False)

    async def close(self) -> None:
        """Clean up all resources."""
        if hasattr(self, "engine"):
            await self.engine.close()
        await self.backend.close()


async def create_backend(config: BackendConfig, db_path: Path | None = None) -> BackendClient:
    """Build the configured bundled backend."""
    match config.kind:
        case BackendKind.MEMORY:
            return MemoryBackend(seed=config.seed, latency=config.latency_ms / 1000)
        case BackendKind.SQLITE:
            from shopboard.adapters.db.backend import SqliteBackend

            path = db_path or config.resolved_db_path()
            backend = SqliteBackend(path)
            await backend.initialize()
            if config.seed:
                added = await backend.seed(sample_tables())
                if added:
                    log.info("Seeded %d sample rows into %s", added, path)
            return backend
        case _:
            assert_never(config.kind)


def create_board_context(
    config: BoardConfig,
    backend: BackendClient,
    *,
    event_bus: EventBus | None = None,
    filter_spec: FilterSpec | None = None,
    announce: AnnounceCallback | None = None,
) -> BoardContext:
    """Wire services around an existing backend (the engine is not started)."""
    ctx = BoardContext(config=config, backend=backend, event_bus=event_bus or InMemoryEventBus())
    registry = config.build_registry()
    ctx.remote = RemoteAdapter(backend)
    ctx.engine = BoardEngine(
        ctx.remote,
        registry=registry,
        event_bus=ctx.event_bus,
        filter_spec=filter_spec,
        check_interval=config.sync.check_interval,
        liveness_threshold=config.sync.liveness_threshold,
        poll_interval=config.sync.poll_interval,
    )

    engine = ctx.engine
    bus = ctx.event_bus

    def _on_move_requested(work_order_id: str, to_status: WorkOrderStatus) -> None:
        bus.publish_nowait(MoveRequested(work_order_id=work_order_id, to_status=to_status))
        engine.tasks.spawn(engine.move(work_order_id, to_status), name=f"drag-move-{work_order_id}")

    ctx.drag = DragController(registry, on_move_requested=_on_move_requested, announce=announce)
    return ctx


@asynccontextmanager
async def bootstrap_board(
    config_path: Path | None = None,
    *,
    config: BoardConfig | None = None,
    backend: BackendClient | None = None,
    db_path: Path | None = None,
    filter_spec: FilterSpec | None = None,
    announce: AnnounceCallback | None = None,
) -> AsyncIterator[BoardContext]:
    """Bootstrap a started board context and close everything on exit.

    Args:
        config_path: Path to config.toml (default location when None).
        config: Optional pre-loaded config (for testing).
        backend: Optional backend to use instead of the configured one.
        db_path: Optional SQLite path override.
        filter_spec: Initial board filter.
        announce: Screen-reader announcement sink for the drag controller.

    Yields:
        BoardContext with a started engine.
    """
    if config is None:
        config = BoardConfig.load(config_path)
    if backend is None:
        backend = await create_backend(config.backend, db_path)

    ctx = create_board_context(
        config,
        backend,
        filter_spec=filter_spec,
        announce=announce,
    )
    try:
        await ctx.engine.start()
        yield ctx
    finally:
        await ctx.close()
