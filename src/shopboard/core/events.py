"""Domain events and event bus contracts."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Protocol
from uuid import uuid4

from shopboard.core.time import utc_now

if TYPE_CHECKING:
    from shopboard.core.models.entities import BoardSnapshot, ConnectivityState
    from shopboard.core.models.enums import MutationKind, WorkOrderStatus


def _new_event_id() -> str:
    return uuid4().hex


class DomainEvent(Protocol):
    """Base protocol for all domain events."""

    @property
    def event_id(self) -> str: ...

    @property
    def occurred_at(self) -> datetime: ...


EventHandler = Callable[[DomainEvent], None]


class EventBus(Protocol):
    """Fan-out bus for domain events."""

    async def publish(self, event: DomainEvent) -> None:
        """Publish a single event to subscribers."""
        ...

    def publish_nowait(self, event: DomainEvent) -> None:
        """Publish from synchronous code (cache writes are never awaited)."""
        ...

    def subscribe(self, event_type: type[DomainEvent] | None = None) -> AsyncIterator[DomainEvent]:
        """Subscribe to events (optionally filtered by type)."""
        ...

    def add_handler(
        self,
        handler: EventHandler,
        event_type: type[DomainEvent] | None = None,
    ) -> None:
        """Register a sync handler for events (UI bridges use this)."""
        ...

    def remove_handler(self, handler: EventHandler) -> None:
        """Remove a previously registered handler."""
        ...


@dataclass(frozen=True)
class BoardChanged:
    snapshot: BoardSnapshot
    event_id: str = field(default_factory=_new_event_id)
    occurred_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class CardMoved:
    work_order_id: str
    from_status: WorkOrderStatus
    to_status: WorkOrderStatus
    event_id: str = field(default_factory=_new_event_id)
    occurred_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class CardEvicted:
    work_order_id: str
    reason: str
    event_id: str = field(default_factory=_new_event_id)
    occurred_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class MutationFailed:
    work_order_id: str
    kind: MutationKind
    code: str
    message: str
    event_id: str = field(default_factory=_new_event_id)
    occurred_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class ConnectivityChanged:
    state: ConnectivityState
    event_id: str = field(default_factory=_new_event_id)
    occurred_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class MoveRequested:
    """Emitted by the drag controller when a gesture resolves to a column."""

    work_order_id: str
    to_status: WorkOrderStatus
    event_id: str = field(default_factory=_new_event_id)
    occurred_at: datetime = field(default_factory=utc_now)
