"""Board cache and optimistic mutation engine.

The engine owns the client-side copy of the visible work orders. Local
moves and patches are applied optimistically and resolved against the
backend's answer; records arriving from the change feed or a refresh all go
through :meth:`BoardEngine.merge_incoming`, which refuses to overwrite a newer
local copy and defers records for cards that have a mutation in flight.
Deletes leave a tombstone, so a read that began before the delete cannot
bring the card back.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Self

from shopboard.core.errors import WorkOrderError, WorkOrderNotFoundError, WorkOrderValidationError
from shopboard.core.events import (
    BoardChanged,
    CardEvicted,
    CardMoved,
    ConnectivityChanged,
    MutationFailed,
)
from shopboard.core.filters import EMPTY_FILTER, matches
from shopboard.core.models.entities import (
    BoardSnapshot,
    ColumnView,
    MoveRequest,
    MutationResult,
    PendingMutation,
)
from shopboard.core.models.enums import MutationKind, MutationOutcome, WorkOrderStatus
from shopboard.core.status_registry import DEFAULT_REGISTRY
from shopboard.core.time import utc_now
from shopboard.core.utils import BackgroundTasks
from shopboard.limits import (
    CHECK_INTERVAL_SECONDS,
    LIVENESS_THRESHOLD_SECONDS,
    POLL_INTERVAL_SECONDS,
)
from shopboard.services.connectivity import ConnectivityMonitor
from shopboard.services.remote import normalize_patch

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime
    from types import TracebackType

    from shopboard.core.events import DomainEvent, EventBus
    from shopboard.core.models.entities import ConnectivityState, FilterSpec, WorkOrderCard
    from shopboard.core.status_registry import StatusRegistry
    from shopboard.services.remote import FeedSubscription, RemoteAdapter
    from shopboard.services.types import SnapshotListener, WorkOrderId

log = logging.getLogger(__name__)


def _column_sort_key(card: WorkOrderCard) -> tuple[float, str]:
    return (-card.created_at.timestamp(), card.id)


@dataclass(frozen=True, slots=True)
class Tombstone:
    """Marks a deleted work order so that reads begun before the delete cannot revive it."""

    epoch: int
    deleted_at: datetime


class BoardEngine:
    """Authoritative client copy of the board with optimistic mutations."""

    def __init__(
        self,
        remote: RemoteAdapter,
        *,
        registry: StatusRegistry | None = None,
        event_bus: EventBus | None = None,
        filter_spec: FilterSpec | None = None,
        check_interval: float = CHECK_INTERVAL_SECONDS,
        liveness_threshold: float = LIVENESS_THRESHOLD_SECONDS,
        poll_interval: float = POLL_INTERVAL_SECONDS,
    ) -> None:
        self._remote = remote
        self._registry = registry or DEFAULT_REGISTRY
        self._events = event_bus
        self._filter: FilterSpec = filter_spec or EMPTY_FILTER
        self._cards: dict[str, WorkOrderCard] = {}
        self._pending: dict[str, PendingMutation] = {}
        self._held: dict[str, WorkOrderCard] = {}
        self._tombstones: dict[str, Tombstone] = {}
        self._delete_epoch = 0
        self._locks: dict[str, asyncio.Lock] = {}
        self._listeners: list[SnapshotListener] = []
        self._version = 0
        self._snapshot: BoardSnapshot | None = None
        self._subscription: FeedSubscription | None = None
        self._tasks = BackgroundTasks(owner="board")
        self._started = False
        self._closed = False
        self._monitor = ConnectivityMonitor(
            self._fallback_refresh,
            check_interval=check_interval,
            liveness_threshold=liveness_threshold,
            poll_interval=poll_interval,
            on_change=self._on_connectivity_change,
        )

    # --- Lifecycle ---

    async def start(self) -> None:
        """Open the change feed, load the board and start the connectivity timers."""
        if self._started:
            return
        self._started = True
        subscribed = await self._subscribe()
        loaded = await self.refresh()
        if not (subscribed and loaded):
            self._monitor.mark_stale()
        self._monitor.start()

    async def close(self) -> None:
        """Stop timers, close the feed and cancel background work."""
        if self._closed:
            return
        self._closed = True
        await self._monitor.stop()
        if self._subscription is not None:
            await self._subscription.aclose()
            self._subscription = None
        await self._tasks.shutdown()

    async def __aenter__(self) -> Self:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def _subscribe(self) -> bool:
        if self._subscription is not None:
            return True
        try:
            subscription = await self._remote.subscribe(
                self.merge_incoming,
                self.on_delete,
                on_activity=self._monitor.record_activity,
            )
        except WorkOrderError as exc:
            log.warning("Change feed unavailable: %s", exc, extra={"code": exc.code})
            return False
        if self._closed:
            await subscription.aclose()
            return False
        self._subscription = subscription
        return True

    async def _fallback_refresh(self) -> bool:
        # The poll loop also retries a feed that failed to open.
        await self._subscribe()
        return await self.refresh()

    # --- Read surface ---

    @property
    def monitor(self) -> ConnectivityMonitor:
        return self._monitor

    @property
    def subscription(self) -> FeedSubscription | None:
        return self._subscription

    @property
    def filter(self) -> FilterSpec:
        return self._filter

    @property
    def registry(self) -> StatusRegistry:
        return self._registry

    @property
    def tasks(self) -> BackgroundTasks:
        return self._tasks

    @property
    def version(self) -> int:
        return self._version

    def get_card(self, work_order_id: WorkOrderId) -> WorkOrderCard | None:
        return self._cards.get(work_order_id)

    def is_pending(self, work_order_id: WorkOrderId) -> bool:
        return work_order_id in self._pending

    def held_card(self, work_order_id: WorkOrderId) -> WorkOrderCard | None:
        return self._held.get(work_order_id)

    def connectivity(self) -> ConnectivityState:
        return self._monitor.state()

    def get_cards_by_status(self) -> dict[WorkOrderStatus, list[WorkOrderCard]]:
        """Group visible cards by status; every column is present, newest first."""
        grouped: dict[WorkOrderStatus, list[WorkOrderCard]] = {
            status: [] for status in self._registry.column_order()
        }
        for card in self._cards.values():
            grouped[card.status].append(card)
        for cards in grouped.values():
            cards.sort(key=_column_sort_key)
        return grouped

    def columns(self) -> tuple[ColumnView, ...]:
        grouped = self.get_cards_by_status()
        views: list[ColumnView] = []
        for status in self._registry.column_order():
            config = self._registry.config(status)
            views.append(
                ColumnView(
                    status=status,
                    title=config.title,
                    color=config.color,
                    cards=tuple(grouped[status]),
                    wip_limit=config.wip_limit,
                )
            )
        return tuple(views)

    def snapshot(self) -> BoardSnapshot:
        """Immutable view of the current cache version."""
        if self._snapshot is None or self._snapshot.version != self._version:
            self._snapshot = BoardSnapshot(
                version=self._version,
                columns=self.columns(),
                pending_ids=frozenset(self._pending),
                connectivity=self._monitor.state(),
            )
        return self._snapshot

    def add_listener(self, listener: SnapshotListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: SnapshotListener) -> None:
        self._listeners = [item for item in self._listeners if item is not listener]

    # --- Notifications ---

    def _publish(self, event: DomainEvent) -> None:
        if self._events is not None:
            self._events.publish_nowait(event)

    def _changed(self) -> None:
        self._version += 1
        if not self._listeners and self._events is None:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                log.exception("Board listener failed")
        self._publish(BoardChanged(snapshot=snapshot))

    def _on_connectivity_change(self, state: ConnectivityState) -> None:
        self._publish(ConnectivityChanged(state=state))
        self._changed()

    # --- Merge ---

    def _evict(self, work_order_id: str, reason: str) -> bool:
        removed = self._cards.pop(work_order_id, None)
        had_pending = self._pending.pop(work_order_id, None) is not None
        had_held = self._held.pop(work_order_id, None) is not None
        lock = self._locks.get(work_order_id)
        if lock is not None and not lock.locked():
            del self._locks[work_order_id]
        if removed is None:
            return had_pending or had_held
        log.debug("Evicted work order", extra={"work_order_id": work_order_id, "reason": reason})
        self._publish(CardEvicted(work_order_id=work_order_id, reason=reason))
        return True

    def _hold(self, card: WorkOrderCard) -> None:
        current = self._held.get(card.id)
        if current is not None and current.updated_at > card.updated_at:
            return
        log.debug("Holding record behind pending mutation", extra={"work_order_id": card.id})
        self._held[card.id] = card

    def _bury(self, work_order_id: str) -> None:
        self._delete_epoch += 1
        self._tombstones[work_order_id] = Tombstone(self._delete_epoch, utc_now())

    def _outlived_delete(self, card: WorkOrderCard, read_epoch: int | None) -> bool:
        """False when ``card`` was read before its deletion and must stay dropped."""
        tombstone = self._tombstones.get(card.id)
        if tombstone is None:
            return True
        # A read begun after the delete is authoritative, as is a strictly newer record.
        if (read_epoch is not None and tombstone.epoch <= read_epoch) or (
            card.updated_at > tombstone.deleted_at
        ):
            del self._tombstones[card.id]
            return True
        log.debug("Dropped record for deleted work order", extra={"work_order_id": card.id})
        return False

    def _apply(self, card: WorkOrderCard, *, read_epoch: int | None = None) -> bool:
        """Merge one incoming card without notifying; returns True on a cache change."""
        if not self._outlived_delete(card, read_epoch):
            return False
        if card.id in self._pending:
            self._hold(card)
            return False
        if not matches(card, self._filter):
            return self._evict(card.id, reason="filtered")
        existing = self._cards.get(card.id)
        if existing is not None:
            if card.updated_at < existing.updated_at:
                log.debug(
                    "Rejected stale record",
                    extra={"work_order_id": card.id, "incoming": card.updated_at.isoformat()},
                )
                return False
            if card == existing:
                return False
        self._cards[card.id] = card
        return True

    def merge_incoming(self, card: WorkOrderCard) -> bool:
        """Single arbitration point for pushed and polled records."""
        if self._closed:
            return False
        changed = self._apply(card)
        if changed:
            self._changed()
        return changed

    def on_delete(self, work_order_id: WorkOrderId) -> None:
        """Delete wins: evict the card and forget any pending or held state."""
        if self._closed:
            return
        self._bury(work_order_id)
        if self._evict(work_order_id, reason="deleted"):
            self._changed()

    async def refresh(self) -> bool:
        """Reload the board; failures keep the last known state and return False."""
        if self._closed:
            return False
        spec = self._filter
        read_epoch = self._delete_epoch
        try:
            cards = await self._remote.list(spec)
        except WorkOrderError as exc:
            log.warning("Board refresh failed: %s", exc, extra={"code": exc.code})
            return False
        if self._closed:
            return False

        changed = False
        seen: set[str] = set()
        for card in cards:
            seen.add(card.id)
            changed = self._apply(card, read_epoch=read_epoch) or changed
        if spec is self._filter:
            for work_order_id in list(self._cards):
                if work_order_id not in seen and work_order_id not in self._pending:
                    changed = self._evict(work_order_id, reason="absent") or changed
        self._monitor.record_refresh()
        if changed:
            self._changed()
        return True

    def set_filter(self, spec: FilterSpec | None) -> None:
        """Replace the filter, drop cards it excludes and schedule a reload."""
        self._filter = spec or EMPTY_FILTER
        changed = False
        for work_order_id, card in list(self._cards.items()):
            if work_order_id in self._pending:
                continue
            if not matches(card, self._filter):
                changed = self._evict(work_order_id, reason="filtered") or changed
        if changed:
            self._changed()
        self._tasks.spawn(self.refresh(), name="filter-refresh")

    # --- Mutations ---

    def _lock_for(self, work_order_id: str) -> asyncio.Lock:
        lock = self._locks.get(work_order_id)
        if lock is None:
            lock = self._locks[work_order_id] = asyncio.Lock()
        return lock

    async def move(
        self,
        work_order_id: WorkOrderId,
        to_status: WorkOrderStatus | str,
    ) -> MutationResult:
        """Move a card to another column, optimistically."""
        target = WorkOrderStatus.coerce(to_status)
        if target is None:
            error = WorkOrderValidationError(
                f"Unknown status: {to_status!r}", work_order_id=work_order_id, field_name="status"
            )
            return MutationResult(MutationOutcome.FAILED, self._cards.get(work_order_id), error)
        if work_order_id not in self._cards:
            return MutationResult(MutationOutcome.NOOP)

        async with self._lock_for(work_order_id):
            card = self._cards.get(work_order_id)
            if card is None or self._closed:
                return MutationResult(MutationOutcome.NOOP)
            if card.status == target:
                return MutationResult(MutationOutcome.NOOP, card)

            entry = PendingMutation(previous=card, kind=MutationKind.MOVE, fields=("status",))
            self._pending[work_order_id] = entry
            self._cards[work_order_id] = card.with_changes(
                status=target,
                time_in_status_seconds=0,
                updated_at=utc_now(),
            )
            self._changed()

            request = MoveRequest(id=work_order_id, to_status=target, from_status=card.status)
            try:
                response = await self._remote.move(request)
            except WorkOrderError as exc:
                return self._resolve_failure(work_order_id, entry, exc)
            return self._resolve_success(work_order_id, entry, response)

    async def patch(self, work_order_id: WorkOrderId, fields: Mapping[str, Any]) -> MutationResult:
        """Update non-status fields, optimistically."""
        try:
            changes = normalize_patch(work_order_id, fields)
        except WorkOrderValidationError as exc:
            return MutationResult(MutationOutcome.FAILED, self._cards.get(work_order_id), exc)
        if work_order_id not in self._cards:
            return MutationResult(MutationOutcome.NOOP)

        async with self._lock_for(work_order_id):
            card = self._cards.get(work_order_id)
            if card is None or self._closed:
                return MutationResult(MutationOutcome.NOOP)
            if all(getattr(card, name) == value for name, value in changes.items()):
                return MutationResult(MutationOutcome.NOOP, card)

            optimistic = dict(changes)
            if (
                "assigned_mechanic_id" in changes
                and changes["assigned_mechanic_id"] != card.assigned_mechanic_id
            ):
                optimistic["assigned_mechanic_name"] = None
            entry = PendingMutation(
                previous=card, kind=MutationKind.PATCH, fields=tuple(sorted(changes))
            )
            self._pending[work_order_id] = entry
            self._cards[work_order_id] = card.with_changes(**optimistic, updated_at=utc_now())
            self._changed()

            try:
                response = await self._remote.patch(work_order_id, changes)
            except WorkOrderError as exc:
                return self._resolve_failure(work_order_id, entry, exc)
            return self._resolve_success(work_order_id, entry, response)

    def _resolve_success(
        self,
        work_order_id: str,
        entry: PendingMutation,
        response: WorkOrderCard,
    ) -> MutationResult:
        if self._pending.get(work_order_id) is not entry:
            # Deleted (or the engine closed) while the request was in flight.
            return MutationResult(MutationOutcome.EVICTED)
        del self._pending[work_order_id]

        final = response
        held = self._held.pop(work_order_id, None)
        if held is not None and held.updated_at >= response.updated_at:
            final = held

        if not matches(final, self._filter):
            self._evict(work_order_id, reason="filtered")
            self._changed()
            return MutationResult(MutationOutcome.APPLIED, final)

        self._cards[work_order_id] = final
        self._changed()
        if entry.kind == MutationKind.MOVE and entry.previous.status != final.status:
            self._publish(
                CardMoved(
                    work_order_id=work_order_id,
                    from_status=entry.previous.status,
                    to_status=final.status,
                )
            )
        return MutationResult(MutationOutcome.APPLIED, final)

    def _resolve_failure(
        self,
        work_order_id: str,
        entry: PendingMutation,
        error: WorkOrderError,
    ) -> MutationResult:
        if self._pending.get(work_order_id) is not entry:
            return MutationResult(MutationOutcome.EVICTED, error=error)
        del self._pending[work_order_id]
        held = self._held.pop(work_order_id, None)

        if isinstance(error, WorkOrderNotFoundError):
            self._bury(work_order_id)
            self._evict(work_order_id, reason="not_found")
            self._changed()
            return MutationResult(MutationOutcome.EVICTED, error=error)

        if matches(entry.previous, self._filter):
            self._cards[work_order_id] = entry.previous
        else:
            self._evict(work_order_id, reason="filtered")
        if held is not None:
            self._apply(held)
        self._changed()

        log.warning(
            "%s of work order %s failed: %s",
            entry.kind.value.capitalize(),
            work_order_id,
            error,
            extra={"code": error.code},
        )
        self._publish(
            MutationFailed(
                work_order_id=work_order_id,
                kind=entry.kind,
                code=error.code,
                message=str(error),
            )
        )
        return MutationResult(MutationOutcome.FAILED, self._cards.get(work_order_id), error)
