"""Remote adapter: the only component that talks to the backend.

Backend records are normalized into immutable ``WorkOrderCard`` models here,
and every backend failure leaves this module as a typed ``WorkOrderError``.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Any, Self

from pydantic import ValidationError

from shopboard.adapters.backend.protocol import (
    PROFILES,
    TICKETS,
    VEHICLES,
    FilterClause,
    SortClause,
)
from shopboard.core.errors import (
    NetworkError,
    WorkOrderError,
    WorkOrderNotFoundError,
    WorkOrderValidationError,
)
from shopboard.core.filters import matches, split_filter
from shopboard.core.models.entities import WorkOrderCard
from shopboard.core.models.enums import ChangeKind, Priority, WorkOrderStatus
from shopboard.core.time import parse_timestamp, utc_now
from shopboard.core.utils import BackgroundTasks

if TYPE_CHECKING:
    from collections.abc import Awaitable, Iterable, Mapping
    from datetime import datetime
    from types import TracebackType

    from shopboard.adapters.backend.protocol import (
        BackendClient,
        ChangeEvent,
        ChangeFeed,
        Record,
    )
    from shopboard.core.models.entities import FilterSpec, MoveRequest
    from shopboard.services.types import (
        ActivityCallback,
        DeleteCallback,
        UpsertCallback,
        WorkOrderId,
    )

log = logging.getLogger(__name__)

# Card field -> ticket column accepted by patch().
PATCH_FIELD_MAP: dict[str, str] = {
    "assigned_mechanic_id": "primary_mechanic_id",
    "est_complete_at": "estimated_completion_date",
    "priority": "priority",
    "description": "description",
}


def _first(*values: Any) -> Any:
    for value in values:
        if value:
            return value
    return None


def ticket_to_card(
    ticket: Record,
    vehicle: Record | None = None,
    mechanic_name: str | None = None,
    *,
    now: datetime | None = None,
) -> WorkOrderCard:
    """Build a card from a ticket record and its joined vehicle/mechanic rows."""
    status = WorkOrderStatus.coerce(ticket.get("status"))
    if status is None:
        raise WorkOrderValidationError(
            f"Unknown status {ticket.get('status')!r}",
            work_order_id=ticket.get("id"),
            field_name="status",
        )
    record_id = str(ticket["id"])
    created_at = parse_timestamp(ticket.get("created_at"))
    updated_at = parse_timestamp(ticket.get("updated_at")) or created_at
    if created_at is None or updated_at is None:
        raise WorkOrderValidationError(
            "Ticket has no creation time",
            work_order_id=record_id,
            field_name="created_at",
        )
    # Status change time is not tracked separately; updated_at stands in for it.
    elapsed = ((now or utc_now()) - updated_at).total_seconds()
    vehicle = vehicle or {}
    return WorkOrderCard(
        id=record_id,
        external_ref=ticket.get("ticket_number") or record_id[-8:],
        status=status,
        priority=Priority.coerce(ticket.get("priority")) or Priority.NORMAL,
        assigned_mechanic_id=ticket.get("primary_mechanic_id") or None,
        assigned_mechanic_name=mechanic_name,
        vehicle_plate=_first(vehicle.get("reg_no"), vehicle.get("license_no")),
        vehicle_make=vehicle.get("make") or None,
        vehicle_model=vehicle.get("model") or None,
        vehicle_year=vehicle.get("year") or None,
        description=ticket.get("description") or None,
        notes_count=int(ticket.get("notes_count") or 0),
        attachments_count=int(ticket.get("attachments_count") or 0),
        time_in_status_seconds=max(0, math.floor(elapsed)),
        created_at=created_at,
        updated_at=updated_at,
        started_at=parse_timestamp(ticket.get("work_started_at")),
        est_complete_at=parse_timestamp(ticket.get("estimated_completion_date")),
    )


def _backend_filter(spec: FilterSpec | None) -> list[FilterClause]:
    """Translate the backend-evaluable part of ``spec`` into ticket clauses."""
    remote, _ = split_filter(spec)
    clauses: list[FilterClause] = []
    if remote.mechanic_id is not None:
        clauses.append(FilterClause("primary_mechanic_id", "eq", remote.mechanic_id))
    if remote.date_from is not None:
        clauses.append(FilterClause("created_at", "gte", remote.date_from))
    if remote.date_to is not None:
        clauses.append(FilterClause("created_at", "lte", remote.date_to))
    return clauses


def _patch_value(work_order_id: str, name: str, value: Any) -> Any:
    match name:
        case "priority":
            if value is None:
                return None
            priority = Priority.coerce(value)
            if priority is None:
                raise WorkOrderValidationError(
                    f"Invalid priority: {value!r}", work_order_id=work_order_id, field_name=name
                )
            return priority
        case "est_complete_at":
            if value is None:
                return None
            parsed = parse_timestamp(value)
            if parsed is None:
                raise WorkOrderValidationError(
                    f"Invalid date: {value!r}", work_order_id=work_order_id, field_name=name
                )
            return parsed
        case _:
            if value is not None and not isinstance(value, str):
                raise WorkOrderValidationError(
                    f"{name} must be text", work_order_id=work_order_id, field_name=name
                )
            return value


def normalize_patch(work_order_id: str, fields: Mapping[str, Any]) -> dict[str, Any]:
    """Validate card-level patch fields and coerce their values.

    Raises WorkOrderValidationError for a status key, an unknown key or an
    invalid value.
    """
    changes: dict[str, Any] = {}
    for name, value in fields.items():
        if name == "status":
            raise WorkOrderValidationError(
                "Use move() to change status", work_order_id=work_order_id, field_name=name
            )
        if name not in PATCH_FIELD_MAP:
            raise WorkOrderValidationError(
                f"Field '{name}' cannot be patched",
                work_order_id=work_order_id,
                field_name=name,
            )
        changes[name] = _patch_value(work_order_id, name, value)
    return changes


class FeedSubscription:
    """Owned handle for one open ticket change feed."""

    def __init__(
        self,
        adapter: RemoteAdapter,
        feed: ChangeFeed,
        on_upsert: UpsertCallback,
        on_delete: DeleteCallback,
        on_activity: ActivityCallback | None = None,
    ) -> None:
        self._adapter = adapter
        self._feed = feed
        self._on_upsert = on_upsert
        self._on_delete = on_delete
        self._on_activity = on_activity
        self._tasks = BackgroundTasks(owner="feed")
        self._closed = False
        feed.on_change(self._handle_change)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def close(self) -> None:
        """Stop all further callbacks, including resolutions already in flight."""
        if self._closed:
            return
        self._closed = True
        self._feed.close()
        self._tasks.cancel()

    async def aclose(self) -> None:
        self.close()
        await self._tasks.shutdown()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    def _handle_change(self, event: ChangeEvent) -> None:
        if self._closed:
            return
        if self._on_activity is not None:
            self._on_activity()
        record_id = event.record_id
        if record_id is None:
            log.debug("Ignoring change event without an id", extra={"kind": str(event.kind)})
            return
        if event.kind == ChangeKind.DELETE:
            self._on_delete(record_id)
            return
        self._tasks.spawn(self._resolve(record_id), name=f"resolve-{record_id}")

    async def _resolve(self, record_id: str) -> None:
        try:
            card = await self._adapter.get(record_id)
        except WorkOrderNotFoundError:
            if not self._closed:
                self._on_delete(record_id)
            return
        except WorkOrderError as exc:
            log.warning(
                "Could not resolve pushed work order",
                extra={"work_order_id": record_id, "code": exc.code},
            )
            return
        if self._closed:
            return
        self._on_upsert(card)


class RemoteAdapter:
    """List, move, patch and subscribe against a ``BackendClient``."""

    def __init__(self, backend: BackendClient) -> None:
        self._backend = backend

    async def _call[T](self, awaitable: Awaitable[T], what: str) -> T:
        try:
            return await awaitable
        except WorkOrderError:
            raise
        except Exception as exc:
            raise NetworkError(f"{what} failed: {exc}", cause=exc) from exc

    async def _resolve_records(self, tickets: Iterable[Record]) -> list[WorkOrderCard]:
        tickets = list(tickets)
        vehicle_ids = sorted({str(t["vehicle_id"]) for t in tickets if t.get("vehicle_id")})
        mechanic_ids = sorted(
            {str(t["primary_mechanic_id"]) for t in tickets if t.get("primary_mechanic_id")}
        )

        vehicles: dict[str, Record] = {}
        if vehicle_ids:
            rows = await self._call(
                self._backend.list_records(VEHICLES, [FilterClause("id", "in", vehicle_ids)]),
                "Loading vehicles",
            )
            vehicles = {str(row["id"]): row for row in rows}

        names: dict[str, str] = {}
        if mechanic_ids:
            rows = await self._call(
                self._backend.list_records(PROFILES, [FilterClause("id", "in", mechanic_ids)]),
                "Loading mechanics",
            )
            names = {str(row["id"]): row.get("name") for row in rows if row.get("name")}

        now = utc_now()
        cards: list[WorkOrderCard] = []
        for ticket in tickets:
            try:
                card = ticket_to_card(
                    ticket,
                    vehicles.get(str(ticket.get("vehicle_id"))),
                    names.get(str(ticket.get("primary_mechanic_id"))),
                    now=now,
                )
            except (WorkOrderValidationError, ValidationError) as exc:
                log.warning(
                    "Skipping malformed ticket record",
                    extra={"work_order_id": ticket.get("id"), "error": str(exc)},
                )
                continue
            cards.append(card)
        return cards

    async def list(self, spec: FilterSpec | None = None) -> list[WorkOrderCard]:
        """Fetch cards matching ``spec``, newest first."""
        tickets = await self._call(
            self._backend.list_records(
                TICKETS,
                _backend_filter(spec),
                [SortClause("created_at", descending=True)],
            ),
            "Listing work orders",
        )
        cards = await self._resolve_records(tickets)
        return [card for card in cards if matches(card, spec)]

    async def get(self, work_order_id: WorkOrderId) -> WorkOrderCard:
        """Fetch and resolve one work order."""
        rows = await self._call(
            self._backend.list_records(TICKETS, [FilterClause("id", "eq", work_order_id)]),
            "Loading work order",
        )
        if not rows:
            raise WorkOrderNotFoundError(work_order_id)
        cards = await self._resolve_records(rows[:1])
        if not cards:
            raise NetworkError(
                "Backend returned a malformed work order", work_order_id=work_order_id
            )
        return cards[0]

    async def _update(self, work_order_id: str, fields: Record) -> WorkOrderCard:
        record = await self._call(
            self._backend.update_record(TICKETS, work_order_id, fields),
            "Updating work order",
        )
        cards = await self._resolve_records([record])
        if not cards:
            raise NetworkError(
                "Backend returned a malformed work order", work_order_id=work_order_id
            )
        return cards[0]

    async def move(self, request: MoveRequest) -> WorkOrderCard:
        """Change status; returns the authoritative card."""
        now = utc_now()
        fields: Record = {"status": request.to_status.value, "updated_at": now}
        if (
            request.to_status == WorkOrderStatus.IN_PROGRESS
            and request.from_status != WorkOrderStatus.IN_PROGRESS
        ):
            fields["work_started_at"] = now
        if request.to_status == WorkOrderStatus.COMPLETED:
            fields["work_completed_at"] = now
        log.debug(
            "Moving work order",
            extra={"work_order_id": request.id, "to_status": request.to_status.value},
        )
        return await self._update(request.id, fields)

    async def patch(self, work_order_id: WorkOrderId, fields: Mapping[str, Any]) -> WorkOrderCard:
        """Update non-status fields; card field names are mapped to ticket columns."""
        update: Record = {}
        for name, value in normalize_patch(work_order_id, fields).items():
            update[PATCH_FIELD_MAP[name]] = value.value if isinstance(value, Priority) else value
        update["updated_at"] = utc_now()
        return await self._update(work_order_id, update)

    async def subscribe(
        self,
        on_upsert: UpsertCallback,
        on_delete: DeleteCallback,
        *,
        on_activity: ActivityCallback | None = None,
    ) -> FeedSubscription:
        """Open the ticket change feed; the caller owns and closes the handle."""
        feed = await self._call(
            self._backend.open_change_feed(TICKETS),
            "Opening change feed",
        )
        return FeedSubscription(self, feed, on_upsert, on_delete, on_activity)
