"""Core domain entities.

Cards are immutable: every cache write replaces the whole model, so readers
holding an earlier card (or snapshot) never observe it changing underneath them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime  # noqa: TC003 - Pydantic needs runtime access
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from shopboard.core.models.enums import (
    MutationKind,
    MutationOutcome,
    Priority,
    WorkOrderStatus,
)
from shopboard.core.time import ensure_aware, parse_timestamp

if TYPE_CHECKING:
    from shopboard.core.errors import WorkOrderError


class DomainModel(BaseModel):
    """Base model with common config."""

    model_config = ConfigDict(from_attributes=True, frozen=True)


class WorkOrderCard(DomainModel):
    """One work order as tracked by the board (Kanban card)."""

    id: str
    external_ref: str
    status: WorkOrderStatus
    priority: Priority | None = None
    assigned_mechanic_id: str | None = None
    assigned_mechanic_name: str | None = None
    vehicle_plate: str | None = None
    vehicle_make: str | None = None
    vehicle_model: str | None = None
    vehicle_year: int | None = None
    description: str | None = None
    notes_count: int = 0
    attachments_count: int = 0
    time_in_status_seconds: int | None = None
    created_at: datetime
    updated_at: datetime
    started_at: datetime | None = None
    est_complete_at: datetime | None = None

    @field_validator("created_at", "updated_at", "started_at", "est_complete_at", mode="after")
    @classmethod
    def _make_aware(cls, value: datetime | None) -> datetime | None:
        return ensure_aware(value) if value is not None else None

    @property
    def short_id(self) -> str:
        """Return shortened ID for display."""
        return self.id[-8:]

    def with_changes(self, **changes: Any) -> WorkOrderCard:
        """Return a copy with the given fields replaced."""
        return self.model_copy(update=changes)


class ColumnConfig(DomainModel):
    """Static metadata for one status column."""

    status: WorkOrderStatus
    title: str
    order: int
    wip_limit: int | None = None
    color: str = "slate"


class FilterSpec(DomainModel):
    """Board filter; every populated field narrows the result."""

    mechanic_id: str | None = None
    priority: tuple[Priority, ...] | None = None
    vehicle_make: str | None = None
    search: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None

    @field_validator("date_from", "date_to", mode="before")
    @classmethod
    def _parse_bound(cls, value: object) -> object:
        if isinstance(value, date) and not isinstance(value, datetime):
            return datetime(value.year, value.month, value.day)
        if isinstance(value, str):
            return parse_timestamp(value)
        return value

    @field_validator("date_from", "date_to", mode="after")
    @classmethod
    def _bound_aware(cls, value: datetime | None) -> datetime | None:
        return ensure_aware(value) if value is not None else None

    @field_validator("mechanic_id", "vehicle_make", "search", mode="before")
    @classmethod
    def _blank_is_absent(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class MoveRequest(DomainModel):
    """Status transition request sent to the backend."""

    id: str
    to_status: WorkOrderStatus
    from_status: WorkOrderStatus | None = None


class ConnectivityState(DomainModel):
    """Push-feed liveness as reported to the UI."""

    is_connected: bool
    last_update: datetime


class ColumnView(DomainModel):
    """Derived view of one column for rendering."""

    status: WorkOrderStatus
    title: str
    color: str
    cards: tuple[WorkOrderCard, ...] = Field(default_factory=tuple)
    wip_limit: int | None = None

    @property
    def count(self) -> int:
        return len(self.cards)

    @property
    def over_limit(self) -> bool:
        """True when the column holds more cards than its soft WIP limit."""
        return self.wip_limit is not None and self.count > self.wip_limit


class BoardSnapshot(DomainModel):
    """Immutable view of the whole board at one cache version."""

    version: int
    columns: tuple[ColumnView, ...]
    pending_ids: frozenset[str] = frozenset()
    connectivity: ConnectivityState

    @property
    def total(self) -> int:
        return sum(column.count for column in self.columns)

    def column(self, status: WorkOrderStatus) -> ColumnView:
        for view in self.columns:
            if view.status == status:
                return view
        raise KeyError(status)


@dataclass(slots=True)
class PendingMutation:
    """Optimistic mutation awaiting the backend's answer."""

    previous: WorkOrderCard
    kind: MutationKind
    fields: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class MutationResult:
    """Structured result of a move/patch request."""

    outcome: MutationOutcome
    card: WorkOrderCard | None = None
    error: WorkOrderError | None = None

    @property
    def ok(self) -> bool:
        return self.outcome in (MutationOutcome.APPLIED, MutationOutcome.NOOP)
