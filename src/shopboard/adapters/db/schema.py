"""SQLModel schema for the local ticket store."""

# NOTE: Avoid `from __future__ import annotations` because SQLModel evaluates
# annotations at class creation time.

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import Column, DateTime
from sqlmodel import Field, SQLModel

from shopboard.core.models.enums import Priority, WorkOrderStatus


def _new_id() -> str:
    return uuid4().hex


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _timestamp(*, nullable: bool = True, index: bool = False) -> Column:
    # Timestamps are written as aware UTC values.
    return Column(DateTime(timezone=True), nullable=nullable, index=index)


class Profile(SQLModel, table=True):
    """Customer or employee profile."""

    __tablename__ = "profiles"  # type: ignore[bad-override]

    id: str = Field(default_factory=_new_id, primary_key=True)
    name: str = Field(default="", index=True)
    role: str = Field(default="customer", index=True)
    phone: str | None = Field(default=None)


class Vehicle(SQLModel, table=True):
    """Customer vehicle."""

    __tablename__ = "vehicles"  # type: ignore[bad-override]

    id: str = Field(default_factory=_new_id, primary_key=True)
    owner_id: str | None = Field(default=None, foreign_key="profiles.id")
    make: str | None = Field(default=None, index=True)
    model: str | None = Field(default=None)
    year: int | None = Field(default=None)
    reg_no: str | None = Field(default=None)
    license_no: str | None = Field(default=None)


class Ticket(SQLModel, table=True):
    """Repair ticket (work order)."""

    __tablename__ = "tickets"  # type: ignore[bad-override]

    id: str = Field(default_factory=_new_id, primary_key=True)
    ticket_number: str | None = Field(default=None, index=True)
    user_id: str | None = Field(default=None, foreign_key="profiles.id")
    vehicle_id: str | None = Field(default=None, foreign_key="vehicles.id")
    primary_mechanic_id: str | None = Field(default=None, foreign_key="profiles.id", index=True)
    secondary_mechanic_id: str | None = Field(default=None, foreign_key="profiles.id")
    status: WorkOrderStatus = Field(default=WorkOrderStatus.PENDING, index=True)
    priority: Priority | None = Field(default=Priority.NORMAL)
    description: str | None = Field(default=None)
    estimated_completion_date: datetime | None = Field(default=None, sa_column=_timestamp())
    work_started_at: datetime | None = Field(default=None, sa_column=_timestamp())
    work_completed_at: datetime | None = Field(default=None, sa_column=_timestamp())
    created_at: datetime = Field(
        default_factory=_utc_now, sa_column=_timestamp(nullable=False, index=True)
    )
    updated_at: datetime = Field(default_factory=_utc_now, sa_column=_timestamp(nullable=False))


TABLE_MODELS: dict[str, type[SQLModel]] = {
    "tickets": Ticket,
    "vehicles": Vehicle,
    "profiles": Profile,
}
