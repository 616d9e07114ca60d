"""Backend-side validation shared by the bundled backends."""

from __future__ import annotations

from typing import assert_never

from shopboard.core.errors import WorkOrderValidationError
from shopboard.core.models.enums import Priority, WorkOrderStatus

TICKET_WRITABLE_FIELDS = frozenset(
    {
        "status",
        "priority",
        "description",
        "primary_mechanic_id",
        "secondary_mechanic_id",
        "estimated_completion_date",
        "work_started_at",
        "work_completed_at",
        "updated_at",
    }
)


def allowed_targets(current: WorkOrderStatus) -> frozenset[WorkOrderStatus]:
    """Statuses a ticket may move to from ``current``."""
    every = frozenset(WorkOrderStatus)
    match current:
        case (
            WorkOrderStatus.PENDING
            | WorkOrderStatus.APPROVED
            | WorkOrderStatus.DECLINED
            | WorkOrderStatus.ASSIGNED
            | WorkOrderStatus.IN_PROGRESS
            | WorkOrderStatus.READY_FOR_PICKUP
        ):
            return every - {current}
        case WorkOrderStatus.COMPLETED:
            # Completed work can only be reopened for pickup.
            return frozenset({WorkOrderStatus.READY_FOR_PICKUP})
        case _:
            assert_never(current)


def validate_ticket_update(record_id: str, current: dict, fields: dict) -> None:
    """Raise WorkOrderValidationError for unknown fields or illegal values."""
    unknown = set(fields) - TICKET_WRITABLE_FIELDS
    if unknown:
        name = sorted(unknown)[0]
        raise WorkOrderValidationError(
            f"Field '{name}' cannot be updated",
            work_order_id=record_id,
            field_name=name,
        )

    if "priority" in fields and fields["priority"] is not None:
        if Priority.coerce(fields["priority"]) is None:
            raise WorkOrderValidationError(
                f"Invalid priority: {fields['priority']!r}",
                work_order_id=record_id,
                field_name="priority",
            )

    if "status" not in fields:
        return
    target = WorkOrderStatus.coerce(fields["status"])
    if target is None:
        raise WorkOrderValidationError(
            f"Invalid status: {fields['status']!r}",
            work_order_id=record_id,
            field_name="status",
        )
    source = WorkOrderStatus.coerce(current.get("status"))
    if source is None or source == target:
        return
    if target not in allowed_targets(source):
        raise WorkOrderValidationError(
            f"Cannot move work order from {source.value} to {target.value}",
            work_order_id=record_id,
            field_name="status",
        )
