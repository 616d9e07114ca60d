"""Status registry: column order, labels and WIP limits for the board."""

from __future__ import annotations

from typing import TYPE_CHECKING

from shopboard.core.models.entities import ColumnConfig
from shopboard.core.models.enums import WorkOrderStatus

if TYPE_CHECKING:
    from collections.abc import Mapping

COLUMN_ORDER: tuple[WorkOrderStatus, ...] = (
    WorkOrderStatus.PENDING,
    WorkOrderStatus.APPROVED,
    WorkOrderStatus.ASSIGNED,
    WorkOrderStatus.IN_PROGRESS,
    WorkOrderStatus.READY_FOR_PICKUP,
    WorkOrderStatus.COMPLETED,
    WorkOrderStatus.DECLINED,
)

STATUS_LABELS: dict[WorkOrderStatus, str] = {
    WorkOrderStatus.PENDING: "Pending",
    WorkOrderStatus.APPROVED: "Approved",
    WorkOrderStatus.DECLINED: "Declined",
    WorkOrderStatus.ASSIGNED: "Assigned",
    WorkOrderStatus.IN_PROGRESS: "In Progress",
    WorkOrderStatus.READY_FOR_PICKUP: "Ready for Pickup",
    WorkOrderStatus.COMPLETED: "Completed",
}

STATUS_COLORS: dict[WorkOrderStatus, str] = {
    WorkOrderStatus.PENDING: "slate",
    WorkOrderStatus.APPROVED: "blue",
    WorkOrderStatus.DECLINED: "red",
    WorkOrderStatus.ASSIGNED: "purple",
    WorkOrderStatus.IN_PROGRESS: "amber",
    WorkOrderStatus.READY_FOR_PICKUP: "green",
    WorkOrderStatus.COMPLETED: "gray",
}

DEFAULT_WIP_LIMITS: dict[WorkOrderStatus, int] = {
    WorkOrderStatus.IN_PROGRESS: 10,
}


def _check_exhaustive() -> None:
    expected = set(WorkOrderStatus)
    for name, table in (
        ("COLUMN_ORDER", set(COLUMN_ORDER)),
        ("STATUS_LABELS", set(STATUS_LABELS)),
        ("STATUS_COLORS", set(STATUS_COLORS)),
    ):
        if table != expected:
            missing = sorted(expected - table)
            raise RuntimeError(f"{name} does not cover every status; missing {missing}")
    if len(COLUMN_ORDER) != len(expected):
        raise RuntimeError("COLUMN_ORDER lists a status more than once")


_check_exhaustive()


class StatusRegistry:
    """Immutable column table, optionally with configured WIP overrides."""

    def __init__(self, wip_limits: Mapping[WorkOrderStatus, int | None] | None = None) -> None:
        limits: dict[WorkOrderStatus, int | None] = dict(DEFAULT_WIP_LIMITS)
        if wip_limits:
            limits.update(wip_limits)
        self._configs: dict[WorkOrderStatus, ColumnConfig] = {
            status: ColumnConfig(
                status=status,
                title=STATUS_LABELS[status],
                order=index,
                wip_limit=limits.get(status),
                color=STATUS_COLORS[status],
            )
            for index, status in enumerate(COLUMN_ORDER)
        }

    def column_order(self) -> list[WorkOrderStatus]:
        """Return the fixed display order."""
        return list(COLUMN_ORDER)

    @staticmethod
    def coerce_status(value: object) -> WorkOrderStatus | None:
        """Map a raw status value onto a known column, or None."""
        return WorkOrderStatus.coerce(value)

    def config(self, status: object) -> ColumnConfig:
        """Return column metadata; unknown values fall back to the pending entry."""
        known = WorkOrderStatus.coerce(status)
        if known is None:
            fallback = self._configs[WorkOrderStatus.PENDING]
            return fallback.model_copy(update={"title": str(status)})
        return self._configs[known]

    def configs(self) -> list[ColumnConfig]:
        return [self._configs[status] for status in COLUMN_ORDER]

    def label(self, status: object) -> str:
        """Return the display title, or the raw value for unknown statuses."""
        known = WorkOrderStatus.coerce(status)
        if known is None:
            return str(status)
        return self._configs[known].title

    def wip_limit(self, status: WorkOrderStatus) -> int | None:
        return self._configs[status].wip_limit

    def neighbor(self, status: WorkOrderStatus, step: int) -> WorkOrderStatus:
        """Return the column ``step`` places away, clamped to the board edges."""
        index = COLUMN_ORDER.index(status) + step
        index = max(0, min(index, len(COLUMN_ORDER) - 1))
        return COLUMN_ORDER[index]


DEFAULT_REGISTRY = StatusRegistry()
