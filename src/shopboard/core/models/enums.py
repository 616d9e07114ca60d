"""Core domain enums."""

from __future__ import annotations

from enum import StrEnum


class WorkOrderStatus(StrEnum):
    """Work order status values for Kanban columns."""

    PENDING = "pending"
    APPROVED = "approved"
    DECLINED = "declined"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    READY_FOR_PICKUP = "ready_for_pickup"
    COMPLETED = "completed"

    @classmethod
    def coerce(cls, value: object) -> WorkOrderStatus | None:
        """Coerce a raw value to a known status, or return None."""
        if isinstance(value, WorkOrderStatus):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower()
            try:
                return cls(normalized)
            except ValueError:
                return None
        return None


class Priority(StrEnum):
    """Work order priority levels."""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def label(self) -> str:
        """Short display label."""
        return {
            self.LOW: "LOW",
            self.NORMAL: "NORM",
            self.HIGH: "HIGH",
            self.URGENT: "URG",
        }[self]

    @classmethod
    def coerce(cls, value: object) -> Priority | None:
        """Coerce a raw value to a known priority, or return None."""
        if isinstance(value, Priority):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                return None
        return None


class MutationKind(StrEnum):
    """Kind of optimistic mutation held against a card."""

    MOVE = "move"
    PATCH = "patch"


class MutationOutcome(StrEnum):
    """How a move/patch request was resolved."""

    APPLIED = "applied"
    NOOP = "noop"
    FAILED = "failed"
    EVICTED = "evicted"


class ChangeKind(StrEnum):
    """Change feed event kinds."""

    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class DragPhase(StrEnum):
    """Drag controller states."""

    IDLE = "idle"
    ARMED = "armed"
    DRAGGING = "dragging"


class DragSource(StrEnum):
    """Input device that started the current gesture."""

    POINTER = "pointer"
    KEYBOARD = "keyboard"


class BackendKind(StrEnum):
    """Bundled backend implementations."""

    MEMORY = "memory"
    SQLITE = "sqlite"
