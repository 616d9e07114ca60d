"""Drag interaction controller.

Turns pointer and keyboard gestures into a single "move card to column"
intent. The controller knows nothing about the backend; whoever owns it
wires ``on_move_requested`` to :meth:`BoardEngine.move`.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from shopboard.core.models.enums import DragPhase, DragSource, WorkOrderStatus
from shopboard.core.status_registry import DEFAULT_REGISTRY
from shopboard.limits import POINTER_ACTIVATION_DISTANCE

if TYPE_CHECKING:
    from shopboard.core.status_registry import StatusRegistry
    from shopboard.services.types import AnnounceCallback, MoveRequestedCallback, WorkOrderId

log = logging.getLogger(__name__)

COLUMN_DROP_PREFIX = "column-"
CARD_DROP_PREFIX = "card-"


def column_drop_id(status: WorkOrderStatus) -> str:
    return f"{COLUMN_DROP_PREFIX}{status.value}"


def resolve_drop_target(target: object) -> WorkOrderStatus | None:
    """Map a drop target to a column status; anything else resolves to None.

    Accepts a status, its string value, or a ``column-<status>`` drop-zone id.
    Dropping onto another card (``card-<id>``) is not a column drop.
    """
    if target is None:
        return None
    if isinstance(target, WorkOrderStatus):
        return target
    if not isinstance(target, str):
        return None
    if target.startswith(CARD_DROP_PREFIX):
        return None
    if target.startswith(COLUMN_DROP_PREFIX):
        target = target.removeprefix(COLUMN_DROP_PREFIX)
    return WorkOrderStatus.coerce(target)


class DragController:
    """State machine for one drag gesture at a time: idle, armed, dragging."""

    def __init__(
        self,
        registry: StatusRegistry | None = None,
        *,
        on_move_requested: MoveRequestedCallback | None = None,
        announce: AnnounceCallback | None = None,
        activation_distance: float = POINTER_ACTIVATION_DISTANCE,
    ) -> None:
        self._registry = registry or DEFAULT_REGISTRY
        self._on_move_requested = on_move_requested
        self._announce = announce
        self.activation_distance = activation_distance
        self._reset()

    def _reset(self) -> None:
        self.phase = DragPhase.IDLE
        self.source: DragSource | None = None
        self.card_id: WorkOrderId | None = None
        self.label: str | None = None
        self.from_status: WorkOrderStatus | None = None
        self.over_status: WorkOrderStatus | None = None
        self._origin: tuple[float, float] | None = None

    @property
    def active(self) -> bool:
        return self.phase == DragPhase.DRAGGING

    def _say(self, message: str) -> None:
        if self._announce is not None:
            self._announce(message)

    def _title(self, status: WorkOrderStatus) -> str:
        return self._registry.label(status)

    def _begin(
        self,
        card_id: WorkOrderId,
        status: WorkOrderStatus,
        source: DragSource,
        label: str | None,
    ) -> None:
        self.phase = DragPhase.DRAGGING
        self.source = source
        self.card_id = card_id
        self.label = label or card_id
        self.from_status = status
        self.over_status = status

    def _emit(self, to_status: WorkOrderStatus) -> None:
        card_id = self.card_id
        label = self.label
        from_status = self.from_status
        self._reset()
        if card_id is None:
            return
        if to_status == from_status:
            self._say(f"{label} returned to {self._title(to_status)}.")
        else:
            self._say(f"Moved {label} to {self._title(to_status)}.")
        log.debug("Move requested", extra={"work_order_id": card_id, "to_status": to_status.value})
        if self._on_move_requested is not None:
            self._on_move_requested(card_id, to_status)

    # --- Pointer path ---

    def pointer_down(
        self,
        card_id: WorkOrderId,
        status: WorkOrderStatus,
        x: float,
        y: float,
        *,
        label: str | None = None,
    ) -> None:
        """Arm a gesture; it becomes a drag once the pointer travels far enough."""
        self._reset()
        self.phase = DragPhase.ARMED
        self.source = DragSource.POINTER
        self.card_id = card_id
        self.label = label or card_id
        self.from_status = status
        self._origin = (x, y)

    def pointer_move(self, x: float, y: float) -> bool:
        """Track movement; returns True while a drag is active."""
        if self.phase == DragPhase.ARMED and self._origin is not None:
            ox, oy = self._origin
            if math.hypot(x - ox, y - oy) >= self.activation_distance:
                assert self.card_id is not None and self.from_status is not None
                self._begin(self.card_id, self.from_status, DragSource.POINTER, self.label)
                self._say(f"Picked up {self.label} in {self._title(self.from_status)}.")
        return self.active

    def pointer_up(self, target: object = None) -> WorkOrderStatus | None:
        """Release the pointer; a press that never activated is a click."""
        if self.phase == DragPhase.ARMED:
            self._reset()
            return None
        return self.drag_end(target)

    def drag_start(
        self,
        card_id: WorkOrderId,
        from_status: WorkOrderStatus,
        *,
        label: str | None = None,
    ) -> None:
        """Start an already-activated pointer drag."""
        self._begin(card_id, from_status, DragSource.POINTER, label)

    def drag_over(self, target: object) -> WorkOrderStatus | None:
        if not self.active:
            return None
        self.over_status = resolve_drop_target(target)
        return self.over_status

    def drag_end(self, target: object) -> WorkOrderStatus | None:
        """Finish the drag; emits one move request when ``target`` is a column."""
        if not self.active:
            return None
        to_status = resolve_drop_target(target)
        if to_status is None:
            self.cancel()
            return None
        self._emit(to_status)
        return to_status

    def cancel(self) -> None:
        """Discard the current gesture without emitting anything."""
        if self.phase == DragPhase.DRAGGING and self.label is not None:
            self._say(f"Cancelled moving {self.label}.")
        self._reset()

    # --- Keyboard path ---

    def pick_up(
        self,
        card_id: WorkOrderId,
        status: WorkOrderStatus,
        *,
        label: str | None = None,
    ) -> None:
        self._begin(card_id, status, DragSource.KEYBOARD, label)
        self._say(
            f"Picked up {self.label} in {self._title(status)}. Use arrow keys to move "
            "between columns, space or enter to drop."
        )

    def _step(self, step: int) -> WorkOrderStatus | None:
        if not self.active or self.over_status is None:
            return None
        self.over_status = self._registry.neighbor(self.over_status, step)
        self._say(f"{self.label} is over {self._title(self.over_status)}.")
        return self.over_status

    def move_left(self) -> WorkOrderStatus | None:
        return self._step(-1)

    def move_right(self) -> WorkOrderStatus | None:
        return self._step(1)

    def drop(self) -> WorkOrderStatus | None:
        """Drop on the column currently targeted by the keyboard."""
        if not self.active or self.over_status is None:
            self.cancel()
            return None
        to_status = self.over_status
        self._emit(to_status)
        return to_status
