"""Shared service-layer type aliases."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from shopboard.core.models.entities import BoardSnapshot, ConnectivityState, WorkOrderCard
    from shopboard.core.models.enums import WorkOrderStatus

type WorkOrderId = str

type UpsertCallback = Callable[[WorkOrderCard], None]
type DeleteCallback = Callable[[WorkOrderId], None]
type ActivityCallback = Callable[[], None]
type SnapshotListener = Callable[[BoardSnapshot], None]
type ConnectivityCallback = Callable[[ConnectivityState], None]
type MoveRequestedCallback = Callable[[WorkOrderId, WorkOrderStatus], None]
type AnnounceCallback = Callable[[str], None]
