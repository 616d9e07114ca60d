"""Service layer: remote adapter, board engine, connectivity and drag control."""

from shopboard.services.board import BoardEngine
from shopboard.services.connectivity import ConnectivityMonitor
from shopboard.services.drag import DragController
from shopboard.services.remote import FeedSubscription, RemoteAdapter

__all__ = [
    "BoardEngine",
    "ConnectivityMonitor",
    "DragController",
    "FeedSubscription",
    "RemoteAdapter",
]
