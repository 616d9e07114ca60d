"""Backend contract and bundled backend implementations."""

from shopboard.adapters.backend.memory import MemoryBackend
from shopboard.adapters.backend.protocol import (
    PROFILES,
    TICKETS,
    VEHICLES,
    BackendClient,
    ChangeEvent,
    ChangeFeed,
    FilterClause,
    Record,
    SortClause,
)

__all__ = [
    "PROFILES",
    "TICKETS",
    "VEHICLES",
    "BackendClient",
    "ChangeEvent",
    "ChangeFeed",
    "FilterClause",
    "MemoryBackend",
    "Record",
    "SortClause",
]
