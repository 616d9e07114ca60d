"""In-process backend with seeded records, latency and fault injection."""

from __future__ import annotations

import asyncio
import copy
from collections import Counter, defaultdict, deque
from typing import TYPE_CHECKING

from shopboard.adapters.backend.feeds import FeedHub, LocalChangeFeed
from shopboard.adapters.backend.protocol import (
    TICKETS,
    ChangeEvent,
    FilterClause,
    Record,
    SortClause,
    clause_matches,
    sort_records,
)
from shopboard.adapters.backend.rules import validate_ticket_update
from shopboard.adapters.backend.sample_data import sample_tables
from shopboard.core.errors import NetworkError, WorkOrderNotFoundError
from shopboard.core.models.enums import ChangeKind
from shopboard.core.time import utc_now

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence


class MemoryBackend:
    """Record store kept in process memory.

    Writes are published to open change feeds once they are committed, the
    same way a hosted backend's realtime channel would announce them.
    """

    def __init__(
        self,
        tables: dict[str, Iterable[Record]] | None = None,
        *,
        seed: bool = True,
        latency: float = 0.0,
    ) -> None:
        source = tables if tables is not None else (sample_tables() if seed else {})
        self._tables: dict[str, dict[str, Record]] = defaultdict(dict)
        for entity, rows in source.items():
            for row in rows:
                self._tables[entity][str(row["id"])] = dict(row)
        self.latency = latency
        self.calls: Counter[str] = Counter()
        self._faults: dict[str, deque[Exception]] = defaultdict(deque)
        self._feeds = FeedHub()
        self._closed = False

    def fail_next(self, operation: str, error: Exception | None = None) -> None:
        """Make the next ``operation`` call raise ``error`` (NetworkError by default)."""
        self._faults[operation].append(error or NetworkError("Simulated backend failure"))

    async def _enter(self, operation: str) -> None:
        self.calls[operation] += 1
        if self.latency:
            await asyncio.sleep(self.latency)
        if self._closed:
            raise NetworkError("Backend is closed")
        faults = self._faults.get(operation)
        if faults:
            raise faults.popleft()

    async def list_records(
        self,
        entity: str,
        filter_expr: Sequence[FilterClause] = (),
        sort_expr: Sequence[SortClause] = (),
    ) -> list[Record]:
        await self._enter("list_records")
        rows = [
            row
            for row in self._tables[entity].values()
            if all(clause_matches(row, clause) for clause in filter_expr)
        ]
        return [copy.deepcopy(row) for row in sort_records(rows, sort_expr)]

    async def update_record(self, entity: str, record_id: str, fields: Record) -> Record:
        await self._enter("update_record")
        current = self._tables[entity].get(record_id)
        if current is None:
            raise WorkOrderNotFoundError(record_id)
        if entity == TICKETS:
            validate_ticket_update(record_id, current, fields)
        updated = {**current, **fields}
        if "updated_at" not in fields:
            updated["updated_at"] = utc_now()
        self._tables[entity][record_id] = updated
        self._feeds.publish(
            ChangeEvent(
                kind=ChangeKind.UPDATE,
                entity=entity,
                record=copy.deepcopy(updated),
                old_record=copy.deepcopy(current),
            )
        )
        return copy.deepcopy(updated)

    def insert_record(self, entity: str, record: Record) -> Record:
        """Insert a record directly, as another client of the backend would."""
        stored = dict(record)
        stored.setdefault("created_at", utc_now())
        stored.setdefault("updated_at", stored["created_at"])
        self._tables[entity][str(stored["id"])] = stored
        self._feeds.publish(ChangeEvent(kind=ChangeKind.INSERT, entity=entity, record=dict(stored)))
        return dict(stored)

    def delete_record(self, entity: str, record_id: str) -> bool:
        removed = self._tables[entity].pop(record_id, None)
        if removed is None:
            return False
        self._feeds.publish(
            ChangeEvent(kind=ChangeKind.DELETE, entity=entity, old_record=dict(removed))
        )
        return True

    def get_record(self, entity: str, record_id: str) -> Record | None:
        row = self._tables[entity].get(record_id)
        return copy.deepcopy(row) if row is not None else None

    async def open_change_feed(
        self,
        entity: str,
        predicate: Callable[[Record], bool] | None = None,
    ) -> LocalChangeFeed:
        await self._enter("open_change_feed")
        return self._feeds.open(entity, predicate)

    @property
    def open_feeds(self) -> int:
        return len(self._feeds)

    async def close(self) -> None:
        self._closed = True
        self._feeds.close_all()
