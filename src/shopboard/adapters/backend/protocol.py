"""Backend collaborator contract consumed by the remote adapter.

Records are plain dicts keyed by backend column names. The three operations
mirror a generic hosted-backend client: filtered list, single-record update,
and a change feed per collection.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal, NamedTuple, Protocol

from shopboard.core.models.enums import ChangeKind

type Record = dict[str, Any]
type FilterOp = Literal["eq", "in", "gte", "lte"]

TICKETS = "tickets"
VEHICLES = "vehicles"
PROFILES = "profiles"


class FilterClause(NamedTuple):
    field: str
    op: FilterOp
    value: Any


class SortClause(NamedTuple):
    field: str
    descending: bool = False


@dataclass(frozen=True)
class ChangeEvent:
    kind: ChangeKind
    entity: str
    record: Record = field(default_factory=dict)
    old_record: Record = field(default_factory=dict)

    @property
    def record_id(self) -> str | None:
        source = self.old_record if self.kind == ChangeKind.DELETE else self.record
        value = source.get("id") or self.record.get("id") or self.old_record.get("id")
        return str(value) if value is not None else None


ChangeCallback = Callable[[ChangeEvent], None]


class ChangeFeed(Protocol):
    """Handle for one open change feed."""

    def on_change(self, callback: ChangeCallback) -> None: ...

    def close(self) -> None: ...

    @property
    def closed(self) -> bool: ...


class BackendClient(Protocol):
    """Request/response plus push-subscription access to the record store."""

    async def list_records(
        self,
        entity: str,
        filter_expr: Sequence[FilterClause] = (),
        sort_expr: Sequence[SortClause] = (),
    ) -> list[Record]: ...

    async def update_record(self, entity: str, record_id: str, fields: Record) -> Record: ...

    async def open_change_feed(
        self,
        entity: str,
        predicate: Callable[[Record], bool] | None = None,
    ) -> ChangeFeed: ...

    async def close(self) -> None: ...


def clause_matches(record: Record, clause: FilterClause) -> bool:
    """Evaluate one filter clause against a record (used by in-process backends)."""
    value = record.get(clause.field)
    match clause.op:
        case "eq":
            return value == clause.value
        case "in":
            return value in clause.value
        case "gte":
            return value is not None and value >= clause.value
        case "lte":
            return value is not None and value <= clause.value
    raise ValueError(f"Unsupported filter op: {clause.op}")


def sort_records(records: list[Record], sort_expr: Sequence[SortClause]) -> list[Record]:
    """Stable multi-key sort; records missing a key sort first."""
    ordered = list(records)
    for clause in reversed(sort_expr):
        ordered.sort(
            key=lambda rec, name=clause.field: (rec.get(name) is not None, rec.get(name) or 0),
            reverse=clause.descending,
        )
    return ordered
