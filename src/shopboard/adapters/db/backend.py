"""SQLite implementation of the backend contract."""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlmodel import col, select

from shopboard.adapters.backend.feeds import FeedHub, LocalChangeFeed
from shopboard.adapters.backend.protocol import (
    PROFILES,
    TICKETS,
    VEHICLES,
    ChangeEvent,
    FilterClause,
    Record,
    SortClause,
)
from shopboard.adapters.backend.rules import validate_ticket_update
from shopboard.adapters.db.engine import create_db_engine, create_db_tables
from shopboard.adapters.db.schema import TABLE_MODELS, Ticket
from shopboard.core.errors import NetworkError, WorkOrderNotFoundError, WorkOrderValidationError
from shopboard.core.models.enums import ChangeKind, Priority, WorkOrderStatus
from shopboard.core.time import parse_timestamp, utc_now

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from sqlmodel import SQLModel

log = logging.getLogger(__name__)

_ENUM_COLUMNS: dict[str, type[Enum]] = {
    "status": WorkOrderStatus,
    "priority": Priority,
}
_SEED_ORDER = (PROFILES, VEHICLES, TICKETS)


def _to_db_value(name: str, value: Any) -> Any:
    """Convert a record value into what the column stores (aware UTC, enum members)."""
    if value is None:
        return None
    if name in _ENUM_COLUMNS:
        enum_cls = _ENUM_COLUMNS[name]
        try:
            return enum_cls(value)
        except ValueError as exc:
            raise WorkOrderValidationError(f"Invalid {name}: {value!r}", field_name=name) from exc
    if isinstance(value, datetime) or name.endswith(("_at", "_date")):
        parsed = parse_timestamp(value)
        if parsed is None:
            raise WorkOrderValidationError(f"Invalid timestamp for {name}", field_name=name)
        return parsed.astimezone(UTC)
    return value


def _to_record(row: SQLModel) -> Record:
    record = row.model_dump()
    for key, value in record.items():
        if isinstance(value, datetime):
            record[key] = value.replace(tzinfo=UTC) if value.tzinfo is None else value
        elif isinstance(value, Enum):
            record[key] = value.value
    return record


class SqliteBackend:
    """Local ticket store on SQLite via SQLModel and aiosqlite."""

    def __init__(self, db_path: str | Path | None = None) -> None:
        self.db_path = db_path
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None
        self._lock = asyncio.Lock()
        self._feeds = FeedHub()

    async def initialize(self) -> None:
        """Initialize engine and create tables."""
        try:
            self._engine = await create_db_engine(self.db_path)
            self._session_factory = async_sessionmaker(
                self._engine, class_=AsyncSession, expire_on_commit=False
            )
            await create_db_tables(self._engine)
        except SQLAlchemyError as exc:
            raise NetworkError("Could not open the ticket database", cause=exc) from exc

    async def close(self) -> None:
        """Close feeds and engine."""
        self._feeds.close_all()
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None

    def _get_session(self) -> AsyncSession:
        if self._session_factory is None:
            raise NetworkError("Ticket database is not open")
        return self._session_factory()

    @staticmethod
    def _model(entity: str) -> type[SQLModel]:
        try:
            return TABLE_MODELS[entity]
        except KeyError as exc:
            raise WorkOrderValidationError(f"Unknown entity: {entity}") from exc

    async def seed(self, tables: dict[str, Iterable[Record]]) -> int:
        """Insert seed rows into empty tables; returns the number of rows added."""
        added = 0
        try:
            async with self._lock, self._get_session() as session:
                for entity in _SEED_ORDER:
                    model = self._model(entity)
                    query = select(func.count()).select_from(model)
                    count = (await session.execute(query)).scalar()
                    if count:
                        continue
                    for row in tables.get(entity, ()):
                        values = {key: _to_db_value(key, value) for key, value in row.items()}
                        session.add(model(**values))
                        added += 1
                await session.commit()
        except SQLAlchemyError as exc:
            raise NetworkError("Seeding the ticket database failed", cause=exc) from exc
        return added

    async def list_records(
        self,
        entity: str,
        filter_expr: Sequence[FilterClause] = (),
        sort_expr: Sequence[SortClause] = (),
    ) -> list[Record]:
        model = self._model(entity)
        query = select(model)
        for clause in filter_expr:
            column = col(getattr(model, clause.field))
            match clause.op:
                case "eq":
                    query = query.where(column == _to_db_value(clause.field, clause.value))
                case "in":
                    values = [_to_db_value(clause.field, value) for value in clause.value]
                    query = query.where(column.in_(values))
                case "gte":
                    query = query.where(column >= _to_db_value(clause.field, clause.value))
                case "lte":
                    query = query.where(column <= _to_db_value(clause.field, clause.value))
        for sort in sort_expr:
            column = col(getattr(model, sort.field))
            query = query.order_by(column.desc() if sort.descending else column.asc())

        try:
            async with self._get_session() as session:
                rows = (await session.execute(query)).scalars().all()
        except SQLAlchemyError as exc:
            raise NetworkError(f"Listing {entity} failed", cause=exc) from exc
        return [_to_record(row) for row in rows]

    async def update_record(self, entity: str, record_id: str, fields: Record) -> Record:
        model = self._model(entity)
        try:
            async with self._lock, self._get_session() as session:
                row = await session.get(model, record_id)
                if row is None:
                    raise WorkOrderNotFoundError(record_id)
                before = _to_record(row)
                if model is Ticket:
                    validate_ticket_update(record_id, before, fields)
                for key, value in fields.items():
                    if not hasattr(row, key):
                        raise WorkOrderValidationError(
                            f"Field '{key}' cannot be updated",
                            work_order_id=record_id,
                            field_name=key,
                        )
                    setattr(row, key, _to_db_value(key, value))
                if "updated_at" not in fields and hasattr(row, "updated_at"):
                    stamp = _to_db_value("updated_at", utc_now())
                    row.updated_at = stamp  # type: ignore[attr-defined]
                session.add(row)
                await session.commit()
                await session.refresh(row)
                after = _to_record(row)
        except SQLAlchemyError as exc:
            raise NetworkError(f"Updating {entity} {record_id} failed", cause=exc) from exc

        self._feeds.publish(
            ChangeEvent(kind=ChangeKind.UPDATE, entity=entity, record=after, old_record=before)
        )
        return dict(after)

    async def insert_record(self, entity: str, record: Record) -> Record:
        model = self._model(entity)
        values = {key: _to_db_value(key, value) for key, value in record.items()}
        try:
            async with self._lock, self._get_session() as session:
                row = model(**values)
                session.add(row)
                await session.commit()
                await session.refresh(row)
                created = _to_record(row)
        except SQLAlchemyError as exc:
            raise NetworkError(f"Inserting into {entity} failed", cause=exc) from exc
        self._feeds.publish(ChangeEvent(kind=ChangeKind.INSERT, entity=entity, record=created))
        return dict(created)

    async def delete_record(self, entity: str, record_id: str) -> bool:
        model = self._model(entity)
        try:
            async with self._lock, self._get_session() as session:
                row = await session.get(model, record_id)
                if row is None:
                    return False
                removed = _to_record(row)
                await session.delete(row)
                await session.commit()
        except SQLAlchemyError as exc:
            raise NetworkError(f"Deleting {entity} {record_id} failed", cause=exc) from exc
        self._feeds.publish(ChangeEvent(kind=ChangeKind.DELETE, entity=entity, old_record=removed))
        return True

    async def open_change_feed(
        self,
        entity: str,
        predicate: Callable[[Record], bool] | None = None,
    ) -> LocalChangeFeed:
        self._model(entity)
        if self._engine is None:
            raise NetworkError("Ticket database is not open")
        log.debug("Opening change feed", extra={"entity": entity})
        return self._feeds.open(entity, predicate)
