"""Async SQLAlchemy engine setup for SQLModel."""

from __future__ import annotations

from pathlib import Path

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from shopboard.paths import get_database_path


async def create_db_engine(db_path: str | Path | None = None) -> AsyncEngine:
    """Create async SQLite engine; file databases use WAL mode."""
    db_path_str = str(db_path) if db_path else str(get_database_path())
    if db_path_str == ":memory:":
        return create_async_engine(
            "sqlite+aiosqlite:///:memory:",
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    db_path_path = Path(db_path_str)
    db_path_path.parent.mkdir(parents=True, exist_ok=True)
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{db_path_path}",
        echo=False,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.exec_driver_sql("PRAGMA journal_mode=WAL")
    return engine


async def create_db_tables(engine: AsyncEngine) -> None:
    """Create all tables from SQLModel metadata."""
    # Register table models on the shared metadata before create_all.
    from shopboard.adapters.db import schema  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
