"""Configuration loader for shopboard."""

from __future__ import annotations

import asyncio
import logging
import tomllib
from pathlib import Path

import tomlkit
from pydantic import BaseModel, Field, ValidationInfo, field_validator

from shopboard.atomic import atomic_write
from shopboard.core.models.enums import BackendKind, WorkOrderStatus
from shopboard.core.status_registry import StatusRegistry
from shopboard.limits import (
    CHECK_INTERVAL_SECONDS,
    LIVENESS_THRESHOLD_SECONDS,
    POLL_INTERVAL_SECONDS,
)
from shopboard.paths import ensure_directories, get_config_path, get_database_path

log = logging.getLogger(__name__)


class SyncConfig(BaseModel):
    """Change feed liveness and polling fallback intervals (seconds)."""

    check_interval: float = Field(
        default=CHECK_INTERVAL_SECONDS, description="How often feed liveness is checked"
    )
    liveness_threshold: float = Field(
        default=LIVENESS_THRESHOLD_SECONDS,
        description="Silence after which the feed counts as disconnected",
    )
    poll_interval: float = Field(
        default=POLL_INTERVAL_SECONDS, description="Refresh interval while disconnected"
    )

    @field_validator("check_interval", "liveness_threshold", "poll_interval", mode="before")
    @classmethod
    def validate_interval(cls, value: object, info: ValidationInfo) -> object:
        """Gracefully coerce non-positive or non-numeric values to the default."""
        default = cls.model_fields[info.field_name or ""].default
        if isinstance(value, bool) or not isinstance(value, int | float) or value <= 0:
            return default
        return value


class BackendConfig(BaseModel):
    """Which bundled backend serves the board."""

    kind: BackendKind = Field(default=BackendKind.MEMORY)
    db_path: str | None = Field(default=None, description="SQLite file (default: data dir)")
    latency_ms: int = Field(default=0, description="Simulated latency for the memory backend")
    seed: bool = Field(default=True, description="Seed sample work orders into empty stores")

    @field_validator("kind", mode="before")
    @classmethod
    def validate_kind(cls, value: object) -> object:
        if isinstance(value, str) and value.strip().lower() in {k.value for k in BackendKind}:
            return value.strip().lower()
        if isinstance(value, BackendKind):
            return value
        return BackendKind.MEMORY

    @field_validator("latency_ms", mode="before")
    @classmethod
    def validate_latency(cls, value: object) -> object:
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            return 0
        return value

    def resolved_db_path(self) -> Path:
        return Path(self.db_path).expanduser() if self.db_path else get_database_path()


class ColumnOverride(BaseModel):
    """Per-column settings under ``[columns.<status>]``."""

    wip_limit: int | None = Field(default=None, description="Soft WIP limit; negative disables")

    @field_validator("wip_limit", mode="before")
    @classmethod
    def validate_wip_limit(cls, value: object) -> object:
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            return None
        return value


class BoardConfig(BaseModel):
    """Root configuration model."""

    sync: SyncConfig = Field(default_factory=SyncConfig)
    backend: BackendConfig = Field(default_factory=BackendConfig)
    columns: dict[str, ColumnOverride] = Field(default_factory=dict)

    @field_validator("columns", mode="before")
    @classmethod
    def drop_unknown_columns(cls, value: object) -> object:
        if not isinstance(value, dict):
            return {}
        known: dict[str, object] = {}
        for key, entry in value.items():
            status = WorkOrderStatus.coerce(key)
            if status is None:
                log.warning("Ignoring config for unknown column %r", key)
                continue
            known[status.value] = entry
        return known

    @classmethod
    def load(cls, config_path: Path | None = None) -> BoardConfig:
        """Load configuration from TOML file or use defaults."""
        ensure_directories()
        if config_path is None:
            config_path = get_config_path()

        if config_path.exists():
            with open(config_path, "rb") as f:
                data = tomllib.load(f)
            return cls.model_validate(data)

        return cls()

    def wip_limits(self) -> dict[WorkOrderStatus, int | None]:
        """Configured WIP overrides; columns without an explicit limit are omitted."""
        return {
            WorkOrderStatus(status): override.wip_limit
            for status, override in self.columns.items()
            if "wip_limit" in override.model_fields_set
        }

    def build_registry(self) -> StatusRegistry:
        return StatusRegistry(self.wip_limits())

    def to_toml(self) -> str:
        doc = tomlkit.document()

        sync_table = tomlkit.table()
        for key, value in self.sync.model_dump().items():
            sync_table[key] = value
        doc["sync"] = sync_table

        backend_table = tomlkit.table()
        for key, value in self.backend.model_dump(mode="json").items():
            if value is not None:
                backend_table[key] = value
        doc["backend"] = backend_table

        if self.columns:
            columns_table = tomlkit.table(is_super_table=True)
            for status, override in self.columns.items():
                column_table = tomlkit.table()
                column_table["wip_limit"] = -1 if override.wip_limit is None else override.wip_limit
                columns_table[status] = column_table
            doc["columns"] = columns_table

        return tomlkit.dumps(doc)

    async def save(self, path: Path) -> None:
        """Serialize current config to TOML file.

        Args:
            path: Path to write config file (created if missing)
        """
        await asyncio.to_thread(atomic_write, path, self.to_toml())

    async def update_wip_limit(
        self,
        path: Path,
        status: WorkOrderStatus,
        wip_limit: int | None,
    ) -> None:
        """Update one column's WIP limit in an existing TOML file (preserves comments).

        Args:
            path: Path to config file (created if missing)
            status: Column to update
            wip_limit: New soft limit (None disables the limit)
        """
        import aiofiles

        if path.exists():
            async with aiofiles.open(path, encoding="utf-8") as f:
                content = await f.read()
            doc = tomlkit.parse(content)
        else:
            doc = tomlkit.document()

        if "columns" not in doc:
            doc["columns"] = tomlkit.table(is_super_table=True)
        columns = doc["columns"]
        if status.value not in columns:  # type: ignore[operator]
            columns[status.value] = tomlkit.table()  # type: ignore[index]
        stored = -1 if wip_limit is None else wip_limit
        columns[status.value]["wip_limit"] = stored  # type: ignore[index]

        content = tomlkit.dumps(doc)
        await asyncio.to_thread(atomic_write, path, content)
        self.columns[status.value] = ColumnOverride(wip_limit=wip_limit)
