"""XDG-compliant path helpers for shopboard data storage."""

from __future__ import annotations

import os
from pathlib import Path

from platformdirs import user_config_dir, user_data_dir

APP_NAME = "shopboard"


def get_data_dir() -> Path:
    """Get the data directory (SQLite database, exported logs)."""
    override = os.environ.get("SHOPBOARD_DATA_DIR")
    if override:
        return Path(override)
    return Path(user_data_dir(APP_NAME))


def get_config_dir() -> Path:
    """Get the config directory (config.toml)."""
    override = os.environ.get("SHOPBOARD_CONFIG_DIR")
    if override:
        return Path(override)
    return Path(user_config_dir(APP_NAME))


def get_database_path() -> Path:
    """Get the path to the local SQLite backend database."""
    return get_data_dir() / "shopboard.db"


def get_config_path() -> Path:
    """Get the path to the main config file."""
    return get_config_dir() / "config.toml"


def get_debug_log_path() -> Path:
    """Get the path to the debug log export file."""
    return get_data_dir() / "debug.log"


def ensure_directories() -> None:
    """Create data and config directories if missing."""
    get_data_dir().mkdir(parents=True, exist_ok=True)
    get_config_dir().mkdir(parents=True, exist_ok=True)
