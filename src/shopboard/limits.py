"""Numeric limits and intervals - no circular dependencies."""

from __future__ import annotations

import os


def _is_debug_build() -> bool:
    """Debug mode follows SHOPBOARD_DEBUG, then pre-release version markers."""
    env_debug = os.environ.get("SHOPBOARD_DEBUG", "").lower()
    if env_debug in ("1", "true"):
        return True
    if env_debug in ("0", "false"):
        return False

    from shopboard import __version__

    return any(marker in __version__.lower() for marker in ("dev", "a", "b", "rc"))


DEBUG_BUILD: bool = _is_debug_build()
"""True for pre-release builds or when SHOPBOARD_DEBUG is set."""


CHECK_INTERVAL_SECONDS = 10.0
LIVENESS_THRESHOLD_SECONDS = 10.0
POLL_INTERVAL_SECONDS = 15.0
SHUTDOWN_TIMEOUT = 2.0

POINTER_ACTIVATION_DISTANCE = 8.0
"""Pixels a pointer must travel before a press becomes a drag."""

DEFAULT_IN_PROGRESS_WIP_LIMIT = 10

EVENT_QUEUE_SIZE = 256
"""Board events buffered per subscriber; a slow subscriber misses newer events."""

MAX_LOG_LINES = 2000
MAX_LOG_MESSAGE_LENGTH = 4096
