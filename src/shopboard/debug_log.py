"""Debug logging ring buffer.

Captures Python logging records into a bounded in-memory buffer that the CLI
can print or export after a session.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from shopboard.limits import MAX_LOG_LINES, MAX_LOG_MESSAGE_LENGTH

log = logging.getLogger(__name__)


@dataclass(slots=True)
class LogEntry:
    """A captured log entry."""

    level: str
    logger: str
    message: str
    timestamp: float


# Global log buffer (ring buffer)
log_buffer: deque[LogEntry] = deque(maxlen=MAX_LOG_LINES)

# Track generation to detect buffer clears
_buffer_generation: int = 0


def _truncate(message: str) -> str:
    if len(message) > MAX_LOG_MESSAGE_LENGTH:
        return message[:MAX_LOG_MESSAGE_LENGTH] + "... [truncated]"
    return message


class DebugLogHandler(logging.Handler):
    """Logging handler that captures records into the debug buffer."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            log_buffer.append(
                LogEntry(
                    level=record.levelname,
                    logger=record.name,
                    message=_truncate(self.format(record)),
                    timestamp=record.created,
                )
            )
        except Exception:
            self.handleError(record)


_debug_handler: DebugLogHandler | None = None


def setup_debug_logging(level: int = logging.DEBUG) -> DebugLogHandler:
    """Attach the buffer handler to the ``shopboard`` logger.

    This is idempotent - later calls only adjust the level.
    """
    global _debug_handler

    package_logger = logging.getLogger("shopboard")
    package_logger.setLevel(level)
    if _debug_handler is not None:
        _debug_handler.setLevel(level)
        return _debug_handler

    handler = DebugLogHandler(level)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    package_logger.addHandler(handler)
    _debug_handler = handler

    log.debug("Debug logging initialized")
    return handler


def teardown_debug_logging() -> None:
    """Detach the buffer handler (used by tests)."""
    global _debug_handler

    if _debug_handler is None:
        return
    logging.getLogger("shopboard").removeHandler(_debug_handler)
    _debug_handler = None


def clear_log_buffer() -> None:
    """Clear the log buffer."""
    global _buffer_generation
    log_buffer.clear()
    _buffer_generation += 1


def get_buffer_generation() -> int:
    """Get the current buffer generation (incremented on clear)."""
    return _buffer_generation


def recent_entries(limit: int | None = None, *, min_level: int = logging.NOTSET) -> list[LogEntry]:
    """Return buffered entries at or above ``min_level``, oldest first."""
    levels = logging.getLevelNamesMapping()
    entries = [entry for entry in log_buffer if levels.get(entry.level, 0) >= min_level]
    if limit is not None:
        entries = entries[-limit:] if limit > 0 else []
    return entries


def format_entry(entry: LogEntry) -> str:
    ts = datetime.fromtimestamp(entry.timestamp).strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
    return f"{ts} [{entry.level}] {entry.message}"


def export_logs_to_file(file_path: str | Path) -> int:
    """Export all logs from the buffer to a file.

    Args:
        file_path: Path to write the log file to

    Returns:
        Number of log entries written
    """
    output_path = Path(file_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    entries = list(log_buffer)
    with output_path.open("w", encoding="utf-8") as f:
        f.write("# Shopboard Debug Log Export\n")
        f.write(f"# Total entries: {len(entries)}\n")
        f.write(f"# Buffer generation: {_buffer_generation}\n")
        f.write("# " + "=" * 76 + "\n\n")
        for entry in entries:
            f.write(format_entry(entry) + "\n")

    return len(entries)
