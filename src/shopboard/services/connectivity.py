"""Push-feed liveness tracking with a polling fallback."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from typing import TYPE_CHECKING

from shopboard.core.errors import WorkOrderError
from shopboard.core.models.entities import ConnectivityState
from shopboard.core.time import utc_now
from shopboard.limits import (
    CHECK_INTERVAL_SECONDS,
    LIVENESS_THRESHOLD_SECONDS,
    POLL_INTERVAL_SECONDS,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from datetime import datetime

    from shopboard.services.types import ConnectivityCallback

log = logging.getLogger(__name__)


class ConnectivityMonitor:
    """Decide whether the change feed is alive and poll while it is not.

    The feed counts as live while events keep arriving; after
    ``liveness_threshold`` seconds of silence the board is marked
    disconnected and ``refresh`` is called every ``poll_interval`` seconds
    until the next event arrives.
    """

    def __init__(
        self,
        refresh: Callable[[], Awaitable[object]],
        *,
        check_interval: float = CHECK_INTERVAL_SECONDS,
        liveness_threshold: float = LIVENESS_THRESHOLD_SECONDS,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        on_change: ConnectivityCallback | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._refresh = refresh
        self.check_interval = check_interval
        self.liveness_threshold = liveness_threshold
        self.poll_interval = poll_interval
        self._on_change = on_change
        self._clock = clock
        self._is_connected = True
        self._last_activity = clock()
        self._last_update = utc_now()
        self._check_task: asyncio.Task[None] | None = None
        self._poll_task: asyncio.Task[None] | None = None

    @property
    def is_connected(self) -> bool:
        return self._is_connected

    @property
    def last_activity(self) -> float:
        return self._last_activity

    @property
    def last_update(self) -> datetime:
        return self._last_update

    @property
    def running(self) -> bool:
        return self._check_task is not None and not self._check_task.done()

    def state(self) -> ConnectivityState:
        return ConnectivityState(is_connected=self._is_connected, last_update=self._last_update)

    def _set_connected(self, connected: bool) -> None:
        if connected == self._is_connected:
            return
        self._is_connected = connected
        log.info("Change feed %s", "connected" if connected else "disconnected")
        if self._on_change is not None:
            self._on_change(self.state())

    def record_activity(self) -> None:
        """Called for every push event observed."""
        self._last_activity = self._clock()
        self._last_update = utc_now()
        self._set_connected(True)

    def record_refresh(self) -> None:
        """Note that fresh data arrived by polling (does not imply a live feed)."""
        self._last_update = utc_now()

    def mark_stale(self) -> None:
        """Force the disconnected state so the poll fallback takes over."""
        self._set_connected(False)

    def check_liveness(self) -> bool:
        """Run one liveness check; returns the resulting connection state."""
        if self._clock() - self._last_activity > self.liveness_threshold:
            self._set_connected(False)
        return self._is_connected

    async def poll_once(self) -> bool:
        """Refresh once if disconnected; returns True when a refresh ran."""
        if self._is_connected:
            return False
        try:
            await self._refresh()
        except WorkOrderError as exc:
            log.warning("Fallback refresh failed: %s", exc, extra={"code": exc.code})
            return True
        self.record_refresh()
        return True

    def start(self) -> None:
        """Start the liveness and poll timers."""
        if self.running:
            return
        self._last_activity = self._clock()
        self._check_task = asyncio.create_task(self._check_loop(), name="connectivity-check")
        self._poll_task = asyncio.create_task(self._poll_loop(), name="connectivity-poll")

    async def stop(self) -> None:
        """Cancel both timers and wait for them to exit."""
        for task in (self._check_task, self._poll_task):
            if task is not None and not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        self._check_task = None
        self._poll_task = None

    async def _check_loop(self) -> None:
        while True:
            await asyncio.sleep(self.check_interval)
            self.check_liveness()

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self.poll_interval)
            try:
                await self.poll_once()
            except Exception:
                log.exception("Fallback refresh raised unexpectedly")
