"""Core utility helpers: background task tracking."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING, Any, TypeVar

if TYPE_CHECKING:
    from collections.abc import Coroutine

_T = TypeVar("_T")
log = logging.getLogger(__name__)


class BackgroundTasks:
    """Track fire-and-forget coroutines spawned from sync callbacks.

    Feed resolutions and drag-triggered moves start from synchronous code and
    must not outlive the engine that spawned them.
    """

    def __init__(self, owner: str = "board") -> None:
        self._owner = owner
        self._tasks: set[asyncio.Task[Any]] = set()
        self._closed = False

    def __len__(self) -> int:
        return sum(1 for task in self._tasks if not task.done())

    @property
    def closed(self) -> bool:
        return self._closed

    def spawn(
        self,
        coro: Coroutine[Any, Any, _T],
        *,
        name: str | None = None,
    ) -> asyncio.Task[_T] | None:
        """Create and register a background task; returns None once shut down."""
        if self._closed:
            coro.close()
            return None
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)

        def _on_done(done_task: asyncio.Task[object]) -> None:
            self._tasks.discard(done_task)
            if done_task.cancelled():
                return
            with contextlib.suppress(asyncio.CancelledError):
                exc = done_task.exception()
            if exc is None:
                return
            log.error(
                "Background task failed",
                extra={"owner": self._owner, "task_name": done_task.get_name()},
                exc_info=(type(exc), exc, exc.__traceback__),
            )

        task.add_done_callback(_on_done)
        return task

    async def drain(self) -> None:
        """Wait for every tracked task to finish (used by tests and the CLI)."""
        while pending := [task for task in self._tasks if not task.done()]:
            await asyncio.gather(*pending, return_exceptions=True)

    def cancel(self) -> None:
        """Stop accepting work and cancel tracked tasks without waiting."""
        self._closed = True
        for task in self._tasks:
            if not task.done():
                task.cancel()

    async def shutdown(self, *, timeout: float = 2.0) -> None:
        """Cancel tracked tasks and wait briefly for graceful completion."""
        self._closed = True
        pending = [task for task in self._tasks if not task.done()]
        if not pending:
            return

        for task in pending:
            task.cancel()

        done, _pending = await asyncio.wait(pending, timeout=timeout)
        if done:
            await asyncio.gather(*done, return_exceptions=True)
