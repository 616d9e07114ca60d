from __future__ import annotations

import asyncio
import os
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

# CI runners are significantly slower; scale timeouts accordingly.
_CI_MULTIPLIER: float = 5.0 if os.environ.get("CI") else 1.0


def _ci_timeout(timeout: float) -> float:
    return timeout * _CI_MULTIPLIER


def _deadline(timeout: float) -> float:
    return asyncio.get_running_loop().time() + timeout


async def wait_until(
    predicate: Callable[[], bool],
    *,
    timeout: float = 2.0,
    check_interval: float = 0.005,
    description: str = "condition",
) -> None:
    """Wait for a synchronous predicate to become true."""
    timeout = _ci_timeout(timeout)
    deadline = _deadline(timeout)
    while asyncio.get_running_loop().time() < deadline:
        if predicate():
            return
        await asyncio.sleep(check_interval)
    raise TimeoutError(f"Timed out after {timeout}s waiting for {description}")


async def settle(rounds: int = 5) -> None:
    """Let already-scheduled callbacks and tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


async def wait_for_result[T](awaitable: Awaitable[T], *, timeout: float = 2.0) -> T:
    return await asyncio.wait_for(awaitable, timeout=_ci_timeout(timeout))
