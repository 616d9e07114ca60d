"""Pytest fixtures for shopboard tests."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from hypothesis import Phase, Verbosity, settings

_TEST_BASE_DIR = Path(tempfile.mkdtemp(prefix="shopboard-tests-"))
os.environ["SHOPBOARD_DATA_DIR"] = str(_TEST_BASE_DIR / "data")
os.environ["SHOPBOARD_CONFIG_DIR"] = str(_TEST_BASE_DIR / "config")

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from shopboard.adapters.backend.memory import MemoryBackend
    from shopboard.bootstrap import InMemoryEventBus
    from shopboard.services.board import BoardEngine
    from shopboard.services.remote import RemoteAdapter
    from tests.helpers.fakes import EventRecorder, GatedBackend


settings.register_profile(
    "ci",
    max_examples=100,
    deadline=None,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
)
settings.register_profile(
    "dev",
    max_examples=20,
    deadline=500,
)
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    deadline=None,
)
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "dev"))


@pytest.fixture
def event_bus() -> InMemoryEventBus:
    """Create an in-memory event bus for service tests."""
    from shopboard.bootstrap import InMemoryEventBus

    return InMemoryEventBus()


@pytest.fixture
def recorder(event_bus: InMemoryEventBus) -> EventRecorder:
    """Collect every event published on the bus."""
    from tests.helpers.fakes import EventRecorder

    return EventRecorder.attach(event_bus)


@pytest.fixture
def memory_backend() -> MemoryBackend:
    """In-memory backend seeded with the sample work orders."""
    from shopboard.adapters.backend.memory import MemoryBackend

    return MemoryBackend()


@pytest.fixture
def gated_backend(memory_backend: MemoryBackend) -> GatedBackend:
    """Backend whose calls can be held open to observe in-flight state."""
    from tests.helpers.fakes import GatedBackend

    return GatedBackend(memory_backend)


@pytest.fixture
def remote(gated_backend: GatedBackend) -> RemoteAdapter:
    from shopboard.services.remote import RemoteAdapter

    return RemoteAdapter(gated_backend)


@pytest.fixture
async def engine(
    remote: RemoteAdapter, event_bus: InMemoryEventBus
) -> AsyncGenerator[BoardEngine, None]:
    """Started board engine with timers slow enough to stay out of the way."""
    from shopboard.services.board import BoardEngine

    board = BoardEngine(
        remote,
        event_bus=event_bus,
        check_interval=3600,
        liveness_threshold=3600,
        poll_interval=3600,
    )
    await board.start()
    yield board
    await board.close()
