"""
Shared fixtures: controllable clock, recorded sleeps, isolated settings.
"""

import pytest

from config.settings.app_config import Settings
from rawdahscope.infrastructure.cache.ttl_cache import TTLCache


class FakeClock:
    """Epoch-seconds clock advanced by hand."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Awaitable sleep that returns immediately and records each wait."""

    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def cache(clock):
    return TTLCache(clock=clock)


@pytest.fixture
def settings():
    """Defaults only: no .env file, no log directory."""
    return Settings(_env_file=None, log_dir=None)
