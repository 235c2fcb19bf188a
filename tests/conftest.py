"""Shared pytest fixtures."""

import pytest

from swrcache import CacheStore, MemoryBackend, QueryClient, create_client


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: int = 1_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class Counter:
    """Async fetch function that counts its calls."""

    def __init__(self, *values: object) -> None:
        self.calls = 0
        self._values = list(values)

    async def __call__(self) -> object:
        self.calls += 1
        if len(self._values) > 1:
            return self._values.pop(0)
        return self._values[0] if self._values else {"call": self.calls}


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock):
    """Create a fresh isolated CacheStore for each test."""
    with CacheStore.create(clock=clock) as s:
        yield s


@pytest.fixture
def client(store: CacheStore) -> QueryClient:
    return create_client(store=store, default_stale_time="1m")


@pytest.fixture
def backend() -> MemoryBackend:
    """Create a MemoryBackend seeded with a small roster."""
    return MemoryBackend(
        {
            "clients": [
                {"id": "1", "name": "Ada", "active": True},
                {"id": "2", "name": "Grace", "active": False},
            ],
            "shifts": [
                {"id": "s1", "client": "1", "week": 12, "caregiver": None},
            ],
        }
    )


@pytest.fixture
def make_fetch() -> type[Counter]:
    """Factory for counting fetch functions: ``make_fetch(value, ...)``."""
    return Counter
