"""Pytest configuration for cacheaside tests."""

import pytest

from cacheaside import InMemoryKeyValueClient


class FakeTimer:
    """Manually advanced clock for TTL tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def reset_decorator_config():
    """Reset decorator configuration before each test."""
    import cacheaside.decorators

    original_cache = cacheaside.decorators._cache

    yield

    cacheaside.decorators._cache = original_cache


@pytest.fixture
def timer() -> FakeTimer:
    return FakeTimer()


@pytest.fixture
def client(timer: FakeTimer) -> InMemoryKeyValueClient:
    """In-memory client driven by the fake timer."""
    return InMemoryKeyValueClient(maxsize=100, timer=timer)
