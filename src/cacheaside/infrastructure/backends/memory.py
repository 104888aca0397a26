"""In-memory key-value client implementation."""

import math
import time
from collections.abc import Callable
from datetime import timedelta

from cachetools import TLRUCache  # type: ignore[import-untyped]

_Item = tuple[bytes, float]


def _time_to_use(key: str, item: _Item, now: float) -> float:
    return now + item[1]


class InMemoryKeyValueClient:
    """In-process key-value client with per-entry TTL.

    Suitable for tests and single-process deployments. Uses a cachetools
    ``TLRUCache`` so each entry expires after the TTL it was written
    with. The clock is injectable for deterministic expiry tests.
    """

    def __init__(
        self,
        maxsize: int = 10_000,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the in-memory client.

        Args:
            maxsize: Maximum number of entries before LRU eviction.
            timer: Monotonic clock returning seconds.
        """
        self._maxsize = maxsize
        self._cache: TLRUCache[str, _Item] = TLRUCache(
            maxsize=maxsize,
            ttu=_time_to_use,
            timer=timer,
        )

    async def get(self, key: str) -> bytes | None:
        """Retrieve cached value by key.

        Returns:
            The cached value as bytes, or None if not found or expired.
        """
        item = self._cache.get(key)
        return item[0] if item is not None else None

    async def set(self, key: str, value: bytes, ttl: timedelta) -> None:
        """Store value under key for ttl."""
        seconds = ttl.total_seconds()
        if seconds <= 0:
            raise ValueError(f"ttl must be positive, got {ttl}")
        self._cache[key] = (bytes(value), seconds)

    async def delete(self, key: str) -> bool:
        """Delete cached value.

        Returns:
            True if the key existed and was deleted, False otherwise.
        """
        if key not in self._cache:
            return False
        del self._cache[key]
        return True

    async def multi_get(self, keys: list[str]) -> list[bytes | None]:
        return [await self.get(key) for key in keys]

    async def multi_set(
        self,
        values: dict[str, bytes],
        ttl: timedelta | None = None,
    ) -> None:
        seconds = ttl.total_seconds() if ttl is not None else math.inf
        if seconds <= 0:
            raise ValueError(f"ttl must be positive, got {ttl}")
        for key, value in values.items():
            self._cache[key] = (bytes(value), seconds)

    async def flush_all(self) -> None:
        """Clear all cached values."""
        self._cache.clear()

    async def close(self) -> None:
        """Nothing to release; present for interface parity."""

    async def __aenter__(self) -> "InMemoryKeyValueClient":
        return self

    async def __aexit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        await self.close()

    def __len__(self) -> int:
        """Return the number of live entries."""
        self._cache.expire()
        return len(self._cache)

    @property
    def maxsize(self) -> int:
        """Return the maximum size of the cache."""
        return self._maxsize
