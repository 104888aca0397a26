"""Key-value client interface."""

from datetime import timedelta
from typing import Protocol


class IKeyValueClient(Protocol):
    """Contract for byte-oriented remote key-value stores.

    Every method is a coroutine, so callers cancel an operation by
    cancelling the awaiting task. Failures are raised as
    ``CacheBackendError`` subclasses naming the operation; an absent
    key is never an error.
    """

    async def get(self, key: str) -> bytes | None:
        """Retrieve the value stored under key.

        Args:
            key: The cache key to retrieve.

        Returns:
            The stored bytes, or None if the key is absent or expired.

        Raises:
            CacheGetError: If the backend fails.
        """
        ...

    async def set(self, key: str, value: bytes, ttl: timedelta) -> None:
        """Store value under key, overwriting unconditionally.

        Args:
            key: The cache key.
            value: The bytes to store.
            ttl: Positive time-to-live for the entry.

        Raises:
            ValueError: If ttl is not positive.
            CacheSetError: If the backend fails.
        """
        ...

    async def delete(self, key: str) -> bool:
        """Delete the value stored under key.

        Returns:
            True if the key existed and was deleted, False otherwise.

        Raises:
            CacheDeleteError: If the backend fails.
        """
        ...

    async def multi_get(self, keys: list[str]) -> list[bytes | None]:
        """Retrieve several keys in one round trip.

        Args:
            keys: The cache keys to retrieve.

        Returns:
            Values positionally aligned with keys, None where absent.

        Raises:
            CacheGetError: If the backend fails.
        """
        ...

    async def multi_set(
        self,
        values: dict[str, bytes],
        ttl: timedelta | None = None,
    ) -> None:
        """Store several keys in one round trip.

        Args:
            values: Mapping of cache key to bytes.
            ttl: Optional time-to-live applied to every key.

        Raises:
            CacheSetError: If the backend fails.
        """
        ...

    async def flush_all(self) -> None:
        """Remove every key in the backend namespace.

        Raises:
            CacheFlushError: If the backend fails.
        """
        ...

    async def close(self) -> None:
        """Release connections held by the client."""
        ...
