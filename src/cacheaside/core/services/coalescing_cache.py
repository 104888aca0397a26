"""Coalescing cache-aside engine."""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from datetime import timedelta
from typing import Any, Generic, TypeVar

from cacheaside.core.entities.cache_config import DEFAULT_TTL, CacheConfig
from cacheaside.core.entities.cache_stats import CacheStats
from cacheaside.core.interfaces.kv_client import IKeyValueClient
from cacheaside.core.interfaces.serializer import ISerializer
from cacheaside.core.services.inflight import InFlightTracker
from cacheaside.exceptions import (
    CacheBackendError,
    CacheTypeError,
    SerializationError,
)
from cacheaside.infrastructure.serializers.json import JsonSerializer

T = TypeVar("T")

Loader = Callable[[], Awaitable[T]]
SideEffect = Callable[[bytes], Awaitable[None] | None]


class CoalescingCache(Generic[T]):
    """Cache-aside engine that runs the loader once per outstanding miss.

    Concurrent ``get_or_set`` calls for the same key share a single
    leader pass: one cache read, at most one loader call and one cache
    write. Every caller then decodes the agreed-upon bytes into its own
    value.

    Backend read and write failures inside ``get_or_set`` are logged and
    never reach the caller. Explicit operations (``invalidate``,
    ``clear``, ``get_many``, ``set_many``) propagate backend errors.

    Example:
        client = InMemoryKeyValueClient()
        users: CoalescingCache[User] = CoalescingCache(
            client,
            ttl=timedelta(seconds=30),
            decoder=lambda data: User(**data),
        )
        user = await users.get_or_set("users:id:1", lambda: fetch_user("1"))
    """

    def __init__(
        self,
        client: IKeyValueClient,
        ttl: timedelta = DEFAULT_TTL,
        *,
        serializer: ISerializer | None = None,
        decoder: Callable[[Any], T] | None = None,
        logger: logging.Logger | None = None,
        tracker: InFlightTracker | None = None,
        enabled: bool = True,
    ) -> None:
        """Initialize the engine.

        Args:
            client: Key-value client. Shared, never closed by the engine.
            ttl: Positive TTL applied to every cache write.
            serializer: Codec between values and bytes. Defaults to JSON.
            decoder: Rebuilds a ``T`` from deserialized data. When None,
                the deserialized data is returned as-is.
            logger: Receives swallowed failures. Defaults to this
                module's logger.
            tracker: In-flight tracker. A fresh one by default.
            enabled: When False, the cache is bypassed entirely and only
                coalescing applies.
        """
        if ttl <= timedelta(0):
            raise ValueError(f"ttl must be positive, got {ttl}")

        self._client = client
        self._ttl = ttl
        self._serializer = serializer or JsonSerializer()
        self._decoder = decoder
        self._logger = logger or logging.getLogger(__name__)
        self._tracker = tracker or InFlightTracker()
        self._enabled = enabled
        self._stats = CacheStats()

    @classmethod
    def from_config(
        cls,
        client: IKeyValueClient,
        config: CacheConfig,
        **kwargs: Any,
    ) -> "CoalescingCache[T]":
        """Create an engine from a CacheConfig."""
        return cls(client, config.ttl or DEFAULT_TTL, enabled=config.enabled, **kwargs)

    @property
    def ttl(self) -> timedelta:
        """TTL applied to every write."""
        return self._ttl

    @property
    def client(self) -> IKeyValueClient:
        return self._client

    @property
    def stats(self) -> dict[str, int]:
        """Get cache statistics.

        Returns:
            Dictionary with hits, misses, coalesced, loader_errors,
            backend_errors and total.
        """
        return self._stats.as_dict()

    @property
    def in_flight(self) -> int:
        """Number of leader passes currently running."""
        return len(self._tracker)

    async def get_or_set(
        self,
        key: str,
        loader: Loader[T],
        side_effect: SideEffect | None = None,
        *,
        timeout: float | None = None,
    ) -> T:
        """Return the cached value for key, loading and caching it on a miss.

        Args:
            key: The cache key.
            loader: Coroutine function computing the value on a miss.
                Called at most once per in-flight computation.
            side_effect: Optional callable invoked once by the leader
                pass with the serialized bytes, after the cache write.
                Its failures are logged and ignored.
            timeout: Optional number of seconds this caller is willing
                to wait. Expiry only ends this caller's wait.

        Returns:
            The value, decoded independently for this caller.

        Raises:
            Exception: Whatever the loader raised, unchanged.
            SerializationError: If the value could not be encoded, or
                the agreed-upon bytes could not be decoded for this caller.
            CacheTypeError: If the computation produced non-bytes.
            asyncio.TimeoutError: If timeout expired for this caller.
        """
        task, started = self._tracker.run(
            key, lambda: self._leader_pass(key, loader, side_effect)
        )
        if not started:
            self._stats.coalesced += 1
            self._logger.debug("Attached to in-flight computation for %s", key)

        # Shielded so one caller's cancellation never cancels the pass
        # that other callers are waiting on.
        waiter = asyncio.shield(task)
        if timeout is None:
            outcome = await waiter
        else:
            outcome = await asyncio.wait_for(waiter, timeout)

        return self._decode(key, outcome)

    async def invalidate(self, key: str) -> bool:
        """Delete the cached entry for key.

        Returns:
            True if an entry existed.

        Raises:
            CacheDeleteError: If the backend fails.
        """
        return await self._client.delete(key)

    async def get_many(self, keys: list[str]) -> list[T | None]:
        """Read several keys at once without invoking any loader.

        Returns:
            Decoded values aligned with keys, None where absent.
        """
        raw = await self._client.multi_get(keys)
        return [
            None if data is None else self._decode(key, data)
            for key, data in zip(keys, raw)
        ]

    async def set_many(self, values: dict[str, T]) -> None:
        """Serialize and write several values with the engine TTL."""
        encoded = {
            key: self._serializer.serialize(value)
            for key, value in values.items()
        }
        await self._client.multi_set(encoded, self._ttl)

    async def clear(self) -> None:
        """Flush the backend and reset statistics."""
        await self._client.flush_all()
        self._stats.reset()

    async def _leader_pass(
        self,
        key: str,
        loader: Loader[T],
        side_effect: SideEffect | None,
    ) -> bytes:
        if self._enabled:
            cached = await self._read(key)
            if cached is not None:
                self._stats.hits += 1
                self._logger.debug("Cache hit for %s", key)
                return cached
            self._stats.misses += 1
            self._logger.debug("Cache miss for %s", key)

        try:
            value = await loader()
        except Exception:
            self._stats.loader_errors += 1
            raise

        data = self._serializer.serialize(value)

        if self._enabled:
            await self._write(key, data)

        if side_effect is not None:
            await self._run_side_effect(key, side_effect, data)

        return data

    async def _read(self, key: str) -> bytes | None:
        try:
            return await self._client.get(key)
        except CacheBackendError as e:
            self._stats.backend_errors += 1
            self._logger.warning("Cache read failed for %s, treating as miss: %s", key, e)
            return None

    async def _write(self, key: str, data: bytes) -> None:
        try:
            await self._client.set(key, data, self._ttl)
        except CacheBackendError as e:
            self._stats.backend_errors += 1
            self._logger.warning("Cache write failed for %s: %s", key, e)

    async def _run_side_effect(
        self,
        key: str,
        side_effect: SideEffect,
        data: bytes,
    ) -> None:
        try:
            result = side_effect(data)
            if inspect.isawaitable(result):
                await result
        except Exception:
            self._logger.warning("Side effect failed for %s", key, exc_info=True)

    def _decode(self, key: str, outcome: Any) -> T:
        if not isinstance(outcome, (bytes, bytearray)):
            raise CacheTypeError(
                f"failed to get {key} from cache: invalid type "
                f"{type(outcome).__name__}"
            )

        data = self._serializer.deserialize(bytes(outcome))
        if self._decoder is None:
            return data  # type: ignore[no-any-return]

        try:
            return self._decoder(data)
        except (TypeError, ValueError, KeyError) as e:
            raise SerializationError(
                f"Failed to decode cached value for {key}: {e}"
            ) from e
