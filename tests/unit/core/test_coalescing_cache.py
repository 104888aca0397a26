"""Tests for CoalescingCache."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from cacheaside import (
    CacheConfig,
    CacheDeleteError,
    CacheFlushError,
    CacheGetError,
    CacheSetError,
    CacheTypeError,
    CoalescingCache,
    InMemoryKeyValueClient,
    JsonSerializer,
    SerializationError,
)

KEY = "users:id:1"
USER = {"id": 1, "name": "Alice"}


@dataclass
class User:
    id: int
    name: str
    created_at: datetime


@pytest.fixture
def cache(client: InMemoryKeyValueClient) -> CoalescingCache[dict]:
    """Create an engine over the in-memory client."""
    return CoalescingCache(client, ttl=timedelta(seconds=10))


@pytest.fixture
def failing_client() -> AsyncMock:
    """Client mock whose methods can be made to fail per test."""
    client = AsyncMock(spec=InMemoryKeyValueClient)
    client.get.return_value = None
    client.set.return_value = None
    return client


class TestCoalescing:
    """Tests for request deduplication."""

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_loader_call(
        self, cache: CoalescingCache[dict]
    ) -> None:
        """Test that N concurrent calls for one key run the loader once."""
        calls = 0

        async def loader() -> dict:
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.05)
            return USER

        results = await asyncio.gather(
            *(cache.get_or_set(KEY, loader) for _ in range(20))
        )

        assert calls == 1
        assert all(result == USER for result in results)
        assert cache.stats["coalesced"] == 19
        assert cache.stats["misses"] == 1

    @pytest.mark.asyncio
    async def test_each_caller_gets_its_own_instance(
        self, cache: CoalescingCache[dict]
    ) -> None:
        """Test that waiters decode the shared bytes independently."""

        async def loader() -> dict:
            await asyncio.sleep(0.01)
            return USER

        first, second = await asyncio.gather(
            cache.get_or_set(KEY, loader),
            cache.get_or_set(KEY, loader),
        )

        assert first == second
        assert first is not second

    @pytest.mark.asyncio
    async def test_different_keys_are_not_coalesced(
        self, cache: CoalescingCache[dict]
    ) -> None:
        """Test that distinct keys each get their own loader call."""
        loader = AsyncMock(side_effect=[{"id": 1}, {"id": 2}])

        results = await asyncio.gather(
            cache.get_or_set("users:id:1", loader),
            cache.get_or_set("users:id:2", loader),
        )

        assert loader.await_count == 2
        assert sorted(r["id"] for r in results) == [1, 2]

    @pytest.mark.asyncio
    async def test_in_flight_slot_released_after_completion(
        self, cache: CoalescingCache[dict]
    ) -> None:
        """Test that the in-flight entry is removed once the pass ends."""
        await cache.get_or_set(KEY, AsyncMock(return_value=USER))
        await asyncio.sleep(0)

        assert cache.in_flight == 0


class TestCacheAside:
    """Tests for the hit, miss and TTL paths."""

    @pytest.mark.asyncio
    async def test_cache_hit_bypasses_loader(
        self, cache: CoalescingCache[dict], client: InMemoryKeyValueClient
    ) -> None:
        """Test that a pre-populated entry is returned without loading."""
        await client.set(KEY, JsonSerializer().serialize(USER), timedelta(seconds=10))
        loader = AsyncMock(side_effect=RuntimeError("loader must not run"))

        result = await cache.get_or_set(KEY, loader)

        assert result == USER
        loader.assert_not_awaited()
        assert cache.stats["hits"] == 1

    @pytest.mark.asyncio
    async def test_miss_populates_cache(
        self, cache: CoalescingCache[dict], client: InMemoryKeyValueClient
    ) -> None:
        """Test that a loaded value is written to the client."""
        await cache.get_or_set(KEY, AsyncMock(return_value=USER))

        assert await client.get(KEY) == JsonSerializer().serialize(USER)

    @pytest.mark.asyncio
    async def test_second_call_is_served_from_cache(
        self, cache: CoalescingCache[dict]
    ) -> None:
        """Test that sequential calls load only once."""
        loader = AsyncMock(return_value=USER)

        await cache.get_or_set(KEY, loader)
        await cache.get_or_set(KEY, loader)

        assert loader.await_count == 1
        assert cache.stats == {
            "hits": 1,
            "misses": 1,
            "coalesced": 0,
            "loader_errors": 0,
            "backend_errors": 0,
            "total": 2,
        }

    @pytest.mark.asyncio
    async def test_entry_expires_after_ttl(
        self, cache: CoalescingCache[dict], client: InMemoryKeyValueClient, timer
    ) -> None:
        """Test that the entry is gone once the TTL has elapsed."""
        loader = AsyncMock(return_value=USER)
        await cache.get_or_set(KEY, loader)

        timer.advance(9)
        assert await client.get(KEY) is not None

        timer.advance(1)
        assert await client.get(KEY) is None

        await cache.get_or_set(KEY, loader)
        assert loader.await_count == 2

    @pytest.mark.asyncio
    async def test_tag_shaped_value_is_readable_from_cache(
        self, cache: CoalescingCache[dict]
    ) -> None:
        """Test that a value shaped like a date tag is cached and read back."""
        value = {"__datetime__": "not-a-timestamp"}
        loader = AsyncMock(return_value=value)

        assert await cache.get_or_set(KEY, loader) == value
        assert await cache.get_or_set(KEY, loader) == value
        assert loader.await_count == 1

    def test_from_config_uses_configured_ttl(
        self, client: InMemoryKeyValueClient
    ) -> None:
        """Test that the engine takes its TTL from the configuration."""
        cache: CoalescingCache[dict] = CoalescingCache.from_config(
            client, CacheConfig(ttl=timedelta(seconds=3))
        )

        assert cache.ttl == timedelta(seconds=3)

    @pytest.mark.asyncio
    async def test_disabled_cache_always_loads(
        self, client: InMemoryKeyValueClient
    ) -> None:
        """Test that a disabled engine never touches the backend."""
        cache: CoalescingCache[dict] = CoalescingCache.from_config(
            client, CacheConfig(enabled=False)
        )
        loader = AsyncMock(return_value=USER)

        await cache.get_or_set(KEY, loader)
        await cache.get_or_set(KEY, loader)

        assert loader.await_count == 2
        assert await client.get(KEY) is None

    def test_non_positive_ttl_rejected(self, client: InMemoryKeyValueClient) -> None:
        """Test that a zero TTL is refused."""
        with pytest.raises(ValueError):
            CoalescingCache(client, ttl=timedelta(0))


class TestErrorHandling:
    """Tests for failure propagation and degradation."""

    @pytest.mark.asyncio
    async def test_loader_error_reaches_every_waiter(
        self, cache: CoalescingCache[dict], client: InMemoryKeyValueClient
    ) -> None:
        """Test that 5 concurrent callers all receive the loader's error."""
        error = ValueError("database unavailable")
        calls = 0

        async def loader() -> dict:
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.01)
            raise error

        results = await asyncio.gather(
            *(cache.get_or_set(KEY, loader) for _ in range(5)),
            return_exceptions=True,
        )

        assert calls == 1
        assert all(result is error for result in results)
        assert await client.get(KEY) is None
        assert cache.stats["loader_errors"] == 1

    @pytest.mark.asyncio
    async def test_backend_read_failure_falls_back_to_loader(
        self, failing_client: AsyncMock, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test that a read error is logged and treated as a miss."""
        failing_client.get.side_effect = CacheGetError(
            "get", "connection refused", unavailable=True
        )
        cache: CoalescingCache[dict] = CoalescingCache(failing_client)
        caplog.set_level(logging.WARNING)

        result = await cache.get_or_set(KEY, AsyncMock(return_value=USER))

        assert result == USER
        failing_client.set.assert_awaited_once()
        assert "Cache read failed" in caplog.text
        assert cache.stats["backend_errors"] == 1

    @pytest.mark.asyncio
    async def test_backend_write_failure_still_returns_value(
        self, failing_client: AsyncMock, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test that a write error is logged but not raised."""
        failing_client.set.side_effect = CacheSetError("set", "OOM command not allowed")
        cache: CoalescingCache[dict] = CoalescingCache(failing_client)
        caplog.set_level(logging.WARNING)

        result = await cache.get_or_set(KEY, AsyncMock(return_value=USER))

        assert result == USER
        assert "Cache write failed" in caplog.text

    @pytest.mark.asyncio
    async def test_injected_logger_receives_swallowed_errors(
        self, failing_client: AsyncMock
    ) -> None:
        """Test that the engine reports to the logger it was given."""
        failing_client.get.side_effect = CacheGetError("get", "timeout", unavailable=True)
        events: list[str] = []

        class Recorder(logging.Handler):
            def emit(self, record: logging.LogRecord) -> None:
                events.append(record.getMessage())

        logger = logging.getLogger("tests.cacheaside.recorder")
        logger.addHandler(Recorder())
        logger.setLevel(logging.WARNING)
        cache: CoalescingCache[dict] = CoalescingCache(failing_client, logger=logger)

        await cache.get_or_set(KEY, AsyncMock(return_value=USER))

        assert len(events) == 1
        assert KEY in events[0]

    @pytest.mark.asyncio
    async def test_serialization_failure_is_propagated(
        self, cache: CoalescingCache[dict], client: InMemoryKeyValueClient
    ) -> None:
        """Test that an unencodable value fails every waiter and is not cached."""

        async def loader() -> object:
            await asyncio.sleep(0.01)
            return object()

        results = await asyncio.gather(
            cache.get_or_set(KEY, loader),
            cache.get_or_set(KEY, loader),
            return_exceptions=True,
        )

        assert all(isinstance(result, SerializationError) for result in results)
        assert results[0] is results[1]
        assert await client.get(KEY) is None

    @pytest.mark.asyncio
    async def test_decode_failure_is_per_waiter(
        self, client: InMemoryKeyValueClient
    ) -> None:
        """Test that one waiter's decode error does not affect the others."""
        decoded = 0

        def decoder(data: dict) -> dict:
            nonlocal decoded
            decoded += 1
            if decoded == 2:
                raise ValueError("unexpected shape")
            return data

        cache: CoalescingCache[dict] = CoalescingCache(client, decoder=decoder)

        async def loader() -> dict:
            await asyncio.sleep(0.01)
            return USER

        results = await asyncio.gather(
            cache.get_or_set(KEY, loader),
            cache.get_or_set(KEY, loader),
            cache.get_or_set(KEY, loader),
            return_exceptions=True,
        )

        failures = [r for r in results if isinstance(r, SerializationError)]
        assert len(failures) == 1
        assert results.count(USER) == 2

    @pytest.mark.asyncio
    async def test_corrupted_entry_raises_serialization_error(
        self, cache: CoalescingCache[dict], client: InMemoryKeyValueClient
    ) -> None:
        """Test that an externally written, invalid entry is reported."""
        await client.set(KEY, b"\xff not json", timedelta(seconds=10))

        with pytest.raises(SerializationError):
            await cache.get_or_set(KEY, AsyncMock(return_value=USER))

    @pytest.mark.asyncio
    async def test_non_bytes_outcome_raises_type_error(
        self, failing_client: AsyncMock
    ) -> None:
        """Test that a non-bytes cache value is an error, not a crash."""
        failing_client.get.return_value = "not bytes"
        cache: CoalescingCache[dict] = CoalescingCache(failing_client)

        with pytest.raises(CacheTypeError):
            await cache.get_or_set(KEY, AsyncMock(return_value=USER))


class TestSideEffect:
    """Tests for the side-effect hook."""

    @pytest.mark.asyncio
    async def test_side_effect_called_once_with_bytes(
        self, cache: CoalescingCache[dict]
    ) -> None:
        """Test that the hook runs once per leader pass."""
        received: list[bytes] = []

        async def loader() -> dict:
            await asyncio.sleep(0.01)
            return USER

        await asyncio.gather(
            *(cache.get_or_set(KEY, loader, received.append) for _ in range(3))
        )

        assert received == [JsonSerializer().serialize(USER)]

    @pytest.mark.asyncio
    async def test_async_side_effect_is_awaited(
        self, cache: CoalescingCache[dict]
    ) -> None:
        """Test that a coroutine hook is awaited."""
        hook = AsyncMock()

        await cache.get_or_set(KEY, AsyncMock(return_value=USER), hook)

        hook.assert_awaited_once_with(JsonSerializer().serialize(USER))

    @pytest.mark.asyncio
    async def test_side_effect_failure_is_logged_only(
        self, cache: CoalescingCache[dict], caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test that a failing hook does not change the result."""
        caplog.set_level(logging.WARNING)

        def hook(data: bytes) -> None:
            raise RuntimeError("publish failed")

        result = await cache.get_or_set(KEY, AsyncMock(return_value=USER), hook)

        assert result == USER
        assert "Side effect failed" in caplog.text

    @pytest.mark.asyncio
    async def test_side_effect_not_called_on_hit(
        self, cache: CoalescingCache[dict]
    ) -> None:
        """Test that cache hits skip the hook."""
        hook = AsyncMock()
        await cache.get_or_set(KEY, AsyncMock(return_value=USER))

        await cache.get_or_set(KEY, AsyncMock(return_value=USER), hook)

        hook.assert_not_awaited()


class TestCancellation:
    """Tests for per-waiter cancellation."""

    @pytest.mark.asyncio
    async def test_cancelled_waiter_does_not_stop_the_pass(
        self, cache: CoalescingCache[dict], client: InMemoryKeyValueClient
    ) -> None:
        """Test that cancelling one caller leaves the others unaffected."""
        release = asyncio.Event()
        calls = 0

        async def loader() -> dict:
            nonlocal calls
            calls += 1
            await release.wait()
            return USER

        first = asyncio.create_task(cache.get_or_set(KEY, loader))
        second = asyncio.create_task(cache.get_or_set(KEY, loader))
        await asyncio.sleep(0.01)

        second.cancel()
        with pytest.raises(asyncio.CancelledError):
            await second

        release.set()
        assert await first == USER
        assert calls == 1
        assert await client.get(KEY) is not None

    @pytest.mark.asyncio
    async def test_cancelled_starter_does_not_stop_the_pass(
        self, cache: CoalescingCache[dict]
    ) -> None:
        """Test that the caller that started the pass may leave early."""
        release = asyncio.Event()

        async def loader() -> dict:
            await release.wait()
            return USER

        starter = asyncio.create_task(cache.get_or_set(KEY, loader))
        await asyncio.sleep(0.01)
        follower = asyncio.create_task(cache.get_or_set(KEY, loader))
        await asyncio.sleep(0.01)

        starter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await starter

        release.set()
        assert await follower == USER

    @pytest.mark.asyncio
    async def test_timeout_ends_only_that_callers_wait(
        self, cache: CoalescingCache[dict], client: InMemoryKeyValueClient
    ) -> None:
        """Test that a per-call timeout does not abandon the computation."""
        release = asyncio.Event()

        async def loader() -> dict:
            await release.wait()
            return USER

        patient = asyncio.create_task(cache.get_or_set(KEY, loader))
        await asyncio.sleep(0)

        with pytest.raises(asyncio.TimeoutError):
            await cache.get_or_set(KEY, loader, timeout=0.01)

        release.set()
        assert await patient == USER
        assert await client.get(KEY) is not None


class TestTypedValues:
    """Tests for decoding into caller types."""

    @pytest.mark.asyncio
    async def test_dataclass_round_trip(self, client: InMemoryKeyValueClient) -> None:
        """Test that a decoder rebuilds dataclasses from cached data."""
        cache: CoalescingCache[User] = CoalescingCache(
            client, decoder=lambda data: User(**data)
        )
        user = User(id=1, name="Alice", created_at=datetime(2024, 1, 15, 10, 30))

        loaded = await cache.get_or_set(KEY, AsyncMock(return_value=user))
        cached = await cache.get_or_set(KEY, AsyncMock(side_effect=AssertionError))

        assert loaded == user
        assert cached == user
        assert isinstance(cached.created_at, datetime)


class TestExplicitOperations:
    """Tests for invalidate, bulk and clear operations."""

    @pytest.mark.asyncio
    async def test_invalidate_forces_reload(
        self, cache: CoalescingCache[dict]
    ) -> None:
        """Test that invalidating a key makes the next call load again."""
        loader = AsyncMock(return_value=USER)
        await cache.get_or_set(KEY, loader)

        assert await cache.invalidate(KEY) is True
        assert await cache.invalidate(KEY) is False

        await cache.get_or_set(KEY, loader)
        assert loader.await_count == 2

    @pytest.mark.asyncio
    async def test_set_many_and_get_many(self, cache: CoalescingCache[dict]) -> None:
        """Test bulk writes and positionally aligned bulk reads."""
        await cache.set_many({"users:id:1": {"id": 1}, "users:id:2": {"id": 2}})

        values = await cache.get_many(["users:id:1", "users:id:9", "users:id:2"])

        assert values == [{"id": 1}, None, {"id": 2}]

    @pytest.mark.asyncio
    async def test_clear_flushes_and_resets_stats(
        self, cache: CoalescingCache[dict], client: InMemoryKeyValueClient
    ) -> None:
        """Test that clear empties the backend."""
        await cache.get_or_set(KEY, AsyncMock(return_value=USER))

        await cache.clear()

        assert await client.get(KEY) is None
        assert cache.stats["total"] == 0

    @pytest.mark.asyncio
    async def test_explicit_failures_propagate(self, failing_client: AsyncMock) -> None:
        """Test that delete and flush errors reach the caller."""
        failing_client.delete.side_effect = CacheDeleteError("delete", "READONLY")
        failing_client.flush_all.side_effect = CacheFlushError("flushall", "READONLY")
        cache: CoalescingCache[dict] = CoalescingCache(failing_client)

        with pytest.raises(CacheDeleteError):
            await cache.invalidate(KEY)
        with pytest.raises(CacheFlushError):
            await cache.clear()
