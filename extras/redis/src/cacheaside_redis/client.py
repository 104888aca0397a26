"""Redis key-value client implementation."""

import logging
from collections.abc import Awaitable, Callable
from datetime import timedelta
from typing import Any, TypeVar

import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from cacheaside.core.entities.cache_config import RedisConfig
from cacheaside.exceptions import (
    CacheBackendError,
    CacheConnectionError,
    CacheDeleteError,
    CacheFlushError,
    CacheGetError,
    CacheSetError,
)

logger = logging.getLogger(__name__)

R = TypeVar("R")


class RedisKeyValueClient:
    """Redis key-value client for distributed deployments.

    One connection pool backs the client, and the client may be shared
    by any number of cache engines. Every redis-py failure is re-raised
    as the ``CacheBackendError`` subclass for the operation, with
    ``unavailable`` set for connection errors and timeouts.
    """

    def __init__(
        self,
        config: RedisConfig | None = None,
        *,
        client: "redis.Redis | None" = None,
    ) -> None:
        """Initialize the Redis client.

        Args:
            config: Connection settings. Defaults to RedisConfig().
            client: Pre-built redis.asyncio client, used as-is.
        """
        self._config = config or RedisConfig()
        if client is None:
            pool = redis.ConnectionPool.from_url(
                self._config.url,
                max_connections=self._config.pool_size,
                socket_timeout=self._config.socket_timeout,
                socket_connect_timeout=self._config.socket_timeout,
            )
            client = redis.Redis(connection_pool=pool)
        self._redis = client

    @classmethod
    def from_url(cls, url: str, pool_size: int = 20) -> "RedisKeyValueClient":
        """Create a client from a redis:// URL.

        The host, port, db and password parsed from the URL are kept in
        the client's config.
        """
        pool = redis.ConnectionPool.from_url(url, max_connections=pool_size)
        defaults = RedisConfig()
        kwargs = pool.connection_kwargs
        config = RedisConfig(
            host=kwargs.get("host", defaults.host),
            port=int(kwargs.get("port", defaults.port)),
            db=int(kwargs.get("db", defaults.db)),
            password=kwargs.get("password"),
            pool_size=pool_size,
            min_idle_connections=0,
        )
        return cls(config, client=redis.Redis(connection_pool=pool))

    @property
    def config(self) -> RedisConfig:
        return self._config

    async def ping(self) -> None:
        """Check that the server answers.

        Raises:
            CacheConnectionError: If it does not.
        """
        try:
            await self._redis.ping()
        except RedisError as e:
            address = self._address()
            raise CacheConnectionError(f"redis at {address}: {e}") from e

    def _address(self) -> str:
        kwargs = self._redis.connection_pool.connection_kwargs
        host = kwargs.get("host", self._config.host)
        port = kwargs.get("port", self._config.port)
        return f"{host}:{port}"

    async def warm_up(self) -> int:
        """Open ``min_idle_connections`` pooled connections eagerly.

        redis-py opens connections lazily and has no minimum-idle
        setting, so this is done once at startup.

        Returns:
            Number of connections opened.
        """
        pool = self._redis.connection_pool
        connections = []
        try:
            for _ in range(self._config.min_idle_connections):
                connection = await pool.get_connection("PING")
                connections.append(connection)
        except RedisError as e:
            raise CacheConnectionError(str(e)) from e
        finally:
            for connection in connections:
                await pool.release(connection)
        logger.debug("Opened %d idle Redis connections", len(connections))
        return len(connections)

    async def get(self, key: str) -> bytes | None:
        """Retrieve cached value by key.

        Returns:
            The cached value as bytes, or None if not found or expired.
        """
        return await self._call(CacheGetError, "get", lambda: self._redis.get(key))

    async def set(self, key: str, value: bytes, ttl: timedelta) -> None:
        """Store value under key with a positive TTL."""
        if ttl <= timedelta(0):
            raise ValueError(f"ttl must be positive, got {ttl}")
        await self._call(
            CacheSetError, "set", lambda: self._redis.set(key, value, px=_millis(ttl))
        )

    async def delete(self, key: str) -> bool:
        """Delete cached value.

        Returns:
            True if the key existed and was deleted, False otherwise.
        """
        result = await self._call(
            CacheDeleteError, "delete", lambda: self._redis.delete(key)
        )
        return bool(result)

    async def multi_get(self, keys: list[str]) -> list[bytes | None]:
        if not keys:
            return []
        values = await self._call(CacheGetError, "mget", lambda: self._redis.mget(keys))
        return list(values)

    async def multi_set(
        self,
        values: dict[str, bytes],
        ttl: timedelta | None = None,
    ) -> None:
        """Store several keys; with ttl, all of them expire together.

        Without ttl a single MSET is issued. With ttl the SETs run in one
        MULTI/EXEC transaction, since MSET cannot carry an expiry.
        """
        if not values:
            return
        if ttl is None:
            await self._call(CacheSetError, "mset", lambda: self._redis.mset(values))
            return
        if ttl <= timedelta(0):
            raise ValueError(f"ttl must be positive, got {ttl}")

        async def transaction() -> Any:
            async with self._redis.pipeline(transaction=True) as pipe:
                for key, value in values.items():
                    pipe.set(key, value, px=_millis(ttl))
                return await pipe.execute()

        await self._call(CacheSetError, "mset", transaction)

    async def flush_all(self) -> None:
        """Clear every key in the configured database."""
        await self._call(CacheFlushError, "flushall", lambda: self._redis.flushdb())

    async def close(self) -> None:
        """Close the Redis connection pool."""
        await self._redis.aclose()

    async def __aenter__(self) -> "RedisKeyValueClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        """Async context manager exit."""
        await self.close()

    async def _call(
        self,
        error: type[CacheBackendError],
        operation: str,
        command: Callable[[], Awaitable[R]],
    ) -> R:
        try:
            return await command()
        except (RedisConnectionError, RedisTimeoutError) as e:
            raise error(operation, f"redis unavailable: {e}", unavailable=True) from e
        except RedisError as e:
            raise error(operation, str(e)) from e


def _millis(ttl: timedelta) -> int:
    return max(1, int(ttl.total_seconds() * 1000))
