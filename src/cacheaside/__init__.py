"""cacheaside - Coalescing cache-aside layer for relational data.

Callers ask for a value by cache key. A cached copy is returned when
present; otherwise a caller-supplied async loader computes the value,
which is serialized, written with a fixed TTL and returned. Concurrent
requests for the same key share a single loader call, and an
unavailable cache backend degrades to calling the loader.

Example:
    from datetime import timedelta

    from cacheaside import CoalescingCache, InMemoryKeyValueClient

    cache = CoalescingCache(InMemoryKeyValueClient(), ttl=timedelta(seconds=10))

    async def load_user() -> dict:
        return await db.fetch_one("SELECT * FROM users WHERE id = ?", ("1",))

    user = await cache.get_or_set("users:id:1", load_user)

Table helpers:
    from cacheaside import CachedRepository, SqliteDatabase

    async with SqliteDatabase("app.db") as db:
        users = CachedRepository(db, client, table="users")
        alice = await users.get_by_id("1")
        count = await users.count_by_column("team_id", "7")

Redis (``pip install cacheaside[redis]``):
    from cacheaside_redis import RedisKeyValueClient

    client = RedisKeyValueClient(RedisConfig(host="127.0.0.1", pool_size=20))
"""

from cacheaside.core.entities import (
    DEFAULT_TTL,
    CacheConfig,
    CacheStats,
    RedisConfig,
)
from cacheaside.core.interfaces import (
    IDatabase,
    IKeyBuilder,
    IKeyValueClient,
    ISerializer,
)
from cacheaside.core.services import CoalescingCache, InFlightTracker
from cacheaside.decorators import cached, configure, invalidates
from cacheaside.exceptions import (
    CacheAsideError,
    CacheBackendError,
    CacheConnectionError,
    CacheDeleteError,
    CacheFlushError,
    CacheGetError,
    CacheSetError,
    CacheTypeError,
    RecordNotFoundError,
    SerializationError,
)
from cacheaside.infrastructure import (
    InMemoryKeyValueClient,
    JsonSerializer,
    SqliteDatabase,
    TableKeyBuilder,
)
from cacheaside.repository import CachedRepository

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Core entities
    "DEFAULT_TTL",
    "CacheConfig",
    "RedisConfig",
    "CacheStats",
    # Core interfaces
    "IKeyValueClient",
    "IKeyBuilder",
    "ISerializer",
    "IDatabase",
    # Core services
    "CoalescingCache",
    "InFlightTracker",
    # Data-access helpers
    "CachedRepository",
    # Infrastructure implementations
    "InMemoryKeyValueClient",
    "JsonSerializer",
    "SqliteDatabase",
    "TableKeyBuilder",
    # Decorators
    "cached",
    "invalidates",
    "configure",
    # Exceptions
    "CacheAsideError",
    "CacheBackendError",
    "CacheGetError",
    "CacheSetError",
    "CacheDeleteError",
    "CacheFlushError",
    "CacheConnectionError",
    "SerializationError",
    "CacheTypeError",
    "RecordNotFoundError",
]
