"""Cached data-access helpers over a relational database.

Each helper builds a cache key and a parameterized SQL query, then
delegates to a ``CoalescingCache`` so that concurrent identical lookups
hit the database at most once per miss.

Example:
    async with SqliteDatabase("app.db") as db:
        users = CachedRepository(
            db,
            InMemoryKeyValueClient(),
            table="users",
            decoder=lambda row: User(**row),
        )
        alice = await users.get_by_id("1")
        team = await users.select_by_column("team_id", "7")
"""

import logging
from collections.abc import Callable, Sequence
from typing import Any, Generic, TypeVar

from cacheaside.core.entities.cache_config import CacheConfig
from cacheaside.core.interfaces.database import IDatabase
from cacheaside.core.interfaces.key_builder import IKeyBuilder
from cacheaside.core.interfaces.kv_client import IKeyValueClient
from cacheaside.core.interfaces.serializer import ISerializer
from cacheaside.core.services.coalescing_cache import CoalescingCache
from cacheaside.core.services.inflight import InFlightTracker
from cacheaside.exceptions import RecordNotFoundError
from cacheaside.infrastructure.key_builders.table import TableKeyBuilder

T = TypeVar("T")


def quote_identifier(name: str) -> str:
    """Quote a table or column name for use in SQL."""
    if not name:
        raise ValueError("identifier must not be empty")
    return '"' + name.replace('"', '""') + '"'


def _select_list(columns: Sequence[str]) -> str:
    if not columns:
        return "*"
    return ", ".join(quote_identifier(column) for column in columns)


class CachedRepository(Generic[T]):
    """Read-through access to one table.

    Single-row helpers return ``T``, multi-row helpers return
    ``list[T]`` and the count helper returns ``int``. Rows are decoded
    with ``decoder``; without one they are plain dictionaries.
    """

    def __init__(
        self,
        db: IDatabase,
        client: IKeyValueClient,
        table: str,
        *,
        decoder: Callable[[dict[str, Any]], T] | None = None,
        config: CacheConfig | None = None,
        key_builder: IKeyBuilder | None = None,
        serializer: ISerializer | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the repository.

        Args:
            db: The relational source of truth.
            client: Key-value client shared with other repositories.
            table: Table name this repository reads from.
            decoder: Builds a ``T`` from a row dictionary.
            config: Cache configuration. Defaults to a 10 second TTL.
            key_builder: Cache key builder. Defaults to TableKeyBuilder
                using the configured key prefix.
            serializer: Codec for cached rows. Defaults to JSON.
            logger: Receives swallowed cache failures.
        """
        self._db = db
        self._table = table
        self._config = config or CacheConfig()
        self._keys = key_builder or TableKeyBuilder(prefix=self._config.key_prefix)

        row_decoder: Callable[[Any], Any] = decoder or dict

        # One tracker for all three engines so a key is never computed
        # twice at once, whatever shape it decodes to.
        tracker = InFlightTracker()
        options: dict[str, Any] = {
            "serializer": serializer,
            "logger": logger,
            "tracker": tracker,
        }
        self._rows: CoalescingCache[T] = CoalescingCache.from_config(
            client, self._config, decoder=row_decoder, **options
        )
        self._lists: CoalescingCache[list[T]] = CoalescingCache.from_config(
            client,
            self._config,
            decoder=lambda rows: [row_decoder(row) for row in rows],
            **options,
        )
        self._counts: CoalescingCache[int] = CoalescingCache.from_config(
            client, self._config, decoder=int, **options
        )

    @property
    def table(self) -> str:
        return self._table

    @property
    def cache(self) -> CoalescingCache[T]:
        """Engine serving single-row lookups."""
        return self._rows

    async def get_by_column(
        self,
        column: str,
        value: Any,
        columns: Sequence[str] = (),
    ) -> T:
        """Fetch the single row where column = value.

        Raises:
            RecordNotFoundError: If no row matches. Nothing is cached.
        """
        key = self._keys.column_key(self._table, column, value)
        query = (
            f"SELECT {_select_list(columns)} FROM {quote_identifier(self._table)} "
            f"WHERE {quote_identifier(column)} = ?"
        )

        async def load() -> dict[str, Any]:
            row = await self._db.fetch_one(query, (value,))
            if row is None:
                raise RecordNotFoundError(self._table, column, value)
            return row

        return await self._rows.get_or_set(key, load)

    async def get_by_id(self, id: Any, columns: Sequence[str] = ()) -> T:
        return await self.get_by_column("id", id, columns)

    async def get_by_name(self, name: str, columns: Sequence[str] = ()) -> T:
        return await self.get_by_column("name", name, columns)

    async def get_by_user_id(self, user_id: Any, columns: Sequence[str] = ()) -> T:
        return await self.get_by_column("user_id", user_id, columns)

    async def count_by_column(self, column: str, value: Any) -> int:
        """Count rows where column = value."""
        key = self._keys.count_key(self._table, column, value)
        query = (
            f"SELECT COUNT(*) AS count FROM {quote_identifier(self._table)} "
            f"WHERE {quote_identifier(column)} = ?"
        )

        async def load() -> int:
            row = await self._db.fetch_one(query, (value,))
            return int(row["count"]) if row is not None else 0

        return await self._counts.get_or_set(key, load)

    async def select(self, columns: Sequence[str] = ()) -> list[T]:
        """Fetch every row of the table."""
        key = self._keys.all_key(self._table)
        query = f"SELECT {_select_list(columns)} FROM {quote_identifier(self._table)}"

        async def load() -> list[dict[str, Any]]:
            return await self._db.fetch_all(query)

        return await self._lists.get_or_set(key, load)

    async def select_by_column(
        self,
        column: str,
        value: Any,
        columns: Sequence[str] = (),
    ) -> list[T]:
        """Fetch every row where column = value."""
        key = self._keys.list_key(self._table, column, value)
        query = (
            f"SELECT {_select_list(columns)} FROM {quote_identifier(self._table)} "
            f"WHERE {quote_identifier(column)} = ?"
        )

        async def load() -> list[dict[str, Any]]:
            return await self._db.fetch_all(query, (value,))

        return await self._lists.get_or_set(key, load)

    async def select_by_column_with_limit(
        self,
        column: str,
        value: Any,
        limit: int,
        columns: Sequence[str] = (),
    ) -> list[T]:
        """Fetch at most limit rows where column = value."""
        if limit < 1:
            raise ValueError(f"limit must be positive, got {limit}")

        key = self._keys.limit_key(self._table, column, value, limit)
        query = (
            f"SELECT {_select_list(columns)} FROM {quote_identifier(self._table)} "
            f"WHERE {quote_identifier(column)} = ? LIMIT ?"
        )

        async def load() -> list[dict[str, Any]]:
            return await self._db.fetch_all(query, (value, limit))

        return await self._lists.get_or_set(key, load)
