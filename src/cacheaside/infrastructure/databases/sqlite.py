"""SQLite database implementation backed by aiosqlite."""

from collections.abc import Sequence
from pathlib import Path
from typing import Any

import aiosqlite


class SqliteDatabase:
    """Relational source of truth on a single aiosqlite connection.

    Call ``connect()`` (or use ``async with``) before issuing queries.
    """

    def __init__(self, path: str | Path = ":memory:") -> None:
        """Initialize the database.

        Args:
            path: Database file path, or ":memory:".
        """
        self._path = path
        self._conn: aiosqlite.Connection | None = None

    async def connect(self) -> "SqliteDatabase":
        """Open the connection if it is not already open."""
        if self._conn is None:
            self._conn = await aiosqlite.connect(self._path)
            self._conn.row_factory = aiosqlite.Row
        return self

    @property
    def connection(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._conn

    async def execute(self, query: str, params: Sequence[Any] = ()) -> None:
        """Execute a statement and commit."""
        await self.connection.execute(query, params)
        await self.connection.commit()

    async def executemany(
        self,
        query: str,
        params: Sequence[Sequence[Any]],
    ) -> None:
        await self.connection.executemany(query, params)
        await self.connection.commit()

    async def fetch_one(
        self,
        query: str,
        params: Sequence[Any] = (),
    ) -> dict[str, Any] | None:
        async with self.connection.execute(query, params) as cursor:
            row = await cursor.fetchone()
        return dict(row) if row is not None else None

    async def fetch_all(
        self,
        query: str,
        params: Sequence[Any] = (),
    ) -> list[dict[str, Any]]:
        async with self.connection.execute(query, params) as cursor:
            rows = await cursor.fetchall()
        return [dict(row) for row in rows]

    async def close(self) -> None:
        """Close the connection."""
        if self._conn is not None:
            await self._conn.close()
            self._conn = None

    async def __aenter__(self) -> "SqliteDatabase":
        return await self.connect()

    async def __aexit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        await self.close()
