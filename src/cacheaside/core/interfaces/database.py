"""Relational database interface."""

from collections.abc import Sequence
from typing import Any, Protocol


class IDatabase(Protocol):
    """Contract for the relational source of truth.

    Rows are returned as plain dictionaries keyed by column name.
    """

    async def fetch_one(
        self,
        query: str,
        params: Sequence[Any] = (),
    ) -> dict[str, Any] | None:
        """Execute query and return the first row, or None."""
        ...

    async def fetch_all(
        self,
        query: str,
        params: Sequence[Any] = (),
    ) -> list[dict[str, Any]]:
        """Execute query and return every row."""
        ...
