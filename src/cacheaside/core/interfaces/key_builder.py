"""Key builder interface."""

from typing import Any, Protocol


class IKeyBuilder(Protocol):
    """Contract for building cache keys for relational lookups.

    Keys are plain strings. Two lookups that produce the same key
    share a cached result, so builders must include every input
    that distinguishes one lookup from another.
    """

    def column_key(self, table: str, column: str, value: Any) -> str:
        """Key for rows of table filtered by column = value."""
        ...

    def count_key(self, table: str, column: str, value: Any) -> str:
        """Key for the row count of table filtered by column = value."""
        ...

    def all_key(self, table: str) -> str:
        """Key for every row of table."""
        ...

    def list_key(self, table: str, column: str, value: Any) -> str:
        """Key for every row of table filtered by column = value."""
        ...

    def limit_key(self, table: str, column: str, value: Any, limit: int) -> str:
        """Key for at most limit rows of table filtered by column = value."""
        ...
