"""Table key builder implementation."""

from typing import Any


class TableKeyBuilder:
    """Colon-delimited cache keys for table lookups.

    Produces keys such as ``users:id:42``, ``users:count:team_id:7``,
    ``users:all``, ``posts:list:user_id:3`` and
    ``posts:list:user_id:3:limit:10``. Single-row and multi-row lookups
    on the same filter get different keys. Lookups that only differ in
    the selected columns share a key.
    """

    def __init__(self, prefix: str = "") -> None:
        """Initialize the key builder.

        Args:
            prefix: Optional namespace prepended to every key.
        """
        self._prefix = prefix

    def column_key(self, table: str, column: str, value: Any) -> str:
        return self._join(table, column, value)

    def count_key(self, table: str, column: str, value: Any) -> str:
        return self._join(table, "count", column, value)

    def all_key(self, table: str) -> str:
        return self._join(table, "all")

    def list_key(self, table: str, column: str, value: Any) -> str:
        return self._join(table, "list", column, value)

    def limit_key(self, table: str, column: str, value: Any, limit: int) -> str:
        return self._join(table, "list", column, value, "limit", limit)

    def _join(self, *parts: Any) -> str:
        segments = [str(part) for part in parts]
        if self._prefix:
            segments.insert(0, self._prefix)
        return ":".join(segments)
