"""Exception hierarchy for cacheaside."""


class CacheAsideError(Exception):
    """Base class for all cacheaside errors."""


class CacheBackendError(CacheAsideError):
    """Raised when a key-value backend operation fails.

    Attributes:
        operation: Name of the failed operation ("get", "set", "delete",
            "mget", "mset", "flushall", "ping").
        unavailable: True when the backend could not be reached
            (connection refused, timeout), False when it answered
            with something unusable.
    """

    def __init__(
        self,
        operation: str,
        message: str,
        unavailable: bool = False,
    ) -> None:
        self.operation = operation
        self.unavailable = unavailable
        super().__init__(f"failed to {operation}: {message}")


class CacheGetError(CacheBackendError):
    """Raised when reading one or more keys fails."""


class CacheSetError(CacheBackendError):
    """Raised when writing one or more keys fails."""


class CacheDeleteError(CacheBackendError):
    """Raised when deleting a key fails."""


class CacheFlushError(CacheBackendError):
    """Raised when flushing the backend fails."""


class CacheConnectionError(CacheBackendError):
    """Raised when the backend cannot be reached at all."""

    def __init__(self, message: str) -> None:
        super().__init__("ping", message, unavailable=True)


class SerializationError(CacheAsideError):
    """Raised when serialization or deserialization fails."""


class CacheTypeError(CacheAsideError):
    """Raised when a computation produced something other than bytes."""


class RecordNotFoundError(CacheAsideError):
    """Raised by the data-access helpers when no row matches."""

    def __init__(self, table: str, column: str, value: object) -> None:
        self.table = table
        self.column = column
        self.value = value
        super().__init__(f"no row in {table} where {column} = {value!r}")
