"""Cache statistics entity."""

from dataclasses import asdict, dataclass


@dataclass
class CacheStats:
    """Counters kept by a cache engine.

    ``coalesced`` counts callers that attached to an already running
    computation instead of starting their own.
    """

    hits: int = 0
    misses: int = 0
    coalesced: int = 0
    loader_errors: int = 0
    backend_errors: int = 0

    @property
    def total(self) -> int:
        """Number of leader passes that reached the cache."""
        return self.hits + self.misses

    def as_dict(self) -> dict[str, int]:
        data = asdict(self)
        data["total"] = self.total
        return data

    def reset(self) -> None:
        self.hits = 0
        self.misses = 0
        self.coalesced = 0
        self.loader_errors = 0
        self.backend_errors = 0
