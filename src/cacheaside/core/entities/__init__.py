"""Domain entities for cacheaside."""

from cacheaside.core.entities.cache_config import (
    DEFAULT_TTL,
    CacheConfig,
    RedisConfig,
)
from cacheaside.core.entities.cache_stats import CacheStats

__all__ = [
    "DEFAULT_TTL",
    "CacheConfig",
    "RedisConfig",
    "CacheStats",
]
