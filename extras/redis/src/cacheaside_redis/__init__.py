"""Redis key-value client for cacheaside."""

from cacheaside_redis.client import RedisKeyValueClient

__all__ = ["RedisKeyValueClient"]
