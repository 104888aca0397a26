"""Cache configuration entities."""

import os
from dataclasses import dataclass
from datetime import timedelta

DEFAULT_TTL = timedelta(seconds=10)


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class CacheConfig:
    """Cache engine configuration.

    Attributes:
        enabled: When False, every call goes straight to the loader.
            Concurrent calls for the same key are still coalesced.
        ttl: Fixed time-to-live applied to every cache write.
        key_prefix: Optional namespace prepended to generated keys.
    """

    enabled: bool = True
    ttl: timedelta | None = None
    key_prefix: str = ""

    def __post_init__(self) -> None:
        """Set default TTL if not provided and validate it."""
        if self.ttl is None:
            self.ttl = DEFAULT_TTL
        if self.ttl <= timedelta(0):
            raise ValueError(f"ttl must be positive, got {self.ttl}")

    @classmethod
    def from_env(cls, prefix: str = "CACHEASIDE_") -> "CacheConfig":
        """Build a configuration from environment variables.

        Reads ``<prefix>ENABLED``, ``<prefix>TTL_SECONDS`` and
        ``<prefix>KEY_PREFIX``. Missing variables keep their defaults.
        """
        ttl_seconds = os.getenv(f"{prefix}TTL_SECONDS")
        enabled = os.getenv(f"{prefix}ENABLED")

        return cls(
            enabled=_env_bool(enabled) if enabled is not None else True,
            ttl=timedelta(seconds=float(ttl_seconds)) if ttl_seconds else None,
            key_prefix=os.getenv(f"{prefix}KEY_PREFIX", ""),
        )


@dataclass
class RedisConfig:
    """Connection settings for the Redis key-value client."""

    host: str = "127.0.0.1"
    port: int = 6379
    db: int = 0
    password: str | None = None
    pool_size: int = 20
    min_idle_connections: int = 10
    socket_timeout: float | None = 5.0

    def __post_init__(self) -> None:
        if self.pool_size < 1:
            raise ValueError("pool_size must be at least 1")
        if not 0 <= self.min_idle_connections <= self.pool_size:
            raise ValueError(
                "min_idle_connections must be between 0 and pool_size"
            )

    @property
    def url(self) -> str:
        """Connection URL in redis:// form."""
        auth = f":{self.password}@" if self.password else ""
        return f"redis://{auth}{self.host}:{self.port}/{self.db}"

    @classmethod
    def from_env(cls, prefix: str = "CACHEASIDE_REDIS_") -> "RedisConfig":
        """Build Redis settings from environment variables."""
        defaults = cls()
        timeout = os.getenv(f"{prefix}SOCKET_TIMEOUT")

        return cls(
            host=os.getenv(f"{prefix}HOST", defaults.host),
            port=int(os.getenv(f"{prefix}PORT", defaults.port)),
            db=int(os.getenv(f"{prefix}DB", defaults.db)),
            password=os.getenv(f"{prefix}PASSWORD") or None,
            pool_size=int(os.getenv(f"{prefix}POOL_SIZE", defaults.pool_size)),
            min_idle_connections=int(
                os.getenv(
                    f"{prefix}MIN_IDLE_CONNECTIONS",
                    defaults.min_idle_connections,
                )
            ),
            socket_timeout=float(timeout) if timeout else defaults.socket_timeout,
        )
