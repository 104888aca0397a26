"""Key-value client implementations."""

from cacheaside.infrastructure.backends.memory import InMemoryKeyValueClient

__all__ = ["InMemoryKeyValueClient"]
