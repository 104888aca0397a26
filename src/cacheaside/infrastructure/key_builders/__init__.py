"""Key builder implementations."""

from cacheaside.infrastructure.key_builders.table import TableKeyBuilder

__all__ = ["TableKeyBuilder"]
