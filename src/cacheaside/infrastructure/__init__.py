"""Infrastructure layer implementations for cacheaside."""

from cacheaside.infrastructure.backends import InMemoryKeyValueClient
from cacheaside.infrastructure.databases import SqliteDatabase
from cacheaside.infrastructure.key_builders import TableKeyBuilder
from cacheaside.infrastructure.serializers import JsonSerializer

__all__ = [
    "InMemoryKeyValueClient",
    "SqliteDatabase",
    "TableKeyBuilder",
    "JsonSerializer",
]
