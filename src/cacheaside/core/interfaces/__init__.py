"""Core interfaces (Protocol classes) for cacheaside."""

from cacheaside.core.interfaces.database import IDatabase
from cacheaside.core.interfaces.key_builder import IKeyBuilder
from cacheaside.core.interfaces.kv_client import IKeyValueClient
from cacheaside.core.interfaces.serializer import ISerializer

__all__ = [
    "IKeyValueClient",
    "IKeyBuilder",
    "ISerializer",
    "IDatabase",
]
