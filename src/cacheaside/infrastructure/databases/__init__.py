"""Relational database implementations."""

from cacheaside.infrastructure.databases.sqlite import SqliteDatabase

__all__ = ["SqliteDatabase"]
