"""Persistence: SQLite subject metadata store and its migrations."""

from chronology.persistence.meta_store import SQLiteMetaStore
from chronology.persistence.migrations import run_migrations

__all__ = [
    "SQLiteMetaStore",
    "run_migrations",
]
