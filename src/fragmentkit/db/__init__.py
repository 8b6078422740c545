"""Persistent fragment cache database layer."""

from fragmentkit.db.connection import Database
from fragmentkit.db.migrations import MIGRATIONS, run_migrations
from fragmentkit.db.repository import CacheRepository
from fragmentkit.db.schema import initialize

__all__ = [
    "Database",
    "CacheRepository",
    "initialize",
    "run_migrations",
    "MIGRATIONS",
]
