"""Fragment cache schema entry point."""

from __future__ import annotations

import sqlite3

CONTENT_TABLE = "content_cache"
AST_TABLE = "ast_cache"

CURRENT_VERSION = 1


def initialize(conn: sqlite3.Connection) -> None:
    """Initialize the database schema via the migration runner (idempotent)."""
    from fragmentkit.db.migrations import run_migrations

    run_migrations(conn)
