"""Forward-only migration runner for the fragment cache schema."""

from __future__ import annotations

import sqlite3

# schema_version is the bootstrap table, created before migrations run.
_CREATE_SCHEMA_VERSION = """
CREATE TABLE IF NOT EXISTS schema_version (
    version     INTEGER NOT NULL,
    applied_at  DATETIME NOT NULL DEFAULT (datetime('now'))
)
"""

_V1_SQL = """
CREATE TABLE IF NOT EXISTS content_cache (
    file_path         TEXT NOT NULL,
    last_write_ticks  INTEGER NOT NULL,
    parsing_mode      TEXT NOT NULL,
    content           TEXT NOT NULL,
    cached_at         DATETIME NOT NULL DEFAULT (datetime('now')),
    PRIMARY KEY (file_path, last_write_ticks, parsing_mode)
);

CREATE TABLE IF NOT EXISTS ast_cache (
    file_path         TEXT NOT NULL,
    last_write_ticks  INTEGER NOT NULL,
    parsing_mode      TEXT NOT NULL,
    payload           TEXT NOT NULL,
    cached_at         DATETIME NOT NULL DEFAULT (datetime('now')),
    PRIMARY KEY (file_path, last_write_ticks, parsing_mode)
);
"""

# Append-only. Each entry: (version: int, sql: str).
# executescript() issues an implicit COMMIT before running.
MIGRATIONS: list[tuple[int, str]] = [
    (1, _V1_SQL),
]


def run_migrations(conn: sqlite3.Connection) -> None:
    """Apply all pending migrations in ascending version order.

    Idempotent: safe to call on a database at any version.
    """
    conn.execute(_CREATE_SCHEMA_VERSION)
    conn.commit()

    row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    current = row[0] if row[0] is not None else 0

    for version, sql in MIGRATIONS:
        if version > current:
            conn.executescript(sql)
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)", (version,)
            )
            conn.commit()
