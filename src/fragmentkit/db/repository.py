"""Repository for persistent fragment cache rows.

Two logical tables share one key shape: (file_path, last_write_ticks,
parsing_mode). content_cache holds raw fragment text; ast_cache holds derived
records (function-name lists and the like) serialised as JSON.
"""

from __future__ import annotations

import json
import sqlite3
from typing import Any

from fragmentkit.db.models import ContentEntry, DerivedEntry


class CacheRepository:
    """Data access layer for the fragment cache tables.

    Wraps an open sqlite3.Connection. The connection is owned by the caller
    and must be closed after use.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialise with an open database connection.

        Args:
            conn: An open sqlite3.Connection with the schema initialised
                (see fragmentkit.db.schema.initialize).
        """
        self._conn = conn

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    def upsert_content(
        self, file_path: str, last_write_ticks: int, parsing_mode: str, content: str
    ) -> None:
        """Insert or replace the content row for the given key."""
        self._conn.execute(
            """
            INSERT OR REPLACE INTO content_cache
                (file_path, last_write_ticks, parsing_mode, content)
            VALUES (?, ?, ?, ?)
            """,
            (file_path, last_write_ticks, parsing_mode, content),
        )
        self._conn.commit()

    def get_content(
        self, file_path: str, last_write_ticks: int, parsing_mode: str
    ) -> ContentEntry | None:
        """Return the content row for the exact key, or None."""
        row = self._conn.execute(
            """
            SELECT file_path, last_write_ticks, parsing_mode, content, cached_at
            FROM content_cache
            WHERE file_path = ? AND last_write_ticks = ? AND parsing_mode = ?
            """,
            (file_path, last_write_ticks, parsing_mode),
        ).fetchone()
        if row is None:
            return None
        return ContentEntry(
            file_path=row["file_path"],
            last_write_ticks=row["last_write_ticks"],
            parsing_mode=row["parsing_mode"],
            content=row["content"],
            cached_at=row["cached_at"],
        )

    def count_content(self) -> int:
        row = self._conn.execute("SELECT COUNT(*) FROM content_cache").fetchone()
        return row[0] if row else 0

    # ------------------------------------------------------------------
    # Derived (AST) records
    # ------------------------------------------------------------------

    def upsert_derived(
        self, file_path: str, last_write_ticks: int, parsing_mode: str, value: Any
    ) -> None:
        """Serialise *value* as JSON and insert or replace it under the given key.

        Raises:
            TypeError: if *value* is not JSON-serialisable.
        """
        payload = json.dumps(value)
        self._conn.execute(
            """
            INSERT OR REPLACE INTO ast_cache
                (file_path, last_write_ticks, parsing_mode, payload)
            VALUES (?, ?, ?, ?)
            """,
            (file_path, last_write_ticks, parsing_mode, payload),
        )
        self._conn.commit()

    def get_derived(
        self, file_path: str, last_write_ticks: int, parsing_mode: str
    ) -> DerivedEntry | None:
        """Return the derived row for the exact key, or None."""
        row = self._conn.execute(
            """
            SELECT file_path, last_write_ticks, parsing_mode, payload, cached_at
            FROM ast_cache
            WHERE file_path = ? AND last_write_ticks = ? AND parsing_mode = ?
            """,
            (file_path, last_write_ticks, parsing_mode),
        ).fetchone()
        if row is None:
            return None
        return DerivedEntry(
            file_path=row["file_path"],
            last_write_ticks=row["last_write_ticks"],
            parsing_mode=row["parsing_mode"],
            payload=row["payload"],
            cached_at=row["cached_at"],
        )

    def count_derived(self) -> int:
        row = self._conn.execute("SELECT COUNT(*) FROM ast_cache").fetchone()
        return row[0] if row else 0

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def prune_path(self, file_path: str, keep_ticks: int | None = None) -> int:
        """Delete rows for *file_path* whose ticks differ from *keep_ticks*.

        With keep_ticks=None every row for the path is deleted.

        Returns:
            Number of rows deleted across both tables.
        """
        deleted = 0
        for table in ("content_cache", "ast_cache"):
            if keep_ticks is None:
                cur = self._conn.execute(
                    f"DELETE FROM {table} WHERE file_path = ?",  # noqa: S608
                    (file_path,),
                )
            else:
                cur = self._conn.execute(
                    f"DELETE FROM {table} WHERE file_path = ? AND last_write_ticks != ?",  # noqa: S608
                    (file_path, keep_ticks),
                )
            deleted += cur.rowcount
        self._conn.commit()
        return deleted

    def list_paths(self) -> list[str]:
        """Return every distinct file path with at least one cached row."""
        rows = self._conn.execute(
            """
            SELECT file_path FROM content_cache
            UNION
            SELECT file_path FROM ast_cache
            ORDER BY file_path
            """
        ).fetchall()
        return [r[0] for r in rows]

    def clear(self) -> None:
        """Delete every cached row. The schema is left in place."""
        self._conn.execute("DELETE FROM content_cache")
        self._conn.execute("DELETE FROM ast_cache")
        self._conn.commit()

    def optimize(self) -> None:
        """Reclaim free pages and refresh planner statistics."""
        # VACUUM cannot run inside an open transaction.
        self._conn.commit()
        self._conn.execute("VACUUM")
        self._conn.execute("ANALYZE")
        self._conn.commit()

    def integrity_check(self) -> list[str]:
        """Return SQLite integrity_check messages; ['ok'] means healthy."""
        rows = self._conn.execute("PRAGMA integrity_check").fetchall()
        return [r[0] for r in rows]
