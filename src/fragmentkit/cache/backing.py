"""Persistent backing probe for the fragment cache.

The SQLite file is probed once per cache instance. The outcome is a tagged
result: Available carries the open connection, Unavailable carries the
reason. Callers never re-probe at individual call sites.
"""

from __future__ import annotations

import os
import sqlite3
from dataclasses import dataclass
from pathlib import Path

from fragmentkit.db.connection import Database
from fragmentkit.db.schema import initialize

CACHE_FILENAME = "fragment-cache.db"
CACHE_DIR_ENV = "FRAGMENTKIT_CACHE_DIR"


@dataclass(frozen=True)
class Available:
    conn: sqlite3.Connection
    db_path: Path


@dataclass(frozen=True)
class Unavailable:
    reason: str


BackingProbe = Available | Unavailable


def default_cache_dir() -> Path:
    """Cache root: $FRAGMENTKIT_CACHE_DIR, else $XDG_CACHE_HOME/fragmentkit, else ~/.cache/fragmentkit."""
    if override := os.environ.get(CACHE_DIR_ENV):
        return Path(override).expanduser()
    if xdg := os.environ.get("XDG_CACHE_HOME"):
        return Path(xdg).expanduser() / "fragmentkit"
    return Path.home() / ".cache" / "fragmentkit"


def default_cache_path(cache_dir: Path | str | None = None) -> Path:
    """Return the cache database path under *cache_dir* (or the default root)."""
    root = Path(cache_dir).expanduser() if cache_dir is not None else default_cache_dir()
    return root / CACHE_FILENAME


def probe_backing(db_path: Path) -> BackingProbe:
    """Open (or create) the cache database at *db_path* and migrate it.

    Never raises: any failure to create the directory, open the file or apply
    the schema is reported as Unavailable.
    """
    conn = None
    try:
        db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = Database(db_path).connect()
        initialize(conn)
    except (sqlite3.Error, OSError) as exc:
        if conn is not None:
            conn.close()
        return Unavailable(f"{type(exc).__name__}: {exc}")
    return Available(conn=conn, db_path=db_path)
