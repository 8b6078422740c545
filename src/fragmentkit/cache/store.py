"""Two-tier fragment parse cache.

Entries are keyed by (absolute file path, last-write ticks, parsing mode).
Callers always pass the file's current ticks, so a changed file is simply a
miss; there is no separate invalidation step.

The in-memory tier always works. The SQLite tier is optional: it is probed
once on initialize() and every read or write against it is best-effort.
Persistent failures are counted in the stats and, in debug mode, reported as
CacheDegradationWarning. They are never raised to the caller.

Usage:
    cache = FragmentCache()
    text = cache.get_content(path, ticks, "regex")
    if text is None:
        text = path.read_text()
        cache.set_content(path, text, ticks, "regex")
"""

from __future__ import annotations

import copy
import os
import sqlite3
import warnings
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Callable

from fragmentkit.cache.backing import (
    Available,
    BackingProbe,
    Unavailable,
    default_cache_path,
    probe_backing,
)
from fragmentkit.db.repository import CacheRepository

_Key = tuple[str, int, str]

# sqlite3 binding raises UnicodeEncodeError for surrogate-escaped paths or text
# and OverflowError for integers outside the 64-bit range.
_PERSISTENCE_ERRORS = (sqlite3.Error, UnicodeError, OverflowError, ValueError)


class CacheDegradationWarning(UserWarning):
    """The persistent cache tier is unavailable or an operation on it failed."""


@dataclass
class CacheStats:
    sqlite_available: bool
    content_entries: int
    ast_entries: int
    initialized: bool
    db_path: str | None = None
    persistent_content_entries: int | None = None
    persistent_ast_entries: int | None = None
    hits: int = 0
    misses: int = 0
    write_failures: int = 0
    unavailable_reason: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


class FragmentCache:
    """Content and derived-record cache for fragment files.

    Construct one per process (or per test) and pass it to whatever parses
    fragments. Nothing here is global.
    """

    def __init__(
        self,
        db_path: Path | str | None = None,
        *,
        persistent: bool = True,
        debug: bool = False,
        probe: Callable[[Path], BackingProbe] = probe_backing,
    ) -> None:
        """
        Args:
            db_path: SQLite file for the persistent tier. Defaults to
                fragment-cache.db under the user cache directory.
            persistent: False keeps the cache memory-only.
            debug: Emit CacheDegradationWarning for persistent-tier failures.
            probe: Backing probe; replaced in tests.
        """
        self.db_path = Path(db_path) if db_path is not None else default_cache_path()
        self.persistent = persistent
        self.debug = debug
        self._probe = probe

        self._content: dict[_Key, str] = {}
        self._derived: dict[_Key, Any] = {}
        self._initialized = False
        self._backing: BackingProbe | None = None
        self._repo: CacheRepository | None = None

        self._hits = 0
        self._misses = 0
        self._write_failures = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> bool:
        """Prepare the cache. Idempotent; the backing is probed only once.

        Returns:
            True whenever the cache is usable, which includes memory-only mode.
        """
        if self._initialized:
            return True

        if not self.persistent:
            self._backing = Unavailable("persistent cache disabled")
        else:
            self._backing = self._probe(self.db_path)
            if isinstance(self._backing, Available):
                self._repo = CacheRepository(self._backing.conn)
            else:
                self._diagnose(
                    f"Fragment cache database unavailable at '{self.db_path}': "
                    f"{self._backing.reason}. Using in-memory cache only."
                )

        self._initialized = True
        return True

    def close(self) -> None:
        """Close the persistent connection. The next operation re-initializes."""
        if isinstance(self._backing, Available):
            self._backing.conn.close()
        self._backing = None
        self._repo = None
        self._initialized = False

    def __enter__(self) -> FragmentCache:
        self.initialize()
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    @property
    def sqlite_available(self) -> bool:
        return self._repo is not None

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    def get_content(
        self, file_path: Path | str, last_write_ticks: int, parsing_mode: str
    ) -> str | None:
        """Return cached content for the exact key, or None on a miss."""
        self.initialize()
        key = _make_key(file_path, last_write_ticks, parsing_mode)

        if key in self._content:
            self._hits += 1
            return self._content[key]

        if self._repo is not None:
            try:
                entry = self._repo.get_content(*key)
            except _PERSISTENCE_ERRORS as exc:
                self._diagnose(f"Fragment cache read failed for '{key[0]}': {exc}")
                entry = None
            if entry is not None:
                self._content[key] = entry.content
                self._hits += 1
                return entry.content

        self._misses += 1
        return None

    def set_content(
        self,
        file_path: Path | str,
        content: str,
        last_write_ticks: int,
        parsing_mode: str,
    ) -> None:
        """Store *content* under the key; mirror to SQLite when available."""
        self.initialize()
        key = _make_key(file_path, last_write_ticks, parsing_mode)
        self._content[key] = content

        if self._repo is not None:
            try:
                self._repo.upsert_content(*key, content)
            except _PERSISTENCE_ERRORS as exc:
                self._write_failures += 1
                self._diagnose(f"Fragment cache write failed for '{key[0]}': {exc}")

    # ------------------------------------------------------------------
    # Derived records
    # ------------------------------------------------------------------

    def get_derived(
        self, file_path: Path | str, last_write_ticks: int, parsing_mode: str
    ) -> Any | None:
        """Return a copy of the cached derived record for the key, or None."""
        self.initialize()
        key = _make_key(file_path, last_write_ticks, parsing_mode)

        if key in self._derived:
            self._hits += 1
            return copy.deepcopy(self._derived[key])

        if self._repo is not None:
            try:
                entry = self._repo.get_derived(*key)
                value = entry.value if entry is not None else None
            except _PERSISTENCE_ERRORS as exc:
                self._diagnose(f"Fragment cache read failed for '{key[0]}': {exc}")
                entry = None
            if entry is not None:
                self._derived[key] = value
                self._hits += 1
                return copy.deepcopy(value)

        self._misses += 1
        return None

    def set_derived(
        self,
        file_path: Path | str,
        record: Any,
        last_write_ticks: int,
        parsing_mode: str,
    ) -> None:
        """Store a copy of *record* under the key; mirror to SQLite as JSON."""
        self.initialize()
        key = _make_key(file_path, last_write_ticks, parsing_mode)
        self._derived[key] = copy.deepcopy(record)

        if self._repo is not None:
            try:
                self._repo.upsert_derived(*key, record)
            except _PERSISTENCE_ERRORS + (TypeError,) as exc:
                self._write_failures += 1
                self._diagnose(f"Fragment cache write failed for '{key[0]}': {exc}")

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def clear(self, persistent: bool = True) -> None:
        """Drop every in-memory entry and, with *persistent*, every stored row."""
        self.initialize()
        self._content.clear()
        self._derived.clear()
        if persistent and self._repo is not None:
            try:
                self._repo.clear()
            except _PERSISTENCE_ERRORS as exc:
                self._write_failures += 1
                self._diagnose(f"Fragment cache clear failed: {exc}")

    def repository(self) -> CacheRepository | None:
        """The persistent-tier repository, or None in memory-only mode."""
        self.initialize()
        return self._repo

    def get_stats(self) -> CacheStats:
        """Report cache state. Triggers initialization; never raises."""
        self.initialize()

        persistent_content = persistent_ast = None
        if self._repo is not None:
            try:
                persistent_content = self._repo.count_content()
                persistent_ast = self._repo.count_derived()
            except _PERSISTENCE_ERRORS as exc:
                self._diagnose(f"Fragment cache count failed: {exc}")

        reason = self._backing.reason if isinstance(self._backing, Unavailable) else None
        return CacheStats(
            sqlite_available=self.sqlite_available,
            content_entries=len(self._content),
            ast_entries=len(self._derived),
            initialized=self._initialized,
            db_path=str(self.db_path) if self.persistent else None,
            persistent_content_entries=persistent_content,
            persistent_ast_entries=persistent_ast,
            hits=self._hits,
            misses=self._misses,
            write_failures=self._write_failures,
            unavailable_reason=reason,
        )

    def _diagnose(self, message: str) -> None:
        if self.debug:
            warnings.warn(message, CacheDegradationWarning, stacklevel=3)


def _make_key(file_path: Path | str, last_write_ticks: int, parsing_mode: str) -> _Key:
    return (os.path.abspath(os.fspath(file_path)), int(last_write_ticks), parsing_mode)
