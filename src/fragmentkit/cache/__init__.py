"""Fragment parse cache (in-memory with optional SQLite persistence)."""

from fragmentkit.cache.backing import (
    Available,
    Unavailable,
    default_cache_dir,
    default_cache_path,
    probe_backing,
)
from fragmentkit.cache.store import CacheDegradationWarning, CacheStats, FragmentCache

__all__ = [
    "Available",
    "Unavailable",
    "CacheDegradationWarning",
    "CacheStats",
    "FragmentCache",
    "default_cache_dir",
    "default_cache_path",
    "probe_backing",
]
