"""Durable content cache."""

from homeboard.cache import keys
from homeboard.cache.store import (
    CacheEntry,
    CacheError,
    CacheIOError,
    CacheRead,
    ContentCache,
    CorruptEntryError,
    safe_file_name,
)

__all__ = [
    "CacheEntry",
    "CacheError",
    "CacheIOError",
    "CacheRead",
    "ContentCache",
    "CorruptEntryError",
    "keys",
    "safe_file_name",
]
