"""
Local key-value cache for SiteDB.

The cache holds the base64-encoded database image in a single named slot.
Backends:
- File directory (default, survives restarts)
- In-memory (tests, ephemeral sessions)

Invariants:
    - The slot is created on first commit and overwritten afterwards
    - This package never deletes the slot on its own
"""

from .base import CacheError, KeyValueCache, create_cache
from .file import FileKeyValueCache
from .memory import InMemoryKeyValueCache

__all__ = [
    "KeyValueCache",
    "CacheError",
    "create_cache",
    "FileKeyValueCache",
    "InMemoryKeyValueCache",
]
