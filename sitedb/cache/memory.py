"""
In-memory key-value cache for testing.

Invariants:
    - All data is lost on process exit
    - Same overwrite semantics as the file backend
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

from .base import CacheError

logger = logging.getLogger(__name__)


class InMemoryKeyValueCache:
    """In-memory implementation of KeyValueCache.

    Useful for unit tests and for sessions that must not touch disk.
    Setting fail_writes or fail_reads simulates a broken backend.

    Example:
        >>> cache = InMemoryKeyValueCache()
        >>> await cache.set("k", "v")
        >>> cache.write_count
        1
    """

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._values: Dict[str, str] = dict(initial or {})
        self.write_count = 0
        self.fail_writes = False
        self.fail_reads = False

    async def get(self, key: str) -> Optional[str]:
        if self.fail_reads:
            raise CacheError(f"Simulated read failure for {key}")
        return self._values.get(key)

    async def set(self, key: str, value: str) -> None:
        if self.fail_writes:
            raise CacheError(f"Simulated write failure for {key}")
        self._values[key] = value
        self.write_count += 1

    async def delete(self, key: str) -> None:
        self._values.pop(key, None)

    # =========================================================================
    # Testing helpers
    # =========================================================================

    def keys(self) -> list[str]:
        """Return all keys currently stored."""
        return list(self._values)

    def peek(self, key: str) -> Optional[str]:
        """Synchronous read for assertions."""
        return self._values.get(key)
