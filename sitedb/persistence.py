"""
Persistence sink for SiteDB.

Writes the full engine image to the local cache slot after every mutation:

    serialize (SQLite) ──▶ encode (base64) ──▶ cache.set(key)

Invariants:
    - One slot, overwritten on every commit; nothing accumulates
    - A failed commit never undoes the in-memory mutation
    - Failures are logged and counted, never raised
"""

from __future__ import annotations

import logging
import sqlite3

from . import codec
from .cache import CacheError, KeyValueCache
from .engine import serialize_engine

logger = logging.getLogger(__name__)


class PersistenceSink:
    """Commits the engine image to the local cache.

    Attributes:
        conn: Engine connection to serialize
        cache: Cache backend holding the slot
        key: Slot name
        commit_count: Successful commits
        failure_count: Failed commits

    Example:
        >>> sink = PersistenceSink(conn, cache, "sitedb_sqldb")
        >>> await sink.commit()
        True
    """

    def __init__(self, conn: sqlite3.Connection, cache: KeyValueCache, key: str) -> None:
        self.conn = conn
        self.cache = cache
        self.key = key
        self.commit_count = 0
        self.failure_count = 0

    async def commit(self) -> bool:
        """Serialize, encode and write the image.

        Returns:
            True if the slot was written, False if the commit failed
        """
        try:
            image = serialize_engine(self.conn)
            await self.cache.set(self.key, codec.encode(image))
        except (sqlite3.Error, CacheError) as e:
            self.failure_count += 1
            logger.error(
                f"Failed to persist database to local cache: {e}",
                extra={"key": self.key, "failures": self.failure_count},
                exc_info=True,
            )
            return False

        self.commit_count += 1
        logger.debug(f"Saved database to local cache ({len(image)} bytes)")
        return True
