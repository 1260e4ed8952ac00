"""
Local cache snapshot source.

Reads the encoded image from the single cache slot written by the
persistence sink. A corrupt or unreadable slot is logged and treated as
absent so startup never blocks on a bad cache.
"""

from __future__ import annotations

import logging
from typing import Optional

from .. import codec
from ..cache import CacheError, KeyValueCache
from ..errors import CorruptEncodingError

logger = logging.getLogger(__name__)


class LocalCacheSource:
    """Loads the database image from a key-value cache slot.

    Attributes:
        cache: Cache backend holding the slot
        key: Slot name
    """

    name = "local"

    def __init__(self, cache: KeyValueCache, key: str) -> None:
        self.cache = cache
        self.key = key

    async def try_load(self) -> Optional[bytes]:
        try:
            encoded = await self.cache.get(self.key)
        except CacheError as e:
            logger.warning(f"Local cache read failed, treating as absent: {e}")
            return None

        if not encoded:
            logger.debug(f"Local cache slot {self.key} is empty")
            return None

        try:
            image = codec.decode(encoded)
        except CorruptEncodingError as e:
            logger.warning(
                "Local cache slot is corrupt, treating as absent",
                extra={"key": self.key, "error": e.message},
            )
            return None

        logger.info(f"Loaded image from local cache ({len(image)} bytes)")
        return image
