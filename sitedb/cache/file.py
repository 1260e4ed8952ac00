"""
File-backed key-value cache.

Each key is one file inside the cache directory. Writes go to a temporary
file in the same directory and are moved into place with os.replace, so a
reader sees either the previous value or the new one, never a torn write.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from .base import CacheError

logger = logging.getLogger(__name__)


class FileKeyValueCache:
    """Key-value cache storing one file per key.

    Attributes:
        directory: Directory holding the value files

    Example:
        >>> cache = FileKeyValueCache("/var/lib/sitedb")
        >>> await cache.set("sitedb_sqldb", encoded)
    """

    def __init__(self, directory: str) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        """Get value file path for a key."""
        # Sanitize key to prevent path traversal
        safe_key = "".join(c for c in key if c.isalnum() or c in "-_.").lstrip(".")
        if not safe_key:
            raise CacheError(f"Invalid cache key: {key!r}")
        return self.directory / f"{safe_key}.b64"

    async def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="ascii")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise CacheError(f"Failed to read cache key {key}: {e}") from e

    async def set(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{path.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="ascii") as f:
                    f.write(value)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise CacheError(f"Failed to write cache key {key}: {e}") from e

        logger.debug(f"Wrote cache key {key} ({len(value)} chars)")

    async def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)
