"""
Base protocol for snapshot sources.

A snapshot source answers one question at bootstrap: "do you have a database
image for me?" It returns the raw image bytes or None.

Invariants:
    - try_load() never raises; every failure means "absent"
    - A source performs at most one read per call and never writes

How to change safely:
    - New sources must implement SnapshotSource
    - Keep failures local: log them and return None
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class SnapshotSource(Protocol):
    """Protocol for where an initial database image comes from.

    Example:
        >>> source = LocalCacheSource(cache, "sitedb_sqldb")
        >>> image = await source.try_load()
        >>> if image is None:
        ...     print("cache empty")
    """

    name: str

    @abstractmethod
    async def try_load(self) -> Optional[bytes]:
        """Return the database image, or None if this source has none."""
        ...


class EmptySource:
    """Source that never has an image; forces a fresh database."""

    name = "empty"

    async def try_load(self) -> Optional[bytes]:
        return None
