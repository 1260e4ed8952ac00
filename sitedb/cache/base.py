"""
Base protocol for the local key-value cache.

The cache is the persistent area the encoded database image lives in. It
stores text values under string keys, one value per key.

Invariants:
    - set() overwrites; a key never holds more than one value
    - get() returns None for an unset key
    - Keys are plain names, never paths

How to change safely:
    - Protocol changes require updating all implementations
    - Keep values as text (base64) so any backend can hold them
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ..config import CacheConfig


class CacheError(Exception):
    """Base exception for cache operations."""
    pass


@runtime_checkable
class KeyValueCache(Protocol):
    """Protocol for key-value cache backends.

    Example:
        >>> cache = InMemoryKeyValueCache()
        >>> await cache.set("sitedb_sqldb", "U1FMaXRl")
        >>> await cache.get("sitedb_sqldb")
        'U1FMaXRl'
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Read the value stored under key.

        Raises:
            CacheError: If the backend cannot be read
        """
        ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value.

        Raises:
            CacheError: If the value could not be written
        """
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove key if present."""
        ...


def create_cache(config: "CacheConfig") -> KeyValueCache:
    """Factory function to create a cache from configuration.

    Args:
        config: Cache configuration

    Returns:
        Appropriate KeyValueCache implementation

    Raises:
        ValueError: If backend is not supported
    """
    from ..config import CacheBackend
    from .file import FileKeyValueCache
    from .memory import InMemoryKeyValueCache

    if config.backend == CacheBackend.FILE:
        return FileKeyValueCache(config.directory)
    elif config.backend == CacheBackend.MEMORY:
        return InMemoryKeyValueCache()
    else:
        raise ValueError(f"Unsupported cache backend: {config.backend}")
