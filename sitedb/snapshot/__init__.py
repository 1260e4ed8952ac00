"""
Snapshot sources for SiteDB bootstrap.

Interchangeable strategies that produce an initial database image:
- LocalCacheSource: the slot written by the persistence sink
- RemoteSnapshotSource: the shared read-only image in a remote repository
- EmptySource: nothing, forcing a fresh database

Invariants:
    - try_load() returns bytes or None and never raises
    - Sources never write anywhere
"""

from .base import EmptySource, SnapshotSource
from .local import LocalCacheSource
from .remote import RemoteSnapshotSource

__all__ = [
    "SnapshotSource",
    "EmptySource",
    "LocalCacheSource",
    "RemoteSnapshotSource",
]
