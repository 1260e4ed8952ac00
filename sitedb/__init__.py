"""
SiteDB - multi-tenant user store shared by independent front-end sites.

Each site ("tenant") reads and writes its own accounts inside one shared
SQLite image. The image is bootstrapped from a local cache, a read-only
remote snapshot, or created fresh, and every mutation is written back to the
local cache.

Architecture:
    ┌──────────────┐   ┌──────────────┐   ┌──────────────┐
    │ Local cache  │   │ Remote image │   │    Empty     │
    │  (KV slot)   │   │ (GitHub API) │   │  (fresh db)  │
    └──────┬───────┘   └──────┬───────┘   └──────┬───────┘
           └──────────────────┼──────────────────┘
                              ▼
                     ┌─────────────────┐
                     │  Bootstrapper   │  Init → Local → Remote → Fresh → Ready
                     └────────┬────────┘
                              ▼
                     ┌─────────────────┐
                     │ Schema Manager  │  additive migration + seed users
                     └────────┬────────┘
                              ▼
                     ┌─────────────────┐      ┌──────────────────┐
                     │ User Repository │─────▶│ Persistence Sink │──▶ KV slot
                     │ (one tenant)    │      └──────────────────┘
                     └─────────────────┘

Invariants:
    - Every query is scoped to the tenant fixed by configuration
    - The remote snapshot is never written
    - Bootstrap always reaches Ready, falling back to a fresh database
    - Credentials never leave the repository

How to change safely:
    - Schema changes are additive only (new columns with defaults)
    - New snapshot sources must implement the SnapshotSource protocol
    - Keep every SQL statement parameterized
"""

from ._version import __version__
from .config import SiteDbConfig
from .errors import (
    CorruptEncodingError,
    DuplicateEmailError,
    DuplicateUsernameError,
    MigrationFailedError,
    RemoteUnavailableError,
    SiteDbError,
    StoreUnavailableError,
)
from .store import SiteUserStore, StoreStatus
from .users import ListOrder, RegistrationInput, StatsDelta, User, UserStats

__all__ = [
    "__version__",
    "SiteDbConfig",
    "SiteUserStore",
    "StoreStatus",
    # Records
    "User",
    "UserStats",
    "RegistrationInput",
    "StatsDelta",
    "ListOrder",
    # Errors
    "SiteDbError",
    "DuplicateUsernameError",
    "DuplicateEmailError",
    "StoreUnavailableError",
    "CorruptEncodingError",
    "MigrationFailedError",
    "RemoteUnavailableError",
]
