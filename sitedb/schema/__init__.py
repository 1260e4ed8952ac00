"""
Schema module for SiteDB.

This module owns the shape of the shared users table:
- Creation of the full table for a fresh database
- Additive migration of legacy images (app/site discriminator, hashed or
  plaintext credential column, single-tenant tables)
- Seeding of default accounts for empty tenants

Invariants:
    - Columns are only ever added, never dropped or renamed
    - Migration failure leaves the store degraded but readable
"""

from .manager import (
    CREDENTIAL_COLUMNS,
    OPTIONAL_COLUMNS,
    TENANT_COLUMNS,
    SchemaLayout,
    SchemaManager,
    SchemaStatus,
)
from .seeds import SEED_USERS, SeedUser

__all__ = [
    "SchemaManager",
    "SchemaLayout",
    "SchemaStatus",
    "TENANT_COLUMNS",
    "CREDENTIAL_COLUMNS",
    "OPTIONAL_COLUMNS",
    "SEED_USERS",
    "SeedUser",
]
