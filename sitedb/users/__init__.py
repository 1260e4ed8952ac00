"""
User records and credentials for SiteDB.

- models: typed User record, stats, inputs and the row projection builder
- credentials: bcrypt digests and dual-mode verification
- repository: tenant-scoped query surface (import from .repository)
"""

from .credentials import CredentialHasher, CredentialMatch, is_digest
from .models import (
    ListOrder,
    RegistrationInput,
    Role,
    StatsDelta,
    User,
    UserBuilder,
    UserStats,
)

__all__ = [
    "User",
    "UserStats",
    "UserBuilder",
    "Role",
    "ListOrder",
    "RegistrationInput",
    "StatsDelta",
    "CredentialHasher",
    "CredentialMatch",
    "is_digest",
]
