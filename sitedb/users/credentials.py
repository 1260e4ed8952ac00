"""Credential hashing and dual-mode verification (bcrypt with SHA-256 pre-hash).

Bcrypt truncates inputs at 72 bytes; pre-hashing with SHA-256 yields a
fixed-length input so long passwords are not silently truncated.

Stored credentials come in two forms:
- digest: a bcrypt hash produced by CredentialHasher.hash
- legacy plaintext: rows written by older sites before hashing existed

A plaintext row matches only the exact password, compared in constant time.
A supplied string equal to a stored digest is never accepted as a match.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import re
from enum import Enum

import bcrypt

_BCRYPT_PATTERN = re.compile(r"^\$2[abxy]?\$\d{2}\$[./A-Za-z0-9]{53}$")


class CredentialMatch(Enum):
    """Outcome of verifying a password against a stored credential."""

    NONE = "none"
    DIGEST = "digest"
    LEGACY_PLAINTEXT = "legacy_plaintext"

    def __bool__(self) -> bool:
        return self is not CredentialMatch.NONE


def _prehash(password: str) -> bytes:
    """SHA-256 pre-hash to avoid bcrypt's 72-byte truncation."""
    return base64.b64encode(hashlib.sha256(password.encode("utf-8")).digest())


def is_digest(stored: str) -> bool:
    """Return True if stored looks like a bcrypt digest."""
    return bool(_BCRYPT_PATTERN.match(stored or ""))


class CredentialHasher:
    """Computes and verifies credential digests.

    Attributes:
        rounds: bcrypt cost factor (4-31)
    """

    def __init__(self, rounds: int = 12) -> None:
        if not 4 <= rounds <= 31:
            raise ValueError(f"bcrypt rounds must be between 4 and 31, got {rounds}")
        self.rounds = rounds

    def hash(self, password: str) -> str:
        """Return bcrypt hash of password (SHA-256 pre-hashed before bcrypt)."""
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(_prehash(password), salt).decode("utf-8")

    def verify(self, password: str, stored: str) -> CredentialMatch:
        """Check password against a stored digest or legacy plaintext."""
        if not stored:
            return CredentialMatch.NONE

        if is_digest(stored):
            try:
                ok = bcrypt.checkpw(_prehash(password), stored.encode("utf-8"))
            except (ValueError, TypeError):
                return CredentialMatch.NONE
            return CredentialMatch.DIGEST if ok else CredentialMatch.NONE

        if hmac.compare_digest(password.encode("utf-8"), stored.encode("utf-8")):
            return CredentialMatch.LEGACY_PLAINTEXT
        return CredentialMatch.NONE
