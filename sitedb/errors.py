"""
Error types for SiteDB.

This module defines every exception the store can raise or report:
- SiteDbError: Base exception
- DuplicateUsernameError / DuplicateEmailError: Registration conflicts
- StoreUnavailableError: Repository used before bootstrap finished
- CorruptEncodingError: Base64 payload could not be decoded
- MigrationFailedError: Additive schema migration did not complete
- RemoteUnavailableError: Remote snapshot could not be fetched

Invariants:
    - All errors inherit from SiteDbError
    - Errors carry a stable code for programmatic handling
    - Error details never contain passwords, credentials or tokens

Propagation:
    - Duplicate*, StoreUnavailable reach the caller
    - CorruptEncoding and RemoteUnavailable are absorbed by snapshot
      sources and turned into "absent"
    - MigrationFailed is reported through SchemaStatus, never raised
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class SiteDbError(Exception):
    """Base exception for all SiteDB errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "SITEDB_ERROR"
        self.details = details or {}


class DuplicateUsernameError(SiteDbError):
    """Username is already taken within the tenant."""

    def __init__(self, username: str, tenant: str) -> None:
        super().__init__(
            f"Username already taken: {username}",
            code="DUPLICATE_USERNAME",
            details={"username": username, "tenant": tenant},
        )
        self.username = username
        self.tenant = tenant


class DuplicateEmailError(SiteDbError):
    """Email is already registered within the tenant."""

    def __init__(self, email: str, tenant: str) -> None:
        super().__init__(
            f"Email already registered: {email}",
            code="DUPLICATE_EMAIL",
            details={"email": email, "tenant": tenant},
        )
        self.email = email
        self.tenant = tenant


class StoreUnavailableError(SiteDbError):
    """The store has not been bootstrapped yet.

    Raised when:
    - A repository is requested before SiteUserStore.open()
    - The store was closed
    """

    def __init__(self, message: str = "Database not available", tenant: Optional[str] = None) -> None:
        super().__init__(
            message,
            code="STORE_UNAVAILABLE",
            details={"tenant": tenant},
        )
        self.tenant = tenant


class CorruptEncodingError(SiteDbError):
    """Text is not valid base64."""

    def __init__(self, message: str, length: Optional[int] = None) -> None:
        super().__init__(
            message,
            code="CORRUPT_ENCODING",
            details={"length": length},
        )
        self.length = length


class MigrationFailedError(SiteDbError):
    """Schema migration did not complete.

    The store stays usable for reads; columns or indexes added after the
    failing step may be missing.
    """

    def __init__(self, message: str, step: Optional[str] = None) -> None:
        super().__init__(
            message,
            code="MIGRATION_FAILED",
            details={"step": step},
        )
        self.step = step


class RemoteUnavailableError(SiteDbError):
    """Remote snapshot fetch failed.

    Raised when:
    - The endpoint answers with a non-2xx status
    - The request times out or the network fails
    - The JSON envelope has no usable content field
    """

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(
            message,
            code="REMOTE_UNAVAILABLE",
            details={"url": url, "status_code": status_code},
        )
        self.url = url
        self.status_code = status_code
