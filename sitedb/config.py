"""
Configuration management for SiteDB.

All configuration is done via environment variables - no config files.
This module provides typed configuration classes with validation.

Invariants:
    - All settings have sensible defaults for local development
    - The tenant identifier comes from configuration, never from callers
    - Secrets (remote token) are never logged or exposed in error messages

How to change safely:
    - Add new settings with defaults that maintain backward compatibility
    - Deprecate settings by logging warnings but continuing to support them
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)


class CacheBackend(Enum):
    """Supported key-value cache backends."""

    FILE = "file"
    MEMORY = "memory"


@dataclass(frozen=True)
class StoreConfig:
    """Tenant and repository behaviour.

    Attributes:
        tenant: Site identifier every query is scoped to
        origin: URL the hosting application is served from
        legacy_tenant: Tenant assigned to rows of a pre-tenant image
        list_order: Sort key for list_all (score_desc or username_asc)
        rehash_legacy: Rewrite plaintext credentials as digests on login
        seed_users: Insert the default accounts for an empty tenant
        bcrypt_rounds: bcrypt cost factor for new digests
    """

    tenant: str = "videobate"
    origin: str = "http://localhost"
    legacy_tenant: str = "demotemplate"
    list_order: str = "score_desc"
    rehash_legacy: bool = True
    seed_users: bool = True
    bcrypt_rounds: int = 12

    @classmethod
    def from_env(cls) -> StoreConfig:
        """Load configuration from environment variables."""
        return cls(
            tenant=os.getenv("SITEDB_TENANT", "videobate"),
            origin=os.getenv("SITEDB_ORIGIN", "http://localhost"),
            legacy_tenant=os.getenv("SITEDB_LEGACY_TENANT", "demotemplate"),
            list_order=os.getenv("SITEDB_LIST_ORDER", "score_desc").lower(),
            rehash_legacy=os.getenv("SITEDB_REHASH_LEGACY", "true").lower() == "true",
            seed_users=os.getenv("SITEDB_SEED_USERS", "true").lower() == "true",
            bcrypt_rounds=int(os.getenv("SITEDB_BCRYPT_ROUNDS", "12")),
        )


@dataclass(frozen=True)
class CacheConfig:
    """Local key-value cache configuration.

    Attributes:
        backend: Where the slot lives (file or memory)
        directory: Directory holding one file per key (file backend)
        key: Name of the slot holding the encoded image
    """

    backend: CacheBackend = CacheBackend.FILE
    directory: str = ".sitedb"
    key: str = "sitedb_sqldb"

    @classmethod
    def from_env(cls) -> CacheConfig:
        """Load configuration from environment variables."""
        backend_str = os.getenv("SITEDB_CACHE_BACKEND", "file").lower()
        try:
            backend = CacheBackend(backend_str)
        except ValueError:
            raise ValueError(f"Invalid SITEDB_CACHE_BACKEND '{backend_str}'. Must be one of: file, memory")

        return cls(
            backend=backend,
            directory=os.getenv("SITEDB_CACHE_DIR", ".sitedb"),
            key=os.getenv("SITEDB_CACHE_KEY", "sitedb_sqldb"),
        )


@dataclass(frozen=True)
class RemoteConfig:
    """Remote snapshot repository configuration.

    Attributes:
        enabled: Whether the remote is consulted at all
        owner: Repository owner
        repo: Repository name
        path: Path of the database image inside the repository
        ref: Optional branch, tag or commit
        token: Optional access token (anonymous fetch when empty)
        api_base: Contents API base URL
        timeout_seconds: Bound on the single fetch attempt
    """

    enabled: bool = True
    owner: str = "AIUNITES"
    repo: str = "AIUNITES-database-sync"
    path: str = "data/app.db"
    ref: str | None = None
    token: str | None = None
    api_base: str = "https://api.github.com"
    timeout_seconds: float = 10.0

    @classmethod
    def from_env(cls) -> RemoteConfig:
        """Load configuration from environment variables."""
        return cls(
            enabled=os.getenv("SITEDB_REMOTE_ENABLED", "true").lower() == "true",
            owner=os.getenv("SITEDB_REMOTE_OWNER", "AIUNITES"),
            repo=os.getenv("SITEDB_REMOTE_REPO", "AIUNITES-database-sync"),
            path=os.getenv("SITEDB_REMOTE_PATH", "data/app.db"),
            ref=os.getenv("SITEDB_REMOTE_REF") or None,
            token=os.getenv("SITEDB_REMOTE_TOKEN") or None,
            api_base=os.getenv("SITEDB_REMOTE_API_BASE", "https://api.github.com"),
            timeout_seconds=float(os.getenv("SITEDB_REMOTE_TIMEOUT_SECONDS", "10")),
        )

    @property
    def contents_url(self) -> str:
        """Full contents API URL for the configured image."""
        return f"{self.api_base.rstrip('/')}/repos/{self.owner}/{self.repo}/contents/{self.path.lstrip('/')}"


@dataclass(frozen=True)
class ObservabilityConfig:
    """Logging configuration.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Log format (json, text)
    """

    log_level: str = "INFO"
    log_format: str = "json"

    @classmethod
    def from_env(cls) -> ObservabilityConfig:
        """Load configuration from environment variables."""
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "json"),
        )


@dataclass
class SiteDbConfig:
    """Complete SiteDB configuration.

    Attributes:
        store: Tenant and repository configuration
        cache: Local cache configuration
        remote: Remote snapshot configuration
        observability: Logging configuration
    """

    store: StoreConfig = field(default_factory=StoreConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    remote: RemoteConfig = field(default_factory=RemoteConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    @classmethod
    def from_env(cls) -> SiteDbConfig:
        """Load complete configuration from environment variables.

        Returns:
            SiteDbConfig with all sections populated from environment.

        Raises:
            ValueError: If required configuration is missing or invalid.
        """
        config = cls(
            store=StoreConfig.from_env(),
            cache=CacheConfig.from_env(),
            remote=RemoteConfig.from_env(),
            observability=ObservabilityConfig.from_env(),
        )

        config.validate()
        return config

    def validate(self) -> None:
        """Validate configuration consistency.

        Raises:
            ValueError: If configuration is invalid.
        """
        if not self.store.tenant.strip():
            raise ValueError("SITEDB_TENANT must not be empty")
        if not self.store.legacy_tenant.strip():
            raise ValueError("SITEDB_LEGACY_TENANT must not be empty")
        if self.store.list_order not in ("score_desc", "username_asc"):
            raise ValueError(
                f"Invalid SITEDB_LIST_ORDER '{self.store.list_order}'. "
                "Must be one of: score_desc, username_asc"
            )
        if not 4 <= self.store.bcrypt_rounds <= 31:
            raise ValueError("SITEDB_BCRYPT_ROUNDS must be between 4 and 31")
        if not self.cache.key:
            raise ValueError("SITEDB_CACHE_KEY must not be empty")
        if self.remote.enabled:
            if not (self.remote.owner and self.remote.repo and self.remote.path):
                raise ValueError(
                    "SITEDB_REMOTE_OWNER, SITEDB_REMOTE_REPO and SITEDB_REMOTE_PATH "
                    "are required when SITEDB_REMOTE_ENABLED=true"
                )
            if self.remote.timeout_seconds <= 0:
                raise ValueError("SITEDB_REMOTE_TIMEOUT_SECONDS must be positive")

    def log_config(self) -> None:
        """Log configuration (without secrets)."""
        logger.info(
            "SiteDB configuration",
            extra={
                "tenant": self.store.tenant,
                "origin": self.store.origin,
                "list_order": self.store.list_order,
                "cache_backend": self.cache.backend.value,
                "cache_key": self.cache.key,
                "remote_enabled": self.remote.enabled,
                "remote_repo": f"{self.remote.owner}/{self.remote.repo}:{self.remote.path}",
                "remote_authenticated": bool(self.remote.token),
                "log_level": self.observability.log_level,
            },
        )
