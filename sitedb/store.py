"""
Site user store - one explicit store instance per tenant.

Wires the components in startup order:

    bootstrap (local → remote → fresh)
        → schema (create / additive migration)
        → seed (default accounts for an empty tenant)
        → repository (tenant-scoped queries)
        → persistence sink (commit after every mutation)

Invariants:
    - open() runs the bootstrap chain exactly once per instance
    - The repository is unavailable until open() completes
    - The engine connection is owned by this instance alone
    - Schema migration failure leaves the store open and readable

How to change safely:
    - Keep open() free of retries; a failed remote means fresh for the session
    - Add components after schema so they see the migrated layout
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from dataclasses import dataclass
from typing import Any, Optional

from .bootstrap import BootstrapResult, StoreBootstrapper
from .cache import KeyValueCache, create_cache
from .config import SiteDbConfig
from .errors import StoreUnavailableError
from .persistence import PersistenceSink
from .schema import SchemaManager, SchemaStatus
from .snapshot import EmptySource, LocalCacheSource, RemoteSnapshotSource, SnapshotSource
from .users import CredentialHasher, ListOrder
from .users.repository import TenantUserRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoreStatus:
    """Snapshot of store health for diagnostics.

    Attributes:
        loaded: Whether bootstrap completed
        has_database: Whether an engine is open
        user_count_for_tenant: Rows owned by the active tenant
        total_user_count: Rows across all tenants
        tenant: Active tenant
        origin: Source the database came from (local, remote, fresh)
        schema_degraded: Whether schema migration failed
    """

    loaded: bool
    has_database: bool
    user_count_for_tenant: int
    total_user_count: int
    tenant: str
    origin: Optional[str] = None
    schema_degraded: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "loaded": self.loaded,
            "hasDatabase": self.has_database,
            "userCountForTenant": self.user_count_for_tenant,
            "totalUserCount": self.total_user_count,
            "tenant": self.tenant,
            "origin": self.origin,
            "schemaDegraded": self.schema_degraded,
        }


def build_sources(config: SiteDbConfig, cache: KeyValueCache) -> tuple[SnapshotSource, SnapshotSource]:
    """Build the default (local, remote) source pair from configuration."""
    local = LocalCacheSource(cache, config.cache.key)
    remote: SnapshotSource = RemoteSnapshotSource(config.remote) if config.remote.enabled else EmptySource()
    return local, remote


class SiteUserStore:
    """Multi-tenant user store bound to one tenant.

    Attributes:
        config: Store configuration
        tenant: Active tenant
        cache: Local key-value cache
        bootstrapper: Startup state machine
        schema_status: Result of schema migration (after open)

    Example:
        >>> async with SiteUserStore(config) as store:
        ...     user = await store.repository.authenticate("demo", "demo123")
        ...     status = await store.status()
    """

    def __init__(
        self,
        config: Optional[SiteDbConfig] = None,
        cache: Optional[KeyValueCache] = None,
        local: Optional[SnapshotSource] = None,
        remote: Optional[SnapshotSource] = None,
    ) -> None:
        """Initialize the store without touching any source.

        Args:
            config: Configuration (loaded from env if not provided)
            cache: Cache backend (built from config if not provided)
            local: Override for the local snapshot source
            remote: Override for the remote snapshot source
        """
        self.config = config or SiteDbConfig.from_env()
        self.tenant = self.config.store.tenant
        self.cache = cache or create_cache(self.config.cache)

        default_local, default_remote = build_sources(self.config, self.cache)
        self.bootstrapper = StoreBootstrapper(
            local=local or default_local,
            remote=remote or default_remote,
            origin=self.config.store.origin,
        )

        self.schema_status: Optional[SchemaStatus] = None
        self._bootstrap: Optional[BootstrapResult] = None
        self._conn: Optional[sqlite3.Connection] = None
        self._schema: Optional[SchemaManager] = None
        self._sink: Optional[PersistenceSink] = None
        self._repository: Optional[TenantUserRepository] = None
        self._write_lock = asyncio.Lock()
        self._closed = False

    async def __aenter__(self) -> SiteUserStore:
        return await self.open()

    async def __aexit__(self, *exc_info: Any) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self._repository is not None

    @property
    def repository(self) -> TenantUserRepository:
        """Tenant-scoped repository.

        Raises:
            StoreUnavailableError: If open() has not completed or the store is closed
        """
        if self._repository is None:
            raise StoreUnavailableError(tenant=self.tenant)
        return self._repository

    @property
    def sink(self) -> PersistenceSink:
        if self._sink is None:
            raise StoreUnavailableError(tenant=self.tenant)
        return self._sink

    async def open(self) -> SiteUserStore:
        """Bootstrap, migrate, seed and expose the repository.

        Returns:
            self, for chaining

        Raises:
            StoreUnavailableError: If the store was already closed
        """
        async with self._write_lock:
            if self._closed:
                raise StoreUnavailableError("Store is closed", tenant=self.tenant)
            if self._repository is not None:
                return self

            logger.info(f"Opening user store for tenant {self.tenant}")
            self._bootstrap = await self.bootstrapper.run()
            conn = self._bootstrap.connection

            hasher = CredentialHasher(rounds=self.config.store.bcrypt_rounds)
            schema = SchemaManager(conn, legacy_tenant=self.config.store.legacy_tenant, hasher=hasher)
            self.schema_status = schema.ensure_schema()

            if self.config.store.seed_users:
                try:
                    schema.ensure_seed_users(self.tenant)
                except sqlite3.Error as e:
                    logger.error(f"Seeding default users failed: {e}", exc_info=True)

            sink = PersistenceSink(conn, self.cache, self.config.cache.key)
            self._repository = TenantUserRepository(
                conn=conn,
                tenant=self.tenant,
                layout=schema.layout,
                sink=sink,
                hasher=hasher,
                list_order=ListOrder(self.config.store.list_order),
                rehash_legacy=self.config.store.rehash_legacy,
                lock=asyncio.Lock(),
            )
            self._conn = conn
            self._schema = schema
            self._sink = sink

            await sink.commit()

        logger.info(
            f"User store ready for tenant {self.tenant}",
            extra={
                "origin": self._bootstrap.origin,
                "schema_degraded": self.schema_status.degraded,
            },
        )
        return self

    async def status(self) -> StoreStatus:
        """Report whether the store is loaded and how many users it holds."""
        if self._schema is None or self._bootstrap is None:
            return StoreStatus(
                loaded=False,
                has_database=False,
                user_count_for_tenant=0,
                total_user_count=0,
                tenant=self.tenant,
            )

        degraded = bool(self.schema_status and self.schema_status.degraded)
        try:
            tenant_count = self._schema.count_users(self.tenant)
            total_count = self._schema.count_users()
        except sqlite3.Error as e:
            logger.warning(f"Status query failed: {e}")
            tenant_count = total_count = 0

        return StoreStatus(
            loaded=True,
            has_database=True,
            user_count_for_tenant=tenant_count,
            total_user_count=total_count,
            tenant=self.tenant,
            origin=self._bootstrap.origin,
            schema_degraded=degraded,
        )

    def close(self) -> None:
        """Release the engine. The cached image stays in place."""
        if self._repository is not None:
            self._repository.detach()
        if self._conn is not None:
            self._conn.close()

        self._repository = None
        self._schema = None
        self._sink = None
        self._conn = None
        self._closed = True
        logger.info(f"Closed user store for tenant {self.tenant}")
