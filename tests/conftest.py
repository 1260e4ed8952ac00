"""
Shared fixtures for SiteDB tests.

bcrypt runs at its minimum cost factor here so hashing stays fast.
"""

import sqlite3
import tempfile

import pytest

from sitedb.cache import InMemoryKeyValueCache
from sitedb.config import CacheBackend, CacheConfig, RemoteConfig, SiteDbConfig, StoreConfig
from sitedb.engine import open_engine
from sitedb.persistence import PersistenceSink
from sitedb.schema import SchemaManager
from sitedb.users import CredentialHasher
from sitedb.users.repository import TenantUserRepository

CACHE_KEY = "test_sqldb"


def make_config(tenant: str = "siteA", origin: str = "https://sitea.example", **store_overrides) -> SiteDbConfig:
    """Build a config with memory cache, remote disabled and cheap bcrypt."""
    store = {"tenant": tenant, "origin": origin, "bcrypt_rounds": 4, **store_overrides}
    return SiteDbConfig(
        store=StoreConfig(**store),
        cache=CacheConfig(backend=CacheBackend.MEMORY, key=CACHE_KEY),
        remote=RemoteConfig(enabled=False),
    )


def make_repository(
    conn: sqlite3.Connection,
    tenant: str,
    cache: InMemoryKeyValueCache,
    hasher: CredentialHasher,
    **kwargs,
) -> TenantUserRepository:
    """Migrate conn and build a repository for tenant on top of it."""
    manager = SchemaManager(conn, hasher=hasher)
    manager.ensure_schema()
    sink = PersistenceSink(conn, cache, CACHE_KEY)
    return TenantUserRepository(conn, tenant, manager.layout, sink, hasher=hasher, **kwargs)


@pytest.fixture
def data_dir():
    """Create temporary data directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def hasher():
    """Cheap bcrypt hasher."""
    return CredentialHasher(rounds=4)


@pytest.fixture
def cache():
    """Fresh in-memory cache."""
    return InMemoryKeyValueCache()


@pytest.fixture
def conn():
    """Fresh in-memory engine."""
    connection = open_engine()
    yield connection
    connection.close()
