"""
Unit tests for environment-driven configuration.
"""

import pytest

from sitedb.config import CacheBackend, SiteDbConfig

ENV_VARS = [
    "SITEDB_TENANT",
    "SITEDB_ORIGIN",
    "SITEDB_LEGACY_TENANT",
    "SITEDB_LIST_ORDER",
    "SITEDB_REHASH_LEGACY",
    "SITEDB_SEED_USERS",
    "SITEDB_BCRYPT_ROUNDS",
    "SITEDB_CACHE_BACKEND",
    "SITEDB_CACHE_DIR",
    "SITEDB_CACHE_KEY",
    "SITEDB_REMOTE_ENABLED",
    "SITEDB_REMOTE_OWNER",
    "SITEDB_REMOTE_REPO",
    "SITEDB_REMOTE_PATH",
    "SITEDB_REMOTE_REF",
    "SITEDB_REMOTE_TOKEN",
    "SITEDB_REMOTE_API_BASE",
    "SITEDB_REMOTE_TIMEOUT_SECONDS",
    "LOG_LEVEL",
    "LOG_FORMAT",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestSiteDbConfig:
    """Tests for SiteDbConfig.from_env."""

    def test_defaults(self, clean_env):
        config = SiteDbConfig.from_env()

        assert config.store.tenant == "videobate"
        assert config.store.legacy_tenant == "demotemplate"
        assert config.store.list_order == "score_desc"
        assert config.store.rehash_legacy is True
        assert config.cache.backend is CacheBackend.FILE
        assert config.cache.key == "sitedb_sqldb"
        assert config.remote.enabled is True
        assert config.remote.token is None
        assert config.remote.timeout_seconds == 10.0
        assert config.remote.contents_url == (
            "https://api.github.com/repos/AIUNITES/AIUNITES-database-sync/contents/data/app.db"
        )
        assert config.observability.log_format == "json"

    def test_overrides(self, clean_env):
        clean_env.setenv("SITEDB_TENANT", "quizsite")
        clean_env.setenv("SITEDB_LIST_ORDER", "USERNAME_ASC")
        clean_env.setenv("SITEDB_REHASH_LEGACY", "false")
        clean_env.setenv("SITEDB_CACHE_BACKEND", "memory")
        clean_env.setenv("SITEDB_REMOTE_ENABLED", "false")
        clean_env.setenv("SITEDB_REMOTE_TOKEN", "abc")

        config = SiteDbConfig.from_env()

        assert config.store.tenant == "quizsite"
        assert config.store.list_order == "username_asc"
        assert config.store.rehash_legacy is False
        assert config.cache.backend is CacheBackend.MEMORY
        assert config.remote.enabled is False
        assert config.remote.token == "abc"

    @pytest.mark.parametrize(
        "name,value",
        [
            ("SITEDB_TENANT", "  "),
            ("SITEDB_LIST_ORDER", "random"),
            ("SITEDB_CACHE_BACKEND", "redis"),
            ("SITEDB_BCRYPT_ROUNDS", "2"),
            ("SITEDB_REMOTE_TIMEOUT_SECONDS", "0"),
            ("SITEDB_REMOTE_OWNER", ""),
        ],
    )
    def test_invalid(self, clean_env, name, value):
        clean_env.setenv(name, value)
        with pytest.raises(ValueError):
            SiteDbConfig.from_env()

    def test_log_config_hides_token(self, clean_env, caplog):
        clean_env.setenv("SITEDB_REMOTE_TOKEN", "supersecret")
        config = SiteDbConfig.from_env()

        with caplog.at_level("INFO", logger="sitedb.config"):
            config.log_config()

        assert "supersecret" not in caplog.text
        record = caplog.records[-1]
        assert record.remote_authenticated is True
        assert "supersecret" not in str(vars(record))
