"""
Unit tests for the bootstrap state machine.

Tests cover:
- Local development origin detection
- local → remote → fresh fallback order
- Remote is never consulted from a local development origin
- Unusable images are treated as absent
- Idempotent run()
"""

import pytest

from sitedb.bootstrap import BootstrapState, StoreBootstrapper, is_local_development
from sitedb.engine import open_engine, serialize_engine, table_exists


def make_image(table: str = "marker") -> bytes:
    conn = open_engine()
    conn.execute(f"CREATE TABLE {table} (id INTEGER PRIMARY KEY)")
    image = serialize_engine(conn)
    conn.close()
    return image


class FakeSource:
    """Snapshot source returning a fixed result and counting calls."""

    def __init__(self, name: str, image=None):
        self.name = name
        self.image = image
        self.calls = 0

    async def try_load(self):
        self.calls += 1
        return self.image


class TestIsLocalDevelopment:
    """Tests for is_local_development."""

    @pytest.mark.parametrize(
        "origin",
        [
            "file:///home/dev/site/index.html",
            "http://localhost",
            "http://localhost:8080",
            "https://app.localhost",
            "http://127.0.0.1:5500",
            "http://[::1]:3000",
            "http://192.168.1.20",
        ],
    )
    def test_local(self, origin):
        assert is_local_development(origin)

    @pytest.mark.parametrize(
        "origin",
        [
            "https://videobate.example",
            "https://localhost.example.com",
            "http://10.0.0.5",
            "https://aiunites.github.io",
            "",
        ],
    )
    def test_not_local(self, origin):
        assert not is_local_development(origin)


class TestStoreBootstrapper:
    """Tests for StoreBootstrapper."""

    @pytest.mark.asyncio
    async def test_local_image_wins(self):
        """A cached image is used and the remote is never consulted."""
        local = FakeSource("local", make_image("from_local"))
        remote = FakeSource("remote", make_image("from_remote"))
        bootstrapper = StoreBootstrapper(local, remote, origin="https://site.example")

        result = await bootstrapper.run()

        assert result.origin == "local"
        assert table_exists(result.connection, "from_local")
        assert remote.calls == 0
        assert result.states == [BootstrapState.INIT, BootstrapState.TRYING_LOCAL, BootstrapState.READY]

    @pytest.mark.asyncio
    async def test_remote_when_local_absent(self):
        local = FakeSource("local")
        remote = FakeSource("remote", make_image("from_remote"))
        bootstrapper = StoreBootstrapper(local, remote, origin="https://site.example")

        result = await bootstrapper.run()

        assert result.origin == "remote"
        assert table_exists(result.connection, "from_remote")
        assert result.states == [
            BootstrapState.INIT,
            BootstrapState.TRYING_LOCAL,
            BootstrapState.TRYING_REMOTE,
            BootstrapState.READY,
        ]

    @pytest.mark.asyncio
    async def test_fresh_when_both_absent(self):
        local = FakeSource("local")
        remote = FakeSource("remote")
        bootstrapper = StoreBootstrapper(local, remote, origin="https://site.example")

        result = await bootstrapper.run()

        assert result.origin == "fresh"
        assert remote.calls == 1
        assert not table_exists(result.connection, "users")
        assert result.states[-2:] == [BootstrapState.FRESH, BootstrapState.READY]
        assert bootstrapper.state is BootstrapState.READY

    @pytest.mark.asyncio
    async def test_local_development_skips_remote(self):
        local = FakeSource("local")
        remote = FakeSource("remote", make_image())
        bootstrapper = StoreBootstrapper(local, remote, origin="http://localhost:8000")

        result = await bootstrapper.run()

        assert result.origin == "fresh"
        assert remote.calls == 0
        assert BootstrapState.TRYING_REMOTE not in result.states

    @pytest.mark.asyncio
    async def test_invalid_local_image_falls_through(self):
        """Bytes that are not a database count as absent."""
        local = FakeSource("local", b"definitely not sqlite")
        remote = FakeSource("remote", make_image("from_remote"))
        bootstrapper = StoreBootstrapper(local, remote, origin="https://site.example")

        result = await bootstrapper.run()

        assert result.origin == "remote"

    @pytest.mark.asyncio
    async def test_empty_remote_image_goes_fresh(self):
        local = FakeSource("local")
        remote = FakeSource("remote", b"")
        result = await StoreBootstrapper(local, remote, origin="https://site.example").run()

        assert result.origin == "fresh"

    @pytest.mark.asyncio
    async def test_no_remote_defaults_to_empty(self):
        local = FakeSource("local")
        result = await StoreBootstrapper(local, origin="https://site.example").run()

        assert result.origin == "fresh"

    @pytest.mark.asyncio
    async def test_run_is_idempotent(self):
        local = FakeSource("local", make_image())
        bootstrapper = StoreBootstrapper(local, FakeSource("remote"), origin="https://site.example")

        first = await bootstrapper.run()
        second = await bootstrapper.run()

        assert first is second
        assert local.calls == 1
