"""
Store bootstrapper for SiteDB.

Decides once per store instance where the initial database comes from and
materializes the engine:

    INIT ──▶ TRYING_LOCAL ──image──────────────────────────────▶ READY
                  │ absent
                  ├── local development origin ──▶ FRESH ──────▶ READY
                  ▼
             TRYING_REMOTE ──image─────────────────────────────▶ READY
                  │ absent / error
                  ▼
                FRESH ──────────────────────────────────────────▶ READY

Invariants:
    - Every path ends in READY; FRESH never fails
    - The remote is never consulted from a local development origin
    - One attempt per source, no retries or backoff
    - run() is idempotent; a second call returns the first result

How to change safely:
    - Add new sources by extending the chain, not by retrying existing ones
    - Keep local development detection conservative: a false "remote"
      classification overwrites a developer's cache with shared data
"""

from __future__ import annotations

import asyncio
import ipaddress
import logging
import sqlite3
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
from urllib.parse import urlsplit

from .engine import InvalidImageError, open_engine
from .snapshot import EmptySource, SnapshotSource

logger = logging.getLogger(__name__)


class BootstrapState(Enum):
    """States of the bootstrap state machine."""

    INIT = "init"
    TRYING_LOCAL = "trying_local"
    TRYING_REMOTE = "trying_remote"
    FRESH = "fresh"
    READY = "ready"


@dataclass
class BootstrapResult:
    """Outcome of a bootstrap run.

    Attributes:
        connection: Live engine connection, owned by the caller
        origin: Which source produced the database ("local", "remote", "fresh")
        states: States visited, in order
    """

    connection: sqlite3.Connection
    origin: str
    states: list[BootstrapState] = field(default_factory=list)


def is_local_development(origin: str) -> bool:
    """Classify the hosting origin as a local development context.

    Local means a file: origin, "localhost", a loopback address or a
    192.168.x.x LAN address.
    """
    parts = urlsplit(origin.strip())
    if parts.scheme.lower() == "file":
        return True

    host = (parts.hostname or "").lower()
    if not host:
        return False
    if host == "localhost" or host.endswith(".localhost"):
        return True
    if host.startswith("192.168."):
        return True

    try:
        return ipaddress.ip_address(host).is_loopback
    except ValueError:
        return False


class StoreBootstrapper:
    """Runs the local → remote → fresh fallback chain once.

    Attributes:
        local: Source consulted first
        remote: Source consulted when local is absent outside development
        origin: Hosting origin used for local development detection
        state: Current state

    Example:
        >>> bootstrapper = StoreBootstrapper(
        ...     local=LocalCacheSource(cache, "sitedb_sqldb"),
        ...     remote=RemoteSnapshotSource(config.remote),
        ...     origin="https://videobate.example",
        ... )
        >>> result = await bootstrapper.run()
        >>> result.origin
        'remote'
    """

    def __init__(
        self,
        local: SnapshotSource,
        remote: Optional[SnapshotSource] = None,
        origin: str = "",
    ) -> None:
        self.local = local
        self.remote = remote or EmptySource()
        self.origin = origin
        self.state = BootstrapState.INIT
        self._states: list[BootstrapState] = [BootstrapState.INIT]
        self._result: Optional[BootstrapResult] = None
        self._lock = asyncio.Lock()

    def _enter(self, state: BootstrapState) -> None:
        logger.debug(f"Bootstrap {self.state.value} -> {state.value}")
        self.state = state
        self._states.append(state)

    async def run(self) -> BootstrapResult:
        """Run the state machine to READY.

        Returns:
            BootstrapResult with the live engine connection
        """
        async with self._lock:
            if self._result is not None:
                return self._result

            self._enter(BootstrapState.TRYING_LOCAL)
            conn = await self._attempt(self.local)
            source_name = self.local.name

            if conn is None:
                if is_local_development(self.origin):
                    logger.info(f"Local development origin {self.origin!r}, skipping remote snapshot")
                else:
                    self._enter(BootstrapState.TRYING_REMOTE)
                    conn = await self._attempt(self.remote)
                    source_name = self.remote.name

            if conn is None:
                self._enter(BootstrapState.FRESH)
                conn = open_engine()
                source_name = "fresh"
                logger.info("Created new empty database")

            self._enter(BootstrapState.READY)
            self._result = BootstrapResult(
                connection=conn,
                origin=source_name,
                states=list(self._states),
            )
            logger.info(
                f"Bootstrap ready from {source_name}",
                extra={"origin": source_name, "states": [s.value for s in self._states]},
            )
            return self._result

    async def _attempt(self, source: SnapshotSource) -> Optional[sqlite3.Connection]:
        """Load and materialize one source; None means absent."""
        image = await source.try_load()
        if image is None:
            return None

        try:
            return open_engine(image)
        except InvalidImageError as e:
            logger.warning(f"Image from {source.name} source is unusable, treating as absent: {e}")
            return None
