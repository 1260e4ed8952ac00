"""
Tenant-scoped user repository for SiteDB.

Every query carries the tenant fixed at construction. Callers never pass a
tenant, so they cannot read or write another site's rows, even with a
guessed id.

Invariants:
    - All SQL is parameterized; identifiers come from SchemaLayout only
    - Usernames and emails are stored lower-cased and matched
      case-insensitively
    - Credentials never leave this module; callers get User or None
    - Every mutation ends with a persistence sink commit; reads never commit
    - Unknown identifier and wrong password are indistinguishable

How to change safely:
    - Route new columns through SchemaLayout so degraded legacy tables still
      read
    - Keep mutations under the write lock so commits never interleave
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from typing import Any, Optional

from ..errors import DuplicateEmailError, DuplicateUsernameError, StoreUnavailableError
from ..persistence import PersistenceSink
from ..schema.manager import SchemaLayout
from .credentials import CredentialHasher, CredentialMatch
from .models import (
    ListOrder,
    RegistrationInput,
    StatsDelta,
    User,
    UserBuilder,
    utc_now_text,
)

logger = logging.getLogger(__name__)

_ORDER_BY = {
    ListOrder.SCORE_DESC: 'ORDER BY "totalScore" DESC, lower(username) ASC, id ASC',
    ListOrder.USERNAME_ASC: "ORDER BY lower(username) ASC, id ASC",
}


class TenantUserRepository:
    """Query surface for one tenant's accounts.

    Attributes:
        tenant: Tenant every operation is scoped to
        layout: Physical column mapping of the users table
        list_order: Sort key used by list_all

    Example:
        >>> repo = store.repository
        >>> user = await repo.register(RegistrationInput("alice", "secret1", email="a@x.com"))
        >>> await repo.authenticate("ALICE", "secret1")
        User(id=4, username='alice', ...)
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        tenant: str,
        layout: SchemaLayout,
        sink: PersistenceSink,
        hasher: Optional[CredentialHasher] = None,
        list_order: ListOrder = ListOrder.SCORE_DESC,
        rehash_legacy: bool = True,
        lock: Optional[asyncio.Lock] = None,
    ) -> None:
        if not tenant or not tenant.strip():
            raise ValueError("tenant must not be empty")

        self.tenant = tenant
        self.layout = layout
        self.list_order = list_order
        self.rehash_legacy = rehash_legacy
        self._conn: Optional[sqlite3.Connection] = conn
        self._sink = sink
        self._hasher = hasher or CredentialHasher()
        self._lock = lock or asyncio.Lock()
        self._dummy_digest: Optional[str] = None

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreUnavailableError(tenant=self.tenant)
        return self._conn

    def detach(self) -> None:
        """Drop the engine reference; later calls raise StoreUnavailableError."""
        self._conn = None

    # =========================================================================
    # Reads
    # =========================================================================

    def _fetch_one(self, where: str, params: tuple[Any, ...]) -> Optional[User]:
        row = self.conn.execute(
            f"SELECT {self.layout.select_list()} FROM users "
            f"WHERE {self.layout.tenant} = ? AND {where} LIMIT 1",
            (self.tenant, *params),
        ).fetchone()
        return UserBuilder.from_row(row) if row else None

    def _exists(self, where: str, params: tuple[Any, ...]) -> bool:
        row = self.conn.execute(
            f"SELECT 1 FROM users WHERE {self.layout.tenant} = ? AND {where} LIMIT 1",
            (self.tenant, *params),
        ).fetchone()
        return row is not None

    async def get_by_id(self, user_id: int) -> Optional[User]:
        """Get a user of this tenant by id."""
        return self._fetch_one("id = ?", (user_id,))

    async def get_by_username(self, username: str) -> Optional[User]:
        """Get a user by case-insensitive username."""
        return self._fetch_one("lower(username) = lower(?)", (username.strip().lower(),))

    async def username_exists(self, username: str) -> bool:
        """Check whether a username is taken within this tenant."""
        return self._exists("lower(username) = lower(?)", (username.strip().lower(),))

    async def email_exists(self, email: str) -> bool:
        """Check whether an email is registered within this tenant."""
        email = (email or "").strip().lower()
        if not email:
            return False
        return self._exists("lower(email) = lower(?)", (email,))

    async def list_all(self) -> list[User]:
        """Return all users of this tenant in the configured order."""
        rows = self.conn.execute(
            f"SELECT {self.layout.select_list()} FROM users "
            f"WHERE {self.layout.tenant} = ? {_ORDER_BY[self.list_order]}",
            (self.tenant,),
        ).fetchall()
        return [UserBuilder.from_row(row) for row in rows]

    async def count(self) -> int:
        """Number of users in this tenant."""
        row = self.conn.execute(
            f"SELECT COUNT(*) FROM users WHERE {self.layout.tenant} = ?",
            (self.tenant,),
        ).fetchone()
        return int(row[0])

    # =========================================================================
    # Mutations
    # =========================================================================

    async def register(self, data: RegistrationInput) -> User:
        """Create an account in this tenant.

        Args:
            data: Registration fields; username and email are lower-cased

        Returns:
            The created user

        Raises:
            ValueError: If username or password is empty
            DuplicateUsernameError: If the username is taken in this tenant
            DuplicateEmailError: If the email is registered in this tenant
        """
        username = data.username.strip().lower()
        email = (data.email or "").strip().lower() or None
        if not username:
            raise ValueError("username must not be empty")
        if not data.password:
            raise ValueError("password must not be empty")

        async with self._lock:
            if await self.username_exists(username):
                raise DuplicateUsernameError(username, self.tenant)
            if email and await self.email_exists(email):
                raise DuplicateEmailError(email, self.tenant)

            values = {
                "tenant": self.tenant,
                "username": username,
                "credential": self._hasher.hash(data.password),
                "email": email,
                "displayName": data.display_name,
                "firstName": data.first_name,
                "lastName": data.last_name,
                "role": "user",
                "badges": "[]",
                "createdAt": utc_now_text(),
            }
            try:
                user_id = self.layout.insert(self.conn, values)
            except sqlite3.IntegrityError as e:
                # Legacy inline constraints can reject rows the tenant-scoped checks allow
                if email and not await self.username_exists(username):
                    raise DuplicateEmailError(email, self.tenant) from e
                raise DuplicateUsernameError(username, self.tenant) from e

            await self._sink.commit()

        logger.info(f"User registered: {username}", extra={"tenant": self.tenant, "user_id": user_id})
        user = await self.get_by_id(user_id)
        if user is None:
            raise StoreUnavailableError(f"Registered user {user_id} could not be read back", tenant=self.tenant)
        return user

    async def authenticate(self, identifier: str, password: str) -> Optional[User]:
        """Verify credentials and record the login.

        Matches username or email case-insensitively within this tenant.
        Digest credentials are checked with bcrypt; legacy plaintext rows
        with a constant-time comparison, and are re-hashed on success when
        rehash_legacy is set.

        Args:
            identifier: Username or email
            password: Plaintext password

        Returns:
            The user with last_login updated, or None
        """
        identifier = (identifier or "").strip().lower()

        async with self._lock:
            candidates: list[sqlite3.Row] = []
            if identifier:
                # Username matches win over email matches
                candidates = self.conn.execute(
                    f"SELECT id, {self.layout.credential} AS credential FROM users "
                    f"WHERE {self.layout.tenant} = ? "
                    "AND (lower(username) = lower(?) OR lower(email) = lower(?)) "
                    "ORDER BY CASE WHEN lower(username) = lower(?) THEN 0 ELSE 1 END, id",
                    (self.tenant, identifier, identifier, identifier),
                ).fetchall()

            if not candidates:
                # Spend the same bcrypt work as a real check
                self._hasher.verify(password, self._dummy())
                logger.info("Authentication failed", extra={"tenant": self.tenant})
                return None

            for candidate in candidates:
                match = self._hasher.verify(password, candidate["credential"] or "")
                if match:
                    user_id = int(candidate["id"])
                    self._record_login(user_id, password, match)
                    await self._sink.commit()
                    break
            else:
                logger.info("Authentication failed", extra={"tenant": self.tenant})
                return None

        logger.info("Authentication succeeded", extra={"tenant": self.tenant, "user_id": user_id})
        return await self.get_by_id(user_id)

    def _dummy(self) -> str:
        if self._dummy_digest is None:
            self._dummy_digest = self._hasher.hash("sitedb-unknown-user")
        return self._dummy_digest

    def _record_login(self, user_id: int, password: str, match: CredentialMatch) -> None:
        assignments: list[str] = []
        params: list[Any] = []

        if self.layout.has("lastLogin"):
            assignments.append('"lastLogin" = ?')
            params.append(utc_now_text())

        if match is CredentialMatch.LEGACY_PLAINTEXT and self.rehash_legacy:
            assignments.append(f"{self.layout.credential} = ?")
            params.append(self._hasher.hash(password))
            logger.info("Migrated legacy plaintext credential", extra={"tenant": self.tenant, "user_id": user_id})

        if not assignments:
            return

        self.conn.execute(
            f"UPDATE users SET {', '.join(assignments)} WHERE id = ? AND {self.layout.tenant} = ?",
            (*params, user_id, self.tenant),
        )

    async def update_stats(self, user_id: int, delta: StatsDelta) -> bool:
        """Apply one game's results to a user of this tenant.

        totalScore, correctAnswers and wrongAnswers grow by the delta,
        gamesPlayed by one, and bestStreak becomes the larger of the stored
        value and delta.streak.

        Args:
            user_id: Target user id
            delta: Game results

        Returns:
            True if a row of this tenant was updated, False otherwise

        Raises:
            ValueError: If a delta component is negative
        """
        delta.validate()

        async with self._lock:
            cursor = self.conn.execute(
                f"""
                UPDATE users SET
                    "totalScore" = COALESCE("totalScore", 0) + ?,
                    "gamesPlayed" = COALESCE("gamesPlayed", 0) + 1,
                    "correctAnswers" = COALESCE("correctAnswers", 0) + ?,
                    "wrongAnswers" = COALESCE("wrongAnswers", 0) + ?,
                    "bestStreak" = MAX(COALESCE("bestStreak", 0), ?)
                WHERE id = ? AND {self.layout.tenant} = ?
                """,
                (delta.score, delta.correct, delta.wrong, delta.streak, user_id, self.tenant),
            )
            if cursor.rowcount == 0:
                return False

            await self._sink.commit()

        return True
