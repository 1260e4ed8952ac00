"""
Schema manager for the shared users table.

Deployed images come in several shapes: app-scoped tables (discriminator
"app"), site-scoped tables (discriminator "site"), hashed-credential tables
(credential column "password_hash"/"passwordHash") and single-tenant tables
with no discriminator at all. They are all treated as partial versions of one
general table, and the manager brings any of them forward by adding what is
missing.

Table schema (fresh database):
    users:
        - id INTEGER PRIMARY KEY AUTOINCREMENT
        - site TEXT NOT NULL            (tenant discriminator)
        - username TEXT NOT NULL
        - email TEXT                    (NULL when absent)
        - password TEXT NOT NULL        (bcrypt digest or legacy plaintext)
        - displayName, firstName, lastName TEXT
        - role TEXT NOT NULL DEFAULT 'user'
        - totalScore, gamesPlayed, correctAnswers, wrongAnswers,
          bestStreak INTEGER NOT NULL DEFAULT 0
        - badges TEXT NOT NULL DEFAULT '[]' (JSON array)
        - createdAt TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
        - lastLogin TEXT
        - UNIQUE INDEX (site, lower(username))
        - UNIQUE INDEX (site, lower(email)) WHERE email non-empty

Invariants:
    - Migration only adds columns and indexes; nothing is dropped or renamed
    - Migration failure is reported through SchemaStatus, never raised
    - Column names used in SQL come from the whitelists in this module
    - Seeding runs only when the tenant has zero rows

How to change safely:
    - New columns go into OPTIONAL_COLUMNS with a constant default
    - Never rely on a column being present without checking SchemaLayout
"""

from __future__ import annotations

import json
import logging
import sqlite3
from dataclasses import dataclass, field
from typing import Any, Optional

from ..engine import table_columns, table_exists
from ..errors import MigrationFailedError
from ..users.credentials import CredentialHasher
from ..users.models import utc_now_text
from .seeds import SEED_USERS, SeedUser

logger = logging.getLogger(__name__)

USERS_TABLE = "users"

# Accepted discriminator and credential column names, preferred first
TENANT_COLUMNS = ("site", "app")
CREDENTIAL_COLUMNS = ("password", "password_hash", "passwordHash")

# Columns a legacy table may lack; ALTER TABLE only allows constant defaults
OPTIONAL_COLUMNS: dict[str, str] = {
    "email": "TEXT",
    "displayName": "TEXT",
    "firstName": "TEXT",
    "lastName": "TEXT",
    "role": "TEXT NOT NULL DEFAULT 'user'",
    "totalScore": "INTEGER NOT NULL DEFAULT 0",
    "gamesPlayed": "INTEGER NOT NULL DEFAULT 0",
    "correctAnswers": "INTEGER NOT NULL DEFAULT 0",
    "wrongAnswers": "INTEGER NOT NULL DEFAULT 0",
    "bestStreak": "INTEGER NOT NULL DEFAULT 0",
    "badges": "TEXT NOT NULL DEFAULT '[]'",
    "createdAt": "TEXT",
    "lastLogin": "TEXT",
}

CREATE_USERS_TABLE = """
    CREATE TABLE users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        site TEXT NOT NULL,
        username TEXT NOT NULL,
        email TEXT,
        password TEXT NOT NULL,
        displayName TEXT,
        firstName TEXT,
        lastName TEXT,
        role TEXT NOT NULL DEFAULT 'user',
        totalScore INTEGER NOT NULL DEFAULT 0,
        gamesPlayed INTEGER NOT NULL DEFAULT 0,
        correctAnswers INTEGER NOT NULL DEFAULT 0,
        wrongAnswers INTEGER NOT NULL DEFAULT 0,
        bestStreak INTEGER NOT NULL DEFAULT 0,
        badges TEXT NOT NULL DEFAULT '[]',
        createdAt TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
        lastLogin TEXT
    )
"""


def _literal(value: str) -> str:
    """Quote a configuration string as an SQL literal for DDL defaults."""
    return "'" + value.replace("'", "''") + "'"


@dataclass(frozen=True)
class SchemaLayout:
    """Which physical columns play which role in the live users table.

    Attributes:
        tenant_column: Discriminator column ("site" or "app")
        credential_column: Credential column
        columns: All column names present in the table
    """

    tenant_column: str = "site"
    credential_column: str = "password"
    columns: frozenset[str] = field(
        default_factory=lambda: frozenset(
            ("id", "site", "username", "password", *OPTIONAL_COLUMNS)
        )
    )

    def __post_init__(self) -> None:
        if self.tenant_column not in TENANT_COLUMNS:
            raise ValueError(f"Unsupported tenant column: {self.tenant_column}")
        if self.credential_column not in CREDENTIAL_COLUMNS:
            raise ValueError(f"Unsupported credential column: {self.credential_column}")

    def has(self, column: str) -> bool:
        return column in self.columns

    @property
    def tenant(self) -> str:
        return f'"{self.tenant_column}"'

    @property
    def credential(self) -> str:
        return f'"{self.credential_column}"'

    def select_list(self) -> str:
        """Projection with canonical aliases; absent columns read as NULL."""
        parts = ["id", "username", f"{self.tenant} AS tenant"]
        for column in OPTIONAL_COLUMNS:
            if column in self.columns:
                parts.append(f'"{column}"')
            else:
                parts.append(f'NULL AS "{column}"')
        return ", ".join(parts)

    def insert(self, conn: sqlite3.Connection, values: dict[str, Any]) -> int:
        """Insert one user row and return its id.

        Args:
            conn: Engine connection
            values: Canonical keys: "tenant", "username", "credential" and any
                of OPTIONAL_COLUMNS. Optional keys the table lacks are dropped.

        Raises:
            sqlite3.IntegrityError: If a uniqueness index rejects the row
        """
        columns = [self.tenant, '"username"', self.credential]
        params: list[Any] = [values["tenant"], values["username"], values["credential"]]
        for column in OPTIONAL_COLUMNS:
            if column in values and column in self.columns:
                columns.append(f'"{column}"')
                params.append(values[column])

        placeholders = ", ".join("?" for _ in params)
        cursor = conn.execute(
            f"INSERT INTO users ({', '.join(columns)}) VALUES ({placeholders})",
            params,
        )
        return int(cursor.lastrowid)


@dataclass
class SchemaStatus:
    """Result of ensure_schema.

    Attributes:
        layout: Column mapping the repository must use
        created: Whether the table was created from scratch
        added_columns: Columns added by migration
        error: Migration failure, if any
    """

    layout: SchemaLayout
    created: bool = False
    added_columns: list[str] = field(default_factory=list)
    error: Optional[MigrationFailedError] = None

    @property
    def degraded(self) -> bool:
        return self.error is not None


class SchemaManager:
    """Creates and migrates the users table and seeds empty tenants.

    Attributes:
        conn: Engine connection
        legacy_tenant: Tenant assigned to rows of a table without discriminator
        hasher: Hasher for seed credentials

    Example:
        >>> manager = SchemaManager(conn, legacy_tenant="demotemplate")
        >>> status = manager.ensure_schema()
        >>> manager.ensure_seed_users("videobate")
        3
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        legacy_tenant: str = "demotemplate",
        hasher: Optional[CredentialHasher] = None,
    ) -> None:
        self.conn = conn
        self.legacy_tenant = legacy_tenant
        self.hasher = hasher or CredentialHasher()
        self.layout = SchemaLayout()

    def ensure_schema(self) -> SchemaStatus:
        """Create the users table or migrate an existing one.

        Returns:
            SchemaStatus; status.degraded is True if migration failed
        """
        if not table_exists(self.conn, USERS_TABLE):
            status = self._create()
        else:
            status = self._migrate()

        self.layout = status.layout
        return status

    def _create(self) -> SchemaStatus:
        logger.info("Creating users table")
        step = "create table"
        try:
            self.conn.execute("BEGIN IMMEDIATE")
            try:
                self.conn.execute(CREATE_USERS_TABLE)
                step = "create indexes"
                self._create_indexes("site")
                self.conn.execute("COMMIT")
            except sqlite3.Error:
                self.conn.execute("ROLLBACK")
                raise
        except sqlite3.Error as e:
            error = MigrationFailedError(f"Failed to create users table: {e}", step=step)
            logger.error(error.message, exc_info=True)
            return SchemaStatus(layout=SchemaLayout(), error=error)

        return SchemaStatus(layout=SchemaLayout(), created=True)

    def _migrate(self) -> SchemaStatus:
        columns = set(table_columns(self.conn, USERS_TABLE))
        tenant_column = next((c for c in TENANT_COLUMNS if c in columns), None)
        credential_column = next((c for c in CREDENTIAL_COLUMNS if c in columns), None)
        added: list[str] = []
        error: Optional[MigrationFailedError] = None
        step = "inspect"

        try:
            if "username" not in columns:
                raise MigrationFailedError("users table has no username column", step=step)

            if tenant_column is None:
                step = "add site"
                logger.info(f"Adding site column, existing rows assigned to {self.legacy_tenant!r}")
                self._add_column("site", f"TEXT NOT NULL DEFAULT {_literal(self.legacy_tenant)}")
                tenant_column = "site"
                added.append("site")

            if credential_column is None:
                step = "add password"
                self._add_column("password", "TEXT NOT NULL DEFAULT ''")
                credential_column = "password"
                added.append("password")

            for column, declaration in OPTIONAL_COLUMNS.items():
                if column not in columns:
                    step = f"add {column}"
                    self._add_column(column, declaration)
                    added.append(column)

            step = "create indexes"
            self._create_indexes(tenant_column)

        except MigrationFailedError as e:
            error = e
        except sqlite3.Error as e:
            error = MigrationFailedError(f"Schema migration failed at '{step}': {e}", step=step)

        if error is not None:
            logger.error(
                f"Schema migration incomplete, store is degraded: {error.message}",
                extra={"step": error.step, "added_columns": added},
            )
        elif added:
            logger.info(f"Migrated users table, added columns: {', '.join(added)}")

        layout = SchemaLayout(
            tenant_column=tenant_column or "site",
            credential_column=credential_column or "password",
            columns=frozenset(table_columns(self.conn, USERS_TABLE)),
        )
        return SchemaStatus(layout=layout, added_columns=added, error=error)

    def _add_column(self, column: str, declaration: str) -> None:
        self.conn.execute(f'ALTER TABLE users ADD COLUMN "{column}" {declaration}')

    def _create_indexes(self, tenant_column: str) -> None:
        self.conn.execute(
            f"""
            CREATE UNIQUE INDEX IF NOT EXISTS idx_users_tenant_username
                ON users("{tenant_column}", lower(username))
            """
        )
        self.conn.execute(
            f"""
            CREATE UNIQUE INDEX IF NOT EXISTS idx_users_tenant_email
                ON users("{tenant_column}", lower(email))
                WHERE email IS NOT NULL AND email <> ''
            """
        )

    def count_users(self, tenant: Optional[str] = None) -> int:
        """Count rows for one tenant, or all rows when tenant is None."""
        if tenant is None:
            row = self.conn.execute("SELECT COUNT(*) FROM users").fetchone()
        else:
            row = self.conn.execute(
                f"SELECT COUNT(*) FROM users WHERE {self.layout.tenant} = ?",
                (tenant,),
            ).fetchone()
        return int(row[0])

    def ensure_seed_users(self, tenant: str) -> int:
        """Insert the default accounts if tenant has no rows.

        Args:
            tenant: Tenant to seed

        Returns:
            Number of accounts inserted (0 if the tenant already had rows)
        """
        existing = self.count_users(tenant)
        if existing:
            logger.info(f"Found {existing} users for tenant {tenant}, skipping seed")
            return 0

        logger.info(f"Creating default users for tenant {tenant}")
        inserted = 0
        for seed in SEED_USERS:
            try:
                self.layout.insert(self.conn, self._seed_values(tenant, seed))
                inserted += 1
            except sqlite3.IntegrityError:
                logger.warning(f"Seed user {seed.username} conflicts with an existing row, skipped")
        return inserted

    def _seed_values(self, tenant: str, seed: SeedUser) -> dict[str, Any]:
        return {
            "tenant": tenant,
            "username": seed.username,
            "credential": self.hasher.hash(seed.password),
            "email": seed.email,
            "firstName": seed.first_name,
            "lastName": seed.last_name,
            "role": seed.role,
            "totalScore": seed.total_score,
            "gamesPlayed": seed.games_played,
            "correctAnswers": seed.correct_answers,
            "wrongAnswers": seed.wrong_answers,
            "bestStreak": seed.best_streak,
            "badges": json.dumps(list(seed.badges)),
            "createdAt": utc_now_text(),
        }
