"""
SQLite engine adapter for SiteDB.

The relational engine is an in-memory SQLite connection. It is created empty
or materialized from a serialized image, and serialized back to bytes by the
persistence sink. Nothing outside the bootstrapper and the sink handles raw
image bytes.

Invariants:
    - Connections are in-memory; the image is the only durable form
    - An image is accepted only if SQLite can read its schema and it passes
      quick_check
    - Autocommit by default, explicit transactions for multi-statement writes

Requires Python 3.11+ for Connection.serialize/deserialize.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Any, Optional

logger = logging.getLogger(__name__)


class InvalidImageError(Exception):
    """Bytes are not a readable SQLite database image."""

    pass


def _unicode_lower(value: Any) -> Any:
    return value.lower() if isinstance(value, str) else value


def _configure(conn: sqlite3.Connection) -> sqlite3.Connection:
    conn.row_factory = sqlite3.Row
    # Built-in lower() folds ASCII only; queries and index expressions share this one
    conn.create_function("lower", 1, _unicode_lower, deterministic=True)
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def open_engine(image: Optional[bytes] = None) -> sqlite3.Connection:
    """Open an in-memory engine, optionally loaded from an image.

    Args:
        image: Serialized database, or None for a fresh empty database

    Returns:
        SQLite connection owning the database

    Raises:
        InvalidImageError: If image is empty or not a valid SQLite database
    """
    # Autocommit by default, explicit transactions
    conn = sqlite3.connect(":memory:", isolation_level=None)

    if image is None:
        return _configure(conn)

    if not image:
        conn.close()
        raise InvalidImageError("Empty database image")

    try:
        conn.deserialize(image)
        _configure(conn)
        conn.execute("SELECT count(*) FROM sqlite_master").fetchone()
        result = conn.execute("PRAGMA quick_check").fetchone()
        if result is None or result[0] != "ok":
            raise InvalidImageError(f"Integrity check failed: {result[0] if result else 'no result'}")
    except InvalidImageError:
        conn.close()
        raise
    except sqlite3.Error as e:
        conn.close()
        raise InvalidImageError(f"Not a SQLite database image: {e}") from e

    logger.debug(f"Materialized engine from image ({len(image)} bytes)")
    return conn


def serialize_engine(conn: sqlite3.Connection) -> bytes:
    """Serialize the full database held by conn.

    Raises:
        sqlite3.Error: If the connection cannot be serialized
    """
    return conn.serialize()


def table_exists(conn: sqlite3.Connection, name: str) -> bool:
    """Check whether a table exists in the main schema."""
    row = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?",
        (name,),
    ).fetchone()
    return row is not None


def table_columns(conn: sqlite3.Connection, table: str) -> list[str]:
    """Return column names of table in declaration order."""
    # PRAGMA arguments cannot be bound; table names come from module constants
    return [row["name"] for row in conn.execute(f"PRAGMA table_info({table})").fetchall()]
