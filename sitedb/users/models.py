"""
User records for SiteDB.

The repository never hands raw engine rows to callers. Rows are projected
through UserBuilder into the typed User record, which has no credential
field at all.

Invariants:
    - User carries no credential
    - badges is always a list of strings, in stored order
    - Missing or malformed stats columns read as zero
"""

from __future__ import annotations

import json
import logging
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

logger = logging.getLogger(__name__)


class Role(Enum):
    """Account roles."""

    USER = "user"
    ADMIN = "admin"


class ListOrder(Enum):
    """Sort keys for listing a tenant's users."""

    SCORE_DESC = "score_desc"
    USERNAME_ASC = "username_asc"


@dataclass(frozen=True)
class UserStats:
    """Game statistics attached to an account."""

    total_score: int = 0
    games_played: int = 0
    correct_answers: int = 0
    wrong_answers: int = 0
    best_streak: int = 0
    badges: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalScore": self.total_score,
            "gamesPlayed": self.games_played,
            "correctAnswers": self.correct_answers,
            "wrongAnswers": self.wrong_answers,
            "bestStreak": self.best_streak,
            "badges": list(self.badges),
        }


@dataclass(frozen=True)
class User:
    """An account as seen outside the repository.

    Attributes:
        id: Store-assigned identifier
        username: Lower-cased login name
        email: Lower-cased email, or None
        display_name: Optional presentation name
        first_name: Optional first name
        last_name: Optional last name
        role: Account role
        created_at: Creation time (UTC)
        last_login: Last successful authentication (UTC), or None
        stats: Game statistics
    """

    id: int
    username: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Role = Role.USER
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None
    stats: UserStats = field(default_factory=UserStats)

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    def to_dict(self) -> dict[str, Any]:
        """Boundary shape consumed by UI and auth collaborators."""
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "displayName": self.display_name,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "role": self.role.value,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "lastLogin": self.last_login.isoformat() if self.last_login else None,
            "stats": self.stats.to_dict(),
        }


@dataclass(frozen=True)
class RegistrationInput:
    """Fields supplied by a caller registering an account."""

    username: str
    password: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    display_name: Optional[str] = None


@dataclass(frozen=True)
class StatsDelta:
    """Result of one finished game, applied by update_stats."""

    score: int = 0
    correct: int = 0
    wrong: int = 0
    streak: int = 0

    def validate(self) -> None:
        """Reject deltas that would decrease a counter.

        Raises:
            ValueError: If any component is negative
        """
        for name in ("score", "correct", "wrong", "streak"):
            if getattr(self, name) < 0:
                raise ValueError(f"Stats delta '{name}' must not be negative")


def utc_now_text() -> str:
    """Current UTC time in SQLite's CURRENT_TIMESTAMP format."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an engine timestamp into an aware UTC datetime.

    Accepts SQLite's "YYYY-MM-DD HH:MM:SS" and ISO 8601 (with or without "Z").
    Unparseable values read as None.
    """
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"Unparseable timestamp {value!r}")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_badges(value: Any) -> tuple[str, ...]:
    """Deserialize the JSON badge list; anything else reads as empty."""
    if not value:
        return ()
    try:
        badges = json.loads(value)
    except (TypeError, ValueError):
        return ()
    if not isinstance(badges, list):
        return ()
    return tuple(str(b) for b in badges)


def _int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _text(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


class UserBuilder:
    """Builds User records from engine rows.

    Rows must use the canonical column aliases produced by
    SchemaLayout.select_list().

    Example:
        >>> row = conn.execute(f"SELECT {layout.select_list()} FROM users").fetchone()
        >>> user = UserBuilder.from_row(row)
    """

    def __init__(self) -> None:
        self._fields: dict[str, Any] = {}
        self._stats: dict[str, Any] = {}

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> User:
        data = dict(zip(row.keys(), tuple(row)))
        builder = cls()
        builder.identity(data["id"], data["username"])
        builder.contact(data.get("email"))
        builder.names(data.get("displayName"), data.get("firstName"), data.get("lastName"))
        builder.role(data.get("role"))
        builder.timestamps(data.get("createdAt"), data.get("lastLogin"))
        builder.stats(
            total_score=data.get("totalScore"),
            games_played=data.get("gamesPlayed"),
            correct_answers=data.get("correctAnswers"),
            wrong_answers=data.get("wrongAnswers"),
            best_streak=data.get("bestStreak"),
            badges=data.get("badges"),
        )
        return builder.build()

    def identity(self, user_id: Any, username: Any) -> UserBuilder:
        self._fields["id"] = int(user_id)
        self._fields["username"] = str(username)
        return self

    def contact(self, email: Any) -> UserBuilder:
        self._fields["email"] = _text(email)
        return self

    def names(self, display_name: Any, first_name: Any, last_name: Any) -> UserBuilder:
        self._fields["display_name"] = _text(display_name)
        self._fields["first_name"] = _text(first_name)
        self._fields["last_name"] = _text(last_name)
        return self

    def role(self, role: Any) -> UserBuilder:
        try:
            self._fields["role"] = Role(str(role or "user").lower())
        except ValueError:
            self._fields["role"] = Role.USER
        return self

    def timestamps(self, created_at: Any, last_login: Any) -> UserBuilder:
        self._fields["created_at"] = parse_timestamp(created_at)
        self._fields["last_login"] = parse_timestamp(last_login)
        return self

    def stats(self, **values: Any) -> UserBuilder:
        self._stats = values
        return self

    def build(self) -> User:
        stats = UserStats(
            total_score=_int(self._stats.get("total_score")),
            games_played=_int(self._stats.get("games_played")),
            correct_answers=_int(self._stats.get("correct_answers")),
            wrong_answers=_int(self._stats.get("wrong_answers")),
            best_streak=_int(self._stats.get("best_streak")),
            badges=parse_badges(self._stats.get("badges")),
        )
        return User(stats=stats, **self._fields)
