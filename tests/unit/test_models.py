"""
Unit tests for user records and the row projection builder.
"""

from datetime import datetime, timezone

import pytest

from sitedb.schema import SchemaLayout, SchemaManager
from sitedb.users import ListOrder, Role, StatsDelta, UserBuilder, UserStats
from sitedb.users.models import parse_badges, parse_timestamp


class TestParsers:
    """Tests for timestamp and badge parsing."""

    def test_sqlite_timestamp(self):
        assert parse_timestamp("2024-03-01 12:30:00") == datetime(2024, 3, 1, 12, 30, tzinfo=timezone.utc)

    def test_iso_timestamp_with_z(self):
        assert parse_timestamp("2024-03-01T12:30:00Z") == datetime(2024, 3, 1, 12, 30, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", [None, "", "yesterday", 17])
    def test_unparseable_timestamp(self, value):
        assert parse_timestamp(value) is None

    def test_badges(self):
        assert parse_badges('["Hot Streak", "Sharp Eye"]') == ("Hot Streak", "Sharp Eye")

    @pytest.mark.parametrize("value", [None, "", "not json", '{"a": 1}', "42"])
    def test_malformed_badges_read_empty(self, value):
        assert parse_badges(value) == ()


class TestStatsDelta:
    """Tests for StatsDelta validation."""

    def test_valid(self):
        StatsDelta(score=100, correct=8, wrong=2, streak=5).validate()

    @pytest.mark.parametrize("field", ["score", "correct", "wrong", "streak"])
    def test_negative_rejected(self, field):
        with pytest.raises(ValueError, match=field):
            StatsDelta(**{field: -1}).validate()


class TestUserBuilder:
    """Tests for UserBuilder.from_row."""

    def test_from_full_row(self, conn, hasher):
        manager = SchemaManager(conn, hasher=hasher)
        manager.ensure_schema()
        manager.ensure_seed_users("siteA")

        row = conn.execute(
            f"SELECT {manager.layout.select_list()} FROM users WHERE username = 'admin'"
        ).fetchone()
        user = UserBuilder.from_row(row)

        assert user.username == "admin"
        assert user.is_admin
        assert user.email == "admin@example.com"
        assert user.stats == UserStats(
            total_score=5000,
            games_played=50,
            correct_answers=400,
            wrong_answers=50,
            best_streak=15,
            badges=("Perfect Score", "Hot Streak", "Sharp Eye"),
        )
        assert user.created_at is not None
        assert user.last_login is None

    def test_from_sparse_legacy_row(self, conn):
        """Missing optional columns read as defaults."""
        conn.execute("CREATE TABLE users (id INTEGER PRIMARY KEY, app TEXT, username TEXT, password TEXT)")
        conn.execute("INSERT INTO users (app, username, password) VALUES ('siteA', 'old', 'pw')")
        layout = SchemaLayout(tenant_column="app", columns=frozenset({"id", "app", "username", "password"}))

        row = conn.execute(f"SELECT {layout.select_list()} FROM users").fetchone()
        user = UserBuilder.from_row(row)

        assert user.username == "old"
        assert user.email is None
        assert user.role is Role.USER
        assert user.stats == UserStats()

    def test_unknown_role_reads_as_user(self):
        user = UserBuilder().identity(1, "x").role("superuser").build()
        assert user.role is Role.USER


class TestUserToDict:
    """Tests for the boundary shape."""

    def test_boundary_shape_has_no_credential(self):
        user = (
            UserBuilder()
            .identity(7, "alice")
            .contact("a@x.com")
            .names("Alice A.", "Alice", "Anders")
            .role("admin")
            .timestamps("2024-01-02 03:04:05", None)
            .stats(total_score=10, badges='["Hot Streak"]')
            .build()
        )
        data = user.to_dict()

        assert data["id"] == 7
        assert data["displayName"] == "Alice A."
        assert data["role"] == "admin"
        assert data["createdAt"] == "2024-01-02T03:04:05+00:00"
        assert data["lastLogin"] is None
        assert data["stats"]["totalScore"] == 10
        assert data["stats"]["badges"] == ["Hot Streak"]
        assert not {"password", "password_hash", "passwordHash", "credential"} & set(data)


class TestListOrder:
    def test_values(self):
        assert ListOrder("score_desc") is ListOrder.SCORE_DESC
        assert ListOrder("username_asc") is ListOrder.USERNAME_ASC
