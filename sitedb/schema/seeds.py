"""
Default accounts inserted into a tenant that has no users.

Every tenant gets the same three accounts the first time it is opened with
zero rows. Passwords are stored as digests.

    username    email               password     role
    admin       admin@example.com   admin123     admin
    demo        demo@example.com    demo123      user
    sarahlogic  sarah@example.com   password123  user
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SeedUser:
    """A default account with its starting stats."""

    username: str
    email: str
    password: str
    first_name: str
    last_name: str
    role: str = "user"
    total_score: int = 0
    games_played: int = 0
    correct_answers: int = 0
    wrong_answers: int = 0
    best_streak: int = 0
    badges: tuple[str, ...] = ()


SEED_USERS: tuple[SeedUser, ...] = (
    SeedUser(
        username="admin",
        email="admin@example.com",
        password="admin123",
        first_name="Admin",
        last_name="User",
        role="admin",
        total_score=5000,
        games_played=50,
        correct_answers=400,
        wrong_answers=50,
        best_streak=15,
        badges=("Perfect Score", "Hot Streak", "Sharp Eye"),
    ),
    SeedUser(
        username="demo",
        email="demo@example.com",
        password="demo123",
        first_name="Demo",
        last_name="User",
        total_score=1500,
        games_played=20,
        correct_answers=150,
        wrong_answers=50,
        best_streak=8,
        badges=("Hot Streak",),
    ),
    SeedUser(
        username="sarahlogic",
        email="sarah@example.com",
        password="password123",
        first_name="Sarah",
        last_name="Logic",
        total_score=3200,
        games_played=35,
        correct_answers=280,
        wrong_answers=70,
        best_streak=12,
        badges=("Hot Streak", "Regular Player"),
    ),
)
