"""
SiteDB Test Suite.

This package contains:
- unit/: Unit tests (in-memory SQLite, in-memory cache, mocked HTTP)
- integration/: Full store lifecycle tests (bootstrap → schema → repository → cache)
"""
