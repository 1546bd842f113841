"""
Test fixtures for deterministic testing.

- create_fixture_db: temp SQLite database with the current schema
- seed_team / TEAM: pinned engineers and projects
"""

from .fixture_db import TEAM, create_fixture_db, seed_team

__all__ = ["TEAM", "create_fixture_db", "seed_team"]
