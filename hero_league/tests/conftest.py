"""
Shared fixtures: temporary SQLite DB seeded with the hero catalog, roster
factory, and fixed random sources for outcome draws.
"""
from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

import pytest

# Ensure project root on path
_REPO_ROOT = Path(__file__).resolve().parent.parent.parent
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from hero_league.models import Player, PlayerTrait, Roster
from hero_league.persistence.db import get_connection, init_db, set_db_path, transaction
from hero_league.persistence.repositories import PlayerRepository, RosterRepository

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class FixedRandom:
    """random() always returns the same value; counts the draws."""

    def __init__(self, value: float) -> None:
        self.value = value
        self.calls = 0

    def random(self) -> float:
        self.calls += 1
        return self.value


@pytest.fixture
def db_conn(tmp_path):
    """Temporary DB with schema and the default hero catalog."""
    db_path = tmp_path / "hero_league_test.db"
    set_db_path(db_path)
    init_db(db_path=db_path, seed_heroes=True)
    conn = get_connection()
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture
def make_roster(db_conn) -> Callable[..., tuple[Roster, list[Player]]]:
    """
    Factory: make_roster(name, size=5, traits={index: {PlayerTrait, ...}}) -> (roster, players).
    Committed so services can open their own transactions afterwards.
    """

    def _make(
        name: str,
        size: int = 5,
        traits: dict[int, set[PlayerTrait]] | None = None,
        owner_id: str = "owner-1",
    ) -> tuple[Roster, list[Player]]:
        traits = traits or {}
        with transaction(db_conn):
            roster = RosterRepository().create(db_conn, owner_id=owner_id, name=name)
            players = [
                PlayerRepository().create(
                    db_conn, f"{name}-p{i}", roster_id=roster.id, traits=traits.get(i, set())
                )
                for i in range(size)
            ]
        return roster, players

    return _make


@pytest.fixture
def fixed_rng() -> Callable[[float], FixedRandom]:
    return FixedRandom
