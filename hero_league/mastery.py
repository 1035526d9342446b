"""
Mastery/leveling: cumulative experience → level via a fixed 30-step table.
Two tracks per player: one per role (created with the player), one per hero
(created lazily at level 1 / 0 XP on the first gain).
"""
from __future__ import annotations

import logging
import sqlite3
from bisect import bisect_right

from hero_league.errors import DataIntegrityError
from hero_league.models import HeroRole, Mastery, Player
from hero_league.persistence.repositories import PlayerRepository

logger = logging.getLogger(__name__)

# Cumulative XP needed for L1..L30. Index i holds the threshold of level i+1.
EXPERIENCE_TABLE: tuple[int, ...] = (
    0,                                                  # L1
    150, 350, 650, 1_050, 1_500,                        # L2-L6
    2_500, 4_000, 6_000, 8_500, 11_500, 15_000,         # L7-L12
    21_000, 29_000, 40_000, 55_000, 75_000, 100_000,    # L13-L18
    135_000, 180_000, 240_000, 320_000, 420_000, 550_000, 750_000,  # L19-L25
    1_000_000, 1_350_000, 1_800_000, 2_400_000, 3_500_000,          # L26-L30
)
MAX_LEVEL = len(EXPERIENCE_TABLE)


def calculate_level(total_experience: int) -> int:
    """Highest level L such that total_experience >= threshold(L). Never below 1."""
    return max(1, bisect_right(EXPERIENCE_TABLE, total_experience))


def add_experience(mastery: Mastery, amount: int) -> Mastery:
    """Add XP in place and recompute the level."""
    if amount < 0:
        raise ValueError(f"Experience amount must be non-negative, got {amount}")
    mastery.experience += amount
    mastery.level = calculate_level(mastery.experience)
    return mastery


class MasteryService:
    """Applies experience to a player's role/hero tracks and persists the rows."""

    def __init__(self, player_repo: PlayerRepository | None = None) -> None:
        self._player_repo = player_repo or PlayerRepository()

    def add_role_experience(
        self, conn: sqlite3.Connection, player: Player, role: HeroRole, amount: int
    ) -> Mastery:
        mastery = player.role_masteries.get(role)
        if mastery is None:
            raise DataIntegrityError(f"Role mastery not found for player {player.id} role {role.value}")
        add_experience(mastery, amount)
        self._player_repo.save_role_mastery(conn, player.id, role, mastery)
        logger.info(
            "Added %d experience to role %s for player %s. New level: %d",
            amount, role.value, player.nickname, mastery.level,
        )
        return mastery

    def add_hero_experience(
        self, conn: sqlite3.Connection, player: Player, hero_id: str, amount: int
    ) -> Mastery:
        mastery = player.hero_masteries.get(hero_id)
        if mastery is None:
            mastery = Mastery(level=1, experience=0)
            player.hero_masteries[hero_id] = mastery
        add_experience(mastery, amount)
        self._player_repo.save_hero_mastery(conn, player.id, hero_id, mastery)
        logger.info(
            "Added %d experience to hero %s for player %s. New level: %d",
            amount, hero_id, player.nickname, mastery.level,
        )
        return mastery
