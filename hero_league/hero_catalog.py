"""
Default hero pool (22 heroes) and loader into the heroes table.
Ids are stable slugs of the hero name so re-seeding is idempotent.
"""
from __future__ import annotations

import logging
import sqlite3

from hero_league.models import Hero, HeroArchetype, HeroRole, MetaTier
from hero_league.persistence.repositories import HeroRepository

logger = logging.getLogger(__name__)

A = HeroArchetype
R = HeroRole
T = MetaTier

# (name, primary role, primary tier, secondary role, secondary tier, archetype)
HERO_SEED: list[tuple[str, HeroRole, MetaTier, HeroRole | None, MetaTier | None, HeroArchetype]] = [
    # MID
    ("Luxana", R.MID, T.S, R.SUPPORT, T.B, A.MAGE),
    ("Ignis", R.MID, T.A, None, None, A.MAGE),
    ("Vortex", R.MID, T.S, R.JUNGLE, T.C, A.ASSASSIN),
    ("Aurelia", R.MID, T.A, None, None, A.MAGE),
    ("Zenith", R.MID, T.B, None, None, A.MAGE),
    # JUNGLE
    ("Storm Spirit", R.JUNGLE, T.S, R.TOP, T.D, A.ASSASSIN),
    ("Shadow", R.JUNGLE, T.A, None, None, A.ASSASSIN),
    ("Fenris", R.JUNGLE, T.S, R.TOP, T.B, A.BRUISER),
    ("Kraken", R.JUNGLE, T.B, R.SUPPORT, T.D, A.TANK),
    ("Rengar", R.JUNGLE, T.A, R.TOP, T.C, A.ASSASSIN),
    # CARRY
    ("Vail", R.CARRY, T.S, None, None, A.MARKSMAN),
    ("Bolt", R.CARRY, T.B, None, None, A.MARKSMAN),
    ("Cinder", R.CARRY, T.A, R.MID, T.C, A.MARKSMAN),
    ("Riptide", R.CARRY, T.S, None, None, A.MARKSMAN),
    ("Jinx", R.CARRY, T.B, None, None, A.MARKSMAN),
    # TOP
    ("IronClad", R.TOP, T.A, R.JUNGLE, T.B, A.TANK),
    ("Goliath", R.TOP, T.S, None, None, A.BRUISER),
    ("Atlas", R.TOP, T.A, R.SUPPORT, T.B, A.TANK),
    ("Katarina", R.TOP, T.S, R.MID, T.C, A.ASSASSIN),
    # SUPPORT
    ("Seraphina", R.SUPPORT, T.S, None, None, A.ENCHANTER),
    ("Thorn", R.SUPPORT, T.A, R.TOP, T.D, A.TANK),
    ("Echo", R.SUPPORT, T.B, R.MID, T.D, A.ENCHANTER),
]


def _slug(name: str) -> str:
    """Stable id from hero name (lowercase, spaces to underscores)."""
    return name.strip().lower().replace(" ", "_").replace("-", "_")


def default_heroes() -> list[Hero]:
    return [
        Hero(
            id=_slug(name),
            name=name,
            primary_role=pr,
            primary_tier=pt,
            secondary_role=sr,
            secondary_tier=st,
            archetype=arch,
        )
        for name, pr, pt, sr, st, arch in HERO_SEED
    ]


def seed_heroes(conn: sqlite3.Connection, heroes: list[Hero] | None = None) -> int:
    """Upsert heroes by name. Returns the catalog size afterwards. Caller commits."""
    repo = HeroRepository()
    for hero in heroes if heroes is not None else default_heroes():
        repo.upsert(conn, hero)
    total = repo.count(conn)
    logger.info("Hero synchronization complete. Total: %d", total)
    return total
