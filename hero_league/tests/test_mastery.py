"""
Tests for the level table and experience application on role/hero tracks.
"""
from __future__ import annotations

import pytest

from hero_league.errors import DataIntegrityError
from hero_league.mastery import (
    EXPERIENCE_TABLE,
    MAX_LEVEL,
    MasteryService,
    add_experience,
    calculate_level,
)
from hero_league.models import HeroRole, Mastery
from hero_league.persistence.db import transaction
from hero_league.persistence.repositories import PlayerRepository


@pytest.mark.parametrize(
    "xp,level",
    [
        (0, 1),
        (149, 1),
        (150, 2),
        (349, 2),
        (350, 3),
        (1_500, 6),
        (2_499, 6),
        (2_500, 7),
        (99_999, 17),
        (100_000, 18),
        (3_499_999, 29),
        (3_500_000, 30),
        (10_000_000, 30),
    ],
)
def test_calculate_level_boundaries(xp, level):
    assert calculate_level(xp) == level


def test_level_table_shape():
    """30 strictly ascending thresholds starting at 0."""
    assert MAX_LEVEL == 30
    assert EXPERIENCE_TABLE[0] == 0
    assert all(a < b for a, b in zip(EXPERIENCE_TABLE, EXPERIENCE_TABLE[1:]))


def test_level_is_monotonic():
    levels = [calculate_level(x) for x in range(0, 30_000, 37)]
    assert levels == sorted(levels)


def test_each_threshold_reaches_its_level():
    for i, threshold in enumerate(EXPERIENCE_TABLE):
        assert calculate_level(threshold) == i + 1
        if threshold > 0:
            assert calculate_level(threshold - 1) == i


def test_add_experience_accumulates():
    m = Mastery()
    add_experience(m, 100)
    assert (m.level, m.experience) == (1, 100)
    add_experience(m, 50)
    assert (m.level, m.experience) == (2, 150)
    add_experience(m, 0)
    assert m.experience == 150


def test_add_experience_rejects_negative():
    with pytest.raises(ValueError):
        add_experience(Mastery(), -1)


def test_add_role_experience_persists(db_conn):
    repo = PlayerRepository()
    with transaction(db_conn):
        player = repo.create(db_conn, "Faker")
    svc = MasteryService()
    with transaction(db_conn):
        m = svc.add_role_experience(db_conn, player, HeroRole.MID, 400)
    assert m.level == 3
    reloaded = repo.get(db_conn, player.id)
    assert reloaded.role_masteries[HeroRole.MID] == Mastery(level=3, experience=400)
    assert reloaded.role_masteries[HeroRole.TOP] == Mastery(level=1, experience=0)


def test_add_hero_experience_creates_track_lazily(db_conn):
    repo = PlayerRepository()
    with transaction(db_conn):
        player = repo.create(db_conn, "Caps")
    assert player.hero_level("luxana") == 1
    assert repo.get(db_conn, player.id).hero_masteries == {}

    svc = MasteryService()
    with transaction(db_conn):
        svc.add_hero_experience(db_conn, player, "luxana", 200)
        svc.add_hero_experience(db_conn, player, "luxana", 200)
    reloaded = repo.get(db_conn, player.id)
    assert reloaded.hero_masteries["luxana"] == Mastery(level=3, experience=400)
    assert reloaded.hero_level("luxana") == 3


def test_missing_role_mastery_is_integrity_error(db_conn):
    repo = PlayerRepository()
    with transaction(db_conn):
        player = repo.create(db_conn, "Ghost")
    del player.role_masteries[HeroRole.SUPPORT]
    with pytest.raises(DataIntegrityError):
        MasteryService().add_role_experience(db_conn, player, HeroRole.SUPPORT, 10)


def test_player_creation_has_one_mastery_per_role(db_conn):
    repo = PlayerRepository()
    with transaction(db_conn):
        player = repo.create(db_conn, "Rookie")
    reloaded = repo.get(db_conn, player.id)
    assert set(reloaded.role_masteries) == set(HeroRole)
    assert all(m == Mastery(1, 0) for m in reloaded.role_masteries.values())
