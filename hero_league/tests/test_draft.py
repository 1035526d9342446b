"""
Tests for the draft resolver: ban handling, preference order, meta fallback,
shared pick_order sequencing and uniqueness of assigned heroes.
"""
from __future__ import annotations

import pytest

from hero_league.errors import DataIntegrityError
from hero_league.hero_catalog import default_heroes
from hero_league.models import Hero, HeroArchetype, HeroRole, MatchPick, MetaTier
from hero_league.simulation.draft import best_meta_hero, draft_sequence, resolve_draft

CATALOG = sorted(default_heroes(), key=lambda h: h.name)


def pick(player_id: str, role: HeroRole, order: int, *prefs: str) -> MatchPick:
    return MatchPick(player_id=player_id, role=role, preferred_hero_ids=tuple(prefs), pick_order=order)


def test_first_available_preference_is_taken():
    picks = resolve_draft([], [], [pick("h1", HeroRole.MID, 1, "luxana", "ignis")], [], CATALOG)
    assert picks["h1"].id == "luxana"


def test_banned_preference_is_skipped():
    picks = resolve_draft(["luxana"], [], [pick("h1", HeroRole.MID, 1, "luxana", "ignis")], [], CATALOG)
    assert picks["h1"].id == "ignis"


def test_bans_from_either_side_apply_to_both():
    picks = resolve_draft([], ["vail"], [pick("h1", HeroRole.CARRY, 1, "vail", "bolt")], [], CATALOG)
    assert picks["h1"].id == "bolt"


def test_lower_pick_order_gets_contested_hero():
    home = [pick("h1", HeroRole.MID, 2, "luxana", "ignis")]
    away = [pick("a1", HeroRole.MID, 1, "luxana", "aurelia")]
    picks = resolve_draft([], [], home, away, CATALOG)
    assert picks["a1"].id == "luxana"
    assert picks["h1"].id == "ignis"


def test_home_goes_first_on_equal_pick_order():
    home = [pick("h1", HeroRole.MID, 1, "luxana")]
    away = [pick("a1", HeroRole.MID, 1, "luxana")]
    seq = draft_sequence(home, away)
    assert [e.pick.player_id for e in seq] == ["h1", "a1"]
    assert [e.is_home for e in seq] == [True, False]
    picks = resolve_draft([], [], home, away, CATALOG)
    assert picks["h1"].id == "luxana"
    assert picks["a1"].id != "luxana"


def test_fallback_picks_best_tier_in_catalog_order():
    # S-tier TOP players by name: Fenris, Goliath, Katarina, Storm Spirit
    picks = resolve_draft([], [], [pick("h1", HeroRole.TOP, 1)], [], CATALOG)
    assert picks["h1"].id == "fenris"
    picks = resolve_draft(["fenris"], [], [pick("h1", HeroRole.TOP, 1)], [], CATALOG)
    assert picks["h1"].id == "goliath"


def test_fallback_when_all_preferences_unavailable():
    home = [pick("h1", HeroRole.MID, 1, "zenith", "unknown_hero")]
    picks = resolve_draft(["zenith"], [], home, [], CATALOG)
    assert picks["h1"].id == "katarina"


def test_only_first_three_preferences_are_considered():
    home = [pick("h1", HeroRole.MID, 1, "luxana", "vortex", "katarina", "zenith")]
    picks = resolve_draft(["luxana", "vortex", "katarina"], [], home, [], CATALOG)
    # Zenith (4th) is ignored; fallback takes the best remaining MID hero.
    assert picks["h1"].id != "zenith"
    assert picks["h1"].primary_tier == MetaTier.A


def test_no_hero_assigned_twice():
    roles = list(HeroRole)
    home = [pick(f"h{i}", roles[i], i * 2) for i in range(5)]
    away = [pick(f"a{i}", roles[i], i * 2 + 1) for i in range(5)]
    picks = resolve_draft([], [], home, away, CATALOG)
    assert len(picks) == 10
    assert len({h.id for h in picks.values()}) == 10


def test_no_eligible_hero_raises_integrity_error():
    pool = [Hero("solo", "Solo", HeroRole.SUPPORT, MetaTier.A, HeroArchetype.ENCHANTER)]
    home = [pick("h1", HeroRole.SUPPORT, 1)]
    away = [pick("a1", HeroRole.SUPPORT, 2)]
    with pytest.raises(DataIntegrityError):
        resolve_draft([], [], home, away, pool)


def test_best_meta_hero_respects_unavailable():
    # Luxana (S, secondary SUPPORT) sorts before Seraphina.
    assert best_meta_hero(HeroRole.SUPPORT, set(), CATALOG).id == "luxana"
    assert best_meta_hero(HeroRole.SUPPORT, {"luxana"}, CATALOG).id == "seraphina"
    assert best_meta_hero(HeroRole.SUPPORT, {h.id for h in CATALOG}, CATALOG) is None
