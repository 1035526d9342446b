"""
Tests for round-robin schedule generation and calendar pacing.
Deterministic; each pair meets round_robin_count times; at most one game per roster per round.
"""
from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta, timezone

import pytest

from hero_league.services.scheduling import (
    FINISH_BUFFER_MINUTES,
    Fixture,
    Pacing,
    assign_schedule_times,
    generate_league_schedule,
    round_robin_pairings,
)

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def test_round_robin_two_rosters():
    """2 rosters: 1 round, 1 match."""
    assert round_robin_pairings(["A", "B"]) == [(1, "A", "B")]


def test_round_robin_four_rosters_exact_order():
    pairings = round_robin_pairings(["A", "B", "C", "D"])
    assert pairings == [
        (1, "A", "D"),
        (1, "B", "C"),
        (2, "C", "A"),
        (2, "B", "D"),
        (3, "A", "B"),
        (3, "C", "D"),
    ]


def test_round_robin_three_rosters_has_byes():
    """3 rosters + bye: 3 rounds, each roster sits out once, each pair meets once."""
    pairings = round_robin_pairings(["A", "B", "C"])
    real = [(h, a) for _, h, a in pairings if a is not None]
    byes = [h for _, h, a in pairings if a is None]
    assert len(real) == 3
    assert sorted(byes) == ["A", "B", "C"]
    assert {tuple(sorted(p)) for p in real} == {("A", "B"), ("A", "C"), ("B", "C")}


def test_roster_named_bye_still_plays():
    pairings = round_robin_pairings(["A", "BYE", "C"])
    real = {tuple(sorted((h, a))) for _, h, a in pairings if a is not None}
    assert real == {("A", "BYE"), ("A", "C"), ("BYE", "C")}
    assert sorted(h for _, h, a in pairings if a is None) == ["A", "BYE", "C"]


def test_five_rosters_one_bye_per_round():
    pairings = round_robin_pairings(["A", "B", "C", "D", "E"])
    rounds = Counter(r for r, _, a in pairings if a is None)
    assert sorted(rounds) == [1, 2, 3, 4, 5]
    assert all(n == 1 for n in rounds.values())
    assert len(generate_league_schedule(["A", "B", "C", "D", "E"])) == 10


def test_at_most_one_game_per_roster_per_round():
    ids = [f"r{i}" for i in range(6)]
    fixtures = generate_league_schedule(ids, round_robin_count=2)
    by_round: dict[int, list[str]] = {}
    for f in fixtures:
        by_round.setdefault(f.round_number, []).extend([f.home_roster_id, f.away_roster_id])
    assert len(by_round) == 10
    for rosters in by_round.values():
        assert len(rosters) == len(set(rosters))


def test_double_round_robin_plays_each_orientation_once():
    fixtures = generate_league_schedule(["A", "B", "C", "D"], round_robin_count=2)
    assert len(fixtures) == 12
    oriented = Counter((f.home_roster_id, f.away_roster_id) for f in fixtures)
    assert len(oriented) == 12
    assert all(n == 1 for n in oriented.values())


@pytest.mark.parametrize("n,rrc", [(2, 1), (4, 1), (5, 2), (7, 3), (8, 1)])
def test_match_count_formula(n, rrc):
    fixtures = generate_league_schedule([f"r{i}" for i in range(n)], rrc)
    assert len(fixtures) == n * (n - 1) // 2 * rrc
    assert all(f.home_roster_id != f.away_roster_id for f in fixtures)


def test_schedule_is_deterministic():
    ids = ["x", "y", "z", "w", "v", "u"]
    assert generate_league_schedule(ids, 2) == generate_league_schedule(list(ids), 2)


def test_degenerate_inputs_give_empty_schedule():
    assert round_robin_pairings([]) == []
    assert round_robin_pairings(["A", "B"], round_robin_count=0) == []
    assert generate_league_schedule(["A"]) == []


def test_assign_schedule_times_blocks():
    fixtures = generate_league_schedule(["A", "B", "C", "D"])
    pacing = Pacing(games_per_block=2, minutes_between_games=30, minutes_between_blocks=120)
    timed, finishes_at = assign_schedule_times(fixtures, T0, pacing)
    kickoffs = [(f.scheduled_time - T0) for f in timed]
    assert kickoffs == [
        timedelta(hours=2),
        timedelta(hours=2, minutes=30),
        timedelta(hours=4, minutes=30),
        timedelta(hours=5),
        timedelta(hours=7),
        timedelta(hours=7, minutes=30),
    ]
    assert finishes_at == timed[-1].scheduled_time + timedelta(minutes=FINISH_BUFFER_MINUTES)
    assert [(f.home_roster_id, f.away_roster_id) for f in timed] == [
        (f.home_roster_id, f.away_roster_id) for f in fixtures
    ]


def test_assign_schedule_times_one_game_per_block():
    fixtures = [Fixture(1, "A", "B"), Fixture(2, "B", "A")]
    timed, finishes_at = assign_schedule_times(fixtures, T0, Pacing())
    assert [f.scheduled_time for f in timed] == [T0 + timedelta(minutes=120), T0 + timedelta(minutes=240)]
    assert finishes_at == T0 + timedelta(minutes=300)
