"""
End-to-end match engine tests: draft -> performance -> outcome -> result -> progression,
atomicity on failure, idempotent re-runs and the due-match tick.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from hero_league.errors import DataIntegrityError, NotFoundError, PreconditionError
from hero_league.models import EventType, HeroRole, MatchPick, MatchStatus
from hero_league.persistence.db import transaction
from hero_league.persistence.repositories import (
    EventRepository,
    MatchRepository,
    MatchResultRepository,
    PlayerRepository,
    RosterRepository,
)
from hero_league.services.match_service import MatchService
from hero_league.services.simulation_service import MatchEngineService
from hero_league.simulation.rng import SeededRNG

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
ROLES = list(HeroRole)


def default_picks(players, first_order: int) -> list[MatchPick]:
    """Player i plays role i; orders interleave with the other side (odd/even)."""
    return [MatchPick(p.id, ROLES[i], (), first_order + 2 * i) for i, p in enumerate(players)]


@pytest.fixture
def ready_match(db_conn, make_roster):
    """A scheduled match between two fresh rosters with both drafts submitted."""

    def _make(scheduled_time: datetime = T0, event_id: str | None = None, draft: bool = True):
        home, home_players = make_roster(f"Home-{scheduled_time:%H%M}")
        away, away_players = make_roster(f"Away-{scheduled_time:%H%M}")
        svc = MatchService()
        match = svc.create_match(db_conn, home.id, away.id, scheduled_time, event_id)
        if draft:
            svc.update_draft(db_conn, match.id, home.id, picks=default_picks(home_players, 1))
            match = svc.update_draft(db_conn, match.id, away.id, picks=default_picks(away_players, 2))
        return match, home_players, away_players

    return _make


def test_simulate_match_end_to_end(db_conn, ready_match, fixed_rng):
    match, home_players, away_players = ready_match()
    rng = fixed_rng(0.0)
    result = MatchEngineService().simulate_match(db_conn, match.id, rng=rng, now=T0)

    assert rng.calls == 1
    assert result.winner_roster_id == match.home_roster_id
    assert len(result.player_stats) == 10
    assert len({s.hero_id for s in result.player_stats.values()}) == 10
    assert result.home_total > 0 and result.away_total > 0
    assert Decimal("0.05") <= result.win_probability_home <= Decimal("0.95")
    assert result.win_probability_home == result.win_probability_home.quantize(Decimal("0.0001"))

    stored = MatchRepository().get(db_conn, match.id)
    assert stored.status == MatchStatus.COMPLETED
    assert stored.played_at == T0
    assert MatchResultRepository().get(db_conn, match.id).winner_roster_id == match.home_roster_id

    rosters = RosterRepository()
    assert rosters.get(db_conn, match.home_roster_id).morale == Decimal("5.50")
    assert rosters.get(db_conn, match.away_roster_id).morale == Decimal("4.50")
    loser = PlayerRepository().get(db_conn, away_players[0].id)
    assert loser.role_masteries[ROLES[0]].experience == 150


def test_high_draw_gives_away_win(db_conn, ready_match, fixed_rng):
    match, _, _ = ready_match()
    result = MatchEngineService().simulate_match(db_conn, match.id, rng=fixed_rng(0.999), now=T0)
    assert result.winner_roster_id == match.away_roster_id


def test_rerun_is_a_no_op(db_conn, ready_match, fixed_rng):
    match, _, _ = ready_match()
    engine = MatchEngineService()
    engine.simulate_match(db_conn, match.id, rng=fixed_rng(0.0), now=T0)
    before = RosterRepository().get(db_conn, match.home_roster_id)

    rng = fixed_rng(0.0)
    assert engine.simulate_match(db_conn, match.id, rng=rng, now=T0) is None
    assert rng.calls == 0
    assert RosterRepository().get(db_conn, match.home_roster_id) == before


def test_unknown_match_raises(db_conn):
    with pytest.raises(NotFoundError):
        MatchEngineService().simulate_match(db_conn, "nope")


def test_missing_draft_is_precondition_error(db_conn, ready_match):
    match, _, _ = ready_match(draft=False)
    with pytest.raises(PreconditionError):
        MatchEngineService().simulate_match(db_conn, match.id)
    assert MatchRepository().get(db_conn, match.id).status == MatchStatus.SCHEDULED


def test_failure_rolls_back_everything(db_conn, ready_match, fixed_rng):
    """A league match without standing rows aborts after the result is written; nothing persists."""
    with transaction(db_conn):
        event = EventRepository().create(
            db_conn, name="Broken League", type=EventType.LEAGUE, opens_at=T0 - timedelta(days=2),
            starts_at=T0 - timedelta(days=1),
        )
        EventRepository().create_league(db_conn, event.id, 1)
    match, home_players, _ = ready_match(event_id=event.id)

    with pytest.raises(DataIntegrityError):
        MatchEngineService().simulate_match(db_conn, match.id, rng=fixed_rng(0.0), now=T0)

    assert MatchRepository().get(db_conn, match.id).status == MatchStatus.SCHEDULED
    assert MatchResultRepository().get(db_conn, match.id) is None
    home = RosterRepository().get(db_conn, match.home_roster_id)
    assert (home.morale, home.cohesion, home.energy) == (Decimal("5.00"), Decimal("0.00"), 100)
    player = PlayerRepository().get(db_conn, home_players[0].id)
    assert player.role_masteries[ROLES[0]].experience == 0
    assert player.hero_masteries == {}


def test_simulate_due_matches(db_conn, ready_match):
    due, _, _ = ready_match(T0)
    undrafted, _, _ = ready_match(T0 + timedelta(minutes=1), draft=False)
    future, _, _ = ready_match(T0 + timedelta(hours=5))

    completed = MatchEngineService().simulate_due_matches(db_conn, T0 + timedelta(hours=1), rng=SeededRNG(1))
    assert completed == [due.id]

    repo = MatchRepository()
    assert repo.get(db_conn, due.id).status == MatchStatus.COMPLETED
    assert repo.get(db_conn, undrafted.id).status == MatchStatus.SCHEDULED
    assert repo.get(db_conn, future.id).status == MatchStatus.SCHEDULED

    # second tick: nothing new is due
    assert MatchEngineService().simulate_due_matches(db_conn, T0 + timedelta(hours=1)) == []


def test_same_seed_same_outcome(db_conn, ready_match):
    first, _, _ = ready_match(T0)
    second, _, _ = ready_match(T0 + timedelta(minutes=5))
    engine = MatchEngineService()
    a = engine.simulate_match(db_conn, first.id, rng=SeededRNG(2026), now=T0)
    b = engine.simulate_match(db_conn, second.id, rng=SeededRNG(2026), now=T0)

    assert a.home_total == b.home_total
    assert a.away_total == b.away_total
    assert a.win_probability_home == b.win_probability_home
    assert (a.winner_roster_id == first.home_roster_id) == (b.winner_roster_id == second.home_roster_id)
    assert [s.hero_id for s in a.player_stats.values()] == [s.hero_id for s in b.player_stats.values()]


def test_default_players_on_preferred_a_tier_heroes_score_one(db_conn, make_roster, fixed_rng):
    """All-default players drafted by preference onto A-tier primary heroes perform exactly 1.00."""
    home, home_players = make_roster("Defaults")
    away, away_players = make_roster("Others")
    home_prefs = ["ironclad", "shadow", "ignis", "cinder", "thorn"]
    away_prefs = ["atlas", "rengar", "aurelia", "vail", "seraphina"]
    svc = MatchService()
    match = svc.create_match(db_conn, home.id, away.id, T0)
    for roster, players, prefs, first in ((home, home_players, home_prefs, 1), (away, away_players, away_prefs, 2)):
        picks = [MatchPick(p.id, ROLES[i], (prefs[i],), first + 2 * i) for i, p in enumerate(players)]
        svc.update_draft(db_conn, match.id, roster.id, picks=picks)

    result = MatchEngineService().simulate_match(db_conn, match.id, rng=fixed_rng(0.5), now=T0)

    home_stats = [result.player_stats[p.id] for p in home_players]
    assert [s.hero_id for s in home_stats] == home_prefs
    assert all(s.performance == Decimal("1.00") for s in home_stats)
    assert result.home_total == Decimal("5.00") + result.home_counter + result.home_synergy
