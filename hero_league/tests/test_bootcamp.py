"""
Tests for bootcamp sessions: start/stop guards, tick cadence, experience and vitals.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from hero_league.errors import NotFoundError, PreconditionError, ValidationError
from hero_league.models import HeroRole, Mastery, Player, PlayerTrait, RosterActivity, TrainingConfig
from hero_league.persistence.db import transaction
from hero_league.persistence.repositories import PlayerRepository, RosterRepository
from hero_league.services.bootcamp_service import (
    TICK_HOURS,
    BootcampService,
    cohesion_gain,
    energy_cost,
    roster_strength,
    validate_config,
)

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
TICK = timedelta(hours=TICK_HOURS)


def mid_config(player_id: str, secondaries: tuple[str, ...] = ("ignis",)) -> TrainingConfig:
    return TrainingConfig(player_id, HeroRole.MID, "luxana", secondaries)


# ---------- Pure helpers ----------


def test_roster_strength():
    assert roster_strength([]) == 0.0
    fresh = Player("a", "a", role_masteries={HeroRole.MID: Mastery(1, 0)})
    veteran = Player(
        "b", "b",
        role_masteries={HeroRole.MID: Mastery(5, 1_500), HeroRole.TOP: Mastery(2, 150)},
        hero_masteries={"luxana": Mastery(3, 350)},
    )
    # fresh: (1 + 1) / 2 = 1.0, veteran: (5 + 3) / 2 = 4.0
    assert roster_strength([fresh, veteran]) == pytest.approx(2.5)


def test_energy_cost_and_cohesion_gain():
    plain = Player("a", "a")
    worker = Player("w", "w", traits={PlayerTrait.WORKAHOLIC})
    leader = Player("l", "l", traits={PlayerTrait.LEADER})
    assert energy_cost([plain]) == 10
    assert energy_cost([worker, worker, plain]) == 8
    assert cohesion_gain([plain]) == Decimal("0.1")
    assert cohesion_gain([plain, leader]) == Decimal("0.2")


def test_validate_config():
    validate_config(mid_config("p", ("ignis", "aurelia")))
    with pytest.raises(ValidationError):
        validate_config(mid_config("p", ("ignis", "aurelia", "zenith")))
    with pytest.raises(ValidationError):
        validate_config(mid_config("p", ("luxana",)))


# ---------- Start / stop ----------


def test_start_bootcamp_marks_roster(db_conn, make_roster):
    roster, players = make_roster("Trainees")
    svc = BootcampService()
    svc.start_bootcamp(db_conn, roster.id, [mid_config(players[0].id)], T0)
    assert RosterRepository().get(db_conn, roster.id).activity == RosterActivity.BOOTCAMP
    session = svc.get_session(db_conn, roster.id)
    assert session.last_tick_at == T0
    assert session.configs == [mid_config(players[0].id)]


def test_start_requires_idle_roster(db_conn, make_roster):
    roster, players = make_roster("Busy")
    svc = BootcampService()
    svc.start_bootcamp(db_conn, roster.id, [mid_config(players[0].id)], T0)
    with pytest.raises(PreconditionError):
        svc.start_bootcamp(db_conn, roster.id, [mid_config(players[1].id)], T0)


@pytest.mark.parametrize("case", ["empty", "foreign", "twice", "unknown_hero", "too_many"])
def test_start_rejects_bad_configs(db_conn, make_roster, case):
    roster, players = make_roster("Campers")
    other, outsiders = make_roster("Others")
    configs = {
        "empty": [],
        "foreign": [mid_config(outsiders[0].id)],
        "twice": [mid_config(players[0].id), mid_config(players[0].id)],
        "unknown_hero": [mid_config(players[0].id, ("no_such_hero",))],
        "too_many": [mid_config(players[0].id, ("ignis", "aurelia", "zenith"))],
    }[case]
    with pytest.raises(ValidationError):
        BootcampService().start_bootcamp(db_conn, roster.id, configs, T0)
    assert RosterRepository().get(db_conn, roster.id).activity == RosterActivity.IDLE


def test_start_unknown_roster(db_conn):
    with pytest.raises(NotFoundError):
        BootcampService().start_bootcamp(db_conn, "ghost", [], T0)


def test_stop_bootcamp(db_conn, make_roster):
    roster, players = make_roster("Quitters")
    svc = BootcampService()
    svc.start_bootcamp(db_conn, roster.id, [mid_config(players[0].id)], T0)
    svc.stop_bootcamp(db_conn, roster.id)
    assert RosterRepository().get(db_conn, roster.id).activity == RosterActivity.IDLE
    with pytest.raises(NotFoundError):
        svc.get_session(db_conn, roster.id)
    with pytest.raises(PreconditionError):
        svc.stop_bootcamp(db_conn, roster.id)


# ---------- Ticks ----------


def test_tick_waits_for_full_interval(db_conn, make_roster):
    roster, players = make_roster("Patient")
    svc = BootcampService()
    svc.start_bootcamp(db_conn, roster.id, [mid_config(players[0].id)], T0)
    assert svc.process_bootcamp_ticks(db_conn, T0 + TICK - timedelta(minutes=1)) == {"ticked": [], "stopped": [], "skipped": []}
    assert svc.process_bootcamp_ticks(db_conn, T0 + TICK) == {"ticked": [roster.id], "stopped": [], "skipped": []}
    # the clock restarts from the tick
    assert svc.process_bootcamp_ticks(db_conn, T0 + TICK + timedelta(hours=1))["ticked"] == []


def test_tick_grants_experience_and_updates_vitals(db_conn, make_roster):
    roster, players = make_roster("Grinders", traits={1: {PlayerTrait.ADAPTIVE}})
    svc = BootcampService()
    svc.start_bootcamp(
        db_conn, roster.id, [mid_config(players[0].id), mid_config(players[1].id)], T0
    )
    svc.process_bootcamp_ticks(db_conn, T0 + TICK)

    r = RosterRepository().get(db_conn, roster.id)
    assert r.energy == 90
    assert r.cohesion == Decimal("0.10")

    repo = PlayerRepository()
    plain = repo.get(db_conn, players[0].id)
    assert plain.role_masteries[HeroRole.MID] == Mastery(1, 50)
    assert plain.hero_masteries == {"luxana": Mastery(1, 100), "ignis": Mastery(1, 50)}

    adaptive = repo.get(db_conn, players[1].id)
    assert adaptive.hero_masteries == {"luxana": Mastery(1, 80), "ignis": Mastery(1, 80)}

    untouched = repo.get(db_conn, players[2].id)
    assert untouched.hero_masteries == {}
    assert untouched.role_masteries[HeroRole.MID].experience == 0


def test_low_energy_stops_session(db_conn, make_roster):
    roster, players = make_roster("Exhausted")
    svc = BootcampService()
    svc.start_bootcamp(db_conn, roster.id, [mid_config(players[0].id)], T0)
    tired = RosterRepository().get(db_conn, roster.id)
    tired.energy = 9
    with transaction(db_conn):
        RosterRepository().update_vitals(db_conn, tired)

    assert svc.process_bootcamp_ticks(db_conn, T0 + TICK) == {"ticked": [], "stopped": [roster.id], "skipped": []}
    assert RosterRepository().get(db_conn, roster.id).activity == RosterActivity.IDLE
    assert PlayerRepository().get(db_conn, players[0].id).hero_masteries == {}


def test_broken_session_is_skipped_and_others_still_tick(db_conn, make_roster):
    broken, broken_players = make_roster("Aaa")
    healthy, healthy_players = make_roster("Bbb")
    svc = BootcampService()
    svc.start_bootcamp(db_conn, broken.id, [mid_config(broken_players[0].id)], T0)
    svc.start_bootcamp(db_conn, healthy.id, [mid_config(healthy_players[0].id)], T0 + timedelta(minutes=1))
    gone = broken_players[0].id
    with transaction(db_conn):
        db_conn.execute("DELETE FROM role_masteries WHERE player_id = ?", (gone,))
        db_conn.execute("DELETE FROM players WHERE id = ?", (gone,))

    now = T0 + TICK + timedelta(minutes=5)
    summary = svc.process_bootcamp_ticks(db_conn, now)

    assert summary == {"ticked": [healthy.id], "stopped": [], "skipped": [broken.id]}
    assert svc.get_session(db_conn, healthy.id).last_tick_at == now
    assert PlayerRepository().get(db_conn, healthy_players[0].id).role_masteries[HeroRole.MID] == Mastery(1, 50)
    # the failed session rolled back as a whole
    assert svc.get_session(db_conn, broken.id).last_tick_at == T0
    assert RosterRepository().get(db_conn, broken.id).energy == 100


def test_cohesion_is_capped(db_conn, make_roster):
    roster, players = make_roster("Tight", traits={0: {PlayerTrait.LEADER}})
    svc = BootcampService()
    svc.start_bootcamp(db_conn, roster.id, [mid_config(players[0].id)], T0)
    r = RosterRepository().get(db_conn, roster.id)
    r.cohesion = Decimal("9.95")
    with transaction(db_conn):
        RosterRepository().update_vitals(db_conn, r)
    svc.process_bootcamp_ticks(db_conn, T0 + TICK)
    assert RosterRepository().get(db_conn, roster.id).cohesion == Decimal("10.00")
