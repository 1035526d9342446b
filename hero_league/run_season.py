"""
Run a full simulated league season from the terminal: rosters are generated,
registered, the season calendar is built by the lifecycle tick, every match is
drafted and simulated in kickoff order, and the final standings are printed.
"""
from __future__ import annotations

import argparse
import logging
import random
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Run from project root: python -m hero_league.run_season
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from hero_league.models import EventType, HeroRole, MatchPick, PlayerTrait
from hero_league.persistence import (
    HeroRepository,
    MatchRepository,
    MatchResultRepository,
    PlayerRepository,
    RosterRepository,
    get_connection,
    init_db,
    set_db_path,
    transaction,
)
from hero_league.services import EventService, LeagueService, MatchEngineService, MatchService
from hero_league.simulation.rng import SeededRNG

ROLES = list(HeroRole)
SEASON_START = datetime(2026, 1, 1, 18, 0, tzinfo=timezone.utc)
ROSTER_NAMES = ["Falcons", "Wolves", "Titans", "Vipers", "Ravens", "Krakens", "Phoenix", "Golems"]


def _project_root() -> Path:
    return Path(__file__).resolve().parent.parent


def _create_rosters(conn, rng: random.Random, count: int) -> dict[str, str]:
    """Returns {roster_id: name}. Each player gets at most one random trait."""
    roster_repo = RosterRepository()
    player_repo = PlayerRepository()
    names: dict[str, str] = {}
    with transaction(conn):
        for name in ROSTER_NAMES[:count]:
            roster = roster_repo.create(conn, owner_id="season-demo", name=name)
            for i in range(len(ROLES)):
                traits = {rng.choice(list(PlayerTrait))} if rng.random() < 0.4 else set()
                player_repo.create(conn, f"{name[:3].lower()}{i + 1}", roster_id=roster.id, traits=traits)
            names[roster.id] = name
    return names


def _draft_all(conn, rng: random.Random, event_id: str) -> None:
    """Player i plays role i with up to three random preferred heroes; home drafts on odd orders."""
    heroes = HeroRepository().list_all(conn)
    player_repo = PlayerRepository()
    svc = MatchService()
    for match in MatchRepository().list_by_event(conn, event_id):
        for first_order, roster_id in ((1, match.home_roster_id), (2, match.away_roster_id)):
            picks = []
            for i, player in enumerate(player_repo.list_by_roster(conn, roster_id)[: len(ROLES)]):
                role = ROLES[i]
                pool = [h.id for h in heroes if h.plays(role)]
                prefs = tuple(rng.sample(pool, min(3, len(pool))))
                picks.append(MatchPick(player.id, role, prefs, first_order + 2 * i))
            svc.update_draft(conn, match.id, roster_id, picks=picks)


def _print_standings(conn, event_id: str, names: dict[str, str]) -> None:
    print()
    print("=" * 44)
    print(f"  {'#':>2}  {'Roster':<16} {'W':>4} {'L':>4}")
    print("  " + "-" * 40)
    for s in LeagueService().standings(conn, event_id):
        print(f"  {s.position:>2}  {names[s.roster_id]:<16} {s.wins:>4} {s.losses:>4}")
    print("=" * 44)
    print()


def run(
    seed: int | None = None,
    rosters: int = 4,
    round_robin_count: int = 1,
    db_path: Path | None = None,
) -> None:
    if seed is None:
        seed = random.randint(1, 2**31 - 1)
    if not 2 <= rosters <= len(ROSTER_NAMES):
        raise SystemExit(f"--rosters must be between 2 and {len(ROSTER_NAMES)}")
    db_path = db_path or _project_root() / "data" / "season_demo.db"
    if db_path.exists():
        db_path.unlink()
    set_db_path(db_path)
    init_db(db_path=db_path, seed_heroes=True)

    rng = random.Random(seed)
    conn = get_connection()
    try:
        names = _create_rosters(conn, rng, rosters)
        events = EventService()
        event = events.create_event(
            conn,
            name=f"Demo League (seed={seed})",
            type=EventType.LEAGUE,
            opens_at=SEASON_START - timedelta(days=1),
            starts_at=SEASON_START,
            games_per_block=2,
            round_robin_count=round_robin_count,
        )
        events.process_lifecycle_tick(conn, event.opens_at)
        for roster_id in names:
            events.register_roster(conn, event.id, roster_id)
        events.process_lifecycle_tick(conn, event.starts_at)
        event = events.get_event(conn, event.id)
        if event.finishes_at is None:
            raise SystemExit(f"League did not start (status: {event.status.value})")

        _draft_all(conn, rng, event.id)
        print(f"\n  {event.name}: {len(names)} rosters, round robin x{round_robin_count}")
        print("  " + "-" * 56)

        completed = MatchEngineService().simulate_due_matches(conn, event.finishes_at, rng=SeededRNG(seed))
        match_repo = MatchRepository()
        result_repo = MatchResultRepository()
        for match_id in completed:
            match = match_repo.get(conn, match_id)
            result = result_repo.get(conn, match_id)
            home, away = names[match.home_roster_id], names[match.away_roster_id]
            print(
                f"  {match.scheduled_time:%d %b %H:%M}  {home:>10} {result.home_total:>7.2f} - "
                f"{result.away_total:<7.2f} {away:<10} p(home)={result.win_probability_home}  "
                f"-> {names[result.winner_roster_id]}"
            )

        events.process_lifecycle_tick(conn, event.finishes_at)
        _print_standings(conn, event.id, names)
    finally:
        conn.close()


def main():
    parser = argparse.ArgumentParser(description="Simulate a full league season with generated rosters.")
    parser.add_argument("--seed", type=int, default=None, help="RNG seed for reproducibility")
    parser.add_argument("--rosters", type=int, default=4, help="Number of rosters (2-8)")
    parser.add_argument("--round-robin-count", type=int, default=1, help="Times each pairing is played")
    parser.add_argument("--db", type=Path, default=None, help="SQLite file (recreated on every run)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show engine logs")
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    run(seed=args.seed, rosters=args.rosters, round_robin_count=args.round_robin_count, db_path=args.db)


if __name__ == "__main__":
    main()
