"""
Deterministic round-robin schedule generation for leagues.

Round-robin is used so every roster meets every other roster round_robin_count
times; a season has (N-1) * round_robin_count rounds, N being the roster count
rounded up to even. Each roster plays at most one match per round.

BYE handling: when the number of rosters is odd, the slot list is padded with
None. Each round one roster is paired with the empty slot (away_roster_id =
None) and does not play.

Uses the circle method: fix first slot, rotate the others right by one after each
round. On odd rounds home and away are swapped. Same roster list ordering yields
the same schedule (deterministic for persistence).

Calendar pacing: the first match starts minutes_between_blocks after starts_at;
games_per_block matches run minutes_between_games apart, then the clock jumps
minutes_between_blocks.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from hero_league.models import Event

# Simulation buffer after the last match start
FINISH_BUFFER_MINUTES = 60


@dataclass(frozen=True)
class Pacing:
    games_per_block: int = 1
    minutes_between_games: int = 30
    minutes_between_blocks: int = 120

    @classmethod
    def from_event(cls, event: Event) -> Pacing:
        return cls(
            games_per_block=event.games_per_block,
            minutes_between_games=event.minutes_between_games,
            minutes_between_blocks=event.minutes_between_blocks,
        )


@dataclass(frozen=True)
class Fixture:
    round_number: int
    home_roster_id: str
    away_roster_id: str
    scheduled_time: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "round_number": self.round_number,
            "home_roster_id": self.home_roster_id,
            "away_roster_id": self.away_roster_id,
            "scheduled_time": self.scheduled_time.isoformat() if self.scheduled_time else None,
        }


def round_robin_pairings(
    roster_ids: list[str], round_robin_count: int = 1
) -> list[tuple[int, str, str | None]]:
    """
    Generate round-robin pairings: (round_number, home_roster_id, away_roster_id).
    away_roster_id is None when home_roster_id has a bye (odd number of rosters).
    Deterministic: same roster list => same schedule.
    """
    if not roster_ids or round_robin_count < 1:
        return []
    ids: list[str | None] = list(roster_ids)
    if len(ids) % 2 == 1:
        ids.append(None)
    N = len(ids)  # N is even
    rounds = (N - 1) * round_robin_count
    result: list[tuple[int, str, str | None]] = []
    # Circle method over slots 0..N-1; round r pairs slot i with slot N-1-i.
    order = list(range(N))
    for rnd in range(rounds):
        for i in range(N // 2):
            home_id, away_id = ids[order[i]], ids[order[N - 1 - i]]
            if home_id is None or away_id is None:
                real = home_id if away_id is None else away_id
                result.append((rnd + 1, real, None))
                continue
            if rnd % 2 == 1:
                home_id, away_id = away_id, home_id
            result.append((rnd + 1, home_id, away_id))
        # Rotate: keep slot 0, move the last slot to position 1
        order = [order[0]] + [order[N - 1]] + order[1 : N - 1]
    return result


def generate_league_schedule(roster_ids: list[str], round_robin_count: int = 1) -> list[Fixture]:
    """Real fixtures only (byes dropped), in round order."""
    return [
        Fixture(round_number=r, home_roster_id=h, away_roster_id=a)
        for r, h, a in round_robin_pairings(roster_ids, round_robin_count)
        if a is not None
    ]


def assign_schedule_times(
    fixtures: list[Fixture], starts_at: datetime, pacing: Pacing
) -> tuple[list[Fixture], datetime]:
    """
    Stamp each fixture with its kickoff time. Returns (timed fixtures, finishes_at)
    where finishes_at is the last kickoff plus FINISH_BUFFER_MINUTES.
    """
    current = starts_at + timedelta(minutes=pacing.minutes_between_blocks)
    last = current
    block_count = 0
    timed: list[Fixture] = []
    for f in fixtures:
        last = current
        timed.append(Fixture(f.round_number, f.home_roster_id, f.away_roster_id, current))
        block_count += 1
        if block_count >= pacing.games_per_block:
            current = current + timedelta(minutes=pacing.minutes_between_blocks)
            block_count = 0
        else:
            current = current + timedelta(minutes=pacing.minutes_between_games)
    return timed, last + timedelta(minutes=FINISH_BUFFER_MINUTES)
