"""
League service: season generation (round-robin calendar + standings) and
standings bookkeeping.
generate_full_season owns its transaction; schedule_season and record_result
run inside the caller's (event lifecycle tick, match engine).
"""
from __future__ import annotations

import logging
import sqlite3

from hero_league.errors import DataIntegrityError, NotFoundError, PreconditionError
from hero_league.models import EventType, LeagueStanding, Match
from hero_league.persistence.db import transaction
from hero_league.persistence.repositories import (
    EventRepository,
    LeagueStandingRepository,
    MatchRepository,
)
from hero_league.services.scheduling import Pacing, assign_schedule_times, generate_league_schedule

logger = logging.getLogger(__name__)

MIN_LEAGUE_ROSTERS = 2


def standings_order_key(s: LeagueStanding) -> tuple[int, int, str]:
    """wins desc, losses asc, roster id asc."""
    return (-s.wins, s.losses, s.roster_id)


class LeagueService:
    """
    Domain logic for league events: guards, calendar generation, positions.
    Persistence is delegated to repositories.
    """

    def __init__(self) -> None:
        self._event_repo = EventRepository()
        self._match_repo = MatchRepository()
        self._standing_repo = LeagueStandingRepository()

    # ---------- Season generation ----------

    def generate_full_season(self, conn: sqlite3.Connection, event_id: str) -> list[Match]:
        """Generate and persist the whole season in one transaction."""
        with transaction(conn):
            return self.schedule_season(conn, event_id)

    def schedule_season(self, conn: sqlite3.Connection, event_id: str) -> list[Match]:
        """
        Persist SCHEDULED matches, 0/0 standings in registration order and the
        event's finishes_at. Caller owns the transaction.
        """
        event = self._event_repo.get(conn, event_id)
        if event is None:
            raise NotFoundError(f"Event not found: {event_id}")
        if event.type != EventType.LEAGUE:
            raise PreconditionError(f"Event {event_id} is not a league (type: {event.type.value})")
        league = self._event_repo.get_league(conn, event_id)
        if league is None:
            raise PreconditionError(f"League settings missing for event {event_id}")
        if league.round_robin_count < 1:
            raise PreconditionError(f"round_robin_count must be >= 1 (got {league.round_robin_count})")
        if self._match_repo.count_by_event(conn, event_id) > 0:
            raise PreconditionError(f"Season already generated for event {event_id}")
        roster_ids = self._event_repo.list_registered_roster_ids(conn, event_id)
        if len(roster_ids) < MIN_LEAGUE_ROSTERS:
            raise PreconditionError(
                f"Need at least {MIN_LEAGUE_ROSTERS} rosters to generate a league (got {len(roster_ids)})"
            )

        for position, roster_id in enumerate(roster_ids, start=1):
            self._standing_repo.create(
                conn, LeagueStanding(event_id=event_id, roster_id=roster_id, position=position)
            )

        fixtures = generate_league_schedule(roster_ids, league.round_robin_count)
        timed, finishes_at = assign_schedule_times(fixtures, event.starts_at, Pacing.from_event(event))
        matches = [
            self._match_repo.create(
                conn,
                home_roster_id=f.home_roster_id,
                away_roster_id=f.away_roster_id,
                scheduled_time=f.scheduled_time,  # type: ignore[arg-type]
                event_id=event_id,
            )
            for f in timed
        ]
        self._event_repo.set_finishes_at(conn, event_id, finishes_at)
        logger.info(
            "Generated %d matches for league %s. Predicted finish at: %s",
            len(matches), event.name, finishes_at.isoformat(),
        )
        return matches

    # ---------- Standings ----------

    def standings(self, conn: sqlite3.Connection, event_id: str) -> list[LeagueStanding]:
        return self._standing_repo.list_by_event(conn, event_id)

    def record_result(
        self, conn: sqlite3.Connection, event_id: str, winner_roster_id: str, loser_roster_id: str
    ) -> None:
        """Winner wins+1, loser losses+1, then positions recomputed. Caller owns the transaction."""
        winner = self._standing_repo.get(conn, event_id, winner_roster_id)
        loser = self._standing_repo.get(conn, event_id, loser_roster_id)
        if winner is None:
            raise DataIntegrityError(f"Standing not found for roster {winner_roster_id} in league {event_id}")
        if loser is None:
            raise DataIntegrityError(f"Standing not found for roster {loser_roster_id} in league {event_id}")
        winner.wins += 1
        loser.losses += 1
        self._standing_repo.update(conn, winner)
        self._standing_repo.update(conn, loser)
        self.recalculate_positions(conn, event_id)
        logger.info(
            "League standings updated: %s (W: %d, L: %d), %s (W: %d, L: %d)",
            winner.roster_id, winner.wins, winner.losses,
            loser.roster_id, loser.wins, loser.losses,
        )

    def recalculate_positions(self, conn: sqlite3.Connection, event_id: str) -> list[LeagueStanding]:
        standings = sorted(self._standing_repo.list_by_event(conn, event_id), key=standings_order_key)
        for position, s in enumerate(standings, start=1):
            s.position = position
            self._standing_repo.update(conn, s)
        return standings
