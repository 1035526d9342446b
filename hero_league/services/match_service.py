"""
Match creation and draft editing (bans + pick intentions) for scheduled matches.
"""
from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from typing import Iterable

from hero_league.errors import DraftValidationError, NotFoundError, PreconditionError, ValidationError
from hero_league.models import Match, MatchPick, MatchResult, MatchStatus
from hero_league.persistence.db import transaction
from hero_league.persistence.repositories import (
    EventRepository,
    HeroRepository,
    MatchRepository,
    MatchResultRepository,
    PlayerRepository,
    RosterRepository,
)

logger = logging.getLogger(__name__)

MAX_PREFERRED_HEROES = 3


def merge_picks(current: list[MatchPick], incoming: list[MatchPick]) -> list[MatchPick]:
    """
    Incoming picks replace the existing pick of the same player; the merged list
    must keep roles and pick orders unique.
    """
    merged = list(current)
    for pick in incoming:
        merged = [p for p in merged if p.player_id != pick.player_id]
        merged.append(pick)
    roles: set = set()
    orders: set[int] = set()
    for pick in merged:
        if pick.role in roles:
            raise DraftValidationError(f"Duplicate role: {pick.role.value}")
        if pick.pick_order in orders:
            raise DraftValidationError(f"Duplicate pick order: {pick.pick_order}")
        roles.add(pick.role)
        orders.add(pick.pick_order)
    return merged


class MatchService:
    def __init__(self) -> None:
        self._match_repo = MatchRepository()
        self._result_repo = MatchResultRepository()
        self._roster_repo = RosterRepository()
        self._player_repo = PlayerRepository()
        self._hero_repo = HeroRepository()
        self._event_repo = EventRepository()

    def create_match(
        self,
        conn: sqlite3.Connection,
        home_roster_id: str,
        away_roster_id: str,
        scheduled_time: datetime,
        event_id: str | None = None,
    ) -> Match:
        if home_roster_id == away_roster_id:
            raise ValidationError("A roster cannot play against itself")
        for roster_id in (home_roster_id, away_roster_id):
            if self._roster_repo.get(conn, roster_id) is None:
                raise NotFoundError(f"Roster not found: {roster_id}")
        if event_id is not None and self._event_repo.get(conn, event_id) is None:
            raise NotFoundError(f"Event not found: {event_id}")
        with transaction(conn):
            match = self._match_repo.create(conn, home_roster_id, away_roster_id, scheduled_time, event_id)
        logger.info("Created match %s: %s vs %s at %s", match.id, home_roster_id, away_roster_id,
                    match.scheduled_time.isoformat())
        return match

    def get_match(self, conn: sqlite3.Connection, match_id: str) -> Match:
        match = self._match_repo.get(conn, match_id)
        if match is None:
            raise NotFoundError(f"Match not found: {match_id}")
        return match

    def get_result(self, conn: sqlite3.Connection, match_id: str) -> MatchResult:
        self.get_match(conn, match_id)
        result = self._result_repo.get(conn, match_id)
        if result is None:
            raise NotFoundError(f"No result yet for match {match_id}")
        return result

    def update_draft(
        self,
        conn: sqlite3.Connection,
        match_id: str,
        roster_id: str,
        bans: list[str] | None = None,
        picks: list[MatchPick] | None = None,
    ) -> Match:
        """Replace the side's bans and merge its pick intentions. Nothing is written on rejection."""
        match = self.get_match(conn, match_id)
        if match.status != MatchStatus.SCHEDULED:
            raise PreconditionError(f"Cannot update draft for non-scheduled match (status: {match.status.value})")
        side = match.side_of(roster_id)
        if side is None:
            raise DraftValidationError(f"Roster {roster_id} does not play in match {match_id}")

        if bans is not None:
            self._validate_hero_ids(conn, bans)
            if side == "home":
                match.home_bans = list(bans)
            else:
                match.away_bans = list(bans)

        if picks is not None:
            for pick in picks:
                player = self._player_repo.get(conn, pick.player_id)
                if player is None:
                    raise DraftValidationError(f"Player not found: {pick.player_id}")
                if player.roster_id != roster_id:
                    raise DraftValidationError(f"Player {pick.player_id} does not belong to roster {roster_id}")
                if len(pick.preferred_hero_ids) > MAX_PREFERRED_HEROES:
                    raise DraftValidationError(
                        f"At most {MAX_PREFERRED_HEROES} preferred heroes per pick (player {pick.player_id})"
                    )
                self._validate_hero_ids(conn, pick.preferred_hero_ids)
            if side == "home":
                match.home_picks = merge_picks(match.home_picks, picks)
            else:
                match.away_picks = merge_picks(match.away_picks, picks)

        with transaction(conn):
            self._match_repo.update_draft(conn, match)
        logger.info("Draft updated for match %s (%s side)", match_id, side)
        return match

    def _validate_hero_ids(self, conn: sqlite3.Connection, hero_ids: Iterable[str]) -> None:
        wanted = [h for h in hero_ids if h]
        missing = set(wanted) - self._hero_repo.existing_ids(conn, wanted)
        if missing:
            raise DraftValidationError(f"Hero not found: {', '.join(sorted(missing))}")
