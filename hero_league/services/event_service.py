"""
Event lifecycle: creation, roster registration and the periodic tick that moves
events CLOSED -> OPEN -> ONGOING -> FINISHED (or CANCELLED when too few rosters
registered). Starting a LEAGUE event generates its season.
"""
from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from typing import Any

from hero_league.errors import EngineError, NotFoundError, PreconditionError, ValidationError
from hero_league.models import Event, EventStatus, EventType, RosterActivity
from hero_league.persistence.db import transaction
from hero_league.persistence.repositories import EventRepository, RosterRepository
from hero_league.services.league_service import MIN_LEAGUE_ROSTERS, LeagueService

logger = logging.getLogger(__name__)


class EventService:
    def __init__(self, league_service: LeagueService | None = None) -> None:
        self._event_repo = EventRepository()
        self._roster_repo = RosterRepository()
        self._league_service = league_service or LeagueService()

    # ---------- Creation & registration ----------

    def create_event(
        self,
        conn: sqlite3.Connection,
        name: str,
        type: EventType,
        opens_at: datetime,
        starts_at: datetime,
        games_per_block: int = 1,
        minutes_between_games: int = 30,
        minutes_between_blocks: int = 120,
        max_players: int | None = None,
        round_robin_count: int | None = None,
    ) -> Event:
        """New events start CLOSED. LEAGUE events also get their league settings row."""
        if not name.strip():
            raise ValidationError("Event name is required")
        if opens_at >= starts_at:
            raise ValidationError("Event opening time (opens_at) must be before the starting time (starts_at)")
        if games_per_block < 1:
            raise ValidationError("games_per_block must be at least 1")
        if minutes_between_games < 0 or minutes_between_blocks < 0:
            raise ValidationError("Pacing minutes must be non-negative")
        if max_players is not None and max_players < 1:
            raise ValidationError("max_players must be a positive number")
        if type == EventType.LEAGUE and (round_robin_count is None or round_robin_count < 1):
            raise ValidationError("League type events must specify a round_robin_count of at least 1")

        with transaction(conn):
            event = self._event_repo.create(
                conn,
                name=name,
                type=type,
                opens_at=opens_at,
                starts_at=starts_at,
                games_per_block=games_per_block,
                minutes_between_games=minutes_between_games,
                minutes_between_blocks=minutes_between_blocks,
                max_players=max_players,
            )
            if type == EventType.LEAGUE:
                self._event_repo.create_league(conn, event.id, round_robin_count)  # type: ignore[arg-type]
        logger.info("Created event: %s (Type: %s)", event.name, event.type.value)
        return event

    def get_event(self, conn: sqlite3.Connection, event_id: str) -> Event:
        event = self._event_repo.get(conn, event_id)
        if event is None:
            raise NotFoundError(f"Event not found: {event_id}")
        return event

    def register_roster(self, conn: sqlite3.Connection, event_id: str, roster_id: str) -> int:
        """Register an IDLE roster for an OPEN event. Returns its registration order."""
        event = self.get_event(conn, event_id)
        roster = self._roster_repo.get(conn, roster_id)
        if roster is None:
            raise NotFoundError(f"Roster not found: {roster_id}")
        if event.status != EventStatus.OPEN:
            raise PreconditionError(f"Event is not open for registration (status: {event.status.value})")
        if roster.activity != RosterActivity.IDLE:
            raise PreconditionError(
                f"Roster is not IDLE and cannot register for the event (activity: {roster.activity.value})"
            )
        if self._event_repo.is_registered(conn, event_id, roster_id):
            raise PreconditionError("Roster is already registered for this event")
        if event.max_players is not None and self._event_repo.count_registrations(conn, event_id) >= event.max_players:
            raise PreconditionError("Event is full. Maximum players reached")

        with transaction(conn):
            seq = self._event_repo.add_registration(conn, event_id, roster_id)
            self._roster_repo.update_activity(conn, roster_id, RosterActivity.IN_EVENT)
        logger.info("Roster %s registered for event %s (#%d)", roster_id, event_id, seq)
        return seq

    def registered_roster_ids(self, conn: sqlite3.Connection, event_id: str) -> list[str]:
        self.get_event(conn, event_id)
        return self._event_repo.list_registered_roster_ids(conn, event_id)

    # ---------- Lifecycle tick ----------

    def process_lifecycle_tick(self, conn: sqlite3.Connection, now: datetime) -> dict[str, list[str]]:
        """
        Open, start and finish every eligible event. One transaction per event;
        an event whose start fails is rolled back, logged and left OPEN.
        """
        summary: dict[str, list[str]] = {"opened": [], "started": [], "cancelled": [], "finished": []}

        for event in self._event_repo.list_by_status(conn, EventStatus.CLOSED):
            if event.opens_at <= now:
                with transaction(conn):
                    self._event_repo.update_status(conn, event.id, EventStatus.OPEN)
                logger.info("Opening registration for event: %s", event.name)
                summary["opened"].append(event.id)

        for event in self._event_repo.list_by_status(conn, EventStatus.OPEN):
            if event.starts_at <= now:
                try:
                    with transaction(conn):
                        outcome = self._start_event(conn, event)
                except EngineError as exc:
                    logger.warning("Could not start event %s: %s", event.name, exc)
                    continue
                summary[outcome].append(event.id)

        for event in self._event_repo.list_by_status(conn, EventStatus.ONGOING):
            if event.finishes_at is not None and event.finishes_at <= now:
                with transaction(conn):
                    self._release_rosters(conn, event.id)
                    self._event_repo.update_status(conn, event.id, EventStatus.FINISHED)
                logger.info("Event %s finished", event.name)
                summary["finished"].append(event.id)

        return summary

    def _start_event(self, conn: sqlite3.Connection, event: Event) -> str:
        logger.info("Starting event: %s. Type: %s", event.name, event.type.value)
        registrations = self._event_repo.count_registrations(conn, event.id)
        if registrations < MIN_LEAGUE_ROSTERS:
            logger.warning(
                "Event %s has insufficient registrations (%d). Cancelling.", event.name, registrations
            )
            self._release_rosters(conn, event.id)
            self._event_repo.update_status(conn, event.id, EventStatus.CANCELLED)
            return "cancelled"
        self._event_repo.update_status(conn, event.id, EventStatus.ONGOING)
        if event.type == EventType.LEAGUE:
            self._league_service.schedule_season(conn, event.id)
        return "started"

    def _release_rosters(self, conn: sqlite3.Connection, event_id: str) -> None:
        for roster_id in self._event_repo.list_registered_roster_ids(conn, event_id):
            self._roster_repo.update_activity(conn, roster_id, RosterActivity.IDLE)

    def to_summary(self, conn: sqlite3.Connection, event: Event) -> dict[str, Any]:
        d = event.to_dict()
        d["registered_roster_ids"] = self._event_repo.list_registered_roster_ids(conn, event.id)
        league = self._event_repo.get_league(conn, event.id)
        d["round_robin_count"] = league.round_robin_count if league else None
        return d
