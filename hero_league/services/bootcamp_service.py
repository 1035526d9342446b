"""
Bootcamp: a roster trains instead of competing. Every TICK_HOURS the session
spends energy, builds cohesion and grants role/hero experience scaled by the
roster's strength. A roster too tired to train is sent back to IDLE.
"""
from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timedelta
from decimal import Decimal

from hero_league.errors import DataIntegrityError, NotFoundError, PreconditionError, ValidationError
from hero_league.mastery import MasteryService
from hero_league.models import BootcampSession, Player, PlayerTrait, Roster, RosterActivity, TrainingConfig
from hero_league.persistence.db import transaction
from hero_league.persistence.repositories import (
    BootcampRepository,
    HeroRepository,
    PlayerRepository,
    RosterRepository,
)

logger = logging.getLogger(__name__)

TICK_HOURS = 6
BASE_ENERGY_COST_PER_TICK = 10
WORKAHOLIC_ENERGY_REDUCTION = 1
BASE_COHESION_GAIN = Decimal("0.1")
LEADER_COHESION_GAIN = Decimal("0.2")
MAX_COHESION = Decimal("10.00")

BASE_ROLE_XP = 50
BASE_PRIMARY_HERO_XP = 100
BASE_SECONDARY_HERO_XP = 50
BASE_ADAPTIVE_HERO_XP = 80
MAX_SECONDARY_HEROES = 2


def roster_strength(players: list[Player]) -> float:
    """Mean over players of (best role level + best hero level) / 2. 0.0 for an empty roster."""
    if not players:
        return 0.0
    total = 0.0
    for p in players:
        best_role = max((m.level for m in p.role_masteries.values()), default=1)
        best_hero = max((m.level for m in p.hero_masteries.values()), default=1)
        total += (best_role + best_hero) / 2.0
    return total / len(players)


def energy_cost(players: list[Player]) -> int:
    workaholics = sum(1 for p in players if p.has_trait(PlayerTrait.WORKAHOLIC))
    return max(0, BASE_ENERGY_COST_PER_TICK - workaholics * WORKAHOLIC_ENERGY_REDUCTION)


def cohesion_gain(players: list[Player]) -> Decimal:
    if any(p.has_trait(PlayerTrait.LEADER) for p in players):
        return LEADER_COHESION_GAIN
    return BASE_COHESION_GAIN


def validate_config(config: TrainingConfig) -> None:
    if len(config.secondary_hero_ids) > MAX_SECONDARY_HEROES:
        raise ValidationError(
            f"At most {MAX_SECONDARY_HEROES} secondary heroes per player (player {config.player_id})"
        )
    seen: set[str] = set()
    for hero_id in config.hero_ids():
        if hero_id in seen:
            raise ValidationError(f"Duplicate hero ID in player configuration: {hero_id}")
        seen.add(hero_id)


class BootcampService:
    def __init__(self, mastery_service: MasteryService | None = None) -> None:
        self._session_repo = BootcampRepository()
        self._roster_repo = RosterRepository()
        self._player_repo = PlayerRepository()
        self._hero_repo = HeroRepository()
        self._mastery = mastery_service or MasteryService(self._player_repo)

    def start_bootcamp(
        self, conn: sqlite3.Connection, roster_id: str, configs: list[TrainingConfig], now: datetime
    ) -> BootcampSession:
        roster = self._get_roster(conn, roster_id)
        if roster.activity != RosterActivity.IDLE:
            raise PreconditionError(
                f"Roster must be IDLE to start bootcamp (activity: {roster.activity.value})"
            )
        if not configs:
            raise ValidationError("Bootcamp must include at least one player configuration")
        member_ids = {p.id for p in self._player_repo.list_by_roster(conn, roster_id)}
        seen_players: set[str] = set()
        for config in configs:
            if config.player_id not in member_ids:
                raise ValidationError(f"Player {config.player_id} does not belong to roster {roster_id}")
            if config.player_id in seen_players:
                raise ValidationError(f"Player {config.player_id} configured twice")
            seen_players.add(config.player_id)
            validate_config(config)
            hero_ids = config.hero_ids()
            missing = set(hero_ids) - self._hero_repo.existing_ids(conn, hero_ids)
            if missing:
                raise ValidationError(f"Hero not found: {', '.join(sorted(missing))}")

        session = BootcampSession(roster_id=roster_id, started_at=now, last_tick_at=now, configs=list(configs))
        with transaction(conn):
            self._session_repo.create(conn, session)
            self._roster_repo.update_activity(conn, roster_id, RosterActivity.BOOTCAMP)
        logger.info("Bootcamp session created for roster %s", roster_id)
        return session

    def stop_bootcamp(self, conn: sqlite3.Connection, roster_id: str) -> None:
        self._get_roster(conn, roster_id)
        if self._session_repo.get(conn, roster_id) is None:
            raise PreconditionError(f"Roster {roster_id} has no active bootcamp")
        with transaction(conn):
            self._stop(conn, roster_id)

    def get_session(self, conn: sqlite3.Connection, roster_id: str) -> BootcampSession:
        session = self._session_repo.get(conn, roster_id)
        if session is None:
            raise NotFoundError(f"No bootcamp session for roster {roster_id}")
        return session

    def process_bootcamp_ticks(self, conn: sqlite3.Connection, now: datetime) -> dict[str, list[str]]:
        """Tick every session idle for at least TICK_HOURS. One transaction per session."""
        logger.info("Processing bootcamp XP ticks")
        summary: dict[str, list[str]] = {"ticked": [], "stopped": [], "skipped": []}
        threshold = now - timedelta(hours=TICK_HOURS)
        for roster_id in self._session_repo.list_due_roster_ids(conn, threshold):
            try:
                outcome = self._tick_session(conn, roster_id, now)
            except DataIntegrityError as exc:
                logger.warning("Skipping bootcamp for roster %s: %s", roster_id, exc)
                summary["skipped"].append(roster_id)
                continue
            summary[outcome].append(roster_id)
        return summary

    def _tick_session(self, conn: sqlite3.Connection, roster_id: str, now: datetime) -> str:
        with transaction(conn):
            session = self._session_repo.get(conn, roster_id)
            roster = self._roster_repo.get(conn, roster_id)
            if session is None or roster is None:
                raise DataIntegrityError(f"Bootcamp session or roster vanished: {roster_id}")
            if roster.energy < BASE_ENERGY_COST_PER_TICK:
                logger.info("Roster %s has low energy (%d). Stopping bootcamp.", roster_id, roster.energy)
                self._stop(conn, roster_id)
                return "stopped"
            self._apply_tick(conn, session, roster)
            self._session_repo.update_last_tick(conn, roster_id, now)
        return "ticked"

    def _apply_tick(self, conn: sqlite3.Connection, session: BootcampSession, roster: Roster) -> None:
        members = self._player_repo.list_by_roster(conn, roster.id)
        strength = roster_strength(members)
        logger.info("Applying XP tick for roster %s (strength: %.2f)", roster.id, strength)

        old_energy, old_cohesion = roster.energy, roster.cohesion
        roster.energy = max(0, roster.energy - energy_cost(members))
        roster.cohesion = min(MAX_COHESION, roster.cohesion + cohesion_gain(members))
        self._roster_repo.update_vitals(conn, roster)
        logger.debug(
            "Roster %s energy %d -> %d, cohesion %s -> %s",
            roster.id, old_energy, roster.energy, old_cohesion, roster.cohesion,
        )

        by_id = {p.id: p for p in members}
        for config in session.configs:
            player = by_id.get(config.player_id) or self._player_repo.get(conn, config.player_id)
            if player is None:
                raise DataIntegrityError(f"Player not found in bootcamp config: {config.player_id}")
            self._mastery.add_role_experience(conn, player, config.target_role, int(BASE_ROLE_XP * strength))

            adaptive = player.has_trait(PlayerTrait.ADAPTIVE)
            primary_base = BASE_ADAPTIVE_HERO_XP if adaptive else BASE_PRIMARY_HERO_XP
            secondary_base = BASE_ADAPTIVE_HERO_XP if adaptive else BASE_SECONDARY_HERO_XP
            if config.primary_hero_id:
                self._mastery.add_hero_experience(conn, player, config.primary_hero_id, int(primary_base * strength))
            for hero_id in config.secondary_hero_ids:
                if hero_id:
                    self._mastery.add_hero_experience(conn, player, hero_id, int(secondary_base * strength))

    def _stop(self, conn: sqlite3.Connection, roster_id: str) -> None:
        self._session_repo.delete(conn, roster_id)
        self._roster_repo.update_activity(conn, roster_id, RosterActivity.IDLE)
        logger.info("Bootcamp stopped for roster %s", roster_id)

    def _get_roster(self, conn: sqlite3.Connection, roster_id: str) -> Roster:
        roster = self._roster_repo.get(conn, roster_id)
        if roster is None:
            raise NotFoundError(f"Roster not found: {roster_id}")
        return roster
