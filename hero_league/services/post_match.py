"""
Post-match progression: experience for every participant, roster vitals
(morale, cohesion, energy) for both sides, league standings for league matches.
Runs inside the match engine's transaction; never commits.
"""
from __future__ import annotations

import logging
import sqlite3
from decimal import Decimal

from hero_league.errors import DataIntegrityError
from hero_league.mastery import MasteryService
from hero_league.models import EventType, Hero, Match, MatchPick, Player, PlayerTrait, Roster
from hero_league.persistence.repositories import EventRepository, PlayerRepository, RosterRepository
from hero_league.services.league_service import LeagueService

logger = logging.getLogger(__name__)

WIN_EXPERIENCE = 100
LOSS_EXPERIENCE = 150  # consolation XP
ADAPTIVE_LOSS_MULTIPLIER = Decimal("1.5")

MORALE_WIN = Decimal("0.5")
MORALE_LOSS = Decimal("-0.5")
MORALE_WIN_LEADER = Decimal("0.75")
MORALE_LOSS_LEADER = Decimal("-0.25")

COHESION_WIN = Decimal("0.2")
COHESION_LOSS = Decimal("0.1")
COHESION_TRAIT_STEP = Decimal("0.05")

ENERGY_COST = 15

VITAL_MIN = Decimal("0.00")
VITAL_MAX = Decimal("10.00")


def clamp_vital(value: Decimal) -> Decimal:
    return max(VITAL_MIN, min(VITAL_MAX, value))


def count_trait(players: list[Player], trait: PlayerTrait) -> int:
    return sum(1 for p in players if p.has_trait(trait))


def apply_roster_outcome(roster: Roster, participants: list[Player], won: bool) -> Roster:
    """Mutate morale, cohesion and energy in place for one side."""
    if count_trait(participants, PlayerTrait.LEADER) > 0:
        morale_delta = MORALE_WIN_LEADER if won else MORALE_LOSS_LEADER
    else:
        morale_delta = MORALE_WIN if won else MORALE_LOSS
    old_morale = roster.morale
    roster.morale = clamp_vital(roster.morale + morale_delta)

    team_players = count_trait(participants, PlayerTrait.TEAM_PLAYER)
    lone_wolves = count_trait(participants, PlayerTrait.LONE_WOLF)
    cohesion_delta = (
        (COHESION_WIN if won else COHESION_LOSS)
        + COHESION_TRAIT_STEP * team_players
        - COHESION_TRAIT_STEP * lone_wolves
    )
    old_cohesion = roster.cohesion
    roster.cohesion = clamp_vital(roster.cohesion + cohesion_delta)

    workaholics = count_trait(participants, PlayerTrait.WORKAHOLIC)
    old_energy = roster.energy
    roster.energy = max(0, roster.energy - ENERGY_COST + workaholics)

    logger.debug(
        "Roster %s vitals: morale %s -> %s, cohesion %s -> %s, energy %d -> %d",
        roster.name, old_morale, roster.morale, old_cohesion, roster.cohesion, old_energy, roster.energy,
    )
    return roster


def experience_for(player: Player, won: bool) -> tuple[int, int]:
    """(role XP, hero XP) for one participant."""
    base = WIN_EXPERIENCE if won else LOSS_EXPERIENCE
    hero_xp = base
    if not won and player.has_trait(PlayerTrait.ADAPTIVE):
        hero_xp = int(Decimal(base) * ADAPTIVE_LOSS_MULTIPLIER)
    return base, hero_xp


class PostMatchProcessor:
    """Applies the consequences of a completed match. Caller owns the transaction."""

    def __init__(self, mastery_service: MasteryService | None = None) -> None:
        self._player_repo = PlayerRepository()
        self._roster_repo = RosterRepository()
        self._event_repo = EventRepository()
        self._mastery = mastery_service or MasteryService(self._player_repo)
        self._league_service = LeagueService()

    def process(
        self,
        conn: sqlite3.Connection,
        match: Match,
        winner_roster_id: str,
        assigned: dict[str, Hero],
        players: dict[str, Player] | None = None,
    ) -> None:
        logger.info("Starting post-match processing for match %s. Winner: %s", match.id, winner_roster_id)
        home_won = winner_roster_id == match.home_roster_id
        loaded = dict(players or {})

        for roster_id, picks, won in (
            (match.home_roster_id, match.home_picks, home_won),
            (match.away_roster_id, match.away_picks, not home_won),
        ):
            roster = self._roster_repo.get(conn, roster_id)
            if roster is None:
                raise DataIntegrityError(f"Roster not found: {roster_id}")
            participants = self._participants(conn, picks, loaded)
            apply_roster_outcome(roster, participants, won)
            self._roster_repo.update_vitals(conn, roster)
            self._apply_experience(conn, picks, loaded, assigned, won)

        if match.event_id is not None:
            event = self._event_repo.get(conn, match.event_id)
            if event is None:
                raise DataIntegrityError(f"Event not found: {match.event_id}")
            if event.type == EventType.LEAGUE:
                loser = match.away_roster_id if home_won else match.home_roster_id
                self._league_service.record_result(conn, event.id, winner_roster_id, loser)

        logger.info("Post-match processing finished for match %s", match.id)

    def _participants(
        self, conn: sqlite3.Connection, picks: list[MatchPick], loaded: dict[str, Player]
    ) -> list[Player]:
        result: list[Player] = []
        for pick in picks:
            player = loaded.get(pick.player_id) or self._player_repo.get(conn, pick.player_id)
            if player is None:
                raise DataIntegrityError(f"Player not found: {pick.player_id}")
            loaded[player.id] = player
            result.append(player)
        return result

    def _apply_experience(
        self,
        conn: sqlite3.Connection,
        picks: list[MatchPick],
        loaded: dict[str, Player],
        assigned: dict[str, Hero],
        won: bool,
    ) -> None:
        for pick in picks:
            player = loaded[pick.player_id]
            hero = assigned.get(pick.player_id)
            if hero is None:
                raise DataIntegrityError(f"No hero assigned to player {pick.player_id}")
            role_xp, hero_xp = experience_for(player, won)
            if hero_xp != role_xp:
                logger.info(
                    "Player %s has ADAPTIVE trait. Hero XP multiplier applied: %d -> %d",
                    player.nickname, role_xp, hero_xp,
                )
            self._mastery.add_role_experience(conn, player, pick.role, role_xp)
            self._mastery.add_hero_experience(conn, player, hero.id, hero_xp)
