"""
Match engine orchestration: draft -> performance -> outcome -> result snapshot ->
post-match progression, all in one transaction per match.
Callable by the due-match tick or by the API for an admin-triggered simulate.
"""
from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

from hero_league.errors import DataIntegrityError, NotFoundError, PreconditionError
from hero_league.models import Match, MatchResult, MatchStatus, Player, PlayerStat
from hero_league.persistence.db import transaction
from hero_league.persistence.repositories import (
    HeroRepository,
    MatchRepository,
    MatchResultRepository,
    PlayerRepository,
    RosterRepository,
)
from hero_league.services.post_match import PostMatchProcessor
from hero_league.simulation.draft import resolve_draft
from hero_league.simulation.performance import roster_performance
from hero_league.simulation.probability_engine import ProbabilityEngine
from hero_league.simulation.rng import RandomSource, SeededRNG

logger = logging.getLogger(__name__)

_PROBABILITY_PLACES = Decimal("0.0001")


class MatchEngineService:
    """Simulates scheduled matches. Only SCHEDULED matches are touched, so re-runs are no-ops."""

    def __init__(
        self,
        probability_engine: ProbabilityEngine | None = None,
        post_match: PostMatchProcessor | None = None,
    ) -> None:
        self._engine = probability_engine or ProbabilityEngine()
        self._post_match = post_match or PostMatchProcessor()
        self._match_repo = MatchRepository()
        self._result_repo = MatchResultRepository()
        self._hero_repo = HeroRepository()
        self._player_repo = PlayerRepository()
        self._roster_repo = RosterRepository()

    def simulate_match(
        self,
        conn: sqlite3.Connection,
        match_id: str,
        rng: RandomSource | None = None,
        now: datetime | None = None,
    ) -> MatchResult | None:
        """
        Simulate one match and apply its consequences atomically.
        Returns None when the match is no longer SCHEDULED.
        """
        match = self._match_repo.get(conn, match_id)
        if match is None:
            raise NotFoundError(f"Match not found: {match_id}")
        if match.status != MatchStatus.SCHEDULED:
            logger.info("Match %s is %s; nothing to simulate", match_id, match.status.value)
            return None
        if not match.home_picks or not match.away_picks:
            raise PreconditionError(f"Draft not set for match {match_id}")

        with transaction(conn):
            return self._run(conn, match, rng or SeededRNG(), now or datetime.now(timezone.utc))

    def simulate_due_matches(
        self, conn: sqlite3.Connection, now: datetime, rng: RandomSource | None = None
    ) -> list[str]:
        """Simulate every SCHEDULED match with scheduled_time <= now. Returns the completed ids."""
        completed: list[str] = []
        for match_id in self._match_repo.list_due_ids(conn, now):
            try:
                result = self.simulate_match(conn, match_id, rng=rng, now=now)
            except (DataIntegrityError, PreconditionError) as exc:
                logger.warning("Skipping match %s: %s", match_id, exc)
                continue
            if result is not None:
                completed.append(match_id)
        logger.info("Due-match tick at %s completed %d match(es)", now.isoformat(), len(completed))
        return completed

    def _run(self, conn: sqlite3.Connection, match: Match, rng: RandomSource, now: datetime) -> MatchResult:
        logger.info("Starting simulation for match %s", match.id)

        home_roster = self._roster_repo.get(conn, match.home_roster_id)
        away_roster = self._roster_repo.get(conn, match.away_roster_id)
        if home_roster is None or away_roster is None:
            raise DataIntegrityError(f"Roster missing for match {match.id}")
        players = self._load_players(conn, match)

        # 1. Draft
        assigned = resolve_draft(
            match.home_bans, match.away_bans, match.home_picks, match.away_picks,
            self._hero_repo.list_all(conn),
        )
        home_heroes = [assigned[p.player_id] for p in match.home_picks]
        away_heroes = [assigned[p.player_id] for p in match.away_picks]

        # 2. Performance
        home_perf = roster_performance(home_roster, match.home_picks, players, assigned, away_heroes)
        away_perf = roster_performance(away_roster, match.away_picks, players, assigned, home_heroes)

        # 3. Outcome
        winner_id, probs = self._engine.determine_winner(home_perf, away_perf, rng)

        # 4. Result snapshot + status
        stats = {
            pick.player_id: PlayerStat(
                player_id=pick.player_id,
                hero_id=assigned[pick.player_id].id,
                role=pick.role,
                performance=(home_perf.player_scores if side == "home" else away_perf.player_scores)[pick.player_id],
            )
            for side, picks in (("home", match.home_picks), ("away", match.away_picks))
            for pick in picks
        }
        result = MatchResult(
            match_id=match.id,
            winner_roster_id=winner_id,
            home_total=home_perf.total_strength,
            away_total=away_perf.total_strength,
            win_probability_home=Decimal(repr(probs.p_home_wins)).quantize(
                _PROBABILITY_PLACES, rounding=ROUND_HALF_UP
            ),
            player_stats=stats,
            home_counter=home_perf.counter_strength,
            home_synergy=home_perf.synergy_strength,
            away_counter=away_perf.counter_strength,
            away_synergy=away_perf.synergy_strength,
            created_at=now,
        )
        self._result_repo.save(conn, result)
        self._match_repo.mark_completed(conn, match.id, now)

        # 5. Progression
        self._post_match.process(conn, match, winner_id, assigned, players)

        logger.info("Match %s simulation complete. Winner: %s", match.id, winner_id)
        return result

    def _load_players(self, conn: sqlite3.Connection, match: Match) -> dict[str, Player]:
        players: dict[str, Player] = {}
        for pick in list(match.home_picks) + list(match.away_picks):
            player = self._player_repo.get(conn, pick.player_id)
            if player is None:
                raise DataIntegrityError(f"Player not found: {pick.player_id}")
            players[player.id] = player
        return players
