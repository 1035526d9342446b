"""
Probability Engine: turns two roster strengths into a home win probability and
draws the winner.

p = home / (home + away); when the margin is inside the clutch window and exactly
one side fields a CLUTCH_FACTOR player, p shifts toward that side. p is always
clamped so either side keeps a chance.
"""
from __future__ import annotations

import logging
from decimal import Decimal

from .rng import RandomSource
from .schemas import OutcomeProbs, RosterPerformance

logger = logging.getLogger(__name__)

CLUTCH_THRESHOLD_PERCENT = Decimal("0.05")
CLUTCH_PROBABILITY_BONUS = 0.20
MIN_WIN_PROBABILITY = 0.05
MAX_WIN_PROBABILITY = 0.95


def clamp(p: float, lo: float = MIN_WIN_PROBABILITY, hi: float = MAX_WIN_PROBABILITY) -> float:
    return max(lo, min(hi, p))


class ProbabilityEngine:
    """
    Composables: base strength ratio, clutch shift, clamp.
    Returns OutcomeProbs and supports sampling.
    """

    def __init__(
        self,
        clutch_threshold: Decimal = CLUTCH_THRESHOLD_PERCENT,
        clutch_bonus: float = CLUTCH_PROBABILITY_BONUS,
    ) -> None:
        self.clutch_threshold = clutch_threshold
        self.clutch_bonus = clutch_bonus

    def in_clutch_window(self, home: RosterPerformance, away: RosterPerformance) -> bool:
        total = home.total_strength + away.total_strength
        return abs(home.total_strength - away.total_strength) < total * self.clutch_threshold

    def compute(self, home: RosterPerformance, away: RosterPerformance) -> OutcomeProbs:
        total = home.total_strength + away.total_strength
        if total == 0:
            # No strength on either side: home takes it without a draw.
            return OutcomeProbs(
                p_home_wins=MAX_WIN_PROBABILITY, base_p_home=MAX_WIN_PROBABILITY, deterministic=True
            )

        base = float(home.total_strength / total)
        shift = 0.0
        if self.in_clutch_window(home, away):
            if home.has_clutch_player and not away.has_clutch_player:
                shift = self.clutch_bonus
                logger.info("Clutch bonus applied to home roster %s (+%.2f)", home.roster_id, shift)
            elif away.has_clutch_player and not home.has_clutch_player:
                shift = -self.clutch_bonus
                logger.info("Clutch bonus applied to away roster %s (+%.2f)", away.roster_id, -shift)

        return OutcomeProbs(p_home_wins=clamp(base + shift), base_p_home=base, clutch_shift=shift)

    def determine_winner(
        self, home: RosterPerformance, away: RosterPerformance, rng: RandomSource
    ) -> tuple[str, OutcomeProbs]:
        """Return (winner roster id, probs). Draws rng.random() once unless the outcome is deterministic."""
        probs = self.compute(home, away)
        if probs.deterministic:
            return home.roster_id, probs
        draw = rng.random()
        winner = home.roster_id if draw < probs.p_home_wins else away.roster_id
        logger.debug("Outcome draw %.6f vs p_home %.4f -> %s", draw, probs.p_home_wins, winner)
        return winner, probs
