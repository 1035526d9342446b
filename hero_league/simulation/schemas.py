"""
Shared value types for the match engine: draft sequence entries, per-roster
performance breakdowns and the outcome probability.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from hero_league.models import MatchPick


@dataclass(frozen=True)
class DraftEntry:
    """One slot in the shared draft sequence."""
    pick: MatchPick
    is_home: bool


@dataclass(frozen=True)
class RosterPerformance:
    """
    Breakdown of one side's strength. counter_strength / synergy_strength are the
    flat bonuses (5.00 per counter pair, 3.00 per synergy pair).
    """
    roster_id: str
    total_strength: Decimal
    player_scores: dict[str, Decimal] = field(default_factory=dict)
    counter_pairs: int = 0
    synergy_pairs: int = 0
    counter_strength: Decimal = Decimal("0.00")
    synergy_strength: Decimal = Decimal("0.00")
    cohesion: Decimal = Decimal("0.00")
    morale: Decimal = Decimal("5.00")
    has_clutch_player: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "roster_id": self.roster_id,
            "total_strength": str(self.total_strength),
            "player_scores": {pid: str(v) for pid, v in self.player_scores.items()},
            "counter_pairs": self.counter_pairs,
            "synergy_pairs": self.synergy_pairs,
            "counter_strength": str(self.counter_strength),
            "synergy_strength": str(self.synergy_strength),
            "cohesion": str(self.cohesion),
            "morale": str(self.morale),
            "has_clutch_player": self.has_clutch_player,
        }


@dataclass(frozen=True)
class OutcomeProbs:
    """Home win probability after clutch shift and clamp, for diagnostics and sampling."""
    p_home_wins: float
    base_p_home: float
    clutch_shift: float = 0.0
    deterministic: bool = False

    @property
    def p_away_wins(self) -> float:
        return 1.0 - self.p_home_wins
