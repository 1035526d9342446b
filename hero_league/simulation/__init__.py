"""
Match engine: draft resolution, performance scoring and probabilistic outcome.
Pure functions over domain objects; persistence lives in hero_league.services.
"""
from .schemas import DraftEntry, OutcomeProbs, RosterPerformance
from .rng import RandomSource, SeededRNG
from .draft import best_meta_hero, draft_sequence, resolve_draft
from .performance import (
    count_counter_pairs,
    count_synergy_pairs,
    player_performance,
    roster_performance,
)
from .probability_engine import ProbabilityEngine, clamp

__all__ = [
    "DraftEntry",
    "OutcomeProbs",
    "RosterPerformance",
    "RandomSource",
    "SeededRNG",
    "best_meta_hero",
    "draft_sequence",
    "resolve_draft",
    "count_counter_pairs",
    "count_synergy_pairs",
    "player_performance",
    "roster_performance",
    "ProbabilityEngine",
    "clamp",
]
