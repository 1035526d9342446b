"""
Draft resolver: turns both sides' bans and pick intentions into one hero per player.

Both sides share a single pick_order numbering space; entries are processed in
ascending pick_order (home before away on equal order). A hero is never
assigned twice in one match.
"""
from __future__ import annotations

import logging
from typing import Iterable

from hero_league.errors import DataIntegrityError
from hero_league.models import Hero, HeroRole, MatchPick

from .schemas import DraftEntry

logger = logging.getLogger(__name__)


def draft_sequence(home_picks: Iterable[MatchPick], away_picks: Iterable[MatchPick]) -> list[DraftEntry]:
    """Home intentions first, then away; stable sort by pick_order."""
    entries = [DraftEntry(p, True) for p in home_picks] + [DraftEntry(p, False) for p in away_picks]
    return sorted(entries, key=lambda e: e.pick.pick_order)


def best_meta_hero(role: HeroRole, unavailable: set[str], heroes: list[Hero]) -> Hero | None:
    """
    Available hero playing `role` (primary or secondary) with the best primary tier.
    Ties go to the earlier hero in `heroes` (catalog order).
    """
    candidates = [h for h in heroes if h.id not in unavailable and h.plays(role)]
    if not candidates:
        return None
    return min(candidates, key=lambda h: h.primary_tier.ordinal)


def resolve_draft(
    home_bans: Iterable[str],
    away_bans: Iterable[str],
    home_picks: Iterable[MatchPick],
    away_picks: Iterable[MatchPick],
    heroes: list[Hero],
) -> dict[str, Hero]:
    """
    Return {player_id: Hero}. `heroes` is the catalog in catalog order (by name).
    Raises DataIntegrityError if a player is left with no eligible hero.
    """
    by_id = {h.id: h for h in heroes}
    unavailable: set[str] = set(home_bans) | set(away_bans)
    picks: dict[str, Hero] = {}

    for entry in draft_sequence(home_picks, away_picks):
        intent = entry.pick
        assigned: Hero | None = None
        for hero_id in intent.preferred_hero_ids[:3]:
            if hero_id and hero_id not in unavailable and hero_id in by_id:
                assigned = by_id[hero_id]
                break
        if assigned is None:
            assigned = best_meta_hero(intent.role, unavailable, heroes)
            if assigned is None:
                raise DataIntegrityError(
                    f"No eligible hero left for player {intent.player_id} in role {intent.role.value}"
                )
            logger.debug(
                "Player %s fell back to meta pick %s for %s",
                intent.player_id, assigned.name, intent.role.value,
            )
        picks[intent.player_id] = assigned
        unavailable.add(assigned.id)
    return picks
