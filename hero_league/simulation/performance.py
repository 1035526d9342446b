"""
Performance calculator: per-player performance points and per-roster total strength.

player:  ers = role_level * efficiency; hf = hero_level * tier_mult
         perf = ers * 0.60 + hf * 0.40  (x1.10 for LONE_WOLF), 2 decimals HALF_UP
roster:  (sum(perf) + 5.00 * counter_pairs + 3.00 * synergy_pairs)
         * (1 + cohesion / 100) * (1 + (morale - 5.0) / 50), multipliers at 4 decimals
"""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from hero_league.errors import DataIntegrityError
from hero_league.heroes import counters, efficiency_for_role, multiplier_for_role, synergizes_with
from hero_league.models import Hero, HeroRole, MatchPick, Player, PlayerTrait, Roster

from .schemas import RosterPerformance

ROLE_WEIGHT = Decimal("0.60")
HERO_WEIGHT = Decimal("0.40")
LONE_WOLF_BONUS = Decimal("1.10")
COUNTER_POINTS = Decimal("5.00")
SYNERGY_POINTS = Decimal("3.00")
MORALE_BASELINE = Decimal("5.0")

_CENTS = Decimal("0.01")
_MULT_PLACES = Decimal("0.0001")


def quantize2(value: Decimal) -> Decimal:
    return value.quantize(_CENTS, rounding=ROUND_HALF_UP)


def quantize4(value: Decimal) -> Decimal:
    return value.quantize(_MULT_PLACES, rounding=ROUND_HALF_UP)


def player_performance(player: Player, hero: Hero, role: HeroRole) -> Decimal:
    mastery = player.role_masteries.get(role)
    if mastery is None:
        raise DataIntegrityError(f"Role mastery not found for player {player.id} role {role.value}")
    effective_role_skill = Decimal(mastery.level) * efficiency_for_role(hero, role)
    hero_factor = Decimal(player.hero_level(hero.id)) * multiplier_for_role(hero, role)
    perf = effective_role_skill * ROLE_WEIGHT + hero_factor * HERO_WEIGHT
    if player.has_trait(PlayerTrait.LONE_WOLF):
        perf = perf * LONE_WOLF_BONUS
    return quantize2(perf)


def count_counter_pairs(team: Iterable[Hero], opponents: Iterable[Hero]) -> int:
    """Ordered (team hero, opponent hero) pairs where the team hero counters the opponent."""
    opp = list(opponents)
    return sum(1 for t in team for o in opp if counters(t.archetype, o.archetype))


def count_synergy_pairs(team: Iterable[Hero]) -> int:
    """Unordered teammate pairs where either hero synergizes with the other."""
    heroes = list(team)
    points = 0
    for i in range(len(heroes)):
        for j in range(i + 1, len(heroes)):
            a, b = heroes[i].archetype, heroes[j].archetype
            if synergizes_with(a, b) or synergizes_with(b, a):
                points += 1
    return points


def cohesion_multiplier(cohesion: Decimal) -> Decimal:
    return Decimal("1") + quantize4(cohesion / Decimal("100"))


def morale_multiplier(morale: Decimal) -> Decimal:
    return Decimal("1") + quantize4((morale - MORALE_BASELINE) / Decimal("50"))


def roster_performance(
    roster: Roster,
    intentions: list[MatchPick],
    players: dict[str, Player],
    assigned: dict[str, Hero],
    opponents: list[Hero],
) -> RosterPerformance:
    """
    Total strength of one side. `players` and `assigned` are keyed by player id and
    must cover every intention; a gap means the player or hero vanished.
    """
    scores: dict[str, Decimal] = {}
    team: list[Hero] = []
    has_clutch = False
    for intent in intentions:
        player = players.get(intent.player_id)
        hero = assigned.get(intent.player_id)
        if player is None:
            raise DataIntegrityError(f"Player not found: {intent.player_id}")
        if hero is None:
            raise DataIntegrityError(f"No hero assigned to player {intent.player_id}")
        if player.has_trait(PlayerTrait.CLUTCH_FACTOR):
            has_clutch = True
        scores[player.id] = player_performance(player, hero, intent.role)
        team.append(hero)

    counter_pairs = count_counter_pairs(team, opponents)
    synergy_pairs = count_synergy_pairs(team)
    counter_strength = COUNTER_POINTS * counter_pairs
    synergy_strength = SYNERGY_POINTS * synergy_pairs

    total = (
        (sum(scores.values(), Decimal("0")) + counter_strength + synergy_strength)
        * cohesion_multiplier(roster.cohesion)
        * morale_multiplier(roster.morale)
    )
    return RosterPerformance(
        roster_id=roster.id,
        total_strength=total,
        player_scores=scores,
        counter_pairs=counter_pairs,
        synergy_pairs=synergy_pairs,
        counter_strength=counter_strength,
        synergy_strength=synergy_strength,
        cohesion=roster.cohesion,
        morale=roster.morale,
        has_clutch_player=has_clutch,
    )
