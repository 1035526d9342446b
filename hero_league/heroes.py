"""
Hero compatibility model: role efficiency, meta tier multipliers, and the
archetype counter/synergy relation.

Everything here is a static lookup table so balance changes never touch the
engine loop. Counters and synergies are directed: counters(a, b) does not
imply counters(b, a).
"""
from __future__ import annotations

from decimal import Decimal

from hero_league.models import Hero, HeroArchetype, HeroRole, MetaTier

PRIMARY_EFFICIENCY = Decimal("1.00")
SECONDARY_EFFICIENCY = Decimal("0.80")
OFF_ROLE_EFFICIENCY = Decimal("0.10")
NEUTRAL_MULTIPLIER = Decimal("1.00")

TIER_MULTIPLIERS: dict[MetaTier, Decimal] = {
    MetaTier.S: Decimal("1.20"),
    MetaTier.A: Decimal("1.00"),
    MetaTier.B: Decimal("0.80"),
    MetaTier.C: Decimal("0.60"),
    MetaTier.D: Decimal("0.30"),
}

# Each archetype counters exactly two others.
COUNTERS: dict[HeroArchetype, frozenset[HeroArchetype]] = {
    HeroArchetype.TANK: frozenset({HeroArchetype.ASSASSIN, HeroArchetype.MARKSMAN}),
    HeroArchetype.BRUISER: frozenset({HeroArchetype.TANK, HeroArchetype.ENCHANTER}),
    HeroArchetype.ASSASSIN: frozenset({HeroArchetype.MAGE, HeroArchetype.MARKSMAN}),
    HeroArchetype.MAGE: frozenset({HeroArchetype.TANK, HeroArchetype.BRUISER}),
    HeroArchetype.MARKSMAN: frozenset({HeroArchetype.TANK, HeroArchetype.BRUISER}),
    HeroArchetype.ENCHANTER: frozenset({HeroArchetype.ASSASSIN, HeroArchetype.BRUISER}),
}

# Each archetype synergizes with exactly two others.
SYNERGIES: dict[HeroArchetype, frozenset[HeroArchetype]] = {
    HeroArchetype.TANK: frozenset({HeroArchetype.MAGE, HeroArchetype.MARKSMAN}),
    HeroArchetype.BRUISER: frozenset({HeroArchetype.ASSASSIN, HeroArchetype.ENCHANTER}),
    HeroArchetype.ASSASSIN: frozenset({HeroArchetype.TANK, HeroArchetype.BRUISER}),
    HeroArchetype.MAGE: frozenset({HeroArchetype.TANK, HeroArchetype.ENCHANTER}),
    HeroArchetype.MARKSMAN: frozenset({HeroArchetype.TANK, HeroArchetype.ENCHANTER}),
    HeroArchetype.ENCHANTER: frozenset({HeroArchetype.MARKSMAN, HeroArchetype.BRUISER}),
}


def tier_multiplier(tier: MetaTier | None) -> Decimal:
    if tier is None:
        return NEUTRAL_MULTIPLIER
    return TIER_MULTIPLIERS[tier]


def efficiency_for_role(hero: Hero, role: HeroRole) -> Decimal:
    """1.00 on the primary role, 0.80 on the secondary role, 0.10 anywhere else."""
    if role == hero.primary_role:
        return PRIMARY_EFFICIENCY
    if hero.secondary_role is not None and role == hero.secondary_role:
        return SECONDARY_EFFICIENCY
    return OFF_ROLE_EFFICIENCY


def multiplier_for_role(hero: Hero, role: HeroRole) -> Decimal:
    """Meta multiplier of the tier the hero holds in this role; 1.00 when it holds none."""
    if role == hero.primary_role:
        return tier_multiplier(hero.primary_tier)
    if hero.secondary_role is not None and role == hero.secondary_role:
        return tier_multiplier(hero.secondary_tier)
    return NEUTRAL_MULTIPLIER


def counters(attacker: HeroArchetype, target: HeroArchetype) -> bool:
    return target in COUNTERS[attacker]


def synergizes_with(a: HeroArchetype, b: HeroArchetype) -> bool:
    return b in SYNERGIES[a]
