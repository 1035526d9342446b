"""
Data models for the competition engine.
Domain objects only; no persistence or API logic.

Entities reference each other by id; relations are resolved through repositories.
Stat values (cohesion, morale, performance, strength) are Decimal so rounding is
base-10 and reproducible.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any


# ---------- Hero enums ----------
class HeroRole(str, Enum):
    TOP = "TOP"
    JUNGLE = "JUNGLE"
    MID = "MID"
    CARRY = "CARRY"
    SUPPORT = "SUPPORT"


class MetaTier(str, Enum):
    """Meta strength of a hero in a role. Declaration order is the ranking (S best)."""
    S = "S"
    A = "A"
    B = "B"
    C = "C"
    D = "D"

    @property
    def ordinal(self) -> int:
        return list(MetaTier).index(self)


class HeroArchetype(str, Enum):
    TANK = "TANK"
    BRUISER = "BRUISER"
    ASSASSIN = "ASSASSIN"
    MAGE = "MAGE"
    MARKSMAN = "MARKSMAN"
    ENCHANTER = "ENCHANTER"


# ---------- Player / roster enums ----------
class PlayerTrait(str, Enum):
    CLUTCH_FACTOR = "CLUTCH_FACTOR"  # does not stack
    LEADER = "LEADER"                # does not stack
    LONE_WOLF = "LONE_WOLF"          # stacks (cohesion penalty)
    TEAM_PLAYER = "TEAM_PLAYER"      # stacks
    ADAPTIVE = "ADAPTIVE"
    WORKAHOLIC = "WORKAHOLIC"        # stacks


class RosterActivity(str, Enum):
    IDLE = "IDLE"
    BOOTCAMP = "BOOTCAMP"
    IN_EVENT = "IN_EVENT"


# ---------- Match / event status ----------
class MatchStatus(str, Enum):
    """SCHEDULED → COMPLETED, or CANCELLED. Transitions once."""
    SCHEDULED = "SCHEDULED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class EventType(str, Enum):
    LEAGUE = "LEAGUE"
    TOURNAMENT = "TOURNAMENT"
    CUP = "CUP"


class EventStatus(str, Enum):
    """Event lifecycle: closed → open → ongoing → finished (or cancelled)."""
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    ONGOING = "ONGOING"
    FINISHED = "FINISHED"
    CANCELLED = "CANCELLED"


# ---------- Hero ----------
@dataclass(frozen=True)
class Hero:
    """
    A playable hero. Efficiency and meta multiplier per role are derived from
    primary/secondary role and tier (see hero_league.heroes).
    """
    id: str
    name: str
    primary_role: HeroRole
    primary_tier: MetaTier
    archetype: HeroArchetype
    secondary_role: HeroRole | None = None
    secondary_tier: MetaTier | None = None

    def plays(self, role: HeroRole) -> bool:
        return role == self.primary_role or role == self.secondary_role

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "primary_role": self.primary_role.value,
            "primary_tier": self.primary_tier.value,
            "secondary_role": self.secondary_role.value if self.secondary_role else None,
            "secondary_tier": self.secondary_tier.value if self.secondary_tier else None,
            "archetype": self.archetype.value,
        }


# ---------- Mastery ----------
@dataclass
class Mastery:
    """(level, cumulative experience) pair. Used for both role and hero tracks."""
    level: int = 1
    experience: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"level": self.level, "experience": self.experience}


# ---------- Player ----------
@dataclass
class Player:
    """
    A player owned by a user. One role mastery per role exists from creation;
    hero masteries appear on first experience gain (absent = level 1).
    """
    id: str
    nickname: str
    roster_id: str | None = None
    traits: set[PlayerTrait] = field(default_factory=set)
    role_masteries: dict[HeroRole, Mastery] = field(default_factory=dict)
    hero_masteries: dict[str, Mastery] = field(default_factory=dict)

    def has_trait(self, trait: PlayerTrait) -> bool:
        return trait in self.traits

    def hero_level(self, hero_id: str) -> int:
        mastery = self.hero_masteries.get(hero_id)
        return mastery.level if mastery is not None else 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "nickname": self.nickname,
            "roster_id": self.roster_id,
            "traits": sorted(t.value for t in self.traits),
            "role_masteries": {r.value: m.to_dict() for r, m in self.role_masteries.items()},
            "hero_masteries": {h: m.to_dict() for h, m in self.hero_masteries.items()},
        }


# ---------- Roster ----------
@dataclass
class Roster:
    """A team of (typically 5) players. cohesion and morale live in [0.00, 10.00]."""
    id: str
    owner_id: str
    name: str
    cohesion: Decimal = Decimal("0.00")
    morale: Decimal = Decimal("5.00")
    energy: int = 100
    activity: RosterActivity = RosterActivity.IDLE

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "cohesion": str(self.cohesion),
            "morale": str(self.morale),
            "energy": self.energy,
            "activity": self.activity.value,
        }


# ---------- Draft ----------
@dataclass(frozen=True)
class MatchPick:
    """
    One player's pick intention: target role, up to three preferred heroes in
    priority order, and the position in the shared draft sequence.
    """
    player_id: str
    role: HeroRole
    preferred_hero_ids: tuple[str, ...]
    pick_order: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "player_id": self.player_id,
            "role": self.role.value,
            "preferred_hero_ids": list(self.preferred_hero_ids),
            "pick_order": self.pick_order,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> MatchPick:
        return cls(
            player_id=d["player_id"],
            role=HeroRole(d["role"]),
            preferred_hero_ids=tuple(d.get("preferred_hero_ids") or ()),
            pick_order=int(d["pick_order"]),
        )


# ---------- Match ----------
@dataclass
class Match:
    """
    A scheduled game between two rosters. Bans and pick intentions are edited
    while SCHEDULED; the engine completes it exactly once.
    """
    id: str
    home_roster_id: str
    away_roster_id: str
    scheduled_time: datetime
    status: MatchStatus = MatchStatus.SCHEDULED
    event_id: str | None = None
    played_at: datetime | None = None
    home_bans: list[str] = field(default_factory=list)
    away_bans: list[str] = field(default_factory=list)
    home_picks: list[MatchPick] = field(default_factory=list)
    away_picks: list[MatchPick] = field(default_factory=list)

    def side_of(self, roster_id: str) -> str | None:
        """'home' | 'away' | None."""
        if roster_id == self.home_roster_id:
            return "home"
        if roster_id == self.away_roster_id:
            return "away"
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "event_id": self.event_id,
            "home_roster_id": self.home_roster_id,
            "away_roster_id": self.away_roster_id,
            "status": self.status.value,
            "scheduled_time": self.scheduled_time.isoformat(),
            "played_at": self.played_at.isoformat() if self.played_at else None,
            "home_bans": list(self.home_bans),
            "away_bans": list(self.away_bans),
            "home_picks": [p.to_dict() for p in self.home_picks],
            "away_picks": [p.to_dict() for p in self.away_picks],
        }


# ---------- Match result (immutable snapshot) ----------
@dataclass(frozen=True)
class PlayerStat:
    player_id: str
    hero_id: str
    role: HeroRole
    performance: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "player_id": self.player_id,
            "hero_id": self.hero_id,
            "role": self.role.value,
            "performance": str(self.performance),
        }


@dataclass(frozen=True)
class MatchResult:
    """Snapshot keyed by match id. Written once, in the transaction that completes the match."""
    match_id: str
    winner_roster_id: str
    home_total: Decimal
    away_total: Decimal
    win_probability_home: Decimal
    player_stats: dict[str, PlayerStat]
    home_counter: Decimal = Decimal("0")
    home_synergy: Decimal = Decimal("0")
    away_counter: Decimal = Decimal("0")
    away_synergy: Decimal = Decimal("0")
    created_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "match_id": self.match_id,
            "winner_roster_id": self.winner_roster_id,
            "home_total": str(self.home_total),
            "away_total": str(self.away_total),
            "win_probability_home": str(self.win_probability_home),
            "home_counter": str(self.home_counter),
            "home_synergy": str(self.home_synergy),
            "away_counter": str(self.away_counter),
            "away_synergy": str(self.away_synergy),
            "player_stats": {pid: s.to_dict() for pid, s in self.player_stats.items()},
        }
        if self.created_at is not None:
            d["created_at"] = self.created_at.isoformat()
        return d


# ---------- Event / league ----------
@dataclass
class Event:
    """
    A competition window. Pacing fields drive the league calendar:
    games_per_block matches back to back, minutes_between_games inside a block,
    minutes_between_blocks between blocks.
    """
    id: str
    name: str
    type: EventType
    status: EventStatus
    opens_at: datetime
    starts_at: datetime
    games_per_block: int = 1
    minutes_between_games: int = 30
    minutes_between_blocks: int = 120
    max_players: int | None = None
    finishes_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "status": self.status.value,
            "opens_at": self.opens_at.isoformat(),
            "starts_at": self.starts_at.isoformat(),
            "finishes_at": self.finishes_at.isoformat() if self.finishes_at else None,
            "games_per_block": self.games_per_block,
            "minutes_between_games": self.minutes_between_games,
            "minutes_between_blocks": self.minutes_between_blocks,
            "max_players": self.max_players,
        }


@dataclass
class League:
    """League settings for a LEAGUE event. round_robin_count = times each pairing repeats."""
    event_id: str
    round_robin_count: int = 1


@dataclass
class LeagueStanding:
    event_id: str
    roster_id: str
    wins: int = 0
    losses: int = 0
    position: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "roster_id": self.roster_id,
            "wins": self.wins,
            "losses": self.losses,
            "position": self.position,
        }


# ---------- Bootcamp ----------
@dataclass(frozen=True)
class TrainingConfig:
    """What one player trains during a bootcamp: a role, a primary hero, up to two secondary heroes."""
    player_id: str
    target_role: HeroRole
    primary_hero_id: str | None = None
    secondary_hero_ids: tuple[str, ...] = ()

    def hero_ids(self) -> list[str]:
        ids = [self.primary_hero_id] if self.primary_hero_id else []
        return ids + [h for h in self.secondary_hero_ids if h]


@dataclass
class BootcampSession:
    roster_id: str
    started_at: datetime
    last_tick_at: datetime
    configs: list[TrainingConfig] = field(default_factory=list)
