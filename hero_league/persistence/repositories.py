"""
Repository interfaces for competition data.
No business logic, only read/write operations. Repositories never commit:
the caller owns the transaction (see persistence.db.transaction).
"""
from __future__ import annotations

import json
import sqlite3
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from hero_league.models import (
    BootcampSession,
    Event,
    EventStatus,
    EventType,
    Hero,
    HeroArchetype,
    HeroRole,
    League,
    LeagueStanding,
    Mastery,
    Match,
    MatchPick,
    MatchResult,
    MatchStatus,
    MetaTier,
    Player,
    PlayerStat,
    PlayerTrait,
    Roster,
    RosterActivity,
    TrainingConfig,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(dt: datetime) -> str:
    """Normalize to UTC so stored strings sort chronologically."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()


def _parse_datetime(s: str | None) -> datetime:
    if s is None:
        raise ValueError("expected datetime string")
    return datetime.fromisoformat(s.replace("Z", "+00:00"))


def _opt_datetime(s: str | None) -> datetime | None:
    return _parse_datetime(s) if s else None


# ---------- HeroRepository ----------


class HeroRepository:
    """Hero catalog. list_all is ordered by name (the catalog order)."""

    def upsert(self, conn: sqlite3.Connection, hero: Hero) -> Hero:
        """Insert by name, or update the existing row of that name keeping its id."""
        row = conn.execute("SELECT id FROM heroes WHERE name = ?", (hero.name,)).fetchone()
        args = (
            hero.primary_role.value,
            hero.primary_tier.value,
            hero.secondary_role.value if hero.secondary_role else None,
            hero.secondary_tier.value if hero.secondary_tier else None,
            hero.archetype.value,
        )
        if row is None:
            conn.execute(
                """INSERT INTO heroes (id, name, primary_role, primary_tier, secondary_role, secondary_tier, archetype)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (hero.id, hero.name) + args,
            )
            return hero
        conn.execute(
            """UPDATE heroes SET primary_role = ?, primary_tier = ?, secondary_role = ?,
               secondary_tier = ?, archetype = ? WHERE id = ?""",
            args + (row["id"],),
        )
        return self.get(conn, row["id"]) or hero

    def get(self, conn: sqlite3.Connection, hero_id: str) -> Hero | None:
        row = conn.execute("SELECT * FROM heroes WHERE id = ?", (hero_id,)).fetchone()
        return _row_to_hero(row) if row else None

    def get_by_name(self, conn: sqlite3.Connection, name: str) -> Hero | None:
        row = conn.execute("SELECT * FROM heroes WHERE name = ?", (name,)).fetchone()
        return _row_to_hero(row) if row else None

    def list_all(self, conn: sqlite3.Connection) -> list[Hero]:
        rows = conn.execute("SELECT * FROM heroes ORDER BY name, id").fetchall()
        return [_row_to_hero(r) for r in rows]

    def existing_ids(self, conn: sqlite3.Connection, hero_ids: list[str]) -> set[str]:
        if not hero_ids:
            return set()
        placeholders = ",".join("?" * len(hero_ids))
        rows = conn.execute(
            f"SELECT id FROM heroes WHERE id IN ({placeholders})", tuple(hero_ids)
        ).fetchall()
        return {r["id"] for r in rows}

    def count(self, conn: sqlite3.Connection) -> int:
        return conn.execute("SELECT COUNT(*) FROM heroes").fetchone()[0]


def _row_to_hero(r: sqlite3.Row) -> Hero:
    return Hero(
        id=r["id"],
        name=r["name"],
        primary_role=HeroRole(r["primary_role"]),
        primary_tier=MetaTier(r["primary_tier"]),
        secondary_role=HeroRole(r["secondary_role"]) if r["secondary_role"] else None,
        secondary_tier=MetaTier(r["secondary_tier"]) if r["secondary_tier"] else None,
        archetype=HeroArchetype(r["archetype"]),
    )


# ---------- PlayerRepository ----------


class PlayerRepository:
    """Players with their trait set and both mastery tracks."""

    def create(
        self,
        conn: sqlite3.Connection,
        nickname: str,
        roster_id: str | None = None,
        traits: set[PlayerTrait] | None = None,
        id: str | None = None,
    ) -> Player:
        """Insert the player and one level-1 role mastery row per role."""
        pid = id or str(uuid.uuid4())
        trait_set = set(traits or ())
        conn.execute(
            "INSERT INTO players (id, nickname, roster_id, traits, created_at) VALUES (?, ?, ?, ?, ?)",
            (pid, nickname, roster_id, json.dumps(sorted(t.value for t in trait_set)), _iso(_utcnow())),
        )
        conn.executemany(
            "INSERT INTO role_masteries (player_id, role, level, experience) VALUES (?, ?, 1, 0)",
            [(pid, role.value) for role in HeroRole],
        )
        return Player(
            id=pid,
            nickname=nickname,
            roster_id=roster_id,
            traits=trait_set,
            role_masteries={role: Mastery() for role in HeroRole},
        )

    def get(self, conn: sqlite3.Connection, player_id: str) -> Player | None:
        row = conn.execute(
            "SELECT id, nickname, roster_id, traits FROM players WHERE id = ?", (player_id,)
        ).fetchone()
        if row is None:
            return None
        return self._hydrate(conn, row)

    def list_by_roster(self, conn: sqlite3.Connection, roster_id: str) -> list[Player]:
        rows = conn.execute(
            "SELECT id, nickname, roster_id, traits FROM players WHERE roster_id = ? ORDER BY rowid",
            (roster_id,),
        ).fetchall()
        return [self._hydrate(conn, r) for r in rows]

    def set_roster(self, conn: sqlite3.Connection, player_id: str, roster_id: str | None) -> None:
        conn.execute("UPDATE players SET roster_id = ? WHERE id = ?", (roster_id, player_id))

    def save_role_mastery(
        self, conn: sqlite3.Connection, player_id: str, role: HeroRole, mastery: Mastery
    ) -> None:
        conn.execute(
            "UPDATE role_masteries SET level = ?, experience = ? WHERE player_id = ? AND role = ?",
            (mastery.level, mastery.experience, player_id, role.value),
        )

    def save_hero_mastery(
        self, conn: sqlite3.Connection, player_id: str, hero_id: str, mastery: Mastery
    ) -> None:
        conn.execute(
            """INSERT INTO hero_masteries (player_id, hero_id, level, experience) VALUES (?, ?, ?, ?)
               ON CONFLICT(player_id, hero_id) DO UPDATE SET level = excluded.level, experience = excluded.experience""",
            (player_id, hero_id, mastery.level, mastery.experience),
        )

    def _hydrate(self, conn: sqlite3.Connection, row: sqlite3.Row) -> Player:
        pid = row["id"]
        role_rows = conn.execute(
            "SELECT role, level, experience FROM role_masteries WHERE player_id = ?", (pid,)
        ).fetchall()
        hero_rows = conn.execute(
            "SELECT hero_id, level, experience FROM hero_masteries WHERE player_id = ?", (pid,)
        ).fetchall()
        return Player(
            id=pid,
            nickname=row["nickname"],
            roster_id=row["roster_id"],
            traits={PlayerTrait(t) for t in json.loads(row["traits"] or "[]")},
            role_masteries={
                HeroRole(r["role"]): Mastery(level=r["level"], experience=r["experience"])
                for r in role_rows
            },
            hero_masteries={
                r["hero_id"]: Mastery(level=r["level"], experience=r["experience"])
                for r in hero_rows
            },
        )


# ---------- RosterRepository ----------


class RosterRepository:
    """Rosters and their vitals (cohesion, morale, energy) and activity."""

    def create(
        self,
        conn: sqlite3.Connection,
        owner_id: str,
        name: str,
        id: str | None = None,
        cohesion: Decimal = Decimal("0.00"),
        morale: Decimal = Decimal("5.00"),
        energy: int = 100,
    ) -> Roster:
        rid = id or str(uuid.uuid4())
        conn.execute(
            """INSERT INTO rosters (id, owner_id, name, cohesion, morale, energy, activity, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (rid, owner_id, name, str(cohesion), str(morale), energy,
             RosterActivity.IDLE.value, _iso(_utcnow())),
        )
        return Roster(id=rid, owner_id=owner_id, name=name, cohesion=cohesion, morale=morale, energy=energy)

    def get(self, conn: sqlite3.Connection, roster_id: str) -> Roster | None:
        row = conn.execute("SELECT * FROM rosters WHERE id = ?", (roster_id,)).fetchone()
        if row is None:
            return None
        return Roster(
            id=row["id"],
            owner_id=row["owner_id"],
            name=row["name"],
            cohesion=Decimal(row["cohesion"]),
            morale=Decimal(row["morale"]),
            energy=row["energy"],
            activity=RosterActivity(row["activity"]),
        )

    def list_all(self, conn: sqlite3.Connection) -> list[Roster]:
        rows = conn.execute("SELECT id FROM rosters ORDER BY created_at, id").fetchall()
        return [r for r in (self.get(conn, row["id"]) for row in rows) if r is not None]

    def update_vitals(self, conn: sqlite3.Connection, roster: Roster) -> None:
        conn.execute(
            "UPDATE rosters SET cohesion = ?, morale = ?, energy = ? WHERE id = ?",
            (str(roster.cohesion), str(roster.morale), roster.energy, roster.id),
        )

    def update_activity(self, conn: sqlite3.Connection, roster_id: str, activity: RosterActivity) -> None:
        conn.execute("UPDATE rosters SET activity = ? WHERE id = ?", (activity.value, roster_id))


# ---------- MatchRepository ----------


class MatchRepository:
    """Matches with JSON-encoded bans and pick intentions."""

    def create(
        self,
        conn: sqlite3.Connection,
        home_roster_id: str,
        away_roster_id: str,
        scheduled_time: datetime,
        event_id: str | None = None,
        id: str | None = None,
    ) -> Match:
        mid = id or str(uuid.uuid4())
        conn.execute(
            """INSERT INTO matches (id, event_id, home_roster_id, away_roster_id, status, scheduled_time, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (mid, event_id, home_roster_id, away_roster_id, MatchStatus.SCHEDULED.value,
             _iso(scheduled_time), _iso(_utcnow())),
        )
        return Match(
            id=mid,
            event_id=event_id,
            home_roster_id=home_roster_id,
            away_roster_id=away_roster_id,
            scheduled_time=_parse_datetime(_iso(scheduled_time)),
        )

    def get(self, conn: sqlite3.Connection, match_id: str) -> Match | None:
        row = conn.execute("SELECT * FROM matches WHERE id = ?", (match_id,)).fetchone()
        return _row_to_match(row) if row else None

    def list_by_event(self, conn: sqlite3.Connection, event_id: str) -> list[Match]:
        rows = conn.execute(
            "SELECT * FROM matches WHERE event_id = ? ORDER BY scheduled_time, rowid", (event_id,)
        ).fetchall()
        return [_row_to_match(r) for r in rows]

    def count_by_event(self, conn: sqlite3.Connection, event_id: str) -> int:
        return conn.execute("SELECT COUNT(*) FROM matches WHERE event_id = ?", (event_id,)).fetchone()[0]

    def list_due_ids(self, conn: sqlite3.Connection, now: datetime) -> list[str]:
        """Ids of SCHEDULED matches with scheduled_time <= now, oldest first."""
        rows = conn.execute(
            "SELECT id FROM matches WHERE status = ? AND scheduled_time <= ? ORDER BY scheduled_time, rowid",
            (MatchStatus.SCHEDULED.value, _iso(now)),
        ).fetchall()
        return [r["id"] for r in rows]

    def update_draft(self, conn: sqlite3.Connection, match: Match) -> None:
        conn.execute(
            "UPDATE matches SET home_bans = ?, away_bans = ?, home_picks = ?, away_picks = ? WHERE id = ?",
            (
                json.dumps(match.home_bans),
                json.dumps(match.away_bans),
                json.dumps([p.to_dict() for p in match.home_picks]),
                json.dumps([p.to_dict() for p in match.away_picks]),
                match.id,
            ),
        )

    def mark_completed(self, conn: sqlite3.Connection, match_id: str, played_at: datetime) -> None:
        conn.execute(
            "UPDATE matches SET status = ?, played_at = ? WHERE id = ?",
            (MatchStatus.COMPLETED.value, _iso(played_at), match_id),
        )


def _row_to_match(r: sqlite3.Row) -> Match:
    return Match(
        id=r["id"],
        event_id=r["event_id"],
        home_roster_id=r["home_roster_id"],
        away_roster_id=r["away_roster_id"],
        status=MatchStatus(r["status"]),
        scheduled_time=_parse_datetime(r["scheduled_time"]),
        played_at=_opt_datetime(r["played_at"]),
        home_bans=json.loads(r["home_bans"] or "[]"),
        away_bans=json.loads(r["away_bans"] or "[]"),
        home_picks=[MatchPick.from_dict(d) for d in json.loads(r["home_picks"] or "[]")],
        away_picks=[MatchPick.from_dict(d) for d in json.loads(r["away_picks"] or "[]")],
    )


# ---------- MatchResultRepository ----------


class MatchResultRepository:
    """Write-once result snapshots keyed by match id."""

    def save(self, conn: sqlite3.Connection, result: MatchResult) -> None:
        stats: dict[str, Any] = {pid: s.to_dict() for pid, s in result.player_stats.items()}
        conn.execute(
            """INSERT INTO match_results (match_id, winner_roster_id, home_total, away_total, win_probability_home,
               home_counter, home_synergy, away_counter, away_synergy, player_stats, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                result.match_id,
                result.winner_roster_id,
                str(result.home_total),
                str(result.away_total),
                str(result.win_probability_home),
                str(result.home_counter),
                str(result.home_synergy),
                str(result.away_counter),
                str(result.away_synergy),
                json.dumps(stats),
                _iso(result.created_at or _utcnow()),
            ),
        )

    def get(self, conn: sqlite3.Connection, match_id: str) -> MatchResult | None:
        r = conn.execute("SELECT * FROM match_results WHERE match_id = ?", (match_id,)).fetchone()
        if r is None:
            return None
        stats = {
            pid: PlayerStat(
                player_id=d["player_id"],
                hero_id=d["hero_id"],
                role=HeroRole(d["role"]),
                performance=Decimal(d["performance"]),
            )
            for pid, d in json.loads(r["player_stats"]).items()
        }
        return MatchResult(
            match_id=r["match_id"],
            winner_roster_id=r["winner_roster_id"],
            home_total=Decimal(r["home_total"]),
            away_total=Decimal(r["away_total"]),
            win_probability_home=Decimal(r["win_probability_home"]),
            player_stats=stats,
            home_counter=Decimal(r["home_counter"]),
            home_synergy=Decimal(r["home_synergy"]),
            away_counter=Decimal(r["away_counter"]),
            away_synergy=Decimal(r["away_synergy"]),
            created_at=_parse_datetime(r["created_at"]),
        )


# ---------- EventRepository ----------


class EventRepository:
    """Events, their league settings and registrations."""

    def create(
        self,
        conn: sqlite3.Connection,
        name: str,
        type: EventType,
        opens_at: datetime,
        starts_at: datetime,
        games_per_block: int = 1,
        minutes_between_games: int = 30,
        minutes_between_blocks: int = 120,
        max_players: int | None = None,
        id: str | None = None,
    ) -> Event:
        eid = id or str(uuid.uuid4())
        conn.execute(
            """INSERT INTO events (id, name, type, status, opens_at, starts_at, games_per_block,
               minutes_between_games, minutes_between_blocks, max_players, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (eid, name, type.value, EventStatus.CLOSED.value, _iso(opens_at), _iso(starts_at),
             games_per_block, minutes_between_games, minutes_between_blocks, max_players, _iso(_utcnow())),
        )
        return self.get(conn, eid)  # type: ignore[return-value]

    def get(self, conn: sqlite3.Connection, event_id: str) -> Event | None:
        r = conn.execute("SELECT * FROM events WHERE id = ?", (event_id,)).fetchone()
        return _row_to_event(r) if r else None

    def list_by_status(self, conn: sqlite3.Connection, status: EventStatus) -> list[Event]:
        rows = conn.execute(
            "SELECT * FROM events WHERE status = ? ORDER BY starts_at, rowid", (status.value,)
        ).fetchall()
        return [_row_to_event(r) for r in rows]

    def update_status(self, conn: sqlite3.Connection, event_id: str, status: EventStatus) -> None:
        conn.execute("UPDATE events SET status = ? WHERE id = ?", (status.value, event_id))

    def set_finishes_at(self, conn: sqlite3.Connection, event_id: str, finishes_at: datetime) -> None:
        conn.execute("UPDATE events SET finishes_at = ? WHERE id = ?", (_iso(finishes_at), event_id))

    # League settings

    def create_league(self, conn: sqlite3.Connection, event_id: str, round_robin_count: int) -> League:
        conn.execute(
            "INSERT INTO leagues (event_id, round_robin_count) VALUES (?, ?)",
            (event_id, round_robin_count),
        )
        return League(event_id=event_id, round_robin_count=round_robin_count)

    def get_league(self, conn: sqlite3.Connection, event_id: str) -> League | None:
        r = conn.execute(
            "SELECT event_id, round_robin_count FROM leagues WHERE event_id = ?", (event_id,)
        ).fetchone()
        if r is None:
            return None
        return League(event_id=r["event_id"], round_robin_count=r["round_robin_count"])

    # Registrations

    def add_registration(
        self, conn: sqlite3.Connection, event_id: str, roster_id: str, registered_at: datetime | None = None
    ) -> int:
        """Append roster to the event. Returns its 1-based registration order."""
        seq = self.count_registrations(conn, event_id) + 1
        conn.execute(
            "INSERT INTO event_registrations (event_id, roster_id, seq, registered_at) VALUES (?, ?, ?, ?)",
            (event_id, roster_id, seq, _iso(registered_at or _utcnow())),
        )
        return seq

    def list_registered_roster_ids(self, conn: sqlite3.Connection, event_id: str) -> list[str]:
        rows = conn.execute(
            "SELECT roster_id FROM event_registrations WHERE event_id = ? ORDER BY seq", (event_id,)
        ).fetchall()
        return [r["roster_id"] for r in rows]

    def count_registrations(self, conn: sqlite3.Connection, event_id: str) -> int:
        return conn.execute(
            "SELECT COUNT(*) FROM event_registrations WHERE event_id = ?", (event_id,)
        ).fetchone()[0]

    def is_registered(self, conn: sqlite3.Connection, event_id: str, roster_id: str) -> bool:
        row = conn.execute(
            "SELECT 1 FROM event_registrations WHERE event_id = ? AND roster_id = ?", (event_id, roster_id)
        ).fetchone()
        return row is not None


def _row_to_event(r: sqlite3.Row) -> Event:
    return Event(
        id=r["id"],
        name=r["name"],
        type=EventType(r["type"]),
        status=EventStatus(r["status"]),
        opens_at=_parse_datetime(r["opens_at"]),
        starts_at=_parse_datetime(r["starts_at"]),
        finishes_at=_opt_datetime(r["finishes_at"]),
        games_per_block=r["games_per_block"],
        minutes_between_games=r["minutes_between_games"],
        minutes_between_blocks=r["minutes_between_blocks"],
        max_players=r["max_players"],
    )


# ---------- LeagueStandingRepository ----------


class LeagueStandingRepository:
    """Standings rows per (league event, roster)."""

    def create(self, conn: sqlite3.Connection, standing: LeagueStanding) -> None:
        conn.execute(
            "INSERT INTO league_standings (event_id, roster_id, wins, losses, position) VALUES (?, ?, ?, ?, ?)",
            (standing.event_id, standing.roster_id, standing.wins, standing.losses, standing.position),
        )

    def get(self, conn: sqlite3.Connection, event_id: str, roster_id: str) -> LeagueStanding | None:
        r = conn.execute(
            "SELECT * FROM league_standings WHERE event_id = ? AND roster_id = ?", (event_id, roster_id)
        ).fetchone()
        return _row_to_standing(r) if r else None

    def list_by_event(self, conn: sqlite3.Connection, event_id: str) -> list[LeagueStanding]:
        rows = conn.execute(
            "SELECT * FROM league_standings WHERE event_id = ? ORDER BY position, roster_id", (event_id,)
        ).fetchall()
        return [_row_to_standing(r) for r in rows]

    def update(self, conn: sqlite3.Connection, standing: LeagueStanding) -> None:
        conn.execute(
            "UPDATE league_standings SET wins = ?, losses = ?, position = ? WHERE event_id = ? AND roster_id = ?",
            (standing.wins, standing.losses, standing.position, standing.event_id, standing.roster_id),
        )


def _row_to_standing(r: sqlite3.Row) -> LeagueStanding:
    return LeagueStanding(
        event_id=r["event_id"],
        roster_id=r["roster_id"],
        wins=r["wins"],
        losses=r["losses"],
        position=r["position"],
    )


# ---------- BootcampRepository ----------


class BootcampRepository:
    """Bootcamp sessions (one per roster) with per-player training configs."""

    def create(self, conn: sqlite3.Connection, session: BootcampSession) -> None:
        conn.execute(
            "INSERT INTO bootcamp_sessions (roster_id, started_at, last_tick_at) VALUES (?, ?, ?)",
            (session.roster_id, _iso(session.started_at), _iso(session.last_tick_at)),
        )
        conn.executemany(
            """INSERT INTO bootcamp_configs (roster_id, player_id, target_role, primary_hero_id, secondary_hero_ids)
               VALUES (?, ?, ?, ?, ?)""",
            [
                (session.roster_id, c.player_id, c.target_role.value, c.primary_hero_id,
                 json.dumps(list(c.secondary_hero_ids)))
                for c in session.configs
            ],
        )

    def get(self, conn: sqlite3.Connection, roster_id: str) -> BootcampSession | None:
        r = conn.execute("SELECT * FROM bootcamp_sessions WHERE roster_id = ?", (roster_id,)).fetchone()
        if r is None:
            return None
        rows = conn.execute(
            "SELECT * FROM bootcamp_configs WHERE roster_id = ? ORDER BY rowid", (roster_id,)
        ).fetchall()
        return BootcampSession(
            roster_id=r["roster_id"],
            started_at=_parse_datetime(r["started_at"]),
            last_tick_at=_parse_datetime(r["last_tick_at"]),
            configs=[
                TrainingConfig(
                    player_id=c["player_id"],
                    target_role=HeroRole(c["target_role"]),
                    primary_hero_id=c["primary_hero_id"],
                    secondary_hero_ids=tuple(json.loads(c["secondary_hero_ids"] or "[]")),
                )
                for c in rows
            ],
        )

    def list_due_roster_ids(self, conn: sqlite3.Connection, cutoff: datetime) -> list[str]:
        """Sessions whose last tick is at or before cutoff."""
        rows = conn.execute(
            "SELECT roster_id FROM bootcamp_sessions WHERE last_tick_at <= ? ORDER BY last_tick_at, roster_id",
            (_iso(cutoff),),
        ).fetchall()
        return [r["roster_id"] for r in rows]

    def update_last_tick(self, conn: sqlite3.Connection, roster_id: str, last_tick_at: datetime) -> None:
        conn.execute(
            "UPDATE bootcamp_sessions SET last_tick_at = ? WHERE roster_id = ?",
            (_iso(last_tick_at), roster_id),
        )

    def delete(self, conn: sqlite3.Connection, roster_id: str) -> None:
        conn.execute("DELETE FROM bootcamp_configs WHERE roster_id = ?", (roster_id,))
        conn.execute("DELETE FROM bootcamp_sessions WHERE roster_id = ?", (roster_id,))
