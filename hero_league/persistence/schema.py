"""
SQLite schema for competition entities.
Migration-friendly: each table created with IF NOT EXISTS.
Decimals are stored as TEXT, datetimes as ISO-8601 UTC strings, lists as JSON.
"""
from __future__ import annotations


def heroes_schema() -> str:
    """Hero catalog. name is unique so seeding can upsert by name."""
    return """
    CREATE TABLE IF NOT EXISTS heroes (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        primary_role TEXT NOT NULL,
        primary_tier TEXT NOT NULL,
        secondary_role TEXT,
        secondary_tier TEXT,
        archetype TEXT NOT NULL
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ix_heroes_name ON heroes(name);
    """


def rosters_schema() -> str:
    """activity: IDLE | BOOTCAMP | IN_EVENT."""
    return """
    CREATE TABLE IF NOT EXISTS rosters (
        id TEXT PRIMARY KEY,
        owner_id TEXT NOT NULL,
        name TEXT NOT NULL,
        cohesion TEXT NOT NULL DEFAULT '0.00',
        morale TEXT NOT NULL DEFAULT '5.00',
        energy INTEGER NOT NULL DEFAULT 100,
        activity TEXT NOT NULL DEFAULT 'IDLE',
        created_at TEXT NOT NULL
    );
    CREATE INDEX IF NOT EXISTS ix_rosters_owner ON rosters(owner_id);
    """


def players_schema() -> str:
    """traits: JSON array of trait names."""
    return """
    CREATE TABLE IF NOT EXISTS players (
        id TEXT PRIMARY KEY,
        nickname TEXT NOT NULL,
        roster_id TEXT,
        traits TEXT NOT NULL DEFAULT '[]',
        created_at TEXT NOT NULL,
        FOREIGN KEY (roster_id) REFERENCES rosters(id)
    );
    CREATE INDEX IF NOT EXISTS ix_players_roster ON players(roster_id);
    """


def role_masteries_schema() -> str:
    """One row per (player, role), created with the player."""
    return """
    CREATE TABLE IF NOT EXISTS role_masteries (
        player_id TEXT NOT NULL,
        role TEXT NOT NULL,
        level INTEGER NOT NULL DEFAULT 1,
        experience INTEGER NOT NULL DEFAULT 0,
        PRIMARY KEY (player_id, role),
        FOREIGN KEY (player_id) REFERENCES players(id)
    );
    """


def hero_masteries_schema() -> str:
    """Created lazily on first experience gain. Missing row reads as level 1."""
    return """
    CREATE TABLE IF NOT EXISTS hero_masteries (
        player_id TEXT NOT NULL,
        hero_id TEXT NOT NULL,
        level INTEGER NOT NULL DEFAULT 1,
        experience INTEGER NOT NULL DEFAULT 0,
        PRIMARY KEY (player_id, hero_id),
        FOREIGN KEY (player_id) REFERENCES players(id),
        FOREIGN KEY (hero_id) REFERENCES heroes(id)
    );
    """


def events_schema() -> str:
    """status: CLOSED | OPEN | ONGOING | FINISHED | CANCELLED."""
    return """
    CREATE TABLE IF NOT EXISTS events (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        type TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'CLOSED',
        opens_at TEXT NOT NULL,
        starts_at TEXT NOT NULL,
        finishes_at TEXT,
        games_per_block INTEGER NOT NULL DEFAULT 1,
        minutes_between_games INTEGER NOT NULL DEFAULT 30,
        minutes_between_blocks INTEGER NOT NULL DEFAULT 120,
        max_players INTEGER,
        created_at TEXT NOT NULL
    );
    CREATE INDEX IF NOT EXISTS ix_events_status ON events(status);
    """


def leagues_schema() -> str:
    """League settings, one row per LEAGUE event."""
    return """
    CREATE TABLE IF NOT EXISTS leagues (
        event_id TEXT PRIMARY KEY,
        round_robin_count INTEGER NOT NULL DEFAULT 1,
        FOREIGN KEY (event_id) REFERENCES events(id)
    );
    """


def event_registrations_schema() -> str:
    """seq keeps registration order (drives the schedule and initial positions)."""
    return """
    CREATE TABLE IF NOT EXISTS event_registrations (
        event_id TEXT NOT NULL,
        roster_id TEXT NOT NULL,
        seq INTEGER NOT NULL,
        registered_at TEXT NOT NULL,
        PRIMARY KEY (event_id, roster_id),
        FOREIGN KEY (event_id) REFERENCES events(id),
        FOREIGN KEY (roster_id) REFERENCES rosters(id)
    );
    CREATE INDEX IF NOT EXISTS ix_event_registrations_event ON event_registrations(event_id, seq);
    """


def league_standings_schema() -> str:
    return """
    CREATE TABLE IF NOT EXISTS league_standings (
        event_id TEXT NOT NULL,
        roster_id TEXT NOT NULL,
        wins INTEGER NOT NULL DEFAULT 0,
        losses INTEGER NOT NULL DEFAULT 0,
        position INTEGER NOT NULL,
        PRIMARY KEY (event_id, roster_id),
        FOREIGN KEY (event_id) REFERENCES events(id),
        FOREIGN KEY (roster_id) REFERENCES rosters(id)
    );
    """


def matches_schema() -> str:
    """bans: JSON array of hero ids. picks: JSON array of pick intentions."""
    return """
    CREATE TABLE IF NOT EXISTS matches (
        id TEXT PRIMARY KEY,
        event_id TEXT,
        home_roster_id TEXT NOT NULL,
        away_roster_id TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'SCHEDULED',
        scheduled_time TEXT NOT NULL,
        played_at TEXT,
        home_bans TEXT NOT NULL DEFAULT '[]',
        away_bans TEXT NOT NULL DEFAULT '[]',
        home_picks TEXT NOT NULL DEFAULT '[]',
        away_picks TEXT NOT NULL DEFAULT '[]',
        created_at TEXT NOT NULL,
        FOREIGN KEY (event_id) REFERENCES events(id),
        FOREIGN KEY (home_roster_id) REFERENCES rosters(id),
        FOREIGN KEY (away_roster_id) REFERENCES rosters(id)
    );
    CREATE INDEX IF NOT EXISTS ix_matches_event ON matches(event_id);
    CREATE INDEX IF NOT EXISTS ix_matches_status_time ON matches(status, scheduled_time);
    """


def match_results_schema() -> str:
    """Immutable snapshot per match. player_stats: JSON object keyed by player id."""
    return """
    CREATE TABLE IF NOT EXISTS match_results (
        match_id TEXT PRIMARY KEY,
        winner_roster_id TEXT NOT NULL,
        home_total TEXT NOT NULL,
        away_total TEXT NOT NULL,
        win_probability_home TEXT NOT NULL,
        home_counter TEXT NOT NULL,
        home_synergy TEXT NOT NULL,
        away_counter TEXT NOT NULL,
        away_synergy TEXT NOT NULL,
        player_stats TEXT NOT NULL,
        created_at TEXT NOT NULL,
        FOREIGN KEY (match_id) REFERENCES matches(id)
    );
    """


def bootcamp_schema() -> str:
    """One session per roster plus one training config per player."""
    return """
    CREATE TABLE IF NOT EXISTS bootcamp_sessions (
        roster_id TEXT PRIMARY KEY,
        started_at TEXT NOT NULL,
        last_tick_at TEXT NOT NULL,
        FOREIGN KEY (roster_id) REFERENCES rosters(id)
    );
    CREATE TABLE IF NOT EXISTS bootcamp_configs (
        roster_id TEXT NOT NULL,
        player_id TEXT NOT NULL,
        target_role TEXT NOT NULL,
        primary_hero_id TEXT,
        secondary_hero_ids TEXT NOT NULL DEFAULT '[]',
        PRIMARY KEY (roster_id, player_id),
        FOREIGN KEY (roster_id) REFERENCES bootcamp_sessions(roster_id),
        FOREIGN KEY (player_id) REFERENCES players(id)
    );
    """


def all_schema_sql() -> str:
    """Combine all schema DDL for a single execution. Referenced tables come first."""
    return "\n".join([
        heroes_schema(),
        rosters_schema(),
        players_schema(),
        role_masteries_schema(),
        hero_masteries_schema(),
        events_schema(),
        leagues_schema(),
        event_registrations_schema(),
        league_standings_schema(),
        matches_schema(),
        match_results_schema(),
        bootcamp_schema(),
    ])
