"""
Database connection, initialization and transaction scope.
"""
from __future__ import annotations

import logging
import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from .schema import all_schema_sql

logger = logging.getLogger(__name__)

DB_PATH_ENV = "HERO_LEAGUE_DB_PATH"


# Default DB path (project root / data / hero_league.db), env var wins
def _default_db_path() -> Path:
    env = os.environ.get(DB_PATH_ENV)
    if env:
        return Path(env)
    return Path(__file__).resolve().parent.parent.parent / "data" / "hero_league.db"


_db_path: Path | None = None


def set_db_path(path: str | Path) -> None:
    """Set the database path. Call before first get_connection if not using default."""
    global _db_path
    _db_path = Path(path)


def get_db_path() -> Path:
    """Return the current database path."""
    if _db_path is not None:
        return _db_path
    return _default_db_path()


def get_connection(db_path: str | Path | None = None) -> sqlite3.Connection:
    """
    Return a new SQLite connection.
    Use as context manager or ensure close() is called.
    """
    path = Path(db_path) if db_path else get_db_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """
    Unit of work: commit when the block exits normally, roll back on any exception.
    Repositories never commit; services open exactly one of these per invocation.
    """
    try:
        yield conn
    except BaseException:
        conn.rollback()
        raise
    else:
        conn.commit()


def init_db(db_path: str | Path | None = None, seed_heroes: bool = False) -> None:
    """
    Create or ensure all tables exist.
    If seed_heroes is True, also upsert the default hero catalog (uses hero_league.hero_catalog).
    """
    path = Path(db_path) if db_path else get_db_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    try:
        conn.executescript(all_schema_sql())
        conn.commit()
        if seed_heroes:
            from hero_league.hero_catalog import seed_heroes as _seed
            with transaction(conn):
                _seed(conn)
        logger.info("Database ready at %s", path)
    finally:
        conn.close()
