"""
Persistence layer for competition data.
No business logic, no simulation: only read/write interfaces and the transaction scope.
"""
from .db import get_connection, get_db_path, init_db, set_db_path, transaction
from .repositories import (
    BootcampRepository,
    EventRepository,
    HeroRepository,
    LeagueStandingRepository,
    MatchRepository,
    MatchResultRepository,
    PlayerRepository,
    RosterRepository,
)

__all__ = [
    "get_connection",
    "get_db_path",
    "init_db",
    "set_db_path",
    "transaction",
    "BootcampRepository",
    "EventRepository",
    "HeroRepository",
    "LeagueStandingRepository",
    "MatchRepository",
    "MatchResultRepository",
    "PlayerRepository",
    "RosterRepository",
]
