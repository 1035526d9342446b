"""
Service layer: league calendar, match engine orchestration, post-match progression,
draft editing, event lifecycle and bootcamp ticks.
Each public mutating operation opens one transaction; helpers run inside the caller's.
"""
from .scheduling import assign_schedule_times, generate_league_schedule, round_robin_pairings
from .league_service import LeagueService
from .post_match import PostMatchProcessor
from .simulation_service import MatchEngineService
from .match_service import MatchService
from .event_service import EventService
from .bootcamp_service import BootcampService

__all__ = [
    "assign_schedule_times",
    "generate_league_schedule",
    "round_robin_pairings",
    "LeagueService",
    "PostMatchProcessor",
    "MatchEngineService",
    "MatchService",
    "EventService",
    "BootcampService",
]
