"""
REST API for the hero league engine.
Thin wrappers around services and persistence; engine errors map to HTTP status codes.
"""
from __future__ import annotations

from contextlib import asynccontextmanager, contextmanager
from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Generator

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from hero_league.errors import (
    DataIntegrityError,
    EngineError,
    NotFoundError,
    PreconditionError,
    ValidationError,
)
from hero_league.hero_catalog import seed_heroes
from hero_league.models import EventType, HeroRole, MatchPick, PlayerTrait, TrainingConfig
from hero_league.persistence import (
    HeroRepository,
    PlayerRepository,
    RosterRepository,
    get_connection,
    get_db_path,
    init_db,
    transaction,
)
from hero_league.services import (
    BootcampService,
    EventService,
    LeagueService,
    MatchEngineService,
    MatchService,
)
from hero_league.simulation.rng import SeededRNG


@contextmanager
def db_conn() -> Generator:
    """Yield a DB connection, ensure close on exit."""
    conn = get_connection()
    try:
        yield conn
    finally:
        conn.close()


# ---------- Startup: ensure DB and hero catalog ----------
def _ensure_db() -> None:
    init_db(db_path=get_db_path())
    with db_conn() as conn, transaction(conn):
        seed_heroes(conn)


# ---------- Lifespan ----------
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    _ensure_db()
    yield


# ---------- FastAPI app ----------
app = FastAPI(
    title="Hero League API",
    description="Match simulation and competition engine",
    version="0.1.0",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _http_error(exc: EngineError) -> HTTPException:
    """NotFound 404, other preconditions 409, bad input 400, broken invariants 500."""
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, PreconditionError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, DataIntegrityError):
        return HTTPException(status_code=500, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


def _utc(dt: datetime | None) -> datetime:
    """Naive datetimes are taken as UTC; None means now."""
    if dt is None:
        return datetime.now(timezone.utc)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


# ---------- Request models ----------


class PlayerIn(BaseModel):
    nickname: str = Field(..., min_length=1, max_length=100)
    traits: list[PlayerTrait] = Field(default_factory=list)


class CreateRosterRequest(BaseModel):
    owner_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    players: list[PlayerIn] = Field(default_factory=list, max_length=10)


class CreateMatchRequest(BaseModel):
    home_roster_id: str
    away_roster_id: str
    scheduled_time: datetime
    event_id: str | None = None


class PickIn(BaseModel):
    player_id: str
    role: HeroRole
    preferred_hero_ids: list[str] = Field(default_factory=list, max_length=3)
    pick_order: int

    def to_pick(self) -> MatchPick:
        return MatchPick(
            player_id=self.player_id,
            role=self.role,
            preferred_hero_ids=tuple(self.preferred_hero_ids),
            pick_order=self.pick_order,
        )


class UpdateDraftRequest(BaseModel):
    roster_id: str
    bans: list[str] | None = None
    picks: list[PickIn] | None = None


class SimulateRequest(BaseModel):
    seed: int | None = None


class CreateEventRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    type: EventType
    opens_at: datetime
    starts_at: datetime
    games_per_block: int = 1
    minutes_between_games: int = 30
    minutes_between_blocks: int = 120
    max_players: int | None = None
    round_robin_count: int | None = None


class RegisterRosterRequest(BaseModel):
    roster_id: str


class TrainingConfigIn(BaseModel):
    player_id: str
    target_role: HeroRole
    primary_hero_id: str | None = None
    secondary_hero_ids: list[str] = Field(default_factory=list)

    def to_config(self) -> TrainingConfig:
        return TrainingConfig(
            player_id=self.player_id,
            target_role=self.target_role,
            primary_hero_id=self.primary_hero_id,
            secondary_hero_ids=tuple(self.secondary_hero_ids),
        )


class StartBootcampRequest(BaseModel):
    configs: list[TrainingConfigIn]


class TickRequest(BaseModel):
    now: datetime | None = None
    seed: int | None = None


# ---------- Heroes ----------


@app.get("/heroes")
def list_heroes() -> dict[str, Any]:
    """Hero catalog in catalog order (by name)."""
    with db_conn() as conn:
        return {"heroes": [h.to_dict() for h in HeroRepository().list_all(conn)]}


# ---------- Rosters ----------


@app.post("/rosters")
def create_roster(req: CreateRosterRequest) -> dict[str, Any]:
    """Create a roster and its players (each with one level-1 mastery per role)."""
    with db_conn() as conn:
        roster_repo = RosterRepository()
        player_repo = PlayerRepository()
        with transaction(conn):
            roster = roster_repo.create(conn, owner_id=req.owner_id, name=req.name)
            players = [
                player_repo.create(conn, p.nickname, roster_id=roster.id, traits=set(p.traits))
                for p in req.players
            ]
        return {**roster.to_dict(), "players": [p.to_dict() for p in players]}


@app.get("/rosters/{roster_id}")
def get_roster(roster_id: str) -> dict[str, Any]:
    with db_conn() as conn:
        roster = RosterRepository().get(conn, roster_id)
        if roster is None:
            raise HTTPException(status_code=404, detail="Roster not found")
        players = PlayerRepository().list_by_roster(conn, roster_id)
        return {**roster.to_dict(), "players": [p.to_dict() for p in players]}


# ---------- Matches ----------


@app.post("/matches")
def create_match(req: CreateMatchRequest) -> dict[str, Any]:
    with db_conn() as conn:
        try:
            match = MatchService().create_match(
                conn, req.home_roster_id, req.away_roster_id, _utc(req.scheduled_time), req.event_id
            )
        except EngineError as e:
            raise _http_error(e)
        return match.to_dict()


@app.get("/matches/{match_id}")
def get_match(match_id: str) -> dict[str, Any]:
    with db_conn() as conn:
        try:
            return MatchService().get_match(conn, match_id).to_dict()
        except EngineError as e:
            raise _http_error(e)


@app.put("/matches/{match_id}/draft")
def update_draft(match_id: str, req: UpdateDraftRequest) -> dict[str, Any]:
    """Replace the side's bans and merge pick intentions. Only while the match is scheduled."""
    with db_conn() as conn:
        try:
            match = MatchService().update_draft(
                conn,
                match_id,
                req.roster_id,
                bans=req.bans,
                picks=[p.to_pick() for p in req.picks] if req.picks is not None else None,
            )
        except EngineError as e:
            raise _http_error(e)
        return match.to_dict()


@app.post("/matches/{match_id}/simulate")
def simulate_match(match_id: str, req: SimulateRequest | None = None) -> dict[str, Any]:
    """Admin trigger. Deterministic when seed is given. No-op for a match that is no longer scheduled."""
    rng = SeededRNG(req.seed if req else None)
    with db_conn() as conn:
        try:
            result = MatchEngineService().simulate_match(conn, match_id, rng=rng)
        except EngineError as e:
            raise _http_error(e)
        if result is None:
            return {"match_id": match_id, "simulated": False}
        return {"match_id": match_id, "simulated": True, "result": result.to_dict()}


@app.get("/matches/{match_id}/result")
def get_match_result(match_id: str) -> dict[str, Any]:
    with db_conn() as conn:
        try:
            return MatchService().get_result(conn, match_id).to_dict()
        except EngineError as e:
            raise _http_error(e)


# ---------- Events / leagues ----------


@app.post("/events")
def create_event(req: CreateEventRequest) -> dict[str, Any]:
    with db_conn() as conn:
        svc = EventService()
        try:
            event = svc.create_event(
                conn,
                name=req.name,
                type=req.type,
                opens_at=_utc(req.opens_at),
                starts_at=_utc(req.starts_at),
                games_per_block=req.games_per_block,
                minutes_between_games=req.minutes_between_games,
                minutes_between_blocks=req.minutes_between_blocks,
                max_players=req.max_players,
                round_robin_count=req.round_robin_count,
            )
        except EngineError as e:
            raise _http_error(e)
        return svc.to_summary(conn, event)


@app.get("/events/{event_id}")
def get_event(event_id: str) -> dict[str, Any]:
    with db_conn() as conn:
        svc = EventService()
        try:
            return svc.to_summary(conn, svc.get_event(conn, event_id))
        except EngineError as e:
            raise _http_error(e)


@app.post("/events/{event_id}/register")
def register_roster(event_id: str, req: RegisterRosterRequest) -> dict[str, Any]:
    with db_conn() as conn:
        try:
            seq = EventService().register_roster(conn, event_id, req.roster_id)
        except EngineError as e:
            raise _http_error(e)
        return {"event_id": event_id, "roster_id": req.roster_id, "registration_order": seq}


@app.post("/events/{event_id}/league/generate")
def generate_league(event_id: str) -> dict[str, Any]:
    """Admin trigger: generate the round-robin season for a league event."""
    with db_conn() as conn:
        try:
            matches = LeagueService().generate_full_season(conn, event_id)
        except EngineError as e:
            raise _http_error(e)
        return {"event_id": event_id, "matches": [m.to_dict() for m in matches]}


@app.get("/events/{event_id}/standings")
def get_standings(event_id: str) -> dict[str, Any]:
    with db_conn() as conn:
        try:
            EventService().get_event(conn, event_id)
        except EngineError as e:
            raise _http_error(e)
        rows = LeagueService().standings(conn, event_id)
        return {"event_id": event_id, "standings": [s.to_dict() for s in rows]}


# ---------- Bootcamp ----------


@app.post("/rosters/{roster_id}/bootcamp")
def start_bootcamp(roster_id: str, req: StartBootcampRequest) -> dict[str, Any]:
    with db_conn() as conn:
        try:
            session = BootcampService().start_bootcamp(
                conn, roster_id, [c.to_config() for c in req.configs], datetime.now(timezone.utc)
            )
        except EngineError as e:
            raise _http_error(e)
        return {"roster_id": roster_id, "started_at": session.started_at.isoformat()}


@app.delete("/rosters/{roster_id}/bootcamp")
def stop_bootcamp(roster_id: str) -> dict[str, Any]:
    with db_conn() as conn:
        try:
            BootcampService().stop_bootcamp(conn, roster_id)
        except EngineError as e:
            raise _http_error(e)
        return {"roster_id": roster_id, "stopped": True}


# ---------- Ticks (normally driven by a scheduler) ----------


@app.post("/ticks/lifecycle")
def lifecycle_tick(req: TickRequest | None = None) -> dict[str, Any]:
    with db_conn() as conn:
        return EventService().process_lifecycle_tick(conn, _utc(req.now if req else None))


@app.post("/ticks/due-matches")
def due_matches_tick(req: TickRequest | None = None) -> dict[str, Any]:
    rng = SeededRNG(req.seed if req else None)
    with db_conn() as conn:
        completed = MatchEngineService().simulate_due_matches(conn, _utc(req.now if req else None), rng=rng)
        return {"completed": completed}


@app.post("/ticks/bootcamp")
def bootcamp_tick(req: TickRequest | None = None) -> dict[str, Any]:
    with db_conn() as conn:
        try:
            return BootcampService().process_bootcamp_ticks(conn, _utc(req.now if req else None))
        except EngineError as e:
            raise _http_error(e)


# ---------- Run with: uvicorn hero_league.api:app --reload ----------
