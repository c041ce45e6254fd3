"""HTTP API for the room booking engine.

The external auth layer authenticates the caller and forwards the user id in
the ``X-User-Id`` header (configurable through ``api.user_header``). Requests
without it are treated as guests: they may search but not book.
"""

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from room_concierge.config import ServerConfig, load_config
from room_concierge.db import DatabaseInterface
from room_concierge.engine.database import create_database
from room_concierge.services import BookingService

logger = logging.getLogger(__name__)

STATUS_CODES = {
    "not_found": status.HTTP_404_NOT_FOUND,
    "unauthorized": status.HTTP_403_FORBIDDEN,
    "invalid": status.HTTP_400_BAD_REQUEST,
    "conflict": status.HTTP_409_CONFLICT,
    "failed": status.HTTP_409_CONFLICT,
    "store_error": status.HTTP_503_SERVICE_UNAVAILABLE,
    "retryable": status.HTTP_503_SERVICE_UNAVAILABLE,
}


class EngineState:
    def __init__(self):
        self.config: Optional[ServerConfig] = None
        self.config_path: Optional[str] = os.environ.get("ROOM_CONCIERGE_CONFIG")
        self.database: Optional[DatabaseInterface] = None
        self.service: Optional[BookingService] = None
        self.running = False


state = EngineState()


# Request models
class ResolveRequest(BaseModel):
    start: str
    duration_minutes: Optional[int] = None
    min_capacity: Optional[int] = None
    max_capacity: Optional[int] = None
    equipment: Optional[list[str]] = None
    location: Optional[str] = None
    name: Optional[str] = None
    exclude_room_ids: Optional[list[int]] = None


class BookingRequest(BaseModel):
    start: str
    duration_minutes: Optional[int] = None
    room_id: Optional[int] = None
    room_name: Optional[str] = None
    title: Optional[str] = None


class MeetingUpdateRequest(BaseModel):
    start: Optional[str] = None
    end: Optional[str] = None
    duration_minutes: Optional[int] = None
    room_id: Optional[int] = None
    room_name: Optional[str] = None
    title: Optional[str] = None


class RecurringRequest(BaseModel):
    start: str
    pattern: str  # "daily", "weekly", "biweekly", "monthly"
    occurrences: int = Field(ge=1)
    duration_minutes: Optional[int] = None
    room_id: Optional[int] = None
    room_name: Optional[str] = None
    title: Optional[str] = None


class TeamSlotsRequest(BaseModel):
    date_from: str
    date_to: Optional[str] = None
    organization: Optional[str] = None
    user_ids: Optional[list[int]] = None
    duration_minutes: Optional[int] = None
    min_availability_percent: Optional[float] = None
    equipment: Optional[list[str]] = None
    team_size: Optional[int] = None


async def start_engine() -> None:
    state.config = load_config(state.config_path)
    state.database = create_database(state.config.database)
    await state.database.initialize()
    state.service = BookingService(state.database, state.config)
    logger.info(f"Database initialized: {type(state.database).__name__}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting room-concierge engine...")
    if state.service is None:
        await start_engine()
    state.running = True

    yield

    logger.info("Shutting down room-concierge engine...")
    state.running = False
    if state.database:
        await state.database.close()


app = FastAPI(title="Room Concierge Engine", lifespan=lifespan)


def _service() -> BookingService:
    if not state.service:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Engine not ready",
        )
    return state.service


def _user_id(request: Request) -> Optional[int]:
    header = state.config.api.user_header if state.config else "X-User-Id"
    raw = request.headers.get(header)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {header} header",
        )


def _respond(payload: dict[str, Any], success_code: int = status.HTTP_200_OK) -> JSONResponse:
    code = STATUS_CODES.get(payload.get("status", ""), success_code)
    return JSONResponse(status_code=code, content=payload)


# ============================================================================
# Status endpoints
# ============================================================================


@app.get("/health")
async def health():
    return {
        "service": "room-concierge",
        "health": "healthy" if state.running else "stopped",
    }


# ============================================================================
# Room endpoints
# ============================================================================


@app.get("/api/rooms")
async def list_rooms(
    min_capacity: Optional[int] = None,
    max_capacity: Optional[int] = None,
    equipment: Optional[list[str]] = Query(default=None),
    location: Optional[str] = None,
    name: Optional[str] = None,
):
    payload = await _service().search_rooms(
        min_capacity, max_capacity, equipment, location, name
    )
    return _respond(payload)


@app.post("/api/rooms/resolve")
async def resolve_room(req: ResolveRequest):
    payload = await _service().resolve_room(
        req.start,
        req.duration_minutes,
        req.min_capacity,
        req.max_capacity,
        req.equipment,
        req.location,
        req.name,
        req.exclude_room_ids,
    )
    return _respond(payload)


@app.get("/api/rooms/instant")
async def instant_rooms(
    duration_minutes: Optional[int] = None,
    min_capacity: Optional[int] = None,
    equipment: Optional[list[str]] = Query(default=None),
    location: Optional[str] = None,
):
    payload = await _service().find_instant_room(
        duration_minutes, min_capacity, equipment, location
    )
    return _respond(payload)


@app.get("/api/rooms/{room_id}/availability")
async def room_availability(
    room_id: int, start: str, duration_minutes: Optional[int] = None
):
    payload = await _service().check_room(start, duration_minutes, room_id=room_id)
    return _respond(payload)


# ============================================================================
# Meeting endpoints
# ============================================================================


@app.get("/api/meetings")
async def list_meetings(request: Request, upcoming_only: bool = True):
    payload = await _service().list_meetings(_user_id(request), upcoming_only)
    return _respond(payload)


@app.post("/api/meetings")
async def create_meeting(request: Request, req: BookingRequest):
    payload = await _service().book_room(
        _user_id(request),
        req.start,
        req.duration_minutes,
        req.room_id,
        req.room_name,
        req.title,
    )
    return _respond(payload, status.HTTP_201_CREATED)


@app.post("/api/meetings/recurring")
async def create_recurring(request: Request, req: RecurringRequest):
    payload = await _service().book_recurring(
        _user_id(request),
        req.start,
        req.pattern,
        req.occurrences,
        req.duration_minutes,
        req.room_id,
        req.room_name,
        req.title,
    )
    return _respond(payload, status.HTTP_201_CREATED)


@app.patch("/api/meetings/{meeting_id}")
async def update_meeting(request: Request, meeting_id: int, req: MeetingUpdateRequest):
    payload = await _service().update_meeting(
        _user_id(request),
        meeting_id,
        req.start,
        req.end,
        req.duration_minutes,
        req.room_id,
        req.room_name,
        req.title,
    )
    return _respond(payload)


@app.delete("/api/meetings/{meeting_id}")
async def delete_meeting(request: Request, meeting_id: int):
    payload = await _service().cancel_meeting(_user_id(request), meeting_id)
    return _respond(payload)


# ============================================================================
# Team endpoints
# ============================================================================


@app.post("/api/team/slots")
async def team_slots(req: TeamSlotsRequest):
    payload = await _service().find_team_slots(
        req.date_from,
        req.date_to,
        req.organization,
        req.user_ids,
        req.duration_minutes,
        req.min_availability_percent,
        req.equipment,
        req.team_size,
    )
    return _respond(payload)


async def init_db(config: ServerConfig) -> None:
    database = create_database(config.database)
    await database.initialize()
    await database.close()
    logger.info("Schema created")


def run_engine():
    import argparse

    parser = argparse.ArgumentParser(description="Room Concierge Engine API")
    parser.add_argument("--config", type=str, default=None, help="Path to config.yaml")
    parser.add_argument(
        "--host", type=str, default=None, help="TCP host to bind to (e.g., 127.0.0.1)"
    )
    parser.add_argument(
        "--port", type=int, default=None, help="TCP port to bind to (e.g., 8080)"
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--init-db", action="store_true", help="Create the database schema and exit"
    )
    args = parser.parse_args()

    if args.debug:
        logging.getLogger("room_concierge").setLevel(logging.DEBUG)

    if args.config:
        state.config_path = args.config
    config = load_config(state.config_path)

    if args.init_db:
        asyncio.run(init_db(config))
        return

    host = args.host or config.api.host
    port = args.port or config.api.port
    logger.info(f"Starting Engine API on TCP {host}:{port}")
    server = uvicorn.Server(
        uvicorn.Config(
            app,
            host=host,
            port=port,
            log_level="debug" if args.debug else "info",
        )
    )
    server.run()
