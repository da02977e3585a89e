"""FastAPI application that exposes the vibe timer as a JSON API."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict

from . import __version__
from .colors import PALETTE
from .config import TrackerSettings
from .errors import (
    DuplicateNameError,
    InvalidVibeError,
    NotFoundError,
    PersistenceError,
    ReadOnlyPeriodError,
    VibeError,
)
from .gateway import LedgerGateway, open_gateway
from .models import LedgerEntry
from .reporting import summarize
from .timeutils import Clock, date_key, format_duration, parse_date_key
from .tracker import VibeTracker

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: dict[type[VibeError], int] = {
    InvalidVibeError: 400,
    ReadOnlyPeriodError: 403,
    NotFoundError: 404,
    DuplicateNameError: 409,
    PersistenceError: 503,
}


class VibeCreate(BaseModel):
    name: str
    color: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class VibeUpdate(BaseModel):
    name: Optional[str] = None
    color: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


def create_app(
    *,
    settings: Optional[TrackerSettings] = None,
    gateway: Optional[LedgerGateway] = None,
    clock: Optional[Clock] = None,
) -> FastAPI:
    """Instantiate the FastAPI application."""
    resolved_settings = settings or TrackerSettings()
    resolved_gateway = gateway or open_gateway(resolved_settings)
    tracker = VibeTracker(resolved_gateway, clock=clock)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
        logger.info("Vibe timer API using %s storage", resolved_gateway.name)
        yield

    app = FastAPI(title="Vibe Timer", version=__version__, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.tracker = tracker
    app.state.settings = resolved_settings

    @app.exception_handler(VibeError)
    async def _vibe_error(request: Request, exc: VibeError) -> JSONResponse:
        status_code = _STATUS_BY_ERROR.get(type(exc), 400)
        if status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status_code,
            content={"detail": exc.message, "error": exc.kind},
        )

    @app.get("/api/status")
    def status(request: Request) -> Dict[str, Any]:
        current: VibeTracker = request.app.state.tracker
        running = current.running_vibe
        return {
            "backend": current.gateway.name,
            "storage": current.gateway.describe(),
            "today": current.today,
            "refresh_seconds": resolved_settings.refresh_interval.total_seconds(),
            "running": _entry_payload(running, current.now_ms()) if running else None,
        }

    @app.get("/api/vibes")
    def list_vibes(
        request: Request,
        date: Optional[str] = Query(
            default=None,
            description="Target date in YYYY-MM-DD format. Defaults to today.",
        ),
    ) -> Dict[str, Any]:
        current: VibeTracker = request.app.state.tracker
        day = _parse_date(date, current)
        now = current.now_ms()
        return {
            "date": day,
            "is_today": day == current.today,
            "vibes": [_entry_payload(entry, now) for entry in current.vibes_for(day)],
        }

    @app.post("/api/vibes", status_code=201)
    def create_vibe(
        payload: VibeCreate,
        request: Request,
        date: Optional[str] = Query(default=None),
    ) -> Dict[str, Any]:
        current: VibeTracker = request.app.state.tracker
        day = _parse_date(date, current)
        vibe = current.create_vibe(payload.name, payload.color, day=day)
        entry = current.resolve(vibe.id, day)
        return _entry_payload(entry, current.now_ms())

    @app.patch("/api/vibes/{vibe_id}")
    def update_vibe(
        vibe_id: str,
        payload: VibeUpdate,
        request: Request,
        date: Optional[str] = Query(default=None),
    ) -> Dict[str, Any]:
        current: VibeTracker = request.app.state.tracker
        updates = payload.model_dump(exclude_none=True)
        if not updates:
            raise HTTPException(status_code=400, detail="Nothing to update")
        entry = current.rename_or_recolor(
            vibe_id,
            updates.get("name"),
            updates.get("color"),
            day=_parse_date(date, current),
        )
        return _entry_payload(entry, current.now_ms())

    @app.delete("/api/vibes/{vibe_id}")
    def delete_vibe(
        vibe_id: str,
        request: Request,
        date: Optional[str] = Query(default=None),
    ) -> Dict[str, Any]:
        current: VibeTracker = request.app.state.tracker
        day = _parse_date(date, current)
        current.delete_vibe(vibe_id, day=day)
        return {"deleted": vibe_id, "date": day}

    @app.post("/api/vibes/{vibe_id}/start")
    def start_vibe(
        vibe_id: str,
        request: Request,
        date: Optional[str] = Query(default=None),
    ) -> Dict[str, Any]:
        current: VibeTracker = request.app.state.tracker
        entry = current.start(vibe_id, day=_parse_date(date, current))
        return _entry_payload(entry, current.now_ms())

    @app.post("/api/vibes/{vibe_id}/stop")
    def stop_vibe(
        vibe_id: str,
        request: Request,
        date: Optional[str] = Query(default=None),
    ) -> Dict[str, Any]:
        current: VibeTracker = request.app.state.tracker
        entry = current.stop(vibe_id, day=_parse_date(date, current))
        return _entry_payload(entry, current.now_ms())

    @app.post("/api/reset")
    def reset_all(
        request: Request,
        date: Optional[str] = Query(default=None),
    ) -> Dict[str, Any]:
        current: VibeTracker = request.app.state.tracker
        day = _parse_date(date, current)
        entries = current.reset_all(day)
        now = current.now_ms()
        return {"date": day, "vibes": [_entry_payload(entry, now) for entry in entries]}

    @app.get("/api/running")
    def running(request: Request) -> Dict[str, Any]:
        current: VibeTracker = request.app.state.tracker
        entry = current.running_vibe
        return {"running": _entry_payload(entry, current.now_ms()) if entry else None}

    @app.get("/api/summary")
    def summary(
        request: Request,
        date: Optional[str] = Query(
            default=None,
            description="Target date in YYYY-MM-DD format. Defaults to today.",
        ),
        order: str = Query(default="desc", pattern="^(asc|desc)$"),
    ) -> Dict[str, Any]:
        current: VibeTracker = request.app.state.tracker
        day = _parse_date(date, current)
        result = summarize(
            day, current.vibes_for(day), current.now_ms(), ascending=order == "asc"
        )
        return {
            "date": result.date,
            "total_seconds": result.total_seconds,
            "total_formatted": format_duration(result.total_seconds),
            "entries": [
                {
                    "id": share.vibe_id,
                    "name": share.name,
                    "color": share.color,
                    "seconds": share.seconds,
                    "formatted": format_duration(share.seconds),
                    "percentage": round(share.percentage, 1),
                    "is_running": share.is_running,
                }
                for share in result.shares
            ],
        }

    @app.get("/api/dates")
    def dates(request: Request) -> Dict[str, Any]:
        current: VibeTracker = request.app.state.tracker
        return {"dates": current.ledger.dates()}

    @app.get("/api/palette")
    def palette() -> Dict[str, Any]:
        return {"colors": [{"name": name, "hex": hex_value} for name, hex_value in PALETTE]}

    return app


def _parse_date(value: Optional[str], tracker: VibeTracker) -> str:
    if not value:
        return tracker.today
    try:
        return date_key(parse_date_key(value))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid date format") from exc


def _entry_payload(entry: LedgerEntry, now: int) -> Dict[str, Any]:
    session = entry.session_seconds(now)
    return {
        "id": entry.vibe_id,
        "date": entry.date,
        "name": entry.name,
        "color": entry.color,
        "total_time": entry.total_time,
        "session_time": session,
        "display_time": format_duration(entry.total_time + session),
        "is_running": entry.is_running,
        "start_time": entry.start_time,
    }
