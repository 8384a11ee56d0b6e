"""FastAPI application exposing the interactive workspace as a local API."""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict

from .config import AppSettings
from .errors import IoFailure, NotFound, WorkTimerError
from .history import History
from .models import ActiveSession, DayData, TimePoint, WorkRecord
from .storage import Storage
from .timer import StopResult
from .workspace import Workspace

logger = logging.getLogger(__name__)

_STATUS_CODES: dict[type[WorkTimerError], int] = {
    NotFound: 404,
    IoFailure: 503,
}


class RecordCreate(BaseModel):
    name: str
    start: Optional[str] = None
    end: Optional[str] = None
    description: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class RecordUpdate(BaseModel):
    name: Optional[str] = None
    start: Optional[str] = None
    end: Optional[str] = None
    description: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class NavigatePayload(BaseModel):
    date: Optional[str] = None
    offset: Optional[int] = None

    model_config = ConfigDict(extra="forbid")


class TimerStartPayload(BaseModel):
    task_name: str
    description: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


def create_app(
    *,
    data_dir: Optional[Path] = None,
    settings: Optional[AppSettings] = None,
    workspace: Optional[Workspace] = None,
) -> FastAPI:
    """Instantiate the FastAPI application.

    Handlers are coroutines so that they and the sync tick share the event
    loop thread; a request never runs concurrently with a reload.
    """
    resolved_settings = settings or AppSettings()
    if workspace is None:
        storage = Storage(data_dir or resolved_settings.data_dir)
        workspace = Workspace(storage, history=History(resolved_settings.history_depth))

    app = FastAPI(title="Work Timer", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.workspace = workspace
    app.state.sync_task = None

    async def _sync_loop() -> None:
        interval = resolved_settings.poll_interval.total_seconds()
        while True:
            try:
                workspace.sync()
            except WorkTimerError:
                logger.exception("Sync tick failed; retrying next interval.")
            except Exception:
                logger.exception("Unexpected error in sync tick; retrying next interval.")
            await asyncio.sleep(interval)

    @app.on_event("startup")
    async def _startup() -> None:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
        app.state.sync_task = asyncio.create_task(_sync_loop())
        logger.info("Watching %s for external changes.", workspace.storage.data_dir)

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        task = app.state.sync_task
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            app.state.sync_task = None

    @app.exception_handler(WorkTimerError)
    async def _work_timer_error(request: Request, exc: WorkTimerError) -> JSONResponse:
        status_code = _STATUS_CODES.get(type(exc), 409)
        return JSONResponse(
            status_code=status_code, content={"error": exc.code, "detail": str(exc)}
        )

    @app.exception_handler(ValueError)
    async def _value_error(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(
            status_code=400, content={"error": "invalid", "detail": str(exc)}
        )

    @app.get("/api/status")
    async def status(request: Request) -> Dict[str, Any]:
        ws: Workspace = request.app.state.workspace
        return {
            "data_dir": str(ws.storage.data_dir),
            "current_date": ws.current_date.isoformat(),
            "poll_seconds": resolved_settings.poll_interval.total_seconds(),
            "can_undo": ws.history.can_undo,
            "can_redo": ws.history.can_redo,
            "timer": _timer_payload(ws),
        }

    @app.post("/api/sync")
    async def sync(request: Request) -> Dict[str, Any]:
        ws: Workspace = request.app.state.workspace
        result = ws.sync()
        return {
            "day_reloaded": result.day_reloaded,
            "session_reloaded": result.session_reloaded,
        }

    @app.get("/api/day")
    async def day(request: Request) -> Dict[str, Any]:
        ws: Workspace = request.app.state.workspace
        ws.sync()
        return _day_payload(ws)

    @app.post("/api/day/navigate")
    async def navigate(payload: NavigatePayload, request: Request) -> Dict[str, Any]:
        ws: Workspace = request.app.state.workspace
        if payload.date:
            ws.navigate(_parse_date(payload.date))
        elif payload.offset:
            for _ in range(abs(payload.offset)):
                if payload.offset > 0:
                    ws.next_day()
                else:
                    ws.previous_day()
        else:
            ws.go_to_today()
        return _day_payload(ws)

    @app.post("/api/records")
    async def create_record(payload: RecordCreate, request: Request) -> Dict[str, Any]:
        ws: Workspace = request.app.state.workspace
        record = ws.add_record(
            payload.name,
            start=_parse_time(payload.start),
            end=_parse_time(payload.end),
            description=payload.description,
        )
        return _record_payload(record)

    @app.post("/api/records/break")
    async def create_break(request: Request) -> Dict[str, Any]:
        ws: Workspace = request.app.state.workspace
        return _record_payload(ws.add_break())

    @app.patch("/api/records/{record_id}")
    async def update_record(
        record_id: int, payload: RecordUpdate, request: Request
    ) -> Dict[str, Any]:
        ws: Workspace = request.app.state.workspace
        record = ws.update_record(
            record_id,
            name=payload.name,
            start=_parse_time(payload.start),
            end=_parse_time(payload.end),
            description=payload.description,
        )
        return _record_payload(record)

    @app.delete("/api/records/{record_id}")
    async def delete_record(record_id: int, request: Request) -> Dict[str, Any]:
        ws: Workspace = request.app.state.workspace
        removed = ws.delete_record(record_id)
        return {"deleted": removed.id}

    @app.post("/api/undo")
    async def undo(request: Request) -> Dict[str, Any]:
        ws: Workspace = request.app.state.workspace
        ws.undo()
        return _day_payload(ws)

    @app.post("/api/redo")
    async def redo(request: Request) -> Dict[str, Any]:
        ws: Workspace = request.app.state.workspace
        ws.redo()
        return _day_payload(ws)

    @app.get("/api/timer")
    async def timer(request: Request) -> Dict[str, Any]:
        ws: Workspace = request.app.state.workspace
        ws.sync()
        return {"timer": _timer_payload(ws)}

    @app.post("/api/timer/start")
    async def start_timer(payload: TimerStartPayload, request: Request) -> Dict[str, Any]:
        ws: Workspace = request.app.state.workspace
        ws.start_timer(payload.task_name, payload.description)
        return {"timer": _timer_payload(ws)}

    @app.post("/api/records/{record_id}/timer")
    async def start_timer_for_record(record_id: int, request: Request) -> Dict[str, Any]:
        ws: Workspace = request.app.state.workspace
        ws.start_timer_for_record(record_id)
        return {"timer": _timer_payload(ws)}

    @app.post("/api/timer/pause")
    async def pause_timer(request: Request) -> Dict[str, Any]:
        ws: Workspace = request.app.state.workspace
        ws.pause_timer()
        return {"timer": _timer_payload(ws)}

    @app.post("/api/timer/resume")
    async def resume_timer(request: Request) -> Dict[str, Any]:
        ws: Workspace = request.app.state.workspace
        ws.resume_timer()
        return {"timer": _timer_payload(ws)}

    @app.post("/api/timer/stop")
    async def stop_timer(request: Request) -> Dict[str, Any]:
        ws: Workspace = request.app.state.workspace
        result = ws.stop_timer()
        return _stop_payload(result)

    return app


def _parse_date(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as exc:
        raise ValueError("Invalid date format") from exc


def _parse_time(value: Optional[str]) -> Optional[TimePoint]:
    if value is None:
        return None
    return TimePoint.parse(value)


def _record_payload(record: WorkRecord) -> Dict[str, Any]:
    payload = record.to_dict()
    payload["duration"] = record.format_duration()
    return payload


def _day_payload(ws: Workspace) -> Dict[str, Any]:
    day: DayData = ws.day
    return {
        "date": day.date.isoformat(),
        "next_id": day.next_id,
        "records": [_record_payload(record) for record in day.sorted_records()],
        "total_minutes": day.total_minutes(),
        "grouped_totals": [
            {"name": name, "minutes": minutes} for name, minutes in day.grouped_totals()
        ],
        "can_undo": ws.history.can_undo,
        "can_redo": ws.history.can_redo,
    }


def _timer_payload(ws: Workspace) -> Optional[Dict[str, Any]]:
    snapshot = ws.timer_status()
    if snapshot is None:
        return None
    session: ActiveSession = snapshot.session
    return {
        "task_name": session.task_name,
        "description": session.description,
        "status": session.status.value,
        "start_time": session.start_time.isoformat(),
        "elapsed_seconds": int(snapshot.elapsed.total_seconds()),
        "source_record_id": session.source_record_id,
        "source_record_date": (
            session.source_record_date.isoformat() if session.source_record_date else None
        ),
    }


def _stop_payload(result: StopResult) -> Dict[str, Any]:
    return {
        "record": _record_payload(result.record),
        "date": result.date.isoformat(),
        "created": result.created,
        "elapsed_seconds": int(result.elapsed.total_seconds()),
    }
