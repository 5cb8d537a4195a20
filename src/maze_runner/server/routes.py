"""REST API route handlers for session lifecycle and commands."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from maze_runner.level import LEVELS
from maze_runner.server.models import (
    CommandRequest,
    CommandResponse,
    CreateSessionRequest,
    LevelSummary,
    SessionSummary,
)
from maze_runner.server.session_manager import SessionInstance, SessionManager

router = APIRouter(tags=["sessions"])


def _get_manager(request: Request) -> SessionManager:
    return request.app.state.session_manager


def _summary(instance: SessionInstance) -> SessionSummary:
    session = instance.session
    return SessionSummary(
        session_id=instance.session_id,
        phase=session.phase.value,
        current_level_index=session.current_level_index,
        total_score=session.total_score,
        tick_rate_ms=instance.tick_rate_ms,
    )


@router.post("/sessions", status_code=201)
async def create_session(body: CreateSessionRequest, request: Request) -> SessionSummary:
    """Create a new session waiting in the menu."""
    manager = _get_manager(request)
    client_ip = request.client.host if request.client else "unknown"
    try:
        instance = manager.create_session(
            difficulty=body.difficulty,
            strategy=body.strategy,
            seed=body.seed,
            tick_rate_ms=body.tick_rate_ms,
            generated=body.generated.model_dump() if body.generated else None,
            client_ip=client_ip,
        )
    except RuntimeError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return _summary(instance)


@router.get("/sessions")
async def list_sessions(request: Request) -> list[SessionSummary]:
    return [_summary(i) for i in _get_manager(request).list_sessions()]


@router.get("/sessions/{session_id}")
async def get_session(session_id: str, request: Request) -> dict:
    """Full session snapshot."""
    instance = _get_manager(request).get_session(session_id)
    if instance is None:
        raise HTTPException(status_code=404, detail="Session not found.")
    result: dict = _summary(instance).model_dump()
    result["state"] = instance.session.snapshot()
    result["last_errors"] = list(instance.session.last_errors)
    if instance.session.completed_levels:
        result["final_stats"] = instance.session.final_stats().to_dict()
    return result


@router.delete("/sessions/{session_id}", status_code=204)
async def delete_session(session_id: str, request: Request) -> None:
    try:
        await _get_manager(request).delete_session(session_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.post("/sessions/{session_id}/commands")
async def send_command(
    session_id: str, body: CommandRequest, request: Request,
) -> CommandResponse:
    """Apply a player command; rejected commands still return the state."""
    manager = _get_manager(request)
    try:
        accepted = await manager.apply_command(
            session_id, body.command, dx=body.dx, dy=body.dy, level=body.level,
        )
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    instance = manager.require(session_id)
    return CommandResponse(accepted=accepted, state=instance.session.snapshot())


@router.get("/levels", tags=["levels"])
async def list_levels() -> list[LevelSummary]:
    """Bundled campaign levels."""
    return [
        LevelSummary(
            id=level.id,
            name=level.name,
            width=level.grid.width,
            height=level.grid.height,
            time_limit=level.time_limit,
            collectibles=level.collectibles,
            enemy_count=level.enemy_count,
        )
        for level in LEVELS
    ]
