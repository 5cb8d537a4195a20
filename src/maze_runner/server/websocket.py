"""WebSocket handler for real-time play."""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from maze_runner.server.session_manager import SessionManager

logger = logging.getLogger(__name__)

ws_router = APIRouter()

_COMMANDS = frozenset({
    "start", "select", "move", "pause", "resume", "reset", "next", "menu",
})


def _get_manager(ws: WebSocket) -> SessionManager:
    return ws.app.state.session_manager


def _as_step(value) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value if value in (-1, 0, 1) else None


@ws_router.websocket("/sessions/{session_id}/play")
async def play(websocket: WebSocket, session_id: str) -> None:
    """Send commands, receive the session state every tick."""
    manager = _get_manager(websocket)
    instance = manager.get_session(session_id)
    if instance is None:
        await websocket.close(code=4004, reason="Session not found.")
        return

    await websocket.accept()
    instance.sockets.append(websocket)
    logger.info("Client connected to session %s.", session_id)

    # Initial snapshot so the client can render before the first tick.
    await websocket.send_text(json.dumps(
        {"type": "state", "state": instance.session.snapshot(), "events": []},
        separators=(",", ":"),
    ))

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                msg = json.loads(raw)
            except json.JSONDecodeError:
                continue
            if not isinstance(msg, dict):
                continue

            command = msg.get("command")
            if command not in _COMMANDS:
                continue
            dx = _as_step(msg.get("dx", 0))
            dy = _as_step(msg.get("dy", 0))
            level = msg.get("level", 0)
            if dx is None or dy is None or not isinstance(level, int):
                continue

            try:
                await manager.apply_command(
                    session_id, command, dx=dx, dy=dy, level=level,
                )
            except KeyError:
                break
            await manager.broadcast(instance)
    except WebSocketDisconnect:
        logger.info("Client disconnected from session %s.", session_id)
    finally:
        if websocket in instance.sockets:
            instance.sockets.remove(websocket)
        instance.touch()
