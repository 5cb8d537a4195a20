"""In-memory session registry, lifecycle management, and async tick loops."""

from __future__ import annotations

import asyncio
import json
import logging
import time
import uuid
from dataclasses import dataclass, field

from starlette.websockets import WebSocket, WebSocketState

from maze_runner.config import GameConfig
from maze_runner.events import GameEvent
from maze_runner.generator import MazeGenerator
from maze_runner.session import GamePhase, GameSession

logger = logging.getLogger(__name__)

# Simple rate limit: max sessions created per IP within the window.
_RATE_LIMIT_WINDOW = 60.0  # seconds
_RATE_LIMIT_MAX = 20
_RATE_COMPACT_INTERVAL = 60.0  # seconds between stale-key sweeps
_MAX_SESSIONS = 200
_IDLE_SESSION_TTL = 600.0  # seconds

# Phases in which an unwatched session is only waiting for input.
_IDLE_PHASES = frozenset({GamePhase.MENU, GamePhase.LOST, GamePhase.COMPLETED})


@dataclass
class SessionInstance:
    """A hosted session plus its connections and tick loop."""

    session_id: str
    session: GameSession
    tick_rate_ms: int
    sockets: list[WebSocket] = field(default_factory=list)
    pending_events: list[GameEvent] = field(default_factory=list)
    created_at: float = field(default_factory=time.monotonic)
    last_active: float = field(default_factory=time.monotonic)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    _task: asyncio.Task | None = field(default=None, repr=False)

    def touch(self) -> None:
        self.last_active = time.monotonic()

    @property
    def idle(self) -> bool:
        """True when nobody is connected and play is not in progress."""
        return not self.sockets and self.session.phase in _IDLE_PHASES

    def payload(self) -> str:
        """Snapshot plus the events queued since the previous payload."""
        events = [e.to_dict() for e in self.pending_events]
        self.pending_events.clear()
        return json.dumps(
            {"type": "state", "state": self.session.snapshot(), "events": events},
            separators=(",", ":"),
        )


class SessionManager:
    """Central registry managing all hosted sessions."""

    def __init__(
        self,
        max_sessions: int = _MAX_SESSIONS,
        idle_ttl: float = _IDLE_SESSION_TTL,
    ) -> None:
        if max_sessions < 1:
            raise ValueError("max_sessions must be >= 1.")
        if idle_ttl < 0:
            raise ValueError("idle_ttl must be >= 0.")
        self._sessions: dict[str, SessionInstance] = {}
        self._rate_limits: dict[str, list[float]] = {}
        self._last_rate_compact: float = 0.0
        self._max_sessions = max_sessions
        self._idle_ttl = idle_ttl

    def _check_rate_limit(self, client_ip: str) -> bool:
        """Return True if the client is within rate limits."""
        now = time.monotonic()
        recent = [
            t for t in self._rate_limits.get(client_ip, [])
            if now - t < _RATE_LIMIT_WINDOW
        ]
        if recent:
            self._rate_limits[client_ip] = recent
        else:
            self._rate_limits.pop(client_ip, None)
        self._compact_rate_limits(now)
        return len(recent) < _RATE_LIMIT_MAX

    def _compact_rate_limits(self, now: float) -> None:
        """Remove rate-limit entries whose timestamps have all expired."""
        if now - self._last_rate_compact < _RATE_COMPACT_INTERVAL:
            return
        self._last_rate_compact = now
        stale_ips = [
            ip for ip, ts in self._rate_limits.items()
            if all(now - t >= _RATE_LIMIT_WINDOW for t in ts)
        ]
        for ip in stale_ips:
            del self._rate_limits[ip]
        if stale_ips:
            logger.info("Compacted %d stale rate-limit entries.", len(stale_ips))

    def _evict_idle_sessions(self) -> None:
        """Drop idle sessions past their TTL, then the oldest idle ones
        while the registry is still full."""
        now = time.monotonic()
        idle = sorted(
            (inst for inst in self._sessions.values() if inst.idle),
            key=lambda inst: inst.last_active,
        )
        evicted = [inst for inst in idle if now - inst.last_active >= self._idle_ttl]
        for inst in idle[len(evicted):]:
            if len(self._sessions) - len(evicted) < self._max_sessions:
                break
            evicted.append(inst)
        for inst in evicted:
            del self._sessions[inst.session_id]
            if inst._task is not None:
                inst._task.cancel()
        if evicted:
            logger.info("Evicted %d idle sessions.", len(evicted))

    def create_session(
        self,
        difficulty: str = "normal",
        strategy: str = "patrol-and-chase",
        seed: int | None = None,
        tick_rate_ms: int = 100,
        generated: dict | None = None,
        client_ip: str = "unknown",
    ) -> SessionInstance:
        """Create a session in the menu phase and start its tick loop."""
        if not self._check_rate_limit(client_ip):
            raise ValueError("Rate limit exceeded. Try again later.")
        self._evict_idle_sessions()
        if len(self._sessions) >= self._max_sessions:
            raise ValueError("Too many active sessions.")

        config = GameConfig(difficulty=difficulty, enemy_strategy=strategy, seed=seed)
        levels = None
        if generated is not None:
            generator = MazeGenerator(seed=seed)
            levels = [generator.generate_level(
                generated.get("width", 11),
                generated.get("height", 11),
                collectibles=generated.get("collectibles", 3),
                enemies=generated.get("enemies", 2),
                loops=generated.get("loops", 0),
                time_limit=generated.get("time_limit"),
                level_id=1,
            )]

        session_id = uuid.uuid4().hex[:12]
        instance = SessionInstance(
            session_id=session_id,
            session=GameSession(levels, config),
            tick_rate_ms=tick_rate_ms,
        )
        instance.session.events.subscribe(instance.pending_events.append)
        self._sessions[session_id] = instance
        self._rate_limits.setdefault(client_ip, []).append(time.monotonic())
        instance._task = asyncio.create_task(self._tick_loop(instance))
        logger.info(
            "Session %s created (difficulty=%s, strategy=%s).",
            session_id, difficulty, strategy,
        )
        return instance

    def get_session(self, session_id: str) -> SessionInstance | None:
        return self._sessions.get(session_id)

    def require(self, session_id: str) -> SessionInstance:
        instance = self._sessions.get(session_id)
        if instance is None:
            raise KeyError(f"Session {session_id} not found.")
        return instance

    def list_sessions(self) -> list[SessionInstance]:
        return list(self._sessions.values())

    async def apply_command(
        self,
        session_id: str,
        command: str,
        dx: int = 0,
        dy: int = 0,
        level: int = 0,
    ) -> bool:
        """Forward a player command to the session's state machine."""
        instance = self.require(session_id)
        instance.touch()
        async with instance.lock:
            session = instance.session
            if command == "start":
                accepted = session.start_game()
            elif command == "select":
                accepted = session.start_level(level)
            elif command == "move":
                accepted = session.move(dx, dy)
            elif command == "pause":
                accepted = session.pause()
            elif command == "resume":
                accepted = session.resume()
            elif command == "reset":
                accepted = session.reset()
            elif command == "next":
                accepted = session.advance_to_next_level()
            elif command == "menu":
                session.return_to_menu()
                accepted = True
            else:
                raise ValueError(f"Unknown command {command!r}.")
        return accepted

    async def delete_session(self, session_id: str) -> None:
        """Stop the tick loop and drop the session."""
        instance = self._sessions.pop(session_id, None)
        if instance is None:
            raise KeyError(f"Session {session_id} not found.")
        await self._stop(instance)
        logger.info("Session %s deleted.", session_id)

    async def _tick_loop(self, instance: SessionInstance) -> None:
        """Advance the session clock by real elapsed time and broadcast."""
        interval = instance.tick_rate_ms / 1000.0
        last = time.monotonic()
        try:
            while True:
                await asyncio.sleep(interval)
                now = time.monotonic()
                async with instance.lock:
                    instance.session.advance((now - last) * 1000.0)
                last = now
                await self.broadcast(instance)
        except asyncio.CancelledError:
            logger.info("Tick loop cancelled for session %s.", instance.session_id)
        except Exception:
            logger.exception("Tick loop error in session %s.", instance.session_id)
            async with instance.lock:
                instance.session.return_to_menu()
            # The session has no driver any more.
            self._sessions.pop(instance.session_id, None)
            await self._close_sockets(instance, "Session failed.")

    async def broadcast(self, instance: SessionInstance) -> None:
        """Send the current state to every connected socket."""
        if not instance.sockets:
            instance.pending_events.clear()
            return
        payload = instance.payload()
        dead: list[WebSocket] = []
        for ws in list(instance.sockets):
            try:
                if ws.client_state == WebSocketState.CONNECTED:
                    await ws.send_text(payload)
            except Exception:
                dead.append(ws)
        for ws in dead:
            if ws in instance.sockets:
                instance.sockets.remove(ws)

    async def _stop(self, instance: SessionInstance) -> None:
        task = instance._task
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        await self._close_sockets(instance, "Session closed.")

    async def _close_sockets(self, instance: SessionInstance, reason: str) -> None:
        for ws in list(instance.sockets):
            try:
                if ws.client_state == WebSocketState.CONNECTED:
                    await ws.close(code=1000, reason=reason)
            except Exception:
                logger.warning("Failed closing socket in session %s.", instance.session_id)
        instance.sockets.clear()

    async def cleanup(self) -> None:
        """Cancel all running tick loops and release rate-limit state."""
        for instance in list(self._sessions.values()):
            await self._stop(instance)
        self._sessions.clear()
        self._rate_limits.clear()
        logger.info("SessionManager cleanup complete.")
