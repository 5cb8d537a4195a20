"""Pydantic models for API request/response schemas."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

CommandName = Literal[
    "start", "select", "move", "pause", "resume", "reset", "next", "menu",
]


class GeneratedLevelRequest(BaseModel):
    """Ask the server to generate a single maze level for the session."""

    width: int = Field(default=11, ge=9, le=21)
    height: int = Field(default=11, ge=9, le=21)
    collectibles: int = Field(default=3, ge=1, le=20)
    enemies: int = Field(default=2, ge=0, le=8)
    loops: int = Field(default=0, ge=0, le=50)
    time_limit: int | None = Field(default=None, ge=5, le=600)


class CreateSessionRequest(BaseModel):
    """Request body for POST /sessions."""

    difficulty: Literal["easy", "normal", "hard"] = "normal"
    strategy: Literal["patrol-and-chase", "personality-weighted-search"] = (
        "patrol-and-chase"
    )
    seed: int | None = None
    tick_rate_ms: int = Field(default=100, ge=20, le=1000)
    generated: GeneratedLevelRequest | None = None


class CommandRequest(BaseModel):
    """Request body for POST /sessions/{session_id}/commands."""

    command: CommandName
    dx: int = Field(default=0, ge=-1, le=1)
    dy: int = Field(default=0, ge=-1, le=1)
    level: int = Field(default=0, ge=0)


class SessionSummary(BaseModel):
    """Compact session info for list endpoints."""

    session_id: str
    phase: str
    current_level_index: int
    total_score: int
    tick_rate_ms: int


class CommandResponse(BaseModel):
    """Outcome of a command plus the resulting snapshot."""

    accepted: bool
    state: dict


class LevelSummary(BaseModel):
    id: int
    name: str
    width: int
    height: int
    time_limit: int
    collectibles: int
    enemy_count: int
