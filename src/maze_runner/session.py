"""Game/level state machine driving one player's run through the levels."""

from __future__ import annotations

import enum
import logging
from collections import deque
from collections.abc import Sequence

import numpy as np

from maze_runner.config import GameConfig
from maze_runner.enemy import EnemySquad
from maze_runner.events import EventBus, EventType, GameEvent
from maze_runner.grid import CellType, Grid, Position
from maze_runner.level import LEVELS, Level
from maze_runner.pathfinding import is_passable
from maze_runner.scheduler import TickScheduler
from maze_runner.scoring import (
    FinalStats,
    LevelStats,
    is_perfect_run,
    level_score,
    time_bonus,
)

logger = logging.getLogger(__name__)

_UNIT_MOVES = frozenset({(0, -1), (0, 1), (-1, 0), (1, 0)})
_PLAYER_TRAIL = 30


class GamePhase(str, enum.Enum):
    """Lifecycle states for a session."""

    MENU = "menu"
    PLAYING = "playing"
    PAUSED = "paused"
    WON = "won"
    LOST = "lost"
    COMPLETED = "completed"


class GameSession:
    """Single-player session composing level, enemies, timer and score.

    All time flows through :meth:`advance`, which drives the countdown and
    the enemy tick on the session's own :class:`TickScheduler`. Commands
    that make no sense in the current phase are ignored rather than
    raised, so a presentation layer can forward input blindly.
    """

    def __init__(
        self,
        levels: Sequence[Level] | None = None,
        config: GameConfig | None = None,
        *,
        events: EventBus | None = None,
        rng: np.random.Generator | None = None,
    ) -> None:
        self.levels: tuple[Level, ...] = tuple(levels) if levels is not None else LEVELS
        if not self.levels:
            raise ValueError("A session needs at least one level.")
        self.config = config or GameConfig()
        self.settings = self.config.settings
        self.rng = rng if rng is not None else np.random.default_rng(self.config.seed)
        self.events = events or EventBus()
        self.scheduler = TickScheduler()
        self.enemies = EnemySquad(
            self.config.enemy_strategy,
            chase_probability=self.settings.chase_chance,
            history_length=self.config.history_length,
            sight_range=self.config.sight_range,
            settings=self.settings,
        )

        self.phase = GamePhase.MENU
        self.current_level_index = 0
        self.level: Level | None = None
        self.grid: Grid | None = None
        self.player: Position | None = None
        self.player_trail: deque[Position] = deque(maxlen=_PLAYER_TRAIL)
        self.score = 0
        self.total_score = 0
        self.collected = 0
        self.time_limit = 0
        self.time_remaining = 0
        self.last_errors: list[str] = []
        self.level_stats: LevelStats | None = None
        self.completed_levels: list[LevelStats] = []
        self._last_move_ms: float | None = None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def required_collectibles(self) -> int:
        return self.level.collectibles if self.level is not None else 0

    def can_exit_level(self) -> bool:
        return self.level is not None and self.collected == self.level.collectibles

    @property
    def level_total(self) -> int:
        """Score for the current level including the time bonus."""
        return level_score(self.score, self.time_remaining, self.config.score.time_bonus)

    def final_stats(self) -> FinalStats:
        return FinalStats.from_levels(self.completed_levels)

    def snapshot(self) -> dict:
        """Return the full, serializable session state."""
        return {
            "phase": self.phase.value,
            "current_level_index": self.current_level_index,
            "level": (
                {"id": self.level.id, "name": self.level.name}
                if self.level is not None else None
            ),
            "score": self.score,
            "total_score": self.total_score,
            "collected_count": self.collected,
            "required_collectibles": self.required_collectibles,
            "can_exit": self.can_exit_level(),
            "time_remaining": self.time_remaining,
            "player_position": list(self.player) if self.player is not None else None,
            "enemy_positions": [list(p) for p in self.enemies.positions()],
            "enemies": self.enemies.to_dict(),
            "grid": self.grid.to_dict() if self.grid is not None else None,
            "difficulty": self.config.difficulty.value,
            "level_stats": self.level_stats.to_dict() if self.level_stats else None,
        }

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def start_game(self) -> bool:
        return self.start_level(0)

    def start_level(self, index: int) -> bool:
        """Load level *index* and begin playing it.

        Returns ``False`` and falls back to the menu when the index is out
        of range or the level content is invalid; the reasons are kept in
        :attr:`last_errors`.
        """
        self._stop_clock()
        if not 0 <= index < len(self.levels):
            self.last_errors = [f"Level index {index} out of range"]
            logger.warning("Ignoring start of unknown level %d.", index)
            self._enter_menu()
            return False

        result = self.levels[index].validate()
        if not result.valid:
            self.last_errors = list(result.errors)
            self._enter_menu()
            return False

        level = self.levels[index].clone()
        self.last_errors = []
        self.current_level_index = index
        self.level = level
        self.grid = level.grid
        self.player = level.player_start
        self.player_trail.clear()
        self.player_trail.append(self.player)
        self.enemies.reset(level.enemy_positions)
        self.score = 0
        self.collected = 0
        self.time_limit = self.settings.scaled_time_limit(level.time_limit)
        self.time_remaining = self.time_limit
        self.level_stats = None
        self._last_move_ms = None

        self.scheduler.schedule_every(self.config.timer_period_ms, self._on_timer_tick)
        if self.enemies.enemies:
            self.scheduler.schedule_every(
                self.settings.enemy_move_interval_ms, self._on_enemy_tick,
            )
        self.phase = GamePhase.PLAYING
        logger.info(
            "Level %d (%s) started: %ds, %d collectibles, %d enemies.",
            level.id, level.name, self.time_limit,
            level.collectibles, level.enemy_count,
        )
        self._emit(
            EventType.LEVEL_START,
            level=index, name=level.name, time_limit=self.time_limit,
        )
        return True

    def move(self, dx: int, dy: int) -> bool:
        """Try to step the player; returns whether the move happened."""
        if self.phase is not GamePhase.PLAYING or (dx, dy) not in _UNIT_MOVES:
            return False
        assert self.grid is not None and self.player is not None  # noqa: S101

        now = self.scheduler.now_ms
        if (
            self._last_move_ms is not None
            and now - self._last_move_ms < self.config.move_cooldown_ms
        ):
            logger.debug("Move rejected by cooldown at %.0f ms.", now)
            return False
        self._last_move_ms = now

        origin = self.player
        target = origin.offset(dx, dy)
        if not is_passable(self.grid, target):
            logger.debug("Move into %s blocked.", tuple(target))
            return False

        cell = self.grid.get(target)
        self.player = target
        self.player_trail.append(target)
        self._emit(EventType.MOVE, origin=list(origin), target=list(target))

        if cell == CellType.COLLECTIBLE:
            self._collect(target)
        if self._check_capture():
            return True
        if cell == CellType.EXIT and self.can_exit_level():
            self._win()
        return True

    def pause(self) -> bool:
        if self.phase is not GamePhase.PLAYING:
            return False
        self.scheduler.pause()
        self.phase = GamePhase.PAUSED
        self._emit(EventType.PAUSE)
        return True

    def resume(self) -> bool:
        if self.phase is not GamePhase.PAUSED:
            return False
        self.scheduler.resume()
        self.phase = GamePhase.PLAYING
        self._emit(EventType.RESUME)
        return True

    def toggle_pause(self) -> bool:
        return self.pause() if self.phase is GamePhase.PLAYING else self.resume()

    def reset(self) -> bool:
        """Restart the current level from scratch."""
        if self.phase in (GamePhase.MENU, GamePhase.COMPLETED):
            return False
        self._emit(EventType.LEVEL_RESET, level=self.current_level_index)
        return self.start_level(self.current_level_index)

    def advance_to_next_level(self) -> bool:
        """Bank the won level's score and move on, or finish the run."""
        if self.phase is not GamePhase.WON or self.level_stats is None:
            return False
        self.total_score += self.level_stats.total
        self.completed_levels.append(self.level_stats)

        next_index = self.current_level_index + 1
        if next_index < len(self.levels):
            return self.start_level(next_index)

        self.phase = GamePhase.COMPLETED
        final = self.final_stats()
        logger.info(
            "Run completed: %d levels, total score %d, rank %s.",
            final.levels_completed, self.total_score, final.rank,
        )
        return True

    def return_to_menu(self) -> None:
        """Abandon the current level and discard its in-progress state."""
        self._stop_clock()
        self._enter_menu()
        self._emit(EventType.RETURN_TO_MENU)

    def advance(self, ms: float) -> int:
        """Drive the simulation clock forward by *ms* milliseconds."""
        return self.scheduler.advance(ms)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _emit(self, event_type: EventType, **data) -> None:
        self.events.emit(GameEvent(event_type, self.scheduler.now_ms, data))

    def _stop_clock(self) -> None:
        self.scheduler.cancel_all()
        self.scheduler.resume()

    def _enter_menu(self) -> None:
        self.phase = GamePhase.MENU
        self.level = None
        self.grid = None
        self.player = None
        self.player_trail.clear()
        self.enemies.clear()
        self.score = 0
        self.collected = 0
        self.time_remaining = 0
        self.level_stats = None

    def _collect(self, pos: Position) -> None:
        assert self.grid is not None and self.level is not None  # noqa: S101
        self.grid = self.grid.remove_collectible(pos)
        self.collected = min(self.collected + 1, self.level.collectibles)
        self.score += self.config.score.collectible
        remaining = self.level.collectibles - self.collected
        self._emit(EventType.COLLECT, position=list(pos), remaining=remaining)

    def _check_capture(self) -> bool:
        if self.player is None or not self.enemies.caught(self.player):
            return False
        self._emit(EventType.ENEMY_CONTACT, position=list(self.player))
        self._lose("caught")
        return True

    def _win(self) -> None:
        assert self.level is not None  # noqa: S101
        self.scheduler.cancel_all()
        bonus = time_bonus(self.time_remaining, self.config.score.time_bonus)
        self.level_stats = LevelStats(
            level_index=self.current_level_index,
            level_id=self.level.id,
            name=self.level.name,
            score=self.score,
            time_bonus=bonus,
            total=self.score + bonus,
            collected=self.collected,
            required=self.level.collectibles,
            time_remaining=self.time_remaining,
            time_used=self.time_limit - self.time_remaining,
            perfect=is_perfect_run(
                self.collected, self.level.collectibles, self.time_remaining,
            ),
        )
        self.phase = GamePhase.WON
        logger.info(
            "Level %d complete: score %d, time bonus %d.",
            self.level.id, self.score, bonus,
        )
        self._emit(EventType.LEVEL_COMPLETE, **self.level_stats.to_dict())

    def _lose(self, reason: str) -> None:
        self.scheduler.cancel_all()
        self.phase = GamePhase.LOST
        logger.info(
            "Level %d lost (%s) with %ds remaining.",
            self.level.id if self.level else -1, reason, self.time_remaining,
        )
        self._emit(
            EventType.GAME_OVER,
            reason=reason, level=self.current_level_index, score=self.score,
        )

    def _on_timer_tick(self) -> None:
        if self.phase is not GamePhase.PLAYING:
            return
        self.time_remaining = max(0, self.time_remaining - 1)
        if self.time_remaining == 0:
            self._lose("timeout")

    def _on_enemy_tick(self) -> None:
        if self.phase is not GamePhase.PLAYING or self.grid is None or self.player is None:
            return
        self.enemies.tick(self.grid, self.player, self.rng, self.player_trail)
        self._check_capture()
