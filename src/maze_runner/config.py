"""Session configuration with JSON round-tripping."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path

from maze_runner.difficulty import Difficulty, DifficultySettings, settings_for
from maze_runner.enemy import BehaviorStrategy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoreConfig:
    """Point values awarded by the session.

    ``level_complete`` and ``perfect_bonus`` are published for achievement
    displays; the level score itself is ``score + time_left * time_bonus``.
    """

    collectible: int = 100
    time_bonus: int = 10
    level_complete: int = 500
    perfect_bonus: int = 1000


@dataclass(frozen=True)
class GameConfig:
    """Full gameplay configuration.

    Supports JSON serialization for reproducible sessions.
    """

    difficulty: Difficulty = Difficulty.NORMAL
    enemy_strategy: BehaviorStrategy = BehaviorStrategy.PATROL_AND_CHASE
    seed: int | None = None

    # Timing
    move_cooldown_ms: int = 150
    timer_period_ms: int = 1000

    # Enemy behaviour
    history_length: int = 3
    sight_range: int = 5

    score: ScoreConfig = field(default_factory=ScoreConfig)

    def __post_init__(self) -> None:
        if not isinstance(self.difficulty, Difficulty):
            object.__setattr__(self, "difficulty", Difficulty(self.difficulty))
        if not isinstance(self.enemy_strategy, BehaviorStrategy):
            object.__setattr__(
                self, "enemy_strategy", BehaviorStrategy(self.enemy_strategy),
            )
        if self.move_cooldown_ms < 0:
            raise ValueError("move_cooldown_ms must be >= 0.")
        if self.timer_period_ms < 1:
            raise ValueError("timer_period_ms must be at least 1.")
        if self.history_length < 1:
            raise ValueError("history_length must be at least 1.")
        if self.sight_range < 0:
            raise ValueError("sight_range must be >= 0.")

    @property
    def settings(self) -> DifficultySettings:
        return settings_for(self.difficulty)

    def to_dict(self) -> dict:
        """Serialize to a plain dict with enum values flattened."""
        d = asdict(self)
        d["difficulty"] = self.difficulty.value
        d["enemy_strategy"] = self.enemy_strategy.value
        return d

    def save(self, path: str | Path) -> None:
        """Write config to a JSON file."""
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(json.dumps(self.to_dict(), indent=2))
        logger.info("Config saved to %s", p)

    @classmethod
    def from_dict(cls, raw: dict) -> GameConfig:
        raw = dict(raw)
        raw["score"] = ScoreConfig(**raw.pop("score", {}))
        return cls(**raw)

    @classmethod
    def load(cls, path: str | Path) -> GameConfig:
        """Load config from a JSON file."""
        return cls.from_dict(json.loads(Path(path).read_text()))
