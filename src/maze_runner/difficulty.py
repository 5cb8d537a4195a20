"""Difficulty tiers and the tuning values attached to each."""

from __future__ import annotations

import enum
from dataclasses import asdict, dataclass


class Difficulty(enum.Enum):
    """Skill tiers, ordered from easiest to hardest."""

    EASY = "easy"
    NORMAL = "normal"
    HARD = "hard"


@dataclass(frozen=True)
class DifficultySettings:
    """Tuning for one tier.

    ``intelligence``, ``aggressiveness`` and ``patience`` scale the base
    traits of enemy personalities.
    """

    enemy_move_interval_ms: int
    chase_chance: float
    time_multiplier: float
    intelligence: float
    aggressiveness: float
    patience: float

    def scaled_time_limit(self, time_limit: int) -> int:
        """Apply the time multiplier, never dropping below one second."""
        return max(1, round(time_limit * self.time_multiplier))

    def to_dict(self) -> dict:
        return asdict(self)


DIFFICULTY_SETTINGS: dict[Difficulty, DifficultySettings] = {
    Difficulty.EASY: DifficultySettings(
        enemy_move_interval_ms=1200,
        chase_chance=0.2,
        time_multiplier=1.5,
        intelligence=0.3,
        aggressiveness=0.4,
        patience=0.6,
    ),
    Difficulty.NORMAL: DifficultySettings(
        enemy_move_interval_ms=800,
        chase_chance=0.3,
        time_multiplier=1.0,
        intelligence=0.6,
        aggressiveness=0.6,
        patience=0.5,
    ),
    Difficulty.HARD: DifficultySettings(
        enemy_move_interval_ms=500,
        chase_chance=0.4,
        time_multiplier=0.8,
        intelligence=0.9,
        aggressiveness=0.8,
        patience=0.3,
    ),
}


def settings_for(difficulty: Difficulty | str) -> DifficultySettings:
    """Look up the settings for a tier given as enum or name."""
    tier = difficulty if isinstance(difficulty, Difficulty) else Difficulty(difficulty)
    return DIFFICULTY_SETTINGS[tier]
