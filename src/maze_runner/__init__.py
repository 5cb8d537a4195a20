"""Maze Runner: grid-maze game simulation core."""

from maze_runner.config import GameConfig, ScoreConfig
from maze_runner.difficulty import Difficulty, DifficultySettings
from maze_runner.enemy import BehaviorStrategy, Enemy, EnemySquad, EnemyState
from maze_runner.events import EventBus, EventType, GameEvent
from maze_runner.generator import MazeGenerator
from maze_runner.grid import CellType, Grid, OutOfBoundsError, Position
from maze_runner.level import LEVELS, Level, LevelContentError
from maze_runner.session import GamePhase, GameSession

__all__ = [
    "LEVELS",
    "BehaviorStrategy",
    "CellType",
    "Difficulty",
    "DifficultySettings",
    "Enemy",
    "EnemySquad",
    "EnemyState",
    "EventBus",
    "EventType",
    "GameConfig",
    "GameEvent",
    "GamePhase",
    "GameSession",
    "Grid",
    "Level",
    "LevelContentError",
    "MazeGenerator",
    "OutOfBoundsError",
    "Position",
    "ScoreConfig",
]
