"""Static level descriptors and the bundled level set."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace

from maze_runner.grid import CellType, Grid, Position, ValidationResult
from maze_runner.pathfinding import is_passable, reachable_positions

logger = logging.getLogger(__name__)


class LevelContentError(ValueError):
    """Malformed level content; ``errors`` lists every problem found."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = list(errors)


@dataclass(frozen=True)
class Level:
    """Read-only level definition.

    Sessions always play on :meth:`clone`, never on the canonical instance.
    """

    id: int
    name: str
    time_limit: int
    collectibles: int
    player_start: Position
    exit_position: Position
    grid: Grid
    enemy_positions: tuple[Position, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.time_limit <= 0:
            raise ValueError("time_limit must be positive.")
        if self.collectibles < 0:
            raise ValueError("collectibles must be non-negative.")
        object.__setattr__(self, "player_start", Position(*self.player_start))
        object.__setattr__(self, "exit_position", Position(*self.exit_position))
        object.__setattr__(
            self, "enemy_positions",
            tuple(Position(*p) for p in self.enemy_positions),
        )

    @property
    def enemy_count(self) -> int:
        return len(self.enemy_positions)

    def clone(self) -> Level:
        """Fresh copy for a new attempt."""
        return replace(self, grid=self.grid.copy())

    def validate(self) -> ValidationResult:
        """Content checks that gate a level from entering play."""
        errors = list(self.grid.validate().errors)
        grid = self.grid

        if not is_passable(grid, self.player_start):
            errors.append(f"Player start {tuple(self.player_start)} is not an open cell")
        if grid.get(self.exit_position) != CellType.EXIT:
            errors.append(f"Exit position {tuple(self.exit_position)} is not an exit cell")
        available = grid.count_cells(CellType.COLLECTIBLE)
        if available < self.collectibles:
            errors.append(
                f"Level requires {self.collectibles} collectibles "
                f"but the maze holds {available}"
            )
        for pos in self.enemy_positions:
            if not is_passable(grid, pos):
                errors.append(f"Enemy origin {tuple(pos)} is not an open cell")

        if not errors:
            reachable = reachable_positions(grid, self.player_start)
            if self.exit_position not in reachable:
                errors.append("Exit is unreachable from the player start")
            stranded = [
                p for p in grid.collectible_positions() if p not in reachable
            ]
            if available - len(stranded) < self.collectibles:
                errors.append(
                    f"Only {available - len(stranded)} collectibles are reachable"
                )

        if errors:
            logger.warning("Level %d (%s) failed validation: %s", self.id, self.name, errors)
        return ValidationResult(errors)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "time_limit": self.time_limit,
            "collectibles": self.collectibles,
            "enemy_count": self.enemy_count,
            "player_start": list(self.player_start),
            "exit_position": list(self.exit_position),
            "enemy_positions": [list(p) for p in self.enemy_positions],
            "maze": self.grid.to_rows(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> Level:
        """Build a level from authored data, rejecting a malformed maze."""
        rows = data.get("maze") or []
        try:
            grid = Grid.from_rows(rows)
        except ValueError as exc:
            raise LevelContentError([str(exc)]) from exc
        return cls(
            id=int(data["id"]),
            name=str(data["name"]),
            time_limit=int(data["time_limit"]),
            collectibles=int(data["collectibles"]),
            player_start=Position(*data["player_start"]),
            exit_position=Position(*data["exit_position"]),
            enemy_positions=tuple(Position(*p) for p in data.get("enemy_positions", [])),
            grid=grid,
        )


LEVELS: tuple[Level, ...] = (
    Level(
        id=1,
        name="Getting Started",
        time_limit=60,
        collectibles=1,
        player_start=Position(1, 1),
        exit_position=Position(7, 7),
        grid=Grid.from_rows([
            [1, 1, 1, 1, 1, 1, 1, 1, 1],
            [1, 0, 0, 0, 1, 0, 0, 0, 1],
            [1, 0, 1, 0, 1, 0, 1, 4, 1],
            [1, 0, 1, 0, 0, 0, 1, 0, 1],
            [1, 0, 1, 1, 1, 0, 1, 0, 1],
            [1, 0, 0, 0, 0, 0, 1, 0, 1],
            [1, 1, 1, 0, 1, 1, 1, 0, 1],
            [1, 0, 0, 0, 0, 0, 0, 3, 1],
            [1, 1, 1, 1, 1, 1, 1, 1, 1],
        ]),
    ),
    Level(
        id=2,
        name="The Chase",
        time_limit=90,
        collectibles=3,
        player_start=Position(1, 1),
        exit_position=Position(11, 9),
        enemy_positions=(Position(6, 3), Position(9, 7)),
        grid=Grid.from_rows([
            [1, 1, 1, 1, 1, 1, 1, 1, 1, 1, 1, 1, 1],
            [1, 0, 0, 0, 1, 0, 0, 0, 0, 0, 1, 4, 1],
            [1, 0, 1, 0, 1, 0, 1, 1, 1, 0, 1, 0, 1],
            [1, 0, 1, 0, 0, 0, 0, 0, 1, 0, 0, 0, 1],
            [1, 0, 1, 1, 1, 1, 1, 0, 1, 1, 1, 0, 1],
            [1, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 1],
            [1, 1, 1, 0, 1, 1, 1, 1, 1, 0, 1, 4, 1],
            [1, 0, 0, 0, 1, 0, 0, 0, 0, 0, 1, 0, 1],
            [1, 0, 1, 1, 1, 0, 1, 1, 1, 1, 1, 0, 1],
            [1, 4, 0, 0, 0, 0, 0, 0, 0, 0, 0, 3, 1],
            [1, 1, 1, 1, 1, 1, 1, 1, 1, 1, 1, 1, 1],
        ]),
    ),
    Level(
        id=3,
        name="Labyrinth Master",
        time_limit=120,
        collectibles=5,
        player_start=Position(1, 1),
        exit_position=Position(13, 11),
        enemy_positions=(Position(5, 4), Position(6, 6), Position(10, 9)),
        grid=Grid.from_rows([
            [1, 1, 1, 1, 1, 1, 1, 1, 1, 1, 1, 1, 1, 1, 1],
            [1, 0, 0, 0, 1, 0, 0, 0, 0, 0, 1, 0, 0, 4, 1],
            [1, 0, 1, 0, 1, 0, 1, 1, 1, 0, 1, 0, 1, 0, 1],
            [1, 0, 1, 0, 0, 0, 1, 0, 0, 0, 0, 0, 1, 0, 1],
            [1, 0, 1, 1, 1, 0, 1, 0, 1, 1, 1, 1, 1, 0, 1],
            [1, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 1],
            [1, 1, 1, 1, 1, 1, 0, 1, 1, 1, 0, 1, 1, 4, 1],
            [1, 4, 0, 0, 0, 0, 0, 1, 0, 0, 0, 1, 0, 0, 1],
            [1, 0, 1, 1, 1, 1, 0, 1, 0, 1, 0, 1, 0, 1, 1],
            [1, 0, 0, 0, 0, 0, 0, 0, 0, 1, 0, 0, 0, 0, 1],
            [1, 4, 1, 1, 1, 0, 1, 1, 0, 1, 1, 1, 1, 4, 1],
            [1, 0, 0, 0, 0, 0, 1, 0, 0, 0, 0, 0, 0, 3, 1],
            [1, 1, 1, 1, 1, 1, 1, 1, 1, 1, 1, 1, 1, 1, 1],
        ]),
    ),
)
