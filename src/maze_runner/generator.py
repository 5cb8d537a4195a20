"""Procedural maze generation and pure grid transforms."""

from __future__ import annotations

import logging
from collections.abc import Iterable

import numpy as np

from maze_runner.grid import CellType, Grid, Position
from maze_runner.level import Level
from maze_runner.pathfinding import (
    CARDINALS,
    find_safe_positions,
    is_solvable,
    reachable_positions,
)

logger = logging.getLogger(__name__)

MIN_SIZE = 9
MAX_SIZE = 21
_SMALLEST_MAZE = 5

# Carving moves jump two cells: up, right, down, left.
_CARVE_STEPS: tuple[tuple[int, int], ...] = ((0, -2), (2, 0), (0, 2), (-2, 0))

# Cells that pruning and loop carving must leave untouched.
_SPECIAL_CELLS = frozenset({
    CellType.EXIT,
    CellType.COLLECTIBLE,
    CellType.PLAYER_START,
    CellType.ENEMY_START,
})


def _odd(value: int) -> int:
    return value if value % 2 == 1 else value + 1


class MazeGenerator:
    """Recursive-backtracker maze generator.

    Even requested dimensions are bumped to the next odd number, so a
    10x10 request yields an 11x11 maze. Uses a seeded NumPy RNG for
    deterministic, reproducible output.
    """

    def __init__(
        self,
        rng: np.random.Generator | None = None,
        *,
        seed: int | None = None,
        max_attempts: int = 5,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1.")
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.max_attempts = max_attempts

    def carve(self, width: int, height: int) -> Grid:
        """Carve a perfect maze of Path and Wall cells starting at (1, 1)."""
        if width < _SMALLEST_MAZE or height < _SMALLEST_MAZE:
            raise ValueError(f"Maze dimensions must be at least {_SMALLEST_MAZE}.")
        w, h = _odd(width), _odd(height)
        cells = np.full((h, w), CellType.WALL, dtype=np.int8)

        cells[1, 1] = CellType.PATH
        stack: list[tuple[int, int]] = [(1, 1)]
        while stack:
            x, y = stack[-1]
            neighbours = [
                (x + dx, y + dy)
                for dx, dy in _CARVE_STEPS
                if 0 < x + dx < w - 1
                and 0 < y + dy < h - 1
                and cells[y + dy, x + dx] == CellType.WALL
            ]
            if not neighbours:
                stack.pop()
                continue
            nx, ny = neighbours[int(self.rng.integers(len(neighbours)))]
            cells[(y + ny) // 2, (x + nx) // 2] = CellType.PATH
            cells[ny, nx] = CellType.PATH
            stack.append((nx, ny))

        return Grid(cells)

    def place_items(self, grid: Grid, collectibles: int) -> Grid:
        """Put the exit in the far corner and scatter collectibles on rooms."""
        start = Position(1, 1)
        exit_pos = Position(grid.width - 2, grid.height - 2)
        rooms = [
            pos for pos in grid.find(CellType.PATH)
            if pos.x % 2 == 1 and pos.y % 2 == 1 and pos not in (start, exit_pos)
        ]
        order = self.rng.permutation(len(rooms))
        chosen = [rooms[i] for i in order[:min(collectibles, len(rooms))]]
        return (
            grid.with_cell(exit_pos, CellType.EXIT)
            .with_cells(chosen, CellType.COLLECTIBLE)
        )

    def generate(self, width: int, height: int, collectibles: int = 3) -> Grid:
        """Generate a validated, solvable maze.

        Raises ``RuntimeError`` when every attempt fails the solvability
        or content check.
        """
        if collectibles < 1:
            raise ValueError("collectibles must be at least 1.")
        start = Position(1, 1)
        for attempt in range(1, self.max_attempts + 1):
            grid = self.place_items(self.carve(width, height), collectibles)
            exit_pos = Position(grid.width - 2, grid.height - 2)
            result = grid.validate()
            if result.valid and is_solvable(grid, start, exit_pos):
                return grid
            logger.info(
                "Discarding generated maze (attempt %d/%d): %s",
                attempt, self.max_attempts, result.errors or ["unsolvable"],
            )
        raise RuntimeError(
            f"Failed to generate a solvable maze in {self.max_attempts} attempts."
        )

    def generate_level(
        self,
        width: int = MIN_SIZE,
        height: int = MIN_SIZE,
        *,
        collectibles: int = 3,
        enemies: int = 0,
        level_id: int = 0,
        name: str = "Generated",
        time_limit: int | None = None,
        loops: int = 0,
        enemy_min_distance: int = 3,
    ) -> Level:
        """Wrap a generated maze in a playable :class:`Level`."""
        grid = self.generate(width, height, collectibles)
        start = Position(1, 1)
        if loops:
            grid = add_loops(grid, loops, self.rng)

        placed = grid.count_cells(CellType.COLLECTIBLE)
        exit_pos = grid.exit_positions()[0]
        reachable = reachable_positions(grid, start)
        spots = [
            pos for pos in find_safe_positions(grid, [start], enemy_min_distance)
            if pos in reachable and grid.get(pos) == CellType.PATH
        ]
        order = self.rng.permutation(len(spots))
        enemy_positions = tuple(spots[i] for i in order[:min(enemies, len(spots))])

        if time_limit is None:
            time_limit = 30 + 5 * placed + (grid.width * grid.height) // 10

        return Level(
            id=level_id,
            name=name,
            time_limit=time_limit,
            collectibles=placed,
            player_start=start,
            exit_position=exit_pos,
            enemy_positions=enemy_positions,
            grid=grid,
        )


def _open_neighbours(cells: np.ndarray, x: int, y: int) -> int:
    h, w = cells.shape
    return sum(
        1 for dx, dy in CARDINALS
        if 0 <= x + dx < w and 0 <= y + dy < h
        and cells[y + dy, x + dx] != CellType.WALL
    )


def remove_dead_ends(grid: Grid, keep: Iterable[Position] = ()) -> Grid:
    """Wall off plain path cells with a single open neighbour until none remain.

    Exits, collectibles, start markers and any position in *keep* are never
    removed, even when they sit at the end of a corridor.
    """
    protected = {Position(*p) for p in keep}
    cells = grid.cells.copy()
    h, w = cells.shape
    changed = True
    while changed:
        changed = False
        for y in range(h):
            for x in range(w):
                if cells[y, x] != CellType.PATH or (x, y) in protected:
                    continue
                if _open_neighbours(cells, x, y) == 1:
                    cells[y, x] = CellType.WALL
                    changed = True
    return Grid(cells)


def add_loops(
    grid: Grid,
    count: int,
    rng: np.random.Generator,
    max_attempts: int | None = None,
) -> Grid:
    """Knock down up to *count* interior walls that touch two open cells.

    Gives up after *max_attempts* random probes (``count * 10`` by default)
    so dense mazes cannot spin forever.
    """
    if count <= 0 or grid.width < 3 or grid.height < 3:
        return grid
    budget = max_attempts if max_attempts is not None else count * 10
    cells = grid.cells.copy()
    removed = 0
    for _ in range(budget):
        if removed >= count:
            break
        x = int(rng.integers(1, grid.width - 1))
        y = int(rng.integers(1, grid.height - 1))
        if cells[y, x] == CellType.WALL and _open_neighbours(cells, x, y) >= 2:
            cells[y, x] = CellType.PATH
            removed += 1
    if removed < count:
        logger.warning(
            "Loop budget exhausted: removed %d of %d requested walls.", removed, count,
        )
    return Grid(cells)


def mirror_horizontal(grid: Grid) -> Grid:
    """Flip left-to-right."""
    return Grid(np.fliplr(grid.cells))


def mirror_vertical(grid: Grid) -> Grid:
    """Flip top-to-bottom."""
    return Grid(np.flipud(grid.cells))


def rotate_90(grid: Grid, clockwise: bool = True) -> Grid:
    return Grid(np.rot90(grid.cells, k=-1 if clockwise else 1))


def scale(grid: Grid, factor: int) -> Grid:
    """Blow every cell up into a ``factor x factor`` block."""
    if factor < 1:
        raise ValueError("Scale factor must be a positive integer.")
    block = np.ones((factor, factor), dtype=np.int8)
    return Grid(np.kron(grid.cells, block))


def concat_horizontal(left: Grid, right: Grid) -> Grid:
    if left.height != right.height:
        raise ValueError("Grids must share the same height to be concatenated.")
    return Grid(np.hstack([left.cells, right.cells]))
