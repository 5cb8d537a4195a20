"""Spatial queries and breadth-first search over a maze grid.

All functions are pure: they read a :class:`~maze_runner.grid.Grid` and
return plain values. Unreachable goals are reported as ``None`` (or an
empty set) rather than raised, so callers can fall back gracefully.
"""

from __future__ import annotations

import math
from collections import deque
from collections.abc import Iterable, Sequence

from maze_runner.grid import CellType, Grid, Position

# Cardinal directions in (dx, dy) form: up, down, left, right.
CARDINALS: tuple[tuple[int, int], ...] = ((0, -1), (0, 1), (-1, 0), (1, 0))


def in_bounds(grid: Grid, pos: Position) -> bool:
    return grid.in_bounds(pos)


def is_passable(grid: Grid, pos: Position) -> bool:
    """True when *pos* is inside the grid and not a wall."""
    return grid.in_bounds(pos) and grid.get(pos) != CellType.WALL


def manhattan(a: Position, b: Position) -> int:
    return abs(a[0] - b[0]) + abs(a[1] - b[1])


def euclidean(a: Position, b: Position) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])


def adjacent_passable(grid: Grid, pos: Position) -> list[Position]:
    """Return the passable cardinal neighbours of *pos* (up, down, left, right)."""
    x, y = pos
    return [
        Position(x + dx, y + dy)
        for dx, dy in CARDINALS
        if is_passable(grid, Position(x + dx, y + dy))
    ]


def shortest_path(grid: Grid, start: Position, goal: Position) -> list[Position] | None:
    """Breadth-first shortest path from *start* to *goal*, both inclusive.

    Returns ``None`` when either end is impassable or no route exists. The
    visited set keeps the search finite on mazes that contain loops.
    """
    start = Position(*start)
    goal = Position(*goal)
    if not is_passable(grid, start) or not is_passable(grid, goal):
        return None
    if start == goal:
        return [start]

    parents: dict[Position, Position | None] = {start: None}
    queue: deque[Position] = deque([start])
    while queue:
        current = queue.popleft()
        for neighbour in adjacent_passable(grid, current):
            if neighbour in parents:
                continue
            parents[neighbour] = current
            if neighbour == goal:
                return _unwind(parents, goal)
            queue.append(neighbour)
    return None


def _unwind(parents: dict[Position, Position | None], goal: Position) -> list[Position]:
    path = [goal]
    node = parents[goal]
    while node is not None:
        path.append(node)
        node = parents[node]
    path.reverse()
    return path


def line_of_sight(grid: Grid, a: Position, b: Position) -> bool:
    """Bresenham walk from *a* towards *b*.

    Fails on the first impassable cell stepped through before the target;
    the target cell itself is not tested.
    """
    x, y = a
    tx, ty = b
    dx = abs(tx - x)
    dy = abs(ty - y)
    step_x = 1 if x < tx else -1
    step_y = 1 if y < ty else -1
    error = dx - dy

    while (x, y) != (tx, ty):
        if not is_passable(grid, Position(x, y)):
            return False
        doubled = 2 * error
        if doubled > -dy:
            error -= dy
            x += step_x
        if doubled < dx:
            error += dx
            y += step_y
    return True


def nearest_to(target: Position, candidates: Iterable[Position]) -> Position | None:
    """Candidate with the smallest Manhattan distance; first one wins ties."""
    best: Position | None = None
    best_distance = math.inf
    for candidate in candidates:
        distance = manhattan(target, candidate)
        if distance < best_distance:
            best, best_distance = candidate, distance
    return best


def reachable_positions(grid: Grid, start: Position) -> set[Position]:
    """Every non-wall cell connected to *start*; empty if *start* is blocked."""
    start = Position(*start)
    if not is_passable(grid, start):
        return set()
    seen = {start}
    queue: deque[Position] = deque([start])
    while queue:
        for neighbour in adjacent_passable(grid, queue.popleft()):
            if neighbour not in seen:
                seen.add(neighbour)
                queue.append(neighbour)
    return seen


def is_solvable(grid: Grid, start: Position, exit_pos: Position) -> bool:
    return Position(*exit_pos) in reachable_positions(grid, start)


def find_safe_positions(
    grid: Grid,
    threats: Sequence[Position],
    min_distance: int = 3,
) -> list[Position]:
    """Passable cells at least *min_distance* (Manhattan) from every threat."""
    safe: list[Position] = []
    for y in range(grid.height):
        for x in range(grid.width):
            pos = Position(x, y)
            if not is_passable(grid, pos):
                continue
            if all(manhattan(pos, t) >= min_distance for t in threats):
                safe.append(pos)
    return safe
