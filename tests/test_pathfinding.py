"""Tests for spatial queries and pathfinding."""

import pytest

from maze_runner.grid import CellType, Grid, Position
from maze_runner.pathfinding import (
    adjacent_passable,
    euclidean,
    find_safe_positions,
    is_passable,
    is_solvable,
    line_of_sight,
    manhattan,
    nearest_to,
    reachable_positions,
    shortest_path,
)

W, P = CellType.WALL, CellType.PATH

# Two corridors leave (1, 1) and meet nowhere; (5, 3) is a dead end.
ROWS = [
    [W, W, W, W, W, W, W],
    [W, P, P, P, P, P, W],
    [W, P, W, W, W, P, W],
    [W, P, P, P, W, P, W],
    [W, W, W, W, W, W, W],
]


@pytest.fixture()
def grid():
    return Grid.from_rows(ROWS)


def open_room(size=7):
    grid = Grid.filled(size, size, CellType.WALL)
    inner = [Position(x, y) for x in range(1, size - 1) for y in range(1, size - 1)]
    return grid.with_cells(inner, CellType.PATH)


class TestDistances:
    def test_manhattan(self):
        assert manhattan(Position(1, 1), Position(4, 5)) == 7
        assert manhattan(Position(2, 2), Position(2, 2)) == 0

    def test_euclidean(self):
        assert euclidean(Position(0, 0), Position(3, 4)) == pytest.approx(5.0)


class TestPassability:
    def test_walls_and_bounds(self, grid):
        assert is_passable(grid, Position(1, 1))
        assert not is_passable(grid, Position(0, 0))
        assert not is_passable(grid, Position(-1, 1))
        assert not is_passable(grid, Position(7, 1))

    def test_non_wall_specials_are_passable(self, grid):
        g = grid.with_cell(Position(2, 1), CellType.EXIT)
        assert is_passable(g, Position(2, 1))

    def test_adjacent_passable_order(self, grid):
        assert adjacent_passable(grid, Position(1, 1)) == [
            Position(1, 2), Position(2, 1),
        ]


class TestShortestPath:
    def test_path_includes_both_ends(self, grid):
        path = shortest_path(grid, Position(1, 1), Position(3, 3))
        assert path == [
            Position(1, 1), Position(1, 2), Position(1, 3),
            Position(2, 3), Position(3, 3),
        ]

    def test_consecutive_steps_are_orthogonal(self, grid):
        path = shortest_path(grid, Position(3, 3), Position(5, 3))
        assert path is not None
        for a, b in zip(path, path[1:]):
            assert manhattan(a, b) == 1
            assert is_passable(grid, b)

    def test_start_equals_goal(self, grid):
        assert shortest_path(grid, Position(1, 1), Position(1, 1)) == [Position(1, 1)]

    def test_unreachable(self):
        grid = Grid.from_rows([[P, W, P]])
        assert shortest_path(grid, Position(0, 0), Position(2, 0)) is None

    def test_wall_endpoint(self, grid):
        assert shortest_path(grid, Position(0, 0), Position(1, 1)) is None
        assert shortest_path(grid, Position(1, 1), Position(2, 2)) is None

    def test_straight_corridor(self):
        walls = Grid.filled(5, 5)
        grid = walls.with_cells([Position(x, 2) for x in range(5)], CellType.PATH)
        path = shortest_path(grid, Position(0, 2), Position(4, 2))
        assert len(path) - 1 == manhattan(Position(0, 2), Position(4, 2))
        blocked = grid.with_cell(Position(2, 2), CellType.WALL)
        assert shortest_path(blocked, Position(0, 2), Position(4, 2)) is None

    def test_length_is_minimal_in_open_room(self):
        grid = open_room()
        path = shortest_path(grid, Position(1, 1), Position(5, 5))
        assert len(path) == manhattan(Position(1, 1), Position(5, 5)) + 1

    def test_terminates_on_loops(self):
        grid = open_room(9)
        assert shortest_path(grid, Position(1, 1), Position(0, 0)) is None


class TestLineOfSight:
    def test_clear_corridor(self, grid):
        assert line_of_sight(grid, Position(1, 1), Position(5, 1))

    def test_blocked_by_wall(self, grid):
        assert not line_of_sight(grid, Position(1, 3), Position(5, 1))

    def test_target_cell_not_checked(self, grid):
        assert line_of_sight(grid, Position(1, 1), Position(1, 0))

    def test_same_cell(self, grid):
        assert line_of_sight(grid, Position(2, 1), Position(2, 1))


class TestQueries:
    def test_nearest_to_first_wins_ties(self):
        target = Position(3, 3)
        candidates = [Position(3, 5), Position(5, 3), Position(1, 1)]
        assert nearest_to(target, candidates) == Position(3, 5)

    def test_nearest_to_empty(self):
        assert nearest_to(Position(0, 0), []) is None

    def test_reachable_positions(self, grid):
        reach = reachable_positions(grid, Position(1, 1))
        assert Position(5, 3) in reach
        assert len(reach) == 11

    def test_reachable_from_wall_is_empty(self, grid):
        assert reachable_positions(grid, Position(0, 0)) == set()

    def test_is_solvable(self, grid):
        assert is_solvable(grid, Position(1, 1), Position(5, 3))
        blocked = grid.with_cell(Position(5, 2), CellType.WALL)
        assert not is_solvable(blocked, Position(1, 1), Position(5, 3))

    def test_find_safe_positions(self, grid):
        safe = find_safe_positions(grid, [Position(1, 1)], min_distance=4)
        assert Position(3, 1) not in safe
        assert Position(5, 1) in safe
        assert all(manhattan(p, Position(1, 1)) >= 4 for p in safe)

    def test_find_safe_positions_without_threats(self, grid):
        assert len(find_safe_positions(grid, [])) == 11
