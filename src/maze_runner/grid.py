"""Immutable maze grid representation."""

from __future__ import annotations

import enum
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import NamedTuple

import numpy as np


class CellType(enum.IntEnum):
    """Integer codes stored in the grid array."""

    PATH = 0
    WALL = 1
    PLAYER_START = 2
    EXIT = 3
    COLLECTIBLE = 4
    ENEMY_START = 5


_ASCII: dict[CellType, str] = {
    CellType.PATH: " ",
    CellType.WALL: "#",
    CellType.PLAYER_START: "P",
    CellType.EXIT: "E",
    CellType.COLLECTIBLE: "*",
    CellType.ENEMY_START: "M",
}

_CELL_CODES = np.array([cell.value for cell in CellType])


class Position(NamedTuple):
    """Grid coordinate: ``x`` is the column, ``y`` the row."""

    x: int
    y: int

    def offset(self, dx: int, dy: int) -> Position:
        return Position(self.x + dx, self.y + dy)


class OutOfBoundsError(IndexError):
    """Raised when a strict read falls outside the grid."""


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a content check; ``errors`` is empty when valid."""

    errors: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict:
        return {"valid": self.valid, "errors": list(self.errors)}


def validate_maze(rows: Sequence[Sequence[int]]) -> ValidationResult:
    """Check raw authored maze rows before they become a :class:`Grid`.

    Reports an empty maze, rows of differing width, unknown cell codes, a
    missing exit and a missing collectible.
    """
    if not rows:
        return ValidationResult(["Maze is empty"])
    if len(rows[0]) == 0:
        return ValidationResult(["Maze has no columns"])

    errors: list[str] = []
    expected = len(rows[0])
    for index, row in enumerate(rows):
        if len(row) != expected:
            errors.append(f"Row {index} has inconsistent width")
            break

    known = {cell.value for cell in CellType}
    for y, row in enumerate(rows):
        for x, cell in enumerate(row):
            if cell not in known:
                errors.append(f"Unknown cell value {cell} at ({x}, {y})")

    flat = [cell for row in rows for cell in row]
    if flat.count(CellType.EXIT) == 0:
        errors.append("Maze must have at least one exit")
    if flat.count(CellType.COLLECTIBLE) == 0:
        errors.append("Maze should have at least one collectible")
    return ValidationResult(errors)


class Grid:
    """NumPy-backed maze grid with functional update semantics.

    The underlying array is read-only; every update returns a new grid so
    a level template and the in-progress copy of a session never alias.
    Cells are indexed ``cells[y, x]`` to stay consistent with NumPy.
    """

    __slots__ = ("cells",)

    def __init__(self, cells: np.ndarray) -> None:
        raw = np.asarray(cells)
        if raw.ndim != 2 or raw.size == 0:
            raise ValueError("Grid cells must be a non-empty 2D array.")
        unknown = ~np.isin(raw, _CELL_CODES)
        if unknown.any():
            ys, xs = np.nonzero(unknown)
            y, x = int(ys[0]), int(xs[0])
            raise ValueError(f"Unknown cell value {raw[y, x]} at ({x}, {y}).")
        array = raw.astype(np.int8)
        array.setflags(write=False)
        self.cells = array

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[int]]) -> Grid:
        """Build a grid from nested lists, rejecting empty, jagged or
        unknown-valued input."""
        if not rows or not rows[0]:
            raise ValueError("Maze is empty.")
        width = len(rows[0])
        for index, row in enumerate(rows):
            if len(row) != width:
                raise ValueError(f"Row {index} has inconsistent width.")
        return cls(np.asarray(rows))

    @classmethod
    def filled(cls, width: int, height: int, cell_type: CellType = CellType.WALL) -> Grid:
        """Return a grid with every cell set to *cell_type*."""
        if width < 1 or height < 1:
            raise ValueError("Grid dimensions must be positive.")
        return cls(np.full((height, width), cell_type, dtype=np.int8))

    @property
    def width(self) -> int:
        return int(self.cells.shape[1])

    @property
    def height(self) -> int:
        return int(self.cells.shape[0])

    def dimensions(self) -> dict[str, int]:
        return {"width": self.width, "height": self.height}

    def in_bounds(self, pos: Position) -> bool:
        """Check whether a coordinate lies within the grid."""
        x, y = pos
        return 0 <= x < self.width and 0 <= y < self.height

    def cell_at(self, pos: Position) -> CellType:
        """Return the cell type at *pos*, raising when out of bounds."""
        if not self.in_bounds(pos):
            raise OutOfBoundsError(
                f"Position {tuple(pos)} is outside {self.width}x{self.height} grid."
            )
        return CellType(int(self.cells[pos[1], pos[0]]))

    def get(self, pos: Position, default: CellType = CellType.WALL) -> CellType:
        """Tolerant read: out-of-bounds positions report *default*."""
        if not self.in_bounds(pos):
            return default
        return CellType(int(self.cells[pos[1], pos[0]]))

    def with_cell(self, pos: Position, cell_type: CellType) -> Grid:
        """Return a copy with one cell replaced.

        Out-of-bounds positions are a no-op and return this same grid.
        """
        if not self.in_bounds(pos):
            return self
        cells = self.cells.copy()
        cells[pos[1], pos[0]] = cell_type
        return Grid(cells)

    def with_cells(self, positions: Sequence[Position], cell_type: CellType) -> Grid:
        """Batch variant of :meth:`with_cell`; out-of-bounds entries are skipped."""
        cells = self.cells.copy()
        for x, y in positions:
            if 0 <= x < self.width and 0 <= y < self.height:
                cells[y, x] = cell_type
        return Grid(cells)

    def remove_collectible(self, pos: Position) -> Grid:
        return self.with_cell(pos, CellType.PATH)

    def count_cells(self, cell_type: CellType) -> int:
        return int(np.count_nonzero(self.cells == cell_type))

    def find(self, cell_type: CellType) -> list[Position]:
        """Return all positions of *cell_type* in row-major order."""
        rows, cols = np.nonzero(self.cells == cell_type)
        return [
            Position(x, y) for y, x in zip(rows.tolist(), cols.tolist(), strict=True)
        ]

    def exit_positions(self) -> list[Position]:
        return self.find(CellType.EXIT)

    def collectible_positions(self) -> list[Position]:
        return self.find(CellType.COLLECTIBLE)

    def find_start_position(self) -> Position | None:
        """Return the designated player start, else the first open path cell."""
        starts = self.find(CellType.PLAYER_START)
        if starts:
            return starts[0]
        paths = self.find(CellType.PATH)
        return paths[0] if paths else None

    def validate(self) -> ValidationResult:
        return validate_maze(self.to_rows())

    def copy(self) -> Grid:
        return Grid(self.cells)

    def to_rows(self) -> list[list[int]]:
        return self.cells.tolist()

    def to_dict(self) -> dict:
        """Serialize grid state to a dictionary."""
        return {
            "width": self.width,
            "height": self.height,
            "cells": self.to_rows(),
        }

    def to_ascii(self, overlay: dict[Position, str] | None = None) -> str:
        """Render the grid as text, optionally drawing entities on top."""
        overlay = overlay or {}
        lines = []
        for y, row in enumerate(self.cells.tolist()):
            lines.append("".join(
                overlay.get(Position(x, y), _ASCII[CellType(cell)])
                for x, cell in enumerate(row)
            ))
        return "\n".join(lines)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Grid):
            return NotImplemented
        return np.array_equal(self.cells, other.cells)

    def __hash__(self) -> int:
        return hash((self.cells.shape, self.cells.tobytes()))

    def __repr__(self) -> str:
        return f"Grid(width={self.width}, height={self.height})"
