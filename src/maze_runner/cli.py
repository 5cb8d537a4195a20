"""Developer CLI for generating and checking mazes."""

from __future__ import annotations

import argparse
import logging
import sys

from maze_runner.generator import (
    MAX_SIZE,
    MIN_SIZE,
    MazeGenerator,
    add_loops,
    remove_dead_ends,
)
from maze_runner.grid import CellType, Position
from maze_runner.level import LEVELS
from maze_runner.pathfinding import is_solvable

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="maze-runner",
        description="Maze Runner maze generation and level tools.",
    )
    sub = parser.add_subparsers(dest="command", help="Available commands.")

    # --- generate ---
    gen_p = sub.add_parser("generate", help="Generate and print a maze.")
    gen_p.add_argument("--width", type=int, default=MIN_SIZE)
    gen_p.add_argument("--height", type=int, default=MIN_SIZE)
    gen_p.add_argument("--collectibles", type=int, default=3)
    gen_p.add_argument("--seed", type=int, default=None)
    gen_p.add_argument(
        "--loops", type=int, default=0,
        help="Number of extra walls to knock down.",
    )
    gen_p.add_argument(
        "--prune", action="store_true",
        help="Wall off dead-end corridors after generation.",
    )

    # --- validate ---
    sub.add_parser("validate", help="Check the bundled levels.")

    return parser


def _run_generate(args: argparse.Namespace) -> int:
    if not MIN_SIZE <= args.width <= MAX_SIZE or not MIN_SIZE <= args.height <= MAX_SIZE:
        logger.error("Dimensions must be between %d and %d.", MIN_SIZE, MAX_SIZE)
        return 2

    generator = MazeGenerator(seed=args.seed)
    try:
        grid = generator.generate(args.width, args.height, args.collectibles)
    except (RuntimeError, ValueError) as exc:
        logger.error("%s", exc)
        return 1

    start = Position(1, 1)
    exit_pos = grid.exit_positions()[0]
    if args.loops:
        grid = add_loops(grid, args.loops, generator.rng)
    if args.prune:
        grid = remove_dead_ends(grid, keep=[start])

    print(grid.to_ascii({start: "P"}))  # noqa: T201
    solvable = is_solvable(grid, start, exit_pos)
    print(  # noqa: T201
        f"{grid.width}x{grid.height}, "
        f"{grid.count_cells(CellType.COLLECTIBLE)} collectibles, solvable={solvable}"
    )
    return 0 if solvable else 1


def _run_validate(args: argparse.Namespace) -> int:
    failures = 0
    for level in LEVELS:
        result = level.validate()
        status = "ok" if result.valid else "INVALID"
        print(f"Level {level.id} ({level.name}): {status}")  # noqa: T201
        for error in result.errors:
            print(f"  - {error}")  # noqa: T201
        failures += not result.valid
    return 1 if failures else 0


def main(argv: list[str] | None = None) -> int:
    """Entry point for the ``maze-runner`` CLI."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    handlers = {
        "generate": _run_generate,
        "validate": _run_validate,
    }
    return handlers[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
