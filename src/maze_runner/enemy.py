"""Enemy state and per-tick movement decisions.

Two behaviour strategies share the same :class:`Enemy` record and differ
only in the decision function:

* ``patrol-and-chase``: a chance-weighted greedy step towards the player,
  otherwise a random walk that avoids recently visited cells.
* ``personality-weighted-search``: sight-driven state transitions plus a
  bounded best-first search whose cost is shaped by the enemy's
  personality.
"""

from __future__ import annotations

import enum
import heapq
import itertools
import logging
from collections import Counter, deque
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

import numpy as np

from maze_runner.difficulty import DifficultySettings
from maze_runner.grid import CellType, Grid, Position
from maze_runner.pathfinding import (
    CARDINALS,
    adjacent_passable,
    is_passable,
    line_of_sight,
    manhattan,
)

logger = logging.getLogger(__name__)

HISTORY_LENGTH = 3
SEARCH_DEPTH_SCALE = 15
VISIBILITY_RADIUS = 5
AMBUSH_CHANCE = 0.3


class EnemyState(str, enum.Enum):
    PATROLLING = "patrolling"
    CHASING = "chasing"
    SEARCHING = "searching"


class PersonalityType(str, enum.Enum):
    HUNTER = "hunter"
    GUARDIAN = "guardian"
    SCOUT = "scout"
    AMBUSHER = "ambusher"
    SWARM = "swarm"


class BehaviorStrategy(str, enum.Enum):
    PATROL_AND_CHASE = "patrol-and-chase"
    PERSONALITY = "personality-weighted-search"


# (aggressiveness, intelligence, patience, cooperation) before difficulty scaling.
_BASE_TRAITS: dict[PersonalityType, tuple[float, float, float, float]] = {
    PersonalityType.HUNTER: (0.9, 0.6, 0.2, 0.3),
    PersonalityType.GUARDIAN: (0.4, 0.8, 0.9, 0.7),
    PersonalityType.SCOUT: (0.5, 0.9, 0.6, 0.8),
    PersonalityType.AMBUSHER: (0.7, 0.7, 0.9, 0.4),
    PersonalityType.SWARM: (0.6, 0.5, 0.4, 0.9),
}

_PERSONALITY_ORDER: tuple[PersonalityType, ...] = tuple(PersonalityType)


@dataclass(frozen=True)
class Personality:
    """Behavioural traits, each in ``[0, 1]``."""

    type: PersonalityType
    aggressiveness: float
    intelligence: float
    patience: float
    cooperation: float

    def __post_init__(self) -> None:
        for name in ("aggressiveness", "intelligence", "patience", "cooperation"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1], got {value}.")

    @classmethod
    def for_index(
        cls, index: int, settings: DifficultySettings | None = None,
    ) -> Personality:
        """Assign personalities round-robin, scaled by difficulty."""
        kind = _PERSONALITY_ORDER[index % len(_PERSONALITY_ORDER)]
        aggressiveness, intelligence, patience, cooperation = _BASE_TRAITS[kind]
        if settings is not None:
            aggressiveness *= settings.aggressiveness
            intelligence *= settings.intelligence
            patience *= settings.patience
        return cls(kind, aggressiveness, intelligence, patience, cooperation)

    @property
    def search_depth(self) -> float:
        return self.intelligence * SEARCH_DEPTH_SCALE


@dataclass
class Enemy:
    """A single pursuer.

    ``history`` holds the most recent prior positions, oldest first.
    """

    enemy_id: str
    position: Position
    state: EnemyState = EnemyState.PATROLLING
    history: deque[Position] = field(
        default_factory=lambda: deque(maxlen=HISTORY_LENGTH),
    )
    personality: Personality | None = None
    group: str | None = None
    target: Position | None = None
    last_player_sight: Position | None = None
    frustration: int = 0

    def commit_move(self, new_position: Position) -> None:
        """Record the current cell in history and step to *new_position*."""
        self.history.append(self.position)
        self.position = Position(*new_position)

    def to_dict(self) -> dict:
        data = {
            "id": self.enemy_id,
            "position": list(self.position),
            "state": self.state.value,
        }
        if self.personality is not None:
            data["personality"] = self.personality.type.value
        return data


def is_player_caught(player: Position, enemy_positions: Sequence[Position]) -> bool:
    return any(tuple(pos) == tuple(player) for pos in enemy_positions)


def greedy_step(grid: Grid, origin: Position, target: Position) -> Position | None:
    """Passable neighbour closest to *target*; the first one wins ties."""
    best: Position | None = None
    best_distance: int | None = None
    for candidate in adjacent_passable(grid, origin):
        distance = manhattan(candidate, target)
        if best_distance is None or distance < best_distance:
            best, best_distance = candidate, distance
    return best


def random_step(enemy: Enemy, grid: Grid, rng: np.random.Generator) -> Position | None:
    """Random passable neighbour, preferring cells not in recent history.

    Falls back to any passable neighbour when all of them were visited
    recently, so a dead end never stalls the enemy.
    """
    options = adjacent_passable(grid, enemy.position)
    if not options:
        return None
    fresh = [pos for pos in options if pos not in enemy.history]
    pool = fresh or options
    return pool[int(rng.integers(len(pool)))]


def choose_patrol_and_chase_move(
    enemy: Enemy,
    grid: Grid,
    player: Position,
    rng: np.random.Generator,
    chase_probability: float,
) -> Position | None:
    if rng.random() < chase_probability:
        step = greedy_step(grid, enemy.position, player)
        if step is not None:
            enemy.state = EnemyState.CHASING
            enemy.target = Position(*player)
            enemy.last_player_sight = Position(*player)
            return step
    enemy.state = EnemyState.PATROLLING
    enemy.target = None
    return random_step(enemy, grid, rng)


def visibility_map(grid: Grid, radius: int = VISIBILITY_RADIUS) -> np.ndarray:
    """Score every cell by how much open floor surrounds it.

    Each open cell within Manhattan distance ``d < radius`` contributes
    ``radius - d``.
    """
    open_cells = (grid.cells != CellType.WALL).astype(np.int32)
    h, w = open_cells.shape
    padded = np.pad(open_cells, radius)
    scores = np.zeros((h, w), dtype=np.int32)
    for dy in range(-radius, radius + 1):
        for dx in range(-radius, radius + 1):
            weight = radius - abs(dx) - abs(dy)
            if weight <= 0:
                continue
            scores += weight * padded[
                radius + dy:radius + dy + h, radius + dx:radius + dx + w
            ]
    return scores


def predict_player_moves(
    grid: Grid, player: Position, trail: Sequence[Position], limit: int = 2,
) -> list[Position]:
    """Likely next player cells, ranked by how often each heading was used."""
    counts: Counter[tuple[int, int]] = Counter()
    for prev, cur in itertools.pairwise(trail):
        step = (cur[0] - prev[0], cur[1] - prev[1])
        if step in CARDINALS:
            counts[step] += 1
    options = [
        (Position(player[0] + dx, player[1] + dy), counts[(dx, dy)])
        for dx, dy in CARDINALS
        if is_passable(grid, Position(player[0] + dx, player[1] + dy))
    ]
    options.sort(key=lambda item: -item[1])
    return [pos for pos, _ in options[:limit]]


def position_value(
    pos: Position,
    enemy: Enemy,
    player: Position,
    *,
    squad: Sequence[Enemy] = (),
    predicted: Sequence[Position] = (),
    visibility: np.ndarray | None = None,
) -> float:
    """Personality-specific desirability of standing on *pos*."""
    personality = enemy.personality
    if personality is None:
        return 0.0
    distance = manhattan(pos, player)
    kind = personality.type
    if kind is PersonalityType.HUNTER:
        return max(0, 10 - distance)
    if kind is PersonalityType.GUARDIAN:
        # Holds a stand-off distance of four cells.
        return 5 - abs(distance - 4)
    if kind is PersonalityType.SCOUT:
        return float(visibility[pos[1], pos[0]]) if visibility is not None else 0.0
    if kind is PersonalityType.AMBUSHER:
        return sum(max(0, 3 - manhattan(pos, p)) for p in predicted)
    mates = [
        other for other in squad
        if other is not enemy and other.group == enemy.group
    ]
    return personality.cooperation * sum(
        max(0, 5 - manhattan(pos, other.position)) for other in mates
    )


def best_first_step(
    grid: Grid,
    start: Position,
    target: Position,
    value: Callable[[Position], float],
    max_depth: float,
) -> Position | None:
    """First step of a value-weighted best-first search towards *target*.

    Each hop costs ``1 - 0.1 * value(cell)``. Paths longer than
    *max_depth* cells are abandoned, and ``None`` is returned when the
    target is out of reach or already occupied.
    """
    start = Position(*start)
    target = Position(*target)
    if start == target:
        return None
    counter = itertools.count()
    frontier: list[tuple[float, int, Position, tuple[Position, ...]]] = [
        (0.0, next(counter), start, (start,)),
    ]
    visited: set[Position] = set()
    while frontier:
        cost, _, pos, path = heapq.heappop(frontier)
        if pos in visited or len(path) > max_depth:
            continue
        visited.add(pos)
        if pos == target:
            return path[1]
        for neighbour in adjacent_passable(grid, pos):
            if neighbour not in visited:
                step_cost = 1 - value(neighbour) * 0.1
                heapq.heappush(
                    frontier,
                    (cost + step_cost, next(counter), neighbour, (*path, neighbour)),
                )
    return None


def update_personality_state(
    enemy: Enemy,
    grid: Grid,
    player: Position,
    rng: np.random.Generator,
    sight_range: int,
    player_trail: Sequence[Position] = (),
) -> None:
    """Advance the patrol/chase/search machine for one tick.

    A patrolling ambusher may instead start searching towards the cell
    the player is predicted to step onto next.
    """
    personality = enemy.personality
    assert personality is not None  # noqa: S101
    player = Position(*player)
    distance = manhattan(enemy.position, player)
    sees = distance <= sight_range and line_of_sight(grid, enemy.position, player)

    if enemy.state is EnemyState.PATROLLING:
        if sees and rng.random() < personality.aggressiveness:
            enemy.state = EnemyState.CHASING
            enemy.target = player
            enemy.frustration = 0
    elif enemy.state is EnemyState.CHASING:
        if not sees:
            if personality.intelligence > 0.7 and enemy.last_player_sight is not None:
                enemy.state = EnemyState.SEARCHING
                enemy.target = enemy.last_player_sight
            else:
                enemy.state = EnemyState.PATROLLING
                enemy.target = None
        else:
            enemy.target = player
            enemy.frustration = enemy.frustration + 1 if distance > 3 else 0
    elif sees:
        enemy.state = EnemyState.CHASING
        enemy.target = player
        enemy.frustration = 0
    elif (
        enemy.frustration > personality.patience * 10
        or enemy.target is None
        or enemy.position == enemy.target
    ):
        enemy.state = EnemyState.PATROLLING
        enemy.target = None
        enemy.frustration = 0
    else:
        enemy.frustration += 1

    if (
        personality.type is PersonalityType.AMBUSHER
        and enemy.state is EnemyState.PATROLLING
        and rng.random() < AMBUSH_CHANCE
    ):
        predicted = predict_player_moves(grid, player, player_trail)
        if predicted:
            enemy.state = EnemyState.SEARCHING
            enemy.target = predicted[0]
            enemy.frustration = 0

    if sees:
        enemy.last_player_sight = player


def choose_personality_move(
    enemy: Enemy,
    grid: Grid,
    player: Position,
    rng: np.random.Generator,
    *,
    squad: Sequence[Enemy] = (),
    player_trail: Sequence[Position] = (),
    sight_range: int = 5,
) -> Position | None:
    personality = enemy.personality
    if personality is None:
        raise ValueError(f"Enemy {enemy.enemy_id} has no personality assigned.")

    update_personality_state(enemy, grid, player, rng, sight_range, player_trail)

    move: Position | None = None
    if enemy.target is not None:
        visibility = (
            visibility_map(grid) if personality.type is PersonalityType.SCOUT else None
        )
        predicted = (
            predict_player_moves(grid, player, player_trail)
            if personality.type is PersonalityType.AMBUSHER else ()
        )

        def value(pos: Position) -> float:
            return position_value(
                pos, enemy, player,
                squad=squad, predicted=predicted, visibility=visibility,
            )

        move = best_first_step(
            grid, enemy.position, enemy.target, value, personality.search_depth,
        )
    if move is None:
        move = random_step(enemy, grid, rng)

    # Less aggressive enemies sometimes hold their ground.
    if rng.random() >= personality.aggressiveness * 0.8 + 0.2:
        return None
    return move


class EnemySquad:
    """All enemies of one session, ticked together.

    Capture is not checked per enemy; callers test
    :meth:`caught` once after the whole squad has moved.
    """

    def __init__(
        self,
        strategy: BehaviorStrategy = BehaviorStrategy.PATROL_AND_CHASE,
        *,
        chase_probability: float = 0.3,
        history_length: int = HISTORY_LENGTH,
        sight_range: int = 5,
        settings: DifficultySettings | None = None,
    ) -> None:
        if not 0.0 <= chase_probability <= 1.0:
            raise ValueError("chase_probability must be within [0, 1].")
        if history_length < 1:
            raise ValueError("history_length must be at least 1.")
        self.strategy = BehaviorStrategy(strategy)
        self.chase_probability = chase_probability
        self.history_length = history_length
        self.sight_range = sight_range
        self.settings = settings
        self.enemies: list[Enemy] = []

    def reset(self, origins: Sequence[Position]) -> None:
        """Recreate enemies at *origins*, discarding state and history."""
        personalities = self.strategy is BehaviorStrategy.PERSONALITY
        self.enemies = [
            Enemy(
                enemy_id=f"enemy-{i}",
                position=Position(*pos),
                history=deque(maxlen=self.history_length),
                personality=Personality.for_index(i, self.settings) if personalities else None,
                group=str(i // 2),
            )
            for i, pos in enumerate(origins)
        ]

    def clear(self) -> None:
        self.enemies = []

    def tick(
        self,
        grid: Grid,
        player: Position,
        rng: np.random.Generator,
        player_trail: Sequence[Position] = (),
    ) -> list[Position]:
        """Move every enemy once and return the new positions."""
        for enemy in self.enemies:
            previous_state = enemy.state
            if self.strategy is BehaviorStrategy.PATROL_AND_CHASE:
                move = choose_patrol_and_chase_move(
                    enemy, grid, player, rng, self.chase_probability,
                )
            else:
                move = choose_personality_move(
                    enemy, grid, player, rng,
                    squad=self.enemies,
                    player_trail=player_trail,
                    sight_range=self.sight_range,
                )
            if move is not None:
                enemy.commit_move(move)
            if enemy.state is not previous_state:
                logger.debug(
                    "%s: %s -> %s", enemy.enemy_id,
                    previous_state.value, enemy.state.value,
                )
        return self.positions()

    def positions(self) -> list[Position]:
        return [enemy.position for enemy in self.enemies]

    def caught(self, player: Position) -> bool:
        return is_player_caught(player, self.positions())

    def to_dict(self) -> list[dict]:
        return [enemy.to_dict() for enemy in self.enemies]
