"""Score arithmetic, perfect-run detection and player ranks."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import asdict, dataclass

# (name, minimum total score), highest threshold first.
RANKS: tuple[tuple[str, int], ...] = (
    ("Master", 20000),
    ("Expert", 10000),
    ("Advanced", 5000),
    ("Intermediate", 2500),
    ("Novice", 1000),
    ("Beginner", 0),
)


def rank_for_score(total_score: int) -> str:
    for name, threshold in RANKS:
        if total_score >= threshold:
            return name
    return RANKS[-1][0]


def time_bonus(time_remaining: int, multiplier: int) -> int:
    return max(0, time_remaining) * multiplier


def level_score(base_score: int, time_remaining: int, multiplier: int) -> int:
    """Score credited for a completed level: base plus the time bonus."""
    return base_score + time_bonus(time_remaining, multiplier)


def is_perfect_run(collected: int, required: int, time_remaining: int) -> bool:
    """All collectibles gathered with time still on the clock."""
    return collected == required and time_remaining > 0


@dataclass(frozen=True)
class LevelStats:
    """Summary of one completed level."""

    level_index: int
    level_id: int
    name: str
    score: int
    time_bonus: int
    total: int
    collected: int
    required: int
    time_remaining: int
    time_used: int
    perfect: bool

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class FinalStats:
    """Aggregate results across a run of completed levels."""

    total_score: int
    total_time: int
    levels_completed: int
    total_collected: int
    perfect_levels: int
    rank: str

    @classmethod
    def from_levels(cls, results: Sequence[LevelStats]) -> FinalStats:
        total = sum(r.total for r in results)
        return cls(
            total_score=total,
            total_time=sum(r.time_used for r in results),
            levels_completed=len(results),
            total_collected=sum(r.collected for r in results),
            perfect_levels=sum(1 for r in results if r.perfect),
            rank=rank_for_score(total),
        )

    def to_dict(self) -> dict:
        return asdict(self)
