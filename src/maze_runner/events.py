"""Synchronous event bus for gameplay notifications."""

from __future__ import annotations

import enum
import logging
from collections import deque
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

_HISTORY_SIZE = 256


class EventType(str, enum.Enum):
    MOVE = "move"
    COLLECT = "collect"
    ENEMY_CONTACT = "enemy-contact"
    LEVEL_START = "level-start"
    LEVEL_COMPLETE = "level-complete"
    LEVEL_RESET = "level-reset"
    GAME_OVER = "game-over"
    PAUSE = "pause"
    RESUME = "resume"
    RETURN_TO_MENU = "return-to-menu"


@dataclass(frozen=True)
class GameEvent:
    """A single notification emitted by a session."""

    type: EventType
    timestamp_ms: float
    data: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "timestamp_ms": self.timestamp_ms,
            "data": dict(self.data),
        }


Subscriber = Callable[[GameEvent], None]


class EventBus:
    """Fan-out of :class:`GameEvent` to subscribers, with a bounded history.

    A failing subscriber is logged and skipped; it never interrupts the
    simulation or the remaining subscribers.
    """

    def __init__(self, history_size: int = _HISTORY_SIZE) -> None:
        self._subscribers: list[tuple[Subscriber, frozenset[EventType] | None]] = []
        self.history: deque[GameEvent] = deque(maxlen=history_size)

    def subscribe(
        self,
        callback: Subscriber,
        types: Iterable[EventType] | None = None,
    ) -> Callable[[], None]:
        """Register *callback*; returns a function that unsubscribes it."""
        entry = (callback, frozenset(types) if types is not None else None)
        self._subscribers.append(entry)

        def unsubscribe() -> None:
            if entry in self._subscribers:
                self._subscribers.remove(entry)

        return unsubscribe

    def emit(self, event: GameEvent) -> None:
        self.history.append(event)
        for callback, types in list(self._subscribers):
            if types is not None and event.type not in types:
                continue
            try:
                callback(event)
            except Exception:
                logger.exception("Subscriber failed while handling %s.", event.type.value)

    def latest(self, count: int = 50) -> list[GameEvent]:
        """Return the *count* most recent events."""
        return list(self.history)[-count:]

    def clear(self) -> None:
        self.history.clear()
