"""Deterministic tick driver on an explicit millisecond clock."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class _Job:
    handle: int
    period_ms: float
    callback: Callable[[], None]
    next_due_ms: float


class TickScheduler:
    """Fixed-interval callbacks driven by :meth:`advance` instead of real time.

    The clock only moves while the scheduler is running, so pausing
    freezes every job's remaining time to its next fire. Due jobs are
    re-read after every callback, so a job cancelled mid-advance never
    fires again even if it was already due.
    """

    def __init__(self) -> None:
        self._now_ms = 0.0
        self._jobs: dict[int, _Job] = {}
        self._next_handle = 0
        self._paused = False

    @property
    def now_ms(self) -> float:
        return self._now_ms

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def active_jobs(self) -> int:
        return len(self._jobs)

    def schedule_every(self, period_ms: float, callback: Callable[[], None]) -> int:
        """Run *callback* every *period_ms* from now; returns a cancel handle."""
        if period_ms <= 0:
            raise ValueError("period_ms must be positive.")
        handle = self._next_handle
        self._next_handle += 1
        self._jobs[handle] = _Job(
            handle=handle,
            period_ms=period_ms,
            callback=callback,
            next_due_ms=self._now_ms + period_ms,
        )
        return handle

    def cancel(self, handle: int) -> bool:
        return self._jobs.pop(handle, None) is not None

    def cancel_all(self) -> None:
        """Drop every job and invalidate any callback still pending."""
        self._jobs.clear()

    def pause(self) -> None:
        self._paused = True

    def resume(self) -> None:
        self._paused = False

    def advance(self, ms: float) -> int:
        """Move the clock forward by *ms*, firing due jobs in time order.

        Returns the number of callbacks fired. Does nothing while paused.
        """
        if ms < 0:
            raise ValueError("Cannot advance the clock backwards.")
        if self._paused:
            return 0

        target = self._now_ms + ms
        fired = 0
        while not self._paused:
            due = [job for job in self._jobs.values() if job.next_due_ms <= target]
            if not due:
                break
            job = min(due, key=lambda j: (j.next_due_ms, j.handle))
            self._now_ms = job.next_due_ms
            job.next_due_ms += job.period_ms
            job.callback()
            fired += 1
        if not self._paused:
            self._now_ms = target
        return fired
