"""Tests for the deterministic tick scheduler."""

import pytest

from maze_runner.scheduler import TickScheduler


class TestScheduling:
    def test_fires_on_period(self):
        sched = TickScheduler()
        calls = []
        sched.schedule_every(100, lambda: calls.append(sched.now_ms))
        assert sched.advance(350) == 3
        assert calls == [100, 200, 300]
        assert sched.now_ms == 350

    def test_partial_periods_accumulate(self):
        sched = TickScheduler()
        calls = []
        sched.schedule_every(100, lambda: calls.append(1))
        sched.advance(60)
        sched.advance(60)
        assert len(calls) == 1

    def test_jobs_fire_in_time_order(self):
        sched = TickScheduler()
        order = []
        sched.schedule_every(300, lambda: order.append("slow"))
        sched.schedule_every(200, lambda: order.append("fast"))
        sched.advance(600)
        assert order == ["fast", "slow", "fast", "slow", "fast"]

    def test_ties_fire_in_schedule_order(self):
        sched = TickScheduler()
        order = []
        sched.schedule_every(100, lambda: order.append("a"))
        sched.schedule_every(100, lambda: order.append("b"))
        sched.advance(100)
        assert order == ["a", "b"]

    def test_rejects_non_positive_period(self):
        with pytest.raises(ValueError):
            TickScheduler().schedule_every(0, lambda: None)

    def test_rejects_negative_advance(self):
        with pytest.raises(ValueError):
            TickScheduler().advance(-1)


class TestCancellation:
    def test_cancel(self):
        sched = TickScheduler()
        calls = []
        handle = sched.schedule_every(100, lambda: calls.append(1))
        assert sched.cancel(handle)
        assert not sched.cancel(handle)
        sched.advance(500)
        assert calls == []

    def test_cancel_all_inside_callback_stops_pending_jobs(self):
        sched = TickScheduler()
        calls = []

        def stop():
            calls.append("stop")
            sched.cancel_all()

        sched.schedule_every(100, stop)
        sched.schedule_every(100, lambda: calls.append("other"))
        sched.advance(1000)
        assert calls == ["stop"]
        assert sched.active_jobs == 0

    def test_job_scheduled_in_callback_starts_from_fire_time(self):
        sched = TickScheduler()
        calls = []

        def spawn():
            sched.cancel_all()
            sched.schedule_every(50, lambda: calls.append(sched.now_ms))

        sched.schedule_every(100, spawn)
        sched.advance(200)
        assert calls == [150, 200]


class TestPause:
    def test_paused_clock_does_not_move(self):
        sched = TickScheduler()
        calls = []
        sched.schedule_every(100, lambda: calls.append(1))
        sched.advance(50)
        sched.pause()
        assert sched.advance(1000) == 0
        assert sched.now_ms == 50
        sched.resume()
        sched.advance(50)
        assert calls == [1]

    def test_pause_inside_callback_freezes_clock(self):
        sched = TickScheduler()
        sched.schedule_every(100, sched.pause)
        sched.advance(1000)
        assert sched.paused
        assert sched.now_ms == 100
