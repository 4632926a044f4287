"""Tests for _timers module."""

import threading
import time

from pidwatch._timers import ManualTimers, ThreadingTimers, TimerFacility


class TestManualTimers:
    def test_fires_in_deadline_order(self) -> None:
        timers = ManualTimers()
        order: list[str] = []
        timers.schedule(2.0, lambda: order.append("late"))
        timers.schedule(1.0, lambda: order.append("early"))

        ran = timers.advance(3.0)
        assert ran == 2
        assert order == ["early", "late"]
        assert timers.fired == 2

    def test_nothing_fires_before_deadline(self) -> None:
        timers = ManualTimers()
        called: list[bool] = []
        timers.schedule(1.0, lambda: called.append(True))
        timers.advance(0.5)
        assert called == []
        assert timers.pending == 1

    def test_cancel_prevents_firing(self) -> None:
        timers = ManualTimers()
        called: list[bool] = []
        handle = timers.schedule(1.0, lambda: called.append(True))
        timers.cancel(handle)
        timers.advance(2.0)
        assert called == []
        assert timers.pending == 0
        assert timers.cancelled == 1

    def test_cancel_after_fire_is_ignored(self) -> None:
        timers = ManualTimers()
        handle = timers.schedule(1.0, lambda: None)
        timers.advance(1.0)
        timers.cancel(handle)
        assert timers.cancelled == 0

    def test_clock_tracks_callback_deadline(self) -> None:
        timers = ManualTimers(start=10.0)
        seen: list[float] = []
        timers.schedule(1.5, lambda: seen.append(timers.now()))
        timers.advance(5.0)
        assert seen == [11.5]
        assert timers.now() == 15.0

    def test_satisfies_protocol(self) -> None:
        assert isinstance(ManualTimers(), TimerFacility)


class TestThreadingTimers:
    def test_callback_runs(self) -> None:
        done = threading.Event()
        ThreadingTimers().schedule(0.01, done.set)
        assert done.wait(timeout=2.0)

    def test_cancel_prevents_callback(self) -> None:
        timers = ThreadingTimers()
        called: list[bool] = []
        handle = timers.schedule(0.1, lambda: called.append(True))
        timers.cancel(handle)
        time.sleep(0.25)
        assert called == []

    def test_timer_thread_is_daemon(self) -> None:
        timers = ThreadingTimers()
        handle = timers.schedule(10.0, lambda: None)
        assert handle.daemon is True
        timers.cancel(handle)

    def test_satisfies_protocol(self) -> None:
        assert isinstance(ThreadingTimers(), TimerFacility)
