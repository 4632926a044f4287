"""Timer facility used to schedule one-shot evictions."""

from __future__ import annotations

import heapq
import itertools
import threading
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

TimerCallback = Callable[[], None]


@runtime_checkable
class TimerFacility(Protocol):
    """Schedule-once-after-delay with cancel-by-handle semantics."""

    def schedule(self, delay_s: float, callback: TimerCallback) -> Any: ...

    def cancel(self, handle: Any) -> None: ...


class ThreadingTimers:
    """Real timers backed by one daemon ``threading.Timer`` per schedule."""

    def schedule(self, delay_s: float, callback: TimerCallback) -> threading.Timer:
        timer = threading.Timer(delay_s, callback)
        timer.daemon = True
        timer.start()
        return timer

    def cancel(self, handle: threading.Timer) -> None:
        # No-op if the timer already fired.
        handle.cancel()


class _ManualHandle:
    __slots__ = ("deadline", "seq", "callback", "cancelled")

    def __init__(self, deadline: float, seq: int, callback: TimerCallback) -> None:
        self.deadline = deadline
        self.seq = seq
        self.callback = callback
        self.cancelled = False

    def __lt__(self, other: _ManualHandle) -> bool:
        return (self.deadline, self.seq) < (other.deadline, other.seq)


class ManualTimers:
    """Test-only timer facility driven by a virtual clock.

    Nothing fires until :meth:`advance` moves the clock past a deadline.
    Pass :meth:`now` as the reconciler's clock so ``stale_since`` values
    line up with the virtual time::

        timers = ManualTimers()
        reconciler = EntityReconciler(process_id, timers=timers, clock=timers.now)
        timers.advance(5.0)
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._heap: list[_ManualHandle] = []
        self._seq = itertools.count()
        self.fired: int = 0
        self.scheduled: int = 0
        self.cancelled: int = 0

    def now(self) -> float:
        return self._now

    def schedule(self, delay_s: float, callback: TimerCallback) -> _ManualHandle:
        handle = _ManualHandle(self._now + delay_s, next(self._seq), callback)
        heapq.heappush(self._heap, handle)
        self.scheduled += 1
        return handle

    def cancel(self, handle: _ManualHandle) -> None:
        if not handle.cancelled:
            handle.cancelled = True
            self.cancelled += 1

    def advance(self, seconds: float) -> int:
        """Move the clock forward and run every callback that came due.

        Returns the number of callbacks executed.
        """
        target = self._now + seconds
        ran = 0
        while self._heap and self._heap[0].deadline <= target:
            handle = heapq.heappop(self._heap)
            if handle.cancelled:
                continue
            # Fired handles ignore later cancels.
            handle.cancelled = True
            self._now = handle.deadline
            handle.callback()
            self.fired += 1
            ran += 1
        self._now = target
        return ran

    @property
    def pending(self) -> int:
        """Number of scheduled, not yet fired or cancelled timers."""
        return sum(1 for h in self._heap if not h.cancelled)
