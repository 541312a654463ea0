# scheduler.py
# Periodic tick sources for the simulation driver.
#
# LogicalScheduler advances only when told to (deterministic, used by the CLI
# and tests). ThreadingScheduler runs every callback on a single worker thread.

import heapq
import itertools
import logging
import threading
import time
from typing import Callable, List, Optional, Protocol

logger = logging.getLogger(__name__)

_EPSILON = 1e-9


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_every(self, interval_s: float, callback: Callable[[], None]) -> TimerHandle: ...


# ---------------------------------------------------------------------------
# Logical time
# ---------------------------------------------------------------------------

class _LogicalTimer:
    def __init__(self, scheduler: "LogicalScheduler", interval_s: float,
                 callback: Callable[[], None], seq: int) -> None:
        self._scheduler = scheduler
        self.interval_s = interval_s
        self.callback = callback
        self.seq = seq
        self.origin = scheduler.now
        self.fired = 0
        self.cancelled = False

    @property
    def due(self) -> float:
        return self.origin + (self.fired + 1) * self.interval_s

    def cancel(self) -> None:
        self.cancelled = True
        self._scheduler._discard(self)


class LogicalScheduler:
    """
    Scheduler driven by explicit calls to advance().

    Usage:
        scheduler = LogicalScheduler()
        scheduler.call_every(0.5, tick)
        scheduler.advance(2.0)    # tick fires four times
    """

    def __init__(self) -> None:
        self.now: float = 0.0
        self._timers: List[_LogicalTimer] = []
        self._seq = itertools.count()

    @property
    def pending(self) -> int:
        return len(self._timers)

    def call_every(self, interval_s: float, callback: Callable[[], None]) -> _LogicalTimer:
        if interval_s <= 0:
            raise ValueError("interval_s must be positive")
        timer = _LogicalTimer(self, interval_s, callback, next(self._seq))
        self._timers.append(timer)
        return timer

    def _discard(self, timer: _LogicalTimer) -> None:
        if timer in self._timers:
            self._timers.remove(timer)

    def advance(self, seconds: float) -> int:
        """
        Move logical time forward, firing due callbacks in time order.

        Returns:
            Number of callbacks fired.
        """
        target = self.now + seconds
        fired = 0
        while True:
            due = [t for t in self._timers if t.due <= target + _EPSILON]
            if not due:
                break
            timer = min(due, key=lambda t: (t.due, t.seq))
            self.now = max(self.now, timer.due)
            timer.fired += 1
            fired += 1
            timer.callback()
        self.now = target
        return fired

    def run_until_idle(self, max_seconds: float = 3600.0, step_s: float = 0.1) -> None:
        """Advance in small steps until no timers remain or max_seconds elapse."""
        elapsed = 0.0
        while self._timers and elapsed < max_seconds:
            self.advance(step_s)
            elapsed += step_s


# ---------------------------------------------------------------------------
# Wall-clock time on a worker thread
# ---------------------------------------------------------------------------

class _ThreadTimer:
    def __init__(self, scheduler: "ThreadingScheduler", interval_s: float,
                 callback: Callable[[], None]) -> None:
        self._scheduler = scheduler
        self.interval_s = interval_s
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        with self._scheduler._cond:
            self.cancelled = True
            self._scheduler._cond.notify()


class ThreadingScheduler:
    """
    Real-time scheduler. All callbacks (timers and call_soon) run serially on
    one daemon worker thread. A timer cancelled from another thread while its
    callback is already dequeued still fires that once; callers that share
    state with the host thread lock it (NavigationSession.lock).
    """

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._queue: list = []
        self._seq = itertools.count()
        self._running = True
        self._thread = threading.Thread(target=self._worker, name="fleetnav-scheduler", daemon=True)
        self._thread.start()

    def call_every(self, interval_s: float, callback: Callable[[], None]) -> _ThreadTimer:
        if interval_s <= 0:
            raise ValueError("interval_s must be positive")
        timer = _ThreadTimer(self, interval_s, callback)
        self._push(time.monotonic() + interval_s, timer)
        return timer

    def call_soon(self, callback: Callable[[], None]) -> None:
        """Run callback once on the worker thread (e.g. a position sample)."""
        self._push(time.monotonic(), callback)

    def shutdown(self, timeout: Optional[float] = 5.0) -> None:
        with self._cond:
            self._running = False
            self._cond.notify()
        self._thread.join(timeout=timeout)

    def _push(self, due: float, item) -> None:
        with self._cond:
            heapq.heappush(self._queue, (due, next(self._seq), item))
            self._cond.notify()

    def _worker(self) -> None:
        while True:
            with self._cond:
                while self._running:
                    if self._queue:
                        wait = self._queue[0][0] - time.monotonic()
                        if wait <= 0:
                            break
                        self._cond.wait(timeout=wait)
                    else:
                        self._cond.wait()
                if not self._running:
                    return
                due, _, item = heapq.heappop(self._queue)
                if isinstance(item, _ThreadTimer):
                    if item.cancelled:
                        continue
                    heapq.heappush(self._queue, (due + item.interval_s, next(self._seq), item))
                    callback = item.callback
                else:
                    callback = item
            try:
                callback()
            except Exception:
                logger.exception("Scheduled callback failed")
