"""
Periodic-callback schedulers used to drive scanning.

A scheduler hands out opaque handles from `arm_periodic` and stops them with
`cancel`. Two implementations live here:
- ThreadingScheduler: real wall-clock timers on daemon worker threads
- ManualScheduler: a virtual clock advanced explicitly (tests, scripted runs)

The Textual-backed scheduler lives with the UI.
"""
import itertools
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Protocol

logger = logging.getLogger(__name__)


class Scheduler(Protocol):
    """Cancellable periodic-callback primitive."""

    def arm_periodic(self, interval_ms: int, callback: Callable[[], None]) -> Any:
        ...

    def cancel(self, handle: Any) -> None:
        ...


class _PeriodicThread(threading.Thread):
    """Calls `callback` every `interval_s` seconds until cancelled."""

    def __init__(self, interval_s: float, callback: Callable[[], None], name: str,
                 on_failure: Optional[Callable[[], None]] = None):
        super().__init__(name=name, daemon=True)
        self.interval_s = interval_s
        self.callback = callback
        self.on_failure = on_failure
        self.cancelled = threading.Event()

    def run(self):
        # wait() returns True as soon as cancel() sets the event
        while not self.cancelled.wait(self.interval_s):
            try:
                self.callback()
            except Exception:
                logger.exception("Periodic callback failed; cancelling %s", self.name)
                self.cancelled.set()
                if self.on_failure:
                    self.on_failure()


class ThreadingScheduler:
    """Scheduler backed by one daemon thread per armed callback."""

    def __init__(self):
        self._counter = itertools.count(1)
        self._lock = threading.Lock()
        self._threads: Dict[int, _PeriodicThread] = {}

    def arm_periodic(self, interval_ms: int, callback: Callable[[], None]) -> int:
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")
        handle = next(self._counter)
        thread = _PeriodicThread(
            interval_ms / 1000.0, callback, name=f"scan-timer-{handle}",
            on_failure=lambda: self.cancel(handle),
        )
        with self._lock:
            self._threads[handle] = thread
        thread.start()
        logger.debug("Armed periodic callback %d every %d ms", handle, interval_ms)
        return handle

    def cancel(self, handle: int) -> None:
        with self._lock:
            thread = self._threads.pop(handle, None)
        if thread is None:
            return
        thread.cancelled.set()
        logger.debug("Cancelled periodic callback %d", handle)

    def cancel_all(self) -> None:
        with self._lock:
            handles = list(self._threads)
        for handle in handles:
            self.cancel(handle)

    @property
    def armed_count(self) -> int:
        with self._lock:
            return len(self._threads)


@dataclass
class _ManualTimer:
    handle: int
    interval_ms: int
    callback: Callable[[], None]
    next_due_ms: int
    cancelled: bool = field(default=False)


class ManualScheduler:
    """
    Deterministic scheduler driven by `advance()`.

    Nothing fires on its own; time only moves when the caller advances it, and
    due callbacks run on the caller's thread in due-time order.
    """

    def __init__(self):
        self.now_ms = 0
        self._counter = itertools.count(1)
        self._timers: Dict[int, _ManualTimer] = {}
        self.armed_total = 0
        self.cancelled_total = 0

    def arm_periodic(self, interval_ms: int, callback: Callable[[], None]) -> int:
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")
        handle = next(self._counter)
        self._timers[handle] = _ManualTimer(handle, interval_ms, callback, self.now_ms + interval_ms)
        self.armed_total += 1
        return handle

    def cancel(self, handle: int) -> None:
        timer = self._timers.pop(handle, None)
        if timer is not None:
            timer.cancelled = True
            self.cancelled_total += 1

    @property
    def armed_count(self) -> int:
        return len(self._timers)

    def advance(self, ms: int) -> int:
        """Move the clock forward by `ms`, firing due callbacks. Returns ticks fired."""
        target = self.now_ms + ms
        fired = 0
        while True:
            due = [t for t in self._timers.values() if t.next_due_ms <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t.next_due_ms, t.handle))
            self.now_ms = timer.next_due_ms
            timer.next_due_ms += timer.interval_ms
            timer.callback()
            fired += 1
        self.now_ms = target
        return fired

    def tick(self, count: int = 1) -> int:
        """Advance exactly `count` periods of the earliest armed timer."""
        fired = 0
        for _ in range(count):
            if not self._timers:
                break
            timer = min(self._timers.values(), key=lambda t: (t.next_due_ms, t.handle))
            fired += self.advance(timer.next_due_ms - self.now_ms)
        return fired
