"""Cancellable timers for the success banner.

The success banner is the engine's only asynchronous element: after an
accepted submit, a timer runs for the configured duration so a renderer can
hide the banner when it fires. Timers must be cancellable so that closing an
engine never leaves a callback behind.

Two schedulers are provided:
- ThreadingScheduler: wall-clock timers on daemon threads (the default)
- ManualScheduler: a virtual clock advanced explicitly, for hosts that run
  their own loop and for tests
"""

import threading
from typing import Callable, List, Optional

from typing_extensions import Protocol


class TimerHandle:
    """Handle to a scheduled callback.

    Attributes:
        delay_ms: Delay the callback was scheduled with
    """

    def __init__(self, delay_ms: int, callback: Callable[[], None]):
        self.delay_ms = delay_ms
        self._callback: Optional[Callable[[], None]] = callback
        self._cancelled = False
        self._fired = False
        self._lock = threading.Lock()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def fired(self) -> bool:
        return self._fired

    @property
    def active(self) -> bool:
        """True while the callback may still run."""
        return not (self._cancelled or self._fired)

    def cancel(self) -> None:
        """Cancel the timer and release the callback. Safe to call twice."""
        with self._lock:
            if self._fired:
                return
            self._cancelled = True
            self._callback = None

    def fire(self) -> None:
        """Run the callback once, unless cancelled."""
        with self._lock:
            if not self.active:
                return
            self._fired = True
            callback, self._callback = self._callback, None
        callback()


class Scheduler(Protocol):
    """Anything that can run a callback after a delay in milliseconds."""

    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        ...


class _ThreadingTimerHandle(TimerHandle):

    def __init__(self, delay_ms: int, callback: Callable[[], None]):
        super().__init__(delay_ms, callback)
        self._timer = threading.Timer(delay_ms / 1000.0, self.fire)
        self._timer.daemon = True

    def cancel(self) -> None:
        super().cancel()
        self._timer.cancel()


class ThreadingScheduler:
    """Schedules callbacks on daemon ``threading.Timer`` threads."""

    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        handle = _ThreadingTimerHandle(delay_ms, callback)
        handle._timer.start()
        return handle


class ManualScheduler:
    """Scheduler driven by a virtual clock.

    Nothing fires until ``advance`` moves the clock past a timer's due time.

    Examples:
        >>> scheduler = ManualScheduler()
        >>> fired = []
        >>> handle = scheduler.schedule(100, lambda: fired.append(True))
        >>> scheduler.advance(99)
        0
        >>> scheduler.advance(1)
        1
        >>> fired
        [True]
    """

    def __init__(self):
        self.now_ms = 0
        self._pending: List[tuple] = []

    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(delay_ms, callback)
        self._pending.append((self.now_ms + delay_ms, handle))
        return handle

    def advance(self, ms: int) -> int:
        """Move the clock forward and fire due timers in due-time order.

        Returns:
            Number of callbacks that ran
        """
        self.now_ms += ms
        due = sorted(
            (entry for entry in self._pending if entry[0] <= self.now_ms),
            key=lambda entry: entry[0],
        )
        self._pending = [entry for entry in self._pending if entry[0] > self.now_ms]

        ran = 0
        for _, handle in due:
            if handle.active:
                handle.fire()
                ran += 1
        return ran

    @property
    def pending_count(self) -> int:
        """Timers that have neither fired nor been cancelled."""
        return sum(1 for _, handle in self._pending if handle.active)


__all__ = [
    "TimerHandle",
    "Scheduler",
    "ThreadingScheduler",
    "ManualScheduler",
]
