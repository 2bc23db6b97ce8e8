"""
Repeating-timer abstraction used to drive clock ticks.

Public API:
- Scheduler protocol: call_every(interval_ms, callback) -> TimerHandle
- ThreadScheduler: background daemon thread per timer
- ManualScheduler: deterministic, advanced explicitly (tests, event loops
  that own their own timing)

Every TimerHandle.cancel() is idempotent. TimerHandle.join() waits for a
callback that is already running, except on the timer's own thread.
"""

from __future__ import annotations

import itertools
import logging
import threading
from typing import Callable, List, Optional, Protocol

from .logging import get_logger, log_event
from .time_utils import monotonic_ms, ms_until


class TimerHandle(Protocol):
    @property
    def active(self) -> bool:
        ...

    def cancel(self) -> None:
        ...

    def join(self, timeout: Optional[float] = None) -> None:
        ...


class Scheduler(Protocol):
    def call_every(self, interval_ms: int, callback: Callable[[], None]) -> TimerHandle:
        ...


def _validate_interval(interval_ms: int) -> None:
    if not isinstance(interval_ms, int) or isinstance(interval_ms, bool) or interval_ms < 1:
        raise ValueError("interval_ms must be an integer >= 1")


# ---------------------------------------------------------------------------
# Thread-backed scheduler
# ---------------------------------------------------------------------------


class _ThreadTimer:
    """
    Fires callback every interval_ms on a daemon thread until cancelled.

    Deadlines are kept on the monotonic clock and advanced by the interval,
    so a slow callback delays one firing without shifting later ones.
    """

    def __init__(self, interval_ms: int, callback: Callable[[], None], logger: logging.Logger) -> None:
        self._interval_ms = interval_ms
        self._callback = callback
        self._logger = logger
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._run,
            name="timeago-refresh-{0}ms".format(interval_ms),
            daemon=True,
        )

    @property
    def active(self) -> bool:
        return not self._stop_event.is_set()

    def start(self) -> None:
        self._thread.start()

    def cancel(self) -> None:
        self._stop_event.set()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not threading.current_thread():
            self._thread.join(timeout)

    def _run(self) -> None:
        deadline = monotonic_ms() + self._interval_ms
        while not self._stop_event.wait(ms_until(deadline) / 1000.0):
            deadline += self._interval_ms
            try:
                self._callback()
            except Exception as exc:
                log_event(
                    self._logger,
                    event="timer_callback_error",
                    level="ERROR",
                    message="Refresh callback raised; timer keeps running",
                    error_type=type(exc).__name__,
                    error=str(exc),
                    interval_ms=self._interval_ms,
                )


class ThreadScheduler:
    """Runs each timer on its own daemon thread."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or get_logger("scheduler")

    def call_every(self, interval_ms: int, callback: Callable[[], None]) -> _ThreadTimer:
        _validate_interval(interval_ms)
        if not callable(callback):
            raise ValueError("callback must be callable")

        timer = _ThreadTimer(interval_ms, callback, self._logger)
        timer.start()
        return timer


# ---------------------------------------------------------------------------
# Manual scheduler
# ---------------------------------------------------------------------------


class _ManualTimer:
    def __init__(self, order: int, interval_ms: int, callback: Callable[[], None], first_due_ms: int) -> None:
        self.order = order
        self.interval_ms = interval_ms
        self.callback = callback
        self.due_ms = first_due_ms
        self._cancelled = False

    @property
    def active(self) -> bool:
        return not self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def join(self, timeout: Optional[float] = None) -> None:
        """Nothing to wait for; manual callbacks run on the caller's thread."""


class ManualScheduler:
    """
    Controllable scheduler for deterministic timing.

    Time starts at zero and moves only when advance() is called; every
    firing that falls due is run synchronously on the caller's thread.
    """

    def __init__(self, start_ms: int = 0) -> None:
        self._now_ms = int(start_ms)
        self._timers: List[_ManualTimer] = []
        self._order = itertools.count()

    @property
    def now_ms(self) -> int:
        return self._now_ms

    @property
    def active_timers(self) -> int:
        return sum(1 for t in self._timers if t.active)

    def call_every(self, interval_ms: int, callback: Callable[[], None]) -> _ManualTimer:
        _validate_interval(interval_ms)
        if not callable(callback):
            raise ValueError("callback must be callable")

        timer = _ManualTimer(next(self._order), interval_ms, callback, self._now_ms + interval_ms)
        self._timers.append(timer)
        return timer

    def advance(self, ms: int) -> int:
        """
        Move time forward by ms and run every callback that falls due.

        Returns the number of callbacks fired.

        Raises:
            ValueError: if ms is negative.
        """
        if ms < 0:
            raise ValueError("ms must be non-negative")

        target = self._now_ms + ms
        fired = 0
        while True:
            self._timers = [t for t in self._timers if t.active]
            due = [t for t in self._timers if t.due_ms <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t.due_ms, t.order))
            self._now_ms = timer.due_ms
            timer.due_ms += timer.interval_ms
            timer.callback()
            fired += 1

        self._now_ms = target
        return fired


__all__ = ["TimerHandle", "Scheduler", "ThreadScheduler", "ManualScheduler"]
