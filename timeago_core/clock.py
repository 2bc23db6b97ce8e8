"""
Reference clock shared by a group of displayed timestamps.

The clock reads system time at most once, when it is seeded. From then on
it only moves when tick() adds a fixed interval, so every subscriber sees
the same "now" and neighbouring entries never straddle a bucket boundary
because they were refreshed a few milliseconds apart.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol

from .errors import ClockNotSeeded
from .logging import get_logger, log_event
from .parsing import TimestampParser, to_epoch_ms
from .scheduler import Scheduler, ThreadScheduler, TimerHandle
from .time_utils import now_ms


class Refreshable(Protocol):
    """Anything that recomputes its display from a ReferenceClock."""

    def refresh(self, clock: "ReferenceClock") -> None:
        ...


class ReferenceClock:
    """
    Owned "now" for a group of subscribers, in epoch milliseconds.

    The clock also owns the repeating timer that ticks it, so at most one
    timer is active per clock no matter how many groups subscribe.

    Re-entrant calls from a subscriber (subscribe, unsubscribe, reset) do
    not break the notification loop, which iterates over a snapshot. A
    reset ends the current pass and timer ticks are skipped until the
    clock is seeded again. Such calls are still best avoided.
    """

    def __init__(
        self,
        *,
        now: Callable[[], int] = now_ms,
        parser: TimestampParser = to_epoch_ms,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._now = now
        self._parser = parser
        self._logger = logger or get_logger("clock")
        self._server_time: Optional[int] = None
        self._subscribers: Dict[int, Refreshable] = {}
        self._timer_lock = threading.RLock()
        self._timer: Optional[TimerHandle] = None

    # -- state -------------------------------------------------------------

    @property
    def server_time(self) -> Optional[int]:
        return self._server_time

    @property
    def seeded(self) -> bool:
        return self._server_time is not None

    def seed(self, source: Any = None) -> int:
        """
        Initialize server_time once and return it.

        With no source the system time is used; otherwise source goes
        through the timestamp parser. Seeding an already seeded clock
        leaves it untouched.

        Raises:
            InvalidTimestamp: if source cannot be parsed. The clock stays
                unseeded.
        """
        if self._server_time is not None:
            return self._server_time

        if source is None:
            value = self._now()
            origin = "system"
        else:
            value = self._parser(source)
            origin = "explicit"

        self._server_time = value
        log_event(self._logger, event="clock_seeded", server_time=value, origin=origin)
        return value

    def tick(self, interval_millis: int) -> int:
        """
        Advance server_time by exactly interval_millis, then notify subscribers.

        Raises:
            TypeError: if interval_millis is not an int.
            ClockNotSeeded: if seed() has not been called.
        """
        if not isinstance(interval_millis, int) or isinstance(interval_millis, bool):
            raise TypeError("interval_millis must be an int")

        self._server_time = self._require_seeded() + interval_millis
        log_event(
            self._logger,
            event="clock_tick",
            level="DEBUG",
            server_time=self._server_time,
            interval_ms=interval_millis,
            subscribers=len(self._subscribers),
        )
        self.notify()
        return self._server_time

    def distance_from(self, point_in_time: Any) -> int:
        """
        Return server_time minus point_in_time in milliseconds.

        Positive results mean point_in_time lies in the past. Integer epoch
        milliseconds are used as-is; other values go through the parser.

        Raises:
            ClockNotSeeded: if seed() has not been called.
            InvalidTimestamp: if point_in_time cannot be parsed.
        """
        server_time = self._require_seeded()
        if isinstance(point_in_time, int) and not isinstance(point_in_time, bool):
            point_ms = point_in_time
        else:
            point_ms = self._parser(point_in_time)
        return server_time - point_ms

    def reset(self) -> None:
        """Forget server_time; the next seed() starts over. Subscribers stay."""
        if self._server_time is None:
            return
        self._server_time = None
        log_event(self._logger, event="clock_reset")

    # -- subscribers -------------------------------------------------------

    @property
    def subscribers(self) -> List[Refreshable]:
        return list(self._subscribers.values())

    def subscribe(self, subscriber: Refreshable) -> None:
        self._subscribers.setdefault(id(subscriber), subscriber)

    def unsubscribe(self, subscriber: Refreshable) -> None:
        self._subscribers.pop(id(subscriber), None)

    def notify(self, subscribers: Optional[Iterable[Refreshable]] = None) -> None:
        """
        Refresh subscribers without ticking.

        Defaults to every registered subscriber, in registration order. The
        pass stops early if a subscriber resets the clock.

        Raises:
            ClockNotSeeded: if seed() has not been called.
        """
        self._require_seeded()
        targets = list(self._subscribers.values() if subscribers is None else subscribers)
        for subscriber in targets:
            if self._server_time is None:
                break
            subscriber.refresh(self)

    # -- timer -------------------------------------------------------------

    @property
    def ticking(self) -> bool:
        with self._timer_lock:
            return self._timer is not None and self._timer.active

    def start_ticking(self, interval_millis: int, scheduler: Optional[Scheduler] = None) -> TimerHandle:
        """
        Tick by interval_millis on every timer firing.

        Returns the active timer. If the clock is already ticking that timer
        is kept, together with its interval, and no second one is created.

        Raises:
            ValueError: if interval_millis is not an integer >= 1.
        """
        with self._timer_lock:
            if self._timer is not None and self._timer.active:
                return self._timer

            scheduler = scheduler if scheduler is not None else ThreadScheduler(self._logger)
            self._timer = scheduler.call_every(interval_millis, lambda: self._on_timer(interval_millis))

        log_event(self._logger, event="refresh_timer_started", refresh_millis=interval_millis)
        return self._timer

    def stop_ticking(self, *, if_idle: bool = False, join_timeout: float = 1.0) -> bool:
        """
        Cancel the timer. Safe to call any number of times.

        With if_idle the timer is only cancelled when nothing is subscribed.
        When called from another thread, waits up to join_timeout seconds for
        a tick that is already running.

        Returns True if a timer was cancelled.
        """
        with self._timer_lock:
            if self._timer is None or (if_idle and self._subscribers):
                return False
            timer, self._timer = self._timer, None

        timer.cancel()
        timer.join(join_timeout)
        log_event(self._logger, event="refresh_timer_stopped")
        return True

    # -- internal ----------------------------------------------------------

    def _on_timer(self, interval_millis: int) -> None:
        if self._server_time is None:
            log_event(self._logger, event="clock_tick_skipped", level="DEBUG", reason="unseeded")
            return
        self.tick(interval_millis)

    def _require_seeded(self) -> int:
        if self._server_time is None:
            raise ClockNotSeeded("ReferenceClock.seed() must be called first")
        return self._server_time

    def __repr__(self) -> str:
        return f"ReferenceClock(server_time={self._server_time!r}, subscribers={len(self._subscribers)})"


__all__ = ["Refreshable", "ReferenceClock"]
