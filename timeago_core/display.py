"""
Live relative-time displays kept in step with a ReferenceClock.

TimeagoEntry is one displayed timestamp; TimeagoRefresher owns a group of
entries on a clock that may be shared with other groups.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Iterable, List, Optional

from .clock import ReferenceClock, Refreshable
from .config import DEFAULT_FORMAT, FormatConfig, TimeagoSettings
from .errors import InvalidTimestamp
from .humanizer import humanize
from .logging import get_logger, init_logger, log_event
from .parsing import TimestampParser, to_epoch_ms
from .scheduler import Scheduler, ThreadScheduler
from .time_utils import now_ms


def timeago(
    source: Any,
    *,
    clock: Optional[ReferenceClock] = None,
    config: Optional[FormatConfig] = None,
    parser: TimestampParser = to_epoch_ms,
) -> str:
    """
    One-shot phrase for source, e.g. ``timeago("2008-07-17T09:24:17Z")``.

    Measured against clock when it is given and seeded, otherwise against
    the current system time.

    Raises:
        InvalidTimestamp: if source cannot be parsed.
    """
    point_ms = parser(source)
    if clock is not None and clock.seeded:
        distance = clock.distance_from(point_ms)
    else:
        distance = now_ms() - point_ms
    return humanize(distance, config or DEFAULT_FORMAT)


class TimeagoEntry:
    """
    A single displayed timestamp.

    The source is parsed on first refresh and cached, so repeated ticks never
    parse again. A source that fails to parse is logged once and the entry
    simply stops updating: ``text`` keeps its previous value and ``on_text``
    is not called.
    """

    def __init__(
        self,
        source: Any,
        *,
        config: FormatConfig = DEFAULT_FORMAT,
        parser: TimestampParser = to_epoch_ms,
        on_text: Optional[Callable[[str], None]] = None,
        logger: Optional[logging.Logger] = None,
        text: Optional[str] = None,
    ) -> None:
        self.source = source
        self.config = config
        self.text = text
        self._parser = parser
        self._on_text = on_text
        self._logger = logger or get_logger("display")
        self._parsed = False
        self._timestamp_ms: Optional[int] = None

    @property
    def timestamp_ms(self) -> Optional[int]:
        """Parsed instant in epoch ms, or None when the source is invalid."""
        if not self._parsed:
            self._parsed = True
            try:
                self._timestamp_ms = self._parser(self.source)
            except InvalidTimestamp as exc:
                log_event(
                    self._logger,
                    event="entry_parse_failed",
                    level="WARNING",
                    source=repr(self.source),
                    error=str(exc),
                )
        return self._timestamp_ms

    @property
    def valid(self) -> bool:
        return self.timestamp_ms is not None

    def refresh(self, clock: ReferenceClock) -> None:
        point_ms = self.timestamp_ms
        if point_ms is None:
            return

        self.text = humanize(clock.distance_from(point_ms), self.config)
        if self._on_text is not None:
            self._on_text(self.text)

    def __repr__(self) -> str:
        return f"TimeagoEntry(source={self.source!r}, text={self.text!r})"


class TimeagoRefresher:
    """
    Keeps one group of entries refreshed from a ReferenceClock.

    Several refreshers may share a clock. Each one swaps only its own group
    on watch(), and the clock keeps a single timer between them, ticking at
    the interval of whichever group started it first. With
    ``settings.refresh_millis <= 0`` no timer is started and refresh_now()
    is the only way to update entries.

    Loggers the refresher creates itself (its own and, when not injected,
    the clock's and the scheduler's) are initialised at settings.log_level.
    """

    def __init__(
        self,
        clock: Optional[ReferenceClock] = None,
        settings: Optional[TimeagoSettings] = None,
        *,
        scheduler: Optional[Scheduler] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.settings = settings if settings is not None else TimeagoSettings()
        level = self.settings.log_level
        self.clock = clock if clock is not None else ReferenceClock(logger=init_logger("clock", level))
        self._scheduler = scheduler if scheduler is not None else ThreadScheduler(init_logger("scheduler", level))
        self._logger = logger or init_logger("refresher", level)
        self._lock = threading.RLock()
        self._group: List[Refreshable] = []
        self._watching = False

    @property
    def running(self) -> bool:
        with self._lock:
            return self._watching and self.clock.ticking

    @property
    def entries(self) -> List[Refreshable]:
        with self._lock:
            return list(self._group)

    def entry(
        self,
        source: Any,
        *,
        on_text: Optional[Callable[[str], None]] = None,
        parser: TimestampParser = to_epoch_ms,
    ) -> TimeagoEntry:
        """Build an entry that renders with this refresher's format settings."""
        return TimeagoEntry(
            source,
            config=self.settings.format,
            parser=parser,
            on_text=on_text,
            logger=self._logger,
        )

    def watch(self, entries: Iterable[Refreshable], seed: Any = None) -> List[Refreshable]:
        """
        Make entries this refresher's group, refresh them once and make sure
        the clock is ticking.

        The previous group of this refresher is unsubscribed; groups of other
        refreshers on the same clock are left alone. The clock is seeded from
        seed (or system time) only if it is not seeded already.

        Raises:
            InvalidTimestamp: if seed cannot be parsed.
        """
        group = list(entries)
        self.clock.seed(seed)

        with self._lock:
            for entry in self._group:
                self.clock.unsubscribe(entry)
            self._group = group
            self._watching = True
            for entry in group:
                self.clock.subscribe(entry)

        self.clock.notify(group)
        if self.settings.periodic_refresh:
            self.clock.start_ticking(self.settings.refresh_millis, self._scheduler)
        return group

    def refresh_now(self) -> None:
        """
        Refresh this refresher's entries against the current server_time.

        Raises:
            ClockNotSeeded: if the clock has not been seeded.
        """
        self.clock.notify(self.entries)

    def stop(self) -> None:
        """
        Unsubscribe the group and cancel the clock's timer once no other
        subscriber is left. Safe to call any number of times.

        Entries keep their last text.
        """
        with self._lock:
            if not self._watching:
                return
            self._watching = False
            group, self._group = self._group, []
            for entry in group:
                self.clock.unsubscribe(entry)

        timer_stopped = self.clock.stop_ticking(if_idle=True)
        log_event(
            self._logger,
            event="refresh_group_stopped",
            entries=len(group),
            timer_stopped=timer_stopped,
        )

__all__ = ["timeago", "TimeagoEntry", "TimeagoRefresher"]
