"""Tests for TimeagoEntry, TimeagoRefresher and the one-shot timeago() call.

A ManualScheduler stands in for the real timer so ticks happen exactly when
the test advances time.
"""

from __future__ import annotations

import logging
from typing import Any, List

import pytest

from timeago_core.clock import ReferenceClock
from timeago_core.config import FormatConfig, TimeagoSettings
from timeago_core.display import TimeagoEntry, TimeagoRefresher, timeago
from timeago_core.errors import InvalidTimestamp
from timeago_core.parsing import to_epoch_ms
from timeago_core.scheduler import ManualScheduler
from timeago_core.time_utils import now_ms

T0 = 1_300_000_000_000
MINUTE = 60_000


def make_refresher(refresh_millis: int = MINUTE, **format_overrides: Any):
    scheduler = ManualScheduler()
    settings = TimeagoSettings(
        refresh_millis=refresh_millis,
        format=FormatConfig(**format_overrides),
    )
    refresher = TimeagoRefresher(ReferenceClock(now=lambda: T0), settings, scheduler=scheduler)
    return refresher, scheduler


class CountingParser:
    def __init__(self) -> None:
        self.calls = 0

    def __call__(self, value: Any) -> int:
        self.calls += 1
        return to_epoch_ms(value)


# ---------------------------------------------------------------------------
# TimeagoEntry
# ---------------------------------------------------------------------------


def test_entry_refresh_publishes_text() -> None:
    published: List[str] = []
    clock = ReferenceClock()
    clock.seed(T0)

    entry = TimeagoEntry(T0 - 2 * MINUTE, on_text=published.append)
    entry.refresh(clock)

    assert entry.text == "2 minutes ago"
    assert published == ["2 minutes ago"]


def test_entry_parses_source_once() -> None:
    parser = CountingParser()
    clock = ReferenceClock()
    clock.seed(T0)
    entry = TimeagoEntry("2011-03-13T07:06:40Z", parser=parser)

    for _ in range(3):
        clock.tick(MINUTE)
        entry.refresh(clock)

    assert parser.calls == 1
    assert entry.text == "3 minutes ago"


def test_invalid_entry_is_left_untouched() -> None:
    published: List[str] = []
    parser = CountingParser()
    clock = ReferenceClock()
    clock.seed(T0)

    entry = TimeagoEntry("next tuesday", parser=parser, on_text=published.append, text="original")
    entry.refresh(clock)
    entry.refresh(clock)

    assert entry.valid is False
    assert entry.text == "original"
    assert published == []
    assert parser.calls == 1


def test_entry_uses_its_format() -> None:
    clock = ReferenceClock()
    clock.seed(T0)
    entry = TimeagoEntry(T0 + 5 * MINUTE, config=FormatConfig(allow_future=True))
    entry.refresh(clock)
    assert entry.text == "5 minutes from now"


# ---------------------------------------------------------------------------
# TimeagoRefresher
# ---------------------------------------------------------------------------


def test_watch_seeds_refreshes_and_starts_timer() -> None:
    refresher, scheduler = make_refresher()
    entry = refresher.entry(T0 - 30 * MINUTE)

    assert refresher.watch([entry]) == [entry]
    assert refresher.clock.server_time == T0
    assert entry.text == "30 minutes ago"
    assert refresher.running is True

    scheduler.advance(MINUTE)
    assert refresher.clock.server_time == T0 + MINUTE
    assert entry.text == "31 minutes ago"

    scheduler.advance(29 * MINUTE)
    assert entry.text == "1 hour ago"


def test_watch_with_seed_string() -> None:
    refresher, _ = make_refresher()
    refresher.watch([], seed="2011-03-13T07:06:40Z")
    assert refresher.clock.server_time == to_epoch_ms("2011-03-13T07:06:40Z")

    refresher.watch([], seed="2020-01-01T00:00:00Z")
    assert refresher.clock.server_time == to_epoch_ms("2011-03-13T07:06:40Z")


def test_invalid_seed_raises() -> None:
    refresher, scheduler = make_refresher()
    with pytest.raises(InvalidTimestamp):
        refresher.watch([], seed="soon")
    assert scheduler.active_timers == 0


def test_second_watch_reuses_timer_and_replaces_group() -> None:
    refresher, scheduler = make_refresher()
    first = refresher.entry(T0 - 2 * MINUTE)
    second = refresher.entry(T0 - 10 * MINUTE)

    refresher.watch([first])
    refresher.watch([second])

    assert scheduler.active_timers == 1
    assert refresher.entries == [second]

    scheduler.advance(MINUTE)
    assert first.text == "2 minutes ago"
    assert second.text == "11 minutes ago"


def test_stop_is_idempotent_and_halts_ticks() -> None:
    refresher, scheduler = make_refresher()
    refresher.watch([refresher.entry(T0)])

    refresher.stop()
    refresher.stop()
    assert refresher.running is False
    assert scheduler.active_timers == 0

    scheduler.advance(10 * MINUTE)
    assert refresher.clock.server_time == T0


def test_watch_after_stop_starts_a_new_timer() -> None:
    refresher, scheduler = make_refresher()
    refresher.watch([])
    refresher.stop()
    refresher.watch([])
    assert refresher.running is True
    assert scheduler.active_timers == 1


def test_non_positive_refresh_disables_timer() -> None:
    refresher, scheduler = make_refresher(refresh_millis=0)
    entry = refresher.entry(T0 - 2 * MINUTE)
    refresher.watch([entry])

    assert refresher.running is False
    assert scheduler.active_timers == 0

    refresher.clock.tick(3 * MINUTE)
    assert entry.text == "5 minutes ago"

    entry.text = None
    refresher.refresh_now()
    assert entry.text == "5 minutes ago"


def test_invalid_entry_does_not_block_the_group() -> None:
    refresher, scheduler = make_refresher()
    bad = refresher.entry("not a timestamp", on_text=lambda text: pytest.fail(text))
    good = refresher.entry(T0 - 2 * MINUTE)

    refresher.watch([bad, good])
    scheduler.advance(MINUTE)

    assert bad.text is None
    assert good.text == "3 minutes ago"


def test_stop_from_inside_a_refresh() -> None:
    refresher, scheduler = make_refresher()

    class Stopper:
        def refresh(self, clock: ReferenceClock) -> None:
            if clock.server_time != T0:
                refresher.stop()

    refresher.watch([Stopper()])
    scheduler.advance(5 * MINUTE)

    assert refresher.running is False
    assert refresher.clock.server_time == T0 + MINUTE


def test_refreshers_sharing_a_clock_share_one_timer() -> None:
    scheduler = ManualScheduler()
    clock = ReferenceClock(now=lambda: T0)
    settings = TimeagoSettings(refresh_millis=MINUTE)
    left = TimeagoRefresher(clock, settings, scheduler=scheduler)
    right = TimeagoRefresher(clock, settings, scheduler=scheduler)
    a = left.entry(T0 - 2 * MINUTE)
    b = right.entry(T0 - 10 * MINUTE)

    left.watch([a])
    right.watch([b])

    assert scheduler.active_timers == 1
    assert left.entries == [a]
    assert right.entries == [b]
    assert clock.subscribers == [a, b]

    scheduler.advance(MINUTE)
    assert clock.server_time == T0 + MINUTE
    assert a.text == "3 minutes ago"
    assert b.text == "11 minutes ago"

    left.stop()
    assert left.running is False
    assert right.running is True
    assert scheduler.active_timers == 1

    scheduler.advance(MINUTE)
    assert a.text == "3 minutes ago"
    assert b.text == "12 minutes ago"

    right.stop()
    assert scheduler.active_timers == 0


def test_rewatch_swaps_only_own_group_on_shared_clock() -> None:
    scheduler = ManualScheduler()
    clock = ReferenceClock(now=lambda: T0)
    left = TimeagoRefresher(clock, scheduler=scheduler)
    right = TimeagoRefresher(clock, scheduler=scheduler)
    a, b, c = left.entry(T0), right.entry(T0), left.entry(T0 - MINUTE)

    left.watch([a])
    right.watch([b])
    left.watch([c])

    assert clock.subscribers == [b, c]
    assert scheduler.active_timers == 1


def test_reset_inside_a_refresh_pauses_ticking() -> None:
    refresher, scheduler = make_refresher()

    class Resetter:
        done = False

        def refresh(self, clock: ReferenceClock) -> None:
            if clock.server_time != T0 and not self.done:
                self.done = True
                clock.reset()

    entry = refresher.entry(T0 - 2 * MINUTE)
    refresher.watch([Resetter(), entry])
    assert entry.text == "2 minutes ago"

    scheduler.advance(MINUTE)
    assert refresher.clock.seeded is False
    assert entry.text == "2 minutes ago"

    scheduler.advance(MINUTE)
    assert refresher.clock.seeded is False
    assert refresher.running is True

    refresher.clock.seed(T0 + 10 * MINUTE)
    refresher.refresh_now()
    assert entry.text == "12 minutes ago"


def test_settings_log_level_applies_to_created_loggers() -> None:
    TimeagoRefresher(settings=TimeagoSettings(log_level="WARNING"), scheduler=ManualScheduler())
    assert logging.getLogger("timeago.refresher").level == logging.WARNING
    assert logging.getLogger("timeago.clock").level == logging.WARNING

    refresher = TimeagoRefresher(settings=TimeagoSettings(log_level="debug"))
    assert logging.getLogger("timeago.refresher").level == logging.DEBUG
    assert logging.getLogger("timeago.scheduler").level == logging.DEBUG
    assert refresher.running is False


def test_injected_logger_keeps_its_level() -> None:
    custom = logging.getLogger("timeago-tests.custom")
    custom.setLevel(logging.ERROR)
    refresher = TimeagoRefresher(
        ReferenceClock(now=lambda: T0),
        TimeagoSettings(log_level="DEBUG"),
        scheduler=ManualScheduler(),
        logger=custom,
    )
    refresher.watch([refresher.entry(T0)])
    refresher.stop()
    assert custom.level == logging.ERROR


def test_refresher_entries_follow_settings_format() -> None:
    refresher, _ = make_refresher(suffix_ago="back")
    entry = refresher.entry(T0 - 2 * MINUTE)
    refresher.watch([entry])
    assert entry.text == "2 minutes back"


# ---------------------------------------------------------------------------
# timeago()
# ---------------------------------------------------------------------------


def test_timeago_against_seeded_clock() -> None:
    clock = ReferenceClock()
    clock.seed("2011-03-13T07:06:40Z")
    assert timeago("2011-03-13T06:06:40Z", clock=clock) == "1 hour ago"
    assert timeago("2011-03-13T07:08:40Z", clock=clock) == "2 minutes ago"
    assert (
        timeago("2011-03-16T07:06:40Z", clock=clock, config=FormatConfig(allow_future=True))
        == "3 days from now"
    )


def test_timeago_without_clock_uses_system_time() -> None:
    assert timeago(now_ms() - 5000) == "less than a minute ago"
    assert timeago(now_ms() - 10 * MINUTE, clock=ReferenceClock()) == "10 minutes ago"


def test_timeago_rejects_invalid_source() -> None:
    with pytest.raises(InvalidTimestamp):
        timeago("the day before yesterday")
