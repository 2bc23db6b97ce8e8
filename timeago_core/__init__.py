"""
Relative-time phrases ("4 minutes ago") kept live against a shared clock.
Public interfaces are re-exported here to keep imports consistent.
"""

from .errors import TimeagoError, InvalidTimestamp, ClockNotSeeded

from .config import (
    ConfigError,
    LiteralTemplate,
    ComputedTemplate,
    FormatConfig,
    DEFAULT_FORMAT,
    TimeagoSettings,
    load_settings,
)

from .time_utils import now_ms, monotonic_ms, ms_until

from .logging import init_logger, log_event

from .parsing import to_epoch_ms, parse_iso8601

from .humanizer import humanize, select_bucket

from .clock import ReferenceClock, Refreshable

from .scheduler import ThreadScheduler, ManualScheduler

from .display import timeago, TimeagoEntry, TimeagoRefresher

__all__ = [
    # errors
    "TimeagoError",
    "InvalidTimestamp",
    "ClockNotSeeded",
    # config
    "ConfigError",
    "LiteralTemplate",
    "ComputedTemplate",
    "FormatConfig",
    "DEFAULT_FORMAT",
    "TimeagoSettings",
    "load_settings",
    # time
    "now_ms",
    "monotonic_ms",
    "ms_until",
    # logging
    "init_logger",
    "log_event",
    # parsing
    "to_epoch_ms",
    "parse_iso8601",
    # humanizer
    "humanize",
    "select_bucket",
    # clock
    "ReferenceClock",
    "Refreshable",
    # scheduling
    "ThreadScheduler",
    "ManualScheduler",
    # display
    "timeago",
    "TimeagoEntry",
    "TimeagoRefresher",
]
