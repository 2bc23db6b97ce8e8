"""
Exception types shared across timeago-core.

ConfigError lives in config.py next to the validation that raises it.
"""


class TimeagoError(Exception):
    """Base class for every error raised by timeago-core."""


class InvalidTimestamp(TimeagoError, ValueError):
    """Raised when a value cannot be turned into an epoch-millisecond instant."""


class ClockNotSeeded(TimeagoError, RuntimeError):
    """Raised when a ReferenceClock is used before seed() was called."""


__all__ = ["TimeagoError", "InvalidTimestamp", "ClockNotSeeded"]
