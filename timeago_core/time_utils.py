"""
Time utility helpers for timeago-core.

This module centralizes:
- UTC epoch timestamps in milliseconds (wall clock, used to seed clocks),
- monotonic timestamps in milliseconds (for timer deadlines),
- remaining-time calculation against a monotonic deadline.
"""

import time
from typing import Optional


def now_ms() -> int:
    """
    Return current wall-clock time as Unix epoch milliseconds.

    Note:
        A ReferenceClock reads this once when it is seeded and never again.
    """
    return time.time_ns() // 1_000_000


def monotonic_ms() -> int:
    """
    Return current monotonic clock time in milliseconds.

    Note:
        Monotonic values are only meaningful for differences, which is
        what timer deadlines need.
    """
    return time.monotonic_ns() // 1_000_000


def ms_until(deadline_monotonic_ms: int, current_monotonic_ms: Optional[int] = None) -> int:
    """
    Milliseconds left until a monotonic deadline.

    Args:
        deadline_monotonic_ms: deadline expressed in monotonic_ms() units.
        current_monotonic_ms: optional "now"; if None, monotonic_ms() is used.

    Returns:
        Non-negative milliseconds. A deadline already passed yields 0.

    Raises:
        TypeError: if provided arguments are not integers.
    """
    if not isinstance(deadline_monotonic_ms, int) or isinstance(deadline_monotonic_ms, bool):
        raise TypeError("deadline_monotonic_ms must be an int")

    if current_monotonic_ms is None:
        current = monotonic_ms()
    else:
        if not isinstance(current_monotonic_ms, int) or isinstance(current_monotonic_ms, bool):
            raise TypeError("current_monotonic_ms must be an int or None")
        current = current_monotonic_ms

    return max(0, deadline_monotonic_ms - current)


__all__ = ["now_ms", "monotonic_ms", "ms_until"]
