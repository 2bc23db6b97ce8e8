"""
Default timestamp adapter.

Turns the values callers usually hold (datetimes, epoch milliseconds,
ISO-8601 strings) into integer epoch milliseconds. Anything else is
rejected with InvalidTimestamp; the clock and entries accept any other
callable with the same contract.
"""

from __future__ import annotations

import math
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from .errors import InvalidTimestamp


TimestampParser = Callable[[Any], int]

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MS = timedelta(milliseconds=1)

# "2011-12-17 09:24:17.123456Z" -> fromisoformat-friendly form.
_FRACTION = re.compile(r"(\d{2}:\d{2}:\d{2})\.(\d+)")
_NUMERIC_OFFSET = re.compile(r"\s*([+-]\d{2}):?(\d{2})$")


def to_epoch_ms(value: Any) -> int:
    """
    Convert value into Unix epoch milliseconds.

    Accepts:
    - datetime (naive values are taken as UTC)
    - int epoch milliseconds
    - finite float epoch milliseconds (truncated)
    - ISO-8601 strings: "2008-07-17T09:24:17Z", "2008-07-17 09:24:17.512+02:00"

    Raises:
        InvalidTimestamp: for any other type, NaN/infinite numbers or
            strings that do not parse.
    """
    if isinstance(value, datetime):
        return _datetime_to_ms(value)

    if isinstance(value, bool):
        raise InvalidTimestamp(f"bool is not a timestamp: {value!r}")

    if isinstance(value, int):
        return value

    if isinstance(value, float):
        if not math.isfinite(value):
            raise InvalidTimestamp(f"timestamp must be finite, got {value!r}")
        return int(value)

    if isinstance(value, str):
        return _datetime_to_ms(parse_iso8601(value))

    raise InvalidTimestamp(f"unsupported timestamp type {type(value).__name__}")


def parse_iso8601(text: str) -> datetime:
    """
    Parse an ISO-8601-like string into an aware datetime.

    Raises:
        InvalidTimestamp: if text is empty or not a recognizable timestamp.
    """
    s = text.strip()
    if not s:
        raise InvalidTimestamp("empty timestamp string")

    if s.endswith(("Z", "z")):
        s = s[:-1] + "+00:00"
    elif s.upper().endswith(" UTC"):
        s = s[:-4] + "+00:00"
    s = _NUMERIC_OFFSET.sub(r"\1:\2", s)
    # fromisoformat on older interpreters only takes 3 or 6 fraction digits.
    s = _FRACTION.sub(lambda m: f"{m.group(1)}.{m.group(2)[:6].ljust(6, '0')}", s)

    try:
        parsed = datetime.fromisoformat(s)
    except ValueError as exc:
        raise InvalidTimestamp(f"unparseable timestamp {text!r}") from exc

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _datetime_to_ms(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - _EPOCH) // _ONE_MS


__all__ = ["TimestampParser", "to_epoch_ms", "parse_iso8601"]
