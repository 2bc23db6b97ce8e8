"""
Distance-to-phrase conversion.

humanize() maps a signed millisecond distance onto one of the buckets in
BUCKET_RULES, substitutes the count into that bucket's template and wraps
the result in the configured prefix/suffix. Positive distances are in the
past relative to the reference clock, negative ones in the future.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Callable, Mapping, Tuple

from .config import DEFAULT_FORMAT, FormatConfig, Template


_PLACEHOLDER = re.compile(r"%d", re.IGNORECASE)


@dataclass(frozen=True)
class Magnitudes:
    """Unsigned elapsed-time measures derived from one distance."""

    seconds: float
    minutes: float
    hours: float
    remaining_minutes: float
    days: float
    years: float

    @classmethod
    def from_millis(cls, distance_millis: float) -> "Magnitudes":
        seconds = abs(distance_millis) / 1000
        minutes = seconds / 60
        hours = minutes / 60
        days = hours / 24
        return cls(
            seconds=seconds,
            minutes=minutes,
            hours=hours,
            remaining_minutes=minutes % 60,
            days=days,
            years=days / 365,
        )


def round_half_up(value: float) -> int:
    """Round a non-negative magnitude, halves going up (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class BucketRule:
    """One row of the threshold table.

    ``template`` names the FormatConfig field to render. Rules with
    ``with_remainder`` append the leftover minutes ("and 3 minutes").
    """

    template: str
    matches: Callable[[Magnitudes], bool]
    count: Callable[[Magnitudes], int]
    with_remainder: bool = False


# Evaluated top to bottom, first match wins. Thresholds test the unrounded
# magnitudes while counts are rounded, so e.g. 44.6s renders through the
# "seconds" template even though its count rounds to 45.
BUCKET_RULES: Tuple[BucketRule, ...] = (
    BucketRule("seconds", lambda m: m.seconds < 45, lambda m: round_half_up(m.seconds)),
    BucketRule("minute", lambda m: m.seconds < 90, lambda m: 1),
    BucketRule("minutes", lambda m: m.minutes < 60, lambda m: round_half_up(m.minutes)),
    BucketRule("hour", lambda m: m.minutes < 120, lambda m: 1, with_remainder=True),
    BucketRule("hours", lambda m: m.hours < 24, lambda m: round_half_up(m.hours), with_remainder=True),
    BucketRule("day", lambda m: m.hours < 42, lambda m: 1),
    BucketRule("days", lambda m: m.days < 30, lambda m: round_half_up(m.days)),
    BucketRule("month", lambda m: m.days < 45, lambda m: 1),
    BucketRule("months", lambda m: m.days < 365, lambda m: round_half_up(m.days / 30)),
    BucketRule("year", lambda m: m.years < 1.5, lambda m: 1),
    BucketRule("years", lambda m: True, lambda m: round_half_up(m.years)),
)


def select_bucket(distance_millis: float) -> Tuple[BucketRule, Magnitudes]:
    """Return the first matching rule for distance_millis and its magnitudes."""
    magnitudes = Magnitudes.from_millis(_check_distance(distance_millis))
    rule = next(rule for rule in BUCKET_RULES if rule.matches(magnitudes))
    return rule, magnitudes


def substitute(template: Template, count: int, distance_millis: float, numbers: Mapping[int, str]) -> str:
    """Render template and replace its first ``%d`` with the numeral for count."""
    text = template.render(count, distance_millis)
    numeral = numbers.get(count) or count
    return _PLACEHOLDER.sub(lambda _match: str(numeral), text, count=1)


def humanize(distance_millis: float, config: FormatConfig = DEFAULT_FORMAT) -> str:
    """
    Convert a millisecond distance into a phrase such as "4 minutes ago".

    Args:
        distance_millis: reference time minus the instant being described.
            Negative values describe the future.
        config: phrase table; defaults to the English table.

    Returns:
        The composed phrase, stripped of surrounding whitespace.

    Raises:
        TypeError: if distance_millis is not a real number.
        ValueError: if distance_millis is NaN or infinite.
    """
    rule, magnitudes = select_bucket(distance_millis)

    if config.allow_future and distance_millis < 0:
        prefix, suffix = config.prefix_from_now, config.suffix_from_now
    else:
        prefix, suffix = config.prefix_ago, config.suffix_ago

    count = rule.count(magnitudes)
    words = substitute(config.template(rule.template), count, distance_millis, config.numbers)
    if rule.with_remainder:
        words += _remainder_in_words(config, round_half_up(magnitudes.remaining_minutes), distance_millis)

    return config.word_separator.join(part or "" for part in (prefix, words, suffix)).strip()


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _remainder_in_words(config: FormatConfig, remainder: int, distance_millis: float) -> str:
    if remainder == 0:
        return ""
    template = config.minute if remainder == 1 else config.minutes
    words = substitute(template, remainder, distance_millis, config.numbers)
    sep = config.word_separator
    return sep + config.time_separator + sep + words


def _check_distance(distance_millis: float) -> float:
    if isinstance(distance_millis, bool) or not isinstance(distance_millis, (int, float)):
        raise TypeError(
            f"distance_millis must be a number, got {type(distance_millis).__name__}"
        )
    if not math.isfinite(distance_millis):
        raise ValueError(f"distance_millis must be finite, got {distance_millis!r}")
    return distance_millis


__all__ = [
    "BUCKET_RULES",
    "BucketRule",
    "Magnitudes",
    "humanize",
    "round_half_up",
    "select_bucket",
    "substitute",
]
