"""
Configuration for timeago-core.

Design goals:
- Immutable, typed config objects (FormatConfig, TimeagoSettings).
- Templates are a tagged variant: LiteralTemplate | ComputedTemplate.
- Wrong-typed values fail at construction time, never at formatting time.
- Env parsing fails fast with aggregated, readable errors.
"""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional, Sequence, Union

from .errors import TimeagoError


# ---------------------------------------------------------------------------
# Public exception
# ---------------------------------------------------------------------------


class ConfigError(TimeagoError):
    """Raised when timeago configuration is missing or invalid."""


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LiteralTemplate:
    """A fixed phrase with at most one ``%d`` placeholder."""

    text: str

    def render(self, count: int, distance_millis: int) -> str:
        return self.text


@dataclass(frozen=True)
class ComputedTemplate:
    """A phrase produced by ``fn(count, distance_millis)``.

    Used for pluralisation rules that a single literal cannot express.
    The returned string may itself contain a ``%d`` placeholder.
    """

    fn: Callable[[int, int], str]

    def render(self, count: int, distance_millis: int) -> str:
        text = self.fn(count, distance_millis)
        if not isinstance(text, str):
            raise ConfigError(
                f"computed template {self.fn!r} returned {type(text).__name__}, expected str"
            )
        return text


Template = Union[LiteralTemplate, ComputedTemplate]
TemplateLike = Union[str, LiteralTemplate, ComputedTemplate, Callable[[int, int], str]]


def as_template(value: Any, name: str = "template") -> Template:
    """
    Coerce a str or callable into the matching template variant.

    Raises:
        ConfigError: if value is neither a string, a callable nor a template.
    """
    if isinstance(value, (LiteralTemplate, ComputedTemplate)):
        return value
    if isinstance(value, str):
        return LiteralTemplate(value)
    if callable(value):
        return ComputedTemplate(value)
    raise ConfigError(
        f"{name} must be a string or a callable(count, distance_millis), "
        f"got {type(value).__name__}"
    )


TEMPLATE_FIELDS = (
    "seconds",
    "minute",
    "minutes",
    "hour",
    "hours",
    "day",
    "days",
    "month",
    "months",
    "year",
    "years",
)

_AFFIX_FIELDS = ("prefix_ago", "suffix_ago", "prefix_from_now", "suffix_from_now")
_SEPARATOR_FIELDS = ("time_separator", "word_separator")


# ---------------------------------------------------------------------------
# Module constants
# ---------------------------------------------------------------------------

_ALLOWED_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

_TRUE_WORDS = {"1", "true", "yes", "on"}
_FALSE_WORDS = {"0", "false", "no", "off"}


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _normalize_numbers(value: Any) -> Mapping[int, str]:
    if value is None:
        return MappingProxyType({})

    if isinstance(value, Mapping):
        items = list(value.items())
    elif isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        items = list(enumerate(value))
    else:
        raise ConfigError(
            f"numbers must be a mapping or a sequence, got {type(value).__name__}"
        )

    normalized: dict[int, str] = {}
    for key, numeral in items:
        if not isinstance(key, int) or isinstance(key, bool):
            raise ConfigError(f"numbers key {key!r} must be an integer")
        if numeral is not None and not isinstance(numeral, str):
            raise ConfigError(f"numbers[{key}]={numeral!r} must be a string or None")
        if numeral:
            normalized[key] = numeral
    return MappingProxyType(normalized)


def _raise_if_errors(errors: list[str], scope: str) -> None:
    if not errors:
        return

    formatted = "\n - ".join(errors)
    raise ConfigError(f"Invalid {scope} configuration:\n - {formatted}")


# ---------------------------------------------------------------------------
# Public typed configs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FormatConfig:
    """
    Phrase table consumed by humanize().

    Template fields accept plain strings and callables; both are stored as
    LiteralTemplate / ComputedTemplate after construction. ``numbers`` maps
    small counts to custom numerals and may be given as a mapping or as a
    sequence indexed by count.
    """

    allow_future: bool = False

    seconds: Template = LiteralTemplate("less than a minute")
    minute: Template = LiteralTemplate("1 minute")
    minutes: Template = LiteralTemplate("%d minutes")
    hour: Template = LiteralTemplate("1 hour")
    hours: Template = LiteralTemplate("%d hours")
    day: Template = LiteralTemplate("a day")
    days: Template = LiteralTemplate("%d days")
    month: Template = LiteralTemplate("a month")
    months: Template = LiteralTemplate("%d months")
    year: Template = LiteralTemplate("a year")
    years: Template = LiteralTemplate("%d years")

    prefix_ago: Optional[str] = None
    suffix_ago: Optional[str] = "ago"
    prefix_from_now: Optional[str] = None
    suffix_from_now: Optional[str] = "from now"

    time_separator: str = "and"
    word_separator: str = " "

    numbers: Mapping[int, str] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        errors: list[str] = []

        if not isinstance(self.allow_future, bool):
            errors.append(f"allow_future={self.allow_future!r} must be a bool")

        for name in TEMPLATE_FIELDS:
            try:
                object.__setattr__(self, name, as_template(getattr(self, name), name))
            except ConfigError as exc:
                errors.append(str(exc))

        for name in _AFFIX_FIELDS:
            value = getattr(self, name)
            if value is not None and not isinstance(value, str):
                errors.append(f"{name}={value!r} must be a string or None")

        for name in _SEPARATOR_FIELDS:
            value = getattr(self, name)
            if not isinstance(value, str):
                errors.append(f"{name}={value!r} must be a string")

        try:
            object.__setattr__(self, "numbers", _normalize_numbers(self.numbers))
        except ConfigError as exc:
            errors.append(str(exc))

        _raise_if_errors(errors, "FormatConfig")

    def with_overrides(self, **changes: Any) -> "FormatConfig":
        """Return a validated copy with the given fields replaced."""
        unknown = sorted(set(changes) - {f.name for f in dataclasses.fields(self)})
        if unknown:
            raise ConfigError(f"Unknown FormatConfig field(s): {', '.join(unknown)}")
        return dataclasses.replace(self, **changes)

    def template(self, name: str) -> Template:
        if name not in TEMPLATE_FIELDS:
            raise KeyError(name)
        return getattr(self, name)


DEFAULT_FORMAT = FormatConfig()


@dataclass(frozen=True)
class TimeagoSettings:
    refresh_millis: int = 60_000
    format: FormatConfig = DEFAULT_FORMAT
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        errors: list[str] = []

        if not isinstance(self.refresh_millis, int) or isinstance(self.refresh_millis, bool):
            errors.append(f"refresh_millis={self.refresh_millis!r} must be an integer")

        if not isinstance(self.format, FormatConfig):
            errors.append(f"format must be a FormatConfig, got {type(self.format).__name__}")

        level = self.log_level.strip().upper() if isinstance(self.log_level, str) else None
        if level not in _ALLOWED_LOG_LEVELS:
            errors.append(
                f"log_level={self.log_level!r} must be one of {sorted(_ALLOWED_LOG_LEVELS)}"
            )
        else:
            object.__setattr__(self, "log_level", level)

        _raise_if_errors(errors, "TimeagoSettings")

    @property
    def periodic_refresh(self) -> bool:
        """False when refresh_millis <= 0; only manual refreshes happen then."""
        return self.refresh_millis > 0


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------


def load_settings(environ: Optional[Mapping[str, str]] = None, **overrides: Any) -> TimeagoSettings:
    """
    Load and validate settings from the environment.

    Recognized variables:
    - TIMEAGO_REFRESH_MILLIS (int, default 60000; <= 0 disables the timer)
    - TIMEAGO_ALLOW_FUTURE (bool word, default false)
    - TIMEAGO_LOG_LEVEL (default INFO)

    Keyword overrides (refresh_millis, allow_future, log_level, format)
    take precedence over the environment.

    Raises:
        ConfigError: on invalid configuration; all problems are reported at once.
    """
    env = os.environ if environ is None else environ

    unknown = sorted(set(overrides) - {"refresh_millis", "allow_future", "log_level", "format"})
    if unknown:
        raise ConfigError(f"Unknown setting(s): {', '.join(unknown)}")

    errors: list[str] = []

    refresh_millis = overrides.get("refresh_millis")
    if refresh_millis is None:
        refresh_millis = _get_optional_int(env, "TIMEAGO_REFRESH_MILLIS", 60_000, errors)

    log_level = overrides.get("log_level")
    if log_level is None:
        log_level = _get_optional_str(env, "TIMEAGO_LOG_LEVEL", "INFO").upper()
        if log_level not in _ALLOWED_LOG_LEVELS:
            errors.append(
                f"TIMEAGO_LOG_LEVEL={log_level!r} must be one of {sorted(_ALLOWED_LOG_LEVELS)}"
            )

    allow_future = overrides.get("allow_future")
    if allow_future is None:
        allow_future = _get_optional_bool(env, "TIMEAGO_ALLOW_FUTURE", errors)

    _raise_if_errors(errors, "environment")

    fmt = overrides.get("format") or DEFAULT_FORMAT
    if not isinstance(fmt, FormatConfig):
        raise ConfigError(f"format must be a FormatConfig, got {type(fmt).__name__}")
    if allow_future is not None and allow_future != fmt.allow_future:
        fmt = fmt.with_overrides(allow_future=allow_future)

    return TimeagoSettings(refresh_millis=refresh_millis, format=fmt, log_level=log_level)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _get_optional_str(env: Mapping[str, str], name: str, default: str) -> str:
    raw = env.get(name)
    if raw is None:
        return default
    stripped = raw.strip()
    return default if stripped == "" else stripped


def _get_optional_int(env: Mapping[str, str], name: str, default: int, errors: list[str]) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default

    raw_str = raw.strip()
    try:
        return int(raw_str)
    except ValueError:
        errors.append(f"{name}={raw_str!r} must be an integer")
        return default


def _get_optional_bool(env: Mapping[str, str], name: str, errors: list[str]) -> Optional[bool]:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return None

    word = raw.strip().lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    errors.append(f"{name}={raw.strip()!r} must be one of {sorted(_TRUE_WORDS | _FALSE_WORDS)}")
    return None


__all__ = [
    "ConfigError",
    "LiteralTemplate",
    "ComputedTemplate",
    "Template",
    "TemplateLike",
    "TEMPLATE_FIELDS",
    "as_template",
    "FormatConfig",
    "DEFAULT_FORMAT",
    "TimeagoSettings",
    "load_settings",
]
