"""
Structured JSON-lines logging utilities for timeago-core.

Public API:
- init_logger(component: str = "core", level: str = "INFO")
- log_event(logger, *, event: str, level: str = "INFO",
            message: str = "", **fields) -> None
"""

import json
import logging
import sys
from typing import Any, Dict

from .time_utils import now_ms


_ALLOWED_LEVEL_NAMES = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
_HANDLER_MARKER_ATTR = "_timeago_jsonl_handler"
_COMPONENT_ATTR = "_timeago_component"
_LOGGER_PREFIX = "timeago."
_RESERVED_KEYS = frozenset({"ts_ms", "level", "component", "event"})


def init_logger(component: str = "core", level: str = "INFO") -> logging.Logger:
    """
    Initialize and return a component logger configured for JSON-lines output.

    Behavior:
    - Prevents duplicate stream handlers on repeated calls.
    - Writes to stdout.
    - Sets logger.propagate = False to avoid duplicate emission via root logger.
    """
    name = (component or "").strip() or "core"
    logger = logging.getLogger(_LOGGER_PREFIX + name)

    logger.setLevel(_normalize_level(level))
    logger.propagate = False

    if not any(getattr(h, _HANDLER_MARKER_ATTR, False) for h in logger.handlers):
        handler = logging.StreamHandler(stream=sys.stdout)
        handler.setFormatter(logging.Formatter("%(message)s"))
        setattr(handler, _HANDLER_MARKER_ATTR, True)
        logger.addHandler(handler)

    setattr(logger, _COMPONENT_ATTR, name)
    return logger


def get_logger(component: str) -> logging.Logger:
    """
    Return the component logger without touching handlers or level.

    Library objects use this when no logger is injected, so that importing
    timeago-core never installs handlers on its own.
    """
    return logging.getLogger(_LOGGER_PREFIX + component)


def log_event(
    logger: logging.Logger,
    *,
    event: str,
    level: str = "INFO",
    message: str = "",
    **fields: Any
) -> None:
    """
    Emit one structured JSON-lines log event.

    Required fields in every record:
    - ts_ms
    - level
    - component
    - event

    Reserved keys cannot be overridden by **fields. Logging never raises
    to the caller.
    """
    level_no = _normalize_level(level)
    if not logger.isEnabledFor(level_no):
        return

    component = _get_component(logger)

    try:
        event_name = str(event).strip() if event is not None else ""

        record: Dict[str, Any] = {
            "ts_ms": now_ms(),
            "level": _level_name(level),
            "component": component,
            "event": event_name or "unknown_event",
        }

        if message:
            record["message"] = str(message)

        for key, value in fields.items():
            if key not in _RESERVED_KEYS:
                record[key] = value

        logger.log(level_no, _dumps(record))

    except Exception as exc:  # pragma: no cover
        fallback = {
            "ts_ms": now_ms(),
            "level": "ERROR",
            "component": component,
            "event": "logging_failure",
            "message": "{0}: {1}".format(type(exc).__name__, str(exc)),
        }
        try:
            logger.error(_dumps(fallback))
        except Exception:
            sys.stderr.write(_dumps(fallback) + "\n")


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _dumps(record: Dict[str, Any]) -> str:
    return json.dumps(
        record,
        ensure_ascii=False,
        separators=(",", ":"),
        default=_safe_json_default,
    )


def _get_component(logger: logging.Logger) -> str:
    component = getattr(logger, _COMPONENT_ATTR, None)
    if isinstance(component, str) and component.strip():
        return component.strip()

    name = getattr(logger, "name", "") or ""
    if name.startswith(_LOGGER_PREFIX) and len(name) > len(_LOGGER_PREFIX):
        return name[len(_LOGGER_PREFIX):]

    return "unknown_component"


def _normalize_level(level: Any) -> int:
    if isinstance(level, int) and not isinstance(level, bool):
        return level

    if not isinstance(level, str):
        return logging.INFO

    name = level.strip().upper()
    if name in _ALLOWED_LEVEL_NAMES:
        return getattr(logging, name)
    return logging.INFO


def _level_name(level: Any) -> str:
    if isinstance(level, str):
        name = level.strip().upper()
        return name if name in _ALLOWED_LEVEL_NAMES else "INFO"

    if isinstance(level, int):
        maybe = logging.getLevelName(level)
        if isinstance(maybe, str) and maybe in _ALLOWED_LEVEL_NAMES:
            return maybe

    return "INFO"


def _safe_json_default(obj: Any) -> Any:
    """Fallback serializer for non-JSON-native objects."""
    if isinstance(obj, bytes):
        return "<bytes:{0}>".format(len(obj))
    if isinstance(obj, (set, frozenset)):
        return sorted(obj, key=repr)
    if isinstance(obj, Exception):
        return "{0}: {1}".format(type(obj).__name__, str(obj))
    return str(obj)


__all__ = ["init_logger", "get_logger", "log_event"]
