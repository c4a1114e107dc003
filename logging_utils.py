"""Lightweight logging helper for console-tagged messages.

Every component logs through log_event() with a short tag (Motion, Session,
ControlLoop, AudioEngine, ...) so the console reads like a timeline.
"""
from __future__ import annotations

import logging
from typing import Any

_logger = logging.getLogger("motiontempo")
if not _logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter("%(asctime)s [%(levelname)s][%(tag)s] %(message)s", "%H:%M:%S")
    handler.setFormatter(formatter)
    _logger.addHandler(handler)
    _logger.setLevel(logging.INFO)
    _logger.propagate = False


class _TagAdapter(logging.LoggerAdapter):
    def process(self, msg: Any, kwargs: dict[str, Any]):
        tag = kwargs.pop("tag", "App")
        kwargs.setdefault("extra", {})["tag"] = tag
        return msg, kwargs


_logger_adapter = _TagAdapter(_logger, {})

# WARN is accepted as an alias, older call sites use it
_LEVEL_ALIASES = {"WARN": "WARNING"}


def _level_value(level: str) -> int:
    level_name = (level or "INFO").upper()
    level_name = _LEVEL_ALIASES.get(level_name, level_name)
    value = getattr(logging, level_name, logging.INFO)
    return value if isinstance(value, int) else logging.INFO


def log_event(level: str, tag: str, message: str, **fields: Any) -> None:
    """Log a message with level+tag, appending key=value fields when provided."""
    if fields:
        extras = " ".join(f"{k}={v}" for k, v in fields.items())
        message = f"{message} | {extras}"
    _logger_adapter.log(_level_value(level), message, tag=tag)


def set_log_level(level: str) -> None:
    """Set global log level (DEBUG/INFO/WARNING/ERROR)."""
    _logger.setLevel(_level_value(level))


def get_log_level() -> str:
    """Return current global log level name."""
    return logging.getLevelName(_logger.level)
