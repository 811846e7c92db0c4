# storycraft/logging_core/logger.py
"""
Centralized structured logging for the storycraft core.

Every record is emitted as a JSON line with mandatory fields:
- timestamp (ISO, UTC)
- level
- message
- run_id (per acquisition / generation run, when bound)
- stage_name, event_type, metadata (optional, filled by caller)

Library code logs only through log_event() on a logger obtained from
get_logger() or get_component_logger().
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, MutableMapping, Tuple, Union
from uuid import UUID

from logging import Logger


ROOT_LOGGER_NAME = "storycraft"


class JSONFormatter(logging.Formatter):
    """Formatter that outputs one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_record: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if getattr(record, "run_id", None) is not None:
            log_record["run_id"] = str(record.run_id)

        for field in ("stage_name", "event_type", "metadata"):
            value = getattr(record, field, None)
            if value is not None:
                log_record[field] = value

        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(log_record, ensure_ascii=False, default=str)


class RunLoggerAdapter(logging.LoggerAdapter):
    """Binds run_id to every record while keeping caller-supplied extra fields."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        extra.update(self.extra)
        kwargs["extra"] = extra
        return msg, kwargs


AnyLogger = Union[Logger, logging.LoggerAdapter]


def _root_logger() -> Logger:
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        logger.propagate = False
    return logger


def configure_logging(level: Union[int, str] = logging.INFO) -> Logger:
    """Install the JSON handler (idempotent) and set the package log level."""
    logger = _root_logger()
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)
    return logger


def get_component_logger(name: str) -> Logger:
    """Logger for long-lived components (cache, breakers, monitor)."""
    _root_logger()
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def get_logger(run_id: UUID | str) -> RunLoggerAdapter:
    """
    Return a logger bound to a single run.

    Adapters are cheap and not cached, so a long-running service does not
    accumulate one logger per run.
    """
    base = get_component_logger("run")
    return RunLoggerAdapter(base, {"run_id": str(run_id)})


def log_event(
    logger: AnyLogger,
    level: int,
    message: str,
    *,
    stage_name: str | None = None,
    event_type: str,
    metadata: Dict[str, Any] | None = None,
) -> None:
    """
    Convenience wrapper for structured logging.

    Use this everywhere for consistency.
    """
    extra: Dict[str, Any] = {"event_type": event_type}
    if stage_name:
        extra["stage_name"] = stage_name
    if metadata:
        extra["metadata"] = metadata

    logger.log(level, message, extra=extra)


# High-Level Intent
# One JSON line per event, with run_id bound per acquisition/generation run.
# Components that outlive a run (cache, breakers, quota, monitor) log through
# get_component_logger() so their events are still structured but unbound.

# Edge Cases
# Unserializable metadata values are stringified (default=str) instead of
# breaking the log call.
# configure_logging() may be called repeatedly; the handler is installed once.
