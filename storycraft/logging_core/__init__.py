"""Structured JSON logging."""

from storycraft.logging_core.logger import (
    JSONFormatter,
    configure_logging,
    get_component_logger,
    get_logger,
    log_event,
)

__all__ = [
    "JSONFormatter",
    "configure_logging",
    "get_component_logger",
    "get_logger",
    "log_event",
]
