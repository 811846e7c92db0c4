# storycraft/resilience/retry.py
"""
Bounded exponential-backoff retries on top of tenacity.

Responsibility:
- Run an operation up to max_attempts times
- Retry only errors the classifier marks transient
- Re-raise the final error unchanged (same object, same type)
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from tenacity import RetryCallState, Retrying, retry_if_exception, stop_after_attempt
from tenacity.wait import wait_base

from storycraft.logging_core.logger import AnyLogger, get_component_logger, log_event
from storycraft.resilience.errors import QuotaExceeded, classify_error, is_retryable


T = TypeVar("T")

_logger = get_component_logger("retry")


@dataclass(frozen=True)
class RetryConfig:
    """Backoff settings. Delays are in seconds."""
    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0
    jitter: float = 0.5
    rate_limit_multiplier: float = 3.0


class ExponentialBackoff(wait_base):
    """base_delay * 2**(attempt-1), capped, jittered, stretched for rate limits."""

    def __init__(self, config: RetryConfig, rng: Optional[random.Random] = None) -> None:
        self.config = config
        self.rng = rng or random.Random()

    def __call__(self, retry_state: RetryCallState) -> float:
        cfg = self.config
        attempt = max(retry_state.attempt_number, 1)
        delay = min(cfg.base_delay * (2 ** (attempt - 1)), cfg.max_delay)
        if cfg.jitter:
            delay *= 1 - cfg.jitter + self.rng.random() * cfg.jitter

        outcome = retry_state.outcome
        if outcome is not None and outcome.failed and isinstance(outcome.exception(), QuotaExceeded):
            delay *= cfg.rate_limit_multiplier
        return max(delay, 0.0)


def execute_with_retry(
    operation: Callable[[], T],
    operation_name: str,
    config: RetryConfig = RetryConfig(),
    *,
    sleep: Callable[[float], None] = time.sleep,
    logger: Optional[AnyLogger] = None,
) -> T:
    """
    Run `operation` with retries.

    Non-retryable errors propagate on the first attempt. After the last
    attempt the original exception is raised, not a wrapper.
    """
    log = logger or _logger

    def _before_sleep(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        log_event(
            log,
            logging.WARNING,
            "Operation failed, retrying",
            stage_name=operation_name,
            event_type="retry",
            metadata={
                "attempt": retry_state.attempt_number,
                "max_attempts": config.max_attempts,
                "next_delay_s": round(retry_state.next_action.sleep, 3) if retry_state.next_action else None,
                "error_kind": classify_error(exc).value if exc else None,
                "error": str(exc) if exc else None,
            },
        )

    retrying = Retrying(
        stop=stop_after_attempt(max(config.max_attempts, 1)),
        wait=ExponentialBackoff(config),
        retry=retry_if_exception(is_retryable),
        reraise=True,
        sleep=sleep,
        before_sleep=_before_sleep,
    )

    try:
        return retrying(operation)
    except Exception as exc:
        log_event(
            log,
            logging.WARNING,
            "Operation gave up",
            stage_name=operation_name,
            event_type="failure",
            metadata={
                "error_kind": classify_error(exc).value,
                "retryable": is_retryable(exc),
                "error": str(exc),
            },
        )
        raise
