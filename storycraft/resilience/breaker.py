# storycraft/resilience/breaker.py
"""
Circuit breaker guarding a flaky operation category.

State machine: CLOSED -> OPEN -> HALF_OPEN -> (CLOSED | OPEN).

All reads and writes of state happen under one lock. The HALF_OPEN trial
is claimed inside the lock before the operation is dispatched, so only one
trial call can be in flight at a time.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional, TypeVar

from storycraft.logging_core.logger import get_component_logger, log_event
from storycraft.resilience.clock import Clock, SystemClock
from storycraft.resilience.errors import CircuitOpenError, classify_error


T = TypeVar("T")

Fallback = Callable[[BaseException], T]

_logger = get_component_logger("breaker")


class CircuitState(str, Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


@dataclass(frozen=True)
class BreakerConfig:
    failure_threshold: int = 5
    reset_timeout: float = 60.0  # seconds


@dataclass(frozen=True)
class BreakerSnapshot:
    """Consistent, read-only view of a breaker."""
    name: str
    state: CircuitState
    consecutive_failures: int
    last_failure_time: Optional[float]
    trial_in_flight: bool


class CircuitBreaker:
    """Per-category breaker. Thread-safe."""

    def __init__(self, name: str, config: BreakerConfig = BreakerConfig(), clock: Optional[Clock] = None) -> None:
        self.name = name
        self.config = config
        self._clock = clock or SystemClock()
        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0
        self._last_failure_time: Optional[float] = None
        self._trial_in_flight = False

    @property
    def state(self) -> CircuitState:
        return self.snapshot().state

    def snapshot(self) -> BreakerSnapshot:
        with self._lock:
            self._refresh_locked()
            return BreakerSnapshot(
                name=self.name,
                state=self._state,
                consecutive_failures=self._consecutive_failures,
                last_failure_time=self._last_failure_time,
                trial_in_flight=self._trial_in_flight,
            )

    def execute(self, operation: Callable[[], T], fallback: Optional[Fallback] = None) -> T:
        """
        Run `operation` if the circuit allows it, otherwise the fallback.

        The fallback receives the exception that caused it to run
        (CircuitOpenError when short-circuited). Raises only when the
        fallback is missing or itself fails.
        """
        admitted, is_trial = self._admit()

        if not admitted:
            log_event(
                _logger,
                logging.WARNING,
                "Circuit open, short-circuiting to fallback",
                stage_name=self.name,
                event_type="short_circuit",
            )
            error = CircuitOpenError(f"Circuit '{self.name}' is open; service temporarily unavailable")
            if fallback is None:
                raise error
            return fallback(error)

        try:
            result = operation()
        except Exception as exc:
            self._on_failure(exc, is_trial)
            if fallback is None:
                raise
            return fallback(exc)

        self._on_success(is_trial)
        return result

    def reset(self) -> None:
        with self._lock:
            self._state = CircuitState.CLOSED
            self._consecutive_failures = 0
            self._last_failure_time = None
            self._trial_in_flight = False

    def _refresh_locked(self) -> None:
        if self._state is CircuitState.OPEN and self._last_failure_time is not None:
            if self._clock.monotonic() - self._last_failure_time >= self.config.reset_timeout:
                self._state = CircuitState.HALF_OPEN
                self._trial_in_flight = False
                log_event(
                    _logger,
                    logging.INFO,
                    "Circuit transitioning to HALF_OPEN",
                    stage_name=self.name,
                    event_type="state_change",
                    metadata={"state": CircuitState.HALF_OPEN.value},
                )

    def _admit(self) -> tuple[bool, bool]:
        """Return (admitted, is_trial). Claims the half-open trial atomically."""
        with self._lock:
            self._refresh_locked()
            if self._state is CircuitState.CLOSED:
                return True, False
            if self._state is CircuitState.HALF_OPEN and not self._trial_in_flight:
                self._trial_in_flight = True
                return True, True
            return False, False

    def _on_success(self, is_trial: bool) -> None:
        with self._lock:
            if is_trial:
                log_event(
                    _logger,
                    logging.INFO,
                    "Trial call succeeded, circuit CLOSED",
                    stage_name=self.name,
                    event_type="state_change",
                    metadata={"state": CircuitState.CLOSED.value},
                )
                self._trial_in_flight = False
            self._state = CircuitState.CLOSED
            self._consecutive_failures = 0

    def _on_failure(self, exc: BaseException, is_trial: bool) -> None:
        with self._lock:
            self._consecutive_failures += 1
            if is_trial:
                self._trial_in_flight = False
                self._trip_locked(exc)
            elif self._state is CircuitState.CLOSED and self._consecutive_failures >= self.config.failure_threshold:
                self._trip_locked(exc)

    def _trip_locked(self, exc: BaseException) -> None:
        self._state = CircuitState.OPEN
        self._last_failure_time = self._clock.monotonic()
        log_event(
            _logger,
            logging.ERROR,
            "Circuit OPEN",
            stage_name=self.name,
            event_type="state_change",
            metadata={
                "state": CircuitState.OPEN.value,
                "consecutive_failures": self._consecutive_failures,
                "error_kind": classify_error(exc).value,
            },
        )


class BreakerRegistry:
    """One breaker per protected operation category."""

    def __init__(self, config: BreakerConfig = BreakerConfig(), clock: Optional[Clock] = None) -> None:
        self._config = config
        self._clock = clock or SystemClock()
        self._lock = threading.Lock()
        self._breakers: Dict[str, CircuitBreaker] = {}

    def get(self, category: str) -> CircuitBreaker:
        with self._lock:
            breaker = self._breakers.get(category)
            if breaker is None:
                breaker = CircuitBreaker(category, self._config, self._clock)
                self._breakers[category] = breaker
            return breaker

    def states(self) -> Dict[str, str]:
        with self._lock:
            breakers = list(self._breakers.values())
        return {breaker.name: breaker.state.value for breaker in breakers}
