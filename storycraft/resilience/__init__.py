"""Failure handling primitives: error taxonomy, retries, circuit breakers."""

from storycraft.resilience.breaker import (
    BreakerConfig,
    BreakerRegistry,
    BreakerSnapshot,
    CircuitBreaker,
    CircuitState,
)
from storycraft.resilience.clock import Clock, SystemClock
from storycraft.resilience.errors import (
    AccessDenied,
    CircuitOpenError,
    ContentNotFound,
    ErrorKind,
    InvalidReference,
    MalformedResponse,
    QuotaExceeded,
    ResourceExhausted,
    StorycraftError,
    UpstreamUnavailable,
    classify_error,
    is_retryable,
)
from storycraft.resilience.retry import RetryConfig, execute_with_retry

__all__ = [
    "AccessDenied",
    "BreakerConfig",
    "BreakerRegistry",
    "BreakerSnapshot",
    "CircuitBreaker",
    "CircuitOpenError",
    "CircuitState",
    "Clock",
    "ContentNotFound",
    "ErrorKind",
    "InvalidReference",
    "MalformedResponse",
    "QuotaExceeded",
    "ResourceExhausted",
    "RetryConfig",
    "StorycraftError",
    "SystemClock",
    "UpstreamUnavailable",
    "classify_error",
    "execute_with_retry",
    "is_retryable",
]
