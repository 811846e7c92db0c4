# storycraft/resilience/errors.py
"""
Error taxonomy for acquisition and generation.

Every collaborator translates its native failures into one of these types
so the retry classifier, the breaker and the pipeline can reason about
them uniformly. Foreign exceptions are mapped by classify_error().
"""

from __future__ import annotations

import json
import socket
from enum import Enum
from typing import Optional

import requests
from pydantic import ValidationError


class ErrorKind(str, Enum):
    """Typed error categories for machine-parsable diagnostics."""
    INVALID_REFERENCE = "invalid_reference"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    QUOTA_EXCEEDED = "quota_exceeded"
    ACCESS_DENIED = "access_denied"
    CONTENT_NOT_FOUND = "content_not_found"
    MALFORMED_RESPONSE = "malformed_response"
    RESOURCE_EXHAUSTED = "resource_exhausted"
    CIRCUIT_OPEN = "circuit_open"
    UNEXPECTED = "unexpected"


class StorycraftError(Exception):
    """Base class. Subclasses fix `kind` and `retryable`."""

    kind: ErrorKind = ErrorKind.UNEXPECTED
    retryable: bool = False

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class InvalidReference(StorycraftError):
    kind = ErrorKind.INVALID_REFERENCE


class UpstreamUnavailable(StorycraftError):
    kind = ErrorKind.UPSTREAM_UNAVAILABLE
    retryable = True


class QuotaExceeded(StorycraftError):
    kind = ErrorKind.QUOTA_EXCEEDED
    retryable = True


class AccessDenied(StorycraftError):
    kind = ErrorKind.ACCESS_DENIED


class ContentNotFound(StorycraftError):
    kind = ErrorKind.CONTENT_NOT_FOUND


class MalformedResponse(StorycraftError):
    kind = ErrorKind.MALFORMED_RESPONSE


class ResourceExhausted(StorycraftError):
    kind = ErrorKind.RESOURCE_EXHAUSTED


class CircuitOpenError(StorycraftError):
    """Raised (or handed to the fallback) when a breaker short-circuits a call."""
    kind = ErrorKind.CIRCUIT_OPEN


RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})

_QUOTA_MESSAGES = (
    "quota exceeded",
    "quotaexceeded",
    "exceeded your quota",
    "rate limit",
    "too many requests",
)

_RETRYABLE_MESSAGES = (
    "timed out",
    "timeout",
    "network",
    "temporarily unavailable",
    "service unavailable",
    "connection reset",
)


def error_from_status(status_code: int, message: str) -> StorycraftError:
    """Map an HTTP-like status code to the taxonomy."""
    if status_code == 429:
        return QuotaExceeded(message, status_code=status_code)
    if status_code in (401, 403):
        return AccessDenied(message, status_code=status_code)
    if status_code in (404, 410):
        return ContentNotFound(message, status_code=status_code)
    if status_code in RETRYABLE_STATUS_CODES:
        return UpstreamUnavailable(message, status_code=status_code)
    if 500 <= status_code < 600:
        return UpstreamUnavailable(message, status_code=status_code)
    return MalformedResponse(message, status_code=status_code)


def classify_error(exc: BaseException) -> ErrorKind:
    """Return the ErrorKind for any exception, native or foreign."""
    if isinstance(exc, StorycraftError):
        return exc.kind
    if isinstance(exc, (TimeoutError, socket.timeout, requests.Timeout)):
        return ErrorKind.UPSTREAM_UNAVAILABLE
    if isinstance(exc, (ConnectionError, requests.ConnectionError)):
        return ErrorKind.UPSTREAM_UNAVAILABLE
    if isinstance(exc, requests.HTTPError) and exc.response is not None:
        return error_from_status(exc.response.status_code, str(exc)).kind
    if isinstance(exc, (ValidationError, json.JSONDecodeError)):
        return ErrorKind.MALFORMED_RESPONSE

    message = str(exc).lower()
    if any(fragment in message for fragment in _QUOTA_MESSAGES):
        return ErrorKind.QUOTA_EXCEEDED
    if any(fragment in message for fragment in _RETRYABLE_MESSAGES):
        return ErrorKind.UPSTREAM_UNAVAILABLE
    return ErrorKind.UNEXPECTED


def is_retryable(exc: BaseException) -> bool:
    """Retry only transient upstream failures; everything else fails fast."""
    if isinstance(exc, StorycraftError):
        return exc.retryable
    return classify_error(exc) in (ErrorKind.UPSTREAM_UNAVAILABLE, ErrorKind.QUOTA_EXCEEDED)
