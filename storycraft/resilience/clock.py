# storycraft/resilience/clock.py
"""
Clock abstraction shared by the breaker, cache, quota and monitor.

monotonic() drives elapsed-time decisions (TTL, reset timeouts).
now() drives wall-clock decisions (daily quota boundary, event timestamps).
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    def monotonic(self) -> float:
        ...

    def now(self) -> datetime:
        ...


class SystemClock:
    """Real time source."""

    def monotonic(self) -> float:
        return time.monotonic()

    def now(self) -> datetime:
        return datetime.now(timezone.utc)
