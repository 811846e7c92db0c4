# storycraft/acquisition/quota.py
"""
Daily budget for the enrichment tier.

The counter resets when the clock crosses into a new day in the configured
timezone. try_acquire() checks and increments under one lock.
"""

from __future__ import annotations

import logging
import threading
from datetime import date, timedelta, timezone, tzinfo
from typing import Any, Dict, Optional

from storycraft.logging_core.logger import get_component_logger, log_event
from storycraft.resilience.clock import Clock, SystemClock


_logger = get_component_logger("quota")


class DailyQuota:
    def __init__(
        self,
        limit: int,
        clock: Optional[Clock] = None,
        tz: tzinfo = timezone.utc,
        reset_hour: int = 0,
    ) -> None:
        if limit < 0:
            raise ValueError("limit must be >= 0")
        if not 0 <= reset_hour <= 23:
            raise ValueError("reset_hour must be within 0..23")
        self.limit = limit
        self._clock = clock or SystemClock()
        self._tz = tz
        self._reset_hour = reset_hour
        self._lock = threading.Lock()
        self._used = 0
        self._window = self._current_window()

    def _current_window(self) -> date:
        local = self._clock.now().astimezone(self._tz) - timedelta(hours=self._reset_hour)
        return local.date()

    def _roll_locked(self) -> None:
        window = self._current_window()
        if window != self._window:
            if self._used:
                log_event(
                    _logger,
                    logging.INFO,
                    "Daily enrichment quota reset",
                    event_type="quota_reset",
                    metadata={"previous_used": self._used, "limit": self.limit},
                )
            self._window = window
            self._used = 0

    def try_acquire(self) -> bool:
        """Claim one slot. False when today's budget is spent."""
        with self._lock:
            self._roll_locked()
            if self._used >= self.limit:
                return False
            self._used += 1
            return True

    def remaining(self) -> int:
        with self._lock:
            self._roll_locked()
            return max(self.limit - self._used, 0)

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            self._roll_locked()
            return {"used": self._used, "limit": self.limit, "window": self._window.isoformat()}
