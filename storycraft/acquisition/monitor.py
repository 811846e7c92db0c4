# storycraft/acquisition/monitor.py
"""
Processing monitor: bookkeeping for acquisition attempts.

Purely additive. A monitoring failure must never abort the pipeline it
observes, so every public method catches and logs its own exceptions.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections import deque
from datetime import datetime
from typing import Any, Deque, Dict, Iterable, List, Optional

from storycraft.acquisition.schema import EventOutcome, ProcessingEvent
from storycraft.logging_core.logger import get_component_logger, log_event
from storycraft.resilience.clock import Clock, SystemClock
from storycraft.resilience.errors import classify_error


_logger = get_component_logger("monitor")

SLOW_EVENT_MS = 10_000


def _empty_metrics() -> Dict[str, Any]:
    return {
        "total_requests": 0,
        "successful": 0,
        "failed": 0,
        "cache_hits": 0,
        "shorts_requests": 0,
        "average_processing_ms": 0.0,
        "completed": 0,
        "errors_by_type": {},
        "strategies": {},
        "tier_attempts": {},
        "last_updated": None,
    }


class ProcessingMonitor:
    """Thread-safe accumulator of ProcessingEvents and aggregate metrics."""

    def __init__(self, clock: Optional[Clock] = None, max_events: int = 100) -> None:
        self._clock = clock or SystemClock()
        self._lock = threading.Lock()
        self._metrics: Dict[str, Any] = _empty_metrics()
        self._open: Dict[str, ProcessingEvent] = {}
        self._events: Deque[ProcessingEvent] = deque(maxlen=max_events)

    def now(self) -> float:
        return self._clock.monotonic()

    def record_start(self, url: str, kind: str) -> str:
        event_id = f"evt_{uuid.uuid4().hex[:12]}"
        try:
            event = ProcessingEvent(
                id=event_id,
                url=str(url)[:500],
                content_kind=str(kind),
                started_at=self._clock.now(),
            )
            with self._lock:
                self._metrics["total_requests"] += 1
                if kind == "shorts":
                    self._metrics["shorts_requests"] += 1
                self._metrics["last_updated"] = event.started_at
                self._open[event_id] = event
                # Unfinished events are bounded like the finished log.
                while len(self._open) > (self._events.maxlen or 100):
                    self._open.pop(next(iter(self._open)))
        except Exception as exc:  # pylint: disable=broad-except
            self._swallow("record_start", exc)
        return event_id

    def record_complete(
        self,
        event_id: str,
        strategy: str,
        start_time: float,
        success: bool,
        error: Optional[BaseException] = None,
        tiers_attempted: Iterable[str] = (),
        cache_hit: bool = False,
    ) -> None:
        try:
            duration_ms = max(self._clock.monotonic() - start_time, 0.0) * 1000
            tiers = list(tiers_attempted)
            error_kind = classify_error(error).value if error is not None else None
            if cache_hit:
                outcome = EventOutcome.CACHE_HIT
            else:
                outcome = EventOutcome.SUCCESS if success else EventOutcome.ERROR

            with self._lock:
                metrics = self._metrics
                if success:
                    metrics["successful"] += 1
                else:
                    metrics["failed"] += 1
                if cache_hit:
                    metrics["cache_hits"] += 1
                if error is not None:
                    key = f"{error_kind}:{str(error)[:50]}"
                    metrics["errors_by_type"][key] = metrics["errors_by_type"].get(key, 0) + 1

                metrics["completed"] += 1
                completed = metrics["completed"]
                metrics["average_processing_ms"] += (duration_ms - metrics["average_processing_ms"]) / completed
                metrics["strategies"][strategy] = metrics["strategies"].get(strategy, 0) + 1
                for tier in tiers:
                    metrics["tier_attempts"][tier] = metrics["tier_attempts"].get(tier, 0) + 1

                finished_at = self._clock.now()
                metrics["last_updated"] = finished_at
                event = self._open.pop(event_id, None)
                if event is None:
                    event = ProcessingEvent(id=event_id, url="", content_kind="unknown", started_at=finished_at)
                self._events.appendleft(
                    event.model_copy(
                        update={
                            "finished_at": finished_at,
                            "strategy": strategy,
                            "outcome": outcome,
                            "error_kind": error_kind,
                            "duration_ms": duration_ms,
                            "tiers_attempted": tiers,
                        }
                    )
                )

            if not success or duration_ms > SLOW_EVENT_MS:
                log_event(
                    _logger,
                    logging.WARNING,
                    "Processing event completed",
                    event_type="processing_complete",
                    metadata={
                        "event_id": event_id,
                        "duration_ms": round(duration_ms, 1),
                        "success": success,
                        "strategy": strategy,
                        "error_kind": error_kind,
                    },
                )
        except Exception as exc:  # pylint: disable=broad-except
            self._swallow("record_complete", exc)

    def get_metrics(self) -> Dict[str, Any]:
        try:
            with self._lock:
                metrics = dict(self._metrics)
                metrics["errors_by_type"] = dict(self._metrics["errors_by_type"])
                metrics["strategies"] = dict(self._metrics["strategies"])
                metrics["tier_attempts"] = dict(self._metrics["tier_attempts"])
                return metrics
        except Exception as exc:  # pylint: disable=broad-except
            self._swallow("get_metrics", exc)
            return _empty_metrics()

    def get_success_rate(self) -> float:
        """Percentage of completed requests that succeeded."""
        try:
            with self._lock:
                completed = self._metrics["completed"]
                return (self._metrics["successful"] / completed * 100) if completed else 0.0
        except Exception as exc:  # pylint: disable=broad-except
            self._swallow("get_success_rate", exc)
            return 0.0

    def get_top_errors(self, limit: int = 5) -> List[Dict[str, Any]]:
        try:
            with self._lock:
                items = list(self._metrics["errors_by_type"].items())
            ranked = sorted(items, key=lambda item: item[1], reverse=True)[: max(limit, 0)]
            return [{"error": error, "count": count} for error, count in ranked]
        except Exception as exc:  # pylint: disable=broad-except
            self._swallow("get_top_errors", exc)
            return []

    def get_strategy_breakdown(self) -> List[Dict[str, Any]]:
        try:
            with self._lock:
                items = list(self._metrics["strategies"].items())
            total = sum(count for _, count in items)
            return sorted(
                (
                    {"strategy": strategy, "count": count, "percentage": (count / total * 100) if total else 0.0}
                    for strategy, count in items
                ),
                key=lambda row: row["count"],
                reverse=True,
            )
        except Exception as exc:  # pylint: disable=broad-except
            self._swallow("get_strategy_breakdown", exc)
            return []

    def get_recent_events(self, limit: int = 10) -> List[ProcessingEvent]:
        try:
            with self._lock:
                return list(self._events)[: max(limit, 0)]
        except Exception as exc:  # pylint: disable=broad-except
            self._swallow("get_recent_events", exc)
            return []

    def get_recent_errors(self, limit: int = 5) -> List[Dict[str, Any]]:
        recent = self.get_recent_events(limit=self._events.maxlen or 100)
        events = [event for event in recent if event.outcome is EventOutcome.ERROR]
        return [
            {
                "event_id": event.id,
                "url": event.url,
                "strategy": event.strategy,
                "error_kind": event.error_kind,
                "finished_at": event.finished_at.isoformat() if event.finished_at else None,
            }
            for event in events[:limit]
        ]

    def generate_report(self) -> str:
        try:
            metrics = self.get_metrics()
            total = metrics["total_requests"]
            shorts_pct = (metrics["shorts_requests"] / total * 100) if total else 0.0
            strategies = self.get_strategy_breakdown()
            top_errors = self.get_top_errors()
            last_updated: Optional[datetime] = metrics["last_updated"]

            lines = [
                "Content Acquisition Monitor Report",
                "==================================",
                f"Generated: {self._clock.now().isoformat()}",
                "",
                "Overall Metrics:",
                f"- Total Requests: {total}",
                f"- Successful: {metrics['successful']} ({self.get_success_rate():.1f}%)",
                f"- Failed: {metrics['failed']}",
                f"- Cache Hits: {metrics['cache_hits']}",
                f"- Average Processing Time: {metrics['average_processing_ms']:.0f}ms",
                "",
                "Content Type Breakdown:",
                f"- Shorts Requests: {metrics['shorts_requests']} ({shorts_pct:.1f}%)",
                f"- Other Requests: {total - metrics['shorts_requests']}",
                "",
                "Strategies Used:",
            ]
            lines += [f"- {row['strategy']}: {row['count']} ({row['percentage']:.1f}%)" for row in strategies] or ["- none"]
            lines += ["", "Top Errors:"]
            lines += [f"- {row['error']}: {row['count']} occurrences" for row in top_errors] or ["- No errors recorded"]
            lines += ["", f"Last Updated: {last_updated.isoformat() if last_updated else 'never'}"]
            return "\n".join(lines)
        except Exception as exc:  # pylint: disable=broad-except
            self._swallow("generate_report", exc)
            return "Content Acquisition Monitor Report unavailable"

    def reset(self) -> None:
        try:
            with self._lock:
                self._metrics = _empty_metrics()
                self._open.clear()
                self._events.clear()
            log_event(_logger, logging.INFO, "Processing monitor reset", event_type="monitor_reset")
        except Exception as exc:  # pylint: disable=broad-except
            self._swallow("reset", exc)

    @staticmethod
    def _swallow(operation: str, exc: BaseException) -> None:
        try:
            log_event(
                _logger,
                logging.ERROR,
                "Monitor operation failed",
                stage_name=operation,
                event_type="monitor_failure",
                metadata={"exception": str(exc)},
            )
        except Exception:  # pylint: disable=broad-except
            pass



# High-Level Intent
# The monitor is the pipeline's diagnostics collector: it aggregates success
# rate, per-error-kind counts, strategy usage and tier attempts for the health
# surface. Event retention is a bounded deque, newest first.
