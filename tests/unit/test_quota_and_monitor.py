"""
Unit tests for the daily enrichment quota and the processing monitor.
"""

import threading
from datetime import datetime, timezone

import pytest

from storycraft.acquisition.monitor import ProcessingMonitor
from storycraft.acquisition.quota import DailyQuota
from storycraft.acquisition.schema import EventOutcome
from storycraft.resilience.errors import UpstreamUnavailable

from tests.fakes import FakeClock


class TestDailyQuota:
    """Tests for DailyQuota"""

    def test_grants_up_to_limit(self, clock):
        quota = DailyQuota(2, clock=clock)
        assert quota.try_acquire()
        assert quota.try_acquire()
        assert not quota.try_acquire()
        assert quota.remaining() == 0

    def test_resets_at_day_boundary(self):
        clock = FakeClock(datetime(2024, 6, 1, 23, 59, tzinfo=timezone.utc))
        quota = DailyQuota(1, clock=clock)
        assert quota.try_acquire()
        assert not quota.try_acquire()
        clock.advance(60)
        assert quota.try_acquire()
        assert quota.snapshot()["window"] == "2024-06-02"

    def test_reset_hour(self):
        clock = FakeClock(datetime(2024, 6, 2, 2, 0, tzinfo=timezone.utc))
        quota = DailyQuota(1, clock=clock, reset_hour=3)
        assert quota.try_acquire()
        clock.advance(59 * 60)
        assert not quota.try_acquire()
        clock.advance(60)
        assert quota.try_acquire()

    def test_zero_limit(self, clock):
        assert not DailyQuota(0, clock=clock).try_acquire()

    def test_concurrent_acquire_never_oversubscribes(self, clock):
        quota = DailyQuota(10, clock=clock)
        granted = []

        def worker():
            for _ in range(10):
                if quota.try_acquire():
                    granted.append(1)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert len(granted) == 10

    @pytest.mark.parametrize("kwargs", [{"limit": -1}, {"limit": 1, "reset_hour": 24}])
    def test_rejects_bad_config(self, kwargs):
        with pytest.raises(ValueError):
            DailyQuota(**kwargs)


class TestProcessingMonitor:
    """Tests for ProcessingMonitor"""

    def test_records_success(self, clock):
        monitor = ProcessingMonitor(clock=clock)
        start = monitor.now()
        event_id = monitor.record_start("https://youtu.be/abcdef123", "video")
        clock.advance(0.25)
        monitor.record_complete(event_id, "standard", start, success=True, tiers_attempted=["standard"])

        metrics = monitor.get_metrics()
        assert metrics["total_requests"] == 1
        assert metrics["successful"] == 1
        assert metrics["average_processing_ms"] == pytest.approx(250.0)
        assert metrics["tier_attempts"] == {"standard": 1}
        event = monitor.get_recent_events()[0]
        assert event.outcome is EventOutcome.SUCCESS
        assert event.tiers_attempted == ["standard"]

    def test_error_keys_and_top_errors(self, clock):
        monitor = ProcessingMonitor(clock=clock)
        for _ in range(2):
            event_id = monitor.record_start("u", "video")
            monitor.record_complete(event_id, "emergency_stub", 0.0, success=False, error=UpstreamUnavailable("x" * 80))
        top = monitor.get_top_errors()
        assert top == [{"error": "upstream_unavailable:" + "x" * 50, "count": 2}]
        assert monitor.get_success_rate() == 0.0
        assert len(monitor.get_recent_errors()) == 2

    def test_success_rate_and_breakdown(self, clock):
        monitor = ProcessingMonitor(clock=clock)
        for strategy, success in (("standard", True), ("standard", True), ("url_pattern", True), ("emergency_stub", False)):
            monitor.record_complete(monitor.record_start("u", "video"), strategy, 0.0, success=success)
        assert monitor.get_success_rate() == 75.0
        breakdown = monitor.get_strategy_breakdown()
        assert breakdown[0] == {"strategy": "standard", "count": 2, "percentage": 50.0}

    def test_cache_hit_outcome(self, clock):
        monitor = ProcessingMonitor(clock=clock)
        monitor.record_complete(monitor.record_start("u", "shorts"), "cache_hit", 0.0, success=True, cache_hit=True)
        assert monitor.get_metrics()["cache_hits"] == 1
        assert monitor.get_metrics()["shorts_requests"] == 1
        assert monitor.get_recent_events()[0].outcome is EventOutcome.CACHE_HIT

    def test_event_log_is_capped(self, clock):
        monitor = ProcessingMonitor(clock=clock, max_events=5)
        for _ in range(12):
            monitor.record_complete(monitor.record_start("u", "video"), "standard", 0.0, success=True)
        assert len(monitor.get_recent_events(limit=100)) == 5

    def test_unknown_event_id_still_recorded(self, clock):
        monitor = ProcessingMonitor(clock=clock)
        monitor.record_complete("evt_missing", "standard", 0.0, success=True)
        assert monitor.get_metrics()["completed"] == 1

    def test_never_raises_on_bad_input(self, clock):
        monitor = ProcessingMonitor(clock=clock)
        monitor.record_complete("evt", "standard", "not-a-number", success=True)  # type: ignore[arg-type]
        assert monitor.get_metrics()["completed"] == 0
        assert monitor.get_top_errors(limit=-3) == []

    def test_report_and_reset(self, clock):
        monitor = ProcessingMonitor(clock=clock)
        monitor.record_complete(monitor.record_start("u", "video"), "standard", 0.0, success=True)
        report = monitor.generate_report()
        assert "Total Requests: 1" in report
        assert "standard: 1" in report
        monitor.reset()
        assert monitor.get_metrics()["total_requests"] == 0
        assert monitor.get_recent_events() == []
