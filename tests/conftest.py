"""
Shared pytest fixtures for storycraft tests.
"""

from __future__ import annotations

import pytest

from storycraft.acquisition.cache import ContentCache
from storycraft.acquisition.monitor import ProcessingMonitor
from storycraft.acquisition.pipeline import AcquisitionPipeline
from storycraft.acquisition.quota import DailyQuota
from storycraft.acquisition.schema import Enrichment
from storycraft.acquisition.tiers.base import PipelineOptions
from storycraft.resilience.breaker import BreakerConfig, BreakerRegistry
from storycraft.resilience.retry import RetryConfig

from tests.fakes import FakeClock, FakeMetadataClient


# ============================================================================
# Time and retry
# ============================================================================

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def no_sleep_retry():
    """Three attempts, zero delay."""
    return RetryConfig(max_attempts=3, base_delay=0.0, max_delay=0.0, jitter=0.0)


# ============================================================================
# Collaborators
# ============================================================================

@pytest.fixture
def metadata_client():
    return FakeMetadataClient()


@pytest.fixture
def high_quality_enrichment():
    return Enrichment(
        generated_transcript="Spoken words and on-screen text. " * 10,
        confidence=0.9,
        content_summary="A quick tip about cooking pasta.",
        mood="upbeat",
        themes=["cooking"],
    )


# ============================================================================
# Pipeline builder
# ============================================================================

@pytest.fixture
def make_pipeline(clock, no_sleep_retry):
    """Factory: make_pipeline(metadata_client=..., **overrides)."""

    def _make(metadata_client=None, *, options=None, quota_limit=50, failure_threshold=5, reset_timeout=60.0, **kwargs):
        return AcquisitionPipeline(
            metadata_client or FakeMetadataClient(),
            options=options or PipelineOptions(retry=no_sleep_retry),
            clock=clock,
            cache=ContentCache(clock=clock),
            breakers=BreakerRegistry(
                BreakerConfig(failure_threshold=failure_threshold, reset_timeout=reset_timeout), clock=clock
            ),
            quota=DailyQuota(quota_limit, clock=clock),
            monitor=ProcessingMonitor(clock=clock),
            sleep=lambda _: None,
            **kwargs,
        )

    return _make
