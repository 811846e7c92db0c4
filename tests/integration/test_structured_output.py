"""
Tests for StructuredOutputService: model call, repair and local fallback.
"""

import json

import pytest

from storycraft.acquisition.schema import AcquisitionResult, ContentKind, Strategy
from storycraft.generation.repair import MIN_PITCH_LENGTH
from storycraft.generation.service import PitchSource, StructuredOutputService
from storycraft.resilience.breaker import BreakerConfig, BreakerRegistry
from storycraft.resilience.errors import QuotaExceeded, UpstreamUnavailable

from tests.fakes import FakeTextModel


MODEL_RECORD = {
    "analysis": {
        "keyTopics": ["music", "nostalgia"],
        "sentiment": "positive",
        "coreMessage": "Some promises are forever",
        "targetAudience": "Fans of 80s pop",
    },
    "generatedPitch": "A retro music video reimagined as a heartfelt short film about keeping promises.",
    "rationale": "Nostalgia drives shares.",
}


@pytest.fixture
def result():
    return AcquisitionResult(
        source_identifier="dQw4w9WgXcQ",
        content_kind=ContentKind.VIDEO,
        title="Never Gonna Give You Up",
        description="The official music video for the 1987 hit single.",
        confidence=0.92,
        strategy_used=Strategy.STANDARD,
    )


@pytest.fixture
def make_service(clock, no_sleep_retry):
    def _make(text_model, failure_threshold=5):
        return StructuredOutputService(
            text_model,
            breakers=BreakerRegistry(BreakerConfig(failure_threshold=failure_threshold), clock=clock),
            retry=no_sleep_retry,
            sleep=lambda _: None,
        )

    return _make


class TestModelPath:
    """Tests for successful generation"""

    def test_valid_json(self, make_service, result):
        model = FakeTextModel([json.dumps(MODEL_RECORD)])
        outcome = make_service(model).generate(result, style="Cinematic", language="en")

        assert outcome.source is PitchSource.MODEL
        assert outcome.strategy == "direct"
        assert outcome.warning is None
        assert outcome.record.analysis.key_topics == ["music", "nostalgia"]
        assert "Title: Never Gonna Give You Up" in model.prompts[0]
        assert "Target style: Cinematic" in model.prompts[0]

    def test_fenced_response_is_repaired(self, make_service, result):
        model = FakeTextModel(["```json\n" + json.dumps(MODEL_RECORD) + "\n```"])
        outcome = make_service(model).generate(result)
        assert outcome.source is PitchSource.MODEL
        assert outcome.strategy == "cleanup"

    def test_transient_error_is_retried(self, make_service, result):
        model = FakeTextModel([UpstreamUnavailable("503"), json.dumps(MODEL_RECORD)])
        outcome = make_service(model).generate(result)
        assert outcome.source is PitchSource.MODEL
        assert len(model.prompts) == 2


class TestFallbackPath:
    """Tests for the local fallback"""

    def test_unrepairable_text(self, make_service, result):
        model = FakeTextModel(["I'm sorry, I can't write that pitch."])
        outcome = make_service(model).generate(result)

        assert outcome.source is PitchSource.FALLBACK
        assert outcome.strategy == "local_fallback"
        assert "could not be repaired" in outcome.warning
        assert len(outcome.repair_attempts) == 3
        assert len(outcome.record.generated_pitch) >= MIN_PITCH_LENGTH

    def test_model_outage(self, make_service, result):
        model = FakeTextModel([UpstreamUnavailable("down")] * 3)
        outcome = make_service(model).generate(result, language="zh-CN")
        assert outcome.source is PitchSource.FALLBACK
        assert "upstream_unavailable" in outcome.warning
        assert "「Never Gonna Give You Up」" in outcome.record.generated_pitch

    def test_rate_limited(self, make_service, result):
        model = FakeTextModel([QuotaExceeded("429")] * 3)
        outcome = make_service(model).generate(result)
        assert "quota_exceeded" in outcome.warning

    def test_empty_response(self, make_service, result):
        outcome = make_service(FakeTextModel(["   "])).generate(result)
        assert outcome.source is PitchSource.FALLBACK
        assert "empty response" in outcome.warning

    def test_rejected_response(self, make_service, result):
        outcome = make_service(FakeTextModel(["x" * 60_000])).generate(result)
        assert outcome.source is PitchSource.FALLBACK
        assert outcome.warning.startswith("Model response rejected")

    def test_deeply_nested_response(self, make_service, result):
        outcome = make_service(FakeTextModel(["[" * 49_000])).generate(result)
        assert outcome.source is PitchSource.FALLBACK
        assert "nests deeper" in outcome.warning

    def test_no_model_configured(self, result):
        outcome = StructuredOutputService(None).generate(result)
        assert outcome.source is PitchSource.FALLBACK
        assert "not configured" in outcome.warning

    def test_open_breaker_skips_the_model(self, make_service, result):
        model = FakeTextModel([UpstreamUnavailable("down")] * 3)
        service = make_service(model, failure_threshold=1)
        service.generate(result)
        assert len(model.prompts) == 3

        model.responses = [json.dumps(MODEL_RECORD)]
        outcome = service.generate(result)
        assert outcome.source is PitchSource.FALLBACK
        assert "circuit_open" in outcome.warning
        assert len(model.prompts) == 3
