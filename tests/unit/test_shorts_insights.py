"""
Unit tests for short-form heuristics and enrichment grading.
"""

import pytest

from storycraft.acquisition.schema import Enrichment, EnrichmentQuality, VideoMetadata
from storycraft.acquisition.tiers.enrichment import assess_quality
from storycraft.acquisition.tiers.shorts_insights import (
    analyze_shorts,
    default_insights,
    detect_style,
    extract_calls_to_action,
    extract_hooks,
    predict_engagement,
)


def _metadata(**overrides):
    fields = {"reference_id": "abc", "title": "Just a clip", "duration_seconds": 50}
    fields.update(overrides)
    return VideoMetadata(**fields)


class TestHeuristics:
    """Tests for style, hook and call-to-action detection"""

    @pytest.mark.parametrize(
        "title, style",
        [
            ("Kitchen hack you need", "quick_tips"),
            ("Storytime: my first job", "story"),
            ("This trend is everywhere", "viral"),
            ("Learn Python fast", "educational"),
            ("My cat", "entertainment"),
        ],
    )
    def test_detect_style(self, title, style):
        assert detect_style(title) == style

    def test_hooks(self):
        assert extract_hooks("Did you know 5 ways to cook rice?") == ["Did you know", "5 ways"]
        assert extract_hooks("Nothing here") == []

    def test_calls_to_action(self):
        assert extract_calls_to_action("Please subscribe and share!") == ["Subscribe for more", "Share with friends"]

    def test_engagement_is_bounded(self):
        metadata = _metadata(title="Why?", duration_seconds=20, view_count=10, like_count=10)
        assert predict_engagement(metadata) == 100.0
        assert predict_engagement(_metadata(title="x" * 80, duration_seconds=None)) == 50.0


class TestAnalyzeShorts:
    """Tests for analyze_shorts()"""

    def test_strong_short(self):
        metadata = _metadata(
            title="3 ways to hack your morning?",
            description="Follow for more",
            duration_seconds=25,
            view_count=1000,
            like_count=200,
        )
        insights = analyze_shorts(metadata)
        assert insights.style == "quick_tips"
        assert insights.viral_score == 90.0
        assert "Optimal duration for virality" in insights.viral_factors
        assert insights.calls_to_action == ["Follow for updates"]
        assert "Number your tips for clarity" in insights.optimization_hints

    def test_weak_short_gets_recommendations(self):
        insights = analyze_shorts(_metadata(duration_seconds=58))
        assert insights.viral_score < 50
        assert "Start with a question or surprising statement" in insights.recommendations
        assert "Consider shortening to under 45 seconds for better retention" in insights.optimization_hints

    def test_default_insights(self):
        assert default_insights().style == "entertainment"
        assert default_insights("A storytime special").style == "story"


class TestAssessQuality:
    """Tests for assess_quality()"""

    @pytest.mark.parametrize(
        "confidence, chars, quality",
        [
            (0.9, 250, EnrichmentQuality.HIGH),
            (0.9, 150, EnrichmentQuality.MEDIUM),
            (0.7, 150, EnrichmentQuality.MEDIUM),
            (0.7, 50, EnrichmentQuality.LOW),
            (0.2, 500, EnrichmentQuality.FAILED),
        ],
    )
    def test_grades(self, confidence, chars, quality):
        enrichment = Enrichment(generated_transcript="a" * chars, confidence=confidence)
        assert assess_quality(enrichment) is quality
