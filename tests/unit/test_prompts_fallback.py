"""
Unit tests for prompt construction and the local fallback record.
"""

import pytest

from storycraft.acquisition.schema import AcquisitionResult, ContentKind, Enrichment, ShortsInsights, Strategy
from storycraft.generation.fallback import extract_keywords, synthesize_fallback_record
from storycraft.generation.prompts import (
    DEFAULT_LANGUAGE,
    LANGUAGES,
    ContentQuality,
    build_prompt,
    content_quality_for,
    params_for,
    resolve_language,
)
from storycraft.generation.repair import MAX_PITCH_LENGTH, MIN_PITCH_LENGTH, StructuredRecord


def _result(**overrides):
    fields = {
        "content_kind": ContentKind.VIDEO,
        "title": "Morning Routines That Stick",
        "description": "Five habits that make mornings calmer and days more productive.",
        "confidence": 0.92,
        "strategy_used": Strategy.STANDARD,
    }
    fields.update(overrides)
    return AcquisitionResult(**fields)


class TestResolveLanguage:
    """Tests for resolve_language()"""

    @pytest.mark.parametrize(
        "value, code",
        [("en", "en"), ("zh-TW", "zh-TW"), ("zh-tw", "zh-TW"), ("繁體中文", "zh-TW"), ("zh", "zh-CN"), ("Japanese", "ja")],
    )
    def test_known_values(self, value, code):
        assert resolve_language(value).code == code

    @pytest.mark.parametrize("value", [None, "", "klingon"])
    def test_unknown_defaults_to_english(self, value):
        assert resolve_language(value) is DEFAULT_LANGUAGE


class TestContentQuality:
    """Tests for content_quality_for()"""

    def test_transcript_is_full(self):
        assert content_quality_for(_result(transcript="hello there")) is ContentQuality.FULL

    def test_enrichment_is_full(self):
        assert content_quality_for(_result(enrichment=Enrichment(confidence=0.9))) is ContentQuality.FULL

    def test_description_is_partial(self):
        assert content_quality_for(_result()) is ContentQuality.PARTIAL

    def test_bare_title_is_metadata_only(self):
        assert content_quality_for(_result(description="short")) is ContentQuality.METADATA_ONLY


class TestBuildPrompt:
    """Tests for build_prompt()"""

    def test_includes_title_kind_and_format(self):
        prompt = build_prompt(ContentKind.SHORTS, params_for(_result(content_kind=ContentKind.SHORTS)))
        assert "Title: Morning Routines That Stick" in prompt
        assert "YouTube Shorts" in prompt
        assert '"generatedPitch"' in prompt
        assert f"at least {MIN_PITCH_LENGTH} characters" in prompt

    def test_language_and_style(self):
        prompt = build_prompt(ContentKind.VIDEO, params_for(_result(), style="Documentary", language="ja"))
        assert "Write every text field in Japanese." in prompt
        assert "Target style: Documentary" in prompt

    def test_quality_context(self):
        prompt = build_prompt(ContentKind.VIDEO, params_for(_result(description="")))
        assert "basic metadata only" in prompt
        assert "(no description available)" in prompt

    def test_shorts_notes(self):
        insights = ShortsInsights(style="quick_tips", hooks=["hack"], optimization_hints=["Number your tips"])
        prompt = build_prompt(ContentKind.SHORTS, params_for(_result(shorts_insights=insights)))
        assert "Detected style: quick_tips" in prompt
        assert "Hooks: hack" in prompt

    def test_content_prefers_enrichment_summary(self):
        enrichment = Enrichment(content_summary="A chef folds dumplings.", confidence=0.9)
        params = params_for(_result(transcript="raw words", enrichment=enrichment))
        assert params.content.startswith("Summary: A chef folds dumplings.")
        assert "Transcript: raw words" in params.content


class TestExtractKeywords:
    """Tests for extract_keywords()"""

    def test_ranks_by_frequency(self):
        text = "pasta sauce pasta garlic pasta sauce and oil"
        assert extract_keywords(text) == ["pasta", "sauce", "garlic"]

    def test_ignores_short_words_and_limits(self):
        text = "alpha beta gamma delta epsilon zeta omega sigma the and of"
        keywords = extract_keywords(text, limit=3)
        assert keywords == ["alpha", "beta", "gamma"]

    def test_short_content(self):
        assert extract_keywords("tiny") == []
        assert extract_keywords("") == []


class TestFallbackRecord:
    """Tests for synthesize_fallback_record()"""

    @pytest.mark.parametrize("language", [spec.code for spec in LANGUAGES])
    def test_always_valid(self, language):
        for result in (_result(), _result(title="", description=""), _result(title="x", description="y" * 6000)):
            record = synthesize_fallback_record(result, language=language)
            assert isinstance(record, StructuredRecord)
            assert MIN_PITCH_LENGTH <= len(record.generated_pitch) <= MAX_PITCH_LENGTH

    def test_english_template_mentions_title(self):
        record = synthesize_fallback_record(_result(), style="Animation")
        assert '"Morning Routines That Stick"' in record.generated_pitch
        assert "animation" in record.generated_pitch
        assert record.analysis.sentiment == "neutral"
        assert "habits" in record.analysis.key_topics

    def test_localized_template(self):
        record = synthesize_fallback_record(_result(), language="zh-TW")
        assert "「Morning Routines That Stick」" in record.generated_pitch
        assert record.analysis.target_audience == "一般觀眾"

    def test_shorts_default_style_and_topics(self):
        result = _result(
            content_kind=ContentKind.SHORTS,
            title="Go",
            description="",
            shorts_insights=ShortsInsights(style="viral"),
        )
        record = synthesize_fallback_record(result)
        assert "This short" in record.generated_pitch
        assert record.analysis.key_topics == ["viral"]

    def test_deterministic(self):
        result = _result()
        assert synthesize_fallback_record(result) == synthesize_fallback_record(result)
