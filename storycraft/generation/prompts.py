# storycraft/generation/prompts.py
"""
Prompt construction for pitch generation.

Pure functions over data tables; no I/O. Language, content-kind and
content-quality wording live in the tables so they can change without
touching build_prompt().
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from storycraft.acquisition.schema import AcquisitionResult, ContentKind
from storycraft.generation.repair import MIN_PITCH_LENGTH


MAX_CONTENT_CHARS = 8_000


class ContentQuality(str, Enum):
    FULL = "full"
    PARTIAL = "partial"
    METADATA_ONLY = "metadata_only"


@dataclass(frozen=True)
class LanguageSpec:
    code: str
    display_name: str
    aliases: Tuple[str, ...] = ()


LANGUAGES: Tuple[LanguageSpec, ...] = (
    LanguageSpec("en", "English", ("en-us", "en-gb", "english")),
    LanguageSpec("zh-TW", "Traditional Chinese", ("zh-hant", "traditional chinese", "繁體中文")),
    LanguageSpec("zh-CN", "Simplified Chinese", ("zh-hans", "zh", "simplified chinese", "简体中文")),
    LanguageSpec("ja", "Japanese", ("ja-jp", "japanese", "日本語")),
)
DEFAULT_LANGUAGE = LANGUAGES[0]

KIND_DESCRIPTIONS: Dict[ContentKind, str] = {
    ContentKind.SHORTS: "YouTube Shorts (vertical, viral, 15-60s)",
    ContentKind.VIDEO: "Standard YouTube video",
    ContentKind.UNKNOWN: "Online video",
}

QUALITY_CONTEXT: Dict[ContentQuality, str] = {
    ContentQuality.FULL: "You have access to the full transcript/content.",
    ContentQuality.PARTIAL: (
        "You have access to the title, description, and enhanced metadata. "
        "Work with what is available to create the best possible pitch."
    ),
    ContentQuality.METADATA_ONLY: (
        "You have limited information (basic metadata only). Be creative but stay grounded in "
        "the available information and focus on what can be inferred from the title and description."
    ),
}

RESPONSE_FORMAT = """{
  "analysis": {
    "keyTopics": ["topic1", "topic2", "topic3"],
    "sentiment": "positive",
    "coreMessage": "Brief core message",
    "targetAudience": "Target demographic"
  },
  "generatedPitch": "Detailed video pitch with characters, story, scenes, emotions.",
  "rationale": "Why this pitch works"
}"""


@dataclass(frozen=True)
class PromptParams:
    title: str
    content: str
    quality: ContentQuality
    style: Optional[str] = None
    language: LanguageSpec = DEFAULT_LANGUAGE
    shorts_notes: Optional[str] = None


def resolve_language(value: Optional[str]) -> LanguageSpec:
    """Match a code, alias or display name; unknown values get the default."""
    if not value:
        return DEFAULT_LANGUAGE
    wanted = value.strip().lower()
    for spec in LANGUAGES:
        if wanted in (spec.code.lower(), spec.display_name.lower(), *spec.aliases):
            return spec
    return DEFAULT_LANGUAGE


def content_quality_for(result: AcquisitionResult) -> ContentQuality:
    if result.transcript or result.enrichment is not None:
        return ContentQuality.FULL
    if len(result.description.strip()) >= 20:
        return ContentQuality.PARTIAL
    return ContentQuality.METADATA_ONLY


def content_for(result: AcquisitionResult, limit: int = MAX_CONTENT_CHARS) -> str:
    """Best available body text for the prompt, most informative first."""
    parts = []
    if result.enrichment is not None and result.enrichment.content_summary:
        parts.append(f"Summary: {result.enrichment.content_summary}")
    if result.transcript:
        parts.append(f"Transcript: {result.transcript}")
    if result.description:
        parts.append(f"Description: {result.description}")
    if result.enrichment is not None:
        scenes = [scene.description for scene in result.enrichment.scene_breakdown if scene.description]
        if scenes:
            parts.append("Scenes: " + " | ".join(scenes))
    text = "\n".join(parts) or "(no description available)"
    return text[:limit]


def shorts_notes_for(result: AcquisitionResult) -> Optional[str]:
    insights = result.shorts_insights
    if insights is None:
        return None
    notes = [f"Detected style: {insights.style}"]
    if insights.hooks:
        notes.append("Hooks: " + ", ".join(insights.hooks))
    if insights.optimization_hints:
        notes.append("Hints: " + "; ".join(insights.optimization_hints[:3]))
    return "\n".join(notes)


def params_for(result: AcquisitionResult, style: Optional[str] = None, language: Optional[str] = None) -> PromptParams:
    return PromptParams(
        title=result.title or "Untitled",
        content=content_for(result),
        quality=content_quality_for(result),
        style=style,
        language=resolve_language(language),
        shorts_notes=shorts_notes_for(result),
    )


def build_prompt(kind: ContentKind, params: PromptParams) -> str:
    lines = [
        "Create a video pitch based on this content. Respond ONLY with valid JSON, no markdown or extra text.",
        "",
        f"Title: {params.title}",
        f"Type: {KIND_DESCRIPTIONS.get(kind, KIND_DESCRIPTIONS[ContentKind.UNKNOWN])}",
        f"Content:\n{params.content}",
        "",
        QUALITY_CONTEXT[params.quality],
    ]
    if params.shorts_notes:
        lines += ["", "Short-form notes:", params.shorts_notes]
    if params.style:
        lines.append(f"Target style: {params.style}")
    lines += [
        "",
        f"Write every text field in {params.language.display_name}.",
        f"generatedPitch must be at least {MIN_PITCH_LENGTH} characters; aim for about 200 words.",
        "",
        "JSON format:",
        RESPONSE_FORMAT,
    ]
    return "\n".join(lines)
