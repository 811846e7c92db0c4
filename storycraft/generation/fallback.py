# storycraft/generation/fallback.py
"""
Locally synthesized StructuredRecord, used when the model cannot deliver.

Deterministic and offline. Every record produced here validates against
StructuredRecord.
"""

from __future__ import annotations

import re
from collections import Counter
from typing import Callable, Dict, List, Optional

from storycraft.acquisition.schema import AcquisitionResult, ContentKind
from storycraft.generation.prompts import LanguageSpec, content_quality_for, resolve_language
from storycraft.generation.repair import (
    MAX_PITCH_LENGTH,
    MAX_TOPIC_LENGTH,
    MAX_TOPICS,
    MIN_PITCH_LENGTH,
    Analysis,
    StructuredRecord,
)


KEYWORD_LIMIT = 5
_WORD = re.compile(r"[a-z0-9]+")

PitchTemplate = Callable[[str, str, str], str]


def _english(title: str, desc: str, style: str) -> str:
    if desc:
        return (
            f'Discover the story behind "{title}" - a compelling narrative that explores {desc}. '
            f"This {style} brings the content to life in a visually engaging way."
        )
    return (
        f'Experience "{title}" in a new way. This {style} transforms the original content into a '
        "compelling visual story that captures your attention and delivers the message effectively."
    )


def _traditional_chinese(title: str, desc: str, style: str) -> str:
    if desc:
        return f"探索「{title}」背後的故事 - 一個引人入勝的敘事，探討{desc}。這部{style}將內容以視覺化的方式生動呈現，讓觀眾在短時間內理解並記住核心訊息。"
    return f"以全新的方式體驗「{title}」。這部{style}將原始內容轉化為引人入勝的視覺故事，捕捉您的注意力並有效傳達訊息，讓每一個畫面都值得分享。"


def _simplified_chinese(title: str, desc: str, style: str) -> str:
    if desc:
        return f"探索「{title}」背后的故事 - 一个引人入胜的叙事，探讨{desc}。这部{style}将内容以视觉化的方式生动呈现，让观众在短时间内理解并记住核心信息。"
    return f"以全新的方式体验「{title}」。这部{style}将原始内容转化为引人入胜的视觉故事，捕捉您的注意力并有效传达信息，让每一个画面都值得分享。"


def _japanese(title: str, desc: str, style: str) -> str:
    if desc:
        return f"「{title}」の裏にある物語を探る - {desc}を描く魅力的なストーリー。この{style}は内容を視覚的に生き生きと表現し、視聴者の心に残るメッセージを届けます。"
    return f"「{title}」を新しい形で体験しよう。この{style}は元のコンテンツを魅力的なビジュアルストーリーに変え、視聴者の注意を引きつけ、メッセージを効果的に伝えます。"


PITCH_TEMPLATES: Dict[str, PitchTemplate] = {
    "en": _english,
    "zh-TW": _traditional_chinese,
    "zh-CN": _simplified_chinese,
    "ja": _japanese,
}

ANALYSIS_DEFAULTS: Dict[str, Dict[str, str]] = {
    "en": {"core": "A story adapted from the source video", "audience": "General audience"},
    "zh-TW": {"core": "改編自原始影片的故事", "audience": "一般觀眾"},
    "zh-CN": {"core": "改编自原始视频的故事", "audience": "一般观众"},
    "ja": {"core": "元の動画をもとにした物語", "audience": "一般視聴者"},
}

PADDING = {
    "en": " Built for viewers who want the essence of the original in a fresh, shareable form.",
    "zh-TW": " 為想要快速掌握精華的觀眾重新打造，適合分享。",
    "zh-CN": " 为想要快速掌握精华的观众重新打造，适合分享。",
    "ja": " 原作のエッセンスを新鮮な形で届け、共有したくなる作品に仕上げます。",
}


def extract_keywords(content: str, limit: int = KEYWORD_LIMIT) -> List[str]:
    """Most frequent words longer than three characters, ties in first-seen order."""
    if not content or len(content) < 10:
        return []
    words = [word for word in _WORD.findall(content.lower()) if len(word) > 3]
    counts = Counter(words)
    ranked = sorted(counts.items(), key=lambda item: -item[1])
    return [word[:MAX_TOPIC_LENGTH] for word, _ in ranked[: min(limit, MAX_TOPICS)]]


def _short_description(description: str) -> str:
    text = " ".join(description.split())
    if len(text) <= 20:
        return ""
    return text[:100] + ("..." if len(text) > 100 else "")


def synthesize_fallback_record(
    result: AcquisitionResult,
    style: Optional[str] = None,
    language: Optional[str] = None,
) -> StructuredRecord:
    spec: LanguageSpec = resolve_language(language)
    template = PITCH_TEMPLATES.get(spec.code, _english)
    style_text = (style or ("short" if result.content_kind is ContentKind.SHORTS else "video")).lower()
    title = (result.title or "Untitled Content").strip()

    pitch = template(title, _short_description(result.description), style_text)
    padding = PADDING.get(spec.code, PADDING["en"])
    while len(pitch) < MIN_PITCH_LENGTH:
        pitch += padding
    pitch = pitch[:MAX_PITCH_LENGTH]

    defaults = ANALYSIS_DEFAULTS.get(spec.code, ANALYSIS_DEFAULTS["en"])
    source_text = result.transcript or result.description or title
    topics = extract_keywords(source_text)
    if not topics and result.shorts_insights is not None:
        topics = [result.shorts_insights.style]

    return StructuredRecord(
        analysis=Analysis(
            key_topics=topics,
            sentiment="neutral",
            core_message=defaults["core"],
            target_audience=defaults["audience"],
        ),
        generated_pitch=pitch,
        rationale=f"Synthesized locally from {content_quality_for(result).value} content",
    )
