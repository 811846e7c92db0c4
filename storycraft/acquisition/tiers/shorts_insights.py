# storycraft/acquisition/tiers/shorts_insights.py
"""
Heuristic read of short-form videos from their metadata.

Pure functions, no I/O. Keyword tables are data so they can be tuned
without touching the scoring code.
"""

from __future__ import annotations

import re
from typing import List, Optional, Sequence, Tuple

from storycraft.acquisition.schema import ShortsInsights, VideoMetadata


STYLE_KEYWORDS: Sequence[Tuple[str, Tuple[str, ...]]] = (
    ("quick_tips", ("tip", "hack", "how to")),
    ("story", ("story", "storytime")),
    ("viral", ("viral", "trend")),
    ("educational", ("learn", "tutorial")),
)
DEFAULT_STYLE = "entertainment"

HOOK_PATTERNS: Sequence[re.Pattern[str]] = (
    re.compile(r"^(Did you know|You won't believe|This is why|Here's how)", re.IGNORECASE),
    re.compile(r"(secret|hack|trick|tip)", re.IGNORECASE),
    re.compile(r"(\d+\s+ways?|\d+\s+things?)", re.IGNORECASE),
)

CALL_TO_ACTION_KEYWORDS: Sequence[Tuple[str, str]] = (
    ("subscribe", "Subscribe for more"),
    ("follow", "Follow for updates"),
    ("comment", "Comment your thoughts"),
    ("share", "Share with friends"),
)

STYLE_HINTS = {
    "quick_tips": ["Number your tips for clarity", "Use text overlays for key points"],
    "story": ["Start with the climax, then explain", "Use cliffhangers to increase watch time"],
    "viral": ["Jump on trends within 24-48 hours", "Add your unique twist to stand out"],
}


def detect_style(title: str) -> str:
    lowered = title.lower()
    for style, keywords in STYLE_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return style
    return DEFAULT_STYLE


def extract_hooks(title: str) -> List[str]:
    hooks = []
    for pattern in HOOK_PATTERNS:
        match = pattern.search(title)
        if match:
            hooks.append(match.group(0))
    return hooks


def extract_calls_to_action(description: str) -> List[str]:
    lowered = description.lower()
    return [label for keyword, label in CALL_TO_ACTION_KEYWORDS if keyword in lowered]


def predict_engagement(metadata: VideoMetadata) -> float:
    score = 50.0
    if metadata.view_count and metadata.like_count:
        score += metadata.like_count / metadata.view_count * 100
    if "?" in metadata.title:
        score += 10
    if len(metadata.title) < 60:
        score += 5
    duration = metadata.duration_seconds
    if duration and duration <= 30:
        score += 15
    elif duration and duration <= 45:
        score += 10
    return min(max(score, 0.0), 100.0)


def _viral_potential(
    metadata: VideoMetadata, style: str, hooks: List[str], calls_to_action: List[str], engagement: float
) -> Tuple[float, List[str], List[str]]:
    factors: List[str] = []
    score = 0.0
    if engagement > 70:
        factors.append("High engagement prediction")
        score += 30
    if hooks:
        factors.append(f"Strong hooks ({len(hooks)})")
        score += 20
    if metadata.duration_seconds and metadata.duration_seconds <= 30:
        factors.append("Optimal duration for virality")
        score += 20
    if style in ("viral", "quick_tips"):
        factors.append("Viral-friendly content style")
        score += 20

    recommendations: List[str] = []
    if score < 50:
        recommendations += [
            "Add a strong hook in the first 3 seconds",
            "Keep duration under 30 seconds",
            "Use trending audio or effects",
        ]
    if not hooks:
        recommendations.append("Start with a question or surprising statement")
    if not calls_to_action:
        recommendations.append("Add clear call-to-action at the end")
    return min(score, 100.0), factors, recommendations


def _optimization_hints(metadata: VideoMetadata, style: str) -> List[str]:
    hints: List[str] = []
    if metadata.duration_seconds and metadata.duration_seconds > 45:
        hints.append("Consider shortening to under 45 seconds for better retention")
    if len(metadata.title) > 60:
        hints.append("Shorten title for better mobile visibility")
    hints.extend(STYLE_HINTS.get(style, []))
    return hints


def analyze_shorts(metadata: VideoMetadata) -> ShortsInsights:
    style = detect_style(metadata.title)
    hooks = extract_hooks(metadata.title)
    calls_to_action = extract_calls_to_action(metadata.description)
    engagement = predict_engagement(metadata)
    viral_score, factors, recommendations = _viral_potential(metadata, style, hooks, calls_to_action, engagement)
    return ShortsInsights(
        style=style,
        hooks=hooks,
        calls_to_action=calls_to_action,
        engagement_prediction=engagement,
        viral_score=viral_score,
        viral_factors=factors,
        recommendations=recommendations,
        optimization_hints=_optimization_hints(metadata, style),
    )


def default_insights(title: Optional[str] = None) -> ShortsInsights:
    """Generic insights for results built without metadata."""
    return ShortsInsights(style=detect_style(title) if title else DEFAULT_STYLE, engagement_prediction=50.0)
