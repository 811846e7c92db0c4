# storycraft/acquisition/tiers/fallback.py
"""
Fallback tiers, tried in order when the primary tier fails.

Each tier has the FallbackTier signature and returns a result with a
warning, None when it has nothing to offer, or raises. Confidences are
strictly decreasing down the list.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from storycraft.acquisition.references import canonical_url
from storycraft.acquisition.schema import (
    CONFIDENCE_EMERGENCY,
    CONFIDENCE_METADATA_ONLY,
    CONFIDENCE_STATIC_TEMPLATE,
    CONFIDENCE_URL_PATTERN,
    AcquisitionReference,
    AcquisitionResult,
    ContentKind,
    Strategy,
)
from storycraft.acquisition.tiers.base import FallbackTier, TierContext
from storycraft.acquisition.tiers.shorts_insights import default_insights


KIND_LABELS = {
    ContentKind.SHORTS: "YouTube Short",
    ContentKind.VIDEO: "YouTube video",
    ContentKind.UNKNOWN: "YouTube content",
}

STATIC_DESCRIPTIONS = {
    ContentKind.SHORTS: "A short-form vertical video. Details could not be retrieved; "
    "treat this as a quick, high-energy clip built around a single idea.",
    ContentKind.VIDEO: "A long-form video. Details could not be retrieved; "
    "treat this as a general-interest video with a clear central topic.",
    ContentKind.UNKNOWN: "Video content whose details could not be retrieved.",
}


def _thumbnail(reference: AcquisitionReference) -> str:
    return f"https://i.ytimg.com/vi/{reference.reference_id}/hqdefault.jpg"


def metadata_only(
    reference: AcquisitionReference, kind: ContentKind, error: BaseException, ctx: TierContext
) -> Optional[AcquisitionResult]:
    """Public oEmbed lookup: title and author without the metadata API."""
    if ctx.oembed is None:
        return None
    data = ctx.oembed.lookup(reference)
    title = (data.get("title") or "").strip()
    if not title:
        return None
    author = data.get("author_name")
    return AcquisitionResult(
        source_identifier=reference.reference_id,
        content_kind=kind,
        title=title,
        description=f"{KIND_LABELS[kind]} by {author}" if author else "",
        thumbnail_ref=data.get("thumbnail_url") or _thumbnail(reference),
        confidence=CONFIDENCE_METADATA_ONLY,
        strategy_used=Strategy.METADATA_ONLY,
        shorts_insights=default_insights(title) if kind is ContentKind.SHORTS else None,
        metadata={"channel": author} if author else {},
        warning="Limited metadata: primary source unavailable, using public embed data",
    )


def url_pattern(
    reference: AcquisitionReference, kind: ContentKind, error: BaseException, ctx: TierContext
) -> Optional[AcquisitionResult]:
    """Everything derivable from the URL shape alone."""
    return AcquisitionResult(
        source_identifier=reference.reference_id,
        content_kind=kind,
        title=f"{KIND_LABELS[kind]} {reference.reference_id}",
        description=f"Content at {canonical_url(reference)}",
        thumbnail_ref=_thumbnail(reference),
        confidence=CONFIDENCE_URL_PATTERN,
        strategy_used=Strategy.URL_PATTERN,
        metadata={"url_pattern": reference.pattern},
        warning="Metadata unavailable: result derived from the URL only",
    )


def static_template(
    reference: AcquisitionReference, kind: ContentKind, error: BaseException, ctx: TierContext
) -> Optional[AcquisitionResult]:
    """Generic per-kind template."""
    return AcquisitionResult(
        source_identifier=reference.reference_id,
        content_kind=kind,
        title=f"Untitled {KIND_LABELS[kind]}",
        description=STATIC_DESCRIPTIONS[kind],
        confidence=CONFIDENCE_STATIC_TEMPLATE,
        strategy_used=Strategy.STATIC_TEMPLATE,
        shorts_insights=default_insights() if kind is ContentKind.SHORTS else None,
        warning="Content details unavailable: using a generic template",
    )


def emergency_stub(
    reference: AcquisitionReference, kind: ContentKind, error: BaseException, ctx: TierContext
) -> AcquisitionResult:
    """Last resort. Always succeeds and carries the original error."""
    return AcquisitionResult(
        source_identifier=reference.reference_id,
        content_kind=kind,
        title=f"{KIND_LABELS[kind]} unavailable",
        confidence=CONFIDENCE_EMERGENCY,
        strategy_used=Strategy.EMERGENCY_STUB,
        warning="All acquisition tiers failed",
        error=str(error) or type(error).__name__,
    )


FALLBACK_TIERS: List[Tuple[str, FallbackTier]] = [
    (Strategy.METADATA_ONLY.value, metadata_only),
    (Strategy.URL_PATTERN.value, url_pattern),
    (Strategy.STATIC_TEMPLATE.value, static_template),
]
