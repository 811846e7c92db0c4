# storycraft/acquisition/tiers/standard.py
"""
Primary tier: fetch metadata from the metadata API.

Responsibility:
- Fetch title, description, duration, thumbnail and stats (retried)
- Attach a caption transcript when one is available (best effort)
- Attach shorts insights for short-form content

Errors from the metadata fetch propagate; the pipeline decides what
happens next. Caption failures only warn.
"""

from __future__ import annotations

import logging

from storycraft.acquisition.schema import (
    CONFIDENCE_STANDARD,
    AcquisitionReference,
    AcquisitionResult,
    ContentKind,
    Strategy,
    VideoMetadata,
)
from storycraft.acquisition.tiers.base import TierContext, timer
from storycraft.acquisition.tiers.shorts_insights import analyze_shorts
from storycraft.logging_core.logger import log_event
from storycraft.resilience.errors import classify_error
from storycraft.resilience.retry import execute_with_retry


TIER_NAME = "standard"


def _fetch_transcript(reference: AcquisitionReference, ctx: TierContext) -> str | None:
    if ctx.caption_fetcher is None:
        return None
    try:
        return ctx.caption_fetcher.fetch(reference.reference_id)
    except Exception as exc:  # pylint: disable=broad-except
        log_event(
            ctx.logger,
            logging.WARNING,
            "Caption fetch failed, continuing without transcript",
            stage_name=TIER_NAME,
            event_type="caption_failure",
            metadata={"error_kind": classify_error(exc).value, "error": str(exc)},
        )
        return None


def _metadata_fields(metadata: VideoMetadata) -> dict:
    fields = {
        "channel": metadata.channel_title,
        "published_at": metadata.published_at,
        "tags": metadata.tags,
        "view_count": metadata.view_count,
        "like_count": metadata.like_count,
    }
    return {key: value for key, value in fields.items() if value not in (None, [])}


def process(reference: AcquisitionReference, kind: ContentKind, ctx: TierContext) -> AcquisitionResult:
    """Build a standard result. Raises when metadata cannot be fetched."""
    with timer() as elapsed:
        metadata = execute_with_retry(
            lambda: ctx.metadata_client.fetch(reference.reference_id),
            "metadata_fetch",
            ctx.options.retry,
            sleep=ctx.sleep,
            logger=ctx.logger,
        )
        transcript = _fetch_transcript(reference, ctx)

        result = AcquisitionResult(
            source_identifier=reference.reference_id,
            content_kind=kind,
            title=metadata.title,
            description=metadata.description,
            duration_seconds=metadata.duration_seconds,
            thumbnail_ref=metadata.thumbnail_ref,
            transcript=transcript or None,
            confidence=CONFIDENCE_STANDARD,
            strategy_used=Strategy.STANDARD,
            shorts_insights=analyze_shorts(metadata) if kind is ContentKind.SHORTS else None,
            metadata=_metadata_fields(metadata),
        )

    log_event(
        ctx.logger,
        logging.INFO,
        "Metadata fetched successfully",
        stage_name=TIER_NAME,
        event_type="success",
        metadata={
            "reference_id": reference.reference_id,
            "duration_seconds": metadata.duration_seconds,
            "has_transcript": bool(transcript),
            "elapsed_ms": round(elapsed(), 1),
        },
    )
    return result
