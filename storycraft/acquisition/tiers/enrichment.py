# storycraft/acquisition/tiers/enrichment.py
"""
Enrichment tier: deep analysis of short-form videos.

Responsibility:
- Gate on duration and the daily quota (skipping is not a failure)
- Download the media, run the video analyzer, always clean up
- Grade the analysis and decide what to attach to the primary result

Never raises: every failure degrades the primary result with a warning.
"""

from __future__ import annotations

import logging
from typing import Optional

from storycraft.acquisition.schema import (
    CONFIDENCE_ENRICHED,
    CONFIDENCE_ENRICHMENT_ABSENT,
    AcquisitionReference,
    AcquisitionResult,
    Enrichment,
    EnrichmentQuality,
    Strategy,
)
from storycraft.acquisition.tiers.base import TierContext, timer
from storycraft.logging_core.logger import log_event
from storycraft.resilience.errors import classify_error
from storycraft.sources.base import DownloadedMedia


TIER_NAME = "enrichment"

QUALITY_RANK = {
    EnrichmentQuality.FAILED: 0,
    EnrichmentQuality.LOW: 1,
    EnrichmentQuality.MEDIUM: 2,
    EnrichmentQuality.HIGH: 3,
}


def assess_quality(enrichment: Enrichment) -> EnrichmentQuality:
    confidence = enrichment.confidence
    transcript_chars = len(enrichment.generated_transcript)
    if confidence < 0.3:
        return EnrichmentQuality.FAILED
    if confidence > 0.8 and transcript_chars > 200:
        return EnrichmentQuality.HIGH
    if confidence > 0.6 and transcript_chars > 100:
        return EnrichmentQuality.MEDIUM
    return EnrichmentQuality.LOW


def _skip_reason(primary: AcquisitionResult, ctx: TierContext) -> Optional[str]:
    options = ctx.options
    if not options.enrichment_enabled or ctx.downloader is None or ctx.analyzer is None:
        return "disabled"
    duration = primary.duration_seconds
    if duration is not None and duration > options.enrichment_max_duration:
        return "too_long"
    # Consumes a slot, so it must be the last check
    if not ctx.quota.try_acquire():
        return "quota_exhausted"
    return None


def _degraded(primary: AcquisitionResult, warning: str, quality: Optional[EnrichmentQuality]) -> AcquisitionResult:
    return primary.model_copy(
        update={
            "confidence": CONFIDENCE_ENRICHMENT_ABSENT,
            "warning": warning,
            "enrichment_quality": quality,
        }
    )


def process(primary: AcquisitionResult, reference: AcquisitionReference, ctx: TierContext) -> AcquisitionResult:
    """Return the primary result, enriched or degraded."""
    try:
        return _enrich(primary, reference, ctx)
    except Exception as exc:  # pylint: disable=broad-except
        log_event(
            ctx.logger,
            logging.WARNING,
            "Enrichment aborted",
            stage_name=TIER_NAME,
            event_type="failure",
            metadata={"error_kind": classify_error(exc).value, "error": str(exc)},
        )
        if TIER_NAME not in ctx.tiers_attempted:
            ctx.enter(TIER_NAME)
        return _degraded(primary, f"Deep analysis unavailable: {exc}", EnrichmentQuality.FAILED)


def _enrich(primary: AcquisitionResult, reference: AcquisitionReference, ctx: TierContext) -> AcquisitionResult:
    reason = _skip_reason(primary, ctx)
    if reason is not None:
        log_event(
            ctx.logger,
            logging.INFO,
            "Enrichment skipped",
            stage_name=TIER_NAME,
            event_type="skipped",
            metadata={"reason": reason, "reference_id": reference.reference_id},
        )
        return primary

    ctx.enter(TIER_NAME)
    media: Optional[DownloadedMedia] = None
    with timer() as elapsed:
        try:
            media = ctx.downloader.download(reference.reference_id)
            enrichment = ctx.analyzer.analyze(media.path, reference.reference_id)
        except Exception as exc:  # pylint: disable=broad-except
            log_event(
                ctx.logger,
                logging.WARNING,
                "Enrichment failed",
                stage_name=TIER_NAME,
                event_type="failure",
                metadata={
                    "error_kind": classify_error(exc).value,
                    "error": str(exc),
                    "elapsed_ms": round(elapsed(), 1),
                },
            )
            return _degraded(primary, f"Deep analysis unavailable: {exc}", EnrichmentQuality.FAILED)
        finally:
            if media is not None:
                try:
                    ctx.downloader.cleanup(media)
                except Exception as cleanup_error:  # pylint: disable=broad-except
                    log_event(
                        ctx.logger,
                        logging.WARNING,
                        "Media cleanup failed",
                        stage_name=TIER_NAME,
                        event_type="cleanup_failure",
                        metadata={"path": media.path, "error": str(cleanup_error)},
                    )

    quality = assess_quality(enrichment)
    log_event(
        ctx.logger,
        logging.INFO,
        "Enrichment graded",
        stage_name=TIER_NAME,
        event_type="quality",
        metadata={
            "quality": quality.value,
            "confidence": enrichment.confidence,
            "transcript_chars": len(enrichment.generated_transcript),
        },
    )

    if QUALITY_RANK[quality] < QUALITY_RANK[ctx.options.enrichment_quality_floor]:
        return _degraded(primary, f"Deep analysis quality too low ({quality.value})", quality)

    transcript = enrichment.generated_transcript
    if len(transcript) < ctx.options.min_enriched_transcript_chars:
        transcript = primary.transcript or transcript

    return primary.model_copy(
        update={
            "confidence": CONFIDENCE_ENRICHED,
            "strategy_used": Strategy.ENRICHED,
            "enrichment": enrichment,
            "enrichment_quality": quality,
            "transcript": transcript or None,
        }
    )


# High-Level Intent
# The enrichment tier upgrades a standard shorts result when deep analysis
# is affordable and good enough. It owns the media lifecycle: whatever
# happens after download, the file is removed before returning.

# Edge Cases
# Unknown duration -> allowed; only a known duration over the limit skips.
# Quota exhausted -> primary result returned unchanged, no warning.
# Analysis below the quality floor -> 0.75 with a warning, enrichment not attached.
# Cleanup failure -> logged, never masks the analysis outcome.
# Gate or grading raises -> degraded like a failed analysis; the primary data survives.
