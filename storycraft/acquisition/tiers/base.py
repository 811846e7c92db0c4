# storycraft/acquisition/tiers/base.py
"""
Shared definitions for acquisition tiers.

This module defines:
- TierContext: the collaborators and options a tier may use
- The fallback tier function contract
- A lightweight timer for consistent elapsed_ms measurement

No business logic belongs here.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional, TypeAlias

from storycraft.acquisition.quota import DailyQuota
from storycraft.acquisition.schema import AcquisitionReference, AcquisitionResult, ContentKind, EnrichmentQuality
from storycraft.logging_core.logger import AnyLogger
from storycraft.resilience.retry import RetryConfig
from storycraft.sources.base import CaptionFetcher, MediaDownloader, MetadataClient, OEmbedLookup, VideoAnalyzer


@dataclass(frozen=True)
class PipelineOptions:
    """Tunables shared by all tiers."""
    retry: RetryConfig = RetryConfig()
    enrichment_enabled: bool = True
    enrichment_max_duration: int = 60
    enrichment_quality_floor: EnrichmentQuality = EnrichmentQuality.MEDIUM
    min_fallback_confidence: float = 0.3
    min_enriched_transcript_chars: int = 50
    max_workers: int = 4


@dataclass
class TierContext:
    """Per-run view of the pipeline's collaborators."""
    logger: AnyLogger
    options: PipelineOptions
    metadata_client: MetadataClient
    quota: DailyQuota
    caption_fetcher: Optional[CaptionFetcher] = None
    oembed: Optional[OEmbedLookup] = None
    downloader: Optional[MediaDownloader] = None
    analyzer: Optional[VideoAnalyzer] = None
    sleep: Callable[[float], None] = time.sleep
    tiers_attempted: List[str] = field(default_factory=list)

    def enter(self, tier: str) -> None:
        self.tiers_attempted.append(tier)


FallbackTier: TypeAlias = Callable[
    [AcquisitionReference, ContentKind, BaseException, TierContext],
    Optional[AcquisitionResult],
]
"""
Signature:
    tier(reference, kind, original_error, ctx) -> AcquisitionResult | None

None means the tier had nothing to offer; raising means it failed. Either
way the pipeline moves on to the next tier.
"""


@contextmanager
def timer() -> Iterator[Callable[[], float]]:
    """
    Context manager yielding a function that returns elapsed milliseconds.

    Usage:
        with timer() as elapsed:
            ...
        elapsed_ms = elapsed()
    """
    start = time.perf_counter()

    def elapsed() -> float:
        return (time.perf_counter() - start) * 1000

    yield elapsed
