# storycraft/acquisition/pipeline.py
"""
Orchestration for tiered content acquisition.

Responsibilities:
- Extract the reference and consult the cache
- Run the standard tier behind the metadata circuit breaker
- Upgrade shorts through the enrichment tier
- Walk fallback tiers when the standard tier fails
- Cache the outcome and record one monitor event per call

acquire() never raises. Tier logic lives in tiers/; this module only
decides order and containment.
"""

from __future__ import annotations

import logging
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence, Tuple

from storycraft.acquisition.cache import ContentCache, make_key
from storycraft.acquisition.monitor import ProcessingMonitor
from storycraft.acquisition.quota import DailyQuota
from storycraft.acquisition.references import extract_reference, resolve_kind
from storycraft.acquisition.schema import (
    AcquisitionReference,
    AcquisitionResult,
    ContentKind,
    EnrichmentQuality,
    HealthSnapshot,
    KindHint,
    Strategy,
)
from storycraft.acquisition.tiers import enrichment, fallback, standard
from storycraft.acquisition.tiers.base import FallbackTier, PipelineOptions, TierContext
from storycraft.config import Settings
from storycraft.logging_core.logger import AnyLogger, get_logger, log_event
from storycraft.resilience.breaker import BreakerConfig, BreakerRegistry
from storycraft.resilience.clock import Clock, SystemClock
from storycraft.resilience.errors import InvalidReference, classify_error
from storycraft.resilience.retry import RetryConfig
from storycraft.sources.base import CaptionFetcher, MediaDownloader, MetadataClient, OEmbedLookup, VideoAnalyzer


METADATA_CATEGORY = "metadata"

SUCCESS_STRATEGIES = (Strategy.STANDARD, Strategy.ENRICHED)


def cache_category(result: AcquisitionResult) -> str:
    """Which TTL bucket a fresh result belongs to."""
    if result.strategy_used in SUCCESS_STRATEGIES:
        return result.content_kind.value
    if result.strategy_used is Strategy.EMERGENCY_STUB:
        return "error"
    return "fallback"


def invalid_reference_result(url: str) -> AcquisitionResult:
    return AcquisitionResult(
        source_identifier=None,
        content_kind=ContentKind.UNKNOWN,
        title="Unrecognized URL",
        confidence=0.0,
        strategy_used=Strategy.INVALID_REFERENCE,
        warning="The URL does not match any supported YouTube format",
        error=f"Invalid reference: {str(url)[:200]}",
    )


class AcquisitionPipeline:
    """Owns the cache, breakers, quota and monitor; collaborators are injected."""

    def __init__(
        self,
        metadata_client: MetadataClient,
        *,
        caption_fetcher: Optional[CaptionFetcher] = None,
        oembed: Optional[OEmbedLookup] = None,
        downloader: Optional[MediaDownloader] = None,
        analyzer: Optional[VideoAnalyzer] = None,
        options: PipelineOptions = PipelineOptions(),
        clock: Optional[Clock] = None,
        cache: Optional[ContentCache[AcquisitionResult]] = None,
        breakers: Optional[BreakerRegistry] = None,
        quota: Optional[DailyQuota] = None,
        monitor: Optional[ProcessingMonitor] = None,
        fallback_tiers: Optional[Sequence[Tuple[str, FallbackTier]]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.clock = clock or SystemClock()
        self.metadata_client = metadata_client
        self.caption_fetcher = caption_fetcher
        self.oembed = oembed
        self.downloader = downloader
        self.analyzer = analyzer
        self.options = options
        self.cache: ContentCache[AcquisitionResult] = cache or ContentCache(clock=self.clock)
        self.breakers = breakers or BreakerRegistry(clock=self.clock)
        self.quota = quota or DailyQuota(50, clock=self.clock)
        self.monitor = monitor or ProcessingMonitor(clock=self.clock)
        self.fallback_tiers = list(fallback_tiers if fallback_tiers is not None else fallback.FALLBACK_TIERS)
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: Settings) -> "AcquisitionPipeline":
        """Wire real collaborators from settings."""
        # Imported here so tests and offline callers never load network clients.
        from storycraft.sources.captions import YouTubeCaptionFetcher
        from storycraft.sources.media import YtDlpMediaDownloader
        from storycraft.sources.metadata import YouTubeDataApiClient, YouTubeOEmbedClient, YtDlpMetadataClient

        clock = SystemClock()
        youtube_key = Settings.secret(settings.youtube_api_key)
        metadata_client: MetadataClient
        if youtube_key:
            metadata_client = YouTubeDataApiClient(youtube_key, timeout=settings.metadata_timeout)
        else:
            metadata_client = YtDlpMetadataClient(socket_timeout=settings.metadata_timeout)

        downloader: Optional[MediaDownloader] = None
        analyzer: Optional[VideoAnalyzer] = None
        gemini_key = Settings.secret(settings.gemini_api_key)
        if settings.enrichment_enabled and gemini_key:
            from storycraft.sources.gemini import GeminiVideoAnalyzer

            downloader = YtDlpMediaDownloader(
                temp_dir=str(settings.temp_dir) if settings.temp_dir else None,
                max_file_size_mb=settings.max_download_mb,
                socket_timeout=settings.download_socket_timeout,
            )
            analyzer = GeminiVideoAnalyzer(
                gemini_key,
                model_name=settings.gemini_video_model,
                timeout=settings.analysis_timeout,
                processing_budget=settings.analysis_processing_budget,
            )

        options = PipelineOptions(
            retry=RetryConfig(
                max_attempts=settings.retry_max_attempts,
                base_delay=settings.retry_base_delay,
                max_delay=settings.retry_max_delay,
                jitter=settings.retry_jitter,
                rate_limit_multiplier=settings.retry_rate_limit_multiplier,
            ),
            enrichment_enabled=settings.enrichment_enabled,
            enrichment_max_duration=settings.enrichment_max_duration,
            enrichment_quality_floor=EnrichmentQuality(settings.enrichment_quality_floor),
            min_fallback_confidence=settings.min_fallback_confidence,
            max_workers=settings.max_workers,
        )
        return cls(
            metadata_client,
            caption_fetcher=YouTubeCaptionFetcher(languages=settings.caption_languages),
            oembed=YouTubeOEmbedClient(timeout=settings.oembed_timeout),
            downloader=downloader,
            analyzer=analyzer,
            options=options,
            clock=clock,
            cache=ContentCache(max_entries=settings.cache_max_entries, ttls=settings.cache_ttls(), clock=clock),
            breakers=BreakerRegistry(
                BreakerConfig(
                    failure_threshold=settings.breaker_failure_threshold,
                    reset_timeout=settings.breaker_reset_timeout,
                ),
                clock=clock,
            ),
            quota=DailyQuota(settings.enrichment_daily_limit, clock=clock, reset_hour=settings.quota_reset_hour),
            monitor=ProcessingMonitor(clock=clock, max_events=settings.monitor_max_events),
        )

    # ------------------------------------------------------------------ public

    def acquire(self, url: str, kind_hint: KindHint | str = KindHint.AUTO) -> AcquisitionResult:
        """
        Acquire descriptive content for a YouTube URL.

        Always returns a result; degraded results carry a warning and a
        lower confidence.
        """
        run_id = uuid.uuid4()
        logger = get_logger(run_id)
        start = self.monitor.now()
        hint = self._normalize_hint(kind_hint, logger)

        log_event(
            logger,
            logging.INFO,
            "Starting content acquisition",
            event_type="pipeline_start",
            metadata={"url": str(url)[:500], "kind_hint": hint.value},
        )

        reference = extract_reference(url)
        if reference is None:
            event_id = self.monitor.record_start(str(url), ContentKind.UNKNOWN.value)
            result = invalid_reference_result(url)
            self.monitor.record_complete(
                event_id,
                result.strategy_used.value,
                start,
                success=False,
                error=InvalidReference(result.error or "invalid reference"),
            )
            log_event(logger, logging.WARNING, "URL rejected", event_type="invalid_reference", metadata={"url": str(url)[:500]})
            return result

        kind = resolve_kind(reference, hint)
        event_id = self.monitor.record_start(reference.url, kind.value)
        key = make_key(reference.reference_id, hint.value)

        cached = self.cache.get(key)
        if cached is not None:
            self.monitor.record_complete(
                event_id,
                Strategy.CACHE_HIT.value,
                start,
                success=cached.strategy_used is not Strategy.EMERGENCY_STUB,
                cache_hit=True,
            )
            log_event(
                logger,
                logging.INFO,
                "Cache hit",
                event_type="cache_hit",
                metadata={"key": key, "cached_strategy": cached.strategy_used.value},
            )
            return cached.model_copy(
                update={
                    "strategy_used": Strategy.CACHE_HIT,
                    "metadata": {**cached.metadata, "cached_strategy": cached.strategy_used.value},
                    "tiers_attempted": [],
                }
            )

        ctx = TierContext(
            logger=logger,
            options=self.options,
            metadata_client=self.metadata_client,
            quota=self.quota,
            caption_fetcher=self.caption_fetcher,
            oembed=self.oembed,
            downloader=self.downloader,
            analyzer=self.analyzer,
            sleep=self._sleep,
        )
        failures: List[BaseException] = []

        try:
            result = self._run_tiers(reference, kind, ctx, failures)
        except Exception as exc:  # pylint: disable=broad-except
            # Tier containment failed; still hand back something usable
            failures.append(exc)
            log_event(
                logger,
                logging.ERROR,
                "Unhandled exception in acquisition",
                event_type="failure",
                metadata={"exception": str(exc)},
            )
            ctx.enter(Strategy.EMERGENCY_STUB.value)
            result = fallback.emergency_stub(reference, kind, exc, ctx)

        result = result.model_copy(update={"tiers_attempted": list(ctx.tiers_attempted)})
        self.cache.set(key, result, cache_category(result))

        error = failures[0] if failures else None
        self.monitor.record_complete(
            event_id,
            result.strategy_used.value,
            start,
            success=result.strategy_used is not Strategy.EMERGENCY_STUB,
            error=error,
            tiers_attempted=result.tiers_attempted,
        )
        log_event(
            logger,
            logging.INFO if result.warning is None else logging.WARNING,
            "Acquisition completed",
            event_type="pipeline_success",
            metadata={
                "strategy": result.strategy_used.value,
                "confidence": result.confidence,
                "status": result.status,
                "tiers_attempted": result.tiers_attempted,
            },
        )
        return result

    def acquire_many(
        self,
        urls: Sequence[str],
        kind_hint: KindHint | str = KindHint.AUTO,
        max_workers: Optional[int] = None,
    ) -> List[AcquisitionResult]:
        """Acquire independent URLs concurrently; output order matches input."""
        if not urls:
            return []
        if max_workers is None:
            max_workers = self.options.max_workers
        with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(urls)))) as pool:
            return list(pool.map(lambda url: self.acquire(url, kind_hint), urls))

    def get_health_snapshot(self) -> HealthSnapshot:
        return HealthSnapshot(
            success_rate=self.monitor.get_success_rate(),
            cache_stats=self.cache.stats(),
            circuit_state=self.breakers.states(),
            recent_errors=self.monitor.get_recent_errors(),
            enrichment_quota=self.quota.snapshot(),
        )

    # ----------------------------------------------------------------- private

    @staticmethod
    def _normalize_hint(kind_hint: KindHint | str, logger: AnyLogger) -> KindHint:
        try:
            return KindHint(kind_hint)
        except ValueError:
            log_event(
                logger,
                logging.WARNING,
                "Unknown kind hint, using auto",
                event_type="invalid_kind_hint",
                metadata={"kind_hint": str(kind_hint)},
            )
            return KindHint.AUTO

    def _run_tiers(
        self,
        reference: AcquisitionReference,
        kind: ContentKind,
        ctx: TierContext,
        failures: List[BaseException],
    ) -> AcquisitionResult:
        def primary() -> AcquisitionResult:
            ctx.enter(standard.TIER_NAME)
            return standard.process(reference, kind, ctx)

        def on_primary_failure(exc: BaseException) -> AcquisitionResult:
            failures.append(exc)
            return self._walk_fallbacks(reference, kind, exc, ctx)

        breaker = self.breakers.get(METADATA_CATEGORY)
        result = breaker.execute(primary, fallback=on_primary_failure)

        if result.strategy_used is Strategy.STANDARD and kind is ContentKind.SHORTS:
            result = enrichment.process(result, reference, ctx)
        return result

    def _walk_fallbacks(
        self,
        reference: AcquisitionReference,
        kind: ContentKind,
        error: BaseException,
        ctx: TierContext,
    ) -> AcquisitionResult:
        log_event(
            ctx.logger,
            logging.WARNING,
            "Primary tier failed, walking fallback tiers",
            event_type="fallback_start",
            metadata={"error_kind": classify_error(error).value, "error": str(error)},
        )
        floor = self.options.min_fallback_confidence

        for name, tier in self.fallback_tiers:
            ctx.enter(name)
            try:
                candidate = tier(reference, kind, error, ctx)
            except Exception as exc:  # pylint: disable=broad-except
                log_event(
                    ctx.logger,
                    logging.WARNING,
                    "Fallback tier failed",
                    stage_name=name,
                    event_type="failure",
                    metadata={"error_kind": classify_error(exc).value, "error": str(exc)},
                )
                continue

            if candidate is not None and candidate.confidence > floor:
                log_event(
                    ctx.logger,
                    logging.INFO,
                    "Fallback tier succeeded",
                    stage_name=name,
                    event_type="success",
                    metadata={"confidence": candidate.confidence},
                )
                return candidate

            log_event(
                ctx.logger,
                logging.INFO,
                "Fallback tier produced nothing usable",
                stage_name=name,
                event_type="skipped",
                metadata={"confidence": candidate.confidence if candidate is not None else None},
            )

        ctx.enter(Strategy.EMERGENCY_STUB.value)
        return fallback.emergency_stub(reference, kind, error, ctx)


# High-Level Intent
# pipeline.py is the orchestration heart of acquisition. It owns every piece
# of shared state (cache, breakers, quota, monitor) and hands tiers a
# per-run TierContext. Tiers are imported explicitly so the order is
# visible here.

# Data Flow
# acquire(url, hint)
# -> extract_reference (None -> invalid_reference, not cached)
# -> cache.get (hit -> cache_hit copy)
# -> breaker("metadata").execute(standard, fallback=walk fallbacks)
# -> shorts + standard -> enrichment
# -> cache.set by category -> monitor.record_complete -> result

# Edge Cases
# Circuit open -> standard never entered; tiers_attempted starts at metadata_only.
# Fallback tier raising -> logged, next tier tried.
# Every fallback below the floor -> emergency stub carrying the primary error.
# Unknown kind hint -> treated as auto.
