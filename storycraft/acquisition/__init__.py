"""
Tiered, cached, circuit-protected content acquisition.

The pipeline itself lives in storycraft.acquisition.pipeline; it is not
re-exported here because the source adapters import this package's schema.
"""

from storycraft.acquisition.cache import ContentCache, make_key
from storycraft.acquisition.monitor import ProcessingMonitor
from storycraft.acquisition.quota import DailyQuota
from storycraft.acquisition.references import extract_reference, resolve_kind
from storycraft.acquisition.schema import (
    AcquisitionReference,
    AcquisitionResult,
    ContentKind,
    Enrichment,
    EnrichmentQuality,
    HealthSnapshot,
    KindHint,
    ShortsInsights,
    Strategy,
)

__all__ = [
    "AcquisitionReference",
    "AcquisitionResult",
    "ContentCache",
    "ContentKind",
    "DailyQuota",
    "Enrichment",
    "EnrichmentQuality",
    "HealthSnapshot",
    "KindHint",
    "ProcessingMonitor",
    "ShortsInsights",
    "Strategy",
    "extract_reference",
    "make_key",
    "resolve_kind",
]
