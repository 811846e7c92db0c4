# storycraft/acquisition/schema.py
"""
Authoritative data model for content acquisition.

This module defines:
- The AcquisitionResult returned by every tier (and by the pipeline)
- The optional Enrichment payload from deep video analysis
- Shorts heuristics attached to short-form results
- Monitoring and health contracts

All tiers MUST return instances of these models. Results are frozen;
derive variants with model_copy(update=...).
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field


class ContentKind(str, Enum):
    SHORTS = "shorts"
    VIDEO = "video"
    UNKNOWN = "unknown"


class KindHint(str, Enum):
    AUTO = "auto"
    SHORTS = "shorts"
    VIDEO = "video"


class Strategy(str, Enum):
    """Which tier produced a result."""
    STANDARD = "standard"
    ENRICHED = "enriched"
    METADATA_ONLY = "metadata_only"
    URL_PATTERN = "url_pattern"
    STATIC_TEMPLATE = "static_template"
    EMERGENCY_STUB = "emergency_stub"
    CACHE_HIT = "cache_hit"
    INVALID_REFERENCE = "invalid_reference"


class EnrichmentQuality(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    FAILED = "failed"


# Confidence per tier. Strictly ordered; fallbacks must stay below the floor
# required to have skipped them.
CONFIDENCE_ENRICHED = 0.95
CONFIDENCE_STANDARD = 0.92
CONFIDENCE_ENRICHMENT_ABSENT = 0.75
CONFIDENCE_METADATA_ONLY = 0.45
CONFIDENCE_URL_PATTERN = 0.40
CONFIDENCE_STATIC_TEMPLATE = 0.35
CONFIDENCE_EMERGENCY = 0.0

SOFT_ERROR_BELOW = 0.4
OK_FROM = 0.9


def new_result_id() -> str:
    return f"acq_{uuid.uuid4().hex[:16]}"


class AcquisitionReference(BaseModel):
    """Identifier extracted from a URL. Immutable."""
    reference_id: str
    url: str
    is_shorts: bool = False
    pattern: str

    model_config = ConfigDict(frozen=True)


class VideoMetadata(BaseModel):
    """Metadata API response contract."""
    reference_id: str
    title: str
    description: str = ""
    duration_seconds: Optional[int] = None
    thumbnail_ref: Optional[str] = None
    channel_title: Optional[str] = None
    published_at: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    view_count: Optional[int] = None
    like_count: Optional[int] = None


class SceneDescription(BaseModel):
    start_time: float = 0.0
    end_time: float = 0.0
    description: str = ""
    setting: str = ""
    actions: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


class CharacterDescription(BaseModel):
    name: str
    description: str = ""
    role: str = ""

    model_config = ConfigDict(extra="ignore")


class DialogueSegment(BaseModel):
    start_time: float = 0.0
    end_time: float = 0.0
    speaker: str = ""
    text: str = ""
    emotion: str = ""

    model_config = ConfigDict(extra="ignore")


class Enrichment(BaseModel):
    """Deep-analysis payload. Owned by exactly one AcquisitionResult."""
    generated_transcript: str = ""
    scene_breakdown: List[SceneDescription] = Field(default_factory=list)
    characters: List[CharacterDescription] = Field(default_factory=list)
    dialogues: List[DialogueSegment] = Field(default_factory=list)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    content_summary: str = ""
    mood: str = ""
    themes: List[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, extra="ignore")


class ShortsInsights(BaseModel):
    """Heuristic read of a short-form video's format and reach."""
    style: str = "entertainment"
    hooks: List[str] = Field(default_factory=list)
    calls_to_action: List[str] = Field(default_factory=list)
    engagement_prediction: float = Field(default=50.0, ge=0.0, le=100.0)
    viral_score: float = Field(default=0.0, ge=0.0, le=100.0)
    viral_factors: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    optimization_hints: List[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class AcquisitionResult(BaseModel):
    """
    Descriptive content for one reference, produced by exactly one tier.

    confidence reflects how trustworthy/complete the result is; degraded
    results carry a human-readable warning.
    """
    id: str = Field(default_factory=new_result_id)
    source_identifier: Optional[str] = None
    content_kind: ContentKind = ContentKind.UNKNOWN
    title: str
    description: str = ""
    duration_seconds: Optional[int] = None
    thumbnail_ref: Optional[str] = None
    transcript: Optional[str] = None
    confidence: float = Field(ge=0.0, le=1.0)
    strategy_used: Strategy
    enrichment: Optional[Enrichment] = None
    enrichment_quality: Optional[EnrichmentQuality] = None
    shorts_insights: Optional[ShortsInsights] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    warning: Optional[str] = None
    error: Optional[str] = None
    tiers_attempted: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(frozen=True)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def status(self) -> str:
        """ok / degraded / soft_error, derived from confidence."""
        if self.confidence >= OK_FROM:
            return "ok"
        if self.confidence >= SOFT_ERROR_BELOW:
            return "degraded"
        return "soft_error"


class EventOutcome(str, Enum):
    SUCCESS = "success"
    CACHE_HIT = "cache_hit"
    ERROR = "error"


class ProcessingEvent(BaseModel):
    """One acquisition attempt as seen by the monitor."""
    id: str
    url: str
    content_kind: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    strategy: Optional[str] = None
    outcome: Optional[EventOutcome] = None
    error_kind: Optional[str] = None
    duration_ms: Optional[float] = None
    tiers_attempted: List[str] = Field(default_factory=list)


class HealthSnapshot(BaseModel):
    """What the external ops surface reads."""
    success_rate: float
    cache_stats: Dict[str, Any]
    circuit_state: Dict[str, str]
    recent_errors: List[Dict[str, Any]]
    enrichment_quota: Dict[str, Any]



# High-Level Intent
# schema.py is the contract between tiers, the pipeline, the cache and the
# downstream prompt builder. Tier confidences live here so their ordering is
# visible in one place.

# Edge Cases
# Invalid reference -> source_identifier None, kind unknown, confidence 0.
# Emergency stub -> error carries the original failure message.
# status is computed, never stored: a cached result re-derives it.
