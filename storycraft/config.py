# storycraft/config.py
"""
Environment-driven settings.

Every value can be set through a STORYCRAFT_-prefixed environment variable
or a .env file, e.g. STORYCRAFT_GEMINI_API_KEY, STORYCRAFT_CACHE_MAX_ENTRIES.
Builders (AcquisitionPipeline.from_settings, StructuredOutputService.from_settings)
are the only readers; core components take plain arguments.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="STORYCRAFT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # System
    log_level: str = "INFO"
    temp_dir: Optional[Path] = None
    max_workers: int = Field(default=4, ge=1)

    # Credentials
    youtube_api_key: Optional[SecretStr] = None
    gemini_api_key: Optional[SecretStr] = None

    # Models
    gemini_video_model: str = "gemini-2.0-flash"
    gemini_text_model: str = "gemini-2.0-flash"
    generation_temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    generation_max_output_tokens: int = 2000

    # Retry
    retry_max_attempts: int = Field(default=3, ge=1)
    retry_base_delay: float = 1.0
    retry_max_delay: float = 10.0
    retry_jitter: float = Field(default=0.5, ge=0.0, le=1.0)
    retry_rate_limit_multiplier: float = 3.0

    # Circuit breaker
    breaker_failure_threshold: int = Field(default=5, ge=1)
    breaker_reset_timeout: float = 60.0

    # Cache (TTLs in seconds)
    cache_max_entries: int = Field(default=1000, ge=1)
    cache_ttl_shorts: float = 15 * 60
    cache_ttl_video: float = 60 * 60
    cache_ttl_metadata: float = 30 * 60
    cache_ttl_fallback: float = 5 * 60
    cache_ttl_error: float = 60

    # Enrichment
    enrichment_enabled: bool = True
    enrichment_daily_limit: int = Field(default=50, ge=0)
    enrichment_max_duration: int = 60
    enrichment_quality_floor: str = "medium"
    quota_reset_hour: int = Field(default=0, ge=0, le=23)

    # Timeouts (seconds)
    metadata_timeout: float = 10.0
    oembed_timeout: float = 5.0
    download_socket_timeout: float = 30.0
    max_download_mb: int = 50
    analysis_timeout: float = 120.0
    analysis_processing_budget: float = 90.0
    generation_timeout: float = 60.0

    # Fallbacks
    min_fallback_confidence: float = Field(default=0.3, ge=0.0, le=1.0)
    caption_languages: List[str] = Field(default_factory=lambda: ["en"])

    # Monitoring
    monitor_max_events: int = Field(default=100, ge=1)

    def cache_ttls(self) -> Dict[str, float]:
        return {
            "shorts": self.cache_ttl_shorts,
            "video": self.cache_ttl_video,
            "metadata": self.cache_ttl_metadata,
            "fallback": self.cache_ttl_fallback,
            "error": self.cache_ttl_error,
        }

    @staticmethod
    def secret(value: Optional[SecretStr]) -> str:
        return value.get_secret_value() if value is not None else ""


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
