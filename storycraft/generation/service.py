# storycraft/generation/service.py
"""
StructuredOutputService: AcquisitionResult -> StructuredRecord.

Responsibility:
- Build the prompt for the result's content kind and quality
- Call the text model behind the "generation" breaker, with retries
- Repair the raw text; fall back to a synthesized record on any failure

generate() never raises for upstream or parsing problems; the outcome
says whether the record came from the model or the local fallback.
"""

from __future__ import annotations

import logging
import time
import uuid
from enum import Enum
from typing import Callable, List, Optional

from pydantic import BaseModel, Field

from storycraft.acquisition.schema import AcquisitionResult
from storycraft.config import Settings
from storycraft.generation.fallback import synthesize_fallback_record
from storycraft.generation.prompts import build_prompt, params_for
from storycraft.generation.repair import RepairFailure, RepairInputRejected, ResponseRepairParser, StructuredRecord
from storycraft.logging_core.logger import AnyLogger, get_logger, log_event
from storycraft.resilience.breaker import BreakerConfig, BreakerRegistry
from storycraft.resilience.errors import classify_error
from storycraft.resilience.retry import RetryConfig, execute_with_retry
from storycraft.sources.base import GenerationOptions, TextModel


GENERATION_CATEGORY = "generation"


class PitchSource(str, Enum):
    MODEL = "model"
    FALLBACK = "fallback"


class PitchOutcome(BaseModel):
    record: StructuredRecord
    source: PitchSource
    strategy: Optional[str] = None
    warning: Optional[str] = None
    repair_attempts: List[str] = Field(default_factory=list)


class StructuredOutputService:
    def __init__(
        self,
        text_model: Optional[TextModel],
        *,
        breakers: Optional[BreakerRegistry] = None,
        retry: RetryConfig = RetryConfig(),
        options: GenerationOptions = GenerationOptions(),
        parser: Optional[ResponseRepairParser] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.text_model = text_model
        self.breakers = breakers or BreakerRegistry()
        self.retry = retry
        self.options = options
        self.parser = parser or ResponseRepairParser()
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: Settings, breakers: Optional[BreakerRegistry] = None) -> "StructuredOutputService":
        text_model: Optional[TextModel] = None
        gemini_key = Settings.secret(settings.gemini_api_key)
        if gemini_key:
            from storycraft.sources.gemini import GeminiTextModel

            text_model = GeminiTextModel(gemini_key, model_name=settings.gemini_text_model)
        return cls(
            text_model,
            breakers=breakers
            or BreakerRegistry(
                BreakerConfig(
                    failure_threshold=settings.breaker_failure_threshold,
                    reset_timeout=settings.breaker_reset_timeout,
                )
            ),
            retry=RetryConfig(
                max_attempts=settings.retry_max_attempts,
                base_delay=settings.retry_base_delay,
                max_delay=settings.retry_max_delay,
                jitter=settings.retry_jitter,
                rate_limit_multiplier=settings.retry_rate_limit_multiplier,
            ),
            options=GenerationOptions(
                temperature=settings.generation_temperature,
                max_output_tokens=settings.generation_max_output_tokens,
                timeout=settings.generation_timeout,
            ),
        )

    def generate(
        self,
        result: AcquisitionResult,
        style: Optional[str] = None,
        language: Optional[str] = None,
    ) -> PitchOutcome:
        logger = get_logger(uuid.uuid4())
        params = params_for(result, style=style, language=language)
        log_event(
            logger,
            logging.INFO,
            "Starting pitch generation",
            event_type="generation_start",
            metadata={
                "source_identifier": result.source_identifier,
                "content_kind": result.content_kind.value,
                "quality": params.quality.value,
                "language": params.language.code,
            },
        )

        if self.text_model is None:
            return self._fallback(result, style, language, logger, "Text model not configured; using a local pitch")

        prompt = build_prompt(result.content_kind, params)
        text_model = self.text_model

        def call_model() -> str:
            return execute_with_retry(
                lambda: text_model.generate(prompt, self.options),
                "text_generation",
                self.retry,
                sleep=self._sleep,
                logger=logger,
            )

        try:
            raw = self.breakers.get(GENERATION_CATEGORY).execute(call_model)
        except Exception as exc:  # pylint: disable=broad-except
            return self._fallback(
                result,
                style,
                language,
                logger,
                f"Generation unavailable ({classify_error(exc).value}); using a local pitch",
            )

        if not raw or not raw.strip():
            return self._fallback(result, style, language, logger, "Model returned an empty response; using a local pitch")

        try:
            outcome, strategy = self.parser.parse_with_strategy(raw)
        except RepairInputRejected as exc:
            return self._fallback(result, style, language, logger, f"Model response rejected: {exc}")

        if isinstance(outcome, RepairFailure):
            return self._fallback(
                result,
                style,
                language,
                logger,
                "Model response could not be repaired; using a local pitch",
                outcome.repair_attempts,
            )

        log_event(
            logger,
            logging.INFO,
            "Pitch generated",
            event_type="generation_success",
            metadata={"strategy": strategy, "pitch_chars": len(outcome.generated_pitch)},
        )
        return PitchOutcome(record=outcome, source=PitchSource.MODEL, strategy=strategy)

    def _fallback(
        self,
        result: AcquisitionResult,
        style: Optional[str],
        language: Optional[str],
        logger: AnyLogger,
        warning: str,
        repair_attempts: Optional[List[str]] = None,
    ) -> PitchOutcome:
        log_event(
            logger,
            logging.WARNING,
            "Falling back to local pitch",
            event_type="generation_fallback",
            metadata={"reason": warning},
        )
        return PitchOutcome(
            record=synthesize_fallback_record(result, style=style, language=language),
            source=PitchSource.FALLBACK,
            strategy="local_fallback",
            warning=warning,
            repair_attempts=list(repair_attempts or []),
        )


# High-Level Intent
# The service is the caller the acquisition core hands its results to. It
# keeps the model's failure modes (outage, rate limit, empty or mangled
# text) from ever reaching its own caller: the worst case is a clearly
# labelled local pitch.
