# storycraft/sources/gemini.py
"""
Gemini collaborators: deep video analysis and text generation.

Invocation is isolated here; prompts are versioned constants; model output
for video analysis is validated against the Enrichment model before it
leaves this module.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable, Optional

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from pydantic import ValidationError

from storycraft.acquisition.schema import Enrichment
from storycraft.logging_core.logger import get_component_logger, log_event
from storycraft.resilience.errors import (
    AccessDenied,
    MalformedResponse,
    QuotaExceeded,
    ResourceExhausted,
    StorycraftError,
    UpstreamUnavailable,
)
from storycraft.sources.base import GenerationOptions


_logger = get_component_logger("gemini")


# Versioned prompt, change only with a migration plan for cached enrichments
VIDEO_ANALYSIS_PROMPT = """
You are analysing a short vertical video. Watch it fully and describe only what is
seen and heard.

Respond with valid JSON only, matching exactly:
{
  "generated_transcript": string,          // spoken words plus on-screen text, in order
  "scene_breakdown": [{"start_time": number, "end_time": number, "description": string,
                       "setting": string, "actions": [string]}],
  "characters": [{"name": string, "description": string, "role": string}],
  "dialogues": [{"start_time": number, "end_time": number, "speaker": string,
                 "text": string, "emotion": string}],
  "mood": string,
  "themes": [string],
  "content_summary": string,
  "confidence": number                     // 0.0-1.0, how sure you are of the above
}
""".strip()


def translate_google_error(exc: BaseException) -> StorycraftError:
    message = str(exc)
    if isinstance(exc, google_exceptions.ResourceExhausted):
        return QuotaExceeded(message, status_code=429)
    if isinstance(exc, (google_exceptions.PermissionDenied, google_exceptions.Unauthenticated)):
        return AccessDenied(message)
    if isinstance(exc, google_exceptions.InvalidArgument):
        return MalformedResponse(message)
    if isinstance(exc, google_exceptions.TooManyRequests):
        return QuotaExceeded(message, status_code=429)
    # DeadlineExceeded, ServiceUnavailable, InternalServerError and the rest
    return UpstreamUnavailable(message)


def _configure(api_key: str) -> None:
    if not api_key:
        raise AccessDenied("GEMINI_API_KEY not configured")
    genai.configure(api_key=api_key)


class GeminiVideoAnalyzer:
    """Upload a local video to the Gemini File API and ask for a JSON analysis."""

    def __init__(
        self,
        api_key: str,
        model_name: str = "gemini-2.0-flash",
        timeout: float = 120.0,
        processing_budget: float = 90.0,
        poll_interval: float = 5.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        _configure(api_key)
        self.model = genai.GenerativeModel(model_name)
        self.timeout = timeout
        self.processing_budget = processing_budget
        self.poll_interval = poll_interval
        self._sleep = sleep

    def analyze(self, media_path: str, reference_id: str) -> Enrichment:
        uploaded: Optional[Any] = None
        try:
            uploaded = genai.upload_file(path=media_path)
            uploaded = self._wait_until_active(uploaded)
            response = self.model.generate_content(
                [uploaded, VIDEO_ANALYSIS_PROMPT],
                generation_config={"response_mime_type": "application/json", "temperature": 0.2},
                request_options={"timeout": self.timeout},
            )
        except google_exceptions.GoogleAPIError as exc:
            raise translate_google_error(exc) from exc
        finally:
            if uploaded is not None:
                try:
                    genai.delete_file(uploaded.name)
                except google_exceptions.GoogleAPIError as cleanup_error:
                    log_event(
                        _logger,
                        logging.WARNING,
                        "Failed to delete uploaded analysis file",
                        event_type="cleanup_failure",
                        metadata={"reference_id": reference_id, "error": str(cleanup_error)},
                    )

        text = (getattr(response, "text", "") or "").strip()
        if not text:
            raise MalformedResponse("video analysis returned an empty response")
        try:
            enrichment = Enrichment.model_validate(json.loads(text))
        except (json.JSONDecodeError, ValidationError) as exc:
            raise MalformedResponse(f"video analysis returned invalid JSON: {exc}") from exc

        log_event(
            _logger,
            logging.INFO,
            "Video analysis completed",
            event_type="analysis_success",
            metadata={
                "reference_id": reference_id,
                "confidence": enrichment.confidence,
                "transcript_chars": len(enrichment.generated_transcript),
                "scenes": len(enrichment.scene_breakdown),
            },
        )
        return enrichment

    def _wait_until_active(self, uploaded: Any) -> Any:
        waited = 0.0
        while uploaded.state.name == "PROCESSING" and waited < self.processing_budget:
            self._sleep(self.poll_interval)
            waited += self.poll_interval
            uploaded = genai.get_file(uploaded.name)

        if uploaded.state.name == "FAILED":
            raise ResourceExhausted("Gemini file processing failed")
        if uploaded.state.name != "ACTIVE":
            raise UpstreamUnavailable(f"Gemini file not ready after {self.processing_budget}s")
        return uploaded


class GeminiTextModel:
    """Plain text generation; the caller handles JSON repair."""

    def __init__(self, api_key: str, model_name: str = "gemini-2.0-flash") -> None:
        _configure(api_key)
        self.model = genai.GenerativeModel(model_name)

    def generate(self, prompt: str, options: GenerationOptions) -> str:
        try:
            response = self.model.generate_content(
                prompt,
                generation_config={
                    "temperature": options.temperature,
                    "max_output_tokens": options.max_output_tokens,
                },
                request_options={"timeout": options.timeout},
            )
        except google_exceptions.GoogleAPIError as exc:
            raise translate_google_error(exc) from exc

        try:
            return response.text or ""
        except ValueError:
            # Blocked or empty candidates raise on .text
            return ""
