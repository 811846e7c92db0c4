# storycraft/sources/captions.py
"""
Caption transcript via youtube-transcript-api.
Single responsibility: fetch and concatenate captions, best effort.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from youtube_transcript_api import YouTubeTranscriptApi
from youtube_transcript_api._errors import CouldNotRetrieveTranscript

from storycraft.logging_core.logger import get_component_logger, log_event


_logger = get_component_logger("captions")

MAX_TRANSCRIPT_CHARS = 20_000


class YouTubeCaptionFetcher:
    """Returns None when captions are disabled or missing; never raises for that."""

    def __init__(self, languages: Sequence[str] = ("en",), api: Optional[YouTubeTranscriptApi] = None) -> None:
        self.languages = list(languages)
        self.api = api or YouTubeTranscriptApi()

    def fetch(self, reference_id: str) -> Optional[str]:
        try:
            fetched = self.api.fetch(reference_id, languages=self.languages)
        except CouldNotRetrieveTranscript as exc:
            log_event(
                _logger,
                logging.INFO,
                "Captions unavailable",
                event_type="captions_unavailable",
                metadata={"reference_id": reference_id, "reason": type(exc).__name__},
            )
            return None

        text = " ".join(snippet.text.strip() for snippet in fetched if snippet.text.strip())
        return text[:MAX_TRANSCRIPT_CHARS] or None
