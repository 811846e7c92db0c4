# storycraft/sources/base.py
"""
Contracts for the external collaborators the core depends on.

Implementations translate their native failures into the error taxonomy
in storycraft.resilience.errors before raising.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

from storycraft.acquisition.schema import AcquisitionReference, Enrichment, VideoMetadata


@dataclass(frozen=True)
class DownloadedMedia:
    path: str
    duration_seconds: Optional[float]
    file_size: int
    format: str
    mime_type: str


@dataclass(frozen=True)
class GenerationOptions:
    temperature: float = 0.7
    max_output_tokens: int = 2000
    timeout: float = 60.0


class MetadataClient(Protocol):
    def fetch(self, reference_id: str) -> VideoMetadata:
        ...


class OEmbedLookup(Protocol):
    def lookup(self, reference: AcquisitionReference) -> Dict[str, Any]:
        ...


class CaptionFetcher(Protocol):
    def fetch(self, reference_id: str) -> Optional[str]:
        ...


class MediaDownloader(Protocol):
    def download(self, reference_id: str) -> DownloadedMedia:
        ...

    def cleanup(self, media: DownloadedMedia) -> None:
        ...


class VideoAnalyzer(Protocol):
    def analyze(self, media_path: str, reference_id: str) -> Enrichment:
        ...


class TextModel(Protocol):
    def generate(self, prompt: str, options: GenerationOptions) -> str:
        ...
