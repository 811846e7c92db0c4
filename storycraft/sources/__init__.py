"""External collaborators: metadata, captions, media, Gemini."""

from storycraft.sources.base import (
    CaptionFetcher,
    DownloadedMedia,
    GenerationOptions,
    MediaDownloader,
    MetadataClient,
    OEmbedLookup,
    TextModel,
    VideoAnalyzer,
)

__all__ = [
    "CaptionFetcher",
    "DownloadedMedia",
    "GenerationOptions",
    "MediaDownloader",
    "MetadataClient",
    "OEmbedLookup",
    "TextModel",
    "VideoAnalyzer",
]
