# storycraft/sources/metadata.py
"""
Metadata collaborators.

- YouTubeDataApiClient: YouTube Data API v3 (needs an API key)
- YtDlpMetadataClient: yt-dlp metadata extraction, no media download
- YouTubeOEmbedClient: keyless oEmbed lookup used by the metadata-only tier

Every failure leaves here as a StorycraftError subtype so the retry
classifier can tell quota, not-found and auth failures apart.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Optional

import requests
import yt_dlp

from storycraft.acquisition.references import canonical_url
from storycraft.acquisition.schema import AcquisitionReference, VideoMetadata
from storycraft.resilience.errors import (
    AccessDenied,
    ContentNotFound,
    MalformedResponse,
    QuotaExceeded,
    ResourceExhausted,
    StorycraftError,
    UpstreamUnavailable,
    error_from_status,
)


YOUTUBE_API_URL = "https://www.googleapis.com/youtube/v3/videos"
OEMBED_URL = "https://www.youtube.com/oembed"
USER_AGENT = "storycraft/0.1"

_ISO_DURATION = re.compile(r"^P(?:(\d+)D)?T?(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?$")


def parse_iso8601_duration(value: Optional[str]) -> int:
    """PT4M13S -> 253. Unparseable input -> 0."""
    if not value:
        return 0
    match = _ISO_DURATION.match(value.strip())
    if not match:
        return 0
    days, hours, minutes, seconds = (int(part or 0) for part in match.groups())
    return days * 86400 + hours * 3600 + minutes * 60 + seconds


def translate_ytdlp_error(exc: BaseException) -> StorycraftError:
    """Map a yt-dlp DownloadError/ExtractorError message to the taxonomy."""
    message = str(exc)
    lowered = message.lower()
    if "429" in lowered or "too many requests" in lowered:
        return QuotaExceeded(message, status_code=429)
    if any(token in lowered for token in ("private video", "sign in", "age-restricted", "members-only", "403")):
        return AccessDenied(message)
    if "requested format" in lowered or "no video formats" in lowered:
        return ResourceExhausted(f"format unavailable: {message}")
    if any(token in lowered for token in ("video unavailable", "has been removed", "does not exist", "404")):
        return ContentNotFound(message)
    return UpstreamUnavailable(message)


def _http_get(session: requests.Session, url: str, params: Dict[str, Any], timeout: float) -> requests.Response:
    try:
        return session.get(url, params=params, timeout=timeout, headers={"User-Agent": USER_AGENT})
    except requests.Timeout as exc:
        raise UpstreamUnavailable(f"request timed out after {timeout}s") from exc
    except requests.RequestException as exc:
        raise UpstreamUnavailable(f"network error: {exc}") from exc


class YouTubeDataApiClient:
    """Metadata via the YouTube Data API v3."""

    def __init__(self, api_key: str, timeout: float = 10.0, session: Optional[requests.Session] = None) -> None:
        if not api_key:
            raise AccessDenied("YouTube API key not configured")
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch(self, reference_id: str) -> VideoMetadata:
        response = _http_get(
            self.session,
            YOUTUBE_API_URL,
            {"id": reference_id, "key": self.api_key, "part": "snippet,contentDetails,statistics"},
            self.timeout,
        )

        if response.status_code != 200:
            raise self._error_for(response)

        try:
            data = response.json()
        except ValueError as exc:
            raise MalformedResponse("metadata API returned non-JSON body") from exc

        items = data.get("items") or []
        if not items:
            raise ContentNotFound(f"video {reference_id} not found or not accessible", status_code=404)

        video = items[0]
        snippet = video.get("snippet") or {}
        details = video.get("contentDetails") or {}
        stats = video.get("statistics") or {}
        thumbnails = snippet.get("thumbnails") or {}
        thumbnail = (thumbnails.get("high") or thumbnails.get("default") or {}).get("url")

        if not snippet.get("title"):
            raise MalformedResponse("metadata API response missing snippet.title")

        return VideoMetadata(
            reference_id=reference_id,
            title=snippet["title"],
            description=snippet.get("description") or "",
            duration_seconds=parse_iso8601_duration(details.get("duration")),
            thumbnail_ref=thumbnail,
            channel_title=snippet.get("channelTitle"),
            published_at=snippet.get("publishedAt"),
            tags=list(snippet.get("tags") or []),
            view_count=int(stats.get("viewCount") or 0),
            like_count=int(stats.get("likeCount") or 0),
        )

    @staticmethod
    def _error_for(response: requests.Response) -> StorycraftError:
        reason = ""
        try:
            errors = (response.json().get("error") or {}).get("errors") or []
            reason = (errors[0].get("reason") or "") if errors else ""
        except ValueError:
            pass

        message = f"YouTube API error: {response.status_code} {reason or response.reason}"
        if response.status_code == 403 and reason in ("quotaExceeded", "dailyLimitExceeded", "rateLimitExceeded", "userRateLimitExceeded"):
            return QuotaExceeded(message, status_code=403)
        return error_from_status(response.status_code, message)


class YtDlpMetadataClient:
    """Metadata via yt-dlp. No media is downloaded."""

    def __init__(self, socket_timeout: float = 15.0) -> None:
        self.params = {
            "quiet": True,
            "no_warnings": True,
            "extract_flat": False,
            "skip_download": True,
            "noplaylist": True,
            "socket_timeout": socket_timeout,
        }

    def fetch(self, reference_id: str) -> VideoMetadata:
        try:
            with yt_dlp.YoutubeDL(self.params) as ydl:
                info = ydl.extract_info(f"https://www.youtube.com/watch?v={reference_id}", download=False)
        except yt_dlp.utils.DownloadError as exc:
            raise translate_ytdlp_error(exc) from exc

        if not info or not info.get("title"):
            raise MalformedResponse("yt-dlp returned no metadata")

        return VideoMetadata(
            reference_id=reference_id,
            title=info["title"],
            description=info.get("description") or "",
            duration_seconds=int(info["duration"]) if info.get("duration") else None,
            thumbnail_ref=info.get("thumbnail"),
            channel_title=info.get("channel") or info.get("uploader"),
            published_at=info.get("upload_date"),
            tags=list(info.get("tags") or []),
            view_count=info.get("view_count"),
            like_count=info.get("like_count"),
        )


class YouTubeOEmbedClient:
    """Keyless title/author/thumbnail lookup."""

    def __init__(self, timeout: float = 5.0, session: Optional[requests.Session] = None) -> None:
        self.timeout = timeout
        self.session = session or requests.Session()

    def lookup(self, reference: AcquisitionReference) -> Dict[str, Any]:
        response = _http_get(
            self.session,
            OEMBED_URL,
            {"url": canonical_url(reference), "format": "json"},
            self.timeout,
        )
        if response.status_code != 200:
            raise error_from_status(response.status_code, f"oEmbed error: {response.status_code}")
        try:
            data = response.json()
        except ValueError as exc:
            raise MalformedResponse("oEmbed returned non-JSON body") from exc
        if not data.get("title"):
            raise MalformedResponse("oEmbed response missing title")
        return {
            "title": data["title"],
            "author_name": data.get("author_name"),
            "thumbnail_url": data.get("thumbnail_url"),
        }
