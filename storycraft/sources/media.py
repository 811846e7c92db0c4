# storycraft/sources/media.py
"""
Short-form media download for the enrichment tier.

Single responsibility: fetch a small video file with yt-dlp, trying format
selectors from cheapest to most permissive, and remove it afterwards.
"""

from __future__ import annotations

import logging
import mimetypes
import os
import shutil
import tempfile
from typing import Optional, Sequence

import yt_dlp

from storycraft.logging_core.logger import get_component_logger, log_event
from storycraft.resilience.errors import ResourceExhausted, StorycraftError, UpstreamUnavailable
from storycraft.sources.base import DownloadedMedia
from storycraft.sources.metadata import translate_ytdlp_error


_logger = get_component_logger("media")

FORMAT_SELECTORS: Sequence[str] = (
    "worst[height<=480][ext=mp4]/bestvideo[height<=480][ext=mp4]+bestaudio[ext=m4a]/worst[ext=mp4]",
    "worst[ext=mp4]/best[ext=mp4]",
    "worst[ext=webm]/best[ext=webm]",
    "worst[vcodec!^=none]/best[vcodec!^=none]",
    "worst/best",
)


class YtDlpMediaDownloader:
    def __init__(
        self,
        temp_dir: Optional[str] = None,
        max_file_size_mb: int = 50,
        socket_timeout: float = 30.0,
        format_selectors: Sequence[str] = FORMAT_SELECTORS,
    ) -> None:
        self.temp_dir = temp_dir
        self.max_file_size = max_file_size_mb * 1024 * 1024
        self.socket_timeout = socket_timeout
        self.format_selectors = tuple(format_selectors)

    def download(self, reference_id: str) -> DownloadedMedia:
        if self.temp_dir:
            os.makedirs(self.temp_dir, exist_ok=True)
        workdir = tempfile.mkdtemp(prefix=f"storycraft-{reference_id}-", dir=self.temp_dir)
        try:
            return self._download_into(workdir, reference_id)
        except Exception:
            # Only a successful download hands the directory to cleanup()
            shutil.rmtree(workdir, ignore_errors=True)
            raise

    def _download_into(self, workdir: str, reference_id: str) -> DownloadedMedia:
        url = f"https://www.youtube.com/shorts/{reference_id}"
        last_error: Optional[StorycraftError] = None

        for selector in self.format_selectors:
            params = {
                "quiet": True,
                "no_warnings": True,
                "noplaylist": True,
                "format": selector,
                "outtmpl": os.path.join(workdir, "%(id)s.%(ext)s"),
                "max_filesize": self.max_file_size,
                "socket_timeout": self.socket_timeout,
            }
            try:
                with yt_dlp.YoutubeDL(params) as ydl:
                    info = ydl.extract_info(url, download=True)
                    path = ydl.prepare_filename(info) if info else None
            except yt_dlp.utils.DownloadError as exc:
                last_error = translate_ytdlp_error(exc)
                log_event(
                    _logger,
                    logging.WARNING,
                    "Format selector failed",
                    event_type="download_retry_format",
                    metadata={"reference_id": reference_id, "selector": selector, "error_kind": last_error.kind.value},
                )
                if not isinstance(last_error, ResourceExhausted):
                    break
                continue

            if not path or not os.path.exists(path):
                last_error = ResourceExhausted("download produced no file (likely over size cap)")
                continue

            size = os.path.getsize(path)
            if size == 0:
                last_error = UpstreamUnavailable("downloaded file is empty")
                continue

            mime_type = mimetypes.guess_type(path)[0] or "video/mp4"
            log_event(
                _logger,
                logging.INFO,
                "Media downloaded",
                event_type="download_success",
                metadata={"reference_id": reference_id, "bytes": size, "mime_type": mime_type},
            )
            return DownloadedMedia(
                path=path,
                duration_seconds=info.get("duration"),
                file_size=size,
                format=info.get("ext") or os.path.splitext(path)[1].lstrip("."),
                mime_type=mime_type,
            )

        raise last_error or ResourceExhausted("no downloadable format")

    def cleanup(self, media: DownloadedMedia) -> None:
        shutil.rmtree(os.path.dirname(media.path), ignore_errors=True)
