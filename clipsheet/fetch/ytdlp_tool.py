from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from yt_dlp import YoutubeDL
from yt_dlp.utils import YoutubeDLError

from clipsheet.errors import FetchError
from clipsheet.models import VideoMetadata

logger = logging.getLogger(__name__)


class YtDlpFetchTool:
    """Metadata lookup and full-video download through the yt-dlp library."""

    def __init__(self, *, format_selector: str | None = None, quiet: bool = True) -> None:
        self.format_selector = format_selector
        self.quiet = quiet

    def fetch_metadata(self, url: str) -> VideoMetadata:
        options = self._base_options()
        options["skip_download"] = True
        try:
            with YoutubeDL(options) as ydl:
                info = ydl.extract_info(url, download=False)
        except YoutubeDLError as exc:
            raise FetchError(f"yt-dlp could not read metadata for {url}: {_first_line(exc)}") from exc

        if not info:
            raise FetchError(f"yt-dlp returned no metadata for {url}")
        return _metadata_from_info(info)

    def download(self, url: str, output_dir: str | Path, output_name_template: str) -> None:
        target_dir = Path(output_dir)
        target_dir.mkdir(parents=True, exist_ok=True)
        options = self._base_options()
        options["outtmpl"] = str(target_dir / output_name_template)
        if self.format_selector:
            options["format"] = self.format_selector

        try:
            with YoutubeDL(options) as ydl:
                retcode = ydl.download([url])
        except YoutubeDLError as exc:
            raise FetchError(f"yt-dlp failed to download {url}: {_first_line(exc)}") from exc

        if retcode:
            raise FetchError(f"yt-dlp failed to download {url} (exit code {retcode})")

    def _base_options(self) -> dict[str, Any]:
        return {
            "noplaylist": True,
            "quiet": self.quiet,
            "no_warnings": self.quiet,
            "noprogress": True,
            "no_color": True,
            "logger": logger,
        }


def _metadata_from_info(info: dict[str, Any]) -> VideoMetadata:
    if info.get("entries"):
        info = info["entries"][0]
    video_id = str(info.get("id") or "")
    if not video_id:
        raise FetchError("yt-dlp metadata is missing the video id.")
    title = str(info.get("title") or video_id)
    return VideoMetadata(video_id=video_id, title=title)


def _first_line(exc: Exception) -> str:
    text = str(exc).strip()
    if not text:
        return exc.__class__.__name__
    return text.splitlines()[0].replace("ERROR: ", "")
