from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Protocol

from clipsheet.errors import VideoNotFoundError
from clipsheet.fetch.cache_index import find_cached_file
from clipsheet.ingest.normalize import WATCH_URL_PREFIX
from clipsheet.models import FetchedVideo, VideoMetadata

logger = logging.getLogger(__name__)

OUTPUT_NAME_TEMPLATE = "%(id)s.%(ext)s"


class FetchTool(Protocol):
    def fetch_metadata(self, url: str) -> VideoMetadata: ...

    def download(self, url: str, output_dir: str | Path, output_name_template: str) -> None: ...


def video_url(video_id: str) -> str:
    return f"{WATCH_URL_PREFIX}{video_id}"


def fetch_video(
    video_id: str,
    cache_index: Mapping[str, Path],
    fetch_tool: FetchTool,
    cache_dir: str | Path,
) -> FetchedVideo:
    """Return the local copy of a video, downloading it only on a cache miss.

    A cache hit still asks the fetch tool for metadata so the title is known;
    the media itself is not fetched again. On a miss the download is named
    after the video id and the cache directory is re-scanned for it, so any
    extension chosen by the tool is accepted.
    """

    url = video_url(video_id)
    cached_path = cache_index.get(video_id)
    if cached_path is not None:
        metadata = fetch_tool.fetch_metadata(url)
        logger.info("Video already downloaded: %s (%s)", video_id, cached_path)
        return FetchedVideo(video_id=video_id, local_path=cached_path, title=metadata.title, cached=True)

    metadata = fetch_tool.fetch_metadata(url)
    logger.info("Downloading video %s: %s", video_id, metadata.title)
    fetch_tool.download(url, cache_dir, OUTPUT_NAME_TEMPLATE)

    local_path = find_cached_file(cache_dir, video_id)
    if local_path is None:
        raise VideoNotFoundError(f"No file named {video_id}.* in {cache_dir} after download.")

    logger.info("Downloaded video %s to %s", video_id, local_path)
    return FetchedVideo(video_id=video_id, local_path=local_path, title=metadata.title, cached=False)
