from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

# yt-dlp leaves these behind for interrupted or in-progress downloads.
PARTIAL_SUFFIXES = frozenset({".part", ".ytdl", ".temp"})


def scan_cache(cache_dir: str | Path) -> dict[str, Path]:
    """Index the cache directory by file stem.

    A missing or unreadable directory is a cold start and yields an empty index.
    yt-dlp names its in-progress files `<id>.<ext>.part`, whose stem is never a
    bare id, so leaving them out only keeps the index free of clutter.
    """

    root = Path(cache_dir)
    try:
        entries = sorted(root.iterdir())
    except FileNotFoundError:
        logger.info("Cache directory %s does not exist yet; starting cold.", root)
        return {}
    except OSError as exc:
        logger.warning("Cannot list cache directory %s (%s); starting cold.", root, exc)
        return {}

    index: dict[str, Path] = {}
    for path in entries:
        if path.suffix.lower() in PARTIAL_SUFFIXES:
            continue
        index[path.stem] = path

    logger.info("Found %d cached videos in %s", len(index), root)
    return index


def find_cached_file(cache_dir: str | Path, video_id: str) -> Path | None:
    root = Path(cache_dir)
    if not root.is_dir():
        return None
    for path in sorted(root.iterdir()):
        if path.stem == video_id and path.suffix.lower() not in PARTIAL_SUFFIXES:
            return path
    return None
