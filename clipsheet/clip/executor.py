from __future__ import annotations

import logging
import shutil
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Protocol

from clipsheet.errors import TrimError
from clipsheet.models import ClipRequest, FetchedVideo

logger = logging.getLogger(__name__)

ClipCallback = Callable[[int, Path], None]


class TrimTool(Protocol):
    def trim(self, input_path: Path, start_time: str, end_time: str, output_path: Path) -> None: ...


def clip_output_path(output_root: str | Path, video_id: str, index: int) -> Path:
    return Path(output_root) / video_id / f"{video_id} [{index}].mp4"


def process_video(
    video: FetchedVideo,
    clips: Sequence[ClipRequest],
    output_root: str | Path,
    trim_tool: TrimTool,
    *,
    on_clip: ClipCallback | None = None,
) -> list[Path] | None:
    """Cut every requested clip of one video into its own output directory.

    The per-video directory doubles as the done marker: it is created
    atomically, and if it already exists nothing is produced and None is
    returned. Clips are cut in request order; the first failure raises
    TrimError and the remaining clips are not attempted. A failed video's
    directory is removed again so the next run retries it instead of
    skipping it.
    """

    video_dir = Path(output_root) / video.video_id
    video_dir.parent.mkdir(parents=True, exist_ok=True)
    try:
        video_dir.mkdir()
    except FileExistsError:
        logger.info("Output directory %s already exists; skipping %s", video_dir, video.video_id)
        return None

    logger.info("Directory created for %s clips", video.video_id)
    produced: list[Path] = []
    try:
        for index, clip in enumerate(clips, start=1):
            output_path = clip_output_path(output_root, video.video_id, index)
            logger.info("Clipping clip #%d for video: %s", index, video.title)
            try:
                trim_tool.trim(video.local_path, clip.start_time, clip.end_time, output_path)
            except TrimError as exc:
                exc.clip_index = index
                raise
            except OSError as exc:
                raise TrimError(f"Clip #{index} for {video.video_id} failed: {exc}", clip_index=index) from exc
            produced.append(output_path)
            if on_clip is not None:
                on_clip(index, output_path)
    except Exception:
        logger.warning("Removing partial output %s so a re-run retries %s", video_dir, video.video_id)
        shutil.rmtree(video_dir, ignore_errors=True)
        raise

    return produced
