from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from clipsheet.errors import TrimError

logger = logging.getLogger(__name__)


def build_trim_command(
    ffmpeg_path: str,
    input_path: Path,
    start_time: str,
    end_time: str,
    output_path: Path,
) -> list[str]:
    return [
        ffmpeg_path,
        "-v",
        "error",
        "-y",
        "-ss",
        start_time,
        "-to",
        end_time,
        "-i",
        str(input_path),
        str(output_path),
    ]


class FfmpegTrimTool:
    """Cut one time range out of a local video with ffmpeg."""

    def __init__(self, ffmpeg_path: str = "ffmpeg") -> None:
        self.ffmpeg_path = ffmpeg_path

    def trim(self, input_path: Path, start_time: str, end_time: str, output_path: Path) -> None:
        command = build_trim_command(self.ffmpeg_path, input_path, start_time, end_time, output_path)
        logger.debug("Running %s", " ".join(command))

        try:
            subprocess.run(command, check=True, capture_output=True, text=True, errors="replace")
        except FileNotFoundError as exc:
            raise TrimError(
                "ffmpeg executable was not found. Install FFmpeg so ffmpeg is available on PATH."
            ) from exc
        except subprocess.CalledProcessError as exc:
            stderr = (exc.stderr or "").strip()
            details = f" ffmpeg stderr: {stderr.splitlines()[-1]}" if stderr else ""
            raise TrimError(
                f"ffmpeg failed to cut {start_time}-{end_time} from {input_path}.{details}"
            ) from exc
