from __future__ import annotations

import logging
import shutil
import sys

from clipsheet.errors import ToolNotFoundError

logger = logging.getLogger(__name__)

_INSTALL_HINTS = {
    "win32": "winget install ffmpeg",
    "darwin": "brew install ffmpeg",
    "linux": "apt install ffmpeg",
}


def ensure_tools(ffmpeg_path: str = "ffmpeg") -> str:
    """Resolve the ffmpeg executable or fail before any job is scheduled."""

    resolved = shutil.which(ffmpeg_path)
    if resolved is None:
        hint = _INSTALL_HINTS.get(sys.platform)
        suggestion = f" Try: {hint}" if hint else ""
        raise ToolNotFoundError(
            f"ffmpeg executable {ffmpeg_path!r} was not found. Install FFmpeg so it is available on PATH.{suggestion}"
        )
    logger.debug("Using ffmpeg at %s", resolved)
    return resolved
