from __future__ import annotations


class ClipsheetError(Exception):
    """Base class for every error raised by the clip pipeline."""


class MalformedLinkError(ClipsheetError, ValueError):
    """A spreadsheet link does not contain an extractable video id."""


class InvalidTimeFormatError(ClipsheetError, ValueError):
    """A time cell is not `SS`, `MM:SS` or `HH:MM:SS`."""


class SpreadsheetError(ClipsheetError, ValueError):
    """The input workbook is missing, unreadable or has unusable rows."""


class ToolNotFoundError(ClipsheetError, RuntimeError):
    """A required external executable is not available."""


class FetchError(ClipsheetError, RuntimeError):
    """Fetching metadata or media for a video failed."""


class VideoNotFoundError(FetchError):
    """A download finished but no file named after the video id appeared."""


class TrimError(ClipsheetError, RuntimeError):
    """Cutting a clip out of a source video failed."""

    def __init__(self, message: str, clip_index: int | None = None) -> None:
        super().__init__(message)
        self.clip_index = clip_index
