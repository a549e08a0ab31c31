from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


@dataclass(frozen=True, slots=True)
class ClipRequest:
    """One time range to cut out of a source video."""

    video_id: str
    start_time: str
    end_time: str
    row_number: int | None = None


@dataclass(frozen=True, slots=True)
class VideoGroup:
    """All clip requests for one video, in spreadsheet row order."""

    video_id: str
    clips: tuple[ClipRequest, ...]

    def __post_init__(self) -> None:
        if not self.clips:
            raise ValueError(f"Video group {self.video_id} has no clip requests.")
        for clip in self.clips:
            if clip.video_id != self.video_id:
                raise ValueError(
                    f"Clip for {clip.video_id} does not belong to video group {self.video_id}."
                )


@dataclass(frozen=True, slots=True)
class VideoMetadata:
    video_id: str
    title: str


@dataclass(frozen=True, slots=True)
class FetchedVideo:
    """A source video available on local disk."""

    video_id: str
    local_path: Path
    title: str
    cached: bool = False


class JobState(Enum):
    PENDING = "pending"
    FETCHING = "fetching"
    FETCH_FAILED = "fetch_failed"
    FETCHED = "fetched"
    CLIPPING = "clipping"
    CLIP_FAILED = "clip_failed"
    DONE = "done"
    SKIPPED = "skipped"


FAILED_STATES = frozenset({JobState.FETCH_FAILED, JobState.CLIP_FAILED})
TERMINAL_STATES = FAILED_STATES | {JobState.DONE, JobState.SKIPPED}


@dataclass(slots=True)
class JobResult:
    """Outcome of one download-then-clip job."""

    video_id: str
    state: JobState = JobState.PENDING
    clip_count: int = 0
    title: str | None = None
    produced: list[Path] = field(default_factory=list)
    error: str | None = None
    failed_clip_index: int | None = None
    failed_row: int | None = None

    @property
    def failed(self) -> bool:
        return self.state in FAILED_STATES
