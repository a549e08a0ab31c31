from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from types import MappingProxyType
from typing import Any

from clipsheet.clip.executor import TrimTool, process_video
from clipsheet.errors import ClipsheetError, TrimError
from clipsheet.fetch.fetcher import FetchTool, fetch_video
from clipsheet.models import FAILED_STATES, TERMINAL_STATES, JobResult, JobState, VideoGroup

logger = logging.getLogger(__name__)

DEFAULT_WORKERS = 4

EventCallback = Callable[[str, str], None]


def order_video_ids(groups: Mapping[str, VideoGroup], cache_index: Mapping[str, Path]) -> list[str]:
    """Cached videos first, then uncached, each in their original order."""

    cached = [video_id for video_id in groups if video_id in cache_index]
    uncached = [video_id for video_id in groups if video_id not in cache_index]
    return cached + uncached


def run_job(
    group: VideoGroup,
    cache_index: Mapping[str, Path],
    *,
    fetch_tool: FetchTool,
    trim_tool: TrimTool,
    cache_dir: str | Path,
    output_root: str | Path,
    on_event: EventCallback | None = None,
) -> JobResult:
    """Fetch one video and cut its clips; failures end the job, not the run."""

    video_id = group.video_id
    result = JobResult(video_id=video_id, clip_count=len(group.clips))

    def emit(message: str) -> None:
        if on_event is not None:
            on_event(video_id, message)

    result.state = JobState.FETCHING
    try:
        video = fetch_video(video_id, cache_index, fetch_tool, cache_dir)
    except (ClipsheetError, OSError) as exc:
        result.state = JobState.FETCH_FAILED
        result.error = str(exc)
        result.failed_row = group.clips[0].row_number
        logger.error("Fetch failed for %s (first row %s): %s", video_id, result.failed_row, exc)
        emit(f"fetch failed: {exc}")
        return result
    except Exception as exc:
        result.state = JobState.FETCH_FAILED
        result.error = str(exc) or type(exc).__name__
        result.failed_row = group.clips[0].row_number
        logger.exception("Unexpected error fetching %s (first row %s)", video_id, result.failed_row)
        emit(f"fetch failed: {result.error}")
        return result

    result.state = JobState.FETCHED
    result.title = video.title
    emit(f"{'cached' if video.cached else 'downloaded'}: {video.title}")

    result.state = JobState.CLIPPING
    try:
        produced = process_video(
            video,
            group.clips,
            output_root,
            trim_tool,
            on_clip=lambda index, path: result.produced.append(path),
        )
    except (ClipsheetError, OSError) as exc:
        result.state = JobState.CLIP_FAILED
        result.error = str(exc)
        result.produced.clear()
        if isinstance(exc, TrimError) and exc.clip_index is not None:
            result.failed_clip_index = exc.clip_index
            result.failed_row = group.clips[exc.clip_index - 1].row_number
        logger.error(
            "Clipping failed for %s at clip #%s (row %s): %s",
            video_id,
            result.failed_clip_index,
            result.failed_row,
            exc,
        )
        emit(f"clip #{result.failed_clip_index} failed: {exc}")
        return result
    except Exception as exc:
        result.state = JobState.CLIP_FAILED
        result.error = str(exc) or type(exc).__name__
        result.produced.clear()
        logger.exception("Unexpected error clipping %s", video_id)
        emit(f"clipping failed: {result.error}")
        return result

    if produced is None:
        result.state = JobState.SKIPPED
        emit("output directory exists, skipped")
        return result

    result.state = JobState.DONE
    emit(f"done, {len(produced)} clips")
    return result


def run_jobs(
    groups: Mapping[str, VideoGroup],
    cache_index: Mapping[str, Path],
    *,
    fetch_tool: FetchTool,
    trim_tool: TrimTool,
    cache_dir: str | Path,
    output_root: str | Path,
    workers: int = DEFAULT_WORKERS,
    on_event: EventCallback | None = None,
) -> list[JobResult]:
    """Run one job per video on a fixed-size pool and wait for all of them.

    Jobs are submitted cached-first; the pool's FIFO queue keeps that order
    for job start. Results come back in submission order.
    """

    if workers < 1:
        raise ValueError(f"workers must be at least 1, got {workers}")

    snapshot = MappingProxyType(dict(cache_index))
    ordered_ids = order_video_ids(groups, snapshot)
    logger.info("Dispatching %d jobs on %d workers", len(ordered_ids), workers)

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="clipsheet-job") as pool:
        futures = [
            pool.submit(
                run_job,
                groups[video_id],
                snapshot,
                fetch_tool=fetch_tool,
                trim_tool=trim_tool,
                cache_dir=cache_dir,
                output_root=output_root,
                on_event=on_event,
            )
            for video_id in ordered_ids
        ]
        return [future.result() for future in futures]


def summarize_results(results: list[JobResult]) -> dict[str, Any]:
    counts = {state.value: 0 for state in JobState if state in TERMINAL_STATES}
    for result in results:
        counts[result.state.value] = counts.get(result.state.value, 0) + 1

    failures = [
        {
            "video_id": result.video_id,
            "stage": result.state.value,
            "clip_index": result.failed_clip_index,
            "row": result.failed_row,
            "error": result.error,
        }
        for result in results
        if result.state in FAILED_STATES
    ]
    return {
        "job_count": len(results),
        "clip_count": sum(len(result.produced) for result in results),
        "states": counts,
        "failures": failures,
    }
