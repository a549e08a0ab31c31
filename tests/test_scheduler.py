from __future__ import annotations

import threading
from pathlib import Path

import pytest

from clipsheet.ingest.grouping import build_groups
from clipsheet.models import JobState, VideoMetadata
from clipsheet.scheduler import order_video_ids, run_job, run_jobs, summarize_results
from tests.fakes import FakeFetchTool, FakeTrimTool


def _groups(*video_ids: str):
    return build_groups([("1", "2", f"https://youtu.be/{video_id}") for video_id in video_ids])


def test_order_video_ids_puts_cached_first() -> None:
    groups = _groups("A", "B", "C")

    assert order_video_ids(groups, {"B": Path("cache/B.mp4")}) == ["B", "A", "C"]


def test_order_video_ids_keeps_relative_order_within_partitions() -> None:
    groups = _groups("A", "B", "C", "D")

    assert order_video_ids(groups, {"D": Path("d"), "B": Path("b")}) == ["B", "D", "A", "C"]


def test_run_jobs_submits_cached_jobs_before_uncached(tmp_path: Path) -> None:
    class _RecordingFetchTool(FakeFetchTool):
        def __init__(self) -> None:
            super().__init__()
            self.order: list[str] = []

        def fetch_metadata(self, url: str) -> VideoMetadata:
            self.order.append(url.split("v=", 1)[1])
            return super().fetch_metadata(url)

    cache_dir = tmp_path / "cache"
    cache_dir.mkdir()
    (cache_dir / "B.mp4").write_bytes(b"b")
    tool = _RecordingFetchTool()

    results = run_jobs(
        _groups("A", "B", "C"),
        {"B": cache_dir / "B.mp4"},
        fetch_tool=tool,
        trim_tool=FakeTrimTool(),
        cache_dir=cache_dir,
        output_root=tmp_path / "video",
        workers=1,
    )

    assert tool.order == ["B", "A", "C"]
    assert [result.video_id for result in results] == ["B", "A", "C"]
    assert [download[0] for download in tool.download_calls] == ["A", "C"]


def test_run_jobs_isolates_fetch_failure(tmp_path: Path) -> None:
    fetch_tool = FakeFetchTool(failing_ids={"B"})
    trim_tool = FakeTrimTool()

    results = run_jobs(
        _groups("A", "B", "C"),
        {},
        fetch_tool=fetch_tool,
        trim_tool=trim_tool,
        cache_dir=tmp_path / "cache",
        output_root=tmp_path / "video",
        workers=4,
    )

    states = {result.video_id: result.state for result in results}
    assert states == {"A": JobState.DONE, "B": JobState.FETCH_FAILED, "C": JobState.DONE}
    assert (tmp_path / "video" / "A" / "A [1].mp4").exists()
    assert (tmp_path / "video" / "C" / "C [1].mp4").exists()
    assert not (tmp_path / "video" / "B").exists()

    failed = next(result for result in results if result.video_id == "B")
    assert failed.failed_row == 2
    assert "unavailable" in (failed.error or "")


def test_run_jobs_limits_concurrency_to_pool_size(tmp_path: Path) -> None:
    active = 0
    peak = 0
    lock = threading.Lock()

    class _SlowFetchTool(FakeFetchTool):
        def fetch_metadata(self, url: str) -> VideoMetadata:
            nonlocal active, peak
            with lock:
                active += 1
                peak = max(peak, active)
            threading.Event().wait(0.02)
            with lock:
                active -= 1
            return super().fetch_metadata(url)

    results = run_jobs(
        _groups(*[f"V{index}" for index in range(8)]),
        {},
        fetch_tool=_SlowFetchTool(),
        trim_tool=FakeTrimTool(),
        cache_dir=tmp_path / "cache",
        output_root=tmp_path / "video",
        workers=2,
    )

    assert len(results) == 8
    assert peak <= 2


def test_run_jobs_rejects_empty_pool(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="workers"):
        run_jobs(
            _groups("A"),
            {},
            fetch_tool=FakeFetchTool(),
            trim_tool=FakeTrimTool(),
            cache_dir=tmp_path,
            output_root=tmp_path,
            workers=0,
        )


def test_run_job_skips_existing_output(tmp_path: Path, fetch_tool: FakeFetchTool, trim_tool: FakeTrimTool) -> None:
    (tmp_path / "video" / "A").mkdir(parents=True)
    events: list[tuple[str, str]] = []

    result = run_job(
        _groups("A")["A"],
        {},
        fetch_tool=fetch_tool,
        trim_tool=trim_tool,
        cache_dir=tmp_path / "cache",
        output_root=tmp_path / "video",
        on_event=lambda video_id, message: events.append((video_id, message)),
    )

    assert result.state is JobState.SKIPPED
    assert trim_tool.calls == []
    assert result.produced == []
    assert events[-1] == ("A", "output directory exists, skipped")


def test_run_job_records_failed_clip(tmp_path: Path, fetch_tool: FakeFetchTool) -> None:
    rows = [("1", "2", "https://youtu.be/A"), ("3", "4", "https://youtu.be/A"), ("5", "6", "https://youtu.be/A")]
    group = build_groups(rows)["A"]
    trim_tool = FakeTrimTool(failing_outputs={"A [2].mp4"})

    result = run_job(
        group,
        {},
        fetch_tool=fetch_tool,
        trim_tool=trim_tool,
        cache_dir=tmp_path / "cache",
        output_root=tmp_path / "video",
    )

    assert result.state is JobState.CLIP_FAILED
    assert result.failed_clip_index == 2
    assert result.failed_row == 2
    assert result.produced == []
    assert len(trim_tool.calls) == 2
    assert not (tmp_path / "video" / "A").exists()


def test_summarize_results_counts_states(tmp_path: Path) -> None:
    results = run_jobs(
        _groups("A", "B"),
        {},
        fetch_tool=FakeFetchTool(failing_ids={"A"}),
        trim_tool=FakeTrimTool(),
        cache_dir=tmp_path / "cache",
        output_root=tmp_path / "video",
    )

    summary = summarize_results(results)

    assert summary["job_count"] == 2
    assert summary["clip_count"] == 1
    assert summary["states"]["done"] == 1
    assert summary["states"]["fetch_failed"] == 1
    assert summary["states"]["skipped"] == 0
    assert summary["failures"][0]["video_id"] == "A"
    assert summary["failures"][0]["stage"] == "fetch_failed"


def test_run_jobs_isolates_unexpected_fetch_exception(tmp_path: Path) -> None:
    class _BrokenFetchTool(FakeFetchTool):
        def fetch_metadata(self, url: str) -> VideoMetadata:
            if url.endswith("v=B"):
                raise KeyError("title")
            return super().fetch_metadata(url)

    results = run_jobs(
        _groups("A", "B", "C"),
        {},
        fetch_tool=_BrokenFetchTool(),
        trim_tool=FakeTrimTool(),
        cache_dir=tmp_path / "cache",
        output_root=tmp_path / "video",
        workers=2,
    )

    states = {result.video_id: result.state for result in results}
    assert states == {"A": JobState.DONE, "B": JobState.FETCH_FAILED, "C": JobState.DONE}
    failed = next(result for result in results if result.video_id == "B")
    assert "title" in (failed.error or "")
    assert failed.failed_row == 2


def test_run_job_unexpected_trim_exception_is_clip_failure(tmp_path: Path, fetch_tool: FakeFetchTool) -> None:
    class _BrokenTrimTool(FakeTrimTool):
        def trim(self, input_path: Path, start_time: str, end_time: str, output_path: Path) -> None:
            raise UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")

    result = run_job(
        _groups("A")["A"],
        {},
        fetch_tool=fetch_tool,
        trim_tool=_BrokenTrimTool(),
        cache_dir=tmp_path / "cache",
        output_root=tmp_path / "video",
    )

    assert result.state is JobState.CLIP_FAILED
    assert "invalid start byte" in (result.error or "")
    assert not (tmp_path / "video" / "A").exists()


def test_run_job_retries_after_clip_failure(tmp_path: Path, fetch_tool: FakeFetchTool) -> None:
    group = _groups("A")["A"]
    options = {
        "fetch_tool": fetch_tool,
        "cache_dir": tmp_path / "cache",
        "output_root": tmp_path / "video",
    }

    first = run_job(group, {}, trim_tool=FakeTrimTool(failing_outputs={"A [1].mp4"}), **options)
    retry_tool = FakeTrimTool()
    second = run_job(group, {}, trim_tool=retry_tool, **options)

    assert first.state is JobState.CLIP_FAILED
    assert second.state is JobState.DONE
    assert len(retry_tool.calls) == 1
    assert (tmp_path / "video" / "A" / "A [1].mp4").exists()
