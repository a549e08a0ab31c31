from __future__ import annotations

import json
import logging
from pathlib import Path
from time import perf_counter
from typing import Any, Callable, TypeVar

import typer
import yaml

from clipsheet.clip.executor import clip_output_path
from clipsheet.clip.ffmpeg_trim import FfmpegTrimTool
from clipsheet.config import Settings, load_settings
from clipsheet.fetch.cache_index import scan_cache
from clipsheet.fetch.ytdlp_tool import YtDlpFetchTool
from clipsheet.ingest.grouping import build_groups
from clipsheet.ingest.spreadsheet import read_rows, resolve_sheet_path
from clipsheet.logging_config import configure_logging
from clipsheet.models import JobResult, VideoGroup
from clipsheet.scheduler import order_video_ids, run_jobs, summarize_results
from clipsheet.tools import ensure_tools

app = typer.Typer(help="Cut video clips listed in a spreadsheet of (start, end, link) rows.")
config_app = typer.Typer(help="Configuration commands.")

app.add_typer(config_app, name="config")

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CONFIG_OPTION = typer.Option(
    Path("configs/default.yaml"),
    "--config",
    "-c",
    envvar="CLIPSHEET_CONFIG",
    help="Path to YAML configuration file.",
)


def _run_with_progress(step_index: int, total_steps: int, label: str, work: Callable[[], T]) -> T:
    typer.echo(f"[{step_index}/{total_steps}] {label}...", err=True)
    started_at = perf_counter()
    try:
        result = work()
    except Exception:
        elapsed = perf_counter() - started_at
        typer.echo(f"[{step_index}/{total_steps}] {label} failed after {elapsed:.1f}s", err=True)
        raise
    elapsed = perf_counter() - started_at
    typer.echo(f"[{step_index}/{total_steps}] {label} done in {elapsed:.1f}s", err=True)
    return result


def _bootstrap(config_path: Path) -> Settings:
    settings = load_settings(config_path)
    configure_logging(settings.logging)
    logger.debug("Loaded runtime settings from %s", config_path)
    return settings


def _bootstrap_or_exit(config_path: Path) -> Settings:
    try:
        return _bootstrap(config_path)
    except (ValueError, OSError, yaml.YAMLError) as exc:
        logger.error("Cannot load configuration from %s: %s", config_path, exc)
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


def _organize(sheet: str, settings: Settings) -> tuple[Path, dict[str, VideoGroup]]:
    sheet_path = resolve_sheet_path(sheet, settings.pipeline.sheet_dir)
    rows = read_rows(sheet_path, settings.pipeline.sheet_name)
    return sheet_path, build_groups(rows)


def _echo_event(video_id: str, message: str) -> None:
    typer.echo(f"[{video_id}] {message}", err=True)


@config_app.command("show")
def show_config(config_path: Path = _CONFIG_OPTION) -> None:
    """Print resolved runtime configuration."""

    settings = _bootstrap_or_exit(config_path)
    typer.echo(json.dumps(settings.model_dump(mode="json"), indent=2))


@app.command("run")
def run_sheet(
    sheet: str = typer.Argument(..., help="Spreadsheet name without the .xlsx extension."),
    config_path: Path = _CONFIG_OPTION,
    workers: int | None = typer.Option(None, min=1, help="Concurrent video jobs. Defaults to pipeline.workers."),
    cache_dir: Path | None = typer.Option(None, help="Directory of downloaded source videos."),
    output_dir: Path | None = typer.Option(None, "--output-dir", "-o", help="Root directory for clip folders."),
    fail_on_job_error: bool | None = typer.Option(
        None,
        "--fail-on-job-error/--no-fail-on-job-error",
        help="Exit with code 1 when any video job fails. Defaults to run.fail_on_job_error.",
    ),
) -> None:
    """Fetch every video in the sheet once and cut all requested clips."""

    settings = _bootstrap_or_exit(config_path)
    resolved_workers = workers or settings.pipeline.workers
    resolved_cache_dir = Path(cache_dir or settings.pipeline.cache_dir).expanduser()
    resolved_output_dir = Path(output_dir or settings.pipeline.output_dir).expanduser()
    if fail_on_job_error is None:
        fail_on_job_error = settings.run.fail_on_job_error

    total_steps = 4

    try:
        ffmpeg_path = _run_with_progress(
            1,
            total_steps,
            "Check tools",
            lambda: ensure_tools(settings.tools.ffmpeg_path),
        )
        sheet_path, groups = _run_with_progress(
            2,
            total_steps,
            "Organize videos",
            lambda: _organize(sheet, settings),
        )

        resolved_cache_dir.mkdir(parents=True, exist_ok=True)
        resolved_output_dir.mkdir(parents=True, exist_ok=True)
        cache_index = _run_with_progress(3, total_steps, "Scan cache", lambda: scan_cache(resolved_cache_dir))

        fetch_tool = YtDlpFetchTool(
            format_selector=settings.tools.ytdlp_format,
            quiet=settings.tools.ytdlp_quiet,
        )
        trim_tool = FfmpegTrimTool(ffmpeg_path=ffmpeg_path)
        results = _run_with_progress(
            4,
            total_steps,
            "Process videos",
            lambda: run_jobs(
                groups,
                cache_index,
                fetch_tool=fetch_tool,
                trim_tool=trim_tool,
                cache_dir=resolved_cache_dir,
                output_root=resolved_output_dir,
                workers=resolved_workers,
                on_event=_echo_event,
            ),
        )
    except (RuntimeError, ValueError, OSError) as exc:
        logger.error("Run failed: %s", exc)
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    summary = summarize_results(results)
    typer.echo(
        json.dumps(
            {
                "status": "ok" if not summary["failures"] else "partial",
                "sheet": str(sheet_path),
                "cache_dir": str(resolved_cache_dir),
                "output_dir": str(resolved_output_dir),
                **summary,
                "jobs": [_job_payload(result) for result in results],
            },
            indent=2,
        )
    )

    if summary["failures"] and fail_on_job_error:
        raise typer.Exit(code=1)


@app.command("plan")
def plan_sheet(
    sheet: str = typer.Argument(..., help="Spreadsheet name without the .xlsx extension."),
    config_path: Path = _CONFIG_OPTION,
    cache_dir: Path | None = typer.Option(None, help="Directory of downloaded source videos."),
    output_dir: Path | None = typer.Option(None, "--output-dir", "-o", help="Root directory for clip folders."),
) -> None:
    """Show dispatch order and clip outputs without fetching or cutting anything."""

    settings = _bootstrap_or_exit(config_path)
    resolved_cache_dir = Path(cache_dir or settings.pipeline.cache_dir).expanduser()
    resolved_output_dir = Path(output_dir or settings.pipeline.output_dir).expanduser()

    try:
        sheet_path, groups = _organize(sheet, settings)
    except (RuntimeError, ValueError, OSError) as exc:
        logger.error("Plan failed: %s", exc)
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    cache_index = scan_cache(resolved_cache_dir)
    videos: list[dict[str, Any]] = []
    for video_id in order_video_ids(groups, cache_index):
        cached_path = cache_index.get(video_id)
        videos.append(
            {
                "video_id": video_id,
                "cached": cached_path is not None,
                "cache_path": str(cached_path) if cached_path else None,
                "output_exists": (resolved_output_dir / video_id).exists(),
                "clips": [
                    {
                        "index": index,
                        "row": clip.row_number,
                        "start_time": clip.start_time,
                        "end_time": clip.end_time,
                        "output_path": str(clip_output_path(resolved_output_dir, video_id, index)),
                    }
                    for index, clip in enumerate(groups[video_id].clips, start=1)
                ],
            }
        )

    typer.echo(json.dumps({"sheet": str(sheet_path), "video_count": len(videos), "videos": videos}, indent=2))


@app.command("cache")
def show_cache(
    config_path: Path = _CONFIG_OPTION,
    cache_dir: Path | None = typer.Option(None, help="Directory of downloaded source videos."),
) -> None:
    """Print the cache index as video id -> file path."""

    settings = _bootstrap_or_exit(config_path)
    resolved_cache_dir = Path(cache_dir or settings.pipeline.cache_dir).expanduser()
    index = scan_cache(resolved_cache_dir)
    typer.echo(json.dumps({video_id: str(path) for video_id, path in index.items()}, indent=2))


def _job_payload(result: JobResult) -> dict[str, Any]:
    return {
        "video_id": result.video_id,
        "title": result.title,
        "state": result.state.value,
        "clip_count": result.clip_count,
        "produced": [str(path) for path in result.produced],
        "error": result.error,
        "failed_clip_index": result.failed_clip_index,
        "failed_row": result.failed_row,
    }


if __name__ == "__main__":
    app()
