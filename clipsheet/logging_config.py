from __future__ import annotations

import logging

from clipsheet.config import LoggingSettings

DEFAULT_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(threadName)s | %(name)s | %(message)s"


def configure_logging(settings: LoggingSettings) -> None:
    """Configure process-wide logging once at startup.

    Jobs run on a thread pool, so the default format carries the thread name
    (`clipsheet-job_N`) to tell interleaved jobs apart. `logging.format`
    replaces it.
    """

    logging.basicConfig(
        level=getattr(logging, settings.level.upper(), logging.INFO),
        format=settings.format or DEFAULT_LOG_FORMAT,
        force=True,
    )
