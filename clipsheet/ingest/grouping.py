from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from clipsheet.errors import InvalidTimeFormatError, MalformedLinkError
from clipsheet.ingest.normalize import extract_video_id, normalize_time
from clipsheet.models import ClipRequest, VideoGroup

logger = logging.getLogger(__name__)


def build_groups(rows: Iterable[Sequence[object]]) -> dict[str, VideoGroup]:
    """Group (start, end, link) rows by video id, keeping row order.

    Groups appear in the order their video id is first seen. A single
    malformed row raises and aborts grouping.
    """

    requests_by_video: dict[str, list[ClipRequest]] = {}
    for index, row in enumerate(rows, start=1):
        start_raw, end_raw, link_raw = row[0], row[1], row[2]
        row_number = getattr(row, "row_number", None) or index
        try:
            video_id = extract_video_id(str(link_raw))
            request = ClipRequest(
                video_id=video_id,
                start_time=normalize_time(str(start_raw)),
                end_time=normalize_time(str(end_raw)),
                row_number=row_number,
            )
        except MalformedLinkError as exc:
            raise MalformedLinkError(f"row {row_number}: {exc}") from exc
        except InvalidTimeFormatError as exc:
            raise InvalidTimeFormatError(f"row {row_number}: {exc}") from exc

        requests_by_video.setdefault(video_id, []).append(request)

    groups = {
        video_id: VideoGroup(video_id=video_id, clips=tuple(requests))
        for video_id, requests in requests_by_video.items()
    }
    logger.info(
        "Organized %d clip requests into %d videos",
        sum(len(group.clips) for group in groups.values()),
        len(groups),
    )
    return groups
