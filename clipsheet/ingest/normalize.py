from __future__ import annotations

import re
from urllib.parse import parse_qs, urlparse

from clipsheet.errors import InvalidTimeFormatError, MalformedLinkError

WATCH_URL_PREFIX = "https://www.youtube.com/watch?v="

_SHORT_HOSTS = {"youtu.be"}
_LONG_HOSTS = {"youtube.com", "music.youtube.com"}
_PATH_ID_PREFIXES = ("/live/", "/shorts/", "/embed/")
_VIDEO_ID_RE = re.compile(r"^[A-Za-z0-9_-]+$")
_SECONDS_SEGMENT_RE = re.compile(r"^(\d+)(\.\d+)?$")


def normalize_link(raw: str) -> str:
    """Reduce any accepted link shape to `https://www.youtube.com/watch?v=<id>`.

    Accepted shapes: watch URLs (extra query parameters such as `list` and
    `index` are dropped), `youtu.be/<id>` short links and `/live/<id>` URLs,
    with or without scheme, `www.` or `m.` prefixes.
    """

    text = raw.strip()
    if not text:
        raise MalformedLinkError("Empty link.")
    if "://" not in text:
        text = f"https://{text}"

    parsed = urlparse(text)
    host = parsed.netloc.lower()
    for prefix in ("www.", "m."):
        if host.startswith(prefix):
            host = host[len(prefix) :]

    video_id = ""
    if host in _SHORT_HOSTS:
        video_id = parsed.path.strip("/").split("/", 1)[0]
    elif host in _LONG_HOSTS:
        if parsed.path.rstrip("/") == "/watch":
            video_id = parse_qs(parsed.query).get("v", [""])[0]
        else:
            for prefix in _PATH_ID_PREFIXES:
                if parsed.path.startswith(prefix):
                    video_id = parsed.path[len(prefix) :].strip("/").split("/", 1)[0]
                    break
    elif "v=" in text:
        video_id = text.split("v=", 1)[1].split("&", 1)[0].split("#", 1)[0]

    if not video_id or not _VIDEO_ID_RE.match(video_id):
        raise MalformedLinkError(f"No video id found in link: {raw!r}")
    return f"{WATCH_URL_PREFIX}{video_id}"


def extract_video_id(raw: str) -> str:
    canonical = normalize_link(raw)
    return canonical.split("v=", 1)[1]


def normalize_time(raw: str) -> str:
    """Zero-pad `SS`, `MM:SS` or `HH:MM:SS` into `HH:MM:SS`.

    Values are not range-checked: `"99:00"` becomes `"00:99:00"` and is left
    for ffmpeg to accept or reject.
    """

    text = str(raw).strip()
    segments = text.split(":") if text else []
    if not 1 <= len(segments) <= 3:
        raise InvalidTimeFormatError(f"Invalid time format: {raw!r}")

    *whole_segments, seconds_segment = segments
    padded: list[str] = []
    for segment in whole_segments:
        if not segment.isdigit():
            raise InvalidTimeFormatError(f"Invalid time format: {raw!r}")
        padded.append(segment.zfill(2))

    match = _SECONDS_SEGMENT_RE.match(seconds_segment)
    if not match:
        raise InvalidTimeFormatError(f"Invalid time format: {raw!r}")
    padded.append(match.group(1).zfill(2) + (match.group(2) or ""))

    while len(padded) < 3:
        padded.insert(0, "00")
    return ":".join(padded)
