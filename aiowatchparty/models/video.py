"""Helpers for resolving video identifiers from user input."""

from __future__ import annotations

import re
from urllib.parse import parse_qs, urlparse

VIDEO_ID_LENGTH = 11
VIDEO_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]{11}")

_SHORT_HOSTS = {"youtu.be", "www.youtu.be"}
_PATH_PREFIXES = ("embed", "shorts", "live", "v", "e")


class InvalidVideoIdError(ValueError):
    """Raised when input does not resolve to a valid video id."""


def is_valid_video_id(value: str) -> bool:
    """Return True if ``value`` has the 11-character id format of the host platform."""
    return VIDEO_ID_PATTERN.fullmatch(value) is not None


def parse_video_id(value: str) -> str:
    """
    Resolve a video id from a URL or a bare id.

    Supports ``watch?v=`` links, ``youtu.be`` short links and the
    ``/embed/``, ``/shorts/``, ``/live/`` and ``/v/`` path forms.

    Raises:
        InvalidVideoIdError: if no 11-character id can be found.
    """
    text = value.strip()
    if not text:
        raise InvalidVideoIdError("Empty video reference")
    if is_valid_video_id(text):
        return text

    if "://" not in text:
        text = f"https://{text}"
    url = urlparse(text)
    host = (url.hostname or "").lower()
    segments = [segment for segment in url.path.split("/") if segment]

    candidate: str | None = None
    if host in _SHORT_HOSTS:
        candidate = segments[0] if segments else None
    elif (ids := parse_qs(url.query).get("v")) is not None:
        candidate = ids[0]
    elif len(segments) >= 2 and segments[0] in _PATH_PREFIXES:
        candidate = segments[1]

    if candidate is None or not is_valid_video_id(candidate):
        raise InvalidVideoIdError(f"No valid video id in {value!r}")
    return candidate
