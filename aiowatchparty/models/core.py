"""Core messages for the watch party protocol.

This module contains the shared playback snapshot and the messages that carry it
between viewers. Every message has a ``type``, a primitive ``message`` string and
an optional ``payload`` holding a JSON-encoded :class:`SessionState`.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, field
from typing import Literal

from mashumaro import field_options
from mashumaro.config import BaseConfig
from mashumaro.mixins.orjson import DataClassORJSONMixin

from .types import Message, PlaybackStatus


def wall_clock_ms() -> int:
    """Return the wall-clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)


@dataclass
class SessionState(DataClassORJSONMixin):
    """Canonical playback snapshot shared by all viewers."""

    time: float = 0.0
    """Playback position in seconds, captured at ``anchor``."""
    anchor: int = 0
    """Wall-clock instant in milliseconds since the epoch at which ``time`` was captured."""
    video_id: str = field(default="", metadata=field_options(alias="videoId"))
    """Identifier of the video on the hosting platform."""
    status: PlaybackStatus = PlaybackStatus.PAUSED
    """Playback status at ``anchor``."""

    class Config(BaseConfig):
        """Config for parsing json messages."""

        serialize_by_alias = True

    def position_at(self, now_ms: int) -> float:
        """
        Return the playback position extrapolated to ``now_ms``.

        Only a playing session advances. A snapshot that was never captured
        (``anchor == 0``) does not advance either.
        """
        if self.status is not PlaybackStatus.PLAYING or self.anchor == 0:
            return self.time
        return self.time + (now_ms - self.anchor) / 1000


@dataclass
class LoadUrlMessage(Message):
    """Message sent when a viewer loads a new video."""

    message: str = ""
    """Id of the loaded video."""
    payload: SessionState | None = None
    """Fresh session for the loaded video."""
    type: Literal["loadUrl"] = "loadUrl"


@dataclass
class PlayMessage(Message):
    """Message sent when a viewer resumes playback."""

    message: str = ""
    """Current position of the sender as text (informational)."""
    payload: SessionState | None = None
    type: Literal["play"] = "play"


@dataclass
class PauseMessage(Message):
    """Message sent when a viewer pauses playback."""

    message: str = ""
    """Current position of the sender as text (informational)."""
    payload: SessionState | None = None
    type: Literal["pause"] = "pause"


@dataclass
class SeekMessage(Message):
    """Message sent when a viewer seeks."""

    message: str = ""
    """Target position in elapsed seconds as text."""
    payload: SessionState | None = None
    type: Literal["seek"] = "seek"

    @property
    def target(self) -> float:
        """
        Return the seek target in seconds.

        Negative targets are clamped to zero. Raises ValueError if ``message`` is
        not a finite number.
        """
        value = float(self.message)
        if not math.isfinite(value):
            raise ValueError(f"Seek target is not finite: {self.message!r}")
        return max(0.0, value)


@dataclass
class ConnectedMessage(Message):
    """Message sent by the relay to greet a new viewer with the current session."""

    message: str = ""
    payload: SessionState | None = None
    type: Literal["connected"] = "connected"
