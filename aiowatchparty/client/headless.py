"""Headless player widget driven by the event loop clock."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping

from .player import PlayerEvent, PlayerEventCallback

logger = logging.getLogger(__name__)

DEFAULT_DURATION_S = 300.0


class HeadlessPlayer:
    """
    Player widget that simulates playback without rendering anything.

    The playhead advances with the event loop clock while playing. Like an
    embedded player it starts muted, autoplays loaded videos and fires its
    callbacks asynchronously, after the command that caused them returned.
    """

    def __init__(
        self,
        *,
        durations: Mapping[str, float] | None = None,
        default_duration: float = DEFAULT_DURATION_S,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        """Create a player. ``durations`` maps video ids to their length in seconds."""
        if default_duration <= 0:
            raise ValueError("default_duration must be positive")
        self._durations = dict(durations or {})
        self._default_duration = default_duration
        self._loop = loop
        self._listener: PlayerEventCallback | None = None
        self._video_id: str | None = None
        self._duration = 0.0
        self._position = 0.0
        self._started_at: float | None = None
        self._muted = True
        self._end_handle: asyncio.TimerHandle | None = None

    @property
    def video_id(self) -> str | None:
        """Return the id of the loaded video."""
        return self._video_id

    @property
    def playing(self) -> bool:
        """Return True while the playhead advances."""
        return self._started_at is not None

    def set_event_listener(self, callback: PlayerEventCallback | None) -> None:
        """Register the callback receiving widget events."""
        self._listener = callback

    def load_video_by_id(self, video_id: str) -> None:
        """Load ``video_id`` and start playing it from the beginning."""
        logger.debug("Headless player loading %s", video_id)
        self._cancel_end()
        self._video_id = video_id
        self._duration = self._durations.get(video_id, self._default_duration)
        self._position = 0.0
        self._started_at = None
        self._emit(PlayerEvent.READY)
        self._start()

    def play_video(self) -> None:
        """Resume playback, restarting an ended video."""
        if self._video_id is None or self.playing:
            return
        if self._position >= self._duration:
            self._position = 0.0
        self._start()

    def pause_video(self) -> None:
        """Pause playback."""
        if not self.playing:
            return
        self._position = self.get_current_time()
        self._started_at = None
        self._cancel_end()
        self._emit(PlayerEvent.USER_PAUSE)

    def seek_to(self, seconds: float, allow_seek_ahead: bool) -> None:
        """Move the playhead, keeping the current play state."""
        if self._video_id is None:
            return
        self._position = min(max(seconds, 0.0), self._duration)
        if self.playing:
            self._started_at = self._get_loop().time()
            self._schedule_end()

    def get_current_time(self) -> float:
        """Return the playhead position in seconds."""
        if self._started_at is None:
            return self._position
        elapsed = self._get_loop().time() - self._started_at
        return min(self._position + elapsed, self._duration)

    def get_duration(self) -> float:
        """Return the length of the loaded video, 0 when nothing is loaded."""
        return self._duration

    def mute(self) -> None:
        """Mute audio."""
        self._muted = True

    def unmute(self) -> None:
        """Unmute audio."""
        self._muted = False

    def is_muted(self) -> bool:
        """Return True if audio is muted."""
        return self._muted

    def close(self) -> None:
        """Stop playback and drop pending timers."""
        self._cancel_end()
        self._started_at = None
        self._listener = None

    def _start(self) -> None:
        self._started_at = self._get_loop().time()
        self._schedule_end()
        self._emit(PlayerEvent.USER_PLAY)

    def _schedule_end(self) -> None:
        self._cancel_end()
        remaining = max(self._duration - self._position, 0.0)
        self._end_handle = self._get_loop().call_later(remaining, self._handle_end)

    def _cancel_end(self) -> None:
        if self._end_handle is not None:
            self._end_handle.cancel()
            self._end_handle = None

    def _handle_end(self) -> None:
        self._end_handle = None
        if not self.playing:
            return
        self._position = self._duration
        self._started_at = None
        self._emit(PlayerEvent.ENDED)

    def _emit(self, event: PlayerEvent) -> None:
        if self._listener is not None:
            self._get_loop().call_soon(self._dispatch, event)

    def _dispatch(self, event: PlayerEvent) -> None:
        if self._listener is None:
            return
        try:
            self._listener(event)
        except Exception:
            logger.exception("Error in headless player listener")

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop
