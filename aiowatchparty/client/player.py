"""Adapter over the embedded video player widget."""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum
from typing import Protocol

from aiowatchparty.models import Origin

from .readiness import ReadinessGate

logger = logging.getLogger(__name__)


class PlayerEvent(Enum):
    """Events fired by the player widget."""

    READY = "ready"
    """The widget loaded a video and accepts commands."""
    USER_PLAY = "play"
    """Playback started, by the viewer or as a result of a command."""
    USER_PAUSE = "pause"
    """Playback paused, by the viewer or as a result of a command."""
    ENDED = "ended"
    """Playback reached the end of the video."""


PlayerEventCallback = Callable[[PlayerEvent], None]


class PlayerWidget(Protocol):
    """Interface of an embeddable video player."""

    def load_video_by_id(self, video_id: str) -> None:
        """Load and start the video with the given id."""

    def play_video(self) -> None:
        """Resume playback."""

    def pause_video(self) -> None:
        """Pause playback."""

    def seek_to(self, seconds: float, allow_seek_ahead: bool) -> None:
        """Move the playhead to ``seconds``."""

    def get_current_time(self) -> float:
        """Return the playhead position in seconds."""

    def get_duration(self) -> float:
        """Return the duration of the loaded video in seconds."""

    def mute(self) -> None:
        """Mute audio."""

    def unmute(self) -> None:
        """Unmute audio."""

    def is_muted(self) -> bool:
        """Return True if audio is muted."""

    def set_event_listener(self, callback: PlayerEventCallback | None) -> None:
        """Register the callback receiving widget events."""


class PlaybackController:
    """
    Gate and forward commands to a player widget.

    Commands that change playback are dropped, not queued, unless both the
    transport and the widget gates are open. Widget events are forwarded to the
    registered listeners.
    """

    def __init__(self, widget: PlayerWidget, gate: ReadinessGate) -> None:
        """Wrap ``widget`` and track its readiness on ``gate``."""
        self._widget = widget
        self._gate = gate
        self._listeners: list[PlayerEventCallback] = []
        widget.set_event_listener(self._handle_widget_event)

    @property
    def ready(self) -> bool:
        """Return True if both readiness gates are open."""
        return self._gate.active

    def load(self, video_id: str) -> None:
        """
        Load a video into the widget.

        Loading is what makes the widget ready, so it is not gated. The widget
        gate closes until the widget reports ready for the new video.
        """
        logger.debug("Loading video %s", video_id)
        self._gate.set_widget_ready(False)
        self._widget.load_video_by_id(video_id)

    def play(self, origin: Origin) -> bool:
        """Resume playback. Returns False if the command was dropped."""
        if not self._accept("play", origin):
            return False
        self._widget.play_video()
        return True

    def pause(self, origin: Origin) -> bool:
        """Pause playback. Returns False if the command was dropped."""
        if not self._accept("pause", origin):
            return False
        self._widget.pause_video()
        return True

    def seek(self, seconds: float, origin: Origin) -> bool:
        """Seek to ``seconds``. Returns False if the command was dropped."""
        if not self._accept("seek", origin):
            return False
        self._widget.seek_to(seconds, True)
        return True

    def get_position(self) -> float:
        """Return the playhead position in seconds."""
        return self._widget.get_current_time()

    def get_duration(self) -> float:
        """Return the duration of the loaded video in seconds."""
        return self._widget.get_duration()

    def mute(self) -> None:
        """Mute audio."""
        self._widget.mute()

    def unmute(self) -> None:
        """Unmute audio."""
        self._widget.unmute()

    def is_muted(self) -> bool:
        """Return True if audio is muted."""
        return self._widget.is_muted()

    def add_event_listener(self, callback: PlayerEventCallback) -> Callable[[], None]:
        """Register a callback for widget events. Returns a function to remove it."""
        self._listeners.append(callback)
        return lambda: self._listeners.remove(callback)

    def detach(self) -> None:
        """Stop receiving widget events."""
        self._widget.set_event_listener(None)
        self._listeners.clear()

    def _accept(self, command: str, origin: Origin) -> bool:
        if not self._gate.active:
            logger.debug(
                "Dropping %s command (%s), readiness is %s",
                command,
                origin.value,
                self._gate.state.value,
            )
            return False
        logger.debug("Issuing %s command (%s)", command, origin.value)
        return True

    def _handle_widget_event(self, event: PlayerEvent) -> None:
        if event is PlayerEvent.READY:
            self._gate.set_widget_ready(True)
        for callback in self._listeners:
            try:
                callback(event)
            except Exception:
                logger.exception("Error in player event callback %s", callback)
