"""Reconciliation of local playback with the shared session.

The engine consumes three kinds of events from a single queue: messages from the
relay, events fired by the player widget and actions of the local viewer. Events
are dispatched strictly one at a time. Every player command carries an
:class:`~aiowatchparty.models.Origin`; only commands with a local origin lead to
outbound messages, which keeps two synchronized clients from echoing each
other's play and pause messages forever.
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Callable
from contextlib import suppress
from dataclasses import dataclass, replace
from enum import Enum
from typing import Protocol

from aiowatchparty.models import (
    ConnectedMessage,
    InvalidVideoIdError,
    LoadUrlMessage,
    Message,
    Origin,
    PauseMessage,
    PlaybackStatus,
    PlayMessage,
    SeekMessage,
    SessionState,
    parse_video_id,
    wall_clock_ms,
)

from .player import PlaybackController, PlayerEvent
from .readiness import ReadinessGate

logger = logging.getLogger(__name__)

DRIFT_TOLERANCE_S = 1.5
"""Largest tolerated distance between the local playhead and the session position."""
RESTART_WINDOW_S = 1.0
"""A local play this close to the end restarts the video from zero."""


def round_half_up(seconds: float) -> float:
    """Round to the nearest whole second, rounding halves up."""
    return float(math.floor(seconds + 0.5))


def format_seconds(seconds: float) -> str:
    """Format a position for the ``message`` field of a frame."""
    return f"{seconds:.3f}".rstrip("0").rstrip(".")


class Relay(Protocol):
    """Transport used by the engine."""

    @property
    def ready(self) -> bool:
        """Return True while messages can be sent."""

    async def send(self, message: Message) -> None:
        """Send a message to the other viewers."""

    def add_message_listener(self, callback: Callable[[Message], None]) -> Callable[[], None]:
        """Register a callback for inbound messages."""


class LocalAction(Enum):
    """Actions of the viewer on this client."""

    LOAD = "load"
    PLAY = "play"
    PAUSE = "pause"
    SEEK = "seek"


@dataclass(frozen=True, slots=True)
class RemoteMessageEvent:
    """A message received from the relay."""

    message: Message


@dataclass(frozen=True, slots=True)
class PlayerEventReceived:
    """An event fired by the player widget."""

    event: PlayerEvent


@dataclass(frozen=True, slots=True)
class LocalActionEvent:
    """An action of the local viewer."""

    action: LocalAction
    value: str | float | None = None
    """Video URL or id for LOAD, target seconds for SEEK."""


EngineEvent = RemoteMessageEvent | PlayerEventReceived | LocalActionEvent


@dataclass
class PlaybackDisplay:
    """Values shown to the viewer. Not part of the shared session."""

    current_time: float = 0.0
    duration: float = 0.0
    paused: bool = True


class ReconciliationEngine:
    """Keep the local player in step with the shared session."""

    def __init__(
        self,
        controller: PlaybackController,
        relay: Relay,
        gate: ReadinessGate,
        *,
        clock: Callable[[], int] = wall_clock_ms,
        drift_tolerance: float = DRIFT_TOLERANCE_S,
    ) -> None:
        """Attach to the controller and relay and start with a neutral session."""
        self._controller = controller
        self._relay = relay
        self._gate = gate
        self._clock = clock
        self._drift_tolerance = drift_tolerance
        self._state = SessionState()
        self._display = PlaybackDisplay()
        self._queue: asyncio.Queue[EngineEvent] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = None
        self._unsubscribe = [
            controller.add_event_listener(lambda event: self.submit(PlayerEventReceived(event))),
            relay.add_message_listener(lambda message: self.submit(RemoteMessageEvent(message))),
        ]

    @property
    def state(self) -> SessionState:
        """Return a snapshot of the shared session."""
        return replace(self._state)

    @property
    def display(self) -> PlaybackDisplay:
        """Return the values shown to the viewer."""
        return self._display

    def submit(self, event: EngineEvent) -> None:
        """Queue an event for the dispatcher."""
        self._queue.put_nowait(event)

    def start(self) -> None:
        """Start the dispatcher task."""
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self.run())

    async def stop(self) -> None:
        """Stop the dispatcher and detach from the controller and relay."""
        if self._task is not None:
            self._task.cancel()
            with suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        for unsubscribe in self._unsubscribe:
            with suppress(ValueError):
                unsubscribe()
        self._unsubscribe.clear()

    async def join(self) -> None:
        """Wait until every queued event has been dispatched."""
        await self._queue.join()

    async def run(self) -> None:
        """Dispatch queued events one at a time until cancelled."""
        while True:
            event = await self._queue.get()
            try:
                await self.dispatch(event)
            except Exception:
                logger.exception("Error dispatching %s", event)
            finally:
                self._queue.task_done()

    async def dispatch(self, event: EngineEvent) -> None:
        """Apply a single event."""
        logger.debug("Dispatching %s", event)
        match event:
            case RemoteMessageEvent(message=message):
                self._handle_remote(message)
            case PlayerEventReceived(event=PlayerEvent.READY):
                self._handle_player_ready()
            case PlayerEventReceived(event=PlayerEvent.USER_PLAY):
                self._handle_player_play()
            case PlayerEventReceived(event=PlayerEvent.USER_PAUSE):
                self._handle_player_pause()
            case PlayerEventReceived(event=PlayerEvent.ENDED):
                self._handle_player_ended()
            case LocalActionEvent(action=LocalAction.LOAD, value=value):
                await self._local_load(str(value or ""))
            case LocalActionEvent(action=LocalAction.PLAY):
                await self._local_play_pause(PlaybackStatus.PLAYING)
            case LocalActionEvent(action=LocalAction.PAUSE):
                await self._local_play_pause(PlaybackStatus.PAUSED)
            case LocalActionEvent(action=LocalAction.SEEK, value=value):
                await self._local_seek(float(value or 0.0))

    # ------------------------------------------------------------------
    # Remote messages
    # ------------------------------------------------------------------
    def _handle_remote(self, message: Message) -> None:
        match message:
            case ConnectedMessage() | LoadUrlMessage():
                self._adopt_session(message.payload)
            case PlayMessage(payload=payload):
                self._apply_remote_status(payload, PlaybackStatus.PLAYING)
            case PauseMessage(payload=payload):
                self._apply_remote_status(payload, PlaybackStatus.PAUSED)
            case SeekMessage():
                self._apply_remote_seek(message)
            case _:
                logger.debug("Unhandled message type: %s", type(message).__name__)

    def _adopt_session(self, payload: SessionState | None) -> None:
        self._state = replace(payload) if payload is not None else SessionState()
        if not self._state.video_id:
            logger.debug("Session has no video id, skipping load")
            return
        self._reset_display(paused=self._state.status is not PlaybackStatus.PLAYING)
        # Position is reconciled once the widget reports ready
        self._controller.load(self._state.video_id)

    def _apply_remote_status(self, payload: SessionState | None, status: PlaybackStatus) -> None:
        if payload is None:
            logger.warning("Received %s without session payload", status.value)
            self._state.status = status
        else:
            self._state.time = payload.time
            self._state.anchor = payload.anchor
            self._state.status = payload.status
        if status is PlaybackStatus.PLAYING:
            self._controller.play(Origin.REMOTE)
        else:
            self._controller.pause(Origin.REMOTE)
        self._display.paused = status is not PlaybackStatus.PLAYING

    def _apply_remote_seek(self, message: SeekMessage) -> None:
        try:
            target = message.target
        except ValueError:
            logger.warning("Dropping seek with invalid target %r", message.message)
            return
        if self._state.status is not PlaybackStatus.PLAYING:
            self._controller.play(Origin.REMOTE)
        self._state.status = PlaybackStatus.PLAYING
        self._display.paused = False
        self._seek(round_half_up(target), Origin.REMOTE)

    # ------------------------------------------------------------------
    # Player events
    # ------------------------------------------------------------------
    def _handle_player_ready(self) -> None:
        duration = self._controller.get_duration()
        self._display.duration = duration
        raw = self._state.position_at(self._clock())
        joined_after_end = self._state.status is PlaybackStatus.PLAYING and raw >= duration
        if duration > 0 and (joined_after_end or self._state.status is PlaybackStatus.ENDED):
            logger.debug("Session ended before this viewer was ready, clamping to %.1f", duration)
            self._state.status = PlaybackStatus.ENDED
            self._display.paused = True
            self._seek(duration, Origin.REMOTE)
            return
        self._seek(round_half_up(raw), Origin.REMOTE)

    def _handle_player_play(self) -> None:
        raw = self._state.position_at(self._clock())
        if self._state.status is PlaybackStatus.ENDED:
            self._state.status = PlaybackStatus.PLAYING
            self._display.paused = False
            self._seek(self._controller.get_duration(), Origin.REMOTE)
            return
        if abs(self._controller.get_position() - raw) > self._drift_tolerance:
            logger.debug("Player drifted from session position %.2f, correcting", raw)
            self._seek(raw, Origin.REMOTE)
        if self._state.status is PlaybackStatus.PAUSED:
            self._controller.pause(Origin.REMOTE)
            self._display.paused = True
        else:
            self._display.paused = False

    def _handle_player_pause(self) -> None:
        if self._state.status is PlaybackStatus.PLAYING:
            self._controller.play(Origin.REMOTE)
            return
        self._display.paused = True

    def _handle_player_ended(self) -> None:
        duration = self._controller.get_duration()
        self._state.time = duration
        self._state.anchor = self._clock()
        self._state.status = PlaybackStatus.ENDED
        self._display.current_time = duration
        self._display.duration = duration
        self._display.paused = True

    # ------------------------------------------------------------------
    # Local actions
    # ------------------------------------------------------------------
    async def _local_load(self, value: str) -> None:
        try:
            video_id = parse_video_id(value)
        except InvalidVideoIdError:
            logger.warning("Invalid video URL: %s", value)
            return
        if not self._gate.transport_ready:
            logger.debug("Dropping load of %s, relay is not ready", video_id)
            return
        self._state = SessionState(
            time=0.0,
            anchor=self._clock(),
            video_id=video_id,
            status=PlaybackStatus.PLAYING,
        )
        self._reset_display(paused=False)
        self._controller.load(video_id)
        await self._broadcast(LoadUrlMessage(message=video_id, payload=self.state))

    async def _local_play_pause(self, status: PlaybackStatus) -> None:
        if not self._gate.active:
            logger.debug("Dropping local %s, readiness is %s", status.value, self._gate.state.value)
            return
        position = self._controller.get_position()
        duration = self._controller.get_duration()
        if status is PlaybackStatus.PLAYING:
            if duration > 0 and position >= duration - RESTART_WINDOW_S:
                position = 0.0
                self._controller.seek(position, Origin.LOCAL)
            self._controller.play(Origin.LOCAL)
        else:
            self._controller.pause(Origin.LOCAL)
        self._state.time = position
        self._state.anchor = self._clock()
        self._state.status = status
        self._display.paused = status is not PlaybackStatus.PLAYING
        message_cls = PlayMessage if status is PlaybackStatus.PLAYING else PauseMessage
        await self._broadcast(message_cls(message=format_seconds(position), payload=self.state))

    async def _local_seek(self, target: float) -> None:
        if not self._gate.active:
            logger.debug("Dropping local seek, readiness is %s", self._gate.state.value)
            return
        if not math.isfinite(target):
            logger.warning("Dropping local seek to %r", target)
            return
        target = max(0.0, target)
        self._state.status = PlaybackStatus.PLAYING
        self._display.paused = False
        self._controller.play(Origin.LOCAL)
        self._seek(target, Origin.LOCAL)
        await self._broadcast(SeekMessage(message=format_seconds(target)))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _reset_display(self, *, paused: bool) -> None:
        self._display.current_time = 0.0
        self._display.duration = 0.0
        self._display.paused = paused

    def _seek(self, target: float, origin: Origin) -> None:
        """Seek the player and capture the target as the session position."""
        self._controller.seek(target, origin)
        self._state.time = target
        self._state.anchor = self._clock()
        self._display.current_time = target

    async def _broadcast(self, message: Message) -> None:
        if not self._relay.ready:
            logger.debug("Relay not ready, not sending %s", type(message).__name__)
            return
        await self._relay.send(message)
