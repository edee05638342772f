"""Watch party client keeping a local player in step with other viewers."""

from __future__ import annotations

import logging
from collections.abc import Callable
from types import TracebackType
from typing import Self

from aiohttp import ClientSession

from aiowatchparty.models import (
    InvalidVideoIdError,
    SessionState,
    parse_video_id,
    wall_clock_ms,
)

from .engine import (
    DRIFT_TOLERANCE_S,
    LocalAction,
    LocalActionEvent,
    PlaybackDisplay,
    ReconciliationEngine,
)
from .player import PlaybackController, PlayerWidget
from .poll import POLL_INTERVAL_S, PollLoop
from .readiness import ReadinessGate, ReadinessState
from .relay import DEFAULT_RELAY_URL, RelayClient

logger = logging.getLogger(__name__)


class WatchPartyClient:
    """Async watch party client wiring the relay, the player and the engine."""

    def __init__(
        self,
        widget: PlayerWidget,
        *,
        session: ClientSession | None = None,
        clock: Callable[[], int] = wall_clock_ms,
        drift_tolerance: float = DRIFT_TOLERANCE_S,
        poll_interval: float = POLL_INTERVAL_S,
    ) -> None:
        """Create a client driving ``widget``."""
        self._gate = ReadinessGate()
        self._relay = RelayClient(self._gate, session=session)
        self._controller = PlaybackController(widget, self._gate)
        self._engine = ReconciliationEngine(
            self._controller,
            self._relay,
            self._gate,
            clock=clock,
            drift_tolerance=drift_tolerance,
        )
        self._poll = PollLoop(
            self._controller, self._gate, self._engine.display, interval=poll_interval
        )

    # ---------------------------------------------------------------------
    # Public API
    # ---------------------------------------------------------------------
    @property
    def connected(self) -> bool:
        """Return True while the relay connection is open."""
        return self._relay.connected

    @property
    def readiness(self) -> ReadinessState:
        """Return the combined readiness of relay and widget."""
        return self._gate.state

    @property
    def state(self) -> SessionState:
        """Return a snapshot of the shared session."""
        return self._engine.state

    @property
    def display(self) -> PlaybackDisplay:
        """Return the values shown to the viewer."""
        return self._engine.display

    @property
    def controller(self) -> PlaybackController:
        """Return the player adapter."""
        return self._controller

    async def connect(self, url: str = DEFAULT_RELAY_URL) -> None:
        """Start dispatching and open the relay connection."""
        self._engine.start()
        self._poll.start()
        await self._relay.connect(url)

    async def disconnect(self) -> None:
        """Close the relay connection and clear the timers."""
        await self._relay.disconnect()
        await self._poll.stop()
        await self._engine.stop()
        self._controller.detach()

    async def settle(self) -> None:
        """Wait until every queued event has been dispatched."""
        await self._engine.join()

    def load(self, url: str) -> bool:
        """
        Load the video at ``url`` for every viewer.

        Returns False and changes nothing if ``url`` holds no valid video id.
        """
        try:
            video_id = parse_video_id(url)
        except InvalidVideoIdError:
            logger.warning("Invalid video URL: %s", url)
            return False
        self._engine.submit(LocalActionEvent(LocalAction.LOAD, video_id))
        return True

    def play(self) -> None:
        """Resume playback for every viewer."""
        self._engine.submit(LocalActionEvent(LocalAction.PLAY))

    def pause(self) -> None:
        """Pause playback for every viewer."""
        self._engine.submit(LocalActionEvent(LocalAction.PAUSE))

    def toggle(self) -> None:
        """Pause if playing, otherwise resume."""
        if self.display.paused:
            self.play()
        else:
            self.pause()

    def seek(self, seconds: float) -> None:
        """Seek every viewer to ``seconds``."""
        self._engine.submit(LocalActionEvent(LocalAction.SEEK, seconds))

    def mute(self) -> None:
        """Mute the local player."""
        self._controller.mute()

    def unmute(self) -> None:
        """Unmute the local player."""
        self._controller.unmute()

    @property
    def muted(self) -> bool:
        """Return True if the local player is muted."""
        return self._controller.is_muted()

    async def __aenter__(self) -> Self:
        """Enter the async context manager returning this instance."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        """Disconnect when leaving the async context manager."""
        await self.disconnect()
