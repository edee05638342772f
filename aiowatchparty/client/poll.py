"""Periodic sampling of the playhead for display."""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress

from .engine import PlaybackDisplay
from .player import PlaybackController
from .readiness import ReadinessGate

logger = logging.getLogger(__name__)

POLL_INTERVAL_S = 0.1


class PollLoop:
    """
    Copy the playhead position into the display while both gates are open.

    Purely observational: it never touches the shared session.
    """

    def __init__(
        self,
        controller: PlaybackController,
        gate: ReadinessGate,
        display: PlaybackDisplay,
        *,
        interval: float = POLL_INTERVAL_S,
    ) -> None:
        """Sample ``controller`` into ``display`` every ``interval`` seconds."""
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._controller = controller
        self._gate = gate
        self._display = display
        self._interval = interval
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        """Return True while the timer task is alive."""
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the timer."""
        if not self.running:
            self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        """Clear the timer."""
        if self._task is not None:
            self._task.cancel()
            with suppress(asyncio.CancelledError):
                await self._task
            self._task = None

    def tick(self) -> None:
        """Take one sample if both gates are open."""
        if self._gate.active:
            self._display.current_time = self._controller.get_position()

    async def _run(self) -> None:
        while True:
            try:
                self.tick()
            except Exception:
                logger.exception("Failed to sample playback position")
            await asyncio.sleep(self._interval)
