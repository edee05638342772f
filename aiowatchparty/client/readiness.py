"""Readiness tracking for the relay connection and the player widget."""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum

logger = logging.getLogger(__name__)

ReadinessCallback = Callable[["ReadinessState"], None]


class ReadinessState(Enum):
    """Combined readiness of the transport and the widget."""

    NOT_READY = "not_ready"
    TRANSPORT_OPEN = "transport_open"
    """The relay connection is open but the widget is not ready yet."""
    WIDGET_READY = "widget_ready"
    """The widget is ready but the relay connection is not open."""
    ACTIVE = "active"
    """Both gates are open, commands are accepted."""


class ReadinessGate:
    """Two independent readiness gates that must both be open for commands to run."""

    def __init__(self) -> None:
        """Initialise with both gates closed."""
        self._transport_ready = False
        self._widget_ready = False
        self._listeners: list[ReadinessCallback] = []

    @property
    def transport_ready(self) -> bool:
        """Return True while the relay connection is open."""
        return self._transport_ready

    @property
    def widget_ready(self) -> bool:
        """Return True once the widget reported ready for the current video."""
        return self._widget_ready

    @property
    def state(self) -> ReadinessState:
        """Return the combined readiness state."""
        if self._transport_ready and self._widget_ready:
            return ReadinessState.ACTIVE
        if self._transport_ready:
            return ReadinessState.TRANSPORT_OPEN
        if self._widget_ready:
            return ReadinessState.WIDGET_READY
        return ReadinessState.NOT_READY

    @property
    def active(self) -> bool:
        """Return True when both gates are open."""
        return self.state is ReadinessState.ACTIVE

    def set_transport_ready(self, ready: bool) -> None:
        """Open or close the transport gate."""
        if ready == self._transport_ready:
            return
        self._transport_ready = ready
        self._notify()

    def set_widget_ready(self, ready: bool) -> None:
        """Open or close the widget gate."""
        if ready == self._widget_ready:
            return
        self._widget_ready = ready
        self._notify()

    def add_listener(self, callback: ReadinessCallback) -> Callable[[], None]:
        """Register a callback for readiness changes. Returns a function to remove it."""
        self._listeners.append(callback)
        return lambda: self._listeners.remove(callback)

    def _notify(self) -> None:
        state = self.state
        logger.debug("Readiness changed to %s", state.value)
        for callback in self._listeners:
            try:
                callback(state)
            except Exception:
                logger.exception("Error in readiness callback %s", callback)
