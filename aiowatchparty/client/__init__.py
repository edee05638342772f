"""Public interface for the watch party client package."""

from .client import WatchPartyClient
from .engine import (
    DRIFT_TOLERANCE_S,
    LocalAction,
    LocalActionEvent,
    PlaybackDisplay,
    PlayerEventReceived,
    ReconciliationEngine,
    RemoteMessageEvent,
)
from .headless import HeadlessPlayer
from .player import PlaybackController, PlayerEvent, PlayerWidget
from .poll import PollLoop
from .readiness import ReadinessGate, ReadinessState
from .relay import DEFAULT_RELAY_URL, RelayClient

__all__ = [
    "DEFAULT_RELAY_URL",
    "DRIFT_TOLERANCE_S",
    "HeadlessPlayer",
    "LocalAction",
    "LocalActionEvent",
    "PlaybackController",
    "PlaybackDisplay",
    "PlayerEvent",
    "PlayerEventReceived",
    "PlayerWidget",
    "PollLoop",
    "ReadinessGate",
    "ReadinessState",
    "ReconciliationEngine",
    "RelayClient",
    "RemoteMessageEvent",
    "WatchPartyClient",
]
