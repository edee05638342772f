"""aiowatchparty: watch externally hosted videos in lock-step with other viewers."""

from __future__ import annotations

# Re-export client library for easy import
from aiowatchparty.client import (
    DEFAULT_RELAY_URL,
    HeadlessPlayer,
    PlaybackController,
    PlayerEvent,
    PlayerWidget,
    ReconciliationEngine,
    RelayClient,
    WatchPartyClient,
)
from aiowatchparty.models import Origin, PlaybackStatus, SessionState

__all__ = [
    "DEFAULT_RELAY_URL",
    "HeadlessPlayer",
    "Origin",
    "PlaybackController",
    "PlaybackStatus",
    "PlayerEvent",
    "PlayerWidget",
    "ReconciliationEngine",
    "RelayClient",
    "SessionState",
    "WatchPartyClient",
]
