"""Models for enum types used by aiowatchparty."""

from dataclasses import dataclass
from enum import Enum
from typing import Any

import orjson
from mashumaro.config import BaseConfig
from mashumaro.mixins.orjson import DataClassORJSONMixin
from mashumaro.types import Discriminator


# Base message class
@dataclass
class Message(DataClassORJSONMixin):
    """Base class for messages exchanged through the relay."""

    class Config(BaseConfig):
        """Config for parsing json messages."""

        discriminator = Discriminator(field="type", include_subtypes=True)
        omit_none = True

    # The payload travels as a JSON string nested inside the JSON frame
    @classmethod
    def __pre_deserialize__(cls, d: dict[Any, Any]) -> dict[Any, Any]:
        payload = d.get("payload")
        if isinstance(payload, (str, bytes)):
            return {**d, "payload": orjson.loads(payload)}
        return d

    def __post_serialize__(self, d: dict[Any, Any]) -> dict[Any, Any]:
        payload = d.get("payload")
        if isinstance(payload, dict):
            d["payload"] = orjson.dumps(payload).decode()
        return d


# Enums


class PlaybackStatus(Enum):
    """Shared playback status of a viewing session."""

    PLAYING = "playing"
    """Position advances with wall-clock time from the anchor."""
    PAUSED = "paused"
    """Position is frozen at the captured time."""
    SEEKING = "seeking"
    BUFFERING = "buffering"
    ENDED = "ended"
    """
    Playback reached the end of the video.

    Positions derived from an ended session are clamped to the duration.
    """


class Origin(Enum):
    """
    Where a player command comes from.

    The controller only logs the tag. Echo suppression comes from the engine:
    only its local-action handlers broadcast, and every command issued while
    applying a relay message or a widget event is tagged ``REMOTE``.
    """

    LOCAL = "local"
    """The command follows an action of the viewer on this client."""
    REMOTE = "remote"
    """The command applies a message received from the relay and must not be rebroadcast."""
