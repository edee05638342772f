"""Models for the watch party synchronization protocol."""

from __future__ import annotations

__all__ = [
    "ConnectedMessage",
    "InvalidVideoIdError",
    "LoadUrlMessage",
    "Message",
    "Origin",
    "PauseMessage",
    "PlayMessage",
    "PlaybackStatus",
    "SeekMessage",
    "SessionState",
    "core",
    "decode_message",
    "encode_message",
    "parse_video_id",
    "types",
    "video",
    "wall_clock_ms",
]

from . import core, types, video
from .core import (
    ConnectedMessage,
    LoadUrlMessage,
    PauseMessage,
    PlayMessage,
    SeekMessage,
    SessionState,
    wall_clock_ms,
)
from .types import Message, Origin, PlaybackStatus
from .video import InvalidVideoIdError, parse_video_id


def encode_message(message: Message) -> str:
    """
    Encode a message into a JSON text frame.

    Args:
        message: Message to encode

    Returns:
        JSON text with ``type``, ``message`` and, when present, a JSON-encoded ``payload``
    """
    return message.to_json()


def decode_message(data: str | bytes) -> Message:
    """
    Decode a JSON text frame into a message.

    Args:
        data: Raw frame received from the relay

    Returns:
        The concrete message selected by the ``type`` field

    Raises:
        ValueError: If the frame is not valid JSON
        mashumaro.exceptions.SuitableVariantNotFoundError: If ``type`` is absent or unknown
        mashumaro.exceptions.InvalidFieldValue: If a field has an invalid value
    """
    return Message.from_json(data)
