"""Relay server forwarding messages between watch party viewers."""

from .relay import DEFAULT_HOST, DEFAULT_PATH, DEFAULT_PORT, RelayServer, Viewer

__all__ = [
    "DEFAULT_HOST",
    "DEFAULT_PATH",
    "DEFAULT_PORT",
    "RelayServer",
    "Viewer",
]
