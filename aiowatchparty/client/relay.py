"""Connection to the watch party relay."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from contextlib import suppress
from types import TracebackType
from typing import Any, Self

from aiohttp import ClientSession, ClientWebSocketResponse, WSMessage, WSMsgType

from aiowatchparty.models import Message, decode_message, encode_message

from .readiness import ReadinessGate

logger = logging.getLogger(__name__)

DEFAULT_RELAY_URL = "ws://localhost:8080"

MessageCallback = Callable[[Message], Awaitable[None] | None]


class RelayClient:
    """
    Owns the websocket connection to the relay.

    The connection is opened once and never retried. Inbound text frames are
    decoded and handed to the message listeners in arrival order. Frames that
    fail to decode are logged and dropped.
    """

    def __init__(
        self,
        gate: ReadinessGate | None = None,
        *,
        session: ClientSession | None = None,
    ) -> None:
        """Create a relay client, optionally sharing an aiohttp session."""
        self._gate = gate or ReadinessGate()
        self._session = session
        self._owns_session = session is None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._ws: ClientWebSocketResponse | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._send_lock = asyncio.Lock()
        self._message_callbacks: list[MessageCallback] = []
        self._connected = False

    @property
    def connected(self) -> bool:
        """Return True if the connection to the relay is open."""
        return self._connected and self._ws is not None and not self._ws.closed

    @property
    def ready(self) -> bool:
        """Return True once the connection opened and until it closes."""
        return self.connected

    async def connect(self, url: str = DEFAULT_RELAY_URL) -> None:
        """Open the websocket connection to the relay at ``url``."""
        if self.connected:
            logger.debug("Already connected")
            return

        self._loop = asyncio.get_running_loop()
        if self._session is None:
            self._session = ClientSession()

        logger.info("Connecting to relay at %s", url)
        self._ws = await self._session.ws_connect(url)
        self._connected = True
        self._reader_task = self._loop.create_task(self._reader_loop())
        self._gate.set_transport_ready(True)
        logger.info("Connected to relay")

    async def disconnect(self) -> None:
        """Close the connection and stop delivering messages."""
        self._connected = False
        self._gate.set_transport_ready(False)
        current_task = asyncio.current_task(loop=self._loop) if self._loop else None

        if self._reader_task is not None:
            if self._reader_task is not current_task:
                self._reader_task.cancel()
                with suppress(asyncio.CancelledError):
                    await self._reader_task
            self._reader_task = None
        if self._ws is not None:
            await self._ws.close()
            self._ws = None
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def send(self, message: Message) -> None:
        """Send a message to the relay."""
        if not self.connected or self._ws is None:
            raise RuntimeError("Relay is not connected")
        payload = encode_message(message)
        async with self._send_lock:
            await self._ws.send_str(payload)
        logger.debug("Sent %s", payload)

    def add_message_listener(self, callback: MessageCallback) -> Callable[[], None]:
        """Register a callback for inbound messages. Returns a function to remove it."""
        self._message_callbacks.append(callback)
        return lambda: self._message_callbacks.remove(callback)

    async def _reader_loop(self) -> None:
        assert self._ws is not None
        try:
            async for msg in self._ws:
                await self._handle_ws_message(msg)
        except asyncio.CancelledError:  # pragma: no cover - cancellation path
            pass
        except Exception:
            logger.exception("Relay reader encountered an error")
        finally:
            if self._connected:
                logger.info("Relay connection closed, session is no longer synchronized")
                await self.disconnect()

    async def _handle_ws_message(self, msg: WSMessage) -> None:
        if msg.type is WSMsgType.TEXT:
            await self._handle_text(msg.data)
        elif msg.type is WSMsgType.ERROR:
            logger.error("Relay websocket error: %s", self._ws.exception() if self._ws else "unknown")
        else:
            logger.debug("Ignoring websocket frame of type %s", msg.type)

    async def _handle_text(self, data: str) -> None:
        try:
            message = decode_message(data)
        except Exception:
            logger.exception("Dropping malformed relay frame: %s", data)
            return
        logger.debug("Received %s", data)
        await self._notify_callbacks(message)

    async def _notify_callbacks(self, message: Any) -> None:
        for callback in self._message_callbacks:
            try:
                result = callback(message)
                if asyncio.iscoroutine(result):
                    await result
            except Exception:
                logger.exception("Error in relay message callback %s", callback)

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
