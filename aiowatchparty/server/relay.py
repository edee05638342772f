"""Relay forwarding watch party messages between viewers."""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import Callable
from contextlib import suppress
from dataclasses import replace

from aiohttp import WSMsgType, web

from aiowatchparty.models import (
    ConnectedMessage,
    LoadUrlMessage,
    Message,
    PauseMessage,
    PlaybackStatus,
    PlayMessage,
    SeekMessage,
    SessionState,
    decode_message,
    encode_message,
    wall_clock_ms,
)

logger = logging.getLogger(__name__)

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8080
DEFAULT_PATH = "/"
MAX_PENDING_MSG = 512

_viewer_ids = itertools.count(1)


class Viewer:
    """A single websocket connection to the relay."""

    def __init__(self, wsock: web.WebSocketResponse, remote: str | None) -> None:
        """Wrap a prepared websocket."""
        self.viewer_id = next(_viewer_ids)
        self.remote = remote
        self._wsock = wsock
        self._to_write: asyncio.Queue[str] = asyncio.Queue(maxsize=MAX_PENDING_MSG)
        self._writer_task: asyncio.Task[None] | None = None
        self._logger = logger.getChild(f"viewer{self.viewer_id}")

    def start(self) -> None:
        """Start the writer task."""
        self._writer_task = asyncio.get_running_loop().create_task(self._writer())

    async def stop(self) -> None:
        """Stop the writer task."""
        if self._writer_task is not None and not self._writer_task.done():
            self._writer_task.cancel()
            with suppress(asyncio.CancelledError):
                await self._writer_task
        self._writer_task = None

    def send_text(self, data: str) -> None:
        """Queue a text frame for this viewer."""
        try:
            self._to_write.put_nowait(data)
        except asyncio.QueueFull:
            self._logger.warning("Send queue full, dropping frame")

    async def _writer(self) -> None:
        try:
            while not self._wsock.closed:
                data = await self._to_write.get()
                try:
                    await self._wsock.send_str(data)
                except ConnectionError:
                    self._logger.warning("Connection error sending data, ending writer task")
                    break
        except asyncio.CancelledError:
            raise
        except Exception:
            self._logger.exception("Error in writer task")


class RelayServer:
    """
    Forward every valid frame to every other viewer.

    The relay keeps the last known session so that a viewer joining later can be
    greeted with a ``connected`` message holding it. Beyond that it does not
    interpret messages.
    """

    def __init__(self, *, clock: Callable[[], int] = wall_clock_ms) -> None:
        """Create a relay with an empty session."""
        self._clock = clock
        self._viewers: set[Viewer] = set()
        self._state = SessionState()
        self._runner: web.AppRunner | None = None

    @property
    def state(self) -> SessionState:
        """Return a snapshot of the last known session."""
        return replace(self._state)

    @property
    def viewers(self) -> set[Viewer]:
        """Return the connected viewers."""
        return self._viewers

    def build_app(self, path: str = DEFAULT_PATH) -> web.Application:
        """Return an aiohttp application serving the relay at ``path``."""
        app = web.Application()
        app.router.add_get(path, self.on_viewer_connect)
        return app

    async def start(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        path: str = DEFAULT_PATH,
    ) -> None:
        """Start serving on ``host``:``port``."""
        self._runner = web.AppRunner(self.build_app(path))
        await self._runner.setup()
        site = web.TCPSite(self._runner, host, port)
        await site.start()
        logger.info("Relay listening on ws://%s:%s%s", host, port, path)

    async def stop(self) -> None:
        """Stop serving and close every connection."""
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            logger.info("Relay stopped")

    async def on_viewer_connect(self, request: web.Request) -> web.WebSocketResponse:
        """Handle an incoming websocket connection from a viewer."""
        wsock = web.WebSocketResponse()
        await wsock.prepare(request)
        viewer = Viewer(wsock, request.remote)
        viewer.start()
        self._viewers.add(viewer)
        logger.info("Viewer %s connected from %s", viewer.viewer_id, viewer.remote)
        viewer.send_text(encode_message(ConnectedMessage(payload=self.state)))

        try:
            async for msg in wsock:
                if msg.type is WSMsgType.TEXT:
                    self._handle_frame(viewer, msg.data)
                elif msg.type is WSMsgType.ERROR:
                    logger.error("Viewer %s connection error: %s", viewer.viewer_id, wsock.exception())
        finally:
            self._viewers.discard(viewer)
            await viewer.stop()
            logger.info("Viewer %s disconnected", viewer.viewer_id)
        return wsock

    def _handle_frame(self, sender: Viewer, data: str) -> None:
        try:
            message = decode_message(data)
        except Exception:
            logger.exception("Dropping malformed frame from viewer %s: %s", sender.viewer_id, data)
            return
        if isinstance(message, ConnectedMessage):
            logger.warning("Ignoring connected message from viewer %s", sender.viewer_id)
            return
        if not self._track(message):
            logger.warning("Dropping invalid frame from viewer %s: %s", sender.viewer_id, data)
            return
        for viewer in self._viewers:
            if viewer is not sender:
                viewer.send_text(data)

    def _track(self, message: Message) -> bool:
        """Update the tracked session. Returns False if the message is rejected."""
        match message:
            case LoadUrlMessage(payload=payload) | PlayMessage(payload=payload) | PauseMessage(
                payload=payload
            ) if payload is not None:
                self._state = replace(payload)
            case SeekMessage():
                try:
                    target = message.target
                except ValueError:
                    return False
                self._state.time = target
                self._state.anchor = self._clock()
                self._state.status = PlaybackStatus.PLAYING
        return True
