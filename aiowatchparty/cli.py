"""Command-line interface for running a watch party relay or viewer."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
import sys
from collections.abc import Sequence

import aioconsole
from aiohttp import ClientError

from aiowatchparty.client import DEFAULT_RELAY_URL, HeadlessPlayer, WatchPartyClient
from aiowatchparty.client.headless import DEFAULT_DURATION_S
from aiowatchparty.server import DEFAULT_HOST, DEFAULT_PATH, DEFAULT_PORT, RelayServer

logger = logging.getLogger(__name__)

RELAY_URL_ENV = "WATCHPARTY_RELAY_URL"


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments for aiowatchparty."""
    parser = argparse.ArgumentParser(description="Watch videos in sync with other viewers")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level to use",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    join = subparsers.add_parser("join", help="Join a watch party with a headless player")
    join.add_argument(
        "--url",
        default=os.environ.get(RELAY_URL_ENV, DEFAULT_RELAY_URL),
        help=f"WebSocket URL of the relay (default: ${RELAY_URL_ENV} or {DEFAULT_RELAY_URL})",
    )
    join.add_argument(
        "--duration",
        type=float,
        default=DEFAULT_DURATION_S,
        help="Length in seconds the headless player assumes for every video",
    )

    relay = subparsers.add_parser("relay", help="Run a relay server")
    relay.add_argument("--host", default=DEFAULT_HOST, help="Interface to listen on")
    relay.add_argument("--port", type=int, default=DEFAULT_PORT, help="Port to listen on")
    relay.add_argument("--path", default=DEFAULT_PATH, help="HTTP path of the websocket endpoint")
    return parser.parse_args(argv)


async def main_async(argv: Sequence[str] | None = None) -> int:
    """Entry point executing the asynchronous CLI workflow."""
    args = parse_args(list(argv) if argv is not None else None)
    logging.basicConfig(level=getattr(logging, args.log_level))

    if args.command == "relay":
        return await _run_relay(args.host, args.port, args.path)
    return await _run_viewer(args.url, args.duration)


async def _run_relay(host: str, port: int, path: str) -> int:
    server = RelayServer()
    await server.start(host, port, path)
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    loop.add_signal_handler(signal.SIGINT, stop_event.set)
    try:
        await stop_event.wait()
    finally:
        loop.remove_signal_handler(signal.SIGINT)
        await server.stop()
    return 0


async def _run_viewer(url: str, duration: float) -> int:
    player = HeadlessPlayer(default_duration=duration)
    client = WatchPartyClient(player)
    try:
        await client.connect(url)
    except (TimeoutError, OSError, ClientError) as err:
        logger.error("Could not connect to relay at %s: %s", url, err)
        await client.disconnect()
        return 1

    _print_event(f"Connected to {url}")
    _print_instructions()

    keyboard_task = asyncio.create_task(_keyboard_loop(client))
    loop = asyncio.get_running_loop()

    def signal_handler() -> None:
        logger.debug("Received interrupt signal, shutting down...")
        keyboard_task.cancel()

    loop.add_signal_handler(signal.SIGINT, signal_handler)
    try:
        await keyboard_task
    except asyncio.CancelledError:  # pragma: no cover - cancellation path
        logger.debug("Keyboard loop cancelled")
    finally:
        loop.remove_signal_handler(signal.SIGINT)
        await client.disconnect()
        player.close()
    return 0


async def _keyboard_loop(client: WatchPartyClient) -> None:
    while True:
        try:
            line = await aioconsole.ainput()
        except EOFError:
            break
        parts = line.strip().split(maxsplit=1)
        if not parts:
            continue
        keyword = parts[0].lower()
        argument = parts[1] if len(parts) > 1 else ""
        if keyword in {"quit", "exit", "q"}:
            break
        if not client.connected:
            _print_event("Relay connection lost, restart to resynchronize")
            continue
        if keyword in {"load", "l"}:
            if not client.load(argument):
                _print_event("Invalid video URL")
        elif keyword in {"play", "p"}:
            client.play()
        elif keyword == "pause":
            client.pause()
        elif keyword in {"toggle", "t"}:
            client.toggle()
        elif keyword in {"seek", "s"}:
            _handle_seek_command(client, argument)
        elif keyword in {"mute", "m"}:
            if client.muted:
                client.unmute()
                _print_event("Unmuted")
            else:
                client.mute()
                _print_event("Muted")
        elif keyword == "status":
            await client.settle()
            _print_event(_describe(client))
        else:
            _print_event("Unknown command")


def _handle_seek_command(client: WatchPartyClient, argument: str) -> None:
    try:
        seconds = _parse_position(argument)
    except ValueError:
        _print_event("Usage: seek <seconds|m:ss>")
        return
    client.seek(seconds)


def _parse_position(text: str) -> float:
    """Parse ``90``, ``90.5`` or ``1:30`` into seconds."""
    if ":" in text:
        minutes, _, seconds = text.partition(":")
        return int(minutes) * 60 + float(seconds)
    return float(text)


def format_time(seconds: float) -> str:
    """Format seconds as ``m:ss``."""
    minutes, rest = divmod(int(seconds), 60)
    return f"{minutes}:{rest:02d}"


def _describe(client: WatchPartyClient) -> str:
    state = client.state
    display = client.display
    lines = [
        f"Video: {state.video_id or '-'}",
        f"Status: {state.status.value}",
        f"Position: {format_time(display.current_time)} / {format_time(display.duration)}",
        f"Readiness: {client.readiness.value}",
    ]
    if client.muted:
        lines.append("Muted")
    return "\n".join(lines)


def _print_event(message: str) -> None:
    print(message, flush=True)  # noqa: T201


def _print_instructions() -> None:
    print(  # noqa: T201
        "Commands: load(l) <url>, play(p), pause, toggle(t), seek(s) <seconds|m:ss>, "
        "mute(m), status, quit(q)",
        flush=True,
    )


def main() -> int:
    """Run the CLI."""
    return asyncio.run(main_async(sys.argv[1:]))


if __name__ == "__main__":  # pragma: no cover - CLI entry
    raise SystemExit(main())
