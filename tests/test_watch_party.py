"""End-to-end synchronization between viewers through a real relay."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable

import pytest
import pytest_asyncio
from aiohttp import ClientSession
from aiohttp.test_utils import TestServer

from aiowatchparty.client import HeadlessPlayer, ReadinessState, WatchPartyClient
from aiowatchparty.models import PlaybackStatus, decode_message
from aiowatchparty.server import RelayServer

VIDEO_URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"


@pytest_asyncio.fixture
async def relay_url() -> AsyncIterator[str]:
    async with TestServer(RelayServer().build_app()) as server:
        yield str(server.make_url("/"))


async def wait_until(predicate: Callable[[], bool], timeout: float = 2) -> None:
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0.01)


@pytest.mark.asyncio
async def test_viewers_follow_load_and_pause_without_echo(relay_url: str) -> None:
    player_a = HeadlessPlayer(default_duration=60)
    player_b = HeadlessPlayer(default_duration=60)
    seen: list[str] = []

    async with (
        ClientSession() as session,
        session.ws_connect(relay_url) as observer,
        WatchPartyClient(player_a, poll_interval=0.01) as viewer_a,
        WatchPartyClient(player_b, poll_interval=0.01) as viewer_b,
    ):
        await viewer_a.connect(relay_url)
        await viewer_b.connect(relay_url)

        assert viewer_a.load(VIDEO_URL)
        await wait_until(lambda: viewer_a.readiness is ReadinessState.ACTIVE)
        await wait_until(lambda: viewer_b.readiness is ReadinessState.ACTIVE)
        assert player_b.video_id == "dQw4w9WgXcQ"
        assert player_b.playing

        viewer_a.pause()
        await wait_until(lambda: viewer_b.state.status is PlaybackStatus.PAUSED)
        await wait_until(lambda: not player_b.playing)
        await viewer_a.settle()
        await viewer_b.settle()

        async def drain() -> None:
            while True:
                seen.append(decode_message(await observer.receive_str()).type)

        with pytest.raises(TimeoutError):
            await asyncio.wait_for(drain(), timeout=0.2)

    player_a.close()
    player_b.close()

    assert seen == ["connected", "loadUrl", "pause"]
    assert viewer_a.display.paused
    assert viewer_b.display.paused


@pytest.mark.asyncio
async def test_seek_while_paused_resumes_every_viewer(relay_url: str) -> None:
    player_a = HeadlessPlayer(default_duration=60)
    player_b = HeadlessPlayer(default_duration=60)

    async with (
        WatchPartyClient(player_a, poll_interval=0.01) as viewer_a,
        WatchPartyClient(player_b, poll_interval=0.01) as viewer_b,
    ):
        await viewer_a.connect(relay_url)
        await viewer_b.connect(relay_url)

        assert viewer_a.load(VIDEO_URL)
        await wait_until(lambda: viewer_a.readiness is ReadinessState.ACTIVE)
        await wait_until(lambda: viewer_b.readiness is ReadinessState.ACTIVE)
        viewer_a.pause()
        await wait_until(lambda: not player_b.playing)

        viewer_a.seek(50)
        await wait_until(lambda: player_b.playing)
        await viewer_a.settle()
        await viewer_b.settle()

        assert player_a.playing
        assert viewer_a.state.status is viewer_b.state.status is PlaybackStatus.PLAYING
        assert not viewer_b.display.paused
        assert player_b.get_current_time() == pytest.approx(50, abs=1)

    player_a.close()
    player_b.close()
