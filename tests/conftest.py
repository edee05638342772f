"""Shared fakes for the aiowatchparty tests."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from aiowatchparty.client import PlaybackController, ReadinessGate, ReconciliationEngine
from aiowatchparty.client.player import PlayerEvent, PlayerEventCallback
from aiowatchparty.models import Message

START_MS = 1_700_000_000_000


class FakeClock:
    """Wall clock under test control."""

    def __init__(self, now: int = START_MS) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += int(seconds * 1000)


class FakeWidget:
    """Player widget recording every command it receives."""

    def __init__(self, duration: float = 300.0) -> None:
        self.position = 0.0
        self.duration = duration
        self.muted = True
        self.commands: list[tuple[str, ...]] = []
        self.listener: PlayerEventCallback | None = None

    def load_video_by_id(self, video_id: str) -> None:
        self.commands.append(("load", video_id))

    def play_video(self) -> None:
        self.commands.append(("play",))

    def pause_video(self) -> None:
        self.commands.append(("pause",))

    def seek_to(self, seconds: float, allow_seek_ahead: bool) -> None:
        self.commands.append(("seek", seconds))
        self.position = seconds

    def get_current_time(self) -> float:
        return self.position

    def get_duration(self) -> float:
        return self.duration

    def mute(self) -> None:
        self.muted = True

    def unmute(self) -> None:
        self.muted = False

    def is_muted(self) -> bool:
        return self.muted

    def set_event_listener(self, callback: PlayerEventCallback | None) -> None:
        self.listener = callback

    def fire(self, event: PlayerEvent) -> None:
        assert self.listener is not None
        self.listener(event)

    def named(self, name: str) -> list[tuple[str, ...]]:
        return [command for command in self.commands if command[0] == name]


class FakeRelay:
    """Relay recording outbound messages."""

    def __init__(self, *, ready: bool = True) -> None:
        self.ready = ready
        self.sent: list[Message] = []
        self.listeners: list[Callable[[Message], None]] = []

    async def send(self, message: Message) -> None:
        self.sent.append(message)

    def add_message_listener(self, callback: Callable[[Message], None]) -> Callable[[], None]:
        self.listeners.append(callback)
        return lambda: self.listeners.remove(callback)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def widget() -> FakeWidget:
    return FakeWidget()


@pytest.fixture
def relay() -> FakeRelay:
    return FakeRelay()


@pytest.fixture
def gate() -> ReadinessGate:
    gate = ReadinessGate()
    gate.set_transport_ready(True)
    gate.set_widget_ready(True)
    return gate


@pytest.fixture
def controller(widget: FakeWidget, gate: ReadinessGate) -> PlaybackController:
    return PlaybackController(widget, gate)


@pytest.fixture
def engine(
    controller: PlaybackController,
    relay: FakeRelay,
    gate: ReadinessGate,
    clock: FakeClock,
) -> ReconciliationEngine:
    return ReconciliationEngine(controller, relay, gate, clock=clock)
