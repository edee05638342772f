from __future__ import annotations

import asyncio

import pytest

from aiowatchparty.client import PlaybackController, PlaybackDisplay, PollLoop, ReadinessGate

from .conftest import FakeWidget


def test_tick_samples_only_when_active(widget: FakeWidget) -> None:
    gate = ReadinessGate()
    display = PlaybackDisplay()
    poll = PollLoop(PlaybackController(widget, gate), gate, display)
    widget.position = 33.0

    poll.tick()
    assert display.current_time == 0.0

    gate.set_transport_ready(True)
    gate.set_widget_ready(True)
    poll.tick()
    assert display.current_time == 33.0


def test_interval_must_be_positive(widget: FakeWidget, gate: ReadinessGate) -> None:
    with pytest.raises(ValueError):
        PollLoop(PlaybackController(widget, gate), gate, PlaybackDisplay(), interval=0)


@pytest.mark.asyncio
async def test_timer_updates_display_until_stopped(
    widget: FakeWidget, gate: ReadinessGate
) -> None:
    display = PlaybackDisplay()
    poll = PollLoop(PlaybackController(widget, gate), gate, display, interval=0.01)
    widget.position = 5.0

    poll.start()
    assert poll.running
    await asyncio.sleep(0.05)
    await poll.stop()
    assert not poll.running
    assert display.current_time == 5.0

    widget.position = 6.0
    await asyncio.sleep(0.03)
    assert display.current_time == 5.0
