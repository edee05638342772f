from __future__ import annotations

from aiowatchparty.client import PlaybackController, PlayerEvent, ReadinessGate
from aiowatchparty.models import Origin

from .conftest import FakeWidget


def test_commands_dropped_until_active(widget: FakeWidget) -> None:
    gate = ReadinessGate()
    controller = PlaybackController(widget, gate)

    assert not controller.play(Origin.LOCAL)
    assert not controller.pause(Origin.REMOTE)
    assert not controller.seek(10.0, Origin.REMOTE)
    gate.set_transport_ready(True)
    assert not controller.play(Origin.REMOTE)

    assert widget.commands == []


def test_commands_forwarded_when_active(widget: FakeWidget, gate: ReadinessGate) -> None:
    controller = PlaybackController(widget, gate)

    assert controller.play(Origin.REMOTE)
    assert controller.seek(12.5, Origin.LOCAL)
    assert controller.pause(Origin.LOCAL)

    assert widget.commands == [("play",), ("seek", 12.5), ("pause",)]
    assert controller.get_position() == 12.5
    assert controller.get_duration() == 300.0


def test_load_is_not_gated_and_waits_for_ready(widget: FakeWidget) -> None:
    gate = ReadinessGate()
    gate.set_transport_ready(True)
    gate.set_widget_ready(True)
    controller = PlaybackController(widget, gate)
    events: list[PlayerEvent] = []
    controller.add_event_listener(events.append)

    controller.load("abc12345678")
    assert widget.commands == [("load", "abc12345678")]
    assert not controller.ready

    widget.fire(PlayerEvent.READY)
    assert controller.ready
    assert events == [PlayerEvent.READY]


def test_events_forwarded_past_failing_listener(widget: FakeWidget, gate: ReadinessGate) -> None:
    controller = PlaybackController(widget, gate)
    events: list[PlayerEvent] = []

    def broken(event: PlayerEvent) -> None:
        raise RuntimeError("boom")

    controller.add_event_listener(broken)
    controller.add_event_listener(events.append)
    widget.fire(PlayerEvent.USER_PAUSE)
    widget.fire(PlayerEvent.ENDED)

    assert events == [PlayerEvent.USER_PAUSE, PlayerEvent.ENDED]


def test_mute_controls(widget: FakeWidget, gate: ReadinessGate) -> None:
    controller = PlaybackController(widget, gate)

    assert controller.is_muted()
    controller.unmute()
    assert not controller.is_muted()
    controller.mute()
    assert controller.is_muted()


def test_detach_stops_events(widget: FakeWidget, gate: ReadinessGate) -> None:
    controller = PlaybackController(widget, gate)
    events: list[PlayerEvent] = []
    controller.add_event_listener(events.append)

    controller.detach()

    assert widget.listener is None
    assert events == []
