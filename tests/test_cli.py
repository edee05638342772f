from __future__ import annotations

import pytest

from aiowatchparty.cli import RELAY_URL_ENV, _parse_position, format_time, parse_args
from aiowatchparty.client import DEFAULT_RELAY_URL


def test_join_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(RELAY_URL_ENV, raising=False)

    args = parse_args(["join"])

    assert args.command == "join"
    assert args.url == DEFAULT_RELAY_URL
    assert args.log_level == "INFO"


def test_join_url_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(RELAY_URL_ENV, "ws://relay.example:9000/party")

    assert parse_args(["join"]).url == "ws://relay.example:9000/party"
    assert parse_args(["join", "--url", "ws://other"]).url == "ws://other"


def test_relay_options() -> None:
    args = parse_args(["--log-level", "DEBUG", "relay", "--port", "9001", "--path", "/ws"])

    assert args.command == "relay"
    assert args.port == 9001
    assert args.path == "/ws"
    assert args.log_level == "DEBUG"


def test_command_is_required() -> None:
    with pytest.raises(SystemExit):
        parse_args([])


@pytest.mark.parametrize(
    ("text", "expected"),
    [("90", 90.0), ("12.5", 12.5), ("1:30", 90.0), ("0:05.5", 5.5)],
)
def test_parse_position(text: str, expected: float) -> None:
    assert _parse_position(text) == expected


def test_parse_position_rejects_garbage() -> None:
    with pytest.raises(ValueError):
        _parse_position("soon")


def test_format_time() -> None:
    assert format_time(0) == "0:00"
    assert format_time(95.7) == "1:35"
