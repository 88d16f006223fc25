"""Tests for discord/dispatch.py - slash-command interactions."""

from __future__ import annotations

import logging

import pytest

from bot_fixtures import FakeClock, FakeGateway, interaction
from pongbot.discord.commands import CommandRegistry, build_registry
from pongbot.discord.commands.core import Ping
from pongbot.discord.commands.shared import ECHO_PROMPT
from pongbot.discord.dispatch import InteractionDispatcher
from pongbot.discord.gateway import InteractionKind


def _dispatcher(gw: FakeGateway) -> InteractionDispatcher:
    return InteractionDispatcher(build_registry(), gw)


@pytest.mark.anyio
async def test_ping_responds_exactly_once() -> None:
    gw = FakeGateway(latency=0.05)
    event = interaction("ping")
    await _dispatcher(gw).dispatch(event)

    assert len(gw.responses) == 1
    handle, content = gw.responses[0]
    assert handle is event.handle
    assert "WebSocket Ping: 50ms" in content
    assert "Response Time: " in content
    assert content.startswith("Pong! WebSocket Ping: ")


@pytest.mark.anyio
async def test_ping_response_time_is_construction_interval() -> None:
    gw = FakeGateway(latency=0.0)
    registry = CommandRegistry()
    registry.register("ping", "ping", Ping(clock=FakeClock(step=0.002)))
    await InteractionDispatcher(registry.freeze(), gw).dispatch(interaction("ping"))
    assert gw.responses[0][1] == "Pong! WebSocket Ping: 0ms | Response Time: 2ms"


@pytest.mark.anyio
async def test_echo_uses_message_option() -> None:
    gw = FakeGateway()
    await _dispatcher(gw).dispatch(interaction("echo", options=[("message", "hello there")]))
    assert [text for _, text in gw.responses] == ["hello there"]


@pytest.mark.anyio
@pytest.mark.parametrize("options", [(), [("message", None)], [("other", "x")]])
async def test_echo_missing_option_prompts(options) -> None:
    gw = FakeGateway()
    await _dispatcher(gw).dispatch(interaction("echo", options=options))
    assert [text for _, text in gw.responses] == [ECHO_PROMPT]


@pytest.mark.anyio
async def test_unknown_command_gets_no_response() -> None:
    gw = FakeGateway()
    await _dispatcher(gw).dispatch(interaction("nope"))
    assert gw.responses == []
    assert gw.sent == []


@pytest.mark.anyio
async def test_text_only_help_gets_no_response() -> None:
    gw = FakeGateway()
    await _dispatcher(gw).dispatch(interaction("help"))
    assert gw.responses == []


@pytest.mark.anyio
async def test_name_match_is_exact() -> None:
    gw = FakeGateway()
    await _dispatcher(gw).dispatch(interaction("Ping"))
    assert gw.responses == []


@pytest.mark.anyio
@pytest.mark.parametrize(
    "kind",
    [InteractionKind.PING, InteractionKind.MESSAGE_COMPONENT, InteractionKind.AUTOCOMPLETE, InteractionKind.MODAL_SUBMIT, InteractionKind.UNKNOWN],
)
async def test_non_command_interactions_ignored(kind: InteractionKind) -> None:
    gw = FakeGateway()
    await _dispatcher(gw).dispatch(interaction("ping", kind=kind))
    assert gw.responses == []


@pytest.mark.anyio
async def test_respond_failure_is_logged_not_raised(caplog: pytest.LogCaptureFixture) -> None:
    gw = FakeGateway()
    gw.fail_respond = True
    with caplog.at_level(logging.ERROR):
        await _dispatcher(gw).dispatch(interaction("echo", options=[("message", "hi")]))
    assert "interaction response failed" in caplog.text
