"""Tests for discord/bot.py and run_bot.py - client wiring and entrypoint."""

from __future__ import annotations

import asyncio
import os
import signal
import sys
from types import SimpleNamespace

import discord
import pytest

import run_bot as entry
from bot_fixtures import make_settings
from pongbot.discord.bot import PongBot, install_signal_handlers, serve
from pongbot.discord.commands import build_registry
from pongbot.errors import ConfigError


class _RecordingDispatcher:
    def __init__(self, fail: bool = False) -> None:
        self.events = []
        self.fail = fail

    async def dispatch(self, event) -> None:
        if self.fail:
            raise RuntimeError("handler exploded")
        self.events.append(event)


class _FakeSession:
    def __init__(self) -> None:
        self.ready_calls = 0

    async def on_ready(self) -> None:
        self.ready_calls += 1


def _bot(**kwargs) -> PongBot:
    return PongBot(build_registry(), **kwargs)


def test_client_wiring() -> None:
    bot = _bot(prefix="?", activity_name="chilling with Python", sync_guild_id=77)
    assert bot.intents.message_content is True
    assert bot.activity is not None and bot.activity.name == "chilling with Python"
    assert bot.status is discord.Status.online
    assert bot.gateway.client is bot
    assert bot.gateway.sync_guild_id == 77
    assert bot.text_commands.prefix == "?"
    assert bot.text_commands.gateway is bot.gateway
    assert bot.interactions.registry is bot.registry


def test_no_activity_when_blank() -> None:
    assert _bot(activity_name="").activity is None


@pytest.mark.anyio
async def test_on_message_routes_to_text_dispatcher() -> None:
    bot = _bot()
    bot.text_commands = _RecordingDispatcher()  # type: ignore[assignment]
    author = type("Author", (), {"id": 5, "__str__": lambda self: "alice"})()
    message = SimpleNamespace(id=1, author=author, channel=SimpleNamespace(id=2), guild=None, content="!ping")

    await bot.on_message(message)  # type: ignore[arg-type]

    (event,) = bot.text_commands.events
    assert event.content == "!ping"
    assert event.author_id == 5


@pytest.mark.anyio
async def test_on_message_failure_is_contained(caplog: pytest.LogCaptureFixture) -> None:
    bot = _bot()
    bot.text_commands = _RecordingDispatcher(fail=True)  # type: ignore[assignment]
    author = type("Author", (), {"id": 5, "__str__": lambda self: "alice"})()
    message = SimpleNamespace(id=1, author=author, channel=SimpleNamespace(id=2), guild=None, content="!ping")

    await bot.on_message(message)  # type: ignore[arg-type]

    assert "Text command error (ignored)." in caplog.text


@pytest.mark.anyio
async def test_on_interaction_routes_and_contains_failures() -> None:
    bot = _bot()
    bot.interactions = _RecordingDispatcher()  # type: ignore[assignment]
    raw = SimpleNamespace(type=discord.InteractionType.application_command, data={"name": "ping"})
    await bot.on_interaction(raw)  # type: ignore[arg-type]
    assert bot.interactions.events[0].command_name == "ping"

    bot.interactions = _RecordingDispatcher(fail=True)  # type: ignore[assignment]
    await bot.on_interaction(raw)  # type: ignore[arg-type]


@pytest.mark.anyio
async def test_on_ready_drives_session() -> None:
    bot = _bot()
    session = _FakeSession()
    bot.session = session  # type: ignore[assignment]
    await bot.on_ready()
    assert session.ready_calls == 1


@pytest.mark.anyio
@pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals")
async def test_signal_sets_stop_event() -> None:
    stop = asyncio.Event()
    restore = install_signal_handlers(stop, signals=(signal.SIGUSR1,))
    try:
        os.kill(os.getpid(), signal.SIGUSR1)
        await asyncio.wait_for(stop.wait(), timeout=2)
    finally:
        restore()
    assert stop.is_set()


@pytest.mark.anyio
@pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals")
async def test_process_level_fallback_is_restored(monkeypatch: pytest.MonkeyPatch) -> None:
    """Loops without add_signal_handler get signal.signal, undone by restore()."""

    def unsupported(*_args) -> None:
        raise NotImplementedError

    monkeypatch.setattr(asyncio.get_running_loop(), "add_signal_handler", unsupported)
    before = signal.getsignal(signal.SIGUSR1)

    stop = asyncio.Event()
    restore = install_signal_handlers(stop, signals=(signal.SIGUSR1,))
    try:
        assert signal.getsignal(signal.SIGUSR1) is not before
        os.kill(os.getpid(), signal.SIGUSR1)
        await asyncio.wait_for(stop.wait(), timeout=2)
    finally:
        restore()

    assert signal.getsignal(signal.SIGUSR1) == before


@pytest.mark.anyio
async def test_serve_rejects_bad_config_before_connecting(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("TOKEN", raising=False)
    with pytest.raises(ConfigError):
        await serve(make_settings(DISCORD_BOT_TOKEN=""))


def test_entrypoint_exits_nonzero_on_config_error(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture) -> None:
    def boom() -> None:
        raise ConfigError("DISCORD_BOT_TOKEN (or TOKEN) is not set in environment (.env).")

    monkeypatch.setattr(entry, "run_bot", boom)
    with pytest.raises(SystemExit) as exc:
        entry.main()
    assert exc.value.code == 1
    assert "DISCORD_BOT_TOKEN (or TOKEN) is not set" in capsys.readouterr().out


def test_entrypoint_exits_nonzero_on_unexpected_error(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture) -> None:
    def boom() -> None:
        raise RuntimeError("kaboom")

    monkeypatch.setattr(entry, "run_bot", boom)
    with pytest.raises(SystemExit) as exc:
        entry.main()
    assert exc.value.code == 1
    assert "Most common causes" in capsys.readouterr().out
