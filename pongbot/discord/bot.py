from __future__ import annotations

import asyncio
import logging
import signal
import sys
from typing import Any, Callable, Dict, List, Optional

import discord

from ..config import BotSettings, load_settings
from .commands import CommandRegistry, build_registry
from .dispatch import InteractionDispatcher, TextCommandDispatcher
from .gateway import DiscordGateway, interaction_from, text_message_from
from .session import Session

logger = logging.getLogger(__name__)

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


class PongBot(discord.Client):
    """
    Discord client for pongbot.

    Notes:
    - Text commands ("!ping") arrive through on_message, slash commands through
      on_interaction; both are routed via the shared, frozen CommandRegistry.
    - No app_commands.CommandTree: slash commands are upserted one by one by the
      Session on ready, so one failed upsert never blocks the others.
    - Every handler failure is caught and logged here; one event never breaks another.
    """

    def __init__(
        self,
        registry: CommandRegistry,
        *,
        prefix: str = "!",
        activity_name: str = "",
        sync_guild_id: Optional[int] = None,
    ) -> None:
        intents = discord.Intents.default()
        # Needed to read "!command" message text
        intents.message_content = True

        activity = discord.Game(name=activity_name) if activity_name else None
        super().__init__(intents=intents, activity=activity, status=discord.Status.online)

        self.registry = registry
        self.gateway = DiscordGateway(self, sync_guild_id=sync_guild_id)
        self.text_commands = TextCommandDispatcher(registry, self.gateway, prefix=prefix)
        self.interactions = InteractionDispatcher(registry, self.gateway)
        self.session: Optional[Session] = None

    async def on_ready(self) -> None:
        logger.info(
            "PongBot ready as %s (prefix=%s, slash_target=%s)",
            str(self.user),
            self.text_commands.prefix,
            self.gateway.sync_guild_id or "global",
        )
        if self.session is not None:
            await self.session.on_ready()

    async def on_message(self, message: discord.Message) -> None:
        try:
            await self.text_commands.dispatch(text_message_from(message))
        except Exception:
            logger.exception("Text command error (ignored).")

    async def on_interaction(self, interaction: discord.Interaction) -> None:
        try:
            await self.interactions.dispatch(interaction_from(interaction))
        except Exception:
            logger.exception("Interaction error (ignored).")


# ---------------------------------------------------------------------
# Signals
# ---------------------------------------------------------------------

def install_signal_handlers(stop: asyncio.Event, signals=(signal.SIGINT, signal.SIGTERM)) -> Callable[[], None]:
    """
    Set `stop` on SIGINT/SIGTERM. Returns a callable that undoes every handler
    installed here, loop-level or process-level.
    """
    loop = asyncio.get_running_loop()
    installed: List[int] = []
    previous: Dict[int, Any] = {}

    for sig in signals:
        try:
            loop.add_signal_handler(sig, stop.set)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            # Event loops without add_signal_handler (Windows): plain handler instead
            try:
                previous[sig] = signal.signal(sig, lambda *_: loop.call_soon_threadsafe(stop.set))
            except ValueError:
                logger.warning("cannot install handler for %s outside the main thread", sig)

    def restore() -> None:
        for sig in installed:
            loop.remove_signal_handler(sig)
        for sig, handler in previous.items():
            # None means the old handler was not installed from Python
            signal.signal(sig, handler if handler is not None else signal.SIG_DFL)

    return restore


# ---------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------

async def serve(settings: BotSettings, *, stop: Optional[asyncio.Event] = None) -> None:
    """
    Build registry -> client -> session, then run until stopped.
    """
    settings.check()

    registry = build_registry()
    bot = PongBot(
        registry,
        prefix=settings.command_prefix,
        activity_name=settings.activity_name,
        sync_guild_id=settings.sync_guild_id,
    )
    session = Session(settings, bot.gateway, registry)
    bot.session = session

    stop = stop or asyncio.Event()
    restore = install_signal_handlers(stop)
    try:
        await session.serve(stop)
    finally:
        restore()


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
        stream=sys.stdout,
    )


def run_bot() -> None:
    settings = load_settings()
    configure_logging(settings.log_level)
    asyncio.run(serve(settings))


if __name__ == "__main__":
    run_bot()
