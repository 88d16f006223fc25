from __future__ import annotations

import logging
import time
from typing import Callable, Tuple

from ...errors import EditError, RespondError, SendError
from ..gateway import OptionType
from .registry import CommandHandler, InteractionContext, SlashOption, TextContext
from .shared import echo_option, echo_text, format_ping_interaction, format_ping_text

logger = logging.getLogger(__name__)


class Ping(CommandHandler):
    """
    Latency probe.

    Text path:        send "Pong!", time the send, then edit the placeholder
                      with response time + heartbeat latency.
    Interaction path: one response; "response time" is the time spent building it.
    """

    def __init__(self, clock: Callable[[], float] = time.perf_counter) -> None:
        self._clock = clock

    async def handle_text(self, ctx: TextContext) -> None:
        start = self._clock()
        try:
            ref = await ctx.reply("Pong!")
        except SendError:
            logger.exception("ping: sending placeholder failed (channel=%s)", ctx.message.channel_id)
            return
        elapsed = self._clock() - start

        latency = ctx.gateway.heartbeat_latency()
        content = format_ping_text(elapsed, latency)

        try:
            await ctx.gateway.edit_message(ref, content)
        except EditError:
            logger.exception("ping: editing reply failed (message=%s)", ref.message_id)

    async def handle_interaction(self, ctx: InteractionContext) -> None:
        start = self._clock()
        latency = ctx.gateway.heartbeat_latency()
        elapsed = self._clock() - start
        content = format_ping_interaction(latency, elapsed)

        try:
            await ctx.respond(content)
        except RespondError:
            logger.exception("ping: interaction response failed")


class Echo(CommandHandler):
    slash_options: Tuple[SlashOption, ...] = (
        SlashOption(name="message", description="The message to echo", type=OptionType.STRING, required=True),
    )

    async def handle_text(self, ctx: TextContext) -> None:
        content = echo_text(ctx.message.content, ctx.prefix, ctx.command.name)
        try:
            await ctx.reply(content)
        except SendError:
            logger.exception("echo: send failed (channel=%s)", ctx.message.channel_id)

    async def handle_interaction(self, ctx: InteractionContext) -> None:
        opt = ctx.interaction.option("message")
        content = echo_option(opt.value if opt is not None else None)
        try:
            await ctx.respond(content)
        except RespondError:
            logger.exception("echo: interaction response failed")


__all__ = ["Ping", "Echo"]
