from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .commands.registry import CommandHandler, TextContext
from .commands.shared import help_text
from ..errors import SendError

if TYPE_CHECKING:
    from .commands.registry import CommandRegistry

logger = logging.getLogger(__name__)


class Help(CommandHandler):
    """
    !help: one message listing every registered command in registration order.

    Text path only; it is not registered as a slash command.
    """

    slash_enabled = False

    def __init__(self, registry: "CommandRegistry") -> None:
        # Rendered at call time so the listing always matches the frozen table.
        self._registry = registry

    async def handle_text(self, ctx: TextContext) -> None:
        msg = help_text(self._registry.list_all(), ctx.prefix)
        try:
            await ctx.reply(msg)
        except SendError:
            logger.exception("help: send failed (channel=%s)", ctx.message.channel_id)


__all__ = ["Help"]
