from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from .commands.registry import InteractionContext, TextContext
from .commands.shared import invalid_command_notice
from ..errors import SendError
from .gateway import InteractionKind

if TYPE_CHECKING:
    from .commands.registry import Command, CommandRegistry
    from .gateway import Gateway, Interaction, TextMessage

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("pongbot.audit")


class TextCommandDispatcher:
    """
    Routes "!<name> ..." chat messages to registry handlers.

    Silently ignored:
      - messages sent by the bot itself
      - messages not starting with the prefix
      - messages with no tokens after whitespace splitting
    Unknown names get a short "invalid command" notice in the same channel.
    """

    def __init__(self, registry: "CommandRegistry", gateway: "Gateway", *, prefix: str = "!") -> None:
        if not prefix:
            raise ValueError("command prefix must not be empty")
        self.registry = registry
        self.gateway = gateway
        self.prefix = prefix

    def resolve(self, message: "TextMessage") -> Optional[str]:
        """
        Returns the command name for a message that should be dispatched, or None
        when the message is to be ignored. The name may not exist in the registry.
        """
        if message.author_id == self.gateway.self_id:
            return None
        content = message.content or ""
        if not content.startswith(self.prefix):
            return None
        tokens = content.split()
        if not tokens:
            return None
        return tokens[0][len(self.prefix):]

    async def dispatch(self, message: "TextMessage") -> None:
        name = self.resolve(message)
        if name is None:
            return

        command = self.registry.lookup(name)
        if command is None:
            try:
                await self.gateway.send_message(message.channel_id, invalid_command_notice(self.prefix))
            except SendError:
                logger.exception("invalid-command notice failed (channel=%s)", message.channel_id)
            return

        await self._audit(message, command)
        await command.handler.handle_text(
            TextContext(message=message, gateway=self.gateway, command=command, prefix=self.prefix)
        )

    async def _audit(self, message: "TextMessage", command: "Command") -> None:
        # Best-effort: metadata lookups never fail the dispatch.
        guild: Optional[str] = None
        channel: Optional[str] = None
        try:
            guild = await self.gateway.guild_name(message.guild_id)
        except Exception:
            logger.debug("guild lookup failed for id=%s", message.guild_id, exc_info=True)
        try:
            channel = await self.gateway.channel_name(message.channel_id)
        except Exception:
            logger.debug("channel lookup failed for id=%s", message.channel_id, exc_info=True)

        audit_logger.info(
            "%s%s by %s (%s) in #%s: %s",
            self.prefix,
            command.name,
            message.author_name,
            guild or "",
            channel or "",
            message.content,
        )


class InteractionDispatcher:
    """
    Routes slash-command interactions to registry handlers.

    Only APPLICATION_COMMAND interactions are handled. Unknown names, and
    commands that are text-only, get no response at all; Discord then shows
    its own "application did not respond" message to the user.
    """

    def __init__(self, registry: "CommandRegistry", gateway: "Gateway") -> None:
        self.registry = registry
        self.gateway = gateway

    def resolve(self, interaction: "Interaction") -> Optional["Command"]:
        if interaction.kind is not InteractionKind.APPLICATION_COMMAND:
            return None
        command = self.registry.lookup(interaction.command_name)
        if command is None or not command.handler.slash_enabled:
            return None
        return command

    async def dispatch(self, interaction: "Interaction") -> None:
        command = self.resolve(interaction)
        if command is None:
            logger.debug(
                "ignoring interaction kind=%s name=%r",
                interaction.kind.name,
                interaction.command_name,
            )
            return

        await command.handler.handle_interaction(
            InteractionContext(interaction=interaction, gateway=self.gateway, command=command)
        )


__all__ = ["TextCommandDispatcher", "InteractionDispatcher"]
