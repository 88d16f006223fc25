from __future__ import annotations

import logging
from typing import Sequence, Tuple

from .core import Echo, Ping
from .registry import (
    Command,
    CommandHandler,
    CommandRegistry,
    InteractionContext,
    SlashOption,
    TextContext,
)

logger = logging.getLogger(__name__)

# Single table of bot commands, in the order !help lists them:
#   (name, description)
COMMANDS: Sequence[Tuple[str, str]] = (
    ("ping", "Replies with 'Pong!' and shows response time and client WebSocket ping."),
    ("echo", "Repeats back the message sent after the command."),
    ("help", "Shows the list of available commands."),
)

__all__ = [
    "COMMANDS",
    "Command",
    "CommandHandler",
    "CommandRegistry",
    "InteractionContext",
    "SlashOption",
    "TextContext",
    "build_registry",
]


def build_registry() -> CommandRegistry:
    """
    Build the frozen command registry used by both dispatchers.

    Pattern:
      - built once at startup, then passed explicitly to the dispatchers and session
      - a bad or duplicate name is a programming error and raises ValueError here,
        before the bot ever connects
    """
    # help.py imports this package; import lazily to avoid the cycle
    from ..help import Help

    registry = CommandRegistry()
    handlers = {
        "ping": Ping(),
        "echo": Echo(),
        "help": Help(registry),
    }
    for name, description in COMMANDS:
        registry.register(name, description, handlers[name])
    registry.freeze()

    logger.info(
        "commands registered: %s (slash: %s)",
        ", ".join(c.name for c in registry.list_all()),
        ", ".join(c.name for c in registry.slash_commands()) or "none",
    )
    return registry
