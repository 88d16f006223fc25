from __future__ import annotations

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Dict, Iterator, Mapping, Optional, Tuple

from ..gateway import OptionType

if TYPE_CHECKING:
    from ..gateway import Gateway, Interaction, MessageRef, TextMessage

# Valid for both the text path ("!<name>") and Discord CHAT_INPUT command names.
_NAME_RE = re.compile(r"^[-_a-z0-9]{1,32}$")


@dataclass(frozen=True)
class SlashOption:
    name: str
    description: str
    type: OptionType = OptionType.STRING
    required: bool = False


@dataclass(frozen=True)
class TextContext:
    """Everything a handler needs to answer one prefixed chat message."""

    message: "TextMessage"
    gateway: "Gateway"
    command: "Command"
    prefix: str = "!"

    async def reply(self, text: str) -> "MessageRef":
        return await self.gateway.send_message(self.message.channel_id, text)


@dataclass(frozen=True)
class InteractionContext:
    interaction: "Interaction"
    gateway: "Gateway"
    command: "Command"

    async def respond(self, text: str) -> None:
        await self.gateway.respond(self.interaction.handle, text)


class CommandHandler:
    """
    Behaviour behind one command name.

    Each handler has two entry points with identical observable output:
      - handle_text(ctx)        for "!<name> ..." chat messages
      - handle_interaction(ctx) for "/<name>" slash commands (only if slash_enabled)

    Handlers own their error handling: outbound failures are logged and the
    handler returns early. Nothing raised here should reach the dispatcher.
    """

    slash_enabled: bool = True
    slash_options: Tuple[SlashOption, ...] = ()

    async def handle_text(self, ctx: TextContext) -> None:
        raise NotImplementedError

    async def handle_interaction(self, ctx: InteractionContext) -> None:
        raise NotImplementedError


@dataclass(frozen=True)
class Command:
    name: str
    description: str
    handler: CommandHandler


class CommandRegistry:
    """
    Ordered, write-once table of commands.

    Build phase: register() in the order commands should be listed by help.
    After freeze() the registry is read-only and safe to share between
    concurrently running handlers.
    """

    def __init__(self) -> None:
        self._commands: Dict[str, Command] = {}
        self._frozen = False
        self._view: Mapping[str, Command] = MappingProxyType(self._commands)

    def register(self, name: str, description: str, handler: CommandHandler) -> Command:
        if self._frozen:
            raise RuntimeError(f"command registry is frozen; cannot register {name!r}")
        if not name or not _NAME_RE.match(name):
            raise ValueError(f"invalid command name {name!r} (expected lowercase [-_a-z0-9], 1-32 chars, no prefix)")
        if name in self._commands:
            raise ValueError(f"duplicate command name {name!r}")
        if not (description or "").strip():
            raise ValueError(f"command {name!r} needs a description")

        command = Command(name=name, description=description, handler=handler)
        self._commands[name] = command
        return command

    def freeze(self) -> "CommandRegistry":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def commands(self) -> Mapping[str, Command]:
        return self._view

    def lookup(self, name: str) -> Optional[Command]:
        return self._commands.get(name)

    def list_all(self) -> Tuple[Command, ...]:
        return tuple(self._commands.values())

    def slash_commands(self) -> Tuple[Command, ...]:
        return tuple(c for c in self._commands.values() if c.handler.slash_enabled)

    def __contains__(self, name: object) -> bool:
        return name in self._commands

    def __len__(self) -> int:
        return len(self._commands)

    def __iter__(self) -> Iterator[Command]:
        return iter(self.list_all())


__all__ = [
    "SlashOption",
    "TextContext",
    "InteractionContext",
    "CommandHandler",
    "Command",
    "CommandRegistry",
]
