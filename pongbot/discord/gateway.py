from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

import aiohttp
import discord

from ..errors import ConfigError, EditError, GatewayConnectError, RegistrationError, RespondError, SendError

if TYPE_CHECKING:
    from .commands import SlashOption

logger = logging.getLogger(__name__)

# NOTE:
# Dispatchers, handlers and the session only ever talk to the Gateway protocol.
# DiscordGateway is the single place that touches discord.py objects and translates
# discord.py/aiohttp failures into pongbot.errors kinds.


# -----------------------------
# Inbound events
# -----------------------------

class InteractionKind(IntEnum):
    UNKNOWN = 0
    PING = 1
    APPLICATION_COMMAND = 2
    MESSAGE_COMPONENT = 3
    AUTOCOMPLETE = 4
    MODAL_SUBMIT = 5

    @classmethod
    def from_value(cls, value: Any) -> "InteractionKind":
        try:
            return cls(int(value))
        except (TypeError, ValueError):
            return cls.UNKNOWN


class OptionType(IntEnum):
    """Discord application command option types (the subset pongbot declares)."""

    STRING = 3
    INTEGER = 4
    BOOLEAN = 5


@dataclass(frozen=True)
class MessageRef:
    channel_id: int
    message_id: int


@dataclass(frozen=True)
class TextMessage:
    message_id: int
    author_id: int
    author_name: str
    channel_id: int
    guild_id: Optional[int]
    content: str


@dataclass(frozen=True)
class InteractionOption:
    name: str
    type: int
    value: Any = None


@dataclass(frozen=True)
class Interaction:
    kind: InteractionKind
    command_name: str
    options: Tuple[InteractionOption, ...] = ()
    # Opaque response handle: a discord.Interaction in production.
    handle: Any = field(default=None, compare=False, repr=False)

    def option(self, name: str) -> Optional[InteractionOption]:
        for opt in self.options:
            if opt.name == name:
                return opt
        return None


def text_message_from(message: Any) -> TextMessage:
    """
    Build a TextMessage from a discord.Message (kept Any so fakes work in tests).
    """
    guild = getattr(message, "guild", None)
    return TextMessage(
        message_id=int(message.id),
        author_id=int(message.author.id),
        author_name=str(message.author),
        channel_id=int(message.channel.id),
        guild_id=int(guild.id) if guild is not None else None,
        content=message.content or "",
    )


def _parse_options(raw: Any) -> Tuple[InteractionOption, ...]:
    if not isinstance(raw, list):
        return ()
    out: List[InteractionOption] = []
    for item in raw:
        if not isinstance(item, dict) or not item.get("name"):
            continue
        out.append(InteractionOption(name=str(item["name"]), type=int(item.get("type") or 0), value=item.get("value")))
    return tuple(out)


def interaction_from(interaction: Any) -> Interaction:
    """
    Build an Interaction from a discord.Interaction.

    Notes:
    - interaction.data is the raw payload dict; only top-level options are read
      (pongbot declares no subcommands).
    """
    kind_raw = getattr(interaction.type, "value", interaction.type)
    data = interaction.data if isinstance(getattr(interaction, "data", None), dict) else {}
    return Interaction(
        kind=InteractionKind.from_value(kind_raw),
        command_name=str(data.get("name") or ""),
        options=_parse_options(data.get("options")),
        handle=interaction,
    )


# -----------------------------
# Gateway protocol
# -----------------------------

@runtime_checkable
class Gateway(Protocol):
    @property
    def self_id(self) -> Optional[int]: ...

    @property
    def self_name(self) -> str: ...

    async def login(self, token: str) -> None: ...

    async def connect(self) -> None: ...

    async def close(self) -> None: ...

    async def send_message(self, channel_id: int, text: str) -> MessageRef: ...

    async def edit_message(self, ref: MessageRef, text: str) -> None: ...

    def heartbeat_latency(self) -> float: ...

    async def respond(self, handle: Any, text: str) -> None: ...

    async def upsert_slash_command(self, name: str, description: str, options: Sequence["SlashOption"]) -> None: ...

    async def guild_name(self, guild_id: Optional[int]) -> Optional[str]: ...

    async def channel_name(self, channel_id: int) -> Optional[str]: ...


def slash_command_payload(name: str, description: str, options: Sequence["SlashOption"]) -> Dict[str, Any]:
    """
    CHAT_INPUT application command payload, as accepted by the upsert endpoints.
    """
    return {
        "name": name,
        "description": description,
        "type": discord.AppCommandType.chat_input.value,
        "options": [
            {
                "type": int(opt.type),
                "name": opt.name,
                "description": opt.description,
                "required": bool(opt.required),
            }
            for opt in options
        ],
    }


class DiscordGateway:
    """
    discord.py-backed Gateway.

    - sync_guild_id: when set, slash commands are upserted to that guild only
      (instant availability); otherwise they are upserted globally.
    """

    def __init__(self, client: discord.Client, *, sync_guild_id: Optional[int] = None) -> None:
        self.client = client
        self.sync_guild_id = sync_guild_id

    @property
    def self_id(self) -> Optional[int]:
        user = self.client.user
        return user.id if user is not None else None

    @property
    def self_name(self) -> str:
        user = self.client.user
        return str(user) if user is not None else ""

    # -------------------------
    # Connection
    # -------------------------

    async def login(self, token: str) -> None:
        try:
            await self.client.login(token)
        except discord.LoginFailure as e:
            raise ConfigError(f"Discord rejected the bot token: {e}") from e
        except (discord.HTTPException, aiohttp.ClientError, OSError) as e:
            raise GatewayConnectError(f"Could not reach Discord: {e}") from e

    async def connect(self) -> None:
        try:
            await self.client.connect(reconnect=True)
        except discord.LoginFailure as e:
            raise ConfigError(f"Discord rejected the bot token: {e}") from e
        except discord.PrivilegedIntentsRequired as e:
            raise ConfigError(
                "The message content intent is not enabled for this bot in the Discord developer portal."
            ) from e
        except (discord.DiscordException, aiohttp.ClientError, OSError) as e:
            raise GatewayConnectError(f"Gateway connection failed: {e}") from e

    async def close(self) -> None:
        if not self.client.is_closed():
            await self.client.close()

    # -------------------------
    # Outbound
    # -------------------------

    async def send_message(self, channel_id: int, text: str) -> MessageRef:
        channel = self.client.get_partial_messageable(channel_id)
        try:
            msg = await channel.send(text)
        except (discord.HTTPException, aiohttp.ClientError, OSError) as e:
            raise SendError(f"send to channel={channel_id} failed: {e}") from e
        return MessageRef(channel_id=channel_id, message_id=msg.id)

    async def edit_message(self, ref: MessageRef, text: str) -> None:
        partial = self.client.get_partial_messageable(ref.channel_id).get_partial_message(ref.message_id)
        try:
            await partial.edit(content=text)
        except (discord.HTTPException, aiohttp.ClientError, OSError) as e:
            raise EditError(f"edit of message={ref.message_id} failed: {e}") from e

    def heartbeat_latency(self) -> float:
        return float(self.client.latency)

    async def respond(self, handle: Any, text: str) -> None:
        try:
            await handle.response.send_message(text)
        except (discord.HTTPException, discord.InteractionResponded, aiohttp.ClientError, OSError) as e:
            raise RespondError(f"interaction response failed: {e}") from e

    async def upsert_slash_command(self, name: str, description: str, options: Sequence["SlashOption"]) -> None:
        app_id = self.client.application_id
        if app_id is None:
            raise RegistrationError(f"cannot register /{name}: application id unknown (not logged in)")

        payload = slash_command_payload(name, description, options)
        try:
            if self.sync_guild_id:
                await self.client.http.upsert_guild_command(app_id, self.sync_guild_id, payload)
            else:
                await self.client.http.upsert_global_command(app_id, payload)
        except (discord.HTTPException, aiohttp.ClientError, OSError) as e:
            raise RegistrationError(f"upsert of /{name} failed: {e}") from e

    # -------------------------
    # Best-effort metadata
    # -------------------------

    async def guild_name(self, guild_id: Optional[int]) -> Optional[str]:
        if guild_id is None:
            return None
        guild = self.client.get_guild(guild_id)
        if guild is None:
            try:
                guild = await self.client.fetch_guild(guild_id)
            except (discord.HTTPException, aiohttp.ClientError):
                return None
        return getattr(guild, "name", None)

    async def channel_name(self, channel_id: int) -> Optional[str]:
        channel = self.client.get_channel(channel_id)
        if channel is None:
            try:
                channel = await self.client.fetch_channel(channel_id)
            except (discord.HTTPException, discord.InvalidData, aiohttp.ClientError):
                return None
        # DMs have no name
        return getattr(channel, "name", None)


__all__ = [
    "InteractionKind",
    "OptionType",
    "MessageRef",
    "TextMessage",
    "InteractionOption",
    "Interaction",
    "text_message_from",
    "interaction_from",
    "Gateway",
    "slash_command_payload",
    "DiscordGateway",
]
