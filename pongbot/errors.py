from __future__ import annotations

# Error kinds raised at the gateway boundary.
#
# Fatal at startup:   ConfigError, GatewayConnectError
# Per-operation only: SendError, EditError, RespondError, RegistrationError


class BotError(RuntimeError):
    """Base class for every error raised by pongbot itself."""


class ConfigError(BotError):
    """Missing or malformed configuration (bot token, prefix, guild id)."""


class GatewayConnectError(BotError):
    """The initial gateway connection could not be opened."""


class SendError(BotError):
    pass


class EditError(BotError):
    pass


class RespondError(BotError):
    pass


class RegistrationError(BotError):
    """A slash command could not be upserted remotely."""


__all__ = [
    "BotError",
    "ConfigError",
    "GatewayConnectError",
    "SendError",
    "EditError",
    "RespondError",
    "RegistrationError",
]
