from __future__ import annotations

from typing import Any, Optional

from pydantic import AliasChoices, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigError

_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


class BotSettings(BaseSettings):
    """
    Bot settings.

    Rules:
    - Read from the process environment, then an optional .env file
    - Normalize user-provided values in validators; never fail on import
    - check() is the strict boot check: it raises ConfigError
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
    )

    # -------------------------
    # Core / logging
    # -------------------------
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # -------------------------
    # Discord bot
    # -------------------------
    # TOKEN is the legacy name; DISCORD_BOT_TOKEN wins when both are set.
    discord_bot_token: str = Field(
        default="",
        validation_alias=AliasChoices("DISCORD_BOT_TOKEN", "TOKEN"),
    )
    command_prefix: str = Field(default="!", alias="BOT_COMMAND_PREFIX")
    activity_name: str = Field(default="chilling with Python", alias="BOT_ACTIVITY")

    # Slash-command registration target.
    # If discord_sync_guild_only is True, commands are upserted to one guild (instant);
    # otherwise globally (can take a while to show up in clients).
    discord_guild_id: Optional[int] = Field(default=None, alias="DISCORD_GUILD_ID")
    discord_sync_guild_only: bool = Field(default=False, alias="DISCORD_SYNC_GUILD_ONLY")

    # -------------------------
    # Validators / normalizers
    # -------------------------

    @field_validator("log_level", mode="before")
    @classmethod
    def _norm_log_level(cls, v: Any) -> str:
        s = ("" if v is None else str(v)).strip().upper()
        return s or "INFO"

    @field_validator("discord_bot_token", mode="before")
    @classmethod
    def _norm_token(cls, v: Any) -> str:
        s = ("" if v is None else str(v)).strip()
        # discord.py adds the "Bot " scheme itself
        if s[:4].lower() == "bot ":
            s = s[4:].strip()
        return s

    @field_validator("command_prefix", mode="before")
    @classmethod
    def _norm_prefix(cls, v: Any) -> str:
        s = ("" if v is None else str(v)).strip()
        return s or "!"

    @field_validator("activity_name", mode="before")
    @classmethod
    def _norm_activity(cls, v: Any) -> str:
        return ("" if v is None else str(v)).strip()

    @field_validator("discord_guild_id", mode="before")
    @classmethod
    def _norm_guild_id(cls, v: Any) -> Any:
        if v is None:
            return None
        s = str(v).strip()
        return s or None

    # -------------------------
    # Derived helpers
    # -------------------------

    @property
    def sync_guild_id(self) -> Optional[int]:
        """Guild that slash commands are upserted to, or None for global."""
        if self.discord_sync_guild_only and self.discord_guild_id:
            return self.discord_guild_id
        return None

    def check(self) -> None:
        """
        Strict validation for boot safety.
        """
        # Required secret
        if not self.discord_bot_token:
            raise ConfigError("DISCORD_BOT_TOKEN (or TOKEN) is not set in environment (.env).")
        if any(ch.isspace() for ch in self.discord_bot_token):
            raise ConfigError("DISCORD_BOT_TOKEN is malformed (contains whitespace).")

        if self.log_level not in _LOG_LEVELS:
            raise ConfigError(f"LOG_LEVEL must be one of: {', '.join(sorted(_LOG_LEVELS))}")

        p = self.command_prefix
        if len(p) > 5 or any(ch.isspace() for ch in p):
            raise ConfigError("BOT_COMMAND_PREFIX must be 1-5 characters without whitespace.")

        if self.discord_guild_id is not None and self.discord_guild_id <= 0:
            raise ConfigError("DISCORD_GUILD_ID must be a positive integer.")

        # Sync discipline: guild-only sync requires a guild id
        if self.discord_sync_guild_only and not self.discord_guild_id:
            raise ConfigError("DISCORD_SYNC_GUILD_ONLY is true but DISCORD_GUILD_ID is not set.")

        if len(self.activity_name) > 128:
            raise ConfigError("BOT_ACTIVITY is too long (max 128 chars).")


def load_settings(**overrides: Any) -> BotSettings:
    """
    Load settings from env/.env. Type errors (e.g. DISCORD_GUILD_ID=abc) surface as
    ConfigError so callers only need to handle one error kind.
    """
    try:
        return BotSettings(**overrides)
    except ValidationError as e:
        raise ConfigError(f"Invalid bot configuration: {e}") from e


__all__ = ["BotSettings", "load_settings"]
