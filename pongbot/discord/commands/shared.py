from __future__ import annotations

import math
from typing import Any, Iterable

from .registry import Command

# NOTE:
# Keep this module pure (no gateway, no discord import).
# Text and interaction entry points must render through these functions so both
# paths produce the same words.

ECHO_PROMPT = "Please provide something to echo!"
HELP_HEADER = "Available commands:"


def invalid_command_notice(prefix: str) -> str:
    return f"Invalid command. Try {prefix}help for a list of commands."


def format_ms(seconds: float) -> str:
    """
    Render a duration in whole milliseconds ("42ms").

    discord.py reports latency as nan/inf until the first heartbeat ACK;
    those (and negative clock skew) render as "0ms".
    """
    try:
        value = float(seconds)
    except (TypeError, ValueError):
        return "0ms"
    if not math.isfinite(value) or value < 0:
        return "0ms"
    return f"{round(value * 1000)}ms"


def format_ping_text(elapsed: float, latency: float) -> str:
    return f"Pong! Response Time: {format_ms(elapsed)} | WebSocket Ping: {format_ms(latency)}"


def format_ping_interaction(latency: float, elapsed: float) -> str:
    # Field order intentionally differs from format_ping_text.
    return f"Pong! WebSocket Ping: {format_ms(latency)} | Response Time: {format_ms(elapsed)}"


def echo_text(content: str, prefix: str, name: str = "echo") -> str:
    """
    "!echo hello world" -> "hello world"
    "!echo"             -> ECHO_PROMPT
    """
    head = f"{prefix}{name}"
    rest = content[len(head):] if content.startswith(head) else content
    # exactly one separator; anything after it is echoed verbatim
    if rest[:1].isspace():
        rest = rest[1:]
    if not rest.strip():
        return ECHO_PROMPT
    return rest


def echo_option(value: Any) -> str:
    if value is None:
        return ECHO_PROMPT
    s = str(value)
    return s if s.strip() else ECHO_PROMPT


def help_text(commands: Iterable[Command], prefix: str) -> str:
    lines = [HELP_HEADER]
    lines.extend(f"- {prefix}{c.name}: {c.description}" for c in commands)
    return "\n".join(lines)


__all__ = [
    "ECHO_PROMPT",
    "HELP_HEADER",
    "invalid_command_notice",
    "format_ms",
    "format_ping_text",
    "format_ping_interaction",
    "echo_text",
    "echo_option",
    "help_text",
]
