"""
Discord integration package.

Design goals:
- Keep pongbot.discord.bot as the stable entrypoint (PongBot + run_bot).
- Commands live in pongbot.discord.commands; the dispatchers and session only see
  the Gateway protocol, never discord.py objects.
"""

from .bot import PongBot, run_bot, serve  # re-export for convenience

__all__ = [
    "PongBot",
    "run_bot",
    "serve",
]
