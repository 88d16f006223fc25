"""
Entrypoint for the `pongbot` console script.

A BotError (bad token, unreachable gateway, bad env values) is a known startup
failure and gets a single line on stdout. Anything else is a bug and keeps its
traceback, followed by the usual operator checks. Both exit with status 1.
"""

import logging
import sys

from pongbot.discord.bot import run_bot
from pongbot.errors import BotError


def main() -> None:
    try:
        run_bot()
    except BotError as exc:
        # Expected startup failures: one readable line, no traceback.
        print(f"\n❌ Discord bot failed to start: {exc}\n")
        sys.exit(1)
    except Exception:
        # Unexpected: keep the traceback
        logging.basicConfig(level=logging.ERROR)
        logging.exception("Discord bot failed to start.")
        print("\n❌ Discord bot failed to start.")
        print("   See error above. Most common causes:")
        print("   - DISCORD_BOT_TOKEN (or TOKEN) missing or not loaded into the environment")
        print("   - Discord unreachable from this host")
        print("   - DISCORD_SYNC_GUILD_ONLY=true without DISCORD_GUILD_ID\n")
        sys.exit(1)


if __name__ == "__main__":
    main()
