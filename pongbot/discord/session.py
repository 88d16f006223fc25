from __future__ import annotations

import asyncio
import logging
import time
from enum import Enum
from typing import TYPE_CHECKING, Callable, Dict, FrozenSet, List, Optional

from .commands.shared import format_ms

if TYPE_CHECKING:
    from ..config import BotSettings
    from .commands.registry import CommandRegistry
    from .gateway import Gateway

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    UNSTARTED = "unstarted"
    CONNECTING = "connecting"
    READY = "ready"
    RUNNING = "running"
    CLOSING = "closing"
    CLOSED = "closed"


_TRANSITIONS: Dict[SessionState, FrozenSet[SessionState]] = {
    SessionState.UNSTARTED: frozenset({SessionState.CONNECTING, SessionState.CLOSING}),
    SessionState.CONNECTING: frozenset({SessionState.READY, SessionState.CLOSING}),
    SessionState.READY: frozenset({SessionState.RUNNING, SessionState.CLOSING}),
    SessionState.RUNNING: frozenset({SessionState.CLOSING}),
    SessionState.CLOSING: frozenset({SessionState.CLOSED}),
    SessionState.CLOSED: frozenset(),
}


class Session:
    """
    The one live gateway session of the process.

    Lifecycle:
      UNSTARTED -> CONNECTING   serve(): validate settings, log in, open the gateway
      CONNECTING -> READY       first gateway "ready" event (not login returning)
      READY -> RUNNING          slash commands upserted; serve() keeps waiting for stop
      RUNNING -> CLOSING        stop event set (SIGINT/SIGTERM) or connection lost
      CLOSING -> CLOSED         gateway closed

    close() always runs when serve() exits, however it exits.
    """

    def __init__(
        self,
        settings: "BotSettings",
        gateway: "Gateway",
        registry: "CommandRegistry",
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = settings
        self.gateway = gateway
        self.registry = registry
        self._clock = clock

        self._state = SessionState.UNSTARTED
        self._started_at: Optional[float] = None
        self._connection: Optional[asyncio.Task] = None
        self._ready_seen = False

        # Identity of the authenticated bot user, known once ready.
        self.user_id: Optional[int] = None
        self.user_name: str = ""

        self.registered: List[str] = []
        self.failed_registrations: List[str] = []

    @property
    def state(self) -> SessionState:
        return self._state

    def _transition(self, new: SessionState) -> None:
        if new not in _TRANSITIONS[self._state]:
            raise RuntimeError(f"invalid session transition {self._state.value} -> {new.value}")
        logger.debug("session %s -> %s", self._state.value, new.value)
        self._state = new

    # -------------------------
    # Startup / main wait
    # -------------------------

    async def serve(self, stop: asyncio.Event) -> None:
        """
        Run until `stop` is set or the gateway connection ends.

        Raises ConfigError (bad/missing token) or GatewayConnectError (initial
        connection failed). There is no retry; the caller decides to exit.
        """
        if self._state is not SessionState.UNSTARTED:
            raise RuntimeError("session can only be served once")

        self._started_at = self._clock()
        try:
            self.settings.check()
            self._transition(SessionState.CONNECTING)
            await self.gateway.login(self.settings.discord_bot_token)

            self._connection = asyncio.create_task(self.gateway.connect(), name="pongbot-gateway")
            waiter = asyncio.create_task(stop.wait(), name="pongbot-stop")
            try:
                done, _ = await asyncio.wait({self._connection, waiter}, return_when=asyncio.FIRST_COMPLETED)
            finally:
                waiter.cancel()

            if self._connection in done:
                # re-raises GatewayConnectError / ConfigError from connect()
                self._connection.result()
                logger.warning("gateway connection ended without a stop signal; shutting down")
            else:
                logger.info("stop signal received; shutting down")
        finally:
            await self.close()

    async def on_ready(self) -> None:
        """
        Wired to the gateway "ready" event. Only the first one drives the state
        machine; later ones (after a transport-level reconnect) are just logged.
        """
        if self._ready_seen:
            logger.info("gateway ready again (reconnect) as %s", self.gateway.self_name)
            return
        if self._state is not SessionState.CONNECTING:
            logger.warning("ignoring ready event in state=%s", self._state.value)
            return

        self._ready_seen = True
        self._transition(SessionState.READY)
        self.user_id = self.gateway.self_id
        self.user_name = self.gateway.self_name

        started = self._started_at if self._started_at is not None else self._clock()
        logger.info("Bot is now running as %s. Startup time: %s", self.user_name, format_ms(self._clock() - started))
        logger.info("Press CTRL-C to exit.")

        await self.register_slash_commands()

        # close() may have started while we were registering
        if self._state is SessionState.READY:
            self._transition(SessionState.RUNNING)

    async def register_slash_commands(self) -> List[str]:
        """
        Upsert every slash-enabled command. A failure is logged and the loop moves on;
        the affected command is simply unavailable as a slash command.

        Returns the names that failed.
        """
        self.registered = []
        self.failed_registrations = []

        for command in self.registry.slash_commands():
            try:
                await self.gateway.upsert_slash_command(
                    command.name,
                    command.description,
                    command.handler.slash_options,
                )
            except Exception:
                logger.exception("Error creating '%s' slash command", command.name)
                self.failed_registrations.append(command.name)
                continue
            self.registered.append(command.name)

        logger.info(
            "slash commands upserted: %s (failed: %s)",
            ", ".join(self.registered) or "none",
            ", ".join(self.failed_registrations) or "none",
        )
        return list(self.failed_registrations)

    # -------------------------
    # Shutdown
    # -------------------------

    async def close(self) -> None:
        if self._state in (SessionState.CLOSING, SessionState.CLOSED):
            return
        self._transition(SessionState.CLOSING)
        try:
            await self.gateway.close()
        finally:
            conn = self._connection
            if conn is not None:
                if not conn.done():
                    conn.cancel()
                try:
                    await conn
                except asyncio.CancelledError:
                    pass
                except Exception:
                    # already surfaced by serve()
                    logger.debug("gateway task finished during shutdown", exc_info=True)
            self._transition(SessionState.CLOSED)
            logger.info("session closed")


__all__ = ["SessionState", "Session"]
