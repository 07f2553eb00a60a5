"""
Operator command routing
"""

import logging
from enum import Enum
from typing import TYPE_CHECKING, Optional

import aiohttp

from .rcon_packets import build_request

if TYPE_CHECKING:
    from .context import SupervisorContext
    from .rcon import RemoteSession

log = logging.getLogger(__name__)

QUIT_COMMAND = "quit"


class CommandRoute(Enum):
    PRE_SESSION = "pre_session"
    FORWARDING = "forwarding"


class PreSessionHandler:
    """Acknowledges input while no RCON session is open."""

    def __init__(self, ctx: "SupervisorContext"):
        self.ctx = ctx

    async def handle(self, command: str):
        if command == QUIT_COMMAND:
            self.ctx.notice("Stopping the server before RCON came up...", style="yellow")
            self.ctx.request_quit()
            return
        self.ctx.notice(f'Unable to run "{command}" - RCON not connected yet.', style="yellow")


class ForwardingHandler:
    """Wraps every line into an RCON request and sends it."""

    def __init__(self, ctx: "SupervisorContext", session: "RemoteSession"):
        self.ctx = ctx
        self.session = session

    async def handle(self, command: str):
        self.ctx.record_activity()
        try:
            await self.session.send(build_request(command))
        except (aiohttp.ClientError, ConnectionError, RuntimeError) as e:
            # A dead channel is reported by the session's close event
            log.warning(f"Could not forward command {command!r}: {e}")
            return
        self.ctx.metrics.commands_forwarded += 1


class CommandRouter:
    """Delivers each operator line to exactly one handler.

    Starts in PRE_SESSION and switches to FORWARDING once, when the RCON
    session opens.
    """

    def __init__(self, ctx: "SupervisorContext"):
        self.ctx = ctx
        self.route = CommandRoute.PRE_SESSION
        self._handler = PreSessionHandler(ctx)

    @property
    def handler(self):
        return self._handler

    def begin_forwarding(self, session: "RemoteSession"):
        if self.route is CommandRoute.FORWARDING:
            raise RuntimeError("Command router is already forwarding")
        self._handler = ForwardingHandler(self.ctx, session)
        self.route = CommandRoute.FORWARDING
        log.debug("Operator input now forwarded to RCON")

    async def dispatch(self, line: str) -> Optional[CommandRoute]:
        if self.ctx.exiting:
            return None
        command = line.rstrip("\r\n").strip()
        route, handler = self.route, self._handler
        await handler.handle(command)
        return route
