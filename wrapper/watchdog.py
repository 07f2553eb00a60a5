"""
Liveness watchdog
"""

import asyncio
import logging
from typing import Optional

from .context import ExitReason, SupervisorContext

log = logging.getLogger(__name__)


class LivenessWatchdog:
    """Periodically compares the activity clock against the thresholds.

    Reads the clock only; every breach goes through the context's exit routine.
    """

    def __init__(self, ctx: SupervisorContext, interval: Optional[float] = None,
                 strict_rcon_watch: Optional[bool] = None):
        self.ctx = ctx
        self.interval = ctx.config.watchdog_interval if interval is None else interval
        self.strict_rcon_watch = (ctx.config.strict_rcon_watch
                                  if strict_rcon_watch is None else strict_rcon_watch)
        self.ticks = 0

    def tick(self) -> Optional[ExitReason]:
        if self.ctx.exiting:
            return None
        self.ticks += 1
        clock = self.ctx.clock
        now = clock.now()

        if clock.inactivity_exceeded(now):
            self.ctx.request_exit(
                ExitReason.INACTIVITY,
                detail=f"> {clock.inactivity_timeout:.0f}s without output",
            )
            return ExitReason.INACTIVITY

        if self.strict_rcon_watch and clock.rcon_wait_exceeded(now):
            self.ctx.request_exit(
                ExitReason.RCON_WAIT_TIMEOUT,
                detail=f"> {clock.rcon_wait_timeout:.0f}s without connecting",
            )
            return ExitReason.RCON_WAIT_TIMEOUT

        log.debug(f"Watchdog tick {self.ticks}: idle {clock.idle_for(now):.1f}s")
        return None

    async def run(self):
        while not self.ctx.exiting:
            await asyncio.sleep(self.interval)
            self.tick()
