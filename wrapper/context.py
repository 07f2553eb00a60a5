"""
Supervisor context - the one object every handler receives
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, TYPE_CHECKING

from rich.console import Console
from rich.markup import escape

from utils.config import WrapperConfig
from .activity import ActivityClock
from .router import CommandRouter

if TYPE_CHECKING:
    from .log_sink import LogSink
    from .process import ServerProcess
    from .rcon import RemoteSession

log = logging.getLogger(__name__)

FATAL_EXIT_CODE = 1
CLEAN_EXIT_CODE = 0


class ExitReason(Enum):
    OPERATOR_QUIT = "operator quit"
    SIGNAL = "termination signal received"
    INACTIVITY = "no output"
    RCON_WAIT_TIMEOUT = "RCON wait timeout"
    RCON_DISCONNECT = "RCON disconnect"
    INTERNAL_ERROR = "supervisor error"


@dataclass
class SupervisorMetrics:
    start_time: float = field(default_factory=time.time)
    end_time: Optional[float] = None
    lines_relayed: int = 0
    lines_suppressed: int = 0
    rcon_messages: int = 0
    decode_failures: int = 0
    commands_forwarded: int = 0
    connect_attempts: int = 0

    @property
    def duration(self) -> float:
        end = self.end_time or time.time()
        return end - self.start_time


class SupervisorContext:
    """Shared state for one supervisor run.

    Handlers never touch the fields of the clock or the route directly; they
    go through ``record_activity``, ``begin_forwarding``, ``request_termination``
    and ``request_exit``.
    """

    def __init__(self, config: WrapperConfig, console: Optional[Console] = None,
                 clock: Optional[ActivityClock] = None):
        self.config = config
        self.console = console or Console(soft_wrap=True)
        self.clock = clock or ActivityClock(config.inactivity_timeout, config.rcon_wait_timeout)
        self.metrics = SupervisorMetrics()
        self.router = CommandRouter(self)
        self.process: Optional["ServerProcess"] = None
        self.log_sink: Optional["LogSink"] = None

        self.quit_requested = False
        self.exit_code: Optional[int] = None
        self.exit_reason: Optional[ExitReason] = None
        self._exit_event = asyncio.Event()

    # Console

    def emit(self, line: str):
        """Write a relayed line to the operator console, untouched."""
        self.console.out(line, highlight=False)

    def notice(self, message: str, style: str = "cyan"):
        self.console.print(escape(message), style=style)

    # Narrow mutators

    def record_activity(self) -> float:
        return self.clock.record_activity()

    def begin_forwarding(self, session: "RemoteSession"):
        self.router.begin_forwarding(session)

    def request_termination(self) -> bool:
        """Ask the game server to stop. Safe to call any number of times."""
        if self.process is None:
            return False
        return self.process.terminate()

    def request_quit(self):
        self.quit_requested = True
        if self.process is not None and not self.process.running:
            # No exit left to wait for
            self.request_exit(ExitReason.OPERATOR_QUIT, code=CLEAN_EXIT_CODE)
            return
        self.request_termination()

    # Exit

    @property
    def exiting(self) -> bool:
        return self.exit_code is not None

    def request_exit(self, reason: ExitReason, code: int = FATAL_EXIT_CODE,
                     detail: Optional[str] = None) -> bool:
        """Terminal exit routine. Only the first call has any effect."""
        if self.exiting:
            log.debug(f"Exit already requested ({self.exit_reason.value}), ignoring {reason.value}")
            return False

        self.exit_code = code
        self.exit_reason = reason
        self.metrics.end_time = time.time()

        message = reason.value if not detail else f"{reason.value} ({detail})"
        if code == CLEAN_EXIT_CODE:
            self.notice(f"[Supervisor] {message}. Shutting down...", style="yellow")
            log.info(f"Shutting down: {message}")
        else:
            self.notice(f"[Watchdog] {message}. Restarting server...", style="bold red")
            log.error(f"Fatal: {message}")

        self.request_termination()
        self._exit_event.set()
        return True

    async def wait_for_exit(self) -> int:
        await self._exit_event.wait()
        return self.exit_code
