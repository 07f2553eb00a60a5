"""
Game server process ownership and output relay
"""

import asyncio
import logging
import os
import signal
from typing import Callable, Optional, TYPE_CHECKING

from .dedup import ProgressDeduplicator
from .router import CommandRoute

if TYPE_CHECKING:
    from .context import SupervisorContext

log = logging.getLogger(__name__)

# Generous line limit: some game servers print very long asset lists
STREAM_LIMIT = 1024 * 1024


class ServerProcess:
    """Owns the game server child process.

    Use as an async context manager so the child is terminated on every exit
    path. The child is signalled at most once.
    """

    def __init__(self, command: str, shutdown_grace: float = 10.0):
        if not command or not command.strip():
            raise ValueError("A startup command is required")
        self.command = command
        self.shutdown_grace = shutdown_grace
        self.process: Optional[asyncio.subprocess.Process] = None
        self.signals_sent = 0

    async def start(self) -> "ServerProcess":
        # Own session so SIGTERM reaches everything the shell starts
        self.process = await asyncio.create_subprocess_shell(
            self.command,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=True,
            limit=STREAM_LIMIT,
        )
        log.info(f"Started game server (pid {self.process.pid})")
        return self

    async def __aenter__(self) -> "ServerProcess":
        return await self.start()

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.shutdown()

    @property
    def pid(self) -> Optional[int]:
        return self.process.pid if self.process else None

    @property
    def running(self) -> bool:
        return self.process is not None and self.process.returncode is None

    @property
    def exit_code(self) -> Optional[int]:
        if self.process is None or self.process.returncode is None:
            return None
        return self.process.returncode if self.process.returncode >= 0 else None

    @property
    def exit_signal(self) -> Optional[str]:
        if self.process is None or self.process.returncode is None or self.process.returncode >= 0:
            return None
        try:
            return signal.Signals(-self.process.returncode).name
        except ValueError:
            return str(-self.process.returncode)

    @property
    def status(self) -> str:
        if self.process is None:
            return "not started"
        if self.running:
            return "running"
        return f"exited(code={self.exit_code}, signal={self.exit_signal})"

    def terminate(self) -> bool:
        """Send SIGTERM once. Returns True if a signal was sent."""
        if not self.running or self.signals_sent:
            return False
        self.signals_sent += 1
        try:
            os.killpg(self.process.pid, signal.SIGTERM)
        except ProcessLookupError:
            return False
        except PermissionError:
            self.process.terminate()
        log.info(f"Sent SIGTERM to game server (pid {self.process.pid})")
        return True

    async def wait(self) -> int:
        return await self.process.wait()

    async def shutdown(self):
        if self.process is None:
            return
        self.terminate()
        if self.process.returncode is not None:
            return
        try:
            await asyncio.wait_for(self.process.wait(), timeout=self.shutdown_grace)
        except asyncio.TimeoutError:
            log.warning(
                f"Game server (pid {self.process.pid}) still running "
                f"{self.shutdown_grace:.0f}s after SIGTERM"
            )


async def pump_lines(stream: asyncio.StreamReader, on_line: Callable[[str], None]):
    """Feed every line of ``stream`` to ``on_line`` until EOF."""
    while True:
        try:
            raw = await stream.readline()
        except ValueError as e:
            log.warning(f"Dropped oversized output line: {e}")
            continue
        if not raw:
            break
        on_line(raw.decode("utf-8", errors="replace").rstrip("\r\n"))


class ConsoleRelay:
    """Local output consumer.

    Every line passes the deduplicator first. Before the RCON session opens,
    accepted lines go to the console. Afterwards RCON is the output source:
    accepted lines are only drained.
    """

    def __init__(self, ctx: "SupervisorContext", dedup: Optional[ProgressDeduplicator] = None):
        self.ctx = ctx
        self.dedup = dedup or ProgressDeduplicator()
        self.drained = 0

    def on_line(self, line: str):
        if self.ctx.exiting:
            return
        if not self.dedup.accept(line):
            self.ctx.metrics.lines_suppressed += 1
            return
        if self.ctx.router.route is CommandRoute.FORWARDING:
            self.drained += 1
            self.ctx.record_activity()
            return
        self.ctx.emit(line)
        self.ctx.record_activity()
        self.ctx.metrics.lines_relayed += 1
