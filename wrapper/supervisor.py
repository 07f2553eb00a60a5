"""
Game server supervisor - wires the launcher, relay, router, RCON session
and watchdog onto one event loop
"""

import asyncio
import logging
import signal
import sys
import threading
from typing import Callable, List, Optional, Sequence, Union

from rich.console import Console

from utils.config import ConfigError, WrapperConfig
from .context import CLEAN_EXIT_CODE, FATAL_EXIT_CODE, ExitReason, SupervisorContext
from .log_sink import LogSink
from .process import ConsoleRelay, ServerProcess, pump_lines
from .rcon import RconSessionManager
from .watchdog import LivenessWatchdog

log = logging.getLogger(__name__)

MISSING_COMMAND_MESSAGE = "Error: Please specify a startup command."


def join_command(command: Union[str, Sequence[str]]) -> str:
    if isinstance(command, str):
        return command.strip()
    return " ".join(command).strip()


class GameServerSupervisor:
    """Runs one game server until a fatal condition or a deliberate shutdown.

    ``run()`` returns the process exit code: 0 for a deliberate shutdown,
    1 for anything the hosting platform should restart us for.
    """

    def __init__(self,
                 command: Union[str, Sequence[str]],
                 config: WrapperConfig,
                 console: Optional[Console] = None,
                 session_factory: Optional[Callable] = None,
                 operator_input: Optional[asyncio.StreamReader] = None,
                 install_signal_handlers: bool = True):
        self.command = join_command(command)
        if not self.command:
            raise ConfigError(MISSING_COMMAND_MESSAGE)

        self.config = config
        self.ctx = SupervisorContext(config, console)
        self.relay = ConsoleRelay(self.ctx)
        self.session_manager = RconSessionManager(self.ctx, session_factory)
        self.watchdog = LivenessWatchdog(self.ctx)
        self.log_sink = LogSink(config.log_file, on_error=lambda m: self.ctx.notice(m, style="red"))

        self._operator_input = operator_input
        self._install_signal_handlers = install_signal_handlers
        self._signals: List[int] = []

    async def _open_operator_input(self) -> Optional[asyncio.StreamReader]:
        if self._operator_input is not None:
            return self._operator_input
        stdin = getattr(sys.stdin, "buffer", None)
        if stdin is None or stdin.closed:
            return None

        reader = asyncio.StreamReader()
        self._start_stdin_thread(stdin, reader)
        return reader

    def _start_stdin_thread(self, stdin, reader: asyncio.StreamReader):
        """Read operator lines on a thread so stdin keeps its blocking mode.

        A TTY shares one file description between stdin and stdout, so putting
        stdin into non-blocking mode would make console writes fail.
        """
        loop = asyncio.get_running_loop()

        def stdin_forwarder():
            try:
                for data in iter(stdin.readline, b""):
                    loop.call_soon_threadsafe(reader.feed_data, data)
                loop.call_soon_threadsafe(reader.feed_eof)
            except (OSError, ValueError) as e:
                log.warning(f"Operator input unavailable: {e}")
            except RuntimeError:
                # Event loop already closed
                return

        threading.Thread(target=stdin_forwarder, name="operator_input", daemon=True).start()

    async def read_operator_input(self):
        reader = await self._open_operator_input()
        if reader is None:
            return
        while not self.ctx.exiting:
            try:
                line = await reader.readline()
            except ValueError as e:
                log.warning(f"Dropped oversized operator input: {e}")
                continue
            if not line:
                log.debug("Operator input closed")
                return
            await self.ctx.router.dispatch(line.decode("utf-8", errors="replace"))

    async def watch_exit(self, server: ServerProcess):
        await server.wait()
        self.ctx.notice(
            f"Main game process exited with code {server.exit_code}, signal {server.exit_signal}",
            style="yellow",
        )
        if self.ctx.quit_requested:
            self.ctx.request_exit(ExitReason.OPERATOR_QUIT, code=CLEAN_EXIT_CODE)

    def _on_task_done(self, task: asyncio.Task):
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            log.error(f"Task {task.get_name()} failed: {error!r}", exc_info=error)
            self.ctx.request_exit(ExitReason.INTERNAL_ERROR, detail=task.get_name())

    def _add_signal_handlers(self):
        if not self._install_signal_handlers:
            return
        loop = asyncio.get_running_loop()

        def signal_handler():
            self.ctx.request_exit(ExitReason.SIGNAL, code=CLEAN_EXIT_CODE)

        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, signal_handler)
            except (NotImplementedError, RuntimeError) as e:
                log.debug(f"Cannot handle {sig!r}: {e}")
                continue
            self._signals.append(sig)

    def _remove_signal_handlers(self):
        loop = asyncio.get_running_loop()
        for sig in self._signals:
            loop.remove_signal_handler(sig)
        self._signals.clear()

    async def run(self) -> int:
        ctx = self.ctx
        # Truncate the log before the server can produce anything
        self.log_sink.open()
        ctx.log_sink = self.log_sink
        self._add_signal_handlers()

        ctx.notice("Starting game server...")
        pumps: List[asyncio.Task] = []
        try:
            async with ServerProcess(self.command, self.config.shutdown_grace) as server:
                ctx.process = server
                ctx.record_activity()

                pumps = [
                    asyncio.create_task(pump_lines(server.process.stdout, self.relay.on_line), name="stdout"),
                    asyncio.create_task(pump_lines(server.process.stderr, self.relay.on_line), name="stderr"),
                ]
                tasks = [
                    asyncio.create_task(self.watch_exit(server), name="exit_watcher"),
                    asyncio.create_task(self.read_operator_input(), name="operator_input"),
                    asyncio.create_task(self.session_manager.run(), name="rcon"),
                    asyncio.create_task(self.watchdog.run(), name="watchdog"),
                ]
                for task in pumps + tasks:
                    task.add_done_callback(self._on_task_done)

                try:
                    await ctx.wait_for_exit()
                finally:
                    for task in tasks:
                        task.cancel()
                    await asyncio.gather(*tasks, return_exceptions=True)
        finally:
            for task in pumps:
                task.cancel()
            await asyncio.gather(*pumps, return_exceptions=True)
            self.log_sink.close()
            self._remove_signal_handlers()
            self.print_summary()

        return ctx.exit_code if ctx.exit_code is not None else FATAL_EXIT_CODE

    def print_summary(self):
        metrics = self.ctx.metrics
        reason = self.ctx.exit_reason.value if self.ctx.exit_reason else "unknown"
        print(f"[SUPERVISOR] Session ended: {reason}", file=sys.stderr)
        print(f"[SUPERVISOR] Duration: {metrics.duration:.1f} seconds", file=sys.stderr)
        print(f"[SUPERVISOR] Lines relayed: {metrics.lines_relayed} "
              f"(suppressed {metrics.lines_suppressed})", file=sys.stderr)
        print(f"[SUPERVISOR] RCON messages: {metrics.rcon_messages}, "
              f"commands forwarded: {metrics.commands_forwarded}, "
              f"connect attempts: {metrics.connect_attempts}", file=sys.stderr)
