"""
Remote console (WebRcon) session management
"""

import asyncio
import logging
from enum import Enum
from typing import Any, AsyncIterator, Callable, Optional, Tuple

import aiohttp

from utils.config import WrapperConfig
from .context import ExitReason, SupervisorContext
from .rcon_packets import ValidationError, build_request, decode_push

log = logging.getLogger(__name__)

STATUS_COMMAND = "status"

CONNECT_ERRORS = (aiohttp.ClientError, OSError, asyncio.TimeoutError, ValueError)


class SessionState(Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class SessionEvent(Enum):
    OPEN = "open"
    MESSAGE = "message"
    ERROR = "error"
    CLOSE = "close"


class RemoteSession:
    """One connection attempt to the remote console and its lifetime.

    ``events()`` yields ERROR then CLOSE for a failed attempt, or OPEN, any
    number of MESSAGE events and a final CLOSE for a successful one. A session
    is never reused after it closes.
    """

    def __init__(self, config: WrapperConfig, http: aiohttp.ClientSession):
        self.config = config
        self.http = http
        self.state = SessionState.CONNECTING
        self.ever_opened = False
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None

    async def events(self) -> AsyncIterator[Tuple[SessionEvent, Any]]:
        try:
            self._ws = await asyncio.wait_for(self._connect(), timeout=self.config.connect_timeout)
        except CONNECT_ERRORS as e:
            self.state = SessionState.CLOSED
            yield SessionEvent.ERROR, e
            yield SessionEvent.CLOSE, None
            return

        self.state = SessionState.OPEN
        yield SessionEvent.OPEN, None

        async for msg in self._ws:
            if msg.type == aiohttp.WSMsgType.TEXT:
                yield SessionEvent.MESSAGE, msg.data
            elif msg.type == aiohttp.WSMsgType.BINARY:
                yield SessionEvent.MESSAGE, msg.data.decode("utf-8", errors="replace")
            elif msg.type == aiohttp.WSMsgType.ERROR:
                log.warning(f"RCON channel error: {self._ws.exception()}")
                break

        self.state = SessionState.CLOSED
        yield SessionEvent.CLOSE, self._ws.close_code

    async def _connect(self) -> aiohttp.ClientWebSocketResponse:
        return await self.http.ws_connect(self.config.rcon_url, autoping=True)

    async def send(self, payload: str):
        if self._ws is None or self._ws.closed:
            raise ConnectionResetError("RCON session is not open")
        await self._ws.send_str(payload)

    async def close(self):
        self.state = SessionState.CLOSED
        if self._ws is not None and not self._ws.closed:
            await self._ws.close()


class RconSessionManager:
    """Connects, retries, classifies messages and detects fatal disconnects.

    Retries use a fixed delay and stop once the connect wait reaches the
    configured threshold. A session that has been open is never retried:
    its close ends the run.
    """

    def __init__(self, ctx: SupervisorContext,
                 session_factory: Optional[Callable[[WrapperConfig], Any]] = None):
        self.ctx = ctx
        self._session_factory = session_factory
        self._http: Optional[aiohttp.ClientSession] = None
        self.session = None

    def _new_session(self):
        if self._session_factory is not None:
            return self._session_factory(self.ctx.config)
        return RemoteSession(self.ctx.config, self._http)

    async def run(self):
        if self._session_factory is None:
            self._http = aiohttp.ClientSession()
        try:
            while not self.ctx.exiting:
                self.session = self._new_session()
                self.ctx.metrics.connect_attempts += 1
                log.debug(f"Connecting to RCON at {self.ctx.config.rcon_endpoint} "
                          f"(attempt {self.ctx.metrics.connect_attempts})")
                retry = await self._drive(self.session)
                if not retry or self.ctx.exiting:
                    return
                await asyncio.sleep(self.ctx.config.rcon_retry_delay)
        finally:
            if self.session is not None:
                await self.session.close()
            if self._http is not None:
                await self._http.close()

    async def _drive(self, session) -> bool:
        """Dispatch one session's events. Returns True if a retry is due."""
        retry = False
        events = session.events()
        try:
            async for event, payload in events:
                if self.ctx.exiting:
                    break
                if event is SessionEvent.OPEN:
                    await self._on_open(session)
                elif event is SessionEvent.MESSAGE:
                    self._on_message(payload)
                elif event is SessionEvent.ERROR:
                    retry = self._on_connect_error(payload)
                elif event is SessionEvent.CLOSE:
                    self._on_close(session)
        finally:
            await events.aclose()
        return retry

    async def _on_open(self, session):
        session.ever_opened = True
        self.ctx.clock.clear_rcon_wait()
        self.ctx.record_activity()
        self.ctx.begin_forwarding(session)
        self.ctx.notice("Connected to RCON. Server status -> Running.", style="green")
        log.info(f"RCON session open at {self.ctx.config.rcon_endpoint}")
        try:
            await session.send(build_request(STATUS_COMMAND))
        except (aiohttp.ClientError, ConnectionError) as e:
            log.warning(f"Could not send status request: {e}")

    def _on_message(self, payload: str):
        try:
            push = decode_push(payload)
        except ValidationError as e:
            self.ctx.metrics.decode_failures += 1
            log.warning(f"Invalid JSON from RCON ({e.error_count()} errors): {payload[:200]!r}")
            self.ctx.emit(payload)
            self.ctx.record_activity()
            return

        if not push.message:
            return
        self.ctx.metrics.rcon_messages += 1
        self.ctx.emit(push.message)
        if self.ctx.log_sink is not None:
            self.ctx.log_sink.append(push.message)
        self.ctx.record_activity()

    def _on_connect_error(self, error: BaseException) -> bool:
        clock = self.ctx.clock
        log.debug(f"RCON connect to {self.ctx.config.rcon_endpoint} failed: {error!r}")
        if clock.start_rcon_wait():
            self.ctx.notice("Waiting for RCON to come up...")
            return True
        if clock.rcon_wait_exceeded():
            self.ctx.request_exit(
                ExitReason.RCON_WAIT_TIMEOUT,
                detail=f"> {clock.rcon_wait_timeout:.0f}s without connecting",
            )
            return False
        self.ctx.notice("Waiting for RCON to come up...")
        return True

    def _on_close(self, session):
        if not session.ever_opened:
            # Failed attempt, already handled by the error path
            return
        self.ctx.notice("RCON connection closed unexpectedly.", style="red")
        self.ctx.request_exit(ExitReason.RCON_DISCONNECT)
