"""
Pytest configuration and fixtures for the RCON wrapper tests
"""
import asyncio
import io
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from rich.console import Console

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from utils.config import WrapperConfig
from wrapper.activity import ActivityClock
from wrapper.context import SupervisorContext
from wrapper.rcon import SessionEvent, SessionState


class FakeClock:
    """Manually advanced replacement for time.monotonic"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


HOLD = "hold"

FAILED_ATTEMPT = [
    (SessionEvent.ERROR, ConnectionRefusedError("connection refused")),
    (SessionEvent.CLOSE, None),
]


class FakeSession:
    """Scripted stand-in for RemoteSession.

    The script is a list of (event, payload) pairs. (HOLD, asyncio.Event)
    pauses the stream until the event is set.
    """

    def __init__(self, config, script):
        self.config = config
        self.script = list(script)
        self.state = SessionState.CONNECTING
        self.ever_opened = False
        self.sent = []
        self.closed = False

    async def events(self):
        for event, payload in self.script:
            if event == HOLD:
                await payload.wait()
                continue
            if event is SessionEvent.OPEN:
                self.state = SessionState.OPEN
            elif event in (SessionEvent.ERROR, SessionEvent.CLOSE):
                self.state = SessionState.CLOSED
            yield event, payload

    async def send(self, payload):
        if self.state is not SessionState.OPEN:
            raise ConnectionResetError("RCON session is not open")
        self.sent.append(payload)

    async def close(self):
        self.closed = True
        self.state = SessionState.CLOSED


class ScriptedSessions:
    """Session factory handing out one scripted session per connection attempt.

    The last script is reused once the list runs out. ``on_attempt`` runs
    before each session is created.
    """

    def __init__(self, *scripts, on_attempt=None):
        self.scripts = list(scripts)
        self.on_attempt = on_attempt
        self.sessions = []

    def __call__(self, config):
        if self.on_attempt:
            self.on_attempt()
        index = min(len(self.sessions), len(self.scripts) - 1)
        session = FakeSession(config, self.scripts[index])
        self.sessions.append(session)
        return session


def make_config(**overrides) -> WrapperConfig:
    settings = {
        "rcon_port": "28016",
        "rcon_password": "secret",
        "inactivity_timeout": 300.0,
        "rcon_wait_timeout": 300.0,
        "watchdog_interval": 15.0,
        "rcon_retry_delay": 0.0,
        "shutdown_grace": 2.0,
    }
    settings.update(overrides)
    return WrapperConfig(**settings)


def make_console() -> Console:
    return Console(file=io.StringIO(), width=200, color_system=None, soft_wrap=True)


def console_text(console: Console) -> str:
    return console.file.getvalue()


def make_fake_process():
    process = MagicMock()
    process.terminate.return_value = True
    return process


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def config():
    return make_config()


@pytest.fixture
def ctx(config, fake_clock):
    """Context with a fake clock, captured console and a mock server process"""
    clock = ActivityClock(config.inactivity_timeout, config.rcon_wait_timeout, clock=fake_clock)
    context = SupervisorContext(config, console=make_console(), clock=clock)
    context.process = make_fake_process()
    return context
