"""
Activity clock shared by the output relay, the RCON session and the watchdog
"""

import time
from typing import Callable, Optional


class ActivityClock:
    """Two timestamps: last observed activity and start of the RCON wait.

    All timestamps come from ``clock`` (monotonic by default). The clock owns
    the threshold predicates so the session manager and the watchdog can never
    disagree about when a limit has been crossed.
    """

    def __init__(self, inactivity_timeout: float, rcon_wait_timeout: float,
                 clock: Callable[[], float] = time.monotonic):
        self.inactivity_timeout = inactivity_timeout
        self.rcon_wait_timeout = rcon_wait_timeout
        self._clock = clock
        self.last_output_at: float = clock()
        self.rcon_wait_started_at: Optional[float] = None

    def now(self) -> float:
        return self._clock()

    def record_activity(self) -> float:
        now = self._clock()
        if now > self.last_output_at:
            self.last_output_at = now
        return self.last_output_at

    def start_rcon_wait(self) -> bool:
        """Start the connect-wait clock. Returns False if it was already running."""
        if self.rcon_wait_started_at is not None:
            return False
        self.rcon_wait_started_at = self._clock()
        return True

    def clear_rcon_wait(self):
        self.rcon_wait_started_at = None

    def idle_for(self, now: Optional[float] = None) -> float:
        now = self._clock() if now is None else now
        return now - self.last_output_at

    def rcon_waited_for(self, now: Optional[float] = None) -> float:
        if self.rcon_wait_started_at is None:
            return 0.0
        now = self._clock() if now is None else now
        return now - self.rcon_wait_started_at

    def inactivity_exceeded(self, now: Optional[float] = None) -> bool:
        return self.idle_for(now) >= self.inactivity_timeout

    def rcon_wait_exceeded(self, now: Optional[float] = None) -> bool:
        if self.rcon_wait_started_at is None:
            return False
        return self.rcon_waited_for(now) >= self.rcon_wait_timeout
