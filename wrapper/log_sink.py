"""
Append-only log of RCON messages
"""

import logging
from pathlib import Path
from typing import Callable, Optional, TextIO

log = logging.getLogger(__name__)

SEPARATOR = "\n"


class LogSink:
    """Best-effort persistence of RCON pushes.

    The file is truncated once by ``open`` and only appended to afterwards.
    Write failures are reported through ``on_error`` and otherwise ignored.
    """

    def __init__(self, path: str, on_error: Optional[Callable[[str], None]] = None):
        self.path = Path(path)
        self.on_error = on_error
        self._file: Optional[TextIO] = None
        self.failures = 0

    def open(self):
        try:
            if self.path.parent and not self.path.parent.exists():
                self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text("")
            self._file = open(self.path, "a", encoding="utf-8")
        except OSError as e:
            self._report(f"Could not open log file {self.path}: {e}")

    def append(self, message: str) -> bool:
        if self._file is None:
            return False
        try:
            self._file.write(SEPARATOR + message)
            # Flushed per message, the file is tailed while the server runs
            self._file.flush()
        except OSError as e:
            self._report(f"AppendFile error: {e}")
            return False
        return True

    def close(self):
        if self._file is None:
            return
        try:
            self._file.close()
        except OSError as e:
            log.warning(f"Error closing log file {self.path}: {e}")
        self._file = None

    def _report(self, message: str):
        self.failures += 1
        log.error(message)
        if self.on_error:
            self.on_error(message)
