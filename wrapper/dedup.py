"""
Suppression of repeated "Loading Prefab Bundle" progress lines
"""

from typing import Set

PROGRESS_PREFIX = "Loading Prefab Bundle "


class SeenProgressSet:
    """Progress tokens already shown during this run. Never pruned."""

    def __init__(self):
        self._tokens: Set[str] = set()

    def __contains__(self, token: str) -> bool:
        return token in self._tokens

    def __len__(self) -> int:
        return len(self._tokens)

    def add(self, token: str):
        self._tokens.add(token)


def progress_token(line: str):
    """Return the progress token of a progress line, or None for other lines."""
    if not line.startswith(PROGRESS_PREFIX):
        return None
    return line[len(PROGRESS_PREFIX):].strip()


class ProgressDeduplicator:
    """Decides whether an output line reaches the console."""

    def __init__(self, seen: SeenProgressSet = None):
        self.seen = seen if seen is not None else SeenProgressSet()
        self.suppressed = 0

    def accept(self, line: str) -> bool:
        token = progress_token(line)
        if token is None:
            return True
        if token in self.seen:
            self.suppressed += 1
            return False
        self.seen.add(token)
        return True
