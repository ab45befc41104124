"""PendingBuffer — bounded FIFO of lines received while dispatch is paused."""

from __future__ import annotations

import logging
import threading
from collections import deque

from velolink.dispatch.classifier import RawLine

_logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 50


class PendingBuffer:
    """Holds at most *capacity* lines; appending to a full buffer drops the oldest."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self._lines: deque[RawLine] = deque(maxlen=capacity)
        self._lock = threading.Lock()
        self.dropped: int = 0

    @property
    def capacity(self) -> int:
        return self._lines.maxlen or 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._lines)

    def append(self, line: RawLine) -> None:
        with self._lock:
            if len(self._lines) == self._lines.maxlen:
                evicted = self._lines[0]
                self.dropped += 1
                _logger.warning("Pending buffer full, dropping oldest line %r", evicted.text)
            self._lines.append(line)

    def snapshot(self) -> list[RawLine]:
        """Return the buffered lines oldest-first without removing them."""
        with self._lock:
            return list(self._lines)

    def take_all(self) -> list[RawLine]:
        """Remove and return every buffered line, oldest first."""
        with self._lock:
            lines = list(self._lines)
            self._lines.clear()
            return lines

    def clear(self) -> int:
        """Drop everything; return how many lines were discarded."""
        with self._lock:
            count = len(self._lines)
            self._lines.clear()
            return count
