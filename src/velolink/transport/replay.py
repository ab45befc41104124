"""ReplayLineSource — plays back a recorded device log instead of a serial port."""

from __future__ import annotations

import time
from pathlib import Path


class ReplayLineSource:
    """Yields the non-empty lines of a text file, optionally paced.

    ``exhausted`` turns True once every line has been read.
    """

    def __init__(self, path: str | Path, interval_s: float = 0.0, _sleep_fn=time.sleep) -> None:
        self.path = Path(path)
        self._interval = interval_s
        self._sleep = _sleep_fn
        self._lines: list[str] = []
        self._index = 0
        self.exhausted = False

    @property
    def is_connected(self) -> bool:
        return not self.exhausted

    def connect(self) -> bool:
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError:
            return False
        self._lines = [ln.strip() for ln in text.splitlines() if ln.strip()]
        self._index = 0
        self.exhausted = not self._lines
        return True

    def disconnect(self) -> None:
        self.exhausted = True

    def read_line(self) -> str | None:
        if self._index >= len(self._lines):
            self.exhausted = True
            return None
        if self._index and self._interval:
            self._sleep(self._interval)
        line = self._lines[self._index]
        self._index += 1
        if self._index >= len(self._lines):
            self.exhausted = True
        return line
