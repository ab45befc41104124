"""LineStream — hands device lines from a reader thread to the client's run loop."""

from __future__ import annotations

import logging
import queue
import threading
import time

from velolink.dispatch.classifier import RawLine
from velolink.errors import TransportError

_logger = logging.getLogger(__name__)

_PUT_POLL_S = 0.1


class LineStream:
    """Reads a line source on a daemon thread; the run loop drains the queue.

    Lines are never discarded. When the consumer falls behind and the queue
    fills up, the reader stops pulling from the source until there is room
    again, so the backlog stays in the serial driver's buffer. ``stalls``
    counts how often that happened.

    Parameters
    ----------
    source:
        Object with ``read_line() -> str | None``. File replays also expose
        ``exhausted``, which ends the reader once the last line is queued.
    queue_maxsize:
        Lines held between the reader and the consumer.
    """

    def __init__(self, source, queue_maxsize: int = 256) -> None:
        self._source = source
        self._lines: queue.Queue[RawLine] = queue.Queue(maxsize=queue_maxsize)
        self._halt = threading.Event()
        self._reader: threading.Thread | None = None
        self.error: TransportError | None = None
        self.stalls: int = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def start(self) -> None:
        self._halt.clear()
        self._reader = threading.Thread(target=self._read_loop, daemon=True, name="LineStream")
        self._reader.start()

    def stop(self) -> None:
        """Ask the reader to finish its current read and wait for it."""
        self._halt.set()
        reader, self._reader = self._reader, None
        if reader is not None:
            reader.join(timeout=2.0)

    def get_line(self, timeout: float = 0.1) -> RawLine | None:
        """Next device line in arrival order; None when the queue stays empty for *timeout* s."""
        try:
            return self._lines.get(timeout=timeout)
        except queue.Empty:
            return None

    def queue_size(self) -> int:
        return self._lines.qsize()

    @property
    def finished(self) -> bool:
        """True once the reader has ended by itself and the consumer took every line."""
        if self._reader is not None and self._reader.is_alive():
            return False
        return self._lines.empty()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _read_loop(self) -> None:
        while not self._halt.is_set():
            try:
                text = self._source.read_line()
            except TransportError as exc:
                _logger.error("Transport failed: %s", exc)
                self.error = exc
                return
            if text and not self._offer(RawLine(text, time.monotonic())):
                return
            if getattr(self._source, "exhausted", False):
                return

    def _offer(self, line: RawLine) -> bool:
        """Queue *line*, waiting for room; False if the stream was stopped meanwhile."""
        try:
            self._lines.put_nowait(line)
            return True
        except queue.Full:
            self.stalls += 1
            _logger.warning("Line queue full (%d), pausing reads until the dispatcher catches up", self._lines.maxsize)
        while not self._halt.is_set():
            try:
                self._lines.put(line, timeout=_PUT_POLL_S)
                return True
            except queue.Full:
                continue
        return False
