"""TelemetrySession — owns the 1 Hz tick thread and the end-of-ride report."""

from __future__ import annotations

import logging
import threading

from velolink.reporting.models import SessionReport
from velolink.telemetry.tracker import TICK_S, TelemetryTracker

_logger = logging.getLogger(__name__)


class TelemetrySession:
    """Runs :meth:`TelemetryTracker.tick` on a background thread.

    :meth:`stop` cancels the ticker and hands the final report to
    *report_writer* exactly once; later calls return the same report without
    writing again.

    Parameters
    ----------
    tracker:
        The :class:`TelemetryTracker` to drive.
    report_writer:
        Object with ``write(report)``, e.g.
        :class:`~velolink.reporting.writer.JsonReportWriter`. ``None`` skips
        writing.
    interval_s:
        Tick period in seconds.
    """

    def __init__(self, tracker: TelemetryTracker, report_writer=None, interval_s: float = TICK_S) -> None:
        self.tracker = tracker
        self._writer = report_writer
        self._interval = interval_s
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._stop_lock = threading.Lock()
        self._final_report: SessionReport | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._thread is not None

    @property
    def final_report(self) -> SessionReport | None:
        return self._final_report

    def start(self) -> None:
        """Start ticking. Calling it on a running session does nothing."""
        if self._thread is not None:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, daemon=True, name="TelemetryTicker")
        self._thread.start()
        _logger.info("Telemetry session started")

    def stop(self) -> SessionReport:
        """Cancel the ticker and produce the final report (idempotent)."""
        with self._stop_lock:
            if self._final_report is not None:
                return self._final_report

            self._stop_event.set()
            if self._thread is not None:
                self._thread.join(timeout=2.0)
                self._thread = None

            report = self.tracker.build_report()
            self._final_report = report
            if self._writer is not None:
                try:
                    self._writer.write(report)
                except OSError as exc:
                    _logger.error("Could not write session report: %s", exc)
            _logger.info("Telemetry session stopped")
            return report

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _run(self) -> None:
        while not self._stop_event.wait(self._interval):
            self.tracker.tick()
