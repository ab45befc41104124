"""TelemetryTracker — wheel RPM → speed, distance and speed-bucket dwell time."""

from __future__ import annotations

import logging
import math
import threading
import time
from datetime import datetime

from velolink.reporting.models import SessionReport
from velolink.telemetry.models import RpmSample, TelemetrySnapshot

_logger = logging.getLogger(__name__)

WINDOW_S = 1.0
TICK_S = 1.0
_KMH_PER_MPS = 3.6
_BUCKET_WIDTH_KMH = 10
_BUCKET_TOP_KMH = 100
# Speeds in [_BUCKET_TOP_KMH, _OVERFLOW_KMH) belong to no bucket.
_OVERFLOW_KMH = 110
OVERFLOW_BUCKET = "100+km/h"

BUCKET_LABELS: tuple[str, ...] = (
    *(f"{lo}-{lo + _BUCKET_WIDTH_KMH}km/h" for lo in range(0, _BUCKET_TOP_KMH, _BUCKET_WIDTH_KMH)),
    OVERFLOW_BUCKET,
)


def bucket_for(speed_kmh: float) -> str | None:
    """Return the dwell bucket label for *speed_kmh* (None inside the 100–110 gap)."""
    if speed_kmh >= _OVERFLOW_KMH:
        return OVERFLOW_BUCKET
    if speed_kmh >= _BUCKET_TOP_KMH:
        return None
    lo = int(max(speed_kmh, 0.0) // _BUCKET_WIDTH_KMH) * _BUCKET_WIDTH_KMH
    return f"{lo}-{lo + _BUCKET_WIDTH_KMH}km/h"


def rpm_to_mps(rpm: float, wheel_diameter_mm: float) -> float:
    """Ground speed for a wheel of *wheel_diameter_mm* turning at *rpm*.

    ``rpm × π × diameter_m / 60``: one circumference per revolution,
    revolutions per minute → per second.
    """
    return rpm * math.pi * (wheel_diameter_mm / 1000.0) / 60.0


class TelemetryTracker:
    """Sliding-window speed estimator with per-session aggregates.

    Samples enter through :meth:`add_sample`; :meth:`tick` is expected once
    per second and recomputes speed from the mean RPM of the trailing
    one-second window. Both take an internal lock so a tick never observes a
    half-updated window.

    Distance integrates ``speed × 1 s`` per tick regardless of the actual
    tick spacing, while bucket dwell time uses the measured spacing.

    Parameters
    ----------
    _time_fn:
        Callable returning wall-clock seconds — injectable for testing.
    """

    def __init__(self, _time_fn=time.time) -> None:
        self._time_fn = _time_fn
        self._lock = threading.Lock()
        self._reset_state()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def add_sample(self, rpm: float, wheel_diameter_mm: float) -> None:
        """Append one RPM reading and drop readings older than the window."""
        with self._lock:
            now = self._time_fn()
            self._window.append(RpmSample(max(rpm, 0.0), wheel_diameter_mm, now))
            self._evict(now)

    def tick(self) -> TelemetrySnapshot:
        """Recompute speed, distance and bucket dwell; return the new snapshot."""
        with self._lock:
            now = self._time_fn()
            self._evict(now)

            if not self._window:
                self._speed_mps = 0.0
                self._credit_dwell(now, 0.0)
                return self._snapshot()

            avg_rpm = sum(s.rpm for s in self._window) / len(self._window)
            self._speed_mps = rpm_to_mps(avg_rpm, self._window[-1].wheel_diameter_mm)

            speed_kmh = self._speed_mps * _KMH_PER_MPS
            self._max_speed_kmh = max(self._max_speed_kmh, speed_kmh)
            self._speed_readings.append(speed_kmh)

            self._credit_dwell(now, speed_kmh)
            self._total_distance_m += self._speed_mps * TICK_S
            return self._snapshot()

    def snapshot(self) -> TelemetrySnapshot:
        with self._lock:
            return self._snapshot()

    def window_size(self) -> int:
        with self._lock:
            return len(self._window)

    def bucket_dwell_ms(self) -> dict[str, float]:
        """Return a copy of the per-bucket dwell totals in milliseconds."""
        with self._lock:
            return dict(self._dwell_ms)

    def build_report(self) -> SessionReport:
        """Derive an immutable :class:`SessionReport` for the session so far."""
        with self._lock:
            now = self._time_fn()
            readings = self._speed_readings
            avg_kmh = sum(readings) / len(readings) if readings else 0.0
            return SessionReport(
                start_time=datetime.fromtimestamp(self._started_at),
                end_time=datetime.fromtimestamp(now),
                duration_s=max(now - self._started_at, 0.0),
                max_speed_kmh=self._max_speed_kmh,
                avg_speed_kmh=avg_kmh,
                total_distance_m=self._total_distance_m,
                total_speed_readings=len(readings),
                speed_intervals_minutes={
                    label: round(ms / 60_000.0, 2) for label, ms in self._dwell_ms.items() if ms > 0
                },
            )

    def reset(self) -> None:
        """Start a fresh session on the same tracker."""
        with self._lock:
            self._reset_state()
        _logger.info("Telemetry session reset")

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _reset_state(self) -> None:
        now = self._time_fn()
        self._started_at: float = now
        self._window: list[RpmSample] = []
        self._speed_mps: float = 0.0
        self._max_speed_kmh: float = 0.0
        self._total_distance_m: float = 0.0
        self._speed_readings: list[float] = []
        self._dwell_ms: dict[str, float] = dict.fromkeys(BUCKET_LABELS, 0.0)
        self._last_tick_at: float = now
        self._current_bucket: str | None = bucket_for(0.0)

    def _evict(self, now: float) -> None:
        cutoff = now - WINDOW_S
        if self._window and self._window[0].sampled_at < cutoff:
            self._window = [s for s in self._window if s.sampled_at >= cutoff]

    def _credit_dwell(self, now: float, speed_kmh: float) -> None:
        # Time since the previous tick belongs to the bucket chosen at that tick.
        elapsed_ms = max(now - self._last_tick_at, 0.0) * 1000.0
        if self._current_bucket is not None:
            self._dwell_ms[self._current_bucket] += elapsed_ms
        self._current_bucket = bucket_for(speed_kmh)
        self._last_tick_at = now

    def _snapshot(self) -> TelemetrySnapshot:
        return TelemetrySnapshot(
            speed_mps=self._speed_mps,
            speed_kmh=self._speed_mps * _KMH_PER_MPS,
            total_distance_m=self._total_distance_m,
        )
