"""Telemetry data models."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RpmSample:
    """One wheel-RPM reading as it entered the sliding window."""

    rpm: float
    """Wheel revolutions per minute. Clamped to >= 0."""

    wheel_diameter_mm: float
    """Wheel diameter in millimetres at the time of the sample."""

    sampled_at: float
    """Wall-clock seconds (``time.time()``) when the sample was added."""


@dataclass(frozen=True)
class TelemetrySnapshot:
    """Instantaneous speed and accumulated distance."""

    speed_mps: float
    speed_kmh: float
    total_distance_m: float
