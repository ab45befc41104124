"""Session report model — the document written when a ride ends."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


def format_duration(seconds: float) -> str:
    """Return *seconds* as ``H:MM:SS``."""
    total = int(round(seconds))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours}:{minutes:02d}:{secs:02d}"


@dataclass(frozen=True)
class SessionReport:
    """Immutable snapshot of one telemetry session.

    ``speed_intervals_minutes`` maps a speed-bucket label (``"10-20km/h"``)
    to the minutes spent in it; buckets never entered are omitted.
    """

    start_time: datetime
    end_time: datetime
    duration_s: float
    max_speed_kmh: float
    avg_speed_kmh: float
    total_distance_m: float
    total_speed_readings: int
    speed_intervals_minutes: dict[str, float] = field(default_factory=dict)

    @property
    def total_distance_km(self) -> float:
        return self.total_distance_m / 1000.0

    @property
    def avg_distance_per_reading(self) -> float:
        if not self.total_speed_readings:
            return 0.0
        return self.total_distance_m / self.total_speed_readings

    def to_dict(self) -> dict:
        """Return the JSON document layout consumed by downstream tools."""
        return {
            "sessionInfo": {
                "startTime": self.start_time.isoformat(),
                "endTime": self.end_time.isoformat(),
                "duration": format_duration(self.duration_s),
                "durationSeconds": round(self.duration_s, 3),
            },
            "speedMetrics": {
                "maxSpeed": f"{self.max_speed_kmh:.2f} km/h",
                "avgSpeed": f"{self.avg_speed_kmh:.2f} km/h",
                "speedIntervalsMinutes": dict(self.speed_intervals_minutes),
            },
            "distanceMetrics": {
                "totalDistance": round(self.total_distance_m, 2),
                "totalDistanceKm": round(self.total_distance_km, 3),
            },
            "additionalData": {
                "totalSpeedReadings": self.total_speed_readings,
                "avgDistancePerReading": round(self.avg_distance_per_reading, 2),
            },
        }
