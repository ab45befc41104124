"""Ride telemetry derived from wheel RPM.

Public API
----------
RpmSample          - one reading in the sliding window
TelemetrySnapshot  - current speed and distance
TelemetryTracker   - sliding-window speed/distance estimator
TelemetrySession   - owns the 1 Hz tick and the final report
"""

from velolink.telemetry.models import RpmSample, TelemetrySnapshot
from velolink.telemetry.session import TelemetrySession
from velolink.telemetry.tracker import TelemetryTracker, bucket_for, rpm_to_mps

__all__ = [
    "RpmSample",
    "TelemetrySession",
    "TelemetrySnapshot",
    "TelemetryTracker",
    "bucket_for",
    "rpm_to_mps",
]
