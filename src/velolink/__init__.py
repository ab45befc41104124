"""Velolink — turns sensor-device serial lines into host input and ride telemetry."""

__version__ = "0.1.0"
