"""Plain-text session summary, printed when a ride ends."""

from __future__ import annotations

from velolink.reporting.models import SessionReport, format_duration


class TextReportFormatter:
    """Format a :class:`~velolink.reporting.models.SessionReport` for the console."""

    def format(self, report: SessionReport) -> str:
        lines = [
            "Session report",
            "==============",
            f"Start:     {report.start_time:%Y-%m-%d %H:%M:%S}",
            f"End:       {report.end_time:%Y-%m-%d %H:%M:%S}",
            f"Duration:  {format_duration(report.duration_s)}",
            "",
            f"Max speed: {report.max_speed_kmh:.2f} km/h",
            f"Avg speed: {report.avg_speed_kmh:.2f} km/h",
            f"Distance:  {report.total_distance_m:.2f} m ({report.total_distance_km:.3f} km)",
            f"Readings:  {report.total_speed_readings}"
            f" ({report.avg_distance_per_reading:.2f} m per reading)",
        ]

        if report.speed_intervals_minutes:
            lines += ["", "Time per speed band:"]
            for label, minutes in report.speed_intervals_minutes.items():
                lines.append(f"  {label:>12}  {minutes:6.2f} min")

        return "\n".join(lines)
