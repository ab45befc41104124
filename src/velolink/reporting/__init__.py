"""Session report model and output."""

from velolink.reporting.formatter import TextReportFormatter
from velolink.reporting.models import SessionReport, format_duration
from velolink.reporting.writer import JsonReportWriter

__all__ = [
    "JsonReportWriter",
    "SessionReport",
    "TextReportFormatter",
    "format_duration",
]
