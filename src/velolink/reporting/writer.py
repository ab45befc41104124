"""JSON session-report writer."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from velolink.reporting.models import SessionReport

_logger = logging.getLogger(__name__)


class JsonReportWriter:
    """Writes each report to ``<report_dir>/session_report_<start>.json``."""

    def __init__(self, report_dir: str | Path = "reports") -> None:
        self._dir = Path(report_dir)

    def path_for(self, report: SessionReport) -> Path:
        stamp = report.start_time.strftime("%Y%m%d_%H%M%S")
        return self._dir / f"session_report_{stamp}.json"

    def write(self, report: SessionReport) -> Path:
        """Write *report* (UTF-8, indented) and return the file path."""
        self._dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(report)
        path.write_text(json.dumps(report.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
        _logger.info("Session report written to %s", path)
        return path
