"""VelolinkClient — wires transport, dispatcher, telemetry and input backend together."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Collection

from velolink.config import Settings, config_changes, load_settings
from velolink.dispatch.actions import NamedAction
from velolink.dispatch.dispatcher import CommandDispatcher
from velolink.dispatch.modes import DEFAULT_MODE
from velolink.reporting.models import SessionReport
from velolink.reporting.writer import JsonReportWriter
from velolink.telemetry.session import TelemetrySession
from velolink.telemetry.tracker import TelemetryTracker
from velolink.transport.stream import LineStream

_logger = logging.getLogger(__name__)


class VelolinkClient:
    """One running bridge between a device and the host.

    The client's :meth:`run` loop is the only consumer of the line stream,
    so lines reach the dispatcher in arrival order.

    Parameters
    ----------
    settings:
        Loaded :class:`~velolink.config.Settings`.
    invoker:
        Input backend (``PynputActionInvoker`` or ``NullActionInvoker``).
    source:
        Line source (``SerialLineSource`` or ``ReplayLineSource``); may be
        None when the client only serves the control API.
    report_writer:
        Writer for the final session report; a
        :class:`~velolink.reporting.writer.JsonReportWriter` on
        ``settings.telemetry.report_dir`` by default.
    config_path:
        File :meth:`reload_settings` re-reads.
    """

    def __init__(
        self,
        settings: Settings,
        invoker,
        source=None,
        report_writer=None,
        config_path: str | Path | None = None,
    ) -> None:
        self.settings = settings
        self.invoker = invoker
        self.source = source
        self._config_path = config_path
        self.tracker = TelemetryTracker()
        self.session = TelemetrySession(
            self.tracker,
            report_writer if report_writer is not None else JsonReportWriter(settings.telemetry.report_dir),
        )
        self.dispatcher = CommandDispatcher(
            invoker,
            telemetry=self.tracker,
            wheel_diameter_mm=settings.telemetry.wheel_diameter_mm,
        )
        self.stream = LineStream(source) if source is not None else None
        self._stop_event = threading.Event()
        self._shutdown_lock = threading.Lock()
        self._report: SessionReport | None = None
        self._custom_triggers: set[str] = set()
        self.apply_settings(settings)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def apply_settings(self, settings: Settings, changed: Collection[str] | None = None) -> None:
        """Push *settings* into the invoker, scenario table and dispatcher.

        *changed* lists the dotted config paths that differ from the settings
        already applied. None applies everything, as on construction; a
        reload passes only what changed so runtime state the file did not
        touch (processing toggled through the API, the selected mode, fire
        counts of custom mappings) is left alone.
        """
        self.settings = settings

        def touched(prefix: str) -> bool:
            return changed is None or any(path == prefix or path.startswith(prefix + ".") for path in changed)

        key_sim = settings.key_simulation
        if touched("key_simulation"):
            if hasattr(self.invoker, "enable"):
                if key_sim.enabled:
                    self.invoker.enable()
                else:
                    self.invoker.disable()
            if hasattr(self.invoker, "set_game_input"):
                self.invoker.set_game_input(key_sim.game_input)

        if touched("scenarios.custom_mappings"):
            self._apply_custom_mappings(settings.scenarios.custom_mappings)

        self.dispatcher.wheel_diameter_mm = settings.telemetry.wheel_diameter_mm
        if changed is None:
            # A fresh dispatcher is already in the default mode.
            switch_mode = settings.scenarios.game_mode != DEFAULT_MODE
        else:
            switch_mode = touched("scenarios.game_mode")
        if switch_mode:
            self.dispatcher.select_mode(settings.scenarios.game_mode)
        if touched("scenarios.processing_enabled"):
            if settings.scenarios.processing_enabled:
                self.dispatcher.enable_processing()
            else:
                self.dispatcher.disable_processing()

    def _apply_custom_mappings(self, mappings: dict[str, str]) -> None:
        scenarios = self.dispatcher.scenarios
        wanted = {trigger.strip().upper(): action for trigger, action in mappings.items()}
        for trigger in self._custom_triggers - wanted.keys():
            scenarios.restore(trigger)
        for trigger, action in wanted.items():
            entry = scenarios.get(trigger)
            if entry is None or entry.action != NamedAction(action):
                scenarios.add(trigger, NamedAction(action), "custom mapping")
        self._custom_triggers = set(wanted)

    def reload_settings(self) -> list[tuple[str, object, object]]:
        """Re-read the configuration file and apply what changed; return the changes."""
        new = load_settings(self._config_path)
        changes = config_changes(self.settings.model_dump(), new.model_dump())
        for path, before, after in changes:
            _logger.info("Config %s: %r -> %r", path, before, after)
        self.apply_settings(new, {path for path, _, _ in changes})
        return changes

    def start(self) -> bool:
        """Open the source and start the stream and the telemetry session."""
        if self.source is not None and not self.source.connect():
            return False
        self.session.start()
        if self.stream is not None:
            self.stream.start()
        return True

    def run(self) -> None:
        """Feed queued lines to the dispatcher until stopped or the source ends."""
        if self.stream is None:
            self._stop_event.wait()
            return
        while not self._stop_event.is_set():
            line = self.stream.get_line(timeout=0.1)
            if line is not None:
                self.dispatcher.submit(line)
            elif self.stream.error is not None or self.stream.finished:
                break

    def stop(self) -> None:
        """Ask :meth:`run` to return."""
        self._stop_event.set()

    def shutdown(self) -> SessionReport:
        """Stop everything and return the final report. Safe to call twice."""
        with self._shutdown_lock:
            if self._report is not None:
                return self._report
            self.stop()
            if self.stream is not None:
                self.stream.stop()
            if self.source is not None:
                self.source.disconnect()
            self._report = self.session.stop()
            return self._report

    def status(self) -> dict:
        st = self.dispatcher.status()
        return {
            "connected": bool(self.source is not None and self.source.is_connected),
            "port": getattr(self.source, "port", None),
            "processing_enabled": st.enabled,
            "pending_count": st.pending_count,
            "mode": st.mode.id,
            "telemetry_running": self.session.running,
        }
