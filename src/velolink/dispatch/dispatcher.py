"""CommandDispatcher — routes each device line to a game-mode rule, a scenario or a pattern handler."""

from __future__ import annotations

import enum
import logging
import threading
import time
from dataclasses import dataclass
from typing import Mapping

from velolink.dispatch.actions import ActionRef, NamedAction, RpmHandler, RuleTarget, describe, invoke_action
from velolink.dispatch.classifier import (
    AnalogReading,
    ButtonEvent,
    NumericReading,
    RawLine,
    RpmReading,
    TemperatureReading,
    classify,
    is_rpm,
    parse_button,
    parse_rpm,
)
from velolink.dispatch.modes import (
    ACCELERATE,
    DEFAULT_MODE,
    DEFAULT_MODE_INFO,
    FULL_THROTTLE,
    GAME_MODES,
    RPM_RULE,
    THROTTLE_DOWN,
    GameMode,
    ModeInfo,
)
from velolink.dispatch.pending import DEFAULT_CAPACITY, PendingBuffer
from velolink.dispatch.scenarios import ScenarioTable
from velolink.errors import MalformedCommandError

_logger = logging.getLogger(__name__)

DRAIN_INTERVAL_S = 0.1
DEFAULT_WHEEL_DIAMETER_MM = 700.0

_BUTTON_ACTIONS: dict[int, NamedAction] = {
    1: NamedAction("space"),
    2: NamedAction("enter"),
    3: NamedAction("media_play_pause"),
}


class Outcome(enum.Enum):
    """How :meth:`CommandDispatcher.submit` disposed of a line."""

    BUFFERED = "buffered"
    MODE_RULE = "mode_rule"
    SCENARIO = "scenario"
    PATTERN = "pattern"
    UNCLASSIFIED = "unclassified"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class DispatchStatus:
    enabled: bool
    pending_count: int
    mode: ModeInfo


class CommandDispatcher:
    """Classifies device lines and invokes the matching action.

    Lines are handled one at a time: a line submitted while another is being
    handled waits for it to finish. While processing is disabled lines go to
    a bounded :class:`PendingBuffer` and are replayed, oldest first, when
    processing is enabled again.

    Parameters
    ----------
    invoker:
        Object implementing :class:`~velolink.input.invoker.ActionInvoker`.
    scenarios:
        The default trigger table; the built-in catalog when omitted.
    telemetry:
        Object with ``add_sample(rpm, wheel_diameter_mm)`` receiving every
        ``RPM:`` reading, e.g. :class:`~velolink.telemetry.tracker.TelemetryTracker`.
    wheel_diameter_mm:
        Wheel size passed along with each RPM sample.
    modes:
        Game-mode catalog keyed by mode id.
    pending_capacity:
        Maximum number of buffered lines.
    drain_interval_s:
        Gap between replayed lines when the buffer is drained.
    _sleep_fn:
        Injectable sleep for testing.
    """

    def __init__(
        self,
        invoker,
        scenarios: ScenarioTable | None = None,
        telemetry=None,
        wheel_diameter_mm: float = DEFAULT_WHEEL_DIAMETER_MM,
        modes: Mapping[str, GameMode] = GAME_MODES,
        pending_capacity: int = DEFAULT_CAPACITY,
        drain_interval_s: float = DRAIN_INTERVAL_S,
        _sleep_fn=time.sleep,
    ) -> None:
        self._invoker = invoker
        self.scenarios = scenarios if scenarios is not None else ScenarioTable()
        self._telemetry = telemetry
        self.wheel_diameter_mm = wheel_diameter_mm
        self._modes = modes
        self._pending = PendingBuffer(pending_capacity)
        self._drain_interval = drain_interval_s
        self._sleep = _sleep_fn

        self._mode_id: str = DEFAULT_MODE
        self._enabled: bool = False
        self._state_lock = threading.Lock()
        self._flight = threading.Lock()

    # ------------------------------------------------------------------
    # Processing control
    # ------------------------------------------------------------------

    @property
    def processing_enabled(self) -> bool:
        return self._enabled

    @property
    def current_mode_id(self) -> str:
        return self._mode_id

    def submit(self, line: RawLine | str) -> Outcome:
        """Handle one device line, or buffer it while processing is disabled."""
        if isinstance(line, str):
            line = RawLine(line)
        with self._state_lock:
            if not self._enabled:
                self._pending.append(line)
                return Outcome.BUFFERED
        return self._process(line)

    def enable_processing(self) -> int:
        """Enable dispatch and replay the lines buffered so far.

        Only lines buffered before this call are replayed. Returns how many
        were replayed.
        """
        with self._state_lock:
            self._enabled = True
            backlog = self._pending.take_all()
        _logger.info("Data processing enabled")

        if backlog:
            _logger.info("Processing %d pending commands", len(backlog))
        for index, line in enumerate(backlog):
            if index:
                self._sleep(self._drain_interval)
            self._process(line)
        return len(backlog)

    def disable_processing(self) -> None:
        """Stop dispatching; new lines are buffered. The buffer is kept."""
        with self._state_lock:
            self._enabled = False
        _logger.info("Data processing disabled, commands will be buffered")

    def toggle_processing(self) -> bool:
        """Flip processing on or off and return the new state."""
        if self._enabled:
            self.disable_processing()
        else:
            self.enable_processing()
        return self._enabled

    def clear_pending(self) -> int:
        count = self._pending.clear()
        _logger.info("Cleared %d pending commands", count)
        return count

    def pending_lines(self) -> list[str]:
        return [line.text for line in self._pending.snapshot()]

    def status(self) -> DispatchStatus:
        return DispatchStatus(self._enabled, len(self._pending), self.current_mode())

    # ------------------------------------------------------------------
    # Game modes
    # ------------------------------------------------------------------

    def select_mode(self, mode_id: str) -> bool:
        """Switch to *mode_id*; unknown ids leave the current mode unchanged."""
        key = mode_id.strip().lower()
        if key == DEFAULT_MODE:
            return self.set_default_mode()
        mode = self._modes.get(key)
        if mode is None:
            _logger.warning("Game mode %r not found", mode_id)
            return False
        self._mode_id = key
        self._set_game_input(True)
        _logger.info("Game mode set to %s (%s)", mode.name, mode.description)
        return True

    def set_default_mode(self) -> bool:
        self._mode_id = DEFAULT_MODE
        self._set_game_input(False)
        _logger.info("Game mode set to Default")
        return True

    def select_mode_by_index(self, index: int) -> bool:
        """Select by menu position: 0 is default, 1..N follow catalog order."""
        if index == 0:
            return self.set_default_mode()
        ids = list(self._modes)
        if not 1 <= index <= len(ids):
            _logger.warning("Invalid game mode index %d, choose 0-%d", index, len(ids))
            return False
        return self.select_mode(ids[index - 1])

    def current_mode(self) -> ModeInfo:
        mode = self._modes.get(self._mode_id)
        if mode is None:
            return DEFAULT_MODE_INFO
        return ModeInfo(mode.id, mode.name, mode.description)

    def list_modes(self) -> list[ModeInfo]:
        """Default first, then the catalog in selection-index order."""
        return [DEFAULT_MODE_INFO, *(ModeInfo(m.id, m.name, m.description) for m in self._modes.values())]

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _process(self, line: RawLine) -> Outcome:
        trigger = line.trigger
        with self._flight:
            try:
                return self._dispatch(trigger)
            except MalformedCommandError as exc:
                _logger.warning("Dropping malformed line %r: %s", line.text, exc)
                return Outcome.MALFORMED

    def _dispatch(self, trigger: str) -> Outcome:
        reading = parse_rpm(trigger) if is_rpm(trigger) else None
        if reading is not None:
            self._record_rpm(reading)

        mode = self._modes.get(self._mode_id)
        if mode is not None:
            target = mode.rules.get(trigger)
            if target is not None:
                self._run_mode_target(mode, trigger, target)
                return Outcome.MODE_RULE
            target = self._mode_pattern_target(mode, trigger, reading)
            if target is not None:
                self._run_mode_target(mode, trigger, target)
                return Outcome.MODE_RULE

        entry = self.scenarios.fire(trigger)
        if entry is not None:
            _logger.info("Executing scenario %s", trigger)
            self._invoke(entry.action, trigger)
            return Outcome.SCENARIO

        command = reading if reading is not None else classify(trigger)
        if command is None:
            _logger.warning("No scenario found for %r", trigger)
            return Outcome.UNCLASSIFIED
        self._handle_command(command, trigger)
        return Outcome.PATTERN

    def _mode_pattern_target(self, mode: GameMode, trigger: str, reading: RpmReading | None) -> RuleTarget | None:
        if reading is not None:
            return mode.rules.get(RPM_RULE)
        button = parse_button(trigger)
        if button is not None:
            return mode.rules.get(button.trigger)
        return None

    def _run_mode_target(self, mode: GameMode, trigger: str, target: RuleTarget) -> None:
        _logger.info("[%s] Executing %s -> %s", mode.id.upper(), trigger, describe(target))
        if target is RpmHandler.RACING:
            self._racing_rpm(parse_rpm(trigger), trigger)
        elif target is RpmHandler.FLIGHT:
            self._flight_rpm(parse_rpm(trigger), trigger)
        else:
            self._invoke(target, trigger)

    def _handle_command(self, command, trigger: str) -> None:
        if isinstance(command, NumericReading):
            self._numeric(command.value, trigger)
        elif isinstance(command, TemperatureReading):
            self._temperature(command.celsius, trigger)
        elif isinstance(command, ButtonEvent):
            self._button(command, trigger)
        elif isinstance(command, AnalogReading):
            self._analog(command, trigger)
        elif isinstance(command, RpmReading):
            _logger.debug("RPM (raw: %s, filtered: %s)", command.raw, command.filtered)

    # ------------------------------------------------------------------
    # Pattern handlers
    # ------------------------------------------------------------------

    def _numeric(self, value: int, trigger: str) -> None:
        _logger.info("Handling numeric value %d", value)
        if value < 100:
            self._invoke(NamedAction("volume_down"), trigger)
        elif value > 900:
            self._invoke(NamedAction("volume_up"), trigger)
        elif 400 <= value <= 600:
            self._invoke(NamedAction("space"), trigger)

    def _temperature(self, celsius: int, trigger: str) -> None:
        _logger.info("Handling temperature %d°C", celsius)
        if celsius > 30:
            self._invoke(NamedAction("type_text", f"Hot! {celsius}°C"), trigger)
        elif celsius < 10:
            self._invoke(NamedAction("type_text", f"Cold! {celsius}°C"), trigger)

    def _button(self, event: ButtonEvent, trigger: str) -> None:
        _logger.info("Button %d is %s", event.button, event.state)
        if not event.pressed:
            return
        action = _BUTTON_ACTIONS.get(event.button, NamedAction("f_key", event.button))
        self._invoke(action, trigger)

    def _analog(self, reading: AnalogReading, trigger: str) -> None:
        _logger.info("Analog pin A%d: %d", reading.pin, reading.value)
        if reading.pin == 0:  # volume potentiometer
            if reading.value < 200:
                self._invoke(NamedAction("volume_down"), trigger)
            elif reading.value > 800:
                self._invoke(NamedAction("volume_up"), trigger)
        elif reading.pin == 1:  # light sensor
            if reading.value < 100:
                self._invoke(NamedAction("type_text", "Dark"), trigger)
            elif reading.value > 900:
                self._invoke(NamedAction("type_text", "Bright"), trigger)

    def _racing_rpm(self, reading: RpmReading, trigger: str) -> None:
        if reading.filtered is None:
            raise MalformedCommandError(f"racing RPM needs a filtered value: {trigger!r}")
        _logger.info("Racing RPM %.1f", reading.filtered)
        if reading.filtered > 0:
            self._invoke(ACCELERATE, trigger)

    def _flight_rpm(self, reading: RpmReading, trigger: str) -> None:
        rpm = reading.value
        _logger.info("Flight RPM %.1f", rpm)
        if rpm > 7000:
            self._invoke(FULL_THROTTLE, trigger)
        elif rpm < 3000:
            self._invoke(THROTTLE_DOWN, trigger)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _record_rpm(self, reading: RpmReading) -> None:
        if self._telemetry is not None:
            self._telemetry.add_sample(reading.value, self.wheel_diameter_mm)

    def _invoke(self, action: ActionRef, trigger: str) -> bool:
        try:
            ok = invoke_action(self._invoker, action)
        except Exception:  # invoker failures never stop the stream
            _logger.exception("Action %s for %r raised", describe(action), trigger)
            return False
        if not ok:
            _logger.warning("Action %s for %r failed", describe(action), trigger)
        return bool(ok)

    def _set_game_input(self, enabled: bool) -> None:
        setter = getattr(self._invoker, "set_game_input", None)
        if setter is not None:
            setter(enabled)
