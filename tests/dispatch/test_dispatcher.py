"""Tests for CommandDispatcher — precedence, handlers, buffering, modes."""

from __future__ import annotations

import logging
import threading
import time
from unittest.mock import MagicMock, call

from velolink.dispatch.dispatcher import CommandDispatcher, Outcome
from velolink.dispatch.scenarios import ScenarioTable
from velolink.input.invoker import NullActionInvoker

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_dispatcher(enabled: bool = True, **kwargs) -> tuple[CommandDispatcher, NullActionInvoker]:
    invoker = NullActionInvoker()
    kwargs.setdefault("_sleep_fn", lambda s: None)
    dispatcher = CommandDispatcher(invoker, **kwargs)
    if enabled:
        dispatcher.enable_processing()
    return dispatcher, invoker


# ---------------------------------------------------------------------------
# Scenario table
# ---------------------------------------------------------------------------


def test_scenario_trigger_fires_and_counts():
    d, inv = _make_dispatcher()
    assert d.submit("PLAY") is Outcome.SCENARIO
    entry = d.scenarios.get("PLAY")
    assert entry.trigger_count == 1
    assert entry.last_triggered is not None
    assert inv.calls == [("perform", "media_play_pause")]


def test_scenario_match_is_case_insensitive_and_trimmed():
    d, inv = _make_dispatcher()
    d.submit("  play \r")
    d.submit("Play")
    assert d.scenarios.get("PLAY").trigger_count == 2
    assert len(inv.calls) == 2


def test_every_builtin_scenario_counts_exactly_once():
    d, _ = _make_dispatcher()
    for entry in d.scenarios.entries():
        d.submit(entry.trigger.lower())
    assert all(e.trigger_count == 1 for e in d.scenarios.entries())


def test_scenario_combination_and_text_actions():
    d, inv = _make_dispatcher()
    d.submit("SHUTDOWN")
    d.submit("HELLO")
    d.submit("F3")
    assert inv.calls == [
        ("send_combination", ("ctrl", "alt", "delete")),
        ("perform", "type_text", "Hello from Arduino!"),
        ("perform", "f_key", 3),
    ]


# ---------------------------------------------------------------------------
# Structural patterns
# ---------------------------------------------------------------------------


def test_numeric_reading_thresholds():
    d, inv = _make_dispatcher()
    for line in ("50", "950", "500", "400", "600", "300", "700", "100", "900"):
        d.submit(line)
    assert inv.calls == [
        ("perform", "volume_down"),
        ("perform", "volume_up"),
        ("perform", "space"),
        ("perform", "space"),
        ("perform", "space"),
    ]


def test_temperature_thresholds():
    d, inv = _make_dispatcher()
    d.submit("TEMP:34")
    d.submit("temp:5")
    d.submit("TEMP:20")
    d.submit("TEMP:30")
    d.submit("TEMP:10")
    assert inv.calls == [
        ("perform", "type_text", "Hot! 34°C"),
        ("perform", "type_text", "Cold! 5°C"),
    ]


def test_button_mapping():
    d, inv = _make_dispatcher()
    for line in ("BTN1:ON", "BTN2:ON", "BTN3:ON", "BTN7:ON", "BTN1:OFF"):
        assert d.submit(line) is Outcome.PATTERN
    assert inv.calls == [
        ("perform", "space"),
        ("perform", "enter"),
        ("perform", "media_play_pause"),
        ("perform", "f_key", 7),
    ]


def test_analog_pins():
    d, inv = _make_dispatcher()
    d.submit("A0:150")
    assert inv.calls == [("perform", "volume_down")]
    d.submit("A0:500")
    assert len(inv.calls) == 1
    d.submit("A1:950")
    d.submit("A0:801")
    d.submit("A1:50")
    d.submit("A5:1000")
    assert inv.calls[1:] == [
        ("perform", "type_text", "Bright"),
        ("perform", "volume_up"),
        ("perform", "type_text", "Dark"),
    ]


def test_rpm_line_feeds_telemetry_without_action():
    telemetry = MagicMock()
    d, inv = _make_dispatcher(telemetry=telemetry, wheel_diameter_mm=650.0)
    assert d.submit("RPM:5120.0,4980.5") is Outcome.PATTERN
    assert d.submit("RPM:300") is Outcome.PATTERN
    assert telemetry.add_sample.call_args_list == [call(4980.5, 650.0), call(300.0, 650.0)]
    assert inv.calls == []


def test_unclassified_line_is_dropped(caplog):
    d, inv = _make_dispatcher()
    with caplog.at_level(logging.WARNING, logger="velolink.dispatch.dispatcher"):
        assert d.submit("GIBBERISH") is Outcome.UNCLASSIFIED
    assert inv.calls == []
    assert "GIBBERISH" in caplog.text


def test_malformed_rpm_is_dropped_not_raised():
    telemetry = MagicMock()
    d, inv = _make_dispatcher(telemetry=telemetry)
    assert d.submit("RPM:abc,def") is Outcome.MALFORMED
    assert d.submit("RPM:nan,nan") is Outcome.MALFORMED
    assert d.submit("RPM:") is Outcome.MALFORMED
    telemetry.add_sample.assert_not_called()
    assert inv.calls == []


def test_overlong_digit_runs_are_dropped_not_raised():
    d, inv = _make_dispatcher()
    digits = "9" * 5000
    for line in (digits, f"TEMP:{digits}", f"A0:{digits}", f"A{digits}:1", f"BTN{digits}:ON"):
        assert d.submit(line) is Outcome.MALFORMED
    assert inv.calls == []
    assert d.submit("PLAY") is Outcome.SCENARIO


# ---------------------------------------------------------------------------
# Game modes
# ---------------------------------------------------------------------------


def test_racing_rpm_accelerates_once():
    d, inv = _make_dispatcher()
    assert d.select_mode("racing") is True
    assert d.submit("RPM:40.0,40.0") is Outcome.MODE_RULE
    assert inv.calls == [("send_key", "w")]


def test_racing_rpm_zero_does_nothing():
    d, inv = _make_dispatcher()
    d.select_mode("racing")
    d.submit("RPM:0,0")
    assert inv.calls == []


def test_racing_rpm_without_filtered_value_is_malformed():
    d, inv = _make_dispatcher()
    d.select_mode("racing")
    assert d.submit("RPM:50") is Outcome.MALFORMED
    assert inv.calls == []


def test_flight_rpm_throttle():
    d, inv = _make_dispatcher()
    d.select_mode("flight")
    d.submit("RPM:8000,7500")
    d.submit("RPM:5000,5000")
    d.submit("RPM:1000,2000")
    d.submit("RPM:2500")  # raw fallback
    assert inv.calls == [
        ("send_combination", ("shift", "f1")),
        ("send_key", "f1"),
        ("send_key", "f1"),
    ]


def test_mode_rule_overrides_scenario():
    d, inv = _make_dispatcher()
    d.select_mode("racing")
    assert d.submit("UP") is Outcome.MODE_RULE
    assert inv.calls == [("send_key", "w")]
    assert d.scenarios.get("UP").trigger_count == 0


def test_mode_falls_back_to_scenarios_and_patterns():
    d, inv = _make_dispatcher()
    d.select_mode("racing")
    assert d.submit("PLAY") is Outcome.SCENARIO
    assert d.submit("BTN4:ON") is Outcome.PATTERN
    assert inv.calls == [("perform", "media_play_pause"), ("perform", "f_key", 4)]


def test_media_and_fps_button_rules():
    d, inv = _make_dispatcher()
    d.select_mode("media")
    d.submit("btn1:on")
    d.select_mode("fps")
    d.submit("BTN2:ON")
    assert inv.calls == [("perform", "media_play_pause"), ("perform", "mouse_click")]


def test_rpm_in_mode_without_rpm_rule_still_feeds_telemetry():
    telemetry = MagicMock()
    d, inv = _make_dispatcher(telemetry=telemetry)
    d.select_mode("presentation")
    assert d.submit("RPM:60,60") is Outcome.PATTERN
    telemetry.add_sample.assert_called_once_with(60.0, 700.0)
    assert inv.calls == []


def test_select_unknown_mode_keeps_current():
    d, _ = _make_dispatcher()
    d.select_mode("flight")
    assert d.select_mode("nonexistent") is False
    assert d.current_mode_id == "flight"


def test_select_default_always_succeeds():
    d, inv = _make_dispatcher()
    assert d.select_mode("default") is True
    d.select_mode("racing")
    assert inv.game_input is True
    assert d.select_mode("DEFAULT") is True
    assert d.current_mode_id == "default"
    assert inv.game_input is False


def test_select_mode_by_index():
    d, _ = _make_dispatcher()
    assert d.select_mode_by_index(1) is True
    assert d.current_mode_id == "racing"
    assert d.select_mode_by_index(99) is False
    assert d.current_mode_id == "racing"
    assert d.select_mode_by_index(0) is True
    assert d.current_mode().name == "Default"


def test_list_modes_starts_with_default():
    d, _ = _make_dispatcher()
    ids = [m.id for m in d.list_modes()]
    assert ids == ["default", "racing", "fps", "media", "flight", "presentation"]


# ---------------------------------------------------------------------------
# Buffering
# ---------------------------------------------------------------------------


def test_disabled_lines_are_buffered_without_side_effects():
    telemetry = MagicMock()
    d, inv = _make_dispatcher(enabled=False, telemetry=telemetry)
    assert d.submit("PLAY") is Outcome.BUFFERED
    assert d.submit("RPM:100,100") is Outcome.BUFFERED
    assert inv.calls == []
    telemetry.add_sample.assert_not_called()
    assert d.scenarios.get("PLAY").trigger_count == 0
    assert d.status().pending_count == 2


def test_enable_replays_buffer_in_order_with_delay():
    sleeps: list[float] = []
    d, inv = _make_dispatcher(enabled=False, _sleep_fn=sleeps.append)
    for line in ("PLAY", "NEXT", "PREV"):
        d.submit(line)

    assert d.enable_processing() == 3

    assert inv.calls == [
        ("perform", "media_play_pause"),
        ("perform", "media_next"),
        ("perform", "media_prev"),
    ]
    assert sleeps == [0.1, 0.1]
    assert d.pending_lines() == []


def test_replay_spacing_with_real_clock():
    stamps: list[float] = []
    invoker = MagicMock()
    invoker.perform.side_effect = lambda *a: stamps.append(time.monotonic()) or True
    d = CommandDispatcher(invoker)
    for _ in range(3):
        d.submit("SPACE")
    d.enable_processing()
    gaps = [b - a for a, b in zip(stamps, stamps[1:])]
    assert len(gaps) == 2
    assert all(g >= 0.099 for g in gaps)


def test_drain_uses_snapshot_taken_at_enable():
    d, inv = _make_dispatcher(enabled=False)
    d.submit("PLAY")
    d.submit("NEXT")

    def _sleep(_s):
        d.submit("PREV")  # arrives mid-drain; processing is already on

    d._sleep = _sleep
    assert d.enable_processing() == 2
    assert inv.calls == [
        ("perform", "media_play_pause"),
        ("perform", "media_prev"),
        ("perform", "media_next"),
    ]
    assert d.clear_pending() == 0


def test_disable_keeps_buffer():
    d, _ = _make_dispatcher(enabled=False)
    d.submit("PLAY")
    d.disable_processing()
    assert d.pending_lines() == ["PLAY"]


def test_pending_buffer_capacity_is_enforced():
    """The buffer is a bounded FIFO: the 50 newest lines survive, older ones are evicted.

    A buffer that declares a capacity but never checks it would grow without
    limit; this dispatcher evicts instead.
    """
    d, _ = _make_dispatcher(enabled=False)
    for i in range(55):
        d.submit(f"L{i}")
    lines = d.pending_lines()
    assert len(lines) == 50
    assert lines[0] == "L5"
    assert lines[-1] == "L54"


def test_clear_pending_returns_count():
    d, _ = _make_dispatcher(enabled=False)
    d.submit("A")
    d.submit("B")
    assert d.clear_pending() == 2
    assert d.enable_processing() == 0


def test_toggle_and_status():
    d, _ = _make_dispatcher(enabled=False)
    assert d.toggle_processing() is True
    assert d.status().enabled is True
    assert d.toggle_processing() is False
    d.select_mode("media")
    assert d.status().mode.id == "media"


# ---------------------------------------------------------------------------
# Failures and concurrency
# ---------------------------------------------------------------------------


def test_invoker_failure_does_not_stop_drain():
    invoker = MagicMock()
    invoker.perform.side_effect = [RuntimeError("backend gone"), False, True]
    d = CommandDispatcher(invoker, _sleep_fn=lambda s: None)
    for line in ("PLAY", "NEXT", "PREV"):
        d.submit(line)
    d.enable_processing()
    assert invoker.perform.call_count == 3
    assert d.scenarios.get("PREV").trigger_count == 1


class _BlockingInvoker(NullActionInvoker):
    """Blocks inside the first action until released."""

    def __init__(self) -> None:
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def perform(self, action, *params):
        with self._lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        self.entered.set()
        self.release.wait(timeout=2.0)
        result = super().perform(action, *params)
        with self._lock:
            self.active -= 1
        return result


def test_lines_wait_for_in_flight_handler():
    invoker = _BlockingInvoker()
    d = CommandDispatcher(invoker)
    d.enable_processing()

    first = threading.Thread(target=d.submit, args=("PLAY",))
    first.start()
    assert invoker.entered.wait(timeout=2.0)

    second = threading.Thread(target=d.submit, args=("NEXT",))
    second.start()
    time.sleep(0.05)
    assert invoker.calls == []  # NEXT is queued behind PLAY
    assert invoker.active == 1

    invoker.release.set()
    first.join(timeout=2.0)
    second.join(timeout=2.0)

    assert invoker.calls == [("perform", "media_play_pause"), ("perform", "media_next")]
    assert invoker.max_active == 1


def test_custom_scenario_table_is_used():
    table = ScenarioTable(load_defaults=False)
    d, inv = _make_dispatcher(scenarios=table)
    assert d.submit("PLAY") is Outcome.UNCLASSIFIED
    assert inv.calls == []
