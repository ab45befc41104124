"""Scenario table — default trigger → action mapping with fire statistics."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from velolink.dispatch.actions import ActionRef, KeyCombination, NamedAction

_logger = logging.getLogger(__name__)


@dataclass
class ScenarioEntry:
    """One trigger of the default table and how often it has fired."""

    trigger: str
    action: ActionRef
    description: str = ""
    trigger_count: int = 0
    last_triggered: datetime | None = None


@dataclass(frozen=True)
class ScenarioStats:
    trigger_count: int
    last_triggered: datetime | None


def _builtin_catalog() -> list[tuple[str, ActionRef, str]]:
    return [
        # media
        ("PLAY", NamedAction("media_play_pause"), "Play/pause media"),
        ("PAUSE", NamedAction("media_play_pause"), "Play/pause media"),
        ("NEXT", NamedAction("media_next"), "Next track"),
        ("PREV", NamedAction("media_prev"), "Previous track"),
        # volume
        ("VOL_UP", NamedAction("volume_up"), "Volume up"),
        ("VOL_DOWN", NamedAction("volume_down"), "Volume down"),
        ("MUTE", NamedAction("volume_mute"), "Mute"),
        # navigation
        ("UP", NamedAction("arrow_up"), ""),
        ("DOWN", NamedAction("arrow_down"), ""),
        ("LEFT", NamedAction("arrow_left"), ""),
        ("RIGHT", NamedAction("arrow_right"), ""),
        ("SPACE", NamedAction("space"), ""),
        ("ENTER", NamedAction("enter"), ""),
        ("TAB", NamedAction("tab"), ""),
        ("ALT_TAB", NamedAction("alt_tab"), "Switch window"),
        *((f"F{n}", NamedAction("f_key", n), f"Function key F{n}") for n in range(1, 6)),
        # sensor shortcuts
        ("BUTTON_1", NamedAction("space"), ""),
        ("BUTTON_2", NamedAction("enter"), ""),
        ("SENSOR_HIGH", NamedAction("volume_up"), ""),
        ("SENSOR_LOW", NamedAction("volume_down"), ""),
        # combinations
        ("SHUTDOWN", KeyCombination(("ctrl", "alt", "delete")), "Ctrl+Alt+Delete"),
        ("SCREENSHOT", KeyCombination(("win", "shift", "s")), "Screen snip"),
        ("HELLO", NamedAction("type_text", "Hello from Arduino!"), "Type a greeting"),
    ]


class ScenarioTable:
    """Mutable trigger table; triggers are stored uppercased.

    Parameters
    ----------
    load_defaults:
        Populate the built-in catalog on construction.
    _now_fn:
        Returns the current wall-clock time — injectable for testing.
    """

    def __init__(self, load_defaults: bool = True, _now_fn: Callable[[], datetime] = datetime.now) -> None:
        self._entries: dict[str, ScenarioEntry] = {}
        self._now_fn = _now_fn
        if load_defaults:
            for trigger, action, description in _builtin_catalog():
                self.add(trigger, action, description)
            _logger.info("Loaded %d default scenarios", len(self._entries))

    def __contains__(self, trigger: str) -> bool:
        return trigger.upper() in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, trigger: str, action: ActionRef, description: str = "") -> None:
        """Add or replace the entry for *trigger* (statistics start from zero)."""
        key = trigger.strip().upper()
        self._entries[key] = ScenarioEntry(key, action, description)

    def remove(self, trigger: str) -> bool:
        """Delete *trigger*; return False when it was not present."""
        return self._entries.pop(trigger.strip().upper(), None) is not None

    def restore(self, trigger: str) -> bool:
        """Put back the built-in entry for *trigger*, or drop it if there is none.

        Returns True when a built-in entry was restored.
        """
        key = trigger.strip().upper()
        for builtin, action, description in _builtin_catalog():
            if builtin == key:
                self.add(builtin, action, description)
                return True
        self._entries.pop(key, None)
        return False

    def get(self, trigger: str) -> ScenarioEntry | None:
        return self._entries.get(trigger.upper())

    def fire(self, trigger: str) -> ScenarioEntry | None:
        """Record one firing of *trigger* and return its entry (None if unknown)."""
        entry = self._entries.get(trigger.upper())
        if entry is None:
            return None
        entry.trigger_count += 1
        entry.last_triggered = self._now_fn()
        return entry

    def entries(self) -> list[ScenarioEntry]:
        return list(self._entries.values())

    def stats(self) -> dict[str, ScenarioStats]:
        return {
            trigger: ScenarioStats(e.trigger_count, e.last_triggered)
            for trigger, e in self._entries.items()
        }

    def clear_stats(self) -> None:
        for entry in self._entries.values():
            entry.trigger_count = 0
            entry.last_triggered = None
        _logger.info("Scenario statistics cleared")
