"""Tests for ScenarioTable — catalog, add/remove, statistics."""

from __future__ import annotations

from datetime import datetime

from velolink.dispatch.actions import KeyCombination, NamedAction
from velolink.dispatch.scenarios import ScenarioTable


def _fixed_now() -> datetime:
    return datetime(2026, 3, 1, 9, 30, 0)


def test_builtin_catalog_loaded():
    table = ScenarioTable()
    assert "PLAY" in table
    assert "f5" in table
    assert table.get("SHUTDOWN").action == KeyCombination(("ctrl", "alt", "delete"))
    assert table.get("F2").action == NamedAction("f_key", 2)
    assert len(table) == 27


def test_empty_table():
    table = ScenarioTable(load_defaults=False)
    assert len(table) == 0
    assert table.fire("PLAY") is None


def test_fire_counts_and_timestamps():
    table = ScenarioTable(_now_fn=_fixed_now)
    entry = table.fire("play")
    assert entry.trigger == "PLAY"
    assert entry.trigger_count == 1
    assert entry.last_triggered == _fixed_now()
    table.fire("PLAY")
    assert table.get("PLAY").trigger_count == 2


def test_add_uppercases_and_resets_stats():
    table = ScenarioTable(load_defaults=False)
    table.add(" jump ", NamedAction("space"), "custom")
    table.fire("JUMP")
    table.add("jump", NamedAction("enter"))
    entry = table.get("JUMP")
    assert entry.action == NamedAction("enter")
    assert entry.trigger_count == 0


def test_remove():
    table = ScenarioTable()
    assert table.remove("mute") is True
    assert "MUTE" not in table
    assert table.remove("MUTE") is False


def test_restore_builtin_or_drop():
    table = ScenarioTable()
    table.add("PLAY", NamedAction("space"), "custom mapping")
    table.add("JUMP", NamedAction("space"), "custom mapping")
    assert table.restore("play") is True
    assert table.get("PLAY").action == NamedAction("media_play_pause")
    assert table.restore("JUMP") is False
    assert "JUMP" not in table


def test_stats_and_clear():
    table = ScenarioTable(_now_fn=_fixed_now)
    table.fire("NEXT")
    stats = table.stats()
    assert stats["NEXT"].trigger_count == 1
    assert stats["PREV"].trigger_count == 0
    assert stats["PREV"].last_triggered is None

    table.clear_stats()
    assert all(s.trigger_count == 0 for s in table.stats().values())
    assert table.get("NEXT").last_triggered is None
