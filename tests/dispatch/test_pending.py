"""Tests for PendingBuffer."""

from __future__ import annotations

import pytest

from velolink.dispatch.classifier import RawLine
from velolink.dispatch.pending import DEFAULT_CAPACITY, PendingBuffer


def test_default_capacity():
    assert PendingBuffer().capacity == DEFAULT_CAPACITY == 50


def test_invalid_capacity():
    with pytest.raises(ValueError):
        PendingBuffer(0)


def test_fifo_order_and_take_all():
    buf = PendingBuffer(5)
    for text in ("a", "b", "c"):
        buf.append(RawLine(text))
    assert [line.text for line in buf.snapshot()] == ["a", "b", "c"]
    assert len(buf) == 3
    assert [line.text for line in buf.take_all()] == ["a", "b", "c"]
    assert len(buf) == 0


def test_full_buffer_drops_oldest(caplog):
    buf = PendingBuffer(3)
    for text in ("a", "b", "c", "d", "e"):
        buf.append(RawLine(text))
    assert [line.text for line in buf.snapshot()] == ["c", "d", "e"]
    assert buf.dropped == 2
    assert "dropping oldest line 'a'" in caplog.text


def test_clear_returns_count():
    buf = PendingBuffer()
    buf.append(RawLine("x"))
    buf.append(RawLine("y"))
    assert buf.clear() == 2
    assert buf.clear() == 0
