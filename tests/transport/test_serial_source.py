"""Tests for SerialLineSource with an injected serial factory."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
import serial

from velolink.errors import TransportError
from velolink.transport import serial_source
from velolink.transport.serial_source import SerialLineSource, available_ports


def _make_source(*lines: bytes) -> tuple[SerialLineSource, MagicMock, MagicMock]:
    port = MagicMock()
    port.readline.side_effect = list(lines)
    factory = MagicMock(return_value=port)
    return SerialLineSource("COM5", 9600, 0.1, serial_factory=factory), factory, port


def test_connect_opens_port():
    source, factory, _ = _make_source()
    states: list[bool] = []
    source.register_callback(states.append)

    assert source.connect() is True
    assert source.is_connected is True
    factory.assert_called_once_with(port="COM5", baudrate=9600, timeout=0.1)
    assert states == [True]


def test_connect_failure_returns_false():
    factory = MagicMock(side_effect=serial.SerialException("could not open port"))
    source = SerialLineSource("COM9", serial_factory=factory)
    assert source.connect() is False
    assert source.is_connected is False


def test_read_line_trims_and_skips_blank():
    source, _, _ = _make_source(b"  RPM:12.5,12.0\r\n", b"", b"   \n", b"BTN1:ON\n")
    source.connect()
    assert source.read_line() == "RPM:12.5,12.0"
    assert source.read_line() is None
    assert source.read_line() is None
    assert source.read_line() == "BTN1:ON"


def test_read_line_tolerates_bad_bytes():
    source, _, _ = _make_source(b"PL\xffAY\n")
    source.connect()
    assert source.read_line().startswith("PL")


def test_read_when_disconnected_raises():
    source, _, _ = _make_source()
    with pytest.raises(TransportError):
        source.read_line()


def test_read_failure_marks_disconnected():
    source, _, port = _make_source()
    port.readline.side_effect = serial.SerialException("device reports readiness but returned no data")
    states: list[bool] = []
    source.register_callback(states.append)
    source.connect()

    with pytest.raises(TransportError):
        source.read_line()
    assert source.is_connected is False
    assert states == [True, False]


def test_write_line_appends_newline():
    source, _, port = _make_source()
    source.connect()
    source.write_line("PING")
    port.write.assert_called_once_with(b"PING\n")


def test_disconnect_closes_port():
    source, _, port = _make_source()
    states: list[bool] = []
    source.register_callback(states.append)
    source.connect()
    source.disconnect()
    source.disconnect()
    port.close.assert_called_once()
    assert states == [True, False]


def test_available_ports(monkeypatch):
    fake = SimpleNamespace(device="/dev/rfcomm0", description="HC-05", manufacturer=None)
    monkeypatch.setattr(serial_source.list_ports, "comports", lambda: [fake])
    ports = available_ports()
    assert ports[0].path == "/dev/rfcomm0"
    assert ports[0].description == "HC-05"
