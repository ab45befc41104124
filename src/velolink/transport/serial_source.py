"""SerialLineSource — reads newline-delimited commands from the device's serial port."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import serial
from serial.tools import list_ports

from velolink.errors import TransportError

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PortInfo:
    path: str
    description: str
    manufacturer: str | None


def available_ports() -> list[PortInfo]:
    """List the serial ports visible to the operating system."""
    return [PortInfo(p.device, p.description, p.manufacturer) for p in list_ports.comports()]


class SerialLineSource:
    """Owns one serial connection and yields trimmed text lines.

    Parameters
    ----------
    port:
        Device path, e.g. ``COM5`` or ``/dev/rfcomm0``.
    baud_rate:
        Line speed; HC-05 modules default to 9600.
    timeout_s:
        Read timeout. :meth:`read_line` returns None when it expires.
    serial_factory:
        Callable building the ``serial.Serial`` object. Injected for
        testability.
    """

    def __init__(
        self,
        port: str,
        baud_rate: int = 9600,
        timeout_s: float = 0.1,
        serial_factory: Callable[..., Any] = serial.Serial,
    ) -> None:
        self.port = port
        self._baud_rate = baud_rate
        self._timeout_s = timeout_s
        self._factory = serial_factory
        self._serial: Any | None = None
        self._callbacks: list[Callable[[bool], None]] = []

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def is_connected(self) -> bool:
        return self._serial is not None

    def connect(self) -> bool:
        """Open the port.

        Returns
        -------
        bool
            True when the port is open. False otherwise (never raises).
        """
        if self._serial is not None:
            return True
        _logger.info("Connecting to %s at %d baud", self.port, self._baud_rate)
        try:
            self._serial = self._factory(port=self.port, baudrate=self._baud_rate, timeout=self._timeout_s)
        except (serial.SerialException, OSError) as exc:
            _logger.error("Failed to open %s: %s", self.port, exc)
            return False
        _logger.info("Connected to %s", self.port)
        self._fire_callbacks(True)
        return True

    def disconnect(self) -> None:
        if self._serial is None:
            return
        try:
            self._serial.close()
        except (serial.SerialException, OSError) as exc:
            _logger.warning("Error while closing %s: %s", self.port, exc)
        self._serial = None
        _logger.info("Disconnected from %s", self.port)
        self._fire_callbacks(False)

    def read_line(self) -> str | None:
        """Return the next non-empty trimmed line, or None on timeout.

        Raises :class:`~velolink.errors.TransportError` when the port is closed
        or fails.
        """
        if self._serial is None:
            raise TransportError(f"{self.port} is not connected")
        try:
            raw = self._serial.readline()
        except (serial.SerialException, OSError) as exc:
            self._serial = None
            self._fire_callbacks(False)
            raise TransportError(f"read from {self.port} failed: {exc}") from exc
        text = raw.decode("utf-8", errors="replace").strip()
        return text or None

    def write_line(self, text: str) -> None:
        """Send *text* plus a newline to the device."""
        if self._serial is None:
            raise TransportError(f"{self.port} is not connected")
        try:
            self._serial.write((text + "\n").encode("utf-8"))
        except (serial.SerialException, OSError) as exc:
            raise TransportError(f"write to {self.port} failed: {exc}") from exc

    def register_callback(self, callback: Callable[[bool], None]) -> None:
        """Register *callback*, called with True/False when the port opens/closes."""
        self._callbacks.append(callback)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _fire_callbacks(self, state: bool) -> None:
        for cb in self._callbacks:
            cb(state)
