"""Device line transport.

Public API
----------
SerialLineSource - reads lines from a serial port (pyserial)
ReplayLineSource - plays back a recorded line file
LineStream       - background reader → queue channel
available_ports  - lists serial ports
"""

from velolink.transport.replay import ReplayLineSource
from velolink.transport.serial_source import PortInfo, SerialLineSource, available_ports
from velolink.transport.stream import LineStream

__all__ = [
    "LineStream",
    "PortInfo",
    "ReplayLineSource",
    "SerialLineSource",
    "available_ports",
]
