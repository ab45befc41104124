"""Line classification — raw device text → structured command."""

from __future__ import annotations

import math
import re
import time
from dataclasses import dataclass, field
from typing import Union

from velolink.errors import MalformedCommandError

_NUMERIC_RE = re.compile(r"^(\d+)$")
_TEMP_RE = re.compile(r"^TEMP:(\d+)$")
_BUTTON_RE = re.compile(r"^BTN(\d+):(ON|OFF)$")
_ANALOG_RE = re.compile(r"^A(\d+):(\d+)$")
_RPM_PREFIX = "RPM:"


@dataclass(frozen=True)
class RawLine:
    """One line as delivered by the transport."""

    text: str
    received_at: float = field(default_factory=time.monotonic)

    @property
    def trigger(self) -> str:
        return normalize(self.text)


def normalize(text: str) -> str:
    """Return the lookup key for *text*: trimmed and uppercased."""
    return text.strip().upper()


@dataclass(frozen=True)
class NumericReading:
    value: int


@dataclass(frozen=True)
class TemperatureReading:
    celsius: int


@dataclass(frozen=True)
class ButtonEvent:
    button: int
    state: str  # "ON" or "OFF"

    @property
    def trigger(self) -> str:
        return f"BTN{self.button}:{self.state}"

    @property
    def pressed(self) -> bool:
        return self.state == "ON"


@dataclass(frozen=True)
class AnalogReading:
    pin: int
    value: int


@dataclass(frozen=True)
class RpmReading:
    """``RPM:<raw>,<filtered>``; *filtered* is None when the device sent one value."""

    raw: float
    filtered: float | None = None

    @property
    def value(self) -> float:
        """The filtered RPM, falling back to the raw one."""
        return self.raw if self.filtered is None else self.filtered

    @property
    def legacy_value(self) -> float:
        """``min(raw, filtered)``, as used by older cadence-to-key bridges."""
        return self.raw if self.filtered is None else min(self.raw, self.filtered)


Command = Union[NumericReading, TemperatureReading, ButtonEvent, AnalogReading, RpmReading]


def _parse_int(text: str, line: str) -> int:
    try:
        return int(text)
    except ValueError:
        # past the interpreter's int conversion digit limit
        raise MalformedCommandError(f"number too long ({len(text)} digits) in {line[:40]!r}") from None


def _parse_float(text: str, line: str) -> float:
    try:
        value = float(text)
    except ValueError:
        raise MalformedCommandError(f"unparseable number {text!r} in {line!r}") from None
    if not math.isfinite(value):
        raise MalformedCommandError(f"non-finite number {text!r} in {line!r}")
    return value


def parse_rpm(trigger: str) -> RpmReading:
    """Parse an ``RPM:`` line; raises :class:`MalformedCommandError` on a bad payload."""
    payload = trigger[len(_RPM_PREFIX):] if trigger.startswith(_RPM_PREFIX) else trigger
    parts = [p.strip() for p in payload.split(",")]
    raw = _parse_float(parts[0], trigger)
    filtered = _parse_float(parts[1], trigger) if len(parts) > 1 and parts[1] else None
    return RpmReading(raw, filtered)


def parse_button(trigger: str) -> ButtonEvent | None:
    m = _BUTTON_RE.match(trigger)
    if m is None:
        return None
    return ButtonEvent(_parse_int(m.group(1), trigger), m.group(2))


def is_rpm(trigger: str) -> bool:
    return trigger.startswith(_RPM_PREFIX)


def classify(trigger: str) -> Command | None:
    """Match *trigger* against the structural patterns, in precedence order.

    Returns None when nothing matches. An ``RPM:`` line with an unusable
    payload, or a digit run too long to convert, raises
    :class:`MalformedCommandError`.
    """
    m = _NUMERIC_RE.match(trigger)
    if m:
        return NumericReading(_parse_int(m.group(1), trigger))

    m = _TEMP_RE.match(trigger)
    if m:
        return TemperatureReading(_parse_int(m.group(1), trigger))

    button = parse_button(trigger)
    if button is not None:
        return button

    m = _ANALOG_RE.match(trigger)
    if m:
        return AnalogReading(_parse_int(m.group(1), trigger), _parse_int(m.group(2), trigger))

    if is_rpm(trigger):
        return parse_rpm(trigger)

    return None
