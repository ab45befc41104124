"""Game-mode catalog — per-game rule tables that override the scenario table."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from velolink.dispatch.actions import KeyCombination, KeyTap, NamedAction, RpmHandler, RuleTarget

DEFAULT_MODE = "default"

# Generic rule key matched by any ``RPM:<raw>,<filtered>`` line.
RPM_RULE = "RPM:"


@dataclass(frozen=True)
class GameMode:
    """A named rule set; ``rules`` maps an uppercased trigger to its target."""

    id: str
    name: str
    description: str
    rules: Mapping[str, RuleTarget]


@dataclass(frozen=True)
class ModeInfo:
    """Identity of the currently selected mode, ``default`` included."""

    id: str
    name: str
    description: str


DEFAULT_MODE_INFO = ModeInfo(DEFAULT_MODE, "Default", "Standard scenarios for general applications")


def _mode(mode_id: str, name: str, description: str, rules: dict[str, RuleTarget]) -> GameMode:
    return GameMode(mode_id, name, description, MappingProxyType(rules))


_CATALOG = (
    _mode(
        "racing",
        "Racing Game",
        "Optimized for racing games like Need for Speed, Forza, etc.",
        {
            "BTN1:ON": KeyTap("space"),  # accelerate
            "BTN2:ON": KeyTap("shift"),  # brake
            "BTN3:ON": KeyTap("ctrl"),  # handbrake
            "LEFT": KeyTap("left"),
            "RIGHT": KeyTap("right"),
            "UP": KeyTap("w"),
            "DOWN": KeyTap("s"),
            "SPACE": KeyTap("r"),  # reset car
            RPM_RULE: RpmHandler.RACING,
        },
    ),
    _mode(
        "fps",
        "FPS Shooter",
        "For first-person shooters like Counter-Strike, Valorant, etc.",
        {
            "BTN1:ON": KeyTap("space"),  # jump
            "BTN2:ON": NamedAction("mouse_click"),  # shoot
            "BTN3:ON": KeyTap("r"),  # reload
            "LEFT": KeyTap("a"),
            "RIGHT": KeyTap("d"),
            "UP": KeyTap("w"),
            "DOWN": KeyTap("s"),
            "SPACE": KeyTap("shift"),  # sprint
            "ENTER": KeyTap("ctrl"),  # crouch
        },
    ),
    _mode(
        "media",
        "Media Control",
        "Control music, videos, and media applications",
        {
            "BTN1:ON": NamedAction("media_play_pause"),
            "BTN2:ON": NamedAction("media_next"),
            "BTN3:ON": NamedAction("media_prev"),
            "UP": NamedAction("volume_up"),
            "DOWN": NamedAction("volume_down"),
            "LEFT": NamedAction("media_prev"),
            "RIGHT": NamedAction("media_next"),
            "SPACE": NamedAction("media_play_pause"),
            "ENTER": NamedAction("volume_mute"),
        },
    ),
    _mode(
        "flight",
        "Flight Simulator",
        "For flight simulation games",
        {
            "BTN1:ON": KeyTap("space"),  # landing gear
            "BTN2:ON": KeyTap("f"),  # flaps
            "BTN3:ON": KeyTap("b"),  # brakes
            "LEFT": KeyTap("a"),
            "RIGHT": KeyTap("d"),
            "UP": KeyTap("s"),  # pitch down
            "DOWN": KeyTap("w"),  # pitch up
            "SPACE": KeyTap("enter"),  # engine start
            RPM_RULE: RpmHandler.FLIGHT,
        },
    ),
    _mode(
        "presentation",
        "Presentation Control",
        "Control PowerPoint or other presentation software",
        {
            "BTN1:ON": KeyTap("right"),
            "BTN2:ON": KeyTap("left"),
            "BTN3:ON": KeyTap("escape"),
            "LEFT": KeyTap("left"),
            "RIGHT": KeyTap("right"),
            "UP": KeyTap("home"),
            "DOWN": KeyTap("end"),
            "SPACE": KeyTap("right"),
            "ENTER": KeyTap("f5"),  # start slideshow
        },
    ),
)

GAME_MODES: Mapping[str, GameMode] = MappingProxyType({m.id: m for m in _CATALOG})

# Flight throttle combination, shared with the handler in the dispatcher.
FULL_THROTTLE = KeyCombination(("shift", "f1"))
THROTTLE_DOWN = KeyTap("f1")
ACCELERATE = KeyTap("w")
