"""Action references — what a trigger resolves to.

A rule table maps a trigger string to one of:

* :class:`NamedAction` — an entry of the invoker vocabulary (``"space"``,
  ``"volume_up"``, ``"type_text"`` with a parameter, ...).
* :class:`KeyTap` — a literal key name tapped once (``"w"``, ``"shift"``).
* :class:`KeyCombination` — keys pressed together (``ctrl+alt+delete``).
* :class:`RpmHandler` — one of the built-in RPM interpretation routines.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class NamedAction:
    """A vocabulary action with an optional parameter (text, key, F-key number)."""

    name: str
    param: str | int | None = None


@dataclass(frozen=True)
class KeyTap:
    """A literal key tapped once."""

    key: str


@dataclass(frozen=True)
class KeyCombination:
    """Keys held together; the last one is the main key, the rest are modifiers."""

    keys: tuple[str, ...]


class RpmHandler(enum.Enum):
    """Built-in numeric handlers a game-mode rule may reference."""

    RACING = "racing_rpm"
    FLIGHT = "flight_rpm"


ActionRef = Union[NamedAction, KeyTap, KeyCombination]
RuleTarget = Union[NamedAction, KeyTap, KeyCombination, RpmHandler]


def invoke_action(invoker, action: ActionRef) -> bool:
    """Execute *action* through *invoker* and return its success flag."""
    if isinstance(action, NamedAction):
        if action.param is None:
            return invoker.perform(action.name)
        return invoker.perform(action.name, action.param)
    if isinstance(action, KeyTap):
        return invoker.send_key(action.key)
    if isinstance(action, KeyCombination):
        return invoker.send_combination(list(action.keys))
    raise TypeError(f"not an action reference: {action!r}")


def describe(target: RuleTarget) -> str:
    """Return a short human-readable label for logs and the control API."""
    if isinstance(target, RpmHandler):
        return f"handler:{target.value}"
    if isinstance(target, NamedAction):
        return target.name if target.param is None else f"{target.name}({target.param})"
    if isinstance(target, KeyTap):
        return f"key:{target.key}"
    return "+".join(target.keys)
