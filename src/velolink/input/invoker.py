"""Action invokers — pynput wrapper with NullActionInvoker for tests."""

from __future__ import annotations

import logging
import time
from typing import Any, Protocol

_logger = logging.getLogger(__name__)

# Vocabulary action → literal key name.
_ACTION_KEYS: dict[str, str] = {
    "space": "space",
    "enter": "enter",
    "tab": "tab",
    "arrow_up": "up",
    "arrow_down": "down",
    "arrow_left": "left",
    "arrow_right": "right",
    "volume_up": "audio_vol_up",
    "volume_down": "audio_vol_down",
    "volume_mute": "audio_mute",
    "media_play_pause": "audio_play",
    "media_next": "audio_next",
    "media_prev": "audio_prev",
}

_ACTION_COMBINATIONS: dict[str, tuple[str, ...]] = {
    "ctrl_c": ("ctrl", "c"),
    "ctrl_v": ("ctrl", "v"),
    "alt_tab": ("alt", "tab"),
}

# Literal key name → pynput ``Key`` attribute, for names that differ.
_KEY_ALIASES: dict[str, str] = {
    "control": "ctrl",
    "escape": "esc",
    "win": "cmd",
    "audio_vol_up": "media_volume_up",
    "audio_vol_down": "media_volume_down",
    "audio_mute": "media_volume_mute",
    "audio_play": "media_play_pause",
    "audio_next": "media_next",
    "audio_prev": "media_previous",
}

BASE_ACTIONS: tuple[str, ...] = (
    *_ACTION_KEYS,
    *_ACTION_COMBINATIONS,
    "type_text",
    "f_key",
)
GAME_INPUT_ACTIONS: tuple[str, ...] = ("mouse_click", "key_down", "key_up")


class ActionInvoker(Protocol):
    """What the dispatcher needs from an input backend."""

    def perform(self, action: str, *params: Any) -> bool: ...

    def send_key(self, key: str) -> bool: ...

    def send_combination(self, keys: list[str]) -> bool: ...

    def type_text(self, text: str) -> bool: ...


class NullActionInvoker:
    """No-op invoker; records calls for test assertions and dry runs."""

    def __init__(self) -> None:
        self.calls: list[tuple[Any, ...]] = []
        self.game_input: bool = False

    def perform(self, action: str, *params: Any) -> bool:
        self.calls.append(("perform", action, *params))
        return True

    def send_key(self, key: str) -> bool:
        self.calls.append(("send_key", key))
        return True

    def send_combination(self, keys: list[str]) -> bool:
        self.calls.append(("send_combination", tuple(keys)))
        return True

    def type_text(self, text: str) -> bool:
        self.calls.append(("type_text", text))
        return True

    def set_game_input(self, enabled: bool) -> None:
        self.game_input = enabled


class PynputActionInvoker:
    """Injects keyboard and mouse events through ``pynput``.

    Unsupported keys or actions are logged and reported as ``False``; this
    class never raises for bad input.

    Parameters
    ----------
    keyboard, mouse:
        pynput controllers. Injected for testability; the real controllers
        are created when not provided.
    keys, buttons:
        Namespaces resolving key and mouse-button names (``pynput.keyboard.Key``
        and ``pynput.mouse.Button`` by default).
    delay_between_keys_ms:
        Pause between taps of a multi-key sequence.
    game_input:
        Enables mouse clicks and key holds, which only make sense while a
        game mode is active.
    """

    def __init__(
        self,
        keyboard: Any | None = None,
        mouse: Any | None = None,
        keys: Any | None = None,
        buttons: Any | None = None,
        delay_between_keys_ms: int = 10,
        game_input: bool = False,
        _sleep_fn=time.sleep,
    ) -> None:
        if keyboard is None or keys is None:
            from pynput import keyboard as pynput_keyboard  # lazy: needs a display

            keyboard = keyboard or pynput_keyboard.Controller()
            keys = keys or pynput_keyboard.Key
        if mouse is None or buttons is None:
            from pynput import mouse as pynput_mouse

            mouse = mouse or pynput_mouse.Controller()
            buttons = buttons or pynput_mouse.Button
        self._keyboard = keyboard
        self._mouse = mouse
        self._keys = keys
        self._buttons = buttons
        self._delay_s = delay_between_keys_ms / 1000.0
        self._sleep = _sleep_fn
        self.enabled: bool = True
        self.game_input: bool = game_input

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def enable(self) -> None:
        self.enabled = True
        _logger.info("Key simulation enabled")

    def disable(self) -> None:
        self.enabled = False
        _logger.info("Key simulation disabled")

    def set_game_input(self, enabled: bool) -> None:
        """Allow or forbid mouse clicks and key holds."""
        self.game_input = enabled
        _logger.info("Game input %s", "enabled" if enabled else "disabled")

    def available_actions(self) -> list[str]:
        actions = list(BASE_ACTIONS)
        if self.game_input:
            actions.extend(GAME_INPUT_ACTIONS)
        return actions

    def status(self) -> dict[str, bool]:
        return {"enabled": self.enabled, "game_input": self.game_input}

    def perform(self, action: str, *params: Any) -> bool:
        """Run one vocabulary action; unknown names are a logged no-op."""
        name = action.lower()
        if name in _ACTION_KEYS:
            return self.send_key(_ACTION_KEYS[name])
        if name in _ACTION_COMBINATIONS:
            return self.send_combination(list(_ACTION_COMBINATIONS[name]))
        if name == "type_text":
            return self.type_text(str(params[0]) if params else "")
        if name == "f_key":
            return self.send_key(f"f{params[0] if params else 1}")
        if name == "mouse_click":
            return self.mouse_click(*params)
        if name == "key_down":
            return self.key_down(str(params[0]) if params else "space")
        if name == "key_up":
            return self.key_up(str(params[0]) if params else "space")
        _logger.warning("Unknown action: %s", action)
        return False

    def send_key(self, key: str) -> bool:
        if not self._ready():
            return False
        resolved = self._resolve(key)
        if resolved is None:
            return False
        _logger.debug("Tapping key %s", key)
        return self._guard(f"send key {key!r}", self._keyboard.tap, resolved)

    def send_keys(self, keys: list[str]) -> bool:
        """Tap *keys* one after another with the inter-key delay."""
        for index, key in enumerate(keys):
            if index:
                self._sleep(self._delay_s)
            if not self.send_key(key):
                return False
        return True

    def send_combination(self, keys: list[str]) -> bool:
        if not self._ready() or not keys:
            return False
        resolved = [self._resolve(k) for k in keys]
        if any(r is None for r in resolved):
            return False
        *modifiers, main = resolved
        _logger.debug("Sending combination %s", "+".join(keys))

        def _press() -> None:
            with self._keyboard.pressed(*modifiers):
                self._keyboard.tap(main)

        return self._guard(f"send combination {'+'.join(keys)!r}", _press)

    def type_text(self, text: str) -> bool:
        if not self._ready():
            return False
        _logger.debug("Typing %r", text)
        return self._guard("type text", self._keyboard.type, text)

    def mouse_click(self, x: int | None = None, y: int | None = None, button: str = "left") -> bool:
        """Click *button*; moves the pointer first when coordinates are given."""
        if not self._ready() or not self._require_game_input("mouse click"):
            return False
        target = getattr(self._buttons, button, None)
        if target is None:
            _logger.warning("Unknown mouse button: %s", button)
            return False

        def _click() -> None:
            if x is not None and y is not None:
                self._mouse.position = (int(x), int(y))
            self._mouse.click(target)

        return self._guard("mouse click", _click)

    def key_down(self, key: str) -> bool:
        if not self._ready() or not self._require_game_input("key down"):
            return False
        resolved = self._resolve(key)
        if resolved is None:
            return False
        return self._guard(f"key down {key!r}", self._keyboard.press, resolved)

    def key_up(self, key: str) -> bool:
        if not self._ready() or not self._require_game_input("key up"):
            return False
        resolved = self._resolve(key)
        if resolved is None:
            return False
        return self._guard(f"key up {key!r}", self._keyboard.release, resolved)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _ready(self) -> bool:
        if not self.enabled:
            _logger.info("Key simulation is disabled")
        return self.enabled

    def _require_game_input(self, what: str) -> bool:
        if not self.game_input:
            _logger.warning("%s requires a game mode to be active", what)
        return self.game_input

    def _resolve(self, key: str) -> Any | None:
        """Map a key name to something the keyboard controller accepts."""
        name = key.lower()
        if len(name) == 1:
            return name
        attr = _KEY_ALIASES.get(name, name)
        resolved = getattr(self._keys, attr, None)
        if resolved is None:
            _logger.warning("Unsupported key: %s", key)
        return resolved

    def _guard(self, what: str, fn, *args) -> bool:
        try:
            fn(*args)
        except Exception as exc:  # pynput backends raise platform-specific errors
            _logger.error("Failed to %s: %s", what, exc)
            return False
        return True
