"""Command classification and dispatch.

Public API
----------
CommandDispatcher  - routes device lines to actions
Outcome            - how a line was handled
ScenarioTable      - default trigger table with statistics
GameMode           - per-game rule table
GAME_MODES         - the built-in mode catalog
PendingBuffer      - bounded FIFO used while dispatch is paused
RawLine            - one line from the device
"""

from velolink.dispatch.classifier import RawLine, classify, normalize
from velolink.dispatch.dispatcher import CommandDispatcher, DispatchStatus, Outcome
from velolink.dispatch.modes import DEFAULT_MODE, GAME_MODES, GameMode, ModeInfo
from velolink.dispatch.pending import PendingBuffer
from velolink.dispatch.scenarios import ScenarioEntry, ScenarioTable

__all__ = [
    "DEFAULT_MODE",
    "GAME_MODES",
    "CommandDispatcher",
    "DispatchStatus",
    "GameMode",
    "ModeInfo",
    "Outcome",
    "PendingBuffer",
    "RawLine",
    "ScenarioEntry",
    "ScenarioTable",
    "classify",
    "normalize",
]
