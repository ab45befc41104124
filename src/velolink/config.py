"""Settings — built-in defaults, optional JSON file, ``VELOLINK_*`` environment overrides."""

from __future__ import annotations

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from velolink.errors import ConfigError

_logger = logging.getLogger(__name__)


class SerialSettings(BaseModel):
    port: str | None = None
    baud_rate: int = Field(default=9600, gt=0)
    timeout_s: float = Field(default=0.1, gt=0)


class KeySimulationSettings(BaseModel):
    enabled: bool = True
    game_input: bool = False
    delay_between_keys_ms: int = Field(default=10, ge=0)


class ScenarioSettings(BaseModel):
    game_mode: str = "default"
    processing_enabled: bool = False
    custom_mappings: dict[str, str] = Field(default_factory=dict)
    """Extra scenario triggers: trigger → invoker action name."""


class TelemetrySettings(BaseModel):
    wheel_diameter_mm: float = Field(default=700.0, gt=0)
    report_dir: str = "reports"


class LoggingSettings(BaseModel):
    level: str = "INFO"
    log_file: str | None = None


class Settings(BaseModel):
    serial: SerialSettings = Field(default_factory=SerialSettings)
    key_simulation: KeySimulationSettings = Field(default_factory=KeySimulationSettings)
    scenarios: ScenarioSettings = Field(default_factory=ScenarioSettings)
    telemetry: TelemetrySettings = Field(default_factory=TelemetrySettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


# Environment variable → dotted settings path.
_ENV_OVERRIDES: tuple[tuple[str, str], ...] = (
    ("VELOLINK_PORT", "serial.port"),
    ("VELOLINK_BAUD_RATE", "serial.baud_rate"),
    ("VELOLINK_GAME_MODE", "scenarios.game_mode"),
    ("VELOLINK_PROCESSING_ENABLED", "scenarios.processing_enabled"),
    ("VELOLINK_WHEEL_DIAMETER_MM", "telemetry.wheel_diameter_mm"),
    ("VELOLINK_REPORT_DIR", "telemetry.report_dir"),
    ("VELOLINK_LOG_LEVEL", "logging.level"),
)


def merge_config(defaults: dict, overrides: dict) -> dict:
    """Return *defaults* deep-merged with *overrides* (overrides win)."""
    merged = copy.deepcopy(defaults)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def config_changes(old: dict, new: dict, prefix: str = "") -> list[tuple[str, Any, Any]]:
    """List ``(dotted_path, old_value, new_value)`` for every leaf that differs."""
    changes: list[tuple[str, Any, Any]] = []
    for key in sorted(set(old) | set(new)):
        path = f"{prefix}.{key}" if prefix else key
        before, after = old.get(key), new.get(key)
        if isinstance(before, dict) and isinstance(after, dict):
            changes.extend(config_changes(before, after, path))
        elif before != after:
            changes.append((path, before, after))
    return changes


def _set_path(data: dict, dotted: str, value: Any) -> None:
    *parents, leaf = dotted.split(".")
    node = data
    for key in parents:
        node = node.setdefault(key, {})
    node[leaf] = value


def _read_file(path: Path) -> dict:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"cannot read {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"{path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a JSON object")
    return data


def load_settings(path: str | Path | None = None, environ: dict[str, str] | None = None) -> Settings:
    """Build :class:`Settings` from defaults, *path* and the environment.

    ``.env`` in the working directory is loaded first. Raises
    :class:`~velolink.errors.ConfigError` when the file or any value is invalid.
    """
    if environ is None:
        load_dotenv()
        environ = dict(os.environ)

    data = Settings().model_dump()
    if path is not None:
        data = merge_config(data, _read_file(Path(path)))
        _logger.info("Configuration loaded from %s", path)

    for var, dotted in _ENV_OVERRIDES:
        if environ.get(var):
            _set_path(data, dotted, environ[var])

    try:
        return Settings.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"invalid configuration: {exc}") from exc
