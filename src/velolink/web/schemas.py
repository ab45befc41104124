"""Pydantic request/response schemas for the control API."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    version: str


class StatusResponse(BaseModel):
    connected: bool
    port: str | None
    processing_enabled: bool
    pending_count: int
    mode: str
    telemetry_running: bool


class ProcessingResponse(BaseModel):
    enabled: bool
    replayed: int = 0


class ModeRecord(BaseModel):
    id: str
    name: str
    description: str


class ModesResponse(BaseModel):
    current: str
    modes: list[ModeRecord]


class SelectModeRequest(BaseModel):
    mode: str


class PendingResponse(BaseModel):
    count: int
    lines: list[str]


class ClearedResponse(BaseModel):
    cleared: int


class ScenarioRecord(BaseModel):
    trigger: str
    action: str
    description: str
    trigger_count: int
    last_triggered: datetime | None


class ScenariosResponse(BaseModel):
    scenarios: list[ScenarioRecord]


class TelemetryResponse(BaseModel):
    speed_mps: float
    speed_kmh: float
    total_distance_m: float
    bucket_dwell_ms: dict[str, float]


class CommandRequest(BaseModel):
    line: str


class CommandResponse(BaseModel):
    outcome: str


class ConfigChange(BaseModel):
    path: str
    old: Any = None
    new: Any = None


class ReloadResponse(BaseModel):
    changes: list[ConfigChange]
