"""FastAPI control API — the operator surface of a running client."""

from __future__ import annotations

from fastapi import FastAPI, HTTPException

from velolink import __version__
from velolink.dispatch.actions import describe
from velolink.errors import ConfigError
from velolink.web.schemas import (
    ClearedResponse,
    CommandRequest,
    CommandResponse,
    ConfigChange,
    HealthResponse,
    ModeRecord,
    ModesResponse,
    PendingResponse,
    ProcessingResponse,
    ReloadResponse,
    ScenarioRecord,
    ScenariosResponse,
    SelectModeRequest,
    StatusResponse,
    TelemetryResponse,
)


def create_app(client) -> FastAPI:
    """Build the API around *client* (a :class:`~velolink.client.VelolinkClient`)."""
    app = FastAPI(title="Velolink", version=__version__)
    dispatcher = client.dispatcher

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @app.get("/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(status="ok", version=__version__)

    @app.get("/api/status", response_model=StatusResponse)
    def status() -> StatusResponse:
        return StatusResponse(**client.status())

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    @app.post("/api/processing/enable", response_model=ProcessingResponse)
    def enable_processing() -> ProcessingResponse:
        replayed = dispatcher.enable_processing()
        return ProcessingResponse(enabled=True, replayed=replayed)

    @app.post("/api/processing/disable", response_model=ProcessingResponse)
    def disable_processing() -> ProcessingResponse:
        dispatcher.disable_processing()
        return ProcessingResponse(enabled=False)

    @app.post("/api/processing/toggle", response_model=ProcessingResponse)
    def toggle_processing() -> ProcessingResponse:
        return ProcessingResponse(enabled=dispatcher.toggle_processing())

    @app.get("/api/pending", response_model=PendingResponse)
    def pending() -> PendingResponse:
        lines = dispatcher.pending_lines()
        return PendingResponse(count=len(lines), lines=lines)

    @app.delete("/api/pending", response_model=ClearedResponse)
    def clear_pending() -> ClearedResponse:
        return ClearedResponse(cleared=dispatcher.clear_pending())

    # ------------------------------------------------------------------
    # Game modes
    # ------------------------------------------------------------------

    @app.get("/api/modes", response_model=ModesResponse)
    def modes() -> ModesResponse:
        return ModesResponse(
            current=dispatcher.current_mode_id,
            modes=[ModeRecord(id=m.id, name=m.name, description=m.description) for m in dispatcher.list_modes()],
        )

    @app.put("/api/mode", response_model=ModeRecord)
    def select_mode(req: SelectModeRequest) -> ModeRecord:
        if not dispatcher.select_mode(req.mode):
            raise HTTPException(status_code=404, detail=f"unknown game mode: {req.mode}")
        info = dispatcher.current_mode()
        return ModeRecord(id=info.id, name=info.name, description=info.description)

    # ------------------------------------------------------------------
    # Scenarios
    # ------------------------------------------------------------------

    @app.get("/api/scenarios", response_model=ScenariosResponse)
    def scenarios() -> ScenariosResponse:
        return ScenariosResponse(
            scenarios=[
                ScenarioRecord(
                    trigger=e.trigger,
                    action=describe(e.action),
                    description=e.description,
                    trigger_count=e.trigger_count,
                    last_triggered=e.last_triggered,
                )
                for e in dispatcher.scenarios.entries()
            ]
        )

    @app.delete("/api/scenarios/stats", status_code=204)
    def clear_stats() -> None:
        dispatcher.scenarios.clear_stats()

    # ------------------------------------------------------------------
    # Telemetry
    # ------------------------------------------------------------------

    @app.get("/api/telemetry", response_model=TelemetryResponse)
    def telemetry() -> TelemetryResponse:
        snap = client.tracker.snapshot()
        return TelemetryResponse(
            speed_mps=snap.speed_mps,
            speed_kmh=snap.speed_kmh,
            total_distance_m=snap.total_distance_m,
            bucket_dwell_ms=client.tracker.bucket_dwell_ms(),
        )

    @app.get("/api/telemetry/report")
    def telemetry_report() -> dict:
        return client.tracker.build_report().to_dict()

    # ------------------------------------------------------------------
    # Commands and configuration
    # ------------------------------------------------------------------

    @app.post("/api/commands", response_model=CommandResponse)
    def send_command(req: CommandRequest) -> CommandResponse:
        """Inject *line* as if the device had sent it."""
        if not req.line.strip():
            raise HTTPException(status_code=422, detail="line must not be empty")
        outcome = dispatcher.submit(req.line)
        return CommandResponse(outcome=outcome.value)

    @app.post("/api/config/reload", response_model=ReloadResponse)
    def reload_config() -> ReloadResponse:
        try:
            changes = client.reload_settings()
        except ConfigError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return ReloadResponse(changes=[ConfigChange(path=p, old=o, new=n) for p, o, n in changes])

    return app
