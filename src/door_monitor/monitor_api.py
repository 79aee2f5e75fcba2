from __future__ import annotations

import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI
from pydantic import BaseModel

from .config import MonitorSettings
from .entry_event import EntryAttempt, TriggerSource
from .runtime import MonitorRuntime, build_runtime
from .visitor import Visitor


class HealthOut(BaseModel):
    status: str
    time_utc: datetime

    model_config = {"json_schema_extra": {"examples": [{"status": "ok", "time_utc": "2026-02-18T12:00:00Z"}]}}


class HeartbeatOut(BaseModel):
    site_id: str
    site_name: str
    status: str
    camera_ready: bool
    recognition_ready: bool
    time_utc: datetime
    uptime_seconds: int

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "site_id": "dorm_demo",
                    "site_name": "Dorm Room",
                    "status": "idle",
                    "camera_ready": True,
                    "recognition_ready": True,
                    "time_utc": "2026-02-18T12:00:00Z",
                    "uptime_seconds": 42,
                }
            ]
        }
    }


class EntryOut(BaseModel):
    accepted: bool
    state: str


class RefreshOut(BaseModel):
    whitelist_count: int
    intruder_count: int


def create_app(cfg: MonitorSettings, runtime: Optional[MonitorRuntime] = None) -> FastAPI:
    """
    Create the Door Monitor HTTP API app.

    The app owns the monitor's lifetime: the runtime is started on app
    startup and stopped on shutdown.
    """
    runtime = runtime or build_runtime(cfg)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await runtime.start()
        yield
        await runtime.stop()

    app = FastAPI(
        title="Door Monitor API",
        version="0.1.0",
        description="Health, visitor snapshots and manual override for the door monitor.",
        lifespan=lifespan,
    )
    app.state.runtime = runtime

    # Store start time for uptime calculation
    started_monotonic = time.monotonic()

    @app.get("/")
    def root():
        return {"status": "door monitor running"}

    @app.get("/health", response_model=HealthOut, tags=["health"])
    def health() -> HealthOut:
        """Liveness check: returns OK if the monitor process is running."""
        return HealthOut(status="ok", time_utc=datetime.now(timezone.utc))

    @app.get("/heartbeat", response_model=HeartbeatOut, tags=["health"])
    def heartbeat() -> HeartbeatOut:
        """Returns site identity + coordinator state + collaborator readiness + uptime."""
        uptime = int(time.monotonic() - started_monotonic)
        return HeartbeatOut(
            site_id=cfg.site_id,
            site_name=cfg.site_name,
            status=runtime.coordinator.state.value,
            camera_ready=runtime.camera.is_ready(),
            recognition_ready=runtime.backend.is_ready(),
            time_utc=datetime.now(timezone.utc),
            uptime_seconds=uptime,
        )

    @app.get("/visitors/whitelist", response_model=list[Visitor], tags=["visitors"])
    def whitelist() -> list[Visitor]:
        return list(runtime.directory.whitelist)

    @app.get("/visitors/intruders", response_model=list[Visitor], tags=["visitors"])
    def intruders() -> list[Visitor]:
        return list(runtime.directory.intruders)

    @app.post("/visitors/refresh", response_model=RefreshOut, tags=["visitors"])
    async def refresh() -> RefreshOut:
        """Re-read both collections from the photo store."""
        await runtime.sync.refresh_all()
        return RefreshOut(
            whitelist_count=len(runtime.directory.whitelist),
            intruder_count=len(runtime.directory.intruders),
        )

    @app.post("/entry", response_model=EntryOut, tags=["entry"])
    async def manual_entry() -> EntryOut:
        """Manual override button: same as the motion sensor firing."""
        accepted = runtime.coordinator.signal(TriggerSource.MANUAL)
        return EntryOut(accepted=accepted, state=runtime.coordinator.state.value)

    @app.get("/entries", response_model=list[EntryAttempt], tags=["entry"])
    def entries() -> list[EntryAttempt]:
        """Most recent finished entry attempts, oldest first."""
        return list(runtime.coordinator.history)

    return app
