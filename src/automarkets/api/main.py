"""FastAPI surface: cron-authorised job triggers, automation config and read-only listings."""

from __future__ import annotations

import secrets
from contextlib import asynccontextmanager
from typing import Iterator

from fastapi import Depends, FastAPI, Header, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from automarkets.api.schemas import (
    AutomationConfigResponse,
    AutomationConfigUpdate,
    AutomationLogsResponse,
    CreationJobResponse,
    HealthResponse,
    MarketsListResponse,
    ResolutionJobResponse,
)
from automarkets.config import Settings, get_settings
from automarkets.jobs import run_creation_job, run_resolution_job
from automarkets.models import MarketType
from automarkets.storage.automation import (
    get_automation_config,
    recent_automation_logs,
    set_automation_enabled,
)
from automarkets.storage.db import get_connection, init_schema
from automarkets.storage.markets import MarketStore

# Set by run_api() so lifespan can start the scheduler in the same process.
_run_with_scheduler = False
_config_profile: str | None = None


def get_app_settings() -> Settings:
    return get_settings(_config_profile)


def get_conn(settings: Settings = Depends(get_app_settings)) -> Iterator:
    conn = get_connection(settings.db_path)
    try:
        init_schema(conn)
        yield conn
    finally:
        conn.close()


def _bearer(authorization: str | None) -> str | None:
    if authorization and authorization.lower().startswith("bearer "):
        return authorization[7:].strip()
    return None


def require_cron_secret(
    settings: Settings = Depends(get_app_settings),
    x_cron_secret: str | None = Header(None),
    x_job_secret: str | None = Header(None),
    authorization: str | None = Header(None),
) -> None:
    """Accept the shared secret from x-cron-secret, x-job-secret or a Bearer token."""
    expected = settings.cron_secret
    provided = x_cron_secret or x_job_secret or _bearer(authorization)
    if not expected or not provided or not secrets.compare_digest(provided, expected):
        raise HTTPException(status_code=401, detail="Unauthorized")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings(_config_profile)
    conn = get_connection(settings.db_path)
    try:
        init_schema(conn)
    finally:
        conn.close()

    scheduler = None
    if _run_with_scheduler:
        from automarkets.scheduler import AutomationScheduler

        scheduler = AutomationScheduler(settings)
        scheduler.start()

    yield

    if scheduler is not None:
        scheduler.stop(wait=False)


app = FastAPI(title="Automarkets API", version="0.1.0", lifespan=lifespan)
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="ok")


@app.post("/jobs/automated-markets", response_model=CreationJobResponse, dependencies=[Depends(require_cron_secret)])
def trigger_creation(
    market_type: MarketType | None = Query(None, alias="type"),
    settings: Settings = Depends(get_app_settings),
) -> CreationJobResponse:
    """Run one creation cycle now. Bypasses the enable flag; `type` forces an archetype."""
    result = run_creation_job(settings, manual=True, forced_type=market_type)
    return CreationJobResponse(
        success=result.success,
        market_created=result.market_created,
        market_id=result.market_id,
        market_type=result.market_type.value if result.market_type else None,
        reason=result.reason,
        error=result.error,
    )


@app.post(
    "/jobs/automated-resolutions", response_model=ResolutionJobResponse, dependencies=[Depends(require_cron_secret)]
)
def trigger_resolution(settings: Settings = Depends(get_app_settings)) -> ResolutionJobResponse:
    report = run_resolution_job(settings)
    return ResolutionJobResponse(
        success=report.success,
        checked=report.checked,
        resolved=report.resolved,
        refunded=report.refunded,
        errors=report.errors,
        skipped=report.skipped,
    )


@app.get("/automation/config", response_model=AutomationConfigResponse)
def automation_config(conn=Depends(get_conn)) -> AutomationConfigResponse:
    config = get_automation_config(conn)
    return AutomationConfigResponse(enabled=config.enabled, last_run=config.last_run)


@app.post("/automation/config", response_model=AutomationConfigResponse, dependencies=[Depends(require_cron_secret)])
def update_automation_config(body: AutomationConfigUpdate, conn=Depends(get_conn)) -> AutomationConfigResponse:
    config = set_automation_enabled(conn, body.enabled)
    return AutomationConfigResponse(enabled=config.enabled, last_run=config.last_run)


@app.get("/automation/logs", response_model=AutomationLogsResponse)
def automation_logs(
    limit: int = Query(50, ge=1, le=100),
    conn=Depends(get_conn),
) -> AutomationLogsResponse:
    logs = recent_automation_logs(conn, limit=limit)
    return AutomationLogsResponse(logs=logs, total=len(logs))


@app.get("/markets", response_model=MarketsListResponse)
def markets_list(
    active: bool = False,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    conn=Depends(get_conn),
) -> MarketsListResponse:
    """Automated markets, newest first."""
    all_markets = MarketStore(conn).list_markets(automated_only=True, active_only=active)
    return MarketsListResponse(markets=all_markets[offset : offset + limit], total=len(all_markets))


def run_api(
    host: str = "127.0.0.1",
    port: int = 8000,
    with_scheduler: bool = False,
    profile: str | None = None,
) -> None:
    global _run_with_scheduler, _config_profile
    _run_with_scheduler = with_scheduler
    _config_profile = profile
    import uvicorn

    uvicorn.run("automarkets.api.main:app", host=host, port=port, reload=False)
