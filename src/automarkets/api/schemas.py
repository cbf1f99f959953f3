"""Pydantic schemas for API request/response consistency and OpenAPI docs."""

from __future__ import annotations

from pydantic import BaseModel, Field

from automarkets.models import AutomationLogEntry, Market


# --- Health ---
class HealthResponse(BaseModel):
    status: str = "ok"


# --- Error (consistent shape for 4xx/5xx) ---
class ErrorResponse(BaseModel):
    detail: str = Field(..., description="Human-readable message")
    code: str | None = Field(None, description="Machine-readable code, e.g. unauthorized, invalid_type")


# --- Jobs ---
class CreationJobResponse(BaseModel):
    success: bool
    market_created: bool
    market_id: int | None = None
    market_type: str | None = None
    reason: str | None = None
    error: str | None = None


class ResolutionJobResponse(BaseModel):
    success: bool
    checked: int
    resolved: int
    refunded: int
    errors: list[str]
    skipped: str | None = None


# --- Automation ---
class AutomationConfigResponse(BaseModel):
    enabled: bool
    last_run: int | None = None


class AutomationConfigUpdate(BaseModel):
    enabled: bool


class AutomationLogsResponse(BaseModel):
    logs: list[AutomationLogEntry]
    total: int


# --- Markets ---
class MarketsListResponse(BaseModel):
    markets: list[Market]
    total: int
