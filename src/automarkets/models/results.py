"""Cycle results, automation config and execution log entries."""

from __future__ import annotations

from pydantic import BaseModel, Field

from automarkets.models.market import MarketType


class CycleResult(BaseModel):
    """Outcome of one creation cycle. 'Nothing eligible' is success without a market."""

    success: bool
    market_created: bool = False
    market_id: int | None = None
    market_type: MarketType | None = None
    token_addresses: list[str] = Field(default_factory=list)
    reason: str | None = None
    error: str | None = None


class ResolutionReport(BaseModel):
    """Outcome of one resolution check across all pending rows."""

    checked: int = 0
    resolved: int = 0
    refunded: int = 0
    errors: list[str] = Field(default_factory=list)
    skipped: str | None = None  # reason the check did not run

    @property
    def success(self) -> bool:
        return not self.errors


class AutomationConfig(BaseModel):
    enabled: bool = False
    last_run: int | None = None  # ms epoch


class AutomationLogEntry(BaseModel):
    id: int | None = None
    execution_time: int  # ms epoch
    market_id: int | None = None
    question_type: str
    token_address: str | None = None
    token_address2: str | None = None
    success: bool
    error_message: str | None = None
