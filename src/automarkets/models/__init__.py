"""Canonical schema (Pydantic) - tokens, candles, markets, resolution tracking."""

from automarkets.models.market import (
    BATTLE_TYPES,
    SINGLE_TOKEN_TYPES,
    Market,
    MarketStatus,
    MarketType,
    Outcome,
    ResolutionTracking,
    TrackingStatus,
)
from automarkets.models.results import (
    AutomationConfig,
    AutomationLogEntry,
    CycleResult,
    ResolutionReport,
)
from automarkets.models.token import Candle, TokenDetail, TrendingToken

__all__ = [
    "BATTLE_TYPES",
    "SINGLE_TOKEN_TYPES",
    "AutomationConfig",
    "AutomationLogEntry",
    "Candle",
    "CycleResult",
    "Market",
    "MarketStatus",
    "MarketType",
    "Outcome",
    "ResolutionReport",
    "ResolutionTracking",
    "TokenDetail",
    "TrackingStatus",
    "TrendingToken",
]
