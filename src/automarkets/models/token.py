"""TokenDetail, TrendingToken, Candle - read-only provider data."""

from __future__ import annotations

from pydantic import BaseModel, Field

MS_PER_HOUR = 3_600_000


class TokenDetail(BaseModel):
    """Current metrics for one token (batched lookup result)."""

    address: str
    name: str = ""
    symbol: str = ""
    image: str | None = None
    market_cap: float = Field(0.0, ge=0, description="Market cap in USD")
    volume_24h: float = Field(0.0, ge=0, description="24h volume in USD")
    holders: int = Field(0, ge=0)
    created_at: int | None = None  # ms epoch

    @property
    def display_name(self) -> str:
        """Name shown in question text; falls back to the symbol."""
        return (self.name or self.symbol or "").strip()


class TrendingToken(TokenDetail):
    """Entry of the provider's trending list. Fetched fresh each cycle, never persisted."""

    def age_hours(self, now_ms: int) -> float:
        """Wall-clock age in hours; 0 when creation time is unknown."""
        if not self.created_at:
            return 0.0
        return max(0, now_ms - self.created_at) / MS_PER_HOUR


class Candle(BaseModel):
    """One OHLCV candle. Values are market cap in USD when charted with marketCap=true."""

    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0
    time: int  # ms epoch, candle open
