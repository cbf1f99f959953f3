"""Token Data Provider protocol. Implementations serialise their own calls."""

from __future__ import annotations

from typing import Protocol

from automarkets.models import Candle, TokenDetail, TrendingToken


class TokenDataProvider(Protocol):
    """Trending listing, batched lookup and OHLCV history. Raises ProviderError on failure."""

    def list_trending(self) -> list[TrendingToken]: ...

    def lookup_batch(self, addresses: list[str]) -> dict[str, TokenDetail]: ...

    def chart(
        self,
        address: str,
        interval: str = "5m",
        limit: int = 1000,
        time_from: int | None = None,
    ) -> list[Candle]: ...
