"""Solana Tracker data API client - trending tokens, batched lookup, market-cap charts."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from automarkets.errors import ProviderError, RateLimitError
from automarkets.models import Candle, TokenDetail, TrendingToken
from automarkets.provider.rate_limit import TokenBucket, shared_bucket

log = structlog.get_logger(__name__)

SOLANA_TRACKER_URL = "https://data.solanatracker.io"
MAX_BATCH = 20


def _first_pool(raw: dict[str, Any]) -> dict[str, Any]:
    pools = raw.get("pools") or []
    if pools and isinstance(pools[0], dict):
        return pools[0]
    return {}


def _float(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def parse_token(raw: dict[str, Any], cls: type[TokenDetail] = TokenDetail) -> TokenDetail:
    """Convert a Solana Tracker token object ({token, pools, holders}) to a canonical model."""
    if not isinstance(raw, dict) or not isinstance(raw.get("token"), dict):
        raise ProviderError("token payload missing 'token' object")
    token = raw["token"]
    pool = _first_pool(raw)
    creation = token.get("creation") or {}
    created_time = creation.get("created_time")
    return cls(
        address=str(token.get("mint") or ""),
        name=str(token.get("name") or ""),
        symbol=str(token.get("symbol") or ""),
        image=token.get("image") or None,
        market_cap=_float((pool.get("marketCap") or {}).get("usd")),
        volume_24h=_float((pool.get("txns") or {}).get("volume24h")),
        holders=int(raw.get("holders") or 0),
        # API reports seconds; models use ms
        created_at=int(created_time) * 1000 if created_time else None,
    )


def parse_candle(raw: dict[str, Any]) -> Candle:
    """Convert an oclhv entry (time in seconds) to a Candle (time in ms)."""
    return Candle(
        open=_float(raw.get("open")),
        high=_float(raw.get("high")),
        low=_float(raw.get("low")),
        close=_float(raw.get("close")),
        volume=_float(raw.get("volume")),
        time=int(raw["time"]) * 1000,
    )


class SolanaTrackerClient:
    """Token Data Provider over HTTP.

    Clients share one process-wide bucket per rate unless given their own, so
    concurrent jobs together stay within rate requests per second.
    """

    def __init__(
        self,
        api_key: str | None,
        base_url: str = SOLANA_TRACKER_URL,
        timeout: float = 30.0,
        requests_per_second: float = 1.0,
        http_client: httpx.Client | None = None,
        bucket: TokenBucket | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._bucket = bucket or shared_bucket(requests_per_second)
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["x-api-key"] = api_key
        self._client = http_client or httpx.Client(timeout=timeout, headers=headers)

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        waited = self._bucket.wait_for_token()
        if waited > 0.05:
            log.debug("provider_throttled", path=path, waited_sec=round(waited, 2))
        url = f"{self.base_url}{path}"
        try:
            resp = self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise ProviderError(f"{method} {path} failed: {e}") from e
        if resp.status_code == 429:
            raise RateLimitError(f"{method} {path} rate limited (429)")
        if resp.status_code >= 400:
            raise ProviderError(f"{method} {path} returned {resp.status_code}: {resp.text[:200]}")
        try:
            return resp.json()
        except ValueError as e:
            raise ProviderError(f"{method} {path} returned malformed JSON") from e

    def list_trending(self) -> list[TrendingToken]:
        """Trending tokens in provider rank order. Unparseable rows are skipped."""
        data = self._request("GET", "/tokens/trending")
        if isinstance(data, dict):
            data = data.get("data", data.get("tokens", []))
        if not isinstance(data, list):
            raise ProviderError("trending payload is not a list")
        tokens: list[TrendingToken] = []
        for row in data:
            try:
                tokens.append(parse_token(row, TrendingToken))
            except (ProviderError, ValueError) as e:
                log.warning("skip_trending_token", error=str(e))
        return tokens

    def lookup_batch(self, addresses: list[str]) -> dict[str, TokenDetail]:
        """Current details keyed by address. Missing addresses are absent from the result."""
        result: dict[str, TokenDetail] = {}
        for start in range(0, len(addresses), MAX_BATCH):
            chunk = addresses[start : start + MAX_BATCH]
            data = self._request("POST", "/tokens/multi", json={"tokens": chunk})
            if isinstance(data, dict) and isinstance(data.get("tokens"), dict):
                data = data["tokens"]
            if not isinstance(data, dict):
                raise ProviderError("batch lookup payload is not an object")
            for address, raw in data.items():
                try:
                    result[address] = parse_token(raw)
                except (ProviderError, ValueError) as e:
                    log.warning("skip_lookup_token", address=address, error=str(e))
        return result

    def chart(
        self,
        address: str,
        interval: str = "5m",
        limit: int = 1000,
        time_from: int | None = None,
    ) -> list[Candle]:
        """Market-cap OHLCV candles, oldest first. time_from is ms epoch."""
        params: dict[str, Any] = {"type": interval, "marketCap": "true"}
        if time_from is not None:
            params["time_from"] = time_from // 1000
        data = self._request("GET", f"/chart/{address}", params=params)
        rows = data.get("oclhv") if isinstance(data, dict) else None
        if not isinstance(rows, list):
            raise ProviderError(f"chart payload for {address} missing 'oclhv'")
        try:
            candles = [parse_candle(r) for r in rows]
        except (KeyError, TypeError, ValueError) as e:
            raise ProviderError(f"malformed candle for {address}: {e}") from e
        candles.sort(key=lambda c: c.time)
        return candles[:limit] if limit else candles

    def close(self) -> None:
        self._client.close()
