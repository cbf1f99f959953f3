"""Shared fixtures: temp DuckDB, fake token data provider, recording publisher."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Any

import pytest

from automarkets.config import Settings
from automarkets.errors import ProviderError
from automarkets.models import Candle, TokenDetail, TrendingToken
from automarkets.storage.db import get_connection, init_schema
from automarkets.storage.markets import MarketStore

BASE58 = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
NOW = 1_700_000_000_000
HOUR = 3_600_000


def addr(n: int) -> str:
    """Deterministic valid 44-char base58 address."""
    chars = []
    for i in range(44):
        chars.append(BASE58[(n * 7 + i * 13) % len(BASE58)])
    return "".join(chars)


def trending(n: int, name: str, market_cap: float = 300_000, **kwargs: Any) -> TrendingToken:
    kwargs.setdefault("created_at", NOW - 10 * HOUR)
    kwargs.setdefault("image", f"https://img.example/{n}.png")
    return TrendingToken(address=addr(n), name=name, symbol=name[:4].upper(), market_cap=market_cap, **kwargs)


class FakeProvider:
    """In-memory Token Data Provider with call recording and injectable failures."""

    def __init__(
        self,
        trending: list[TrendingToken] | None = None,
        details: dict[str, TokenDetail] | None = None,
        charts: dict[str, list[Candle]] | None = None,
    ) -> None:
        self.trending = trending or []
        self.details = details or {}
        self.charts = charts or {}
        self.fail: set[str] = set()
        self.calls: list[tuple[str, Any]] = []

    def _check(self, op: str, key: str | None = None) -> None:
        if op in self.fail or (key is not None and key in self.fail):
            raise ProviderError(f"{op} unavailable")

    def list_trending(self) -> list[TrendingToken]:
        self.calls.append(("list_trending", None))
        self._check("list_trending")
        return list(self.trending)

    def lookup_batch(self, addresses: list[str]) -> dict[str, TokenDetail]:
        self.calls.append(("lookup_batch", list(addresses)))
        self._check("lookup_batch")
        for a in addresses:
            self._check("lookup_batch", a)
        return {a: self.details[a] for a in addresses if a in self.details}

    def chart(self, address: str, interval: str = "5m", limit: int = 1000, time_from: int | None = None) -> list[Candle]:
        self.calls.append(("chart", address))
        self._check("chart", address)
        candles = self.charts.get(address, [])
        if time_from is not None:
            candles = [c for c in candles if c.time >= time_from]
        return candles[:limit]


class RecordingPublisher:
    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def publish(self, event_type: str, data: dict[str, Any]) -> None:
        self.events.append((event_type, data))

    def types(self) -> list[str]:
        return [t for t, _ in self.events]


@pytest.fixture
def temp_db():
    tmp = tempfile.mkdtemp()
    path = Path(tmp) / "test.duckdb"
    conn = get_connection(path)
    init_schema(conn)
    yield conn
    conn.close()
    path.unlink(missing_ok=True)
    Path(tmp).rmdir()


@pytest.fixture
def store(temp_db) -> MarketStore:
    return MarketStore(temp_db)


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        storage={"db_path": str(tmp_path / "jobs.duckdb"), "uploads_dir": str(tmp_path / "uploads")},
        provider={"api_key_env": "AUTOMARKETS_TEST_KEY"},
        automation={"resolution_window_sec": 60, "test_mode": False},
        api={"cron_secret_env": "AUTOMARKETS_TEST_CRON_SECRET"},
    )
