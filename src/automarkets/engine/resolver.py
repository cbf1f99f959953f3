"""Resolution Checker: settles pending automated markets from live data or chart history."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Callable

import structlog

from automarkets.errors import AutomarketsError, ProviderError, RateLimitError
from automarkets.models import (
    Candle,
    Market,
    MarketType,
    Outcome,
    ResolutionReport,
    ResolutionTracking,
    TokenDetail,
)
from automarkets.notify.publisher import MARKET_REFUNDED, MARKET_RESOLVED, LogPublisher, Publisher

if TYPE_CHECKING:
    from automarkets.provider.base import TokenDataProvider
    from automarkets.storage.markets import MarketStore

log = structlog.get_logger(__name__)

RESOLVED = "resolved"
REFUNDED = "refunded"


def _now_ms() -> int:
    return int(time.time() * 1000)


def current_metric(market_type: MarketType, token: TokenDetail) -> float:
    if market_type == MarketType.MARKET_CAP:
        return token.market_cap
    if market_type == MarketType.VOLUME:
        return token.volume_24h
    if market_type == MarketType.HOLDERS:
        return float(token.holders)
    raise ValueError(f"no live metric for {market_type}")


def first_hit_time(
    candles: list[Candle],
    market_type: MarketType,
    target: float,
    start_ms: int,
    end_ms: int,
) -> int | None:
    """Open time of the earliest candle inside [start, end] that reaches the target.

    Race: high >= target. Dump: low <= target.
    """
    for c in sorted(candles, key=lambda c: c.time):
        if c.time < start_ms or c.time > end_ms:
            continue
        if market_type == MarketType.BATTLE_RACE and c.high >= target:
            return c.time
        if market_type == MarketType.BATTLE_DUMP and c.low <= target:
            return c.time
    return None


def battle_winner(hit1: int | None, hit2: int | None) -> Outcome | None:
    """yes = token 1 first, no = token 2 first. Same candle goes to token 1."""
    if hit1 is None and hit2 is None:
        return None
    if hit2 is None:
        return Outcome.YES
    if hit1 is None:
        return Outcome.NO
    return Outcome.YES if hit1 <= hit2 else Outcome.NO


class ResolutionChecker:
    """Runs one pass over every pending tracking row. A failing row never blocks the others."""

    def __init__(
        self,
        provider: TokenDataProvider,
        store: MarketStore,
        publisher: Publisher | None = None,
        clock: Callable[[], int] = _now_ms,
        window_sec: int = 60,
        chart_interval: str = "5m",
        chart_limit: int = 1000,
    ) -> None:
        self.provider = provider
        self.store = store
        self.publisher = publisher or LogPublisher()
        self.clock = clock
        self.window_ms = window_sec * 1000
        self.chart_interval = chart_interval
        self.chart_limit = chart_limit

    def run(self) -> ResolutionReport:
        report = ResolutionReport()
        try:
            pending = self.store.list_pending()
        except AutomarketsError as e:
            log.error("pending_load_failed", error=str(e))
            report.errors.append(str(e))
            return report

        for market, tracking in pending:
            report.checked += 1
            try:
                if tracking.market_type.is_battle:
                    outcome = self.check_battle(market, tracking)
                else:
                    outcome = self.check_single(market, tracking)
            except AutomarketsError as e:
                log.warning("resolution_check_failed", market_id=market.id, error=str(e))
                report.errors.append(f"market {market.id}: {e}")
                continue
            if outcome == RESOLVED:
                report.resolved += 1
            elif outcome == REFUNDED:
                report.refunded += 1

        log.info(
            "resolution_pass_done",
            checked=report.checked,
            resolved=report.resolved,
            refunded=report.refunded,
            errors=len(report.errors),
        )
        return report

    def check_single(self, market: Market, tracking: ResolutionTracking) -> str | None:
        """Resolve from the live metric within +-window of expiry; refund once the window is missed."""
        now = self.clock()
        delta = now - market.expires_at
        if delta < -self.window_ms:
            return None
        if delta > self.window_ms:
            log.warning("resolution_window_missed", market_id=market.id, late_sec=delta // 1000)
            return self._refund(market, now)

        details = self.provider.lookup_batch([tracking.token_address])
        token = details.get(tracking.token_address)
        if token is None:
            raise ProviderError(f"token {tracking.token_address} not found")
        value = current_metric(tracking.market_type, token)
        outcome = Outcome.YES if value >= tracking.target_value else Outcome.NO
        log.info(
            "single_token_measured",
            market_id=market.id,
            market_type=tracking.market_type.value,
            value=value,
            target=tracking.target_value,
        )
        return self._resolve(market, outcome, now)

    def _hit_time(self, market: Market, tracking: ResolutionTracking, address: str) -> int | None:
        candles = self.provider.chart(
            address,
            interval=self.chart_interval,
            limit=self.chart_limit,
            time_from=market.created_at,
        )
        return first_hit_time(
            candles, tracking.market_type, tracking.target_value, market.created_at, market.expires_at
        )

    def check_battle(self, market: Market, tracking: ResolutionTracking) -> str | None:
        """Record first hit-times from chart history, then settle by whichever hit first.

        Once past expiry plus the window, a chart that cannot be fetched refunds
        the battle instead of leaving it pending.
        """
        now = self.clock()
        if tracking.token_address2 is None:
            raise ProviderError("battle tracking row has no second token")

        hit1, hit2 = tracking.hit_time, tracking.hit_time2
        try:
            if hit1 is None:
                hit1 = self._hit_time(market, tracking, tracking.token_address)
                if hit1 is not None:
                    self.store.record_check(market.id, now, hit_time=hit1)
            if hit2 is None:
                hit2 = self._hit_time(market, tracking, tracking.token_address2)
                if hit2 is not None:
                    self.store.record_check(market.id, now, hit_time2=hit2)
        except RateLimitError:
            raise
        except ProviderError as e:
            if now <= market.expires_at + self.window_ms:
                raise
            log.warning("battle_chart_unavailable_after_expiry", market_id=market.id, error=str(e))
            self.store.record_check(market.id, now)
            return self._refund(market, now)
        self.store.record_check(market.id, now)

        winner = battle_winner(hit1, hit2)
        if winner is not None:
            return self._resolve(market, winner, now, hit_time=hit1, hit_time2=hit2)
        if now > market.expires_at:
            return self._refund(market, now)
        return None

    def _resolve(self, market: Market, outcome: Outcome, now: int, **extra: int | None) -> str:
        self.store.mark_resolved(market.id, outcome, now)
        log.info("market_resolved", market_id=market.id, outcome=outcome.value, **extra)
        self.publisher.publish(MARKET_RESOLVED, {"id": market.id, "outcome": outcome.value})
        return RESOLVED

    def _refund(self, market: Market, now: int) -> str:
        self.store.mark_refunded(market.id, now)
        log.info("market_refunded", market_id=market.id)
        self.publisher.publish(MARKET_REFUNDED, {"id": market.id, "outcome": Outcome.REFUNDED.value})
        return REFUNDED
