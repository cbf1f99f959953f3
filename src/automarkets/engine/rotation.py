"""Rotation Selector: which archetype to create next."""

from __future__ import annotations

from dataclasses import dataclass, replace

from automarkets.models import SINGLE_TOKEN_TYPES, Market, MarketType


@dataclass(frozen=True)
class RotationState:
    """Last created archetype and last battle flavour. Persisted between cycles."""

    last_market_type: MarketType | None = None
    last_battle_type: MarketType | None = None

    def next_battle_type(self) -> MarketType:
        """Strict alternation; dump first when no battle has been created yet."""
        if self.last_battle_type == MarketType.BATTLE_DUMP:
            return MarketType.BATTLE_RACE
        return MarketType.BATTLE_DUMP

    def advanced(self, created: MarketType) -> RotationState:
        """State after a market of this archetype was persisted."""
        if created.is_battle:
            return replace(self, last_market_type=created, last_battle_type=created)
        return replace(self, last_market_type=created)


def detect_market_type(market: Market) -> MarketType | None:
    """Archetype of a stored market. Uses the explicit column, falling back to question markers."""
    if market.market_type is not None:
        return market.market_type
    q = market.question.lower()
    if "market cap" in q and "120 minutes" in q:
        return MarketType.MARKET_CAP
    if "24h volume" in q and "1 day" in q:
        return MarketType.VOLUME
    if "holders" in q and "1 day" in q:
        return MarketType.HOLDERS
    if "dump 50%" in q:
        return MarketType.BATTLE_DUMP
    if q.startswith("which token will reach"):
        return MarketType.BATTLE_RACE
    return None


def active_types(active_markets: list[Market]) -> set[MarketType]:
    types = set()
    for m in active_markets:
        t = detect_market_type(m)
        if t is not None:
            types.add(t)
    return types


def select_market_type(active_markets: list[Market], state: RotationState) -> MarketType | None:
    """First free single-token archetype, else the next battle flavour; None when a battle is already live.

    Does not mutate state: callers advance it only after the new market is persisted.
    """
    occupied = active_types(active_markets)
    for market_type in SINGLE_TOKEN_TYPES:
        if market_type not in occupied:
            return market_type
    if any(t.is_battle for t in occupied):
        return None
    return state.next_battle_type()
