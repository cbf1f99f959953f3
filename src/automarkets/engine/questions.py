"""Question templates per archetype."""

from __future__ import annotations

from automarkets.engine.milestones import format_holders, format_usd
from automarkets.models import MarketType

TEMPLATES = {
    MarketType.MARKET_CAP: "Will {name}'s current market cap be above {target} after 120 minutes?",
    MarketType.VOLUME: "Will {name}'s current 24h volume be above {target} after 1 day?",
    MarketType.HOLDERS: "Will {name} have more than {target} holders after 1 day?",
    MarketType.BATTLE_RACE: "Which token will reach {target} market cap first: {name1} or {name2}?",
    MarketType.BATTLE_DUMP: "Which token will dump 50% first (to {target} market cap): {name1} or {name2}?",
}


def format_target(market_type: MarketType, target: float) -> str:
    if market_type == MarketType.HOLDERS:
        return format_holders(int(target))
    return format_usd(target)


def single_token_question(market_type: MarketType, name: str, target: float) -> str:
    return TEMPLATES[market_type].format(name=name, target=format_target(market_type, target))


def battle_question(market_type: MarketType, name1: str, name2: str, target: float) -> str:
    return TEMPLATES[market_type].format(name1=name1, name2=name2, target=format_target(market_type, target))
