"""Market, ResolutionTracking and their enums."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field

AUTOMATED_CATEGORY = "memecoins"


class MarketType(StrEnum):
    """The five automated market archetypes."""

    MARKET_CAP = "market_cap"
    VOLUME = "volume"
    HOLDERS = "holders"
    BATTLE_RACE = "battle_race"
    BATTLE_DUMP = "battle_dump"

    @property
    def is_battle(self) -> bool:
        return self in BATTLE_TYPES


SINGLE_TOKEN_TYPES = (MarketType.MARKET_CAP, MarketType.VOLUME, MarketType.HOLDERS)
BATTLE_TYPES = (MarketType.BATTLE_RACE, MarketType.BATTLE_DUMP)


class MarketStatus(StrEnum):
    ACTIVE = "active"
    RESOLVED = "resolved"
    REFUNDED = "refunded"


class Outcome(StrEnum):
    YES = "yes"
    NO = "no"
    REFUNDED = "refunded"


class TrackingStatus(StrEnum):
    PENDING = "pending"
    RESOLVED = "resolved"
    REFUNDED = "refunded"


class Market(BaseModel):
    """Prediction market row. Question and token fields are immutable once created."""

    id: int | None = None
    question: str
    category: str = AUTOMATED_CATEGORY
    market_type: MarketType | None = None  # None for rows created before the column existed
    is_automated: bool = True
    token_address: str
    token_address2: str | None = None
    token_name: str | None = None
    token_name2: str | None = None
    image: str | None = None
    payout_type: str = "proportional"
    status: MarketStatus = MarketStatus.ACTIVE
    resolved_outcome: Outcome | None = None
    created_at: int  # ms epoch
    expires_at: int  # ms epoch
    resolved_at: int | None = None

    @property
    def token_addresses(self) -> list[str]:
        return [a for a in (self.token_address, self.token_address2) if a]

    @property
    def token_names(self) -> list[str]:
        return [n for n in (self.token_name, self.token_name2) if n]


class ResolutionTracking(BaseModel):
    """Mutable bookkeeping row driving one automated market from pending to resolved/refunded."""

    market_id: int | None = None
    market_type: MarketType
    target_value: float = Field(..., gt=0)
    token_address: str
    token_address2: str | None = None
    status: TrackingStatus = TrackingStatus.PENDING
    hit_time: int | None = None  # ms epoch, battle token 1
    hit_time2: int | None = None  # ms epoch, battle token 2
    last_checked: int | None = None
