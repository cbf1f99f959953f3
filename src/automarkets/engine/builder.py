"""Market Builder - one creation cycle: pick archetype, pick token(s), persist, publish."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

import structlog

from automarkets.engine.images import Compositor, resolve_battle_image
from automarkets.engine.matcher import find_battle_pair, is_valid_address, normalize_name
from automarkets.engine.milestones import (
    MAX_MILESTONE,
    MIN_HOLDERS,
    doubling_milestone,
    dump_target,
    holder_milestone,
)
from automarkets.engine.questions import battle_question, single_token_question
from automarkets.engine.rotation import select_market_type
from automarkets.errors import AutomarketsError
from automarkets.models import (
    CycleResult,
    Market,
    MarketType,
    ResolutionTracking,
    TrendingToken,
)
from automarkets.notify.publisher import MARKET_CREATED, LogPublisher, Publisher

if TYPE_CHECKING:
    from automarkets.provider.base import TokenDataProvider
    from automarkets.storage.markets import MarketStore

log = structlog.get_logger(__name__)

MINUTE_MS = 60_000
DAY_MS = 24 * 60 * MINUTE_MS

EXPIRY_MS = {
    MarketType.MARKET_CAP: 120 * MINUTE_MS,
    MarketType.VOLUME: DAY_MS,
    MarketType.HOLDERS: DAY_MS,
    MarketType.BATTLE_RACE: 2 * DAY_MS,
    MarketType.BATTLE_DUMP: 2 * DAY_MS,
}
TEST_MODE_EXPIRY_MS = 5 * MINUTE_MS


def _now_ms() -> int:
    return int(time.time() * 1000)


def expiry_for(market_type: MarketType, now_ms: int, test_mode: bool = False) -> int:
    return now_ms + (TEST_MODE_EXPIRY_MS if test_mode else EXPIRY_MS[market_type])


def single_token_target(market_type: MarketType, token: TrendingToken) -> float | None:
    """Target for a single-token archetype, or None when the token is ineligible for it."""
    if market_type == MarketType.MARKET_CAP:
        if token.market_cap >= MAX_MILESTONE:
            return None
        return doubling_milestone(token.market_cap)
    if market_type == MarketType.VOLUME:
        if token.volume_24h >= MAX_MILESTONE:
            return None
        return doubling_milestone(token.volume_24h)
    if market_type == MarketType.HOLDERS:
        if token.holders < MIN_HOLDERS:
            return None
        target = holder_milestone(token.holders)
        # Ladder exhausted: target would already be met
        return target if target > token.holders else None
    raise ValueError(f"not a single-token archetype: {market_type}")


def battle_target(market_type: MarketType, mc1: float, mc2: float) -> float:
    """Shared target from the smaller market cap of the pair."""
    lower = min(mc1, mc2)
    if market_type == MarketType.BATTLE_RACE:
        return doubling_milestone(lower)
    if market_type == MarketType.BATTLE_DUMP:
        return dump_target(lower)
    raise ValueError(f"not a battle archetype: {market_type}")


def used_tokens(active_markets: list[Market]) -> tuple[set[str], set[str]]:
    """Addresses and normalized names held by active automated markets."""
    addresses: set[str] = set()
    names: set[str] = set()
    for m in active_markets:
        addresses.update(m.token_addresses)
        names.update(normalize_name(n) for n in m.token_names)
    return addresses, names


def pick_single_token(
    market_type: MarketType,
    tokens: list[TrendingToken],
    active_markets: list[Market],
) -> tuple[TrendingToken, float] | None:
    """First trending token that is valid, unused by address and name, and has a target."""
    used_addresses, used_names = used_tokens(active_markets)
    for token in tokens:
        name = token.display_name
        if not is_valid_address(token.address) or not name:
            continue
        if token.address in used_addresses or normalize_name(name) in used_names:
            continue
        target = single_token_target(market_type, token)
        if target is None:
            log.debug("skip_token", address=token.address, market_type=market_type.value)
            continue
        return token, target
    return None


@dataclass
class MarketDraft:
    """A market and its tracking row, ready to persist together."""

    market: Market
    tracking: ResolutionTracking
    composite: str | None = None


class MarketBuilder:
    """Runs creation cycles against a provider and a store."""

    def __init__(
        self,
        provider: TokenDataProvider,
        store: MarketStore,
        publisher: Publisher | None = None,
        compositor: Compositor | None = None,
        clock: Callable[[], int] = _now_ms,
        test_mode: bool = False,
    ) -> None:
        self.provider = provider
        self.store = store
        self.publisher = publisher or LogPublisher()
        self.compositor = compositor
        self.clock = clock
        self.test_mode = test_mode

    def draft(
        self,
        market_type: MarketType,
        tokens: list[TrendingToken],
        active_markets: list[Market],
        now_ms: int,
    ) -> MarketDraft | None:
        """Build the market for an archetype, or None when no token/pair is eligible."""
        expires_at = expiry_for(market_type, now_ms, self.test_mode)
        if market_type.is_battle:
            used_addresses, _ = used_tokens(active_markets)
            pair = find_battle_pair(tokens, used_addresses, now_ms)
            if pair is None:
                return None
            first, second = pair
            target = battle_target(market_type, first.market_cap, second.market_cap)
            image = resolve_battle_image(first.image, second.image, self.compositor)
            market = Market(
                question=battle_question(market_type, first.display_name, second.display_name, target),
                market_type=market_type,
                token_address=first.address,
                token_address2=second.address,
                token_name=first.display_name,
                token_name2=second.display_name,
                image=image,
                created_at=now_ms,
                expires_at=expires_at,
            )
            tracking = ResolutionTracking(
                market_type=market_type,
                target_value=target,
                token_address=first.address,
                token_address2=second.address,
            )
            composite = image if image not in (first.image, second.image) else None
            return MarketDraft(market, tracking, composite)

        picked = pick_single_token(market_type, tokens, active_markets)
        if picked is None:
            return None
        token, target = picked
        market = Market(
            question=single_token_question(market_type, token.display_name, target),
            market_type=market_type,
            token_address=token.address,
            token_name=token.display_name,
            image=token.image,
            created_at=now_ms,
            expires_at=expires_at,
        )
        tracking = ResolutionTracking(market_type=market_type, target_value=target, token_address=token.address)
        return MarketDraft(market, tracking)

    def _discard_image(self, url: str) -> None:
        discard = getattr(self.compositor, "discard", None)
        if callable(discard):
            discard(url)

    def run(self, forced_type: MarketType | None = None) -> CycleResult:
        """One creation cycle. Provider/storage failures return success=False; nothing eligible is not a failure."""
        draft: MarketDraft | None = None
        try:
            tokens = self.provider.list_trending()
            if not tokens:
                log.info("no_trending_tokens")
                return CycleResult(success=True, reason="no_trending_tokens")

            active = self.store.list_active_automated_markets()
            state = self.store.load_rotation_state()
            market_type = forced_type or select_market_type(active, state)
            if market_type is None:
                log.info("rotation_full", active=len(active))
                return CycleResult(success=True, reason="all_archetypes_active")

            now_ms = self.clock()
            draft = self.draft(market_type, tokens, active, now_ms)
            if draft is None:
                reason = "no_matching_pair" if market_type.is_battle else "no_eligible_token"
                log.info("nothing_eligible", market_type=market_type.value, reason=reason)
                return CycleResult(success=True, market_type=market_type, reason=reason)

            # Rotation state is written in the same transaction as the market
            created = self.store.create_automated_market(
                draft.market, draft.tracking, rotation=state.advanced(market_type)
            )
        except AutomarketsError as e:
            log.error("creation_cycle_failed", error=str(e))
            if draft is not None and draft.composite:
                self._discard_image(draft.composite)
            return CycleResult(success=False, error=str(e))

        log.info(
            "market_created",
            market_id=created.id,
            market_type=market_type.value,
            target=draft.tracking.target_value,
            expires_at=created.expires_at,
        )
        self.publisher.publish(
            MARKET_CREATED,
            {
                "id": created.id,
                "question": created.question,
                "market_type": market_type.value,
                "expires_at": created.expires_at,
            },
        )
        return CycleResult(
            success=True,
            market_created=True,
            market_id=created.id,
            market_type=market_type,
            token_addresses=created.token_addresses,
        )
