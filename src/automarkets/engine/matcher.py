"""Token Matcher: pair two comparable trending tokens for a battle market."""

from __future__ import annotations

import re

from automarkets.models import TokenDetail, TrendingToken

MAX_MC_DIFF = 0.30
MAX_AGE_DIFF = 0.30

_BASE58 = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")


def is_valid_address(address: str | None) -> bool:
    """Solana mint: 32-44 base58 characters."""
    return bool(address) and bool(_BASE58.match(address.strip()))


def normalize_name(name: str) -> str:
    return name.strip().casefold()


def relative_diff(a: float, b: float) -> float:
    """|a - b| / mean(a, b); 0 when the mean is 0."""
    avg = (a + b) / 2
    if avg == 0:
        return 0.0
    return abs(a - b) / avg


def tokens_match(a: TrendingToken, b: TrendingToken, now_ms: int) -> bool:
    """Market caps and ages both within 30% of their mean. Symmetric in a and b."""
    mc_diff = relative_diff(a.market_cap, b.market_cap)
    age_diff = relative_diff(a.age_hours(now_ms), b.age_hours(now_ms))
    return mc_diff <= MAX_MC_DIFF and age_diff <= MAX_AGE_DIFF


def _usable(token: TokenDetail, used_addresses: set[str]) -> bool:
    return is_valid_address(token.address) and token.address not in used_addresses and bool(token.display_name)


def find_battle_pair(
    tokens: list[TrendingToken],
    used_addresses: set[str],
    now_ms: int,
) -> tuple[TrendingToken, TrendingToken] | None:
    """First matching pair in trending order whose members are unused and differently named."""
    for i, first in enumerate(tokens):
        if not _usable(first, used_addresses):
            continue
        for second in tokens[i + 1 :]:
            if not _usable(second, used_addresses):
                continue
            if second.address == first.address:
                continue
            if normalize_name(second.display_name) == normalize_name(first.display_name):
                continue
            if tokens_match(first, second, now_ms):
                return first, second
    return None
