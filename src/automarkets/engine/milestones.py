"""Milestone targets - pure, deterministic, no I/O."""

from __future__ import annotations

import math

DOUBLING_LADDER = (
    250_000, 500_000, 750_000,
    1_000_000, 2_000_000, 3_000_000, 5_000_000,
    10_000_000, 20_000_000, 50_000_000, 100_000_000,
)
HOLDER_LADDER = (500, 1000, 2000, 3000, 5000)

MAX_MILESTONE = DOUBLING_LADDER[-1]
MIN_HOLDERS = 100
DUMP_STEP = 100_000
DUMP_FLOOR = 100_000


def round_up_to_milestone(value: float, ladder: tuple[int, ...]) -> int:
    """First rung >= value, or the top rung when value exceeds the ladder."""
    for rung in ladder:
        if rung >= value:
            return rung
    return ladder[-1]


def doubling_milestone(current: float) -> int:
    """Target for market cap, volume and battle race: 2x current, rounded up the ladder, capped at 100M."""
    return round_up_to_milestone(current * 2, DOUBLING_LADDER)


def holder_milestone(current: int) -> int:
    """Holder target: 2x current up the holder ladder; if that is not above current, retry from +10%."""
    target = round_up_to_milestone(current * 2, HOLDER_LADDER)
    if target <= current:
        target = round_up_to_milestone(math.ceil(current * 1.1), HOLDER_LADDER)
    return target


def dump_target(current: float) -> int:
    """Battle dump target: 50% of current, to the nearest 100K (halves round up), floored at 100K."""
    target = int(math.floor(current * 0.5 / DUMP_STEP + 0.5)) * DUMP_STEP
    return max(target, DUMP_FLOOR)


def format_usd(value: float) -> str:
    """$750K below one million, $1.5M from one million."""
    if value >= 1_000_000:
        return f"${value / 1_000_000:.1f}M"
    return f"${value / 1_000:.0f}K"


def format_holders(value: int) -> str:
    """Plain count below 1000, 1.5K from 1000."""
    if value >= 1000:
        return f"{value / 1000:.1f}K"
    return str(value)
