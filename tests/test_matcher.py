"""Battle pairing and address validation."""

from automarkets.engine.matcher import find_battle_pair, is_valid_address, relative_diff, tokens_match
from tests.conftest import HOUR, NOW, addr, trending


def test_is_valid_address():
    assert is_valid_address(addr(1))
    assert is_valid_address("So11111111111111111111111111111111111111112")
    assert not is_valid_address("")
    assert not is_valid_address(None)
    assert not is_valid_address("0xdeadbeef")
    assert not is_valid_address("O" * 40)  # O is not base58
    assert not is_valid_address("1" * 31)
    assert not is_valid_address("1" * 45)


def test_relative_diff():
    assert relative_diff(100, 100) == 0
    assert abs(relative_diff(100, 130) - 30 / 115) < 1e-12
    assert relative_diff(0, 0) == 0


def test_tokens_match_is_symmetric():
    a = trending(1, "AAA", market_cap=1_000_000, created_at=NOW - 10 * HOUR)
    b = trending(2, "BBB", market_cap=1_250_000, created_at=NOW - 12 * HOUR)
    c = trending(3, "CCC", market_cap=2_000_000, created_at=NOW - 10 * HOUR)
    assert tokens_match(a, b, NOW) and tokens_match(b, a, NOW)
    assert not tokens_match(a, c, NOW) and not tokens_match(c, a, NOW)


def test_tokens_match_within_thirty_percent_on_both_axes():
    a = trending(1, "AAA", market_cap=1_000_000, created_at=NOW - 48 * HOUR)
    b = trending(2, "BBB", market_cap=1_200_000, created_at=NOW - int(52.8 * HOUR))
    assert tokens_match(a, b, NOW)


def test_tokens_match_rejects_age_gap():
    a = trending(1, "AAA", market_cap=1_000_000, created_at=NOW - 2 * HOUR)
    b = trending(2, "BBB", market_cap=1_000_000, created_at=NOW - 20 * HOUR)
    assert not tokens_match(a, b, NOW)


def test_find_battle_pair_first_in_trending_order():
    tokens = [
        trending(1, "AAA", market_cap=5_000_000),
        trending(2, "BBB", market_cap=1_000_000),
        trending(3, "CCC", market_cap=1_100_000),
        trending(4, "DDD", market_cap=1_050_000),
    ]
    pair = find_battle_pair(tokens, set(), NOW)
    assert pair is not None
    assert [t.name for t in pair] == ["BBB", "CCC"]


def test_find_battle_pair_skips_used_and_same_name():
    tokens = [
        trending(1, "AAA", market_cap=1_000_000),
        trending(2, "aaa ", market_cap=1_000_000),
        trending(3, "BBB", market_cap=1_000_000),
        trending(4, "CCC", market_cap=1_000_000),
    ]
    pair = find_battle_pair(tokens, {addr(1)}, NOW)
    assert pair is not None
    first, second = pair
    assert first.address == addr(2)
    assert second.address == addr(3)


def test_find_battle_pair_none_when_nothing_matches():
    tokens = [
        trending(1, "AAA", market_cap=100_000),
        trending(2, "BBB", market_cap=1_000_000),
        trending(3, "CCC", market_cap=10_000_000),
    ]
    assert find_battle_pair(tokens, set(), NOW) is None
    assert find_battle_pair([], set(), NOW) is None
