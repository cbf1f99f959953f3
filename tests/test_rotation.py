"""Rotation selection and archetype detection."""

from automarkets.engine.rotation import RotationState, detect_market_type, select_market_type
from automarkets.models import Market, MarketType
from tests.conftest import NOW, addr


def _market(market_type, question="q", n=1):
    return Market(
        question=question,
        market_type=market_type,
        token_address=addr(n),
        created_at=NOW,
        expires_at=NOW + 1,
    )


def test_first_free_single_token_type():
    state = RotationState()
    assert select_market_type([], state) == MarketType.MARKET_CAP
    assert select_market_type([_market(MarketType.MARKET_CAP)], state) == MarketType.VOLUME
    active = [_market(MarketType.MARKET_CAP), _market(MarketType.VOLUME)]
    assert select_market_type(active, state) == MarketType.HOLDERS


def test_battle_alternation():
    singles = [_market(t) for t in (MarketType.MARKET_CAP, MarketType.VOLUME, MarketType.HOLDERS)]
    state = RotationState()
    first = select_market_type(singles, state)
    assert first == MarketType.BATTLE_DUMP
    state = state.advanced(first)
    second = select_market_type(singles, state)
    assert second == MarketType.BATTLE_RACE
    state = state.advanced(second)
    assert select_market_type(singles, state) == MarketType.BATTLE_DUMP


def test_single_token_creation_does_not_change_battle_flavour():
    state = RotationState(last_battle_type=MarketType.BATTLE_DUMP).advanced(MarketType.HOLDERS)
    assert state.last_market_type == MarketType.HOLDERS
    assert state.next_battle_type() == MarketType.BATTLE_RACE


def test_no_new_battle_while_one_is_active():
    active = [_market(t) for t in (MarketType.MARKET_CAP, MarketType.VOLUME, MarketType.HOLDERS)]
    active.append(_market(MarketType.BATTLE_RACE))
    assert select_market_type(active, RotationState()) is None


def test_select_does_not_mutate_state():
    state = RotationState(last_battle_type=MarketType.BATTLE_RACE)
    singles = [_market(t) for t in (MarketType.MARKET_CAP, MarketType.VOLUME, MarketType.HOLDERS)]
    select_market_type(singles, state)
    select_market_type(singles, state)
    assert state.last_battle_type == MarketType.BATTLE_RACE
    assert state.last_market_type is None


def test_detect_market_type_falls_back_to_question_text():
    cases = {
        "Will X's current market cap be above $750K after 120 minutes?": MarketType.MARKET_CAP,
        "Will X's current 24h volume be above $1.0M after 1 day?": MarketType.VOLUME,
        "Will X have more than 500 holders after 1 day?": MarketType.HOLDERS,
        "Which token will reach $1.0M market cap first: A or B?": MarketType.BATTLE_RACE,
        "Which token will dump 50% first (to $300K market cap): A or B?": MarketType.BATTLE_DUMP,
    }
    for question, expected in cases.items():
        assert detect_market_type(_market(None, question)) == expected
    assert detect_market_type(_market(None, "Will it rain tomorrow?")) is None


def test_detect_market_type_prefers_explicit_column():
    m = _market(MarketType.VOLUME, "Will X have more than 500 holders after 1 day?")
    assert detect_market_type(m) == MarketType.VOLUME
