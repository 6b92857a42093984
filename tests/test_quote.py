from __future__ import annotations

import pytest

from baozi.domain import MarketStatus, Side
from baozi.services.quote import (
    estimate_claim,
    payout,
    quote_bet,
    quote_race_bet,
)
from chain.decode import decode_market, decode_position, decode_race_market
from factories import market_bytes, position_bytes, race_bytes, wallet

SOL = 1_000_000_000


def test_payout_truncates_toward_zero():
    quote = payout(10 * SOL, 60 * SOL, 100 * SOL, 300)
    assert quote.defined
    assert quote.gross_payout == 16_666_666_666
    assert quote.profit == 6_666_666_666
    assert quote.fee == 199_999_999
    assert quote.net_payout == 16_466_666_667


def test_fee_is_not_charged_without_profit():
    quote = payout(5 * SOL, 10 * SOL, 10 * SOL, 300)
    assert quote.gross_payout == 5 * SOL
    assert quote.fee == 0
    assert quote.net_payout == 5 * SOL


@pytest.mark.parametrize("fee_bps", [0, 1, 250, 300, 9_999, 10_000])
@pytest.mark.parametrize(
    ("bet", "winning_pool", "total_pool"),
    [
        (1, 1, 1),
        (1, 3, 10),
        (7, 7, 7),
        (7, 7, 1_000_003),
        (SOL, 3 * SOL, 3 * SOL),
        (SOL, 3 * SOL, 11 * SOL + 1),
        (999_999_999, 1_000_000_001, 2_500_000_000),
        (123_456_789, 987_654_321, 10**18),
        (10**17, 10**17, 10**18),
    ],
)
def test_payout_invariants(bet, winning_pool, total_pool, fee_bps):
    quote = payout(bet, winning_pool, total_pool, fee_bps)
    assert quote.defined
    assert quote.profit + bet == quote.gross_payout
    assert 0 <= quote.fee <= quote.profit
    assert quote.net_payout == quote.gross_payout - quote.fee
    assert quote.net_payout >= bet
    if winning_pool == total_pool:
        assert quote.gross_payout == bet
        assert quote.fee == 0


def test_empty_winning_pool_is_undefined():
    quote = payout(0, 0, 10 * SOL, 300)
    assert not quote.defined
    assert quote.net_payout == 0
    assert quote.to_dict()["potentialProfitSol"] == 0.0


def test_invalid_pools_raise():
    with pytest.raises(ValueError):
        payout(1, 10, 5, 300)
    with pytest.raises(ValueError):
        payout(-1, 10, 20, 300)


def test_quote_bet_adds_the_stake_to_the_pools():
    market = decode_market(
        market_bytes(creator=wallet(), yes_pool=50 * SOL, no_pool=40 * SOL), "m"
    )
    quote = quote_bet(market, Side.YES, 10 * SOL)
    assert quote.winning_pool == 60 * SOL
    assert quote.total_pool == 100 * SOL
    assert quote.net_payout == 16_466_666_667
    assert quote.label == "Yes"


def test_quote_uses_frozen_market_fee():
    market = decode_market(
        market_bytes(creator=wallet(), yes_pool=SOL, no_pool=SOL, platform_fee_bps=100), "m"
    )
    assert quote_bet(market, Side.NO, SOL).fee_bps == 100


def test_race_quote():
    race = decode_race_market(
        race_bytes(creator=wallet(), labels=["A", "B", "C"], pools=[2 * SOL, 3 * SOL, 5 * SOL]),
        "r",
    )
    quote = quote_race_bet(race, 0, 2 * SOL)
    assert quote.winning_pool == 4 * SOL
    assert quote.total_pool == 12 * SOL
    assert quote.gross_payout == 6 * SOL
    assert quote.label == "A"
    with pytest.raises(ValueError):
        quote_race_bet(race, 3, SOL)


def test_claim_estimate_uses_snapshot_pools_after_close():
    user = wallet()
    market = decode_market(
        market_bytes(
            creator=wallet(),
            status=MarketStatus.RESOLVED,
            winning=True,
            yes_pool=80 * SOL,
            no_pool=20 * SOL,
            snapshot_yes=60 * SOL,
            snapshot_no=40 * SOL,
        ),
        "m",
    )
    position = decode_position(position_bytes(user=user, yes_amount=10 * SOL), "p")
    estimate = estimate_claim(position, market, Side.YES)
    assert estimate.winning_pool == 60 * SOL
    assert estimate.net_payout == 16_466_666_667
