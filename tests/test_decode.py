from __future__ import annotations

from datetime import timedelta

import pytest

from baozi.core.errors import DecodeError
from baozi.domain import (
    AccessGate,
    MarketLayer,
    MarketOutcome,
    MarketStatus,
    ResolutionMode,
    Side,
)
from chain.decode import (
    decode_affiliate,
    decode_dispute_meta,
    decode_global_config,
    decode_market,
    decode_position,
    decode_race_market,
    decode_referred_user,
)
from factories import (
    NOW,
    QUESTION,
    affiliate_bytes,
    config_bytes,
    dispute_bytes,
    market_bytes,
    position_bytes,
    race_bytes,
    referred_user_bytes,
    wallet,
)


def test_decode_market_fields():
    creator, host = wallet(), wallet()
    council = [wallet(), wallet()]
    data = market_bytes(
        creator=creator,
        market_id=12,
        closing_time=NOW + timedelta(days=2),
        yes_pool=3_000_000_000,
        no_pool=1_000_000_000,
        status=MarketStatus.RESOLVED,
        winning=False,
        layer=MarketLayer.PRIVATE,
        resolution_mode=ResolutionMode.COUNCILORACLE,
        access_gate=AccessGate.WHITELIST,
        oracle_host=host,
        council=council,
        council_threshold=2,
        platform_fee_bps=200,
        affiliate_fee_bps=100,
        freeze_seconds=600,
        has_bets=True,
    )
    market = decode_market(data, "addr")
    assert market.address == "addr"
    assert market.market_id == 12
    assert market.question == QUESTION
    assert market.closing_time == NOW + timedelta(days=2)
    assert market.total_pool == 4_000_000_000
    assert market.status is MarketStatus.RESOLVED
    assert market.winning_side is Side.NO
    assert market.outcome is MarketOutcome.NO
    assert market.layer is MarketLayer.PRIVATE
    assert market.resolution_mode is ResolutionMode.COUNCILORACLE
    assert market.access_gate is AccessGate.WHITELIST
    assert market.creator == creator
    assert market.oracle_host == host
    assert market.council == council
    assert market.council_threshold == 2
    assert market.platform_fee_bps_at_creation == 200
    assert market.betting_freeze_seconds_at_creation == 600
    assert market.has_bets
    assert market.last_bet_time is None


def test_resolved_without_winner_is_invalid():
    market = decode_market(market_bytes(creator=wallet(), status=MarketStatus.RESOLVED), "m")
    assert market.winning_side is None
    assert market.outcome is MarketOutcome.INVALID


def test_truncated_market_raises():
    data = market_bytes(creator=wallet())
    with pytest.raises(DecodeError):
        decode_market(data[:-3], "m")


def test_wrong_discriminator_raises():
    data = position_bytes(user=wallet())
    with pytest.raises(DecodeError):
        decode_market(data, "m")


def test_unknown_status_code_raises():
    data = bytearray(market_bytes(creator=wallet()))
    # status byte follows id, question, three i64 and four u64 fields.
    status_offset = 8 + 8 + 4 + len(QUESTION.encode()) + 24 + 32
    data[status_offset] = 9
    with pytest.raises(DecodeError):
        decode_market(bytes(data), "m")


def test_decode_race_market():
    creator = wallet()
    data = race_bytes(
        creator=creator,
        labels=["Celtics", "Thunder", "Nuggets"],
        pools=[1_000, 2_000, 3_000],
        winner=1,
        status=MarketStatus.RESOLVED,
    )
    race = decode_race_market(data, "race")
    assert [outcome.label for outcome in race.outcomes] == ["Celtics", "Thunder", "Nuggets"]
    assert [outcome.pool for outcome in race.outcomes] == [1_000, 2_000, 3_000]
    assert race.total_pool == 6_000
    assert race.winning_outcome_index == 1
    assert race.affiliate_fee_bps_at_creation == 100
    assert race.betting_freeze_seconds_at_creation == 300


def test_race_market_without_trailing_fee_fields():
    data = race_bytes(creator=wallet(), labels=["A", "B"], affiliate_fee_bps=None)
    race = decode_race_market(data, "race")
    assert race.affiliate_fee_bps_at_creation == 0
    assert race.betting_freeze_seconds_at_creation == 300


def test_race_market_too_small():
    with pytest.raises(DecodeError):
        decode_race_market(race_bytes(creator=wallet(), labels=["A", "B"])[:400], "race")


def test_race_market_rejects_single_outcome():
    with pytest.raises(DecodeError):
        decode_race_market(race_bytes(creator=wallet(), labels=["Only"]), "race")


def test_decode_position():
    user, referrer = wallet(), wallet()
    data = position_bytes(
        user=user, market_id=3, yes_amount=5, no_amount=7, claimed=True, referred_by=referrer
    )
    position = decode_position(data, "pos")
    assert position.user == user
    assert position.market_id == 3
    assert position.total_amount == 12
    assert position.side == "Both"
    assert position.claimed
    assert position.referred_by == referrer


def test_decode_affiliate_and_referral():
    owner = wallet()
    affiliate = decode_affiliate(
        affiliate_bytes(owner=owner, code="alpha", total_earned=10, total_claimed=4), "aff"
    )
    assert affiliate.owner == owner
    assert affiliate.code == "alpha"
    assert affiliate.unclaimed == 6

    user = wallet()
    referral = decode_referred_user(
        referred_user_bytes(user=user, affiliate=wallet(), total_bets=9, commission=1),
        "ref",
    )
    assert referral.user == user
    assert referral.total_bets == 9
    assert referral.last_bet_at > referral.first_bet_at


def test_decode_dispute_meta():
    market, disputer = wallet(), wallet()
    dispute = decode_dispute_meta(dispute_bytes(market=market, disputer=disputer), "d")
    assert dispute.market == market
    assert dispute.proposed_outcome is True
    assert dispute.deadline - dispute.created_at == timedelta(days=1)
    assert not dispute.resolved


def test_decode_global_config():
    admin, treasury, guardian = wallet(), wallet(), wallet()
    data = config_bytes(admin=admin, treasury=treasury, guardian=guardian, market_count=77)
    config = decode_global_config(data, "cfg")
    assert config.admin == admin
    assert config.treasury == treasury
    assert config.guardian == guardian
    assert config.market_count == 77
    assert config.creation_fee_lamports == 10_000_000
