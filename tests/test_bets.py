from __future__ import annotations

from datetime import timedelta

from baozi.core.config import BetLimits, TimingRules
from baozi.domain import AccessGate, MarketLayer, MarketStatus, Side
from baozi.services.bets import BetCheck, ClaimType, validate_bet, validate_claim
from chain.decode import decode_market, decode_position
from factories import NOW, market_bytes, position_bytes, wallet

SOL = 1_000_000_000
LIMITS = BetLimits()
TIMING = TimingRules()


def _check(**overrides) -> BetCheck:
    values = dict(
        amount=SOL,
        status=MarketStatus.ACTIVE,
        closing_time=NOW + timedelta(days=1),
        access_gate=AccessGate.PUBLIC,
        layer=MarketLayer.OFFICIAL,
        now=NOW,
        freeze_seconds=300,
    )
    values.update(overrides)
    return BetCheck(**values)


def _rules(result):
    return [violation.rule for violation in result.violations]


def test_valid_bet():
    result = validate_bet(_check(), LIMITS, TIMING)
    assert result.valid
    assert result.error is None
    assert all(result.details.values())


def test_amount_limits():
    assert _rules(validate_bet(_check(amount=SOL // 1000), LIMITS, TIMING)) == ["bet_too_small"]
    assert _rules(validate_bet(_check(amount=101 * SOL), LIMITS, TIMING)) == ["bet_too_large"]
    large = validate_bet(_check(amount=60 * SOL), LIMITS, TIMING)
    assert large.valid
    assert any("Large bet" in warning for warning in large.warnings)


def test_minimum_bet_is_inclusive():
    assert validate_bet(_check(amount=LIMITS.min_bet_lamports), LIMITS, TIMING).valid


def test_market_state_rules():
    paused = validate_bet(_check(status=MarketStatus.PAUSED), LIMITS, TIMING)
    assert _rules(paused) == ["market_paused"]
    closed = validate_bet(_check(status=MarketStatus.RESOLVED), LIMITS, TIMING)
    assert _rules(closed) == ["market_not_active"]
    assert closed.details["marketStateValid"] is False


def test_frozen_bet_is_rejected():
    result = validate_bet(_check(closing_time=NOW + timedelta(minutes=3)), LIMITS, TIMING)
    assert _rules(result) == ["betting_frozen"]
    assert result.details["timingValid"] is False


def test_first_error_follows_rule_order():
    result = validate_bet(
        _check(amount=1, status=MarketStatus.CLOSED, closing_time=NOW - timedelta(hours=1)),
        LIMITS,
        TIMING,
    )
    assert _rules(result) == ["bet_too_small", "market_not_active", "betting_closed"]
    assert result.error.startswith("Minimum bet is 0.01 SOL")


def test_gated_market_requires_whitelist_assertion():
    gated = _check(access_gate=AccessGate.WHITELIST)
    assert _rules(validate_bet(gated, LIMITS, TIMING)) == ["not_whitelisted"]
    gated.user_whitelisted = True
    assert validate_bet(gated, LIMITS, TIMING).valid


def test_lab_markets_warn():
    result = validate_bet(_check(layer=MarketLayer.LAB), LIMITS, TIMING)
    assert result.valid
    assert any("Lab market" in warning for warning in result.warnings)


def _market(**kwargs):
    return decode_market(market_bytes(creator=wallet(), **kwargs), "market")


def _position(**kwargs):
    return decode_position(position_bytes(user=wallet(), **kwargs), "position")


def test_claim_winnings_on_winning_side():
    market = _market(status=MarketStatus.RESOLVED, winning=True)
    eligibility = validate_claim(_position(yes_amount=SOL), market)
    assert eligibility.can_claim
    assert eligibility.claim_type is ClaimType.WINNINGS
    assert eligibility.side is Side.YES


def test_claim_losing_side():
    market = _market(status=MarketStatus.RESOLVED, winning=False)
    eligibility = validate_claim(_position(yes_amount=SOL), market)
    assert not eligibility.can_claim
    assert _rules(eligibility.result) == ["losing_side"]


def test_claim_refund_for_invalid_and_cancelled_markets():
    invalid = _market(status=MarketStatus.RESOLVED, winning=None)
    assert validate_claim(_position(no_amount=SOL), invalid).claim_type is ClaimType.REFUND
    cancelled = _market(status=MarketStatus.CANCELLED)
    eligibility = validate_claim(_position(yes_amount=SOL), cancelled)
    assert eligibility.claim_type is ClaimType.CANCELLED
    assert eligibility.claim_type.is_refund


def test_claim_rejects_claimed_and_unsettled():
    resolved = _market(status=MarketStatus.RESOLVED, winning=True)
    claimed = validate_claim(_position(yes_amount=SOL, claimed=True), resolved)
    assert _rules(claimed.result) == ["already_claimed"]
    pending = _market(status=MarketStatus.RESOLVEDPENDING)
    assert _rules(validate_claim(_position(yes_amount=SOL), pending).result) == [
        "market_not_settled"
    ]


def test_claim_rejects_empty_position():
    cancelled = _market(status=MarketStatus.CANCELLED)
    assert _rules(validate_claim(_position(), cancelled).result) == ["empty_position"]
