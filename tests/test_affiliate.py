from __future__ import annotations

import random

import pytest

from baozi.core.config import FeeTable
from baozi.core.errors import AccountNotFoundError
from baozi.services.affiliate_service import (
    AffiliateService,
    candidate_codes,
    commission_info,
    format_affiliate_link,
    parse_affiliate_code,
    validate_affiliate_code,
)
from factories import NOW, PROGRAM_ID, referred_user_bytes, wallet


@pytest.mark.parametrize("code", ["abc", "Alpha_01", "x" * 16])
def test_valid_codes(code):
    assert validate_affiliate_code(code).valid


@pytest.mark.parametrize("code", ["ab", "x" * 17, "has-dash", "with space", ""])
def test_invalid_codes(code):
    result = validate_affiliate_code(code)
    assert not result.valid
    assert result.violations[0].rule == "affiliate_code"


def test_candidate_codes_are_valid_and_unique():
    codes = candidate_codes("Alpha Bot!", random.Random(0))
    assert codes[:4] == ["alphabot", "alphabot_ai", "alphabot_bot", "ai_alphabot"]
    assert len(codes) == len(set(codes))
    assert all(validate_affiliate_code(code).valid for code in codes)


def test_candidate_codes_drop_short_names():
    codes = candidate_codes("Q", random.Random(0))
    assert "q" not in codes
    assert "q_ai" in codes


def test_links_round_trip_through_parser():
    assert format_affiliate_link("https://baozi.ooo/", "alpha") == "https://baozi.ooo?ref=alpha"
    link = format_affiliate_link("https://baozi.ooo", "alpha", "Market111")
    assert link == "https://baozi.ooo/market/Market111?ref=alpha"
    assert parse_affiliate_code(link) == "alpha"
    assert parse_affiliate_code("https://baozi.ooo/market/x?foo=1&ref=beta_2") == "beta_2"
    assert parse_affiliate_code("https://baozi.ooo/market/x") is None


def test_commission_info_uses_fee_table():
    info = commission_info(FeeTable())
    assert info["affiliateFeeBps"] == 100
    assert info["affiliateFeePercent"] == "1%"


def test_service_reads_affiliates_and_referrals(rpc, chain):
    owner = wallet()
    address = chain.put_affiliate(owner, "alpha", total_earned=5, referral_count=1)
    chain.put_affiliate(wallet(), "beta", is_active=False, total_earned=9)
    linked = referred_user_bytes(user=wallet(), affiliate=address, total_bets=3, commission=1)
    other = referred_user_bytes(user=wallet(), affiliate=wallet(), total_bets=1, commission=0)
    chain.put(wallet(), linked)
    chain.put(wallet(), other)
    service = AffiliateService(rpc, PROGRAM_ID)

    assert service.get_affiliate("alpha").address == address
    assert [a.code for a in service.affiliates_by_owner(owner)] == ["alpha"]
    referrals = service.referrals("alpha")
    assert len(referrals) == 1
    assert referrals[0].first_bet_at < NOW
    # Inactive codes are never recommended even when they earn more.
    assert service.recommended_affiliate().code == "alpha"
    with pytest.raises(AccountNotFoundError):
        service.get_affiliate("ghost")


def test_availability_requires_valid_code(rpc):
    service = AffiliateService(rpc, PROGRAM_ID)
    assert service.is_code_available("fresh_code")
    assert not service.is_code_available("no")
