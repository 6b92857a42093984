from __future__ import annotations

import re
from datetime import timedelta

import pytest
from solders.pubkey import Pubkey

from actions import dispatch
from baozi.domain import AccessGate, MarketStatus
from baozi.services import pda
from baozi.services.bets import ClaimType
from baozi.transactions import decode_transaction
from factories import NOW, PROGRAM_ID, wallet

SOL = 1_000_000_000


def _ok(response):
    assert response.success, (response.error, response.violations)
    return response.data


def _rule(response) -> str:
    assert not response.success
    return response.violations[0]["rule"]


def _bet(context, market: str, user: str, **overrides):
    params = {"market": market, "outcome": "Yes", "amount_sol": "1", "user_wallet": user}
    params.update(overrides)
    return dispatch("build_bet_transaction", params, context)


# bets


def test_bet_transaction_is_unsigned_and_paid_by_user(context, chain, creator, user):
    market = chain.put_market(creator, yes_pool=3 * SOL, no_pool=SOL)
    data = _ok(_bet(context, market, user))

    transaction = decode_transaction(data["transaction"]["serialized"])
    assert str(transaction.message.account_keys[0]) == user
    assert data["transaction"]["feePayer"] == user
    assert data["transaction"]["signed"] is False
    assert data["transaction"]["instructions"] == ["place_bet_sol"]
    assert data["positionPda"] == str(pda.position_pda(7, user, PROGRAM_ID))
    assert data["marketId"] == "7"
    # 1 SOL into 4 YES of 5 total: 1.25 gross, 0.25 profit, 3% fee on profit.
    assert data["quote"]["grossPayoutLamports"] == 1_250_000_000
    assert data["quote"]["feeLamports"] == 7_500_000
    assert data["quote"]["netPayoutLamports"] == 1_242_500_000
    assert data["simulation"]["success"] is True
    assert data["instructions"]
    context.rpc.simulate_transaction.assert_called_once()


def test_bet_skips_simulation_when_disabled(context, chain, creator, user):
    context.settings = context.settings.model_copy(update={"simulate_by_default": False})
    market = chain.put_market(creator)
    data = _ok(_bet(context, market, user))
    assert "simulation" not in data
    context.rpc.simulate_transaction.assert_not_called()


def test_bet_inside_freeze_window_is_rejected(context, chain, creator, user):
    market = chain.put_market(creator, closing_time=NOW + timedelta(minutes=3))
    assert _rule(_bet(context, market, user)) == "betting_frozen"
    context.rpc.get_latest_blockhash.assert_not_called()


def test_gated_bet_requires_assertion(context, chain, creator, user):
    market = chain.put_market(creator, access_gate=AccessGate.WHITELIST)
    assert _rule(_bet(context, market, user)) == "not_whitelisted"

    data = _ok(_bet(context, market, user, user_whitelisted=True))
    assert data["transaction"]["accounts"]["whitelist"] == str(pda.whitelist_pda(7, PROGRAM_ID))


def test_affiliate_bet_requires_active_code(context, chain, creator, user):
    market = chain.put_market(creator)
    chain.put_affiliate(wallet(), "alpha", is_active=False)
    assert _rule(_bet(context, market, user, affiliate_code="alpha")) == "affiliate_inactive"
    assert not _bet(context, market, user, affiliate_code="ghost").success
    assert _rule(_bet(context, market, user, affiliate_code="no spaces")) == "affiliate_code"


def test_affiliate_bet_credits_referral(context, chain, creator, user):
    market = chain.put_market(creator)
    chain.put_affiliate(wallet(), "alpha")
    data = _ok(_bet(context, market, user, affiliate_code="alpha"))
    assert data["transaction"]["instructions"] == ["place_bet_sol_with_affiliate"]


def test_race_bet_checks_outcome_index(context, chain, creator, user):
    race = chain.put_race(creator, ["Celtics", "Thunder", "Nuggets"], pools=[SOL, SOL, 2 * SOL])
    params = {"market": race, "outcome_index": 5, "amount_sol": "1", "user_wallet": user}
    assert _rule(dispatch("build_race_bet_transaction", params, context)) == "outcome_index"

    params["outcome_index"] = 1
    data = _ok(dispatch("build_race_bet_transaction", params, context))
    position = pda.race_position_pda(11, Pubkey.from_string(user), PROGRAM_ID)
    assert data["positionPda"] == str(position)
    assert data["quote"]["label"] == "Thunder"


def test_validate_bet_reports_without_building(context, chain, creator):
    market = chain.put_market(creator, yes_pool=SOL, no_pool=SOL)
    data = _ok(dispatch("validate_bet", {"market": market, "amount": "2", "side": "No"}, context))
    assert data["valid"] is True
    assert data["quote"]["label"] == "No"
    assert data["market"]["accessGate"] == AccessGate.PUBLIC.label
    context.rpc.get_latest_blockhash.assert_not_called()


def test_quote_reports_pool_split(context, chain, creator):
    market = chain.put_market(creator, yes_pool=3 * SOL, no_pool=SOL)
    data = _ok(dispatch("get_quote", {"market": market, "side": True, "amount": 1}, context))
    assert data["side"] == "Yes"
    assert data["currentYesPercent"] == 75
    assert data["isBettingOpen"] is True


# claims


@pytest.fixture
def settled(chain, creator, user):
    """A resolved YES market and a cancelled market, with the user in both."""

    past = NOW - timedelta(days=2)
    won = chain.put_market(
        creator,
        market_id=7,
        closing_time=past,
        yes_pool=SOL,
        no_pool=SOL,
        snapshot_yes=SOL,
        snapshot_no=SOL,
        status=MarketStatus.RESOLVED,
        winning=True,
    )
    cancelled = chain.put_market(
        creator, market_id=8, closing_time=past, status=MarketStatus.CANCELLED
    )
    chain.put_position(user, market_id=7, yes_amount=SOL)
    chain.put_position(user, market_id=8, no_amount=SOL // 2)
    return won, cancelled


def test_claim_winnings(context, settled, user):
    won, _ = settled
    params = {"market": won, "user_wallet": user}
    data = _ok(dispatch("build_claim_winnings_transaction", params, context))
    assert data["claimType"] == ClaimType.WINNINGS.value
    assert data["estimate"]["grossPayoutLamports"] == 2 * SOL
    assert data["transaction"]["instructions"] == ["claim_winnings_sol"]


def test_claim_with_wrong_type_is_rejected(context, settled, user):
    won, cancelled = settled
    params = {"market": won, "user_wallet": user}
    refund = dispatch("build_claim_refund_transaction", params, context)
    assert _rule(refund) == "wrong_claim_type"
    winnings = dispatch(
        "build_claim_winnings_transaction", {"market": cancelled, "user_wallet": user}, context
    )
    assert _rule(winnings) == "wrong_claim_type"


def test_claim_rejects_foreign_position(context, settled, user):
    won, _ = settled
    params = {"market": won, "user_wallet": user, "position": wallet()}
    response = dispatch("build_claim_winnings_transaction", params, context)
    assert _rule(response) == "position_mismatch"


def test_batch_claim(context, settled, user):
    won, cancelled = settled
    params = {
        "claims": [{"market": won}, {"market": cancelled, "type": "refund"}],
        "user_wallet": user,
    }
    data = _ok(dispatch("build_batch_claim_transaction", params, context))
    assert data["claimCount"] == 2
    assert data["transaction"]["instructions"] == ["claim_winnings_sol", "claim_refund_sol"]
    assert [claim["market"] for claim in data["claims"]] == [won, cancelled]


def test_claimable_summary(context, settled, user):
    data = _ok(dispatch("get_claimable", {"wallet": user}, context))
    assert data["alreadyClaimedCount"] == 0
    assert len(data["claimablePositions"]) == 2
    assert data["refundsClaimableSol"] == 0.5


def test_claimable_reads_markets_in_one_batch(context, chain, settled, user):
    # A position whose market account is gone is skipped.
    chain.put_position(user, market_id=99, yes_amount=SOL)
    data = _ok(dispatch("get_claimable", {"wallet": user}, context))
    assert len(data["claimablePositions"]) == 2
    context.rpc.get_multiple_accounts.assert_called_once()
    (addresses,) = context.rpc.get_multiple_accounts.call_args.args
    assert len(addresses) == 3


def test_race_claim_waits_for_settlement(context, chain, creator, user):
    race = chain.put_race(creator, ["A", "B"])
    params = {"race_market": race, "user_wallet": user}
    response = dispatch("build_claim_race_winnings_transaction", params, context)
    assert _rule(response) == "market_not_settled"


def test_race_claim_for_resolved_race(context, chain, creator, user):
    race = chain.put_race(creator, ["A", "B"], status=MarketStatus.RESOLVED, winner=0)
    params = {"race_market": race, "user_wallet": user}
    assert _rule(dispatch("build_claim_race_refund_transaction", params, context)) == (
        "wrong_claim_type"
    )
    data = _ok(dispatch("build_claim_race_winnings_transaction", params, context))
    assert data["winningOutcomeIndex"] == 0


def test_affiliate_claim_requires_owner_and_balance(context, chain, user):
    chain.put_affiliate(user, "alpha", total_earned=10 * SOL, total_claimed=4 * SOL)
    chain.put_affiliate(user, "empty")
    stranger = {"code": "alpha", "user_wallet": wallet()}
    assert _rule(dispatch("build_claim_affiliate_transaction", stranger, context)) == "not_owner"
    empty = {"code": "empty", "user_wallet": user}
    assert _rule(dispatch("build_claim_affiliate_transaction", empty, context)) == (
        "nothing_to_claim"
    )

    owner = {"code": "alpha", "user_wallet": user}
    data = _ok(dispatch("build_claim_affiliate_transaction", owner, context))
    assert data["unclaimedSol"] == 6


def test_creator_claim_requires_profile(context, user):
    response = dispatch("build_claim_creator_transaction", {"creator_wallet": user}, context)
    assert not response.success
    assert "CreatorProfile" in response.error


# simulation and invites


def test_simulate_transaction_checks_fee_payer(context, chain, creator, user):
    market = chain.put_market(creator)
    serialized = _ok(_bet(context, market, user))["transaction"]["serialized"]

    mismatch = {"transaction": serialized, "user_wallet": wallet()}
    assert _rule(dispatch("simulate_transaction", mismatch, context)) == "fee_payer"

    params = {"transaction": serialized, "user_wallet": user}
    data = _ok(dispatch("simulate_transaction", params, context))
    assert data["unitsConsumed"] == 21_000


def test_simulate_transaction_rejects_garbage(context, user):
    params = {"transaction": "abc", "user_wallet": user}
    assert _rule(dispatch("simulate_transaction", params, context)) == "transaction_format"


def test_invite_hash(context, creator):
    data = _ok(dispatch("generate_invite_hash", {}, context))
    assert re.fullmatch(r"[0-9a-f]{64}", data["inviteHash"])
    assert "inviteLink" not in data

    linked = _ok(dispatch("generate_invite_hash", {"market": creator}, context))
    assert linked["inviteLink"] == (
        f"https://baozi.ooo/market/{creator}?invite={linked['inviteHash']}"
    )
