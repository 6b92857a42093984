from __future__ import annotations

from datetime import timedelta

import pytest
from solders.pubkey import Pubkey

from actions import dispatch
from baozi.domain import MarketStatus, ResolutionMode
from baozi.services import pda
from factories import NOW, PROGRAM_ID, QUESTION, dispute_bytes, wallet

CLOSING = NOW + timedelta(days=2)
PAST = NOW - timedelta(days=1)


def _ok(response):
    assert response.success, (response.error, response.violations)
    return response.data


def _rules(response) -> list[str]:
    assert not response.success
    return [violation["rule"] for violation in response.violations]


@pytest.fixture
def authorities(chain):
    admin, treasury, guardian = wallet(), wallet(), wallet()
    chain.put_config(admin=admin, treasury=treasury, guardian=guardian, market_count=42)
    return {"admin": admin, "treasury": treasury, "guardian": guardian}


def _creation(creator: str, **overrides):
    params = {
        "question": QUESTION,
        "closing_time": CLOSING.isoformat(),
        "event_time": (CLOSING + timedelta(hours=24)).isoformat(),
        "creator_wallet": creator,
    }
    params.update(overrides)
    return params


# creation


def test_create_lab_market(context, authorities, creator):
    data = _ok(dispatch("build_create_lab_market_transaction", _creation(creator), context))
    assert data["marketId"] == "42"
    assert data["marketPda"] == str(pda.market_pda(42, PROGRAM_ID))
    assert data["transaction"]["feePayer"] == creator
    assert data["transaction"]["instructions"] == ["create_lab_market_sol"]
    assert data["validation"]["valid"] is True
    assert data["validation"]["computed"]["ruleType"] == "A"


def test_subjective_question_is_not_assembled(context, authorities, creator):
    params = _creation(creator, question="Will my token go viral by June? (Source: CoinGecko)")
    response = dispatch("build_create_lab_market_transaction", params, context)
    assert "subjective_outcome" in _rules(response)
    context.rpc.get_latest_blockhash.assert_not_called()


def test_event_buffer_is_enforced(context, authorities, creator):
    params = _creation(creator, event_time=(CLOSING + timedelta(hours=6)).isoformat())
    response = dispatch("build_create_lab_market_transaction", params, context)
    assert "event_buffer" in _rules(response)


def test_resolution_buffer_over_a_week_is_not_assembled(context, authorities, creator):
    params = _creation(creator, event_time=(CLOSING + timedelta(days=20)).isoformat())
    response = dispatch("build_create_lab_market_transaction", params, context)
    assert "resolution_buffer" in _rules(response)
    context.rpc.get_latest_blockhash.assert_not_called()


def test_preview_reports_next_address(context, authorities, creator):
    params = _creation(creator, layer="lab")
    data = _ok(dispatch("preview_create_market", params, context))
    assert data["valid"] is True
    assert data["marketId"] == "42"
    assert data["marketPda"] == str(pda.market_pda(42, PROGRAM_ID))
    assert data["hasCreatorProfile"] is False

    race = _ok(dispatch("preview_create_market", dict(params, outcomes=["A", "B"]), context))
    assert race["marketPda"] == str(pda.race_pda(42, PROGRAM_ID))


def test_preview_of_invalid_market_has_no_address(context, authorities):
    params = {"question": "", "closing_time": PAST.isoformat()}
    data = _ok(dispatch("preview_create_market", params, context))
    assert data["valid"] is False
    assert "marketPda" not in data


def test_private_market_returns_invite_link(context, authorities, creator):
    invite = "AB" * 32
    params = _creation(creator, invite_hash=invite)
    data = _ok(dispatch("build_create_private_market_transaction", params, context))
    assert data["inviteHash"] == invite.lower()
    assert data["inviteLink"].endswith(f"/market/{data['marketPda']}?invite={invite.lower()}")

    params["invite_hash"] = "xyz"
    bad = dispatch("build_create_private_market_transaction", params, context)
    assert _rules(bad) == ["params"]


def test_race_market_outcomes(context, authorities, creator):
    params = _creation(creator, outcomes=["Celtics", "Thunder", "Nuggets"])
    data = _ok(dispatch("build_create_race_market_transaction", params, context))
    assert data["marketPda"] == str(pda.race_pda(42, PROGRAM_ID))
    assert data["outcomes"] == ["Celtics", "Thunder", "Nuggets"]

    duplicate = _creation(creator, outcomes=["Celtics", "celtics"])
    response = dispatch("build_create_race_market_transaction", duplicate, context)
    assert "outcome_unique" in _rules(response)


def test_creator_profile_rules(context, chain, creator):
    params = {"display_name": "Alpha Desk", "creator_fee_bps": 60, "creator_wallet": creator}
    response = dispatch("build_create_creator_profile_transaction", params, context)
    assert _rules(response) == ["creator_fee"]

    params["creator_fee_bps"] = 50
    data = _ok(dispatch("build_create_creator_profile_transaction", params, context))
    profile = pda.creator_profile_pda(Pubkey.from_string(creator), PROGRAM_ID)
    assert data["creatorProfilePda"] == str(profile)

    chain.put(profile, bytes(64))
    again = dispatch("build_create_creator_profile_transaction", params, context)
    assert _rules(again) == ["profile_exists"]


def test_update_profile_requires_existing(context, creator):
    params = {"display_name": "Alpha", "default_fee_bps": 10, "creator_wallet": creator}
    response = dispatch("build_update_creator_profile_transaction", params, context)
    assert not response.success
    assert "CreatorProfile" in response.error


def test_market_params_validation_is_read_only(context):
    params = {"question": QUESTION, "closing_time": CLOSING.isoformat()}
    data = _ok(dispatch("validate_market_params", params, context))
    assert data["valid"] is True
    context.rpc.get_latest_blockhash.assert_not_called()


# resolution


def test_propose_requires_closed_market(context, chain, creator):
    market = chain.put_market(creator)
    params = {"market": market, "outcome": "Yes", "proposer_wallet": creator}
    assert _rules(dispatch("build_propose_resolution_transaction", params, context)) == [
        "market_open"
    ]

    closed = chain.put_market(
        creator, market_id=8, closing_time=PAST, status=MarketStatus.CLOSED
    )
    params["market"] = closed
    data = _ok(dispatch("build_propose_resolution_transaction", params, context))
    assert data["proposedOutcome"] == "Yes"
    assert data["transaction"]["instructions"] == ["propose_resolution_host"]


def test_resolved_market_cannot_be_resolved_again(context, chain, creator):
    market = chain.put_market(creator, closing_time=PAST, status=MarketStatus.RESOLVED)
    params = {"market": market, "outcome": "No", "resolver_wallet": creator}
    assert _rules(dispatch("build_resolve_market_transaction", params, context)) == [
        "market_settled"
    ]


def test_dispute_requires_pending_resolution(context, chain, creator, user):
    disputed = chain.put_market(creator, closing_time=PAST, status=MarketStatus.DISPUTED)
    active = chain.put_market(creator, market_id=8)
    pending = chain.put_market(
        creator, market_id=9, closing_time=PAST, status=MarketStatus.RESOLVEDPENDING
    )

    def flag(market):
        return dispatch(
            "build_flag_dispute_transaction", {"market": market, "disputer_wallet": user}, context
        )

    assert _rules(flag(disputed)) == ["already_disputed"]
    assert _rules(flag(active)) == ["no_pending_resolution"]
    assert _ok(flag(pending))["transaction"]["instructions"] == ["flag_dispute"]


def test_finalize_waits_for_open_dispute(context, chain, creator, user):
    market = chain.put_market(creator, closing_time=PAST, status=MarketStatus.DISPUTED)
    chain.put(pda.dispute_meta_pda(market, PROGRAM_ID), dispute_bytes(market=market, disputer=user))
    params = {"market": market, "caller_wallet": user}
    assert "dispute_open" in _rules(
        dispatch("build_finalize_resolution_transaction", params, context)
    )

    status = _ok(dispatch("get_resolution_status", {"market": market}, context))
    assert status["isDisputed"] is True
    assert status["disputeReason"] == "Wrong source used"


def test_finalize_requires_proposed_resolution(context, chain, creator, user):
    active = chain.put_market(creator)
    closed = chain.put_market(creator, market_id=8, closing_time=PAST, status=MarketStatus.CLOSED)
    settled = chain.put_market(
        creator, market_id=9, closing_time=PAST, status=MarketStatus.RESOLVED
    )

    def finalize(market):
        params = {"market": market, "caller_wallet": user}
        return dispatch("build_finalize_resolution_transaction", params, context)

    assert _rules(finalize(active)) == ["no_pending_resolution"]
    assert _rules(finalize(closed)) == ["no_pending_resolution"]
    assert _rules(finalize(settled)) == ["market_settled"]
    context.rpc.get_latest_blockhash.assert_not_called()


def test_finalize_pending_resolution_after_window(context, chain, creator, user):
    market = chain.put_market(creator, closing_time=PAST, status=MarketStatus.RESOLVEDPENDING)
    params = {"market": market, "caller_wallet": user}

    missing = dispatch("build_finalize_resolution_transaction", params, context)
    assert not missing.success
    assert "DisputeMeta" in missing.error

    meta = pda.dispute_meta_pda(market, PROGRAM_ID)
    chain.put(meta, dispute_bytes(market=market, disputer=user))
    response = dispatch("build_finalize_resolution_transaction", params, context)
    assert _rules(response) == ["dispute_window"]

    chain.put(meta, dispute_bytes(market=market, disputer=user, created_at=NOW - timedelta(days=2)))
    data = _ok(dispatch("build_finalize_resolution_transaction", params, context))
    assert data["transaction"]["instructions"] == ["finalize_resolution"]


def test_finalize_race_requires_proposed_resolution(context, chain, creator, user):
    active = chain.put_race(creator, ["A", "B"])
    closed = chain.put_race(
        creator, ["A", "B"], market_id=12, closing_time=PAST, status=MarketStatus.CLOSED
    )
    pending = chain.put_race(
        creator, ["A", "B"], market_id=13, closing_time=PAST, status=MarketStatus.RESOLVEDPENDING
    )

    def finalize(race):
        params = {"race_market": race, "caller_wallet": user}
        return dispatch("build_finalize_race_resolution_transaction", params, context)

    assert _rules(finalize(active)) == ["no_pending_resolution"]
    assert _rules(finalize(closed)) == ["no_pending_resolution"]

    meta = pda.dispute_meta_pda(pending, PROGRAM_ID)
    chain.put(meta, dispute_bytes(market=pending, disputer=user))
    assert _rules(finalize(pending)) == ["dispute_window"]

    chain.put(
        meta, dispute_bytes(market=pending, disputer=user, created_at=NOW - timedelta(days=2))
    )
    data = _ok(finalize(pending))
    assert data["transaction"]["instructions"] == ["finalize_race_resolution"]


def test_council_votes(context, chain, creator):
    member, outsider = wallet(), wallet()
    host_market = chain.put_market(creator, closing_time=PAST, status=MarketStatus.CLOSED)
    council_market = chain.put_market(
        creator,
        market_id=8,
        closing_time=PAST,
        status=MarketStatus.CLOSED,
        resolution_mode=ResolutionMode.COUNCILORACLE,
        council=[member],
        council_threshold=1,
    )

    def vote(market, voter):
        params = {"market": market, "vote_yes": False, "voter_wallet": voter}
        return dispatch("build_vote_council_transaction", params, context)

    assert _rules(vote(host_market, member)) == ["not_council_market"]
    assert _rules(vote(council_market, outsider)) == ["not_council_member"]
    assert _ok(vote(council_market, member))["vote"] == "No"


def test_race_resolution_checks_index(context, chain, creator):
    race = chain.put_race(creator, ["A", "B"], closing_time=PAST, status=MarketStatus.CLOSED)
    params = {"race_market": race, "winning_outcome_index": 2, "proposer_wallet": creator}
    response = dispatch("build_propose_race_resolution_transaction", params, context)
    assert _rules(response) == ["outcome_index"]

    params["winning_outcome_index"] = 1
    data = _ok(dispatch("build_propose_race_resolution_transaction", params, context))
    assert data["proposedOutcome"] == "B"


# management


def test_whitelist_is_creator_only(context, chain, creator, user):
    market = chain.put_market(creator)
    params = {"market": market, "user_to_add": user, "creator_wallet": wallet()}
    response = dispatch("build_add_to_whitelist_transaction", params, context)
    assert _rules(response) == ["not_creator"]

    params["creator_wallet"] = creator
    data = _ok(dispatch("build_add_to_whitelist_transaction", params, context))
    assert data["whitelistPda"] == str(pda.whitelist_pda(7, PROGRAM_ID))
    assert data["member"] == user


def test_close_before_closing_time_needs_creator(context, chain, creator, user):
    market = chain.put_market(creator)
    params = {"market": market, "caller_wallet": user}
    assert _rules(dispatch("build_close_market_transaction", params, context)) == ["not_creator"]

    expired = chain.put_market(creator, market_id=8, closing_time=PAST)
    params["market"] = expired
    data = _ok(dispatch("build_close_market_transaction", params, context))
    assert data["transaction"]["instructions"] == ["close_market"]


@pytest.mark.parametrize(
    ("status", "rule"),
    [
        (MarketStatus.CLOSED, "market_not_open"),
        (MarketStatus.RESOLVEDPENDING, "market_not_open"),
        (MarketStatus.DISPUTED, "market_not_open"),
        (MarketStatus.RESOLVED, "market_settled"),
    ],
)
def test_close_requires_open_market(context, chain, creator, status, rule):
    market = chain.put_market(creator, closing_time=PAST, status=status)
    params = {"market": market, "caller_wallet": creator}
    assert _rules(dispatch("build_close_market_transaction", params, context)) == [rule]


def test_paused_market_can_be_closed(context, chain, creator):
    race = chain.put_race(creator, ["A", "B"], status=MarketStatus.PAUSED)
    params = {"race_market": race, "caller_wallet": creator}
    data = _ok(dispatch("build_close_race_market_transaction", params, context))
    assert data["transaction"]["instructions"] == ["close_race_market"]


def test_extend_must_move_forward(context, chain, creator):
    market = chain.put_market(creator)
    params = {
        "market": market,
        "new_closing_time": (CLOSING - timedelta(hours=1)).isoformat(),
        "caller_wallet": creator,
    }
    response = dispatch("build_extend_market_transaction", params, context)
    assert _rules(response) == ["extend_backwards"]

    params["new_closing_time"] = (CLOSING + timedelta(days=1)).isoformat()
    data = _ok(dispatch("build_extend_market_transaction", params, context))
    assert data["extendedBySeconds"] == 86_400
    assert data["newResolutionTime"] == (CLOSING + timedelta(days=2)).isoformat()


def test_cancel_authorities(context, chain, authorities, creator):
    market = chain.put_market(creator)
    params = {"market": market, "reason": "Source retired", "authority_wallet": wallet()}
    response = dispatch("build_cancel_market_transaction", params, context)
    assert _rules(response) == ["not_authorized"]

    for authority in (creator, authorities["admin"], authorities["guardian"]):
        params["authority_wallet"] = authority
        data = _ok(dispatch("build_cancel_market_transaction", params, context))
        assert data["reason"] == "Source retired"


# affiliates


def test_check_affiliate_code(context, chain):
    data = _ok(dispatch("check_affiliate_code", {"code": "alpha"}, context))
    assert data == {
        "code": "alpha",
        "valid": True,
        "affiliatePda": str(pda.affiliate_pda("alpha", PROGRAM_ID)),
        "available": True,
    }

    chain.put_affiliate(wallet(), "alpha")
    assert _ok(dispatch("check_affiliate_code", {"code": "alpha"}, context))["available"] is False

    invalid = _ok(dispatch("check_affiliate_code", {"code": "a!"}, context))
    assert invalid["valid"] is False
    assert invalid["available"] is False


def test_register_affiliate(context, chain, user):
    params = {"code": "alpha", "user_wallet": user}
    data = _ok(dispatch("build_register_affiliate_transaction", params, context))
    assert data["link"] == "https://baozi.ooo?ref=alpha"
    assert data["affiliatePda"] == str(pda.affiliate_pda("alpha", PROGRAM_ID))

    chain.put_affiliate(wallet(), "alpha")
    response = dispatch("build_register_affiliate_transaction", params, context)
    assert _rules(response) == ["code_taken"]


def test_toggle_affiliate_requires_owner(context, chain, user):
    chain.put_affiliate(user, "alpha")
    params = {"code": "alpha", "active": False, "user_wallet": wallet()}
    assert _rules(dispatch("build_toggle_affiliate_transaction", params, context)) == ["not_owner"]

    params["user_wallet"] = user
    assert _ok(dispatch("build_toggle_affiliate_transaction", params, context))["active"] is False


def test_format_affiliate_link(context):
    market = wallet()
    data = _ok(dispatch("format_affiliate_link", {"code": "alpha", "market": market}, context))
    assert data["link"] == f"https://baozi.ooo/market/{market}?ref=alpha"


def test_agent_network_stats(context, chain):
    chain.put_affiliate(wallet(), "small", total_earned=1_000_000_000, referral_count=2)
    chain.put_affiliate(wallet(), "large", total_earned=3_000_000_000, referral_count=5)
    data = _ok(dispatch("get_agent_network_stats", {}, context))
    assert data["totalAgentAffiliates"] == 2
    assert data["totalNetworkEarningsSol"] == 4
    assert data["totalReferrals"] == 7
    assert [agent["affiliateCode"] for agent in data["topAgents"]] == ["large", "small"]


def test_suggest_codes_marks_taken(context, chain):
    chain.put_affiliate(wallet(), "alphabot")
    params = {"agent_name": "Alpha Bot!", "count": 3}
    data = _ok(dispatch("suggest_affiliate_codes", params, context))
    first = data["suggestions"][0]
    assert first == {"code": "alphabot", "available": False, "reason": "Already taken"}
    assert data["suggestions"][1] == {"code": "alphabot_ai", "available": True}
