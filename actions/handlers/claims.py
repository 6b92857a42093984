"""Claim transactions: winnings, refunds, affiliate commission and creator fees."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field

from baozi.core.errors import AccountNotFoundError
from baozi.core.units import round_sol
from baozi.domain import Market, MarketStatus, Position, RaceMarket
from baozi.schemas import ActionParams, Address
from baozi.services import pda
from baozi.services.bets import ClaimType, validate_claim
from baozi.services.quote import estimate_claim
from baozi.transactions.claims import (
    batch_claims,
    claim_affiliate_sol,
    claim_creator_sol,
    claim_race_refund,
    claim_race_winnings_sol,
    claim_refund_sol,
    claim_winnings_sol,
)

from ..context import ActionContext
from ..registry import register_action
from .common import key, reject, require_valid


class ClaimParams(ActionParams):
    market: Address
    position: Address | None = None
    user_wallet: Address


class BatchClaimItem(ActionParams):
    market: Address
    position: Address | None = None
    type: Literal["winnings", "refund"] = "winnings"


class BatchClaimParams(ActionParams):
    claims: list[BatchClaimItem] = Field(min_length=1)
    user_wallet: Address


class RaceClaimParams(ActionParams):
    race_market: Address
    position: Address | None = None
    user_wallet: Address


class AffiliateClaimParams(ActionParams):
    code: str
    user_wallet: Address


class CreatorClaimParams(ActionParams):
    creator_wallet: Address


def _load(ctx: ActionContext, market_address: str, wallet: str, position_address: str | None):
    market = ctx.markets.get_market(market_address)
    position = ctx.markets.get_position(market.market_id, wallet)
    if position_address and position_address != position.address:
        raise reject(
            "position_mismatch",
            "Position does not belong to this wallet and market",
            required=position.address,
            actual=position_address,
        )
    return market, position


def _eligible(market: Market, position: Position, refund: bool) -> dict[str, Any]:
    eligibility = validate_claim(position, market)
    require_valid(eligibility.result)
    if eligibility.claim_type is None:
        raise reject("nothing_to_claim", "Nothing to claim for this position")
    if refund != eligibility.claim_type.is_refund:
        expected = "a refund" if eligibility.claim_type.is_refund else "winnings"
        raise reject(
            "wrong_claim_type",
            f"This position is eligible for {expected}, not the requested claim",
            required=eligibility.claim_type.value,
        )
    if eligibility.claim_type is ClaimType.WINNINGS and eligibility.side is not None:
        estimate = estimate_claim(position, market, eligibility.side)
        return {"claimType": eligibility.claim_type.value, "estimate": estimate.to_dict()}
    return {
        "claimType": eligibility.claim_type.value,
        "estimatedRefundSol": round_sol(position.total_amount),
    }


def _claim(params: ClaimParams, ctx: ActionContext, refund: bool) -> dict[str, Any]:
    market, position = _load(ctx, params.market, params.user_wallet, params.position)
    details = _eligible(market, position, refund)
    user = key(params.user_wallet)
    build = claim_refund_sol if refund else claim_winnings_sol
    plan = build(
        market=key(market.address),
        position=key(position.address),
        user=user,
        program_id=ctx.program_id,
    )
    payload = ctx.build([plan], user)
    payload.update(details)
    return payload


@register_action("build_claim_winnings_transaction", ClaimParams)
def build_claim_winnings_transaction(params: ClaimParams, ctx: ActionContext) -> dict[str, Any]:
    """Claim winnings from a resolved market."""

    return _claim(params, ctx, refund=False)


@register_action("build_claim_refund_transaction", ClaimParams)
def build_claim_refund_transaction(params: ClaimParams, ctx: ActionContext) -> dict[str, Any]:
    """Reclaim the stake from a cancelled or invalid market."""

    return _claim(params, ctx, refund=True)


@register_action("build_batch_claim_transaction", BatchClaimParams)
def build_batch_claim_transaction(params: BatchClaimParams, ctx: ActionContext) -> dict[str, Any]:
    """Several winnings and refund claims in a single transaction."""

    entries: list[tuple[Any, Any, bool]] = []
    details: list[dict[str, Any]] = []
    for item in params.claims:
        refund = item.type == "refund"
        market, position = _load(ctx, item.market, params.user_wallet, item.position)
        detail = _eligible(market, position, refund)
        detail["market"] = market.address
        details.append(detail)
        entries.append((key(market.address), key(position.address), refund))

    user = key(params.user_wallet)
    plans = batch_claims(entries, user=user, program_id=ctx.program_id)
    payload = ctx.build(plans, user)
    payload.update(claimCount=len(plans), claims=details)
    return payload


def _race_claim_check(race: RaceMarket, refund: bool) -> None:
    match race.status:
        case MarketStatus.CANCELLED:
            settled_refund = True
        case MarketStatus.RESOLVED:
            settled_refund = race.winning_outcome_index is None
        case (
            MarketStatus.ACTIVE
            | MarketStatus.CLOSED
            | MarketStatus.PAUSED
            | MarketStatus.RESOLVEDPENDING
            | MarketStatus.DISPUTED
        ):
            raise reject(
                "market_not_settled",
                f"Market is {race.status.label}, cannot claim yet",
                actual=race.status.label,
            )
        case _:
            raise AssertionError(f"unhandled status {race.status!r}")
    if settled_refund != refund:
        raise reject(
            "wrong_claim_type",
            "Race market pays refunds" if settled_refund else "Race market pays winnings",
        )


def _race_claim(params: RaceClaimParams, ctx: ActionContext, refund: bool) -> dict[str, Any]:
    race = ctx.markets.get_race_market(params.race_market)
    _race_claim_check(race, refund)
    user = key(params.user_wallet)
    position = pda.race_position_pda(race.market_id, user, ctx.program_id)
    if params.position and params.position != str(position):
        raise reject("position_mismatch", "Position does not belong to this wallet and market")
    build = claim_race_refund if refund else claim_race_winnings_sol
    plan = build(race=key(race.address), position=position, user=user, program_id=ctx.program_id)
    payload = ctx.build([plan], user)
    payload["winningOutcomeIndex"] = race.winning_outcome_index
    return payload


@register_action("build_claim_race_winnings_transaction", RaceClaimParams)
def build_claim_race_winnings_transaction(
    params: RaceClaimParams, ctx: ActionContext
) -> dict[str, Any]:
    return _race_claim(params, ctx, refund=False)


@register_action("build_claim_race_refund_transaction", RaceClaimParams)
def build_claim_race_refund_transaction(
    params: RaceClaimParams, ctx: ActionContext
) -> dict[str, Any]:
    return _race_claim(params, ctx, refund=True)


@register_action("build_claim_affiliate_transaction", AffiliateClaimParams)
def build_claim_affiliate_transaction(
    params: AffiliateClaimParams, ctx: ActionContext
) -> dict[str, Any]:
    """Withdraw unclaimed affiliate commission to the code owner."""

    affiliate = ctx.affiliates.get_affiliate(params.code)
    if affiliate.owner != params.user_wallet:
        raise reject("not_owner", "Only the affiliate owner can claim commission")
    if affiliate.unclaimed <= 0:
        raise reject("nothing_to_claim", "No unclaimed affiliate earnings")
    owner = key(params.user_wallet)
    plan = claim_affiliate_sol(affiliate_code=params.code, owner=owner, program_id=ctx.program_id)
    payload = ctx.build([plan], owner)
    payload["unclaimedSol"] = round_sol(affiliate.unclaimed)
    return payload


@register_action("build_claim_creator_transaction", CreatorClaimParams)
def build_claim_creator_transaction(
    params: CreatorClaimParams, ctx: ActionContext
) -> dict[str, Any]:
    """Withdraw accumulated creator fees."""

    owner = key(params.creator_wallet)
    profile = pda.creator_profile_pda(owner, ctx.program_id)
    if not ctx.markets.account_exists(profile):
        raise AccountNotFoundError("CreatorProfile", str(profile))
    plan = claim_creator_sol(owner=owner, program_id=ctx.program_id)
    return ctx.build([plan], owner)
