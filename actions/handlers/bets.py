"""Bet transactions for boolean and race markets."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from baozi.domain import AccessGate
from baozi.schemas import ActionParams, Address, SolAmount, lamports
from baozi.services import pda
from baozi.services.affiliate_service import validate_affiliate_code
from baozi.services.bets import bet_check_for, validate_bet
from baozi.services.quote import quote_bet, quote_race_bet
from baozi.transactions.bets import bet_on_race_sol, place_bet_sol, place_bet_sol_with_affiliate

from ..context import ActionContext
from ..registry import register_action
from .common import SideParam, key, reject, require_outcome_index, require_valid


class BetParams(ActionParams):
    market: Address
    outcome: SideParam
    amount_sol: SolAmount
    user_wallet: Address
    affiliate_code: str | None = None
    user_whitelisted: bool | None = None


class RaceBetParams(ActionParams):
    market: Address
    outcome_index: int = Field(ge=0)
    amount_sol: SolAmount
    user_wallet: Address
    affiliate_code: str | None = None
    user_whitelisted: bool | None = None


def _check_affiliate(ctx: ActionContext, code: str | None) -> None:
    if code is None:
        return
    require_valid(validate_affiliate_code(code))
    affiliate = ctx.affiliates.get_affiliate(code)
    if not affiliate.is_active:
        raise reject("affiliate_inactive", f"Affiliate code '{code}' is not active")


@register_action("build_bet_transaction", BetParams)
def build_bet_transaction(params: BetParams, ctx: ActionContext) -> dict[str, Any]:
    """Unsigned bet on a YES/NO market, optionally crediting an affiliate."""

    market = ctx.markets.get_market(params.market)
    amount = lamports(params.amount_sol)
    result = validate_bet(
        bet_check_for(market, amount, ctx.now, user_whitelisted=params.user_whitelisted),
        ctx.settings.bet_limits,
        ctx.settings.timing,
    )
    require_valid(result)
    _check_affiliate(ctx, params.affiliate_code)

    user = key(params.user_wallet)
    gated = market.access_gate is AccessGate.WHITELIST
    if params.affiliate_code:
        plan = place_bet_sol_with_affiliate(
            market_id=market.market_id,
            side=params.outcome,
            amount=amount,
            user=user,
            affiliate_code=params.affiliate_code,
            program_id=ctx.program_id,
            gated=gated,
        )
    else:
        plan = place_bet_sol(
            market_id=market.market_id,
            side=params.outcome,
            amount=amount,
            user=user,
            program_id=ctx.program_id,
            gated=gated,
        )

    payload = ctx.build([plan], user)
    payload.update(
        marketId=str(market.market_id),
        positionPda=str(plan.addresses["position"]),
        quote=quote_bet(market, params.outcome, amount).to_dict(),
        warnings=result.warnings,
    )
    return payload


@register_action("build_race_bet_transaction", RaceBetParams)
def build_race_bet_transaction(params: RaceBetParams, ctx: ActionContext) -> dict[str, Any]:
    """Unsigned bet on one outcome of a race market."""

    race = ctx.markets.get_race_market(params.market)
    require_outcome_index(params.outcome_index, len(race.outcomes))
    amount = lamports(params.amount_sol)
    result = validate_bet(
        bet_check_for(race, amount, ctx.now, user_whitelisted=params.user_whitelisted),
        ctx.settings.bet_limits,
        ctx.settings.timing,
    )
    require_valid(result)
    _check_affiliate(ctx, params.affiliate_code)

    user = key(params.user_wallet)
    plan = bet_on_race_sol(
        market_id=race.market_id,
        outcome_index=params.outcome_index,
        amount=amount,
        user=user,
        program_id=ctx.program_id,
        gated=race.access_gate is AccessGate.WHITELIST,
        affiliate_code=params.affiliate_code,
    )
    payload = ctx.build([plan], user)
    payload.update(
        marketId=str(race.market_id),
        positionPda=str(pda.race_position_pda(race.market_id, user, ctx.program_id)),
        quote=quote_race_bet(race, params.outcome_index, amount).to_dict(),
        warnings=result.warnings,
    )
    return payload
