"""Dry validation of market parameters and bets; nothing is assembled here."""

from __future__ import annotations

from typing import Any

from baozi.domain import MarketLayer
from baozi.schemas import ActionParams, Address, SolAmount, Timestamp, lamports
from baozi.services.bets import bet_check_for
from baozi.services.bets import validate_bet as check_bet
from baozi.services.creation import CreationRequest, validate_creation
from baozi.services.quote import quote_bet

from ..context import ActionContext
from ..registry import register_action
from .common import LayerParam, MarketTypeParam, SideParam


class MarketParamsCheck(ActionParams):
    question: str
    closing_time: Timestamp
    market_type: MarketTypeParam | None = None
    event_time: Timestamp | None = None
    measurement_start: Timestamp | None = None
    measurement_end: Timestamp | None = None
    resolution_time: Timestamp | None = None
    layer: LayerParam = MarketLayer.LAB


class BetCheckParams(ActionParams):
    market: Address
    amount: SolAmount
    side: SideParam
    user_whitelisted: bool | None = None


@register_action("validate_market_params", MarketParamsCheck)
def validate_market_params(params: MarketParamsCheck, ctx: ActionContext) -> dict[str, Any]:
    """Check question, content and timing rules for a prospective market."""

    request = CreationRequest(
        question=params.question,
        layer=params.layer,
        closing_time=params.closing_time,
        resolution_time=params.resolution_time,
        market_type=params.market_type,
        event_time=params.event_time,
        measurement_start=params.measurement_start,
        measurement_end=params.measurement_end,
    )
    validation = validate_creation(
        request,
        ctx.now,
        timing=ctx.settings.timing,
        fees=ctx.settings.fee_table,
        content_rules=ctx.content_rules,
    )
    return validation.to_dict()


@register_action("validate_bet", BetCheckParams)
def validate_bet(params: BetCheckParams, ctx: ActionContext) -> dict[str, Any]:
    """Check a bet against limits, market state, freeze window and access gate."""

    market = ctx.markets.get_market(params.market)
    amount = lamports(params.amount)
    check = bet_check_for(market, amount, ctx.now, user_whitelisted=params.user_whitelisted)
    result = check_bet(check, ctx.settings.bet_limits, ctx.settings.timing)
    payload = result.to_dict()
    payload["market"] = {
        "publicKey": market.address,
        "question": market.question,
        "status": market.status.label,
        "closingTime": market.closing_time.isoformat(),
        "freezeStartsAt": market.freeze_starts_at().isoformat(),
        "accessGate": market.access_gate.label,
    }
    if result.valid:
        payload["quote"] = quote_bet(market, params.side, amount).to_dict()
    return payload
