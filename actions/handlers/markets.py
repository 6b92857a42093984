"""Market listings and payout quotes."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from baozi.schemas import ActionParams, Address, SolAmount, lamports
from baozi.services.market_service import MarketQuery
from baozi.services.quote import quote_bet, quote_race_bet

from ..context import ActionContext
from ..registry import register_action
from .common import SideParam, require_outcome_index


class ListMarketsParams(ActionParams):
    status: str | None = None
    layer: str | None = None
    limit: int | None = Field(default=None, gt=0)


class MarketParams(ActionParams):
    public_key: Address


class QuoteParams(ActionParams):
    market: Address
    side: SideParam
    amount: SolAmount


class RaceQuoteParams(ActionParams):
    market: Address
    outcome: int = Field(ge=0)
    amount: SolAmount


@register_action("list_markets", ListMarketsParams)
def list_markets(params: ListMarketsParams, ctx: ActionContext) -> dict[str, Any]:
    """List boolean markets, active ones first, optionally filtered by status and layer."""

    query = MarketQuery(status=params.status, layer=params.layer, limit=params.limit)
    markets = ctx.markets.list_markets(query)
    return {"count": len(markets), "markets": [market.summary(ctx.now) for market in markets]}


@register_action("get_market", MarketParams)
def get_market(params: MarketParams, ctx: ActionContext) -> dict[str, Any]:
    """Full snapshot of one boolean market."""

    return ctx.markets.get_market(params.public_key).to_dict(ctx.now)


@register_action("get_quote", QuoteParams)
def get_quote(params: QuoteParams, ctx: ActionContext) -> dict[str, Any]:
    """Expected payout for a hypothetical bet against the live pools."""

    market = ctx.markets.get_market(params.market)
    quote = quote_bet(market, params.side, lamports(params.amount))
    payload = quote.to_dict()
    payload.update(
        market=market.address,
        side=params.side.value,
        marketStatus=market.status.label,
        isBettingOpen=market.is_betting_open(ctx.now),
        currentYesPercent=market.yes_percent,
        currentNoPercent=market.no_percent,
    )
    return payload


@register_action("list_race_markets", ListMarketsParams)
def list_race_markets(params: ListMarketsParams, ctx: ActionContext) -> dict[str, Any]:
    """List multi-outcome race markets."""

    query = MarketQuery(status=params.status, layer=params.layer, limit=params.limit)
    races = ctx.markets.list_race_markets(query)
    return {"count": len(races), "markets": [race.to_dict(ctx.now) for race in races]}


@register_action("get_race_market", MarketParams)
def get_race_market(params: MarketParams, ctx: ActionContext) -> dict[str, Any]:
    return ctx.markets.get_race_market(params.public_key).to_dict(ctx.now)


@register_action("get_race_quote", RaceQuoteParams)
def get_race_quote(params: RaceQuoteParams, ctx: ActionContext) -> dict[str, Any]:
    """Expected payout for a hypothetical bet on one race outcome."""

    race = ctx.markets.get_race_market(params.market)
    require_outcome_index(params.outcome, len(race.outcomes))
    quote = quote_race_bet(race, params.outcome, lamports(params.amount))
    payload = quote.to_dict()
    payload.update(
        market=race.address,
        outcomeIndex=params.outcome,
        marketStatus=race.status.label,
        isBettingOpen=race.is_betting_open(ctx.now),
    )
    return payload
