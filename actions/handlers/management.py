"""Creator administration: whitelists, close, extend and cancel."""

from __future__ import annotations

from datetime import timedelta
from typing import Any

from pydantic import Field

from baozi.domain import Market, MarketStatus, RaceMarket
from baozi.schemas import ActionParams, Address, Timestamp
from baozi.services.timing import validate_closing_time, validate_resolution_time
from baozi.transactions.management import (
    cancel_market,
    close_market,
    create_race_whitelist,
    extend_market,
    update_race_whitelist,
    update_whitelist,
)

from ..context import ActionContext
from ..registry import register_action
from .common import key, reject, require_creator, require_unsettled, require_valid, unix


class AddWhitelistParams(ActionParams):
    market: Address
    user_to_add: Address
    creator_wallet: Address


class RemoveWhitelistParams(ActionParams):
    market: Address
    user_to_remove: Address
    creator_wallet: Address


class RaceWhitelistParams(ActionParams):
    race_market: Address
    creator_wallet: Address


class AddRaceWhitelistParams(RaceWhitelistParams):
    user_to_add: Address


class RemoveRaceWhitelistParams(RaceWhitelistParams):
    user_to_remove: Address


class CloseParams(ActionParams):
    market: Address
    caller_wallet: Address


class CloseRaceParams(ActionParams):
    race_market: Address
    caller_wallet: Address


class ExtendParams(ActionParams):
    market: Address
    new_closing_time: Timestamp
    new_resolution_time: Timestamp | None = None
    caller_wallet: Address


class ExtendRaceParams(ActionParams):
    race_market: Address
    new_closing_time: Timestamp
    new_resolution_time: Timestamp | None = None
    caller_wallet: Address


class CancelParams(ActionParams):
    market: Address
    reason: str = Field(min_length=1, max_length=200)
    authority_wallet: Address


class CancelRaceParams(ActionParams):
    race_market: Address
    reason: str = Field(min_length=1, max_length=200)
    authority_wallet: Address


# whitelists


def _whitelist(
    ctx: ActionContext, market_address: str, member: str, creator: str, remove: bool
) -> dict[str, Any]:
    market = ctx.markets.get_market(market_address)
    require_creator(market.creator, creator)
    signer = key(creator)
    plan = update_whitelist(
        market=key(market.address),
        market_id=market.market_id,
        member=key(member),
        creator=signer,
        program_id=ctx.program_id,
        remove=remove,
    )
    payload = ctx.build([plan], signer)
    payload.update(whitelistPda=str(plan.addresses["whitelist"]), member=member)
    return payload


@register_action("build_add_to_whitelist_transaction", AddWhitelistParams)
def build_add_to_whitelist_transaction(
    params: AddWhitelistParams, ctx: ActionContext
) -> dict[str, Any]:
    """Allow a wallet to bet on a private market."""

    return _whitelist(ctx, params.market, params.user_to_add, params.creator_wallet, False)


@register_action("build_remove_from_whitelist_transaction", RemoveWhitelistParams)
def build_remove_from_whitelist_transaction(
    params: RemoveWhitelistParams, ctx: ActionContext
) -> dict[str, Any]:
    return _whitelist(ctx, params.market, params.user_to_remove, params.creator_wallet, True)


@register_action("build_create_race_whitelist_transaction", RaceWhitelistParams)
def build_create_race_whitelist_transaction(
    params: RaceWhitelistParams, ctx: ActionContext
) -> dict[str, Any]:
    """Create the whitelist account for a private race market."""

    race = ctx.markets.get_race_market(params.race_market)
    require_creator(race.creator, params.creator_wallet)
    creator = key(params.creator_wallet)
    plan = create_race_whitelist(race=key(race.address), creator=creator, program_id=ctx.program_id)
    if ctx.markets.account_exists(plan.addresses["whitelist"]):
        raise reject("whitelist_exists", "Race whitelist already exists")
    payload = ctx.build([plan], creator)
    payload["whitelistPda"] = str(plan.addresses["whitelist"])
    return payload


def _race_whitelist(
    ctx: ActionContext, race_address: str, member: str, creator: str, remove: bool
) -> dict[str, Any]:
    race = ctx.markets.get_race_market(race_address)
    require_creator(race.creator, creator)
    signer = key(creator)
    plan = update_race_whitelist(
        race=key(race.address),
        member=key(member),
        creator=signer,
        program_id=ctx.program_id,
        remove=remove,
    )
    payload = ctx.build([plan], signer)
    payload.update(whitelistPda=str(plan.addresses["whitelist"]), member=member)
    return payload


@register_action("build_add_to_race_whitelist_transaction", AddRaceWhitelistParams)
def build_add_to_race_whitelist_transaction(
    params: AddRaceWhitelistParams, ctx: ActionContext
) -> dict[str, Any]:
    return _race_whitelist(
        ctx, params.race_market, params.user_to_add, params.creator_wallet, False
    )


@register_action("build_remove_from_race_whitelist_transaction", RemoveRaceWhitelistParams)
def build_remove_from_race_whitelist_transaction(
    params: RemoveRaceWhitelistParams, ctx: ActionContext
) -> dict[str, Any]:
    return _race_whitelist(
        ctx, params.race_market, params.user_to_remove, params.creator_wallet, True
    )


# lifecycle


def _require_closable(status: MarketStatus) -> None:
    match status:
        case MarketStatus.ACTIVE | MarketStatus.PAUSED:
            return
        case MarketStatus.RESOLVED | MarketStatus.CANCELLED:
            require_unsettled(status)
        case MarketStatus.CLOSED | MarketStatus.RESOLVEDPENDING | MarketStatus.DISPUTED:
            raise reject(
                "market_not_open",
                f"Market is already {status.label}",
                actual=status.label,
            )
    raise AssertionError(f"unhandled status {status!r}")


def _close(
    ctx: ActionContext, market: Market | RaceMarket, wallet: str, race: bool
) -> dict[str, Any]:
    _require_closable(market.status)
    if ctx.now < market.closing_time:
        require_creator(market.creator, wallet)
    caller = key(wallet)
    plan = close_market(
        market=key(market.address), caller=caller, program_id=ctx.program_id, race=race
    )
    return ctx.build([plan], caller)


@register_action("build_close_market_transaction", CloseParams)
def build_close_market_transaction(params: CloseParams, ctx: ActionContext) -> dict[str, Any]:
    """Stop betting on a market; anyone may close once closing time has passed."""

    return _close(ctx, ctx.markets.get_market(params.market), params.caller_wallet, False)


@register_action("build_close_race_market_transaction", CloseRaceParams)
def build_close_race_market_transaction(
    params: CloseRaceParams, ctx: ActionContext
) -> dict[str, Any]:
    return _close(ctx, ctx.markets.get_race_market(params.race_market), params.caller_wallet, True)


def _extend(
    ctx: ActionContext,
    market: Market | RaceMarket,
    new_closing,
    new_resolution,
    wallet: str,
    race: bool,
) -> dict[str, Any]:
    require_unsettled(market.status)
    require_creator(market.creator, wallet)
    if new_closing <= market.closing_time:
        raise reject(
            "extend_backwards",
            "New closing time must be later than the current one",
            required=f"> {market.closing_time.isoformat()}",
            actual=new_closing.isoformat(),
        )
    require_valid(validate_closing_time(new_closing, ctx.now, ctx.settings.timing))
    if new_resolution is not None:
        require_valid(validate_resolution_time(new_closing, new_resolution, ctx.settings.timing))

    caller = key(wallet)
    plan = extend_market(
        market=key(market.address),
        new_closing_ts=unix(new_closing),
        new_resolution_ts=unix(new_resolution) if new_resolution is not None else None,
        caller=caller,
        program_id=ctx.program_id,
        race=race,
    )
    payload = ctx.build([plan], caller)
    resolution = new_resolution or new_closing + (market.resolution_time - market.closing_time)
    payload.update(
        newClosingTime=new_closing.isoformat(),
        newResolutionTime=resolution.isoformat(),
        extendedBySeconds=int((new_closing - market.closing_time) / timedelta(seconds=1)),
    )
    return payload


@register_action("build_extend_market_transaction", ExtendParams)
def build_extend_market_transaction(params: ExtendParams, ctx: ActionContext) -> dict[str, Any]:
    """Push a market's closing time later."""

    market = ctx.markets.get_market(params.market)
    return _extend(
        ctx,
        market,
        params.new_closing_time,
        params.new_resolution_time,
        params.caller_wallet,
        False,
    )


@register_action("build_extend_race_market_transaction", ExtendRaceParams)
def build_extend_race_market_transaction(
    params: ExtendRaceParams, ctx: ActionContext
) -> dict[str, Any]:
    race = ctx.markets.get_race_market(params.race_market)
    return _extend(
        ctx, race, params.new_closing_time, params.new_resolution_time, params.caller_wallet, True
    )


def _cancel(
    ctx: ActionContext, market: Market | RaceMarket, reason: str, wallet: str, race: bool
) -> dict[str, Any]:
    require_unsettled(market.status)
    config = ctx.markets.global_config()
    if wallet not in {market.creator, config.admin, config.guardian}:
        raise reject(
            "not_authorized",
            "Only the creator, admin or guardian can cancel a market",
            actual=wallet,
        )
    authority = key(wallet)
    plan = cancel_market(
        market=key(market.address),
        reason=reason,
        authority=authority,
        program_id=ctx.program_id,
        race=race,
    )
    payload = ctx.build([plan], authority)
    payload["reason"] = reason
    return payload


@register_action("build_cancel_market_transaction", CancelParams)
def build_cancel_market_transaction(params: CancelParams, ctx: ActionContext) -> dict[str, Any]:
    """Cancel a market so every bettor can reclaim their stake."""

    market = ctx.markets.get_market(params.market)
    return _cancel(ctx, market, params.reason, params.authority_wallet, False)


@register_action("build_cancel_race_transaction", CancelRaceParams)
def build_cancel_race_transaction(params: CancelRaceParams, ctx: ActionContext) -> dict[str, Any]:
    race = ctx.markets.get_race_market(params.race_market)
    return _cancel(ctx, race, params.reason, params.authority_wallet, True)
