"""Resolution status reads and the propose/resolve/finalize/dispute/vote transactions."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field

from baozi.core.errors import AccountNotFoundError
from baozi.domain import MarketStatus, ResolutionMode
from baozi.schemas import ActionParams, Address, NoParams
from baozi.services import pda
from baozi.services.timing import can_finalize
from baozi.transactions.resolution import (
    finalize_resolution,
    flag_dispute,
    propose_race_resolution,
    propose_resolution,
    resolve_market,
    resolve_race,
    vote_council,
    vote_council_race,
)

from ..context import ActionContext
from ..registry import register_action
from .common import SideParam, key, reject, require_outcome_index, require_unsettled, require_valid


class MarketParams(ActionParams):
    market: Address


class ProposeParams(ActionParams):
    market: Address
    outcome: SideParam
    proposer_wallet: Address


class ResolveParams(ActionParams):
    market: Address
    outcome: SideParam
    resolver_wallet: Address


class FinalizeParams(ActionParams):
    market: Address
    caller_wallet: Address


class RaceProposeParams(ActionParams):
    race_market: Address
    winning_outcome_index: int = Field(ge=0)
    proposer_wallet: Address


class RaceResolveParams(ActionParams):
    race_market: Address
    winning_outcome_index: int = Field(ge=0)
    resolver_wallet: Address


class RaceFinalizeParams(ActionParams):
    race_market: Address
    caller_wallet: Address


class DisputeParams(ActionParams):
    market: Address
    disputer_wallet: Address


class RaceDisputeParams(ActionParams):
    race_market: Address
    disputer_wallet: Address


class VoteParams(ActionParams):
    market: Address
    vote_yes: bool
    voter_wallet: Address


class RaceVoteParams(ActionParams):
    race_market: Address
    vote_outcome_index: int = Field(ge=0)
    voter_wallet: Address


def _require_closed(closing_time: datetime, now: datetime) -> None:
    if now < closing_time:
        raise reject(
            "market_open",
            "Market has not closed yet",
            required=f">= {closing_time.isoformat()}",
            actual=now.isoformat(),
        )


def _require_pending(status: MarketStatus) -> None:
    match status:
        case MarketStatus.RESOLVEDPENDING:
            return
        case MarketStatus.DISPUTED:
            raise reject("already_disputed", "Resolution is already disputed")
        case (
            MarketStatus.ACTIVE
            | MarketStatus.CLOSED
            | MarketStatus.RESOLVED
            | MarketStatus.CANCELLED
            | MarketStatus.PAUSED
        ):
            raise reject(
                "no_pending_resolution",
                f"Market is {status.label}; only a proposed resolution can be disputed",
                actual=status.label,
            )
    raise AssertionError(f"unhandled status {status!r}")


def _require_council_member(mode: ResolutionMode, council: list[str], voter: str) -> None:
    if mode is not ResolutionMode.COUNCILORACLE:
        raise reject("not_council_market", "Market is not resolved by a council")
    if voter not in council:
        raise reject("not_council_member", "Voter is not a member of the resolution council")


def _finalize_check(ctx: ActionContext, address: str, status: MarketStatus) -> None:
    match status:
        case MarketStatus.RESOLVEDPENDING | MarketStatus.DISPUTED:
            pass
        case MarketStatus.RESOLVED | MarketStatus.CANCELLED:
            require_unsettled(status)
        case MarketStatus.ACTIVE | MarketStatus.CLOSED | MarketStatus.PAUSED:
            raise reject(
                "no_pending_resolution",
                f"Market is {status.label}; only a proposed resolution can be finalized",
                actual=status.label,
            )
        case _:
            raise AssertionError(f"unhandled status {status!r}")
    dispute = ctx.markets.get_dispute_meta(address)
    if dispute is None:
        # propose_resolution creates the dispute meta, so it must exist here.
        meta = pda.dispute_meta_pda(address, ctx.program_id)
        raise AccountNotFoundError("DisputeMeta", str(meta))
    open_dispute = status is MarketStatus.DISPUTED and not dispute.resolved
    require_valid(can_finalize(dispute.created_at, ctx.now, open_dispute, ctx.settings.timing))


# reads


@register_action("get_resolution_status", MarketParams)
def get_resolution_status(params: MarketParams, ctx: ActionContext) -> dict[str, Any]:
    """Resolution progress, dispute state and council tally for a market."""

    return ctx.markets.resolution_status(params.market, ctx.now)


@register_action("get_disputed_markets", NoParams)
def get_disputed_markets(params: NoParams, ctx: ActionContext) -> dict[str, Any]:
    """Markets with an unresolved dispute."""

    disputes = ctx.markets.disputed_markets()
    return {"count": len(disputes), "disputes": [dispute.to_dict() for dispute in disputes]}


@register_action("get_markets_awaiting_resolution", NoParams)
def get_markets_awaiting_resolution(params: NoParams, ctx: ActionContext) -> dict[str, Any]:
    """Closed markets that still need a resolution proposal."""

    markets = ctx.markets.markets_awaiting_resolution()
    return {"count": len(markets), "markets": [market.summary(ctx.now) for market in markets]}


# boolean markets


@register_action("build_propose_resolution_transaction", ProposeParams)
def build_propose_resolution_transaction(
    params: ProposeParams, ctx: ActionContext
) -> dict[str, Any]:
    """Propose an outcome, opening the dispute window."""

    market = ctx.markets.get_market(params.market)
    require_unsettled(market.status)
    _require_closed(market.closing_time, ctx.now)
    proposer = key(params.proposer_wallet)
    plan = propose_resolution(
        market=key(market.address),
        outcome=params.outcome.as_bool,
        proposer=proposer,
        program_id=ctx.program_id,
        host=market.resolution_mode is ResolutionMode.HOSTORACLE,
    )
    payload = ctx.build([plan], proposer)
    payload["proposedOutcome"] = params.outcome.value
    return payload


@register_action("build_resolve_market_transaction", ResolveParams)
def build_resolve_market_transaction(params: ResolveParams, ctx: ActionContext) -> dict[str, Any]:
    """Resolve a market directly as its host or council."""

    market = ctx.markets.get_market(params.market)
    require_unsettled(market.status)
    _require_closed(market.closing_time, ctx.now)
    resolver = key(params.resolver_wallet)
    plan = resolve_market(
        market=key(market.address),
        outcome=params.outcome.as_bool,
        resolver=resolver,
        program_id=ctx.program_id,
        host=market.resolution_mode is ResolutionMode.HOSTORACLE,
    )
    payload = ctx.build([plan], resolver)
    payload["outcome"] = params.outcome.value
    return payload


@register_action("build_finalize_resolution_transaction", FinalizeParams)
def build_finalize_resolution_transaction(
    params: FinalizeParams, ctx: ActionContext
) -> dict[str, Any]:
    """Finalize a proposed resolution once the dispute window has passed."""

    market = ctx.markets.get_market(params.market)
    _finalize_check(ctx, market.address, market.status)
    caller = key(params.caller_wallet)
    plan = finalize_resolution(market=key(market.address), caller=caller, program_id=ctx.program_id)
    return ctx.build([plan], caller)


@register_action("build_flag_dispute_transaction", DisputeParams)
def build_flag_dispute_transaction(params: DisputeParams, ctx: ActionContext) -> dict[str, Any]:
    market = ctx.markets.get_market(params.market)
    _require_pending(market.status)
    disputer = key(params.disputer_wallet)
    plan = flag_dispute(market=key(market.address), disputer=disputer, program_id=ctx.program_id)
    return ctx.build([plan], disputer)


def _vote(params: VoteParams, ctx: ActionContext, change: bool) -> dict[str, Any]:
    market = ctx.markets.get_market(params.market)
    require_unsettled(market.status)
    _require_council_member(market.resolution_mode, market.council, params.voter_wallet)
    voter = key(params.voter_wallet)
    plan = vote_council(
        market=key(market.address),
        vote_yes=params.vote_yes,
        voter=voter,
        program_id=ctx.program_id,
        change=change,
    )
    payload = ctx.build([plan], voter)
    payload["vote"] = "Yes" if params.vote_yes else "No"
    return payload


@register_action("build_vote_council_transaction", VoteParams)
def build_vote_council_transaction(params: VoteParams, ctx: ActionContext) -> dict[str, Any]:
    """Cast a council vote on a boolean market."""

    return _vote(params, ctx, change=False)


@register_action("build_change_council_vote_transaction", VoteParams)
def build_change_council_vote_transaction(params: VoteParams, ctx: ActionContext) -> dict[str, Any]:
    """Change an existing council vote on a boolean market."""

    return _vote(params, ctx, change=True)


# race markets


@register_action("build_propose_race_resolution_transaction", RaceProposeParams)
def build_propose_race_resolution_transaction(
    params: RaceProposeParams, ctx: ActionContext
) -> dict[str, Any]:
    race = ctx.markets.get_race_market(params.race_market)
    require_unsettled(race.status)
    _require_closed(race.closing_time, ctx.now)
    require_outcome_index(params.winning_outcome_index, len(race.outcomes))
    proposer = key(params.proposer_wallet)
    plan = propose_race_resolution(
        race=key(race.address),
        winning_index=params.winning_outcome_index,
        proposer=proposer,
        program_id=ctx.program_id,
    )
    payload = ctx.build([plan], proposer)
    payload["proposedOutcome"] = race.outcomes[params.winning_outcome_index].label
    return payload


@register_action("build_resolve_race_transaction", RaceResolveParams)
def build_resolve_race_transaction(params: RaceResolveParams, ctx: ActionContext) -> dict[str, Any]:
    race = ctx.markets.get_race_market(params.race_market)
    require_unsettled(race.status)
    _require_closed(race.closing_time, ctx.now)
    require_outcome_index(params.winning_outcome_index, len(race.outcomes))
    resolver = key(params.resolver_wallet)
    plan = resolve_race(
        race=key(race.address),
        winning_index=params.winning_outcome_index,
        resolver=resolver,
        program_id=ctx.program_id,
    )
    payload = ctx.build([plan], resolver)
    payload["outcome"] = race.outcomes[params.winning_outcome_index].label
    return payload


@register_action("build_finalize_race_resolution_transaction", RaceFinalizeParams)
def build_finalize_race_resolution_transaction(
    params: RaceFinalizeParams, ctx: ActionContext
) -> dict[str, Any]:
    race = ctx.markets.get_race_market(params.race_market)
    _finalize_check(ctx, race.address, race.status)
    caller = key(params.caller_wallet)
    plan = finalize_resolution(
        market=key(race.address), caller=caller, program_id=ctx.program_id, race=True
    )
    return ctx.build([plan], caller)


@register_action("build_flag_race_dispute_transaction", RaceDisputeParams)
def build_flag_race_dispute_transaction(
    params: RaceDisputeParams, ctx: ActionContext
) -> dict[str, Any]:
    race = ctx.markets.get_race_market(params.race_market)
    _require_pending(race.status)
    disputer = key(params.disputer_wallet)
    plan = flag_dispute(
        market=key(race.address), disputer=disputer, program_id=ctx.program_id, race=True
    )
    return ctx.build([plan], disputer)


def _race_vote(params: RaceVoteParams, ctx: ActionContext, change: bool) -> dict[str, Any]:
    race = ctx.markets.get_race_market(params.race_market)
    require_unsettled(race.status)
    require_outcome_index(params.vote_outcome_index, len(race.outcomes))
    _require_council_member(race.resolution_mode, race.council, params.voter_wallet)
    voter = key(params.voter_wallet)
    plan = vote_council_race(
        race=key(race.address),
        outcome_index=params.vote_outcome_index,
        voter=voter,
        program_id=ctx.program_id,
        change=change,
    )
    payload = ctx.build([plan], voter)
    payload["vote"] = race.outcomes[params.vote_outcome_index].label
    return payload


@register_action("build_vote_council_race_transaction", RaceVoteParams)
def build_vote_council_race_transaction(
    params: RaceVoteParams, ctx: ActionContext
) -> dict[str, Any]:
    return _race_vote(params, ctx, change=False)


@register_action("build_change_council_vote_race_transaction", RaceVoteParams)
def build_change_council_vote_race_transaction(
    params: RaceVoteParams, ctx: ActionContext
) -> dict[str, Any]:
    return _race_vote(params, ctx, change=True)
