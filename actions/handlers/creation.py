"""Market creation previews and transactions, plus creator profiles."""

from __future__ import annotations

import re
from typing import Any

from pydantic import Field, field_validator

from baozi.core.errors import AccountNotFoundError, RuleViolationError
from baozi.domain import MarketLayer
from baozi.schemas import ActionParams, Address, Timestamp
from baozi.services import pda
from baozi.services.creation import (
    CreationRequest,
    CreationValidation,
    creation_preview,
    validate_creation,
    validate_creator_profile,
)
from baozi.transactions.accounts import creator_profile
from baozi.transactions.markets import (
    CreationArgs,
    create_lab_market_sol,
    create_private_table_sol,
    create_race_market_sol,
)

from ..context import ActionContext
from ..registry import register_action
from .common import LayerParam, MarketTypeParam, key, reject, require_valid, unix

INVITE_HASH_PATTERN = re.compile(r"^[0-9a-fA-F]{64}$")


class CreateMarketParams(ActionParams):
    question: str
    closing_time: Timestamp
    resolution_time: Timestamp | None = None
    market_type: MarketTypeParam | None = None
    event_time: Timestamp | None = None
    measurement_start: Timestamp | None = None
    measurement_end: Timestamp | None = None
    creator_wallet: Address


class PrivateMarketParams(CreateMarketParams):
    invite_hash: str | None = None

    @field_validator("invite_hash")
    @classmethod
    def _check_invite_hash(cls, value: str | None) -> str | None:
        if value is not None and not INVITE_HASH_PATTERN.match(value):
            raise ValueError("invite_hash must be 32 bytes of hex")
        return value.lower() if value else value


class RaceMarketParams(CreateMarketParams):
    outcomes: list[str]


class PreviewParams(PrivateMarketParams):
    layer: LayerParam = MarketLayer.LAB
    outcomes: list[str] | None = None
    creator_wallet: Address | None = None


class CreatorProfileParams(ActionParams):
    display_name: str
    creator_fee_bps: int = Field(ge=0)
    creator_wallet: Address


class UpdateCreatorProfileParams(ActionParams):
    display_name: str
    default_fee_bps: int = Field(ge=0)
    creator_wallet: Address


def _request(params: CreateMarketParams, layer: MarketLayer, **extra: Any) -> CreationRequest:
    return CreationRequest(
        question=params.question,
        layer=layer,
        closing_time=params.closing_time,
        resolution_time=params.resolution_time,
        market_type=params.market_type,
        event_time=params.event_time,
        measurement_start=params.measurement_start,
        measurement_end=params.measurement_end,
        **extra,
    )


def _validate(ctx: ActionContext, request: CreationRequest) -> CreationValidation:
    return validate_creation(
        request,
        ctx.now,
        timing=ctx.settings.timing,
        fees=ctx.settings.fee_table,
        content_rules=ctx.content_rules,
    )


def _require_creatable(validation: CreationValidation) -> None:
    blocking = [v for v in validation.result.violations if v.is_blocking]
    blocking += [v for v in validation.content.violations if v.is_blocking]
    if blocking:
        raise RuleViolationError.from_violations(blocking)


def _creation_args(ctx: ActionContext, request: CreationRequest, wallet: str) -> CreationArgs:
    config = ctx.markets.global_config()
    creator = key(wallet)
    closing_ts = unix(request.closing_time)
    return CreationArgs(
        market_id=config.market_count,
        question=request.question.strip(),
        closing_ts=closing_ts,
        creator=creator,
        treasury=key(config.treasury),
        has_creator_profile=ctx.markets.account_exists(
            pda.creator_profile_pda(creator, ctx.program_id)
        ),
        resolution_buffer=unix(request.effective_resolution_time()) - closing_ts,
        outcome_labels=[label.strip() for label in request.outcomes or []],
        layer=request.layer,
    )


def _build(
    ctx: ActionContext, validation: CreationValidation, creation: CreationArgs, builder
) -> dict[str, Any]:
    plan = builder(creation, program_id=ctx.program_id)
    payload = ctx.build([plan], creation.creator)
    address = plan.addresses.get("raceMarket") or plan.addresses["market"]
    payload.update(
        marketId=str(creation.market_id),
        marketPda=str(address),
        validation=validation.to_dict(),
    )
    return payload


@register_action("preview_create_market", PreviewParams)
def preview_create_market(params: PreviewParams, ctx: ActionContext) -> dict[str, Any]:
    """Validate a prospective market and show its cost and future address."""

    request = _request(
        params, params.layer, outcomes=params.outcomes, invite_hash=params.invite_hash
    )
    validation = _validate(ctx, request)
    market_id = ctx.markets.next_market_id() if validation.valid else 0
    preview = creation_preview(validation, market_id, ctx.program_id)
    if params.creator_wallet:
        profile = pda.creator_profile_pda(key(params.creator_wallet), ctx.program_id)
        preview["hasCreatorProfile"] = ctx.markets.account_exists(profile)
    return preview


@register_action("build_create_lab_market_transaction", CreateMarketParams)
def build_create_lab_market_transaction(
    params: CreateMarketParams, ctx: ActionContext
) -> dict[str, Any]:
    """Create a community Lab market resolved by the creator's council."""

    request = _request(params, MarketLayer.LAB)
    validation = _validate(ctx, request)
    _require_creatable(validation)
    creation = _creation_args(ctx, request, params.creator_wallet)
    return _build(ctx, validation, creation, create_lab_market_sol)


@register_action("build_create_private_market_transaction", PrivateMarketParams)
def build_create_private_market_transaction(
    params: PrivateMarketParams, ctx: ActionContext
) -> dict[str, Any]:
    """Create a Private table with its whitelist, resolved by the host."""

    request = _request(params, MarketLayer.PRIVATE, invite_hash=params.invite_hash)
    validation = _validate(ctx, request)
    _require_creatable(validation)
    creation = _creation_args(ctx, request, params.creator_wallet)
    payload = _build(ctx, validation, creation, create_private_table_sol)
    if params.invite_hash:
        base = ctx.settings.app_base_url.rstrip("/")
        payload["inviteHash"] = params.invite_hash
        payload["inviteLink"] = f"{base}/market/{payload['marketPda']}?invite={params.invite_hash}"
    return payload


@register_action("build_create_race_market_transaction", RaceMarketParams)
def build_create_race_market_transaction(
    params: RaceMarketParams, ctx: ActionContext
) -> dict[str, Any]:
    """Create a multi-outcome race market."""

    request = _request(params, MarketLayer.LAB, outcomes=params.outcomes)
    validation = _validate(ctx, request)
    _require_creatable(validation)
    creation = _creation_args(ctx, request, params.creator_wallet)
    payload = _build(ctx, validation, creation, create_race_market_sol)
    payload["outcomes"] = creation.outcome_labels
    return payload


def _profile(
    ctx: ActionContext, display_name: str, fee_bps: int, wallet: str, update: bool
) -> dict[str, Any]:
    require_valid(validate_creator_profile(display_name, fee_bps, ctx.settings.fee_table))
    owner = key(wallet)
    address = pda.creator_profile_pda(owner, ctx.program_id)
    exists = ctx.markets.account_exists(address)
    if update and not exists:
        raise AccountNotFoundError("CreatorProfile", str(address))
    if not update and exists:
        raise reject("profile_exists", "Creator profile already exists; update it instead")
    plan = creator_profile(
        owner=owner,
        display_name=display_name.strip(),
        fee_bps=fee_bps,
        program_id=ctx.program_id,
        update=update,
    )
    payload = ctx.build([plan], owner)
    payload.update(creatorProfilePda=str(address), feeBps=fee_bps)
    return payload


@register_action("build_create_creator_profile_transaction", CreatorProfileParams)
def build_create_creator_profile_transaction(
    params: CreatorProfileParams, ctx: ActionContext
) -> dict[str, Any]:
    """Register a creator profile that earns a fee on its markets."""

    return _profile(ctx, params.display_name, params.creator_fee_bps, params.creator_wallet, False)


@register_action("build_update_creator_profile_transaction", UpdateCreatorProfileParams)
def build_update_creator_profile_transaction(
    params: UpdateCreatorProfileParams, ctx: ActionContext
) -> dict[str, Any]:
    return _profile(ctx, params.display_name, params.default_fee_bps, params.creator_wallet, True)
