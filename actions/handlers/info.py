"""Static protocol parameters: fees, timing rules and invite hashes."""

from __future__ import annotations

import secrets
from typing import Any

from baozi.domain import MarketLayer
from baozi.schemas import ActionParams, Address, NoParams
from baozi.services.fees import creation_cost, fee_overview
from baozi.services.timing import timing_overview

from ..context import ActionContext
from ..registry import register_action

INVITE_HASH_BYTES = 32


class InviteHashParams(ActionParams):
    market: Address | None = None


@register_action("get_creation_fees", NoParams)
def get_creation_fees(params: NoParams, ctx: ActionContext) -> dict[str, Any]:
    """Creation fee and estimated rent per market layer."""

    table = ctx.settings.fee_table
    return {
        "version": table.version,
        "layers": {layer.label: creation_cost(layer, table) for layer in MarketLayer},
        "raceExample": creation_cost(MarketLayer.LAB, table, outcome_count=4),
    }


@register_action("get_platform_fees", NoParams)
def get_platform_fees(params: NoParams, ctx: ActionContext) -> dict[str, Any]:
    """Platform, affiliate and creator fee rates per layer."""

    return fee_overview(ctx.settings.fee_table)


@register_action("get_timing_rules", NoParams)
def get_timing_rules(params: NoParams, ctx: ActionContext) -> dict[str, Any]:
    """Betting freeze, event buffer and resolution window rules."""

    return timing_overview(ctx.settings.timing)


@register_action("generate_invite_hash", InviteHashParams)
def generate_invite_hash(params: InviteHashParams, ctx: ActionContext) -> dict[str, Any]:
    """Random invite hash for a private market, with a share link when a market is given."""

    invite_hash = secrets.token_hex(INVITE_HASH_BYTES)
    payload: dict[str, Any] = {"inviteHash": invite_hash}
    if params.market:
        base = ctx.settings.app_base_url.rstrip("/")
        payload["inviteLink"] = f"{base}/market/{params.market}?invite={invite_hash}"
    return payload
