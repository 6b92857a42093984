"""Affiliate codes, referrals, agent network stats and affiliate transactions."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from baozi.schemas import ActionParams, Address, NoParams
from baozi.services.affiliate_service import (
    commission_info,
    format_affiliate_link as affiliate_link,
    referral_to_dict,
    validate_affiliate_code,
)
from baozi.transactions.accounts import register_affiliate, toggle_affiliate

from ..context import ActionContext
from ..registry import register_action
from .common import key, reject, require_valid


class CodeParams(ActionParams):
    code: str


class SuggestParams(ActionParams):
    agent_name: str = Field(min_length=1)
    count: int = Field(default=5, ge=1, le=10)


class WalletParams(ActionParams):
    wallet: Address


class LinkParams(ActionParams):
    code: str
    market: Address | None = None


class RegisterParams(ActionParams):
    code: str
    user_wallet: Address


class ToggleParams(ActionParams):
    code: str
    active: bool
    user_wallet: Address


@register_action("check_affiliate_code", CodeParams)
def check_affiliate_code(params: CodeParams, ctx: ActionContext) -> dict[str, Any]:
    """Whether a code is well-formed and still unregistered."""

    result = validate_affiliate_code(params.code)
    payload: dict[str, Any] = {
        "code": params.code,
        "valid": result.valid,
        "affiliatePda": str(ctx.affiliates.affiliate_address(params.code)),
    }
    if not result.valid:
        payload.update(available=False, error=result.error)
        return payload
    payload["available"] = ctx.affiliates.is_code_available(params.code)
    return payload


@register_action("suggest_affiliate_codes", SuggestParams)
def suggest_affiliate_codes(params: SuggestParams, ctx: ActionContext) -> dict[str, Any]:
    """Candidate codes derived from an agent name, with availability."""

    suggestions = ctx.affiliates.suggest_codes(params.agent_name, params.count)
    return {"agentName": params.agent_name, "suggestions": suggestions}


@register_action("get_affiliate_info", CodeParams)
def get_affiliate_info(params: CodeParams, ctx: ActionContext) -> dict[str, Any]:
    return ctx.affiliates.get_affiliate(params.code).to_dict()


@register_action("get_my_affiliates", WalletParams)
def get_my_affiliates(params: WalletParams, ctx: ActionContext) -> dict[str, Any]:
    """Affiliate accounts owned by a wallet."""

    affiliates = ctx.affiliates.affiliates_by_owner(params.wallet)
    return {
        "wallet": params.wallet,
        "count": len(affiliates),
        "affiliates": [affiliate.to_dict() for affiliate in affiliates],
    }


@register_action("get_referrals", CodeParams)
def get_referrals(params: CodeParams, ctx: ActionContext) -> dict[str, Any]:
    """Users referred by an affiliate code."""

    referrals = ctx.affiliates.referrals(params.code)
    return {
        "code": params.code,
        "count": len(referrals),
        "referrals": [referral_to_dict(referral, params.code) for referral in referrals],
    }


@register_action("get_agent_network_stats", NoParams)
def get_agent_network_stats(params: NoParams, ctx: ActionContext) -> dict[str, Any]:
    """Totals across every registered affiliate, with the top earners."""

    return ctx.affiliates.network_stats()


@register_action("format_affiliate_link", LinkParams)
def format_affiliate_link(params: LinkParams, ctx: ActionContext) -> dict[str, Any]:
    require_valid(validate_affiliate_code(params.code))
    link = affiliate_link(ctx.settings.app_base_url, params.code, params.market)
    return {"code": params.code, "market": params.market, "link": link}


@register_action("get_commission_info", NoParams)
def get_commission_info(params: NoParams, ctx: ActionContext) -> dict[str, Any]:
    return commission_info(ctx.settings.fee_table)


@register_action("build_register_affiliate_transaction", RegisterParams)
def build_register_affiliate_transaction(
    params: RegisterParams, ctx: ActionContext
) -> dict[str, Any]:
    """Register a new affiliate code owned by the calling wallet."""

    require_valid(validate_affiliate_code(params.code))
    if not ctx.affiliates.is_code_available(params.code):
        raise reject("code_taken", f"Affiliate code '{params.code}' is already registered")
    owner = key(params.user_wallet)
    plan = register_affiliate(code=params.code, owner=owner, program_id=ctx.program_id)
    payload = ctx.build([plan], owner)
    payload.update(
        affiliatePda=str(plan.addresses["affiliate"]),
        link=affiliate_link(ctx.settings.app_base_url, params.code),
    )
    return payload


@register_action("build_toggle_affiliate_transaction", ToggleParams)
def build_toggle_affiliate_transaction(params: ToggleParams, ctx: ActionContext) -> dict[str, Any]:
    """Activate or deactivate an affiliate code."""

    affiliate = ctx.affiliates.get_affiliate(params.code)
    if affiliate.owner != params.user_wallet:
        raise reject("not_owner", "Only the affiliate owner can toggle the code")
    owner = key(params.user_wallet)
    plan = toggle_affiliate(
        code=params.code, active=params.active, owner=owner, program_id=ctx.program_id
    )
    payload = ctx.build([plan], owner)
    payload["active"] = params.active
    return payload
