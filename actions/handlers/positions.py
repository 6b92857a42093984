from __future__ import annotations

from typing import Any

from baozi.schemas import ActionParams, Address

from ..context import ActionContext
from ..registry import register_action


class WalletParams(ActionParams):
    wallet: Address


@register_action("get_positions", WalletParams)
def get_positions(params: WalletParams, ctx: ActionContext) -> dict[str, Any]:
    """Every position held by a wallet with win/loss/pending counts."""

    return ctx.markets.position_summary(params.wallet, ctx.now)


@register_action("get_claimable", WalletParams)
def get_claimable(params: WalletParams, ctx: ActionContext) -> dict[str, Any]:
    """Unclaimed winnings and refunds with estimated payouts."""

    return ctx.markets.claimable(params.wallet)
