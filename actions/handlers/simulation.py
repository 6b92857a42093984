from __future__ import annotations

from typing import Any

from solders.errors import BincodeError

from baozi.schemas import ActionParams, Address
from baozi.services.simulation import simulate
from baozi.transactions import decode_transaction

from ..context import ActionContext
from ..registry import register_action
from .common import reject


class SimulateParams(ActionParams):
    transaction: str
    user_wallet: Address


@register_action("simulate_transaction", SimulateParams)
def simulate_transaction(params: SimulateParams, ctx: ActionContext) -> dict[str, Any]:
    """Dry-run a base64 transaction against the current chain state."""

    try:
        transaction = decode_transaction(params.transaction)
    except (BincodeError, ValueError) as exc:
        raise reject("transaction_format", f"Not a base64 serialized transaction: {exc}") from exc
    fee_payer = str(transaction.message.account_keys[0])
    if fee_payer != params.user_wallet:
        raise reject(
            "fee_payer",
            "Transaction fee payer does not match user_wallet",
            required=params.user_wallet,
            actual=fee_payer,
        )
    return simulate(ctx.rpc, params.transaction).to_dict()
