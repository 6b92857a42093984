"""Unsigned legacy transaction assembly."""

from __future__ import annotations

import base64
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from loguru import logger
from solders.hash import Hash
from solders.message import Message
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from .instructions import InstructionPlan


@dataclass(slots=True)
class UnsignedTransaction:
    serialized_b64: str
    fee_payer: str
    blockhash: str
    instructions: list[str] = field(default_factory=list)
    accounts: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "serialized": self.serialized_b64,
            "feePayer": self.fee_payer,
            "blockhash": self.blockhash,
            "instructions": list(self.instructions),
            "accounts": dict(self.accounts),
            "signed": False,
        }


def assemble(
    plans: Sequence[InstructionPlan], fee_payer: Pubkey, blockhash: str
) -> UnsignedTransaction:
    """Pack ``plans`` into a legacy message paid by ``fee_payer``; never signs."""

    if not plans:
        raise ValueError("At least one instruction is required")
    message = Message.new_with_blockhash(
        [item.instruction for item in plans], fee_payer, Hash.from_string(blockhash)
    )
    transaction = Transaction.new_unsigned(message)
    serialized = base64.b64encode(bytes(transaction)).decode("ascii")

    accounts: dict[str, str] = {}
    for item in plans:
        for role, address in item.addresses.items():
            accounts.setdefault(role, str(address))
    names = [item.name for item in plans]
    logger.info(
        "Assembled unsigned transaction {} for {} ({} bytes)",
        "+".join(names),
        fee_payer,
        len(bytes(transaction)),
    )
    return UnsignedTransaction(
        serialized_b64=serialized,
        fee_payer=str(fee_payer),
        blockhash=blockhash,
        instructions=names,
        accounts=accounts,
    )


def decode_transaction(serialized_b64: str) -> Transaction:
    return Transaction.from_bytes(base64.b64decode(serialized_b64))


__all__ = ["UnsignedTransaction", "assemble", "decode_transaction"]
