"""Instruction discriminators and the plan object every builder returns."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID

from .encoding import BorshWriter

# Anchor discriminators: first 8 bytes of sha256("global:<name>").
DISCRIMINATORS: dict[str, bytes] = {
    # bets
    "place_bet_sol": bytes([137, 137, 247, 253, 233, 243, 48, 170]),
    "place_bet_sol_with_affiliate": bytes([197, 186, 187, 145, 252, 239, 101, 96]),
    "bet_on_race_sol": bytes([195, 181, 151, 159, 105, 100, 234, 244]),
    "bet_on_race_sol_with_affiliate": bytes([26, 224, 14, 181, 67, 52, 24, 0]),
    # claims
    "claim_winnings_sol": bytes([64, 158, 207, 116, 128, 129, 169, 76]),
    "claim_refund_sol": bytes([8, 82, 5, 144, 194, 114, 255, 20]),
    "claim_affiliate_sol": bytes([125, 18, 164, 112, 216, 207, 197, 201]),
    "claim_race_winnings_sol": bytes([46, 120, 202, 194, 126, 72, 22, 52]),
    "claim_race_refund": bytes([174, 101, 101, 227, 171, 69, 173, 243]),
    "claim_creator_sol": bytes([21, 25, 164, 47, 81, 156, 199, 103]),
    # creation
    "create_lab_market_sol": bytes([35, 159, 50, 67, 31, 134, 199, 157]),
    "create_private_table_sol": bytes([242, 241, 183, 108, 35, 183, 38, 241]),
    "create_race_market_sol": bytes([94, 237, 40, 47, 63, 233, 25, 67]),
    # resolution
    "propose_resolution": bytes([19, 68, 181, 23, 194, 146, 152, 252]),
    "propose_resolution_host": bytes([116, 231, 75, 185, 127, 129, 46, 124]),
    "resolve_market": bytes([155, 23, 80, 173, 46, 74, 23, 239]),
    "resolve_market_host": bytes([140, 50, 133, 146, 72, 5, 210, 116]),
    "finalize_resolution": bytes([191, 74, 94, 214, 45, 150, 152, 125]),
    "propose_race_resolution": bytes([14, 204, 17, 188, 243, 49, 107, 255]),
    "resolve_race": bytes([181, 252, 7, 209, 242, 100, 95, 172]),
    "finalize_race_resolution": bytes([19, 232, 81, 138, 191, 218, 54, 200]),
    # disputes
    "flag_dispute": bytes([150, 222, 78, 72, 117, 140, 2, 75]),
    "flag_race_dispute": bytes([154, 160, 110, 29, 65, 3, 77, 7]),
    "vote_council": bytes([252, 167, 165, 182, 221, 242, 174, 249]),
    "vote_council_race": bytes([79, 176, 145, 193, 225, 24, 183, 234]),
    "change_council_vote": bytes([70, 96, 72, 253, 134, 120, 254, 76]),
    "change_council_vote_race": bytes([54, 185, 210, 126, 40, 252, 146, 6]),
    # whitelist
    "add_to_whitelist": bytes([157, 211, 52, 54, 144, 81, 5, 55]),
    "remove_from_whitelist": bytes([7, 144, 216, 239, 243, 236, 193, 235]),
    "create_race_whitelist": bytes([236, 103, 41, 9, 152, 23, 229, 58]),
    "add_to_race_whitelist": bytes([144, 229, 112, 184, 199, 39, 27, 156]),
    "remove_from_race_whitelist": bytes([150, 136, 17, 158, 48, 19, 39, 232]),
    # management
    "close_market": bytes([88, 154, 248, 186, 48, 14, 123, 244]),
    "close_race_market": bytes([39, 189, 166, 118, 134, 37, 102, 41]),
    "extend_market": bytes([105, 89, 206, 205, 57, 31, 153, 252]),
    "extend_race_market": bytes([242, 176, 227, 152, 79, 116, 110, 168]),
    "cancel_market": bytes([205, 121, 84, 210, 222, 71, 150, 11]),
    "cancel_race": bytes([28, 31, 113, 29, 126, 206, 39, 119]),
    # affiliate
    "register_affiliate": bytes([87, 121, 99, 184, 126, 63, 103, 217]),
    "toggle_affiliate": bytes([47, 161, 133, 19, 172, 44, 43, 194]),
    # creator
    "create_creator_profile": bytes([139, 244, 127, 145, 95, 172, 140, 154]),
    "update_creator_profile": bytes([8, 240, 162, 55, 110, 46, 177, 108]),
}


def writable(pubkey: Pubkey, *, signer: bool = False) -> AccountMeta:
    return AccountMeta(pubkey=pubkey, is_signer=signer, is_writable=True)


def readonly(pubkey: Pubkey, *, signer: bool = False) -> AccountMeta:
    return AccountMeta(pubkey=pubkey, is_signer=signer, is_writable=False)


def system_program() -> AccountMeta:
    return readonly(SYSTEM_PROGRAM_ID)


def args(name: str) -> BorshWriter:
    """Start the instruction data for ``name`` with its discriminator."""

    return BorshWriter(DISCRIMINATORS[name])


@dataclass(slots=True)
class InstructionPlan:
    """A single program instruction plus the addresses derived to build it."""

    name: str
    instruction: Instruction
    addresses: dict[str, Pubkey] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "instruction": self.name,
            "accounts": {role: str(address) for role, address in self.addresses.items()},
        }


def plan(
    name: str,
    program_id: Pubkey,
    accounts: list[AccountMeta],
    data: BorshWriter,
    **addresses: Pubkey,
) -> InstructionPlan:
    instruction = Instruction(program_id, data.to_bytes(), accounts)
    return InstructionPlan(name=name, instruction=instruction, addresses=addresses)


__all__ = [
    "DISCRIMINATORS",
    "InstructionPlan",
    "SYSTEM_PROGRAM_ID",
    "args",
    "plan",
    "readonly",
    "system_program",
    "writable",
]
