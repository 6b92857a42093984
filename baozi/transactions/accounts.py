"""Affiliate and creator-profile account instructions."""

from __future__ import annotations

from solders.pubkey import Pubkey

from baozi.services import pda

from .instructions import InstructionPlan, args, plan, readonly, system_program, writable


def register_affiliate(*, code: str, owner: Pubkey, program_id: Pubkey) -> InstructionPlan:
    config = pda.config_pda(program_id)
    affiliate = pda.affiliate_pda(code, program_id)
    accounts = [
        readonly(config),
        writable(affiliate),
        writable(owner, signer=True),
        system_program(),
    ]
    return plan(
        "register_affiliate",
        program_id,
        accounts,
        args("register_affiliate").string(code),
        affiliate=affiliate,
    )


def toggle_affiliate(
    *, code: str, active: bool, owner: Pubkey, program_id: Pubkey
) -> InstructionPlan:
    config = pda.config_pda(program_id)
    affiliate = pda.affiliate_pda(code, program_id)
    accounts = [readonly(config), writable(affiliate), readonly(owner, signer=True)]
    return plan(
        "toggle_affiliate",
        program_id,
        accounts,
        args("toggle_affiliate").bool(active),
        affiliate=affiliate,
    )


def creator_profile(
    *,
    owner: Pubkey,
    display_name: str,
    fee_bps: int,
    program_id: Pubkey,
    update: bool = False,
) -> InstructionPlan:
    name = "update_creator_profile" if update else "create_creator_profile"
    profile = pda.creator_profile_pda(owner, program_id)
    if update:
        accounts = [writable(profile), readonly(owner, signer=True)]
    else:
        accounts = [writable(profile), writable(owner, signer=True), system_program()]
    data = args(name).string(display_name).u16(fee_bps)
    return plan(name, program_id, accounts, data, creatorProfile=profile)


__all__ = ["creator_profile", "register_affiliate", "toggle_affiliate"]
