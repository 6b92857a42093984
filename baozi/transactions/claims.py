from __future__ import annotations

from solders.pubkey import Pubkey

from baozi.services import pda

from .instructions import InstructionPlan, args, plan, readonly, system_program, writable


def claim_winnings_sol(
    *, market: Pubkey, position: Pubkey, user: Pubkey, program_id: Pubkey
) -> InstructionPlan:
    config = pda.config_pda(program_id)
    treasury = pda.sol_treasury_pda(program_id)
    accounts = [
        readonly(config),
        writable(market),
        writable(position),
        writable(treasury),
        writable(user, signer=True),
        system_program(),
    ]
    return plan(
        "claim_winnings_sol",
        program_id,
        accounts,
        args("claim_winnings_sol"),
        market=market,
        position=position,
        solTreasury=treasury,
    )


def claim_refund_sol(
    *, market: Pubkey, position: Pubkey, user: Pubkey, program_id: Pubkey
) -> InstructionPlan:
    accounts = [writable(market), writable(position), writable(user, signer=True), system_program()]
    return plan(
        "claim_refund_sol",
        program_id,
        accounts,
        args("claim_refund_sol"),
        market=market,
        position=position,
    )


def claim_affiliate_sol(
    *, affiliate_code: str, owner: Pubkey, program_id: Pubkey
) -> InstructionPlan:
    config = pda.config_pda(program_id)
    affiliate = pda.affiliate_pda(affiliate_code, program_id)
    treasury = pda.sol_treasury_pda(program_id)
    accounts = [
        readonly(config),
        writable(affiliate),
        writable(treasury),
        writable(owner, signer=True),
        system_program(),
    ]
    return plan(
        "claim_affiliate_sol",
        program_id,
        accounts,
        args("claim_affiliate_sol"),
        affiliate=affiliate,
        solTreasury=treasury,
    )


def claim_race_winnings_sol(
    *, race: Pubkey, position: Pubkey, user: Pubkey, program_id: Pubkey
) -> InstructionPlan:
    config = pda.config_pda(program_id)
    treasury = pda.sol_treasury_pda(program_id)
    accounts = [
        readonly(config),
        writable(race),
        writable(position),
        writable(treasury),
        writable(user, signer=True),
        system_program(),
    ]
    return plan(
        "claim_race_winnings_sol",
        program_id,
        accounts,
        args("claim_race_winnings_sol"),
        raceMarket=race,
        position=position,
        solTreasury=treasury,
    )


def claim_race_refund(
    *, race: Pubkey, position: Pubkey, user: Pubkey, program_id: Pubkey
) -> InstructionPlan:
    accounts = [writable(race), writable(position), writable(user, signer=True), system_program()]
    return plan(
        "claim_race_refund",
        program_id,
        accounts,
        args("claim_race_refund"),
        raceMarket=race,
        position=position,
    )


def claim_creator_sol(*, owner: Pubkey, program_id: Pubkey) -> InstructionPlan:
    config = pda.config_pda(program_id)
    profile = pda.creator_profile_pda(owner, program_id)
    treasury = pda.sol_treasury_pda(program_id)
    accounts = [
        readonly(config),
        writable(profile),
        writable(treasury),
        writable(owner, signer=True),
        system_program(),
    ]
    return plan(
        "claim_creator_sol",
        program_id,
        accounts,
        args("claim_creator_sol"),
        creatorProfile=profile,
        solTreasury=treasury,
    )


def batch_claims(
    claims: list[tuple[Pubkey, Pubkey, bool]], *, user: Pubkey, program_id: Pubkey
) -> list[InstructionPlan]:
    """One claim per ``(market, position, is_refund)`` entry, in the given order."""

    plans: list[InstructionPlan] = []
    for market, position, is_refund in claims:
        build = claim_refund_sol if is_refund else claim_winnings_sol
        plans.append(build(market=market, position=position, user=user, program_id=program_id))
    return plans


__all__ = [
    "batch_claims",
    "claim_affiliate_sol",
    "claim_creator_sol",
    "claim_race_refund",
    "claim_race_winnings_sol",
    "claim_refund_sol",
    "claim_winnings_sol",
]
