"""Resolution and dispute instructions for boolean and race markets."""

from __future__ import annotations

from solders.pubkey import Pubkey

from baozi.services import pda

from .instructions import InstructionPlan, args, plan, readonly, system_program, writable


def propose_resolution(
    *, market: Pubkey, outcome: bool, proposer: Pubkey, program_id: Pubkey, host: bool = False
) -> InstructionPlan:
    name = "propose_resolution_host" if host else "propose_resolution"
    config = pda.config_pda(program_id)
    dispute_meta = pda.dispute_meta_pda(market, program_id)
    accounts = [
        readonly(config),
        writable(market),
        writable(dispute_meta),
        writable(proposer, signer=True),
        system_program(),
    ]
    return plan(
        name,
        program_id,
        accounts,
        args(name).bool(outcome),
        market=market,
        disputeMeta=dispute_meta,
    )


def resolve_market(
    *, market: Pubkey, outcome: bool, resolver: Pubkey, program_id: Pubkey, host: bool = False
) -> InstructionPlan:
    name = "resolve_market_host" if host else "resolve_market"
    config = pda.config_pda(program_id)
    accounts = [readonly(config), writable(market), readonly(resolver, signer=True)]
    return plan(name, program_id, accounts, args(name).bool(outcome), market=market)


def finalize_resolution(
    *, market: Pubkey, caller: Pubkey, program_id: Pubkey, race: bool = False
) -> InstructionPlan:
    name = "finalize_race_resolution" if race else "finalize_resolution"
    dispute_meta = pda.dispute_meta_pda(market, program_id)
    accounts = [writable(market), writable(dispute_meta), readonly(caller, signer=True)]
    return plan(name, program_id, accounts, args(name), market=market, disputeMeta=dispute_meta)


def propose_race_resolution(
    *, race: Pubkey, winning_index: int, proposer: Pubkey, program_id: Pubkey
) -> InstructionPlan:
    config = pda.config_pda(program_id)
    dispute_meta = pda.dispute_meta_pda(race, program_id)
    accounts = [
        readonly(config),
        writable(race),
        writable(dispute_meta),
        writable(proposer, signer=True),
        system_program(),
    ]
    return plan(
        "propose_race_resolution",
        program_id,
        accounts,
        args("propose_race_resolution").u8(winning_index),
        raceMarket=race,
        disputeMeta=dispute_meta,
    )


def resolve_race(
    *, race: Pubkey, winning_index: int, resolver: Pubkey, program_id: Pubkey
) -> InstructionPlan:
    config = pda.config_pda(program_id)
    accounts = [readonly(config), writable(race), readonly(resolver, signer=True)]
    return plan(
        "resolve_race",
        program_id,
        accounts,
        args("resolve_race").u8(winning_index),
        raceMarket=race,
    )


def flag_dispute(
    *, market: Pubkey, disputer: Pubkey, program_id: Pubkey, race: bool = False
) -> InstructionPlan:
    name = "flag_race_dispute" if race else "flag_dispute"
    config = pda.config_pda(program_id)
    dispute_meta = pda.dispute_meta_pda(market, program_id)
    accounts = [
        readonly(config),
        writable(market),
        writable(dispute_meta),
        readonly(disputer, signer=True),
    ]
    return plan(name, program_id, accounts, args(name), market=market, disputeMeta=dispute_meta)


def vote_council(
    *, market: Pubkey, vote_yes: bool, voter: Pubkey, program_id: Pubkey, change: bool = False
) -> InstructionPlan:
    """Cast or change a council vote on a boolean market.

    Changing a vote reuses the existing vote record, so no system account is
    passed and the voter is not charged rent.
    """

    name = "change_council_vote" if change else "vote_council"
    config = pda.config_pda(program_id)
    vote = pda.council_vote_pda(market, voter, program_id)
    dispute_meta = pda.dispute_meta_pda(market, program_id)
    accounts = [readonly(config), writable(market), writable(vote), writable(dispute_meta)]
    if change:
        accounts.append(readonly(voter, signer=True))
    else:
        accounts += [writable(voter, signer=True), system_program()]
    return plan(
        name,
        program_id,
        accounts,
        args(name).bool(vote_yes),
        market=market,
        councilVote=vote,
        disputeMeta=dispute_meta,
    )


def vote_council_race(
    *, race: Pubkey, outcome_index: int, voter: Pubkey, program_id: Pubkey, change: bool = False
) -> InstructionPlan:
    name = "change_council_vote_race" if change else "vote_council_race"
    config = pda.config_pda(program_id)
    vote = pda.race_council_vote_pda(race, voter, program_id)
    dispute_meta = pda.dispute_meta_pda(race, program_id)
    accounts = [readonly(config), writable(race), writable(vote), writable(dispute_meta)]
    if change:
        accounts.append(readonly(voter, signer=True))
    else:
        accounts += [writable(voter, signer=True), system_program()]
    return plan(
        name,
        program_id,
        accounts,
        args(name).u8(outcome_index),
        raceMarket=race,
        councilVote=vote,
        disputeMeta=dispute_meta,
    )


__all__ = [
    "finalize_resolution",
    "flag_dispute",
    "propose_race_resolution",
    "propose_resolution",
    "resolve_market",
    "resolve_race",
    "vote_council",
    "vote_council_race",
]
