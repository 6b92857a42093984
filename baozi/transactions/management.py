"""Creator-side market administration: whitelists, close, extend, cancel."""

from __future__ import annotations

from solders.pubkey import Pubkey

from baozi.services import pda

from .instructions import InstructionPlan, args, plan, readonly, system_program, writable


def update_whitelist(
    *,
    market: Pubkey,
    market_id: int,
    member: Pubkey,
    creator: Pubkey,
    program_id: Pubkey,
    remove: bool = False,
) -> InstructionPlan:
    name = "remove_from_whitelist" if remove else "add_to_whitelist"
    whitelist = pda.whitelist_pda(market_id, program_id)
    accounts = [readonly(market), writable(whitelist), readonly(creator, signer=True)]
    return plan(
        name, program_id, accounts, args(name).pubkey(member), market=market, whitelist=whitelist
    )


def create_race_whitelist(*, race: Pubkey, creator: Pubkey, program_id: Pubkey) -> InstructionPlan:
    whitelist = pda.race_whitelist_pda(race, program_id)
    accounts = [
        readonly(race),
        writable(whitelist),
        writable(creator, signer=True),
        system_program(),
    ]
    return plan(
        "create_race_whitelist",
        program_id,
        accounts,
        args("create_race_whitelist"),
        raceMarket=race,
        whitelist=whitelist,
    )


def update_race_whitelist(
    *, race: Pubkey, member: Pubkey, creator: Pubkey, program_id: Pubkey, remove: bool = False
) -> InstructionPlan:
    name = "remove_from_race_whitelist" if remove else "add_to_race_whitelist"
    whitelist = pda.race_whitelist_pda(race, program_id)
    accounts = [readonly(race), writable(whitelist), readonly(creator, signer=True)]
    return plan(
        name, program_id, accounts, args(name).pubkey(member), raceMarket=race, whitelist=whitelist
    )


def _admin_accounts(market: Pubkey, caller: Pubkey, program_id: Pubkey):
    return [readonly(pda.config_pda(program_id)), writable(market), readonly(caller, signer=True)]


def close_market(
    *, market: Pubkey, caller: Pubkey, program_id: Pubkey, race: bool = False
) -> InstructionPlan:
    name = "close_race_market" if race else "close_market"
    accounts = _admin_accounts(market, caller, program_id)
    return plan(name, program_id, accounts, args(name), market=market)


def extend_market(
    *,
    market: Pubkey,
    new_closing_ts: int,
    new_resolution_ts: int | None,
    caller: Pubkey,
    program_id: Pubkey,
    race: bool = False,
) -> InstructionPlan:
    name = "extend_race_market" if race else "extend_market"
    data = args(name).i64(new_closing_ts).option_i64(new_resolution_ts)
    accounts = _admin_accounts(market, caller, program_id)
    return plan(name, program_id, accounts, data, market=market)


def cancel_market(
    *, market: Pubkey, reason: str, authority: Pubkey, program_id: Pubkey, race: bool = False
) -> InstructionPlan:
    name = "cancel_race" if race else "cancel_market"
    data = args(name).string(reason)
    accounts = _admin_accounts(market, authority, program_id)
    return plan(name, program_id, accounts, data, market=market)


__all__ = [
    "cancel_market",
    "close_market",
    "create_race_whitelist",
    "extend_market",
    "update_race_whitelist",
    "update_whitelist",
]
