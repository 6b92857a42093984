from __future__ import annotations

from solders.pubkey import Pubkey

from baozi.domain import Side
from baozi.services import pda

from .instructions import InstructionPlan, args, plan, readonly, system_program, writable


def place_bet_sol(
    *,
    market_id: int,
    side: Side,
    amount: int,
    user: Pubkey,
    program_id: Pubkey,
    gated: bool = False,
) -> InstructionPlan:
    """Bet on a boolean market; gated markets append the whitelist account."""

    config = pda.config_pda(program_id)
    market = pda.market_pda(market_id, program_id)
    position = pda.position_pda(market_id, user, program_id)
    accounts = [readonly(config), writable(market), writable(position)]
    addresses = {"config": config, "market": market, "position": position}
    if gated:
        whitelist = pda.whitelist_pda(market_id, program_id)
        accounts.append(readonly(whitelist))
        addresses["whitelist"] = whitelist
    accounts += [writable(user, signer=True), system_program()]
    data = args("place_bet_sol").u8(1 if side.as_bool else 0).u64(amount)
    return plan("place_bet_sol", program_id, accounts, data, **addresses)


def place_bet_sol_with_affiliate(
    *,
    market_id: int,
    side: Side,
    amount: int,
    user: Pubkey,
    affiliate_code: str,
    program_id: Pubkey,
    gated: bool = False,
) -> InstructionPlan:
    config = pda.config_pda(program_id)
    market = pda.market_pda(market_id, program_id)
    position = pda.position_pda(market_id, user, program_id)
    affiliate = pda.affiliate_pda(affiliate_code, program_id)
    referred = pda.referred_user_pda(user, program_id)
    accounts = [
        readonly(config),
        writable(market),
        writable(position),
        writable(affiliate),
        writable(referred),
    ]
    addresses = {
        "config": config,
        "market": market,
        "position": position,
        "affiliate": affiliate,
        "referredUser": referred,
    }
    if gated:
        whitelist = pda.whitelist_pda(market_id, program_id)
        accounts.append(readonly(whitelist))
        addresses["whitelist"] = whitelist
    accounts += [writable(user, signer=True), system_program()]
    data = args("place_bet_sol_with_affiliate").u8(1 if side.as_bool else 0).u64(amount)
    return plan("place_bet_sol_with_affiliate", program_id, accounts, data, **addresses)


def bet_on_race_sol(
    *,
    market_id: int,
    outcome_index: int,
    amount: int,
    user: Pubkey,
    program_id: Pubkey,
    gated: bool = False,
    affiliate_code: str | None = None,
) -> InstructionPlan:
    """Bet on one race outcome.

    The whitelist slot is always present; public races pass the program id
    as a placeholder.
    """

    config = pda.config_pda(program_id)
    race = pda.race_pda(market_id, program_id)
    position = pda.race_position_pda(market_id, user, program_id)
    whitelist = pda.race_whitelist_pda(race, program_id) if gated else program_id
    addresses = {"config": config, "raceMarket": race, "position": position}
    if gated:
        addresses["whitelist"] = whitelist

    accounts = [readonly(config), writable(race), writable(position)]
    if affiliate_code is None:
        name = "bet_on_race_sol"
    else:
        name = "bet_on_race_sol_with_affiliate"
        affiliate = pda.affiliate_pda(affiliate_code, program_id)
        referral = pda.race_referral_pda(user, program_id)
        accounts += [writable(affiliate), writable(referral)]
        addresses.update(affiliate=affiliate, raceReferral=referral)
    accounts += [readonly(whitelist), writable(user, signer=True), system_program()]
    data = args(name).u8(outcome_index).u64(amount)
    return plan(name, program_id, accounts, data, **addresses)


__all__ = ["bet_on_race_sol", "place_bet_sol", "place_bet_sol_with_affiliate"]
