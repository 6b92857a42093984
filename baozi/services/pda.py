"""Deterministic program-derived address templates.

Every helper takes the program id explicitly; deriving against a different
deployment yields a different address for the same key fields.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable

from solders.pubkey import Pubkey

from baozi.core.units import check_u64


class PdaKind(str, Enum):
    CONFIG = "config"
    SOL_TREASURY = "sol_treasury"
    REVENUE_CONFIG = "revenue_config"
    MARKET = "market"
    POSITION = "position"
    RACE = "race"
    RACE_POSITION = "race_position"
    WHITELIST = "whitelist"
    RACE_WHITELIST = "race_whitelist"
    AFFILIATE = "affiliate"
    REFERRED_USER = "referred"
    RACE_REFERRAL = "race_referral"
    CREATOR_PROFILE = "creator_profile"
    DISPUTE_META = "dispute_meta"
    COUNCIL_VOTE = "council_vote"
    RACE_COUNCIL_VOTE = "race_council_vote"


def _u64(value: int) -> bytes:
    return check_u64(int(value), "market id").to_bytes(8, "little")


def _key(value: Pubkey | str) -> bytes:
    if isinstance(value, str):
        value = Pubkey.from_string(value)
    return bytes(value)


def _code(value: str) -> bytes:
    return value.encode("utf-8")


# Encoders for the key fields each kind appends after its literal tag.
_TEMPLATES: dict[PdaKind, tuple[Callable[[object], bytes], ...]] = {
    PdaKind.CONFIG: (),
    PdaKind.SOL_TREASURY: (),
    PdaKind.REVENUE_CONFIG: (),
    PdaKind.MARKET: (_u64,),
    PdaKind.POSITION: (_u64, _key),
    PdaKind.RACE: (_u64,),
    PdaKind.RACE_POSITION: (_u64, _key),
    PdaKind.WHITELIST: (_u64,),
    PdaKind.RACE_WHITELIST: (_key,),
    PdaKind.AFFILIATE: (_code,),
    PdaKind.REFERRED_USER: (_key,),
    PdaKind.RACE_REFERRAL: (_key,),
    PdaKind.CREATOR_PROFILE: (_key,),
    PdaKind.DISPUTE_META: (_key,),
    PdaKind.COUNCIL_VOTE: (_key, _key),
    PdaKind.RACE_COUNCIL_VOTE: (_key, _key),
}


def seeds_for(kind: PdaKind, *key_fields: object) -> list[bytes]:
    encoders = _TEMPLATES[kind]
    if len(key_fields) != len(encoders):
        raise TypeError(
            f"{kind.value} addresses take {len(encoders)} key field(s), got {len(key_fields)}"
        )
    return [kind.value.encode("ascii")] + [
        encode(field) for encode, field in zip(encoders, key_fields)
    ]


def derive(kind: PdaKind, *key_fields: object, program_id: Pubkey) -> tuple[Pubkey, int]:
    """Return ``(address, bump)`` for ``kind`` seeded by ``key_fields``."""

    return Pubkey.find_program_address(seeds_for(kind, *key_fields), program_id)


def _address(kind: PdaKind, *key_fields: object, program_id: Pubkey) -> Pubkey:
    address, _ = derive(kind, *key_fields, program_id=program_id)
    return address


def config_pda(program_id: Pubkey) -> Pubkey:
    return _address(PdaKind.CONFIG, program_id=program_id)


def sol_treasury_pda(program_id: Pubkey) -> Pubkey:
    return _address(PdaKind.SOL_TREASURY, program_id=program_id)


def market_pda(market_id: int, program_id: Pubkey) -> Pubkey:
    return _address(PdaKind.MARKET, market_id, program_id=program_id)


def position_pda(market_id: int, user: Pubkey | str, program_id: Pubkey) -> Pubkey:
    return _address(PdaKind.POSITION, market_id, user, program_id=program_id)


def race_pda(market_id: int, program_id: Pubkey) -> Pubkey:
    return _address(PdaKind.RACE, market_id, program_id=program_id)


def race_position_pda(market_id: int, user: Pubkey | str, program_id: Pubkey) -> Pubkey:
    return _address(PdaKind.RACE_POSITION, market_id, user, program_id=program_id)


def whitelist_pda(market_id: int, program_id: Pubkey) -> Pubkey:
    return _address(PdaKind.WHITELIST, market_id, program_id=program_id)


def race_whitelist_pda(race: Pubkey | str, program_id: Pubkey) -> Pubkey:
    return _address(PdaKind.RACE_WHITELIST, race, program_id=program_id)


def affiliate_pda(code: str, program_id: Pubkey) -> Pubkey:
    return _address(PdaKind.AFFILIATE, code, program_id=program_id)


def referred_user_pda(user: Pubkey | str, program_id: Pubkey) -> Pubkey:
    return _address(PdaKind.REFERRED_USER, user, program_id=program_id)


def race_referral_pda(user: Pubkey | str, program_id: Pubkey) -> Pubkey:
    return _address(PdaKind.RACE_REFERRAL, user, program_id=program_id)


def creator_profile_pda(owner: Pubkey | str, program_id: Pubkey) -> Pubkey:
    return _address(PdaKind.CREATOR_PROFILE, owner, program_id=program_id)


def dispute_meta_pda(market: Pubkey | str, program_id: Pubkey) -> Pubkey:
    return _address(PdaKind.DISPUTE_META, market, program_id=program_id)


def council_vote_pda(market: Pubkey | str, voter: Pubkey | str, program_id: Pubkey) -> Pubkey:
    return _address(PdaKind.COUNCIL_VOTE, market, voter, program_id=program_id)


def race_council_vote_pda(
    race: Pubkey | str, voter: Pubkey | str, program_id: Pubkey
) -> Pubkey:
    return _address(PdaKind.RACE_COUNCIL_VOTE, race, voter, program_id=program_id)


__all__ = [
    "PdaKind",
    "affiliate_pda",
    "config_pda",
    "council_vote_pda",
    "creator_profile_pda",
    "derive",
    "dispute_meta_pda",
    "market_pda",
    "position_pda",
    "race_council_vote_pda",
    "race_pda",
    "race_position_pda",
    "race_referral_pda",
    "race_whitelist_pda",
    "referred_user_pda",
    "seeds_for",
    "sol_treasury_pda",
    "whitelist_pda",
]
