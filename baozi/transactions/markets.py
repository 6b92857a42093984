"""Market creation instructions for lab, private and race markets."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from solders.pubkey import Pubkey

from baozi.domain import AccessGate, MarketLayer, ResolutionMode
from baozi.services import pda

from .instructions import InstructionPlan, args, plan, readonly, system_program, writable

DEFAULT_RESOLUTION_BUFFER_SECONDS = 43_200
DEFAULT_AUTO_STOP_BUFFER_SECONDS = 300


@dataclass(slots=True)
class CreationArgs:
    market_id: int
    question: str
    closing_ts: int
    creator: Pubkey
    treasury: Pubkey
    has_creator_profile: bool = False
    resolution_buffer: int = DEFAULT_RESOLUTION_BUFFER_SECONDS
    auto_stop_buffer: int = DEFAULT_AUTO_STOP_BUFFER_SECONDS
    resolution_mode: ResolutionMode | None = None
    council: Sequence[Pubkey] | None = None
    council_threshold: int | None = None
    outcome_labels: list[str] = field(default_factory=list)
    layer: MarketLayer = MarketLayer.LAB
    access_gate: AccessGate = AccessGate.PUBLIC


def _profile_meta(creation: CreationArgs, program_id: Pubkey):
    if creation.has_creator_profile:
        profile = pda.creator_profile_pda(creation.creator, program_id)
        return writable(profile), profile
    return readonly(program_id), None


def _binary_market_data(
    name: str, creation: CreationArgs, default_mode: ResolutionMode, default_council: list[Pubkey]
):
    mode = creation.resolution_mode if creation.resolution_mode is not None else default_mode
    council = list(creation.council) if creation.council is not None else default_council
    threshold = creation.council_threshold
    if threshold is None:
        threshold = 1 if council else 0
    return (
        args(name)
        .string(creation.question)
        .i64(creation.closing_ts)
        .i64(creation.resolution_buffer)
        .i64(creation.auto_stop_buffer)
        .u8(int(mode))
        .vec_pubkey(council)
        .u8(threshold)
    )


def create_lab_market_sol(creation: CreationArgs, *, program_id: Pubkey) -> InstructionPlan:
    """Lab markets default to council resolution with the creator as sole member."""

    config = pda.config_pda(program_id)
    market = pda.market_pda(creation.market_id, program_id)
    default_mode = ResolutionMode.COUNCILORACLE
    mode = creation.resolution_mode if creation.resolution_mode is not None else default_mode
    default_council = [creation.creator] if mode is ResolutionMode.COUNCILORACLE else []
    data = _binary_market_data("create_lab_market_sol", creation, default_mode, default_council)
    profile_meta, profile = _profile_meta(creation, program_id)
    accounts = [
        writable(config),
        writable(market),
        writable(creation.treasury),
        writable(creation.creator, signer=True),
        profile_meta,
        system_program(),
    ]
    addresses = {"config": config, "market": market, "treasury": creation.treasury}
    if profile is not None:
        addresses["creatorProfile"] = profile
    return plan("create_lab_market_sol", program_id, accounts, data, **addresses)


def create_private_table_sol(creation: CreationArgs, *, program_id: Pubkey) -> InstructionPlan:
    config = pda.config_pda(program_id)
    market = pda.market_pda(creation.market_id, program_id)
    whitelist = pda.whitelist_pda(creation.market_id, program_id)
    data = _binary_market_data(
        "create_private_table_sol", creation, ResolutionMode.HOSTORACLE, []
    )
    profile_meta, profile = _profile_meta(creation, program_id)
    accounts = [
        writable(config),
        writable(market),
        writable(whitelist),
        writable(creation.treasury),
        writable(creation.creator, signer=True),
        profile_meta,
        system_program(),
    ]
    addresses = {
        "config": config,
        "market": market,
        "whitelist": whitelist,
        "treasury": creation.treasury,
    }
    if profile is not None:
        addresses["creatorProfile"] = profile
    return plan("create_private_table_sol", program_id, accounts, data, **addresses)


def create_race_market_sol(creation: CreationArgs, *, program_id: Pubkey) -> InstructionPlan:
    config = pda.config_pda(program_id)
    race = pda.race_pda(creation.market_id, program_id)
    mode = (
        creation.resolution_mode
        if creation.resolution_mode is not None
        else ResolutionMode.COUNCILORACLE
    )
    council = list(creation.council) if creation.council else None
    data = (
        args("create_race_market_sol")
        .string(creation.question)
        .vec_string(creation.outcome_labels)
        .i64(creation.closing_ts)
        .i64(creation.resolution_buffer)
        .i64(creation.auto_stop_buffer)
        .u8(int(creation.layer))
        .u8(int(mode))
        .u8(int(creation.access_gate))
        .option_vec_pubkey(council)
        .option_u8(creation.council_threshold)
    )
    profile_meta, profile = _profile_meta(creation, program_id)
    accounts = [
        writable(config),
        writable(race),
        profile_meta,
        writable(creation.treasury),
        writable(creation.creator, signer=True),
        system_program(),
    ]
    addresses = {"config": config, "raceMarket": race, "treasury": creation.treasury}
    if profile is not None:
        addresses["creatorProfile"] = profile
    return plan("create_race_market_sol", program_id, accounts, data, **addresses)


__all__ = [
    "CreationArgs",
    "DEFAULT_AUTO_STOP_BUFFER_SECONDS",
    "DEFAULT_RESOLUTION_BUFFER_SECONDS",
    "create_lab_market_sol",
    "create_private_table_sol",
    "create_race_market_sol",
]
