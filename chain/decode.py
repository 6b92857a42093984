from __future__ import annotations

import struct
from datetime import datetime, timezone

from solders.pubkey import Pubkey

from baozi.core.errors import DecodeError
from baozi.domain import (
    AccessGate,
    Affiliate,
    CurrencyType,
    DisputeMeta,
    GlobalConfig,
    Market,
    MarketLayer,
    MarketStatus,
    OutcomeSlots,
    Position,
    RaceMarket,
    RaceOutcome,
    ReferredUser,
    ResolutionMode,
    Side,
)
from baozi.domain.models import MAX_RACE_OUTCOMES

ACCOUNT_DISCRIMINATORS: dict[str, bytes] = {
    "market": bytes([219, 190, 213, 55, 0, 227, 198, 154]),
    "user_position": bytes([251, 248, 209, 245, 83, 234, 17, 27]),
    "race_market": bytes([149, 8, 156, 202, 160, 252, 176, 217]),
    "race_position": bytes([44, 182, 16, 1, 230, 14, 174, 46]),
    "creator_profile": bytes([83, 210, 28, 6, 46, 183, 224, 219]),
    "affiliate": bytes([24, 240, 16, 245, 33, 46, 77, 168]),
    "referred_user": bytes([188, 210, 247, 185, 105, 204, 220, 46]),
    "dispute_meta": bytes([62, 14, 221, 64, 175, 241, 48, 165]),
}

# Positions and affiliates both store their owner right after the discriminator.
OWNER_OFFSET = 8
REFERRED_USER_AFFILIATE_OFFSET = 8 + 32

MIN_RACE_MARKET_SIZE = 500
MAX_RACE_QUESTION_BYTES = 500
COUNCIL_SLOTS = 5
RACE_LABEL_BYTES = 32


def _timestamp(seconds: int) -> datetime:
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


class AccountReader:
    """Sequential little-endian Borsh reader over raw account bytes."""

    def __init__(self, data: bytes, offset: int = 0) -> None:
        self.data = bytes(data)
        self.offset = offset

    def _take(self, size: int) -> bytes:
        end = self.offset + size
        if end > len(self.data):
            raise DecodeError(
                f"Account data truncated: need {end} bytes, have {len(self.data)}"
            )
        chunk = self.data[self.offset : end]
        self.offset = end
        return chunk

    def skip(self, size: int) -> None:
        self._take(size)

    def fixed(self, size: int) -> bytes:
        return self._take(size)

    @property
    def remaining(self) -> int:
        return len(self.data) - self.offset

    def u8(self) -> int:
        return self._take(1)[0]

    def u16(self) -> int:
        return struct.unpack("<H", self._take(2))[0]

    def u32(self) -> int:
        return struct.unpack("<I", self._take(4))[0]

    def u64(self) -> int:
        return struct.unpack("<Q", self._take(8))[0]

    def i64(self) -> int:
        return struct.unpack("<q", self._take(8))[0]

    def bool(self) -> bool:
        return self.u8() == 1

    def pubkey(self) -> str:
        return str(Pubkey.from_bytes(self._take(32)))

    def string(self, max_bytes: int | None = None) -> str:
        length = self.u32()
        if max_bytes is not None and length > max_bytes:
            raise DecodeError(f"String length {length} exceeds {max_bytes} bytes")
        try:
            return self._take(length).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError("String field is not valid UTF-8") from exc

    def option_tag(self) -> bool:
        tag = self.u8()
        if tag not in (0, 1):
            raise DecodeError(f"Invalid Option tag {tag}")
        return tag == 1

    def option_pubkey(self) -> str | None:
        return self.pubkey() if self.option_tag() else None

    def option_bool(self) -> bool | None:
        return self.bool() if self.option_tag() else None

    def option_u8(self) -> int | None:
        return self.u8() if self.option_tag() else None

    def option_bytes(self, size: int) -> bytes | None:
        return self._take(size) if self.option_tag() else None

    def expect_discriminator(self, kind: str) -> None:
        expected = ACCOUNT_DISCRIMINATORS[kind]
        actual = self._take(8)
        if actual != expected:
            raise DecodeError(f"Account is not a {kind} (discriminator mismatch)")


def decode_global_config(data: bytes, address: str) -> GlobalConfig:
    reader = AccountReader(data, offset=8)
    admin = reader.pubkey()
    treasury = reader.pubkey()
    guardian = reader.pubkey()
    reader.skip(32)  # reserved usdc mint
    reader.skip(8)
    creation_fee = reader.u64()
    reader.skip(8)
    market_bond = reader.u64()
    platform_fee_bps = reader.u16()
    market_count = reader.u64()
    return GlobalConfig(
        address=address,
        admin=admin,
        treasury=treasury,
        guardian=guardian,
        creation_fee_lamports=creation_fee,
        market_bond_lamports=market_bond,
        platform_fee_bps=platform_fee_bps,
        market_count=market_count,
    )


def decode_market(data: bytes, address: str) -> Market:
    reader = AccountReader(data)
    reader.expect_discriminator("market")
    market_id = reader.u64()
    question = reader.string()
    closing_time = reader.i64()
    resolution_time = reader.i64()
    auto_stop_buffer = reader.i64()
    yes_pool = reader.u64()
    no_pool = reader.u64()
    snapshot_yes = reader.u64()
    snapshot_no = reader.u64()
    status = MarketStatus.from_code(reader.u8())
    winning = reader.option_bool()
    currency = CurrencyType.from_code(reader.u8())
    reader.skip(33)  # reserved usdc vault
    creator_bond = reader.u64()
    total_claimed = reader.u64()
    platform_fee_collected = reader.u64()
    last_bet_time = reader.i64()
    reader.skip(1)  # bump
    layer = MarketLayer.from_code(reader.u8())
    resolution_mode = ResolutionMode.from_code(reader.u8())
    access_gate = AccessGate.from_code(reader.u8())
    creator = reader.pubkey()
    oracle_host = reader.option_pubkey()
    council_slots = [reader.pubkey() for _ in range(COUNCIL_SLOTS)]
    council_size = reader.u8()
    votes_yes = reader.u8()
    votes_no = reader.u8()
    threshold = reader.u8()
    total_affiliate_fees = reader.u64()
    invite_hash = reader.option_bytes(32)
    creator_fee_bps = reader.u16()
    total_creator_fees = reader.u64()
    creator_profile = reader.option_pubkey()
    platform_fee_bps = reader.u16()
    affiliate_fee_bps = reader.u16()
    freeze_seconds = reader.i64()
    has_bets = reader.bool()

    return Market(
        address=address,
        market_id=market_id,
        question=question,
        closing_time=_timestamp(closing_time),
        resolution_time=_timestamp(resolution_time),
        auto_stop_buffer=auto_stop_buffer,
        yes_pool=yes_pool,
        no_pool=no_pool,
        snapshot_yes_pool=snapshot_yes,
        snapshot_no_pool=snapshot_no,
        status=status,
        winning_side=None if winning is None else Side.parse(winning),
        currency=currency,
        layer=layer,
        resolution_mode=resolution_mode,
        access_gate=access_gate,
        creator=creator,
        platform_fee_bps_at_creation=platform_fee_bps,
        affiliate_fee_bps_at_creation=affiliate_fee_bps,
        betting_freeze_seconds_at_creation=freeze_seconds,
        creator_bond=creator_bond,
        total_claimed=total_claimed,
        platform_fee_collected=platform_fee_collected,
        last_bet_time=_timestamp(last_bet_time) if last_bet_time else None,
        oracle_host=oracle_host,
        council=council_slots[: min(council_size, COUNCIL_SLOTS)],
        council_votes_yes=votes_yes,
        council_votes_no=votes_no,
        council_threshold=threshold,
        total_affiliate_fees=total_affiliate_fees,
        invite_hash=invite_hash,
        creator_fee_bps=creator_fee_bps,
        total_creator_fees=total_creator_fees,
        creator_profile=creator_profile,
        has_bets=has_bets,
    )


def _label(raw: bytes) -> str:
    return raw.split(b"\x00", 1)[0].decode("utf-8", errors="replace")


def decode_race_market(data: bytes, address: str) -> RaceMarket:
    if len(data) < MIN_RACE_MARKET_SIZE:
        raise DecodeError(f"Race market account too small ({len(data)} bytes)")
    reader = AccountReader(data)
    reader.expect_discriminator("race_market")
    market_id = reader.u64()
    question = reader.string(max_bytes=MAX_RACE_QUESTION_BYTES)
    closing_time = reader.i64()
    resolution_time = reader.i64()
    auto_stop_buffer = reader.i64()
    outcome_count = reader.u8()
    if not 2 <= outcome_count <= MAX_RACE_OUTCOMES:
        raise DecodeError(f"Race market has invalid outcome count {outcome_count}")
    labels = [_label(reader.fixed(RACE_LABEL_BYTES)) for _ in range(MAX_RACE_OUTCOMES)]
    pools = [reader.u64() for _ in range(MAX_RACE_OUTCOMES)]
    total_pool = reader.u64()
    snapshot_pools = [reader.u64() for _ in range(MAX_RACE_OUTCOMES)]
    snapshot_total = reader.u64()
    status = MarketStatus.from_code(reader.u8())
    winning_index = reader.option_u8()
    currency = CurrencyType.from_code(reader.u8())
    reader.skip(8 * 4)  # platform/creator fees collected, total claimed, last bet
    reader.skip(1)  # bump
    layer = MarketLayer.from_code(reader.u8())
    resolution_mode = ResolutionMode.from_code(reader.u8())
    access_gate = AccessGate.from_code(reader.u8())
    creator = reader.pubkey()
    oracle_host = reader.option_pubkey()
    council_slots = [reader.pubkey() for _ in range(COUNCIL_SLOTS)]
    council_size = reader.u8()
    council_votes = tuple(reader.u8() for _ in range(MAX_RACE_OUTCOMES))
    threshold = reader.u8()
    creator_fee_bps = reader.u16()
    creator_profile = reader.option_pubkey()
    platform_fee_bps = reader.u16()
    affiliate_fee_bps = reader.u16() if reader.remaining >= 2 else 0
    freeze_seconds = reader.i64() if reader.remaining >= 8 else 300

    outcomes = OutcomeSlots(
        RaceOutcome(index=index, label=labels[index], pool=pools[index])
        for index in range(outcome_count)
    )
    try:
        return RaceMarket(
            address=address,
            market_id=market_id,
            question=question,
            closing_time=_timestamp(closing_time),
            resolution_time=_timestamp(resolution_time),
            auto_stop_buffer=auto_stop_buffer,
            outcomes=outcomes,
            total_pool=total_pool,
            snapshot_pools=OutcomeSlots(snapshot_pools[:outcome_count]),
            snapshot_total=snapshot_total,
            status=status,
            winning_outcome_index=winning_index,
            currency=currency,
            layer=layer,
            resolution_mode=resolution_mode,
            access_gate=access_gate,
            creator=creator,
            platform_fee_bps_at_creation=platform_fee_bps,
            affiliate_fee_bps_at_creation=affiliate_fee_bps,
            betting_freeze_seconds_at_creation=freeze_seconds,
            oracle_host=oracle_host,
            council=council_slots[: min(council_size, COUNCIL_SLOTS)],
            council_votes=council_votes[:outcome_count],
            council_threshold=threshold,
            creator_fee_bps=creator_fee_bps,
            creator_profile=creator_profile,
        )
    except ValueError as exc:
        raise DecodeError(str(exc)) from exc


def decode_position(data: bytes, address: str) -> Position:
    reader = AccountReader(data)
    reader.expect_discriminator("user_position")
    user = reader.pubkey()
    market_id = reader.u64()
    yes_amount = reader.u64()
    no_amount = reader.u64()
    claimed = reader.bool()
    reader.skip(1)  # bump
    referred_by = reader.option_pubkey()
    affiliate_fee_paid = reader.u64()
    return Position(
        address=address,
        user=user,
        market_id=market_id,
        yes_amount=yes_amount,
        no_amount=no_amount,
        claimed=claimed,
        referred_by=referred_by,
        affiliate_fee_paid=affiliate_fee_paid,
    )


def decode_affiliate(data: bytes, address: str) -> Affiliate:
    reader = AccountReader(data)
    reader.expect_discriminator("affiliate")
    owner = reader.pubkey()
    code = reader.string(max_bytes=32)
    total_earned = reader.u64()
    total_claimed = reader.u64()
    referral_count = reader.u64()
    is_active = reader.bool()
    return Affiliate(
        address=address,
        owner=owner,
        code=code,
        total_earned=total_earned,
        total_claimed=total_claimed,
        referral_count=referral_count,
        is_active=is_active,
    )


def decode_referred_user(data: bytes, address: str) -> ReferredUser:
    reader = AccountReader(data)
    reader.expect_discriminator("referred_user")
    return ReferredUser(
        address=address,
        user=reader.pubkey(),
        affiliate=reader.pubkey(),
        total_bets=reader.u64(),
        total_commission=reader.u64(),
        first_bet_at=_timestamp(reader.i64()),
        last_bet_at=_timestamp(reader.i64()),
    )


def decode_dispute_meta(data: bytes, address: str) -> DisputeMeta:
    reader = AccountReader(data)
    reader.expect_discriminator("dispute_meta")
    return DisputeMeta(
        address=address,
        market=reader.pubkey(),
        disputer=reader.pubkey(),
        reason=reader.string(),
        proposed_outcome=reader.option_bool(),
        created_at=_timestamp(reader.i64()),
        deadline=_timestamp(reader.i64()),
        resolved=reader.bool(),
    )


__all__ = [
    "ACCOUNT_DISCRIMINATORS",
    "AccountReader",
    "OWNER_OFFSET",
    "REFERRED_USER_AFFILIATE_OFFSET",
    "decode_affiliate",
    "decode_dispute_meta",
    "decode_global_config",
    "decode_market",
    "decode_position",
    "decode_race_market",
    "decode_referred_user",
]
