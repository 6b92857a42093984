"""Bet legality and claim eligibility checks."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from baozi.core.config import BetLimits, TimingRules
from baozi.core.units import lamports_to_sol
from baozi.domain import (
    AccessGate,
    Market,
    MarketLayer,
    MarketStatus,
    Position,
    RaceMarket,
    Side,
    ValidationResult,
)

from .timing import check_betting_window


@dataclass(slots=True)
class BetCheck:
    amount: int
    status: MarketStatus
    closing_time: datetime
    access_gate: AccessGate
    layer: MarketLayer
    now: datetime
    freeze_seconds: int
    user_whitelisted: bool | None = None


def _format_sol(lamports: int) -> str:
    return f"{lamports_to_sol(lamports):g}"


def validate_bet(check: BetCheck, limits: BetLimits, timing: TimingRules) -> ValidationResult:
    """Evaluate every bet rule; ``error`` reports the first failure in rule order."""

    result = ValidationResult(
        details={
            "amountValid": True,
            "marketStateValid": True,
            "timingValid": True,
            "accessValid": True,
        }
    )

    if check.amount < limits.min_bet_lamports:
        result.details["amountValid"] = False
        result.reject(
            "bet_too_small",
            f"Minimum bet is {_format_sol(limits.min_bet_lamports)} SOL",
            required=limits.min_bet_lamports,
            actual=check.amount,
        )
    elif check.amount > limits.max_bet_lamports:
        result.details["amountValid"] = False
        result.reject(
            "bet_too_large",
            f"Maximum bet is {_format_sol(limits.max_bet_lamports)} SOL",
            required=limits.max_bet_lamports,
            actual=check.amount,
        )
    elif check.amount > limits.large_bet_warning_lamports:
        result.warnings.append("Large bet amount. Ensure you understand the odds before placing.")

    match check.status:
        case MarketStatus.ACTIVE:
            pass
        case MarketStatus.PAUSED:
            result.details["marketStateValid"] = False
            result.reject("market_paused", "Market is paused", actual=check.status.label)
        case (
            MarketStatus.CLOSED
            | MarketStatus.RESOLVED
            | MarketStatus.CANCELLED
            | MarketStatus.RESOLVEDPENDING
            | MarketStatus.DISPUTED
        ):
            result.details["marketStateValid"] = False
            result.reject(
                "market_not_active",
                f"Market is {check.status.label}, not accepting bets",
                required=MarketStatus.ACTIVE.label,
                actual=check.status.label,
            )
        case _:
            raise AssertionError(f"unhandled status {check.status!r}")

    window = check_betting_window(check.closing_time, check.now, check.freeze_seconds, timing)
    result.merge(window)

    if check.access_gate.is_gated and check.user_whitelisted is not True:
        result.details["accessValid"] = False
        result.reject(
            "not_whitelisted",
            "You are not whitelisted for this private market",
            required=check.access_gate.label,
        )

    if check.layer is MarketLayer.LAB:
        result.warnings.append("This is a Lab market (community-created). DYOR.")
    return result


def bet_check_for(
    market: Market | RaceMarket,
    amount: int,
    now: datetime,
    *,
    user_whitelisted: bool | None = None,
) -> BetCheck:
    return BetCheck(
        amount=amount,
        status=market.status,
        closing_time=market.closing_time,
        access_gate=market.access_gate,
        layer=market.layer,
        now=now,
        freeze_seconds=market.betting_freeze_seconds_at_creation,
        user_whitelisted=user_whitelisted,
    )


class ClaimType(str, Enum):
    WINNINGS = "winnings"
    REFUND = "refund"
    CANCELLED = "cancelled"

    @property
    def is_refund(self) -> bool:
        return self is not ClaimType.WINNINGS


@dataclass(slots=True)
class ClaimEligibility:
    result: ValidationResult
    claim_type: ClaimType | None = None
    side: Side | None = None

    @property
    def can_claim(self) -> bool:
        return self.result.valid and self.claim_type is not None


def validate_claim(position: Position, market: Market) -> ClaimEligibility:
    result = ValidationResult()
    if position.claimed:
        result.reject("already_claimed", "Position already claimed")
        return ClaimEligibility(result)

    match market.status:
        case MarketStatus.CANCELLED:
            if position.total_amount <= 0:
                result.reject("empty_position", "No position amount to claim")
                return ClaimEligibility(result)
            return ClaimEligibility(result, ClaimType.CANCELLED)
        case MarketStatus.RESOLVED:
            pass
        case (
            MarketStatus.ACTIVE
            | MarketStatus.CLOSED
            | MarketStatus.PAUSED
            | MarketStatus.RESOLVEDPENDING
            | MarketStatus.DISPUTED
        ):
            result.reject(
                "market_not_settled",
                f"Market is {market.status.label}, cannot claim yet",
                actual=market.status.label,
            )
            return ClaimEligibility(result)
        case _:
            raise AssertionError(f"unhandled status {market.status!r}")

    if market.winning_side is None:
        if position.total_amount <= 0:
            result.reject("empty_position", "No position amount to claim")
            return ClaimEligibility(result)
        return ClaimEligibility(result, ClaimType.REFUND)

    side = market.winning_side
    if position.stake_on(side) <= 0:
        if position.total_amount > 0:
            result.reject("losing_side", "Position is on losing side, nothing to claim")
        else:
            result.reject("empty_position", "No position amount to claim")
        return ClaimEligibility(result)
    return ClaimEligibility(result, ClaimType.WINNINGS, side)


__all__ = [
    "BetCheck",
    "ClaimEligibility",
    "ClaimType",
    "bet_check_for",
    "validate_bet",
    "validate_claim",
]
