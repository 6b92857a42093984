"""Typed snapshots of program accounts and request-scoped value objects."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Generic, TypeVar, overload

from baozi.core.units import round_sol

from .enums import (
    AccessGate,
    CurrencyType,
    MarketLayer,
    MarketOutcome,
    MarketStatus,
    ResolutionMode,
    Side,
)

MAX_RACE_OUTCOMES = 10
MIN_RACE_OUTCOMES = 2

_T = TypeVar("_T")


class OutcomeSlots(Sequence[_T], Generic[_T]):
    """Immutable sequence bounded by the on-chain outcome array capacity."""

    __slots__ = ("_items",)

    capacity = MAX_RACE_OUTCOMES

    def __init__(self, items: Iterable[_T] = ()) -> None:
        values = tuple(items)
        if len(values) > self.capacity:
            raise ValueError(
                f"At most {self.capacity} outcomes fit in a race market, got {len(values)}"
            )
        self._items = values

    @overload
    def __getitem__(self, index: int) -> _T: ...

    @overload
    def __getitem__(self, index: slice) -> tuple[_T, ...]: ...

    def __getitem__(self, index):
        return self._items[index]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[_T]:
        return iter(self._items)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, OutcomeSlots):
            return self._items == other._items
        if isinstance(other, (tuple, list)):
            return self._items == tuple(other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"OutcomeSlots({list(self._items)!r})"


@dataclass(slots=True)
class RuleViolation:
    """A single failed rule with the values that triggered it."""

    rule: str
    message: str
    severity: str = "error"
    required: Any = None
    actual: Any = None
    suggestion: str | None = None

    @property
    def is_blocking(self) -> bool:
        return self.severity in {"critical", "error"}

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "rule": self.rule,
            "message": self.message,
            "severity": self.severity,
        }
        if self.required is not None:
            payload["required"] = self.required
        if self.actual is not None:
            payload["actual"] = self.actual
        if self.suggestion:
            payload["suggestion"] = self.suggestion
        return payload


@dataclass(slots=True)
class ValidationResult:
    violations: list[RuleViolation] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)
    details: dict[str, bool] = field(default_factory=dict)

    @property
    def valid(self) -> bool:
        return not any(violation.is_blocking for violation in self.violations)

    @property
    def errors(self) -> list[str]:
        return [v.message for v in self.violations if v.is_blocking]

    @property
    def error(self) -> str | None:
        errors = self.errors
        return errors[0] if errors else None

    def reject(self, rule: str, message: str, **kwargs: Any) -> None:
        self.violations.append(RuleViolation(rule=rule, message=message, **kwargs))

    def merge(self, other: "ValidationResult") -> "ValidationResult":
        self.violations.extend(other.violations)
        self.warnings.extend(other.warnings)
        self.suggestions.extend(other.suggestions)
        self.details.update(other.details)
        return self

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "error": self.error,
            "errors": self.errors,
            "violations": [violation.to_dict() for violation in self.violations],
            "warnings": list(self.warnings),
            "suggestions": list(self.suggestions),
            "details": dict(self.details),
        }


@dataclass(slots=True)
class GlobalConfig:
    address: str
    admin: str
    treasury: str
    guardian: str
    creation_fee_lamports: int
    market_bond_lamports: int
    platform_fee_bps: int
    market_count: int


@dataclass(slots=True)
class Market:
    """Boolean market snapshot decoded from the program account."""

    address: str
    market_id: int
    question: str
    closing_time: datetime
    resolution_time: datetime
    auto_stop_buffer: int
    yes_pool: int
    no_pool: int
    snapshot_yes_pool: int
    snapshot_no_pool: int
    status: MarketStatus
    winning_side: Side | None
    currency: CurrencyType
    layer: MarketLayer
    resolution_mode: ResolutionMode
    access_gate: AccessGate
    creator: str
    platform_fee_bps_at_creation: int
    affiliate_fee_bps_at_creation: int
    betting_freeze_seconds_at_creation: int
    creator_bond: int = 0
    total_claimed: int = 0
    platform_fee_collected: int = 0
    last_bet_time: datetime | None = None
    oracle_host: str | None = None
    council: list[str] = field(default_factory=list)
    council_votes_yes: int = 0
    council_votes_no: int = 0
    council_threshold: int = 0
    total_affiliate_fees: int = 0
    invite_hash: bytes | None = None
    creator_fee_bps: int = 0
    total_creator_fees: int = 0
    creator_profile: str | None = None
    has_bets: bool = False

    @property
    def total_pool(self) -> int:
        return self.yes_pool + self.no_pool

    @property
    def outcome(self) -> MarketOutcome:
        if self.winning_side is not None:
            return self.winning_side.winning_outcome
        if self.status is MarketStatus.RESOLVED:
            return MarketOutcome.INVALID
        return MarketOutcome.UNDECIDED

    @property
    def yes_percent(self) -> float:
        if self.total_pool == 0:
            return 50.0
        return round(self.yes_pool * 100 / self.total_pool, 2)

    @property
    def no_percent(self) -> float:
        if self.total_pool == 0:
            return 50.0
        return round(self.no_pool * 100 / self.total_pool, 2)

    @property
    def snapshot_taken(self) -> bool:
        return self.snapshot_yes_pool + self.snapshot_no_pool > 0

    def settlement_pools(self) -> tuple[int, int]:
        """Return the pools payouts are computed from once betting has ended."""

        if self.status is not MarketStatus.ACTIVE and self.snapshot_taken:
            return self.snapshot_yes_pool, self.snapshot_no_pool
        return self.yes_pool, self.no_pool

    def freeze_starts_at(self) -> datetime:
        return self.closing_time - timedelta(seconds=self.betting_freeze_seconds_at_creation)

    def is_betting_open(self, now: datetime) -> bool:
        return self.status is MarketStatus.ACTIVE and now < self.freeze_starts_at()

    def summary(self, now: datetime) -> dict[str, Any]:
        return {
            "publicKey": self.address,
            "marketId": str(self.market_id),
            "question": self.question,
            "status": self.status.label,
            "layer": self.layer.label,
            "winningOutcome": self.winning_side.value if self.winning_side else None,
            "yesPercent": self.yes_percent,
            "noPercent": self.no_percent,
            "totalPoolSol": round_sol(self.total_pool),
            "closingTime": self.closing_time.isoformat(),
            "isBettingOpen": self.is_betting_open(now),
        }

    def to_dict(self, now: datetime) -> dict[str, Any]:
        payload = self.summary(now)
        payload.update(
            {
                "resolutionTime": self.resolution_time.isoformat(),
                "yesPoolSol": round_sol(self.yes_pool),
                "noPoolSol": round_sol(self.no_pool),
                "yesPoolLamports": self.yes_pool,
                "noPoolLamports": self.no_pool,
                "snapshotYesPoolLamports": self.snapshot_yes_pool,
                "snapshotNoPoolLamports": self.snapshot_no_pool,
                "outcome": self.outcome.label,
                "accessGate": self.access_gate.label,
                "resolutionMode": self.resolution_mode.label,
                "creator": self.creator,
                "creatorProfile": self.creator_profile,
                "platformFeeBps": self.platform_fee_bps_at_creation,
                "affiliateFeeBps": self.affiliate_fee_bps_at_creation,
                "creatorFeeBps": self.creator_fee_bps,
                "bettingFreezeSeconds": self.betting_freeze_seconds_at_creation,
                "council": list(self.council),
                "councilVotesYes": self.council_votes_yes,
                "councilVotesNo": self.council_votes_no,
                "councilThreshold": self.council_threshold,
                "hasBets": self.has_bets,
            }
        )
        return payload


@dataclass(slots=True)
class RaceOutcome:
    index: int
    label: str
    pool: int


@dataclass(slots=True)
class RaceMarket:
    """Multi-outcome market whose outcome array is fixed at creation."""

    address: str
    market_id: int
    question: str
    closing_time: datetime
    resolution_time: datetime
    auto_stop_buffer: int
    outcomes: OutcomeSlots[RaceOutcome]
    total_pool: int
    snapshot_pools: OutcomeSlots[int]
    snapshot_total: int
    status: MarketStatus
    winning_outcome_index: int | None
    currency: CurrencyType
    layer: MarketLayer
    resolution_mode: ResolutionMode
    access_gate: AccessGate
    creator: str
    platform_fee_bps_at_creation: int
    affiliate_fee_bps_at_creation: int = 0
    betting_freeze_seconds_at_creation: int = 300
    oracle_host: str | None = None
    council: list[str] = field(default_factory=list)
    council_votes: tuple[int, ...] = ()
    council_threshold: int = 0
    creator_fee_bps: int = 0
    creator_profile: str | None = None

    def __post_init__(self) -> None:
        if len(self.outcomes) < MIN_RACE_OUTCOMES:
            raise ValueError("A race market needs at least two outcomes")
        pooled = sum(outcome.pool for outcome in self.outcomes)
        if pooled != self.total_pool:
            raise ValueError(
                f"Outcome pools sum to {pooled} but total pool is {self.total_pool}"
            )

    def outcome_percent(self, index: int) -> float:
        if self.total_pool == 0:
            return round(100 / len(self.outcomes), 2)
        return round(self.outcomes[index].pool * 100 / self.total_pool, 2)

    def freeze_starts_at(self) -> datetime:
        return self.closing_time - timedelta(seconds=self.betting_freeze_seconds_at_creation)

    def is_betting_open(self, now: datetime) -> bool:
        return self.status is MarketStatus.ACTIVE and now < self.freeze_starts_at()

    def to_dict(self, now: datetime) -> dict[str, Any]:
        return {
            "publicKey": self.address,
            "marketId": str(self.market_id),
            "question": self.question,
            "outcomes": [
                {
                    "index": outcome.index,
                    "label": outcome.label,
                    "poolSol": round_sol(outcome.pool),
                    "percent": self.outcome_percent(outcome.index),
                }
                for outcome in self.outcomes
            ],
            "closingTime": self.closing_time.isoformat(),
            "resolutionTime": self.resolution_time.isoformat(),
            "status": self.status.label,
            "winningOutcomeIndex": self.winning_outcome_index,
            "totalPoolSol": round_sol(self.total_pool),
            "layer": self.layer.label,
            "accessGate": self.access_gate.label,
            "creator": self.creator,
            "platformFeeBps": self.platform_fee_bps_at_creation,
            "isBettingOpen": self.is_betting_open(now),
        }


@dataclass(slots=True)
class Position:
    address: str
    user: str
    market_id: int
    yes_amount: int
    no_amount: int
    claimed: bool
    referred_by: str | None = None
    affiliate_fee_paid: int = 0

    @property
    def total_amount(self) -> int:
        return self.yes_amount + self.no_amount

    @property
    def side(self) -> str:
        if self.yes_amount > 0 and self.no_amount > 0:
            return "Both"
        return Side.YES.value if self.yes_amount >= self.no_amount else Side.NO.value

    def stake_on(self, side: Side) -> int:
        return self.yes_amount if side is Side.YES else self.no_amount

    def to_dict(self) -> dict[str, Any]:
        return {
            "publicKey": self.address,
            "user": self.user,
            "marketId": str(self.market_id),
            "yesAmountSol": round_sol(self.yes_amount),
            "noAmountSol": round_sol(self.no_amount),
            "totalAmountSol": round_sol(self.total_amount),
            "side": self.side,
            "claimed": self.claimed,
            "referredBy": self.referred_by,
            "affiliateFeePaidSol": round_sol(self.affiliate_fee_paid),
        }


@dataclass(slots=True)
class Affiliate:
    address: str
    owner: str
    code: str
    total_earned: int
    total_claimed: int
    referral_count: int
    is_active: bool

    @property
    def unclaimed(self) -> int:
        return max(self.total_earned - self.total_claimed, 0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "affiliatePda": self.address,
            "ownerWallet": self.owner,
            "affiliateCode": self.code,
            "isActive": self.is_active,
            "totalEarnedSol": round_sol(self.total_earned),
            "totalClaimedSol": round_sol(self.total_claimed),
            "unclaimedSol": round_sol(self.unclaimed),
            "totalReferrals": self.referral_count,
        }


@dataclass(slots=True)
class ReferredUser:
    address: str
    user: str
    affiliate: str
    total_bets: int
    total_commission: int
    first_bet_at: datetime
    last_bet_at: datetime


@dataclass(slots=True)
class DisputeMeta:
    address: str
    market: str
    disputer: str
    reason: str
    proposed_outcome: bool | None
    created_at: datetime
    deadline: datetime
    resolved: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "publicKey": self.address,
            "marketPda": self.market,
            "disputer": self.disputer,
            "reason": self.reason,
            "proposedOutcome": self.proposed_outcome,
            "createdAt": self.created_at.isoformat(),
            "deadline": self.deadline.isoformat(),
            "resolved": self.resolved,
        }


@dataclass(slots=True)
class Quote:
    """Pari-mutuel payout preview in lamports; never persisted."""

    defined: bool
    bet: int
    winning_pool: int
    total_pool: int
    fee_bps: int
    gross_payout: int = 0
    profit: int = 0
    fee: int = 0
    net_payout: int = 0
    label: str | None = None

    @property
    def implied_odds(self) -> float | None:
        if self.total_pool == 0:
            return None
        return round(self.winning_pool * 100 / self.total_pool, 2)

    @property
    def decimal_odds(self) -> float | None:
        if self.winning_pool == 0:
            return None
        return round(self.total_pool / self.winning_pool, 2)

    def to_dict(self) -> dict[str, Any]:
        return {
            "defined": self.defined,
            "label": self.label,
            "betAmountLamports": self.bet,
            "betAmountSol": round_sol(self.bet),
            "grossPayoutLamports": self.gross_payout,
            "profitLamports": self.profit,
            "feeLamports": self.fee,
            "netPayoutLamports": self.net_payout,
            "expectedPayoutSol": round_sol(self.net_payout),
            "potentialProfitSol": round_sol(self.net_payout - self.bet) if self.defined else 0.0,
            "feeSol": round_sol(self.fee),
            "feeBps": self.fee_bps,
            "impliedOdds": self.implied_odds,
            "decimalOdds": self.decimal_odds,
        }


__all__ = [
    "Affiliate",
    "DisputeMeta",
    "GlobalConfig",
    "MAX_RACE_OUTCOMES",
    "MIN_RACE_OUTCOMES",
    "Market",
    "OutcomeSlots",
    "Position",
    "Quote",
    "RaceMarket",
    "RaceOutcome",
    "ReferredUser",
    "RuleViolation",
    "ValidationResult",
]
