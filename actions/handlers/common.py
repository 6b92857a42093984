"""Shared parameter types and guards for action handlers."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any

from pydantic import BeforeValidator
from solders.pubkey import Pubkey

from baozi.core.errors import RuleViolationError
from baozi.domain import (
    MarketLayer,
    MarketStatus,
    MarketType,
    RuleViolation,
    Side,
    ValidationResult,
)


def _side(value: Any) -> Any:
    if isinstance(value, (str, bool)):
        return Side.parse(value)
    return value


SideParam = Annotated[Side, BeforeValidator(_side)]


def _named(enum_cls):
    def parse(value: Any) -> Any:
        return enum_cls.from_name(value) if isinstance(value, str) else value

    return BeforeValidator(parse)


LayerParam = Annotated[MarketLayer, _named(MarketLayer)]
MarketTypeParam = Annotated[MarketType, _named(MarketType)]


def key(address: str) -> Pubkey:
    return Pubkey.from_string(address)


def unix(value: datetime) -> int:
    return int(value.timestamp())


def require_valid(result: ValidationResult) -> None:
    """Raise ``RuleViolationError`` carrying the blocking violations of ``result``."""

    blocking = [violation for violation in result.violations if violation.is_blocking]
    if blocking:
        raise RuleViolationError.from_violations(blocking)


def reject(rule: str, message: str, **kwargs: Any) -> RuleViolationError:
    return RuleViolationError(message, [RuleViolation(rule=rule, message=message, **kwargs)])


def require_outcome_index(index: int, outcome_count: int) -> None:
    if not 0 <= index < outcome_count:
        raise reject(
            "outcome_index",
            f"Invalid outcome index. Must be 0-{outcome_count - 1}",
            required=f"0-{outcome_count - 1}",
            actual=index,
        )


def require_unsettled(status: MarketStatus) -> None:
    match status:
        case MarketStatus.RESOLVED | MarketStatus.CANCELLED:
            raise reject(
                "market_settled",
                f"Market is already {status.label}",
                actual=status.label,
            )
        case (
            MarketStatus.ACTIVE
            | MarketStatus.CLOSED
            | MarketStatus.PAUSED
            | MarketStatus.RESOLVEDPENDING
            | MarketStatus.DISPUTED
        ):
            return
    raise AssertionError(f"unhandled status {status!r}")


def require_creator(creator: str, wallet: str) -> None:
    if creator != wallet:
        raise reject(
            "not_creator",
            "Only the market creator can perform this action",
            required=creator,
            actual=wallet,
        )
