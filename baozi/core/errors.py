"""Exception taxonomy shared by validators, readers, and assemblers."""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from baozi.domain.models import RuleViolation


class BaoziError(Exception):
    """Base class for every failure surfaced to action callers."""


class RuleViolationError(BaoziError, ValueError):
    """Raised when local validation rejects an action before assembly."""

    def __init__(self, message: str, violations: Sequence["RuleViolation"] = ()) -> None:
        super().__init__(message)
        self.violations = list(violations)

    @classmethod
    def from_violations(cls, violations: Sequence["RuleViolation"]) -> "RuleViolationError":
        return cls(violations[0].message, violations)


class AccountNotFoundError(BaoziError, LookupError):
    """A referenced on-chain account does not exist in the current snapshot."""

    def __init__(self, kind: str, address: str) -> None:
        super().__init__(f"{kind} {address} not found")
        self.kind = kind
        self.address = address


class DecodeError(BaoziError, ValueError):
    """Account bytes do not match the expected layout."""


class TransportError(BaoziError):
    """RPC endpoint unreachable or returned a malformed response."""


__all__ = [
    "AccountNotFoundError",
    "BaoziError",
    "DecodeError",
    "RuleViolationError",
    "TransportError",
]
