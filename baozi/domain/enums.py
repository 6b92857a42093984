"""Closed enumerations mirroring the program's one-byte enum encodings."""

from __future__ import annotations

from enum import Enum, IntEnum

from baozi.core.errors import DecodeError


class _CodedEnum(IntEnum):
    @classmethod
    def from_code(cls, code: int):
        try:
            return cls(code)
        except ValueError as exc:
            raise DecodeError(f"Unknown {cls.__name__} code {code}") from exc

    @classmethod
    def from_name(cls, name: str):
        lookup = {member.name.lower(): member for member in cls}
        try:
            return lookup[name.strip().lower().replace("_", "")]
        except KeyError as exc:
            raise ValueError(
                f"Unknown {cls.__name__} '{name}'. Expected one of: "
                + ", ".join(member.name for member in cls)
            ) from exc


class MarketStatus(_CodedEnum):
    ACTIVE = 0
    CLOSED = 1
    RESOLVED = 2
    CANCELLED = 3
    PAUSED = 4
    RESOLVEDPENDING = 5
    DISPUTED = 6

    @property
    def label(self) -> str:
        match self:
            case MarketStatus.ACTIVE:
                return "Active"
            case MarketStatus.CLOSED:
                return "Closed"
            case MarketStatus.RESOLVED:
                return "Resolved"
            case MarketStatus.CANCELLED:
                return "Cancelled"
            case MarketStatus.PAUSED:
                return "Paused"
            case MarketStatus.RESOLVEDPENDING:
                return "ResolvedPending"
            case MarketStatus.DISPUTED:
                return "Disputed"
        raise AssertionError(f"unhandled status {self!r}")


class MarketOutcome(_CodedEnum):
    UNDECIDED = 0
    INVALID = 1
    YES = 2
    NO = 3

    @property
    def label(self) -> str:
        return self.name.capitalize()


class MarketLayer(_CodedEnum):
    OFFICIAL = 0
    LAB = 1
    PRIVATE = 2

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @property
    def fee_key(self) -> str:
        return self.name.lower()


class MarketType(_CodedEnum):
    EVENT = 0
    MEASUREMENT = 1


class AccessGate(_CodedEnum):
    PUBLIC = 0
    WHITELIST = 1
    INVITEHASH = 2

    @property
    def label(self) -> str:
        match self:
            case AccessGate.PUBLIC:
                return "Public"
            case AccessGate.WHITELIST:
                return "Whitelist"
            case AccessGate.INVITEHASH:
                return "InviteHash"
        raise AssertionError(f"unhandled access gate {self!r}")

    @property
    def is_gated(self) -> bool:
        match self:
            case AccessGate.PUBLIC:
                return False
            case AccessGate.WHITELIST | AccessGate.INVITEHASH:
                return True
        raise AssertionError(f"unhandled access gate {self!r}")


class CurrencyType(_CodedEnum):
    SOL = 0
    USDC = 1


class ResolutionMode(_CodedEnum):
    HOSTORACLE = 0
    COUNCILORACLE = 1

    @property
    def label(self) -> str:
        return "HostOracle" if self is ResolutionMode.HOSTORACLE else "CouncilOracle"


class Side(str, Enum):
    YES = "Yes"
    NO = "No"

    @classmethod
    def parse(cls, value: str | bool) -> "Side":
        if isinstance(value, bool):
            return cls.YES if value else cls.NO
        normalized = value.strip().lower()
        if normalized == "yes":
            return cls.YES
        if normalized == "no":
            return cls.NO
        raise ValueError(f"Side must be 'yes' or 'no', got '{value}'")

    @property
    def as_bool(self) -> bool:
        return self is Side.YES

    @property
    def winning_outcome(self) -> MarketOutcome:
        return MarketOutcome.YES if self is Side.YES else MarketOutcome.NO


__all__ = [
    "AccessGate",
    "CurrencyType",
    "MarketLayer",
    "MarketOutcome",
    "MarketStatus",
    "MarketType",
    "ResolutionMode",
    "Side",
]
