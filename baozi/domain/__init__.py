"""Domain models for program accounts and request-scoped results."""

from .enums import (
    AccessGate,
    CurrencyType,
    MarketLayer,
    MarketOutcome,
    MarketStatus,
    MarketType,
    ResolutionMode,
    Side,
)
from .models import (
    MAX_RACE_OUTCOMES,
    MIN_RACE_OUTCOMES,
    Affiliate,
    DisputeMeta,
    GlobalConfig,
    Market,
    OutcomeSlots,
    Position,
    Quote,
    RaceMarket,
    RaceOutcome,
    ReferredUser,
    RuleViolation,
    ValidationResult,
)

__all__ = [
    "MAX_RACE_OUTCOMES",
    "MIN_RACE_OUTCOMES",
    "AccessGate",
    "Affiliate",
    "CurrencyType",
    "DisputeMeta",
    "GlobalConfig",
    "Market",
    "MarketLayer",
    "MarketOutcome",
    "MarketStatus",
    "MarketType",
    "OutcomeSlots",
    "Position",
    "Quote",
    "RaceMarket",
    "RaceOutcome",
    "ReferredUser",
    "ResolutionMode",
    "RuleViolation",
    "Side",
    "ValidationResult",
]
