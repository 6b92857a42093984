"""Action handlers; importing this package registers every action."""

from . import (
    affiliates,
    bets,
    claims,
    creation,
    info,
    management,
    markets,
    positions,
    resolution,
    simulation,
    validation,
)

__all__ = [
    "affiliates",
    "bets",
    "claims",
    "creation",
    "info",
    "management",
    "markets",
    "positions",
    "resolution",
    "simulation",
    "validation",
]
