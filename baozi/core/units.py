from __future__ import annotations

from decimal import ROUND_FLOOR, Decimal, InvalidOperation
from typing import Any

LAMPORTS_PER_SOL = 1_000_000_000
U64_MAX = 2**64 - 1


def sol_to_lamports(amount: Any) -> int:
    """Convert a human SOL amount to lamports, flooring sub-lamport dust."""

    if isinstance(amount, bool):
        raise ValueError("SOL amount must be numeric")
    try:
        value = Decimal(str(amount))
    except InvalidOperation as exc:
        raise ValueError(f"Invalid SOL amount: {amount!r}") from exc
    if not value.is_finite():
        raise ValueError(f"Invalid SOL amount: {amount!r}")
    lamports = int((value * LAMPORTS_PER_SOL).to_integral_value(rounding=ROUND_FLOOR))
    if lamports < 0:
        raise ValueError("SOL amount must not be negative")
    return lamports


def lamports_to_sol(lamports: int) -> float:
    return lamports / LAMPORTS_PER_SOL


def round_sol(lamports: int, places: int = 4) -> float:
    return round(lamports_to_sol(lamports), places)


def check_u64(value: int, name: str = "value") -> int:
    if not 0 <= value <= U64_MAX:
        raise ValueError(f"{name} must fit in an unsigned 64-bit integer")
    return value
