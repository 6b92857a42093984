"""Layer-keyed fee resolution and creation cost estimates."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from baozi.core.config import FeeTable
from baozi.core.units import round_sol
from baozi.domain import Market, MarketLayer, RaceMarket

MARKET_RENT_LAMPORTS = 5_000_000
RACE_BASE_RENT_LAMPORTS = 8_000_000
RACE_RENT_PER_OUTCOME_LAMPORTS = 500_000


@dataclass(frozen=True, slots=True)
class FeeSchedule:
    platform_fee_bps: int
    affiliate_fee_bps: int
    creator_fee_ceiling_bps: int
    creation_fee_lamports: int
    bps_denominator: int = 10_000

    def to_dict(self) -> dict[str, Any]:
        return {
            "platformFeeBps": self.platform_fee_bps,
            "platformFeePercent": f"{self.platform_fee_bps / 100}%",
            "affiliateFeeBps": self.affiliate_fee_bps,
            "creatorFeeCeilingBps": self.creator_fee_ceiling_bps,
            "creationFeeLamports": self.creation_fee_lamports,
            "creationFeeSol": round_sol(self.creation_fee_lamports),
        }


def resolve_fees(layer: MarketLayer, table: FeeTable) -> FeeSchedule:
    """Return the live schedule for ``layer``; only valid at creation time."""

    tier = table.tiers[layer.fee_key]
    return FeeSchedule(
        platform_fee_bps=tier.platform_fee_bps,
        affiliate_fee_bps=table.affiliate_fee_bps,
        creator_fee_ceiling_bps=table.creator_fee_ceiling_bps,
        creation_fee_lamports=tier.creation_fee_lamports,
        bps_denominator=table.bps_denominator,
    )


def frozen_fees(market: Market | RaceMarket, table: FeeTable) -> FeeSchedule:
    """Return the rates captured when ``market`` was created.

    Only the ceiling and denominator come from ``table``; the platform and
    affiliate rates always come from the account itself.
    """

    return FeeSchedule(
        platform_fee_bps=market.platform_fee_bps_at_creation,
        affiliate_fee_bps=market.affiliate_fee_bps_at_creation,
        creator_fee_ceiling_bps=table.creator_fee_ceiling_bps,
        creation_fee_lamports=0,
        bps_denominator=table.bps_denominator,
    )


def estimated_rent(outcome_count: int | None = None) -> int:
    if outcome_count is None:
        return MARKET_RENT_LAMPORTS
    return RACE_BASE_RENT_LAMPORTS + RACE_RENT_PER_OUTCOME_LAMPORTS * outcome_count


def creation_cost(
    layer: MarketLayer, table: FeeTable, *, outcome_count: int | None = None
) -> dict[str, Any]:
    schedule = resolve_fees(layer, table)
    rent = estimated_rent(outcome_count)
    total = schedule.creation_fee_lamports + rent
    return {
        "layer": layer.label,
        "creationFeeLamports": schedule.creation_fee_lamports,
        "creationFeeSol": round_sol(schedule.creation_fee_lamports),
        "estimatedRentLamports": rent,
        "estimatedRentSol": round_sol(rent),
        "totalCostLamports": total,
        "totalCostSol": round_sol(total),
        "platformFeeBps": schedule.platform_fee_bps,
    }


def fee_overview(table: FeeTable) -> dict[str, Any]:
    return {
        "version": table.version,
        "layers": {
            layer.label: resolve_fees(layer, table).to_dict() for layer in MarketLayer
        },
        "affiliateFeeBps": table.affiliate_fee_bps,
        "creatorFeeCeilingBps": table.creator_fee_ceiling_bps,
        "bpsDenominator": table.bps_denominator,
        "note": "Fees apply to winning profit only and are frozen per market at creation.",
    }


__all__ = [
    "FeeSchedule",
    "creation_cost",
    "estimated_rent",
    "fee_overview",
    "frozen_fees",
    "resolve_fees",
]
