"""Pari-mutuel payout math in integer lamports.

Division truncates toward zero everywhere so off-chain previews and on-chain
settlement round identically.
"""

from __future__ import annotations

from baozi.domain import Market, Position, Quote, RaceMarket, Side

BPS_DENOMINATOR = 10_000


def payout(
    bet: int,
    winning_pool: int,
    total_pool: int,
    fee_bps: int,
    *,
    label: str | None = None,
    bps_denominator: int = BPS_DENOMINATOR,
) -> Quote:
    """Return the payout for ``bet`` when its side wins.

    ``winning_pool`` and ``total_pool`` must already include ``bet``. An
    empty winning pool produces an undefined quote.
    """

    if bet < 0 or winning_pool < 0 or total_pool < 0:
        raise ValueError("Pool and bet amounts must be non-negative")
    if total_pool < winning_pool:
        raise ValueError("Total pool cannot be smaller than the winning pool")
    if winning_pool == 0:
        return Quote(
            defined=False,
            bet=bet,
            winning_pool=winning_pool,
            total_pool=total_pool,
            fee_bps=fee_bps,
            label=label,
        )

    gross = bet * total_pool // winning_pool
    profit = gross - bet
    fee = profit * fee_bps // bps_denominator if profit > 0 else 0
    return Quote(
        defined=True,
        bet=bet,
        winning_pool=winning_pool,
        total_pool=total_pool,
        fee_bps=fee_bps,
        gross_payout=gross,
        profit=profit,
        fee=fee,
        net_payout=gross - fee,
        label=label,
    )


def quote_bet(market: Market, side: Side, amount: int) -> Quote:
    """Preview a hypothetical bet against the live pools and frozen fee rate."""

    yes_pool = market.yes_pool + (amount if side is Side.YES else 0)
    no_pool = market.no_pool + (amount if side is Side.NO else 0)
    winning_pool = yes_pool if side is Side.YES else no_pool
    return payout(
        amount,
        winning_pool,
        yes_pool + no_pool,
        market.platform_fee_bps_at_creation,
        label=side.value,
    )


def quote_race_bet(market: RaceMarket, outcome_index: int, amount: int) -> Quote:
    if not 0 <= outcome_index < len(market.outcomes):
        raise ValueError(
            f"Invalid outcome index. Must be 0-{len(market.outcomes) - 1}"
        )
    outcome = market.outcomes[outcome_index]
    return payout(
        amount,
        outcome.pool + amount,
        market.total_pool + amount,
        market.platform_fee_bps_at_creation,
        label=outcome.label,
    )


def estimate_claim(position: Position, market: Market, side: Side) -> Quote:
    """Estimate a winning claim from the settlement pools of a resolved market."""

    yes_pool, no_pool = market.settlement_pools()
    winning_pool = yes_pool if side is Side.YES else no_pool
    return payout(
        position.stake_on(side),
        winning_pool,
        yes_pool + no_pool,
        market.platform_fee_bps_at_creation,
        label=side.value,
    )


__all__ = [
    "BPS_DENOMINATOR",
    "estimate_claim",
    "payout",
    "quote_bet",
    "quote_race_bet",
]
