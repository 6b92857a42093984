"""Read-side facade over market, position and resolution accounts."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any, TypeVar

from loguru import logger
from solders.pubkey import Pubkey

from baozi.core.errors import AccountNotFoundError, DecodeError
from baozi.core.units import round_sol
from baozi.domain import (
    DisputeMeta,
    GlobalConfig,
    Market,
    MarketOutcome,
    MarketStatus,
    Position,
    RaceMarket,
)
from chain.client import SolanaRpcClient, memcmp_filter
from chain.decode import (
    ACCOUNT_DISCRIMINATORS,
    OWNER_OFFSET,
    decode_dispute_meta,
    decode_global_config,
    decode_market,
    decode_position,
    decode_race_market,
)

from . import pda
from .bets import ClaimType, validate_claim
from .quote import estimate_claim

_T = TypeVar("_T")


@dataclass(slots=True)
class MarketQuery:
    status: str | None = None
    layer: str | None = None
    limit: int | None = None

    def matches(self, market: Market | RaceMarket) -> bool:
        if self.status and market.status.label.lower() != self.status.lower():
            return False
        if self.layer and market.layer.label.lower() != self.layer.lower():
            return False
        return True


def _listing_order(market: Market | RaceMarket) -> tuple[int, datetime]:
    return (0 if market.status is MarketStatus.ACTIVE else 1, market.closing_time)


class MarketService:
    """Decoded views of program accounts fetched through one RPC client."""

    def __init__(self, rpc: SolanaRpcClient, program_id: Pubkey):
        self._rpc = rpc
        self._program_id = program_id

    @property
    def program_id(self) -> Pubkey:
        return self._program_id

    def scan_accounts(
        self,
        kind: str,
        decoder: Callable[[bytes, str], _T],
        extra_filters: list[dict[str, Any]] | None = None,
    ) -> list[_T]:
        filters = [memcmp_filter(0, ACCOUNT_DISCRIMINATORS[kind])] + (extra_filters or [])
        decoded: list[_T] = []
        for address, data in self._rpc.get_program_accounts(str(self._program_id), filters):
            try:
                decoded.append(decoder(data, address))
            except DecodeError as exc:
                logger.warning("Skipping undecodable {} account {}: {}", kind, address, exc)
        return decoded

    def _fetch(self, kind: str, address: str, decoder: Callable[[bytes, str], _T]) -> _T:
        data = self._rpc.get_account_info(address)
        if data is None:
            raise AccountNotFoundError(kind, address)
        return decoder(data, address)

    def account_exists(self, address: Pubkey | str) -> bool:
        return self._rpc.get_account_info(str(address)) is not None

    # configuration

    def global_config(self) -> GlobalConfig:
        address = str(pda.config_pda(self._program_id))
        return self._fetch("GlobalConfig", address, decode_global_config)

    def next_market_id(self) -> int:
        """Boolean and race markets share one counter; its current value is the next id."""

        return self.global_config().market_count

    # markets

    def list_markets(self, query: MarketQuery | None = None) -> list[Market]:
        query = query or MarketQuery()
        markets = [m for m in self.scan_accounts("market", decode_market) if query.matches(m)]
        markets.sort(key=_listing_order)
        return markets[: query.limit] if query.limit else markets

    def get_market(self, address: str) -> Market:
        return self._fetch("Market", address, decode_market)

    def list_race_markets(self, query: MarketQuery | None = None) -> list[RaceMarket]:
        query = query or MarketQuery()
        races = self.scan_accounts("race_market", decode_race_market)
        races = [race for race in races if query.matches(race)]
        races.sort(key=_listing_order)
        return races[: query.limit] if query.limit else races

    def get_race_market(self, address: str) -> RaceMarket:
        return self._fetch("RaceMarket", address, decode_race_market)

    # positions

    def get_positions(self, wallet: str) -> list[Position]:
        owner = memcmp_filter(OWNER_OFFSET, bytes(Pubkey.from_string(wallet)))
        positions = self.scan_accounts("user_position", decode_position, [owner])
        positions.sort(key=lambda position: position.market_id, reverse=True)
        return positions

    def get_position(self, market_id: int, wallet: str) -> Position:
        address = str(pda.position_pda(market_id, wallet, self._program_id))
        return self._fetch("Position", address, decode_position)

    def _markets_for(self, positions: list[Position]) -> dict[int, Market]:
        market_ids = sorted({position.market_id for position in positions})
        addresses = [str(pda.market_pda(market_id, self._program_id)) for market_id in market_ids]
        markets: dict[int, Market] = {}
        for market_id, address, data in zip(
            market_ids, addresses, self._rpc.get_multiple_accounts(addresses)
        ):
            if data is None:
                logger.info("Market {} for a position no longer exists", market_id)
                continue
            markets[market_id] = decode_market(data, address)
        return markets

    def position_summary(self, wallet: str, now: datetime) -> dict[str, Any]:
        positions = self.get_positions(wallet)
        markets = self._markets_for(positions)
        winning = losing = pending = 0
        rows: list[dict[str, Any]] = []
        for position in positions:
            market = markets.get(position.market_id)
            row = position.to_dict()
            if market is None:
                pending += 1
            else:
                row.update(
                    marketPda=market.address,
                    marketQuestion=market.question,
                    marketStatus=market.status.label,
                    marketOutcome=market.outcome.label,
                    isBettingOpen=market.is_betting_open(now),
                )
                match market.status:
                    case MarketStatus.RESOLVED if market.outcome is MarketOutcome.INVALID:
                        pending += 1
                    case MarketStatus.RESOLVED:
                        if market.winning_side and position.stake_on(market.winning_side) > 0:
                            winning += 1
                        else:
                            losing += 1
                    case _:
                        pending += 1
            rows.append(row)

        return {
            "wallet": wallet,
            "totalPositions": len(positions),
            "totalBetSol": round_sol(sum(p.total_amount for p in positions)),
            "activePositions": sum(1 for p in positions if not p.claimed),
            "claimedPositions": sum(1 for p in positions if p.claimed),
            "winningPositions": winning,
            "losingPositions": losing,
            "pendingPositions": pending,
            "positions": rows,
        }

    def claimable(self, wallet: str) -> dict[str, Any]:
        positions = self.get_positions(wallet)
        markets = self._markets_for([p for p in positions if not p.claimed])
        winnings = refunds = 0
        already_claimed = 0
        rows: list[dict[str, Any]] = []
        for position in positions:
            if position.claimed:
                already_claimed += 1
                continue
            market = markets.get(position.market_id)
            if market is None:
                continue
            eligibility = validate_claim(position, market)
            if not eligibility.can_claim:
                continue
            if eligibility.claim_type is ClaimType.WINNINGS and eligibility.side is not None:
                payout = estimate_claim(position, market, eligibility.side).net_payout
                winnings += payout
                bet = position.stake_on(eligibility.side)
                side = eligibility.side.value
            else:
                payout = position.total_amount
                refunds += payout
                bet = position.total_amount
                side = position.side
            rows.append(
                {
                    "positionPda": position.address,
                    "marketPda": market.address,
                    "marketQuestion": market.question,
                    "side": side,
                    "betAmountSol": round_sol(bet),
                    "claimType": eligibility.claim_type.value,
                    "estimatedPayoutLamports": payout,
                    "estimatedPayoutSol": round_sol(payout),
                    "marketStatus": market.status.label,
                    "marketOutcome": market.outcome.label,
                }
            )
        return {
            "wallet": wallet,
            "totalClaimableSol": round_sol(winnings + refunds),
            "winningsClaimableSol": round_sol(winnings),
            "refundsClaimableSol": round_sol(refunds),
            "claimablePositions": rows,
            "alreadyClaimedCount": already_claimed,
        }

    # resolution

    def get_dispute_meta(self, market: str) -> DisputeMeta | None:
        address = str(pda.dispute_meta_pda(market, self._program_id))
        data = self._rpc.get_account_info(address)
        return decode_dispute_meta(data, address) if data is not None else None

    def resolution_status(self, address: str, now: datetime) -> dict[str, Any]:
        market = self.get_market(address)
        dispute = self.get_dispute_meta(address)
        closed_by_time = now > market.closing_time
        return {
            "marketPda": address,
            "marketQuestion": market.question,
            "status": market.status.label,
            "isResolved": market.status is MarketStatus.RESOLVED,
            "winningOutcome": market.winning_side.value if market.winning_side else None,
            "outcome": market.outcome.label,
            "proposedOutcome": dispute.proposed_outcome if dispute else None,
            "closingTime": market.closing_time.isoformat(),
            "resolutionTime": market.resolution_time.isoformat(),
            "canBeResolved": closed_by_time and market.status is MarketStatus.CLOSED,
            "resolutionWindowOpen": closed_by_time and now < market.resolution_time,
            "isDisputed": dispute is not None and not dispute.resolved,
            "disputeDeadline": dispute.deadline.isoformat() if dispute else None,
            "disputeReason": dispute.reason if dispute else None,
            "resolutionMode": market.resolution_mode.label,
            "oracleHost": market.oracle_host,
            "councilSize": len(market.council),
            "councilVotesYes": market.council_votes_yes,
            "councilVotesNo": market.council_votes_no,
            "councilThreshold": market.council_threshold,
        }

    def disputed_markets(self) -> list[DisputeMeta]:
        disputes = self.scan_accounts("dispute_meta", decode_dispute_meta)
        return [dispute for dispute in disputes if not dispute.resolved]

    def markets_awaiting_resolution(self) -> list[Market]:
        return self.list_markets(MarketQuery(status=MarketStatus.CLOSED.label))


__all__ = ["MarketQuery", "MarketService"]
