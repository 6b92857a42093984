"""Affiliate codes, referral lookups and agent network statistics."""

from __future__ import annotations

import random
import re
from typing import Any
from urllib.parse import parse_qs, urlparse

from solders.pubkey import Pubkey

from baozi.core.config import FeeTable
from baozi.core.errors import AccountNotFoundError
from baozi.core.units import round_sol
from baozi.domain import Affiliate, ReferredUser, ValidationResult
from chain.client import SolanaRpcClient, memcmp_filter
from chain.decode import (
    OWNER_OFFSET,
    REFERRED_USER_AFFILIATE_OFFSET,
    decode_affiliate,
    decode_referred_user,
)

from . import pda
from .market_service import MarketService

AFFILIATE_CODE_PATTERN = re.compile(r"^[a-zA-Z0-9_]{3,16}$")
TOP_AGENT_COUNT = 10


def validate_affiliate_code(code: str) -> ValidationResult:
    result = ValidationResult()
    if not AFFILIATE_CODE_PATTERN.match(code):
        result.reject(
            "affiliate_code",
            "Affiliate code must be 3-16 characters of letters, digits or underscore",
            actual=code,
        )
    return result


def _base36(value: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    out = ""
    while value:
        value, rem = divmod(value, 36)
        out = digits[rem] + out
    return out or "0"


def candidate_codes(agent_name: str, rng: random.Random | None = None) -> list[str]:
    """Ordered code candidates derived from ``agent_name``; invalid ones are dropped."""

    rng = rng or random.Random()
    base = re.sub(r"[^a-z0-9]", "", agent_name.lower())[:10]
    candidates = [
        base,
        f"{base}_ai",
        f"{base}_bot",
        f"ai_{base}",
        f"{base}{rng.randrange(1000)}",
        f"{base}_agent",
        f"{base[:6]}{_base36(rng.getrandbits(32))[-4:]}",
    ]
    seen: set[str] = set()
    valid: list[str] = []
    for candidate in candidates:
        if candidate in seen or not AFFILIATE_CODE_PATTERN.match(candidate):
            continue
        seen.add(candidate)
        valid.append(candidate)
    return valid


def format_affiliate_link(base_url: str, code: str, market: str | None = None) -> str:
    base = base_url.rstrip("/")
    if market:
        return f"{base}/market/{market}?ref={code}"
    return f"{base}?ref={code}"


def parse_affiliate_code(url: str) -> str | None:
    values = parse_qs(urlparse(url).query).get("ref")
    if values and AFFILIATE_CODE_PATTERN.match(values[0]):
        return values[0]
    match = re.search(r"[?&]ref=([a-zA-Z0-9_]+)", url)
    return match.group(1) if match else None


def commission_info(fees: FeeTable) -> dict[str, Any]:
    percent = fees.affiliate_fee_bps / 100
    return {
        "affiliateFeeBps": fees.affiliate_fee_bps,
        "affiliateFeePercent": f"{percent:g}%",
        "description": "Affiliates earn commission on winning bet profits, not on total stake",
        "example": (
            f"A 1 SOL bet that pays out 2 SOL has 1 SOL of profit; the affiliate earns "
            f"{percent:g}% of that profit"
        ),
    }


class AffiliateService:
    def __init__(self, rpc: SolanaRpcClient, program_id: Pubkey):
        self._rpc = rpc
        self._program_id = program_id
        self._markets = MarketService(rpc, program_id)

    def affiliate_address(self, code: str) -> Pubkey:
        return pda.affiliate_pda(code, self._program_id)

    def is_code_available(self, code: str) -> bool:
        if not validate_affiliate_code(code).valid:
            return False
        return not self._markets.account_exists(self.affiliate_address(code))

    def suggest_codes(
        self, agent_name: str, count: int = 5, rng: random.Random | None = None
    ) -> list[dict[str, Any]]:
        suggestions: list[dict[str, Any]] = []
        for candidate in candidate_codes(agent_name, rng)[:count]:
            available = self.is_code_available(candidate)
            entry: dict[str, Any] = {"code": candidate, "available": available}
            if not available:
                entry["reason"] = "Already taken"
            suggestions.append(entry)
        return suggestions

    def get_affiliate(self, code: str) -> Affiliate:
        address = str(self.affiliate_address(code))
        data = self._rpc.get_account_info(address)
        if data is None:
            raise AccountNotFoundError("Affiliate", code)
        return decode_affiliate(data, address)

    def affiliates_by_owner(self, wallet: str) -> list[Affiliate]:
        owner = memcmp_filter(OWNER_OFFSET, bytes(Pubkey.from_string(wallet)))
        return self._markets.scan_accounts("affiliate", decode_affiliate, [owner])

    def referrals(self, code: str) -> list[ReferredUser]:
        link = memcmp_filter(REFERRED_USER_AFFILIATE_OFFSET, bytes(self.affiliate_address(code)))
        return self._markets.scan_accounts("referred_user", decode_referred_user, [link])

    def network_stats(self) -> dict[str, Any]:
        affiliates = self._markets.scan_accounts("affiliate", decode_affiliate)
        affiliates.sort(key=lambda affiliate: affiliate.total_earned, reverse=True)
        return {
            "totalAgentAffiliates": len(affiliates),
            "totalNetworkEarningsSol": round_sol(sum(a.total_earned for a in affiliates)),
            "totalReferrals": sum(a.referral_count for a in affiliates),
            "topAgents": [a.to_dict() for a in affiliates[:TOP_AGENT_COUNT]],
        }

    def recommended_affiliate(self) -> Affiliate | None:
        affiliates = self._markets.scan_accounts("affiliate", decode_affiliate)
        active = [a for a in affiliates if a.is_active]
        return max(active, key=lambda affiliate: affiliate.total_earned, default=None)


def referral_to_dict(referral: ReferredUser, code: str) -> dict[str, Any]:
    return {
        "referredUserPda": referral.address,
        "userWallet": referral.user,
        "affiliateCode": code,
        "totalBetsSol": round_sol(referral.total_bets),
        "totalCommissionSol": round_sol(referral.total_commission),
        "firstBetAt": referral.first_bet_at.isoformat(),
        "lastBetAt": referral.last_bet_at.isoformat(),
    }


__all__ = [
    "AFFILIATE_CODE_PATTERN",
    "AffiliateService",
    "candidate_codes",
    "commission_info",
    "format_affiliate_link",
    "parse_affiliate_code",
    "referral_to_dict",
    "validate_affiliate_code",
]
