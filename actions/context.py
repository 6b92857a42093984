from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from solders.pubkey import Pubkey

from baozi.core.config import Settings
from baozi.services.affiliate_service import AffiliateService
from baozi.services.content import ContentRules, rules_for
from baozi.services.market_service import MarketService
from baozi.services.simulation import simulate
from baozi.transactions import InstructionPlan, assemble
from chain.client import SolanaRpcClient


@dataclass(slots=True)
class ActionContext:
    """Request-scoped dependencies handed to every action handler."""

    settings: Settings
    rpc: SolanaRpcClient
    now: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    content_rules: ContentRules | None = None

    def __post_init__(self) -> None:
        if self.content_rules is None:
            self.content_rules = rules_for(self.settings.content_rules_path)

    @property
    def program_id(self) -> Pubkey:
        return self.settings.program_id

    @property
    def markets(self) -> MarketService:
        return MarketService(self.rpc, self.program_id)

    @property
    def affiliates(self) -> AffiliateService:
        return AffiliateService(self.rpc, self.program_id)

    def build(
        self,
        plans: Sequence[InstructionPlan],
        fee_payer: Pubkey,
        *,
        simulate_tx: bool | None = None,
    ) -> dict[str, Any]:
        """Assemble ``plans`` against a fresh blockhash and optionally dry-run it."""

        blockhash = self.rpc.get_latest_blockhash()
        transaction = assemble(plans, fee_payer, blockhash)
        payload: dict[str, Any] = {"transaction": transaction.to_dict()}
        should_simulate = self.settings.simulate_by_default if simulate_tx is None else simulate_tx
        if should_simulate:
            payload["simulation"] = simulate(self.rpc, transaction.serialized_b64).to_dict()
        payload["instructions"] = "Sign the transaction with your wallet and send it to Solana"
        return payload


@contextmanager
def open_context(settings: Settings, *, now: datetime | None = None) -> Iterator[ActionContext]:
    with SolanaRpcClient(
        rpc_url=settings.resolved_rpc_url,
        commitment=settings.rpc_commitment,
        timeout=settings.rpc_timeout_seconds,
    ) as rpc:
        yield ActionContext(
            settings=settings,
            rpc=rpc,
            now=now or datetime.now(timezone.utc),
        )


__all__ = ["ActionContext", "open_context"]
