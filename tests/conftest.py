from __future__ import annotations

import sys
from pathlib import Path
from unittest.mock import MagicMock

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))
sys.path.insert(0, str(Path(__file__).resolve().parent))

import pytest

from actions import ActionContext
from baozi.core.config import Settings
from chain.client import SolanaRpcClient
from factories import BLOCKHASH, NOW, FakeChain, wallet


@pytest.fixture
def test_settings(monkeypatch) -> Settings:
    settings = Settings(
        solana_network="devnet",
        solana_rpc_url="http://rpc.test",
        helius_rpc_url=None,
        simulate_by_default=True,
        content_rules_path=None,
    )
    monkeypatch.setattr("baozi.core.config.get_settings", lambda: settings)
    monkeypatch.setattr("baozi.core.config.settings", settings)
    return settings


@pytest.fixture
def chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def rpc(chain: FakeChain) -> MagicMock:
    client = MagicMock(spec=SolanaRpcClient)
    client.get_account_info.side_effect = chain.account_info
    client.get_multiple_accounts.side_effect = chain.multiple_accounts
    client.get_program_accounts.side_effect = chain.program_accounts
    client.get_latest_blockhash.return_value = BLOCKHASH
    client.simulate_transaction.return_value = {
        "err": None,
        "logs": ["Program log: ok"],
        "unitsConsumed": 21_000,
    }
    return client


@pytest.fixture
def context(test_settings: Settings, rpc: MagicMock) -> ActionContext:
    return ActionContext(settings=test_settings, rpc=rpc, now=NOW)


@pytest.fixture
def user() -> str:
    return wallet()


@pytest.fixture
def creator() -> str:
    return wallet()
