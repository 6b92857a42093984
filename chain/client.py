from __future__ import annotations

import base64
import itertools
from typing import Any

import httpx
from loguru import logger

from baozi.core.config import settings
from baozi.core.errors import TransportError


class SolanaRpcClient:
    """Thin JSON-RPC wrapper over the Solana methods the actions need."""

    def __init__(
        self,
        *,
        rpc_url: str | None = None,
        commitment: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.rpc_url = rpc_url or settings.resolved_rpc_url
        self.commitment = commitment or settings.rpc_commitment
        self.timeout = timeout or settings.rpc_timeout_seconds
        self.client = httpx.Client(timeout=self.timeout, transport=transport)
        self._ids = itertools.count(1)

    def call(self, method: str, params: list[Any]) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        logger.debug("Solana RPC {} -> {}", method, self.rpc_url)
        try:
            response = self.client.post(self.rpc_url, json=payload)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPError as exc:
            logger.warning("Solana RPC {} failed: {}", method, exc)
            raise TransportError(f"RPC request {method} failed: {exc}") from exc
        except ValueError as exc:
            raise TransportError(f"RPC response for {method} was not JSON") from exc

        if not isinstance(body, dict):
            raise TransportError(f"RPC response for {method} was not an object")
        if body.get("error"):
            error = body["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise TransportError(f"RPC {method} returned an error: {message}")
        return body.get("result")

    @staticmethod
    def _decode_data(account: dict[str, Any]) -> bytes:
        data = account.get("data")
        if not isinstance(data, list) or not data:
            raise TransportError("Account data missing from RPC response")
        try:
            return base64.b64decode(data[0])
        except ValueError as exc:
            raise TransportError("Account data is not valid base64") from exc

    def get_account_info(self, address: str) -> bytes | None:
        """Return raw account bytes, or ``None`` when the account does not exist."""

        result = self.call(
            "getAccountInfo",
            [address, {"encoding": "base64", "commitment": self.commitment}],
        )
        value = (result or {}).get("value")
        if value is None:
            return None
        return self._decode_data(value)

    def get_multiple_accounts(self, addresses: list[str]) -> list[bytes | None]:
        if not addresses:
            return []
        result = self.call(
            "getMultipleAccounts",
            [addresses, {"encoding": "base64", "commitment": self.commitment}],
        )
        values = (result or {}).get("value") or []
        return [self._decode_data(value) if value else None for value in values]

    def get_program_accounts(
        self, program_id: str, filters: list[dict[str, Any]] | None = None
    ) -> list[tuple[str, bytes]]:
        config: dict[str, Any] = {"encoding": "base64", "commitment": self.commitment}
        if filters:
            config["filters"] = filters
        result = self.call("getProgramAccounts", [program_id, config]) or []
        accounts = [(item["pubkey"], self._decode_data(item["account"])) for item in result]
        logger.debug("getProgramAccounts returned {} accounts", len(accounts))
        return accounts

    def get_latest_blockhash(self) -> str:
        result = self.call("getLatestBlockhash", [{"commitment": "finalized"}])
        try:
            return result["value"]["blockhash"]
        except (KeyError, TypeError) as exc:
            raise TransportError("getLatestBlockhash returned no blockhash") from exc

    def simulate_transaction(self, transaction_b64: str) -> dict[str, Any]:
        result = self.call(
            "simulateTransaction",
            [
                transaction_b64,
                {
                    "encoding": "base64",
                    "sigVerify": False,
                    "replaceRecentBlockhash": True,
                    "commitment": self.commitment,
                },
            ],
        )
        value = (result or {}).get("value")
        if not isinstance(value, dict):
            raise TransportError("simulateTransaction returned no value")
        return value

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "SolanaRpcClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def memcmp_filter(offset: int, raw: bytes) -> dict[str, Any]:
    return {
        "memcmp": {
            "offset": offset,
            "bytes": base64.b64encode(raw).decode("ascii"),
            "encoding": "base64",
        }
    }


__all__ = ["SolanaRpcClient", "memcmp_filter"]
