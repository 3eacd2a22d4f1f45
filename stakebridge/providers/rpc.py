"""
JSON-RPC access to EVM chains: raw calls, transaction submission and ERC-20 reads.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional

import httpx

from ..config import settings
from ..core.bridge.models import TokenBalance, TokenRef
from ..core.execution.encoding import encode_address
from .base import BalanceProvider, ProviderError


logger = logging.getLogger(__name__)

ERC20_BALANCE_OF_SELECTOR = "0x70a08231"  # balanceOf(address)
ERC20_ALLOWANCE_SELECTOR = "0xdd62ed3e"  # allowance(address,address)


class RpcError(ProviderError):
    """Node returned a JSON-RPC error payload."""


def _to_int(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, int):
        return value
    text = str(value)
    if text in ("0x", ""):
        return 0
    return int(text, 16) if text.startswith("0x") else int(text)


class JsonRpcClient:
    """Async JSON-RPC client bound to one chain."""

    def __init__(
        self,
        rpc_url: str,
        *,
        chain_id: Optional[int] = None,
        timeout_s: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.chain_id = chain_id
        self.timeout_s = timeout_s or settings.request_timeout_seconds
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._request_id = 0

    async def call(self, method: str, params: List[Any]) -> Any:
        if not self._client or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport)

        self._request_id += 1
        response = await self._client.post(
            self.rpc_url,
            json={"jsonrpc": "2.0", "id": self._request_id, "method": method, "params": params},
        )
        response.raise_for_status()
        payload = response.json()
        if "error" in payload:
            raise RpcError(f"RPC error from {method}: {payload['error']}")
        return payload.get("result")

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def eth_call(self, to: str, data: str, block: str = "latest") -> str:
        return await self.call("eth_call", [{"to": to, "data": data}, block])

    async def get_code(self, address: str) -> str:
        return await self.call("eth_getCode", [address, "latest"]) or "0x"

    async def get_balance(self, address: str) -> int:
        return _to_int(await self.call("eth_getBalance", [address, "latest"]))

    async def get_transaction_count(self, address: str) -> int:
        return _to_int(await self.call("eth_getTransactionCount", [address, "pending"]))

    async def gas_price(self) -> int:
        return _to_int(await self.call("eth_gasPrice", []))

    async def estimate_gas(self, tx: Mapping[str, Any]) -> int:
        return _to_int(await self.call("eth_estimateGas", [dict(tx)]))

    async def fee_per_gas(self) -> Dict[str, int]:
        """EIP-1559 fee suggestion: twice the latest base fee plus the median tip."""
        fee_history = await self.call("eth_feeHistory", [1, "latest", [50]])
        base_fee = _to_int(fee_history["baseFeePerGas"][-1])
        reward = fee_history.get("reward") or []
        priority_fee = _to_int(reward[0][0]) if reward and reward[0] else 1_000_000_000
        return {
            "max_fee_per_gas": base_fee * 2 + priority_fee,
            "max_priority_fee_per_gas": priority_fee,
        }

    async def send_raw_transaction(self, raw_tx: str) -> str:
        return await self.call("eth_sendRawTransaction", [raw_tx])

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        return await self.call("eth_getTransactionReceipt", [tx_hash])

    async def wait_for_receipt(
        self,
        tx_hash: str,
        *,
        poll_interval: float = 2.0,
        max_attempts: int = 150,
    ) -> Dict[str, Any]:
        for attempt in range(1, max_attempts + 1):
            receipt = await self.get_transaction_receipt(tx_hash)
            if receipt:
                return receipt
            logger.debug("Receipt for %s not available yet (attempt %s)", tx_hash, attempt)
            await asyncio.sleep(poll_interval)
        raise RpcError(f"No receipt for {tx_hash} after {max_attempts} attempts")

    async def erc20_balance_of(self, token_address: str, owner: str) -> int:
        data = ERC20_BALANCE_OF_SELECTOR + encode_address(owner)
        return _to_int(await self.eth_call(token_address, data))

    async def erc20_allowance(self, token_address: str, owner: str, spender: str) -> int:
        data = ERC20_ALLOWANCE_SELECTOR + encode_address(owner) + encode_address(spender)
        return _to_int(await self.eth_call(token_address, data))


class RpcBalanceProvider(BalanceProvider):
    """Reads native and ERC-20 balances through per-chain JSON-RPC clients."""

    name = "rpc_balances"

    def __init__(self, clients: Mapping[int, JsonRpcClient]) -> None:
        self._clients = dict(clients)

    def _client(self, chain_id: int) -> JsonRpcClient:
        client = self._clients.get(chain_id)
        if client is None:
            raise RpcError(f"No RPC client configured for chain {chain_id}")
        return client

    async def ready(self) -> bool:
        return bool(self._clients)

    async def health_check(self) -> Dict[str, Any]:
        status: Dict[str, Any] = {}
        for chain_id, client in self._clients.items():
            try:
                status[str(chain_id)] = {"status": "healthy", "chainId": await client.call("eth_chainId", [])}
            except (httpx.HTTPError, RpcError) as exc:
                status[str(chain_id)] = {"status": "error", "reason": str(exc)}
        return status

    async def get_token_balance(self, address: str, token: TokenRef) -> TokenBalance:
        client = self._client(token.chain_id)
        if token.is_native:
            amount = await client.get_balance(address)
        else:
            amount = await client.erc20_balance_of(token.address, address)
        return TokenBalance(amount=amount, decimals=token.decimals)
