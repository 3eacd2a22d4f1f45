"""Async client for LI.FI's public routing API."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from ..config import settings
from .base import ProviderError, RoutingProvider


class LifiError(ProviderError):
    """LI.FI returned an unusable response."""


class LifiProvider(RoutingProvider):
    """Thin wrapper around https://li.quest/v1 endpoints."""

    name = "lifi"

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout_s: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or settings.lifi_base_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.lifi_api_key
        self.timeout_s = timeout_s or settings.request_timeout_seconds
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {
            "accept": "application/json",
            "content-type": "application/json",
            "user-agent": "stakebridge/0.1",
        }
        if self.api_key:
            headers["x-lifi-api-key"] = self.api_key
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Any:
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout_s,
            transport=self._transport,
        ) as client:
            response = await client.request(method, path, params=params, json=json, headers=self._headers())
            response.raise_for_status()
            return response.json()

    async def ready(self) -> bool:
        return bool(self.base_url)

    async def health_check(self) -> Dict[str, Any]:
        try:
            chains = await self.get_chains()
            return {"status": "healthy", "chains": len(chains)}
        except (httpx.HTTPError, LifiError) as exc:
            return {"status": "error", "reason": str(exc)}

    async def get_chains(self) -> List[Dict[str, Any]]:
        payload = await self._request("GET", "/chains")
        chains = payload.get("chains") if isinstance(payload, dict) else None
        if not isinstance(chains, list):
            raise LifiError("LI.FI returned no chain list")
        return chains

    async def get_token(self, chain_id: int, token: str) -> Dict[str, Any]:
        payload = await self._request("GET", "/token", params={"chain": chain_id, "token": token})
        if not isinstance(payload, dict) or not payload.get("address"):
            raise LifiError(f"LI.FI could not resolve token {token} on chain {chain_id}")
        return payload

    async def get_routes(self, request: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Request candidate routes.

        `request` follows the /advanced/routes schema (fromChainId, fromAmount,
        fromTokenAddress, toChainId, toTokenAddress, fromAddress, toAddress, options).
        """

        payload = await self._request("POST", "/advanced/routes", json=request)
        return list((payload or {}).get("routes") or [])

    async def get_quote(
        self,
        chain_id: int,
        from_token: str,
        owner_address: str,
        from_amount: int,
        to_token: str,
        *,
        slippage: Optional[float] = None,
        integrator: Optional[str] = None,
        allowed_exchanges: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "fromChain": chain_id,
            "toChain": chain_id,
            "fromToken": from_token,
            "toToken": to_token,
            "fromAddress": owner_address,
            "fromAmount": str(from_amount),
        }
        if slippage is not None:
            params["slippage"] = slippage
        if integrator:
            params["integrator"] = integrator
        if allowed_exchanges:
            params["allowExchanges"] = list(allowed_exchanges)
        return await self._request("GET", "/quote", params=params)

    async def get_step_transaction(self, step: Dict[str, Any]) -> Dict[str, Any]:
        """Populate the transaction request of a route step."""

        payload = await self._request("POST", "/advanced/stepTransaction", json=step)
        if not isinstance(payload, dict) or not payload.get("transactionRequest"):
            raise LifiError(f"LI.FI returned no transaction for step {step.get('id')}")
        return payload

    async def get_status(
        self,
        tx_hash: str,
        *,
        bridge: Optional[str] = None,
        from_chain: Optional[int] = None,
        to_chain: Optional[int] = None,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {"txHash": tx_hash}
        if bridge:
            params["bridge"] = bridge
        if from_chain is not None:
            params["fromChain"] = from_chain
        if to_chain is not None:
            params["toChain"] = to_chain
        return await self._request("GET", "/status", params=params)
