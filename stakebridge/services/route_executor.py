"""
Executes a LI.FI route from the key-based wallet on the source chain.

For every step: populate the step transaction, make sure the bridge contract
holds an allowance, sign and send, wait for the source receipt, then follow the
routing service's status endpoint until the destination side settles.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from ..core.bridge.constants import (
    STATUS_ACTION_REQUIRED,
    STATUS_DONE,
    STATUS_FAILED,
    STATUS_PENDING,
    TERMINAL_STEP_STATUSES,
)
from ..core.bridge.models import Route, RouteStep, StepExecution
from ..core.errors import ExecutionFailureError
from ..core.execution.tx_builder import TransactionBuilder
from ..providers.base import RouteExecutor, RouteUpdateCallback
from ..providers.lifi import LifiProvider
from ..providers.rpc import JsonRpcClient
from .signer import Signer


NATIVE_ADDRESSES = {
    "0x0000000000000000000000000000000000000000",
    "0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee",
}


def _hex_int(value: Any, default: int = 0) -> int:
    if value is None:
        return default
    if isinstance(value, int):
        return value
    text = str(value)
    return int(text, 16) if text.startswith("0x") else int(text)


class LifiRouteExecutor(RouteExecutor):
    def __init__(
        self,
        *,
        lifi: LifiProvider,
        signer: Signer,
        rpc: JsonRpcClient,
        status_poll_interval: float = 10.0,
        status_max_attempts: int = 360,
        gas_multiplier: float = 1.2,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._lifi = lifi
        self._signer = signer
        self._rpc = rpc
        self._status_poll_interval = status_poll_interval
        self._status_max_attempts = status_max_attempts
        self._gas_multiplier = gas_multiplier
        self._sleep = sleep
        self._logger = logger or logging.getLogger(__name__)

    async def execute_route(self, route: Route, on_update: Optional[RouteUpdateCallback] = None) -> Route:
        def notify() -> None:
            if on_update is not None:
                on_update(route)

        for step in route.steps:
            step.execution = StepExecution(status=STATUS_PENDING)
            notify()

            populated = await self._lifi.get_step_transaction(step.raw)
            await self._ensure_allowance(step)

            step.execution = StepExecution(status=STATUS_ACTION_REQUIRED, message="Sign the bridge transaction")
            notify()
            tx_hash = await self._send(populated["transactionRequest"])
            step.execution = StepExecution(status=STATUS_PENDING, tx_hash=tx_hash, message="Waiting for source receipt")
            notify()

            receipt = await self._rpc.wait_for_receipt(tx_hash)
            if _hex_int(receipt.get("status"), 1) != 1:
                step.execution = StepExecution(status=STATUS_FAILED, tx_hash=tx_hash, message="Source transaction reverted")
                notify()
                raise ExecutionFailureError(
                    "Bridge transaction reverted on the source chain",
                    stage="bridge_executing",
                    tx_hash=tx_hash,
                    step_id=step.id,
                    tool=step.tool,
                )

            await self._wait_for_bridge(route, step, tx_hash, notify)

        return route

    async def _ensure_allowance(self, step: RouteStep) -> None:
        from_token = (step.action.get("fromToken") or {}).get("address", "")
        spender = step.approval_address
        if not spender or from_token.lower() in NATIVE_ADDRESSES:
            return

        amount = int(step.action.get("fromAmount") or 0)
        owner = self._signer.address
        current = await self._rpc.erc20_allowance(from_token, owner, spender)
        if current >= amount:
            return

        self._logger.info("Setting allowance of %s for %s on %s", amount, spender, from_token)
        approve = TransactionBuilder.build_approve(from_token, spender, amount)
        tx_hash = await self._send({"to": approve.to, "data": approve.data})
        receipt = await self._rpc.wait_for_receipt(tx_hash)
        if _hex_int(receipt.get("status"), 1) != 1:
            raise ExecutionFailureError(
                "Allowance transaction reverted",
                stage="bridge_executing",
                tx_hash=tx_hash,
                token=from_token,
                spender=spender,
            )

    async def _send(self, tx_request: Dict[str, Any]) -> str:
        owner = self._signer.address
        tx: Dict[str, Any] = {
            "from": owner,
            "to": tx_request["to"],
            "data": tx_request.get("data", "0x"),
            "value": _hex_int(tx_request.get("value")),
            "chainId": _hex_int(tx_request.get("chainId"), self._rpc.chain_id or 0),
            "nonce": await self._rpc.get_transaction_count(owner),
        }
        if tx_request.get("gasLimit"):
            tx["gas"] = _hex_int(tx_request["gasLimit"])
        else:
            estimate = await self._rpc.estimate_gas({"from": owner, "to": tx["to"], "data": tx["data"], "value": hex(tx["value"])})
            tx["gas"] = int(estimate * self._gas_multiplier)
        tx["gasPrice"] = _hex_int(tx_request.get("gasPrice")) or await self._rpc.gas_price()

        raw = self._signer.sign_transaction({k: v for k, v in tx.items() if k != "from"})
        tx_hash = await self._rpc.send_raw_transaction(raw)
        self._logger.info("Sent transaction %s to %s", tx_hash, tx["to"])
        return tx_hash

    async def _wait_for_bridge(
        self,
        route: Route,
        step: RouteStep,
        tx_hash: str,
        notify: Callable[[], None],
    ) -> None:
        last_seen: Optional[Tuple[str, Optional[str]]] = None
        for _ in range(self._status_max_attempts):
            status = await self._lifi.get_status(
                tx_hash,
                bridge=step.tool,
                from_chain=route.from_chain_id,
                to_chain=route.to_chain_id,
            )
            state = status.get("status") or STATUS_PENDING
            substatus = status.get("substatus")
            receiving = (status.get("receiving") or {}).get("txHash")

            if (state, substatus) != last_seen:
                step.execution = StepExecution(
                    status=state if state in TERMINAL_STEP_STATUSES else STATUS_PENDING,
                    tx_hash=tx_hash,
                    substatus=substatus,
                    message=status.get("substatusMessage"),
                    receiving_tx_hash=receiving,
                )
                notify()
                last_seen = (state, substatus)

            if state == STATUS_DONE:
                return
            if state == STATUS_FAILED:
                raise ExecutionFailureError(
                    "Bridge transfer failed",
                    stage="bridge_executing",
                    tx_hash=tx_hash,
                    substatus=substatus,
                    tool=step.tool,
                )
            await self._sleep(self._status_poll_interval)

        raise ExecutionFailureError(
            "Bridge transfer did not settle in time",
            stage="bridge_executing",
            tx_hash=tx_hash,
            attempts=self._status_max_attempts,
        )
