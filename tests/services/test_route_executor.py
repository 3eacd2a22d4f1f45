"""Tests for step-by-step route execution from the key-based wallet."""

from typing import List
from unittest.mock import AsyncMock, MagicMock

import pytest

from stakebridge.core.bridge.models import Route
from stakebridge.core.errors import ExecutionFailureError
from stakebridge.core.execution.tx_builder import ERC20_APPROVE_SELECTOR
from stakebridge.services.route_executor import LifiRouteExecutor


OWNER = "0x50ac5CFcc81BB0872e85255D7079F8a529345D16"
USDC = "0x04068DA6C83AFCFA0e13ba15A6696662335D5B75"
BRIDGE = "0x1231DEB6f5749EF6cE6943a275A1D3E7486F4EaE"


def make_route() -> Route:
    return Route.from_lifi({
        "id": "route-1",
        "fromChainId": 250,
        "toChainId": 137,
        "fromAmount": "1000000",
        "toAmount": "995000",
        "toAmountMin": "990000",
        "steps": [{
            "id": "step-1",
            "type": "cross",
            "tool": "connext",
            "action": {"fromToken": {"address": USDC}, "fromAmount": "1000000"},
            "estimate": {"approvalAddress": BRIDGE},
        }],
    })


def make_executor(statuses, allowance: int = 0, receipt_status: str = "0x1"):
    lifi = AsyncMock()
    lifi.get_step_transaction.return_value = {
        "transactionRequest": {"to": BRIDGE, "data": "0xbeef", "value": "0x0", "gasLimit": "0x30d40", "gasPrice": "0x3b9aca00", "chainId": 250},
    }
    lifi.get_status.side_effect = statuses

    rpc = AsyncMock()
    rpc.chain_id = 250
    rpc.erc20_allowance.return_value = allowance
    rpc.get_transaction_count.return_value = 7
    rpc.estimate_gas.return_value = 50_000
    rpc.gas_price.return_value = 10**9
    rpc.send_raw_transaction.side_effect = ["0xapprove", "0xbridge"] if allowance == 0 else ["0xbridge"]
    rpc.wait_for_receipt.return_value = {"status": receipt_status}

    signer = MagicMock()
    signer.address = OWNER
    signer.sign_transaction.return_value = "0xsigned"

    sleep = AsyncMock()
    executor = LifiRouteExecutor(lifi=lifi, signer=signer, rpc=rpc, status_poll_interval=5, status_max_attempts=4, sleep=sleep)
    return executor, lifi, rpc, signer, sleep


@pytest.mark.asyncio
async def test_route_completes_and_reports_progress():
    executor, lifi, rpc, signer, sleep = make_executor([
        {"status": "PENDING", "substatus": "WAIT_DESTINATION_TRANSACTION"},
        {"status": "PENDING", "substatus": "WAIT_DESTINATION_TRANSACTION"},
        {"status": "DONE", "substatus": "COMPLETED", "receiving": {"txHash": "0xdest"}},
    ])
    updates: List[str] = []

    route = await executor.execute_route(make_route(), lambda r: updates.append(r.last_execution().status))

    assert route.is_done
    assert route.last_execution().receiving_tx_hash == "0xdest"
    assert lifi.get_status.await_count == 3
    assert sleep.await_count == 2
    # pending, action required, pending with hash, one update per distinct status
    assert updates == ["PENDING", "ACTION_REQUIRED", "PENDING", "PENDING", "DONE"]


@pytest.mark.asyncio
async def test_missing_allowance_is_approved_first():
    executor, _, rpc, signer, _ = make_executor([{"status": "DONE"}])

    await executor.execute_route(make_route())

    approve_tx = signer.sign_transaction.call_args_list[0].args[0]
    assert approve_tx["to"] == USDC
    assert approve_tx["data"].startswith(ERC20_APPROVE_SELECTOR)
    bridge_tx = signer.sign_transaction.call_args_list[1].args[0]
    assert bridge_tx["to"] == BRIDGE
    assert bridge_tx["gas"] == 200_000
    assert bridge_tx["gasPrice"] == 10**9
    assert bridge_tx["nonce"] == 7
    assert "from" not in bridge_tx


@pytest.mark.asyncio
async def test_existing_allowance_skips_approval():
    executor, _, rpc, signer, _ = make_executor([{"status": "DONE"}], allowance=10**12)

    await executor.execute_route(make_route())

    assert signer.sign_transaction.call_count == 1


@pytest.mark.asyncio
async def test_failed_bridge_is_execution_failure():
    executor, *_ = make_executor([{"status": "FAILED", "substatus": "REFUNDED"}], allowance=10**12)

    with pytest.raises(ExecutionFailureError) as excinfo:
        await executor.execute_route(make_route())

    assert excinfo.value.stage == "bridge_executing"
    assert excinfo.value.details["substatus"] == "REFUNDED"


@pytest.mark.asyncio
async def test_reverted_source_transaction_is_execution_failure():
    executor, lifi, *_ = make_executor([], allowance=10**12, receipt_status="0x0")

    with pytest.raises(ExecutionFailureError):
        await executor.execute_route(make_route())

    lifi.get_status.assert_not_awaited()


@pytest.mark.asyncio
async def test_status_polling_is_bounded():
    executor, *_ = make_executor([{"status": "PENDING"}] * 4, allowance=10**12)

    with pytest.raises(ExecutionFailureError) as excinfo:
        await executor.execute_route(make_route())

    assert excinfo.value.details["attempts"] == 4
