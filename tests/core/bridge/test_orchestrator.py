"""End-to-end tests for the run orchestrator with scripted collaborators."""

from decimal import Decimal
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock

import httpx
import pytest

from stakebridge.config import KLIMA_ADDRESS, SKLIMA_ADDRESS, STAKE_KLIMA_CONTRACT_ADDRESS, RunConfig
from stakebridge.core.bridge.models import TokenBalance, TokenRef
from stakebridge.core.bridge.orchestrator import BridgeOrchestrator
from stakebridge.core.errors import (
    ErrorKind,
    ExecutionFailureError,
    FeeShortfallError,
    InsufficientFundsError,
    QuoteMismatchError,
    RouteUnavailableError,
)
from stakebridge.core.execution.models import (
    BatchEstimate,
    BatchSubmission,
    Call,
    CallType,
    SubmittedBatch,
)
from stakebridge.core.execution.tx_builder import STAKE_SELECTOR
from stakebridge.core.state import RunState
from stakebridge.providers.base import SmartAccountGateway


OWNER = "0x50ac5CFcc81BB0872e85255D7079F8a529345D16"
ACCOUNT = "0x9999999999999999999999999999999999999999"
SPENDER = "0x216B4B4Ba9F3e719726886d34a177484278Bfcae"
FANTOM_USDC = "0x04068DA6C83AFCFA0e13ba15A6696662335D5B75"
POLYGON_USDC = "0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174"
NATIVE = "0x0000000000000000000000000000000000000000"

TOKENS = {
    (250, "USDC"): {"chainId": 250, "address": FANTOM_USDC, "decimals": 6, "symbol": "USDC"},
    (137, "USDC"): {"chainId": 137, "address": POLYGON_USDC, "decimals": 6, "symbol": "USDC"},
    (137, KLIMA_ADDRESS): {"chainId": 137, "address": KLIMA_ADDRESS, "decimals": 9, "symbol": "KLIMA"},
    (137, SKLIMA_ADDRESS): {"chainId": 137, "address": SKLIMA_ADDRESS, "decimals": 9, "symbol": "sKLIMA"},
}

CHAINS = [
    {"id": 250, "key": "ftm", "name": "Fantom", "nativeToken": {"address": NATIVE, "decimals": 18, "symbol": "FTM"}},
    {"id": 137, "key": "pol", "name": "Polygon", "nativeToken": {"address": NATIVE, "decimals": 18, "symbol": "MATIC"}},
]

ROUTE = {
    "id": "route-1",
    "fromChainId": 250,
    "toChainId": 137,
    "fromAmount": "1000000",
    "toAmount": "1000000",
    "toAmountMin": "995000",
    "fromAddress": OWNER,
    "toAddress": ACCOUNT,
    "steps": [{"id": "step-1", "type": "cross", "tool": "connext", "estimate": {"executionDuration": 300}}],
}


def lifi_quote(from_amount: int, to_amount_min: int, approval: str = SPENDER) -> Dict[str, Any]:
    return {
        "tool": "paraswap",
        "action": {"fromAmount": str(from_amount)},
        "estimate": {
            "fromAmount": str(from_amount),
            "toAmount": str(to_amount_min),
            "toAmountMin": str(to_amount_min),
            "approvalAddress": approval,
        },
        "transactionRequest": {"to": approval, "data": "0xc0ffee"},
    }


class ScriptedGateway(SmartAccountGateway):
    def __init__(self, fee: int):
        self.fee = fee
        self.calls: List[Call] = []
        self.added: List[Call] = []
        self.submitted = False

    async def compute_account(self) -> str:
        return ACCOUNT

    async def add_batch_call(self, call: Call) -> None:
        self.calls.append(call)
        self.added.append(call)

    async def clear_batch(self) -> None:
        self.calls.clear()

    async def estimate_batch(self) -> BatchEstimate:
        return BatchEstimate(fee_amount=self.fee)

    async def submit_batch(self) -> BatchSubmission:
        self.submitted = True
        return BatchSubmission(hash="0xop")

    async def get_batch(self, batch_hash: str) -> SubmittedBatch:
        return SubmittedBatch(hash=batch_hash, transaction_hash="0xmined", success=True)


def make_config(**overrides: Any) -> RunConfig:
    values: Dict[str, Any] = dict(
        mnemonic="test test test test test test test test test test test junk",
        source_chain_id=250,
        destination_chain_id=137,
        source_rpc_url="http://source",
        destination_rpc_url="http://destination",
        bundler_url="http://bundler",
        bridge_token_symbol="USDC",
        bridge_amount=Decimal("1"),
        gas_reserve_amount=Decimal("0.2"),
        stake_cap_amount=None,
        governance_token_address=KLIMA_ADDRESS,
        receipt_token_address=SKLIMA_ADDRESS,
        staking_contract_address=STAKE_KLIMA_CONTRACT_ADDRESS,
        allowed_bridges=["connext"],
        allowed_exchanges=["paraswap"],
    )
    values.update(overrides)
    return RunConfig(**values)


def make_routing(quotes: List[Dict[str, Any]], routes: Optional[List[Dict[str, Any]]] = None) -> AsyncMock:
    routing = AsyncMock()
    routing.get_chains.return_value = CHAINS
    routing.get_token.side_effect = lambda chain_id, token: TOKENS[(chain_id, token)]
    routing.get_routes.return_value = [ROUTE] if routes is None else routes
    routing.get_quote.side_effect = quotes
    return routing


def make_balances(available: int = 1_000_000, staked: int = 7_000_000_000) -> AsyncMock:
    async def get_token_balance(address: str, token: TokenRef) -> TokenBalance:
        if token.symbol == "USDC":
            assert address == ACCOUNT
            return TokenBalance(amount=available, decimals=6)
        assert address == OWNER
        return TokenBalance(amount=staked, decimals=9)

    balances = AsyncMock()
    balances.get_token_balance.side_effect = get_token_balance
    return balances


def make_orchestrator(routing, gateway, balances=None, **config_overrides) -> BridgeOrchestrator:
    route_executor = AsyncMock()
    route_executor.execute_route.side_effect = lambda route, on_update: route
    return BridgeOrchestrator(
        make_config(**config_overrides),
        routing=routing,
        route_executor=route_executor,
        balances=balances or make_balances(),
        gateway=gateway,
        owner_address=OWNER,
        sleep=AsyncMock(),
    )


@pytest.mark.asyncio
async def test_successful_run_builds_and_confirms_six_calls():
    gas_min = 5 * 10**16
    stake_min = 7_000_000_000
    routing = make_routing([lifi_quote(200_000, gas_min), lifi_quote(800_000, stake_min)])
    gateway = ScriptedGateway(fee=10**16)
    orchestrator = make_orchestrator(routing, gateway)

    report = await orchestrator.run()

    assert report.gas_swap_amount == 200_000
    assert report.stake_swap_amount == 800_000
    assert report.transaction_hash == "0xmined"
    assert report.receipt_token_symbol == "sKLIMA"
    assert report.receipt_token_balance == stake_min
    assert orchestrator.state.current_state == RunState.CONFIRMED

    calls = gateway.added
    assert [c.call_type for c in calls] == [
        CallType.APPROVE,
        CallType.SWAP,
        CallType.SWAP,
        CallType.APPROVE,
        CallType.STAKE,
        CallType.TRANSFER,
    ]
    approve_total, _, _, approve_stake, stake, transfer = calls
    assert approve_total.to == POLYGON_USDC
    assert int(approve_total.data[-64:], 16) == 1_000_000
    assert SPENDER[2:].lower() in approve_total.data
    assert approve_stake.to == KLIMA_ADDRESS
    assert stake.data == STAKE_SELECTOR + format(stake_min, "064x")
    assert transfer.to == SKLIMA_ADDRESS
    assert OWNER[2:].lower() in transfer.data

    visited = [t.to_state for t in orchestrator.state.history]
    assert visited == [
        RunState.ROUTE_REQUESTED,
        RunState.BRIDGE_EXECUTING,
        RunState.BRIDGE_SETTLED,
        RunState.PLANNING,
        RunState.QUOTING,
        RunState.BATCH_BUILDING,
        RunState.BATCH_SUBMITTED,
        RunState.CONFIRMED,
    ]


@pytest.mark.asyncio
async def test_route_request_is_constrained_to_allowed_bridges():
    routing = make_routing([lifi_quote(200_000, 10**17), lifi_quote(800_000, 1)])
    orchestrator = make_orchestrator(routing, ScriptedGateway(fee=1))

    await orchestrator.run()

    request = routing.get_routes.await_args.args[0]
    assert request["fromChainId"] == 250
    assert request["toChainId"] == 137
    assert request["fromAmount"] == "1000000"
    assert request["fromTokenAddress"] == FANTOM_USDC
    assert request["toAddress"] == ACCOUNT
    assert request["options"]["bridges"] == {"allow": ["connext"]}
    assert request["options"]["integrator"] == "lifi-pillar"


@pytest.mark.asyncio
async def test_fee_shortfall_fails_run_without_submission():
    # gas quote guarantees 0.05 MATIC while the batch costs 0.06
    routing = make_routing([lifi_quote(200_000, 5 * 10**16), lifi_quote(800_000, 7_000_000_000)])
    gateway = ScriptedGateway(fee=6 * 10**16)
    orchestrator = make_orchestrator(routing, gateway)

    with pytest.raises(FeeShortfallError) as excinfo:
        await orchestrator.run()

    assert len(gateway.added) == 6
    assert gateway.submitted is False
    assert gateway.calls == []
    assert excinfo.value.details == {"expected_gas_output": 5 * 10**16, "estimated_fee": 6 * 10**16}
    assert orchestrator.state.current_state == RunState.FAILED
    assert orchestrator.state.history[-1].from_state == RunState.BATCH_BUILDING


@pytest.mark.asyncio
async def test_cap_limits_governance_leg():
    routing = make_routing([lifi_quote(200_000, 10**17), lifi_quote(500_000, 1)])
    orchestrator = make_orchestrator(routing, ScriptedGateway(fee=1), stake_cap_amount=Decimal("0.5"))

    report = await orchestrator.run()

    assert report.stake_swap_amount == 500_000
    governance_call = routing.get_quote.await_args_list[1]
    assert governance_call.args[3] == 500_000
    assert governance_call.args[4] == KLIMA_ADDRESS


@pytest.mark.asyncio
async def test_no_route_is_route_unavailable():
    routing = make_routing([], routes=[])
    gateway = ScriptedGateway(fee=1)
    orchestrator = make_orchestrator(routing, gateway)

    with pytest.raises(RouteUnavailableError) as excinfo:
        await orchestrator.run()

    assert excinfo.value.kind == ErrorKind.ROUTE_UNAVAILABLE
    assert excinfo.value.details["allowed_bridges"] == ["connext"]
    assert orchestrator.state.current_state == RunState.FAILED
    routing.get_quote.assert_not_awaited()
    assert gateway.added == []


@pytest.mark.asyncio
async def test_quote_mismatch_builds_no_calls():
    routing = make_routing([lifi_quote(200_000, 10**17, approval="0xABC"), lifi_quote(800_000, 1, approval="0xDEF")])
    gateway = ScriptedGateway(fee=1)
    orchestrator = make_orchestrator(routing, gateway)

    with pytest.raises(QuoteMismatchError) as excinfo:
        await orchestrator.run()

    assert excinfo.value.kind == ErrorKind.QUOTE_MISMATCH
    assert gateway.added == []
    assert orchestrator.state.history[-1].from_state == RunState.QUOTING


@pytest.mark.asyncio
async def test_insufficient_destination_balance_fails_in_planning():
    routing = make_routing([])
    orchestrator = make_orchestrator(routing, ScriptedGateway(fee=1), balances=make_balances(available=100_000))

    with pytest.raises(InsufficientFundsError) as excinfo:
        await orchestrator.run()

    assert excinfo.value.kind == ErrorKind.INSUFFICIENT_FUNDS
    assert excinfo.value.details["available"] == 100_000
    assert excinfo.value.details["reserve"] == 200_000


@pytest.mark.asyncio
async def test_transport_error_is_wrapped_with_stage():
    routing = make_routing([])
    routing.get_routes.side_effect = httpx.ConnectError("connection refused")
    orchestrator = make_orchestrator(routing, ScriptedGateway(fee=1))

    with pytest.raises(ExecutionFailureError) as excinfo:
        await orchestrator.run()

    assert excinfo.value.stage == "route_requested"
    assert orchestrator.state.current_state == RunState.FAILED


@pytest.mark.asyncio
async def test_quotes_without_spender_fail_run_in_quoting():
    gas_quote = lifi_quote(200_000, 10**17)
    governance_quote = lifi_quote(800_000, 1)
    for quote in (gas_quote, governance_quote):
        del quote["estimate"]["approvalAddress"]
    routing = make_routing([gas_quote, governance_quote])
    gateway = ScriptedGateway(fee=1)
    orchestrator = make_orchestrator(routing, gateway)

    with pytest.raises(ExecutionFailureError) as excinfo:
        await orchestrator.run()

    assert excinfo.value.stage == "quoting"
    assert gateway.added == []
    assert orchestrator.state.current_state == RunState.FAILED
    assert orchestrator.state.history[-1].from_state == RunState.QUOTING
