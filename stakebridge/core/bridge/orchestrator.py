"""BridgeOrchestrator drives one bridge-swap-stake run from start to finish."""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from ...config import RunConfig
from ...providers.base import (
    BalanceProvider,
    ProviderError,
    RouteExecutor,
    RoutingProvider,
    SmartAccountGateway,
)
from ..errors import ConfigurationError, ExecutionFailureError, RouteUnavailableError, StakeBridgeError
from ..execution.batch_executor import BatchExecutor
from ..execution.models import BatchCalls
from ..execution.tx_builder import TransactionBuilder
from ..planning.planner import AmountPlan, AmountPlanner
from ..state import RunState, RunStateMachine
from ..swap.coordinator import QuoteCoordinator
from ..swap.models import QuotePair, SwapLeg
from .constants import CHAIN_METADATA
from .models import ChainRef, Route, RunReport, TokenRef
from .routing import RouteSelector, get_route_selector
from .settlement import observe_settled_balance


@dataclass(frozen=True)
class ResolvedAssets:
    """Chain and token identities a run works with."""

    source_chain: ChainRef
    destination_chain: ChainRef
    source_token: TokenRef
    bridged_token: TokenRef
    gas_token: TokenRef
    governance_token: TokenRef
    receipt_token: TokenRef


class BridgeOrchestrator:
    """Sequences route, bridge, plan, quote and batch for a single run.

    Every collaborator is injected; the orchestrator itself performs no I/O
    beyond awaiting them one after another.
    """

    def __init__(
        self,
        config: RunConfig,
        *,
        routing: RoutingProvider,
        route_executor: RouteExecutor,
        balances: BalanceProvider,
        gateway: SmartAccountGateway,
        owner_address: str,
        route_selector: Optional[RouteSelector] = None,
        planner: Optional[AmountPlanner] = None,
        coordinator: Optional[QuoteCoordinator] = None,
        batch_executor: Optional[BatchExecutor] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config
        self._routing = routing
        self._route_executor = route_executor
        self._balances = balances
        self._gateway = gateway
        self._owner_address = owner_address
        self._select_route = route_selector or get_route_selector(config.route_selection)
        self._planner = planner or AmountPlanner()
        self._coordinator = coordinator or QuoteCoordinator(
            routing,
            slippage=config.slippage,
            integrator=config.integrator,
            allowed_exchanges=config.allowed_exchanges,
        )
        self._batch_executor = batch_executor or BatchExecutor(
            gateway,
            poll_interval=config.confirmation_poll_interval_seconds,
            max_attempts=config.confirmation_max_attempts,
            sleep=sleep,
        )
        self._sleep = sleep
        self._logger = logger or logging.getLogger(__name__)
        self.run_id = uuid.uuid4().hex[:12]
        self.state = RunStateMachine(self.run_id, logger=self._logger)

    async def run(self) -> RunReport:
        try:
            return await self._run()
        except StakeBridgeError as exc:
            self.state.fail(exc)
            raise
        except (ProviderError, httpx.HTTPError) as exc:
            stage = self.state.current_state.value
            error = ExecutionFailureError(f"{type(exc).__name__}: {exc}", stage=stage)
            self.state.fail(error)
            raise error from exc

    async def _run(self) -> RunReport:
        config = self.config
        assets = await self.resolve_assets()
        smart_account = await self._gateway.compute_account()
        self._logger.info("Owner %s, smart account %s", self._owner_address, smart_account)

        self.state.transition_to(RunState.ROUTE_REQUESTED)
        from_amount = assets.source_token.to_base_units(config.bridge_amount)
        route = await self.request_route(assets, from_amount, smart_account)

        self.state.transition_to(RunState.BRIDGE_EXECUTING, reason=",".join(route.tools))
        await self._route_executor.execute_route(route, self._log_route_update)

        self.state.transition_to(RunState.BRIDGE_SETTLED)
        available = await self._read_settled_balance(smart_account, assets.bridged_token)

        self.state.transition_to(RunState.PLANNING)
        plan = self._plan(available, assets.bridged_token)

        self.state.transition_to(RunState.QUOTING)
        pair = await self._coordinator.quote_pair(
            SwapLeg("gas", assets.bridged_token, assets.gas_token, plan.gas_swap_amount, smart_account),
            SwapLeg("governance", assets.bridged_token, assets.governance_token, plan.stake_swap_amount, smart_account),
        )

        self.state.transition_to(RunState.BATCH_BUILDING)
        calls = self.build_calls(assets, pair)
        receipt = await self._batch_executor.execute(
            calls,
            pair.gas.to_amount_min,
            on_submitted=lambda batch_hash: self.state.transition_to(RunState.BATCH_SUBMITTED, reason=batch_hash),
        )

        balance = await self._balances.get_token_balance(self._owner_address, assets.receipt_token)
        self.state.transition_to(RunState.CONFIRMED, reason=receipt.transaction_hash)
        self._logger.info(
            "%s balance of %s: %s",
            assets.receipt_token.symbol,
            self._owner_address,
            assets.receipt_token.format_units(balance.amount),
        )

        return RunReport(
            route_id=route.id,
            bridged_amount=from_amount,
            available=available,
            gas_swap_amount=plan.gas_swap_amount,
            stake_swap_amount=plan.stake_swap_amount,
            estimated_fee=receipt.estimated_fee,
            transaction_hash=receipt.transaction_hash,
            receipt_token_balance=balance.amount,
            receipt_token_symbol=assets.receipt_token.symbol,
            receipt_token_decimals=balance.decimals,
        )

    async def resolve_assets(self) -> ResolvedAssets:
        config = self.config
        chains = {int(chain["id"]): chain for chain in await self._routing.get_chains()}
        source_chain = self._chain(chains, config.source_chain_id)
        destination_chain = self._chain(chains, config.destination_chain_id)

        async def token(chain_id: int, identifier: str) -> TokenRef:
            return TokenRef.from_lifi(await self._routing.get_token(chain_id, identifier))

        return ResolvedAssets(
            source_chain=source_chain,
            destination_chain=destination_chain,
            source_token=await token(source_chain.chain_id, config.bridge_token_symbol),
            bridged_token=await token(destination_chain.chain_id, config.bridge_token_symbol),
            gas_token=destination_chain.native_token,
            governance_token=await token(destination_chain.chain_id, config.governance_token_address),
            receipt_token=await token(destination_chain.chain_id, config.receipt_token_address),
        )

    @staticmethod
    def _chain(chains: Dict[int, Dict[str, Any]], chain_id: int) -> ChainRef:
        if chain_id in chains:
            return ChainRef.from_lifi(chains[chain_id])
        if chain_id in CHAIN_METADATA:
            return ChainRef.from_metadata(chain_id)
        raise ConfigurationError(f"Chain {chain_id} is not supported by the routing service", chain_id=chain_id)

    async def request_route(self, assets: ResolvedAssets, from_amount: int, smart_account: str) -> Route:
        config = self.config
        request = {
            "fromChainId": assets.source_chain.chain_id,
            "fromAmount": str(from_amount),
            "fromTokenAddress": assets.source_token.address,
            "fromAddress": self._owner_address,
            "toChainId": assets.destination_chain.chain_id,
            "toTokenAddress": assets.bridged_token.address,
            "toAddress": smart_account,
            "options": {
                "integrator": config.integrator,
                "slippage": config.slippage,
                "bridges": {"allow": list(config.allowed_bridges)},
            },
        }
        routes: List[Route] = [Route.from_lifi(item) for item in await self._routing.get_routes(request)]
        if not routes:
            raise RouteUnavailableError(
                from_chain_id=assets.source_chain.chain_id,
                to_chain_id=assets.destination_chain.chain_id,
                from_amount=from_amount,
                allowed_bridges=list(config.allowed_bridges),
            )

        route = self._select_route(routes)
        self._logger.info(
            "Selected route %s of %s via %s: %s -> %s (min %s)",
            route.id,
            len(routes),
            ",".join(route.tools),
            route.from_amount,
            route.to_amount,
            route.to_amount_min,
        )
        return route

    def _log_route_update(self, route: Route) -> None:
        execution = route.last_execution()
        if execution is None:
            return
        self._logger.info(
            "Bridge progress: status=%s substatus=%s tx=%s %s",
            execution.status,
            execution.substatus,
            execution.tx_hash,
            execution.message or "",
        )

    async def _read_settled_balance(self, smart_account: str, token: TokenRef) -> int:
        async def read() -> int:
            return (await self._balances.get_token_balance(smart_account, token)).amount

        available = await observe_settled_balance(
            read,
            attempts=self.config.settle_poll_attempts,
            interval=self.config.settle_poll_interval_seconds,
            sleep=self._sleep,
            log=self._logger,
        )
        self._logger.info("Bridged balance on destination: %s %s", token.format_units(available), token.symbol)
        return available

    def _plan(self, available: int, token: TokenRef) -> AmountPlan:
        config = self.config
        cap = token.to_base_units(config.stake_cap_amount) if config.stake_cap_amount is not None else None
        return self._planner.plan(
            available,
            token.to_base_units(config.gas_reserve_amount),
            cap,
            token=token.symbol,
        )

    def build_calls(self, assets: ResolvedAssets, pair: QuotePair) -> BatchCalls:
        """Build the six batch calls; staking uses the governance swap's guaranteed output."""

        staked = pair.governance.to_amount_min
        staking_contract = self.config.staking_contract_address
        return BatchCalls(
            approve_total=TransactionBuilder.build_approve(
                assets.bridged_token.address, pair.approval_address, pair.total_from_amount
            ),
            swap_gas=TransactionBuilder.build_from_quote(pair.gas),
            swap_governance=TransactionBuilder.build_from_quote(pair.governance),
            approve_stake=TransactionBuilder.build_approve(
                assets.governance_token.address, staking_contract, staked
            ),
            stake=TransactionBuilder.build_stake(staked, staking_contract),
            transfer=TransactionBuilder.build_transfer(
                assets.receipt_token.address, self._owner_address, staked
            ),
        )
