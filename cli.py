#!/usr/bin/env python3
"""Command line entry point for the bridge-and-stake workflow"""

import argparse
import asyncio
import json
import logging
import sys
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from stakebridge.config import RunConfig, settings
from stakebridge.core.bridge.models import RunReport, TokenRef
from stakebridge.core.bridge.orchestrator import BridgeOrchestrator
from stakebridge.core.errors import ConfigurationError, StakeBridgeError
from stakebridge.core.planning.planner import AmountPlanner
from stakebridge.logging_config import bind_run_context, clear_run_context, setup_logging
from stakebridge.providers.bundler import BundlerConfig, BundlerProvider
from stakebridge.providers.lifi import LifiProvider
from stakebridge.providers.rpc import JsonRpcClient, RpcBalanceProvider
from stakebridge.services.gateway import Erc4337Gateway
from stakebridge.services.route_executor import LifiRouteExecutor
from stakebridge.services.signer import MnemonicSigner


logger = logging.getLogger("stakebridge.cli")


def print_report(report: RunReport) -> None:
    """Pretty print the outcome of a confirmed run"""
    receipt = Decimal(report.receipt_token_balance) / (Decimal(10) ** report.receipt_token_decimals)
    print("\n✅ Run confirmed")
    print("=" * 50)
    print(f"Route:            {report.route_id}")
    print(f"Bridged:          {report.bridged_amount}")
    print(f"Available:        {report.available}")
    print(f"Gas swap:         {report.gas_swap_amount}")
    print(f"Stake swap:       {report.stake_swap_amount}")
    print(f"Estimated fee:    {report.estimated_fee}")
    print(f"Transaction:      {report.transaction_hash}")
    print(f"{report.receipt_token_symbol} balance: {receipt}")


def print_error(error: StakeBridgeError) -> None:
    print(f"❌ {error.kind.value} during {error.stage}: {error.message}", file=sys.stderr)
    for key, value in error.details.items():
        print(f"   {key}: {value}", file=sys.stderr)
    if error.context.suggested_action:
        print(f"   → {error.context.suggested_action}", file=sys.stderr)


async def cli_run(config: RunConfig) -> RunReport:
    """Build the clients from a validated config and drive one run"""
    signer = MnemonicSigner(config.mnemonic, config.derivation_path)
    source_rpc = JsonRpcClient(config.source_rpc_url, chain_id=config.source_chain_id)
    destination_rpc = JsonRpcClient(config.destination_rpc_url, chain_id=config.destination_chain_id)
    bundler = BundlerProvider(BundlerConfig(rpc_url=config.bundler_url))
    lifi = LifiProvider(
        base_url=config.lifi_base_url,
        api_key=config.lifi_api_key,
        timeout_s=settings.request_timeout_seconds,
    )

    orchestrator = BridgeOrchestrator(
        config,
        routing=lifi,
        route_executor=LifiRouteExecutor(
            lifi=lifi,
            signer=signer,
            rpc=source_rpc,
            status_poll_interval=config.bridge_status_poll_interval_seconds,
            status_max_attempts=config.bridge_status_max_attempts,
        ),
        balances=RpcBalanceProvider({
            config.source_chain_id: source_rpc,
            config.destination_chain_id: destination_rpc,
        }),
        gateway=Erc4337Gateway(
            signer=signer,
            rpc=destination_rpc,
            bundler=bundler,
            chain_id=config.destination_chain_id,
            entry_point=config.entry_point_address,
            factory=config.account_factory_address,
            salt=config.account_salt,
        ),
        owner_address=signer.address,
    )
    bind_run_context(run_id=orchestrator.run_id, owner=signer.address)
    try:
        return await orchestrator.run()
    finally:
        clear_run_context()
        await source_rpc.close()
        await destination_rpc.close()
        await bundler.close()


def _decimal(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"not a decimal amount: {value!r}") from None


def cli_plan(available: Decimal, reserve: Decimal, cap: Optional[Decimal], decimals: int, symbol: str) -> None:
    """Print the amount plan for a balance without touching the network"""
    token = TokenRef(chain_id=settings.destination_chain_id, address="", decimals=decimals, symbol=symbol)
    plan = AmountPlanner().plan(
        token.to_base_units(available),
        token.to_base_units(reserve),
        token.to_base_units(cap) if cap is not None else None,
        token=symbol,
    )
    print(f"\n📐 Amount plan ({symbol}, {decimals} decimals)")
    print("=" * 50)
    print(f"Available:   {token.format_units(plan.available)}")
    print(f"Gas swap:    {token.format_units(plan.gas_swap_amount)}")
    print(f"Stake swap:  {token.format_units(plan.stake_swap_amount)}")
    print(f"Unallocated: {token.format_units(plan.unallocated)}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Bridge a stablecoin, swap and stake through a smart account")
    parser.add_argument("--log-level", help="Override LOG_LEVEL (DEBUG, INFO, WARNING, ...)")
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Execute the full workflow")
    run_parser.add_argument("--amount", type=_decimal, help="Amount to bridge (default: BRIDGE_AMOUNT)")
    run_parser.add_argument("--reserve", type=_decimal, help="Gas reserve (default: GAS_RESERVE_AMOUNT)")
    run_parser.add_argument("--cap", type=_decimal, help="Stake cap (default: STAKE_CAP_AMOUNT)")
    run_parser.add_argument("--no-cap", action="store_true", help="Stake everything above the reserve")
    run_parser.add_argument(
        "--route-selection",
        choices=["first", "max_output", "fastest"],
        help="Route policy (default: ROUTE_SELECTION)",
    )
    run_parser.add_argument("--json", action="store_true", help="Print the report as JSON")

    plan_parser = subparsers.add_parser("plan", help="Show the amount split for a balance")
    plan_parser.add_argument("available", type=_decimal, help="Balance on the destination chain")
    plan_parser.add_argument("--reserve", type=_decimal, default=settings.gas_reserve_amount)
    plan_parser.add_argument("--cap", type=_decimal, default=settings.stake_cap_amount)
    plan_parser.add_argument("--no-cap", action="store_true")
    plan_parser.add_argument("--decimals", type=int, default=6)
    plan_parser.add_argument("--symbol", default=settings.bridge_token_symbol)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    if not args.command:
        parser.print_help()
        return 0

    try:
        if args.command == "plan":
            cli_plan(
                args.available,
                args.reserve,
                None if args.no_cap else args.cap,
                args.decimals,
                args.symbol,
            )
            return 0

        overrides = {}
        if args.amount is not None:
            overrides["bridge_amount"] = args.amount
        if args.reserve is not None:
            overrides["gas_reserve_amount"] = args.reserve
        if args.no_cap:
            overrides["stake_cap_amount"] = None
        elif args.cap is not None:
            overrides["stake_cap_amount"] = args.cap
        if args.route_selection:
            overrides["route_selection"] = args.route_selection

        config = RunConfig.from_settings(**overrides)
        report = asyncio.run(cli_run(config))
    except ConfigurationError as exc:
        print_error(exc)
        return 2
    except StakeBridgeError as exc:
        logger.debug("Run failed", exc_info=exc)
        print_error(exc)
        return 1

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        print_report(report)
    return 0


if __name__ == "__main__":
    sys.exit(main())
