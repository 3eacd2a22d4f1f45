"""Typed models used by the bridge subsystem."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_DOWN
from typing import Any, Dict, List, Optional

from .constants import CHAIN_METADATA, NATIVE_PLACEHOLDER, STATUS_DONE


@dataclass(frozen=True)
class TokenRef:
    """A token on a specific chain; native assets use the zero-address sentinel."""

    chain_id: int
    address: str
    decimals: int
    symbol: str
    name: Optional[str] = None

    @property
    def is_native(self) -> bool:
        return self.address.lower() == NATIVE_PLACEHOLDER

    def to_base_units(self, amount: Decimal) -> int:
        """Convert a human amount to smallest units, rounding down."""
        scaled = (Decimal(amount) * (Decimal(10) ** self.decimals)).quantize(Decimal('1'), rounding=ROUND_DOWN)
        return int(scaled)

    def format_units(self, amount: int) -> Decimal:
        return Decimal(amount) / (Decimal(10) ** self.decimals)

    @classmethod
    def from_lifi(cls, data: Dict[str, Any]) -> "TokenRef":
        return cls(
            chain_id=int(data["chainId"]),
            address=data["address"],
            decimals=int(data["decimals"]),
            symbol=data["symbol"],
            name=data.get("name"),
        )


@dataclass(frozen=True)
class ChainRef:
    """Chain identifier plus its native gas-token identity."""

    chain_id: int
    name: str
    key: str
    native_token: TokenRef

    @classmethod
    def from_lifi(cls, data: Dict[str, Any]) -> "ChainRef":
        chain_id = int(data["id"])
        native = data.get("nativeToken") or {}
        native_token = TokenRef(
            chain_id=chain_id,
            address=native.get("address", NATIVE_PLACEHOLDER),
            decimals=int(native.get("decimals", 18)),
            symbol=native.get("symbol") or data.get("coin", ""),
            name=native.get("name"),
        )
        return cls(chain_id=chain_id, name=data.get("name", ""), key=data.get("key", ""), native_token=native_token)

    @classmethod
    def from_metadata(cls, chain_id: int) -> "ChainRef":
        details = CHAIN_METADATA[chain_id]
        native_token = TokenRef(
            chain_id=chain_id,
            address=NATIVE_PLACEHOLDER,
            decimals=details['native_decimals'],
            symbol=details['native_symbol'],
        )
        return cls(chain_id=chain_id, name=details['name'], key=details['key'], native_token=native_token)


@dataclass
class StepExecution:
    """Latest known execution state of a single route step."""

    status: str
    tx_hash: Optional[str] = None
    substatus: Optional[str] = None
    message: Optional[str] = None
    receiving_tx_hash: Optional[str] = None


@dataclass
class RouteStep:
    id: str
    type: str
    tool: str
    action: Dict[str, Any] = field(default_factory=dict)
    estimate: Dict[str, Any] = field(default_factory=dict)
    raw: Dict[str, Any] = field(default_factory=dict)
    execution: Optional[StepExecution] = None

    @property
    def approval_address(self) -> Optional[str]:
        return self.estimate.get("approvalAddress")

    @property
    def execution_duration(self) -> float:
        return float(self.estimate.get("executionDuration") or 0)

    @classmethod
    def from_lifi(cls, data: Dict[str, Any]) -> "RouteStep":
        return cls(
            id=str(data.get("id", "")),
            type=data.get("type", ""),
            tool=data.get("tool", ""),
            action=data.get("action") or {},
            estimate=data.get("estimate") or {},
            raw=data,
        )


@dataclass
class Route:
    """Ordered sequence of bridge steps returned by the routing service."""

    id: str
    from_chain_id: int
    to_chain_id: int
    from_amount: int
    to_amount: int
    to_amount_min: int
    from_address: str
    to_address: str
    steps: List[RouteStep] = field(default_factory=list)
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def tools(self) -> List[str]:
        return [step.tool for step in self.steps]

    @property
    def execution_duration(self) -> float:
        return sum(step.execution_duration for step in self.steps)

    @property
    def is_done(self) -> bool:
        return bool(self.steps) and all(
            step.execution is not None and step.execution.status == STATUS_DONE for step in self.steps
        )

    def last_execution(self) -> Optional[StepExecution]:
        """Most recent execution among the steps, in step order."""
        latest: Optional[StepExecution] = None
        for step in self.steps:
            if step.execution:
                latest = step.execution
        return latest

    @classmethod
    def from_lifi(cls, data: Dict[str, Any]) -> "Route":
        return cls(
            id=str(data.get("id", "")),
            from_chain_id=int(data["fromChainId"]),
            to_chain_id=int(data["toChainId"]),
            from_amount=int(data["fromAmount"]),
            to_amount=int(data.get("toAmount") or 0),
            to_amount_min=int(data.get("toAmountMin") or 0),
            from_address=data.get("fromAddress", ""),
            to_address=data.get("toAddress", ""),
            steps=[RouteStep.from_lifi(step) for step in data.get("steps") or []],
            raw=data,
        )


@dataclass
class RunReport:
    """Outcome of a confirmed run."""

    route_id: str
    bridged_amount: int
    available: int
    gas_swap_amount: int
    stake_swap_amount: int
    estimated_fee: int
    transaction_hash: str
    receipt_token_balance: int
    receipt_token_symbol: str
    receipt_token_decimals: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "routeId": self.route_id,
            "bridgedAmount": str(self.bridged_amount),
            "available": str(self.available),
            "gasSwapAmount": str(self.gas_swap_amount),
            "stakeSwapAmount": str(self.stake_swap_amount),
            "estimatedFee": str(self.estimated_fee),
            "transactionHash": self.transaction_hash,
            "receiptTokenBalance": str(self.receipt_token_balance),
            "receiptTokenSymbol": self.receipt_token_symbol,
            "receiptTokenDecimals": self.receipt_token_decimals,
        }


@dataclass(frozen=True)
class TokenBalance:
    amount: int
    decimals: int
