"""Typed models used by the swap subsystem."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..bridge.models import TokenRef
from ..execution.models import Call, CallType


@dataclass(frozen=True)
class SwapLeg:
    """One same-chain swap the smart account needs to perform."""

    name: str
    from_token: TokenRef
    to_token: TokenRef
    from_amount: int
    owner_address: str


@dataclass
class Quote:
    """Unsigned swap instruction plus the spender that needs an allowance."""

    from_amount: int
    to_amount: int
    to_amount_min: int
    approval_address: str
    call: Optional[Call] = None
    tool: str = ""
    from_symbol: str = ""
    to_symbol: str = ""
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_lifi(cls, data: Dict[str, Any]) -> "Quote":
        estimate = data.get("estimate") or {}
        action = data.get("action") or {}
        tx_request = data.get("transactionRequest") or {}
        call: Optional[Call] = None
        if tx_request.get("to") and tx_request.get("data"):
            call = Call(to=tx_request["to"], data=tx_request["data"], call_type=CallType.SWAP)
        return cls(
            from_amount=int(estimate.get("fromAmount") or action.get("fromAmount") or 0),
            to_amount=int(estimate.get("toAmount") or 0),
            to_amount_min=int(estimate.get("toAmountMin") or estimate.get("toAmount") or 0),
            approval_address=estimate.get("approvalAddress") or "",
            call=call,
            tool=data.get("tool", ""),
            from_symbol=(action.get("fromToken") or {}).get("symbol", ""),
            to_symbol=(action.get("toToken") or {}).get("symbol", ""),
            raw=data,
        )


@dataclass
class QuotePair:
    """Validated quotes for the gas leg and the governance-token leg."""

    gas: Quote
    governance: Quote

    @property
    def approval_address(self) -> str:
        return self.gas.approval_address

    @property
    def total_from_amount(self) -> int:
        return self.gas.from_amount + self.governance.from_amount

    def quotes(self) -> List[Quote]:
        return [self.gas, self.governance]
