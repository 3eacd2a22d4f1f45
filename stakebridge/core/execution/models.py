"""
Batch execution models and types.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class CallType(str, Enum):
    """Kinds of calls that make up a staking batch."""
    APPROVE = "approve"
    SWAP = "swap"
    STAKE = "stake"
    TRANSFER = "transfer"


class BatchStatus(str, Enum):
    """Batch lifecycle status."""
    BUILDING = "building"        # Calls being appended
    ESTIMATED = "estimated"      # Fee known, not yet submitted
    SUBMITTED = "submitted"      # Handed to the gateway
    CONFIRMED = "confirmed"      # Transaction hash observed
    ABORTED = "aborted"          # Cleared before submission


@dataclass(frozen=True)
class Call:
    """An unsigned, chain-agnostic instruction."""
    to: str
    data: str
    call_type: CallType = CallType.SWAP
    description: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"to": self.to, "data": self.data}


@dataclass(frozen=True)
class BatchCalls:
    """
    The six calls of a staking batch.

    Field order is the submission order: the allowance precedes both swaps,
    the stake follows the governance swap and its own approval, and the
    receipt-token transfer comes last.
    """
    approve_total: Call
    swap_gas: Call
    swap_governance: Call
    approve_stake: Call
    stake: Call
    transfer: Call

    def ordered(self) -> List[Call]:
        return [
            self.approve_total,
            self.swap_gas,
            self.swap_governance,
            self.approve_stake,
            self.stake,
            self.transfer,
        ]


@dataclass
class BatchEstimate:
    fee_amount: int
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass
class BatchSubmission:
    """Pending handle returned by the gateway on submission."""
    hash: str


@dataclass
class SubmittedBatch:
    """Status snapshot of a submitted batch; transaction_hash is set once mined."""
    hash: str
    transaction_hash: Optional[str] = None
    success: Optional[bool] = None

    @property
    def is_confirmed(self) -> bool:
        return bool(self.transaction_hash)


@dataclass
class Batch:
    """Calls accumulated for one gateway submission plus derived state."""
    calls: List[Call] = field(default_factory=list)
    estimated_fee: Optional[int] = None
    submitted_hash: Optional[str] = None
    transaction_hash: Optional[str] = None
    status: BatchStatus = BatchStatus.BUILDING

    @property
    def confirmed(self) -> bool:
        return self.status == BatchStatus.CONFIRMED


@dataclass
class BatchReceipt:
    """Result of a confirmed batch."""
    batch_hash: str
    transaction_hash: str
    estimated_fee: int
    calls: List[Call] = field(default_factory=list)
    poll_attempts: int = 0
    confirmed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
