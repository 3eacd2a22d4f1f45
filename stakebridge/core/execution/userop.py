"""
ERC-4337 (EntryPoint v0.6) UserOperation models and helpers.
"""

from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from eth_utils import keccak

from .encoding import encode_address, encode_uint, keccak_hex


# 65-byte placeholder accepted by SimpleAccount signature recovery during estimation
DUMMY_SIGNATURE = (
    "0xfffffffffffffffffffffffffffffff0000000000000000000000000000000007"
    "aaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa1c"
)


def _to_hex(value: int) -> str:
    return hex(value)


def _parse_hex(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, int):
        return value
    return int(value, 16)


@dataclass
class UserOperation:
    """
    ERC-4337 UserOperation payload.

    Values should be supplied in raw units (wei / gas units) and are encoded
    as hex for RPC calls.
    """
    sender: str
    nonce: int
    init_code: str
    call_data: str
    call_gas_limit: int
    verification_gas_limit: int
    pre_verification_gas: int
    max_fee_per_gas: int
    max_priority_fee_per_gas: int
    paymaster_and_data: str = "0x"
    signature: str = "0x"

    @property
    def total_gas(self) -> int:
        return self.call_gas_limit + self.verification_gas_limit + self.pre_verification_gas

    @property
    def max_cost(self) -> int:
        """Upper bound of the fee charged to the account, in native wei."""
        return self.total_gas * self.max_fee_per_gas

    def with_gas(self, estimate: "UserOpGasEstimate") -> "UserOperation":
        return replace(
            self,
            call_gas_limit=estimate.call_gas_limit,
            verification_gas_limit=estimate.verification_gas_limit,
            pre_verification_gas=estimate.pre_verification_gas,
        )

    def to_rpc_dict(self) -> Dict[str, Any]:
        return {
            "sender": self.sender,
            "nonce": _to_hex(self.nonce),
            "initCode": self.init_code,
            "callData": self.call_data,
            "callGasLimit": _to_hex(self.call_gas_limit),
            "verificationGasLimit": _to_hex(self.verification_gas_limit),
            "preVerificationGas": _to_hex(self.pre_verification_gas),
            "maxFeePerGas": _to_hex(self.max_fee_per_gas),
            "maxPriorityFeePerGas": _to_hex(self.max_priority_fee_per_gas),
            "paymasterAndData": self.paymaster_and_data,
            "signature": self.signature,
        }

    def hash(self, entry_point: str, chain_id: int) -> str:
        """UserOperation hash that the account owner signs."""
        packed = (
            encode_address(self.sender)
            + encode_uint(self.nonce)
            + keccak_hex(self.init_code)
            + keccak_hex(self.call_data)
            + encode_uint(self.call_gas_limit)
            + encode_uint(self.verification_gas_limit)
            + encode_uint(self.pre_verification_gas)
            + encode_uint(self.max_fee_per_gas)
            + encode_uint(self.max_priority_fee_per_gas)
            + keccak_hex(self.paymaster_and_data)
        )
        inner = keccak_hex(packed)
        outer = keccak(hexstr=inner + encode_address(entry_point) + encode_uint(chain_id))
        return "0x" + outer.hex()


@dataclass
class UserOpGasEstimate:
    call_gas_limit: int
    verification_gas_limit: int
    pre_verification_gas: int

    @classmethod
    def from_rpc(cls, data: Dict[str, Any]) -> "UserOpGasEstimate":
        return cls(
            call_gas_limit=_parse_hex(data.get("callGasLimit")) or 0,
            verification_gas_limit=_parse_hex(data.get("verificationGasLimit")) or 0,
            pre_verification_gas=_parse_hex(data.get("preVerificationGas")) or 0,
        )


@dataclass
class UserOpReceipt:
    user_op_hash: str
    success: bool
    transaction_hash: Optional[str] = None
    block_number: Optional[int] = None
    actual_gas_cost: Optional[int] = None
    reason: Optional[str] = None

    @classmethod
    def from_rpc(cls, user_op_hash: str, data: Dict[str, Any]) -> "UserOpReceipt":
        receipt = data.get("receipt") or {}
        return cls(
            user_op_hash=user_op_hash,
            success=bool(data.get("success", receipt.get("status") == "0x1")),
            transaction_hash=receipt.get("transactionHash"),
            block_number=_parse_hex(receipt.get("blockNumber")),
            actual_gas_cost=_parse_hex(data.get("actualGasCost")),
            reason=data.get("reason") or None,
        )


__all__ = [
    "DUMMY_SIGNATURE",
    "UserOperation",
    "UserOpGasEstimate",
    "UserOpReceipt",
]
