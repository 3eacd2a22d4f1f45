"""
Error Kinds

Every failure that terminates a run maps to exactly one ErrorKind. Each
exception carries an ErrorContext with the stage it happened in and the
amounts/addresses needed to diagnose it without re-running.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorKind(str, Enum):
    """Closed set of run-terminating error kinds."""

    CONFIGURATION = "configuration"
    ROUTE_UNAVAILABLE = "route_unavailable"
    QUOTE_MISMATCH = "quote_mismatch"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    FEE_SHORTFALL = "fee_shortfall"
    EXECUTION_FAILURE = "execution_failure"
    CONFIRMATION_TIMEOUT = "confirmation_timeout"


@dataclass
class ErrorContext:
    """Structured context attached to every error."""

    kind: ErrorKind
    stage: str
    suggested_action: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "stage": self.stage,
            "suggestedAction": self.suggested_action,
            "details": self.details,
        }


class StakeBridgeError(Exception):
    """Base class for all run-terminating errors."""

    kind: ErrorKind = ErrorKind.EXECUTION_FAILURE
    default_stage: str = "run"
    suggested_action: Optional[str] = None

    def __init__(
        self,
        message: str,
        *,
        stage: Optional[str] = None,
        **details: Any,
    ):
        super().__init__(message)
        self.message = message
        self.context = ErrorContext(
            kind=self.kind,
            stage=stage or self.default_stage,
            suggested_action=self.suggested_action,
            details={k: v for k, v in details.items() if v is not None},
        )

    @property
    def stage(self) -> str:
        return self.context.stage

    @property
    def details(self) -> Dict[str, Any]:
        return self.context.details

    def __str__(self) -> str:
        if not self.details:
            return f"[{self.kind.value}@{self.stage}] {self.message}"
        rendered = ", ".join(f"{k}={v}" for k, v in self.details.items())
        return f"[{self.kind.value}@{self.stage}] {self.message} ({rendered})"


class ConfigurationError(StakeBridgeError):
    """Missing secret or invalid operator parameters."""

    kind = ErrorKind.CONFIGURATION
    default_stage = "configuration"
    suggested_action = "Set the missing values in the environment or .env file"

    def __init__(self, message: str, *, missing: Optional[List[str]] = None, **details: Any):
        super().__init__(message, missing=missing, **details)


class RouteUnavailableError(StakeBridgeError):
    """The routing service returned no usable bridge route."""

    kind = ErrorKind.ROUTE_UNAVAILABLE
    default_stage = "route_requested"
    suggested_action = "Widen the allowed bridge set or retry later"

    def __init__(
        self,
        message: str = "No bridge route available",
        *,
        from_chain_id: Optional[int] = None,
        to_chain_id: Optional[int] = None,
        from_amount: Optional[int] = None,
        allowed_bridges: Optional[List[str]] = None,
    ):
        super().__init__(
            message,
            from_chain_id=from_chain_id,
            to_chain_id=to_chain_id,
            from_amount=from_amount,
            allowed_bridges=allowed_bridges,
        )


class QuoteMismatchError(StakeBridgeError):
    """Two quotes sharing one allowance designate different spenders."""

    kind = ErrorKind.QUOTE_MISMATCH
    default_stage = "quoting"
    suggested_action = "Restrict both legs to the same exchange so they share an approval address"

    def __init__(
        self,
        message: str = "Quotes require different approval addresses",
        *,
        first_approval_address: Optional[str] = None,
        second_approval_address: Optional[str] = None,
    ):
        super().__init__(
            message,
            first_approval_address=first_approval_address,
            second_approval_address=second_approval_address,
        )


class InsufficientFundsError(StakeBridgeError):
    """Observed balance cannot cover the gas reserve."""

    kind = ErrorKind.INSUFFICIENT_FUNDS
    default_stage = "planning"
    suggested_action = "Bridge a larger amount or lower the gas reserve"

    def __init__(
        self,
        message: str = "Available balance is below the gas reserve",
        *,
        available: Optional[int] = None,
        reserve: Optional[int] = None,
        token: Optional[str] = None,
    ):
        super().__init__(message, available=available, reserve=reserve, token=token)


class FeeShortfallError(StakeBridgeError):
    """Swapped gas-token output does not cover the estimated batch fee."""

    kind = ErrorKind.FEE_SHORTFALL
    default_stage = "batch_building"
    suggested_action = "Raise the gas reserve so the gas swap covers the batch fee"

    def __init__(
        self,
        message: str = "Gas swap output is too low to cover the batch fee",
        *,
        expected_gas_output: Optional[int] = None,
        estimated_fee: Optional[int] = None,
    ):
        super().__init__(message, expected_gas_output=expected_gas_output, estimated_fee=estimated_fee)


class ExecutionFailureError(StakeBridgeError):
    """Bridge execution or batch submission was rejected."""

    kind = ErrorKind.EXECUTION_FAILURE
    default_stage = "execution"
    suggested_action = "Inspect the transaction on the explorer before re-running"


class ConfirmationTimeoutError(ExecutionFailureError):
    """A submitted batch did not confirm within the polling budget."""

    kind = ErrorKind.CONFIRMATION_TIMEOUT
    default_stage = "batch_submitted"
    suggested_action = "Check the batch hash with the bundler; it may still confirm"

    def __init__(
        self,
        message: str = "Batch confirmation timed out",
        *,
        batch_hash: Optional[str] = None,
        attempts: Optional[int] = None,
    ):
        super().__init__(message, batch_hash=batch_hash, attempts=attempts)


__all__ = [
    "ErrorKind",
    "ErrorContext",
    "StakeBridgeError",
    "ConfigurationError",
    "RouteUnavailableError",
    "QuoteMismatchError",
    "InsufficientFundsError",
    "FeeShortfallError",
    "ExecutionFailureError",
    "ConfirmationTimeoutError",
]
