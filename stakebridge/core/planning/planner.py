"""Split of the bridged balance between the gas swap and the governance swap."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ..errors import InsufficientFundsError


@dataclass(frozen=True)
class AmountPlan:
    """Amounts in smallest units of the bridged token."""

    available: int
    gas_swap_amount: int
    stake_swap_amount: int

    @property
    def unallocated(self) -> int:
        return self.available - self.gas_swap_amount - self.stake_swap_amount


class AmountPlanner:
    """Pure planner; holds no state between calls."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or logging.getLogger(__name__)

    def plan(self, available: int, reserve: int, cap: Optional[int] = None, *, token: Optional[str] = None) -> AmountPlan:
        """Reserve ``reserve`` for the gas swap and send the rest (up to ``cap``) to the governance swap."""

        if available < reserve:
            raise InsufficientFundsError(available=available, reserve=reserve, token=token)

        remainder = available - reserve
        stake_amount = min(cap, remainder) if cap is not None else remainder

        plan = AmountPlan(available=available, gas_swap_amount=reserve, stake_swap_amount=stake_amount)
        self._logger.info(
            "Amount plan: available=%s gas_swap=%s stake_swap=%s cap=%s",
            available,
            plan.gas_swap_amount,
            plan.stake_swap_amount,
            cap,
        )
        return plan
