"""Amount planning for the gas and governance-token swaps."""

from .planner import AmountPlan, AmountPlanner

__all__ = ["AmountPlan", "AmountPlanner"]
