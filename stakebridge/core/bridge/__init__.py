"""Bridge orchestration components."""

from typing import TYPE_CHECKING

from .models import ChainRef, Route, RouteStep, RunReport, StepExecution, TokenRef

if TYPE_CHECKING:  # pragma: no cover
    from .orchestrator import BridgeOrchestrator

__all__ = [
    "BridgeOrchestrator",
    "ChainRef",
    "Route",
    "RouteStep",
    "RunReport",
    "StepExecution",
    "TokenRef",
]


def __getattr__(name: str):  # pragma: no cover - simple thunk
    if name == "BridgeOrchestrator":
        from .orchestrator import BridgeOrchestrator as _BridgeOrchestrator

        return _BridgeOrchestrator
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
