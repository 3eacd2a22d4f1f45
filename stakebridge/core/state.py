"""
Run State Machine

Tracks the stage a run is in, validates transitions, and keeps the history
used when reporting a failure.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Set

from .errors import StakeBridgeError


class RunState(str, Enum):
    IDLE = "idle"
    ROUTE_REQUESTED = "route_requested"
    BRIDGE_EXECUTING = "bridge_executing"
    BRIDGE_SETTLED = "bridge_settled"
    PLANNING = "planning"
    QUOTING = "quoting"
    BATCH_BUILDING = "batch_building"
    BATCH_SUBMITTED = "batch_submitted"
    CONFIRMED = "confirmed"
    FAILED = "failed"


@dataclass
class StateTransition:
    from_state: RunState
    to_state: RunState
    at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    reason: Optional[str] = None


class InvalidTransitionError(Exception):
    def __init__(self, from_state: RunState, to_state: RunState):
        super().__init__(f"Invalid transition from {from_state.value} to {to_state.value}")
        self.from_state = from_state
        self.to_state = to_state


class RunStateMachine:
    """
    Per-run state machine.

    The happy path is strictly linear; any non-terminal state may fail.
    CONFIRMED and FAILED are terminal.
    """

    HAPPY_PATH: List[RunState] = [
        RunState.IDLE,
        RunState.ROUTE_REQUESTED,
        RunState.BRIDGE_EXECUTING,
        RunState.BRIDGE_SETTLED,
        RunState.PLANNING,
        RunState.QUOTING,
        RunState.BATCH_BUILDING,
        RunState.BATCH_SUBMITTED,
        RunState.CONFIRMED,
    ]

    TERMINAL_STATES: Set[RunState] = {RunState.CONFIRMED, RunState.FAILED}

    TRANSITIONS: Dict[RunState, Set[RunState]] = {
        state: {following, RunState.FAILED}
        for state, following in zip(HAPPY_PATH, HAPPY_PATH[1:])
    }

    def __init__(self, run_id: str = "", logger: Optional[logging.Logger] = None):
        self.run_id = run_id
        self.logger = logger or logging.getLogger(__name__)
        self._state = RunState.IDLE
        self.history: List[StateTransition] = []
        self.error: Optional[BaseException] = None

    @property
    def current_state(self) -> RunState:
        return self._state

    @property
    def is_terminal(self) -> bool:
        return self._state in self.TERMINAL_STATES

    def can_transition_to(self, to_state: RunState) -> bool:
        return to_state in self.TRANSITIONS.get(self._state, set())

    def transition_to(self, to_state: RunState, reason: Optional[str] = None) -> StateTransition:
        if not self.can_transition_to(to_state):
            raise InvalidTransitionError(self._state, to_state)

        transition = StateTransition(from_state=self._state, to_state=to_state, reason=reason)
        self.history.append(transition)
        self._state = to_state
        self.logger.info(
            "Run %s: %s -> %s%s",
            self.run_id,
            transition.from_state.value,
            to_state.value,
            f" ({reason})" if reason else "",
        )
        return transition

    def fail(self, error: BaseException) -> StateTransition:
        """Move to FAILED, recording which stage the error interrupted."""
        failed_at = self._state
        self.error = error
        transition = self.transition_to(RunState.FAILED, reason=f"failed during {failed_at.value}: {error}")
        if isinstance(error, StakeBridgeError):
            self.logger.error(
                "Run %s failed: kind=%s stage=%s details=%s",
                self.run_id,
                error.kind.value,
                error.stage,
                error.details,
            )
        return transition
