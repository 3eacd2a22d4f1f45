"""
Tests for the run state machine.
"""

import pytest

from stakebridge.core.errors import FeeShortfallError
from stakebridge.core.state import InvalidTransitionError, RunState, RunStateMachine


HAPPY_PATH = [
    RunState.ROUTE_REQUESTED,
    RunState.BRIDGE_EXECUTING,
    RunState.BRIDGE_SETTLED,
    RunState.PLANNING,
    RunState.QUOTING,
    RunState.BATCH_BUILDING,
    RunState.BATCH_SUBMITTED,
    RunState.CONFIRMED,
]


@pytest.fixture
def state_machine() -> RunStateMachine:
    return RunStateMachine("run-123")


def test_initial_state_is_idle(state_machine):
    assert state_machine.current_state == RunState.IDLE
    assert state_machine.history == []
    assert not state_machine.is_terminal


def test_happy_path_is_linear(state_machine):
    for state in HAPPY_PATH:
        state_machine.transition_to(state)

    assert state_machine.current_state == RunState.CONFIRMED
    assert state_machine.is_terminal
    assert [t.to_state for t in state_machine.history] == HAPPY_PATH


def test_skipping_a_stage_is_invalid(state_machine):
    with pytest.raises(InvalidTransitionError) as excinfo:
        state_machine.transition_to(RunState.QUOTING)

    assert excinfo.value.from_state == RunState.IDLE
    assert excinfo.value.to_state == RunState.QUOTING
    assert state_machine.current_state == RunState.IDLE


@pytest.mark.parametrize("stop", range(len(HAPPY_PATH) - 1))
def test_any_non_terminal_state_can_fail(state_machine, stop):
    for state in HAPPY_PATH[:stop]:
        state_machine.transition_to(state)
    failed_from = state_machine.current_state

    transition = state_machine.fail(FeeShortfallError(expected_gas_output=1, estimated_fee=2))

    assert transition.from_state == failed_from
    assert state_machine.current_state == RunState.FAILED
    assert isinstance(state_machine.error, FeeShortfallError)
    assert failed_from.value in transition.reason


def test_terminal_states_accept_no_transitions(state_machine):
    state_machine.transition_to(RunState.FAILED)

    with pytest.raises(InvalidTransitionError):
        state_machine.transition_to(RunState.ROUTE_REQUESTED)
    with pytest.raises(InvalidTransitionError):
        state_machine.fail(RuntimeError("again"))
