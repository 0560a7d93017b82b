import pytest

from guardescrow.enums import EscrowState
from guardescrow.errors import InvalidState
from guardescrow.state_machine import is_terminal, validate_transition


def test_valid_transition():
    validate_transition(EscrowState.CREATED, EscrowState.FUNDED)
    validate_transition(EscrowState.CREATED, EscrowState.CANCELLED)
    validate_transition(EscrowState.FUNDED, EscrowState.RELEASED)
    validate_transition(EscrowState.FUNDED, EscrowState.REFUNDED)


def test_invalid_transition():
    with pytest.raises(InvalidState):
        validate_transition(EscrowState.CREATED, EscrowState.RELEASED)
    with pytest.raises(InvalidState):
        validate_transition(EscrowState.FUNDED, EscrowState.CANCELLED)


@pytest.mark.parametrize("state", [EscrowState.RELEASED, EscrowState.REFUNDED, EscrowState.CANCELLED])
def test_terminal_states_have_no_exits(state):
    assert is_terminal(state)
    for target in EscrowState:
        with pytest.raises(InvalidState):
            validate_transition(state, target)


def test_invalid_state_is_a_value_error():
    with pytest.raises(ValueError):
        validate_transition(EscrowState.FUNDED, EscrowState.FUNDED)
