from __future__ import annotations

from typing import Dict, Set

from guardescrow.enums import EscrowState
from guardescrow.errors import InvalidState


ALLOWED_TRANSITIONS: Dict[EscrowState, Set[EscrowState]] = {
    EscrowState.CREATED: {EscrowState.FUNDED, EscrowState.CANCELLED},
    EscrowState.FUNDED: {EscrowState.RELEASED, EscrowState.REFUNDED},
    EscrowState.RELEASED: set(),
    EscrowState.REFUNDED: set(),
    EscrowState.CANCELLED: set(),
}

TERMINAL_STATES = frozenset(
    state for state, targets in ALLOWED_TRANSITIONS.items() if not targets
)


def validate_transition(current: EscrowState, target: EscrowState) -> None:
    if target not in ALLOWED_TRANSITIONS.get(current, set()):
        raise InvalidState(f"{current.value} -> {target.value}")


def is_terminal(state: EscrowState) -> bool:
    return state in TERMINAL_STATES
