"""
app/flow/states.py

Purpose: Defines the verification states of a phone number

- UNKNOWN -> PENDING -> VERIFIED
- Single source of truth for allowed transitions
- Metadata for each state
"""

from enum import Enum
from typing import Dict, List
from dataclasses import dataclass


class VerificationState(str, Enum):
    """
    Per-phone verification state. VERIFIED is terminal.
    """

    UNKNOWN = "UNKNOWN"
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"


@dataclass
class StateMetadata:
    """
    Metadata associated with each verification state.
    """
    name: VerificationState
    display_name: str
    accepts_commands: bool = False


STATE_METADATA: Dict[VerificationState, StateMetadata] = {
    VerificationState.UNKNOWN: StateMetadata(
        name=VerificationState.UNKNOWN,
        display_name="Unknown"
    ),
    VerificationState.PENDING: StateMetadata(
        name=VerificationState.PENDING,
        display_name="Awaiting code"
    ),
    VerificationState.VERIFIED: StateMetadata(
        name=VerificationState.VERIFIED,
        display_name="Verified",
        accepts_commands=True
    ),
}


STATE_TRANSITIONS: Dict[VerificationState, List[VerificationState]] = {
    VerificationState.UNKNOWN: [
        VerificationState.PENDING,
        VerificationState.UNKNOWN,  # Identifier not found / backend failure
    ],
    VerificationState.PENDING: [
        VerificationState.VERIFIED,
        VerificationState.PENDING,  # Wrong code, or a new identifier overwrites the request
        VerificationState.UNKNOWN,  # Code expired
    ],
    VerificationState.VERIFIED: [
        VerificationState.VERIFIED,
    ],
}


def is_valid_transition(from_state: VerificationState, to_state: VerificationState) -> bool:
    """
    Checks if a state transition is valid.

    Args:
        from_state: Current state
        to_state: Target state

    Returns:
        True if transition is allowed, False otherwise
    """
    allowed_transitions = STATE_TRANSITIONS.get(from_state, [])
    return to_state in allowed_transitions


def get_state_metadata(state: VerificationState) -> StateMetadata:
    return STATE_METADATA[state]
