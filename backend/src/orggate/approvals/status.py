"""ApprovalRequest status state machine.

State Flow:
    PENDING → APPROVED | REJECTED   (human decision)
    PENDING → EXPIRED               (24h timeout)

Terminal States: APPROVED, REJECTED, EXPIRED
"""

from enum import Enum


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXPIRED = "expired"


ALLOWED_TRANSITIONS = {
    ApprovalStatus.PENDING: [
        ApprovalStatus.APPROVED,
        ApprovalStatus.REJECTED,
        ApprovalStatus.EXPIRED,
    ],
    ApprovalStatus.APPROVED: [],  # Terminal state
    ApprovalStatus.REJECTED: [],  # Terminal state
    ApprovalStatus.EXPIRED: [],  # Terminal state
}


class StateTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""
    pass


def validate_transition(current_status: ApprovalStatus, new_status: ApprovalStatus) -> None:
    """Validate that a state transition is allowed.

    Raises:
        StateTransitionError: If transition is not allowed
    """
    allowed = ALLOWED_TRANSITIONS.get(current_status, [])
    if new_status not in allowed:
        raise StateTransitionError(
            f"Invalid transition: {current_status.value} -> {new_status.value}. "
            f"Allowed transitions from {current_status.value}: "
            f"{[s.value for s in allowed]}"
        )


def can_transition(current_status: ApprovalStatus, new_status: ApprovalStatus) -> bool:
    return new_status in ALLOWED_TRANSITIONS.get(current_status, [])


def is_terminal(status: ApprovalStatus) -> bool:
    return not ALLOWED_TRANSITIONS.get(status)
