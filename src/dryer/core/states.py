"""Status definitions and transition rules for the dryer state machine."""

from __future__ import annotations

from enum import Enum, auto


class ApplianceStatus(Enum):
    """Dryer operational states.

    A program follows the drying cycle:
    IDLE -> RUNNING -> COOLING -> IDLE

    RUNNING can also be aborted straight back to IDLE by the user.
    Any state drops into ERROR when an overheat is detected. DOOR_OPEN is
    layered on top of IDLE by the safety interlock and returns to IDLE once
    the door is closed again.

    IDLE: Waiting for a program, residual heat decays.
    RUNNING: Heating and drying, door locked.
    COOLING: Program finished, fast cool-down until the door is safe.
    ERROR: Overheat cutoff, needs to be acknowledged.
    DOOR_OPEN: Door open, laundry can be loaded.
    """

    IDLE = auto()
    RUNNING = auto()
    COOLING = auto()
    ERROR = auto()
    DOOR_OPEN = auto()


class Severity(Enum):
    """Severity of an appliance event."""

    INFO = auto()
    WARNING = auto()
    ERROR = auto()


# Allowed status changes. ERROR is reachable from every state and is
# handled separately by can_transition().
TRANSITIONS: dict[ApplianceStatus, frozenset[ApplianceStatus]] = {
    ApplianceStatus.IDLE: frozenset({
        ApplianceStatus.RUNNING,
        ApplianceStatus.DOOR_OPEN,
    }),
    ApplianceStatus.RUNNING: frozenset({
        ApplianceStatus.COOLING,  # Natural completion
        ApplianceStatus.IDLE,  # User abort
        ApplianceStatus.DOOR_OPEN,
    }),
    ApplianceStatus.COOLING: frozenset({
        ApplianceStatus.IDLE,
        ApplianceStatus.RUNNING,  # New program started before cool-down ended
        ApplianceStatus.DOOR_OPEN,
    }),
    ApplianceStatus.DOOR_OPEN: frozenset({
        ApplianceStatus.IDLE,
    }),
    ApplianceStatus.ERROR: frozenset({
        ApplianceStatus.IDLE,  # Fault acknowledged
    }),
}


def can_transition(from_status: ApplianceStatus, to_status: ApplianceStatus) -> bool:
    """Check if a status change is valid.

    Args:
        from_status: Current status.
        to_status: Desired status.

    Returns:
        True if the change is allowed, False otherwise.
    """
    if to_status == ApplianceStatus.ERROR:
        return True
    allowed = TRANSITIONS.get(from_status)
    if allowed is None:
        return False
    return to_status in allowed


def get_allowed_transitions(status: ApplianceStatus) -> frozenset[ApplianceStatus]:
    """Get the set of statuses reachable from the given status.

    Args:
        status: Current status.

    Returns:
        Set of allowed target statuses, ERROR included.
    """
    allowed = TRANSITIONS.get(status, frozenset())
    return allowed | {ApplianceStatus.ERROR}
