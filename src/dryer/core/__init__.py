"""Core dryer control logic."""

from .states import ApplianceStatus, Severity
from .events import ApplianceEvent
from .programs import ProgramProfile
from .appliance_state import ApplianceSnapshot, ApplianceState
from .safety import OperationNotAllowed, SafetyInterlock

__all__ = [
    "ApplianceStatus",
    "Severity",
    "ApplianceEvent",
    "ProgramProfile",
    "ApplianceSnapshot",
    "ApplianceState",
    "OperationNotAllowed",
    "SafetyInterlock",
]
