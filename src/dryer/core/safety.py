"""Safety interlock: door lock, door opening and overheat cutoff."""

from __future__ import annotations

import logging

from .appliance_state import ApplianceState
from .states import ApplianceStatus, Severity

logger = logging.getLogger(__name__)

# Door may only be opened below this drum temperature (Celsius)
SAFE_DOOR_TEMPERATURE: float = 40.0

# Heating is cut and the appliance faults at or above this temperature
OVERHEAT_THRESHOLD: float = 100.0


class DryerError(Exception):
    """Base class for dryer control errors."""


class OperationNotAllowed(DryerError):
    """Raised when a command is refused by the safety interlock."""


class SafetyInterlock:
    """Safety policy evaluated against the shared appliance state.

    The interlock has no timers of its own. It is consulted by the
    simulation engine on every tick and by the scheduler's door commands.

    Lock policy: the door is locked while a program is RUNNING. While
    COOLING above the safe door temperature the lock is kept engaged; this
    rule is applied after the general one and takes priority over it.
    """

    def __init__(
        self,
        state: ApplianceState,
        safe_door_temperature: float = SAFE_DOOR_TEMPERATURE,
        overheat_threshold: float = OVERHEAT_THRESHOLD,
    ) -> None:
        """Initialize the interlock.

        Args:
            state: Appliance state to guard.
            safe_door_temperature: Door opening limit in Celsius.
            overheat_threshold: Overheat cutoff in Celsius.
        """
        self._state = state
        self.safe_door_temperature = safe_door_temperature
        self.overheat_threshold = overheat_threshold

    def is_operation_allowed(self) -> bool:
        """Check whether a program may be operated (door must be closed).

        Returns:
            True if the door is closed.
        """
        allowed = self._state.door_closed
        if not allowed:
            self._state.log_event(
                Severity.WARNING, "Operation not allowed: Door is open"
            )
        return allowed

    def update_door_lock(self) -> None:
        """Apply the lock policy to the current status.

        Logs only when the lock actually changes.
        """
        with self._state.locked() as state:
            status = state.status
            should_lock = status == ApplianceStatus.RUNNING
            # Cooling override
            if (
                status == ApplianceStatus.COOLING
                and state.temperature > self.safe_door_temperature
            ):
                should_lock = True
            should_lock = should_lock and state.door_closed

            was_locked = state.door_locked
            state.set_door_locked(should_lock)

            if should_lock and not was_locked:
                state.log_event(Severity.INFO, "Door locked for program execution")
            elif was_locked and not should_lock:
                state.log_event(Severity.INFO, "Door unlocked")

    def try_open_door(self) -> bool:
        """Attempt to open the door.

        Opening is refused while the door is locked or the drum is too hot.
        Opening the door during an ERROR keeps the ERROR status.

        Returns:
            True if the door was opened, False otherwise.
        """
        with self._state.locked() as state:
            if state.door_locked:
                state.log_event(Severity.WARNING, "Cannot open door: Door is locked")
                return False

            if not self.is_safe_to_open():
                state.log_event(
                    Severity.WARNING,
                    f"Cannot open door: Temperature too high ({state.temperature:.1f}°C)",
                )
                return False

            state.set_door_closed(False)
            if state.status != ApplianceStatus.ERROR:
                state.transition_to(ApplianceStatus.DOOR_OPEN)
            state.log_event(Severity.INFO, "Door opened")
            return True

    def close_door(self) -> None:
        """Close the door, returning from DOOR_OPEN to IDLE."""
        with self._state.locked() as state:
            state.set_door_closed(True)
            if state.status == ApplianceStatus.DOOR_OPEN:
                state.transition_to(ApplianceStatus.IDLE)
            state.log_event(Severity.INFO, "Door closed")

    def is_safe_to_open(self) -> bool:
        """Check if the drum is cool enough to open the door."""
        return self._state.temperature < self.safe_door_temperature

    def is_overheating(self) -> bool:
        """Check for overheat and fault the appliance if so.

        This is a state-mutating predicate: when the temperature is at or
        above the threshold the status is forced to ERROR and the error
        message records the measured temperature.

        Returns:
            True if overheating.
        """
        with self._state.locked() as state:
            temperature = state.temperature
            if temperature < self.overheat_threshold:
                return False
            logger.error(
                "Overheat: %.1f°C >= %.1f°C", temperature, self.overheat_threshold
            )
            state.set_error(
                f"Overheating detected! Temperature: {temperature:.1f}°C"
            )
            return True
