"""Shared, lock-guarded state of the dryer."""

from __future__ import annotations

import logging
import threading
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator, Optional

from .events import ApplianceEvent, EventDispatcher, EventSink
from .states import ApplianceStatus, Severity, can_transition

logger = logging.getLogger(__name__)

DEFAULT_PROGRAM_NAME = "none"
MAX_EVENT_HISTORY = 100


@dataclass(frozen=True)
class ApplianceSnapshot:
    """Read-only copy of the appliance state for display surfaces.

    Attributes:
        program_name: Name of the last started program, "none" before.
        status: Current status.
        temperature: Drum temperature in Celsius.
        humidity: Laundry humidity in percent.
        remaining_seconds: Estimated time until the program finishes.
        door_closed: Whether the door is closed.
        door_locked: Whether the door lock is engaged.
        last_error: Current error message, if any.
        recent_events: Most recent events, oldest first.
    """

    program_name: str
    status: ApplianceStatus
    temperature: float
    humidity: float
    remaining_seconds: int
    door_closed: bool
    door_locked: bool
    last_error: Optional[str]
    recent_events: tuple[ApplianceEvent, ...]

    def to_dict(self) -> dict[str, Any]:
        """Convert snapshot to dictionary for serialization."""
        return {
            "program_name": self.program_name,
            "status": self.status.name,
            "temperature": self.temperature,
            "humidity": self.humidity,
            "remaining_seconds": self.remaining_seconds,
            "door_closed": self.door_closed,
            "door_locked": self.door_locked,
            "last_error": self.last_error,
            "recent_events": [event.to_dict() for event in self.recent_events],
        }


class ApplianceState:
    """Mutable record of the dryer shared by the tick loop and observers.

    All reads and writes go through a single re-entrant lock. Use
    ``locked()`` to group several mutations into one critical section,
    as the scheduler does for every tick and command.

    Setters keep the physical invariants: temperature never negative,
    humidity within 0-100 %, remaining time never negative and an open
    door is never locked.
    """

    def __init__(
        self,
        history_size: int = MAX_EVENT_HISTORY,
        sinks: Optional[list[EventSink]] = None,
    ) -> None:
        """Initialize the state: idle, cold, wet laundry, door closed.

        Args:
            history_size: Capacity of the event ring, oldest evicted first.
            sinks: Event sinks. Forwards to logging if None.
        """
        self._lock = threading.RLock()
        self._program_name = DEFAULT_PROGRAM_NAME
        self._status = ApplianceStatus.IDLE
        self._remaining_seconds = 0
        self._temperature = 0.0
        self._humidity = 100.0
        self._door_closed = True
        self._door_locked = False
        self._last_error: Optional[str] = None
        self._events: deque[ApplianceEvent] = deque(maxlen=history_size)
        self._dispatcher = EventDispatcher(sinks)

    @contextmanager
    def locked(self) -> Iterator[ApplianceState]:
        """Hold the state lock for the duration of the block."""
        with self._lock:
            yield self

    # -------------------------------------------------------------------------
    # Program and status
    # -------------------------------------------------------------------------

    @property
    def program_name(self) -> str:
        """Name of the last started program."""
        with self._lock:
            return self._program_name

    def set_program_name(self, name: str) -> None:
        with self._lock:
            self._program_name = name

    @property
    def status(self) -> ApplianceStatus:
        """Current appliance status."""
        with self._lock:
            return self._status

    def transition_to(self, new_status: ApplianceStatus) -> bool:
        """Attempt to change the status.

        Validates the change against the transition table. Staying in the
        current status is always accepted.

        Args:
            new_status: Target status.

        Returns:
            True if the status is now ``new_status``, False if refused.
        """
        with self._lock:
            if new_status == self._status:
                return True
            if not can_transition(self._status, new_status):
                logger.warning(
                    "Invalid transition: %s -> %s",
                    self._status.name,
                    new_status.name,
                )
                return False
            logger.debug("Status: %s -> %s", self._status.name, new_status.name)
            self._status = new_status
            return True

    @property
    def remaining_seconds(self) -> int:
        """Estimated seconds until the program finishes."""
        with self._lock:
            return self._remaining_seconds

    def set_remaining_seconds(self, seconds: float) -> None:
        with self._lock:
            self._remaining_seconds = max(0, int(seconds))

    # -------------------------------------------------------------------------
    # Simulated measurements
    # -------------------------------------------------------------------------

    @property
    def temperature(self) -> float:
        """Drum temperature in Celsius."""
        with self._lock:
            return self._temperature

    def set_temperature(self, value: float) -> None:
        with self._lock:
            self._temperature = max(0.0, value)

    @property
    def humidity(self) -> float:
        """Laundry humidity in percent."""
        with self._lock:
            return self._humidity

    def set_humidity(self, value: float) -> None:
        with self._lock:
            self._humidity = max(0.0, min(100.0, value))

    # -------------------------------------------------------------------------
    # Door
    # -------------------------------------------------------------------------

    @property
    def door_closed(self) -> bool:
        """Whether the door is closed."""
        with self._lock:
            return self._door_closed

    def set_door_closed(self, closed: bool) -> None:
        """Open or close the door.

        An open door cannot stay locked, so opening also releases the lock.
        """
        with self._lock:
            if not closed and self._door_locked:
                logger.warning("Door opened while locked, releasing lock")
                self._door_locked = False
            self._door_closed = closed

    @property
    def door_locked(self) -> bool:
        """Whether the door lock is engaged."""
        with self._lock:
            return self._door_locked

    def set_door_locked(self, locked: bool) -> bool:
        """Engage or release the door lock.

        Args:
            locked: True to lock, False to unlock.

        Returns:
            True if applied, False if refused because the door is open.
        """
        with self._lock:
            if locked and not self._door_closed:
                logger.warning("Refusing to lock an open door")
                return False
            self._door_locked = locked
            return True

    # -------------------------------------------------------------------------
    # Errors and events
    # -------------------------------------------------------------------------

    @property
    def last_error(self) -> Optional[str]:
        """Current error message, or None."""
        with self._lock:
            return self._last_error

    def set_error(self, message: str) -> None:
        """Record an error and force the ERROR status.

        Args:
            message: Human-readable error message.
        """
        with self._lock:
            self._last_error = message
            self.log_event(Severity.ERROR, message)
            self._status = ApplianceStatus.ERROR

    def clear_error(self) -> None:
        """Forget the current error. The status is left untouched."""
        with self._lock:
            self._last_error = None

    def add_sink(self, sink: EventSink) -> None:
        """Add a sink that receives every new event.

        Args:
            sink: Function taking ApplianceEvent.
        """
        self._dispatcher.add_sink(sink)

    def remove_sink(self, sink: EventSink) -> None:
        """Remove a previously added sink."""
        self._dispatcher.remove_sink(sink)

    def log_event(self, severity: Severity, message: str) -> ApplianceEvent:
        """Append an event to the history and queue it for the sinks.

        Sinks run on the dispatcher thread, never under the state lock.

        Args:
            severity: Event severity.
            message: Event message.

        Returns:
            The recorded event.
        """
        event = ApplianceEvent(severity=severity, message=message)
        with self._lock:
            self._events.append(event)
            self._dispatcher.submit(event)
        return event

    def flush_events(self, timeout: Optional[float] = None) -> bool:
        """Wait until every logged event has reached the sinks.

        Args:
            timeout: Maximum seconds to wait, forever if None.

        Returns:
            True if all events were delivered, False on timeout.
        """
        return self._dispatcher.flush(timeout)

    def events(self) -> list[ApplianceEvent]:
        """Whole event history, oldest first."""
        with self._lock:
            return list(self._events)

    def recent_events(self, count: int) -> list[ApplianceEvent]:
        """Most recent events, oldest first.

        Args:
            count: Maximum number of events to return.
        """
        if count <= 0:
            return []
        with self._lock:
            return list(self._events)[-count:]

    def snapshot(self, recent: int = 10) -> ApplianceSnapshot:
        """Take a consistent copy of the state.

        Args:
            recent: Number of recent events to include.
        """
        with self._lock:
            return ApplianceSnapshot(
                program_name=self._program_name,
                status=self._status,
                temperature=self._temperature,
                humidity=self._humidity,
                remaining_seconds=self._remaining_seconds,
                door_closed=self._door_closed,
                door_locked=self._door_locked,
                last_error=self._last_error,
                recent_events=tuple(self.recent_events(recent)),
            )
