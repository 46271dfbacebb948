"""Event records for the dryer and the sinks they are forwarded to."""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional

from .states import Severity

logger = logging.getLogger(__name__)

# Logger that receives every appliance event from the default sink
events_logger = logging.getLogger("dryer.events")

_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

_LOG_LEVELS: dict[Severity, int] = {
    Severity.INFO: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
}


@dataclass(frozen=True)
class ApplianceEvent:
    """Entry of the appliance event history.

    Events are appended by the kernel whenever something noteworthy happens
    (program start, door lock change, overheat) and forwarded to the
    registered sinks (logging, display, telemetry).

    Attributes:
        severity: How important the event is.
        message: Human-readable description.
        timestamp: When the event occurred.
    """

    severity: Severity
    message: str
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        """Convert event to dictionary for serialization.

        Returns:
            Dictionary representation of the event.
        """
        return {
            "severity": self.severity.name,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        timestamp = self.timestamp.strftime(_TIMESTAMP_FORMAT)
        return f"[{timestamp}] {self.severity.name}: {self.message}"


# Type alias for event sinks
EventSink = Callable[[ApplianceEvent], None]


def logging_sink(event: ApplianceEvent) -> None:
    """Forward an event to the ``dryer.events`` logger.

    Args:
        event: Event to forward.
    """
    events_logger.log(_LOG_LEVELS[event.severity], event.message)


class EventDispatcher:
    """Delivers events to sinks on a background thread.

    ``submit`` only queues the event, so callers holding the state lock
    never wait for a slow sink. Events reach the sinks in submission order.
    The worker thread is started on demand and exits once the queue is
    drained.
    """

    def __init__(self, sinks: Optional[list[EventSink]] = None) -> None:
        """Initialize the dispatcher.

        Args:
            sinks: Event sinks. Forwards to logging if None.
        """
        self._sinks: list[EventSink] = (
            list(sinks) if sinks is not None else [logging_sink]
        )
        self._pending: deque[ApplianceEvent] = deque()
        self._cond = threading.Condition()
        self._worker: Optional[threading.Thread] = None

    def add_sink(self, sink: EventSink) -> None:
        with self._cond:
            self._sinks.append(sink)

    def remove_sink(self, sink: EventSink) -> None:
        with self._cond:
            if sink in self._sinks:
                self._sinks.remove(sink)

    def submit(self, event: ApplianceEvent) -> None:
        """Queue an event for delivery."""
        with self._cond:
            self._pending.append(event)
            if self._worker is None:
                self._worker = threading.Thread(
                    target=self._drain, name="dryer-events", daemon=True
                )
                self._worker.start()

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait until every queued event has been delivered.

        Args:
            timeout: Maximum seconds to wait, forever if None.

        Returns:
            True if the queue drained, False on timeout.
        """
        with self._cond:
            return self._cond.wait_for(lambda: self._worker is None, timeout)

    def _drain(self) -> None:
        while True:
            with self._cond:
                if not self._pending:
                    self._worker = None
                    self._cond.notify_all()
                    return
                event = self._pending.popleft()
                sinks = list(self._sinks)

            for sink in sinks:
                try:
                    sink(event)
                except Exception as e:
                    logger.error("Event sink error: %s", e)
