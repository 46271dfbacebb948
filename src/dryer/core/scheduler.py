"""Scheduler driving the dryer simulation and exposing its commands."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Optional

from ..config import DryerConfig, load_config
from ..simulator.drying_model import SimulationEngine, SimulationParameters
from .appliance_state import ApplianceSnapshot, ApplianceState
from .events import ApplianceEvent, EventSink
from .safety import SafetyInterlock
from .states import ApplianceStatus, Severity

logger = logging.getLogger(__name__)


class Scheduler:
    """Main controller for dryer operation.

    Owns the appliance state, the safety interlock and the simulation
    engine. A background task ticks the simulation at a fixed nominal
    period, feeding it the wall-clock time actually elapsed since the
    previous tick. Commands from display surfaces run on the caller's
    side and take the same state lock as the tick, so a command and a
    tick never interleave.

    Example:
        scheduler = Scheduler(config)
        await scheduler.start()
        scheduler.start_program("cotton")
        print(scheduler.snapshot().remaining_seconds)
        await scheduler.stop()
    """

    def __init__(
        self,
        config: Optional[DryerConfig] = None,
        state: Optional[ApplianceState] = None,
        clock: Callable[[], float] = time.monotonic,
        sinks: Optional[list[EventSink]] = None,
    ) -> None:
        """Initialize the scheduler.

        Args:
            config: Configuration. Loads from files if None.
            state: Appliance state. Created from config if None.
            clock: Monotonic time source in seconds.
            sinks: Event sinks for a newly created state. Forwards to
                logging if None.
        """
        self.config = config or load_config()
        self._clock = clock
        self._state = state or ApplianceState(
            history_size=self.config.event_history_size,
            sinks=sinks,
        )
        self._safety = SafetyInterlock(
            self._state,
            safe_door_temperature=self.config.safe_door_temperature,
            overheat_threshold=self.config.overheat_threshold,
        )
        self._engine = SimulationEngine(
            self._state,
            self._safety,
            params=SimulationParameters(
                temp_increase_rate=self.config.temp_increase_rate,
                temp_decrease_rate=self.config.temp_decrease_rate,
                temp_cooling_rate=self.config.temp_cooling_rate,
                target_humidity=self.config.target_humidity,
                min_remaining_seconds=self.config.min_remaining_seconds,
            ),
            programs=self.config.programs,
            clock=clock,
        )
        self._last_tick = clock()
        self._running = False
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def state(self) -> ApplianceState:
        """The shared appliance state."""
        return self._state

    @property
    def safety(self) -> SafetyInterlock:
        """The safety interlock."""
        return self._safety

    @property
    def engine(self) -> SimulationEngine:
        """The simulation engine."""
        return self._engine

    @property
    def status(self) -> ApplianceStatus:
        """Current appliance status."""
        return self._state.status

    @property
    def is_running(self) -> bool:
        """Whether the tick loop is running."""
        return self._running

    # -------------------------------------------------------------------------
    # Tick loop
    # -------------------------------------------------------------------------

    def tick(self) -> int:
        """Advance the simulation by the time elapsed since the last tick.

        Returns:
            Elapsed milliseconds fed to the simulation.
        """
        with self._state.locked():
            now = self._clock()
            elapsed_ms = max(0, int((now - self._last_tick) * 1000))
            self._last_tick = now
            self._engine.update_state(elapsed_ms)
        return elapsed_ms

    async def run(self) -> None:
        """Main tick loop.

        Ticks the simulation every ``tick_interval`` seconds until stop()
        is called.
        """
        self._running = True
        self._last_tick = self._clock()
        logger.info(
            "Scheduler started (tick interval %.2fs)", self.config.tick_interval
        )

        while self._running:
            try:
                self.tick()
            except Exception as e:
                logger.exception("Tick failed: %s", e)

            try:
                await asyncio.sleep(self.config.tick_interval)
            except asyncio.CancelledError:
                logger.info("Scheduler task cancelled")
                break

        self._running = False
        logger.info("Scheduler stopped")

    async def start(self) -> None:
        """Start the tick loop as a background task."""
        if self._task is not None:
            return
        self._task = asyncio.create_task(self.run())

    async def stop(self) -> None:
        """Stop the tick loop and wait for the task to finish."""
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def start_program(self, name: str) -> bool:
        """Start a drying program from IDLE.

        Args:
            name: Program name ("cotton", "synthetic", "wool").

        Returns:
            True if started, False if not in IDLE.

        Raises:
            OperationNotAllowed: If the door is open.
        """
        with self._state.locked() as state:
            if state.status != ApplianceStatus.IDLE:
                logger.debug("Ignoring start in %s", state.status.name)
                return False
            self._engine.start_program(name)
            self._last_tick = self._clock()
            return True

    def stop_program(self) -> bool:
        """Abort the running program.

        Returns:
            True if stopped, False if no program was running.
        """
        with self._state.locked() as state:
            if state.status != ApplianceStatus.RUNNING:
                logger.debug("Ignoring stop in %s", state.status.name)
                return False
            self._engine.stop_program()
            return True

    def try_open_door(self) -> bool:
        """Attempt to open the door.

        Returns:
            True if the door was opened.
        """
        with self._state.locked():
            return self._safety.try_open_door()

    def close_door(self) -> None:
        """Close the door."""
        with self._state.locked():
            self._safety.close_door()

    def load_new_laundry(self) -> bool:
        """Load fresh laundry through the open door.

        Returns:
            True if loaded, False if the door is closed.
        """
        with self._state.locked():
            return self._engine.load_new_laundry()

    def acknowledge_error(self) -> bool:
        """Acknowledge a fault and return to IDLE.

        If the door was opened during the fault the status becomes
        DOOR_OPEN instead.

        Returns:
            True if a fault was cleared, False if not in ERROR.
        """
        with self._state.locked() as state:
            if state.status != ApplianceStatus.ERROR:
                return False
            error = state.last_error
            state.clear_error()
            self._engine.stop_program()
            if not state.door_closed:
                state.transition_to(ApplianceStatus.DOOR_OPEN)
            state.log_event(Severity.INFO, f"Error acknowledged: {error}")
            logger.info("Error acknowledged: %s", error)
            return True

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def snapshot(self, recent: Optional[int] = None) -> ApplianceSnapshot:
        """Read-only copy of the appliance state.

        Args:
            recent: Number of recent events to include. Uses the configured
                default if None.
        """
        if recent is None:
            recent = self.config.recent_events
        return self._state.snapshot(recent=recent)

    def recent_events(self, count: int) -> list[ApplianceEvent]:
        """Most recent events, oldest first."""
        return self._state.recent_events(count)
