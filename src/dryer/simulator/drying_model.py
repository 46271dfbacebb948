"""Drying simulation: temperature and humidity curves and program flow."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from ..core.appliance_state import ApplianceState
from ..core.programs import DEFAULT_PROGRAMS, ProgramProfile, get_profile
from ..core.safety import OperationNotAllowed, SafetyInterlock
from ..core.states import ApplianceStatus, Severity

logger = logging.getLogger(__name__)


@dataclass
class SimulationParameters:
    """Configurable simulation parameters.

    Temperatures in Celsius, rates per second. These values are chosen for a
    fast visible demonstration, not calibrated to real hardware.
    """

    # Heater
    temp_increase_rate: float = 2.0
    # Passive decay with heating off
    temp_decrease_rate: float = 0.8
    # Forced cool-down after a program finished
    temp_cooling_rate: float = 3.0

    # Program finishes when humidity reaches this level (percent)
    target_humidity: float = 5.0

    # Lower bound of the adaptive remaining-time estimate (seconds)
    min_remaining_seconds: int = 5


class RemainingTimeEstimator:
    """Remaining-time estimate from the observed drying rate.

    The drying rate is the humidity drop per wall-clock second between two
    consecutive updates. With a positive rate the estimate is the time to
    reach the target humidity, bounded to [floor, nominal duration].
    Without progress (first update, stall, clock not advancing) the
    previous estimate counts down linearly by the simulated elapsed time.
    """

    def __init__(
        self,
        target_humidity: float,
        floor_seconds: int,
        clock: Callable[[], float],
    ) -> None:
        self._target_humidity = target_humidity
        self._floor_seconds = floor_seconds
        self._clock = clock
        self._previous_humidity: Optional[float] = None
        self._previous_time: Optional[float] = None

    def reset(self) -> None:
        """Forget the previous sample so the next update counts down linearly."""
        self._previous_humidity = None
        self._previous_time = None

    def estimate(
        self,
        humidity: float,
        remaining_seconds: int,
        elapsed_seconds: float,
        nominal_seconds: int,
    ) -> int:
        """Compute the new remaining-time estimate.

        Args:
            humidity: Current humidity in percent.
            remaining_seconds: Previous remaining time.
            elapsed_seconds: Simulated time advanced this tick.
            nominal_seconds: Nominal duration of the running program.

        Returns:
            New remaining time in seconds.
        """
        now = self._clock()
        rate = 0.0
        if self._previous_time is not None and self._previous_humidity is not None:
            time_delta = now - self._previous_time
            if time_delta > 0:
                rate = (self._previous_humidity - humidity) / time_delta

        self._previous_time = now
        self._previous_humidity = humidity

        if rate > 0:
            estimated = int((humidity - self._target_humidity) / rate)
            estimated = max(self._floor_seconds, estimated)
            return min(nominal_seconds, estimated)

        return max(0, int(remaining_seconds - elapsed_seconds))


class SimulationEngine:
    """Advances the appliance state by elapsed time.

    Models:
    - Heater ramp toward the program's target temperature
    - Passive decay and forced cool-down with the heater off
    - Humidity decrease at the program's drying rate
    - Adaptive remaining-time estimate
    - Program finish (target humidity or time out) and cool-down

    Every tick consults the safety interlock for overheat and door lock
    decisions.
    """

    def __init__(
        self,
        state: ApplianceState,
        safety: SafetyInterlock,
        params: Optional[SimulationParameters] = None,
        programs: Optional[dict[str, ProgramProfile]] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the engine.

        Args:
            state: Appliance state to drive.
            safety: Safety interlock guarding the state.
            params: Simulation parameters. Uses defaults if None.
            programs: Program table. Uses the built-in programs if None.
            clock: Monotonic wall-clock source for the drying rate.
        """
        self._state = state
        self._safety = safety
        self.params = params or SimulationParameters()
        self._programs = dict(programs) if programs is not None else dict(DEFAULT_PROGRAMS)
        self._estimator = RemainingTimeEstimator(
            target_humidity=self.params.target_humidity,
            floor_seconds=self.params.min_remaining_seconds,
            clock=clock,
        )
        self._heating_active = False
        self._profile: Optional[ProgramProfile] = None
        # Active simulation parameters, kept when an unknown program is requested
        self._humidity_rate = 0.0
        self._target_temperature = 0.0
        self._nominal_seconds = 0

    @property
    def heating_active(self) -> bool:
        """Whether the heater is on."""
        return self._heating_active

    @property
    def profile(self) -> Optional[ProgramProfile]:
        """Profile of the last successfully configured program."""
        return self._profile

    @property
    def programs(self) -> dict[str, ProgramProfile]:
        """Known program profiles by name."""
        return dict(self._programs)

    def set_heating_active(self, active: bool) -> None:
        self._heating_active = active

    def set_humidity_decrease_rate(self, rate: float) -> None:
        """Override the drying rate of the running program (percent/s)."""
        self._humidity_rate = rate

    # -------------------------------------------------------------------------
    # Program control
    # -------------------------------------------------------------------------

    def start_program(self, name: str) -> None:
        """Start a drying program.

        Assumes a fresh load: temperature back to 0, humidity to 100 %.

        Args:
            name: Program name ("cotton", "synthetic", "wool"). An unknown
                name keeps the previous simulation parameters.

        Raises:
            OperationNotAllowed: If the door is open or a fault is pending.
        """
        with self._state.locked() as state:
            if not self._safety.is_operation_allowed():
                raise OperationNotAllowed("Operation not allowed: Door is open")

            if state.status == ApplianceStatus.ERROR:
                state.log_event(
                    Severity.WARNING,
                    "Operation not allowed: Error must be acknowledged first",
                )
                raise OperationNotAllowed(
                    "Operation not allowed: Error must be acknowledged first"
                )

            state.set_temperature(0.0)
            state.set_humidity(100.0)

            self._configure_program(name)

            state.set_program_name(name)
            state.set_remaining_seconds(self._nominal_seconds)
            self._heating_active = True
            self._estimator.reset()

            state.transition_to(ApplianceStatus.RUNNING)
            self._safety.update_door_lock()
            state.log_event(Severity.INFO, f"{name} program started")
            logger.info(
                "Program %s started: target %.1f°C, %ds",
                name,
                self._target_temperature,
                self._nominal_seconds,
            )

    def _configure_program(self, name: str) -> None:
        """Load the simulation parameters of a program."""
        profile = get_profile(name, self._programs)
        if profile is None:
            logger.warning("Unknown program %r, keeping previous parameters", name)
            self._state.log_event(
                Severity.WARNING,
                f"Unknown program '{name}', keeping previous parameters",
            )
            return

        self._profile = profile
        self._humidity_rate = profile.humidity_rate
        self._target_temperature = profile.target_temperature
        self._nominal_seconds = profile.duration_seconds

    def stop_program(self) -> None:
        """Abort the current program and return to IDLE.

        Unlike natural completion this does not pass through COOLING.
        """
        with self._state.locked() as state:
            self._heating_active = False
            state.transition_to(ApplianceStatus.IDLE)
            state.set_remaining_seconds(0)
            self._estimator.reset()
            self._safety.update_door_lock()
            state.log_event(Severity.INFO, "Program stopped")
            logger.info("Program stopped")

    def load_new_laundry(self) -> bool:
        """Load a fresh, wet load. Only possible with the door open.

        Returns:
            True if humidity was reset, False if the door is closed.
        """
        with self._state.locked() as state:
            if state.door_closed:
                state.log_event(
                    Severity.WARNING, "Cannot load new laundry while door is closed"
                )
                return False
            state.set_humidity(100.0)
            state.log_event(Severity.INFO, "New laundry loaded")
            return True

    # -------------------------------------------------------------------------
    # Simulation tick
    # -------------------------------------------------------------------------

    def update_state(self, elapsed_ms: int) -> None:
        """Advance the simulation.

        Args:
            elapsed_ms: Elapsed time in milliseconds since the last update.
        """
        seconds = max(0, elapsed_ms) / 1000.0

        with self._state.locked() as state:
            if state.status != ApplianceStatus.RUNNING:
                # Residual heat decays with the heater off
                self._heating_active = False

            self._update_temperature(seconds)

            if state.status == ApplianceStatus.RUNNING:
                self._update_humidity(seconds)
                self._update_remaining_time(seconds)

                if self._safety.is_overheating():
                    self._heating_active = False
                    return

                if self._is_program_finished():
                    self._finish_program()

            if state.status == ApplianceStatus.COOLING:
                if state.temperature <= self._safety.safe_door_temperature:
                    state.transition_to(ApplianceStatus.IDLE)
                    state.log_event(Severity.INFO, "Cooling complete")
                    logger.info(
                        "Cooling complete at %.1f°C", state.temperature
                    )

            self._safety.update_door_lock()

    def _update_temperature(self, seconds: float) -> None:
        """Move the temperature along the heating or cooling curve."""
        current = self._state.temperature

        if self._heating_active:
            if current < self._target_temperature:
                heated = current + self.params.temp_increase_rate * seconds
                self._state.set_temperature(min(heated, self._target_temperature))
        elif current > 0:
            if self._state.status == ApplianceStatus.COOLING:
                rate = self.params.temp_cooling_rate
            else:
                rate = self.params.temp_decrease_rate
            self._state.set_temperature(max(0.0, current - rate * seconds))

    def _update_humidity(self, seconds: float) -> None:
        """Dry the laundry while the heater is on."""
        current = self._state.humidity
        if self._heating_active and current > 0:
            self._state.set_humidity(max(0.0, current - self._humidity_rate * seconds))

    def _update_remaining_time(self, seconds: float) -> None:
        remaining = self._estimator.estimate(
            humidity=self._state.humidity,
            remaining_seconds=self._state.remaining_seconds,
            elapsed_seconds=seconds,
            nominal_seconds=self._nominal_seconds,
        )
        self._state.set_remaining_seconds(remaining)

    def _is_program_finished(self) -> bool:
        return (
            self._state.humidity <= self.params.target_humidity
            or self._state.remaining_seconds <= 0
        )

    def _finish_program(self) -> None:
        """Natural completion: heater off, cool down with the door locked."""
        self._heating_active = False
        self._state.transition_to(ApplianceStatus.COOLING)
        self._state.set_remaining_seconds(0)
        self._estimator.reset()
        self._safety.update_door_lock()
        self._state.log_event(
            Severity.INFO, f"{self._state.program_name} program finished, cooling down"
        )
        logger.info(
            "Program %s finished: humidity %.1f%%, temperature %.1f°C",
            self._state.program_name,
            self._state.humidity,
            self._state.temperature,
        )
