"""Tests for the drying simulation engine."""

import pytest

from dryer.core.appliance_state import ApplianceState
from dryer.core.events import ApplianceEvent
from dryer.core.programs import DEFAULT_PROGRAMS
from dryer.core.safety import OperationNotAllowed, SafetyInterlock
from dryer.core.states import ApplianceStatus, Severity
from dryer.simulator.drying_model import (
    RemainingTimeEstimator,
    SimulationEngine,
    SimulationParameters,
)


class TestStartProgram:
    """Test program start."""

    @pytest.mark.parametrize("name", ["cotton", "synthetic", "wool"])
    def test_start_resets_load_and_runs(
        self, state: ApplianceState, engine: SimulationEngine, name: str
    ) -> None:
        """Starting should reset the load and run for the nominal duration."""
        state.set_temperature(30.0)
        state.set_humidity(40.0)

        engine.start_program(name)

        assert state.status == ApplianceStatus.RUNNING
        assert state.temperature == 0.0
        assert state.humidity == 100.0
        assert state.remaining_seconds == DEFAULT_PROGRAMS[name].duration_seconds
        assert state.program_name == name
        assert state.door_locked
        assert engine.heating_active

    def test_programs_have_different_durations(
        self, state: ApplianceState, engine: SimulationEngine
    ) -> None:
        """Cotton, synthetic and wool should run for different durations."""
        durations = []
        for name in ("cotton", "synthetic", "wool"):
            engine.start_program(name)
            durations.append(state.remaining_seconds)
            engine.stop_program()

        assert durations == [3600, 2700, 1800]

    def test_start_with_open_door_raises(
        self,
        state: ApplianceState,
        engine: SimulationEngine,
        captured_events: list[ApplianceEvent],
    ) -> None:
        """Start should be refused with the door open, state unchanged."""
        state.set_door_closed(False)
        state.set_humidity(50.0)

        with pytest.raises(OperationNotAllowed):
            engine.start_program("cotton")

        assert state.status == ApplianceStatus.IDLE
        assert state.humidity == 50.0
        assert state.flush_events(timeout=1.0)
        assert captured_events[-1].severity == Severity.WARNING

    def test_start_in_error_raises(
        self, state: ApplianceState, engine: SimulationEngine
    ) -> None:
        """Start should be refused until the fault is acknowledged."""
        state.set_error("Overheating detected! Temperature: 100.0°C")

        with pytest.raises(OperationNotAllowed):
            engine.start_program("cotton")

        assert state.status == ApplianceStatus.ERROR

    def test_unknown_program_keeps_previous_parameters(
        self,
        state: ApplianceState,
        engine: SimulationEngine,
        captured_events: list[ApplianceEvent],
    ) -> None:
        """Unknown names should keep the last profile instead of failing."""
        engine.start_program("wool")
        engine.stop_program()

        engine.start_program("linen")

        assert state.status == ApplianceStatus.RUNNING
        assert state.remaining_seconds == 1800
        assert engine.profile is DEFAULT_PROGRAMS["wool"]
        assert state.flush_events(timeout=1.0)
        assert any(
            e.severity == Severity.WARNING and "linen" in e.message
            for e in captured_events
        )


class TestStopProgram:
    """Test user abort."""

    def test_stop_returns_to_idle(
        self, state: ApplianceState, engine: SimulationEngine
    ) -> None:
        """Stop should go straight to IDLE with the heater off."""
        engine.start_program("cotton")
        engine.update_state(1000)

        engine.stop_program()

        assert state.status == ApplianceStatus.IDLE
        assert state.remaining_seconds == 0
        assert not engine.heating_active
        assert not state.door_locked


class TestTemperatureCurve:
    """Test heating and cooling curves."""

    def test_heats_at_increase_rate(
        self, state: ApplianceState, engine: SimulationEngine
    ) -> None:
        """Temperature should rise by 2°C per second while heating."""
        engine.start_program("cotton")
        engine.update_state(5000)
        assert state.temperature == pytest.approx(10.0)

    def test_heating_is_monotonic_and_holds_target(
        self, state: ApplianceState, engine: SimulationEngine
    ) -> None:
        """Temperature should never drop while heating and hold at target."""
        engine.start_program("wool")
        previous = state.temperature
        for _ in range(40):
            engine.update_state(1000)
            assert state.temperature >= previous
            previous = state.temperature

        assert state.temperature == pytest.approx(45.0)

    def test_idle_decays_slowly(
        self, state: ApplianceState, engine: SimulationEngine
    ) -> None:
        """Idle residual heat should decay at 0.8°C per second."""
        state.set_temperature(20.0)
        engine.update_state(10000)
        assert state.temperature == pytest.approx(12.0)

    def test_idle_decay_never_negative(
        self, state: ApplianceState, engine: SimulationEngine
    ) -> None:
        """Decay should stop at 0°C."""
        state.set_temperature(1.0)
        engine.update_state(10000)
        assert state.temperature == 0.0

    def test_idle_does_not_change_humidity_or_time(
        self, state: ApplianceState, engine: SimulationEngine
    ) -> None:
        """Idle ticks should only touch the temperature."""
        state.set_humidity(60.0)
        state.set_remaining_seconds(100)
        engine.update_state(10000)

        assert state.humidity == 60.0
        assert state.remaining_seconds == 100

    def test_idle_forces_heater_off(
        self, state: ApplianceState, engine: SimulationEngine
    ) -> None:
        """A stray heater flag should be cleared on an idle tick."""
        engine.set_heating_active(True)
        engine.update_state(1000)
        assert not engine.heating_active


class TestHumidityCurve:
    """Test drying."""

    @pytest.mark.parametrize(
        "name, rate",
        [("cotton", 0.8), ("synthetic", 0.5), ("wool", 0.3)],
    )
    def test_humidity_drops_at_program_rate(
        self,
        state: ApplianceState,
        engine: SimulationEngine,
        name: str,
        rate: float,
    ) -> None:
        """Humidity should drop at the program's rate."""
        engine.start_program(name)
        engine.update_state(10000)
        assert state.humidity == pytest.approx(100.0 - rate * 10)

    def test_wool_ten_second_tick(
        self, state: ApplianceState, engine: SimulationEngine
    ) -> None:
        """Wool after 10 s should have less time left and drier laundry."""
        engine.start_program("wool")
        engine.update_state(10000)

        assert state.remaining_seconds < 1800
        assert state.humidity < 100.0


class TestRemainingTime:
    """Test the adaptive remaining-time estimate."""

    def test_first_tick_counts_down_linearly(
        self, state: ApplianceState, engine: SimulationEngine
    ) -> None:
        """First tick after start has no rate and counts down."""
        engine.start_program("cotton")
        engine.update_state(10000)
        assert state.remaining_seconds == 3590

    def test_estimate_from_drying_rate(
        self, state: ApplianceState, engine: SimulationEngine, clock
    ) -> None:
        """With progress the estimate follows the drying rate."""
        engine.start_program("cotton")
        clock.advance(10.0)
        engine.update_state(10000)  # humidity 92
        clock.advance(10.0)
        engine.update_state(10000)  # humidity 84, rate 0.8 %/s

        assert state.humidity == pytest.approx(84.0)
        assert state.remaining_seconds == int((84.0 - 5.0) / 0.8)

    def test_faster_drying_gives_shorter_estimate(
        self, state: ApplianceState, engine: SimulationEngine, clock
    ) -> None:
        """A faster drying rate should lead to less remaining time."""
        engine.start_program("cotton")
        engine.set_humidity_decrease_rate(5.0)
        clock.advance(1.0)
        engine.update_state(1000)
        clock.advance(1.0)
        engine.update_state(1000)
        fast = state.remaining_seconds

        engine.stop_program()
        engine.start_program("cotton")
        engine.set_humidity_decrease_rate(0.5)
        clock.advance(1.0)
        engine.update_state(1000)
        clock.advance(1.0)
        engine.update_state(1000)
        slow = state.remaining_seconds

        assert fast < slow

    def test_stalled_clock_falls_back_to_countdown(
        self, state: ApplianceState, engine: SimulationEngine
    ) -> None:
        """Without wall-clock progress the estimate counts down."""
        engine.start_program("cotton")
        engine.update_state(1000)
        engine.update_state(1000)  # clock did not move
        assert state.remaining_seconds == 3598

    def test_estimate_is_bounded(self, clock) -> None:
        """Estimate should stay within [floor, nominal]."""
        estimator = RemainingTimeEstimator(
            target_humidity=5.0, floor_seconds=5, clock=clock
        )
        estimator.estimate(100.0, 100, 1.0, 100)
        clock.advance(1.0)
        # 0.01 %/s from 99.99 -> far beyond nominal
        assert estimator.estimate(99.99, 100, 1.0, 100) == 100
        clock.advance(1.0)
        # Dropping quickly past the target -> floor
        assert estimator.estimate(4.0, 100, 1.0, 100) == 5

    def test_countdown_floored_at_zero(self, clock) -> None:
        """Linear countdown should never go negative."""
        estimator = RemainingTimeEstimator(
            target_humidity=5.0, floor_seconds=5, clock=clock
        )
        assert estimator.estimate(50.0, 1, 2.0, 100) == 0


class TestProgramFinish:
    """Test natural completion and cool-down."""

    def test_finish_on_low_humidity(
        self, state: ApplianceState, engine: SimulationEngine
    ) -> None:
        """Forcing near-dry laundry should finish the program."""
        engine.start_program("cotton")
        state.set_remaining_seconds(1)
        state.set_humidity(0.1)

        engine.update_state(2000)

        assert state.status in (ApplianceStatus.IDLE, ApplianceStatus.COOLING)
        assert state.remaining_seconds == 0
        assert not engine.heating_active

    def test_finish_on_timeout(
        self, state: ApplianceState, engine: SimulationEngine
    ) -> None:
        """Running out of time should finish even with wet laundry."""
        engine.start_program("cotton")
        state.set_remaining_seconds(1)

        engine.update_state(2000)

        assert state.status in (ApplianceStatus.IDLE, ApplianceStatus.COOLING)
        assert state.remaining_seconds == 0

    def test_hot_finish_cools_with_door_locked(
        self, state: ApplianceState, engine: SimulationEngine
    ) -> None:
        """A hot drum should keep the door locked while cooling."""
        engine.start_program("cotton")
        state.set_temperature(65.0)
        state.set_humidity(30.0)
        state.set_remaining_seconds(1)

        engine.update_state(2000)

        assert state.status == ApplianceStatus.COOLING
        assert state.door_locked

    def test_cooling_uses_fast_rate_then_unlocks(
        self, state: ApplianceState, engine: SimulationEngine
    ) -> None:
        """Cool-down should run at 3°C/s and unlock once safe."""
        engine.start_program("cotton")
        state.set_temperature(60.0)
        state.set_remaining_seconds(1)
        engine.update_state(2000)  # finishes, 60 -> 64 while heating
        temperature = state.temperature

        engine.update_state(1000)
        assert state.temperature == pytest.approx(temperature - 3.0)
        assert state.door_locked

        for _ in range(10):
            engine.update_state(1000)

        assert state.status == ApplianceStatus.IDLE
        assert not state.door_locked

    def test_cold_finish_goes_idle_and_unlocks(
        self, state: ApplianceState, engine: SimulationEngine
    ) -> None:
        """Finishing below the safe temperature should end unlocked."""
        engine.start_program("wool")
        state.set_humidity(0.1)

        engine.update_state(1000)

        assert state.status == ApplianceStatus.IDLE
        assert not state.door_locked

    def test_new_program_after_completion(
        self, state: ApplianceState, engine: SimulationEngine
    ) -> None:
        """A new program should start cleanly after completion."""
        engine.start_program("cotton")
        state.set_temperature(65.0)
        state.set_humidity(30.0)
        state.set_remaining_seconds(1)
        engine.update_state(2000)

        engine.start_program("synthetic")

        assert state.status == ApplianceStatus.RUNNING
        assert state.remaining_seconds == 2700


class TestOverheat:
    """Test the overheat cutoff during a tick."""

    def test_overheat_faults_the_program(
        self, state: ApplianceState, engine: SimulationEngine
    ) -> None:
        """Ticking at 100°C should switch to ERROR with a message."""
        engine.start_program("cotton")
        state.set_temperature(100.0)

        engine.update_state(2000)

        assert state.status == ApplianceStatus.ERROR
        assert "Temperature" in state.last_error
        assert not engine.heating_active

    def test_error_decays_residual_heat(
        self, state: ApplianceState, engine: SimulationEngine
    ) -> None:
        """After the fault the drum should cool down and unlock."""
        engine.start_program("cotton")
        state.set_temperature(100.0)
        engine.update_state(2000)

        engine.update_state(10000)

        assert state.temperature == pytest.approx(92.0)
        assert state.status == ApplianceStatus.ERROR
        assert not state.door_locked


class TestLoadNewLaundry:
    """Test loading a new load."""

    def test_load_with_door_open(
        self, state: ApplianceState, engine: SimulationEngine, safety: SafetyInterlock
    ) -> None:
        """Loading through the open door should reset humidity."""
        state.set_humidity(3.0)
        safety.try_open_door()

        assert engine.load_new_laundry()
        assert state.humidity == 100.0

    def test_load_with_door_closed(
        self,
        state: ApplianceState,
        engine: SimulationEngine,
        captured_events: list[ApplianceEvent],
    ) -> None:
        """Loading with the door closed should only warn."""
        state.set_humidity(3.0)

        assert not engine.load_new_laundry()
        assert state.humidity == 3.0
        assert state.flush_events(timeout=1.0)
        assert captured_events[-1].severity == Severity.WARNING


class TestParameters:
    """Test custom simulation parameters."""

    def test_custom_rates(self, state: ApplianceState, clock) -> None:
        """Engine should use the provided parameters."""
        safety = SafetyInterlock(state)
        engine = SimulationEngine(
            state,
            safety,
            params=SimulationParameters(temp_increase_rate=10.0),
            clock=clock,
        )
        engine.start_program("cotton")
        engine.update_state(1000)
        assert state.temperature == pytest.approx(10.0)
