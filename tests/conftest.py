"""Pytest fixtures for dryer tests."""

import pytest

from dryer.config import DryerConfig
from dryer.core.appliance_state import ApplianceState
from dryer.core.events import ApplianceEvent
from dryer.core.safety import SafetyInterlock
from dryer.core.scheduler import Scheduler
from dryer.simulator.drying_model import SimulationEngine


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    """Clock that only moves when advanced."""
    return FakeClock()


@pytest.fixture
def captured_events() -> list[ApplianceEvent]:
    """List collecting every event forwarded to the sink."""
    return []


@pytest.fixture
def state(captured_events: list[ApplianceEvent]) -> ApplianceState:
    """Fresh appliance state recording events into captured_events."""
    return ApplianceState(sinks=[captured_events.append])


@pytest.fixture
def safety(state: ApplianceState) -> SafetyInterlock:
    """Safety interlock with default thresholds."""
    return SafetyInterlock(state)


@pytest.fixture
def engine(
    state: ApplianceState,
    safety: SafetyInterlock,
    clock: FakeClock,
) -> SimulationEngine:
    """Simulation engine driven by the fake clock."""
    return SimulationEngine(state, safety, clock=clock)


@pytest.fixture
def test_config() -> DryerConfig:
    """Test configuration with a short tick interval."""
    config = DryerConfig()
    config.tick_interval = 0.01
    return config


@pytest.fixture
def scheduler(test_config: DryerConfig, clock: FakeClock) -> Scheduler:
    """Scheduler on the fake clock, tick loop not started."""
    return Scheduler(config=test_config, clock=clock, sinks=[])
