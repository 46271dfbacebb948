"""Drying simulation."""

from .drying_model import RemainingTimeEstimator, SimulationEngine, SimulationParameters

__all__ = [
    "RemainingTimeEstimator",
    "SimulationEngine",
    "SimulationParameters",
]
