"""Drying program profiles."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ProgramProfile:
    """Static parameters of a drying program.

    Attributes:
        name: Program identifier ("cotton", "synthetic", "wool").
        humidity_rate: Humidity decrease in percent per second while heating.
        target_temperature: Drum temperature the heater holds, in Celsius.
        duration_seconds: Nominal program duration.
    """

    name: str
    humidity_rate: float
    target_temperature: float
    duration_seconds: int


COTTON = ProgramProfile(
    name="cotton",
    humidity_rate=0.8,
    target_temperature=75.0,
    duration_seconds=3600,  # 60 minutes
)

SYNTHETIC = ProgramProfile(
    name="synthetic",
    humidity_rate=0.5,
    target_temperature=60.0,
    duration_seconds=2700,  # 45 minutes
)

WOOL = ProgramProfile(
    name="wool",
    humidity_rate=0.3,
    target_temperature=45.0,
    duration_seconds=1800,  # 30 minutes
)

DEFAULT_PROGRAMS: dict[str, ProgramProfile] = {
    profile.name: profile for profile in (COTTON, SYNTHETIC, WOOL)
}


def get_profile(
    name: str,
    programs: Optional[dict[str, ProgramProfile]] = None,
) -> Optional[ProgramProfile]:
    """Look up a program profile by name.

    Args:
        name: Program name.
        programs: Profile table. Uses the built-in programs if None.

    Returns:
        The profile, or None if the name is unknown.
    """
    table = DEFAULT_PROGRAMS if programs is None else programs
    return table.get(name)
