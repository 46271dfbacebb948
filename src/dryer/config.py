"""Configuration management for the dryer control kernel."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from .core.programs import DEFAULT_PROGRAMS, ProgramProfile

logger = logging.getLogger(__name__)


def _load_dotenv(env_path: Path) -> None:
    """Load environment variables from .env file."""
    if not env_path.exists():
        return

    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" in line:
                key, _, value = line.partition("=")
                key = key.strip()
                value = value.strip().strip('"').strip("'")
                # Only set if not already in environment
                if key not in os.environ:
                    os.environ[key] = value


@dataclass
class DryerConfig:
    """Main configuration class for the dryer control kernel.

    All temperature values are in Celsius.
    All durations are in seconds, rates are per second.
    """

    # Scheduler
    tick_interval: float = 1.0

    # Logging
    log_level: str = "INFO"

    # Event history
    event_history_size: int = 100
    recent_events: int = 10  # Events included in snapshots

    # Safety
    safe_door_temperature: float = 40.0
    overheat_threshold: float = 100.0

    # Simulation
    target_humidity: float = 5.0
    temp_increase_rate: float = 2.0
    temp_decrease_rate: float = 0.8
    temp_cooling_rate: float = 3.0
    min_remaining_seconds: int = 5

    # Drying programs by name
    programs: dict[str, ProgramProfile] = field(
        default_factory=lambda: dict(DEFAULT_PROGRAMS)
    )


def load_config(
    config_path: Path | None = None,
    env: str | None = None,
) -> DryerConfig:
    """Load configuration from YAML files and environment variables.

    Configuration is loaded with the following priority (highest to lowest):
    1. Environment variables (DRYER_*)
    2. Environment-specific config (development.yaml, production.yaml)
    3. Default config (default.yaml)
    4. Hardcoded defaults

    Args:
        config_path: Path to config directory. Defaults to project config/.
        env: Environment name. Defaults to DRYER_ENV or "development".

    Returns:
        Loaded DryerConfig instance.
    """
    config = DryerConfig()

    # Determine config directory
    if config_path is None:
        # Try relative to this file, then fall back to cwd
        module_dir = Path(__file__).parent
        config_path = module_dir.parent.parent / "config"
        if not config_path.exists():
            config_path = Path.cwd() / "config"

    # Load .env file from project root (config_path/../.env)
    _load_dotenv(config_path.parent / ".env")

    default_path = config_path / "default.yaml"
    if default_path.exists():
        config = _merge_yaml(config, default_path)
        logger.debug("Loaded default config from %s", default_path)

    if env is None:
        env = os.environ.get("DRYER_ENV", "development")

    env_config_path = config_path / f"{env}.yaml"
    if env_config_path.exists():
        config = _merge_yaml(config, env_config_path)
        logger.debug("Loaded %s config from %s", env, env_config_path)

    # Override with environment variables (highest priority)
    config = _apply_env_overrides(config)

    logger.info("Configuration loaded for environment: %s", env)
    return config


def _merge_yaml(config: DryerConfig, path: Path) -> DryerConfig:
    """Merge YAML file into config."""
    with open(path) as f:
        data = yaml.safe_load(f)

    if data is None:
        return config

    scheduler = data.get("scheduler") or {}
    config.tick_interval = scheduler.get("tick_interval", config.tick_interval)

    events = data.get("events") or {}
    config.event_history_size = events.get("history_size", config.event_history_size)
    config.recent_events = events.get("recent", config.recent_events)

    safety = data.get("safety") or {}
    config.safe_door_temperature = safety.get(
        "safe_door_temperature", config.safe_door_temperature
    )
    config.overheat_threshold = safety.get(
        "overheat_threshold", config.overheat_threshold
    )

    sim = data.get("simulation") or {}
    config.target_humidity = sim.get("target_humidity", config.target_humidity)
    config.temp_increase_rate = sim.get("temp_increase_rate", config.temp_increase_rate)
    config.temp_decrease_rate = sim.get("temp_decrease_rate", config.temp_decrease_rate)
    config.temp_cooling_rate = sim.get("temp_cooling_rate", config.temp_cooling_rate)
    config.min_remaining_seconds = sim.get(
        "min_remaining_seconds", config.min_remaining_seconds
    )

    for name, values in (data.get("programs") or {}).items():
        try:
            config.programs[name] = _merge_program(
                config.programs.get(name), name, values or {}
            )
        except KeyError as e:
            logger.error("Skipping program %r in %s: missing %s", name, path, e)

    config.log_level = data.get("log_level") or config.log_level

    return config


def _merge_program(
    base: ProgramProfile | None,
    name: str,
    values: dict[str, Any],
) -> ProgramProfile:
    """Build a program profile from YAML values on top of an existing one."""
    if base is None:
        return ProgramProfile(
            name=name,
            humidity_rate=float(values["humidity_rate"]),
            target_temperature=float(values["target_temperature"]),
            duration_seconds=int(values["duration_seconds"]),
        )
    return replace(
        base,
        humidity_rate=float(values.get("humidity_rate", base.humidity_rate)),
        target_temperature=float(
            values.get("target_temperature", base.target_temperature)
        ),
        duration_seconds=int(values.get("duration_seconds", base.duration_seconds)),
    )


def _apply_env_overrides(config: DryerConfig) -> DryerConfig:
    """Apply environment variable overrides."""
    env_map: dict[str, tuple[str, type[Any]]] = {
        "DRYER_TICK_INTERVAL": ("tick_interval", float),
        "DRYER_LOG_LEVEL": ("log_level", str),
        "DRYER_EVENT_HISTORY_SIZE": ("event_history_size", int),
        "DRYER_SAFE_DOOR_TEMP": ("safe_door_temperature", float),
        "DRYER_OVERHEAT_TEMP": ("overheat_threshold", float),
        "DRYER_TARGET_HUMIDITY": ("target_humidity", float),
    }

    for env_var, (attr, converter) in env_map.items():
        value = os.environ.get(env_var)
        if value is not None:
            try:
                converted = converter(value)
                setattr(config, attr, converted)
                logger.debug("Applied env override: %s=%s", env_var, converted)
            except (ValueError, TypeError) as e:
                logger.warning("Invalid env var %s=%s: %s", env_var, value, e)

    return config
