"""Droplet-based hydraulic erosion simulation package."""

from .config import DEFAULT_SIZE, ConfigError, SimulationConfig
from .simulation import Simulation, TickStats

__all__ = ["DEFAULT_SIZE", "ConfigError", "SimulationConfig", "Simulation", "TickStats"]
