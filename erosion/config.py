"""Configuration models for the erosion simulation."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

import numpy as np


DEFAULT_SIZE = 512

EVAPORATION = 0.05
INERTIA = 0.1
MINSLOPE = 0.0
CAPACITY = 800.0
DEPOSITION = 0.1
EROSION = 0.01
WATER_EPSILON = float(np.finfo(np.float32).eps)

VARIANT_VELOCITY = "velocity"
VARIANT_CONSTANT = "constant"
VARIANTS = (VARIANT_VELOCITY, VARIANT_CONSTANT)


class ConfigError(ValueError):
    """Raised when a configuration cannot produce a meaningful simulation."""


@dataclass(frozen=True)
class NoiseConfig:
    """Controls the fractal noise used to seed the initial terrain."""

    base_res: int = 2
    octaves: int = 6
    lacunarity: float = 2.0
    gain: float = 0.5
    island_bias: float = 0.5


@dataclass(frozen=True)
class ErosionConfig:
    """Droplet erosion tuning constants.

    `variant` selects one of the two attested update rules:

    - ``"velocity"``: inertia is weighted by droplet velocity, erosion only
      happens above the water level, evaporation scales with ``1 - velocity``.
    - ``"constant"``: plain inertia, no water-level gate, constant evaporation.
    """

    evaporation: float = EVAPORATION
    inertia: float = INERTIA
    min_slope: float = MINSLOPE
    capacity: float = CAPACITY
    deposition: float = DEPOSITION
    erosion: float = EROSION
    water_epsilon: float = WATER_EPSILON
    variant: str = VARIANT_VELOCITY


@dataclass(frozen=True)
class SourceConfig:
    """Controls placement and emission of persistent river sources."""

    attempts: int = 400
    min_elevation: float = 0.3
    flux: float = 0.01


@dataclass(frozen=True)
class RainConfig:
    """Controls random rain droplets spawned every tick."""

    droplets_per_tick: int = 5


@dataclass(frozen=True)
class SimulationConfig:
    """Primary simulation configuration."""

    size: int = DEFAULT_SIZE
    noise: NoiseConfig = field(default_factory=NoiseConfig)
    erosion: ErosionConfig = field(default_factory=ErosionConfig)
    sources: SourceConfig = field(default_factory=SourceConfig)
    rain: RainConfig = field(default_factory=RainConfig)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def validate_config(config: SimulationConfig) -> None:
    """Raise `ConfigError` if `config` cannot drive a simulation."""

    if config.size < 2:
        raise ConfigError(f"size must be >= 2, got {config.size}")

    erosion = config.erosion
    for name in ("evaporation", "inertia", "min_slope", "capacity", "deposition", "erosion"):
        value = getattr(erosion, name)
        if not np.isfinite(value) or value < 0.0:
            raise ConfigError(f"erosion.{name} must be a non-negative number, got {value}")
    for name in ("evaporation", "deposition", "erosion"):
        value = getattr(erosion, name)
        if value > 1.0:
            raise ConfigError(f"erosion.{name} must be <= 1, got {value}")
    if not erosion.water_epsilon > 0.0:
        raise ConfigError(f"erosion.water_epsilon must be positive, got {erosion.water_epsilon}")
    if erosion.variant not in VARIANTS:
        options = ", ".join(VARIANTS)
        raise ConfigError(f"erosion.variant must be one of {options}, got {erosion.variant!r}")

    if config.rain.droplets_per_tick < 0:
        raise ConfigError(f"rain.droplets_per_tick must be >= 0, got {config.rain.droplets_per_tick}")

    sources = config.sources
    if sources.attempts < 0:
        raise ConfigError(f"sources.attempts must be >= 0, got {sources.attempts}")
    if not np.isfinite(sources.flux) or sources.flux < 0.0:
        raise ConfigError(f"sources.flux must be a non-negative number, got {sources.flux}")

    noise = config.noise
    if noise.octaves < 1:
        raise ConfigError(f"noise.octaves must be >= 1, got {noise.octaves}")
    if noise.base_res < 1:
        raise ConfigError(f"noise.base_res must be >= 1, got {noise.base_res}")
    if noise.lacunarity <= 0.0:
        raise ConfigError(f"noise.lacunarity must be positive, got {noise.lacunarity}")
