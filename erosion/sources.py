"""Persistent river sources emitting droplets at fractional rates."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import math

import numpy as np

from erosion.config import SourceConfig
from erosion.grid import ElevationGrid
from erosion.rng import random_positions


logger = logging.getLogger(__name__)


@dataclass
class Source:
    """A fixed spring; `accumulator` carries flow not yet released as a droplet."""

    position: tuple[float, float]
    flux: float
    accumulator: float = 0.0

    def flow(self) -> int:
        """Advance one tick and return the number of whole droplets released."""

        self.accumulator += self.flux
        drops = math.floor(self.accumulator)
        self.accumulator -= drops
        return int(drops)


class SourceSet:
    """Ordered collection of sources; positions and flux never change after placement."""

    def __init__(self, sources: list[Source] | None = None) -> None:
        self._sources: list[Source] = list(sources or [])

    def __len__(self) -> int:
        return len(self._sources)

    def __iter__(self):
        return iter(self._sources)

    def __getitem__(self, index: int) -> Source:
        return self._sources[index]

    @property
    def positions(self) -> np.ndarray:
        if not self._sources:
            return np.zeros((0, 2), dtype=np.float64)
        return np.array([source.position for source in self._sources], dtype=np.float64)

    def tick(self) -> list[tuple[float, float]]:
        """Advance every source and return the spawn position of each released droplet."""

        spawns: list[tuple[float, float]] = []
        for source in self._sources:
            drops = source.flow()
            spawns.extend([source.position] * drops)
        return spawns


def place_sources(grid: ElevationGrid, rng: np.random.Generator, *, config: SourceConfig | None = None) -> SourceSet:
    """Sample candidate positions and keep those on terrain above `min_elevation`."""

    cfg = config or SourceConfig()
    candidates = random_positions(rng, cfg.attempts, grid.size)

    sources = [
        Source((float(x), float(y)), cfg.flux)
        for x, y in candidates
        if grid.height_at((x, y)) > cfg.min_elevation
    ]
    logger.info("Placed %d sources from %d attempts", len(sources), cfg.attempts)
    return SourceSet(sources)
