"""Tick-based hydraulic erosion simulation."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Callable

import numpy as np

from erosion.config import SimulationConfig, validate_config
from erosion.droplets import DropletPool
from erosion.grid import ElevationGrid
from erosion.noise import NoiseField
from erosion.rng import RngStream, random_positions
from erosion.sources import SourceSet, place_sources
from erosion.step import erode


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TickStats:
    """Summary of one committed tick."""

    tick: int
    rain_spawned: int
    source_spawned: int
    despawned: int
    live: int
    eroded: float
    deposited: float
    sediment_removed: float
    invalidated: int


class Simulation:
    """Owns the elevation grid, the sources and the droplet pool.

    Each `tick` spawns rain and source droplets, steps every live droplet once in
    pool order against the single grid, then drops droplets that ran out of water.
    A tick always commits fully, so a host may stop between any two ticks.
    """

    def __init__(
        self,
        config: SimulationConfig | None = None,
        *,
        seed: int = 0,
        rng: RngStream | None = None,
        heights: np.ndarray | None = None,
    ) -> None:
        cfg = config or SimulationConfig()
        validate_config(cfg)
        stream = rng or RngStream(seed)

        if heights is None:
            noise = NoiseField.from_rng(
                stream.fork("noise").generator(),
                base_res=cfg.noise.base_res,
                octaves=cfg.noise.octaves,
                lacunarity=cfg.noise.lacunarity,
                gain=cfg.noise.gain,
            )
            grid = ElevationGrid.generate(cfg.size, noise, bias=cfg.noise.island_bias)
        else:
            grid = ElevationGrid(heights, cfg.size)

        self.config = cfg
        self.grid = grid
        self.sources: SourceSet = place_sources(grid, stream.fork("sources").generator(), config=cfg.sources)
        self.droplets = DropletPool()
        self._rain_rng = stream.fork("rain").generator()
        self._tick = 0
        self._sediment_removed = 0.0

    @property
    def tick_count(self) -> int:
        return self._tick

    @property
    def sediment_removed(self) -> float:
        """Sediment carried away by droplets that evaporated, over the whole run."""
        return self._sediment_removed

    def mass(self) -> float:
        """Terrain plus sediment still held or already carried off by droplets."""

        carried = float(np.sum(self.droplets.sediment, dtype=np.float64))
        return self.grid.total_mass() + carried + self._sediment_removed

    def tick(self, rain: int | None = None) -> TickStats:
        """Advance the simulation by one tick; `rain` overrides the configured droplet count."""

        rain_count = self.config.rain.droplets_per_tick if rain is None else int(rain)
        if rain_count < 0:
            raise ValueError("rain must be >= 0")

        rain_spawned = self.droplets.spawn_many(random_positions(self._rain_rng, rain_count, self.grid.size))
        source_spawned = self.droplets.spawn_many(self.sources.tick())

        totals = erode(self.grid, self.droplets, self.config.erosion)
        despawned, sediment_removed = self.droplets.remove_dry(self.config.erosion.water_epsilon)
        self._sediment_removed += sediment_removed
        self._tick += 1

        stats = TickStats(
            tick=self._tick,
            rain_spawned=rain_spawned,
            source_spawned=source_spawned,
            despawned=despawned,
            live=len(self.droplets),
            eroded=totals.eroded,
            deposited=totals.deposited,
            sediment_removed=sediment_removed,
            invalidated=totals.invalidated,
        )
        logger.debug(
            "tick %d: +%d rain +%d source -%d dry, %d live, eroded %.5f deposited %.5f",
            stats.tick,
            stats.rain_spawned,
            stats.source_spawned,
            stats.despawned,
            stats.live,
            stats.eroded,
            stats.deposited,
        )
        if totals.invalidated:
            logger.warning("tick %d: dropped %d droplets with non-finite state", stats.tick, totals.invalidated)
        return stats

    def run(self, ticks: int, *, on_tick: Callable[["Simulation", TickStats], None] | None = None) -> list[TickStats]:
        """Run `ticks` ticks, calling `on_tick` after each one commits."""

        if ticks < 0:
            raise ValueError("ticks must be >= 0")
        history: list[TickStats] = []
        for _ in range(ticks):
            stats = self.tick()
            history.append(stats)
            if on_tick is not None:
                on_tick(self, stats)
        logger.info("Ran %d ticks, %d droplets live", ticks, len(self.droplets))
        return history
