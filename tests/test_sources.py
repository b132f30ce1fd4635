from __future__ import annotations

import math

import numpy as np
import pytest

from erosion.config import SourceConfig
from erosion.grid import ElevationGrid
from erosion.sources import Source, SourceSet, place_sources


def test_source_releases_one_droplet_per_reciprocal_flux() -> None:
    source = Source((1.0, 2.0), 0.25)

    assert [source.flow() for _ in range(8)] == [0, 0, 0, 1, 0, 0, 0, 1]
    assert source.accumulator == 0.0


@pytest.mark.parametrize("flux", [0.125, 0.25, 0.3125, 0.75, 1.5, 2.0])
@pytest.mark.parametrize("ticks", [1, 7, 64, 1000])
def test_source_emission_tracks_flux(flux: float, ticks: int) -> None:
    source = Source((0.0, 0.0), flux)
    emitted = 0
    for _ in range(ticks):
        emitted += source.flow()
        assert 0.0 <= source.accumulator < 1.0

    assert emitted in (math.floor(flux * ticks), math.ceil(flux * ticks))


def test_small_flux_converges_to_rate() -> None:
    source = Source((0.0, 0.0), 0.01)

    emitted = sum(source.flow() for _ in range(10_000))

    assert abs(emitted - 100) <= 1


def test_source_set_tick_repeats_spawn_position_per_drop() -> None:
    sources = SourceSet([Source((1.5, 2.5), 2.0), Source((3.0, 4.0), 0.5)])

    first = sources.tick()
    second = sources.tick()

    assert first == [(1.5, 2.5), (1.5, 2.5)]
    assert second == [(1.5, 2.5), (1.5, 2.5), (3.0, 4.0)]
    assert sources.positions.shape == (2, 2)


def test_place_sources_keeps_only_high_ground() -> None:
    size = 16
    heights = np.zeros((size, size), dtype=np.float32)
    heights[:, : size // 2] = 1.0
    grid = ElevationGrid(heights.ravel(), size)
    config = SourceConfig(attempts=200, min_elevation=0.3, flux=0.02)

    sources = place_sources(grid, np.random.default_rng(3), config=config)

    assert len(sources) > 0
    for source in sources:
        assert source.position[0] < size // 2
        assert grid.height_at(source.position) > 0.3
        assert source.flux == 0.02
        assert source.accumulator == 0.0


def test_place_sources_threshold_is_strict() -> None:
    grid = ElevationGrid(np.full(64, 0.25, dtype=np.float32), 8)

    sources = place_sources(grid, np.random.default_rng(0), config=SourceConfig(min_elevation=0.25))

    assert len(sources) == 0
    assert sources.positions.shape == (0, 2)
