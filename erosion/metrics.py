"""Terrain summary metrics."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

import numpy as np
from scipy.ndimage import label

from erosion.grid import ElevationGrid


_CONNECTIVITY_8 = np.ones((3, 3), dtype=bool)


@dataclass(frozen=True)
class TerrainMetrics:
    """Coverage, landmass and height statistics of an elevation grid."""

    land_fraction: float
    num_landmasses: int
    largest_landmass_ratio: float
    min_height: float
    max_height: float
    mean_height: float
    total_mass: float
    mean_slope: float
    hypsometric_integral_land: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def terrain_metrics(grid: ElevationGrid) -> TerrainMetrics:
    """Summarize `grid`; land is every cell at or above height 0."""

    heights = grid.as_2d().astype(np.float64)
    land = heights >= 0.0
    total_land = int(land.sum())

    labels, count = label(land, structure=_CONNECTIVITY_8)
    if count:
        sizes = np.bincount(labels.ravel())[1:]
        largest_ratio = float(sizes.max() / total_land)
    else:
        largest_ratio = 0.0

    slopes = np.hypot(*grid.gradient_field().T)
    return TerrainMetrics(
        land_fraction=float(total_land / heights.size),
        num_landmasses=int(count),
        largest_landmass_ratio=largest_ratio,
        min_height=float(heights.min()),
        max_height=float(heights.max()),
        mean_height=float(heights.mean()),
        total_mass=grid.total_mass(),
        mean_slope=float(slopes.mean()),
        hypsometric_integral_land=_hypsometric_integral(heights, land),
    )


def _hypsometric_integral(heights: np.ndarray, land_mask: np.ndarray) -> float:
    if not np.any(land_mask):
        return 0.0
    land = heights[land_mask]
    h_min = float(np.min(land))
    h_max = float(np.max(land))
    if h_max <= h_min + 1e-9:
        return 0.0
    norm = np.clip((land - h_min) / (h_max - h_min), 0.0, 1.0)
    return float(np.mean(norm))
