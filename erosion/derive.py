"""Derived raster products for hosts that display the simulation."""

from __future__ import annotations

import numpy as np
from matplotlib.colors import ListedColormap

from erosion.droplets import DropletPool
from erosion.grid import ElevationGrid, unroll
from erosion.sources import SourceSet


SURFACE_WATER = 0
SURFACE_ROCK = 1
SURFACE_GRASS = 2

_SURFACE_CMAP = ListedColormap(
    [
        (0.0, 0.0, 0.0),  # water
        (1.0, 0.5, 1.0 / 3.0),  # rock
        (0.25, 1.0, 1.0 / 3.0),  # grass
    ],
    name="erosion_surface",
)


def height_preview_u16(heights: np.ndarray, *, robust_percentiles: tuple[float, float] = (1.0, 99.0)) -> np.ndarray:
    """Map float heights to 16-bit preview grayscale."""

    lo, hi = np.percentile(heights, robust_percentiles)
    scale = max(hi - lo, 1e-6)
    norm = np.clip((heights - lo) / scale, 0.0, 1.0)
    return np.round(norm * 65535.0).astype(np.uint16)


def hillshade(
    heights: np.ndarray,
    *,
    cell_size: float = 1.0,
    azimuth_deg: float = 315.0,
    altitude_deg: float = 45.0,
    z_factor: float = 1.0,
) -> np.ndarray:
    """Compute an 8-bit grayscale hillshade from a 2D height array."""

    if heights.ndim != 2:
        raise ValueError("heights must be a 2D array")
    if cell_size <= 0:
        raise ValueError("cell_size must be positive")

    dz_dy, dz_dx = np.gradient(heights.astype(np.float32), cell_size, cell_size)
    dz_dx = dz_dx * float(z_factor)
    dz_dy = dz_dy * float(z_factor)

    slope = np.pi / 2.0 - np.arctan(np.hypot(dz_dx, dz_dy))
    aspect = np.arctan2(-dz_dx, dz_dy)

    azimuth = np.deg2rad(azimuth_deg)
    altitude = np.deg2rad(altitude_deg)

    shaded = (
        np.sin(altitude) * np.sin(slope)
        + np.cos(altitude) * np.cos(slope) * np.cos(azimuth - aspect)
    )
    shaded = np.clip(shaded, 0.0, 1.0)
    return np.round(shaded * 255.0).astype(np.uint8)


def surface_classes(grid: ElevationGrid, *, rock_slope: float = 0.008) -> np.ndarray:
    """Classify cells as water (below 0), rock (steep) or grass; shape ``(size, size)``."""

    heights = grid.as_2d()
    slope = np.hypot(*grid.gradient_field().T).reshape(heights.shape)
    classes = np.full(heights.shape, SURFACE_GRASS, dtype=np.uint8)
    classes[slope > rock_slope] = SURFACE_ROCK
    classes[heights < 0.0] = SURFACE_WATER
    return classes


def surface_preview_rgb(
    grid: ElevationGrid,
    droplets: DropletPool | None = None,
    sources: SourceSet | None = None,
    *,
    rock_slope: float = 0.008,
) -> np.ndarray:
    """Render terrain classes shaded by height, with source markers and wet droplet cells."""

    brightness = np.floor(np.clip(grid.as_2d().astype(np.float64), 0.0, 1.0) * 255.0)
    classes = surface_classes(grid, rock_slope=rock_slope).astype(np.int32)
    rgba = _SURFACE_CMAP(classes)
    rgb = np.floor(brightness[..., None] * rgba[..., :3] + 1e-6)
    rgb = np.clip(rgb, 0.0, 255.0).astype(np.uint8)

    flat = rgb.reshape(-1, 3)
    size = grid.size
    if sources is not None:
        for position in sources.positions:
            flat[unroll(position, size)] = (255, 0, 0)
    if droplets is not None:
        # Sequential: overlapping droplets tint the already tinted cell.
        for position, water in zip(droplets.positions, droplets.water):
            cell = unroll(position, size)
            red = int(flat[cell, 0])
            if red == 0:
                continue
            wet = float(np.clip(water, 0.0, 1.0))
            tint = int(255.0 * wet)
            dry = int(red * (1.0 - wet))
            flat[cell] = (dry, dry, min(255, tint + dry))
    return rgb
