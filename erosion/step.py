"""Per-tick droplet update: flow, erosion, deposition, evaporation."""

from __future__ import annotations

from dataclasses import dataclass
import math

from erosion.config import VARIANT_VELOCITY, ErosionConfig
from erosion.droplets import DropletPool
from erosion.grid import ElevationGrid


_MIN_DIRECTION_LENGTH = 1e-12


@dataclass(frozen=True)
class StepOutcome:
    """What one droplet did to the terrain in one step."""

    height_drop: float
    eroded: float
    deposited: float
    invalid: bool = False


@dataclass(frozen=True)
class ErosionTotals:
    droplets: int
    eroded: float
    deposited: float
    invalidated: int


def step_droplet(grid: ElevationGrid, pool: DropletPool, index: int, config: ErosionConfig) -> StepOutcome:
    """Advance the droplet at `index` one cell along the terrain and apply its mass transfer.

    Mutates both `grid` and the droplet's slot in `pool`. Droplets whose state
    turns non-finite lose all their water and leave the grid untouched.
    """

    positions = pool.positions
    directions = pool.directions
    velocities = pool.velocity
    waters = pool.water
    sediments = pool.sediment

    x = float(positions[index, 0])
    y = float(positions[index, 1])
    dir_x = float(directions[index, 0])
    dir_y = float(directions[index, 1])
    velocity = float(velocities[index])
    water = float(waters[index])
    sediment = float(sediments[index])
    velocity_weighted = config.variant == VARIANT_VELOCITY

    grad_x, grad_y = grid.gradient(grid.cell_of((x, y)))
    weight = config.inertia * velocity if velocity_weighted else config.inertia
    new_x = dir_x * weight - grad_x * (1.0 - weight)
    new_y = dir_y * weight - grad_y * (1.0 - weight)
    length = math.hypot(new_x, new_y)
    # Degenerate input keeps the previous heading.
    if math.isfinite(length) and length > _MIN_DIRECTION_LENGTH:
        dir_x = new_x / length
        dir_y = new_y / length

    old_position = (x, y)
    x += dir_x
    y += dir_y
    new_height = grid.height_at((x, y))
    old_height = grid.height_at(old_position)
    height_drop = old_height - new_height

    positions[index] = (x, y)
    directions[index] = (dir_x, dir_y)

    if not (math.isfinite(height_drop) and math.isfinite(velocity) and math.isfinite(sediment)):
        waters[index] = 0.0
        return StepOutcome(height_drop=height_drop, eroded=0.0, deposited=0.0, invalid=True)

    eroded = 0.0
    deposited = 0.0
    capacity_diff = max(height_drop, config.min_slope) * velocity * water * config.capacity - sediment
    if capacity_diff < 0.0:
        deposited = -capacity_diff * config.deposition
        sediment -= deposited
        if deposited:
            grid.deposit(old_position, deposited)
    elif new_height >= 0.0 or not velocity_weighted:
        # Never carve deeper than the drop just descended.
        eroded = max(0.0, min(capacity_diff * config.erosion, height_drop))
        sediment += eroded
        if eroded:
            grid.deposit(old_position, -eroded)

    velocity = math.sqrt(max(velocity * velocity + height_drop, 0.0))
    evaporation_scale = 1.0 - velocity if velocity_weighted else 1.0
    retained = min(1.0, max(0.0, 1.0 - config.evaporation * evaporation_scale))

    velocities[index] = velocity
    waters[index] = water * retained
    sediments[index] = sediment
    return StepOutcome(height_drop=height_drop, eroded=eroded, deposited=deposited)


def erode(grid: ElevationGrid, pool: DropletPool, config: ErosionConfig) -> ErosionTotals:
    """Step every live droplet once, strictly in pool order.

    Each droplet reads the grid as left by the droplets before it in the same
    pass; reordering or parallelizing this loop changes the result.
    """

    eroded = 0.0
    deposited = 0.0
    invalidated = 0
    count = len(pool)
    for index in range(count):
        outcome = step_droplet(grid, pool, index, config)
        if outcome.invalid:
            invalidated += 1
        eroded += outcome.eroded
        deposited += outcome.deposited
    return ErosionTotals(droplets=count, eroded=eroded, deposited=deposited, invalidated=invalidated)
