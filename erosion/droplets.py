"""Dense droplet storage with swap-remove despawning."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Sequence

import numpy as np


_INITIAL_CAPACITY = 256


@dataclass(frozen=True)
class Droplet:
    """Read-only snapshot of one live droplet."""

    position: tuple[float, float]
    direction: tuple[float, float]
    velocity: float
    water: float
    sediment: float


class DropletPool:
    """Struct-of-arrays pool of live droplets.

    Live droplets occupy the dense prefix ``[0, len(pool))`` of each array.
    Removing a droplet moves the last live droplet into its slot, so indices are
    only stable until the next removal.
    """

    def __init__(self, capacity: int = _INITIAL_CAPACITY) -> None:
        capacity = max(1, int(capacity))
        self._count = 0
        self._position = np.zeros((capacity, 2), dtype=np.float64)
        self._direction = np.zeros((capacity, 2), dtype=np.float64)
        self._velocity = np.zeros(capacity, dtype=np.float64)
        self._water = np.zeros(capacity, dtype=np.float64)
        self._sediment = np.zeros(capacity, dtype=np.float64)

    def __len__(self) -> int:
        return self._count

    def __iter__(self) -> Iterator[Droplet]:
        for index in range(self._count):
            yield self.droplet(index)

    @property
    def capacity(self) -> int:
        return self._velocity.shape[0]

    @property
    def positions(self) -> np.ndarray:
        return self._position[: self._count]

    @property
    def directions(self) -> np.ndarray:
        return self._direction[: self._count]

    @property
    def velocity(self) -> np.ndarray:
        return self._velocity[: self._count]

    @property
    def water(self) -> np.ndarray:
        return self._water[: self._count]

    @property
    def sediment(self) -> np.ndarray:
        return self._sediment[: self._count]

    def droplet(self, index: int) -> Droplet:
        if not 0 <= index < self._count:
            raise IndexError(f"droplet index {index} out of range for {self._count} live droplets")
        return Droplet(
            position=(float(self._position[index, 0]), float(self._position[index, 1])),
            direction=(float(self._direction[index, 0]), float(self._direction[index, 1])),
            velocity=float(self._velocity[index]),
            water=float(self._water[index]),
            sediment=float(self._sediment[index]),
        )

    def spawn(
        self,
        position: Sequence[float],
        *,
        direction: Sequence[float] = (0.0, 0.0),
        velocity: float = 0.0,
        water: float = 1.0,
        sediment: float = 0.0,
    ) -> int:
        """Append a droplet and return its current index."""

        if self._count == self.capacity:
            self._grow(self._count + 1)
        index = self._count
        self._position[index] = position
        self._direction[index] = direction
        self._velocity[index] = velocity
        self._water[index] = water
        self._sediment[index] = sediment
        self._count += 1
        return index

    def spawn_many(self, positions: np.ndarray | Sequence[Sequence[float]]) -> int:
        """Append fresh droplets (at rest, full of water) at each position."""

        positions = np.asarray(positions, dtype=np.float64).reshape(-1, 2)
        added = positions.shape[0]
        if added == 0:
            return 0
        start = self._count
        stop = start + added
        if stop > self.capacity:
            self._grow(stop)
        self._position[start:stop] = positions
        self._direction[start:stop] = 0.0
        self._velocity[start:stop] = 0.0
        self._water[start:stop] = 1.0
        self._sediment[start:stop] = 0.0
        self._count = stop
        return added

    def remove(self, index: int) -> None:
        """Swap-remove the droplet at `index`."""

        if not 0 <= index < self._count:
            raise IndexError(f"droplet index {index} out of range for {self._count} live droplets")
        last = self._count - 1
        if index != last:
            self._position[index] = self._position[last]
            self._direction[index] = self._direction[last]
            self._velocity[index] = self._velocity[last]
            self._water[index] = self._water[last]
            self._sediment[index] = self._sediment[last]
        self._count = last

    def remove_dry(self, epsilon: float) -> tuple[int, float]:
        """Remove every droplet with ``water < epsilon`` (or non-finite water).

        Returns the number removed and the sediment they were still carrying.
        """

        removed = 0
        sediment = 0.0
        index = 0
        while index < self._count:
            # NaN water counts as dry.
            if not self._water[index] >= epsilon:
                sediment += float(self._sediment[index])
                self.remove(index)
                removed += 1
            else:
                index += 1
        return removed, sediment

    def clear(self) -> None:
        self._count = 0

    def _grow(self, minimum: int) -> None:
        capacity = self.capacity
        while capacity < minimum:
            capacity *= 2
        self._position = _resized(self._position, capacity)
        self._direction = _resized(self._direction, capacity)
        self._velocity = _resized(self._velocity, capacity)
        self._water = _resized(self._water, capacity)
        self._sediment = _resized(self._sediment, capacity)


def _resized(values: np.ndarray, capacity: int) -> np.ndarray:
    out = np.zeros((capacity,) + values.shape[1:], dtype=values.dtype)
    out[: values.shape[0]] = values
    return out
