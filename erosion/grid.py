"""Row-major elevation grid with gradient queries and smoothed deposits."""

from __future__ import annotations

from typing import Sequence

import numpy as np

from erosion.noise import NoiseField, island_heights


Position = Sequence[float]

# 3x3 brush, offsets as (dx, dy); weights sum to 1.
_BRUSH_OFFSETS = tuple((dx, dy) for dy in (-1, 0, 1) for dx in (-1, 0, 1))
_BRUSH_WEIGHTS = np.array(
    [0.4 if dx == 0 and dy == 0 else 0.1 if dx == 0 or dy == 0 else 0.05 for dx, dy in _BRUSH_OFFSETS],
    dtype=np.float64,
)


def _clamp_axis(value: float, size: int) -> int:
    # `not value >= 0` also routes NaN to the first cell.
    if not value >= 0.0:
        return 0
    if value >= size:
        return size - 1
    return int(value)


def unroll(position: Position, size: int) -> int:
    """Project a continuous (x, y) position to a clamped flat index ``x + y * size``."""

    x = _clamp_axis(float(position[0]), size)
    y = _clamp_axis(float(position[1]), size)
    return x % size + y * size


class ElevationGrid:
    """Square heightmap stored as a flat row-major float32 array."""

    def __init__(self, heights: np.ndarray, size: int | None = None) -> None:
        data = np.array(heights, dtype=np.float32).ravel()
        if size is None:
            size = int(round(np.sqrt(data.size)))
        if size < 2:
            raise ValueError("grid size must be >= 2")
        if data.size != size * size:
            raise ValueError(f"expected {size * size} heights for size {size}, got {data.size}")
        self._size = int(size)
        self._heights = data

    @classmethod
    def generate(cls, size: int, noise: NoiseField, *, bias: float = 0.5) -> "ElevationGrid":
        return cls(island_heights(size, noise, bias=bias), size)

    @property
    def size(self) -> int:
        return self._size

    @property
    def heights(self) -> np.ndarray:
        """The live height array; callers outside the simulation should treat it as read-only."""
        return self._heights

    def as_2d(self) -> np.ndarray:
        """View of the heights with shape ``(size, size)`` indexed ``[y, x]``."""
        return self._heights.reshape(self._size, self._size)

    def cell_of(self, position: Position) -> int:
        return unroll(position, self._size)

    def height_at(self, position: Position) -> float:
        return float(self._heights[unroll(position, self._size)])

    def total_mass(self) -> float:
        return float(np.sum(self._heights, dtype=np.float64))

    def gradient(self, index: int) -> tuple[float, float]:
        """Finite-difference gradient over the 2x2 window anchored at `index`.

        The window is shifted one column left on the last column and one row up
        on the last row so it always stays inside the grid.
        """

        n = self._size
        h = self._heights
        if not 0 <= index < h.size:
            raise IndexError(f"cell index {index} out of range for {n}x{n} grid")

        i = int(index)
        if i % n == n - 1:
            i -= 1
        if i + n >= h.size:
            i -= n

        a = float(h[i])
        b = float(h[i + 1])
        c = float(h[i + n])
        d = float(h[i + n + 1])
        return ((b - a) * 0.5 + (d - c) * 0.5, (c - a) * 0.5 + (d - b) * 0.5)

    def gradient_field(self) -> np.ndarray:
        """Gradients for every cell as a ``(size * size, 2)`` array keyed by flat index."""

        n = self._size
        h = self.as_2d().astype(np.float64)
        x0 = np.minimum(np.arange(n), n - 2)
        y0 = np.minimum(np.arange(n), n - 2)

        a = h[y0[:, None], x0[None, :]]
        b = h[y0[:, None], x0[None, :] + 1]
        c = h[y0[:, None] + 1, x0[None, :]]
        d = h[y0[:, None] + 1, x0[None, :] + 1]

        gx = (b - a) * 0.5 + (d - c) * 0.5
        gy = (c - a) * 0.5 + (d - b) * 0.5
        return np.stack((gx.ravel(), gy.ravel()), axis=-1)

    def deposit(self, position: Position, amount: float) -> None:
        """Add `amount` (negative to remove) over the 3x3 neighborhood of `position`.

        Out-of-grid neighbors are clamped onto edge cells, so the full amount always
        lands in the grid.
        """

        if not np.isfinite(amount):
            raise ValueError(f"deposit amount must be finite, got {amount}")
        x = float(position[0])
        y = float(position[1])
        n = self._size
        cells = [unroll((x + dx, y + dy), n) for dx, dy in _BRUSH_OFFSETS]
        np.add.at(self._heights, cells, (_BRUSH_WEIGHTS * amount).astype(np.float32))
