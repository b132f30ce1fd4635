"""Seeded fractal noise and initial island terrain."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


def _smoothstep(t: np.ndarray) -> np.ndarray:
    return t * t * (3.0 - 2.0 * t)


def _sample_lattice(lattice: np.ndarray, u: np.ndarray, v: np.ndarray) -> np.ndarray:
    """Bilinearly sample a value lattice spanning ``[-1, 1]^2`` with smoothstep easing."""

    res = lattice.shape[0] - 1
    tx = (np.clip(u, -1.0, 1.0) + 1.0) * 0.5 * res
    ty = (np.clip(v, -1.0, 1.0) + 1.0) * 0.5 * res

    x0 = np.minimum(np.floor(tx).astype(np.int64), res - 1)
    y0 = np.minimum(np.floor(ty).astype(np.int64), res - 1)
    x1 = x0 + 1
    y1 = y0 + 1

    fx = _smoothstep(tx - x0)
    fy = _smoothstep(ty - y0)

    g00 = lattice[y0, x0]
    g10 = lattice[y0, x1]
    g01 = lattice[y1, x0]
    g11 = lattice[y1, x1]

    top = g00 * (1.0 - fx) + g10 * fx
    bottom = g01 * (1.0 - fx) + g11 * fx
    return top * (1.0 - fy) + bottom * fy


@dataclass(frozen=True)
class NoiseField:
    """Multi-octave value noise over normalized coordinates in ``[-1, 1]^2``.

    Each octave owns a random lattice drawn once at construction, so sampling is
    pure: the same field returns the same values for the same coordinates.
    """

    lattices: tuple[np.ndarray, ...]
    amplitudes: tuple[float, ...]

    @classmethod
    def from_rng(
        cls,
        rng: np.random.Generator,
        *,
        base_res: int = 2,
        octaves: int = 6,
        lacunarity: float = 2.0,
        gain: float = 0.5,
    ) -> "NoiseField":
        if octaves < 1:
            raise ValueError("octaves must be >= 1")
        if base_res < 1:
            raise ValueError("base_res must be >= 1")

        lattices: list[np.ndarray] = []
        amplitudes: list[float] = []
        amplitude = 1.0
        for octave in range(octaves):
            res = max(1, int(round(base_res * lacunarity**octave)))
            lattices.append(rng.uniform(-1.0, 1.0, size=(res + 1, res + 1)))
            amplitudes.append(amplitude)
            amplitude *= gain
        return cls(tuple(lattices), tuple(amplitudes))

    def sample(self, u: np.ndarray, v: np.ndarray) -> np.ndarray:
        """Return fBm values in approximately [-1, 1] at coordinates `(u, v)`."""

        u = np.asarray(u, dtype=np.float64)
        v = np.asarray(v, dtype=np.float64)
        total = np.zeros(np.broadcast(u, v).shape, dtype=np.float64)
        for lattice, amplitude in zip(self.lattices, self.amplitudes):
            total += amplitude * _sample_lattice(lattice, u, v)

        total_amplitude = sum(self.amplitudes)
        if total_amplitude == 0:
            return total
        return total / total_amplitude


def island_heights(size: int, noise: NoiseField, *, bias: float = 0.5) -> np.ndarray:
    """Sample a row-major ``size * size`` float32 heightmap shaped like an island.

    Cell (x, y) maps to ``(u, v) = (2x/size - 1, 2y/size - 1)`` and receives
    ``noise(u, v) - sqrt(u^2 + v^2) + bias``.
    """

    if size <= 0:
        raise ValueError("size must be positive")

    coords = 2.0 * np.arange(size, dtype=np.float64) / size - 1.0
    v, u = np.meshgrid(coords, coords, indexing="ij")
    height = noise.sample(u, v) - np.sqrt(u * u + v * v) + bias
    return height.astype(np.float32).ravel()
