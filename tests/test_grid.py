from __future__ import annotations

import math

import numpy as np
import pytest

from erosion.grid import ElevationGrid, unroll


def _ramp_grid(size: int, *, slope_x: float, slope_y: float) -> ElevationGrid:
    ys, xs = np.indices((size, size), dtype=np.float32)
    return ElevationGrid((xs * slope_x + ys * slope_y).ravel(), size)


def test_unroll_clamps_each_axis() -> None:
    size = 8

    assert unroll((3.99, 0.5), size) == 3
    assert unroll((-5.0, 3.2), size) == 3 * size
    assert unroll((-1.0, -1.0), size) == 0
    assert unroll((-0.5, 7.999), size) == 7 * size
    assert unroll((8.0, 2.0), size) == 7 + 2 * size
    assert unroll((1e9, 1e9), size) == size * size - 1


def test_unroll_routes_non_finite_values_to_edges() -> None:
    assert unroll((math.nan, 2.0), 4) == 8
    assert unroll((math.inf, -math.inf), 4) == 3
    assert unroll((-math.inf, math.inf), 4) == 12


def test_unroll_indices_always_in_range() -> None:
    rng = np.random.default_rng(7)
    size = 5
    for x, y in rng.uniform(-20.0, 20.0, size=(500, 2)):
        assert 0 <= unroll((x, y), size) < size * size


def test_grid_rejects_mismatched_heights() -> None:
    with pytest.raises(ValueError):
        ElevationGrid(np.zeros(10), 3)
    with pytest.raises(ValueError):
        ElevationGrid(np.zeros(1), 1)


def test_grid_infers_size_and_stores_float32() -> None:
    grid = ElevationGrid(np.arange(16, dtype=np.float64))

    assert grid.size == 4
    assert grid.heights.dtype == np.float32
    assert grid.height_at((1.5, 2.5)) == 9.0
    assert grid.as_2d()[2, 1] == 9.0


def test_gradient_of_linear_ramp_is_constant_including_edges() -> None:
    grid = _ramp_grid(4, slope_x=0.5, slope_y=2.0)

    for index in range(16):
        assert grid.gradient(index) == pytest.approx((0.5, 2.0))


def test_gradient_window_shifts_on_last_row_and_column() -> None:
    heights = np.zeros(9, dtype=np.float32)
    heights[8] = 1.0
    grid = ElevationGrid(heights, 3)

    # Cells 5, 7 and 8 all resolve to the window anchored at cell 4.
    assert grid.gradient(4) == pytest.approx((0.5, 0.5))
    assert grid.gradient(5) == pytest.approx((0.5, 0.5))
    assert grid.gradient(7) == pytest.approx((0.5, 0.5))
    assert grid.gradient(8) == pytest.approx((0.5, 0.5))
    assert grid.gradient(0) == pytest.approx((0.0, 0.0))


def test_gradient_rejects_out_of_range_index() -> None:
    grid = ElevationGrid(np.zeros(9), 3)

    with pytest.raises(IndexError):
        grid.gradient(9)
    with pytest.raises(IndexError):
        grid.gradient(-1)


def test_gradient_field_matches_scalar_gradient() -> None:
    rng = np.random.default_rng(3)
    grid = ElevationGrid(rng.uniform(-1.0, 1.0, size=25), 5)

    field = grid.gradient_field()

    assert field.shape == (25, 2)
    for index in range(25):
        assert tuple(field[index]) == pytest.approx(grid.gradient(index))


def test_deposit_interior_conserves_mass_with_brush_weights() -> None:
    grid = ElevationGrid(np.zeros(25), 5)

    grid.deposit((2.5, 2.5), 1.0)
    h = grid.as_2d()

    assert float(h.sum()) == pytest.approx(1.0, abs=1e-6)
    assert h[2, 2] == pytest.approx(0.4)
    for y, x in ((1, 2), (3, 2), (2, 1), (2, 3)):
        assert h[y, x] == pytest.approx(0.1)
    for y, x in ((1, 1), (1, 3), (3, 1), (3, 3)):
        assert h[y, x] == pytest.approx(0.05)
    assert float(np.abs(h[0, :]).sum() + np.abs(h[4, :]).sum()) == 0.0


def test_negative_deposit_removes_height() -> None:
    grid = ElevationGrid(np.ones(25), 5)

    grid.deposit((2.2, 2.7), -0.5)

    assert grid.total_mass() == pytest.approx(25.0 - 0.5, abs=1e-5)
    assert grid.as_2d()[2, 2] == pytest.approx(1.0 - 0.2)


def test_deposit_at_corner_concentrates_instead_of_losing_mass() -> None:
    grid = ElevationGrid(np.zeros(9), 3)

    grid.deposit((0.5, 0.5), 1.0)
    h = grid.heights

    assert h[0] == pytest.approx(0.65)
    assert h[1] == pytest.approx(0.15)
    assert h[3] == pytest.approx(0.15)
    assert h[4] == pytest.approx(0.05)
    assert float(h.sum()) == pytest.approx(1.0, abs=1e-6)


def test_deposit_rejects_non_finite_amount() -> None:
    grid = ElevationGrid(np.zeros(9), 3)

    with pytest.raises(ValueError):
        grid.deposit((1.0, 1.0), math.nan)
    assert float(np.abs(grid.heights).sum()) == 0.0
