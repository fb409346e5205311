from __future__ import annotations

import numpy as np
import pytest

from reflection_limits.grid import (
    GLYPH_ALLOWED,
    GLYPH_CURRENT,
    GLYPH_EXCLUDED,
    GLYPH_UNEXPLORED,
    PValueGrid,
    clamp_p_value,
    log_space,
)


def test_log_space_is_geometric_with_exact_endpoints() -> None:
    x = log_space(1.0e-40, 1.0e-36, 5)
    assert x[0] == 1.0e-40
    assert x[-1] == 1.0e-36
    assert np.allclose(x[1:] / x[:-1], 10.0)
    assert np.array_equal(log_space(2.0, 7.0, 1), np.array([2.0]))


def test_log_space_rejects_bad_input() -> None:
    with pytest.raises(ValueError):
        log_space(0.0, 1.0, 3)
    with pytest.raises(ValueError):
        log_space(1.0, 2.0, 0)


def test_grid_shape_and_initial_values() -> None:
    grid = PValueGrid(masses=[100.0, 1.0, 10.0], couplings=[1e-36, 1e-40])
    assert grid.shape == (2, 3)
    assert grid.values.shape == (2, 3)
    assert np.all(grid.values == 1.0)
    assert np.array_equal(grid.masses, [1.0, 10.0, 100.0])
    assert np.array_equal(grid.couplings, [1e-40, 1e-36])


def test_grid_rejects_mismatched_values() -> None:
    with pytest.raises(ValueError):
        PValueGrid(masses=[1.0, 2.0], couplings=[1.0], values=np.ones((2, 2)))
    with pytest.raises(ValueError):
        PValueGrid(masses=[-1.0, 2.0], couplings=[1.0])


def test_tiny_p_values_are_clamped_to_zero() -> None:
    assert clamp_p_value(1.0e-101) == 0.0
    assert clamp_p_value(1.0e-99) == 1.0e-99
    grid = PValueGrid(masses=[1.0], couplings=[1.0])
    assert grid.store(0, 0, 5.0e-300) == 0.0
    assert grid.values[0, 0] == 0.0


def test_table_is_mass_major() -> None:
    grid = PValueGrid(masses=[1.0, 2.0], couplings=[10.0, 20.0, 30.0])
    grid.values[:] = np.arange(6, dtype=float).reshape(3, 2) / 10.0
    table = grid.to_table()
    assert table.shape == (6, 3)
    assert np.array_equal(table[:3, 0], [1.0, 1.0, 1.0])
    assert np.array_equal(table[:3, 1], [10.0, 20.0, 30.0])
    assert np.allclose(table[:, 2], [0.0, 0.2, 0.4, 0.1, 0.3, 0.5])


def test_render_marks_progress_and_exclusion() -> None:
    grid = PValueGrid(masses=[1.0, 2.0, 3.0], couplings=[1.0, 2.0])
    grid.values[1, :] = [1.0, 0.5, 0.05]

    full = grid.render()
    assert full[0] == "\t" + GLYPH_ALLOWED + GLYPH_ALLOWED + GLYPH_EXCLUDED
    assert full[1] == "\t" + GLYPH_ALLOWED * 3

    # Strongest row done except the lightest mass, which is being evaluated.
    progress = grid.render(current=(1, 0))
    assert progress[0] == "\t" + GLYPH_CURRENT + GLYPH_ALLOWED + GLYPH_EXCLUDED
    assert progress[1] == "\t" + GLYPH_UNEXPLORED * 3
