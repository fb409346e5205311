from __future__ import annotations

import numpy as np
import pytest

from reflection_limits.scan import ParameterScan


def _linear_p(c: np.ndarray, slope: float, c_min: float, c_max: float) -> np.ndarray:
    """p falls linearly from 0.9 at c_min by ``slope`` over the coupling range."""
    return 0.9 - slope * (c - c_min) / (c_max - c_min)


def test_limit_curve_matches_analytic_crossing() -> None:
    c_min, c_max = 1.0e-38, 1.0e-37
    couplings = np.linspace(c_min, c_max, 10)
    masses = np.array([1.0, 2.0, 4.0, 8.0])
    slopes = {1.0: 0.86, 2.0: 0.88, 4.0: 0.90, 8.0: 0.5}
    scan = ParameterScan(masses, couplings, 100)
    for im, m in enumerate(scan.masses):
        scan.p_value_grid[:, im] = _linear_p(scan.couplings, slopes[float(m)], c_min, c_max)

    certainty_level = 0.95
    threshold = 1.0 - certainty_level
    limit = scan.limit_curve(certainty_level)

    # Mass 8 never drops below 1 - CL on the grid and has no limit.
    assert np.array_equal(limit[:, 0], [1.0, 2.0, 4.0])
    for mass, coupling in limit:
        expected = c_min + (0.9 - threshold) / slopes[float(mass)] * (c_max - c_min)
        assert abs(coupling - expected) < 0.01 * c_min


def test_limit_curve_is_empty_when_nothing_is_excluded() -> None:
    scan = ParameterScan([1.0, 10.0], [1e-40, 1e-38, 1e-36], 10)
    limit = scan.limit_curve(0.9)
    assert limit.shape == (0, 2)


def test_limit_curve_propagates_unbracketed_root() -> None:
    scan = ParameterScan([1.0], [1e-40, 1e-38, 1e-36], 10)
    # Excluded everywhere: no sign change over the coupling range.
    scan.p_value_grid[:] = 0.01
    with pytest.raises(ValueError):
        scan.limit_curve(0.9)
