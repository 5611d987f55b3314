"""
Unit tests for the QD+ boundary approximation.

References:
    Healy (2021), double-boundary put with r = -0.5%, q = -1%, σ = 8%
"""

import numpy as np
import pytest

from double_boundary.boundary.grid import collocation_grid
from double_boundary.boundary.qd_plus import (
    QdPlusEvaluator,
    qd_plus_double_boundary,
    qd_plus_single_boundary,
)
from double_boundary.boundary.regime import exercise_ceiling
from double_boundary.utils.constants import CLASSIC_BENCHMARK, HEALY_BENCHMARK
from double_boundary.utils.types import ConvergenceStatus


@pytest.fixture
def healy_paths():
    """QD+ double boundary on a 50-point grid out to ten years."""
    grid = collocation_grid(HEALY_BENCHMARK["T"], 50)
    return qd_plus_double_boundary(
        HEALY_BENCHMARK["K"],
        HEALY_BENCHMARK["r"],
        HEALY_BENCHMARK["q"],
        HEALY_BENCHMARK["sigma"],
        grid,
    )


# ===========================
# Evaluator Tests
# ===========================


@pytest.mark.parametrize(
    "upper_edge,reference", [(True, HEALY_BENCHMARK["upper"]), (False, HEALY_BENCHMARK["lower"])]
)
def test_evaluator_changes_sign_near_reference(upper_edge, reference):
    """f has a root within one price unit of the published boundary."""
    evaluator = QdPlusEvaluator(
        HEALY_BENCHMARK["K"],
        HEALY_BENCHMARK["T"],
        HEALY_BENCHMARK["r"],
        HEALY_BENCHMARK["q"],
        HEALY_BENCHMARK["sigma"],
        upper_edge=upper_edge,
    )

    assert evaluator.value(reference - 1.0) * evaluator.value(reference + 1.0) < 0.0


def test_evaluator_characteristic_roots_have_opposite_signs():
    """The upper edge uses the negative root, the lower edge the positive one."""
    args = (100.0, 5.0, -0.005, -0.01, 0.08)

    assert QdPlusEvaluator(*args, upper_edge=True).lam < 0.0
    assert QdPlusEvaluator(*args, upper_edge=False).lam > 0.0


def test_evaluator_derivative_matches_finite_difference():
    """f' and f'' agree with central differences of f."""
    evaluator = QdPlusEvaluator(40.0, 1.0, 0.06, 0.02, 0.2)
    S, h = 33.0, 1e-3

    f, f_prime, f_second = evaluator(S)
    f_up, f_down = evaluator.value(S + h), evaluator.value(S - h)

    fd_prime = (f_up - f_down) / (2.0 * h)
    fd_second = (f_up - 2.0 * f + f_down) / (h * h)

    # f uses the A&S erf, whose slope is only close to the exact density
    assert f == evaluator.value(S)
    assert abs(f_prime - fd_prime) < max(5e-5, 1e-5 * abs(f_prime)), f"f' {f_prime} vs {fd_prime}"
    assert abs(f_second - fd_second) < max(5e-3, 1e-3 * abs(f_second)), f"f'' {f_second} vs {fd_second}"


def test_evaluator_small_rate_limit_is_continuous():
    """The r → 0 series agrees with the closed form on either side of the switch."""
    below = QdPlusEvaluator(100.0, 1.0, 0.9e-5, 0.02, 0.2)
    above = QdPlusEvaluator(100.0, 1.0, 1.1e-5, 0.02, 0.2)

    assert abs(below.lam - above.lam) < 1e-4
    assert abs(below.value(80.0) - above.value(80.0)) < 1e-3


# ===========================
# Double Boundary Tests
# ===========================


def test_double_boundary_benchmark(healy_paths):
    """Ten-year QD+ boundaries land within one price unit of Healy's values."""
    paths = healy_paths.value

    assert abs(paths.upper[-1] - HEALY_BENCHMARK["upper"]) < 1.0
    assert abs(paths.lower[-1] - HEALY_BENCHMARK["lower"]) < 1.0


def test_double_boundary_expiry_limits(healy_paths):
    """At τ = 0 the band is [K·r/q, K]."""
    paths = healy_paths.value
    K = HEALY_BENCHMARK["K"]

    assert paths.upper[0] == K
    assert paths.lower[0] == pytest.approx(K * HEALY_BENCHMARK["r"] / HEALY_BENCHMARK["q"])


def test_double_boundary_band_is_ordered_and_narrowing(healy_paths):
    """Upper falls and lower rises with τ, with lower below upper."""
    paths = healy_paths.value

    assert healy_paths.status is not ConvergenceStatus.NUMERICAL_INSTABILITY
    assert np.all(np.isfinite(paths.upper)) and np.all(np.isfinite(paths.lower))
    assert np.all(paths.lower <= paths.upper)
    assert np.all(np.diff(paths.upper) <= 1e-8)
    assert np.all(np.diff(paths.lower) >= -1e-8)


def test_double_boundary_merges_when_band_closes():
    """A long maturity at low volatility closes the band; both edges coincide afterwards."""
    grid = collocation_grid(30.0, 60)
    result = qd_plus_double_boundary(100.0, -0.005, -0.01, 0.08, grid)
    paths = result.value

    gap = paths.upper - paths.lower
    assert np.all(gap >= 0.0)
    assert np.all(np.isfinite(paths.upper))
    if gap[-1] == 0.0:
        closed = np.flatnonzero(gap == 0.0)
        # once closed, the band stays closed
        assert np.all(np.diff(closed) == 1)
        assert closed[-1] == len(grid) - 1


# ===========================
# Single Boundary Tests
# ===========================


def test_single_boundary_put():
    """Positive-rate put boundary lies below the strike and falls with τ."""
    K, r, q, sigma = (CLASSIC_BENCHMARK[key] for key in ("K", "r", "q", "sigma"))
    grid = collocation_grid(CLASSIC_BENCHMARK["T"], 30)
    ceiling = exercise_ceiling(K, r, q)

    result = qd_plus_single_boundary(K, r, q, sigma, grid, ceiling)
    paths = result.value

    assert result.converged
    assert paths.upper[0] == ceiling
    assert 25.0 < paths.upper[-1] < K
    assert np.all(np.diff(paths.upper) <= 1e-8)
    assert np.all(paths.lower == 0.0)


def test_single_boundary_dividend_ceiling():
    """With q > r > 0 the boundary starts at K·r/q."""
    grid = collocation_grid(1.0, 20)
    ceiling = exercise_ceiling(100.0, 0.02, 0.06)

    result = qd_plus_single_boundary(100.0, 0.02, 0.06, 0.3, grid, ceiling)

    assert result.value.upper[0] == pytest.approx(100.0 / 3.0)
    assert np.all(result.value.upper <= ceiling)
