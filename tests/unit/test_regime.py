"""
Unit tests for exercise-regime classification and the collocation grid.
"""

import numpy as np
import pytest

from double_boundary.boundary.grid import collocation_grid, interpolate_path
from double_boundary.boundary.regime import (
    Regime,
    classify_regime,
    exercise_ceiling,
    put_equivalent_rates,
)


# ===========================
# Regime Classification
# ===========================


@pytest.mark.parametrize(
    "r,q,option_type,expected",
    [
        (-0.005, -0.01, "put", Regime.DOUBLE_BOUNDARY),  # q < r < 0
        (0.05, 0.02, "put", Regime.SINGLE_BOUNDARY),  # standard put
        (0.05, -0.02, "put", Regime.SINGLE_BOUNDARY),
        (-0.01, -0.005, "put", Regime.SINGLE_BOUNDARY),  # r < q < 0: no exercise
        (-0.01, 0.02, "put", Regime.SINGLE_BOUNDARY),
        (-0.01, -0.005, "call", Regime.DOUBLE_BOUNDARY),  # call mirror: r < q < 0
        (-0.005, -0.01, "call", Regime.SINGLE_BOUNDARY),
        (0.05, 0.02, "call", Regime.SINGLE_BOUNDARY),
    ],
)
def test_classify_regime(r, q, option_type, expected):
    """Regime follows the sign pattern of r and q."""
    assert classify_regime(r, q, option_type) is expected


@pytest.mark.parametrize("r,q", [(-0.01, -0.01), (0.0, -0.01), (0.0, 0.0), (0.0, 0.02), (0.03, 0.03)])
def test_degenerate_rates_are_single_boundary(r, q):
    """r = q and r = 0 always land in the single-boundary branch."""
    assert classify_regime(r, q, "put") is Regime.SINGLE_BOUNDARY
    assert classify_regime(r, q, "call") is Regime.SINGLE_BOUNDARY


# ===========================
# Exercise Ceiling
# ===========================


@pytest.mark.parametrize(
    "r,q,expected",
    [
        (0.06, 0.02, 100.0),  # r > q > 0
        (0.02, 0.06, 100.0 * 0.02 / 0.06),  # q > r > 0
        (0.05, -0.01, 100.0),
        (0.0, -0.01, 100.0),
        (0.0, 0.01, 0.0),
        (-0.005, -0.01, 100.0),  # double regime, upper limit
        (-0.01, -0.005, 0.0),
        (-0.01, -0.01, 0.0),
        (-0.01, 0.02, 0.0),
    ],
)
def test_exercise_ceiling(r, q, expected):
    """τ → 0 limit of the put boundary per sign pattern."""
    assert exercise_ceiling(100.0, r, q) == pytest.approx(expected)


def test_put_equivalent_rates_swap_for_calls():
    """Calls map onto the put with r and q exchanged."""
    assert put_equivalent_rates(0.01, 0.03, "put") == (0.01, 0.03)
    assert put_equivalent_rates(0.01, 0.03, "call") == (0.03, 0.01)


# ===========================
# Collocation Grid
# ===========================


def test_collocation_grid_shape_and_ends():
    """N nodes from 0 to T, increasing, dense near expiry."""
    grid = collocation_grid(10.0, 50)

    assert grid.shape == (50,)
    assert grid[0] == 0.0
    assert grid[-1] == 10.0
    assert np.all(np.diff(grid) > 0.0)
    assert np.all(np.diff(np.diff(grid)) > 0.0)


def test_collocation_grid_two_points():
    """The smallest grid is just [0, T]."""
    assert collocation_grid(1.0, 2).tolist() == [0.0, 1.0]


def test_interpolate_path_reproduces_nodes_and_clamps():
    """Interpolation hits the nodes exactly and clamps outside [0, T]."""
    grid = collocation_grid(4.0, 5)
    path = np.array([10.0, 9.0, 8.0, 7.0, 6.0])

    assert np.allclose(interpolate_path(grid, path, grid), path)
    assert interpolate_path(grid, path, np.array([-1.0]))[0] == 10.0
    assert interpolate_path(grid, path, np.array([5.0]))[0] == 6.0
    # linear in √τ: halfway between √τ nodes 1 and 2 (τ = 0.25 and 1.0)
    assert interpolate_path(grid, path, np.array([0.5625]))[0] == pytest.approx(8.5)
