"""
Collocation grid in time to maturity.

Boundaries move fastest just before expiry (they behave like √τ there),
so the nodes are spaced uniformly in √τ rather than in τ.
"""

from dataclasses import dataclass

import numpy as np


def collocation_grid(T: float, n: int) -> np.ndarray:
    """
    Collocation times τ_j = T·(j/(n-1))², j = 0..n-1.

    Returns:
        Increasing array starting at 0.0 and ending exactly at T
    """
    fractions = np.linspace(0.0, 1.0, n)
    grid = T * fractions * fractions
    grid[-1] = T
    return grid


def interpolate_path(tau_grid: np.ndarray, path: np.ndarray, tau) -> np.ndarray:
    """
    Evaluate a boundary path at arbitrary times to maturity.

    Interpolation is linear in √τ, which is the coordinate the grid is
    uniform in. Arguments outside [0, T] are clamped to the end values.
    """
    query = np.sqrt(np.clip(tau, 0.0, None))
    return np.interp(query, np.sqrt(tau_grid), path)


@dataclass(frozen=True)
class BoundaryPaths:
    """
    Edges of a put exercise region [lower, upper] on the collocation grid.

    A single-boundary put has an exercise region (0, upper], so its lower
    path is all zeros.

    Attributes:
        tau: Collocation times, increasing from 0 to T
        upper: Upper edge of the exercise region per collocation time
        lower: Lower edge of the exercise region per collocation time
    """
    tau: np.ndarray
    upper: np.ndarray
    lower: np.ndarray
