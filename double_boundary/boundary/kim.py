"""
Kim integral-equation refinement of put exercise boundaries.

At a boundary point B = B(τ) the American put equals its intrinsic value.
Writing the early-exercise premium as an integral over the exercise
region [l(u), h(u)] gives Kim's equation K·N(τ, B) = B·D(τ, B) with

    N = 1 - e^(-rτ)·Φ(-d2(τ, B/K)) - r·∫₀^τ e^(-rs)·[Φ(-d2(s, B/h(τ-s))) - Φ(-d2(s, B/l(τ-s)))] ds
    D = 1 - e^(-qτ)·Φ(-d1(τ, B/K)) - q·∫₀^τ e^(-qs)·[Φ(-d1(s, B/h(τ-s))) - Φ(-d1(s, B/l(τ-s)))] ds

    d1(s, x) = (ln x + (r - q + σ²/2)·s) / (σ√s),   d2 = d1 - σ√s

For a single-boundary put l ≡ 0 and the second Φ terms vanish.

Two fixed-point forms are iterated, both as Jacobi sweeps: every node is
updated from the same snapshot of both boundaries.

    FP-B   (upper boundary):  B ← K·N / D
    FP-B'  (lower boundary):  B ← (K·N + B·I_q) / D₀,  D₀ = 1 - e^(-qτ)·Φ(-d1)

FP-B' moves the boundary-dependent dividend integral I_q to the left-hand
side, which keeps the lower-boundary iteration contractive where plain
FP-B oscillates.

The integrals are evaluated with Gauss-Legendre quadrature in z = √s, which
removes the 1/√s behaviour of the integrand at s = 0.

References:
    Kim, I. J. (1990). The analytic valuation of American options.
    Review of Financial Studies, 3(4), 547-572.
    Andersen, L., Lake, M., & Offengenden, D. (2016). High-performance
    American option pricing. Journal of Computational Finance, 20(1).
    Healy, J. (2021). Pricing American options under negative rates.
    Journal of Computational Finance, 25(1).
"""

import logging
from typing import Optional

import numpy as np

from double_boundary.boundary.grid import BoundaryPaths, interpolate_path
from double_boundary.core.distributions import normal_cdf
from double_boundary.utils.constants import MACHINE_EPSILON, NO_CROSSING
from double_boundary.utils.types import ConvergenceStatus, NumericalResult, SolverSettings

logger = logging.getLogger(__name__)

METHOD_SINGLE = "FP-B"
METHOD_DOUBLE = "FP-B'"


class KimEquation:
    """
    Vectorised numerator/denominator of Kim's equation for one put.

    Args:
        K: Strike price
        r: Risk-free rate of the put
        q: Dividend yield of the put
        sigma: Volatility
        quadrature_points: Gauss-Legendre nodes per integral
    """

    def __init__(self, K: float, r: float, q: float, sigma: float, quadrature_points: int) -> None:
        self.K = K
        self.r = r
        self.q = q
        self.sigma = sigma
        self.nodes, self.weights = np.polynomial.legendre.leggauss(quadrature_points)

    def _d1(self, s: np.ndarray, x: np.ndarray) -> np.ndarray:
        with np.errstate(divide="ignore"):
            log_x = np.log(x)
        drift = (self.r - self.q + 0.5 * self.sigma * self.sigma) * s
        return (log_x + drift) / (self.sigma * np.sqrt(s))

    def terms(
        self, tau: np.ndarray, boundary: np.ndarray, paths: BoundaryPaths
    ) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """
        Evaluate Kim's equation at boundary values B for times tau.

        Args:
            tau: Times to maturity, shape (m,), all > 0
            boundary: Candidate boundary values B at those times, shape (m,)
            paths: Snapshot of both boundaries used inside the integrals

        Returns:
            (N, D, D0, I_q), each of shape (m,)
        """
        r, q, sigma = self.r, self.q, self.sigma
        sqrt_tau = np.sqrt(tau)[:, None]
        B = boundary[:, None]

        z = 0.5 * sqrt_tau * (self.nodes[None, :] + 1.0)
        s = z * z
        jacobian = sqrt_tau * self.weights[None, :] * z
        u = tau[:, None] - s

        high = interpolate_path(paths.tau, paths.upper, u)
        low = interpolate_path(paths.tau, paths.lower, u)
        with np.errstate(divide="ignore"):
            d1_high = self._d1(s, B / high)
            d1_low = self._d1(s, B / low)
        vol = sigma * np.sqrt(s)

        in_region_r = normal_cdf(-(d1_high - vol)) - normal_cdf(-(d1_low - vol))
        in_region_q = normal_cdf(-d1_high) - normal_cdf(-d1_low)

        integral_r = r * np.sum(jacobian * np.exp(-r * s) * in_region_r, axis=1)
        integral_q = q * np.sum(jacobian * np.exp(-q * s) * in_region_q, axis=1)

        d1_strike = self._d1(tau, boundary / self.K)
        d2_strike = d1_strike - sigma * np.sqrt(tau)
        numerator = 1.0 - np.exp(-r * tau) * normal_cdf(-d2_strike) - integral_r
        denominator_0 = 1.0 - np.exp(-q * tau) * normal_cdf(-d1_strike)
        denominator = denominator_0 - integral_q

        return numerator, denominator, denominator_0, integral_q


def detect_crossing(
    tau_grid: np.ndarray, upper: np.ndarray, lower: np.ndarray, tolerance: float
) -> tuple[float, Optional[int]]:
    """
    Find where the upper and lower boundaries first meet.

    Args:
        tau_grid: Collocation times
        upper: Upper boundary path
        lower: Lower boundary path
        tolerance: Absolute gap treated as a crossing

    Returns:
        (crossing_time, index) where crossing_time is the interpolated time
        to maturity at which the gap reaches tolerance (strictly inside
        (0, T)) and index is the grid node nearest to it; (NO_CROSSING, None)
        if the gap never closes.
    """
    gap = upper - lower
    hits = np.flatnonzero(gap[1:] <= tolerance) + 1
    if hits.size == 0:
        return NO_CROSSING, None

    i = int(hits[0])
    g_before, g_after = gap[i - 1], gap[i]
    fraction = 1.0
    if g_before > g_after:
        fraction = min(max((g_before - tolerance) / (g_before - g_after), 0.0), 1.0)

    crossing_time = tau_grid[i - 1] + fraction * (tau_grid[i] - tau_grid[i - 1])
    crossing_time = min(crossing_time, np.nextafter(tau_grid[-1], 0.0))
    crossing_time = max(crossing_time, np.nextafter(0.0, 1.0))

    nearest = i - 1 if crossing_time - tau_grid[i - 1] < tau_grid[i] - crossing_time else i
    return float(crossing_time), max(nearest, 1)


def collapse_after_crossing(
    tau_grid: np.ndarray, upper: np.ndarray, lower: np.ndarray, tolerance: float
) -> tuple[np.ndarray, np.ndarray, float]:
    """
    Merge both boundaries into one value from the crossing onward.

    The merged value is the midpoint of both edges at the node nearest the
    crossing, so collapsing an already collapsed pair changes nothing.

    Returns:
        (upper, lower, crossing_time); the inputs are not modified
    """
    crossing_time, index = detect_crossing(tau_grid, upper, lower, tolerance)
    if index is None:
        return upper, lower, crossing_time

    upper = upper.copy()
    lower = lower.copy()
    merged = 0.5 * (upper[index] + lower[index])
    upper[index:] = merged
    lower[index:] = merged
    return upper, lower, crossing_time


def _active_nodes(paths: BoundaryPaths, double: bool, tolerance: float) -> np.ndarray:
    """Indices of nodes whose boundaries are still determined by Kim's equation."""
    active = np.arange(1, len(paths.tau))
    if double:
        active = active[(paths.upper - paths.lower)[active] > tolerance]
    return active


def kim_residual(
    equation: KimEquation, paths: BoundaryPaths, double: bool, crossing_tolerance: float
) -> float:
    """
    Largest |K·N - B·D| / K over the active nodes of both boundaries.

    Returns:
        Residual of the discretised Kim equation (inf if it cannot be evaluated)
    """
    active = _active_nodes(paths, double, crossing_tolerance)
    if active.size == 0:
        return 0.0

    edges = [paths.upper] + ([paths.lower] if double else [])
    residual = 0.0
    for edge in edges:
        numerator, denominator, _, _ = equation.terms(paths.tau[active], edge[active], paths)
        errors = np.abs(equation.K * numerator - edge[active] * denominator) / equation.K
        if not np.all(np.isfinite(errors)):
            return float("inf")
        residual = max(residual, float(np.max(errors)))
    return residual


def _fixed_point_sweep(
    equation: KimEquation,
    paths: BoundaryPaths,
    double: bool,
    ceiling: float,
    crossing_tolerance: float,
) -> tuple[BoundaryPaths, int]:
    """One Jacobi sweep; returns the new paths and the number of rejected node updates."""
    K = equation.K
    active = _active_nodes(paths, double, crossing_tolerance)
    upper = paths.upper.copy()
    lower = paths.lower.copy()
    rejected = 0
    if active.size == 0:
        return paths, rejected

    tau = paths.tau[active]

    # FP-B on the upper edge
    B = paths.upper[active]
    numerator, denominator, _, _ = equation.terms(tau, B, paths)
    with np.errstate(divide="ignore", invalid="ignore"):
        candidate = K * numerator / denominator
    ok = np.isfinite(candidate) & (denominator > MACHINE_EPSILON) & (candidate > 0.0)
    upper[active[ok]] = np.minimum(candidate[ok], ceiling)
    rejected += int(np.count_nonzero(~ok))

    if double:
        # FP-B' on the lower edge; D₀ is negative there when q < 0
        B = paths.lower[active]
        numerator, _, denominator_0, integral_q = equation.terms(tau, B, paths)
        with np.errstate(divide="ignore", invalid="ignore"):
            candidate = (K * numerator + B * integral_q) / denominator_0
        ok = np.isfinite(candidate) & (np.abs(denominator_0) > MACHINE_EPSILON) & (candidate > 0.0)
        lower[active[ok]] = candidate[ok]
        rejected += int(np.count_nonzero(~ok))

        upper, lower, _ = collapse_after_crossing(paths.tau, upper, lower, crossing_tolerance)

    return BoundaryPaths(tau=paths.tau, upper=upper, lower=lower), rejected


def refine_boundaries(
    K: float,
    r: float,
    q: float,
    sigma: float,
    seed: BoundaryPaths,
    double: bool,
    ceiling: float,
    settings: SolverSettings,
) -> NumericalResult[BoundaryPaths]:
    """
    Refine QD+ boundaries by fixed-point iteration on Kim's equation.

    Args:
        K: Strike price
        r, q, sigma: Put rates and volatility
        seed: QD+ paths to start from; node 0 (τ = 0) is kept fixed
        double: Refine both edges (FP-B + FP-B') instead of one (FP-B)
        ceiling: Upper limit for the upper edge
        settings: Quadrature, tolerance and iteration settings

    Returns:
        NumericalResult whose value is the accepted paths:
            - CONVERGED when the largest update fell below tolerance
            - MAX_ITERATIONS_REACHED with the last iterate otherwise
            - FALLBACK_USED with the seed paths if the refined paths
              satisfy Kim's equation worse than the seed
    """
    method = METHOD_DOUBLE if double else METHOD_SINGLE
    equation = KimEquation(K, r, q, sigma, settings.quadrature_points)
    crossing_tolerance = settings.crossing_tolerance * K
    tolerance = settings.fixed_point_tolerance * K

    paths = seed
    converged = False
    change = float("inf")
    iterations = 0
    for iterations in range(1, settings.max_iterations + 1):
        updated, rejected = _fixed_point_sweep(equation, paths, double, ceiling, crossing_tolerance)
        if rejected:
            logger.debug("%s sweep %d: %d node updates rejected", method, iterations, rejected)

        change = float(
            max(np.max(np.abs(updated.upper - paths.upper)), np.max(np.abs(updated.lower - paths.lower)))
        )
        paths = updated
        if change < tolerance:
            converged = True
            break

    seed_residual = kim_residual(equation, seed, double, crossing_tolerance)
    refined_residual = kim_residual(equation, paths, double, crossing_tolerance)

    if not refined_residual <= seed_residual:
        logger.warning(
            "%s refinement rejected: residual %.3g exceeds QD+ residual %.3g",
            method,
            refined_residual,
            seed_residual,
        )
        return NumericalResult(
            value=seed,
            converged=False,
            iterations=iterations,
            error=seed_residual,
            status=ConvergenceStatus.FALLBACK_USED,
            method=method,
            message="Refined boundaries rejected, QD+ boundaries kept",
        )

    if converged:
        return NumericalResult.success(
            paths,
            iterations,
            change,
            method=method,
            message=f"Converged in {iterations} sweeps, residual {refined_residual:.3g}",
        )

    return NumericalResult(
        value=paths,
        converged=False,
        iterations=iterations,
        error=change,
        status=ConvergenceStatus.MAX_ITERATIONS_REACHED,
        method=method,
        message=f"Max iterations ({settings.max_iterations}) reached, last change {change:.3g}",
    )
