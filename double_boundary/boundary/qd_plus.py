"""
QD+ approximation of American put exercise boundaries.

For each time to maturity τ the QD+ method (Li 2005) replaces the
early-exercise premium with a power of S whose exponent λ solves the
characteristic equation of the Black-Scholes operator, corrected by a
first-order term c0. The boundary is the root of

    f(S) = (1 - e^(-qτ)·N(-d1))·S + α·θ(S)/e^(-rτ) - β·(K - S - p(S))

where p is the European put and θ its theta. The characteristic equation
has two roots λ∓. The negative root describes a continuation region
above the boundary (the usual put boundary, and the upper edge of a
double-boundary band); the positive root describes a continuation region
below it (the lower edge of the band).

Each slice is solved by Super-Halley, continued from the previous slice
so that the root found is the one on the same branch.

References:
    Li, M. (2005). Analytical approximations for the critical stock prices
    of American options: a performance comparison. Review of Derivatives
    Research.
    Andersen, L., Lake, M., & Offengenden, D. (2016). High-performance
    American option pricing. Journal of Computational Finance, 20(1).
    Healy, J. (2021). Pricing American options under negative rates.
    Journal of Computational Finance, 25(1).
"""

import logging
import math

import numpy as np

from double_boundary.boundary.grid import BoundaryPaths
from double_boundary.core.distributions import normal_cdf, normal_pdf
from double_boundary.solvers.super_halley import find_bracket, super_halley
from double_boundary.utils.constants import ROOT_FINDING_TOLERANCE
from double_boundary.utils.types import ConvergenceStatus, NumericalResult

logger = logging.getLogger(__name__)

METHOD = "qd-plus"

# Smallest spot the boundary search may visit, relative to strike
SEARCH_FLOOR = 1e-8


class QdPlusEvaluator:
    """
    QD+ boundary function f(S) and its first two derivatives at one τ.

    Everything that depends on τ only is computed once in the constructor,
    so evaluating f, f' and f'' costs a handful of exponentials.

    Args:
        K: Strike price
        tau: Time to maturity (> 0)
        r: Risk-free rate
        q: Dividend yield
        sigma: Volatility
        upper_edge: True for the negative characteristic root (continuation
            region above the boundary), False for the positive root
    """

    def __init__(
        self, K: float, tau: float, r: float, q: float, sigma: float, upper_edge: bool = True
    ) -> None:
        self.K = K
        self.tau = tau
        self.r = r
        self.q = q
        self.sigma = sigma

        sigma2 = sigma * sigma
        self.v = sigma * math.sqrt(tau)
        self.dr = math.exp(-r * tau)
        self.dq = math.exp(-q * tau)

        # r / (1 - e^(-rτ)), with its r → 0 limit 1/τ handled by a series
        if abs(r * tau) > 1e-5:
            ddr = r / (1.0 - self.dr)
        else:
            ddr = 1.0 / (tau * (1.0 - 0.5 * r * tau * (1.0 - r * tau / 3.0)))

        omega = 2.0 * (r - q) / sigma2
        discriminant = (omega - 1.0) ** 2 + 8.0 * ddr / sigma2
        sqrt_disc = math.sqrt(discriminant)

        sign = -1.0 if upper_edge else 1.0
        self.lam = 0.5 * (-(omega - 1.0) + sign * sqrt_disc)
        lam_prime = -sign * 2.0 * ddr * ddr / (sigma2 * sqrt_disc)

        denom = 2.0 * self.lam + omega - 1.0
        self.alpha = 2.0 * self.dr / (sigma2 * denom)
        self.beta = self.alpha * (ddr + lam_prime / denom) - self.lam

    def _d1_d2(self, S: float) -> tuple[float, float]:
        d1 = math.log(S * self.dq / (self.K * self.dr)) / self.v + 0.5 * self.v
        return d1, d1 - self.v

    def value(self, S: float) -> float:
        """f(S); zero at the boundary."""
        K, r, q = self.K, self.r, self.q
        d1, d2 = self._d1_d2(S)
        phi_d1 = normal_pdf(d1)
        n_m1 = normal_cdf(-d1)
        n_m2 = normal_cdf(-d2)

        european = self.dr * K * n_m2 - S * self.dq * n_m1
        theta = (
            r * K * self.dr * n_m2
            - q * S * self.dq * n_m1
            - 0.5 * self.sigma * self.sigma * S / self.v * self.dq * phi_d1
        )
        return (
            (1.0 - self.dq * n_m1) * S
            + self.alpha * theta / self.dr
            - self.beta * (K - S - european)
        )

    def __call__(self, S: float) -> tuple[float, float, float]:
        """(f, f', f'') at S, the form Super-Halley consumes."""
        r, q, tau, v, dq = self.r, self.q, self.tau, self.v, self.dq
        d1, d2 = self._d1_d2(S)
        phi_d1 = normal_pdf(d1)
        n_m1 = normal_cdf(-d1)

        charm = -dq * (phi_d1 * ((r - q) / v - d2 / (2.0 * tau)) + q * n_m1)
        gamma = phi_d1 * dq / (v * S)
        colour = gamma * (q + (r - q) * d1 / v + (1.0 - d1 * d2) / (2.0 * tau))

        f = self.value(S)
        f_prime = (
            1.0
            - dq * n_m1
            + dq * phi_d1 / v
            + self.beta * (1.0 - dq * n_m1)
            + self.alpha / self.dr * charm
        )
        f_second = (
            dq * (phi_d1 / (S * v) - phi_d1 * d1 / (S * v * v))
            + self.beta * gamma
            + self.alpha / self.dr * colour
        )
        return f, f_prime, f_second


def qd_plus_point(
    evaluator: QdPlusEvaluator,
    guess: float,
    lower: float,
    upper: float,
    tolerance: float = ROOT_FINDING_TOLERANCE,
) -> NumericalResult[float]:
    """
    Solve one QD+ slice for the boundary nearest to guess.

    Args:
        evaluator: QD+ function for the slice
        guess: Starting point (the previous slice's boundary)
        lower: Smallest admissible boundary value
        upper: Largest admissible boundary value

    Returns:
        Super-Halley result, or NUMERICAL_INSTABILITY with the guess when
        no sign change exists on [lower, upper]
    """
    bracket = find_bracket(evaluator.value, guess, lower, upper)
    if bracket is None:
        return NumericalResult.failure(
            guess,
            0,
            ConvergenceStatus.NUMERICAL_INSTABILITY,
            method=METHOD,
            message=f"No QD+ root on [{lower:.6g}, {upper:.6g}] at tau={evaluator.tau:.6g}",
        )

    a, b = bracket
    if a == b:
        return NumericalResult.success(a, 0, 0.0, method=METHOD)

    return super_halley(evaluator, min(max(guess, a), b), a, b, tolerance=tolerance)


def _combine_status(current: ConvergenceStatus, result: NumericalResult) -> ConvergenceStatus:
    """Keep the least favourable status seen across slices."""
    order = [
        ConvergenceStatus.CONVERGED,
        ConvergenceStatus.FALLBACK_USED,
        ConvergenceStatus.DERIVATIVE_TOO_SMALL,
        ConvergenceStatus.MAX_ITERATIONS_REACHED,
        ConvergenceStatus.NUMERICAL_INSTABILITY,
    ]
    status = result.status if result.status in order else ConvergenceStatus.NUMERICAL_INSTABILITY
    return max(current, status, key=order.index)


def qd_plus_single_boundary(
    K: float,
    r: float,
    q: float,
    sigma: float,
    tau_grid: np.ndarray,
    ceiling: float,
    tolerance: float = ROOT_FINDING_TOLERANCE,
) -> NumericalResult[BoundaryPaths]:
    """
    QD+ boundary of a single-boundary put on the whole grid.

    Args:
        K: Strike price
        r, q, sigma: Put rates and volatility
        tau_grid: Collocation times (tau_grid[0] == 0)
        ceiling: τ → 0 limit of the boundary, used at tau_grid[0]
        tolerance: Relative root tolerance per slice

    Returns:
        NumericalResult whose value holds the boundary in `upper` and zeros
        in `lower`. A slice without a root inherits the previous value.
    """
    n = len(tau_grid)
    upper = np.empty(n)
    upper[0] = ceiling
    status = ConvergenceStatus.CONVERGED
    iterations = 0

    for j in range(1, n):
        evaluator = QdPlusEvaluator(K, tau_grid[j], r, q, sigma, upper_edge=True)
        result = qd_plus_point(evaluator, upper[j - 1], SEARCH_FLOOR * K, ceiling, tolerance)
        iterations += result.iterations
        status = _combine_status(status, result)

        if result.status is ConvergenceStatus.NUMERICAL_INSTABILITY:
            logger.debug("QD+ slice %d: %s, keeping previous value", j, result.message)
            upper[j] = upper[j - 1]
        else:
            upper[j] = result.value

    paths = BoundaryPaths(tau=tau_grid, upper=upper, lower=np.zeros(n))
    return NumericalResult(
        value=paths,
        converged=status is not ConvergenceStatus.NUMERICAL_INSTABILITY,
        iterations=iterations,
        status=status,
        method=METHOD,
    )


def qd_plus_double_boundary(
    K: float,
    r: float,
    q: float,
    sigma: float,
    tau_grid: np.ndarray,
    tolerance: float = ROOT_FINDING_TOLERANCE,
) -> NumericalResult[BoundaryPaths]:
    """
    QD+ upper and lower boundaries of a put with q < r < 0.

    At τ → 0 the band is [K·r/q, K]. Each later slice solves the upper
    edge first and then searches the lower edge strictly below it. Once a
    slice has no admissible pair of roots the band has closed: that slice
    and every later one carry a single merged value.

    Returns:
        NumericalResult whose value holds both edges; converged is False
        only if a slice failed before the band closed.
    """
    n = len(tau_grid)
    upper = np.empty(n)
    lower = np.empty(n)
    upper[0] = K
    lower[0] = K * r / q
    status = ConvergenceStatus.CONVERGED
    iterations = 0

    for j in range(1, n):
        tau = tau_grid[j]
        top = qd_plus_point(
            QdPlusEvaluator(K, tau, r, q, sigma, upper_edge=True),
            upper[j - 1],
            SEARCH_FLOOR * K,
            K,
            tolerance,
        )
        closed = top.status is ConvergenceStatus.NUMERICAL_INSTABILITY

        if not closed:
            bottom = qd_plus_point(
                QdPlusEvaluator(K, tau, r, q, sigma, upper_edge=False),
                min(lower[j - 1], top.value),
                SEARCH_FLOOR * K,
                top.value,
                tolerance,
            )
            closed = (
                bottom.status is ConvergenceStatus.NUMERICAL_INSTABILITY
                or bottom.value >= top.value
            )

        if closed:
            merged = 0.5 * (upper[j - 1] + lower[j - 1])
            upper[j:] = merged
            lower[j:] = merged
            logger.debug("QD+ band closed between tau=%.6g and tau=%.6g", tau_grid[j - 1], tau)
            break

        upper[j] = top.value
        lower[j] = bottom.value
        iterations += top.iterations + bottom.iterations
        status = _combine_status(status, top)
        status = _combine_status(status, bottom)

    paths = BoundaryPaths(tau=tau_grid, upper=upper, lower=lower)
    return NumericalResult(
        value=paths,
        converged=status is not ConvergenceStatus.NUMERICAL_INSTABILITY,
        iterations=iterations,
        status=status,
        method=METHOD,
    )
