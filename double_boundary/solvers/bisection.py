"""
Bisection root finding, the guaranteed fallback of every Newton-class solver.

Bisection only needs a sign change on the bracket, so it cannot diverge.
It is slower than Newton-Raphson (one bit per iteration) but always
returns the bracket midpoint as a usable estimate, even when the
iteration budget runs out.
"""

from typing import Callable

from scipy.optimize import bisect

from double_boundary.core.black_scholes import black_scholes_price
from double_boundary.utils.constants import (
    BISECTION_MAX_ITERATIONS,
    MAX_VOLATILITY,
    MIN_VOLATILITY,
    ROOT_FINDING_TOLERANCE,
)
from double_boundary.utils.types import ConvergenceStatus, NumericalResult, OptionType


def bisection(
    func: Callable[[float], float],
    lower: float,
    upper: float,
    tolerance: float = ROOT_FINDING_TOLERANCE,
    max_iterations: int = BISECTION_MAX_ITERATIONS,
    method: str = "bisection",
) -> NumericalResult[float]:
    """
    Find a root of func on [lower, upper] by bisection.

    Args:
        func: Continuous function with a sign change on the bracket
        lower: Left end of the bracket
        upper: Right end of the bracket
        tolerance: Absolute tolerance on the root
        max_iterations: Maximum number of halvings
        method: Name recorded in the result

    Returns:
        NumericalResult with:
            - CONVERGED and the root when the bracket shrank below tolerance
            - MAX_ITERATIONS_REACHED and the current midpoint otherwise
            - NUMERICAL_INSTABILITY and NaN when the ends do not bracket a root
    """
    f_lower = func(lower)
    f_upper = func(upper)

    if f_lower == 0.0:
        return NumericalResult.success(lower, 0, 0.0, method=method)
    if f_upper == 0.0:
        return NumericalResult.success(upper, 0, 0.0, method=method)

    if f_lower * f_upper > 0.0:
        return NumericalResult.failure(
            float("nan"),
            0,
            ConvergenceStatus.NUMERICAL_INSTABILITY,
            method=method,
            message=(
                f"No sign change on [{lower:.6g}, {upper:.6g}]: "
                f"f(lower) = {f_lower:.4g}, f(upper) = {f_upper:.4g}"
            ),
        )

    # disp=False reports non-convergence through root_results instead of raising
    root, root_results = bisect(
        func,
        lower,
        upper,
        xtol=tolerance,
        maxiter=max_iterations,
        full_output=True,
        disp=False,
    )

    if root_results.converged:
        return NumericalResult.success(
            root,
            root_results.iterations,
            tolerance,
            method=method,
            message=f"Converged in {root_results.iterations} halvings",
        )

    return NumericalResult(
        value=root,
        converged=False,
        iterations=root_results.iterations,
        error=abs(upper - lower) / 2.0 ** root_results.iterations,
        status=ConvergenceStatus.MAX_ITERATIONS_REACHED,
        method=method,
        message=f"Max iterations ({max_iterations}) reached, returning bracket midpoint",
    )


def bisection_iv(
    market_price: float,
    S: float,
    K: float,
    T: float,
    r: float,
    q: float,
    option_type: OptionType,
    vol_lower: float = MIN_VOLATILITY,
    vol_upper: float = MAX_VOLATILITY,
    max_iterations: int = BISECTION_MAX_ITERATIONS,
) -> NumericalResult[float]:
    """
    Solve for implied volatility by bisection over [vol_lower, vol_upper].

    The European price is strictly increasing in volatility, so a market
    price between BS(vol_lower) and BS(vol_upper) always brackets exactly
    one root.

    Args:
        market_price: Observed market price of the option
        S, K, T, r, q: Standard Black-Scholes parameters
        option_type: "call" or "put"
        vol_lower: Lower end of the volatility bracket
        vol_upper: Upper end of the volatility bracket
        max_iterations: Maximum number of halvings

    Returns:
        NumericalResult whose value is the implied volatility, or NaN if the
        price is not attainable on the bracket
    """

    def objective(sigma: float) -> float:
        return black_scholes_price(S, K, T, r, sigma, q, option_type) - market_price

    return bisection(
        objective,
        vol_lower,
        vol_upper,
        tolerance=ROOT_FINDING_TOLERANCE,
        max_iterations=max_iterations,
        method="bisection",
    )
