"""
Newton-Raphson method for implied volatility calculation.

The method uses vega (∂V/∂σ) as the derivative for fast convergence.
It never falls back on its own: when vega collapses or a step leaves the
admissible volatility range it stops and reports why, and the caller
decides whether to continue with bisection.
"""

from double_boundary.core.black_scholes import black_scholes_price, vega
from double_boundary.utils.constants import (
    IV_TOLERANCE,
    MAX_VOLATILITY,
    MIN_VEGA_FOR_NEWTON,
    MIN_VOLATILITY,
    NEWTON_MAX_ITERATIONS,
    ROOT_FINDING_TOLERANCE,
)
from double_boundary.utils.types import ConvergenceStatus, NumericalResult, OptionType

METHOD = "newton-raphson"


def newton_raphson_iv(
    market_price: float,
    S: float,
    K: float,
    T: float,
    r: float,
    q: float,
    option_type: OptionType,
    initial_guess: float,
    max_iterations: int = NEWTON_MAX_ITERATIONS,
    price_tolerance: float = IV_TOLERANCE,
    vol_tolerance: float = ROOT_FINDING_TOLERANCE,
) -> NumericalResult[float]:
    """
    Solve for implied volatility using Newton-Raphson method.

    The Newton-Raphson update is:
        σ_{n+1} = σ_n - (BS(σ_n) - market_price) / vega(σ_n)

    Args:
        market_price: Observed market price of the option
        S, K, T, r, q: Standard Black-Scholes parameters
        option_type: "call" or "put"
        initial_guess: Starting volatility estimate
        max_iterations: Maximum number of iterations
        price_tolerance: Convergence tolerance for price difference
        vol_tolerance: Convergence tolerance for volatility change

    Returns:
        NumericalResult with status:
            - CONVERGED within tolerances
            - DERIVATIVE_TOO_SMALL if vega drops below MIN_VEGA_FOR_NEWTON
            - BOUNDS_VIOLATION if a step leaves [MIN_VOLATILITY, MAX_VOLATILITY]
            - MAX_ITERATIONS_REACHED otherwise
        The value is always the last admissible iterate.
    """
    sigma = initial_guess

    for iterations in range(1, max_iterations + 1):
        bs_price = black_scholes_price(S, K, T, r, sigma, q, option_type)

        price_diff = bs_price - market_price
        if abs(price_diff) < price_tolerance:
            return NumericalResult.success(
                sigma,
                iterations,
                abs(price_diff),
                method=METHOD,
                message=f"Converged in {iterations} iterations (price tol)",
            )

        vega_value = vega(S, K, T, r, sigma, q)
        if abs(vega_value) < MIN_VEGA_FOR_NEWTON:
            return NumericalResult.failure(
                sigma,
                iterations,
                ConvergenceStatus.DERIVATIVE_TOO_SMALL,
                method=METHOD,
                message=f"Vega too small ({vega_value:.2e}) at iteration {iterations}",
            )

        sigma_new = sigma - price_diff / vega_value

        if sigma_new < MIN_VOLATILITY or sigma_new > MAX_VOLATILITY:
            return NumericalResult.failure(
                sigma,
                iterations,
                ConvergenceStatus.BOUNDS_VIOLATION,
                method=METHOD,
                message=f"Stepped out of bounds (σ={sigma_new:.4f}) at iteration {iterations}",
            )

        if abs(sigma_new - sigma) < vol_tolerance:
            return NumericalResult.success(
                sigma_new,
                iterations,
                abs(sigma_new - sigma),
                method=METHOD,
                message=f"Converged in {iterations} iterations (vol tol)",
            )

        sigma = sigma_new

    return NumericalResult.failure(
        sigma,
        max_iterations,
        ConvergenceStatus.MAX_ITERATIONS_REACHED,
        method=METHOD,
        message=f"Max iterations ({max_iterations}) reached without convergence",
    )
