"""
Implied volatility solver with automatic method selection.

Newton-Raphson is tried first from a Brenner-Subrahmanyam seed; when it
stalls (vega collapse, a step out of the volatility range, or budget
exhaustion) the solve is completed by bisection over the full admissible
volatility range. Prices outside the no-arbitrage band yield NaN rather
than an exception.
"""

import logging
import math
from typing import Optional

from double_boundary.diagnostics.bounds import (
    validate_positive_price,
    validate_time_to_expiry,
)
from double_boundary.solvers.bisection import bisection_iv
from double_boundary.solvers.newton_raphson import newton_raphson_iv
from double_boundary.utils.constants import (
    IV_TOLERANCE,
    MAX_VOLATILITY,
    MIN_VOLATILITY,
)
from double_boundary.utils.types import ConvergenceStatus, NumericalResult, OptionType

logger = logging.getLogger(__name__)


def brenner_subrahmanyam_approximation(market_price: float, S: float, T: float) -> float:
    """
    Brenner-Subrahmanyam approximation for implied volatility.

    Formula:
        σ ≈ √(2π/T) × (V/S)

    Args:
        market_price: Option market price
        S: Spot price
        T: Time to expiration

    Returns:
        Initial volatility guess clamped into [MIN_VOLATILITY, MAX_VOLATILITY]

    Reference:
        Brenner, M., & Subrahmanyam, M. G. (1988). A Simple Formula to
        Compute the Implied Standard Deviation. Financial Analysts Journal, 44(5), 80-83.
    """
    sigma_guess = math.sqrt(2.0 * math.pi / T) * (market_price / S)
    return max(MIN_VOLATILITY, min(sigma_guess, MAX_VOLATILITY))


def validate_arbitrage_bounds(
    market_price: float,
    S: float,
    K: float,
    T: float,
    r: float,
    q: float,
    option_type: OptionType,
) -> Optional[str]:
    """
    Check if market price violates no-arbitrage bounds.

    Bounds:
        Call: max(S·e^(-qT) - K·e^(-rT), 0) <= C <= S·e^(-qT)
        Put:  max(K·e^(-rT) - S·e^(-qT), 0) <= P <= K·e^(-rT)

    Returns:
        None if valid, error message string if a bound is violated
    """
    discount_spot = S * math.exp(-q * T)
    discount_strike = K * math.exp(-r * T)

    if option_type == "call":
        lower_bound = max(discount_spot - discount_strike, 0.0)
        upper_bound = discount_spot
    else:
        lower_bound = max(discount_strike - discount_spot, 0.0)
        upper_bound = discount_strike

    label = option_type.capitalize()
    if market_price < lower_bound - IV_TOLERANCE:
        return f"{label} price {market_price:.4f} below intrinsic bound {lower_bound:.4f}"
    if market_price > upper_bound + IV_TOLERANCE:
        return f"{label} price {market_price:.4f} above upper bound {upper_bound:.4f}"

    return None


def implied_volatility(
    market_price: float,
    S: float,
    K: float,
    T: float,
    r: float,
    q: float = 0.0,
    option_type: OptionType = "call",
    method: str = "auto",
    initial_guess: Optional[float] = None,
) -> NumericalResult[float]:
    """
    Solve for implied volatility with automatic method selection.

    Args:
        market_price: Observed market price
        S: Spot price
        K: Strike price
        T: Time to expiration in years
        r: Risk-free rate (annualized, continuous)
        q: Dividend yield (annualized, continuous), default 0.0
        option_type: "call" or "put"
        method: "auto" (default), "newton", or "bisection"
        initial_guess: Starting volatility (Brenner-Subrahmanyam if None)

    Returns:
        NumericalResult whose value is the implied volatility:
            - CONVERGED from Newton-Raphson
            - FALLBACK_USED when bisection finished the solve
            - BOUNDS_VIOLATION with NaN if the price breaks no-arbitrage bounds
            - NUMERICAL_INSTABILITY with NaN if no volatility reproduces the price
            - MAX_ITERATIONS_REACHED with the bisection midpoint otherwise

    Raises:
        BoundsViolationError: If a price is non-positive or T is out of range
        ValueError: If method is not recognised

    Examples:
        >>> result = implied_volatility(10.45, S=100, K=100, T=1.0, r=0.05)
        >>> round(result.value, 2)
        0.2
    """
    if method not in ("auto", "newton", "bisection"):
        raise ValueError(f"method must be 'auto', 'newton' or 'bisection', got '{method}'")

    validate_positive_price(market_price, "market_price")
    validate_positive_price(S, "S")
    validate_positive_price(K, "K")
    validate_time_to_expiry(T)

    violation = validate_arbitrage_bounds(market_price, S, K, T, r, q, option_type)
    if violation:
        return NumericalResult.failure(
            math.nan, 0, ConvergenceStatus.BOUNDS_VIOLATION, method=method, message=violation
        )

    if initial_guess is None:
        initial_guess = brenner_subrahmanyam_approximation(market_price, S, T)

    newton_iterations = 0
    if method in ("auto", "newton"):
        nr_result = newton_raphson_iv(market_price, S, K, T, r, q, option_type, initial_guess)

        if nr_result.converged or method == "newton":
            return nr_result

        newton_iterations = nr_result.iterations
        logger.debug("Newton-Raphson stopped (%s), falling back to bisection", nr_result.message)

    bisection_result = bisection_iv(market_price, S, K, T, r, q, option_type)

    if not bisection_result.converged:
        return bisection_result

    status = ConvergenceStatus.FALLBACK_USED if method == "auto" else ConvergenceStatus.CONVERGED
    return NumericalResult.success(
        bisection_result.value,
        newton_iterations + bisection_result.iterations,
        bisection_result.error,
        method="bisection",
        status=status,
        message=bisection_result.message,
    )


def implied_volatility_vectorized(
    market_prices: list[float],
    S: float,
    strikes: list[float],
    T: float,
    r: float,
    q: float = 0.0,
    option_type: OptionType = "call",
) -> list[NumericalResult[float]]:
    """
    Solve for implied volatilities across strikes (volatility smile).

    Raises:
        ValueError: If market_prices and strikes have different lengths
    """
    if len(market_prices) != len(strikes):
        raise ValueError(
            f"market_prices ({len(market_prices)}) and strikes ({len(strikes)}) "
            f"must have same length"
        )

    return [
        implied_volatility(price, S, strike, T, r, q, option_type)
        for price, strike in zip(market_prices, strikes)
    ]
