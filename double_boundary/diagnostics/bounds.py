"""
Bounds validation for solver inputs.

Every public entry point runs its inputs through these checks before any
numerical work. A value outside its admissible range is never clamped:
the validator raises BoundsViolationError naming the parameter, the value
and the violated range, so the caller decides what to do with it.

Checks:
1. Volatility in [MIN_VOLATILITY, MAX_VOLATILITY]
2. Time to expiry in [MIN_TIME_TO_EXPIRY, MAX_TIME_TO_EXPIRY]
3. Prices (spot, strike, premium) at least MIN_POSITIVE_PRICE
4. Log-moneyness |ln(K/S)| at most MAX_LOG_MONEYNESS
5. Rates and yields finite
"""

import math

from double_boundary.utils.constants import (
    MAX_COLLOCATION_POINTS,
    MAX_LOG_MONEYNESS,
    MAX_TIME_TO_EXPIRY,
    MAX_VOLATILITY,
    MIN_COLLOCATION_POINTS,
    MIN_POSITIVE_PRICE,
    MIN_TIME_TO_EXPIRY,
    MIN_VOLATILITY,
)
from double_boundary.utils.types import ContractParameters


class BoundsViolationError(ValueError):
    """
    Raised when an input lies outside its admissible range.

    Attributes:
        parameter: Name of the offending parameter
        value: The rejected value
        lower: Inclusive lower bound
        upper: Inclusive upper bound
    """

    def __init__(self, parameter: str, value: float, lower: float, upper: float) -> None:
        self.parameter = parameter
        self.value = value
        self.lower = lower
        self.upper = upper
        super().__init__(
            f"Parameter '{parameter}' = {value} violates bounds [{lower}, {upper}]"
        )


def _check_range(name: str, value: float, lower: float, upper: float) -> None:
    # NaN fails both comparisons, so test it explicitly
    if math.isnan(value) or value < lower or value > upper:
        raise BoundsViolationError(name, value, lower, upper)


def validate_volatility(sigma: float, name: str = "sigma") -> None:
    """Require MIN_VOLATILITY <= sigma <= MAX_VOLATILITY."""
    _check_range(name, sigma, MIN_VOLATILITY, MAX_VOLATILITY)


def validate_time_to_expiry(T: float, name: str = "T") -> None:
    """Require MIN_TIME_TO_EXPIRY <= T <= MAX_TIME_TO_EXPIRY (years)."""
    _check_range(name, T, MIN_TIME_TO_EXPIRY, MAX_TIME_TO_EXPIRY)


def validate_positive_price(price: float, name: str = "price") -> None:
    """Require a finite price of at least MIN_POSITIVE_PRICE."""
    _check_range(name, price, MIN_POSITIVE_PRICE, math.inf)
    if math.isinf(price):
        raise BoundsViolationError(name, price, MIN_POSITIVE_PRICE, math.inf)


def validate_moneyness(S: float, K: float, name: str = "log_moneyness") -> None:
    """
    Require |ln(K/S)| <= MAX_LOG_MONEYNESS.

    Spot and strike must already be positive.
    """
    log_moneyness = math.log(K / S)
    _check_range(name, log_moneyness, -MAX_LOG_MONEYNESS, MAX_LOG_MONEYNESS)


def validate_finite(value: float, name: str) -> None:
    """Require a finite real number (rates and dividend yields may be negative)."""
    if not math.isfinite(value):
        raise BoundsViolationError(name, value, -math.inf, math.inf)


def validate_collocation_points(n: int, name: str = "collocation_points") -> None:
    """Require MIN_COLLOCATION_POINTS <= n <= MAX_COLLOCATION_POINTS."""
    if n < MIN_COLLOCATION_POINTS or n > MAX_COLLOCATION_POINTS:
        raise BoundsViolationError(name, n, MIN_COLLOCATION_POINTS, MAX_COLLOCATION_POINTS)


def validate_contract(params: ContractParameters) -> None:
    """
    Validate a ContractParameters instance before solving.

    Args:
        params: Contract to validate

    Raises:
        BoundsViolationError: On the first parameter found out of range
    """
    validate_positive_price(params.S, "S")
    validate_positive_price(params.K, "K")
    validate_time_to_expiry(params.T)
    validate_volatility(params.sigma)
    validate_finite(params.r, "r")
    validate_finite(params.q, "q")
    validate_moneyness(params.S, params.K)
    validate_collocation_points(params.collocation_points)
