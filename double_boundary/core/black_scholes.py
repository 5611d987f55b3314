"""
Black-Scholes-Merton pricing with continuous dividend yield.

European prices and Greeks feed the implied-volatility solver and the
European leg of the QD+ boundary equation. Rates and dividend yields may
be negative; every formula below is valid for any real r and q.

Mathematical Background:
    The Black-Scholes formula prices European options under assumptions:
    - Log-normal asset price distribution
    - Constant volatility, interest rate and dividend yield
    - Continuous trading, no transaction costs

References:
    Black, F., & Scholes, M. (1973). The Pricing of Options and Corporate Liabilities.
    Journal of Political Economy, 81(3), 637-654.
"""

import math

from double_boundary.core.distributions import normal_cdf, normal_pdf
from double_boundary.utils.constants import EPSILON_TIME, EPSILON_VOL, MAX_STANDARD_DEVIATIONS
from double_boundary.utils.types import Greeks, OptionType


def _validate_inputs(S: float, K: float, T: float, sigma: float) -> None:
    """
    Validate option pricing inputs.

    Raises:
        ValueError: If any input is invalid
    """
    if S <= 0:
        raise ValueError(f"Spot price must be positive, got S={S}")
    if K <= 0:
        raise ValueError(f"Strike price must be positive, got K={K}")
    if T < 0:
        raise ValueError(f"Time to expiration cannot be negative, got T={T}")
    if sigma < 0:
        raise ValueError(f"Volatility cannot be negative, got sigma={sigma}")


def _check_option_type(option_type: str) -> None:
    if option_type not in ("call", "put"):
        raise ValueError(f"option_type must be 'call' or 'put', got '{option_type}'")


def d1(S: float, K: float, T: float, r: float, sigma: float, q: float) -> float:
    """
    Calculate d1 parameter in Black-Scholes formula.

    Args:
        S: Current spot price
        K: Strike price
        T: Time to expiration in years
        r: Risk-free interest rate (annualized, continuous)
        sigma: Volatility (annualized standard deviation)
        q: Continuous dividend yield (annualized)

    Returns:
        The d1 parameter

    Formula:
        d1 = [ln(S/K) + (r - q + σ²/2)T] / (σ√T)

    Notes:
        Degenerate inputs (T → 0 or σ → 0) return ±inf according to
        whether the forward finishes above or below the strike.
    """
    _validate_inputs(S, K, T, sigma)

    if T < EPSILON_TIME:
        return math.inf if S > K else -math.inf

    if sigma < EPSILON_VOL:
        forward = S * math.exp((r - q) * T)
        return math.inf if forward > K else -math.inf

    log_moneyness = math.log(S) - math.log(K)
    drift = (r - q + 0.5 * sigma * sigma) * T
    return (log_moneyness + drift) / (sigma * math.sqrt(T))


def d2(S: float, K: float, T: float, r: float, sigma: float, q: float) -> float:
    """
    Calculate d2 = d1 - σ√T.

    For a call, N(d2) is the risk-neutral probability of exercise.
    """
    d1_value = d1(S, K, T, r, sigma, q)

    if T < EPSILON_TIME or sigma < EPSILON_VOL:
        return d1_value

    return d1_value - sigma * math.sqrt(T)


def black_scholes_call(
    S: float, K: float, T: float, r: float, sigma: float, q: float = 0.0
) -> float:
    """
    European call price.

    Formula:
        C = S·e^(-qT)·N(d1) - K·e^(-rT)·N(d2)

    Examples:
        >>> price = black_scholes_call(100, 100, 1.0, 0.05, 0.20, 0.0)
        >>> abs(price - 10.4506) < 0.01
        True
    """
    _validate_inputs(S, K, T, sigma)

    discount_spot = S * math.exp(-q * T)
    discount_strike = K * math.exp(-r * T)

    if T < EPSILON_TIME or sigma < EPSILON_VOL:
        return max(discount_spot - discount_strike, 0.0)

    d1_value = d1(S, K, T, r, sigma, q)
    if d1_value > MAX_STANDARD_DEVIATIONS:
        return discount_spot - discount_strike
    if d1_value < -MAX_STANDARD_DEVIATIONS:
        return 0.0

    d2_value = d1_value - sigma * math.sqrt(T)
    return discount_spot * normal_cdf(d1_value) - discount_strike * normal_cdf(d2_value)


def black_scholes_put(
    S: float, K: float, T: float, r: float, sigma: float, q: float = 0.0
) -> float:
    """
    European put price.

    Formula:
        P = K·e^(-rT)·N(-d2) - S·e^(-qT)·N(-d1)

    Examples:
        >>> price = black_scholes_put(100, 100, 1.0, 0.05, 0.20, 0.0)
        >>> abs(price - 5.5735) < 0.01
        True

    Notes:
        With r < 0 the discounted strike exceeds K, so a deep in-the-money
        European put can be worth more than its intrinsic value; with r > 0
        it is worth less. This asymmetry is what creates the double
        exercise boundary.
    """
    _validate_inputs(S, K, T, sigma)

    discount_spot = S * math.exp(-q * T)
    discount_strike = K * math.exp(-r * T)

    if T < EPSILON_TIME or sigma < EPSILON_VOL:
        return max(discount_strike - discount_spot, 0.0)

    d1_value = d1(S, K, T, r, sigma, q)
    if d1_value < -MAX_STANDARD_DEVIATIONS:
        return discount_strike - discount_spot
    if d1_value > MAX_STANDARD_DEVIATIONS:
        return 0.0

    d2_value = d1_value - sigma * math.sqrt(T)
    return discount_strike * normal_cdf(-d2_value) - discount_spot * normal_cdf(-d1_value)


def black_scholes_price(
    S: float,
    K: float,
    T: float,
    r: float,
    sigma: float,
    q: float = 0.0,
    option_type: OptionType = "call",
) -> float:
    """
    European option price (call or put).

    Raises:
        ValueError: If option_type is not "call" or "put"
    """
    _check_option_type(option_type)
    if option_type == "call":
        return black_scholes_call(S, K, T, r, sigma, q)
    return black_scholes_put(S, K, T, r, sigma, q)


# ===========================
# Greeks Calculations
# ===========================


def delta(
    S: float,
    K: float,
    T: float,
    r: float,
    sigma: float,
    q: float = 0.0,
    option_type: OptionType = "call",
) -> float:
    """
    Option delta (∂V/∂S).

    Formulas:
        Call delta: Δ_c = e^(-qT) · N(d1)
        Put delta:  Δ_p = -e^(-qT) · N(-d1)
    """
    _check_option_type(option_type)
    d1_value = d1(S, K, T, r, sigma, q)
    discount_factor = math.exp(-q * T)

    if option_type == "call":
        return discount_factor * normal_cdf(d1_value)
    return -discount_factor * normal_cdf(-d1_value)


def gamma(S: float, K: float, T: float, r: float, sigma: float, q: float = 0.0) -> float:
    """
    Option gamma (∂²V/∂S²), identical for calls and puts.

    Formula:
        Γ = e^(-qT) · φ(d1) / (S · σ · √T)
    """
    _validate_inputs(S, K, T, sigma)

    if T < EPSILON_TIME or sigma < EPSILON_VOL:
        return 0.0

    d1_value = d1(S, K, T, r, sigma, q)
    return math.exp(-q * T) * normal_pdf(d1_value) / (S * sigma * math.sqrt(T))


def vega(S: float, K: float, T: float, r: float, sigma: float, q: float = 0.0) -> float:
    """
    Option vega (∂V/∂σ), per unit of volatility.

    Formula:
        ν = S · e^(-qT) · √T · φ(d1)

    Notes:
        This is the raw derivative used as the Newton-Raphson slope in the
        implied-volatility solver, not the per-1% market convention.
    """
    _validate_inputs(S, K, T, sigma)

    if T < EPSILON_TIME:
        return 0.0

    d1_value = d1(S, K, T, r, sigma, q)
    return S * math.exp(-q * T) * math.sqrt(T) * normal_pdf(d1_value)


def theta(
    S: float,
    K: float,
    T: float,
    r: float,
    sigma: float,
    q: float = 0.0,
    option_type: OptionType = "call",
) -> float:
    """
    Option theta, reported per calendar day.

    Formulas:
        Θ_c = -S·σ·e^(-qT)·φ(d1)/(2√T) - r·K·e^(-rT)·N(d2) + q·S·e^(-qT)·N(d1)
        Θ_p = -S·σ·e^(-qT)·φ(d1)/(2√T) + r·K·e^(-rT)·N(-d2) - q·S·e^(-qT)·N(-d1)
    """
    _check_option_type(option_type)
    _validate_inputs(S, K, T, sigma)

    if T < EPSILON_TIME or sigma < EPSILON_VOL:
        return 0.0

    d1_value = d1(S, K, T, r, sigma, q)
    d2_value = d1_value - sigma * math.sqrt(T)
    discount_spot = S * math.exp(-q * T)
    discount_strike = K * math.exp(-r * T)

    diffusion = -(sigma * discount_spot * normal_pdf(d1_value)) / (2.0 * math.sqrt(T))

    if option_type == "call":
        carry = -r * discount_strike * normal_cdf(d2_value) + q * discount_spot * normal_cdf(d1_value)
    else:
        carry = r * discount_strike * normal_cdf(-d2_value) - q * discount_spot * normal_cdf(-d1_value)

    return (diffusion + carry) / 365.0


def rho(
    S: float,
    K: float,
    T: float,
    r: float,
    sigma: float,
    q: float = 0.0,
    option_type: OptionType = "call",
) -> float:
    """
    Option rho (∂V/∂r), per unit of rate.

    Formulas:
        Call rho: ρ_c = K·T·e^(-rT)·N(d2)
        Put rho:  ρ_p = -K·T·e^(-rT)·N(-d2)
    """
    _check_option_type(option_type)
    _validate_inputs(S, K, T, sigma)

    if T < EPSILON_TIME or sigma < EPSILON_VOL:
        return 0.0

    d2_value = d2(S, K, T, r, sigma, q)
    discount_strike = K * T * math.exp(-r * T)

    if option_type == "call":
        return discount_strike * normal_cdf(d2_value)
    return -discount_strike * normal_cdf(-d2_value)


def calculate_greeks(
    S: float,
    K: float,
    T: float,
    r: float,
    sigma: float,
    q: float = 0.0,
    option_type: OptionType = "call",
) -> Greeks:
    """
    Calculate all Greeks for an option in one pass.

    Example:
        >>> greeks = calculate_greeks(100, 100, 1.0, 0.05, 0.20)
        >>> round(greeks.delta, 4)
        0.6368
    """
    return Greeks(
        delta=delta(S, K, T, r, sigma, q, option_type),
        gamma=gamma(S, K, T, r, sigma, q),
        vega=vega(S, K, T, r, sigma, q),
        theta=theta(S, K, T, r, sigma, q, option_type),
        rho=rho(S, K, T, r, sigma, q, option_type),
    )
