"""
Unit tests for Black-Scholes pricing and Greeks.

This module validates:
1. Known analytical solutions
2. Put-call parity, including negative rates and yields
3. Edge cases (T→0, σ→0)
4. Greeks against finite differences of the price
"""

import math

import pytest

from double_boundary.core.black_scholes import (
    black_scholes_call,
    black_scholes_price,
    black_scholes_put,
    calculate_greeks,
    d1,
    d2,
    delta,
    gamma,
    rho,
    theta,
    vega,
)


# ===========================
# Known Solutions Tests
# ===========================


def test_atm_call_known_solution(standard_params):
    """S=100, K=100, T=1, r=5%, σ=20%, q=0 → Call ≈ 10.4506."""
    price = black_scholes_call(**standard_params)
    assert abs(price - 10.4506) < 0.001, f"Expected ~10.4506, got {price}"


def test_atm_put_known_solution(standard_params):
    """S=100, K=100, T=1, r=5%, σ=20%, q=0 → Put ≈ 5.5735."""
    price = black_scholes_put(**standard_params)
    assert abs(price - 5.5735) < 0.001, f"Expected ~5.5735, got {price}"


# ===========================
# Put-Call Parity Tests
# ===========================


@pytest.mark.parametrize(
    "S,K,T,r,sigma,q",
    [
        (100, 100, 1.0, 0.05, 0.20, 0.0),  # ATM
        (100, 100, 2.0, 0.03, 0.15, 0.01),  # Long expiry with dividend
        (100, 100, 10.0, -0.005, 0.08, -0.01),  # Negative rate and yield
        (80, 100, 5.0, -0.02, 0.30, -0.04),  # Deeper negative carry
    ],
)
def test_put_call_parity(S, K, T, r, sigma, q):
    """C - P = S·e^(-qT) - K·e^(-rT) for any sign of r and q."""
    lhs = black_scholes_call(S, K, T, r, sigma, q) - black_scholes_put(S, K, T, r, sigma, q)
    rhs = S * math.exp(-q * T) - K * math.exp(-r * T)

    assert abs(lhs - rhs) < 1e-5, f"Parity gap {lhs - rhs:.2e}"


def test_negative_rate_european_put_above_intrinsic_deep_itm():
    """With r < 0 the discounted strike exceeds K, so a deep ITM European put beats intrinsic."""
    S, K, T, r, sigma, q = 40.0, 100.0, 10.0, -0.005, 0.08, -0.01
    price = black_scholes_put(S, K, T, r, sigma, q)

    assert price > K - S


# ===========================
# Edge Cases Tests
# ===========================


def test_put_at_expiration():
    """Put at expiration equals intrinsic value."""
    price = black_scholes_put(95.0, 100.0, T=1e-8, r=0.05, sigma=0.20, q=0.0)
    assert abs(price - 5.0) < 0.01


def test_zero_volatility_itm_call():
    """With zero vol an ITM call is the discounted forward minus strike."""
    S, K, T, r = 110.0, 100.0, 1.0, 0.05
    price = black_scholes_call(S, K, T, r, sigma=1e-8, q=0.0)
    expected = (S * math.exp(r * T) - K) * math.exp(-r * T)
    assert abs(price - expected) < 0.01


def test_d1_d2_relationship(standard_params):
    """d2 = d1 - σ√T."""
    d1_value = d1(**standard_params)
    d2_value = d2(**standard_params)
    expected = standard_params["sigma"] * math.sqrt(standard_params["T"])

    assert abs((d1_value - d2_value) - expected) < 1e-12


def test_black_scholes_price_invalid_type(standard_params):
    """Unknown option type raises ValueError."""
    with pytest.raises(ValueError, match="option_type"):
        black_scholes_price(**standard_params, option_type="straddle")


def test_negative_spot_raises():
    """Non-positive spot raises ValueError."""
    with pytest.raises(ValueError, match="Spot price"):
        black_scholes_call(S=-100, K=100, T=1.0, r=0.05, sigma=0.20)


# ===========================
# Greeks Finite-Difference Validation
# ===========================


def test_delta_finite_difference_put(with_dividend_params):
    """Put delta matches a central difference in S."""
    S = with_dividend_params["S"]
    h = 0.01

    analytical = delta(**with_dividend_params, option_type="put")
    numerical = (
        black_scholes_put(**{**with_dividend_params, "S": S + h})
        - black_scholes_put(**{**with_dividend_params, "S": S - h})
    ) / (2 * h)

    assert abs(analytical - numerical) < 1e-4


def test_gamma_finite_difference(standard_params):
    """Gamma matches a second central difference in S."""
    S = standard_params["S"]
    h = 0.01

    analytical = gamma(**standard_params)
    numerical = (
        black_scholes_call(**{**standard_params, "S": S + h})
        - 2 * black_scholes_call(**standard_params)
        + black_scholes_call(**{**standard_params, "S": S - h})
    ) / (h * h)

    assert abs(analytical - numerical) < 1e-3


def test_vega_finite_difference(standard_params):
    """Vega (per unit σ) matches a central difference in σ."""
    sigma = standard_params["sigma"]
    h = 0.001

    analytical = vega(**standard_params)
    numerical = (
        black_scholes_call(**{**standard_params, "sigma": sigma + h})
        - black_scholes_call(**{**standard_params, "sigma": sigma - h})
    ) / (2 * h)

    assert abs(analytical - numerical) < 0.01


def test_theta_one_day_decay(standard_params):
    """Theta per day matches the one-day price change."""
    T = standard_params["T"]
    h = 1.0 / 365.0

    analytical = theta(**standard_params, option_type="call")
    numerical = black_scholes_call(**{**standard_params, "T": T - h}) - black_scholes_call(
        **standard_params
    )

    assert abs(analytical - numerical) < 0.01


def test_rho_signs(standard_params):
    """Call rho is positive, put rho negative."""
    assert rho(**standard_params, option_type="call") > 0.0
    assert rho(**standard_params, option_type="put") < 0.0


def test_calculate_greeks_consistency(standard_params):
    """calculate_greeks matches the individual functions."""
    greeks = calculate_greeks(**standard_params, option_type="put")

    assert abs(greeks.delta - delta(**standard_params, option_type="put")) < 1e-12
    assert abs(greeks.gamma - gamma(**standard_params)) < 1e-12
    assert abs(greeks.vega - vega(**standard_params)) < 1e-12
    assert abs(greeks.theta - theta(**standard_params, option_type="put")) < 1e-12
    assert abs(greeks.rho - rho(**standard_params, option_type="put")) < 1e-12
