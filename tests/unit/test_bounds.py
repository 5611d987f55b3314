"""
Unit tests for input bounds validation and the shared result types.
"""

import math

import pytest

from double_boundary.diagnostics.bounds import (
    BoundsViolationError,
    validate_collocation_points,
    validate_contract,
    validate_moneyness,
    validate_positive_price,
    validate_time_to_expiry,
    validate_volatility,
)
from double_boundary.utils.constants import (
    MAX_TIME_TO_EXPIRY,
    MAX_VOLATILITY,
    MIN_TIME_TO_EXPIRY,
    MIN_VOLATILITY,
)
from double_boundary.utils.types import ContractParameters, ConvergenceStatus, NumericalResult


# ===========================
# Range Checks
# ===========================


@pytest.mark.parametrize("sigma", [MIN_VOLATILITY, 0.2, MAX_VOLATILITY])
def test_volatility_accepts_inclusive_range(sigma):
    """Both ends of the volatility range are admissible."""
    validate_volatility(sigma)


@pytest.mark.parametrize("sigma", [0.0, 0.0009, 5.01, math.nan, math.inf])
def test_volatility_rejects_out_of_range(sigma):
    """Out-of-range or NaN volatility raises with the offending value."""
    with pytest.raises(BoundsViolationError) as excinfo:
        validate_volatility(sigma)

    assert excinfo.value.parameter == "sigma"
    assert excinfo.value.lower == MIN_VOLATILITY
    assert excinfo.value.upper == MAX_VOLATILITY


@pytest.mark.parametrize("T", [MIN_TIME_TO_EXPIRY / 2, MAX_TIME_TO_EXPIRY + 1e-9, -1.0])
def test_time_to_expiry_rejects_out_of_range(T):
    """Expiry shorter than a trading day or longer than 30 years is rejected."""
    with pytest.raises(BoundsViolationError, match="'T'"):
        validate_time_to_expiry(T)


def test_positive_price_rejects_tiny_and_infinite():
    """Prices below 1e-10 or infinite are rejected."""
    validate_positive_price(1e-10)
    with pytest.raises(BoundsViolationError):
        validate_positive_price(1e-11)
    with pytest.raises(BoundsViolationError):
        validate_positive_price(math.inf)


def test_moneyness_limit():
    """|ln(K/S)| may not exceed 3."""
    validate_moneyness(100.0, 100.0 * math.exp(2.99))
    with pytest.raises(BoundsViolationError, match="log_moneyness"):
        validate_moneyness(100.0, 100.0 * math.exp(3.01))
    with pytest.raises(BoundsViolationError, match="log_moneyness"):
        validate_moneyness(100.0, 100.0 * math.exp(-3.01))


def test_collocation_points_range():
    """Collocation count must lie in [2, 2000]."""
    validate_collocation_points(2)
    with pytest.raises(BoundsViolationError):
        validate_collocation_points(1)


def test_error_message_names_parameter_value_and_range():
    """The message carries parameter name, value and bounds."""
    with pytest.raises(BoundsViolationError) as excinfo:
        validate_volatility(7.5)

    message = str(excinfo.value)
    assert "'sigma'" in message
    assert "7.5" in message
    assert "[0.001, 5.0]" in message


def test_bounds_violation_is_value_error():
    """Callers catching ValueError also catch bounds violations."""
    assert issubclass(BoundsViolationError, ValueError)


# ===========================
# Contract Validation
# ===========================


def test_validate_contract_accepts_negative_rates(healy_contract):
    """Negative r and q are admissible."""
    validate_contract(healy_contract)


@pytest.mark.parametrize(
    "field,value",
    [("S", 0.0), ("K", -1.0), ("T", 0.001), ("sigma", 6.0), ("r", math.nan), ("q", math.inf)],
)
def test_validate_contract_rejects(healy_contract, field, value):
    """Each field is checked; the first violation raises."""
    kwargs = {
        "S": healy_contract.S,
        "K": healy_contract.K,
        "T": healy_contract.T,
        "r": healy_contract.r,
        "q": healy_contract.q,
        "sigma": healy_contract.sigma,
    }
    kwargs[field] = value

    with pytest.raises(BoundsViolationError) as excinfo:
        validate_contract(ContractParameters(**kwargs))

    assert excinfo.value.parameter == field


def test_contract_parameters_rejects_unknown_option_type():
    """Structural errors surface at construction."""
    with pytest.raises(ValueError, match="Option type"):
        ContractParameters(S=100, K=100, T=1, r=0.0, q=0.0, sigma=0.2, option_type="binary")


def test_contract_parameters_rejects_fractional_collocation_points():
    """Collocation count must be an integer."""
    with pytest.raises(ValueError, match="collocation_points"):
        ContractParameters(S=100, K=100, T=1, r=0.0, q=0.0, sigma=0.2, collocation_points=10.5)


# ===========================
# NumericalResult
# ===========================


def test_numerical_result_factories():
    """success() and failure() fill the status fields consistently."""
    ok = NumericalResult.success(1.5, 4, 1e-12)
    assert ok.converged
    assert ok.status is ConvergenceStatus.CONVERGED
    assert ok.iterations == 4

    bad = NumericalResult.failure(2.0, 25, ConvergenceStatus.MAX_ITERATIONS_REACHED)
    assert not bad.converged
    assert bad.value == 2.0
    assert math.isnan(bad.error)
    assert bad.status is ConvergenceStatus.MAX_ITERATIONS_REACHED


def test_convergence_status_codes():
    """Status codes are stable integers."""
    assert ConvergenceStatus.UNKNOWN.value == 0
    assert ConvergenceStatus.CONVERGED.value == 1
    assert ConvergenceStatus.FALLBACK_USED.value == 6
