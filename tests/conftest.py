"""
Pytest configuration and shared fixtures.
"""

import pytest

from double_boundary.utils.constants import HEALY_BENCHMARK
from double_boundary.utils.types import ContractParameters


@pytest.fixture
def standard_params():
    """Standard at-the-money option parameters."""
    return {
        "S": 100.0,
        "K": 100.0,
        "T": 1.0,
        "r": 0.05,
        "sigma": 0.20,
        "q": 0.0,
    }


@pytest.fixture
def with_dividend_params():
    """Parameters with non-zero dividend yield."""
    return {
        "S": 100.0,
        "K": 100.0,
        "T": 1.0,
        "r": 0.05,
        "sigma": 0.20,
        "q": 0.02,
    }


@pytest.fixture
def healy_params():
    """Double-boundary put from Healy (2021): r = -0.5%, q = -1%, σ = 8%."""
    return {
        "S": 100.0,
        "K": HEALY_BENCHMARK["K"],
        "r": HEALY_BENCHMARK["r"],
        "q": HEALY_BENCHMARK["q"],
        "sigma": HEALY_BENCHMARK["sigma"],
    }


@pytest.fixture
def healy_contract(healy_params):
    """Healy put at its ten-year reference maturity."""
    return ContractParameters(T=HEALY_BENCHMARK["T"], option_type="put", **healy_params)


@pytest.fixture
def standard_put_contract():
    """Positive-rate put with a single boundary."""
    return ContractParameters(S=36.0, K=40.0, T=1.0, r=0.06, q=0.02, sigma=0.20)
