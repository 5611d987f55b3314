"""
Data types and structures for American option boundary solving.

This module defines the dataclasses and enums used throughout the toolkit
for representing contracts, solver settings, Greeks, bounded-iteration
results and the assembled exercise-boundary solution.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Generic, Literal, Optional, TypeVar

from double_boundary.utils.constants import (
    DEFAULT_COLLOCATION_POINTS,
    DEFAULT_QUADRATURE_POINTS,
    CROSSING_TOLERANCE,
    FIXED_POINT_TOLERANCE,
    REFINEMENT_MAX_ITERATIONS,
    ROOT_FINDING_TOLERANCE,
)

OptionType = Literal["call", "put"]

T = TypeVar("T")


class ConvergenceStatus(Enum):
    """Outcome of a bounded iterative algorithm."""

    UNKNOWN = 0
    CONVERGED = 1
    MAX_ITERATIONS_REACHED = 2
    DERIVATIVE_TOO_SMALL = 3
    BOUNDS_VIOLATION = 4
    NUMERICAL_INSTABILITY = 5
    FALLBACK_USED = 6


@dataclass(frozen=True)
class NumericalResult(Generic[T]):
    """
    Result of any bounded iterative algorithm.

    Attributes:
        value: Best available estimate (NaN only where documented)
        converged: Whether the tolerance was met
        iterations: Iterations consumed
        error: Final error estimate (NaN when unknown)
        status: ConvergenceStatus describing how the run ended
        method: Name of the algorithm that produced the value
        message: Additional information about convergence
    """
    value: T
    converged: bool
    iterations: int
    error: float = math.nan
    status: ConvergenceStatus = ConvergenceStatus.UNKNOWN
    method: str = ""
    message: str = ""

    @classmethod
    def success(
        cls,
        value: T,
        iterations: int,
        error: float,
        method: str = "",
        status: ConvergenceStatus = ConvergenceStatus.CONVERGED,
        message: str = "",
    ) -> "NumericalResult[T]":
        """Build a converged result."""
        return cls(value, True, iterations, error, status, method, message)

    @classmethod
    def failure(
        cls,
        fallback: T,
        iterations: int,
        status: ConvergenceStatus,
        method: str = "",
        message: str = "",
    ) -> "NumericalResult[T]":
        """Build a non-converged result carrying a fallback value."""
        return cls(fallback, False, iterations, math.nan, status, method, message)


@dataclass(frozen=True)
class ContractParameters:
    """
    Immutable description of an American option to solve boundaries for.

    Attributes:
        S: Current spot price of the underlying asset
        K: Strike price
        T: Time to expiration in years
        r: Risk-free interest rate (annualized, continuous, may be negative)
        q: Continuous dividend yield (annualized, may be negative)
        sigma: Volatility (annualized standard deviation)
        option_type: Either "call" or "put"
        collocation_points: Number of time slices on [0, T]
        refine: Run the Kim fixed-point refinement after QD+
    """
    S: float
    K: float
    T: float
    r: float
    q: float
    sigma: float
    option_type: OptionType = "put"
    collocation_points: int = DEFAULT_COLLOCATION_POINTS
    refine: bool = True

    def __post_init__(self) -> None:
        """Reject structurally malformed parameters; ranges are checked by the validator."""
        if self.option_type not in ("call", "put"):
            raise ValueError(f"Option type must be 'call' or 'put', got {self.option_type}")
        if isinstance(self.collocation_points, bool) or not isinstance(self.collocation_points, int):
            raise ValueError(
                f"collocation_points must be an integer, got {self.collocation_points!r}"
            )


@dataclass(frozen=True)
class SolverSettings:
    """
    Numerical settings for the boundary pipeline.

    Attributes:
        quadrature_points: Gauss-Legendre nodes for each Kim integral
        fixed_point_tolerance: Max pointwise boundary change per sweep, relative to strike
        max_iterations: Ceiling on FP-B / FP-B' sweeps
        root_tolerance: Relative step tolerance for the per-slice QD+ root
        crossing_tolerance: Boundary gap treated as a crossing, relative to strike
    """
    quadrature_points: int = DEFAULT_QUADRATURE_POINTS
    fixed_point_tolerance: float = FIXED_POINT_TOLERANCE
    max_iterations: int = REFINEMENT_MAX_ITERATIONS
    root_tolerance: float = ROOT_FINDING_TOLERANCE
    crossing_tolerance: float = CROSSING_TOLERANCE


FAST = SolverSettings(quadrature_points=16, fixed_point_tolerance=1e-7, max_iterations=100)
STANDARD = SolverSettings()
HIGH_PRECISION = SolverSettings(
    quadrature_points=64, fixed_point_tolerance=1e-11, root_tolerance=1e-12
)


@dataclass
class Greeks:
    """
    Container for option Greeks.

    Attributes:
        delta: Rate of change of option price with respect to spot price (∂V/∂S)
        gamma: Rate of change of delta with respect to spot price (∂²V/∂S²)
        vega: Rate of change of option price with respect to volatility (∂V/∂σ)
        theta: Rate of change of option price with respect to time (∂V/∂T), per day
        rho: Rate of change of option price with respect to interest rate (∂V/∂r)
    """
    delta: float
    gamma: float
    vega: float
    theta: float
    rho: float


@dataclass(frozen=True)
class BoundarySolution:
    """
    Assembled exercise boundaries for one contract.

    Paths are ordered by increasing time to maturity: index 0 is the
    τ → 0 limit, the last entry is the boundary today. Absent boundaries
    are ±inf (put upper in the single regime, call lower), and a put whose
    early exercise is never optimal reports a lower boundary of 0.0.

    Attributes:
        upper_boundary: Upper exercise boundary today
        lower_boundary: Lower exercise boundary today
        qd_upper_boundary: QD+ estimate before refinement
        qd_lower_boundary: QD+ estimate before refinement
        upper_improvement: |refined - QD+| for the upper boundary (0 if not refined)
        lower_improvement: |refined - QD+| for the lower boundary (0 if not refined)
        crossing_time: Time to maturity where the boundaries meet (0.0 if never)
        is_refined: Whether the Kim refinement ran
        is_valid: Conjunction of the boundary sanity checks
        method: Human-readable tag of the pipeline that produced the values
        regime: "single" or "double"
        status: ConvergenceStatus of the last stage that ran
        iterations: Iterations consumed by that stage
        tau_grid: Collocation times, when paths were requested
        upper_boundary_path: Upper boundary per collocation time
        lower_boundary_path: Lower boundary per collocation time
    """
    upper_boundary: float
    lower_boundary: float
    qd_upper_boundary: float
    qd_lower_boundary: float
    upper_improvement: float
    lower_improvement: float
    crossing_time: float
    is_refined: bool
    is_valid: bool
    method: str
    regime: str
    status: ConvergenceStatus = ConvergenceStatus.UNKNOWN
    iterations: int = 0
    tau_grid: Optional[tuple[float, ...]] = None
    upper_boundary_path: Optional[tuple[float, ...]] = None
    lower_boundary_path: Optional[tuple[float, ...]] = None
