"""
Numerical constants, algorithm bounds and tolerances.

This module is the single configuration surface of the toolkit. It defines
the admissible input ranges enforced by the bounds validator, the iteration
ceilings of every bounded iterative algorithm, and the convergence
tolerances used by the root finders and the boundary refinement.
"""

import math

# Machine constants
MACHINE_EPSILON = 2.220446049250313e-16  # IEEE 754 double precision epsilon
INV_SQRT_TWO_PI = 0.3989422804014327  # 1/√(2π)
INV_SQRT_TWO = 0.7071067811865476  # 1/√2

# Edge case detection thresholds (Black-Scholes helpers)
EPSILON_TIME = 1e-6  # ~0.1 seconds; below this, use intrinsic value
EPSILON_VOL = 1e-6  # below this, deterministic pricing

# Normal distribution bounds
MAX_STANDARD_DEVIATIONS = 8.0  # Beyond ±8σ, CDF is effectively 0 or 1
PDF_UNDERFLOW_CUTOFF = 37.5  # exp(-x²/2) underflows to denormals beyond this

# Algorithm bounds (enforced by diagnostics.bounds, never clamped silently)
MIN_VOLATILITY = 0.001  # 0.1% annualized
MAX_VOLATILITY = 5.0  # 500% annualized
MIN_TIME_TO_EXPIRY = 1.0 / 252.0  # One trading day
MAX_TIME_TO_EXPIRY = 30.0  # Years
MIN_POSITIVE_PRICE = 1e-10  # Smallest admissible spot, strike or premium
MAX_LOG_MONEYNESS = 3.0  # |ln(K/S)| ceiling, roughly K/S in [0.05, 20]

# Iteration ceilings
NEWTON_MAX_ITERATIONS = 50  # Newton-Raphson (implied volatility)
BISECTION_MAX_ITERATIONS = 100  # Bisection fallback
SUPER_HALLEY_MAX_ITERATIONS = 25  # Per QD+ time slice
REFINEMENT_MAX_ITERATIONS = 200  # FP-B / FP-B' fixed-point sweeps

# Convergence tolerances
IV_TOLERANCE = 1e-8  # Price accuracy for implied volatility
ROOT_FINDING_TOLERANCE = 1e-10  # Relative step size for boundary roots
MIN_VEGA_FOR_NEWTON = 1e-15  # Below this, Newton hands off to bisection
MIN_DERIVATIVE = 1e-14  # Below this, Super-Halley takes a bisection step
FIXED_POINT_TOLERANCE = 1e-9  # Max pointwise boundary change, relative to strike
CROSSING_TOLERANCE = 1e-6  # Boundary gap treated as a crossing, relative to strike

# Boundary grid and quadrature
DEFAULT_COLLOCATION_POINTS = 50  # Time slices on [0, T]
MIN_COLLOCATION_POINTS = 2
MAX_COLLOCATION_POINTS = 2000
DEFAULT_QUADRATURE_POINTS = 32  # Gauss-Legendre nodes per Kim integral
BRACKET_INITIAL_STEP = 0.005  # Relative step for the first bracket expansion
BRACKET_MAX_EXPANSIONS = 40  # Doublings before a bracket search gives up

# Sentinels
NO_CROSSING = 0.0  # crossing_time when the boundaries never meet
NO_EXERCISE_BOUNDARY = 0.0  # Put lower boundary when early exercise is never optimal
ABSENT_UPPER = math.inf  # Upper boundary that does not exist
ABSENT_LOWER = -math.inf  # Lower boundary that does not exist (calls)

# Reference values used by the test-suite
HEALY_BENCHMARK = {
    "K": 100.0,
    "r": -0.005,
    "q": -0.01,
    "sigma": 0.08,
    "T": 10.0,
    "upper": 69.62,
    "lower": 58.72,
}
CLASSIC_BENCHMARK = {
    "S": 36.0,
    "K": 40.0,
    "r": 0.06,
    "q": 0.02,
    "sigma": 0.20,
    "T": 1.0,
}
