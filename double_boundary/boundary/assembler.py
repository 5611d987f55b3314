"""
Assembly of the boundary solution.

Internally every solve works on a put exercise region [lower, upper]. This
module maps that region back to the caller's option and reporting
convention, computes the QD+ → refined improvements, and runs the sanity
checks behind BoundarySolution.is_valid.

Reporting convention:
    single-boundary put:   upper = +inf, lower = B
    single-boundary call:  upper = B,    lower = -inf
    double-boundary:       both finite, lower < upper until they cross
    put without early exercise reports lower = 0.0, the call mirror upper = +inf
"""

import math
from typing import Optional

import numpy as np

from double_boundary.boundary.grid import BoundaryPaths
from double_boundary.boundary.regime import Regime
from double_boundary.utils.constants import (
    ABSENT_LOWER,
    ABSENT_UPPER,
    NO_CROSSING,
    NO_EXERCISE_BOUNDARY,
)
from double_boundary.utils.types import (
    BoundarySolution,
    ContractParameters,
    ConvergenceStatus,
    OptionType,
)


def report_paths(
    paths: BoundaryPaths, regime: Regime, option_type: OptionType, K: float
) -> tuple[np.ndarray, np.ndarray]:
    """
    Translate put region edges into reported (upper, lower) paths.

    Calls use put-call symmetry: the call region is [K²/upper, K²/lower]
    of the rate-swapped put.
    """
    if regime is Regime.DOUBLE_BOUNDARY:
        if option_type == "put":
            return paths.upper.copy(), paths.lower.copy()
        return K * K / paths.lower, K * K / paths.upper

    n = len(paths.tau)
    if option_type == "put":
        return np.full(n, ABSENT_UPPER), paths.upper.copy()
    with np.errstate(divide="ignore"):
        call_upper = K * K / paths.upper
    return call_upper, np.full(n, ABSENT_LOWER)


def _improvement(refined: float, approximation: float) -> float:
    if refined == approximation:
        return 0.0
    return abs(refined - approximation)


def boundaries_are_valid(
    upper: np.ndarray,
    lower: np.ndarray,
    regime: Regime,
    option_type: OptionType,
    K: float,
    crossed: bool,
) -> bool:
    """
    Sanity checks on reported boundary paths.

    Checks:
    1. No NaN anywhere
    2. Infinities only in the documented absent slots
    3. Finite boundaries positive (the 0.0 no-exercise sentinel aside)
    4. Put boundaries at or below K, call boundaries at or above K
    5. lower < upper while both are finite, lower <= upper once crossed
    """
    if np.any(np.isnan(upper)) or np.any(np.isnan(lower)):
        return False

    if regime is Regime.DOUBLE_BOUNDARY:
        if not (np.all(np.isfinite(upper)) and np.all(np.isfinite(lower))):
            return False
        if np.any(lower <= 0.0):
            return False
        if option_type == "put" and np.any(upper > K * (1.0 + 1e-12)):
            return False
        if option_type == "call" and np.any(lower < K * (1.0 - 1e-12)):
            return False
        if crossed:
            return bool(np.all(lower <= upper))
        # node 0 holds the τ → 0 limits, which never touch
        return bool(np.all(lower < upper))

    if option_type == "put":
        if np.any(upper != ABSENT_UPPER) or not np.all(np.isfinite(lower)):
            return False
        boundary = lower
        exercisable = boundary != NO_EXERCISE_BOUNDARY
        return bool(np.all(boundary[exercisable] > 0.0) and np.all(boundary <= K * (1.0 + 1e-12)))

    if np.any(lower != ABSENT_LOWER) or np.any(np.isneginf(upper)):
        return False
    finite = upper[np.isfinite(upper)]
    return bool(np.all(finite >= K * (1.0 - 1e-12)))


def assemble_solution(
    params: ContractParameters,
    regime: Regime,
    seed: BoundaryPaths,
    refined: Optional[BoundaryPaths],
    crossing_time: float,
    method: str,
    status: ConvergenceStatus,
    iterations: int,
    include_paths: bool = True,
) -> BoundarySolution:
    """
    Combine QD+ and refined paths into a BoundarySolution.

    Args:
        params: Contract being solved
        regime: Single- or double-boundary regime
        seed: QD+ put region
        refined: Refined put region, or None when refinement did not run
        crossing_time: Time to maturity where the boundaries meet (0.0 if never)
        method: Pipeline tag
        status: ConvergenceStatus of the last stage that ran
        iterations: Iterations consumed by that stage
        include_paths: Attach the full paths and collocation grid

    Returns:
        BoundarySolution with headline values taken at τ = T
    """
    K = params.K
    qd_upper, qd_lower = report_paths(seed, regime, params.option_type, K)
    final = refined if refined is not None else seed
    upper, lower = report_paths(final, regime, params.option_type, K)

    is_refined = refined is not None
    upper_today, lower_today = float(upper[-1]), float(lower[-1])
    qd_upper_today, qd_lower_today = float(qd_upper[-1]), float(qd_lower[-1])

    crossed = crossing_time > NO_CROSSING
    is_valid = (
        boundaries_are_valid(upper, lower, regime, params.option_type, K, crossed)
        and (not crossed or 0.0 < crossing_time < params.T)
        and not math.isnan(crossing_time)
    )

    return BoundarySolution(
        upper_boundary=upper_today,
        lower_boundary=lower_today,
        qd_upper_boundary=qd_upper_today,
        qd_lower_boundary=qd_lower_today,
        upper_improvement=_improvement(upper_today, qd_upper_today) if is_refined else 0.0,
        lower_improvement=_improvement(lower_today, qd_lower_today) if is_refined else 0.0,
        crossing_time=crossing_time,
        is_refined=is_refined,
        is_valid=bool(is_valid),
        method=method,
        regime=regime.value,
        status=status,
        iterations=iterations,
        tau_grid=tuple(final.tau.tolist()) if include_paths else None,
        upper_boundary_path=tuple(upper.tolist()) if include_paths else None,
        lower_boundary_path=tuple(lower.tolist()) if include_paths else None,
    )
