"""
Double-boundary American option boundary solver.

This module wires the pipeline together:

    validate → classify regime → QD+ → (Kim refinement) → crossing → assemble

Calls are solved as the put with r and q swapped and mapped back through
put-call symmetry, so every numerical stage only ever sees a put.
"""

import logging

import numpy as np

from double_boundary.boundary.assembler import assemble_solution
from double_boundary.boundary.grid import BoundaryPaths, collocation_grid
from double_boundary.boundary.kim import collapse_after_crossing, refine_boundaries
from double_boundary.boundary.qd_plus import qd_plus_double_boundary, qd_plus_single_boundary
from double_boundary.boundary.regime import (
    Regime,
    classify_regime,
    exercise_ceiling,
    put_equivalent_rates,
)
from double_boundary.diagnostics.bounds import validate_contract
from double_boundary.utils.constants import NO_CROSSING
from double_boundary.utils.types import (
    STANDARD,
    BoundarySolution,
    ContractParameters,
    ConvergenceStatus,
    SolverSettings,
)

logger = logging.getLogger(__name__)

METHOD_NO_EXERCISE = "Single Boundary (no early exercise)"
METHOD_SINGLE_QD = "QD+ Single Boundary"
METHOD_SINGLE_REFINED = "QD+ + FP-B Single Boundary"
METHOD_DOUBLE_QD = "QD+ Approximation (Double Boundary)"
METHOD_DOUBLE_REFINED = "QD+ + FP-B' Kim Refinement"
METHOD_DOUBLE_REJECTED = "QD+ Approximation (Double Boundary, FP-B' rejected)"


def solve_boundaries(
    params: ContractParameters,
    settings: SolverSettings = STANDARD,
    include_paths: bool = True,
) -> BoundarySolution:
    """
    Compute the early-exercise boundaries of an American option.

    Args:
        params: Contract to solve; params.refine toggles the Kim refinement
        settings: Numerical settings (FAST, STANDARD or HIGH_PRECISION)
        include_paths: Attach the boundary paths and collocation grid

    Returns:
        BoundarySolution; see its docstring for the reporting convention

    Raises:
        BoundsViolationError: If any input lies outside its admissible range

    Examples:
        >>> params = ContractParameters(S=100, K=100, T=10, r=-0.005, q=-0.01, sigma=0.08)
        >>> solution = solve_boundaries(params)
        >>> solution.regime
        'double'
        >>> 68.5 < solution.upper_boundary < 70.5 and 57.5 < solution.lower_boundary < 59.5
        True
    """
    validate_contract(params)

    K = params.K
    regime = classify_regime(params.r, params.q, params.option_type)
    r, q = put_equivalent_rates(params.r, params.q, params.option_type)
    sigma = params.sigma
    tau_grid = collocation_grid(params.T, params.collocation_points)
    double = regime is Regime.DOUBLE_BOUNDARY
    ceiling = exercise_ceiling(K, r, q)

    if not double and ceiling <= 0.0:
        logger.debug("r=%g, q=%g: early exercise never optimal", params.r, params.q)
        n = len(tau_grid)
        no_exercise = BoundaryPaths(tau=tau_grid, upper=np.zeros(n), lower=np.zeros(n))
        return assemble_solution(
            params,
            regime,
            no_exercise,
            None,
            NO_CROSSING,
            METHOD_NO_EXERCISE,
            ConvergenceStatus.CONVERGED,
            0,
            include_paths,
        )

    if double:
        qd = qd_plus_double_boundary(K, r, q, sigma, tau_grid, settings.root_tolerance)
    else:
        qd = qd_plus_single_boundary(K, r, q, sigma, tau_grid, ceiling, settings.root_tolerance)

    seed = qd.value
    crossing_tolerance = settings.crossing_tolerance * K
    if double:
        upper, lower, _ = collapse_after_crossing(tau_grid, seed.upper, seed.lower, crossing_tolerance)
        seed = BoundaryPaths(tau=tau_grid, upper=upper, lower=lower)

    refined = None
    status, iterations = qd.status, qd.iterations
    if params.refine:
        refinement = refine_boundaries(K, r, q, sigma, seed, double, ceiling, settings)
        refined = refinement.value
        status, iterations = refinement.status, refinement.iterations
        if double:
            rejected = refinement.status is ConvergenceStatus.FALLBACK_USED
            method = METHOD_DOUBLE_REJECTED if rejected else METHOD_DOUBLE_REFINED
        else:
            method = METHOD_SINGLE_REFINED
    else:
        method = METHOD_DOUBLE_QD if double else METHOD_SINGLE_QD

    crossing_time = NO_CROSSING
    if double:
        final = refined if refined is not None else seed
        upper, lower, crossing_time = collapse_after_crossing(
            tau_grid, final.upper, final.lower, crossing_tolerance
        )
        final = BoundaryPaths(tau=tau_grid, upper=upper, lower=lower)
        if refined is not None:
            refined = final
        else:
            seed = final

    solution = assemble_solution(
        params,
        regime,
        seed,
        refined,
        crossing_time,
        method,
        status,
        iterations,
        include_paths,
    )
    logger.debug(
        "%s %s: upper=%.6g lower=%.6g crossing=%.6g valid=%s",
        params.option_type,
        method,
        solution.upper_boundary,
        solution.lower_boundary,
        solution.crossing_time,
        solution.is_valid,
    )
    return solution
