"""
Super-Halley root finding with a bisection safeguard.

Super-Halley is a third-order method: near a simple root each step roughly
triples the number of correct digits, so a QD+ time slice typically
converges in three or four evaluations. Every iterate is kept inside a
sign-change bracket; a step that would leave the bracket, or a derivative
too small to divide by, is replaced by a bisection step.

References:
    Gutiérrez, J. M., & Hernández, M. A. (2001). An acceleration of
    Newton's method: Super-Halley method. Applied Mathematics and
    Computation, 117(2-3), 223-239.
"""

import math
from typing import Callable, Optional

from double_boundary.utils.constants import (
    BRACKET_INITIAL_STEP,
    BRACKET_MAX_EXPANSIONS,
    MIN_DERIVATIVE,
    ROOT_FINDING_TOLERANCE,
    SUPER_HALLEY_MAX_ITERATIONS,
)
from double_boundary.utils.types import ConvergenceStatus, NumericalResult

METHOD = "super-halley"

# Returns (f, f', f'') at x
DerivativeFunc = Callable[[float], tuple[float, float, float]]


def find_bracket(
    func: Callable[[float], float],
    guess: float,
    lower: float,
    upper: float,
    initial_step: float = BRACKET_INITIAL_STEP,
    max_expansions: int = BRACKET_MAX_EXPANSIONS,
) -> Optional[tuple[float, float]]:
    """
    Locate a sign change of func near guess, without leaving [lower, upper].

    The search walks outward from the guess in geometrically growing steps
    and returns the first sub-interval that brackets a root, so the bracket
    found is the one closest to the guess. This is what lets a boundary be
    continued from one time slice to the next.

    Args:
        func: Function to bracket
        guess: Starting point, clamped into (lower, upper)
        lower: Hard left limit of the search
        upper: Hard right limit of the search
        initial_step: First step, relative to max(|guess|, 1)
        max_expansions: Number of step doublings before giving up

    Returns:
        (a, b) with func(a)·func(b) <= 0, or None if no sign change was found
    """
    if not lower < upper:
        return None

    x = min(max(guess, lower), upper)
    f_x = func(x)
    if f_x == 0.0:
        return x, x

    scale = max(abs(x), 1.0)
    left, f_left, search_left = x, f_x, x > lower
    right, f_right, search_right = x, f_x, x < upper

    for expansion in range(max_expansions):
        if not (search_left or search_right):
            break
        step = initial_step * scale * 2.0 ** expansion

        if search_left:
            candidate = max(x - step, lower)
            f_candidate = func(candidate)
            if not math.isfinite(f_candidate):
                search_left = False
            elif f_candidate * f_left <= 0.0:
                return candidate, left
            else:
                left, f_left = candidate, f_candidate
                search_left = candidate > lower

        if search_right:
            candidate = min(x + step, upper)
            f_candidate = func(candidate)
            if not math.isfinite(f_candidate):
                search_right = False
            elif f_candidate * f_right <= 0.0:
                return right, candidate
            else:
                right, f_right = candidate, f_candidate
                search_right = candidate < upper

    return None


def super_halley(
    func: DerivativeFunc,
    x0: float,
    lower: float,
    upper: float,
    tolerance: float = ROOT_FINDING_TOLERANCE,
    max_iterations: int = SUPER_HALLEY_MAX_ITERATIONS,
) -> NumericalResult[float]:
    """
    Find the root of func inside the bracket [lower, upper].

    The Super-Halley update is:
        L = f·f'' / f'²
        x_{n+1} = x_n - (1 + L / (2(1 - L))) · f / f'

    Args:
        func: Callable returning (f, f', f'') at x
        x0: Starting point, clamped into the bracket
        lower: Left end of a sign-change bracket
        upper: Right end of a sign-change bracket
        tolerance: Relative step size that counts as converged
        max_iterations: Maximum number of iterations

    Returns:
        NumericalResult with status:
            - CONVERGED after pure Super-Halley steps
            - FALLBACK_USED if any bisection step was taken
            - DERIVATIVE_TOO_SMALL if a bisection step was forced by f' ≈ 0
            - MAX_ITERATIONS_REACHED with the last iterate otherwise
            - NUMERICAL_INSTABILITY and x0 if [lower, upper] is not a bracket
    """
    f_lower = func(lower)[0]
    f_upper = func(upper)[0]

    if f_lower == 0.0:
        return NumericalResult.success(lower, 0, 0.0, method=METHOD)
    if f_upper == 0.0:
        return NumericalResult.success(upper, 0, 0.0, method=METHOD)
    if not f_lower * f_upper < 0.0:
        return NumericalResult.failure(
            x0,
            0,
            ConvergenceStatus.NUMERICAL_INSTABILITY,
            method=METHOD,
            message=f"[{lower:.6g}, {upper:.6g}] does not bracket a root",
        )

    a, b = lower, upper
    x = min(max(x0, a), b)
    status = ConvergenceStatus.CONVERGED

    for iterations in range(1, max_iterations + 1):
        f, f_prime, f_second = func(x)

        if f == 0.0:
            return NumericalResult.success(x, iterations, 0.0, method=METHOD, status=status)

        # Keep the sign change inside [a, b]
        if f * f_lower > 0.0:
            a, f_lower = x, f
        else:
            b = x

        if abs(f_prime) < MIN_DERIVATIVE or not math.isfinite(f_prime):
            x_new = 0.5 * (a + b)
            status = ConvergenceStatus.DERIVATIVE_TOO_SMALL
        else:
            newton_step = f / f_prime
            curvature = f * f_second / (f_prime * f_prime)
            if math.isfinite(curvature) and abs(1.0 - curvature) > MIN_DERIVATIVE:
                step = (1.0 + 0.5 * curvature / (1.0 - curvature)) * newton_step
            else:
                step = newton_step
            x_new = x - step
            if not (a < x_new < b) or not math.isfinite(x_new):
                x_new = 0.5 * (a + b)
                if status is ConvergenceStatus.CONVERGED:
                    status = ConvergenceStatus.FALLBACK_USED

        change = abs(x_new - x)
        x = x_new
        if change <= tolerance * max(abs(x), 1.0) or (b - a) <= tolerance * max(abs(x), 1.0):
            return NumericalResult.success(x, iterations, change, method=METHOD, status=status)

    return NumericalResult(
        value=x,
        converged=False,
        iterations=max_iterations,
        error=b - a,
        status=ConvergenceStatus.MAX_ITERATIONS_REACHED,
        method=METHOD,
        message=f"Max iterations ({max_iterations}) reached, bracket width {b - a:.3g}",
    )
