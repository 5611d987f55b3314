"""
Exercise-regime classification.

Whether an American option has one exercise boundary, two, or none is
decided by the signs of r and q alone. For a put (Andersen & Lake 2021,
Table 2), with ceiling x_max = lim_{τ→0} B(τ):

    r > 0, q > 0         single    x_max = K·min(1, r/q)
    r > 0, q <= 0        single    x_max = K
    r = 0, q < 0         single    x_max = K
    q < r < 0            double    upper → K, lower → K·r/q
    anything else        no early exercise (x_max = 0)

Calls follow by put-call symmetry: a call with (r, q) has the boundaries
K²/B of a put with (q, r), so the call table is the put table with the
rates swapped.
"""

from enum import Enum

from double_boundary.utils.types import OptionType


class Regime(Enum):
    SINGLE_BOUNDARY = "single"
    DOUBLE_BOUNDARY = "double"


def put_equivalent_rates(r: float, q: float, option_type: OptionType) -> tuple[float, float]:
    """
    Rates of the put whose boundaries map onto this option's boundaries.

    Returns:
        (r, q) for a put, (q, r) for a call
    """
    if option_type == "call":
        return q, r
    return r, q


def is_double_boundary(r: float, q: float) -> bool:
    """Put with q < r < 0: the exercise region is a band [B_l, B_u]."""
    return q < r < 0.0


def exercise_ceiling(K: float, r: float, q: float) -> float:
    """
    τ → 0 limit of the put exercise boundary (the upper one when there are two).

    Args:
        K: Strike price
        r: Risk-free rate of the put
        q: Dividend yield of the put

    Returns:
        x_max in [0, K]; 0.0 means early exercise is never optimal
    """
    if r > 0.0:
        if q > 0.0:
            return K * min(1.0, r / q)
        return K
    if r == 0.0:
        return K if q < 0.0 else 0.0
    if q < r:
        return K
    return 0.0


def classify_regime(r: float, q: float, option_type: OptionType) -> Regime:
    """
    Classify the contract into the single- or double-boundary regime.

    Degenerate sign patterns (r = q, r = 0) land in the single regime;
    exercise_ceiling then tells whether that single boundary exists.

    Examples:
        >>> classify_regime(-0.005, -0.01, "put")
        <Regime.DOUBLE_BOUNDARY: 'double'>
        >>> classify_regime(0.05, 0.02, "put")
        <Regime.SINGLE_BOUNDARY: 'single'>
        >>> classify_regime(-0.01, -0.005, "call")
        <Regime.DOUBLE_BOUNDARY: 'double'>
    """
    put_r, put_q = put_equivalent_rates(r, q, option_type)
    if is_double_boundary(put_r, put_q):
        return Regime.DOUBLE_BOUNDARY
    return Regime.SINGLE_BOUNDARY
