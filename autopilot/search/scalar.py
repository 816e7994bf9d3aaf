"""Ternary search over a bounded scalar interval.

The function being searched must be unimodal on the bracket. That cannot
be checked at runtime: on a multimodal or discontinuous function the
search still terminates (the bracket shrinks to 2/3 of its width every
iteration) but may settle on the wrong point.

Example:
    >>> from autopilot.search import ternary_minimize
    >>> ternary_minimize(lambda x: (x - 7.0) ** 2, 0.0, 20.0, 0.01)
    7.00...
"""

import math
from collections.abc import Callable


def ternary_minimize(
    f: Callable[[float], float],
    left: float,
    right: float,
    tolerance: float = 1.0,
) -> float:
    """Locate the minimum of a unimodal function on ``[left, right]``.

    Args:
        f: Function to minimize, assumed unimodal on the bracket
        left: Lower bound
        right: Upper bound
        tolerance: Bracket width at which the search stops

    Returns:
        Midpoint of the final bracket

    Raises:
        ValueError: If the tolerance is not positive or the bounds are
            reversed or not finite
    """
    if not tolerance > 0.0:
        raise ValueError(f"tolerance must be positive, got {tolerance}")
    if not (math.isfinite(left) and math.isfinite(right)):
        raise ValueError(f"Bounds must be finite, got [{left}, {right}]")
    if left > right:
        raise ValueError(f"Reversed bounds: [{left}, {right}]")

    while right - left >= tolerance:
        third = (right - left) / 3.0
        left_third = left + third
        right_third = right - third
        if left_third == left or right_third == right:
            # Float resolution reached before the tolerance
            break

        if f(left_third) < f(right_third):
            right = right_third
        else:
            left = left_third

    return (left + right) / 2.0


def ternary_maximize(
    f: Callable[[float], float],
    left: float,
    right: float,
    tolerance: float = 1.0,
) -> float:
    """Locate the maximum of a unimodal function on ``[left, right]``."""
    return ternary_minimize(lambda x: -f(x), left, right, tolerance)
