"""Finite-difference derivatives and small scalar helpers.

The estimators hold no state, so independent runs may call them
concurrently. Non-finite results are returned as-is; callers decide what
to do with them.
"""

from __future__ import annotations

from typing import Callable, Optional, Tuple

Objective = Callable[[float], float]

DEFAULT_STEP = 1e-4


def numerical_gradient(fun: Objective, x: float, h: float = DEFAULT_STEP) -> float:
    """Central-difference first derivative.

    Parameters
    ----------
    fun:
        Scalar objective.
    x:
        Point where the derivative is approximated.
    h:
        Perturbation size for finite differences.

    Returns
    -------
    float
        ``(f(x + h) - f(x - h)) / 2h``.
    """
    if h <= 0:
        raise ValueError("h must be positive")
    return (fun(x + h) - fun(x - h)) / (2.0 * h)


def second_derivative(fun: Objective, x: float, h: float = DEFAULT_STEP) -> float:
    """Second-order central difference ``(f(x+h) - 2f(x) + f(x-h)) / h**2``."""
    if h <= 0:
        raise ValueError("h must be positive")
    return (fun(x + h) - 2.0 * fun(x) + fun(x - h)) / (h**2)


def clamp(value: float, bounds: Optional[Tuple[float, float]]) -> float:
    """Clamp ``value`` into ``[lower, upper]``; identity when bounds is None."""
    if bounds is None:
        return value
    lower, upper = bounds
    return max(lower, min(upper, value))


__all__ = [
    "DEFAULT_STEP",
    "Objective",
    "clamp",
    "numerical_gradient",
    "second_derivative",
]
