"""Scalar backtracking line search with the Armijo sufficient-decrease test."""

from __future__ import annotations

from typing import Callable, Optional

from ..logging import get_logger
from .core import Objective

logger = get_logger(__name__)


def backtracking_armijo(
    f: Objective,
    x: float,
    p: float,
    grad_fx: float,
    fx: Optional[float] = None,
    alpha0: float = 1.0,
    rho: float = 0.5,
    c: float = 1e-4,
    max_iter: int = 20,
    project: Optional[Callable[[float], float]] = None,
    feasible: Optional[Callable[[float], bool]] = None,
) -> tuple[float, float, float, bool]:
    """Classic Armijo backtracking along direction ``p``.

    Starting from ``alpha0`` the step is multiplied by ``rho`` until
    ``f(x + alpha p) <= f(x) + c * alpha * grad_fx * p``, for at most
    ``max_iter`` trials. When ``project`` is given the trial point is
    projected first and the test uses the realized step instead of
    ``alpha p``; trial points rejected by ``feasible`` count as failures.

    Returns
    -------
    tuple
        ``(alpha, x_new, f_new, accepted)``. When no trial passes, the last
        feasible trial is returned with ``accepted=False`` (or ``x`` itself if
        none was feasible).
    """
    if not (0 < c < 1):
        raise ValueError("Armijo constant c must lie in (0, 1)")
    if not (0 < rho < 1):
        raise ValueError("rho must lie in (0, 1)")
    if max_iter < 1:
        raise ValueError("max_iter must be >= 1")
    if fx is None:
        fx = f(x)
    alpha = float(alpha0)
    x_new, f_new = x, fx
    for _ in range(max_iter):
        candidate = x + alpha * p
        if project is not None:
            candidate = project(candidate)
        if feasible is None or feasible(candidate):
            f_candidate = f(candidate)
            x_new, f_new = candidate, f_candidate
            step = alpha * p if project is None else candidate - x
            if f_candidate <= fx + c * grad_fx * step:
                return alpha, candidate, f_candidate, True
        alpha *= rho
    logger.debug("Armijo backtracking exhausted after %d trials at x=%.10g", max_iter, x)
    return alpha / rho, x_new, f_new, False


__all__ = ["backtracking_armijo"]
