"""Invariant assertions used by the optimizers when debug mode is on."""

from __future__ import annotations

import math
from typing import Optional, Sequence, Tuple


def assert_finite(value: float, name: str = "value") -> None:
    """
    Assert that a scalar is finite.

    Parameters
    ----------
    value:
        Scalar to check.
    name:
        Label used in the error message.

    Raises
    ------
    ValueError
        If value is NaN or infinite.
    """
    if not math.isfinite(value):
        raise ValueError(f"{name} must be finite, got {value!r}.")


def assert_within_bounds(
    value: float,
    bounds: Optional[Tuple[float, float]],
    atol: float = 0.0,
) -> None:
    """
    Assert that a position lies inside ``[lower, upper]``.

    Parameters
    ----------
    value:
        Position to check.
    bounds:
        ``(lower, upper)`` pair, or None for an unbounded problem.
    atol:
        Slack allowed on either side.

    Raises
    ------
    ValueError
        If value falls outside the bounds.
    """
    if bounds is None:
        return
    lower, upper = bounds
    if value < lower - atol or value > upper + atol:
        raise ValueError(
            f"Position {value!r} lies outside bounds [{lower!r}, {upper!r}]."
        )


def assert_strictly_increasing(iterations: Sequence[int]) -> None:
    """
    Assert that a sequence of iteration indices is strictly increasing.

    Raises
    ------
    ValueError
        If two consecutive indices are not strictly increasing.
    """
    for prev, cur in zip(iterations, iterations[1:]):
        if cur <= prev:
            raise ValueError(
                f"Iteration indices must be strictly increasing, got {prev} then {cur}."
            )


__all__ = ["assert_finite", "assert_strictly_increasing", "assert_within_bounds"]
