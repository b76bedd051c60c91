"""Per-iteration convergence snapshot shared by every algorithm."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence


@dataclass(frozen=True)
class ConvergenceMetrics:
    """
    Immutable state of one optimizer iteration.

    Args:
        iteration: Iteration index, strictly increasing within a run.
        objective_value: Objective at the iterate.
        gradient_norm: Magnitude of the derivative estimate.
        step_size: Magnitude of the step taken.
        relative_change: ``|f_new - f_old| / max(|f_old|, 1e-10)``.
    """

    iteration: int
    objective_value: float
    gradient_norm: float
    step_size: float
    relative_change: float

    def improvement_from(self, previous: "ConvergenceMetrics") -> float:
        """Relative objective change since ``previous`` (0 when it was exactly 0)."""
        if previous.objective_value == 0:
            return 0.0
        return abs((previous.objective_value - self.objective_value) / previous.objective_value)

    def is_stagnant(self, threshold: float) -> bool:
        """True when both the gradient norm and the relative change are below threshold."""
        return self.gradient_norm < threshold and self.relative_change < threshold


def mean_improvement(window: Sequence[ConvergenceMetrics]) -> float:
    """Mean pairwise improvement over consecutive entries, 0 with fewer than two."""
    if len(window) < 2:
        return 0.0
    total = sum(cur.improvement_from(prev) for prev, cur in zip(window, window[1:]))
    return total / (len(window) - 1)


__all__ = ["ConvergenceMetrics", "mean_improvement"]
