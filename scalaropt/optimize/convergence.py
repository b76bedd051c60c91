"""Windowed convergence analysis independent of any specific algorithm."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Tuple

import numpy as np

from .metrics import ConvergenceMetrics, mean_improvement


@dataclass
class ConvergenceDetector:
    """
    Sliding-window judge of convergence, oscillation and convergence rate.

    The detector keeps the ``window_size`` most recent metrics (oldest
    evicted first). Every query is a pure function of that window.

    Args:
        window_size: Number of recent iterations analyzed.
        improvement_threshold: Mean pairwise relative improvement below which
            the objective is considered settled.
        gradient_threshold: Gradient norm every windowed iteration must stay
            below for convergence.

    Example:
        >>> detector = ConvergenceDetector(5, 1e-6, 1e-6)
        >>> detector.has_converged
        False
    """

    window_size: int
    improvement_threshold: float
    gradient_threshold: float
    _window: Deque[ConvergenceMetrics] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.window_size < 2:
            raise ValueError(f"window_size must be >= 2, got {self.window_size}")
        if self.improvement_threshold <= 0:
            raise ValueError(
                f"improvement_threshold must be > 0, got {self.improvement_threshold}"
            )
        if self.gradient_threshold <= 0:
            raise ValueError(f"gradient_threshold must be > 0, got {self.gradient_threshold}")
        self._window = deque(maxlen=self.window_size)

    def update(self, metrics: ConvergenceMetrics) -> None:
        self._window.append(metrics)

    def reset(self) -> None:
        self._window.clear()

    @property
    def window(self) -> Tuple[ConvergenceMetrics, ...]:
        return tuple(self._window)

    @property
    def is_full(self) -> bool:
        return len(self._window) == self.window_size

    @property
    def has_converged(self) -> bool:
        """Window full, every gradient norm small and mean improvement small."""
        if not self.is_full:
            return False
        if not all(m.gradient_norm < self.gradient_threshold for m in self._window):
            return False
        return mean_improvement(self.window) < self.improvement_threshold

    @property
    def is_oscillating(self) -> bool:
        """Window full and more than half of the interior triplets flip direction."""
        if not self.is_full or self.window_size < 3:
            return False
        deltas = np.diff([m.objective_value for m in self._window])
        flips = ((deltas[:-1] > 0) & (deltas[1:] < 0)) | ((deltas[:-1] < 0) & (deltas[1:] > 0))
        return 2 * int(np.count_nonzero(flips)) > flips.size

    @property
    def convergence_rate(self) -> float:
        """Mean pairwise improvement over the current window."""
        return mean_improvement(self.window)

    @property
    def status(self) -> str:
        if self.has_converged:
            return "Converged"
        if self.is_oscillating:
            return "Oscillating"
        return "In Progress"


__all__ = ["ConvergenceDetector"]
