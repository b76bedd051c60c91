"""Policies deciding when a progress snapshot is surfaced to the caller.

Three independent implementations of the :class:`ProgressStrategy`
protocol are provided:

- :class:`FixedIntervalStrategy` reports every ``interval`` iterations.
- :class:`ExponentialBackoffStrategy` reports densely early on and
  increasingly sparsely afterwards.
- :class:`ConvergenceBasedStrategy` reports more often while the objective
  improves quickly and less often once progress stalls.

Strategies are stateful and owned by a single run. Optimizers deep-copy the
instance they were given at the start of every run.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Protocol

from .metrics import ConvergenceMetrics, mean_improvement


class ProgressStrategy(Protocol):
    """Capability shared by all reporting policies."""

    def should_report(self, iteration: int) -> bool:
        """Return True if the given iteration should emit a progress event."""
        ...

    def update(self, metrics: ConvergenceMetrics) -> None:
        """Feed the metrics of the latest iteration."""
        ...


@dataclass
class FixedIntervalStrategy:
    """Report when ``iteration % interval == 0``. Metrics are ignored."""

    interval: int

    def __post_init__(self) -> None:
        if self.interval < 1:
            raise ValueError(f"interval must be >= 1, got {self.interval}")

    def should_report(self, iteration: int) -> bool:
        return iteration % self.interval == 0

    def update(self, metrics: ConvergenceMetrics) -> None:
        return None


@dataclass
class ExponentialBackoffStrategy:
    """
    Report immediately, then with geometrically growing gaps.

    With ``initial_interval=10`` and ``backoff_factor=2`` reports land on
    iterations 0, 10, 30, 70, 150, ... until the gap reaches
    ``max_interval``.
    """

    initial_interval: int
    max_interval: int
    backoff_factor: float = 2.0
    _current_interval: int = field(init=False, repr=False)
    _next_report: int = field(init=False, repr=False, default=0)

    def __post_init__(self) -> None:
        if self.initial_interval < 1:
            raise ValueError(f"initial_interval must be >= 1, got {self.initial_interval}")
        if self.max_interval < self.initial_interval:
            raise ValueError(
                f"max_interval ({self.max_interval}) must be >= initial_interval "
                f"({self.initial_interval})"
            )
        if self.backoff_factor < 1.0:
            raise ValueError(f"backoff_factor must be >= 1, got {self.backoff_factor}")
        self._current_interval = self.initial_interval

    @property
    def current_interval(self) -> int:
        return self._current_interval

    def should_report(self, iteration: int) -> bool:
        if iteration < self._next_report:
            return False
        self._next_report = iteration + self._current_interval
        grown = int(self._current_interval * self.backoff_factor)
        self._current_interval = min(grown, self.max_interval)
        return True

    def update(self, metrics: ConvergenceMetrics) -> None:
        return None


@dataclass
class ConvergenceBasedStrategy:
    """
    Adapt the reporting interval to the recent rate of improvement.

    After each update the mean pairwise improvement over the last
    ``metrics_window_size`` iterations is compared with
    ``convergence_threshold``: above it the interval shrinks by one toward
    ``min_interval``, otherwise it grows by one toward ``max_interval``.
    """

    min_interval: int
    max_interval: int
    convergence_threshold: float
    metrics_window_size: int = 5
    _current_interval: int = field(init=False, repr=False)
    _last_reported: int = field(init=False, repr=False)
    _window: Deque[ConvergenceMetrics] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.min_interval < 1:
            raise ValueError(f"min_interval must be >= 1, got {self.min_interval}")
        if self.max_interval < self.min_interval:
            raise ValueError(
                f"max_interval ({self.max_interval}) must be >= min_interval "
                f"({self.min_interval})"
            )
        if self.metrics_window_size < 2:
            raise ValueError(
                f"metrics_window_size must be >= 2, got {self.metrics_window_size}"
            )
        self._current_interval = self.min_interval
        self._last_reported = -self.min_interval
        self._window = deque(maxlen=self.metrics_window_size)

    @property
    def current_interval(self) -> int:
        return self._current_interval

    def should_report(self, iteration: int) -> bool:
        if iteration - self._last_reported >= self._current_interval:
            self._last_reported = iteration
            return True
        return False

    def update(self, metrics: ConvergenceMetrics) -> None:
        self._window.append(metrics)
        if len(self._window) < 2:
            return
        if mean_improvement(list(self._window)) > self.convergence_threshold:
            self._current_interval = max(self.min_interval, self._current_interval - 1)
        else:
            self._current_interval = min(self.max_interval, self._current_interval + 1)


__all__ = [
    "ConvergenceBasedStrategy",
    "ExponentialBackoffStrategy",
    "FixedIntervalStrategy",
    "ProgressStrategy",
]
