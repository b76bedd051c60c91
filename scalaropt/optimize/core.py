"""Core interfaces shared across the scalar optimization algorithms."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Mapping, Optional, Tuple

from .metrics import ConvergenceMetrics

Objective = Callable[[float], float]
Bounds = Tuple[float, float]

# Floor applied to the absolute value of near-zero denominators.
DENOMINATOR_FLOOR = 1e-10


class Status(Enum):
    """Reason an optimization run stopped."""

    CONVERGED = "converged"
    MAX_ITER = "max_iter"
    DIVERGED = "diverged"
    NUMERICAL_ERROR = "numerical_error"


class OptimizationPhase(Enum):
    """Linear phase tag attached to every progress event.

    ``PHASE_I``/``PHASE_II`` are reserved for two-phase solvers; the
    gradient-family optimizers only use initialization, optimization and
    finalization.
    """

    INITIALIZATION = "initialization"
    PHASE_I = "phase_i"
    PHASE_II = "phase_ii"
    OPTIMIZATION = "optimization"
    FINALIZATION = "finalization"


@dataclass(frozen=True)
class OptimizationResult:
    """
    Terminal outcome of one optimization run.

    Attributes:
        optimal_value: Argmin found by the run.
        objective_value: Objective evaluated at ``optimal_value``.
        iterations: Number of iterations actually performed.
        converged: Whether a convergence criterion fired.
        history: Per-iteration snapshots, empty unless the optimizer was
            built with ``history=True``.
        status: Why the run stopped.
        message: Human-readable description of ``status``.
        gradient: Finite-difference derivative at the last evaluated point.
        nfev: Number of objective evaluations spent by the run.
    """

    optimal_value: float
    objective_value: float
    iterations: int
    converged: bool
    history: Tuple[ConvergenceMetrics, ...] = ()
    status: Status = Status.MAX_ITER
    message: str = ""
    gradient: Optional[float] = None
    nfev: int = 0


@dataclass(frozen=True)
class OptimizationConfig:
    """
    Run limits and reporting cadence for a streaming optimization.

    Args:
        progress_update_interval: Seconds of wall-clock time after which a
            progress event is emitted even if the iteration criterion says no.
        max_iterations: Maximum number of iterations before termination.
        tolerance: Convergence threshold, interpreted by each algorithm as a
            bound on the derivative (and step) magnitude.
        report_every_n_iterations: Emit a progress event every N iterations
            when the optimizer has no progress strategy of its own.
    """

    progress_update_interval: float = 0.1
    max_iterations: int = 10_000
    tolerance: float = 1e-6
    report_every_n_iterations: int = 1

    def __post_init__(self) -> None:
        if self.progress_update_interval < 0:
            raise ValueError(
                f"progress_update_interval must be >= 0, got {self.progress_update_interval}"
            )
        if self.max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {self.max_iterations}")
        if self.tolerance <= 0:
            raise ValueError(f"tolerance must be > 0, got {self.tolerance}")
        if self.report_every_n_iterations < 1:
            raise ValueError(
                f"report_every_n_iterations must be >= 1, got {self.report_every_n_iterations}"
            )


DEFAULT_CONFIG = OptimizationConfig()


@dataclass(frozen=True)
class OptimizationProgress:
    """
    Snapshot emitted by a streaming optimization.

    Exactly one event per completed run has ``phase == FINALIZATION`` and a
    populated ``result``; it is always the last one.

    Attributes:
        iteration: Iteration index (0 for the initialization event).
        current_value: Position at this point of the run.
        objective_value: Objective at ``current_value``.
        gradient: Derivative estimate used this iteration, None before the
            first one is computed.
        has_converged: Mirrors ``result.converged`` on the terminal event.
        timestamp: ``time.time()`` when the event was created.
        phase: Initialization, optimization or finalization.
        metrics: Convergence metrics of the iteration, if any.
        result: The run's result, only on the terminal event.
        details: Algorithm-specific payload (velocity, beta, ...).
    """

    iteration: int
    current_value: float
    objective_value: float
    gradient: Optional[float]
    has_converged: bool
    timestamp: float
    phase: OptimizationPhase
    metrics: Optional[ConvergenceMetrics] = None
    result: Optional[OptimizationResult] = None
    details: Mapping[str, float] = field(default_factory=dict)

    @property
    def is_final(self) -> bool:
        """True for the terminal event of a run."""
        return self.result is not None


def check_convergence(value: float, tol: float) -> bool:
    """Return True if ``|value|`` is strictly below the tolerance."""
    return abs(value) < tol


def validate_bounds(bounds: Optional[Bounds]) -> Optional[Bounds]:
    """Normalize a ``(lower, upper)`` pair, rejecting inverted or NaN bounds."""
    if bounds is None:
        return None
    lower, upper = (float(b) for b in bounds)
    if math.isnan(lower) or math.isnan(upper):
        raise ValueError("bounds must not contain NaN")
    if lower > upper:
        raise ValueError(f"lower bound {lower} exceeds upper bound {upper}")
    return lower, upper


__all__ = [
    "Bounds",
    "DEFAULT_CONFIG",
    "DENOMINATOR_FLOOR",
    "Objective",
    "OptimizationConfig",
    "OptimizationPhase",
    "OptimizationProgress",
    "OptimizationResult",
    "Status",
    "check_convergence",
    "validate_bounds",
]
