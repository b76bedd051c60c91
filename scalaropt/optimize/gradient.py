"""Gradient descent with momentum and optional Nesterov look-ahead."""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Optional, Sequence

from ..diagnostics import assert_finite, assert_within_bounds, is_debug_enabled
from ..logging import get_logger
from .constraints import Constraint, all_satisfied
from .convergence import ConvergenceDetector
from .core import (
    DEFAULT_CONFIG,
    Bounds,
    Objective,
    OptimizationConfig,
    OptimizationPhase,
    OptimizationResult,
    Status,
    check_convergence,
    validate_bounds,
)
from .metrics import ConvergenceMetrics
from .progress import ProgressStrategy
from .streaming import (
    CancellationToken,
    CountedObjective,
    OptimizationCancelled,
    ProgressStream,
    ProgressThrottle,
    fresh,
    progress_event,
    relative_change,
    run_to_completion,
    terminal_event,
)
from .utils import DEFAULT_STEP, clamp, numerical_gradient

logger = get_logger(__name__)

# Stability bound on scalar momentum. Its derivation is not documented;
# treat it as an empirical limit rather than re-deriving it.
MAX_STABLE_MOMENTUM = 0.797734375

DIVERGENCE_RATIO = 10.0
MAX_CONSTRAINT_RETRIES = 10
CONSTRAINT_DAMPING_SCALE = 5000.0


def clamp_momentum(momentum: float) -> float:
    """Clamp momentum into ``[0, MAX_STABLE_MOMENTUM]`` without raising."""
    return max(0.0, min(float(momentum), MAX_STABLE_MOMENTUM))


@dataclass(frozen=True)
class GradientDescentOptimizer:
    """
    Momentum gradient descent on a scalar objective.

    Each iteration computes a central-difference derivative at the current
    position (or at the look-ahead ``x + momentum * velocity`` when
    ``nesterov`` is set), updates ``velocity = momentum * velocity -
    learning_rate * gradient`` and moves to ``x + velocity`` clamped into
    the bounds. Steps rejected by a constraint are damped and retried. A
    run stops when the derivative or the velocity falls below the tolerance,
    when the objective grows tenfold in one step (divergence), or after
    ``max_iterations``. The divergence test is relative, so a strongly
    underdamped run can trip it while oscillating around a minimum whose
    objective value is zero.

    Args:
        learning_rate: Step size multiplier applied to the derivative.
        tolerance: Convergence threshold on ``|gradient|`` and ``|velocity|``.
        max_iterations: Iteration cap used by :meth:`optimize`.
        momentum: Momentum coefficient, silently clamped into
            ``[0, MAX_STABLE_MOMENTUM]``.
        nesterov: Evaluate the derivative at the look-ahead position.
        step_size: Finite-difference step ``h``.
        progress_strategy: Optional reporting policy, copied per run.
        convergence_detector: Optional windowed detector, copied per run;
            stops the run once it reports convergence.
        history: Record per-iteration metrics in the result.

    Example:
        >>> opt = GradientDescentOptimizer(learning_rate=0.1, momentum=0.0)
        >>> res = opt.optimize(lambda x: (x - 3.0) ** 2, [], 0.0)
        >>> round(res.optimal_value, 3)
        3.0
    """

    learning_rate: float = 0.01
    tolerance: float = 1e-6
    max_iterations: int = 10_000
    momentum: float = MAX_STABLE_MOMENTUM
    nesterov: bool = False
    step_size: float = DEFAULT_STEP
    progress_strategy: Optional[ProgressStrategy] = None
    convergence_detector: Optional[ConvergenceDetector] = None
    history: bool = False

    def __post_init__(self) -> None:
        if self.learning_rate <= 0:
            raise ValueError(f"learning_rate must be > 0, got {self.learning_rate}")
        if self.tolerance <= 0:
            raise ValueError(f"tolerance must be > 0, got {self.tolerance}")
        if self.max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {self.max_iterations}")
        if self.step_size <= 0:
            raise ValueError(f"step_size must be > 0, got {self.step_size}")
        object.__setattr__(self, "momentum", clamp_momentum(self.momentum))

    def optimize(
        self,
        objective: Objective,
        constraints: Sequence[Constraint],
        initial_guess: float,
        bounds: Optional[Bounds] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> OptimizationResult:
        """Run to completion and return the terminal result."""
        return run_to_completion(
            self.optimize_with_progress(
                objective, constraints, initial_guess, bounds, cancel_token=cancel_token
            )
        )

    def optimize_with_progress(
        self,
        objective: Objective,
        constraints: Sequence[Constraint],
        initial_guess: float,
        bounds: Optional[Bounds] = None,
        config: Optional[OptimizationConfig] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ProgressStream:
        """Return a lazy stream of progress events ending with the result.

        When ``config`` is given its ``max_iterations`` and ``tolerance``
        replace the optimizer's own.
        """
        bounds = validate_bounds(bounds)
        if config is None:
            config = replace(
                DEFAULT_CONFIG, max_iterations=self.max_iterations, tolerance=self.tolerance
            )
        return self._iterate(
            objective, tuple(constraints), float(initial_guess), bounds, config, cancel_token
        )

    def _iterate(
        self,
        objective: Objective,
        constraints: tuple[Constraint, ...],
        initial_guess: float,
        bounds: Optional[Bounds],
        config: OptimizationConfig,
        cancel_token: Optional[CancellationToken],
    ) -> ProgressStream:
        fun = CountedObjective(objective)
        throttle = ProgressThrottle(config, fresh(self.progress_strategy))
        detector = fresh(self.convergence_detector)
        tol = config.tolerance
        history: list[ConvergenceMetrics] = []
        debug = is_debug_enabled()

        x = clamp(initial_guess, bounds)
        fx = fun(x)
        velocity = 0.0
        if debug:
            assert_finite(fx, "initial objective")
        logger.info(
            "Gradient descent started at x=%.10g (lr=%g, momentum=%g, nesterov=%s)",
            x,
            self.learning_rate,
            self.momentum,
            self.nesterov,
        )
        yield progress_event(
            0, x, fx, None, OptimizationPhase.INITIALIZATION, details={"velocity": velocity}
        )

        def finish(status, iteration, x, fx, gradient, metrics=None, details=None):
            return terminal_event(
                "Gradient descent",
                status,
                iteration,
                x,
                fx,
                gradient,
                fun,
                history if self.history else None,
                metrics,
                details,
            )

        for iteration in range(1, config.max_iterations + 1):
            if cancel_token is not None and cancel_token.cancelled:
                logger.warning("Gradient descent cancelled at iteration %d", iteration)
                raise OptimizationCancelled(f"Cancelled before iteration {iteration}.")

            point = x + self.momentum * velocity if self.nesterov else x
            gradient = numerical_gradient(fun, point, self.step_size)
            if debug:
                assert_finite(gradient, "gradient")
            if not (math.isfinite(fx) and math.isfinite(gradient)):
                logger.warning("Non-finite value at iteration %d (x=%r)", iteration, x)
                yield finish(Status.NUMERICAL_ERROR, iteration, x, fx, gradient)
                return

            if check_convergence(gradient, tol):
                metrics = ConvergenceMetrics(iteration, fx, abs(gradient), 0.0, 0.0)
                history.append(metrics)
                yield finish(
                    Status.CONVERGED,
                    iteration,
                    x,
                    fx,
                    gradient,
                    metrics,
                    {"velocity": velocity, "gradient_point": point},
                )
                return

            velocity = self.momentum * velocity - self.learning_rate * gradient
            x_new = clamp(x + velocity, bounds)
            if constraints and not all_satisfied(constraints, x_new):
                x_new = self._damp_step(fun, x, velocity, bounds, constraints, tol)
            if x_new != x + velocity:
                # Keep the velocity consistent with the step actually taken.
                velocity = x_new - x
            f_new = fun(x_new)

            metrics = ConvergenceMetrics(
                iteration, f_new, abs(gradient), abs(x_new - x), relative_change(f_new, fx)
            )
            history.append(metrics)
            details = {"velocity": velocity, "gradient_point": point}

            if not math.isfinite(f_new):
                logger.warning("Non-finite objective at x=%r", x_new)
                yield finish(Status.NUMERICAL_ERROR, iteration, x, fx, gradient, metrics, details)
                return
            if iteration > 1 and fx > 0 and f_new > DIVERGENCE_RATIO * fx:
                logger.warning(
                    "Objective jumped from %.6g to %.6g at iteration %d; stopping",
                    fx,
                    f_new,
                    iteration,
                )
                yield finish(Status.DIVERGED, iteration, x, fx, gradient, metrics, details)
                return

            x, fx = x_new, f_new
            if debug:
                assert_within_bounds(x, bounds)
            if detector is not None:
                detector.update(metrics)

            if check_convergence(velocity, tol) or (
                detector is not None and detector.has_converged
            ):
                yield finish(Status.CONVERGED, iteration, x, fx, gradient, metrics, details)
                return

            if throttle.observe(metrics):
                logger.debug("iteration %d: x=%.10g f=%.10g", iteration, x, fx)
                yield progress_event(iteration, x, fx, gradient, metrics=metrics, details=details)

        gradient = numerical_gradient(fun, x, self.step_size)
        yield finish(Status.MAX_ITER, config.max_iterations, x, fx, gradient)

    def _damp_step(
        self,
        fun: CountedObjective,
        x: float,
        velocity: float,
        bounds: Optional[Bounds],
        constraints: tuple[Constraint, ...],
        tolerance: float,
    ) -> float:
        """Shrink an infeasible step until a constraint-satisfying point is found.

        The first retry scales the step by ``tolerance * 5000``; each further
        retry halves that factor. If every retry is rejected the run stays at
        ``x`` when it is feasible; otherwise the candidate with the lowest
        objective is returned, feasible or not.
        """
        stay = all_satisfied(constraints, x)
        best_x = clamp(x + velocity, bounds)
        best_f = fun(best_x)
        scale = tolerance * CONSTRAINT_DAMPING_SCALE
        for _ in range(MAX_CONSTRAINT_RETRIES):
            candidate = clamp(x + scale * velocity, bounds)
            if all_satisfied(constraints, candidate):
                return candidate
            f_candidate = fun(candidate)
            if f_candidate < best_f:
                best_x, best_f = candidate, f_candidate
            scale /= 2.0
        logger.warning("Constraint damping exhausted at x=%.10g", x)
        return x if stay else best_x


__all__ = [
    "DIVERGENCE_RATIO",
    "GradientDescentOptimizer",
    "MAX_STABLE_MOMENTUM",
    "clamp_momentum",
]
