"""Nonlinear conjugate gradient on a scalar objective."""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from enum import Enum
from functools import partial
from typing import Callable, Optional, Sequence

from ..diagnostics import assert_finite, assert_within_bounds, is_debug_enabled
from ..logging import get_logger
from .constraints import Constraint, all_satisfied
from .convergence import ConvergenceDetector
from .core import (
    DEFAULT_CONFIG,
    DENOMINATOR_FLOOR,
    Bounds,
    Objective,
    OptimizationConfig,
    OptimizationPhase,
    OptimizationResult,
    Status,
    check_convergence,
    validate_bounds,
)
from .line_search import backtracking_armijo
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


class ConjugateGradientMethod(Enum):
    """Formula used for the conjugacy coefficient beta."""

    FLETCHER_REEVES = "fletcher_reeves"
    POLAK_RIBIERE = "polak_ribiere"
    HESTENES_STIEFEL = "hestenes_stiefel"
    DAI_YUAN = "dai_yuan"


def _floored(value: float) -> float:
    return max(abs(value), DENOMINATOR_FLOOR)


def compute_beta(
    method: ConjugateGradientMethod,
    gradient: float,
    previous_gradient: float,
    direction: float,
) -> float:
    """
    Conjugacy coefficient for the next search direction.

    ``gradient`` is the derivative at the new point, ``previous_gradient``
    the one at the previous point and ``direction`` the previous search
    direction. Denominators are replaced by ``max(|den|, 1e-10)``.
    Polak-Ribiere is clipped at zero (PR+).
    """
    y = gradient - previous_gradient
    if method is ConjugateGradientMethod.FLETCHER_REEVES:
        return gradient * gradient / _floored(previous_gradient * previous_gradient)
    if method is ConjugateGradientMethod.POLAK_RIBIERE:
        beta = gradient * y / _floored(previous_gradient * previous_gradient)
        return max(0.0, beta)
    if method is ConjugateGradientMethod.HESTENES_STIEFEL:
        return gradient * y / _floored(direction * y)
    if method is ConjugateGradientMethod.DAI_YUAN:
        return gradient * gradient / _floored(direction * y)
    raise ValueError(f"Unknown conjugate gradient method: {method!r}")


def feasibility_check(constraints: Sequence[Constraint]) -> Optional[Callable[[float], bool]]:
    """Line-search feasibility predicate, or None when there are no constraints."""
    if not constraints:
        return None
    return partial(all_satisfied, constraints)


def projected_gradient(x: float, gradient: float, bounds: Optional[Bounds]) -> float:
    """``clamp(x - g) - x``: zero at a bound the gradient pushes against."""
    if bounds is None:
        return gradient
    return clamp(x - gradient, bounds) - x


@dataclass(frozen=True)
class ConjugateGradientOptimizer:
    """
    Nonlinear conjugate gradient with an Armijo backtracking line search.

    The search direction is ``-g`` on the first iteration and on every
    restart, and ``-g + beta * d`` otherwise. A direction that is not a
    descent direction is replaced by ``-g``. Each trial point of the line
    search is clamped into the bounds and must satisfy every constraint.

    Args:
        method: Beta formula.
        tolerance: Convergence threshold on the (projected) derivative.
        max_iterations: Iteration cap used by :meth:`optimize`.
        restart_interval: Reset the direction to steepest descent on
            iterations ``1 + k, 1 + 2k, ...`` (``iteration % k == 1``). None
            disables restarts, and so does ``1`` since no iteration matches.
        step_size: Finite-difference step ``h``.
        progress_strategy: Optional reporting policy, copied per run.
        convergence_detector: Optional windowed detector, copied per run.
        history: Record per-iteration metrics in the result.
    """

    method: ConjugateGradientMethod = ConjugateGradientMethod.FLETCHER_REEVES
    tolerance: float = 1e-6
    max_iterations: int = 10_000
    restart_interval: Optional[int] = None
    step_size: float = DEFAULT_STEP
    progress_strategy: Optional[ProgressStrategy] = None
    convergence_detector: Optional[ConvergenceDetector] = None
    history: bool = False

    def __post_init__(self) -> None:
        if self.tolerance <= 0:
            raise ValueError(f"tolerance must be > 0, got {self.tolerance}")
        if self.max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {self.max_iterations}")
        if self.restart_interval is not None and self.restart_interval < 1:
            raise ValueError(f"restart_interval must be >= 1, got {self.restart_interval}")
        if self.step_size <= 0:
            raise ValueError(f"step_size must be > 0, got {self.step_size}")

    def optimize(
        self,
        objective: Objective,
        constraints: Sequence[Constraint],
        initial_guess: float,
        bounds: Optional[Bounds] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> OptimizationResult:
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
        bounds = validate_bounds(bounds)
        if config is None:
            config = replace(
                DEFAULT_CONFIG, max_iterations=self.max_iterations, tolerance=self.tolerance
            )
        return self._iterate(
            objective, tuple(constraints), float(initial_guess), bounds, config, cancel_token
        )

    def _restarts_at(self, iteration: int) -> bool:
        if self.restart_interval is None:
            return False
        return iteration % self.restart_interval == 1

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
        project = partial(clamp, bounds=bounds) if bounds is not None else None
        feasible = feasibility_check(constraints)
        tol = config.tolerance
        history: list[ConvergenceMetrics] = []
        debug = is_debug_enabled()

        x = clamp(initial_guess, bounds)
        fx = fun(x)
        gradient = numerical_gradient(fun, x, self.step_size)
        if debug:
            assert_finite(fx, "initial objective")
        logger.info(
            "Conjugate gradient (%s) started at x=%.10g", self.method.value, x
        )
        yield progress_event(0, x, fx, None, OptimizationPhase.INITIALIZATION)

        def finish(status, iteration, metrics=None, details=None):
            return terminal_event(
                "Conjugate gradient",
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

        previous_gradient: Optional[float] = None
        direction = 0.0
        for iteration in range(1, config.max_iterations + 1):
            if cancel_token is not None and cancel_token.cancelled:
                logger.warning("Conjugate gradient cancelled at iteration %d", iteration)
                raise OptimizationCancelled(f"Cancelled before iteration {iteration}.")
            if debug:
                assert_finite(gradient, "gradient")
            if not (math.isfinite(fx) and math.isfinite(gradient)):
                logger.warning("Non-finite value at iteration %d (x=%r)", iteration, x)
                yield finish(Status.NUMERICAL_ERROR, iteration)
                return

            restarted = False
            if previous_gradient is None or self._restarts_at(iteration):
                beta = 0.0
                direction = -gradient
                restarted = previous_gradient is not None
            else:
                beta = compute_beta(self.method, gradient, previous_gradient, direction)
                direction = -gradient + beta * direction
            if gradient * direction >= 0 and gradient != 0:
                beta = 0.0
                direction = -gradient
                restarted = True

            step_length, x_new, f_new, accepted = backtracking_armijo(
                fun, x, direction, gradient, fx, project=project, feasible=feasible
            )
            # No acceptable trial and no movement: a constraint blocks further descent.
            stalled = not accepted and check_convergence(x_new - x, tol)
            if not accepted:
                logger.debug("Line search made no sufficient decrease at iteration %d", iteration)
            g_new = numerical_gradient(fun, x_new, self.step_size)

            metrics = ConvergenceMetrics(
                iteration, f_new, abs(g_new), abs(x_new - x), relative_change(f_new, fx)
            )
            history.append(metrics)
            details = {
                "search_direction": direction,
                "beta": beta,
                "step_length": step_length,
                "restarted": float(restarted),
            }

            previous_gradient = gradient
            x, fx, gradient = x_new, f_new, g_new
            if debug:
                assert_within_bounds(x, bounds)
            if detector is not None:
                detector.update(metrics)

            if not (math.isfinite(fx) and math.isfinite(gradient)):
                logger.warning("Non-finite value at iteration %d (x=%r)", iteration, x)
                yield finish(Status.NUMERICAL_ERROR, iteration, metrics, details)
                return
            if (
                stalled
                or check_convergence(projected_gradient(x, gradient, bounds), tol)
                or (detector is not None and detector.has_converged)
            ):
                yield finish(Status.CONVERGED, iteration, metrics, details)
                return

            if throttle.observe(metrics):
                logger.debug("iteration %d: x=%.10g f=%.10g beta=%.6g", iteration, x, fx, beta)
                yield progress_event(iteration, x, fx, gradient, metrics=metrics, details=details)

        yield finish(Status.MAX_ITER, config.max_iterations)


__all__ = [
    "ConjugateGradientMethod",
    "ConjugateGradientOptimizer",
    "compute_beta",
    "feasibility_check",
    "projected_gradient",
]
