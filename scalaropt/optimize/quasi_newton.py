"""Limited-memory BFGS on a scalar objective."""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass, replace
from functools import partial
from typing import Deque, Optional, Sequence

from ..diagnostics import assert_finite, assert_within_bounds, is_debug_enabled
from ..logging import get_logger
from .conjugate_gradient import feasibility_check, projected_gradient
from .constraints import Constraint
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


def two_loop_direction(
    gradient: float,
    s_history: Sequence[float],
    y_history: Sequence[float],
) -> float:
    """
    L-BFGS two-loop recursion for a scalar variable.

    Returns ``-H g`` where ``H`` is the inverse-Hessian approximation built
    from the stored ``(s, y)`` pairs (oldest first). With no pairs stored
    the steepest-descent direction ``-g`` is returned.
    """
    if not s_history:
        return -gradient
    q = gradient
    alphas = []
    rhos = [1.0 / max(abs(s * y), DENOMINATOR_FLOOR) for s, y in zip(s_history, y_history)]
    for s, y, rho in zip(reversed(s_history), reversed(y_history), reversed(rhos)):
        a = rho * s * q
        alphas.append(a)
        q -= a * y
    s_last, y_last = s_history[-1], y_history[-1]
    gamma = s_last * y_last / max(abs(y_last * y_last), DENOMINATOR_FLOOR)
    r = gamma * q
    for s, y, rho, a in zip(s_history, y_history, rhos, reversed(alphas)):
        b = rho * y * r
        r += s * (a - b)
    return -r


@dataclass(frozen=True)
class LBFGSOptimizer:
    """
    L-BFGS quasi-Newton method with an Armijo backtracking line search.

    Only the ``memory_size`` most recent curvature pairs are kept; older
    pairs are dropped first. Bounds and constraints are handled in the
    line search the same way as :class:`ConjugateGradientOptimizer`.

    Args:
        memory_size: Number of ``(s, y)`` pairs retained.
        tolerance: Convergence threshold on the (projected) derivative.
        max_iterations: Iteration cap used by :meth:`optimize`.
        step_size: Finite-difference step ``h``.
        progress_strategy: Optional reporting policy, copied per run.
        convergence_detector: Optional windowed detector, copied per run.
        history: Record per-iteration metrics in the result.
    """

    memory_size: int = 10
    tolerance: float = 1e-6
    max_iterations: int = 10_000
    step_size: float = DEFAULT_STEP
    progress_strategy: Optional[ProgressStrategy] = None
    convergence_detector: Optional[ConvergenceDetector] = None
    history: bool = False

    def __post_init__(self) -> None:
        if self.memory_size < 1:
            raise ValueError(f"memory_size must be >= 1, got {self.memory_size}")
        if self.tolerance <= 0:
            raise ValueError(f"tolerance must be > 0, got {self.tolerance}")
        if self.max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {self.max_iterations}")
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
        s_history: Deque[float] = deque(maxlen=self.memory_size)
        y_history: Deque[float] = deque(maxlen=self.memory_size)
        debug = is_debug_enabled()

        x = clamp(initial_guess, bounds)
        fx = fun(x)
        gradient = numerical_gradient(fun, x, self.step_size)
        if debug:
            assert_finite(fx, "initial objective")
        logger.info("L-BFGS (memory=%d) started at x=%.10g", self.memory_size, x)
        yield progress_event(0, x, fx, None, OptimizationPhase.INITIALIZATION)

        def finish(status, iteration, metrics=None, details=None):
            return terminal_event(
                "L-BFGS",
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
                logger.warning("L-BFGS cancelled at iteration %d", iteration)
                raise OptimizationCancelled(f"Cancelled before iteration {iteration}.")
            if debug:
                assert_finite(gradient, "gradient")
            if not (math.isfinite(fx) and math.isfinite(gradient)):
                logger.warning("Non-finite value at iteration %d (x=%r)", iteration, x)
                yield finish(Status.NUMERICAL_ERROR, iteration)
                return

            direction = two_loop_direction(gradient, s_history, y_history)
            if gradient * direction >= 0 and gradient != 0:
                direction = -gradient

            step_length, x_new, f_new, accepted = backtracking_armijo(
                fun, x, direction, gradient, fx, project=project, feasible=feasible
            )
            # No acceptable trial and no movement: a constraint blocks further descent.
            stalled = not accepted and check_convergence(x_new - x, tol)
            if not accepted:
                logger.debug("Line search made no sufficient decrease at iteration %d", iteration)
            g_new = numerical_gradient(fun, x_new, self.step_size)

            s = x_new - x
            if s != 0:
                s_history.append(s)
                y_history.append(g_new - gradient)

            metrics = ConvergenceMetrics(
                iteration, f_new, abs(g_new), abs(s), relative_change(f_new, fx)
            )
            history.append(metrics)
            details = {
                "search_direction": direction,
                "step_length": step_length,
                "memory": float(len(s_history)),
            }

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
                logger.debug("iteration %d: x=%.10g f=%.10g", iteration, x, fx)
                yield progress_event(iteration, x, fx, gradient, metrics=metrics, details=details)

        yield finish(Status.MAX_ITER, config.max_iterations)


__all__ = ["LBFGSOptimizer", "two_loop_direction"]
