"""Streaming contract binding the algorithms to their callers.

Every optimizer exposes two entry points:

- ``optimize_with_progress(...)`` returns a generator of
  :class:`~scalaropt.optimize.core.OptimizationProgress` events. The
  consumer controls pacing by how eagerly it pulls; nothing is computed
  ahead of the consumer.
- ``optimize(...)`` drains that generator with :func:`run_to_completion`
  and returns the terminal :class:`~scalaropt.optimize.core.OptimizationResult`.

A stream opens with one INITIALIZATION event, emits OPTIMIZATION events as
its throttle allows and ends with exactly one FINALIZATION event carrying
the result. Cancellation is observed once per iteration boundary and
raises :class:`OptimizationCancelled` instead of producing a result.

Example
-------
>>> from scalaropt.optimize import GradientDescentOptimizer, CancellationToken
>>> token = CancellationToken()
>>> stream = GradientDescentOptimizer(learning_rate=0.1).optimize_with_progress(
...     lambda x: (x - 3.0) ** 2, [], 0.0, cancel_token=token
... )
>>> first = next(stream)
>>> first.phase.value
'initialization'
"""

from __future__ import annotations

import asyncio
import copy
import threading
import time
from typing import (
    AsyncIterator,
    Callable,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    TypeVar,
)

from ..diagnostics import assert_strictly_increasing, is_debug_enabled
from ..logging import get_logger
from .constraints import Constraint
from .core import (
    Bounds,
    Objective,
    OptimizationConfig,
    OptimizationPhase,
    OptimizationProgress,
    OptimizationResult,
    Status,
)
from .metrics import ConvergenceMetrics
from .progress import ProgressStrategy

logger = get_logger(__name__)

ProgressStream = Iterator[OptimizationProgress]

T = TypeVar("T")

_MESSAGES = {
    Status.CONVERGED: "Convergence criterion satisfied.",
    Status.MAX_ITER: "Maximum iterations reached.",
    Status.DIVERGED: "Objective grew tenfold in one step; stopped early.",
    Status.NUMERICAL_ERROR: "Non-finite objective or derivative encountered.",
}


class OptimizationCancelled(Exception):
    """Raised when a run is cancelled before it produced a result."""


class CancellationToken:
    """Thread-safe cancellation flag polled by a run at iteration boundaries."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OptimizationCancelled("Optimization was cancelled.")


class AsyncOptimizer(Protocol):
    """Two-entry-point contract shared by the gradient-family optimizers."""

    def optimize_with_progress(
        self,
        objective: Objective,
        constraints: Sequence[Constraint],
        initial_guess: float,
        bounds: Optional[Bounds] = None,
        config: Optional[OptimizationConfig] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ProgressStream:
        ...

    def optimize(
        self,
        objective: Objective,
        constraints: Sequence[Constraint],
        initial_guess: float,
        bounds: Optional[Bounds] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> OptimizationResult:
        ...


class CountedObjective:
    """Wraps an objective and counts evaluations for a single run."""

    def __init__(self, fun: Objective) -> None:
        self._fun = fun
        self.nfev = 0

    def __call__(self, x: float) -> float:
        self.nfev += 1
        return float(self._fun(x))


def fresh(prototype: Optional[T]) -> Optional[T]:
    """Return a private deep copy of a stateful prototype (or None)."""
    return copy.deepcopy(prototype) if prototype is not None else None


class ProgressThrottle:
    """
    Per-run decision of whether an iteration's snapshot is emitted.

    An event goes out when the iteration criterion fires (the run's progress
    strategy, or ``report_every_n_iterations`` without one) or when
    ``progress_update_interval`` seconds have passed since the last event.
    """

    def __init__(
        self,
        config: OptimizationConfig,
        strategy: Optional[ProgressStrategy] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config
        self.strategy = strategy
        self._clock = clock
        self._last_emit = clock()

    def observe(self, metrics: ConvergenceMetrics) -> bool:
        if self.strategy is not None:
            self.strategy.update(metrics)
            by_iteration = self.strategy.should_report(metrics.iteration)
        else:
            by_iteration = metrics.iteration % self.config.report_every_n_iterations == 0
        now = self._clock()
        by_time = now - self._last_emit >= self.config.progress_update_interval
        if by_iteration or by_time:
            self._last_emit = now
            return True
        return False


def relative_change(new: float, old: float) -> float:
    return abs((new - old) / max(abs(old), 1e-10))


def progress_event(
    iteration: int,
    x: float,
    fx: float,
    gradient: Optional[float],
    phase: OptimizationPhase = OptimizationPhase.OPTIMIZATION,
    metrics: Optional[ConvergenceMetrics] = None,
    details: Optional[Mapping[str, float]] = None,
) -> OptimizationProgress:
    return OptimizationProgress(
        iteration=iteration,
        current_value=x,
        objective_value=fx,
        gradient=gradient,
        has_converged=False,
        timestamp=time.time(),
        phase=phase,
        metrics=metrics,
        details=dict(details or {}),
    )


def terminal_event(
    algorithm: str,
    status: Status,
    iteration: int,
    x: float,
    fx: float,
    gradient: Optional[float],
    objective: CountedObjective,
    history: Optional[List[ConvergenceMetrics]] = None,
    metrics: Optional[ConvergenceMetrics] = None,
    details: Optional[Mapping[str, float]] = None,
) -> OptimizationProgress:
    """Build the single FINALIZATION event of a run, carrying its result."""
    snapshots = tuple(history or ())
    if is_debug_enabled():
        assert_strictly_increasing([m.iteration for m in snapshots])
    converged = status is Status.CONVERGED
    result = OptimizationResult(
        optimal_value=x,
        objective_value=fx,
        iterations=iteration,
        converged=converged,
        history=snapshots,
        status=status,
        message=_MESSAGES[status],
        gradient=gradient,
        nfev=objective.nfev,
    )
    logger.info(
        "%s stopped after %d iterations: %s (x=%.10g, f=%.10g)",
        algorithm,
        iteration,
        status.value,
        x,
        fx,
    )
    return OptimizationProgress(
        iteration=iteration,
        current_value=x,
        objective_value=fx,
        gradient=gradient,
        has_converged=converged,
        timestamp=time.time(),
        phase=OptimizationPhase.FINALIZATION,
        metrics=metrics,
        result=result,
        details=dict(details or {}),
    )


def run_to_completion(stream: Iterable[OptimizationProgress]) -> OptimizationResult:
    """
    Drain a progress stream and return its terminal result.

    Raises:
        OptimizationCancelled: If the run was cancelled, or the stream ended
            without a terminal event.
    """
    for event in stream:
        if event.result is not None:
            return event.result
    raise OptimizationCancelled("Progress stream ended without a result.")


async def astream(stream: ProgressStream) -> AsyncIterator[OptimizationProgress]:
    """
    Expose a progress stream as an async iterator.

    Control returns to the event loop between events, so cancelling the
    consuming task takes effect at the next event boundary. The underlying
    generator is closed when iteration stops for any reason.
    """
    try:
        for event in stream:
            yield event
            await asyncio.sleep(0)
    finally:
        close = getattr(stream, "close", None)
        if close is not None:
            close()


async def arun_to_completion(stream: ProgressStream) -> OptimizationResult:
    """Async counterpart of :func:`run_to_completion`."""
    events = astream(stream)
    try:
        async for event in events:
            if event.result is not None:
                return event.result
    finally:
        await events.aclose()
    raise OptimizationCancelled("Progress stream ended without a result.")


__all__ = [
    "AsyncOptimizer",
    "CancellationToken",
    "CountedObjective",
    "OptimizationCancelled",
    "ProgressStream",
    "ProgressThrottle",
    "arun_to_completion",
    "astream",
    "fresh",
    "progress_event",
    "relative_change",
    "run_to_completion",
    "terminal_event",
]
