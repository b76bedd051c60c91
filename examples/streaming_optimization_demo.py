"""
Example: Streaming scalar optimization with scalaropt

This example walks through the three gradient-family optimizers. It shows
how to watch a run through its progress stream, stop it early with a
cancellation token, compare conjugate-gradient variants, respect bounds,
and run several independent starts concurrently with asyncio.
"""

import asyncio

import numpy as np

from scalaropt import (
    CancellationToken,
    ConjugateGradientMethod,
    ConjugateGradientOptimizer,
    ExponentialBackoffStrategy,
    GradientDescentOptimizer,
    LBFGSOptimizer,
    OptimizationCancelled,
    OptimizationConfig,
    arun_to_completion,
)
from scalaropt.optimize import at_least


def cost(x: float) -> float:
    """Production cost with a minimum at x = 8."""
    return (x - 8.0) ** 2 + 3.0


def double_well(x: float) -> float:
    """Tilted double well: local minimum near +2, global minimum near -2."""
    return (x * x - 4.0) ** 2 + x


def example_progress_stream():
    """Example: Observe a momentum gradient descent run event by event."""
    print("=" * 60)
    print("Example 1: Progress stream (momentum gradient descent)")
    print("=" * 60)

    optimizer = GradientDescentOptimizer(
        progress_strategy=ExponentialBackoffStrategy(initial_interval=5, max_interval=40)
    )
    config = OptimizationConfig(progress_update_interval=60.0)
    for progress in optimizer.optimize_with_progress(cost, [], 0.0, config=config):
        if progress.result is None:
            print(
                f"[{progress.phase.value:>14}] iter {progress.iteration:4d}: "
                f"x = {progress.current_value:.6f}, f(x) = {progress.objective_value:.6f}"
            )
        else:
            result = progress.result
            print(f"Finished: {result.message} x* = {result.optimal_value:.5f}")
            print(f"Iterations: {result.iterations}, evaluations: {result.nfev}")
    print()


def example_cancellation():
    """Example: Cancel a slow run after a few progress events."""
    print("=" * 60)
    print("Example 2: Cooperative cancellation")
    print("=" * 60)

    token = CancellationToken()
    optimizer = GradientDescentOptimizer(learning_rate=1e-6)
    seen = 0
    try:
        for progress in optimizer.optimize_with_progress(cost, [], 0.0, cancel_token=token):
            seen += 1
            if seen == 5:
                print(f"Cancelling at iteration {progress.iteration}")
                token.cancel()
    except OptimizationCancelled as exc:
        print(f"Run cancelled after {seen} events: {exc}")
    print()


def example_conjugate_gradient_variants():
    """Example: Compare beta formulas on a non-quadratic objective."""
    print("=" * 60)
    print("Example 3: Conjugate gradient variants")
    print("=" * 60)

    def objective(x: float) -> float:
        return float(np.exp(x) - 2.0 * x)

    for method in ConjugateGradientMethod:
        result = ConjugateGradientOptimizer(method=method).optimize(objective, [], 0.0)
        print(
            f"{method.value:>17}: x* = {result.optimal_value:.7f} "
            f"in {result.iterations:3d} iterations ({result.status.value})"
        )
    print(f"Exact minimizer: ln 2 = {np.log(2.0):.7f}")
    print()


def example_bounds_and_constraints():
    """Example: Boundary optimum and a constraint."""
    print("=" * 60)
    print("Example 4: Bounds and constraints")
    print("=" * 60)

    bounded = LBFGSOptimizer().optimize(lambda x: x * x, [], 5.0, bounds=(2.0, 10.0))
    print(f"L-BFGS, min x^2 on [2, 10]: x* = {bounded.optimal_value}")

    optimizer = GradientDescentOptimizer(learning_rate=0.1, momentum=0.5)
    constrained = optimizer.optimize(lambda x: x * x, [at_least(3.0)], 10.0)
    print(
        f"Gradient descent, min x^2 with x >= 3: x* = {constrained.optimal_value:.6f} "
        f"({constrained.status.value})"
    )
    print()


def example_concurrent_multistart():
    """Example: Independent starts run concurrently, best result kept."""
    print("=" * 60)
    print("Example 5: Concurrent multi-start")
    print("=" * 60)

    starts = [-3.0, -0.5, 0.5, 3.0]
    optimizer = LBFGSOptimizer()

    async def run_all():
        runs = [arun_to_completion(optimizer.optimize_with_progress(double_well, [], x0)) for x0 in starts]
        return await asyncio.gather(*runs)

    results = asyncio.run(run_all())
    for x0, result in zip(starts, results):
        print(f"start {x0:5.1f} -> x* = {result.optimal_value:.6f}, f = {result.objective_value:.6f}")
    best = min(results, key=lambda r: r.objective_value)
    print(f"Best multi-start result: x* = {best.optimal_value:.6f}")
    print()


if __name__ == "__main__":
    example_progress_stream()
    example_cancellation()
    example_conjugate_gradient_variants()
    example_bounds_and_constraints()
    example_concurrent_multistart()
