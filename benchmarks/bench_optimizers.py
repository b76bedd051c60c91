"""Benchmark the gradient-family optimizers."""

import time
from typing import Dict

import numpy as np

from scalaropt import (
    ConjugateGradientOptimizer,
    GradientDescentOptimizer,
    LBFGSOptimizer,
)


def objective(x: float) -> float:
    return float(np.exp(x) - 2.0 * x)


OPTIMIZERS = {
    "gradient_descent": GradientDescentOptimizer(learning_rate=0.1),
    "conjugate_gradient": ConjugateGradientOptimizer(),
    "lbfgs": LBFGSOptimizer(),
}


def benchmark_optimizer(name: str, n_runs: int = 50, seed: int = 0) -> Dict[str, float]:
    """Benchmark full runs of one optimizer from random starting points.

    Args:
        name: Key into ``OPTIMIZERS``.
        n_runs: Number of runs timed.
        seed: Seed for the starting points.

    Returns:
        Dictionary with timing results.
    """
    optimizer = OPTIMIZERS[name]
    starts = np.random.default_rng(seed).uniform(-3.0, 3.0, size=n_runs)

    # Warmup
    for x0 in starts[:3]:
        optimizer.optimize(objective, [], float(x0))

    iterations = 0
    evaluations = 0
    start = time.perf_counter()
    for x0 in starts:
        result = optimizer.optimize(objective, [], float(x0))
        iterations += result.iterations
        evaluations += result.nfev
    end = time.perf_counter()

    total_time = end - start
    return {
        "n_runs": n_runs,
        "total_time_sec": total_time,
        "time_per_run_sec": total_time / n_runs,
        "mean_iterations": iterations / n_runs,
        "mean_evaluations": evaluations / n_runs,
    }


def benchmark_stream_overhead(n_runs: int = 20) -> Dict[str, float]:
    """Compare reporting every iteration against reporting never.

    Returns:
        Dictionary with both timings and their ratio.
    """
    from scalaropt import OptimizationConfig

    optimizer = GradientDescentOptimizer(momentum=0.0, max_iterations=2000)
    timings = {}
    for label, every in (("every_iteration", 1), ("silent", 10**9)):
        config = OptimizationConfig(
            progress_update_interval=3600.0, report_every_n_iterations=every
        )
        start = time.perf_counter()
        for _ in range(n_runs):
            for _event in optimizer.optimize_with_progress(objective, [], 2.0, config=config):
                pass
        timings[label] = time.perf_counter() - start

    return {
        "every_iteration_sec": timings["every_iteration"],
        "silent_sec": timings["silent"],
        "overhead_ratio": timings["every_iteration"] / timings["silent"],
    }


if __name__ == "__main__":
    print("Benchmarking optimizers...")
    for name in OPTIMIZERS:
        results = benchmark_optimizer(name)
        print(f"{name}:")
        print(f"  Time per run: {results['time_per_run_sec']*1e3:.3f} ms")
        print(f"  Mean iterations: {results['mean_iterations']:.1f}")
        print(f"  Mean evaluations: {results['mean_evaluations']:.1f}")

    overhead = benchmark_stream_overhead()
    print("Progress stream overhead:")
    print(f"  Reporting every iteration: {overhead['every_iteration_sec']*1e3:.2f} ms")
    print(f"  No reporting: {overhead['silent_sec']*1e3:.2f} ms")
    print(f"  Ratio: {overhead['overhead_ratio']:.2f}x")
