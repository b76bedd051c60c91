import asyncio
import threading

import pytest

from scalaropt.optimize import (
    CancellationToken,
    ConjugateGradientOptimizer,
    ExponentialBackoffStrategy,
    GradientDescentOptimizer,
    LBFGSOptimizer,
    OptimizationCancelled,
    OptimizationConfig,
    OptimizationPhase,
    arun_to_completion,
    astream,
    run_to_completion,
)

OPTIMIZERS = [GradientDescentOptimizer(), ConjugateGradientOptimizer(), LBFGSOptimizer()]


def target(x: float) -> float:
    return (x - 8.0) ** 2


@pytest.mark.parametrize("opt", OPTIMIZERS, ids=lambda o: type(o).__name__)
def test_stream_shape(opt):
    events = list(opt.optimize_with_progress(target, [], 0.0))
    assert events[0].phase is OptimizationPhase.INITIALIZATION
    assert events[0].iteration == 0
    assert events[0].gradient is None
    assert events[-1].phase is OptimizationPhase.FINALIZATION
    assert events[-1].is_final
    assert events[-1].has_converged == events[-1].result.converged
    assert sum(e.result is not None for e in events) == 1
    iterations = [e.iteration for e in events]
    assert iterations == sorted(set(iterations))


@pytest.mark.parametrize("opt", OPTIMIZERS, ids=lambda o: type(o).__name__)
def test_optimize_matches_stream_result(opt):
    streamed = run_to_completion(opt.optimize_with_progress(target, [], 0.0))
    assert opt.optimize(target, [], 0.0) == streamed


def test_cancellation_after_five_events():
    token = CancellationToken()
    opt = GradientDescentOptimizer(learning_rate=1e-6, max_iterations=10_000)
    stream = opt.optimize_with_progress(target, [], 0.0, cancel_token=token)
    seen = []
    with pytest.raises(OptimizationCancelled):
        for event in stream:
            seen.append(event)
            if len(seen) == 5:
                token.cancel()
    assert len(seen) == 5
    assert all(e.result is None for e in seen)
    # the generator is finished; nothing more is produced
    assert list(stream) == []


def test_cancel_from_another_thread():
    token = CancellationToken()
    worker = threading.Thread(target=token.cancel)
    worker.start()
    worker.join()
    assert token.cancelled
    with pytest.raises(OptimizationCancelled):
        token.raise_if_cancelled()
    with pytest.raises(OptimizationCancelled):
        LBFGSOptimizer().optimize(target, [], 0.0, cancel_token=token)


def test_stream_closed_early_yields_no_result():
    stream = GradientDescentOptimizer(learning_rate=1e-6).optimize_with_progress(target, [], 0.0)
    next(stream)
    stream.close()
    with pytest.raises(OptimizationCancelled):
        run_to_completion(stream)


def test_reporting_cadence_from_config():
    config = OptimizationConfig(
        progress_update_interval=3600.0, max_iterations=50, report_every_n_iterations=10
    )
    opt = GradientDescentOptimizer(learning_rate=1e-6)
    events = list(opt.optimize_with_progress(target, [], 0.0, config=config))
    reported = [e.iteration for e in events if e.phase is OptimizationPhase.OPTIMIZATION]
    assert reported == [10, 20, 30, 40, 50]


def test_zero_interval_reports_every_iteration():
    config = OptimizationConfig(
        progress_update_interval=0.0, max_iterations=7, report_every_n_iterations=1000
    )
    opt = GradientDescentOptimizer(learning_rate=1e-6)
    events = list(opt.optimize_with_progress(target, [], 0.0, config=config))
    reported = [e.iteration for e in events if e.phase is OptimizationPhase.OPTIMIZATION]
    assert reported == list(range(1, 8))


def test_strategy_state_is_not_shared_between_runs():
    config = OptimizationConfig(progress_update_interval=3600.0, max_iterations=100)
    opt = GradientDescentOptimizer(
        learning_rate=1e-6, progress_strategy=ExponentialBackoffStrategy(2, 64)
    )

    def reported():
        events = opt.optimize_with_progress(target, [], 0.0, config=config)
        return [e.iteration for e in events if e.phase is OptimizationPhase.OPTIMIZATION]

    first, second = reported(), reported()
    assert first == second == [1, 3, 7, 15, 31, 63]


@pytest.mark.parametrize("opt", OPTIMIZERS, ids=lambda o: type(o).__name__)
def test_identical_runs_are_deterministic(opt, exp_linear):
    kwargs = dict(bounds=(-3.0, 3.0))
    assert opt.optimize(exp_linear, [], 2.5, **kwargs) == opt.optimize(exp_linear, [], 2.5, **kwargs)


def test_async_run_to_completion():
    result = asyncio.run(
        arun_to_completion(LBFGSOptimizer().optimize_with_progress(target, [], 0.0))
    )
    assert result.converged
    assert result.optimal_value == pytest.approx(8.0, abs=1e-6)


def test_independent_runs_gathered(rng):
    starts = rng.uniform(-50.0, 50.0, size=3)

    async def main():
        runs = [
            arun_to_completion(opt.optimize_with_progress(target, [], float(x0)))
            for opt, x0 in zip(OPTIMIZERS, starts)
        ]
        return await asyncio.gather(*runs)

    results = asyncio.run(main())
    assert all(r.converged for r in results)
    assert all(r.optimal_value == pytest.approx(8.0, abs=1e-3) for r in results)


def test_async_task_cancellation_propagates():
    seen = []

    async def consume():
        opt = GradientDescentOptimizer(learning_rate=1e-6)
        async for event in astream(opt.optimize_with_progress(target, [], 0.0)):
            seen.append(event)

    async def main():
        task = asyncio.create_task(consume())
        while len(seen) < 3:
            await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(main())
    assert len(seen) >= 3
    assert all(e.result is None for e in seen)
