import pytest

from scalaropt.optimize import (
    MAX_STABLE_MOMENTUM,
    GradientDescentOptimizer,
    OptimizationPhase,
    Status,
    at_least,
    numerical_gradient,
)


def shifted(center: float):
    return lambda x: (x - center) ** 2


@pytest.mark.parametrize("x0", [0.0, -100.0, 7.9, 50.0, 1000.0])
def test_gradient_descent_quadratic_converges(x0):
    res = GradientDescentOptimizer().optimize(shifted(8.0), [], x0)
    assert res.converged
    assert res.status is Status.CONVERGED
    # the |velocity| stop can fire at an oscillation turning point, so allow 1e-3
    assert res.optimal_value == pytest.approx(8.0, abs=1e-3)
    assert res.objective_value == pytest.approx(0.0, abs=1e-6)
    assert res.nfev > 0


def test_momentum_speeds_up_convergence():
    fast = GradientDescentOptimizer(momentum=0.7).optimize(shifted(8.0), [], 0.0)
    slow = GradientDescentOptimizer(momentum=0.0).optimize(shifted(8.0), [], 0.0)
    assert fast.converged and slow.converged
    assert fast.iterations < slow.iterations


def test_momentum_is_clamped():
    assert GradientDescentOptimizer(momentum=1.5).momentum == MAX_STABLE_MOMENTUM
    assert GradientDescentOptimizer(momentum=-0.2).momentum == 0.0
    assert GradientDescentOptimizer(momentum=0.3).momentum == 0.3
    assert GradientDescentOptimizer().momentum == MAX_STABLE_MOMENTUM


def test_nesterov_gradient_uses_look_ahead_point():
    probes = []

    def f(x: float) -> float:
        probes.append(x)
        return (x - 8.0) ** 2

    opt = GradientDescentOptimizer(momentum=0.5, nesterov=True, max_iterations=20)
    events = list(opt.optimize_with_progress(f, [], 0.0))
    steps = [e for e in events if e.phase is OptimizationPhase.OPTIMIZATION]
    assert len(steps) >= 3

    for prev, cur in zip(events, steps):
        look_ahead = prev.current_value + 0.5 * prev.details["velocity"]
        assert cur.details["gradient_point"] == pytest.approx(look_ahead)
        assert cur.gradient == pytest.approx(numerical_gradient(f, look_ahead))
        assert look_ahead + 1e-4 in probes

    # once the run has momentum the look-ahead differs from the iterate
    assert steps[2].details["gradient_point"] != pytest.approx(steps[1].current_value)


def test_standard_gradient_uses_current_point():
    opt = GradientDescentOptimizer(momentum=0.5, max_iterations=10)
    events = list(opt.optimize_with_progress(shifted(8.0), [], 0.0))
    for prev, cur in zip(events, events[1:-1]):
        assert cur.details["gradient_point"] == prev.current_value


def test_nesterov_converges():
    res = GradientDescentOptimizer(momentum=0.5, nesterov=True).optimize(shifted(8.0), [], 0.0)
    assert res.converged
    assert res.optimal_value == pytest.approx(8.0, abs=1e-3)


def test_bounds_enforced_at_every_iteration():
    opt = GradientDescentOptimizer()
    events = list(opt.optimize_with_progress(lambda x: x * x, [], 5.0, bounds=(2.0, 10.0)))
    assert all(2.0 <= e.current_value <= 10.0 for e in events)
    res = events[-1].result
    assert res.converged
    assert res.optimal_value == 2.0


def test_initial_guess_clamped_into_bounds():
    events = GradientDescentOptimizer().optimize_with_progress(
        lambda x: x * x, [], 50.0, bounds=(2.0, 10.0)
    )
    assert next(events).current_value == 10.0


def test_constraint_violations_are_damped():
    opt = GradientDescentOptimizer(learning_rate=0.1, momentum=0.5)
    res = opt.optimize(lambda x: x * x, [at_least(3.0)], 10.0)
    assert res.converged
    assert res.optimal_value >= 3.0
    assert res.optimal_value == pytest.approx(3.0, abs=1e-3)


def test_divergence_guard_stops_run():
    opt = GradientDescentOptimizer(learning_rate=2.5, momentum=0.0)
    res = opt.optimize(lambda x: x * x, [], 1.0)
    assert not res.converged
    assert res.status is Status.DIVERGED
    assert res.iterations == 2
    # the point before the blow-up is reported
    assert res.optimal_value == pytest.approx(-4.0, abs=1e-6)


def test_max_iterations_reached():
    opt = GradientDescentOptimizer(learning_rate=1e-6, max_iterations=5)
    res = opt.optimize(shifted(8.0), [], 0.0)
    assert not res.converged
    assert res.status is Status.MAX_ITER
    assert res.iterations == 5
    assert res.message == "Maximum iterations reached."


def test_history_records_every_iteration():
    opt = GradientDescentOptimizer(history=True)
    res = opt.optimize(shifted(8.0), [], 0.0)
    assert len(res.history) == res.iterations
    iterations = [m.iteration for m in res.history]
    assert iterations == list(range(1, res.iterations + 1))
    assert GradientDescentOptimizer().optimize(shifted(8.0), [], 0.0).history == ()


@pytest.mark.parametrize(
    "kwargs",
    [
        {"learning_rate": 0.0},
        {"tolerance": 0.0},
        {"max_iterations": 0},
        {"step_size": -1e-4},
    ],
)
def test_invalid_parameters(kwargs):
    with pytest.raises(ValueError):
        GradientDescentOptimizer(**kwargs)


def test_inverted_bounds_rejected_eagerly():
    with pytest.raises(ValueError):
        GradientDescentOptimizer().optimize_with_progress(lambda x: x, [], 0.0, bounds=(5.0, 1.0))


def test_gradient_descent_deterministic():
    opt = GradientDescentOptimizer(history=True)
    res1 = opt.optimize(shifted(3.0), [], -2.0, bounds=(-5.0, 5.0))
    res2 = opt.optimize(shifted(3.0), [], -2.0, bounds=(-5.0, 5.0))
    assert res1 == res2
