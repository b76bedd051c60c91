import pytest

from scalaropt.optimize import (
    ConjugateGradientOptimizer,
    ConvergenceDetector,
    ConvergenceMetrics,
)


def feed(detector, values, grad=1.0):
    for i, value in enumerate(values, start=1):
        detector.update(ConvergenceMetrics(i, value, grad, 0.1, 0.0))


def test_not_converged_until_window_full():
    detector = ConvergenceDetector(window_size=3, improvement_threshold=1e-3, gradient_threshold=1e-3)
    feed(detector, [1.0, 1.0], grad=1e-9)
    assert not detector.has_converged
    feed(detector, [1.0], grad=1e-9)
    assert detector.is_full
    assert detector.has_converged
    assert detector.status == "Converged"


def test_large_gradient_blocks_convergence():
    detector = ConvergenceDetector(3, 1e-3, 1e-3)
    feed(detector, [1.0, 1.0, 1.0], grad=0.5)
    assert not detector.has_converged
    assert detector.status == "In Progress"


def test_window_evicts_oldest():
    detector = ConvergenceDetector(3, 1e-3, 1e-3)
    feed(detector, [5.0, 4.0, 3.0, 2.0, 1.0])
    assert [m.iteration for m in detector.window] == [3, 4, 5]
    detector.reset()
    assert detector.window == ()


def test_oscillation_detection():
    detector = ConvergenceDetector(5, 1e-6, 1e-6)
    feed(detector, [1.0, 2.0, 1.0, 2.0, 1.0])
    assert detector.is_oscillating
    assert detector.status == "Oscillating"

    monotone = ConvergenceDetector(5, 1e-6, 1e-6)
    feed(monotone, [5.0, 4.0, 3.0, 2.0, 1.0])
    assert not monotone.is_oscillating


def test_convergence_rate_is_mean_improvement():
    detector = ConvergenceDetector(5, 1e-6, 1e-6)
    assert detector.convergence_rate == 0.0
    feed(detector, [5.0, 4.0, 3.0, 2.0, 1.0])
    expected = (1 / 5 + 1 / 4 + 1 / 3 + 1 / 2) / 4
    assert detector.convergence_rate == pytest.approx(expected)


def test_invalid_parameters():
    with pytest.raises(ValueError):
        ConvergenceDetector(1, 1e-3, 1e-3)
    with pytest.raises(ValueError):
        ConvergenceDetector(3, 0.0, 1e-3)
    with pytest.raises(ValueError):
        ConvergenceDetector(3, 1e-3, -1.0)


def test_detector_stops_slow_run_early(quartic):
    detector = ConvergenceDetector(window_size=3, improvement_threshold=10.0, gradient_threshold=1e-2)
    plain = ConjugateGradientOptimizer(max_iterations=50).optimize(quartic, [], 3.0)
    early = ConjugateGradientOptimizer(
        max_iterations=50, convergence_detector=detector
    ).optimize(quartic, [], 3.0)
    assert not plain.converged
    assert early.converged
    assert early.iterations <= 10
    assert abs(early.optimal_value) < 0.2


def test_detector_prototype_is_not_mutated(quartic):
    detector = ConvergenceDetector(window_size=3, improvement_threshold=10.0, gradient_threshold=1e-2)
    opt = ConjugateGradientOptimizer(max_iterations=50, convergence_detector=detector)
    first = opt.optimize(quartic, [], 3.0)
    second = opt.optimize(quartic, [], 3.0)
    assert detector.window == ()
    assert first == second
