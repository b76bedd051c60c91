import pytest

from scalaropt.optimize.line_search import backtracking_armijo


def quadratic_fun(x: float) -> float:
    return (x - 1.0) ** 2


def test_backtracking_armijo_halves_until_sufficient_decrease():
    x = 3.0
    grad = 4.0
    alpha, x_new, f_new, accepted = backtracking_armijo(quadratic_fun, x, -grad, grad)
    # alpha=1 lands on x=-1 where f is unchanged; alpha=0.5 hits the minimizer
    assert accepted
    assert alpha == 0.5
    assert x_new == pytest.approx(1.0)
    assert f_new == pytest.approx(0.0)


def test_full_step_accepted_when_it_decreases():
    alpha, x_new, _, accepted = backtracking_armijo(quadratic_fun, 3.0, -1.0, 4.0)
    assert accepted
    assert alpha == 1.0
    assert x_new == 2.0


def test_exhaustion_returns_last_trial():
    # ascent direction: no step satisfies the Armijo condition
    alpha, x_new, f_new, accepted = backtracking_armijo(quadratic_fun, 3.0, 1.0, 4.0, max_iter=3)
    assert not accepted
    assert alpha == 0.25
    assert x_new == 3.25
    assert f_new == pytest.approx(quadratic_fun(3.25))


def test_projection_clamps_trial_points():
    alpha, x_new, _, accepted = backtracking_armijo(
        quadratic_fun, 3.0, -4.0, 4.0, project=lambda v: max(2.5, v)
    )
    assert accepted
    assert alpha == 1.0
    assert x_new == 2.5


def test_infeasible_trials_are_rejected():
    calls = []

    def f(x: float) -> float:
        calls.append(x)
        return quadratic_fun(x)

    alpha, x_new, _, accepted = backtracking_armijo(
        f, 3.0, -4.0, 4.0, fx=4.0, feasible=lambda v: v >= 2.0
    )
    assert accepted
    assert alpha == 0.25
    assert x_new == 2.0
    # only the feasible trial was evaluated
    assert calls == [2.0]


@pytest.mark.parametrize(
    "kwargs",
    [{"c": 0.0}, {"c": 1.0}, {"rho": 1.0}, {"rho": 0.0}, {"max_iter": 0}],
)
def test_invalid_parameters(kwargs):
    with pytest.raises(ValueError):
        backtracking_armijo(quadratic_fun, 0.0, 1.0, -2.0, **kwargs)
