"""Streaming gradient-family optimizers for scalar objectives.

Example
-------
>>> from scalaropt.optimize import (
...     CancellationToken,
...     ConjugateGradientOptimizer,
...     GradientDescentOptimizer,
...     LBFGSOptimizer,
... )
>>> def f(x):
...     return (x - 5.0) ** 2
>>> res = LBFGSOptimizer().optimize(f, [], 0.0)
>>> round(res.optimal_value, 4)
5.0
>>> res.converged
True
"""

from .conjugate_gradient import (
    ConjugateGradientMethod,
    ConjugateGradientOptimizer,
    compute_beta,
    projected_gradient,
)
from .constraints import (
    BoundConstraint,
    Constraint,
    PredicateConstraint,
    Relation,
    all_satisfied,
    at_least,
    at_most,
    equal_to,
    greater_than,
    less_than,
    satisfies,
)
from .convergence import ConvergenceDetector
from .core import (
    DEFAULT_CONFIG,
    DENOMINATOR_FLOOR,
    Bounds,
    Objective,
    OptimizationConfig,
    OptimizationPhase,
    OptimizationProgress,
    OptimizationResult,
    Status,
    check_convergence,
    validate_bounds,
)
from .gradient import MAX_STABLE_MOMENTUM, GradientDescentOptimizer, clamp_momentum
from .line_search import backtracking_armijo
from .metrics import ConvergenceMetrics, mean_improvement
from .progress import (
    ConvergenceBasedStrategy,
    ExponentialBackoffStrategy,
    FixedIntervalStrategy,
    ProgressStrategy,
)
from .quasi_newton import LBFGSOptimizer, two_loop_direction
from .streaming import (
    AsyncOptimizer,
    CancellationToken,
    OptimizationCancelled,
    ProgressStream,
    arun_to_completion,
    astream,
    run_to_completion,
)
from .utils import DEFAULT_STEP, clamp, numerical_gradient, second_derivative

__all__ = [
    "AsyncOptimizer",
    "BoundConstraint",
    "Bounds",
    "CancellationToken",
    "ConjugateGradientMethod",
    "ConjugateGradientOptimizer",
    "Constraint",
    "ConvergenceBasedStrategy",
    "ConvergenceDetector",
    "ConvergenceMetrics",
    "DEFAULT_CONFIG",
    "DEFAULT_STEP",
    "DENOMINATOR_FLOOR",
    "ExponentialBackoffStrategy",
    "FixedIntervalStrategy",
    "GradientDescentOptimizer",
    "LBFGSOptimizer",
    "MAX_STABLE_MOMENTUM",
    "Objective",
    "OptimizationCancelled",
    "OptimizationConfig",
    "OptimizationPhase",
    "OptimizationProgress",
    "OptimizationResult",
    "PredicateConstraint",
    "ProgressStrategy",
    "ProgressStream",
    "Relation",
    "Status",
    "all_satisfied",
    "arun_to_completion",
    "astream",
    "at_least",
    "at_most",
    "backtracking_armijo",
    "check_convergence",
    "clamp",
    "clamp_momentum",
    "compute_beta",
    "equal_to",
    "greater_than",
    "less_than",
    "mean_improvement",
    "numerical_gradient",
    "projected_gradient",
    "run_to_completion",
    "satisfies",
    "second_derivative",
    "two_loop_direction",
    "validate_bounds",
]
