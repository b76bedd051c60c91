"""scalaropt - streaming, cancellable minimizers for functions of one real variable."""

__version__ = "0.1.0"

# Diagnostics
from .diagnostics import (
    assert_finite,
    assert_strictly_increasing,
    assert_within_bounds,
    debug_context,
    is_debug_enabled,
    set_debug_enabled,
)

# Logging
from .logging import configure_logging, get_logger, set_log_level

# Optimizers
from .optimize import (
    CancellationToken,
    ConjugateGradientMethod,
    ConjugateGradientOptimizer,
    ConvergenceBasedStrategy,
    ConvergenceDetector,
    ConvergenceMetrics,
    ExponentialBackoffStrategy,
    FixedIntervalStrategy,
    GradientDescentOptimizer,
    LBFGSOptimizer,
    OptimizationCancelled,
    OptimizationConfig,
    OptimizationPhase,
    OptimizationProgress,
    OptimizationResult,
    Status,
    arun_to_completion,
    astream,
    numerical_gradient,
    run_to_completion,
    second_derivative,
)

__all__ = [
    # Version
    "__version__",
    # Diagnostics
    "assert_finite",
    "assert_within_bounds",
    "assert_strictly_increasing",
    "is_debug_enabled",
    "set_debug_enabled",
    "debug_context",
    # Logging
    "get_logger",
    "set_log_level",
    "configure_logging",
    # Data model
    "ConvergenceMetrics",
    "OptimizationConfig",
    "OptimizationPhase",
    "OptimizationProgress",
    "OptimizationResult",
    "Status",
    # Reporting and convergence
    "FixedIntervalStrategy",
    "ExponentialBackoffStrategy",
    "ConvergenceBasedStrategy",
    "ConvergenceDetector",
    # Optimizers
    "GradientDescentOptimizer",
    "ConjugateGradientMethod",
    "ConjugateGradientOptimizer",
    "LBFGSOptimizer",
    # Streaming
    "CancellationToken",
    "OptimizationCancelled",
    "run_to_completion",
    "astream",
    "arun_to_completion",
    # Numerical differentiation
    "numerical_gradient",
    "second_derivative",
]
