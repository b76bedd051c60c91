"""Tests for logging utilities."""

import logging
from io import StringIO

from scalaropt.logging import (
    configure_logging,
    get_logger,
    set_log_level,
)
from scalaropt.optimize import ConjugateGradientOptimizer, GradientDescentOptimizer


def test_get_logger_returns_logger():
    """Test that get_logger returns a logger instance."""
    logger = get_logger("test_module")
    assert isinstance(logger, logging.Logger)
    assert logger.name.startswith("scalaropt.")


def test_get_logger_keeps_package_names():
    logger = get_logger("scalaropt.optimize.gradient")
    assert logger.name == "scalaropt.optimize.gradient"
    assert get_logger().name == "scalaropt"


def test_get_logger_caching():
    """Test that get_logger caches loggers."""
    logger1 = get_logger("test_module")
    logger2 = get_logger("test_module")
    assert logger1 is logger2


def test_get_logger_different_modules():
    """Test that different modules get different loggers."""
    logger1 = get_logger("module1")
    logger2 = get_logger("module2")
    assert logger1 is not logger2
    assert logger1.name != logger2.name


def test_set_log_level_string():
    """Test that set_log_level accepts string levels."""
    logger = get_logger("test_module")
    try:
        set_log_level("DEBUG")
        assert logger.level == logging.DEBUG

        set_log_level("ERROR")
        assert logger.level == logging.ERROR
    finally:
        set_log_level(logging.WARNING)


def test_configure_logging():
    """Test configure_logging function."""
    stream = StringIO()
    try:
        configure_logging(level=logging.DEBUG, stream=stream)
        logger = get_logger("test_module")
        logger.debug("Debug message")
        assert "[DEBUG] scalaropt.test_module: Debug message" in stream.getvalue()
    finally:
        configure_logging(level=logging.WARNING)


def test_logger_does_not_propagate():
    """Test that loggers don't propagate to root logger."""
    logger = get_logger("test_module")
    assert logger.propagate is False


def test_optimizer_logs_start_and_stop():
    stream = StringIO()
    try:
        configure_logging(level=logging.INFO, stream=stream)
        ConjugateGradientOptimizer().optimize(lambda x: (x - 1.0) ** 2, [], 0.0)
        output = stream.getvalue()
        assert "Conjugate gradient (fletcher_reeves) started" in output
        assert "stopped after 1 iterations: converged" in output
    finally:
        configure_logging(level=logging.WARNING)


def test_divergence_is_logged_as_warning():
    stream = StringIO()
    try:
        configure_logging(level=logging.WARNING, stream=stream)
        opt = GradientDescentOptimizer(learning_rate=2.5, momentum=0.0)
        result = opt.optimize(lambda x: x * x, [], 1.0)
        assert not result.converged
        assert "[WARNING]" in stream.getvalue()
        assert "Objective jumped" in stream.getvalue()
    finally:
        configure_logging(level=logging.WARNING)
