"""Pytest configuration and shared fixtures for scalaropt tests.

This module provides:
- A deterministic numpy RNG for randomized starting points
- Common scalar objectives with known minimizers
- Automatic reset of the global debug flag between tests
"""

import os
from typing import Callable

import numpy as np
import pytest

from scalaropt.diagnostics import is_debug_enabled, set_debug_enabled


@pytest.fixture(scope="function")
def rng() -> np.random.Generator:
    """Provide a deterministic numpy RNG for tests.

    Uses seed from TEST_RNG_SEED environment variable (default: 0).
    This ensures tests are reproducible while allowing override for debugging.

    Returns:
        A seeded numpy.random.Generator instance.
    """
    seed = int(os.environ.get("TEST_RNG_SEED", "0"))
    return np.random.default_rng(seed)


@pytest.fixture(scope="function", autouse=True)
def restore_debug_mode():
    """Auto-use fixture restoring the global debug flag after each test."""
    original = is_debug_enabled()
    yield
    set_debug_enabled(original)


def shifted_quadratic(center: float) -> Callable[[float], float]:
    def f(x: float) -> float:
        return (x - center) ** 2

    return f


@pytest.fixture
def quadratic() -> Callable[[float], float]:
    """``(x - 5)^2`` with minimizer 5."""
    return shifted_quadratic(5.0)


@pytest.fixture
def exp_linear() -> Callable[[float], float]:
    """``exp(x) - 2x`` with minimizer ``ln 2``."""

    def f(x: float) -> float:
        return float(np.exp(x) - 2.0 * x)

    return f


@pytest.fixture
def quartic() -> Callable[[float], float]:
    """``x^4``: flat near the minimizer, so gradient methods crawl."""
    return lambda x: x**4
