"""Diagnostics and debugging utilities for scalaropt."""

from .core import (
    assert_finite,
    assert_strictly_increasing,
    assert_within_bounds,
)
from .debug_mode import (
    debug_context,
    is_debug_enabled,
    set_debug_enabled,
)

__all__ = [
    "assert_finite",
    "assert_within_bounds",
    "assert_strictly_increasing",
    "is_debug_enabled",
    "set_debug_enabled",
    "debug_context",
]
