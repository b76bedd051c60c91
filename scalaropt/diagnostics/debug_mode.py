"""Process-wide debug switch for the optimizers.

While debug mode is on, every optimizer run checks its invariants as it
goes and raises ``ValueError`` instead of degrading quietly:

- the initial objective and each derivative estimate are finite
  (otherwise a run would end with ``Status.NUMERICAL_ERROR``),
- every accepted iterate lies inside the requested bounds,
- the iteration indices recorded in a result's history strictly increase.

The switch starts from the ``SCALAROPT_DEBUG`` environment variable
(``1``, ``true``, ``yes`` or ``on``). The per-iteration checks sample it
once when a run starts.
"""

from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Iterator

_DEBUG_ENV_VAR = "SCALAROPT_DEBUG"
_TRUTHY = ("1", "true", "yes", "on")

_debug_enabled: bool = os.getenv(_DEBUG_ENV_VAR, "0").strip().lower() in _TRUTHY


def is_debug_enabled() -> bool:
    """Return True when optimizer invariant checks are active."""
    return _debug_enabled


def set_debug_enabled(enabled: bool) -> None:
    """
    Turn optimizer invariant checks on or off for the whole process.

    Parameters
    ----------
    enabled:
        New state of the switch.
    """
    global _debug_enabled
    _debug_enabled = bool(enabled)


@contextmanager
def debug_context(enabled: bool = True) -> Iterator[None]:
    """
    Set the debug switch for the duration of a block.

    The previous state is restored on exit, including when the block
    raises, so a failing checked run does not leave checks on.

    Example
    -------
    >>> from scalaropt.optimize import LBFGSOptimizer
    >>> with debug_context(True):
    ...     res = LBFGSOptimizer().optimize(lambda x: (x - 1.0) ** 2, [], 0.0)
    >>> res.converged
    True
    """
    global _debug_enabled
    previous = _debug_enabled
    _debug_enabled = bool(enabled)
    try:
        yield
    finally:
        _debug_enabled = previous


__all__ = ["debug_context", "is_debug_enabled", "set_debug_enabled"]
