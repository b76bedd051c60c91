"""Scalar constraints: simple bounds against a constant, or arbitrary predicates.

``Constraint`` is a tagged union of :class:`BoundConstraint` and
:class:`PredicateConstraint`. Both are stateless and can be reused across
iterations and across runs.

Example
-------
>>> from scalaropt.optimize.constraints import all_satisfied, at_least, satisfies
>>> constraints = [at_least(0.0), satisfies(lambda x: x != 3.0)]
>>> all_satisfied(constraints, 1.5)
True
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Union

DEFAULT_EQUALITY_TOLERANCE = 1e-9


class Relation(Enum):
    """Comparison applied by a :class:`BoundConstraint`."""

    LESS_THAN = "<"
    LESS_EQUAL = "<="
    GREATER_THAN = ">"
    GREATER_EQUAL = ">="
    EQUAL = "=="


@dataclass(frozen=True)
class BoundConstraint:
    """``value <relation> bound``, with ``tolerance`` used only for equality."""

    relation: Relation
    bound: float
    tolerance: float = DEFAULT_EQUALITY_TOLERANCE

    def __post_init__(self) -> None:
        if self.tolerance < 0:
            raise ValueError(f"tolerance must be >= 0, got {self.tolerance}")

    def is_satisfied(self, value: float) -> bool:
        if self.relation is Relation.LESS_THAN:
            return value < self.bound
        if self.relation is Relation.LESS_EQUAL:
            return value <= self.bound
        if self.relation is Relation.GREATER_THAN:
            return value > self.bound
        if self.relation is Relation.GREATER_EQUAL:
            return value >= self.bound
        return abs(value - self.bound) <= self.tolerance


@dataclass(frozen=True)
class PredicateConstraint:
    """Constraint defined by an arbitrary boolean function of the value."""

    predicate: Callable[[float], bool]

    def is_satisfied(self, value: float) -> bool:
        return bool(self.predicate(value))


Constraint = Union[BoundConstraint, PredicateConstraint]


def less_than(bound: float) -> BoundConstraint:
    return BoundConstraint(Relation.LESS_THAN, bound)


def at_most(bound: float) -> BoundConstraint:
    return BoundConstraint(Relation.LESS_EQUAL, bound)


def greater_than(bound: float) -> BoundConstraint:
    return BoundConstraint(Relation.GREATER_THAN, bound)


def at_least(bound: float) -> BoundConstraint:
    return BoundConstraint(Relation.GREATER_EQUAL, bound)


def equal_to(bound: float, tolerance: float = DEFAULT_EQUALITY_TOLERANCE) -> BoundConstraint:
    return BoundConstraint(Relation.EQUAL, bound, tolerance)


def satisfies(predicate: Callable[[float], bool]) -> PredicateConstraint:
    return PredicateConstraint(predicate)


def all_satisfied(constraints: Iterable[Constraint], value: float) -> bool:
    """True when every constraint accepts ``value`` (vacuously true for none)."""
    return all(constraint.is_satisfied(value) for constraint in constraints)


__all__ = [
    "BoundConstraint",
    "Constraint",
    "DEFAULT_EQUALITY_TOLERANCE",
    "PredicateConstraint",
    "Relation",
    "all_satisfied",
    "at_least",
    "at_most",
    "equal_to",
    "greater_than",
    "less_than",
    "satisfies",
]
