"""Comparator expressions usable as condition values.

A condition mapping pairs a field with either a plain value (equality,
membership for lists, null test for ``None``) or one of these
comparators::

    {"age": gt(18), "name": like("A%"), "status": not_in(["gone"])}

Each builder renders a comparator in its own dialect.  The comparator
itself is only data.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

EQ = "eq"
NE = "ne"
GT = "gt"
GTE = "gte"
LT = "lt"
LTE = "lte"
BETWEEN = "between"
NOT_BETWEEN = "not_between"
LIKE = "like"
NOT_LIKE = "not_like"
NOT_IN = "not_in"

OPERATORS = frozenset(
    {EQ, NE, GT, GTE, LT, LTE, BETWEEN, NOT_BETWEEN, LIKE, NOT_LIKE, NOT_IN}
)


@dataclass(frozen=True, slots=True)
class Comparator:
    """A single comparison against a field.

    For ``between``/``not_between`` the value is a ``(low, high)`` pair;
    for ``not_in`` it is a sequence.
    """

    operator: str
    value: Any

    def __post_init__(self) -> None:
        if self.operator not in OPERATORS:
            raise ValueError(f"Unknown comparator: {self.operator!r}")
        if self.operator in (BETWEEN, NOT_BETWEEN):
            if not isinstance(self.value, Sequence) or len(self.value) != 2:
                raise ValueError(f"{self.operator} needs a (low, high) pair")


def eq(value: Any) -> Comparator:
    return Comparator(EQ, value)


def ne(value: Any) -> Comparator:
    return Comparator(NE, value)


def gt(value: Any) -> Comparator:
    return Comparator(GT, value)


def gte(value: Any) -> Comparator:
    return Comparator(GTE, value)


def lt(value: Any) -> Comparator:
    return Comparator(LT, value)


def lte(value: Any) -> Comparator:
    return Comparator(LTE, value)


def between(low: Any, high: Any) -> Comparator:
    """Inclusive range."""
    return Comparator(BETWEEN, (low, high))


def not_between(low: Any, high: Any) -> Comparator:
    return Comparator(NOT_BETWEEN, (low, high))


def like(pattern: str) -> Comparator:
    """SQL LIKE pattern: ``%`` any run of characters, ``_`` one character."""
    return Comparator(LIKE, pattern)


def not_like(pattern: str) -> Comparator:
    return Comparator(NOT_LIKE, pattern)


def not_in(values: Sequence[Any]) -> Comparator:
    return Comparator(NOT_IN, list(values))


__all__ = [
    "Comparator",
    "OPERATORS",
    "eq",
    "ne",
    "gt",
    "gte",
    "lt",
    "lte",
    "between",
    "not_between",
    "like",
    "not_like",
    "not_in",
]
