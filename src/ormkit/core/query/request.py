"""Store-agnostic description of a find/count request.

These are the shapes a caller hands to ``Driver.find``/``Driver.count``.
Each builder (``sql``, ``mongo``) translates them into its own dialect;
nothing here knows about SQL or documents.

Order codes follow the model layer's convention: the literal ``"Z"``
means descending, any other code ascending::

    FindOptions(order=("created_at", "Z"), limit=10)
    FindOptions(order=[("last", "A"), ("first", "A")])
    FindOptions(order="-created_at")
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, fields
from typing import Any

from ormkit.core.errors import InvalidRequestError

DESCENDING_CODE = "Z"


@dataclass(frozen=True, slots=True)
class OrderBy:
    """One ordering term."""

    field: str
    descending: bool = False

    @classmethod
    def from_code(cls, field_name: str, code: str | None) -> OrderBy:
        return cls(field_name, code == DESCENDING_CODE)


def parse_order(order: Any) -> tuple[OrderBy, ...]:
    """Normalize the accepted order spellings into ``OrderBy`` terms.

    Accepted: ``None``, ``"field"``, ``"-field"``, ``(field, code)``, an
    ``OrderBy``, or a sequence of any of those.  A flat two-string
    sequence is always read as one ``(field, code)`` pair.
    """
    if order is None:
        return ()
    if isinstance(order, OrderBy):
        return (order,)
    if isinstance(order, str):
        if order.startswith("-"):
            return (OrderBy(order[1:], True),)
        return (OrderBy(order),)
    if isinstance(order, Sequence):
        if len(order) == 2 and all(isinstance(part, str) for part in order):
            return (OrderBy.from_code(order[0], order[1]),)
        terms: list[OrderBy] = []
        for item in order:
            terms.extend(parse_order(item))
        return tuple(terms)
    raise InvalidRequestError(f"Unsupported order specification: {order!r}")


def _as_columns(value: str | Sequence[str]) -> tuple[str, ...]:
    if isinstance(value, str):
        return (value,)
    return tuple(value)


@dataclass(frozen=True)
class MergeSpec:
    """
    A join pulling associated fields into a find.

    ``from_table`` is joined to the queried table on
    ``from_table.from_field = <queried table>.to_field``; ``select`` names
    the extra columns projected from ``from_table`` and ``where`` filters
    rows of ``from_table``.
    """

    from_table: str
    from_field: str | Sequence[str]
    to_field: str | Sequence[str]
    select: Sequence[str] = ()
    where: Mapping[str, Any] | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "from_field", _as_columns(self.from_field))
        object.__setattr__(self, "to_field", _as_columns(self.to_field))
        object.__setattr__(self, "select", tuple(self.select))
        if len(self.from_field) != len(self.to_field):
            raise InvalidRequestError("Merge join needs the same number of fields on both sides")


@dataclass(frozen=True)
class ExistsSpec:
    """
    Existence subquery for one association.

    Matches parent rows for which ``table`` holds a row whose
    ``link_fields`` equal the parent's ``parent_fields`` and which
    satisfies ``conditions``.
    """

    table: str
    link_fields: str | Sequence[str]
    parent_fields: str | Sequence[str]
    conditions: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "link_fields", _as_columns(self.link_fields))
        object.__setattr__(self, "parent_fields", _as_columns(self.parent_fields))
        if len(self.link_fields) != len(self.parent_fields):
            raise InvalidRequestError("Exists link needs the same number of fields on both sides")


def _as_spec(spec_class: type, value: Any, name: str) -> Any:
    if isinstance(value, spec_class):
        return value
    if not isinstance(value, Mapping):
        kind = spec_class.__name__
        raise InvalidRequestError(f"{name} must be a {kind} or a mapping, got {value!r}")
    try:
        return spec_class(**value)
    except TypeError as e:
        raise InvalidRequestError(f"Invalid {name}: {e}") from e


@dataclass(frozen=True)
class FindOptions:
    """
    Options for find and count.

    ``offset`` and ``limit`` are ignored by count.  ``count_column`` is the
    column count() counts (``*`` when unset).
    """

    offset: int | None = None
    limit: int | None = None
    order: Any = None
    merge: MergeSpec | None = None
    exists: Mapping[str, ExistsSpec] | None = None
    count_column: str | None = None

    def __post_init__(self) -> None:
        for name in ("offset", "limit"):
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise InvalidRequestError(f"{name} must be a non-negative integer, got {value!r}")
        object.__setattr__(self, "order", parse_order(self.order))
        if self.merge is not None:
            object.__setattr__(self, "merge", _as_spec(MergeSpec, self.merge, "merge"))
        if self.exists is not None:
            if not isinstance(self.exists, Mapping):
                raise InvalidRequestError(f"exists must map names to specs, got {self.exists!r}")
            exists = {
                name: _as_spec(ExistsSpec, spec, f"exists[{name!r}]")
                for name, spec in self.exists.items()
            }
            object.__setattr__(self, "exists", exists)

    @property
    def needs_joins(self) -> bool:
        """Whether the request uses merge or exists subqueries."""
        return self.merge is not None or bool(self.exists)

    @classmethod
    def coerce(cls, options: FindOptions | Mapping[str, Any] | None) -> FindOptions:
        """Accept ``None``, an instance, or a plain mapping of option names."""
        if options is None:
            return cls()
        if isinstance(options, FindOptions):
            return options
        known = {f.name for f in fields(cls)}
        unknown = set(options) - known
        if unknown:
            raise InvalidRequestError(f"Unknown find options: {', '.join(sorted(unknown))}")
        return cls(**options)


__all__ = [
    "DESCENDING_CODE",
    "OrderBy",
    "parse_order",
    "MergeSpec",
    "ExistsSpec",
    "FindOptions",
]
