"""Document-store query builder (MongoDB dialect).

Conditions map onto a native filter document, pagination onto
``skip``/``limit``, ordering onto a ``sort`` specification and the field
list onto a projection.  Joins (``merge``) and existence subqueries
(``exists``) have no counterpart here and raise
``UnsupportedOperationError`` instead of being dropped.

The id property (``id`` by default) is stored as ``_id``: the builder
rewrites it in filters, projections and sort keys, and coerces its
24-character hex form to ``bson.ObjectId`` in plain values, lists
(element-wise) and comparator operands.

Examples:
    >>> b = MongoQueryBuilder()
    >>> q = b.find("users", ["name"], {"id": "507f191e810c19729de860ea"}, FindOptions(limit=1))
    >>> q.filter
    {'_id': ObjectId('507f191e810c19729de860ea')}
    >>> q.projection, q.limit
    ({'name': 1, '_id': 0}, 1)
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, DESCENDING

from ormkit.core.errors import CoercionError, UnsupportedOperationError
from ormkit.core.query import comparators as cmp
from ormkit.core.query.comparators import Comparator
from ormkit.core.query.request import FindOptions

ID_FIELD = "_id"

_RANGE_OPERATORS = {
    cmp.NE: "$ne",
    cmp.GT: "$gt",
    cmp.GTE: "$gte",
    cmp.LT: "$lt",
    cmp.LTE: "$lte",
}


@dataclass(frozen=True)
class MongoFind:
    """A built find: everything ``collection.find`` needs."""

    collection: str
    filter: dict[str, Any] = field(default_factory=dict)
    projection: dict[str, int] | None = None
    skip: int = 0
    limit: int | None = None
    sort: list[tuple[str, int]] | None = None

    def __str__(self) -> str:
        parts = [f"db.{self.collection}.find({self.filter!r}, {self.projection!r})"]
        if self.sort:
            parts.append(f".sort({self.sort!r})")
        if self.skip:
            parts.append(f".skip({self.skip})")
        if self.limit is not None:
            parts.append(f".limit({self.limit})")
        return "".join(parts)


@dataclass(frozen=True)
class MongoCount:
    collection: str
    filter: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"db.{self.collection}.countDocuments({self.filter!r})"


def to_object_id(value: Any) -> Any:
    """Coerce an identifier (or a sequence of them) to ``ObjectId``."""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_object_id(v) for v in value]
    try:
        return ObjectId(value)
    except (InvalidId, TypeError) as e:
        raise CoercionError(f"Invalid identifier: {value!r}", cause=e).with_context(
            driver="mongodb"
        ) from e


def like_to_regex(pattern: str) -> str:
    """Translate a SQL LIKE pattern into an anchored regular expression."""
    out = []
    for ch in pattern:
        if ch == "%":
            out.append(".*")
        elif ch == "_":
            out.append(".")
        else:
            out.append(re.escape(ch))
    # LIKE wildcards match newlines too
    return "(?s)^" + "".join(out) + "$"


class MongoQueryBuilder:
    """Builds MongoDB filter/cursor specifications from abstract requests."""

    dialect = "mongodb"

    def __init__(self, id_property: str = "id"):
        self.id_property = id_property

    def find(
        self,
        table: str,
        fields: Sequence[str],
        conditions: Mapping[str, Any] | None = None,
        options: FindOptions | Mapping[str, Any] | None = None,
    ) -> MongoFind:
        options = FindOptions.coerce(options)
        self._reject_joins(table, options, "find")

        sort = None
        if options.order:
            sort = [
                (self._field(t.field), DESCENDING if t.descending else ASCENDING) for t in options.order
            ]

        return MongoFind(
            collection=table,
            filter=self.filter(conditions),
            projection=self.projection(fields),
            skip=options.offset or 0,
            limit=options.limit,
            sort=sort,
        )

    def count(
        self,
        table: str,
        conditions: Mapping[str, Any] | None = None,
        options: FindOptions | Mapping[str, Any] | None = None,
    ) -> MongoCount:
        options = FindOptions.coerce(options)
        self._reject_joins(table, options, "count")
        return MongoCount(collection=table, filter=self.filter(conditions))

    def update(self, changes: Mapping[str, Any]) -> dict[str, Any]:
        """Update document applying ``changes`` as a partial set."""
        return {"$set": dict(changes)}

    def filter(self, conditions: Mapping[str, Any] | None) -> dict[str, Any]:
        """Translate a condition mapping into a native filter document."""
        if not conditions:
            return {}
        translated: dict[str, Any] = {}
        for key, value in conditions.items():
            key = self._field(key)
            translated[key] = self._value(key, value)
        return translated

    def projection(self, fields: Sequence[str]) -> dict[str, int] | None:
        """Inclusion projection for ``fields``; ``_id`` is excluded unless asked for."""
        if not fields:
            return None
        projection = {self._field(f): 1 for f in fields}
        projection.setdefault(ID_FIELD, 0)
        return projection

    def rename_id(self, document: Mapping[str, Any]) -> dict[str, Any]:
        """Row with the stored ``_id`` keyed by the id property."""
        row = dict(document)
        if self.id_property != ID_FIELD and ID_FIELD in row:
            row[self.id_property] = row.pop(ID_FIELD)
        return row

    # -- Internals ------------------------------------------------------------

    def _reject_joins(self, table: str, options: FindOptions, operation: str) -> None:
        if options.merge is not None:
            raise UnsupportedOperationError(
                "MongoDB driver does not support merge (joins)"
            ).with_context(driver="mongodb", table=table, operation=operation)
        if options.exists:
            raise UnsupportedOperationError(
                "MongoDB driver does not support exists subqueries"
            ).with_context(driver="mongodb", table=table, operation=operation)

    def _field(self, key: str) -> str:
        return ID_FIELD if key == self.id_property else key

    def _coerce(self, key: str, value: Any) -> Any:
        if key == ID_FIELD and value is not None:
            return to_object_id(value)
        return value

    def _value(self, key: str, value: Any) -> Any:
        if isinstance(value, Comparator):
            return self._comparator(key, value)
        if isinstance(value, (list, tuple, set, frozenset)):
            return {"$in": self._coerce(key, list(value))}
        return self._coerce(key, value)

    def _comparator(self, key: str, comp: Comparator) -> Any:
        op, value = comp.operator, comp.value
        if op == cmp.EQ:
            return self._value(key, value)
        if op in _RANGE_OPERATORS:
            return {_RANGE_OPERATORS[op]: self._coerce(key, value)}
        if op == cmp.BETWEEN:
            low, high = (self._coerce(key, v) for v in value)
            return {"$gte": low, "$lte": high}
        if op == cmp.NOT_BETWEEN:
            low, high = (self._coerce(key, v) for v in value)
            return {"$not": {"$gte": low, "$lte": high}}
        if op == cmp.NOT_IN:
            return {"$nin": self._coerce(key, list(value))}
        if op == cmp.LIKE:
            return {"$regex": like_to_regex(value)}
        # NOT_LIKE
        return {"$not": {"$regex": like_to_regex(value)}}


__all__ = [
    "ID_FIELD",
    "MongoFind",
    "MongoCount",
    "MongoQueryBuilder",
    "to_object_id",
    "like_to_regex",
]
