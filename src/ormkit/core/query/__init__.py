"""Query translation -- one abstract request, two dialects.

Manifesto:
    Callers describe *what* they want (fields, table, conditions,
    FindOptions); each store's builder decides *how* to ask for it.  The
    request shape is the only thing the dialects share.

Architecture::

    FindOptions / MergeSpec / ExistsSpec (request.py)   store-agnostic request
    Comparator helpers (comparators.py)                 gt(), like(), between()...
        |
        |-- SqlQueryBuilder (sql.py)       $n-parameterized PostgreSQL
        |-- MongoQueryBuilder (mongo.py)   filter / projection / sort / skip / limit

Guardrails:
    ❌ Formatting a value into statement text
    ✅ ``params.add(value)`` and bind it
    ❌ Silently dropping ``merge`` on a document store
    ✅ Raise ``UnsupportedOperationError``

Tags:
    ormkit, query-builder, sql, mongodb, translation
"""

from .comparators import (
    Comparator,
    between,
    eq,
    gt,
    gte,
    like,
    lt,
    lte,
    ne,
    not_between,
    not_in,
    not_like,
)
from .mongo import MongoCount, MongoFind, MongoQueryBuilder, to_object_id
from .request import DESCENDING_CODE, ExistsSpec, FindOptions, MergeSpec, OrderBy, parse_order
from .sql import SqlQuery, SqlQueryBuilder, escape_id

__all__ = [
    # Request
    "FindOptions",
    "MergeSpec",
    "ExistsSpec",
    "OrderBy",
    "parse_order",
    "DESCENDING_CODE",
    # Comparators
    "Comparator",
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
    # Builders
    "SqlQuery",
    "SqlQueryBuilder",
    "escape_id",
    "MongoFind",
    "MongoCount",
    "MongoQueryBuilder",
    "to_object_id",
]
