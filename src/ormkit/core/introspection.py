"""Schema introspection for relational stores.

A single catalog query lists a table's columns and their native types;
each native type is mapped through a closed table onto the unified
property vocabulary.  A type missing from the table is a hard failure:
the whole mapping is built before anything is returned, so a caller
never sees a partial schema.

Examples:
    >>> map_columns([{"column_name": "id", "data_type": "integer"},
    ...              {"column_name": "meta", "data_type": "jsonb"}])
    {'id': <PropertyType.NUMBER: 'number'>, 'meta': <PropertyType.OBJECT: 'object'>}
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from ormkit.core.errors import UnsupportedTypeError
from ormkit.core.properties import PropertyType
from ormkit.core.query.sql import SqlQuery

NATIVE_TYPES: dict[str, PropertyType] = {
    # numbers
    "smallint": PropertyType.NUMBER,
    "integer": PropertyType.NUMBER,
    "int": PropertyType.NUMBER,
    "bigint": PropertyType.NUMBER,
    "decimal": PropertyType.NUMBER,
    "numeric": PropertyType.NUMBER,
    "real": PropertyType.NUMBER,
    "double precision": PropertyType.NUMBER,
    # strings
    "character varying": PropertyType.STRING,
    "varchar": PropertyType.STRING,
    "character": PropertyType.STRING,
    "char": PropertyType.STRING,
    "text": PropertyType.STRING,
    "boolean": PropertyType.BOOLEAN,
    # dates
    "date": PropertyType.DATE,
    "timestamp without time zone": PropertyType.DATE,
    "timestamp with time zone": PropertyType.DATE,
    # structured
    "json": PropertyType.OBJECT,
    "jsonb": PropertyType.OBJECT,
    "bytea": PropertyType.BINARY,
}


def catalog_query(table: str) -> SqlQuery:
    """Column catalog lookup for ``table`` in the session's current schema.

    The name is bound, not interpolated.
    """
    return SqlQuery(
        "SELECT column_name, data_type FROM information_schema.columns "
        "WHERE table_name = $1 AND table_schema = current_schema() "
        "ORDER BY ordinal_position",
        (table,),
    )


def map_native_type(native_type: str, column: str | None = None) -> PropertyType:
    try:
        return NATIVE_TYPES[native_type.strip().lower()]
    except KeyError:
        raise UnsupportedTypeError(native_type, column) from None


def map_columns(rows: Iterable[Mapping[str, Any]]) -> dict[str, PropertyType]:
    """Map catalog rows (``column_name``, ``data_type``) to property types."""
    mapping: dict[str, PropertyType] = {}
    for row in rows:
        column = row["column_name"]
        mapping[column] = map_native_type(row["data_type"], column)
    return mapping


__all__ = [
    "NATIVE_TYPES",
    "catalog_query",
    "map_native_type",
    "map_columns",
]
