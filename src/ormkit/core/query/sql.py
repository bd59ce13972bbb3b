"""Parameterized SQL query builder (PostgreSQL dialect).

Translates the abstract request (fields, table, conditions, FindOptions)
into a ``SqlQuery``: statement text with numbered ``$n`` placeholders plus
the bound parameter tuple, ready for ``asyncpg``'s ``fetch(text, *params)``.

Values never reach the statement text.  Identifiers (tables, columns) do,
always double-quoted with embedded quotes doubled.

Examples:
    >>> b = SqlQueryBuilder()
    >>> q = b.select("users", ["name"], {"id": 1}, FindOptions(limit=5, order=("name", "Z")))
    >>> q.text
    'SELECT "name" FROM "users" WHERE "id" = $1 ORDER BY "name" DESC LIMIT $2'
    >>> q.params
    (1, 5)

Joins:
    With ``merge`` or ``exists`` in the options every table gets an alias
    (``t1`` queried table, ``t2`` merged table, ``e1``.. existence
    subqueries) and every column reference is qualified, so the same
    column name on both sides is never ambiguous.

Tags:
    ormkit, sql, postgresql, query-builder, parameterized
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from ormkit.core.errors import InvalidRequestError
from ormkit.core.properties import Property, PropertyType
from ormkit.core.query import comparators as cmp
from ormkit.core.query.comparators import Comparator
from ormkit.core.query.request import ExistsSpec, FindOptions, MergeSpec

MAIN_ALIAS = "t1"
MERGE_ALIAS = "t2"
COUNT_ALIAS = "c"

_RANGE_OPERATORS = {
    cmp.NE: "<>",
    cmp.GT: ">",
    cmp.GTE: ">=",
    cmp.LT: "<",
    cmp.LTE: "<=",
    cmp.LIKE: "LIKE",
    cmp.NOT_LIKE: "NOT LIKE",
}

COLUMN_TYPES: dict[PropertyType, str] = {
    PropertyType.STRING: "TEXT",
    PropertyType.NUMBER: "DOUBLE PRECISION",
    PropertyType.BOOLEAN: "BOOLEAN",
    PropertyType.DATE: "TIMESTAMP WITH TIME ZONE",
    PropertyType.OBJECT: "JSONB",
    PropertyType.BINARY: "BYTEA",
}


@dataclass(frozen=True)
class SqlQuery:
    """A built statement and its bound parameters."""

    text: str
    params: tuple[Any, ...] = ()

    def __str__(self) -> str:
        return self.text


def escape_id(name: str) -> str:
    """Quote an identifier; ``schema.table`` / ``table.column`` are split on dots."""
    if name == "*":
        return name
    return ".".join('"' + part.replace('"', '""') + '"' for part in name.split("."))


class _Params:
    """Collects bound values and hands out their placeholders."""

    def __init__(self) -> None:
        self.values: list[Any] = []

    def add(self, value: Any) -> str:
        self.values.append(value)
        return f"${len(self.values)}"


class _Scope:
    """Resolves column references for the tables taking part in a query."""

    def __init__(self, table: str, options: FindOptions):
        self.table = table
        self.aliased = options.needs_joins

    def main(self, column: str) -> str:
        if not self.aliased or "." in column:
            return escape_id(column)
        return f"{MAIN_ALIAS}.{escape_id(column)}"

    def qualified(self, alias: str, column: str) -> str:
        if "." in column:
            return escape_id(column)
        return f"{alias}.{escape_id(column)}"

    def from_clause(self) -> str:
        if self.aliased:
            return f"{escape_id(self.table)} {MAIN_ALIAS}"
        return escape_id(self.table)


class SqlQueryBuilder:
    """
    Builds PostgreSQL statements from abstract requests.

    Stateless: every method returns a fresh ``SqlQuery``, so a single
    builder is shared by a driver and handed out through ``get_query()``.
    """

    dialect = "postgresql"

    def escape_id(self, name: str) -> str:
        return escape_id(name)

    # -- SELECT ---------------------------------------------------------------

    def select(
        self,
        table: str,
        fields: Sequence[str],
        conditions: Mapping[str, Any] | None = None,
        options: FindOptions | Mapping[str, Any] | None = None,
    ) -> SqlQuery:
        """SELECT with projection, filter, joins, ordering and pagination."""
        options = FindOptions.coerce(options)
        scope = _Scope(table, options)
        params = _Params()

        columns = [scope.main(f) for f in fields]
        if not columns:
            columns = [f"{MAIN_ALIAS}.*" if scope.aliased else "*"]
        if options.merge is not None:
            columns.extend(scope.qualified(MERGE_ALIAS, f) for f in options.merge.select)

        text = f"SELECT {', '.join(columns)} FROM {scope.from_clause()}"
        text += self._joins(scope, options)
        text += self._where_clause(scope, conditions, options, params)

        if options.order:
            terms = [
                f"{scope.main(term.field)} {'DESC' if term.descending else 'ASC'}"
                for term in options.order
            ]
            text += " ORDER BY " + ", ".join(terms)
        if options.limit is not None:
            text += f" LIMIT {params.add(options.limit)}"
        if options.offset:
            text += f" OFFSET {params.add(options.offset)}"

        return SqlQuery(text, tuple(params.values))

    def count(
        self,
        table: str,
        conditions: Mapping[str, Any] | None = None,
        options: FindOptions | Mapping[str, Any] | None = None,
    ) -> SqlQuery:
        """COUNT over the same filter/join/exists semantics as select, no pagination."""
        options = FindOptions.coerce(options)
        scope = _Scope(table, options)
        params = _Params()

        column = scope.main(options.count_column) if options.count_column else "*"
        text = f"SELECT COUNT({column}) AS {escape_id(COUNT_ALIAS)} FROM {scope.from_clause()}"
        text += self._joins(scope, options)
        text += self._where_clause(scope, conditions, options, params)

        return SqlQuery(text, tuple(params.values))

    # -- DML ------------------------------------------------------------------

    def insert(self, table: str, data: Mapping[str, Any], returning: str | None = "*") -> SqlQuery:
        params = _Params()
        if data:
            columns = ", ".join(escape_id(k) for k in data)
            values = ", ".join(params.add(v) for v in data.values())
            text = f"INSERT INTO {escape_id(table)} ({columns}) VALUES ({values})"
        else:
            text = f"INSERT INTO {escape_id(table)} DEFAULT VALUES"
        if returning:
            text += f" RETURNING {escape_id(returning)}"
        return SqlQuery(text, tuple(params.values))

    def update(
        self,
        table: str,
        changes: Mapping[str, Any],
        conditions: Mapping[str, Any] | None = None,
    ) -> SqlQuery:
        if not changes:
            raise InvalidRequestError(f"Update on {table!r} has no changes")
        params = _Params()
        assignments = ", ".join(f"{escape_id(k)} = {params.add(v)}" for k, v in changes.items())
        text = f"UPDATE {escape_id(table)} SET {assignments}"
        text += self._where_clause(_Scope(table, FindOptions()), conditions, None, params)
        return SqlQuery(text, tuple(params.values))

    def delete(self, table: str, conditions: Mapping[str, Any] | None = None) -> SqlQuery:
        params = _Params()
        text = f"DELETE FROM {escape_id(table)}"
        text += self._where_clause(_Scope(table, FindOptions()), conditions, None, params)
        return SqlQuery(text, tuple(params.values))

    def truncate(self, table: str) -> SqlQuery:
        return SqlQuery(f"TRUNCATE TABLE {escape_id(table)}")

    # -- DDL ------------------------------------------------------------------

    def create_table(
        self,
        table: str,
        properties: Mapping[str, Property],
        id_property: str = "id",
    ) -> SqlQuery:
        """``CREATE TABLE IF NOT EXISTS`` with a serial key and one column per property."""
        columns = [f"{escape_id(id_property)} SERIAL PRIMARY KEY"]
        for name, prop in properties.items():
            if name == id_property:
                continue
            columns.append(f"{escape_id(name)} {column_type(prop)}")
        return SqlQuery(f"CREATE TABLE IF NOT EXISTS {escape_id(table)} ({', '.join(columns)})")

    def drop_table(self, table: str) -> SqlQuery:
        return SqlQuery(f"DROP TABLE IF EXISTS {escape_id(table)}")

    # -- Internals ------------------------------------------------------------

    def _joins(self, scope: _Scope, options: FindOptions) -> str:
        merge = options.merge
        if merge is None:
            return ""
        on = " AND ".join(
            f"{scope.qualified(MERGE_ALIAS, src)} = {scope.main(dst)}"
            for src, dst in zip(merge.from_field, merge.to_field, strict=True)
        )
        return f" JOIN {escape_id(merge.from_table)} {MERGE_ALIAS} ON {on}"

    def _where_clause(
        self,
        scope: _Scope,
        conditions: Mapping[str, Any] | None,
        options: FindOptions | None,
        params: _Params,
    ) -> str:
        clauses: list[str] = []
        merge: MergeSpec | None = options.merge if options else None

        if merge is not None and merge.where:
            clauses.extend(
                self._conditions(merge.where, lambda c: scope.qualified(MERGE_ALIAS, c), params)
            )
        if conditions:
            clauses.extend(self._conditions(conditions, scope.main, params))
        if options and options.exists:
            for index, spec in enumerate(options.exists.values(), start=1):
                clauses.append(self._exists(scope, spec, f"e{index}", params))

        if not clauses:
            return ""
        return " WHERE " + " AND ".join(clauses)

    def _exists(self, scope: _Scope, spec: ExistsSpec, alias: str, params: _Params) -> str:
        links = [
            f"{scope.qualified(alias, link)} = {scope.main(parent)}"
            for link, parent in zip(spec.link_fields, spec.parent_fields, strict=True)
        ]
        links.extend(
            self._conditions(spec.conditions, lambda c: scope.qualified(alias, c), params)
        )
        return (
            f"EXISTS (SELECT 1 FROM {escape_id(spec.table)} {alias} "
            f"WHERE {' AND '.join(links)})"
        )

    def _conditions(self, conditions: Mapping[str, Any], ref, params: _Params) -> Iterable[str]:
        for column, value in conditions.items():
            yield self._condition(ref(column), value, params)

    def _condition(self, ref: str, value: Any, params: _Params) -> str:
        if isinstance(value, Comparator):
            return self._comparator(ref, value, params)
        if value is None:
            return f"{ref} IS NULL"
        if isinstance(value, (list, tuple, set, frozenset)):
            if not value:
                return "FALSE"
            return f"{ref} IN ({', '.join(params.add(v) for v in value)})"
        return f"{ref} = {params.add(value)}"

    def _comparator(self, ref: str, comp: Comparator, params: _Params) -> str:
        op, value = comp.operator, comp.value
        if op == cmp.EQ:
            return self._condition(ref, value, params)
        if op == cmp.NE and value is None:
            return f"{ref} IS NOT NULL"
        if op == cmp.BETWEEN:
            return f"{ref} BETWEEN {params.add(value[0])} AND {params.add(value[1])}"
        if op == cmp.NOT_BETWEEN:
            return f"{ref} NOT BETWEEN {params.add(value[0])} AND {params.add(value[1])}"
        if op == cmp.NOT_IN:
            if not value:
                return "TRUE"
            return f"{ref} NOT IN ({', '.join(params.add(v) for v in value)})"
        return f"{ref} {_RANGE_OPERATORS[op]} {params.add(value)}"


def column_type(prop: Property) -> str:
    """DDL column type for a property."""
    if prop.type is PropertyType.STRING and prop.size:
        sql = f"VARCHAR({int(prop.size)})"
    elif prop.type is PropertyType.NUMBER and not prop.rational:
        sql = "INTEGER"
    else:
        sql = COLUMN_TYPES[prop.type]
    if prop.required:
        sql += " NOT NULL"
    if prop.unique:
        sql += " UNIQUE"
    return sql


__all__ = [
    "SqlQuery",
    "SqlQueryBuilder",
    "escape_id",
    "column_type",
    "COLUMN_TYPES",
]
