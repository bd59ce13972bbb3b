"""PostgreSQL driver (asyncpg).

Manifesto:
    Every statement is built by :class:`SqlQueryBuilder` with ``$n``
    placeholders and sent with its parameters bound; no value is ever
    formatted into SQL text.  Results come back as ``asyncpg.Record`` and
    leave the driver as plain dicts.

Features:
    - Single connection or, with ``DriverOptions.pool``, an asyncpg pool
    - Joins (``merge``) and EXISTS subqueries
    - ``INSERT ... RETURNING`` to read back the generated identifier
    - Catalog-based schema inference
    - Termination listener feeding ``on("error")`` handlers

Error translation:
    ``asyncpg.PostgresError``           -> QueryError
    ``asyncpg.InterfaceError`` (input)  -> QueryError
    ``asyncpg.InterfaceError``/OSError  -> DatabaseConnectionError (+ handlers)

Tags:
    ormkit, postgresql, asyncpg, driver

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, NoReturn

import asyncpg

from ormkit.core.errors import DatabaseConnectionError, InvalidRequestError, QueryError
from ormkit.core.introspection import catalog_query, map_columns
from ormkit.core.logging import get_logger
from ormkit.core.normalize import Row, records_to_rows, scalar_count, status_to_count
from ormkit.core.properties import Property, PropertyType, property_to_value, value_to_property
from ormkit.core.protocols import SqlConnection
from ormkit.core.query.request import FindOptions
from ormkit.core.query.sql import COUNT_ALIAS, SqlQuery, SqlQueryBuilder

from .base import Driver
from .types import ConnectionConfig, DriverOptions

logger = get_logger(__name__)

PING_QUERY = SqlQuery("SELECT * FROM pg_stat_activity LIMIT 1")


class PostgresDriver(Driver):
    """
    PostgreSQL driver.

    Example:
        driver = PostgresDriver(ConnectionConfig.from_url("postgres://app@localhost/app"))
        await driver.connect()
        rows = await driver.find(["name"], "users", {"id": 1})
    """

    name = "postgres"

    def __init__(
        self,
        config: ConnectionConfig | None = None,
        *,
        connection: SqlConnection | None = None,
        options: DriverOptions | None = None,
    ):
        super().__init__(config, connection=connection, options=options)
        self._query = SqlQueryBuilder()
        self._listening = False
        if connection is not None:
            self._observe()

    # -- Lifecycle ------------------------------------------------------------

    async def connect(self) -> None:
        if self._connection is not None:
            self._observe()
            return
        if self.config is None:
            raise DatabaseConnectionError("No configuration to connect with").with_context(
                driver=self.name, operation="connect"
            )

        dsn = self.config.to_dsn("postgresql")
        kwargs: dict[str, Any] = {}
        if self.config.ssl:
            kwargs["ssl"] = True
        if self.options.connect_timeout is not None:
            kwargs["timeout"] = self.options.connect_timeout

        try:
            if self.options.pool:
                self._connection = await asyncpg.create_pool(dsn, **kwargs)
            else:
                self._connection = await asyncpg.connect(dsn, **kwargs)
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            raise self._connection_error(e, "connect") from e

        self._owns_connection = True
        self._observe()
        logger.info(
            "driver.connected",
            driver=self.name,
            target=self.config.redacted(),
            pool=self.options.pool,
        )

    async def close(self) -> None:
        conn, self._connection = self._connection, None
        if conn is None:
            return
        self._unobserve(conn)
        if not self._owns_connection:
            logger.debug("driver.released", driver=self.name)
            return
        try:
            await conn.close()
        except (asyncpg.InterfaceError, OSError) as e:
            raise self._connection_error(e, "close") from e
        logger.info("driver.closed", driver=self.name)

    async def ping(self) -> None:
        conn = self._require_connection("ping")
        self._debug(PING_QUERY)
        try:
            await conn.fetch(PING_QUERY.text)
        except asyncpg.PostgresError as e:
            logger.debug("driver.ping_query_failed", driver=self.name, error=str(e))
        except (asyncpg.InterfaceError, OSError) as e:
            raise self._connection_error(e, "ping") from e

    def _observe(self) -> None:
        # Pools have no termination listener.
        if self._listening or not hasattr(self._connection, "add_termination_listener"):
            return
        self._connection.add_termination_listener(self._on_terminated)
        self._listening = True

    def _unobserve(self, conn: Any) -> None:
        if self._listening and hasattr(conn, "remove_termination_listener"):
            conn.remove_termination_listener(self._on_terminated)
        self._listening = False

    def _on_terminated(self, connection: Any) -> None:
        self._listening = False
        self._connection_error(ConnectionAbortedError("connection terminated"), "listen")

    # -- Execution ------------------------------------------------------------

    def _fail(self, exc: BaseException, operation: str, query: SqlQuery, table: str | None) -> NoReturn:
        if isinstance(exc, asyncpg.PostgresError) or (
            isinstance(exc, asyncpg.InterfaceError) and isinstance(exc, ValueError)
        ):
            error = QueryError(str(exc), cause=exc).with_context(
                driver=self.name, operation=operation, table=table, query=query.text
            )
            raise error from exc
        raise self._connection_error(exc, operation, table, query.text) from exc

    async def _fetch(self, query: SqlQuery, operation: str, table: str | None = None) -> list[Row]:
        conn = self._require_connection(operation)
        self._debug(query.text, query.params)
        try:
            records = await conn.fetch(query.text, *query.params)
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            self._fail(e, operation, query, table)
        return records_to_rows(records)

    async def _execute(self, query: SqlQuery, operation: str, table: str | None = None) -> str:
        conn = self._require_connection(operation)
        self._debug(query.text, query.params)
        try:
            return await conn.execute(query.text, *query.params)
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            self._fail(e, operation, query, table)

    # -- Data operations ------------------------------------------------------

    async def find(
        self,
        fields: Sequence[str],
        table: str,
        conditions: Mapping[str, Any] | None = None,
        options: FindOptions | Mapping[str, Any] | None = None,
    ) -> list[Row]:
        query = self._query.select(table, fields, conditions, options)
        return await self._fetch(query, "find", table)

    async def count(
        self,
        table: str,
        conditions: Mapping[str, Any] | None = None,
        options: FindOptions | Mapping[str, Any] | None = None,
    ) -> int:
        query = self._query.count(table, conditions, options)
        rows = await self._fetch(query, "count", table)
        return scalar_count(rows, COUNT_ALIAS)

    async def insert(self, table: str, data: Mapping[str, Any], id_property: str = "id") -> Row:
        query = self._query.insert(table, data)
        rows = await self._fetch(query, "insert", table)
        return {id_property: rows[0].get(id_property) if rows else None}

    async def update(
        self,
        table: str,
        changes: Mapping[str, Any],
        conditions: Mapping[str, Any] | None = None,
    ) -> int:
        query = self._query.update(table, changes, conditions)
        return status_to_count(await self._execute(query, "update", table))

    async def remove(self, table: str, conditions: Mapping[str, Any] | None = None) -> int:
        query = self._query.delete(table, conditions)
        return status_to_count(await self._execute(query, "remove", table))

    async def clear(self, table: str) -> None:
        await self._execute(self._query.truncate(table), "clear", table)

    # -- Schema ---------------------------------------------------------------

    async def infer(self, table: str) -> dict[str, PropertyType]:
        """Column types from ``information_schema``; unmapped types raise."""
        rows = await self._fetch(catalog_query(table), "infer", table)
        return map_columns(rows)

    async def sync(
        self,
        table: str,
        properties: Mapping[str, Property | Any],
        id_property: str = "id",
    ) -> None:
        parsed = {name: Property.parse(spec) for name, spec in properties.items()}
        query = self._query.create_table(table, parsed, id_property)
        await self._execute(query, "sync", table)
        logger.info("driver.synced", driver=self.name, table=table, columns=len(parsed))

    async def drop(self, table: str) -> None:
        await self._execute(self._query.drop_table(table), "drop", table)
        logger.info("driver.dropped", driver=self.name, table=table)

    # -- Coercion -------------------------------------------------------------

    def value_to_property(self, value: Any, prop: Property) -> Any:
        return value_to_property(value, prop)

    def property_to_value(self, value: Any, prop: Property) -> Any:
        return property_to_value(value, prop)

    # -- Escape hatches -------------------------------------------------------

    def get_query(self) -> SqlQueryBuilder:
        return self._query

    async def exec_query(
        self,
        query: SqlQuery | str,
        params: Sequence[Any] | None = None,
    ) -> list[Row]:
        """Run ``query`` (a built ``SqlQuery`` or raw text plus ``params``)."""
        if isinstance(query, str):
            query = SqlQuery(query, tuple(params or ()))
        elif not isinstance(query, SqlQuery):
            raise InvalidRequestError(f"Cannot execute {type(query).__name__} on {self.name}")
        elif params:
            query = SqlQuery(query.text, tuple(params))
        return await self._fetch(query, "exec_query")


__all__ = [
    "PostgresDriver",
]
