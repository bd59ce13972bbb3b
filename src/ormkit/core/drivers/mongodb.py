"""MongoDB driver (pymongo async API).

Manifesto:
    Conditions become a native filter document, pagination becomes
    skip/limit, ordering becomes a sort specification.  What MongoDB
    cannot express through the shared request shape (joins, existence
    subqueries, catalog inference) fails loudly with
    ``UnsupportedOperationError`` rather than returning wrong rows.

Features:
    - ``AsyncMongoClient`` created and pinged on ``connect()``
    - ``id_property`` conditions rewritten to ``_id`` and coerced to ``ObjectId``
    - Found ``_id`` renamed to ``id_property``; excluded unless projected
    - Generated ``_id`` returned under the caller's ``id_property``
    - Heartbeat failures fed to ``on("error")`` handlers

Error translation:
    ``pymongo.errors.ConfigurationError`` -> ConfigError
    ``pymongo.errors.ConnectionFailure``  -> DatabaseConnectionError (+ handlers)
    other ``pymongo.errors.PyMongoError`` -> QueryError
    ``bson.errors.InvalidDocument``       -> CoercionError

Tags:
    ormkit, mongodb, pymongo, driver

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, NoReturn

from bson.errors import InvalidDocument
from pymongo import AsyncMongoClient, monitoring
from pymongo.errors import ConfigurationError, ConnectionFailure, PyMongoError

from ormkit.core.errors import (
    CoercionError,
    ConfigError,
    DatabaseConnectionError,
    InvalidRequestError,
    QueryError,
)
from ormkit.core.logging import get_logger
from ormkit.core.normalize import Row, documents_to_rows
from ormkit.core.properties import Property
from ormkit.core.protocols import DocumentDatabase
from ormkit.core.query.mongo import MongoCount, MongoFind, MongoQueryBuilder
from ormkit.core.query.request import FindOptions

from .base import Driver
from .types import ConnectionConfig, DriverOptions

logger = get_logger(__name__)

_MONGO_ERRORS = (PyMongoError, InvalidDocument)


class _HeartbeatListener(monitoring.ServerHeartbeatListener):
    """Reports failed server heartbeats to the owning driver's handlers."""

    def __init__(self, driver: MongoDriver):
        self._driver = driver

    def started(self, event: monitoring.ServerHeartbeatStartedEvent) -> None:
        pass

    def succeeded(self, event: monitoring.ServerHeartbeatSucceededEvent) -> None:
        pass

    def failed(self, event: monitoring.ServerHeartbeatFailedEvent) -> None:
        self._driver._connection_error(event.reply, "heartbeat")


class MongoDriver(Driver):
    """
    MongoDB driver.

    A borrowed handle is a database object (``client["app"]``); the
    client behind it stays the caller's.  ``id_property`` names the
    property stored as ``_id``: conditions on it are rewritten to
    ``_id`` and found documents carry ``_id`` back under that name.
    """

    name = "mongodb"

    def __init__(
        self,
        config: ConnectionConfig | None = None,
        *,
        connection: DocumentDatabase | None = None,
        options: DriverOptions | None = None,
        id_property: str = "id",
    ):
        super().__init__(config, connection=connection, options=options)
        self._client: AsyncMongoClient | None = None
        self._query = MongoQueryBuilder(id_property=id_property)

    @property
    def client(self) -> AsyncMongoClient | None:
        return self._client

    # -- Lifecycle ------------------------------------------------------------

    async def connect(self) -> None:
        if self._connection is not None:
            return
        if self.config is None:
            raise DatabaseConnectionError("No configuration to connect with").with_context(
                driver=self.name, operation="connect"
            )
        if not self.config.database:
            raise ConfigError("MongoDB connection needs a database name").with_context(
                driver=self.name, operation="connect"
            )

        scheme = "mongodb+srv" if self.config.protocol == "mongodb+srv" else "mongodb"
        kwargs: dict[str, Any] = {"event_listeners": [_HeartbeatListener(self)]}
        if self.config.ssl:
            kwargs["tls"] = True
        if self.options.connect_timeout is not None:
            timeout_ms = int(self.options.connect_timeout * 1000)
            kwargs["connectTimeoutMS"] = timeout_ms
            kwargs["serverSelectionTimeoutMS"] = timeout_ms

        client: AsyncMongoClient | None = None
        try:
            client = AsyncMongoClient(self.config.to_dsn(scheme), **kwargs)
            database = client[self.config.database]
            await database.command("ping")
        except ConfigurationError as e:
            if client is not None:
                await client.close()
            raise ConfigError(f"Invalid MongoDB configuration: {e}", cause=e).with_context(
                driver=self.name, operation="connect"
            ) from e
        except PyMongoError as e:
            if client is not None:
                await client.close()
            raise self._connection_error(e, "connect") from e

        self._client = client
        self._connection = database
        self._owns_connection = True
        logger.info("driver.connected", driver=self.name, target=self.config.redacted())

    async def close(self) -> None:
        database, self._connection = self._connection, None
        client, self._client = self._client, None
        if database is None:
            return
        if not self._owns_connection or client is None:
            logger.debug("driver.released", driver=self.name)
            return
        try:
            await client.close()
        except PyMongoError as e:
            raise self._connection_error(e, "close") from e
        logger.info("driver.closed", driver=self.name)

    async def ping(self) -> None:
        database = self._require_connection("ping")
        self._debug("db.command('ping')")
        try:
            await database.command("ping")
        except ConnectionFailure as e:
            raise self._connection_error(e, "ping") from e
        except PyMongoError as e:
            logger.debug("driver.ping_query_failed", driver=self.name, error=str(e))

    # -- Execution ------------------------------------------------------------

    def _fail(self, exc: BaseException, operation: str, table: str | None, query: Any = None) -> NoReturn:
        if isinstance(exc, ConnectionFailure):
            raise self._connection_error(exc, operation, table, query) from exc
        if isinstance(exc, InvalidDocument):
            raise CoercionError(str(exc), cause=exc).with_context(
                driver=self.name, operation=operation, table=table
            ) from exc
        error = QueryError(str(exc), cause=exc).with_context(
            driver=self.name, operation=operation, table=table
        )
        if query is not None:
            error.with_context(query=str(query))
        raise error from exc

    def _collection(self, table: str, operation: str) -> Any:
        return self._require_connection(operation)[table]

    async def _run_find(self, query: MongoFind, operation: str) -> list[Row]:
        collection = self._collection(query.collection, operation)
        # pymongo reads limit=0 as "no limit"
        if query.limit == 0:
            return []
        self._debug(query)
        try:
            cursor = collection.find(
                query.filter,
                query.projection,
                skip=query.skip,
                limit=query.limit or 0,
                sort=query.sort,
            )
            documents = await cursor.to_list()
        except _MONGO_ERRORS as e:
            self._fail(e, operation, query.collection, query)
        return documents_to_rows(self._query.rename_id(d) for d in documents)

    async def _run_count(self, query: MongoCount, operation: str) -> int:
        collection = self._collection(query.collection, operation)
        self._debug(query)
        try:
            return await collection.count_documents(query.filter)
        except _MONGO_ERRORS as e:
            self._fail(e, operation, query.collection, query)

    # -- Data operations ------------------------------------------------------

    async def find(
        self,
        fields: Sequence[str],
        table: str,
        conditions: Mapping[str, Any] | None = None,
        options: FindOptions | Mapping[str, Any] | None = None,
    ) -> list[Row]:
        query = self._query.find(table, fields, conditions, options)
        return await self._run_find(query, "find")

    async def count(
        self,
        table: str,
        conditions: Mapping[str, Any] | None = None,
        options: FindOptions | Mapping[str, Any] | None = None,
    ) -> int:
        return await self._run_count(self._query.count(table, conditions, options), "count")

    async def insert(self, table: str, data: Mapping[str, Any], id_property: str = "id") -> Row:
        collection = self._collection(table, "insert")
        # insert_one sets _id on the document it is given
        document = dict(data)
        self._debug(f"db.{table}.insertOne({document!r})")
        try:
            result = await collection.insert_one(document)
        except _MONGO_ERRORS as e:
            self._fail(e, "insert", table)
        return {id_property: result.inserted_id}

    async def update(
        self,
        table: str,
        changes: Mapping[str, Any],
        conditions: Mapping[str, Any] | None = None,
    ) -> int:
        if not changes:
            raise InvalidRequestError(f"Update on {table!r} has no changes")
        collection = self._collection(table, "update")
        filter_doc = self._query.filter(conditions)
        update_doc = self._query.update(changes)
        self._debug(f"db.{table}.updateMany({filter_doc!r}, {update_doc!r})")
        try:
            result = await collection.update_many(filter_doc, update_doc)
        except _MONGO_ERRORS as e:
            self._fail(e, "update", table)
        return result.matched_count

    async def remove(self, table: str, conditions: Mapping[str, Any] | None = None) -> int:
        collection = self._collection(table, "remove")
        filter_doc = self._query.filter(conditions)
        self._debug(f"db.{table}.deleteMany({filter_doc!r})")
        try:
            result = await collection.delete_many(filter_doc)
        except _MONGO_ERRORS as e:
            self._fail(e, "remove", table)
        return result.deleted_count

    async def clear(self, table: str) -> None:
        collection = self._collection(table, "clear")
        self._debug(f"db.{table}.deleteMany({{}})")
        try:
            await collection.delete_many({})
        except _MONGO_ERRORS as e:
            self._fail(e, "clear", table)

    # -- Schema ---------------------------------------------------------------

    async def sync(
        self,
        table: str,
        properties: Mapping[str, Property | Any],
        id_property: str = "id",
    ) -> None:
        """Create the collection if missing and unique indexes for unique properties."""
        database = self._require_connection("sync")
        parsed = {name: Property.parse(spec) for name, spec in properties.items()}
        try:
            if table not in await database.list_collection_names():
                await database.create_collection(table)
            for name, prop in parsed.items():
                if prop.unique:
                    await database[table].create_index(name, unique=True)
        except _MONGO_ERRORS as e:
            self._fail(e, "sync", table)
        logger.info("driver.synced", driver=self.name, table=table)

    async def drop(self, table: str) -> None:
        database = self._require_connection("drop")
        try:
            await database.drop_collection(table)
        except _MONGO_ERRORS as e:
            self._fail(e, "drop", table)
        logger.info("driver.dropped", driver=self.name, table=table)

    # -- Escape hatches -------------------------------------------------------

    def get_query(self) -> MongoQueryBuilder:
        return self._query

    async def exec_query(self, query: Any, params: Sequence[Any] | None = None) -> list[Row]:
        """Run a built ``MongoFind`` (rows) or ``MongoCount`` (``[{"count": n}]``)."""
        if isinstance(query, MongoFind):
            return await self._run_find(query, "exec_query")
        if isinstance(query, MongoCount):
            return [{"count": await self._run_count(query, "exec_query")}]
        raise InvalidRequestError(f"Cannot execute {type(query).__name__} on {self.name}")


__all__ = [
    "MongoDriver",
]
