"""Driver base class.

Manifesto:
    The model layer above a driver issues the same operations whichever
    store sits underneath: find, count, insert, update, remove, clear.
    The abstract base class fixes that contract (names, arguments, return
    shapes, error kinds) so no caller depends on a specific store.

Features:
    - Abstract connect/close/ping and the full data operation set
    - Owned vs borrowed handles: a handle passed in by the caller is only
      referenced, never closed
    - ``on("error", handler)`` observation of connection-level failures
    - ``reconnect()`` for owned connections
    - Debug side channel via ``log_query``
    - ``async with driver:`` connects and closes

Tags:
    ormkit, driver, abstract-base, adapter-pattern

Doc-Types:
    api-reference
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping, Sequence
from typing import Any, ClassVar

from ormkit.core.errors import (
    ConfigError,
    DatabaseConnectionError,
    InvalidRequestError,
    OrmError,
    UnsupportedOperationError,
)
from ormkit.core.logging import get_logger, log_query
from ormkit.core.normalize import Row
from ormkit.core.properties import Property
from ormkit.core.query.request import FindOptions

from .types import ConnectionConfig, DriverOptions

logger = get_logger(__name__)

ErrorHandler = Callable[[OrmError], Any]

EVENTS = frozenset({"error"})


class Driver(ABC):
    """
    Abstract base class for store drivers.

    A driver holds exactly one underlying handle.  It either creates that
    handle itself from ``config`` (owned) or wraps one supplied by the
    caller (borrowed); borrowed handles are never closed by the driver.
    """

    name: ClassVar[str]

    def __init__(
        self,
        config: ConnectionConfig | None = None,
        *,
        connection: Any = None,
        options: DriverOptions | None = None,
    ):
        if config is None and connection is None:
            raise ConfigError(f"{type(self).__name__} needs a configuration or a connection")
        self.config = config
        self.options = options or DriverOptions()
        self._connection = connection
        self._owns_connection = connection is None
        self._error_handlers: list[ErrorHandler] = []

    # -- State ----------------------------------------------------------------

    @property
    def connection(self) -> Any:
        """The underlying store handle (``None`` when not connected)."""
        return self._connection

    @property
    def owns_connection(self) -> bool:
        return self._owns_connection

    @property
    def is_connected(self) -> bool:
        return self._connection is not None

    def _require_connection(self, operation: str) -> Any:
        if self._connection is None:
            raise DatabaseConnectionError(f"{self.name} driver is not connected").with_context(
                driver=self.name, operation=operation
            )
        return self._connection

    # -- Events ---------------------------------------------------------------

    def on(self, event: str, handler: ErrorHandler) -> Driver:
        """Register a handler; only ``"error"`` is emitted."""
        if event not in EVENTS:
            raise InvalidRequestError(f"Unknown driver event: {event!r}")
        self._error_handlers.append(handler)
        return self

    def off(self, event: str, handler: ErrorHandler) -> Driver:
        if event in EVENTS and handler in self._error_handlers:
            self._error_handlers.remove(handler)
        return self

    def _emit_error(self, error: OrmError) -> None:
        logger.warning("driver.error", driver=self.name, **error.to_dict())
        for handler in list(self._error_handlers):
            try:
                handler(error)
            except Exception:
                logger.exception("driver.error_handler_failed", driver=self.name)

    def _connection_error(
        self,
        exc: BaseException,
        operation: str,
        table: str | None = None,
        query: Any = None,
    ) -> DatabaseConnectionError:
        """Build a connection error, report it to handlers and return it for raising."""
        error = DatabaseConnectionError(str(exc) or type(exc).__name__, cause=exc)
        error.with_context(driver=self.name, operation=operation, table=table)
        if query is not None:
            error.with_context(query=str(query))
        self._emit_error(error)
        return error

    def _debug(self, query: Any, params: Sequence[Any] | None = None) -> None:
        if self.options.debug:
            log_query(self.name, query, params)

    # -- Lifecycle ------------------------------------------------------------

    @abstractmethod
    async def connect(self) -> None:
        """Open the underlying connection (no-op for a borrowed handle)."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release the connection. Calling it again is a no-op."""
        ...

    @abstractmethod
    async def ping(self) -> None:
        """Trivial round trip; query-level failures are swallowed."""
        ...

    async def reconnect(self) -> None:
        """Drop the current handle and connect again.

        Only for owned connections: a borrowed handle belongs to the caller,
        who is the one able to re-establish it.
        """
        if not self._owns_connection:
            raise UnsupportedOperationError(
                "Cannot reconnect a borrowed connection"
            ).with_context(driver=self.name, operation="reconnect")
        logger.info("driver.reconnecting", driver=self.name)
        try:
            await self.close()
        except DatabaseConnectionError as e:
            logger.warning("driver.stale_close_failed", driver=self.name, error=str(e))
        await self.connect()

    async def __aenter__(self) -> Driver:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # -- Data operations ------------------------------------------------------

    @abstractmethod
    async def find(
        self,
        fields: Sequence[str],
        table: str,
        conditions: Mapping[str, Any] | None = None,
        options: FindOptions | Mapping[str, Any] | None = None,
    ) -> list[Row]:
        """Rows of ``table`` matching ``conditions``, projected to ``fields``."""
        ...

    @abstractmethod
    async def count(
        self,
        table: str,
        conditions: Mapping[str, Any] | None = None,
        options: FindOptions | Mapping[str, Any] | None = None,
    ) -> int:
        """Number of matching rows; pagination options are ignored."""
        ...

    @abstractmethod
    async def insert(self, table: str, data: Mapping[str, Any], id_property: str = "id") -> Row:
        """Persist one row and return ``{id_property: generated_id}``."""
        ...

    @abstractmethod
    async def update(
        self,
        table: str,
        changes: Mapping[str, Any],
        conditions: Mapping[str, Any] | None = None,
    ) -> int:
        """Apply ``changes`` to every matching row; returns the matched count."""
        ...

    @abstractmethod
    async def remove(self, table: str, conditions: Mapping[str, Any] | None = None) -> int:
        """Delete every matching row; returns the deleted count."""
        ...

    @abstractmethod
    async def clear(self, table: str) -> None:
        """Remove all rows of ``table``."""
        ...

    # -- Schema ---------------------------------------------------------------

    async def infer(self, table: str) -> dict[str, Any]:
        """Column name -> property type, from the store's catalog."""
        raise UnsupportedOperationError(
            f"{self.name} driver does not support schema inference"
        ).with_context(driver=self.name, table=table, operation="infer")

    @abstractmethod
    async def sync(
        self,
        table: str,
        properties: Mapping[str, Property | Any],
        id_property: str = "id",
    ) -> None:
        """Create ``table`` if it does not exist."""
        ...

    @abstractmethod
    async def drop(self, table: str) -> None:
        ...

    # -- Coercion -------------------------------------------------------------

    def value_to_property(self, value: Any, prop: Property) -> Any:
        """Stored value -> model value. Passthrough unless a store overrides it."""
        return value

    def property_to_value(self, value: Any, prop: Property) -> Any:
        """Model value -> stored value. Passthrough unless a store overrides it."""
        return value

    # -- Escape hatches -------------------------------------------------------

    @abstractmethod
    def get_query(self) -> Any:
        """The query builder this driver uses."""
        ...

    @abstractmethod
    async def exec_query(self, query: Any, params: Sequence[Any] | None = None) -> list[Row]:
        """Run a fully built query and return normalized rows."""
        ...

    def __repr__(self) -> str:
        target = self.config.redacted() if self.config else "<borrowed>"
        return f"{type(self).__name__}({target}, connected={self.is_connected})"


__all__ = [
    "Driver",
    "ErrorHandler",
]
