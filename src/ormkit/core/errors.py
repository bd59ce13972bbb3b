"""
Structured error types for ormkit drivers.

Every failure a driver can surface is an ``OrmError`` subclass carrying a
category, a structured context (driver, table, operation, query) and the
chained store-native exception that caused it.  Callers catch on the
class; logging and alerting read ``to_dict()``.

Manifesto:
    - **Typed hierarchy:** One class per failure kind a caller must tell apart
    - **Translate at the boundary:** asyncpg / pymongo exceptions never leak
      untyped; the original is kept as ``cause``
    - **No retry semantics:** The core never retries, so errors do not
      pretend to know whether a retry would help
    - **Rich context:** Errors carry the table and query that failed

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                          OrmError                             │
        │            (category, context, cause, to_dict)                │
        ├──────────────────────────────────────────────────────────────┤
        │                                                               │
        │  DatabaseConnectionError   ConfigError        QueryError      │
        │  (CONNECTION)              (CONFIG)           (QUERY)         │
        │                                │                              │
        │                        UnknownProtocolError                   │
        │                                                               │
        │  UnsupportedOperationError  SchemaError       CoercionError   │
        │  (CAPABILITY)               (SCHEMA)          (COERCION)      │
        │                                │                              │
        │                        UnsupportedTypeError                   │
        │                                                               │
        │  InvalidRequestError        TaskError                         │
        │  (VALIDATION)               (INTERNAL, names failing task)    │
        └──────────────────────────────────────────────────────────────┘

Examples:
    Translating a store error:

    >>> try:
    ...     await conn.fetch(sql, *params)
    ... except asyncpg.PostgresError as e:
    ...     raise QueryError(str(e), cause=e).with_context(table="users") from e

    Adding context fluently:

    >>> err = UnsupportedOperationError("joins are not supported")
    >>> err.with_context(driver="mongodb", operation="find").context.driver
    'mongodb'

Guardrails:
    ❌ DON'T: Raise bare Exception from a driver
    ✅ DO: Raise the OrmError subclass for the failure kind

    ❌ DON'T: Drop the store exception
    ✅ DO: Pass it as cause= and chain with ``from``

Tags:
    error-handling, exception-hierarchy, error-context, ormkit, drivers
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    CONNECTION = "CONNECTION"      # Network, auth, closed handle
    CONFIG = "CONFIG"              # Bad URL, unknown protocol
    QUERY = "QUERY"                # Store rejected a constructed query
    SCHEMA = "SCHEMA"              # Introspection / DDL problems
    CAPABILITY = "CAPABILITY"      # Feature the store cannot provide
    COERCION = "COERCION"          # Value could not be written
    VALIDATION = "VALIDATION"      # Malformed request from the caller

    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Only non-None fields are serialized; anything that does not have a
    dedicated field goes into ``metadata``.
    """

    driver: str | None = None
    protocol: str | None = None
    table: str | None = None
    operation: str | None = None
    query: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["driver", "protocol", "table", "operation", "query"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class OrmError(Exception):
    """
    Base exception for all ormkit errors.

    Subclasses set ``default_category``; everything else is per-instance.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> OrmError:
        """
        Add context to this error (fluent API).

        Usage:
            raise QueryError("rejected", cause=e).with_context(
                driver="postgres", table="users"
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONNECTION
# =============================================================================


class DatabaseConnectionError(OrmError):
    """Connect, close or network failure against the underlying store."""

    default_category = ErrorCategory.CONNECTION


# =============================================================================
# CONFIGURATION
# =============================================================================


class ConfigError(OrmError):
    """Invalid connection configuration."""

    default_category = ErrorCategory.CONFIG


class UnknownProtocolError(ConfigError):
    """The registry cannot resolve a protocol name to a driver."""

    def __init__(self, protocol: str, known: list[str] | None = None):
        message = f"Unknown driver protocol: {protocol!r}"
        if known:
            message += f" (known: {', '.join(known)})"
        super().__init__(message)
        self.protocol = protocol
        self.context.protocol = protocol


# =============================================================================
# QUERY / CAPABILITY
# =============================================================================


class QueryError(OrmError):
    """The store rejected a constructed query. Propagated verbatim."""

    default_category = ErrorCategory.QUERY


class UnsupportedOperationError(OrmError):
    """A capability (joins, subqueries, introspection) the store lacks."""

    default_category = ErrorCategory.CAPABILITY


class InvalidRequestError(OrmError):
    """A find/count request that violates its own invariants."""

    default_category = ErrorCategory.VALIDATION


# =============================================================================
# SCHEMA
# =============================================================================


class SchemaError(OrmError):
    """Schema introspection or DDL failure."""

    default_category = ErrorCategory.SCHEMA


class UnsupportedTypeError(SchemaError):
    """A native column type has no unified property type."""

    def __init__(self, native_type: str, column: str | None = None):
        message = f"Unknown type found during inference: {native_type}"
        if column:
            message += f" (column {column!r})"
        super().__init__(message)
        self.native_type = native_type
        self.column = column


# =============================================================================
# COERCION
# =============================================================================


class CoercionError(OrmError):
    """A value could not be converted to its stored representation."""

    default_category = ErrorCategory.COERCION


# =============================================================================
# SEQUENTIAL TASKS
# =============================================================================


class TaskError(OrmError):
    """A task in a serial run failed; the run stopped there."""

    def __init__(self, task: str, cause: BaseException):
        super().__init__(f"Task {task!r} failed: {cause}", cause=cause)
        self.task = task
        self.context.metadata["task"] = task


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "OrmError",
    "DatabaseConnectionError",
    "ConfigError",
    "UnknownProtocolError",
    "QueryError",
    "UnsupportedOperationError",
    "InvalidRequestError",
    "SchemaError",
    "UnsupportedTypeError",
    "CoercionError",
    "TaskError",
]
