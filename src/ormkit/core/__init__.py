"""ormkit core -- driver abstraction and query translation.

Manifesto:
    A model layer wants one API for find/insert/update/remove whether rows
    live in PostgreSQL or documents live in MongoDB.  ``ormkit.core`` is
    that seam: it turns a store-agnostic request into a store-specific
    query, runs it, and normalizes the answer into plain dicts.

Architecture::

    Layer 1 -- Types & Errors
        errors.py          Typed error hierarchy (OrmError + kinds)
        properties.py      Unified property types + value coercion
        protocols.py       SqlConnection / DocumentDatabase shapes

    Layer 2 -- Query translation
        query/request.py      FindOptions, MergeSpec, ExistsSpec, order codes
        query/comparators.py  gt(), like(), between(), not_in()...
        query/sql.py          $n-parameterized PostgreSQL builder
        query/mongo.py        Filter / sort / projection builder

    Layer 3 -- Drivers
        drivers/           Driver contract, PostgreSQL + MongoDB, registry
        normalize.py       Records / documents / status -> rows and counts
        introspection.py   Catalog column types -> property types

    Layer 4 -- Ambient
        logging.py         structlog setup + query debug side channel
        settings.py        OrmSettings (pydantic-settings, ORMKIT_*)
        tasks.py           SerialRunner, sync_models / drop_models

Tags:
    ormkit, orm, drivers, query-builder, postgresql, mongodb

Doc-Types:
    package-overview, architecture-map
"""

from ormkit.core.drivers import (
    ConnectionConfig,
    Driver,
    DriverOptions,
    DriverType,
    MongoDriver,
    PostgresDriver,
    connect,
    create_driver,
    parse_url,
    resolve_driver,
    use,
)
from ormkit.core.errors import (
    CoercionError,
    ConfigError,
    DatabaseConnectionError,
    ErrorCategory,
    InvalidRequestError,
    OrmError,
    QueryError,
    SchemaError,
    TaskError,
    UnknownProtocolError,
    UnsupportedOperationError,
    UnsupportedTypeError,
)
from ormkit.core.logging import configure_logging, get_logger, log_query
from ormkit.core.properties import Property, PropertyType
from ormkit.core.query import (
    ExistsSpec,
    FindOptions,
    MergeSpec,
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
from ormkit.core.settings import OrmSettings
from ormkit.core.tasks import SerialRunner, drop_models, sync_models

__all__ = [
    # Drivers
    "Driver",
    "PostgresDriver",
    "MongoDriver",
    "DriverType",
    "ConnectionConfig",
    "DriverOptions",
    "parse_url",
    "resolve_driver",
    "create_driver",
    "connect",
    "use",
    # Requests
    "FindOptions",
    "MergeSpec",
    "ExistsSpec",
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
    # Properties
    "Property",
    "PropertyType",
    # Errors
    "ErrorCategory",
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
    # Ambient
    "configure_logging",
    "get_logger",
    "log_query",
    "OrmSettings",
    "SerialRunner",
    "sync_models",
    "drop_models",
]
