"""Store drivers -- one operation set, two backends.

Manifesto:
    The model layer issues find/count/insert/update/remove/clear without
    knowing which store answers.  Each driver translates the shared
    request through its own query builder, runs it on its store client
    and normalizes what comes back into plain row dicts.

Architecture::

    Driver (base.py)                 Abstract contract + error events
        |-- PostgresDriver           asyncpg connection or pool
        |-- MongoDriver              pymongo AsyncMongoClient

    DriverRegistry (registry.py)     Closed table: protocol/alias -> driver class
    ConnectionConfig (types.py)      Immutable connection parameters
    DriverOptions (types.py)         debug / pool / connect_timeout
    DriverType (types.py)            Enum of supported stores

Modules
-------
base            Abstract Driver base class
types           DriverType, ConnectionConfig, DriverOptions, parse_url
registry        DriverRegistry + create_driver() / connect() / use()
postgresql      PostgreSQL driver (asyncpg)
mongodb         MongoDB driver (pymongo async)

Guardrails:
    ❌ ``await conn.fetch(f"SELECT * FROM t WHERE id = {user_input}")``
    ✅ ``await driver.find(["*"], "t", {"id": user_input})``
    ❌ ``driver = PostgresDriver(...)`` in application code
    ✅ ``driver = await connect("postgres://...")``

Tags:
    ormkit, drivers, registry-pattern, postgresql, mongodb

Doc-Types:
    package-overview, architecture-map, module-index
"""

from .base import Driver
from .mongodb import MongoDriver
from .postgresql import PostgresDriver
from .registry import (
    DriverRegistry,
    connect,
    create_driver,
    detect_protocol,
    driver_registry,
    resolve_driver,
    use,
)
from .types import ALIASES, ConnectionConfig, DriverOptions, DriverType, parse_url

__all__ = [
    # Types
    "DriverType",
    "ALIASES",
    "ConnectionConfig",
    "DriverOptions",
    "parse_url",
    # Base class
    "Driver",
    # Implementations
    "PostgresDriver",
    "MongoDriver",
    # Registry
    "DriverRegistry",
    "driver_registry",
    "resolve_driver",
    "create_driver",
    "connect",
    "detect_protocol",
    "use",
]
