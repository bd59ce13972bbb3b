"""
Structural protocols for the store handles a driver can wrap.

Manifesto:
    A driver does not care whether it holds an ``asyncpg.Connection``, an
    ``asyncpg.Pool`` or a test double; it cares that ``fetch`` and
    ``execute`` exist.  These protocols name those shapes once so the
    drivers and ``use()`` can depend on them instead of concrete classes.

Architecture:
    ::

        protocols.py
        ├── SqlConnection       - asyncpg Connection / Pool surface
        └── DocumentDatabase    - pymongo AsyncDatabase surface

Guardrails:
    ❌ DON'T: isinstance-check against asyncpg.Connection in drivers
    ✅ DO: Accept anything matching SqlConnection (pools included)

Tags:
    protocol, connection, asyncpg, pymongo, ormkit
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class SqlConnection(Protocol):
    """
    Async relational handle: ``asyncpg.Connection`` or ``asyncpg.Pool``.

    ``fetch`` returns records, ``execute`` returns the command status
    string (``"UPDATE 3"``).
    """

    async def fetch(self, query: str, *args: Any) -> list[Any]: ...

    async def execute(self, query: str, *args: Any) -> str: ...

    async def close(self) -> None: ...


@runtime_checkable
class DocumentDatabase(Protocol):
    """
    Async document database handle: ``pymongo.AsyncMongoClient()[name]``.

    Collections are reached by subscription (``db["users"]``).
    """

    def __getitem__(self, name: str) -> Any: ...

    async def command(self, command: Any, *args: Any, **kwargs: Any) -> Any: ...

    async def list_collection_names(self, *args: Any, **kwargs: Any) -> list[str]: ...

    async def create_collection(self, name: str, *args: Any, **kwargs: Any) -> Any: ...

    async def drop_collection(self, name_or_collection: Any, *args: Any, **kwargs: Any) -> Any: ...


__all__ = [
    "SqlConnection",
    "DocumentDatabase",
]
