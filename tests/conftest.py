"""
Shared pytest fixtures and configuration for ormkit tests.

This module provides:
- Auto-marking of unit / integration tests by location
- Mocked asyncpg connection and pymongo database handles
- Drivers wrapping those mocks (borrowed handles, nothing to connect)

Usage:
    Fixtures are auto-discovered by pytest; request them by name.

    def test_find(pg_driver, pg_conn):
        ...
"""

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId

from ormkit.core.drivers import MongoDriver, PostgresDriver

OBJECT_ID_HEX = "507f191e810c19729de860ea"


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = item.path.relative_to(Path(__file__).parent)

        if "integration" in str(test_path):
            item.add_marker(pytest.mark.integration)

        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# PostgreSQL
# =============================================================================


@pytest.fixture
def pg_conn() -> MagicMock:
    """Stand-in for an ``asyncpg.Connection``."""
    conn = MagicMock()
    conn.fetch = AsyncMock(return_value=[])
    conn.execute = AsyncMock(return_value="UPDATE 0")
    conn.close = AsyncMock()
    return conn


@pytest.fixture
def pg_driver(pg_conn: MagicMock) -> PostgresDriver:
    return PostgresDriver(connection=pg_conn)


# =============================================================================
# MongoDB
# =============================================================================


@pytest.fixture
def object_id() -> ObjectId:
    return ObjectId(OBJECT_ID_HEX)


@pytest.fixture
def mongo_cursor() -> MagicMock:
    cursor = MagicMock()
    cursor.to_list = AsyncMock(return_value=[])
    return cursor


@pytest.fixture
def mongo_collection(mongo_cursor: MagicMock, object_id: ObjectId) -> MagicMock:
    """Stand-in for a ``pymongo.asynchronous.collection.AsyncCollection``."""
    collection = MagicMock()
    collection.find.return_value = mongo_cursor
    collection.count_documents = AsyncMock(return_value=0)
    collection.insert_one = AsyncMock(return_value=SimpleNamespace(inserted_id=object_id))
    collection.update_many = AsyncMock(return_value=SimpleNamespace(matched_count=0, modified_count=0))
    collection.delete_many = AsyncMock(return_value=SimpleNamespace(deleted_count=0))
    collection.create_index = AsyncMock(return_value="index")
    return collection


@pytest.fixture
def mongo_db(mongo_collection: MagicMock) -> MagicMock:
    """Stand-in for a ``pymongo.asynchronous.database.AsyncDatabase``."""
    db = MagicMock()
    db.__getitem__.return_value = mongo_collection
    db.command = AsyncMock(return_value={"ok": 1})
    db.list_collection_names = AsyncMock(return_value=[])
    db.create_collection = AsyncMock()
    db.drop_collection = AsyncMock()
    return db


@pytest.fixture
def mongo_driver(mongo_db: MagicMock) -> MongoDriver:
    return MongoDriver(connection=mongo_db)
