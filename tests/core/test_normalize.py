"""Tests for ``ormkit.core.normalize``."""

from __future__ import annotations

from collections import OrderedDict

import pytest
from bson import ObjectId

from ormkit.core.normalize import (
    document_to_row,
    documents_to_rows,
    record_to_row,
    records_to_rows,
    scalar_count,
    status_to_count,
)


class _Record:
    """Mimics asyncpg.Record: items() but not a dict."""

    def __init__(self, **values):
        self._values = values

    def items(self):
        return self._values.items()


class TestRecords:
    def test_record_to_dict(self):
        row = record_to_row(_Record(id=1, name="a"))
        assert row == {"id": 1, "name": "a"}
        assert type(row) is dict

    def test_mapping(self):
        assert record_to_row(OrderedDict(a=1)) == {"a": 1}

    def test_many(self):
        assert records_to_rows([_Record(id=1), _Record(id=2)]) == [{"id": 1}, {"id": 2}]

    def test_unsupported(self):
        with pytest.raises(TypeError):
            record_to_row(42)


class TestDocuments:
    def test_ids_kept_by_default(self):
        oid = ObjectId()
        assert document_to_row({"_id": oid, "name": "a"}) == {"_id": oid, "name": "a"}

    def test_stringify_ids(self):
        oid = ObjectId()
        rows = documents_to_rows([{"_id": oid, "owner": oid, "n": 1}], stringify_ids=True)
        assert rows == [{"_id": str(oid), "owner": str(oid), "n": 1}]


class TestCounts:
    @pytest.mark.parametrize(
        ("status", "expected"),
        [("UPDATE 3", 3), ("DELETE 0", 0), ("INSERT 0 1", 1), ("TRUNCATE TABLE", 0), ("", 0), (None, 0)],
    )
    def test_status_to_count(self, status, expected):
        assert status_to_count(status) == expected

    def test_scalar_count(self):
        assert scalar_count([{"c": 7}]) == 7
        assert scalar_count([]) == 0
        assert scalar_count([{"c": None}]) == 0
