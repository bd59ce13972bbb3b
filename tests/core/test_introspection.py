"""Tests for ``ormkit.core.introspection`` - catalog types to property types."""

from __future__ import annotations

import pytest

from ormkit.core.errors import UnsupportedTypeError
from ormkit.core.introspection import NATIVE_TYPES, catalog_query, map_columns, map_native_type
from ormkit.core.properties import PropertyType


class TestCatalogQuery:
    def test_table_name_is_bound(self):
        q = catalog_query("users'; DROP TABLE x; --")
        assert "users" not in q.text
        assert "$1" in q.text
        assert q.params == ("users'; DROP TABLE x; --",)

    def test_reads_information_schema(self):
        assert "information_schema.columns" in catalog_query("users").text

    def test_limited_to_current_schema(self):
        text = catalog_query("users").text
        assert "table_schema = current_schema()" in text
        assert text.index("current_schema()") < text.index("ORDER BY")


class TestMapping:
    @pytest.mark.parametrize(
        ("native", "expected"),
        [
            ("integer", PropertyType.NUMBER),
            ("bigint", PropertyType.NUMBER),
            ("numeric", PropertyType.NUMBER),
            ("double precision", PropertyType.NUMBER),
            ("character varying", PropertyType.STRING),
            ("text", PropertyType.STRING),
            ("boolean", PropertyType.BOOLEAN),
            ("timestamp with time zone", PropertyType.DATE),
            ("jsonb", PropertyType.OBJECT),
            ("bytea", PropertyType.BINARY),
        ],
    )
    def test_known_types(self, native, expected):
        assert map_native_type(native) is expected

    def test_case_insensitive(self):
        assert map_native_type("INTEGER") is PropertyType.NUMBER

    def test_table_is_closed(self):
        assert "tsvector" not in NATIVE_TYPES
        assert "uuid" not in NATIVE_TYPES

    def test_map_columns(self):
        rows = [
            {"column_name": "id", "data_type": "integer"},
            {"column_name": "name", "data_type": "text"},
            {"column_name": "meta", "data_type": "json"},
        ]
        assert map_columns(rows) == {
            "id": PropertyType.NUMBER,
            "name": PropertyType.STRING,
            "meta": PropertyType.OBJECT,
        }

    def test_unmapped_type_fails_hard(self):
        rows = [
            {"column_name": "id", "data_type": "integer"},
            {"column_name": "search", "data_type": "tsvector"},
        ]
        with pytest.raises(UnsupportedTypeError) as exc:
            map_columns(rows)
        assert exc.value.native_type == "tsvector"
        assert exc.value.column == "search"
