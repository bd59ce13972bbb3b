"""Tests for ``ormkit.core.properties`` - property types and value coercion."""

from __future__ import annotations

import pytest

from ormkit.core.errors import CoercionError
from ormkit.core.properties import (
    Property,
    PropertyType,
    deserialize_object,
    property_to_value,
    serialize_object,
    value_to_property,
)

OBJECT = Property(PropertyType.OBJECT)


class TestPropertyParse:
    def test_from_type_name(self):
        assert Property.parse("string").type is PropertyType.STRING
        assert Property.parse("Object").type is PropertyType.OBJECT

    def test_from_alias(self):
        assert Property.parse("text").type is PropertyType.STRING
        assert Property.parse("json").type is PropertyType.OBJECT
        assert Property.parse("bytes").type is PropertyType.BINARY

    def test_from_python_type(self):
        prop = Property.parse(int)
        assert prop.type is PropertyType.NUMBER
        assert prop.rational is False
        assert Property.parse(float).rational is True
        assert Property.parse(bool).type is PropertyType.BOOLEAN

    def test_from_mapping(self):
        prop = Property.parse({"type": "string", "size": 64, "required": True, "unique": True})
        assert prop == Property(PropertyType.STRING, required=True, unique=True, size=64)

    def test_existing_property_returned(self):
        prop = Property(PropertyType.DATE)
        assert Property.parse(prop) is prop

    def test_unknown_name(self):
        with pytest.raises(ValueError, match="Unknown property type"):
            Property.parse("money")

    def test_mapping_without_type(self):
        with pytest.raises(ValueError, match="type"):
            Property.parse({"size": 3})


class TestObjectCoercion:
    @pytest.mark.parametrize(
        "value",
        [{"a": 1, "b": [1, 2, {"c": None}]}, [1, "two", 3.5], "text", 42, True],
    )
    def test_round_trip(self, value):
        assert value_to_property(property_to_value(value, OBJECT), OBJECT) == value

    def test_write_serializes(self):
        assert property_to_value({"a": 1}, OBJECT) == '{"a": 1}'

    def test_write_unserializable_raises(self):
        with pytest.raises(CoercionError):
            property_to_value({"when": object()}, OBJECT)

    def test_read_malformed_is_none(self):
        assert value_to_property("{not json", OBJECT) is None

    def test_read_none(self):
        assert value_to_property(None, OBJECT) is None
        assert serialize_object(None) is None

    def test_read_already_structured(self):
        assert deserialize_object({"a": 1}) == {"a": 1}

    def test_read_bytes(self):
        assert deserialize_object(b'{"a": 1}') == {"a": 1}

    @pytest.mark.parametrize("value", [5, 0, True, False, 1.5])
    def test_read_decoded_scalars(self, value):
        assert deserialize_object(value) is value
        assert value_to_property(value, OBJECT) is value

    def test_other_types_pass_through(self):
        prop = Property(PropertyType.STRING)
        assert property_to_value("{x", prop) == "{x"
        assert value_to_property("{x", prop) == "{x"
