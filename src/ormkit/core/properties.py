"""Unified property types and value coercion.

A property type is the store-independent tag a model layer attaches to a
field.  Drivers use it in both directions: ``property_to_value`` when a
value is written, ``value_to_property`` when a stored value is read back.

The two directions are deliberately asymmetric for structured values:

* writing an ``object`` that cannot be serialized raises ``CoercionError``;
* reading malformed text for an ``object`` yields ``None``.

Tags:
    ormkit, properties, coercion, json
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ormkit.core.errors import CoercionError


class PropertyType(str, Enum):
    """Unified property-type vocabulary."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    OBJECT = "object"
    BINARY = "binary"


# Aliases accepted by Property.parse ("text" is the name the model layer
# historically used for strings).
_TYPE_ALIASES: dict[str, PropertyType] = {
    "text": PropertyType.STRING,
    "str": PropertyType.STRING,
    "int": PropertyType.NUMBER,
    "integer": PropertyType.NUMBER,
    "float": PropertyType.NUMBER,
    "bool": PropertyType.BOOLEAN,
    "datetime": PropertyType.DATE,
    "json": PropertyType.OBJECT,
    "dict": PropertyType.OBJECT,
    "bytes": PropertyType.BINARY,
    "buffer": PropertyType.BINARY,
}

_PYTHON_TYPES: dict[type, PropertyType] = {
    str: PropertyType.STRING,
    int: PropertyType.NUMBER,
    float: PropertyType.NUMBER,
    bool: PropertyType.BOOLEAN,
    dict: PropertyType.OBJECT,
    list: PropertyType.OBJECT,
    bytes: PropertyType.BINARY,
}


@dataclass(frozen=True)
class Property:
    """
    Property descriptor.

    ``rational`` distinguishes floating point numbers from integers when a
    column type has to be chosen (``sync``).  ``size`` bounds string
    columns; ``None`` means unbounded text.
    """

    type: PropertyType
    required: bool = False
    unique: bool = False
    size: int | None = None
    rational: bool = True

    @classmethod
    def parse(cls, spec: Any) -> Property:
        """Build a Property from a loose definition.

        Accepts an existing ``Property``, a ``PropertyType``, a type name
        (``"string"``, ``"text"``, ``"object"``...), a Python type
        (``str``, ``int``...) or a mapping with a ``type`` key plus
        descriptor fields.
        """
        if isinstance(spec, Property):
            return spec
        if isinstance(spec, PropertyType):
            return cls(type=spec)
        if isinstance(spec, type):
            if spec in _PYTHON_TYPES:
                ptype = _PYTHON_TYPES[spec]
                return cls(type=ptype, rational=spec is not int)
            raise ValueError(f"No property type for Python type {spec.__name__}")
        if isinstance(spec, str):
            return cls(type=_resolve_type_name(spec))
        if isinstance(spec, Mapping):
            if "type" not in spec:
                raise ValueError("Property mapping needs a 'type' key")
            base = cls.parse(spec["type"])
            return cls(
                type=base.type,
                required=bool(spec.get("required", base.required)),
                unique=bool(spec.get("unique", base.unique)),
                size=spec.get("size", base.size),
                rational=bool(spec.get("rational", base.rational)),
            )
        raise ValueError(f"Cannot build a property from {spec!r}")


def _resolve_type_name(name: str) -> PropertyType:
    key = name.strip().lower()
    try:
        return PropertyType(key)
    except ValueError:
        pass
    if key in _TYPE_ALIASES:
        return _TYPE_ALIASES[key]
    raise ValueError(f"Unknown property type: {name!r}")


# -- Structured values --------------------------------------------------------


def serialize_object(value: Any) -> str | None:
    """Serialize a structured value to JSON text. ``None`` stays ``None``."""
    if value is None:
        return None
    try:
        return json.dumps(value)
    except (TypeError, ValueError) as e:
        raise CoercionError(
            f"Cannot serialize value of type {type(value).__name__} as object",
            cause=e,
        ) from e


def deserialize_object(value: Any) -> Any:
    """Parse JSON text back into a structured value.

    Malformed text yields ``None``.  Anything that is not text (a value
    the driver already decoded from json/jsonb, scalars included) passes
    through unchanged.
    """
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8", errors="replace")
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except ValueError:
        return None


def value_to_property(value: Any, prop: Property) -> Any:
    """Default read-direction coercion for stores storing objects as text."""
    if prop.type is PropertyType.OBJECT:
        return deserialize_object(value)
    return value


def property_to_value(value: Any, prop: Property) -> Any:
    """Default write-direction coercion for stores storing objects as text."""
    if prop.type is PropertyType.OBJECT:
        return serialize_object(value)
    return value


__all__ = [
    "PropertyType",
    "Property",
    "serialize_object",
    "deserialize_object",
    "value_to_property",
    "property_to_value",
]
