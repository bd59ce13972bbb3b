"""Result normalization: store-native results to plain row dicts.

asyncpg hands back ``Record`` objects and status strings such as
``"UPDATE 3"``; pymongo hands back documents carrying ``ObjectId`` values.
Callers of a driver only ever see ``list[dict]`` rows and integer counts.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from bson import ObjectId

Row = dict[str, Any]


def record_to_row(record: Any) -> Row:
    """Convert one asyncpg ``Record`` (or any mapping) to a dict."""
    if isinstance(record, dict):
        return dict(record)
    if isinstance(record, Mapping) or hasattr(record, "items"):
        return {key: value for key, value in record.items()}
    raise TypeError(f"Cannot normalize row of type {type(record).__name__}")


def records_to_rows(records: Iterable[Any]) -> list[Row]:
    return [record_to_row(r) for r in records]


def document_to_row(document: Mapping[str, Any], stringify_ids: bool = False) -> Row:
    """Convert a stored document to a row.

    ``ObjectId`` values are kept unless ``stringify_ids`` is set, so a
    row's ``_id`` can be fed straight back into a filter.
    """
    row = dict(document)
    if stringify_ids:
        for key, value in row.items():
            if isinstance(value, ObjectId):
                row[key] = str(value)
    return row


def documents_to_rows(documents: Iterable[Mapping[str, Any]], stringify_ids: bool = False) -> list[Row]:
    return [document_to_row(d, stringify_ids) for d in documents]


def status_to_count(status: str | None) -> int:
    """Affected-row count from an asyncpg command status.

    ``"UPDATE 3"`` -> 3, ``"DELETE 0"`` -> 0, ``"INSERT 0 1"`` -> 1.
    Statuses without a trailing count (``"TRUNCATE TABLE"``) give 0.
    """
    if not status:
        return 0
    last = status.rsplit(" ", 1)[-1]
    return int(last) if last.isdigit() else 0


def scalar_count(rows: list[Row], column: str = "c") -> int:
    """Extract the single count value from a COUNT(...) result."""
    if not rows:
        return 0
    value = rows[0].get(column)
    return int(value) if value is not None else 0


__all__ = [
    "Row",
    "record_to_row",
    "records_to_rows",
    "document_to_row",
    "documents_to_rows",
    "status_to_count",
    "scalar_count",
]
