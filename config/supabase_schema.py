"""Supabase table and column names for each record collection.

Records are handled with canonical snake_case keys.  A deployment whose
tables use other identifiers sets ``SUPABASE_SCHEMA_JSON`` to a mapping of
collection -> ``{"name": <table>, "columns": {<key>: <column>}}``; keys
without an entry keep their canonical name.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping

logger = logging.getLogger(__name__)

DEFECT_FIELDS = (
    "id",
    "matricule",
    "operator_name",
    "supervisor_name",
    "detected_at",
    "workstation",
    "production_line",
    "shift_leader_name",
    "project",
    "section",
    "product_reference",
    "defect_code",
    "defect_nature",
    "category",
    "occurrence_count",
    "ref1",
    "ref2",
    "comment",
    "photo_ref",
    "created_at",
    "updated_at",
)

NOTIFICATION_FIELDS = (
    "id",
    "type",
    "title",
    "message",
    "matricule",
    "defect_id",
    "defect_code",
    "category",
    "priority",
    "read",
    "created_at",
    "updated_at",
)


@dataclass(frozen=True)
class CollectionTable:
    table: str
    columns: Mapping[str, str] = field(default_factory=dict)

    def column(self, key: str) -> str:
        return self.columns.get(key, key)

    def key(self, column: str) -> str:
        for logical, actual in self.columns.items():
            if actual == column:
                return logical
        return column


def _identity(fields: tuple[str, ...]) -> Dict[str, str]:
    return {name: name for name in fields}


DEFAULT_COLLECTIONS: Dict[str, CollectionTable] = {
    "defect_records": CollectionTable("defect_records", _identity(DEFECT_FIELDS)),
    "notifications": CollectionTable("notifications", _identity(NOTIFICATION_FIELDS)),
}


def _parse_override(collection: str, entry: Any) -> CollectionTable | None:
    if not isinstance(entry, Mapping) or not isinstance(entry.get("name"), str):
        logger.warning("Ignoring malformed schema override for %s.", collection)
        return None
    default = DEFAULT_COLLECTIONS.get(collection)
    columns = dict(default.columns) if default else {}
    raw_columns = entry.get("columns")
    if isinstance(raw_columns, Mapping):
        columns.update(
            (str(key), str(value))
            for key, value in raw_columns.items()
            if isinstance(value, str)
        )
    return CollectionTable(entry["name"], columns)


def load_collections(raw: str | None = None) -> Dict[str, CollectionTable]:
    """Return the defaults merged with the ``SUPABASE_SCHEMA_JSON`` overrides."""

    collections = dict(DEFAULT_COLLECTIONS)
    raw = os.getenv("SUPABASE_SCHEMA_JSON") if raw is None else raw
    if not raw:
        return collections
    try:
        overrides = json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.warning("SUPABASE_SCHEMA_JSON is not valid JSON: %s", exc)
        return collections
    if not isinstance(overrides, Mapping):
        return collections

    for collection, entry in overrides.items():
        table = _parse_override(str(collection), entry)
        if table is not None:
            collections[str(collection)] = table
    return collections


COLLECTIONS = load_collections()


def _collection(collection: str) -> CollectionTable:
    return COLLECTIONS.get(collection) or CollectionTable(collection)


def table_name(collection: str) -> str:
    return _collection(collection).table


def column_name(collection: str, key: str) -> str:
    return _collection(collection).column(key)


def to_supabase_payload(collection: str, record: Mapping[str, Any]) -> Dict[str, Any]:
    """Rename canonical keys of ``record`` to the table's column names."""

    table = _collection(collection)
    return {table.column(key): value for key, value in record.items()}


def from_supabase_row(collection: str, row: Mapping[str, Any]) -> Dict[str, Any]:
    """Rename the columns of ``row`` back to canonical keys."""

    table = _collection(collection)
    return {table.key(column): value for column, value in row.items()}
