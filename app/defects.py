"""Helpers describing a single defect record.

Records travel through the application as plain dictionaries keyed by the
canonical snake_case names listed in ``config/supabase_schema.py``.  The
mobile form used to write French field names; ``normalize_defect`` maps
those onto the canonical keys so that older documents aggregate alongside
new ones.
"""

from __future__ import annotations

import math
from typing import Any, Iterable, Mapping

from config import UNKNOWN_DEFECT_TYPE, UNKNOWN_OPERATOR
from config.defect_codes import defect_name

from .timestamps import normalize_timestamp

LEGACY_FIELD_ALIASES = {
    "operateurNom": "operator_name",
    "operatorName": "operator_name",
    "nom": "supervisor_name",
    "supervisorName": "supervisor_name",
    "dateDetection": "detected_at",
    "detectedAt": "detected_at",
    "posteTravail": "workstation",
    "ligne": "production_line",
    "productionLine": "production_line",
    "shiftLeaderName": "shift_leader_name",
    "projet": "project",
    "codeDefaut": "defect_code",
    "defectCode": "defect_code",
    "natureDefaut": "defect_nature",
    "defectNature": "defect_nature",
    "categorie": "category",
    "nombreOccurrences": "occurrence_count",
    "occurrenceCount": "occurrence_count",
    "commentaire": "comment",
    "photoUri": "photo_ref",
    "referenceProduit": "product_reference",
    "repere1": "ref1",
    "repere2": "ref2",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}


def occurrence_count(value: Any) -> int:
    """Return ``value`` as a positive integer, defaulting to 1."""

    if value is None or isinstance(value, bool):
        return 1
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 1
    if not math.isfinite(number) or number < 1:
        return 1
    return int(number)


def _production_line(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def normalize_defect(row: Mapping[str, Any]) -> dict:
    """Return a canonical copy of ``row``.

    Canonical keys win over legacy aliases when both are present.  The
    detection date, occurrence count and production line are coerced to
    their in-memory types.
    """

    record: dict = {}
    for key, value in row.items():
        canonical = LEGACY_FIELD_ALIASES.get(key)
        if canonical is None:
            record[key] = value
        elif canonical not in row:
            record.setdefault(canonical, value)

    if isinstance(record.get("operator_name"), str):
        record["operator_name"] = record["operator_name"].strip()
    record["detected_at"] = normalize_timestamp(record.get("detected_at"))
    record["occurrence_count"] = occurrence_count(record.get("occurrence_count"))
    record["production_line"] = _production_line(record.get("production_line"))
    if record.get("defect_code") is not None:
        record["defect_code"] = str(record["defect_code"])
    return record


def normalize_defects(rows: Iterable[Mapping[str, Any]]) -> list[dict]:
    return [normalize_defect(row) for row in rows]


def operator_name(record: Mapping[str, Any]) -> str:
    name = record.get("operator_name")
    return name.strip() if isinstance(name, str) else ""


def defect_type(record: Mapping[str, Any]) -> str:
    """Return ``defect_nature``, else ``category``, else ``"unknown"``."""

    return record.get("defect_nature") or record.get("category") or UNKNOWN_DEFECT_TYPE


def resolve_defect_name(record: Mapping[str, Any]) -> str:
    """Return a human-readable name for the defect carried by ``record``."""

    nature = record.get("defect_nature")
    if nature:
        return nature
    code = record.get("defect_code")
    if not code:
        return UNKNOWN_DEFECT_TYPE
    return defect_name(str(code)) or str(code)


def is_placeholder_operator(name: Any, denylist: Iterable[str]) -> bool:
    """Return ``True`` for blank, sentinel or denylisted operator names."""

    if not isinstance(name, str) or not name.strip():
        return True
    cleaned = name.strip()
    return cleaned == UNKNOWN_OPERATOR or cleaned in denylist


__all__ = [
    "LEGACY_FIELD_ALIASES",
    "defect_type",
    "is_placeholder_operator",
    "normalize_defect",
    "normalize_defects",
    "occurrence_count",
    "operator_name",
    "resolve_defect_name",
]
