"""Removal of virtual, test and unknown-operator defect records."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Optional

from config import UNKNOWN_OPERATOR, VIRTUAL_OPERATORS, VIRTUAL_REFERENCES

from .defects import normalize_defect, operator_name
from .store import RecordStore

logger = logging.getLogger(__name__)


@dataclass
class CleanupResult:
    deleted_count: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "deleted_count": self.deleted_count,
            "errors": list(self.errors),
        }


def virtual_data_reason(
    record: Mapping[str, Any],
    *,
    operators: Iterable[str] = VIRTUAL_OPERATORS,
    references: Iterable[str] = VIRTUAL_REFERENCES,
) -> Optional[str]:
    """Return why ``record`` counts as virtual data, or ``None`` when it is real."""

    reason = None
    name = operator_name(record)
    if not name:
        reason = "Missing operator name"
    elif name in operators:
        reason = f"Virtual operator: {name}"

    reference = record.get("product_reference")
    if reference and reference in references:
        reason = f"Virtual reference: {reference}"

    matricule = record.get("matricule")
    if isinstance(matricule, str) and "test" in matricule.lower():
        reason = f"Test matricule: {matricule}"
    return reason


def _delete_matching(
    store: RecordStore,
    predicate: Callable[[Mapping[str, Any]], Optional[str]],
) -> CleanupResult:
    result = CleanupResult()
    try:
        records = [normalize_defect(row) for row in store.get_all()]
    except Exception as exc:
        logger.error("Cleanup failed: %s", exc)
        result.errors.append(f"Cleanup failed: {exc}")
        return result

    for record in records:
        reason = predicate(record)
        if reason is None:
            continue
        record_id = record.get("id")
        try:
            store.delete(record_id)
        except Exception as exc:
            message = f"Failed to delete {record_id}: {exc}"
            logger.error(message)
            result.errors.append(message)
            continue
        result.deleted_count += 1
        logger.info("Deleted %s (%s).", record_id, reason)

    logger.info(
        "Cleanup finished: %s deleted, %s errors.", result.deleted_count, len(result.errors)
    )
    return result


def clean_all_virtual_data(store: RecordStore) -> CleanupResult:
    """Delete every virtual or test defect record.

    Each deletion is attempted on its own; failures are collected in
    ``errors`` and do not stop the run.
    """

    return _delete_matching(store, virtual_data_reason)


def clean_unknown_operators(store: RecordStore) -> CleanupResult:
    """Delete only records without a real operator name."""

    def unknown(record: Mapping[str, Any]) -> Optional[str]:
        name = operator_name(record)
        if not name:
            return "Missing operator name"
        if name == UNKNOWN_OPERATOR:
            return f"Unknown operator: {name}"
        return None

    return _delete_matching(store, unknown)


def get_data_statistics(store: RecordStore) -> dict:
    records = [normalize_defect(row) for row in store.get_all()]
    with_name = [record for record in records if operator_name(record)]
    virtual = [record for record in records if virtual_data_reason(record)]
    return {
        "total": len(records),
        "with_operator_name": len(with_name),
        "without_operator_name": len(records) - len(with_name),
        "unknown_operators": sum(
            1 for record in records if operator_name(record) == UNKNOWN_OPERATOR
        ),
        "virtual_records": len(virtual),
        "real_records": len(records) - len(virtual),
    }


__all__ = [
    "CleanupResult",
    "clean_all_virtual_data",
    "clean_unknown_operators",
    "get_data_statistics",
    "virtual_data_reason",
]
