"""Domain-filtered reads over the defect collection."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional

from config import VIRTUAL_OPERATORS

from .defects import defect_type, is_placeholder_operator, normalize_defects, operator_name
from .store import RecordStore
from .timestamps import day_end, day_start

DEFECT_COLLECTION = "defect_records"


class RepositoryError(RuntimeError):
    """Raised when the underlying store cannot be read."""


class InvalidFilterError(ValueError):
    """Raised when a filter value cannot be interpreted."""


def _date_bound(filters: Mapping[str, Any], key: str, parse) -> datetime | None:
    raw = filters.get(key)
    if not raw:
        return None
    bound = parse(raw)
    if bound is None:
        raise InvalidFilterError(f"Invalid {key}: {raw!r}")
    return bound


class DefectRepository:
    """Typed defect queries that hide placeholder and test records.

    ``get_defects`` and everything derived from it drop records whose
    operator is blank, the unknown-operator sentinel or listed in
    ``denylist``.  The distinct listings read the unfiltered set unless
    ``filter_distinct_names`` is set.
    """

    def __init__(
        self,
        store: RecordStore,
        *,
        denylist: Iterable[str] = VIRTUAL_OPERATORS,
        filter_distinct_names: bool = False,
        logger: logging.Logger | None = None,
    ) -> None:
        self.store = store
        self.denylist = frozenset(denylist)
        self.filter_distinct_names = filter_distinct_names
        self.logger = logger or logging.getLogger(__name__)

    def _read_all(self) -> list[dict]:
        try:
            rows = self.store.get_all()
        except Exception as exc:
            self.logger.error("Failed to read defects: %s", exc)
            raise RepositoryError(f"Failed to read defects: {exc}") from exc
        return normalize_defects(rows)

    def _is_real(self, record: Mapping[str, Any]) -> bool:
        return not is_placeholder_operator(record.get("operator_name"), self.denylist)

    def get_defects(self, filters: Optional[Mapping[str, Any]] = None) -> list[dict]:
        """Return real defects matching every supplied filter.

        Supported filters are ``start_date`` and ``end_date`` (inclusive),
        ``category`` and ``operator_name`` (exact match).  Records whose
        detection date cannot be read are kept by the date filters.  A date
        filter that cannot be parsed raises ``InvalidFilterError``.
        """

        filters = filters or {}
        defects = [record for record in self._read_all() if self._is_real(record)]

        start = _date_bound(filters, "start_date", day_start)
        end = _date_bound(filters, "end_date", day_end)
        category = filters.get("category")
        name = filters.get("operator_name")

        def matches(record: Mapping[str, Any]) -> bool:
            detected: datetime | None = record.get("detected_at")
            if detected is not None:
                if start is not None and detected < start:
                    return False
                if end is not None and detected > end:
                    return False
            if category and record.get("category") != category:
                return False
            if name and operator_name(record) != name:
                return False
            return True

        return [record for record in defects if matches(record)]

    def get_aggregated_stats(self, filters: Optional[Mapping[str, Any]] = None) -> list[dict]:
        """Return one row per ``(operator_name, defect_type)`` pair."""

        groups: dict[tuple[str, str], dict] = {}
        for record in self.get_defects(filters):
            key = (operator_name(record), defect_type(record))
            group = groups.get(key)
            if group is None:
                group = groups[key] = {
                    "operator_name": key[0],
                    "defect_type": key[1],
                    "defect_count": 0,
                    "last_updated": None,
                    "project": record.get("project"),
                }
            group["defect_count"] += record["occurrence_count"]
            detected = record.get("detected_at")
            if detected is not None and (
                group["last_updated"] is None or detected > group["last_updated"]
            ):
                group["last_updated"] = detected
        return list(groups.values())

    def _distinct(self, values: Iterable[Any]) -> list[str]:
        return sorted({value for value in values if isinstance(value, str) and value})

    def get_unique_operator_names(self) -> list[str]:
        records = self._read_all()
        if self.filter_distinct_names:
            records = [record for record in records if self._is_real(record)]
        return self._distinct(operator_name(record) for record in records)

    def get_unique_defect_types(self) -> list[str]:
        records = self._read_all()
        if self.filter_distinct_names:
            records = [record for record in records if self._is_real(record)]
        return self._distinct(
            record.get("defect_nature") or record.get("category") for record in records
        )


__all__ = ["DEFECT_COLLECTION", "DefectRepository", "InvalidFilterError", "RepositoryError"]
