"""Statistics derived from a list of defect records.

Every function here is pure and takes records that were already filtered
by the repository.  Counts are always sums of ``occurrence_count`` rather
than row counts.  Alert levels come from the escalation table in
``config.escalation``, the same table the escalation monitor reads.
"""

from __future__ import annotations

import math
from collections import OrderedDict
from typing import Any, Callable, Iterable, Mapping, Sequence

import pandas as pd

from config import (
    INVERTED_WIRES_CODE,
    PROJECT_SECTIONS,
    UNDEFINED_CATEGORY,
    UNDEFINED_LINE,
    UNDEFINED_SHIFT_LEADER,
    UNDEFINED_WORKSTATION,
)
from config.escalation import alert_breakpoints

from .defects import defect_type, occurrence_count, operator_name, resolve_defect_name

NO_ALERT_LEVEL = "none"
NO_ALERT_COLOR = "#2ECC71"

PALETTE = (
    "#FF6700",
    "#0A2342",
    "#19376D",
    "#FF8C42",
    "#2ECC71",
    "#FFC300",
    "#9B59B6",
    "#3498DB",
    "#E74C3C",
)

MAJOR_DEFECTS_LIMIT = 3


# -- classification ------------------------------------------------------


def _breakpoint(count: int) -> tuple[int, str, str] | None:
    for breakpoint in alert_breakpoints():
        if count >= breakpoint[0]:
            return breakpoint
    return None


def alert_level(count: int) -> str:
    """Return the alert label of the highest level reached, or ``none``."""

    breakpoint = _breakpoint(count)
    return breakpoint[1] if breakpoint else NO_ALERT_LEVEL


def alert_color(count: int) -> str:
    breakpoint = _breakpoint(count)
    return breakpoint[2] if breakpoint else NO_ALERT_COLOR


# -- numeric helpers -----------------------------------------------------


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves going up."""

    return int(math.floor(value + 0.5))


def percentage(part: float, total: float) -> int:
    if not total:
        return 0
    return round_half_up(part / total * 100)


def palette_color(rank: int) -> str:
    return PALETTE[rank % len(PALETTE)]


def _sum_by(
    records: Iterable[Mapping[str, Any]],
    key: Callable[[Mapping[str, Any]], Any],
) -> "OrderedDict[Any, int]":
    """Sum occurrences per ``key(record)``, skipping ``None`` keys."""

    totals: "OrderedDict[Any, int]" = OrderedDict()
    for record in records:
        value = key(record)
        if value is None:
            continue
        totals[value] = totals.get(value, 0) + occurrence_count(record.get("occurrence_count"))
    return totals


def _sorted_items(totals: Mapping[Any, int]) -> list[tuple[Any, int]]:
    # ``sorted`` is stable, so ties keep first-seen order.
    return sorted(totals.items(), key=lambda item: item[1], reverse=True)


def _ranked(totals: Mapping[Any, int], label: str) -> list[dict]:
    total = sum(totals.values())
    return [
        {
            label: name,
            "defect_count": count,
            "percentage": percentage(count, total),
            "color": palette_color(rank),
        }
        for rank, (name, count) in enumerate(_sorted_items(totals))
    ]


# -- field accessors -----------------------------------------------------


def _operator_key(record: Mapping[str, Any]) -> str | None:
    return operator_name(record) or None


def _workstation_key(record: Mapping[str, Any]) -> str:
    return record.get("workstation") or UNDEFINED_WORKSTATION


def _line_key(record: Mapping[str, Any]) -> str:
    line = record.get("production_line")
    return f"Line {line}" if line else UNDEFINED_LINE


def _shift_leader_key(record: Mapping[str, Any]) -> str:
    return record.get("shift_leader_name") or UNDEFINED_SHIFT_LEADER


def _category_key(record: Mapping[str, Any]) -> str:
    return record.get("category") or UNDEFINED_CATEGORY


def _segments(record: Mapping[str, Any]) -> set:
    """Project, explicit section and the section the project belongs to."""

    project = record.get("project")
    values = {project, record.get("section"), PROJECT_SECTIONS.get(project)}
    values.discard(None)
    return values


def _defect_code_key(record: Mapping[str, Any]) -> str | None:
    code = record.get("defect_code")
    return str(code) if code else None


# -- single dimension ----------------------------------------------------


def operator_totals(records: Iterable[Mapping[str, Any]]) -> "OrderedDict[str, int]":
    """Return ``{operator_name: summed occurrences}`` in first-seen order."""

    return _sum_by(records, _operator_key)


def operator_stats(records: Iterable[Mapping[str, Any]]) -> list[dict]:
    """Per-operator totals with their alert classification, highest first."""

    return [
        {
            "operator_name": name,
            "defect_count": count,
            "alert_level": alert_level(count),
            "color": alert_color(count),
        }
        for name, count in _sorted_items(operator_totals(records))
    ]


def workstation_stats(records: Iterable[Mapping[str, Any]]) -> list[dict]:
    return _ranked(_sum_by(records, _workstation_key), "workstation")


def line_stats(records: Iterable[Mapping[str, Any]]) -> list[dict]:
    return _ranked(_sum_by(records, _line_key), "line")


def shift_leader_stats(records: Iterable[Mapping[str, Any]]) -> list[dict]:
    return _ranked(_sum_by(records, _shift_leader_key), "shift_leader_name")


def category_stats(records: Iterable[Mapping[str, Any]]) -> list[dict]:
    return _ranked(_sum_by(records, _category_key), "category")


def defect_type_stats(records: Iterable[Mapping[str, Any]]) -> list[dict]:
    return _ranked(_sum_by(records, defect_type), "defect_type")


# -- cross dimensional ---------------------------------------------------


def _nested(
    records: Iterable[Mapping[str, Any]],
    outer: Callable[[Mapping[str, Any]], Any],
    inner: Callable[[Mapping[str, Any]], Any],
) -> "OrderedDict[Any, OrderedDict[Any, int]]":
    groups: "OrderedDict[Any, OrderedDict[Any, int]]" = OrderedDict()
    for record in records:
        outer_key = outer(record)
        inner_key = inner(record)
        if outer_key is None or inner_key is None:
            continue
        bucket = groups.setdefault(outer_key, OrderedDict())
        bucket[inner_key] = bucket.get(inner_key, 0) + occurrence_count(
            record.get("occurrence_count")
        )
    return groups


def _breakdown(
    groups: Mapping[Any, Mapping[Any, int]],
    outer_label: str,
    inner_label: str,
    *,
    limit: int | None = None,
) -> list[dict]:
    rows = [
        {
            outer_label: outer_key,
            "total_count": sum(inner.values()),
            inner_label: [
                {"name": name, "defect_count": count} for name, count in _sorted_items(inner)
            ],
        }
        for outer_key, inner in groups.items()
    ]
    rows.sort(key=lambda row: row["total_count"], reverse=True)
    if limit is not None:
        rows = rows[:limit]
    for rank, row in enumerate(rows):
        row["color"] = palette_color(rank)
    return rows


def operators_by_line(records: Iterable[Mapping[str, Any]]) -> dict[str, list[dict]]:
    """Return ``{line: [operator totals]}``; every operator of a line shares its colour."""

    result: dict[str, list[dict]] = {}
    for index, (line, operators) in enumerate(_nested(records, _line_key, _operator_key).items()):
        color = palette_color(index)
        result[line] = [
            {"operator_name": name, "line": line, "defect_count": count, "color": color}
            for name, count in _sorted_items(operators)
        ]
    return result


def shift_leaders_by_line(
    records: Iterable[Mapping[str, Any]],
    segment: str | None = None,
) -> dict[str, list[dict]]:
    """Return ``{line: [shift leader rows]}``, each row listing its operators.

    ``segment`` restricts the records to one project or section; a project
    also matches the section it belongs to.
    """

    if segment:
        records = [
            record
            for record in records
            if segment in _segments(record)
        ]

    lines: "OrderedDict[str, OrderedDict[str, OrderedDict[str, int]]]" = OrderedDict()
    for record in records:
        name = _operator_key(record)
        if name is None:
            continue
        leaders = lines.setdefault(_line_key(record), OrderedDict())
        operators = leaders.setdefault(_shift_leader_key(record), OrderedDict())
        operators[name] = operators.get(name, 0) + occurrence_count(record.get("occurrence_count"))

    result: dict[str, list[dict]] = {}
    for line, leaders in lines.items():
        rows = []
        for index, (leader, operators) in enumerate(leaders.items()):
            color = palette_color(index)
            rows.append(
                {
                    "shift_leader_name": leader,
                    "line": line,
                    "total_count": sum(operators.values()),
                    "color": color,
                    "operators": [
                        {"operator_name": name, "defect_count": count, "color": color}
                        for name, count in _sorted_items(operators)
                    ],
                }
            )
        rows.sort(key=lambda row: row["total_count"], reverse=True)
        result[line] = rows
    return result


def defect_types_by_operator(records: Iterable[Mapping[str, Any]]) -> list[dict]:
    return _breakdown(_nested(records, defect_type, _operator_key), "defect_type", "operators")


def defect_types_by_workstation(records: Iterable[Mapping[str, Any]]) -> list[dict]:
    return _breakdown(
        _nested(records, defect_type, _workstation_key), "defect_type", "workstations"
    )


def _with_defect_names(rows: list[dict]) -> list[dict]:
    for row in rows:
        row["defect_name"] = resolve_defect_name({"defect_code": row["defect_code"]})
    return rows


def major_defects_by_operator(records: Iterable[Mapping[str, Any]]) -> list[dict]:
    """The three heaviest defect codes, each broken down by operator."""

    groups = _nested(records, _defect_code_key, _operator_key)
    return _with_defect_names(
        _breakdown(groups, "defect_code", "operators", limit=MAJOR_DEFECTS_LIMIT)
    )


def major_defects_by_workstation(records: Iterable[Mapping[str, Any]]) -> list[dict]:
    """The three heaviest defect codes, each broken down by workstation."""

    groups = _nested(records, _defect_code_key, _workstation_key)
    return _with_defect_names(
        _breakdown(groups, "defect_code", "workstations", limit=MAJOR_DEFECTS_LIMIT)
    )


# -- pareto --------------------------------------------------------------


def pareto_series(counts: Mapping[Any, int] | Sequence[tuple[Any, int]]) -> list[dict]:
    """Return ``counts`` sorted descending with item and cumulative percentages.

    The cumulative percentage is computed from the running raw count and
    rounded at each step, so the last item lands on 100.
    """

    items = counts.items() if isinstance(counts, Mapping) else counts
    ordered = sorted(items, key=lambda item: item[1], reverse=True)
    total = sum(count for _, count in ordered)

    series = []
    running = 0
    for rank, (key, count) in enumerate(ordered):
        running += count
        series.append(
            {
                "key": key,
                "count": count,
                "percentage": percentage(count, total),
                "cumulative_percentage": percentage(running, total),
                "color": palette_color(rank),
            }
        )
    return series


def defect_pareto(records: Iterable[Mapping[str, Any]]) -> list[dict]:
    """Pareto series over defect codes."""

    series = pareto_series(_sum_by(records, _defect_code_key))
    for item in series:
        item["defect_code"] = item["key"]
        item["defect_name"] = resolve_defect_name({"defect_code": item["key"]})
    return series


def inverted_wire_stats(records: Iterable[Mapping[str, Any]]) -> list[dict]:
    """Inverted-wire defects grouped by reference marker pair."""

    inverted = [
        record for record in records if str(record.get("defect_code") or "") == INVERTED_WIRES_CODE
    ]
    totals = _sum_by(
        inverted,
        lambda record: f"{record.get('ref1') or 'N/A'} - {record.get('ref2') or 'N/A'}",
    )
    return _ranked(totals, "ref_pair")


def operator_type_pareto(records: Iterable[Mapping[str, Any]]) -> dict:
    """Per-operator totals stacked by defect type, heaviest operator first.

    ``type_order`` lists defect types by overall weight and ``colors`` maps
    each type to its palette colour.
    """

    records = list(records)
    by_operator = _nested(records, _operator_key, resolve_defect_name)
    type_totals = _sum_by(
        (record for record in records if _operator_key(record)), resolve_defect_name
    )
    type_order = [name for name, _ in _sorted_items(type_totals)]

    rows = [
        {"operator_name": name, "total_count": sum(types.values()), "types": dict(types)}
        for name, types in by_operator.items()
    ]
    rows.sort(key=lambda row: row["total_count"], reverse=True)

    grand_total = sum(row["total_count"] for row in rows)
    running = 0
    for row in rows:
        running += row["total_count"]
        row["cumulative_percentage"] = percentage(running, grand_total)

    return {
        "rows": rows,
        "type_order": type_order,
        "colors": {name: palette_color(rank) for rank, name in enumerate(type_order)},
        "grand_total": grand_total,
    }


def defect_types_by_date(records: Iterable[Mapping[str, Any]]) -> list[dict]:
    """Return defect totals per detection day and defect type.

    Records without a detection date are ignored.  Rows are ordered by day
    then by descending count.
    """

    rows = [
        {
            "date": record["detected_at"].date().isoformat(),
            "defect_type": defect_type(record),
            "defect_count": occurrence_count(record.get("occurrence_count")),
        }
        for record in records
        if record.get("detected_at") is not None
    ]
    if not rows:
        return []

    frame = pd.DataFrame(rows)
    grouped = (
        frame.groupby(["date", "defect_type"], sort=False, as_index=False)["defect_count"]
        .sum()
        .sort_values(["date", "defect_count"], ascending=[True, False], kind="stable")
    )
    return [
        {
            "date": row.date,
            "defect_type": row.defect_type,
            "defect_count": int(row.defect_count),
        }
        for row in grouped.itertuples(index=False)
    ]


def summarize(records: Iterable[Mapping[str, Any]]) -> dict:
    """Bundle of every dashboard series for ``records``."""

    records = list(records)
    operators = operator_stats(records)
    return {
        "total_defects": sum(occurrence_count(r.get("occurrence_count")) for r in records),
        "record_count": len(records),
        "operator_count": len(operators),
        "alerts": {
            level: sum(1 for row in operators if row["alert_level"] == level)
            for _, level, _ in alert_breakpoints()
        },
        "operators": operators,
        "workstations": workstation_stats(records),
        "lines": line_stats(records),
        "shift_leaders": shift_leader_stats(records),
        "categories": category_stats(records),
        "defect_types": defect_type_stats(records),
        "pareto": defect_pareto(records),
        "inverted_wires": inverted_wire_stats(records),
    }


__all__ = [
    "PALETTE",
    "alert_color",
    "alert_level",
    "category_stats",
    "defect_pareto",
    "defect_type_stats",
    "defect_types_by_date",
    "defect_types_by_operator",
    "defect_types_by_workstation",
    "inverted_wire_stats",
    "line_stats",
    "major_defects_by_operator",
    "major_defects_by_workstation",
    "operator_stats",
    "operator_totals",
    "operator_type_pareto",
    "operators_by_line",
    "pareto_series",
    "percentage",
    "round_half_up",
    "shift_leader_stats",
    "shift_leaders_by_line",
    "summarize",
    "workstation_stats",
]
