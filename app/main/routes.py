from dataclasses import asdict
from datetime import date, datetime

from flask import Blueprint, jsonify, request

from app import get_defect_store, get_monitor, get_repository
from app import aggregation
from app.cleanup import clean_all_virtual_data, clean_unknown_operators, get_data_statistics
from app.defects import LEGACY_FIELD_ALIASES, normalize_defect
from app.repository import InvalidFilterError, RepositoryError
from app.timestamps import to_iso, utc_now

main_bp = Blueprint("main", __name__)

FILTER_PARAMS = ("start_date", "end_date", "category", "operator_name")

BREAKDOWNS = {
    "workstations": aggregation.workstation_stats,
    "lines": aggregation.line_stats,
    "shift-leaders": aggregation.shift_leader_stats,
    "categories": aggregation.category_stats,
    "defect-types": aggregation.defect_type_stats,
    "inverted-wires": aggregation.inverted_wire_stats,
    "operators-by-line": aggregation.operators_by_line,
    "defect-types-by-operator": aggregation.defect_types_by_operator,
    "defect-types-by-workstation": aggregation.defect_types_by_workstation,
    "major-defects-by-operator": aggregation.major_defects_by_operator,
    "major-defects-by-workstation": aggregation.major_defects_by_workstation,
    "defect-types-by-date": aggregation.defect_types_by_date,
    "operator-type-pareto": aggregation.operator_type_pareto,
}


def _jsonable(value):
    if isinstance(value, (datetime, date)):
        return to_iso(value)
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    return value


def _error(message, status):
    return jsonify({"error": message}), status


def _filters_from_args():
    return {key: request.args[key] for key in FILTER_PARAMS if request.args.get(key)}


def _canonical_changes(payload):
    changes = {}
    for key, value in payload.items():
        changes.setdefault(LEGACY_FIELD_ALIASES.get(key, key), value)
    return changes


def _event_json(event):
    return _jsonable(asdict(event))


@main_bp.errorhandler(RepositoryError)
def handle_repository_error(exc):
    return _error(str(exc), 500)


@main_bp.errorhandler(InvalidFilterError)
def handle_invalid_filter(exc):
    return _error(str(exc), 400)


@main_bp.route("/api/defects", methods=["GET"])
def list_defects():
    defects = get_repository().get_defects(_filters_from_args())
    return jsonify(_jsonable(defects))


@main_bp.route("/api/defects", methods=["POST"])
def create_defect():
    """Store a defect, then re-run threshold monitoring over every defect."""

    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return _error("A JSON object is required", 400)

    record = normalize_defect(payload)
    if not record.get("operator_name"):
        return _error("operator_name is required", 400)
    record.pop("id", None)
    if record.get("detected_at") is None:
        record["detected_at"] = utc_now()

    defect_id = get_defect_store().create(record)
    events = get_monitor().monitor_all(get_repository().get_defects())
    return (
        jsonify({"id": defect_id, "escalations": [_event_json(e) for e in events]}),
        201,
    )


@main_bp.route("/api/defects/aggregated", methods=["GET"])
def aggregated_defects():
    stats = get_repository().get_aggregated_stats(_filters_from_args())
    return jsonify(_jsonable(stats))


@main_bp.route("/api/defects/<defect_id>", methods=["GET"])
def get_defect(defect_id):
    record = get_defect_store().get_by_id(defect_id)
    if record is None:
        return _error("Defect not found", 404)
    return jsonify(_jsonable(normalize_defect(record)))


@main_bp.route("/api/defects/<defect_id>", methods=["PATCH"])
def update_defect(defect_id):
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict) or not payload:
        return _error("A non-empty JSON object is required", 400)

    store = get_defect_store()
    if store.get_by_id(defect_id) is None:
        return _error("Defect not found", 404)
    changes = _canonical_changes(payload)
    if "operator_name" in changes and not str(changes["operator_name"] or "").strip():
        return _error("operator_name cannot be blank", 400)

    store.update(defect_id, changes)
    record = store.get_by_id(defect_id) or {"id": defect_id, **changes}
    return jsonify(_jsonable(normalize_defect(record)))


@main_bp.route("/api/defects/<defect_id>", methods=["DELETE"])
def delete_defect(defect_id):
    store = get_defect_store()
    if store.get_by_id(defect_id) is None:
        return _error("Defect not found", 404)
    store.delete(defect_id)
    return jsonify({"deleted": defect_id})


@main_bp.route("/api/operators", methods=["GET"])
def operator_names():
    return jsonify(get_repository().get_unique_operator_names())


@main_bp.route("/api/defect-types", methods=["GET"])
def defect_types():
    return jsonify(get_repository().get_unique_defect_types())


@main_bp.route("/api/stats/summary", methods=["GET"])
def stats_summary():
    defects = get_repository().get_defects(_filters_from_args())
    return jsonify(_jsonable(aggregation.summarize(defects)))


@main_bp.route("/api/stats/operators", methods=["GET"])
def stats_operators():
    defects = get_repository().get_defects(_filters_from_args())
    return jsonify(aggregation.operator_stats(defects))


@main_bp.route("/api/stats/pareto", methods=["GET"])
def stats_pareto():
    defects = get_repository().get_defects(_filters_from_args())
    return jsonify(aggregation.defect_pareto(defects))


@main_bp.route("/api/stats/breakdown/<dimension>", methods=["GET"])
def stats_breakdown(dimension):
    defects = get_repository().get_defects(_filters_from_args())
    if dimension == "shift-leaders-by-line":
        return jsonify(
            aggregation.shift_leaders_by_line(defects, request.args.get("segment"))
        )
    builder = BREAKDOWNS.get(dimension)
    if builder is None:
        return _error(f"Unknown breakdown: {dimension}", 404)
    return jsonify(_jsonable(builder(defects)))


@main_bp.route("/api/escalations/monitor", methods=["POST"])
def run_monitor():
    events = get_monitor().monitor_all(get_repository().get_defects())
    return jsonify({"escalations": [_event_json(e) for e in events]})


@main_bp.route("/api/escalations/force", methods=["POST"])
def force_escalation():
    payload = request.get_json(silent=True) or {}
    operator = str(payload.get("operator_name") or "").strip()
    if not operator:
        return _error("operator_name is required", 400)
    try:
        count = int(payload.get("defect_count"))
        level = int(payload["level"]) if payload.get("level") is not None else None
    except (TypeError, ValueError):
        return _error("defect_count and level must be integers", 400)

    try:
        event = get_monitor().force_escalation(
            operator,
            count,
            level=level,
            defect_type=payload.get("defect_type"),
            operator_id=payload.get("operator_id"),
        )
    except ValueError as exc:
        return _error(str(exc), 400)
    return jsonify(_event_json(event))


@main_bp.route("/api/escalations/state", methods=["GET"])
def escalation_state():
    return jsonify(get_monitor().state.snapshot())


@main_bp.route("/api/escalations/state", methods=["DELETE"])
def clear_escalation_state():
    get_monitor().state.clear()
    return jsonify({"cleared": True})


@main_bp.route("/api/admin/cleanup", methods=["POST"])
def cleanup_defects():
    mode = request.args.get("mode", "all")
    if mode == "unknown":
        result = clean_unknown_operators(get_defect_store())
    elif mode == "all":
        result = clean_all_virtual_data(get_defect_store())
    else:
        return _error("mode must be 'all' or 'unknown'", 400)
    return jsonify(result.to_dict())


@main_bp.route("/api/admin/data-statistics", methods=["GET"])
def data_statistics():
    return jsonify(get_data_statistics(get_defect_store()))
