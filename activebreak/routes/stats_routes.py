# activebreak/routes/stats_routes.py
import time

from flask import Blueprint, Response, jsonify, request
from flask_jwt_extended import jwt_required
from sqlalchemy.exc import SQLAlchemyError

from .. import storage
from ..messages import msg
from ..statistics import build_statistics, export_events_csv
from .helpers import current_user_id, db_error, fail, parse_date, safe_int

stats_bp = Blueprint("stats", __name__)


# ------------------------------
# GET /api/stats  (cumulative counters)
# ------------------------------
@stats_bp.route("", methods=["GET"])
@jwt_required()
def get_stats():
    stats = storage.get_stats(current_user_id())
    if not stats:
        return fail(msg("stats_not_found"), 404)
    return jsonify({"success": True, "stats": stats.to_dict()}), 200


# ------------------------------
# POST /api/stats/session  (additive batch)
# ------------------------------
@stats_bp.route("/session", methods=["POST"])
@jwt_required()
def log_session_batch():
    """
    Body: {"correct_seconds": 120, "incorrect_seconds": 30, "alerts_count": 2}
    Values are added to the stored totals, never replace them.
    """
    data = request.get_json(silent=True) or {}
    correct = max(0, safe_int(data.get("correct_seconds"), 0))
    incorrect = max(0, safe_int(data.get("incorrect_seconds"), 0))
    alerts = max(0, safe_int(data.get("alerts_count"), 0))

    user_id = current_user_id()
    try:
        storage.add_session_totals(user_id, correct, incorrect, alerts)
        stats = storage.get_stats(user_id)
    except SQLAlchemyError as e:
        return db_error("log session totals", e)

    return jsonify({"success": True, "stats": stats.to_dict()}), 200


# ------------------------------
# GET /api/stats/summary?start_date=YYYY-MM-DD&end_date=YYYY-MM-DD
# ------------------------------
@stats_bp.route("/summary", methods=["GET"])
@jwt_required()
def get_statistics_summary():
    try:
        start_date = parse_date(request.args.get("start_date"))
        end_date = parse_date(request.args.get("end_date"))
    except ValueError:
        return fail(msg("invalid_date"))

    if start_date and end_date and start_date > end_date:
        return fail(msg("invalid_date_range"))

    try:
        summary = build_statistics(current_user_id(), start_date, end_date)
    except SQLAlchemyError as e:
        return db_error("build statistics", e)

    return jsonify({"success": True, **summary}), 200


# ------------------------------
# GET /api/stats/export?start_date=YYYY-MM-DD&end_date=YYYY-MM-DD
# ------------------------------
@stats_bp.route("/export", methods=["GET"])
@jwt_required()
def export_history():
    """Posture history as a CSV download: timestamp, local_time, event."""
    try:
        start_date = parse_date(request.args.get("start_date"))
        end_date = parse_date(request.args.get("end_date"))
    except ValueError:
        return fail(msg("invalid_date"))

    if start_date and end_date and start_date > end_date:
        return fail(msg("invalid_date_range"))

    try:
        body = export_events_csv(current_user_id(), start_date, end_date)
    except SQLAlchemyError as e:
        return db_error("export posture history", e)

    filename = f"activebreak_session_{int(time.time() * 1000)}.csv"
    return Response(
        body,
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
