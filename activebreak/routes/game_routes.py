# activebreak/routes/game_routes.py
from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required
from sqlalchemy.exc import SQLAlchemyError

from .. import storage
from ..messages import msg
from ..scoring import PERIOD_DAILY, PERIOD_TYPES, BreakCompletion
from .helpers import current_user_id, db_error, fail, safe_int_or_none

game_bp = Blueprint("game", __name__)


def _period_type_arg(default=PERIOD_DAILY):
    period_type = (request.args.get("period_type") or default).strip().lower()
    return period_type if period_type in PERIOD_TYPES else None


# ------------------------------
# POST /api/game/breaks
# ------------------------------
@game_bp.route("/breaks", methods=["POST"])
@jwt_required()
def record_break():
    """
    Expected body:
    {
      "completed": true,
      "quality_factor": 0.8,
      "response_time_seconds": 4,
      "completed_exercises": 3,
      "started_at": 1732000000000,
      "ended_at": 1732000060000,
      "trigger_reason": "interval"
    }

    Returns:
    {
      "success": true,
      "xp_gained": 110,
      "total_xp": 430,
      "level": 3,
      "break_session": {...},
      "completed_challenges": [...]
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        completion = BreakCompletion.from_dict(data)
    except ValueError as e:
        return fail(str(e))

    try:
        result = storage.record_break_completion(current_user_id(), completion)
    except SQLAlchemyError as e:
        return db_error("record break completion", e)

    return jsonify({"success": True, **result}), 201


# ------------------------------
# GET /api/game/leaderboard?period_type=weekly&period_key=2025-W47&limit=10
# ------------------------------
@game_bp.route("/leaderboard", methods=["GET"])
@jwt_required()
def leaderboard():
    period_type = _period_type_arg()
    if period_type is None:
        return fail(msg("invalid_period_type"))

    period_key = (request.args.get("period_key") or "").strip() or None
    limit = safe_int_or_none(request.args.get("limit"))

    try:
        board = storage.get_leaderboard(period_type, period_key, limit)
    except SQLAlchemyError as e:
        return db_error("load leaderboard", e)

    return jsonify({"success": True, **board}), 200


# ------------------------------
# GET /api/game/progress
# ------------------------------
@game_bp.route("/progress", methods=["GET"])
@jwt_required()
def progress():
    try:
        summary = storage.get_progress(current_user_id())
    except SQLAlchemyError as e:
        return db_error("load progress", e)
    return jsonify({"success": True, "progress": summary}), 200


# ------------------------------
# GET /api/game/challenges?period_type=daily
# ------------------------------
@game_bp.route("/challenges", methods=["GET"])
@jwt_required()
def active_challenges():
    period_type = _period_type_arg()
    if period_type is None:
        return fail(msg("invalid_period_type"))

    try:
        period_key, challenges = storage.get_active_challenges(current_user_id(), period_type)
    except SQLAlchemyError as e:
        return db_error("load challenges", e)

    return jsonify({
        "success": True,
        "period_type": period_type,
        "period_key": period_key,
        "challenges": challenges,
    }), 200
