# activebreak/routes/posture_routes.py
import time

from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required
from sqlalchemy.exc import SQLAlchemyError

from .. import storage
from ..messages import msg
from ..models.posture import EVENT_TYPES
from ..models.user_settings import SENSITIVITY_MIN, SENSITIVITY_MAX
from ..posture_core import (
    classify_posture,
    keypoints_from_mp_landmarks,
    keypoints_from_payload,
)
from .helpers import current_user_id, db_error, fail, safe_int_or_none

posture_bp = Blueprint("posture", __name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


def keypoints_from_request(data):
    """
    Accepts either {"keypoints": [{name, x, y, score}, ...]}
    or {"landmarks": [{x, y, visibility}, ...]} (MediaPipe order).
    Raises ValueError when neither is usable.
    """
    if data.get("keypoints") is not None:
        if not isinstance(data["keypoints"], list):
            raise ValueError("keypoints must be a list")
        return keypoints_from_payload(data["keypoints"])
    if data.get("landmarks") is not None:
        landmarks = data["landmarks"]
        if not isinstance(landmarks, list):
            raise ValueError("landmarks must be a list")
        try:
            return keypoints_from_mp_landmarks(landmarks)
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError("invalid landmarks") from e
    raise ValueError("keypoints or landmarks are required")


# ------------------------------
# POST /api/posture/classify
# ------------------------------
@posture_bp.route("/classify", methods=["POST"])
@jwt_required()
def classify():
    """
    Body: {"keypoints": [...], "sensitivity": 5}
    sensitivity falls back to the user's saved setting.

    A low-confidence frame answers {"verdict": null}: keep the last state.
    """
    data = request.get_json(silent=True) or {}
    try:
        keypoints = keypoints_from_request(data)
    except ValueError:
        return fail(msg("invalid_keypoints"))

    sensitivity = safe_int_or_none(data.get("sensitivity"))
    if sensitivity is None:
        try:
            sensitivity = storage.get_or_create_settings(current_user_id()).sensitivity
        except SQLAlchemyError as e:
            return db_error("load settings", e)
    sensitivity = max(SENSITIVITY_MIN, min(sensitivity, SENSITIVITY_MAX))

    verdict = classify_posture(keypoints, sensitivity)
    return jsonify({
        "success": True,
        "sensitivity": sensitivity,
        "verdict": verdict.to_dict() if verdict else None,
    }), 200


# ------------------------------
# POST /api/posture/events
# ------------------------------
@posture_bp.route("/events", methods=["POST"])
@jwt_required()
def log_posture_event():
    """
    Body: {"type": "correct" | "incorrect" | "session_start" | "session_end",
           "timestamp": 1732000000000}   # optional, defaults to now
    """
    data = request.get_json(silent=True) or {}
    event_type = (data.get("type") or "").strip().lower()
    if event_type not in EVENT_TYPES:
        return fail(msg("invalid_event_type"))

    timestamp_ms = _now_ms()
    if data.get("timestamp") is not None:
        timestamp_ms = safe_int_or_none(data.get("timestamp"))
        if timestamp_ms is None or timestamp_ms < 0:
            return fail(msg("invalid_timestamp"))

    try:
        event = storage.record_posture_event(current_user_id(), timestamp_ms, event_type)
    except SQLAlchemyError as e:
        return db_error("log posture event", e)

    return jsonify({"success": True, "event": event.to_dict()}), 201


# ------------------------------
# POST /api/posture/alerts
# ------------------------------
@posture_bp.route("/alerts", methods=["POST"])
@jwt_required()
def log_alert_event():
    data = request.get_json(silent=True) or {}

    timestamp_ms = _now_ms()
    if data.get("timestamp") is not None:
        timestamp_ms = safe_int_or_none(data.get("timestamp"))
        if timestamp_ms is None or timestamp_ms < 0:
            return fail(msg("invalid_timestamp"))

    try:
        event = storage.record_alert_event(current_user_id(), timestamp_ms)
    except SQLAlchemyError as e:
        return db_error("log alert event", e)

    return jsonify({"success": True, "alert": event.to_dict()}), 201
