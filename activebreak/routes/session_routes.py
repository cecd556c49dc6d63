# activebreak/routes/session_routes.py
import logging

from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required
from sqlalchemy.exc import SQLAlchemyError

from .. import storage
from ..messages import msg
from ..notifier import QueueNotifier
from ..posture_core import CORRECT, INCORRECT
from ..scoring import BreakCompletion
from ..tracker import PostureSession, SessionSettings
from .helpers import current_user_id, db_error, fail, safe_int
from .posture_routes import keypoints_from_request

session_bp = Blueprint("session", __name__)

logger = logging.getLogger(__name__)

MAX_TICKS_PER_REQUEST = 60

# In-memory live sessions, one per user:
# key: user_id -> PostureSession
_sessions = {}


def get_session(user_id: int):
    return _sessions.get(user_id)


def drop_session(user_id: int):
    """Forget a session without flushing it (e.g. the user was deleted)."""
    return _sessions.pop(user_id, None)


def apply_settings_to_session(user_id: int, settings) -> None:
    session = _sessions.get(user_id)
    if session is not None:
        session.settings = SessionSettings.from_model(settings)


def _session_payload(session: PostureSession, **extra):
    return {
        "success": True,
        "session": session.snapshot(),
        "notifications": session.notifier.drain(),
        **extra,
    }


def _require_session():
    session = _sessions.get(current_user_id())
    if session is None:
        return None, fail(msg("no_active_session"), 404)
    return session, None


# ------------------------------
# POST /api/session/start
# ------------------------------
@session_bp.route("/start", methods=["POST"])
@jwt_required()
def start_session():
    user_id = current_user_id()
    try:
        settings = storage.get_or_create_settings(user_id)
    except SQLAlchemyError as e:
        return db_error("load settings", e)

    previous = _sessions.pop(user_id, None)
    if previous is not None:
        logger.info("replacing running session for user %s", user_id)
        previous.end()

    session = PostureSession(
        user_id=user_id,
        settings=SessionSettings.from_model(settings),
        store=storage.SqlStore(),
        notifier=QueueNotifier(),
    )
    session.start()
    _sessions[user_id] = session

    return jsonify(_session_payload(session)), 201


# ------------------------------
# GET /api/session
# ------------------------------
@session_bp.route("", methods=["GET"])
@jwt_required()
def session_status():
    session, error = _require_session()
    if error:
        return error
    return jsonify(_session_payload(session)), 200


# ------------------------------
# POST /api/session/frame
# ------------------------------
@session_bp.route("/frame", methods=["POST"])
@jwt_required()
def session_frame():
    """
    Body: {"keypoints": [{name, x, y, score}, ...]} or {"landmarks": [...]}
    """
    session, error = _require_session()
    if error:
        return error

    data = request.get_json(silent=True) or {}
    try:
        keypoints = keypoints_from_request(data)
    except ValueError:
        return fail(msg("invalid_keypoints"))

    verdict = session.on_frame(keypoints)
    return jsonify(_session_payload(session, verdict=verdict.to_dict() if verdict else None)), 200


# ------------------------------
# POST /api/session/verdict
# ------------------------------
@session_bp.route("/verdict", methods=["POST"])
@jwt_required()
def session_verdict():
    """For clients that classify on-device. Body: {"posture": "correct" | "incorrect"}"""
    session, error = _require_session()
    if error:
        return error

    data = request.get_json(silent=True) or {}
    posture = (data.get("posture") or "").strip().lower()
    if posture not in (CORRECT, INCORRECT):
        return fail(msg("invalid_posture"))

    session.on_verdict(posture)
    return jsonify(_session_payload(session)), 200


# ------------------------------
# POST /api/session/tick
# ------------------------------
@session_bp.route("/tick", methods=["POST"])
@jwt_required()
def session_tick():
    """Body: {"count": 1}; count lets a client catch up after a stall."""
    session, error = _require_session()
    if error:
        return error

    data = request.get_json(silent=True) or {}
    count = max(1, min(safe_int(data.get("count"), 1), MAX_TICKS_PER_REQUEST))
    for _ in range(count):
        session.on_tick()

    return jsonify(_session_payload(session)), 200


@session_bp.route("/pause", methods=["POST"])
@jwt_required()
def pause_session():
    session, error = _require_session()
    if error:
        return error
    session.pause()
    return jsonify(_session_payload(session)), 200


@session_bp.route("/resume", methods=["POST"])
@jwt_required()
def resume_session():
    session, error = _require_session()
    if error:
        return error
    session.resume()
    return jsonify(_session_payload(session)), 200


# ------------------------------
# POST /api/session/end
# ------------------------------
@session_bp.route("/end", methods=["POST"])
@jwt_required()
def end_session():
    session, error = _require_session()
    if error:
        return error

    totals = session.end()
    _sessions.pop(session.user_id, None)

    payload = _session_payload(session, totals=totals)
    try:
        stats = storage.get_stats(session.user_id)
    except SQLAlchemyError as e:
        return db_error("load stats", e)
    payload["stats"] = stats.to_dict() if stats else None
    return jsonify(payload), 200


# ------------------------------
# POST /api/session/break
# ------------------------------
@session_bp.route("/break", methods=["POST"])
@jwt_required()
def complete_session_break():
    """
    Body:
    {
      "completed": true,
      "quality_factor": 0.8,
      "response_time_seconds": 4,   # optional, derived from the break trigger if omitted
      "completed_exercises": 3,
      "started_at": 1732000000000,
      "ended_at": 1732000060000,
      "trigger_reason": "interval"
    }
    """
    session, error = _require_session()
    if error:
        return error

    data = request.get_json(silent=True) or {}
    try:
        completion = BreakCompletion.from_dict(data)
    except ValueError as e:
        return fail(str(e))

    result = session.complete_break(completion)
    if result is None:
        return fail(msg("db_error"), 500)

    return jsonify(_session_payload(session, **result)), 201
