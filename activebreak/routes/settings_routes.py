# activebreak/routes/settings_routes.py
from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required
from sqlalchemy.exc import SQLAlchemyError

from .. import storage
from ..messages import msg
from .helpers import current_user_id, db_error, fail
from .session_routes import apply_settings_to_session

settings_bp = Blueprint("settings", __name__)


@settings_bp.route("", methods=["GET"])
@jwt_required()
def get_settings():
    try:
        settings = storage.get_or_create_settings(current_user_id())
    except SQLAlchemyError as e:
        return db_error("load settings", e)
    return jsonify({"success": True, "settings": settings.to_dict()}), 200


@settings_bp.route("", methods=["PUT"])
@jwt_required()
def save_settings():
    """
    Body (all optional):
    {
      "sensitivity": 1..10,
      "notifications_enabled": true,
      "alert_threshold_seconds": 3,
      "break_interval_minutes": 30,
      "character_theme": "default"
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        settings = storage.save_settings(current_user_id(), data)
    except ValueError as e:
        return fail(msg("invalid_settings"), error=str(e))
    except SQLAlchemyError as e:
        return db_error("save settings", e)

    # a running session picks up the new values
    apply_settings_to_session(current_user_id(), settings)

    return jsonify({"success": True, "settings": settings.to_dict()}), 200
