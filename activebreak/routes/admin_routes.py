# activebreak/routes/admin_routes.py
import logging

from flask import Blueprint, jsonify
from sqlalchemy.exc import SQLAlchemyError

from .. import db
from ..messages import msg
from ..models.user import User
from .helpers import admin_required, current_user_id, db_error, fail
from .session_routes import drop_session

admin_bp = Blueprint("admin", __name__)

logger = logging.getLogger(__name__)


@admin_bp.route("/users", methods=["GET"])
@admin_required
def list_users():
    users = User.query.order_by(User.created_at.desc(), User.id.desc()).all()
    return jsonify({"success": True, "users": [u.to_dict() for u in users]}), 200


@admin_bp.route("/users/<int:user_id>", methods=["DELETE"])
@admin_required
def delete_user(user_id):
    if user_id == current_user_id():
        return fail(msg("cannot_delete_self"))

    user = db.session.get(User, user_id)
    if not user:
        return fail(msg("user_not_found"), 404)

    try:
        db.session.delete(user)
        db.session.commit()
    except SQLAlchemyError as e:
        return db_error("delete user", e)

    drop_session(user_id)

    logger.info("admin %s deleted user %s", current_user_id(), user_id)
    return jsonify({"success": True}), 200
