# activebreak/routes/auth_routes.py
import logging

from flask import Blueprint, request, jsonify
from flask_jwt_extended import create_access_token, jwt_required
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .. import db
from ..messages import msg
from ..models.user import User, ROLES
from .helpers import current_user_id, db_error, fail

auth_bp = Blueprint("auth", __name__)

logger = logging.getLogger(__name__)


def _token_for(user: User) -> str:
    return create_access_token(identity=str(user.id), additional_claims={"role": user.role})


@auth_bp.route("/register", methods=["POST"])
def register():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = (data.get("password") or "").strip()
    role = (data.get("role") or "client").strip().lower()
    full_name = (data.get("full_name") or "").strip() or None
    org_name = (data.get("org_name") or "").strip() or None

    if not email or not password:
        return fail(msg("missing_credentials"))

    if len(password) < 6:
        return fail(msg("password_too_short"))

    if role not in ROLES:
        return fail(msg("invalid_role"))

    if User.query.filter_by(email=email).first():
        return fail(msg("email_in_use"), 409)

    user = User(email=email, role=role, full_name=full_name, org_name=org_name)
    user.set_password(password)

    try:
        db.session.add(user)
        db.session.commit()
    except IntegrityError:
        # lost a race with another registration of the same email
        db.session.rollback()
        return fail(msg("email_in_use"), 409)
    except SQLAlchemyError as e:
        return db_error("register user", e)

    logger.info("registered %s user %s", role, user.id)

    return jsonify({
        "success": True,
        "token": _token_for(user),
        "user": user.to_dict(),
    }), 201


@auth_bp.route("/login", methods=["POST"])
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = (data.get("password") or "").strip()

    if not email or not password:
        return fail(msg("missing_credentials"))

    user = User.query.filter_by(email=email).first()
    if not user or not user.check_password(password):
        return fail(msg("invalid_credentials"), 401)

    return jsonify({
        "success": True,
        "token": _token_for(user),
        "user": user.to_dict(),
    }), 200


@auth_bp.route("/me", methods=["GET"])
@jwt_required()
def me():
    user = db.session.get(User, current_user_id())
    if not user:
        return fail(msg("user_not_found"), 404)
    return jsonify({"success": True, "user": user.to_dict()}), 200
