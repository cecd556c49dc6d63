# activebreak/routes/helpers.py
import logging
from datetime import date, datetime
from functools import wraps
from typing import Any, Optional

from flask import jsonify
from flask_jwt_extended import get_jwt, get_jwt_identity, verify_jwt_in_request

from .. import db
from ..messages import msg

logger = logging.getLogger(__name__)


def current_user_id() -> int:
    return int(get_jwt_identity())


def fail(message: str, status: int = 400, **extra):
    return jsonify({"success": False, "message": message, **extra}), status


def db_error(action: str, exc: Exception):
    """Roll back and log; the client only gets the generic message."""
    db.session.rollback()
    logger.error("failed to %s: %s", action, exc, exc_info=exc)
    return fail(msg("db_error"), 500)


def safe_int(v: Any, default: int = 0) -> int:
    try:
        return int(v)
    except (TypeError, ValueError):
        return default


def safe_int_or_none(v: Any) -> Optional[int]:
    if v is None:
        return None
    try:
        return int(v)
    except (TypeError, ValueError):
        return None


def parse_date(value: Optional[str]) -> Optional[date]:
    """'YYYY-MM-DD' -> date; empty -> None. Raises ValueError otherwise."""
    if not value:
        return None
    return datetime.strptime(value.strip(), "%Y-%m-%d").date()


def admin_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        verify_jwt_in_request()
        if get_jwt().get("role") != "admin":
            return fail(msg("admin_required"), 403)
        return fn(*args, **kwargs)

    return wrapper
