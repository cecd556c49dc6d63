# activebreak/routes/exercise_routes.py
from flask import Blueprint, jsonify

from ..exercises import BREAK_EXERCISES, localized_exercise
from ..messages import msg
from .helpers import fail

exercises_bp = Blueprint("exercises", __name__)


@exercises_bp.route("", methods=["GET"])
def list_exercises():
    return jsonify({
        "exercises": [localized_exercise(ex) for ex in BREAK_EXERCISES.values()]
    }), 200


@exercises_bp.route("/<exercise_id>", methods=["GET"])
def get_exercise(exercise_id):
    ex = BREAK_EXERCISES.get((exercise_id or "").lower())
    if not ex:
        return fail(msg("exercise_not_found"), 404)
    return jsonify({"exercise": localized_exercise(ex)}), 200
