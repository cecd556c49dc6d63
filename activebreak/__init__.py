# activebreak/__init__.py

import logging

from flask import Flask, jsonify
from flask_cors import CORS
from flask_sqlalchemy import SQLAlchemy
from flask_jwt_extended import JWTManager

from config import Config

db = SQLAlchemy()
jwt = JWTManager()

logger = logging.getLogger(__name__)


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    # Init extensions
    db.init_app(app)
    jwt.init_app(app)

    # CORS: the desktop shell (and others) call /api/*
    CORS(app, resources={r"/api/*": {"origins": "*"}})

    # -----------------------------
    # JWT error handlers
    # -----------------------------
    @jwt.unauthorized_loader
    def unauthorized_callback(reason):
        return (
            jsonify(
                {
                    "success": False,
                    "message": "Missing or invalid auth token",
                    "error": reason,
                }
            ),
            401,
        )

    @jwt.invalid_token_loader
    def invalid_token_callback(reason):
        return (
            jsonify(
                {
                    "success": False,
                    "message": "Invalid auth token",
                    "error": reason,
                }
            ),
            422,
        )

    @jwt.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):
        return jsonify({"success": False, "message": "Token has expired"}), 401

    # -----------------------------
    # IMPORT BLUEPRINTS (all routes)
    # -----------------------------
    from .routes.auth_routes import auth_bp
    from .routes.admin_routes import admin_bp
    from .routes.posture_routes import posture_bp
    from .routes.settings_routes import settings_bp
    from .routes.stats_routes import stats_bp
    from .routes.session_routes import session_bp
    from .routes.game_routes import game_bp
    from .routes.exercise_routes import exercises_bp

    # -----------------------------
    # REGISTER BLUEPRINTS
    # -----------------------------
    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(admin_bp, url_prefix="/api/admin")
    app.register_blueprint(posture_bp, url_prefix="/api/posture")
    app.register_blueprint(settings_bp, url_prefix="/api/settings")
    app.register_blueprint(stats_bp, url_prefix="/api/stats")
    app.register_blueprint(session_bp, url_prefix="/api/session")
    app.register_blueprint(game_bp, url_prefix="/api/game")
    app.register_blueprint(exercises_bp, url_prefix="/api/exercises")

    @app.route("/api/health")
    def health():
        return {"status": "ok"}

    # -----------------------------
    # DB init
    # -----------------------------
    # models must be imported before create_all so their tables are known
    from . import models  # noqa: F401

    with app.app_context():
        try:
            db.create_all()
        except Exception:
            logger.critical("could not initialise database at %s", app.config["SQLALCHEMY_DATABASE_URI"])
            raise

        if app.config.get("SEED_DEFAULT_CHALLENGES"):
            from .storage import seed_default_challenges
            seed_default_challenges()

    return app
