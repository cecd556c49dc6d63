# config.py
import os
from datetime import timedelta

class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")
    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "dev-jwt-secret-change-me")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///activebreak.db"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # 🔐 JWT config
    JWT_TOKEN_LOCATION = ["headers"]     # where to look for tokens
    JWT_HEADER_NAME = "Authorization"    # header name
    JWT_HEADER_TYPE = "Bearer"           # expected prefix
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(days=7)  # dev: 7 days

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # "en" | "es"
    ACTIVEBREAK_LOCALE = os.environ.get("ACTIVEBREAK_LOCALE", "en")

    # Defaults for a user's first settings row
    DEFAULT_SENSITIVITY = int(os.environ.get("DEFAULT_SENSITIVITY", 5))
    DEFAULT_NOTIFICATIONS_ENABLED = True
    DEFAULT_ALERT_THRESHOLD_SECONDS = int(os.environ.get("DEFAULT_ALERT_THRESHOLD_SECONDS", 3))
    DEFAULT_BREAK_INTERVAL_MINUTES = int(os.environ.get("DEFAULT_BREAK_INTERVAL_MINUTES", 30))
    DEFAULT_CHARACTER_THEME = "default"

    LEADERBOARD_DEFAULT_LIMIT = 10
    LEADERBOARD_MAX_LIMIT = 50

    SEED_DEFAULT_CHALLENGES = True


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    JWT_SECRET_KEY = "test-jwt-secret-with-enough-length-for-hs256"
    LOG_LEVEL = "DEBUG"
    SEED_DEFAULT_CHALLENGES = False
