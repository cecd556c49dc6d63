# activebreak/models/user_settings.py
from .. import db
from ..scoring import utc_now

SENSITIVITY_MIN = 1
SENSITIVITY_MAX = 10


class UserSettings(db.Model):
    __tablename__ = "user_settings"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    sensitivity = db.Column(db.Integer, nullable=False, default=5)
    notifications_enabled = db.Column(db.Boolean, nullable=False, default=True)
    alert_threshold_seconds = db.Column(db.Integer, nullable=False, default=3)
    break_interval_minutes = db.Column(db.Integer, nullable=False, default=30)
    character_theme = db.Column(db.String(50), nullable=False, default="default")

    updated_at = db.Column(
        db.DateTime, default=utc_now, onupdate=utc_now, nullable=False
    )

    user = db.relationship(
        "User",
        backref=db.backref("settings", uselist=False, cascade="all, delete-orphan"),
    )

    def to_dict(self):
        return {
            "sensitivity": int(self.sensitivity),
            "notifications_enabled": bool(self.notifications_enabled),
            "alert_threshold_seconds": int(self.alert_threshold_seconds),
            "break_interval_minutes": int(self.break_interval_minutes),
            "character_theme": self.character_theme,
        }
