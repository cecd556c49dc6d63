# activebreak/models/posture.py
from .. import db

EVENT_CORRECT = "correct"
EVENT_INCORRECT = "incorrect"
EVENT_SESSION_START = "session_start"
EVENT_SESSION_END = "session_end"

EVENT_TYPES = (EVENT_CORRECT, EVENT_INCORRECT, EVENT_SESSION_START, EVENT_SESSION_END)


# -----------------------------
# Append-only posture log
# -----------------------------
class PostureEvent(db.Model):
    __tablename__ = "posture_events"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # epoch milliseconds
    timestamp_ms = db.Column(db.BigInteger, nullable=False, index=True)
    event_type = db.Column(
        db.Enum(*EVENT_TYPES, name="posture_event_type"),
        nullable=False,
    )

    user = db.relationship(
        "User",
        backref=db.backref("posture_events", cascade="all, delete-orphan"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "timestamp": int(self.timestamp_ms),
            "type": self.event_type,
        }


class AlertEvent(db.Model):
    __tablename__ = "alert_events"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    timestamp_ms = db.Column(db.BigInteger, nullable=False, index=True)

    user = db.relationship(
        "User",
        backref=db.backref("alert_events", cascade="all, delete-orphan"),
    )

    def to_dict(self):
        return {"id": self.id, "timestamp": int(self.timestamp_ms)}
