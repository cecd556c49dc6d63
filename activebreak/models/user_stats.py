# activebreak/models/user_stats.py
from .. import db

class UserStats(db.Model):
    __tablename__ = "user_stats"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    correct_seconds = db.Column(db.Integer, default=0, nullable=False)
    incorrect_seconds = db.Column(db.Integer, default=0, nullable=False)
    alerts_count = db.Column(db.Integer, default=0, nullable=False)

    user = db.relationship(
        "User",
        backref=db.backref("stats", uselist=False, cascade="all, delete-orphan"),
    )

    def to_dict(self):
        return {
            "correct_seconds": int(self.correct_seconds or 0),
            "incorrect_seconds": int(self.incorrect_seconds or 0),
            "alerts_count": int(self.alerts_count or 0),
        }
