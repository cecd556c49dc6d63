# activebreak/models/game.py
from .. import db
from ..scoring import PERIOD_TYPES, level_for_xp, utc_now


# -----------------------------
# Guided breaks
# -----------------------------
class GameBreakSession(db.Model):
    __tablename__ = "game_break_sessions"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    started_at_ms = db.Column(db.BigInteger, nullable=False)
    ended_at_ms = db.Column(db.BigInteger, nullable=False)
    xp_awarded = db.Column(db.Integer, nullable=False, default=0)
    completed_exercises = db.Column(db.Integer, nullable=False, default=0)
    trigger_reason = db.Column(db.String(50), nullable=False, default="interval")
    quality_factor = db.Column(db.Float, nullable=False, default=0.0)
    response_time_seconds = db.Column(db.Float)

    user = db.relationship(
        "User",
        backref=db.backref("break_sessions", cascade="all, delete-orphan"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "started_at": int(self.started_at_ms),
            "ended_at": int(self.ended_at_ms),
            "xp_awarded": int(self.xp_awarded or 0),
            "completed_exercises": int(self.completed_exercises or 0),
            "trigger_reason": self.trigger_reason,
            "quality_factor": float(self.quality_factor or 0.0),
            "response_time_seconds": self.response_time_seconds,
        }


# -----------------------------
# Period leaderboard rows
# -----------------------------
class GameScore(db.Model):
    __tablename__ = "game_scores"
    __table_args__ = (
        db.UniqueConstraint("user_id", "period_type", "period_key", name="uq_game_score_period"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    period_type = db.Column(
        db.Enum(*PERIOD_TYPES, name="game_period_type"),
        nullable=False,
    )
    period_key = db.Column(db.String(10), nullable=False)
    total_score = db.Column(db.Integer, nullable=False, default=0)
    breaks_count = db.Column(db.Integer, nullable=False, default=0)
    last_break_at_ms = db.Column(db.BigInteger)

    user = db.relationship(
        "User",
        backref=db.backref("game_scores", cascade="all, delete-orphan"),
    )


class UserProgress(db.Model):
    """
    Global XP per user. The level is always derived from total_xp
    so the two can never disagree.
    """
    __tablename__ = "user_progress"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    total_xp = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(
        db.DateTime, default=utc_now, onupdate=utc_now, nullable=False
    )

    user = db.relationship(
        "User",
        backref=db.backref("progress", uselist=False, cascade="all, delete-orphan"),
    )

    @property
    def level(self) -> int:
        return level_for_xp(self.total_xp or 0)

    def to_dict(self):
        return {
            "total_xp": int(self.total_xp or 0),
            "level": self.level,
        }


# -----------------------------
# Period challenges
# -----------------------------
class Challenge(db.Model):
    __tablename__ = "challenges"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(50), unique=True, nullable=False)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.String(255))
    period_type = db.Column(
        db.Enum(*PERIOD_TYPES, name="challenge_period_type"),
        nullable=False,
    )
    target_type = db.Column(
        db.Enum("breaks_completed", "xp_gain", name="challenge_target_type"),
        nullable=False,
    )
    target_value = db.Column(db.Integer, nullable=False, default=1)
    reward_xp = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    progress = db.relationship(
        "ChallengeProgress", back_populates="challenge", cascade="all, delete-orphan"
    )


class ChallengeProgress(db.Model):
    __tablename__ = "challenge_progress"
    __table_args__ = (
        db.UniqueConstraint("user_id", "challenge_id", "period_key", name="uq_challenge_progress"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    challenge_id = db.Column(
        db.Integer, db.ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False
    )
    period_key = db.Column(db.String(10), nullable=False)
    progress_value = db.Column(db.Integer, nullable=False, default=0)
    completed = db.Column(db.Boolean, nullable=False, default=False)
    completed_at = db.Column(db.DateTime)

    challenge = db.relationship("Challenge", back_populates="progress")
    user = db.relationship(
        "User",
        backref=db.backref("challenge_progress", cascade="all, delete-orphan"),
    )
