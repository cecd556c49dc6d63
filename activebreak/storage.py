# activebreak/storage.py
"""
Database operations shared by the HTTP routes and the live session tracker.

Every public function here is one unit of work: it commits on success. On
failure the caller is expected to roll back (see ``SqlStore`` and the
``db_error`` helper in the routes).
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from flask import current_app
from sqlalchemy import func
from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError

from . import db
from .models.user import User
from .models.user_settings import UserSettings, SENSITIVITY_MIN, SENSITIVITY_MAX
from .models.user_stats import UserStats
from .models.posture import PostureEvent, AlertEvent, EVENT_TYPES
from .models.game import (
    GameBreakSession,
    GameScore,
    UserProgress,
    Challenge,
    ChallengeProgress,
)
from .scoring import (
    PERIOD_TYPES,
    BreakCompletion,
    compute_break_xp,
    current_period_key,
    level_for_xp,
    local_datetime_from_ms,
    period_key,
    period_keys_for,
    utc_now,
    xp_for_level,
)

logger = logging.getLogger(__name__)


# ------------------------------
# Insert-or-accumulate
# ------------------------------
def upsert_accumulate(
    model,
    keys: Dict[str, Any],
    increments: Dict[str, Any],
    assign: Optional[Dict[str, Any]] = None,
) -> None:
    """
    INSERT keys + increments (+ assign); on a unique conflict on `keys`,
    add the increments to the stored columns and overwrite the assign columns.
    Uses the dialect's native upsert so no explicit locking is needed.
    """
    assign = assign or {}
    table = model.__table__
    values = {**keys, **increments, **assign}
    dialect = db.session.get_bind().dialect.name

    if dialect == "mysql":
        stmt = mysql_insert(table).values(**values)
        updates = {col: table.c[col] + stmt.inserted[col] for col in increments}
        updates.update({col: stmt.inserted[col] for col in assign})
        stmt = stmt.on_duplicate_key_update(**updates)
    else:
        insert = pg_insert if dialect == "postgresql" else sqlite_insert
        stmt = insert(table).values(**values)
        updates = {col: table.c[col] + stmt.excluded[col] for col in increments}
        updates.update({col: stmt.excluded[col] for col in assign})
        stmt = stmt.on_conflict_do_update(index_elements=list(keys), set_=updates)

    db.session.execute(stmt)


# ------------------------------
# Users
# ------------------------------
def get_user(user_id: int) -> Optional[User]:
    return db.session.get(User, user_id)


# ------------------------------
# Posture / alert log
# ------------------------------
def record_posture_event(user_id: int, timestamp_ms: int, event_type: str) -> PostureEvent:
    if event_type not in EVENT_TYPES:
        raise ValueError(f"unknown posture event type: {event_type!r}")
    event = PostureEvent(user_id=user_id, timestamp_ms=int(timestamp_ms), event_type=event_type)
    db.session.add(event)
    db.session.commit()
    return event


def record_alert_event(user_id: int, timestamp_ms: int) -> AlertEvent:
    event = AlertEvent(user_id=user_id, timestamp_ms=int(timestamp_ms))
    db.session.add(event)
    db.session.commit()
    return event


def posture_events_between(
    user_id: int, start_ms: Optional[int], end_ms: int
) -> List[PostureEvent]:
    q = PostureEvent.query.filter(
        PostureEvent.user_id == user_id,
        PostureEvent.timestamp_ms <= end_ms,
    )
    if start_ms is not None:
        q = q.filter(PostureEvent.timestamp_ms >= start_ms)
    return q.order_by(PostureEvent.timestamp_ms.asc(), PostureEvent.id.asc()).all()


def latest_posture_event_before(user_id: int, before_ms: int) -> Optional[PostureEvent]:
    return (
        PostureEvent.query.filter(
            PostureEvent.user_id == user_id,
            PostureEvent.timestamp_ms < before_ms,
        )
        .order_by(PostureEvent.timestamp_ms.desc(), PostureEvent.id.desc())
        .first()
    )


def count_alerts_between(user_id: int, start_ms: Optional[int], end_ms: int) -> int:
    q = db.session.query(func.count(AlertEvent.id)).filter(
        AlertEvent.user_id == user_id,
        AlertEvent.timestamp_ms <= end_ms,
    )
    if start_ms is not None:
        q = q.filter(AlertEvent.timestamp_ms >= start_ms)
    return int(q.scalar() or 0)


# ------------------------------
# Settings
# ------------------------------
def _default_settings(user_id: int) -> UserSettings:
    cfg = current_app.config
    return UserSettings(
        user_id=user_id,
        sensitivity=cfg["DEFAULT_SENSITIVITY"],
        notifications_enabled=cfg["DEFAULT_NOTIFICATIONS_ENABLED"],
        alert_threshold_seconds=cfg["DEFAULT_ALERT_THRESHOLD_SECONDS"],
        break_interval_minutes=cfg["DEFAULT_BREAK_INTERVAL_MINUTES"],
        character_theme=cfg["DEFAULT_CHARACTER_THEME"],
    )


def get_or_create_settings(user_id: int) -> UserSettings:
    settings = UserSettings.query.filter_by(user_id=user_id).first()
    if settings is None:
        settings = _default_settings(user_id)
        db.session.add(settings)
        db.session.commit()
        logger.info("created default settings for user %s", user_id)
    return settings


def validate_settings(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Returns the subset of `data` that maps onto UserSettings columns.
    Raises ValueError with a field-specific reason.
    """
    cleaned: Dict[str, Any] = {}

    if "sensitivity" in data:
        try:
            sensitivity = int(data["sensitivity"])
        except (TypeError, ValueError):
            raise ValueError("sensitivity must be an integer") from None
        if not SENSITIVITY_MIN <= sensitivity <= SENSITIVITY_MAX:
            raise ValueError(f"sensitivity must be between {SENSITIVITY_MIN} and {SENSITIVITY_MAX}")
        cleaned["sensitivity"] = sensitivity

    if "notifications_enabled" in data:
        value = data["notifications_enabled"]
        if isinstance(value, str):
            value = value.strip().lower() in ("1", "true", "yes", "on")
        cleaned["notifications_enabled"] = bool(value)

    for field in ("alert_threshold_seconds", "break_interval_minutes"):
        if field in data:
            try:
                value = int(data[field])
            except (TypeError, ValueError):
                raise ValueError(f"{field} must be an integer") from None
            if value < 1:
                raise ValueError(f"{field} must be at least 1")
            cleaned[field] = value

    if "character_theme" in data:
        theme = (data["character_theme"] or "").strip()
        if not theme or len(theme) > 50:
            raise ValueError("character_theme must be 1-50 characters")
        cleaned["character_theme"] = theme

    return cleaned


def save_settings(user_id: int, data: Dict[str, Any]) -> UserSettings:
    cleaned = validate_settings(data)
    settings = get_or_create_settings(user_id)
    for field, value in cleaned.items():
        setattr(settings, field, value)
    db.session.commit()
    return settings


# ------------------------------
# Cumulative stats
# ------------------------------
def add_session_totals(
    user_id: int, correct_seconds: int, incorrect_seconds: int, alerts_count: int
) -> bool:
    upsert_accumulate(
        UserStats,
        keys={"user_id": user_id},
        increments={
            "correct_seconds": max(0, int(correct_seconds)),
            "incorrect_seconds": max(0, int(incorrect_seconds)),
            "alerts_count": max(0, int(alerts_count)),
        },
    )
    db.session.commit()
    return True


def get_stats(user_id: int) -> Optional[UserStats]:
    return UserStats.query.filter_by(user_id=user_id).first()


# ------------------------------
# Progress / XP
# ------------------------------
def _add_xp(user_id: int, xp: int) -> None:
    upsert_accumulate(
        UserProgress,
        keys={"user_id": user_id},
        increments={"total_xp": int(xp)},
        assign={"updated_at": utc_now()},
    )


def get_progress(user_id: int) -> Dict[str, Any]:
    progress = UserProgress.query.filter_by(user_id=user_id).first()
    total_xp = int(progress.total_xp) if progress else 0
    level = level_for_xp(total_xp)
    return {
        "total_xp": total_xp,
        "level": level,
        "next_level_xp": xp_for_level(level + 1),
    }


# ------------------------------
# Challenges
# ------------------------------
def _advance_challenges(user_id: int, xp: int, ended_at: datetime) -> List[Dict[str, Any]]:
    """
    Advance every active challenge for the periods containing `ended_at`.
    Rewards are granted once per (challenge, period). Returns newly completed ones.
    """
    keys = period_keys_for(ended_at)
    completed_now = []

    for ch in Challenge.query.filter(Challenge.is_active.is_(True)).all():
        step = 1 if ch.target_type == "breaks_completed" else int(xp)
        if step <= 0:
            continue
        pkey = keys[ch.period_type]
        upsert_accumulate(
            ChallengeProgress,
            keys={"user_id": user_id, "challenge_id": ch.id, "period_key": pkey},
            increments={"progress_value": step},
        )
        row = ChallengeProgress.query.filter_by(
            user_id=user_id, challenge_id=ch.id, period_key=pkey
        ).populate_existing().first()

        if row.completed or row.progress_value < ch.target_value:
            continue

        row.completed = True
        row.completed_at = utc_now()
        if ch.reward_xp:
            _add_xp(user_id, ch.reward_xp)
        completed_now.append(
            {
                "id": ch.id,
                "code": ch.code,
                "name": ch.name,
                "period_type": ch.period_type,
                "period_key": pkey,
                "reward_xp": int(ch.reward_xp or 0),
            }
        )

    return completed_now


DEFAULT_CHALLENGES = (
    {
        "code": "daily_three_breaks",
        "name": "Three breaks today",
        "description": "Complete 3 guided breaks in one day",
        "period_type": "daily",
        "target_type": "breaks_completed",
        "target_value": 3,
        "reward_xp": 30,
    },
    {
        "code": "weekly_500_xp",
        "name": "500 XP this week",
        "description": "Earn 500 XP from breaks in one week",
        "period_type": "weekly",
        "target_type": "xp_gain",
        "target_value": 500,
        "reward_xp": 100,
    },
    {
        "code": "monthly_forty_breaks",
        "name": "Forty breaks this month",
        "description": "Complete 40 guided breaks in one month",
        "period_type": "monthly",
        "target_type": "breaks_completed",
        "target_value": 40,
        "reward_xp": 250,
    },
)


def seed_default_challenges() -> int:
    """Insert the built-in challenges that are missing. Returns how many were added."""
    existing = {code for (code,) in db.session.query(Challenge.code).all()}
    added = 0
    for fields in DEFAULT_CHALLENGES:
        if fields["code"] in existing:
            continue
        db.session.add(Challenge(**fields))
        added += 1
    if added:
        db.session.commit()
        logger.info("seeded %s default challenges", added)
    return added


def get_active_challenges(user_id: int, period_type: str, now: Optional[datetime] = None):
    pkey = current_period_key(period_type, now)
    rows = (
        db.session.query(Challenge, ChallengeProgress)
        .outerjoin(
            ChallengeProgress,
            (ChallengeProgress.challenge_id == Challenge.id)
            & (ChallengeProgress.user_id == user_id)
            & (ChallengeProgress.period_key == pkey),
        )
        .filter(Challenge.is_active.is_(True), Challenge.period_type == period_type)
        .order_by(Challenge.id.asc())
        .all()
    )

    challenges = []
    for ch, progress in rows:
        challenges.append(
            {
                "id": ch.id,
                "code": ch.code,
                "name": ch.name,
                "description": ch.description,
                "target_type": ch.target_type,
                "target_value": int(ch.target_value),
                "reward_xp": int(ch.reward_xp or 0),
                "progress_value": int(progress.progress_value) if progress else 0,
                "completed": bool(progress.completed) if progress else False,
            }
        )
    return pkey, challenges


# ------------------------------
# Break completion
# ------------------------------
def record_break_completion(user_id: int, completion: BreakCompletion) -> Dict[str, Any]:
    xp = compute_break_xp(
        completion.completed,
        completion.quality_factor,
        completion.response_time_seconds,
    )

    session = GameBreakSession(
        user_id=user_id,
        started_at_ms=completion.started_at_ms,
        ended_at_ms=completion.ended_at_ms,
        xp_awarded=xp,
        completed_exercises=completion.completed_exercises,
        trigger_reason=completion.trigger_reason,
        quality_factor=completion.quality_factor,
        response_time_seconds=completion.response_time_seconds,
    )
    db.session.add(session)

    ended_at = local_datetime_from_ms(completion.ended_at_ms)
    completed_challenges = []

    if xp > 0:
        for pt in PERIOD_TYPES:
            upsert_accumulate(
                GameScore,
                keys={"user_id": user_id, "period_type": pt, "period_key": period_key(pt, ended_at)},
                increments={"total_score": xp, "breaks_count": 1},
                assign={"last_break_at_ms": completion.ended_at_ms},
            )
        _add_xp(user_id, xp)
        completed_challenges = _advance_challenges(user_id, xp, ended_at)

    db.session.commit()

    progress = get_progress(user_id)
    logger.info(
        "user %s completed break: +%s xp (total %s, level %s)",
        user_id, xp, progress["total_xp"], progress["level"],
    )
    return {
        "xp_gained": xp,
        "total_xp": progress["total_xp"],
        "level": progress["level"],
        "break_session": session.to_dict(),
        "completed_challenges": completed_challenges,
    }


# ------------------------------
# Leaderboard
# ------------------------------
def get_leaderboard(
    period_type: str, period_key_value: Optional[str] = None, limit: Optional[int] = None
) -> Dict[str, Any]:
    if period_type not in PERIOD_TYPES:
        raise ValueError(f"unknown period type: {period_type!r}")

    cfg = current_app.config
    if limit is None:
        limit = cfg["LEADERBOARD_DEFAULT_LIMIT"]
    limit = max(1, min(int(limit), cfg["LEADERBOARD_MAX_LIMIT"]))
    pkey = period_key_value or current_period_key(period_type)

    rows = (
        db.session.query(GameScore, User, UserProgress)
        .join(User, User.id == GameScore.user_id)
        .outerjoin(UserProgress, UserProgress.user_id == GameScore.user_id)
        .filter(GameScore.period_type == period_type, GameScore.period_key == pkey)
        .order_by(GameScore.total_score.desc(), GameScore.last_break_at_ms.asc())
        .limit(limit)
        .all()
    )

    entries = []
    for rank, (score, user, progress) in enumerate(rows, start=1):
        entries.append(
            {
                "rank": rank,
                "user_id": user.id,
                "full_name": user.full_name,
                "org_name": user.org_name,
                "total_score": int(score.total_score),
                "breaks_count": int(score.breaks_count),
                "last_break_at": score.last_break_at_ms,
                "total_xp": int(progress.total_xp) if progress else None,
                "level": progress.level if progress else None,
            }
        )

    return {"period_type": period_type, "period_key": pkey, "entries": entries}


# ------------------------------
# Tracker persistence adapter
# ------------------------------
class SqlStore:
    """
    Persistence used by PostureSession. Write failures are logged and
    reported as a falsy result; the session keeps its in-memory counters.
    Must be used inside an application context.
    """

    def _run(self, what, fn, *args):
        try:
            return fn(*args)
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("failed to %s", what)
            return None

    def record_posture_event(self, user_id, timestamp_ms, event_type):
        return self._run("record posture event", record_posture_event, user_id, timestamp_ms, event_type)

    def record_alert_event(self, user_id, timestamp_ms):
        return self._run("record alert event", record_alert_event, user_id, timestamp_ms)

    def add_session_totals(self, user_id, correct_seconds, incorrect_seconds, alerts_count):
        return self._run(
            "flush session totals",
            add_session_totals,
            user_id, correct_seconds, incorrect_seconds, alerts_count,
        )

    def record_break_completion(self, user_id, completion):
        return self._run("record break completion", record_break_completion, user_id, completion)
