# activebreak/models/__init__.py
from .user import User
from .user_settings import UserSettings
from .user_stats import UserStats
from .posture import PostureEvent, AlertEvent
from .game import (
    GameBreakSession,
    GameScore,
    UserProgress,
    Challenge,
    ChallengeProgress,
)

__all__ = [
    "User",
    "UserSettings",
    "UserStats",
    "PostureEvent",
    "AlertEvent",
    "GameBreakSession",
    "GameScore",
    "UserProgress",
    "Challenge",
    "ChallengeProgress",
]
