# activebreak/scoring.py
import math
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Optional, Union

PERIOD_DAILY = "daily"
PERIOD_WEEKLY = "weekly"
PERIOD_MONTHLY = "monthly"
PERIOD_TYPES = (PERIOD_DAILY, PERIOD_WEEKLY, PERIOD_MONTHLY)

BASE_BREAK_XP = 50
MAX_QUALITY_XP = 50
XP_PER_LEVEL_STEP = 100

# (max response time in seconds, bonus XP), checked in order
ENGAGEMENT_BONUSES = ((5, 20), (15, 10))

DateLike = Union[date, datetime]


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def level_for_xp(total_xp: int) -> int:
    """
    level = max(1, floor(sqrt(total_xp / 100)) + 1)

      0 XP -> 1, 100 XP -> 2, 400 XP -> 3, 900 XP -> 4
    """
    total_xp = max(0, int(total_xp or 0))
    # floor(sqrt(n / 100)) == isqrt(n // 100) for integer n
    return max(1, math.isqrt(total_xp // XP_PER_LEVEL_STEP) + 1)


def xp_for_level(level: int) -> int:
    """Minimum total XP needed to reach `level`."""
    if level <= 1:
        return 0
    return (level - 1) ** 2 * XP_PER_LEVEL_STEP


def engagement_bonus(response_time_seconds: Optional[float]) -> int:
    if response_time_seconds is None:
        return 0
    for limit, bonus in ENGAGEMENT_BONUSES:
        if response_time_seconds <= limit:
            return bonus
    return 0


def compute_break_xp(
    completed: bool,
    quality_factor: float,
    response_time_seconds: Optional[float] = None,
) -> int:
    """XP for one guided break. Incomplete breaks earn nothing."""
    if not completed:
        return 0
    quality = clamp(float(quality_factor or 0.0), 0.0, 1.0)
    # half-up rounding, round() would send 0.5 to the even neighbour
    quality_xp = math.floor(MAX_QUALITY_XP * quality + 0.5)
    # no streak bonus yet
    return BASE_BREAK_XP + quality_xp + engagement_bonus(response_time_seconds)


@dataclass(frozen=True)
class BreakCompletion:
    completed: bool
    quality_factor: float
    started_at_ms: int
    ended_at_ms: int
    response_time_seconds: Optional[float] = None
    completed_exercises: int = 0
    trigger_reason: str = "interval"

    @classmethod
    def from_dict(cls, data: dict) -> "BreakCompletion":
        """
        Parse a client payload. Raises ValueError on missing or malformed fields.
        """
        try:
            started_at_ms = int(data["started_at"])
            ended_at_ms = int(data["ended_at"])
            quality_factor = float(data.get("quality_factor") or 0.0)
            response = data.get("response_time_seconds")
            response_time_seconds = float(response) if response is not None else None
            completed_exercises = int(data.get("completed_exercises") or 0)
        except KeyError as e:
            raise ValueError(f"{e.args[0]} is required") from None
        except (TypeError, ValueError):
            raise ValueError("malformed break payload") from None

        if ended_at_ms < started_at_ms:
            raise ValueError("ended_at must not be before started_at")

        return cls(
            completed=bool(data.get("completed", False)),
            quality_factor=clamp(quality_factor, 0.0, 1.0),
            started_at_ms=started_at_ms,
            ended_at_ms=ended_at_ms,
            response_time_seconds=response_time_seconds,
            completed_exercises=max(0, completed_exercises),
            trigger_reason=str(data.get("trigger_reason") or "interval")[:50],
        )


# ------------------------------
# Period keys (local calendar)
# ------------------------------
def day_key(d: DateLike) -> str:
    return f"{d.year:04d}-{d.month:02d}-{d.day:02d}"


def week_key(d: DateLike) -> str:
    # ISO-8601: the week belongs to the year of its Thursday
    iso_year, iso_week, _ = d.isocalendar()
    return f"{iso_year:04d}-W{iso_week:02d}"


def month_key(d: DateLike) -> str:
    return f"{d.year:04d}-{d.month:02d}"


_KEY_FUNCS = {
    PERIOD_DAILY: day_key,
    PERIOD_WEEKLY: week_key,
    PERIOD_MONTHLY: month_key,
}


def period_key(period_type: str, d: DateLike) -> str:
    try:
        return _KEY_FUNCS[period_type](d)
    except KeyError:
        raise ValueError(f"unknown period type: {period_type!r}") from None


def period_keys_for(d: DateLike) -> dict:
    return {pt: period_key(pt, d) for pt in PERIOD_TYPES}


def local_datetime_from_ms(timestamp_ms: int) -> datetime:
    return datetime.fromtimestamp(timestamp_ms / 1000.0)


def current_period_key(period_type: str, now: Optional[datetime] = None) -> str:
    return period_key(period_type, now or datetime.now())


def utc_now() -> datetime:
    """Naive UTC, the form the DateTime columns store."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
