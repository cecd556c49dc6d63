# activebreak/statistics.py
import csv
import io
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .models.posture import (
    EVENT_CORRECT,
    EVENT_INCORRECT,
    EVENT_SESSION_START,
    EVENT_SESSION_END,
)
from . import storage

# state that is active *after* an event of each type; anything but correct
# posture (including time after a session_end) counts as incorrect
_STATE_AFTER = {
    EVENT_CORRECT: EVENT_CORRECT,
    EVENT_INCORRECT: EVENT_INCORRECT,
    EVENT_SESSION_START: EVENT_CORRECT,
    EVENT_SESSION_END: EVENT_INCORRECT,
}


def _state_after(event_type: str) -> str:
    return _STATE_AFTER.get(event_type, EVENT_INCORRECT)


def _hhmmss(total_seconds: int) -> str:
    total_seconds = max(0, int(total_seconds))
    h, rest = divmod(total_seconds, 3600)
    m, s = divmod(rest, 60)
    return f"{h:02d}:{m:02d}:{s:02d}"


def day_start_ms(d: date) -> int:
    return int(datetime.combine(d, time.min).timestamp() * 1000)


def day_end_ms(d: date) -> int:
    return day_start_ms(d + timedelta(days=1)) - 1


def percentage_change(current: float, previous: float) -> str:
    """
    "+12.5%" / "-50.0%" / "0.0%". A zero previous period counts as
    "0.0%" when current is also zero and "+100.0%" otherwise.
    """
    if previous == 0:
        return "0.0%" if current == 0 else "+100.0%"
    change = (current - previous) / previous * 100
    sign = "+" if change > 0 else ""
    return f"{sign}{change:.1f}%"


def posture_durations(
    events: Iterable[Tuple[int, str]],
    window_end_ms: int,
    window_start_ms: Optional[int] = None,
    prior_event_type: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Walk an ordered (timestamp_ms, event_type) log and split elapsed time into
    correct/incorrect seconds.

    Time between two events belongs to the state set by the earlier one. With a
    `window_start_ms` the walk starts there, in the state of `prior_event_type`
    (the latest event before the window) or correct when there is none. Without
    one it starts at the first event. The last segment runs to `window_end_ms`,
    so correct + incorrect always spans the whole walk.

    Returns {"correct", "incorrect"} in whole seconds and the per-event "rows"
    (oldest first, each with its own duration).
    """
    events = [(int(ts), et) for ts, et in events if ts <= window_end_ms]

    state = _state_after(prior_event_type) if prior_event_type else EVENT_CORRECT
    if window_start_ms is not None:
        cursor = window_start_ms
    else:
        cursor = events[0][0] if events else window_end_ms

    totals = {EVENT_CORRECT: 0.0, EVENT_INCORRECT: 0.0}

    def _credit(st, start, end):
        if end > start:
            totals[st] += (end - start) / 1000.0

    rows = []
    for i, (ts, event_type) in enumerate(events):
        _credit(state, cursor, ts)
        state = _state_after(event_type)
        cursor = ts

        next_ts = events[i + 1][0] if i + 1 < len(events) else window_end_ms
        duration = max(0, (next_ts - ts) // 1000)
        rows.append(
            {
                "timestamp": ts,
                "type": event_type,
                "duration_seconds": int(duration),
                "duration": _hhmmss(duration),
            }
        )

    _credit(state, cursor, window_end_ms)

    return {
        "correct": max(0, int(totals[EVENT_CORRECT])),
        "incorrect": max(0, int(totals[EVENT_INCORRECT])),
        "rows": rows,
    }


def chart_series(rows: List[Dict[str, Any]]) -> Dict[str, List]:
    """
    Minutes of correct/incorrect posture per local calendar day, ordered by day.
    """
    by_day: Dict[str, Dict[str, float]] = {}
    for row in rows:
        state = _state_after(row["type"])
        label = datetime.fromtimestamp(row["timestamp"] / 1000.0).date().isoformat()
        bucket = by_day.setdefault(label, {EVENT_CORRECT: 0.0, EVENT_INCORRECT: 0.0})
        bucket[state] += row["duration_seconds"] / 60.0

    labels = sorted(by_day)
    return {
        "labels": labels,
        "correct_minutes": [int(round(by_day[d][EVENT_CORRECT])) for d in labels],
        "incorrect_minutes": [int(round(by_day[d][EVENT_INCORRECT])) for d in labels],
    }


def _durations_for_range(
    user_id: int,
    start_date: Optional[date],
    end_date: Optional[date],
    now_ms: int,
) -> Tuple[Dict[str, Any], Optional[int], int]:
    window_start = day_start_ms(start_date) if start_date else None
    window_end = now_ms if end_date is None else min(now_ms, day_end_ms(end_date))

    events = storage.posture_events_between(user_id, window_start, window_end)
    prior = None
    if window_start is not None:
        latest = storage.latest_posture_event_before(user_id, window_start)
        prior = latest.event_type if latest else None

    result = posture_durations(
        ((e.timestamp_ms, e.event_type) for e in events),
        window_end_ms=window_end,
        window_start_ms=window_start,
        prior_event_type=prior,
    )
    return result, window_start, window_end


def previous_period(start_date: date, end_date: date) -> Tuple[date, date]:
    """The period of equal length that ends the day before `start_date`."""
    days = (end_date - start_date).days + 1
    prev_end = start_date - timedelta(days=1)
    return prev_end - timedelta(days=days - 1), prev_end


def build_statistics(
    user_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    now_ms: Optional[int] = None,
) -> Dict[str, Any]:
    if now_ms is None:
        now_ms = int(datetime.now().timestamp() * 1000)
    if start_date and end_date and start_date > end_date:
        raise ValueError("start_date must not be after end_date")

    current, window_start, window_end = _durations_for_range(user_id, start_date, end_date, now_ms)
    alerts = storage.count_alerts_between(user_id, window_start, window_end)

    events = []
    for row in reversed(current["rows"]):
        moment = datetime.fromtimestamp(row["timestamp"] / 1000.0)
        events.append(
            {
                **row,
                "date": moment.date().isoformat(),
                "time": moment.strftime("%H:%M:%S"),
            }
        )

    trend = None
    if start_date and end_date:
        prev_start, prev_end = previous_period(start_date, end_date)
        previous, _, _ = _durations_for_range(user_id, prev_start, prev_end, now_ms)
        trend = {
            "previous_start_date": prev_start.isoformat(),
            "previous_end_date": prev_end.isoformat(),
            "previous_correct_seconds": previous["correct"],
            "previous_incorrect_seconds": previous["incorrect"],
            "correct": percentage_change(current["correct"], previous["correct"]),
            "incorrect": percentage_change(current["incorrect"], previous["incorrect"]),
        }

    return {
        "start_date": start_date.isoformat() if start_date else None,
        "end_date": end_date.isoformat() if end_date else None,
        "correct_seconds": current["correct"],
        "incorrect_seconds": current["incorrect"],
        "correct_time": _hhmmss(current["correct"]),
        "incorrect_time": _hhmmss(current["incorrect"]),
        "alerts_count": alerts,
        "events": events,
        "chart": chart_series(current["rows"]),
        "trend": trend,
    }


EXPORT_COLUMNS = ("timestamp", "local_time", "event")


def export_events_csv(
    user_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    now_ms: Optional[int] = None,
) -> str:
    """
    The posture log of a date range as CSV, oldest first, every field quoted.
    Without dates the whole history up to now is exported.
    """
    if now_ms is None:
        now_ms = int(datetime.now().timestamp() * 1000)
    if start_date and end_date and start_date > end_date:
        raise ValueError("start_date must not be after end_date")

    window_start = day_start_ms(start_date) if start_date else None
    window_end = now_ms if end_date is None else day_end_ms(end_date)

    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(EXPORT_COLUMNS)
    for event in storage.posture_events_between(user_id, window_start, window_end):
        moment = datetime.fromtimestamp(event.timestamp_ms / 1000.0)
        writer.writerow(
            [event.timestamp_ms, moment.strftime("%Y-%m-%d %H:%M:%S"), event.event_type]
        )
    return buf.getvalue()
